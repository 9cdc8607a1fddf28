"""Nearest-neighbour resizing (sharp, non-interpolated pixel edges)."""

import math

import numpy as np

from .raster import Raster


def scaled_size(width: int, height: int, factor: float):
    """Target size for ``factor``, rounding halves up like the browser's Math.round."""
    return int(math.floor(width * factor + 0.5)), int(math.floor(height * factor + 0.5))


def resize(source: Raster, new_width: int, new_height: int) -> Raster:
    if new_width < 0 or new_height < 0:
        raise ValueError(f"Target size must be >= 0, got {new_width}x{new_height}")
    if new_width == 0 or new_height == 0:
        return Raster(new_width, new_height)
    if source.is_empty:
        raise ValueError(f"Cannot resize an empty {source!r} to {new_width}x{new_height}")

    xs = (np.arange(new_width) * source.width) // new_width
    ys = (np.arange(new_height) * source.height) // new_height
    return Raster.from_array(source.snapshot()[ys[:, None], xs[None, :]])


def scale(source: Raster, factor: float) -> Raster:
    if not factor > 0:
        raise ValueError(f"Scale factor must be positive, got {factor}")
    return resize(source, *scaled_size(source.width, source.height, factor))
