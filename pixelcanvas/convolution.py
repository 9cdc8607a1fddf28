"""
Pixel-level convolution engine.

``convolve`` never mutates its input: every interior pixel is computed from a
read-only snapshot of the source and written into a freshly allocated output,
so rows can be processed in any order, or on several threads at once.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .kernels import Kernel
from .raster import Raster

logger = logging.getLogger(__name__)


def convolve_rows(src: np.ndarray, kernel: Kernel, out: np.ndarray, start: int, stop: int) -> None:
    """Compute the interior pixels of rows [start, stop) into ``out``.

    ``src`` and ``out`` are (height, width, 4) arrays of the same shape.  Only
    the RGB channels of interior pixels are written; border pixels and alpha
    are left as they are in ``out``.
    """
    height, width = src.shape[:2]
    half = kernel.half_size
    start = max(start, half)
    stop = min(stop, height - half)
    inner_w = width - 2 * half
    if start >= stop or inner_w <= 0:
        return

    rows = stop - start
    window = src[start - half:stop + half, :, :3].astype(np.int64)
    acc = np.full((rows, inner_w, 3), kernel.bias, dtype=np.int64)
    for ky, weights in enumerate(kernel.weights):
        for kx, weight in enumerate(weights):
            if weight:
                acc += weight * window[ky:ky + rows, kx:kx + inner_w]

    out[start:stop, half:width - half, :3] = np.clip(acc, 0, 255)


def row_bands(height: int, parts: int):
    """Split ``range(height)`` into at most ``parts`` contiguous (start, stop) bands."""
    parts = max(1, min(parts, height))
    step, extra = divmod(height, parts)
    bands = []
    start = 0
    for i in range(parts):
        stop = start + step + (1 if i < extra else 0)
        bands.append((start, stop))
        start = stop
    return bands


def convolve(source: Raster, kernel: Kernel, workers: int = 1) -> Raster:
    """Apply ``kernel`` to ``source`` and return a new raster of the same size.

    Border pixels within ``kernel.half_size`` of an edge are copied unchanged,
    as is the alpha channel everywhere.
    """
    if source.is_empty:
        return Raster(source.width, source.height)

    src = source.snapshot()
    out = src.copy()
    bands = row_bands(source.height, workers)

    if len(bands) > 1:
        logger.debug("Convolving %r on %d threads", source, len(bands))
        with ThreadPoolExecutor(max_workers=len(bands)) as pool:
            futures = [pool.submit(convolve_rows, src, kernel, out, a, b) for a, b in bands]
            for f in futures:
                f.result()
    else:
        convolve_rows(src, kernel, out, 0, source.height)

    return Raster.from_array(out)
