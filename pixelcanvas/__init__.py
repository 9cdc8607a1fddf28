"""Raster transforms for the pixelcanvas image editor."""

from .convolution import convolve
from .filters import Filter, UnknownFilter, apply_filter
from .kernels import InvalidKernel, Kernel, NamedKernel, get_kernel
from .raster import OutOfBounds, Raster
from .resize import resize, scale, scaled_size

__all__ = [
    "Filter",
    "InvalidKernel",
    "Kernel",
    "NamedKernel",
    "OutOfBounds",
    "Raster",
    "UnknownFilter",
    "apply_filter",
    "convolve",
    "get_kernel",
    "resize",
    "scale",
    "scaled_size",
]
