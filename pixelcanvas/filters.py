"""
Filter dropdown: quick whole-image filters and the convolution kernels.

The quick filters mirror the CSS ``filter`` functions the editor used at full
strength; they operate on RGB and leave alpha untouched.
"""

import logging
from enum import Enum

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from .convolution import convolve
from .kernels import NamedKernel
from .raster import Raster

logger = logging.getLogger(__name__)

# sepia(100%) colour matrix, row per output channel
SEPIA_MATRIX = (
    0.393, 0.769, 0.189, 0,
    0.349, 0.686, 0.168, 0,
    0.272, 0.534, 0.131, 0,
)
BRIGHTNESS = 1.1
BLUR_RADIUS = 2


class UnknownFilter(ValueError):
    pass


class Filter(Enum):
    NONE = "none"
    GRAYSCALE = "grayscale"
    SEPIA = "sepia"
    INVERT = "invert"
    BRIGHTNESS = "brightness"
    BLUR = "blur"
    SHARPEN = "sharpen"
    EMBOSS = "emboss"

    @classmethod
    def parse(cls, name):
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            raise UnknownFilter(f"Unknown filter: {name!r}") from None

    @property
    def is_convolution(self) -> bool:
        return self in (Filter.SHARPEN, Filter.EMBOSS)


def _on_rgb(raster: Raster, op) -> Raster:
    img = raster.to_image()
    alpha = img.getchannel("A")
    out = op(img.convert("RGB")).convert("RGB")
    out.putalpha(alpha)
    return Raster.from_image(out)


def _grayscale(img: Image.Image) -> Image.Image:
    return ImageOps.grayscale(img)


def _sepia(img: Image.Image) -> Image.Image:
    return img.convert("RGB", SEPIA_MATRIX)


def _brightness(img: Image.Image) -> Image.Image:
    return ImageEnhance.Brightness(img).enhance(BRIGHTNESS)


def _blur(img: Image.Image) -> Image.Image:
    return img.filter(ImageFilter.GaussianBlur(BLUR_RADIUS))


_QUICK = {
    Filter.GRAYSCALE: _grayscale,
    Filter.SEPIA: _sepia,
    Filter.INVERT: ImageOps.invert,
    Filter.BRIGHTNESS: _brightness,
    Filter.BLUR: _blur,
}


def apply_filter(raster: Raster, name, workers: int = 1) -> Raster:
    """Apply the filter called ``name`` and return a new raster."""
    flt = Filter.parse(name)
    if flt is Filter.NONE or raster.is_empty:
        return raster.copy()
    if flt.is_convolution:
        return convolve(raster, NamedKernel(flt.value).kernel, workers=workers)
    logger.debug("Applying %s to %r", flt.value, raster)
    return _on_rgb(raster, _QUICK[flt])
