"""
RGBA raster buffer.

A Raster owns a row-major grid of RGBA bytes backed by a numpy array of shape
(height, width, 4).  Pixel (x, y) sits at flat index y * width + x.
"""

import io

import numpy as np
from PIL import Image


class OutOfBounds(IndexError):
    """Pixel coordinates outside the raster."""


def _clamp(values):
    return np.clip(np.asarray(values, dtype=np.int64), 0, 255).astype(np.uint8)


class Raster:
    def __init__(self, width: int, height: int, pixels=None):
        if width < 0 or height < 0:
            raise ValueError(f"Raster dimensions must be >= 0, got {width}x{height}")
        if pixels is None:
            self._data = np.zeros((height, width, 4), dtype=np.uint8)
            return

        if isinstance(pixels, (bytes, bytearray, memoryview)):
            arr = np.frombuffer(pixels, dtype=np.uint8)
        else:
            arr = np.asarray(pixels)
        if arr.ndim == 3 and arr.shape != (height, width, 4):
            raise ValueError(f"Expected an array of shape {(height, width, 4)}, got {arr.shape}")
        if arr.size != width * height * 4:
            raise ValueError(
                f"Expected {width * height * 4} channel values for {width}x{height}, got {arr.size}"
            )
        if arr.dtype == np.uint8:
            data = arr.copy()
        else:
            data = _clamp(arr)
        self._data = data.reshape((height, width, 4))

    # ── Constructors ─────────────────────────────────────────────────────────

    @classmethod
    def filled(cls, width, height, rgba):
        raster = cls(width, height)
        raster._data[:, :] = _clamp(rgba)
        return raster

    @classmethod
    def from_array(cls, arr):
        """Build a raster from an (height, width, 4) array, copying it."""
        arr = np.asarray(arr)
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected an array of shape (h, w, 4), got {arr.shape}")
        return cls(arr.shape[1], arr.shape[0], arr)

    @classmethod
    def from_image(cls, img: Image.Image):
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        return cls.from_array(np.array(img))

    # ── Access ───────────────────────────────────────────────────────────────

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def _check(self, x, y):
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBounds(f"({x}, {y}) outside {self.width}x{self.height} raster")

    def get(self, x: int, y: int):
        self._check(x, y)
        r, g, b, a = self._data[y, x]
        return int(r), int(g), int(b), int(a)

    def set(self, x: int, y: int, rgba) -> None:
        """Write one pixel, clamping each channel to [0, 255]."""
        self._check(x, y)
        if len(rgba) != 4:
            raise ValueError(f"Expected (r, g, b, a), got {rgba!r}")
        self._data[y, x] = _clamp(rgba)

    def snapshot(self) -> np.ndarray:
        """Read-only view of the pixel array."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def copy(self):
        return Raster.from_array(self._data)

    def to_bytes(self) -> bytes:
        return self._data.tobytes()

    # ── Pillow interop ───────────────────────────────────────────────────────

    def to_image(self) -> Image.Image:
        if self.is_empty:
            return Image.new("RGBA", (self.width, self.height))
        return Image.fromarray(self._data)

    def to_png_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.to_image().save(buf, format="PNG")
        return buf.getvalue()

    def __eq__(self, other):
        if not isinstance(other, Raster):
            return NotImplemented
        return self._data.shape == other._data.shape and np.array_equal(self._data, other._data)

    def __repr__(self):
        return f"Raster({self.width}x{self.height})"
