"""
Convolution kernels.

A Kernel is an odd-sized square grid of signed integer weights plus a bias
that is added to every output channel.  Weights are used as given, never
normalised by their sum.
"""

from enum import Enum
from typing import Tuple

import numpy as np


class InvalidKernel(ValueError):
    """Kernel that cannot be applied (even or zero size, ragged rows, unknown name)."""


class Kernel:
    __slots__ = ("_weights", "_bias")

    def __init__(self, weights, bias: int = 0):
        rows = tuple(tuple(int(w) for w in row) for row in weights)
        size = len(rows)
        if size == 0 or size % 2 == 0:
            raise InvalidKernel(f"Kernel size must be odd and >= 1, got {size}")
        for row in rows:
            if len(row) != size:
                raise InvalidKernel(f"Kernel must be {size}x{size}, found a row of {len(row)}")
        self._weights = rows
        self._bias = int(bias)

    @property
    def weights(self) -> Tuple[Tuple[int, ...], ...]:
        return self._weights

    @property
    def bias(self) -> int:
        return self._bias

    @property
    def size(self) -> int:
        return len(self._weights)

    @property
    def half_size(self) -> int:
        return (self.size - 1) // 2

    def as_array(self) -> np.ndarray:
        return np.array(self._weights, dtype=np.int64)

    def to_dict(self):
        return {"size": self.size, "weights": [list(r) for r in self._weights], "bias": self._bias}

    def __eq__(self, other):
        if not isinstance(other, Kernel):
            return NotImplemented
        return self._weights == other._weights and self._bias == other._bias

    def __hash__(self):
        return hash((self._weights, self._bias))

    def __repr__(self):
        return f"Kernel(size={self.size}, bias={self._bias})"


IDENTITY = Kernel([[1]])


class NamedKernel(Enum):
    SHARPEN = "sharpen"
    EMBOSS = "emboss"

    @property
    def kernel(self) -> Kernel:
        return _DEFINITIONS[self]


_DEFINITIONS = {
    NamedKernel.SHARPEN: Kernel(
        [[0, -1, 0],
         [-1, 5, -1],
         [0, -1, 0]],
        bias=0,
    ),
    # bias re-centres the signed directional sum into the displayable range
    NamedKernel.EMBOSS: Kernel(
        [[-2, -1, 0],
         [-1, 1, 1],
         [0, 1, 2]],
        bias=128,
    ),
}


def get_kernel(name) -> Kernel:
    """Look up a named kernel, e.g. ``get_kernel("sharpen")``."""
    if isinstance(name, NamedKernel):
        return name.kernel
    try:
        return NamedKernel(str(name).strip().lower()).kernel
    except ValueError:
        raise InvalidKernel(f"Unknown kernel: {name!r}") from None
