"""
Tests for nearest-neighbour resizing and the filter dropdown.
"""

import pytest

from pixelcanvas import Filter, Raster, UnknownFilter, apply_filter, convolve, resize, scale, scaled_size
from pixelcanvas.kernels import NamedKernel


def _checker():
    r = Raster(2, 2)
    r.set(0, 0, (255, 0, 0, 255))
    r.set(1, 0, (0, 255, 0, 255))
    r.set(0, 1, (0, 0, 255, 255))
    r.set(1, 1, (255, 255, 255, 128))
    return r


# ── Resize ────────────────────────────────────────────────────────────────────

def test_upscale_keeps_sharp_blocks():
    out = resize(_checker(), 4, 4)
    assert out.get(0, 0) == out.get(1, 1) == (255, 0, 0, 255)
    assert out.get(2, 0) == out.get(3, 1) == (0, 255, 0, 255)
    assert out.get(3, 3) == (255, 255, 255, 128)


def test_downscale_samples_floor():
    src = Raster(4, 1, [(i, i, i, 255) for i in (10, 20, 30, 40)])
    out = resize(src, 2, 1)
    assert [out.get(x, 0)[0] for x in range(2)] == [10, 30]


def test_resize_to_zero():
    out = resize(_checker(), 0, 3)
    assert (out.width, out.height) == (0, 3)


def test_resize_rejects_bad_input():
    with pytest.raises(ValueError):
        resize(_checker(), -1, 2)
    with pytest.raises(ValueError):
        resize(Raster(0, 0), 2, 2)


@pytest.mark.parametrize("factor,expected", [(1.25, (125, 63)), (1.5, (150, 75)), (0.75, (75, 38)), (0.5, (50, 25))])
def test_scaled_size_rounds_half_up(factor, expected):
    assert scaled_size(100, 50, factor) == expected


def test_scale():
    out = scale(_checker(), 1.5)
    assert (out.width, out.height) == (3, 3)
    with pytest.raises(ValueError):
        scale(_checker(), 0)


# ── Filters ───────────────────────────────────────────────────────────────────

def test_parse_filter():
    assert Filter.parse(" Sepia ") is Filter.SEPIA
    with pytest.raises(UnknownFilter):
        Filter.parse("posterize")


def test_none_returns_copy():
    src = _checker()
    out = apply_filter(src, "none")
    assert out == src and out is not src


def test_invert():
    out = apply_filter(_checker(), Filter.INVERT)
    assert out.get(0, 0) == (0, 255, 255, 255)
    assert out.get(1, 1) == (0, 0, 0, 128)


def test_grayscale_equal_channels_and_alpha_kept():
    out = apply_filter(_checker(), "grayscale")
    for y in range(2):
        for x in range(2):
            r, g, b, _a = out.get(x, y)
            assert r == g == b
    assert out.get(1, 1)[3] == 128


def test_sepia_warm_tone():
    out = apply_filter(Raster.filled(2, 2, (100, 100, 100, 255)), "sepia")
    r, g, b, a = out.get(0, 0)
    assert r > g > b
    assert a == 255


def test_brightness():
    out = apply_filter(Raster.filled(1, 1, (100, 200, 250, 255)), "brightness")
    assert out.get(0, 0) == (110, 220, 255, 255)


def test_blur_smooths_edge():
    src = Raster.filled(10, 10, (0, 0, 0, 255))
    for y in range(10):
        for x in range(5, 10):
            src.set(x, y, (255, 255, 255, 255))
    out = apply_filter(src, "blur")
    assert 0 < out.get(5, 5)[0] < 255
    assert 0 < out.get(4, 5)[0] < 255


@pytest.mark.parametrize("name", ["sharpen", "emboss"])
def test_convolution_filters(name):
    src = Raster.filled(5, 5, (100, 100, 100, 255))
    src.set(2, 2, (50, 60, 70, 255))
    assert apply_filter(src, name) == convolve(src, NamedKernel(name).kernel)


def test_filters_accept_empty_raster():
    for flt in Filter:
        out = apply_filter(Raster(0, 0), flt)
        assert out.is_empty
