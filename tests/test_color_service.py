import numpy as np
import pytest

from models.adjustment_params import AdjustmentParams
from models.errors import InvalidParameter
from models.filter_kind import FilterKind
from models.pixel_buffer import PixelBuffer
from services.color_service import ColorService

from conftest import random_buffer, solid


@pytest.fixture
def color():
    return ColorService()


# ─── compose_adjustments ───────────────────────────────────────────
def test_neutral_adjustments_reproduce_original(color):
    original = random_buffer(16, 9)
    assert color.compose_adjustments(original, AdjustmentParams.neutral()) == original


def test_brightness_is_additive(color):
    out = color.compose_adjustments(solid(1, 1, (100, 100, 100, 255)), AdjustmentParams(brightness=120))
    assert out.get_pixel(0, 0) == (151, 151, 151, 255)


def test_brightness_runs_before_contrast(color):
    # brightness first: 101 + 25.5 = 126.5, then (126.5 - 127.5) * 1.5 + 127.5 = 126
    # the other way round would give 113
    params = AdjustmentParams(brightness=110, contrast=150)
    out = color.compose_adjustments(solid(1, 1, (101, 101, 101, 255)), params)
    assert out.get_pixel(0, 0) == (126, 126, 126, 255)


def test_zero_saturation_collapses_to_luma(color):
    out = color.compose_adjustments(solid(1, 1, (200, 100, 50, 255)), AdjustmentParams(saturation=0))
    assert out.get_pixel(0, 0) == (124, 124, 124, 255)


def test_saturation_boost_clamps_only_at_the_end(color):
    out = color.compose_adjustments(solid(1, 1, (200, 100, 50, 255)), AdjustmentParams(saturation=200))
    assert out.get_pixel(0, 0) == (255, 76, 0, 255)


def test_adjustments_leave_alpha_and_input_alone(color):
    original = random_buffer()
    before = original.clone()
    out = color.compose_adjustments(original, AdjustmentParams(40, 180, 20))
    np.testing.assert_array_equal(out.pixels[..., 3], original.pixels[..., 3])
    assert original == before


def test_adjustment_params_reject_non_numbers():
    with pytest.raises(InvalidParameter):
        AdjustmentParams(brightness=float("nan"))
    with pytest.raises(InvalidParameter):
        AdjustmentParams(contrast="high")


# ─── filters ───────────────────────────────────────────────────────
def test_grayscale_uses_luma(color):
    out = color.apply_filter(solid(2, 2, (200, 100, 50, 77)), FilterKind.GRAYSCALE)
    assert out.get_pixel(1, 1) == (124, 124, 124, 77)


def test_sepia_on_white_clamps_upper_bound(color):
    out = color.apply_filter(solid(2, 2, (255, 255, 255, 255)), FilterKind.SEPIA)
    for y in range(2):
        for x in range(2):
            assert out.get_pixel(x, y) == (255, 255, 239, 255)


def test_sepia_keeps_black_black(color):
    out = color.sepia(solid(1, 1, (0, 0, 0, 128)))
    assert out.get_pixel(0, 0) == (0, 0, 0, 128)


def test_negative_twice_is_identity(color):
    original = random_buffer(9, 4, seed=7)
    once = color.apply_filter(original, FilterKind.NEGATIVE)
    assert once.get_pixel(0, 0)[:3] == tuple(255 - c for c in original.get_pixel(0, 0)[:3])
    assert color.apply_filter(once, FilterKind.NEGATIVE) == original


def test_vintage_scales_and_clamps(color):
    assert color.vintage(solid(1, 1, (100, 100, 100, 255))).get_pixel(0, 0) == (120, 110, 80, 255)
    assert color.vintage(solid(1, 1, (250, 250, 250, 255))).get_pixel(0, 0) == (255, 255, 200, 255)


def test_apply_filter_accepts_names(color):
    assert color.apply_filter(solid(1, 1, (10, 20, 30, 255)), "negative").get_pixel(0, 0) == (245, 235, 225, 255)


@pytest.mark.parametrize("kind", [FilterKind.BLUR, FilterKind.SHARPEN])
def test_neighborhood_kinds_are_not_colour_filters(color, kind):
    with pytest.raises(InvalidParameter):
        color.apply_filter(solid(1, 1, (0, 0, 0, 255)), kind)


def test_unknown_filter_name():
    with pytest.raises(InvalidParameter):
        FilterKind.parse("posterize")


# ─── enhancement ───────────────────────────────────────────────────
def test_enhance_linear_boost(color):
    buf = PixelBuffer.from_channels(3, 1, [100, 240, 0, 9, 0, 0, 0, 9, 50, 50, 50, 9])
    out = color.enhance(buf)
    assert out.get_pixel(0, 0) == (115, 255, 5, 9)
    assert out.get_pixel(1, 0) == (5, 5, 5, 9)
    assert out.get_pixel(2, 0) == (60, 60, 60, 9)


def test_histogram_counts_every_pixel(color):
    buf = random_buffer(10, 6)
    hist = color.histogram(buf)
    assert set(hist) == {"r", "g", "b"}
    for counts in hist.values():
        assert counts.shape == (256,)
        assert counts.sum() == 60


def test_auto_enhance_stretches_each_channel(color):
    buf = PixelBuffer.from_channels(3, 1, [
        50, 77, 10, 255,
        100, 77, 20, 255,
        150, 77, 30, 255,
    ])
    out = color.auto_enhance(buf)
    assert [out.get_pixel(x, 0)[0] for x in range(3)] == [0, 128, 255]
    # constant channel stays put
    assert [out.get_pixel(x, 0)[1] for x in range(3)] == [77, 77, 77]
    assert [out.get_pixel(x, 0)[2] for x in range(3)] == [0, 128, 255]


def test_auto_enhance_on_flat_image_is_unchanged(color):
    buf = solid(4, 4, (12, 34, 56, 200))
    assert color.auto_enhance(buf) == buf
