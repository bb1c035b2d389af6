"""
Tests for the enhancement pipeline and filter presets
"""

import numpy as np
import pytest
from pydantic import ValidationError

from docscan.enhancement import ImageEnhancer
from docscan.models import EnhancementOptions
from docscan.presets import (
    PRESETS,
    AdaptiveThreshold,
    Denoise,
    EdgeAwareSharpen,
    FilterPreset,
    MorphClose,
    ShadowRecovery,
    WhiteBalance,
    resolve_preset,
)


@pytest.fixture
def enhancer():
    return ImageEnhancer()


@pytest.fixture
def mid_color():
    img = np.zeros((50, 60, 3), dtype=np.uint8)
    img[:, :] = (60, 120, 180)
    return img


# ─── EnhancementOptions ───────────────────────────────────────────────────────

def test_default_options_are_neutral():
    assert EnhancementOptions().is_neutral()
    assert not EnhancementOptions(gamma=1.2).is_neutral()


@pytest.mark.parametrize("field,value", [
    ("brightness", 101),
    ("contrast", -101),
    ("saturation", 150),
    ("sharpness", -1),
    ("shadows", 101),
    ("highlights", -5),
    ("temperature", 200),
    ("gamma", 0),
])
def test_options_are_bounded(field, value):
    with pytest.raises(ValidationError):
        EnhancementOptions(**{field: value})


# ─── Manual enhance ───────────────────────────────────────────────────────────

def test_neutral_enhance_is_identity(enhancer, text_page):
    out = enhancer.enhance(text_page, EnhancementOptions())
    np.testing.assert_array_equal(out, text_page)
    assert out is not text_page


@pytest.mark.parametrize("shape", [(30, 40), (30, 40, 1), (30, 40, 3), (30, 40, 4)])
def test_neutral_enhance_identity_any_layout(enhancer, noisy_color_image, shape):
    img = np.resize(noisy_color_image, shape).astype(np.uint8)
    np.testing.assert_array_equal(enhancer.enhance(img), img)


def test_brightness_and_contrast_formula(enhancer):
    img = np.full((10, 10, 3), 100, dtype=np.uint8)
    out = enhancer.enhance(img, EnhancementOptions(brightness=10, contrast=20))
    # 100 * 1.2 + 25.5 = 145.5 → 146
    assert (out == 146).all()


def test_brightness_saturates(enhancer):
    img = np.full((10, 10, 3), 200, dtype=np.uint8)
    assert (enhancer.enhance(img, EnhancementOptions(brightness=50)) == 255).all()


def test_gamma(enhancer, gradient_image):
    darker = enhancer.enhance(gradient_image, EnhancementOptions(gamma=2.0))
    assert darker[0, 128, 0] == int(np.floor(255 * (128 / 255) ** 2 + 0.5))
    assert darker[0, 0, 0] == 0 and darker[0, 255, 0] == 255


def test_full_desaturation_gives_gray(enhancer, mid_color):
    out = enhancer.enhance(mid_color, EnhancementOptions(saturation=-100))
    assert (out[:, :, 0] == out[:, :, 1]).all()
    assert (out[:, :, 1] == out[:, :, 2]).all()


def test_saturation_on_gray_input_is_noop(enhancer):
    gray = np.full((20, 20), 90, dtype=np.uint8)
    out = enhancer.enhance(gray, EnhancementOptions(saturation=50))
    np.testing.assert_array_equal(out, gray)


def test_temperature_applied_before_tone(enhancer):
    img = np.full((10, 10, 3), 100, dtype=np.uint8)
    out = enhancer.enhance(img, EnhancementOptions(temperature=50, contrast=100))
    # B: 100 * 0.9 = 90 → 180, R: 100 * 1.1 = 110 → 220
    assert tuple(out[0, 0]) == (180, 200, 220)


def test_alpha_untouched_by_enhance(enhancer):
    bgra = np.full((10, 10, 4), 100, dtype=np.uint8)
    out = enhancer.enhance(bgra, EnhancementOptions(brightness=20, gamma=1.5, saturation=30, sharpness=50))
    assert out.shape == bgra.shape
    assert (out[:, :, 3] == 100).all()


@pytest.mark.parametrize("opts", [
    EnhancementOptions(brightness=10),
    EnhancementOptions(gamma=1.5),
    EnhancementOptions(shadows=40, highlights=20),
    EnhancementOptions(saturation=30),
    EnhancementOptions(sharpness=50),
    EnhancementOptions(brightness=10, contrast=20, sharpness=40),
])
def test_single_channel_3d_layout_kept(enhancer, opts):
    img = np.tile(np.arange(0, 240, 6, dtype=np.uint8), (30, 1))[:, :, None]
    out = enhancer.enhance(img, opts)
    assert out.shape == (30, 40, 1)
    assert out.dtype == np.uint8


def test_single_channel_brightness_matches_2d(enhancer):
    gray = np.full((30, 40), 100, dtype=np.uint8)
    opts = EnhancementOptions(brightness=10)
    np.testing.assert_array_equal(enhancer.enhance(gray[:, :, None], opts)[:, :, 0], enhancer.enhance(gray, opts))


def test_sharpness_is_last_step(enhancer, text_page):
    opts = EnhancementOptions(brightness=5, sharpness=60)
    out = enhancer.enhance(text_page, opts)
    brightened = enhancer.enhance(text_page, EnhancementOptions(brightness=5))
    assert out.std() > brightened.std()


# ─── Presets ──────────────────────────────────────────────────────────────────

def test_original_filter_is_identity(enhancer, text_page):
    out = enhancer.apply_filter(text_page, "original")
    np.testing.assert_array_equal(out, text_page)
    assert out is not text_page


def test_unknown_preset_falls_back_to_original(enhancer, text_page):
    np.testing.assert_array_equal(enhancer.apply_filter(text_page, "sepia"), text_page)


def test_resolve_preset():
    assert resolve_preset("Document") is FilterPreset.DOCUMENT
    assert resolve_preset(FilterPreset.BOOK) is FilterPreset.BOOK
    with pytest.raises(ValueError):
        resolve_preset("sepia")


def test_every_preset_has_steps_table():
    assert set(PRESETS) == set(FilterPreset)
    assert PRESETS[FilterPreset.ORIGINAL] == ()


def test_document_preset_sequence():
    assert [type(s) for s in PRESETS[FilterPreset.DOCUMENT]] == [
        WhiteBalance, ShadowRecovery, Denoise, AdaptiveThreshold, MorphClose, EdgeAwareSharpen,
    ]
    assert PRESETS[FilterPreset.DOCUMENT][1] == ShadowRecovery(40)
    assert PRESETS[FilterPreset.DOCUMENT][2].method == "bilateral"


@pytest.mark.parametrize("preset", list(FilterPreset))
@pytest.mark.parametrize("shape", [(60, 80), (60, 80, 1), (60, 80, 3), (60, 80, 4)])
def test_presets_preserve_layout(enhancer, text_page, preset, shape):
    if len(shape) == 2:
        img = text_page[:, :, 1][:60, :80].copy()
    elif shape[2] == 1:
        img = text_page[:60, :80, 1:2].copy()
    elif shape[2] == 3:
        img = text_page[:60, :80].copy()
    else:
        img = np.dstack([text_page[:60, :80], np.full((60, 80), 180, dtype=np.uint8)])

    out = enhancer.apply_filter(img, preset)

    assert out.shape == img.shape
    assert out.dtype == np.uint8
    if len(shape) == 3 and shape[2] == 4:
        assert (out[:, :, 3] == 180).all()


def test_grayscale_preset_outputs_equal_channels(enhancer, warm_image):
    out = enhancer.apply_filter(warm_image, FilterPreset.GRAYSCALE)
    assert (out[:, :, 0] == out[:, :, 2]).all()


def test_blueprint_inverts(enhancer):
    white = np.full((40, 40, 3), 240, dtype=np.uint8)
    assert enhancer.apply_filter(white, "blueprint").mean() < 30


def test_document_preset_binarizes_page(enhancer, text_page):
    out = enhancer.apply_filter(text_page, FilterPreset.DOCUMENT)
    # Background is white paper, text strokes are dark
    assert np.median(out) >= 250
    assert out.min() < 50


# ─── Auto-enhance ─────────────────────────────────────────────────────────────

def test_auto_enhance_brightens_dark_image(enhancer):
    dark = np.full((40, 40, 3), 40, dtype=np.uint8)
    result = enhancer.auto_enhance(dark)

    assert result.applied_settings.brightness == 20
    assert "brightness" in result.applied
    assert result.enhanced_image.mean() > dark.mean()
    assert result.enhanced_histogram.mean.l > result.original_histogram.mean.l


def test_auto_enhance_well_exposed_image_is_gentle(enhancer, gradient_image):
    result = enhancer.auto_enhance(gradient_image)
    assert result.applied_settings.brightness == 0
    assert result.enhanced_image.shape == gradient_image.shape
