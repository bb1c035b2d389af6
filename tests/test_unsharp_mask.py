"""
Tests for unsharp mask sharpening
"""

import numpy as np
import pytest

from docscan.unsharp_mask import (
    edge_mask,
    local_contrast_map,
    sharpen,
    sharpen_adaptive,
    sharpen_edge_aware,
)


@pytest.fixture
def step_edge():
    """Vertical step 60 | 190 at x=50, 100x60 BGR."""
    img = np.full((60, 100, 3), 60, dtype=np.uint8)
    img[:, 50:] = 190
    return img


@pytest.mark.parametrize("variant", [sharpen, sharpen_adaptive, sharpen_edge_aware])
def test_non_positive_amount_is_noop(step_edge, variant):
    for amount in (0, -0.5):
        out = variant(step_edge, amount=amount)
        np.testing.assert_array_equal(out, step_edge)
        assert out is not step_edge


@pytest.mark.parametrize("variant", [sharpen, sharpen_adaptive, sharpen_edge_aware])
def test_flat_image_unchanged(variant):
    flat = np.full((40, 40, 3), 120, dtype=np.uint8)
    np.testing.assert_array_equal(variant(flat, amount=1.0), flat)


def test_sharpen_overshoots_both_sides(step_edge):
    out = sharpen(step_edge, amount=1.0, radius=2.0).astype(int)
    assert out[30, 49, 0] < 60
    assert out[30, 50, 0] > 190
    # Far from the edge nothing moves
    assert out[30, 5, 0] == 60
    assert out[30, 95, 0] == 190


def test_sharpen_stronger_amount_overshoots_more(step_edge):
    soft = sharpen(step_edge, amount=0.3).astype(int)
    hard = sharpen(step_edge, amount=1.5).astype(int)
    assert hard[30, 49, 0] < soft[30, 49, 0]
    assert hard[30, 50, 0] > soft[30, 50, 0]


def test_threshold_drops_small_detail(step_edge):
    np.testing.assert_array_equal(sharpen(step_edge, amount=1.0, threshold=255), step_edge)
    assert not np.array_equal(sharpen(step_edge, amount=1.0, threshold=5), step_edge)


def test_local_contrast_map_range(noisy_color_image):
    gray = noisy_color_image[:, :, 0]
    weights = local_contrast_map(gray)
    assert weights.dtype == np.float32
    assert weights.min() == pytest.approx(0.0)
    assert weights.max() == pytest.approx(1.0)


def test_adaptive_sharpens_edges(step_edge):
    out = sharpen_adaptive(step_edge, amount=1.0).astype(int)
    assert out[30, 49, 0] < 60
    assert out[30, 50, 0] > 190


def test_edge_mask_covers_edge_only(step_edge):
    mask = edge_mask(step_edge[:, :, 0])
    assert mask[30, 49] == 1.0 or mask[30, 50] == 1.0
    assert mask[30, 10] == 0.0
    assert set(np.unique(mask)) <= {0.0, 1.0}


def test_edge_aware_leaves_flat_noise_alone():
    rng = np.random.default_rng(3)
    img = np.full((80, 120, 3), 128, dtype=np.int16)
    img += rng.integers(-1, 2, size=img.shape, dtype=np.int16)
    img[:, 60:] += 80
    img = img.astype(np.uint8)

    out = sharpen_edge_aware(img, amount=1.0)

    # Low-amplitude noise never triggers Canny(30, 90): interiors untouched
    np.testing.assert_array_equal(out[:, :40], img[:, :40])
    np.testing.assert_array_equal(out[:, 80:], img[:, 80:])
    assert not np.array_equal(out[:, 55:65], img[:, 55:65])


def test_layouts_preserved(step_edge):
    gray = step_edge[:, :, 0].copy()
    bgra = np.dstack([step_edge, np.full(step_edge.shape[:2], 200, dtype=np.uint8)])

    assert sharpen(gray).ndim == 2
    for variant in (sharpen, sharpen_adaptive, sharpen_edge_aware):
        out = variant(bgra)
        assert out.shape == bgra.shape
        assert (out[:, :, 3] == 200).all()


def test_single_channel_3d_layout_preserved(step_edge):
    rng = np.random.default_rng(5)
    for shape in ((30, 40, 1), (32, 32, 1)):
        img = rng.integers(0, 256, size=shape, dtype=np.uint8)
        for variant in (sharpen, sharpen_adaptive, sharpen_edge_aware):
            out = variant(img, amount=0.5)
            assert out.shape == shape
            assert out.dtype == np.uint8

    column = step_edge[:, :, :1].copy()
    out = sharpen(column, amount=1.0)
    np.testing.assert_array_equal(out[:, :, 0], sharpen(column[:, :, 0], amount=1.0))
