"""
Shadow / highlight recovery on the LAB L channel.

Only luminance is remapped, so hue and chroma stay put. Each pass builds
a feathered mask (hard threshold, 15x15 Gaussian) and blends a
gamma-remapped L into the masked region:

  shadows     L < 80,  lift      out = 255 * (in/255) ** (1 / (1 + 0.8a))
  highlights  L > 200, compress  out = 255 * (in/255) ** (1 + 1.2a)

where a = amount / 100. Zero amounts return the input untouched.
"""

import cv2
import numpy as np
from loguru import logger

from docscan.histogram import luminance_histogram, tone_percentages
from docscan.utils import check_image, clip_to_uint8, match_layout, power_lut, restore_layout, to_bgr

SHADOW_THRESHOLD = 80
HIGHLIGHT_THRESHOLD = 200
MASK_KERNEL = (15, 15)

SHADOW_GAMMA_RANGE = 0.8
HIGHLIGHT_GAMMA_RANGE = 1.2


def _remap_luminance(image: np.ndarray, threshold: int, inverse_mask: bool, lut: np.ndarray) -> np.ndarray:
    bgr, alpha, was_gray = to_bgr(image)
    l_channel, a_channel, b_channel = cv2.split(cv2.cvtColor(bgr, cv2.COLOR_BGR2LAB))

    mode = cv2.THRESH_BINARY_INV if inverse_mask else cv2.THRESH_BINARY
    _, mask = cv2.threshold(l_channel, threshold, 255, mode)
    mask = cv2.GaussianBlur(mask, MASK_KERNEL, 0).astype(np.float32) / 255.0

    corrected = cv2.LUT(l_channel, lut).astype(np.float32)
    original = l_channel.astype(np.float32)
    blended = corrected * mask + original * (1.0 - mask)

    lab = cv2.merge([clip_to_uint8(blended), a_channel, b_channel])
    out = cv2.cvtColor(lab, cv2.COLOR_LAB2BGR)
    return match_layout(restore_layout(out, alpha, was_gray), image)


def recover_shadows(image: np.ndarray, amount: float) -> np.ndarray:
    """Brighten dark regions; amount in [0, 100], typical 20-50."""
    check_image(image)
    if amount <= 0:
        return image.copy()
    gamma = 1.0 + (amount / 100.0) * SHADOW_GAMMA_RANGE
    return _remap_luminance(image, SHADOW_THRESHOLD, True, power_lut(1.0 / gamma))


def recover_highlights(image: np.ndarray, amount: float) -> np.ndarray:
    """Pull down blown-out regions; amount in [0, 100], typical 15-40."""
    check_image(image)
    if amount <= 0:
        return image.copy()
    gamma = 1.0 + (amount / 100.0) * HIGHLIGHT_GAMMA_RANGE
    return _remap_luminance(image, HIGHLIGHT_THRESHOLD, False, power_lut(gamma))


def recover(image: np.ndarray, shadow_amount: float, highlight_amount: float) -> np.ndarray:
    """Shadows first, then highlights."""
    out = recover_shadows(image, shadow_amount)
    return recover_highlights(out, highlight_amount)


def adaptive_recover(image: np.ndarray, strength: float = 50) -> np.ndarray:
    """
    Derive both amounts from the luminance histogram.

      shadows    = min(100, 1.5 * shadow_pct)    * strength / 100
      highlights = min(80,  2.0 * highlight_pct) * strength / 100
    """
    check_image(image)
    shadow_pct, highlight_pct = tone_percentages(luminance_histogram(image))
    shadow_amount = min(100.0, shadow_pct * 1.5) * (strength / 100.0)
    highlight_amount = min(80.0, highlight_pct * 2.0) * (strength / 100.0)

    logger.debug(
        f"[ShadowHighlight] Adaptive: shadows {shadow_pct:.1f}% → {shadow_amount:.1f}, "
        f"highlights {highlight_pct:.1f}% → {highlight_amount:.1f}"
    )
    return recover(image, shadow_amount, highlight_amount)
