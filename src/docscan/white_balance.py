"""
White Balance Corrector
=======================
Removes color casts from tungsten / fluorescent / mixed lighting.

  gray_world      average color should be neutral gray
  white_patch     the brightest pixels (high percentile) should be white
  smart_balance   picks between them by average luminance
  adjust_temperature  manual warm/cool shift, ±20% on R and B

Single-channel input has no color to balance and is returned unchanged.
"""

from typing import Tuple

import cv2
import numpy as np
from loguru import logger

from docscan.utils import check_image, restore_layout, scale_channels, to_bgr

GRAY_WORLD_TOLERANCE = 3.0
MIN_SCALE = 0.67
MAX_SCALE = 1.5

MIN_WHITE = 200

BRIGHT_IMAGE = 180
DARK_IMAGE = 70
GRAY_WORLD_BLEND = 0.7

TEMPERATURE_RANGE = 0.2


def _is_color(image: np.ndarray) -> bool:
    check_image(image)
    return image.ndim == 3 and image.shape[2] >= 3


def channel_means(bgr: np.ndarray) -> Tuple[float, float, float]:
    """Mean (B, G, R)."""
    b, g, r, _ = cv2.mean(bgr)
    return b, g, r


def channel_percentile(channel: np.ndarray, percentile: float) -> int:
    """
    Smallest value v with at least `percentile`% of pixels <= v.

    Read off the cumulative 256-bin histogram.
    """
    hist = np.bincount(channel.ravel(), minlength=256)
    target = hist.sum() * (percentile / 100.0)
    idx = int(np.searchsorted(np.cumsum(hist), target, side='left'))
    return min(idx, 255)


def gray_world(image: np.ndarray) -> np.ndarray:
    """Scale each channel toward the common mean, clamped to [0.67, 1.5]."""
    if not _is_color(image):
        return image.copy()

    bgr, alpha, was_gray = to_bgr(image)
    mb, mg, mr = channel_means(bgr)
    avg = (mb + mg + mr) / 3.0

    if max(abs(mb - avg), abs(mg - avg), abs(mr - avg)) < GRAY_WORLD_TOLERANCE:
        logger.debug("[WhiteBalance] Gray world: already balanced")
        return image.copy()

    scales = tuple(
        float(np.clip(avg / m, MIN_SCALE, MAX_SCALE)) if m > 0 else MAX_SCALE
        for m in (mb, mg, mr)
    )
    logger.debug(
        f"[WhiteBalance] Gray world scales B={scales[0]:.3f} G={scales[1]:.3f} R={scales[2]:.3f}"
    )
    return restore_layout(scale_channels(bgr, scales), alpha, was_gray)


def white_patch(image: np.ndarray, percentile: float = 95) -> np.ndarray:
    """
    Map each channel's `percentile` value to 255.

    Falls back to gray_world when any channel's reference white is below
    200 (no real white area in the frame).
    """
    if not _is_color(image):
        return image.copy()

    bgr, alpha, was_gray = to_bgr(image)
    whites = [channel_percentile(bgr[:, :, c], percentile) for c in range(3)]

    if min(whites) < MIN_WHITE:
        logger.debug(f"[WhiteBalance] White patch reference {whites} too dark, using gray world")
        return gray_world(image)

    scales = tuple(255.0 / w for w in whites)
    return restore_layout(scale_channels(bgr, scales), alpha, was_gray)


def smart_balance(image: np.ndarray) -> np.ndarray:
    """
    Choose by average luminance:
      > 180  white patch at the 98th percentile
      < 70   gray world
      else   70% gray world + 30% white patch (95th)
    """
    if not _is_color(image):
        return image.copy()

    bgr, alpha, was_gray = to_bgr(image)
    brightness = cv2.mean(cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY))[0]

    if brightness > BRIGHT_IMAGE:
        return white_patch(image, 98)
    if brightness < DARK_IMAGE:
        return gray_world(image)

    gw = gray_world(bgr)
    wp = white_patch(bgr, 95)
    blended = cv2.addWeighted(gw, GRAY_WORLD_BLEND, wp, 1.0 - GRAY_WORLD_BLEND, 0)
    return restore_layout(blended, alpha, was_gray)


def adjust_temperature(image: np.ndarray, temperature: float) -> np.ndarray:
    """temperature in [-100, 100]; positive warms (R up, B down)."""
    if not _is_color(image) or temperature == 0:
        return image.copy()

    shift = (temperature / 100.0) * TEMPERATURE_RANGE
    bgr, alpha, was_gray = to_bgr(image)
    balanced = scale_channels(bgr, (1.0 - shift, 1.0, 1.0 + shift))
    return restore_layout(balanced, alpha, was_gray)
