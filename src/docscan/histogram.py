"""
Histogram Analyzer
==================
Per-channel statistics and an exposure / color-cast diagnosis.

  Clipping        luminance mass in [0,16) / [240,256), percent;
                  under/over-exposed when > 10%
  Dynamic range   last - first luminance bin holding > 0.1% of pixels
  Contrast        min(100, 2.5 * 100 * std_l / 255)
  Color cast      max of |R-G|, |R-B|, |G-B| > 5; strength min(100, 2*max)
  Tones           shadow share bins [0,80), highlight share bins [200,256)

recommend_enhancements() turns an analysis into a suggested
EnhancementOptions delta. Nothing here changes pixels.
"""

from typing import Tuple

import numpy as np
from loguru import logger

from docscan.models import (
    ChannelStats,
    ColorCastType,
    EnhancementOptions,
    Histogram,
    HistogramAnalysis,
)
from docscan.utils import check_image, round_half_up, to_gray

BINS = 256

SHADOW_CLIP_END = 16
HIGHLIGHT_CLIP_START = 240
EXPOSURE_CLIP_PCT = 10.0
SIGNIFICANT_BIN_RATIO = 0.001

SHADOW_TONE_END = 80
HIGHLIGHT_TONE_START = 200

COLOR_CAST_THRESHOLD = 5.0


def _bincount(channel: np.ndarray) -> np.ndarray:
    return np.bincount(channel.ravel(), minlength=BINS).astype(np.int64)


def _pct(part: int, total: int) -> float:
    return (part / total) * 100.0 if total else 0.0


def luminance_histogram(image: np.ndarray) -> np.ndarray:
    """256-bin luminance counts for any supported layout."""
    return _bincount(to_gray(image))


def tone_percentages(luminance: np.ndarray) -> Tuple[float, float]:
    """(shadow_pct, highlight_pct) of a luminance histogram."""
    total = int(luminance.sum())
    shadows = int(luminance[:SHADOW_TONE_END].sum())
    highlights = int(luminance[HIGHLIGHT_TONE_START:].sum())
    return _pct(shadows, total), _pct(highlights, total)


def compute_histogram(image: np.ndarray) -> Histogram:
    """
    Exact per-channel counts plus mean / population std.

    A grayscale image reports its single channel as R, G and B.
    """
    check_image(image)
    gray = to_gray(image)

    if image.ndim == 2 or image.shape[2] == 1:
        b = g = r = gray
    else:
        b, g, r = image[:, :, 0], image[:, :, 1], image[:, :, 2]

    def stats(channel: np.ndarray) -> Tuple[float, float]:
        values = channel.astype(np.float64)
        return float(values.mean()), float(values.std())

    (mr, sr), (mg, sg), (mb, sb), (ml, sl) = stats(r), stats(g), stats(b), stats(gray)

    return Histogram(
        red=_bincount(r),
        green=_bincount(g),
        blue=_bincount(b),
        luminance=_bincount(gray),
        mean=ChannelStats(r=mr, g=mg, b=mb, l=ml),
        std=ChannelStats(r=sr, g=sg, b=sb, l=sl),
    )


def dynamic_range(luminance: np.ndarray) -> int:
    total = int(luminance.sum())
    significant = np.flatnonzero(luminance > total * SIGNIFICANT_BIN_RATIO)
    if significant.size == 0:
        return BINS - 1
    return int(significant[-1] - significant[0])


def contrast_score(std_l: float) -> float:
    return min(100.0, (std_l / 255.0) * 100.0 * 2.5)


def detect_color_cast(mean: ChannelStats) -> Tuple[bool, ColorCastType, float]:
    """
    Dominant pairwise channel difference decides the cast.

    Ties resolve in the order R-B, R-G, G-B.
    """
    rg = mean.r - mean.g
    rb = mean.r - mean.b
    gb = mean.g - mean.b
    max_diff = max(abs(rg), abs(rb), abs(gb))

    strength = min(100.0, (max_diff / 50.0) * 100.0)
    if max_diff <= COLOR_CAST_THRESHOLD:
        return False, ColorCastType.NONE, strength

    if max_diff == abs(rb):
        cast = ColorCastType.WARM if rb > 0 else ColorCastType.COOL
    elif max_diff == abs(rg):
        cast = ColorCastType.MAGENTA if rg > 0 else ColorCastType.GREEN
    else:
        cast = ColorCastType.WARM if gb > 0 else ColorCastType.COOL
    return True, cast, strength


class HistogramAnalyzer:
    """Builds HistogramAnalysis records and enhancement recommendations."""

    def analyze_image(self, image: np.ndarray) -> HistogramAnalysis:
        histogram = compute_histogram(image)
        lum = histogram.luminance
        total = histogram.total_pixels

        shadow_clip = _pct(int(lum[:SHADOW_CLIP_END].sum()), total)
        highlight_clip = _pct(int(lum[HIGHLIGHT_CLIP_START:].sum()), total)
        has_cast, cast_type, cast_strength = detect_color_cast(histogram.mean)
        shadow_pct, highlight_pct = tone_percentages(lum)

        analysis = HistogramAnalysis(
            histogram=histogram,
            is_underexposed=shadow_clip > EXPOSURE_CLIP_PCT,
            is_overexposed=highlight_clip > EXPOSURE_CLIP_PCT,
            shadow_clipping_pct=shadow_clip,
            highlight_clipping_pct=highlight_clip,
            dynamic_range=dynamic_range(lum),
            average_brightness=histogram.mean.l,
            contrast_score=contrast_score(histogram.std.l),
            has_color_cast=has_cast,
            color_cast_type=cast_type,
            color_cast_strength=cast_strength,
            shadow_pct=shadow_pct,
            highlight_pct=highlight_pct,
        )

        logger.debug(
            f"[Histogram] brightness={analysis.average_brightness:.1f} "
            f"contrast={analysis.contrast_score:.1f} range={analysis.dynamic_range} "
            f"cast={cast_type.value}"
        )
        return analysis

    @staticmethod
    def recommend_enhancements(analysis: HistogramAnalysis) -> EnhancementOptions:
        """
        Suggested adjustments for an analysis.

        Only brightness, contrast, shadows, highlights and saturation are
        set; the caller decides whether to apply them.
        """
        avg = analysis.average_brightness
        contrast_value = analysis.contrast_score

        brightness = 0.0
        if analysis.is_underexposed and avg < 100:
            brightness = min(30.0, (100 - avg) / 3)
        elif analysis.is_overexposed and avg > 180:
            brightness = -min(30.0, (avg - 180) / 3)
        elif avg < 120:
            brightness = (120 - avg) / 4
        elif avg > 140:
            brightness = -(avg - 140) / 4

        contrast = 0.0
        if contrast_value < 30:
            contrast = 30 - contrast_value
        elif contrast_value > 70:
            contrast = -(contrast_value - 70) / 2

        shadows = min(50.0, analysis.shadow_pct * 1.5) if analysis.shadow_pct > 20 else 0.0
        highlights = min(40.0, analysis.highlight_pct * 2) if analysis.highlight_pct > 10 else 0.0

        saturation = 0.0
        if analysis.has_color_cast and analysis.color_cast_strength < 20:
            saturation = -10.0
        elif contrast_value > 50:
            saturation = 10.0

        return EnhancementOptions(
            brightness=round_half_up(brightness),
            contrast=round_half_up(contrast),
            shadows=round_half_up(shadows),
            highlights=round_half_up(highlights),
            saturation=round_half_up(saturation),
        )
