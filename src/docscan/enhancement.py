"""
Enhancement Pipeline
====================
Manual adjustments and named filter presets.

MANUAL ORDER (enhance):
  1. shadow / highlight recovery
  2. temperature                 before tone changes so hue shifts don't clip
  3. brightness / contrast       out = in * (1 + c/100) + 255 * b/100
  4. gamma                       out = 255 * (in/255) ** gamma
  5. saturation                  HSV S scaled by 1 + s/100
  6. sharpen                     amount = sharpness / 100, always last

Each stage is skipped when its knob is neutral, so the default
EnhancementOptions returns an identical copy.

PRESETS (apply_filter): run the step tuple from presets.PRESETS on a BGR
working copy, then restore the caller's layout (gray in → gray out,
alpha carried through).
"""

from typing import Callable, Dict, Optional, Union

import cv2
import numpy as np
from loguru import logger

from docscan import shadow_highlight, unsharp_mask, white_balance
from docscan.histogram import HistogramAnalyzer
from docscan.models import AutoEnhanceResult, EnhancementOptions
from docscan.presets import (
    PRESETS,
    AdaptiveThreshold,
    AutoContrast,
    Brightness,
    Contrast,
    Denoise,
    EdgeAwareSharpen,
    FilterPreset,
    Grayscale,
    Invert,
    MorphClose,
    Saturation,
    Sharpen,
    ShadowRecovery,
    Step,
    Temperature,
    Vibrance,
    WhiteBalance,
    resolve_preset,
)
from docscan.utils import (
    check_image,
    clip_to_uint8,
    linear_lut,
    match_layout,
    power_lut,
    restore_layout,
    to_bgr,
)


# ── Primitive color operations (BGR in, BGR out) ──────────────────────────────

def scale_saturation(bgr: np.ndarray, factor: float) -> np.ndarray:
    hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
    h, s, v = cv2.split(hsv)
    s = cv2.LUT(s, linear_lut(factor, 0.0))
    return cv2.cvtColor(cv2.merge([h, s, v]), cv2.COLOR_HSV2BGR)


def vibrance(bgr: np.ndarray, amount: float) -> np.ndarray:
    """s' = s + s * (amount/100) * (1 - s/255): muted colors gain the most."""
    hsv = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)
    h, s, v = cv2.split(hsv)
    ramp = np.arange(256, dtype=np.float64)
    lut = clip_to_uint8(ramp + ramp * (amount / 100.0) * (1.0 - ramp / 255.0))
    return cv2.cvtColor(cv2.merge([h, cv2.LUT(s, lut), v]), cv2.COLOR_HSV2BGR)


def clahe_luminance(bgr: np.ndarray, clip_limit: float = 2.0, tile_grid: int = 8) -> np.ndarray:
    l_channel, a_channel, b_channel = cv2.split(cv2.cvtColor(bgr, cv2.COLOR_BGR2LAB))
    clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=(tile_grid, tile_grid))
    lab = cv2.merge([clahe.apply(l_channel), a_channel, b_channel])
    return cv2.cvtColor(lab, cv2.COLOR_LAB2BGR)


def denoise(bgr: np.ndarray, strength: float, method: str = "bilateral") -> np.ndarray:
    if strength <= 0:
        return bgr
    if method == "nlmeans":
        h = 2.0 * strength
        return cv2.fastNlMeansDenoisingColored(bgr, None, h, h, 7, 21)
    sigma = 15.0 * strength
    return cv2.bilateralFilter(bgr, 9, sigma, sigma)


def adaptive_threshold(bgr: np.ndarray, block_size: int, c: float) -> np.ndarray:
    gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
    block = max(3, block_size | 1)
    binary = cv2.adaptiveThreshold(
        gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C, cv2.THRESH_BINARY, block, c
    )
    return cv2.cvtColor(binary, cv2.COLOR_GRAY2BGR)


def morph_close(bgr: np.ndarray, kernel_size: int) -> np.ndarray:
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_size, kernel_size))
    return cv2.morphologyEx(bgr, cv2.MORPH_CLOSE, kernel)


def grayscale(bgr: np.ndarray) -> np.ndarray:
    return cv2.cvtColor(cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY), cv2.COLOR_GRAY2BGR)


_WHITE_BALANCE = {
    "smart":      white_balance.smart_balance,
    "gray_world": white_balance.gray_world,
    "white_patch": white_balance.white_patch,
}


class ImageEnhancer:
    """
    Applies manual adjustments, presets and histogram-driven auto-enhance.

    Holds no per-call state; one instance can serve any number of images.
    """

    def __init__(self, analyzer: Optional[HistogramAnalyzer] = None):
        self.analyzer = analyzer or HistogramAnalyzer()

        # ── Mapping: step type → handler(bgr, step) ───────────────────────────
        self._handlers: Dict[type, Callable[[np.ndarray, Step], np.ndarray]] = {
            Grayscale:         lambda img, s: grayscale(img),
            Invert:            lambda img, s: cv2.bitwise_not(img),
            WhiteBalance:      self._white_balance,
            Temperature:       lambda img, s: white_balance.adjust_temperature(img, s.value),
            Brightness:        lambda img, s: cv2.LUT(img, linear_lut(1.0, 255.0 * s.value / 100.0)),
            Contrast:          lambda img, s: cv2.LUT(img, linear_lut(1.0 + s.value / 100.0, 0.0)),
            Saturation:        lambda img, s: scale_saturation(img, 1.0 + s.value / 100.0),
            Vibrance:          lambda img, s: vibrance(img, s.amount),
            ShadowRecovery:    lambda img, s: shadow_highlight.recover_shadows(img, s.amount),
            AutoContrast:      lambda img, s: clahe_luminance(img, s.clip_limit, s.tile_grid),
            Denoise:           lambda img, s: denoise(img, s.strength, s.method),
            AdaptiveThreshold: lambda img, s: adaptive_threshold(img, s.block_size, s.c),
            MorphClose:        lambda img, s: morph_close(img, s.kernel_size),
            Sharpen:           lambda img, s: unsharp_mask.sharpen(img, s.amount, s.radius),
            EdgeAwareSharpen:  lambda img, s: unsharp_mask.sharpen_edge_aware(img, s.amount),
        }

    @staticmethod
    def _white_balance(img: np.ndarray, step: WhiteBalance) -> np.ndarray:
        balance = _WHITE_BALANCE.get(step.method)
        if balance is None:
            logger.warning(f"[Enhancer] Unknown white balance method '{step.method}', using smart")
            balance = white_balance.smart_balance
        return balance(img)

    # ── Manual adjustments ────────────────────────────────────────────────────

    def enhance(self, image: np.ndarray, options: Optional[EnhancementOptions] = None) -> np.ndarray:
        check_image(image)
        opts = options or EnhancementOptions()
        if opts.is_neutral():
            return image.copy()

        result = image
        if opts.shadows > 0 or opts.highlights > 0:
            result = shadow_highlight.recover(result, opts.shadows, opts.highlights)

        if opts.temperature != 0:
            result = white_balance.adjust_temperature(result, opts.temperature)

        if opts.brightness != 0 or opts.contrast != 0:
            lut = linear_lut(1.0 + opts.contrast / 100.0, 255.0 * opts.brightness / 100.0)
            result = self._apply_to_color(result, lambda c: cv2.LUT(c, lut))

        if opts.gamma != 1.0:
            lut = power_lut(opts.gamma)
            result = self._apply_to_color(result, lambda c: cv2.LUT(c, lut))

        if opts.saturation != 0:
            factor = 1.0 + opts.saturation / 100.0
            result = self._apply_to_color(result, lambda c: scale_saturation(c, factor), needs_color=True)

        if opts.sharpness > 0:
            result = unsharp_mask.sharpen(result, opts.sharpness / 100.0)

        if result is image:
            result = image.copy()
        return result

    @staticmethod
    def _apply_to_color(
        image: np.ndarray, op: Callable[[np.ndarray], np.ndarray], needs_color: bool = False
    ) -> np.ndarray:
        """Run `op` on the color channels only, leaving alpha alone."""
        if image.ndim == 2 or image.shape[2] == 1:
            if needs_color:
                return image
            return match_layout(op(image), image)
        bgr, alpha, was_gray = to_bgr(image)
        return restore_layout(op(bgr), alpha, was_gray)

    # ── Presets ───────────────────────────────────────────────────────────────

    def apply_filter(self, image: np.ndarray, preset: Union[str, FilterPreset]) -> np.ndarray:
        """
        Run a named preset. 'original' returns an unmodified copy.

        Unknown names fall back to 'original' with a warning.
        """
        check_image(image)
        try:
            resolved = resolve_preset(preset)
        except ValueError:
            logger.warning(f"[Enhancer] Unknown preset '{preset}', falling back to original")
            resolved = FilterPreset.ORIGINAL

        steps = PRESETS[resolved]
        if not steps:
            return image.copy()

        bgr, alpha, was_gray = to_bgr(image)
        for step in steps:
            bgr = self._handlers[type(step)](bgr, step)

        logger.debug(f"[Enhancer] Applied preset '{resolved.value}' ({len(steps)} steps)")
        return match_layout(restore_layout(bgr, alpha, was_gray), image)

    # ── Auto-enhance ──────────────────────────────────────────────────────────

    def auto_enhance(self, image: np.ndarray) -> AutoEnhanceResult:
        """Analyze → recommend → enhance → re-analyze."""
        before = self.analyzer.analyze_image(image)
        settings = self.analyzer.recommend_enhancements(before)
        enhanced = self.enhance(image, settings)
        after = self.analyzer.analyze_image(enhanced)

        applied = [
            name for name in ("brightness", "contrast", "shadows", "highlights", "saturation")
            if getattr(settings, name) != 0
        ]
        logger.info(
            f"[Enhancer] Auto-enhance applied {applied or 'nothing'} "
            f"(brightness {before.average_brightness:.0f} → {after.average_brightness:.0f})"
        )

        return AutoEnhanceResult(
            enhanced_image=enhanced,
            applied_settings=settings,
            original_histogram=before.histogram,
            enhanced_histogram=after.histogram,
            applied=applied,
        )
