"""
Document Edge Detector
======================
Finds the page quadrilateral in a camera frame with classical heuristics.

PIPELINE:
  grayscale → Gaussian blur → Canny → 3x3 dilation (closes outline gaps)
  → external contours → area filter → Douglas-Peucker at 2% perimeter
  → keep 4-vertex polygons → score → best wins

SCORING (weights sum to 1.0):
  0.6 * areaScore        min(1, 2 * area / imageArea)
  0.2 * convexityScore   1.0 convex, 0.7 otherwise
  0.2 * aspectScore      1.0 for bbox ratio in [1.2, 2.5],
                         0.5 outside [1.0, 4.0], 0.8 in between

The reported confidence is min(1, 2 * areaRatio) of the winner, NOT the
composite score. Downstream thresholds (preview colors, smoothing) are
tuned against that value.
"""

from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
from loguru import logger

from docscan.geometry import order_corners
from docscan.models import BoundingRect, DetectedEdge, DetectionConfig, Point
from docscan.utils import to_gray

APPROX_EPSILON_RATIO = 0.02

AREA_WEIGHT = 0.6
CONVEXITY_WEIGHT = 0.2
ASPECT_WEIGHT = 0.2

NON_CONVEX_SCORE = 0.7
IDEAL_ASPECT = (1.2, 2.5)
ACCEPTABLE_ASPECT = (1.0, 4.0)


def area_confidence(area: float, image_area: float) -> float:
    """Confidence for a contour covering `area` px of the frame."""
    if image_area <= 0:
        return 0.0
    return min(1.0, 2.0 * (area / image_area))


def aspect_score(aspect_ratio: float) -> float:
    if aspect_ratio < ACCEPTABLE_ASPECT[0] or aspect_ratio > ACCEPTABLE_ASPECT[1]:
        return 0.5
    if IDEAL_ASPECT[0] <= aspect_ratio <= IDEAL_ASPECT[1]:
        return 1.0
    return 0.8


def _side_ratio(width: float, height: float) -> float:
    short_side = min(width, height)
    if short_side <= 0:
        return float('inf')
    return max(width, height) / short_side


def downscale_for_preview(frame: np.ndarray, max_width: int = 640, max_height: int = 480) -> Tuple[np.ndarray, float]:
    """
    Shrink a frame to fit max_width x max_height for fast detection.

    Returns (small_frame, scale). Pass scale to DetectedEdge.scaled() to map
    the result back to the full frame.
    """
    h, w = frame.shape[:2]
    scale = min(max_width / w, max_height / h, 1.0)
    if scale >= 1.0:
        return frame, 1.0
    new_size = (max(1, int(w * scale)), max(1, int(h * scale)))
    return cv2.resize(frame, new_size, interpolation=cv2.INTER_AREA), scale


class EdgeDetector:
    """
    Detects a document outline in a frame.

    Returns None when no acceptable quadrilateral exists: that is a normal
    outcome, callers fall back to the full-image quad.
    """

    def __init__(self, config: Optional[DetectionConfig] = None):
        self.config = config or DetectionConfig()

    def update_config(self, **changes) -> None:
        self.config = self.config.model_copy(update=changes)

    # ── Public API ────────────────────────────────────────────────────────────

    def detect_document(self, image: np.ndarray) -> Optional[DetectedEdge]:
        """Full-resolution detection."""
        return self._detect(image, tag="EdgeDetector")

    def detect_document_fast(self, low_res_image: np.ndarray) -> Optional[DetectedEdge]:
        """
        Same algorithm for an already-downscaled preview frame.

        Coordinates are in the low-res frame; the caller rescales them.
        """
        return self._detect(low_res_image, tag="EdgeDetector/fast")

    # ── Pipeline ──────────────────────────────────────────────────────────────

    def _detect(self, image: np.ndarray, tag: str) -> Optional[DetectedEdge]:
        gray = to_gray(image)
        h, w = gray.shape[:2]
        try:
            contours = self._find_contours(gray)
            detected = self._find_best_contour(contours, w, h)
        except cv2.error as e:
            logger.warning(f"[{tag}] Detection failed: {e}")
            return None

        if detected is None:
            logger.debug(f"[{tag}] No document quadrilateral in {w}x{h} frame")
        else:
            logger.debug(
                f"[{tag}] Found quad area={detected.area:.0f} "
                f"confidence={detected.confidence:.2f} aspect={detected.aspect_ratio:.2f}"
            )
        return detected

    def _find_contours(self, gray: np.ndarray) -> Sequence[np.ndarray]:
        cfg = self.config
        k = cfg.blur_kernel_size if cfg.blur_kernel_size % 2 == 1 else cfg.blur_kernel_size + 1
        blurred = cv2.GaussianBlur(gray, (k, k), 0)
        edges = cv2.Canny(blurred, cfg.edge_threshold_low, cfg.edge_threshold_high)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
        dilated = cv2.dilate(edges, kernel, iterations=cfg.dilation_iterations)

        contours, _ = cv2.findContours(dilated, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return contours

    def _find_best_contour(
        self, contours: Sequence[np.ndarray], image_width: int, image_height: int
    ) -> Optional[DetectedEdge]:
        image_area = float(image_width * image_height)
        min_area = image_area * self.config.min_area_ratio
        max_area = image_area * self.config.max_area_ratio

        best_score = 0.0
        best: Optional[Tuple[np.ndarray, np.ndarray]] = None

        for contour in contours:
            area = cv2.contourArea(contour)
            if area < min_area or area > max_area:
                continue

            perimeter = cv2.arcLength(contour, True)
            approx = cv2.approxPolyDP(contour, APPROX_EPSILON_RATIO * perimeter, True)
            if len(approx) != 4:
                continue

            score = self.score_quadrilateral(approx, area, image_area)
            # Strictly greater: ties keep the first contour encountered
            if score > best_score:
                best_score = score
                best = (approx, contour)

        if best is None:
            return None
        return self._create_detected_edge(best[0], best[1], image_area)

    @staticmethod
    def score_quadrilateral(approx: np.ndarray, area: float, image_area: float) -> float:
        """Composite 0..1 score used only to rank candidates."""
        area_score = min(1.0, (area / image_area) * 2.0) if image_area > 0 else 0.0

        convexity_score = 1.0 if cv2.isContourConvex(approx) else NON_CONVEX_SCORE

        _, _, bw, bh = cv2.boundingRect(approx)
        aspect = aspect_score(_side_ratio(bw, bh))

        return area_score * AREA_WEIGHT + convexity_score * CONVEXITY_WEIGHT + aspect * ASPECT_WEIGHT

    @staticmethod
    def _create_detected_edge(approx: np.ndarray, contour: np.ndarray, image_area: float) -> DetectedEdge:
        corners: List[Point] = [Point(float(x), float(y)) for x, y in approx.reshape(-1, 2)]
        ordered = order_corners(corners)

        area = float(cv2.contourArea(contour))
        x, y, bw, bh = cv2.boundingRect(contour)

        return DetectedEdge(
            contour=tuple(ordered),
            confidence=area_confidence(area, image_area),
            area=area,
            aspect_ratio=_side_ratio(bw, bh),
            bounding_rect=BoundingRect(float(x), float(y), float(bw), float(bh)),
        )
