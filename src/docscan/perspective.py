"""
Perspective Corrector
=====================
Rectifies a document quadrilateral into an upright rectangle.

STEPS:
  1. Order corners TL, TR, BR, BL (coordinate-sum heuristic, geometry.py)
  2. Output size: explicit config wins, else
       width  = max(|TL-TR|, |BL-BR|)
       height = max(|TL-BL|, |TR-BR|)
     rounded to the nearest integer
  3. Homography: ordered corners → (0,0), (w,0), (w,h), (0,h)
  4. warpPerspective with the configured interpolation, white border
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from loguru import logger

from docscan.exceptions import InvalidInputError, ProcessingError
from docscan.geometry import PointLike, distance, order_corners, points_to_array, to_points
from docscan.models import Interpolation, PerspectiveConfig, Point, Size, TransformResult
from docscan.utils import check_image, match_layout, round_half_up

INTERPOLATION_FLAGS = {
    Interpolation.NEAREST: cv2.INTER_NEAREST,
    Interpolation.LINEAR:  cv2.INTER_LINEAR,
    Interpolation.CUBIC:   cv2.INTER_CUBIC,
    Interpolation.LANCZOS: cv2.INTER_LANCZOS4,
}

WHITE = (255, 255, 255, 255)


def _require_four(corners: Sequence[PointLike]) -> List[Point]:
    pts = to_points(corners)
    if len(pts) != 4:
        raise InvalidInputError(f"Exactly 4 corners required, got {len(pts)}")
    return pts


def _edge_lengths(ordered: Sequence[Point]) -> Tuple[float, float]:
    tl, tr, br, bl = ordered
    width = max(distance(tl, tr), distance(bl, br))
    height = max(distance(tl, bl), distance(tr, br))
    return width, height


def calculate_output_dimensions(corners: Sequence[PointLike]) -> Size:
    """Auto output size for a quad: longest opposite edges, rounded."""
    ordered = order_corners(_require_four(corners))
    width, height = _edge_lengths(ordered)
    return Size(round_half_up(width), round_half_up(height))


def map_points(points: Iterable[PointLike], matrix: np.ndarray) -> List[Point]:
    """Project points through a 3x3 homography."""
    src = points_to_array(points).reshape(-1, 1, 2).astype(np.float64)
    if src.size == 0:
        return []
    dst = cv2.perspectiveTransform(src, np.asarray(matrix, dtype=np.float64))
    return [Point(float(x), float(y)) for x, y in dst.reshape(-1, 2)]


class PerspectiveCorrector:
    """Stateless apart from the default config; safe to share between callers."""

    def __init__(self, config: Optional[PerspectiveConfig] = None):
        self.config = config or PerspectiveConfig()

    def resolve_dimensions(self, ordered: Sequence[Point], config: PerspectiveConfig) -> Size:
        """
        Pick the output size.

        Both sides given → used as-is. One side given with
        preserve_aspect_ratio → the other follows the quad's own aspect.
        Anything else → the auto-computed size.
        """
        auto_w, auto_h = _edge_lengths(ordered)
        want_w, want_h = config.output_width, config.output_height

        if want_w and want_h:
            return Size(want_w, want_h)

        if config.preserve_aspect_ratio and auto_w > 0 and auto_h > 0:
            if want_w:
                return Size(want_w, round_half_up(want_w * auto_h / auto_w))
            if want_h:
                return Size(round_half_up(want_h * auto_w / auto_h), want_h)

        return Size(round_half_up(auto_w), round_half_up(auto_h))

    def correct_perspective(
        self,
        image: np.ndarray,
        corners: Sequence[PointLike],
        config: Optional[PerspectiveConfig] = None,
    ) -> TransformResult:
        """
        Warp the quad described by `corners` (any order) to a rectangle.

        Raises:
            InvalidInputError: not exactly 4 corners, or a zero-size output
            ProcessingError: OpenCV failed during the transform
        """
        check_image(image)
        cfg = config or self.config
        ordered = order_corners(_require_four(corners))
        dims = self.resolve_dimensions(ordered, cfg)

        if dims.width <= 0 or dims.height <= 0:
            raise InvalidInputError(
                f"Degenerate quadrilateral, output would be {dims.width}x{dims.height}"
            )

        src_pts = points_to_array(ordered)
        dst_pts = np.array(
            [[0, 0], [dims.width, 0], [dims.width, dims.height], [0, dims.height]],
            dtype=np.float32,
        )

        border = WHITE[:image.shape[2]] if image.ndim == 3 else 255
        try:
            matrix = cv2.getPerspectiveTransform(src_pts, dst_pts)
            corrected = cv2.warpPerspective(
                image,
                matrix,
                (dims.width, dims.height),
                flags=INTERPOLATION_FLAGS[cfg.interpolation],
                borderMode=cv2.BORDER_CONSTANT,
                borderValue=border,
            )
        except cv2.error as e:
            raise ProcessingError(f"Perspective warp failed: {e}") from e
        corrected = match_layout(corrected, image)

        logger.debug(
            f"[Perspective] {image.shape[1]}x{image.shape[0]} → {dims.width}x{dims.height} "
            f"({cfg.interpolation.value})"
        )

        return TransformResult(
            corrected_image=corrected,
            transform_matrix=np.asarray(matrix, dtype=np.float64),
            original_corners=list(ordered),
            output_dimensions=dims,
        )
