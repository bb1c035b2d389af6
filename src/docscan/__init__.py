"""
docscan: document detection, rectification and tone/color enhancement.

Module-level helpers wrap default-configured component instances:

    from docscan import detect_document, correct_perspective, apply_filter

    edge = detect_document(frame)
    page = correct_perspective(frame, edge.contour).corrected_image
    clean = apply_filter(page, "document")
"""

from typing import Optional, Sequence, Union

import numpy as np

from docscan.edge_detector import EdgeDetector
from docscan.enhancement import ImageEnhancer
from docscan.exceptions import InvalidInputError, ProcessingError, ScannerError
from docscan.geometry import PointLike, order_corners
from docscan.histogram import HistogramAnalyzer
from docscan.models import (
    DetectedEdge,
    DetectionConfig,
    EnhancementOptions,
    HistogramAnalysis,
    PerspectiveConfig,
    Point,
    SmoothingConfig,
    TransformResult,
)
from docscan.perspective import PerspectiveCorrector
from docscan.presets import FilterPreset
from docscan.scanner import DocumentScanner
from docscan.temporal_smoothing import LivePreviewController, TemporalSmoother

__version__ = "1.0.0"


def detect_document(image: np.ndarray, config: Optional[DetectionConfig] = None) -> Optional[DetectedEdge]:
    return EdgeDetector(config).detect_document(image)


def detect_document_fast(low_res_image: np.ndarray, config: Optional[DetectionConfig] = None) -> Optional[DetectedEdge]:
    return EdgeDetector(config).detect_document_fast(low_res_image)


def correct_perspective(
    image: np.ndarray,
    corners: Sequence[PointLike],
    config: Optional[PerspectiveConfig] = None,
) -> TransformResult:
    return PerspectiveCorrector().correct_perspective(image, corners, config)


def analyze_image(image: np.ndarray) -> HistogramAnalysis:
    return HistogramAnalyzer().analyze_image(image)


def recommend_enhancements(analysis: HistogramAnalysis) -> EnhancementOptions:
    return HistogramAnalyzer.recommend_enhancements(analysis)


def enhance(image: np.ndarray, options: Optional[EnhancementOptions] = None) -> np.ndarray:
    return ImageEnhancer().enhance(image, options)


def apply_filter(image: np.ndarray, preset: Union[str, FilterPreset]) -> np.ndarray:
    return ImageEnhancer().apply_filter(image, preset)


__all__ = [
    "DetectedEdge",
    "DetectionConfig",
    "DocumentScanner",
    "EdgeDetector",
    "EnhancementOptions",
    "FilterPreset",
    "HistogramAnalysis",
    "HistogramAnalyzer",
    "ImageEnhancer",
    "InvalidInputError",
    "LivePreviewController",
    "PerspectiveConfig",
    "PerspectiveCorrector",
    "Point",
    "ProcessingError",
    "ScannerError",
    "SmoothingConfig",
    "TemporalSmoother",
    "TransformResult",
    "analyze_image",
    "apply_filter",
    "correct_perspective",
    "detect_document",
    "detect_document_fast",
    "enhance",
    "order_corners",
    "recommend_enhancements",
]
