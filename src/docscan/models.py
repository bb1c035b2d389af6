"""
Data model for the scanning pipeline.

Plain dataclasses hold per-call results (detections, transforms, histogram
analysis). Pydantic models hold anything a caller tunes or a config file
supplies, so out-of-range knobs are rejected at construction time.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field


# ─── Geometry ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Point:
    """Image-space coordinate (floating point)."""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class BoundingRect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Size:
    width: int
    height: int


# ─── Edge detection ───────────────────────────────────────────────────────────

class DetectionConfig(BaseModel):
    """Tunables for EdgeDetector."""
    edge_threshold_low: float  = Field(30,   description="Canny lower hysteresis threshold", ge=0)
    edge_threshold_high: float = Field(100,  description="Canny upper hysteresis threshold", ge=0)
    blur_kernel_size: int      = Field(5,    description="Gaussian kernel size (odd)", ge=1)
    dilation_iterations: int   = Field(3,    description="3x3 dilation passes", ge=0)
    min_area_ratio: float      = Field(0.05, description="Smallest contour / image area", ge=0, le=1)
    max_area_ratio: float      = Field(0.98, description="Largest contour / image area", ge=0, le=1)


@dataclass(frozen=True)
class DetectedEdge:
    """
    One detection pass result. Immutable: the next pass supersedes it.

    contour is ordered [top-left, top-right, bottom-right, bottom-left].
    """
    contour: Tuple[Point, Point, Point, Point]
    confidence: float
    area: float
    aspect_ratio: float
    bounding_rect: BoundingRect

    def scaled(self, scale: float) -> "DetectedEdge":
        """
        Map a detection made on a downscaled frame back to full resolution.

        scale is the factor the frame was shrunk by (small = full * scale).
        """
        if scale == 1.0:
            return self
        inv = 1.0 / scale
        r = self.bounding_rect
        return DetectedEdge(
            contour=tuple(Point(p.x * inv, p.y * inv) for p in self.contour),
            confidence=self.confidence,
            area=self.area * inv * inv,
            aspect_ratio=self.aspect_ratio,
            bounding_rect=BoundingRect(r.x * inv, r.y * inv, r.width * inv, r.height * inv),
        )


# ─── Temporal smoothing ───────────────────────────────────────────────────────

class SmoothingConfig(BaseModel):
    """Live-preview loop tunables."""
    keep_frames: int                 = Field(5,   description="Frames a cached detection survives", ge=0)
    min_confidence_to_update: float  = Field(0.3, description="Confidence needed to replace the cache", ge=0, le=1)
    target_fps: float                = Field(15,  description="Detector invocations per second", gt=0)
    skip_frames: int                 = Field(2,   description="Frames skipped between invocations", ge=0)
    preview_max_width: int           = Field(640, description="Downscale bound for fast detection", gt=0)
    preview_max_height: int          = Field(480, description="Downscale bound for fast detection", gt=0)


class DetectionState(str, Enum):
    NEW = "NEW"
    CACHED = "CACHED"
    NONE = "NONE"


@dataclass
class SmoothingState:
    """Mutable per-session state; reset on session start/stop."""
    last_good_detection: Optional[DetectedEdge] = None
    frames_without_good_detection: int = 0
    state: DetectionState = DetectionState.NONE


@dataclass(frozen=True)
class SmoothedDetection:
    """What the live preview shows for one processed frame."""
    detection: Optional[DetectedEdge]
    state: DetectionState
    last_confidence: float
    using_cache: bool


# ─── Perspective correction ───────────────────────────────────────────────────

class Interpolation(str, Enum):
    NEAREST = "nearest"
    LINEAR = "linear"
    CUBIC = "cubic"
    LANCZOS = "lanczos"


class PerspectiveConfig(BaseModel):
    output_width: int           = Field(0, description="Target width, 0 = auto", ge=0)
    output_height: int          = Field(0, description="Target height, 0 = auto", ge=0)
    preserve_aspect_ratio: bool = Field(True, description="Derive a missing side from the quad's aspect")
    interpolation: Interpolation = Field(Interpolation.LINEAR, description="Warp resampling")


@dataclass
class TransformResult:
    corrected_image: np.ndarray
    transform_matrix: np.ndarray        # 3x3 homography, float64
    original_corners: List[Point]       # ordered TL, TR, BR, BL
    output_dimensions: Size


# ─── Histogram analysis ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class ChannelStats:
    r: float
    g: float
    b: float
    l: float


@dataclass
class Histogram:
    """256-bin counts per channel. Every array sums to width*height."""
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray
    luminance: np.ndarray
    mean: ChannelStats
    std: ChannelStats

    @property
    def total_pixels(self) -> int:
        return int(self.luminance.sum())


class ColorCastType(str, Enum):
    WARM = "warm"
    COOL = "cool"
    GREEN = "green"
    MAGENTA = "magenta"
    NONE = "none"


@dataclass
class HistogramAnalysis:
    histogram: Histogram
    is_underexposed: bool
    is_overexposed: bool
    shadow_clipping_pct: float
    highlight_clipping_pct: float
    dynamic_range: int
    average_brightness: float
    contrast_score: float
    has_color_cast: bool
    color_cast_type: ColorCastType
    color_cast_strength: float
    shadow_pct: float
    highlight_pct: float


# ─── Enhancement ──────────────────────────────────────────────────────────────

class EnhancementOptions(BaseModel):
    """Manual adjustment knobs. The defaults are the identity transform."""
    brightness: float  = Field(0,   ge=-100, le=100)
    contrast: float    = Field(0,   ge=-100, le=100)
    saturation: float  = Field(0,   ge=-100, le=100)
    sharpness: float   = Field(0,   ge=0,    le=100)
    gamma: float       = Field(1.0, gt=0)
    shadows: float     = Field(0,   ge=0,    le=100)
    highlights: float  = Field(0,   ge=0,    le=100)
    temperature: float = Field(0,   ge=-100, le=100)

    def is_neutral(self) -> bool:
        return self == EnhancementOptions()


@dataclass
class AutoEnhanceResult:
    enhanced_image: np.ndarray
    applied_settings: EnhancementOptions
    original_histogram: Histogram
    enhanced_histogram: Histogram
    applied: List[str] = field(default_factory=list)
