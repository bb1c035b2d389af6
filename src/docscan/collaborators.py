"""
Collaborator contracts for text recognition, page storage and export.

The scanner consumes these; it does not implement them. Any object with
the matching methods works (typing.Protocol, no inheritance needed).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
from pydantic import BaseModel, Field

from docscan.models import EnhancementOptions, Point, Size


# ─── OCR Models ───────────────────────────────────────────────────────────────

class TextBox(BaseModel):
    x: float      = Field(..., description="Left edge (px)")
    y: float      = Field(..., description="Top edge (px)")
    width: float  = Field(..., description="Box width (px)", ge=0)
    height: float = Field(..., description="Box height (px)", ge=0)


class OCRWord(BaseModel):
    """One recognized word."""
    text: str         = Field(..., description="Recognized text")
    confidence: float = Field(..., description="Confidence score (0-1)", ge=0, le=1)
    bbox: TextBox     = Field(..., description="Bounding box in page coordinates")


class OCRResult(BaseModel):
    """What a TextRecognizer returns for one page."""
    text: str               = Field("",  description="Full recognized text")
    confidence: float       = Field(0.0, description="Average confidence score", ge=0, le=1)
    words: List[OCRWord]    = Field(default_factory=list, description="Per-word results")
    languages: List[str]    = Field(default_factory=list, description="Languages used")
    processing_time_ms: int = Field(0,   description="Recognition time in milliseconds", ge=0)


# ─── Page record ──────────────────────────────────────────────────────────────

@dataclass
class ScannedPage:
    """Everything a storage collaborator needs to persist one page."""
    original_image: np.ndarray
    processed_image: np.ndarray
    thumbnail: np.ndarray
    corners: List[Point]
    dimensions: Size
    enhancement: Optional[EnhancementOptions] = None
    filter_preset: Optional[str] = None
    ocr: Optional[OCRResult] = None
    detection_confidence: float = 0.0
    used_fallback_corners: bool = False
    notes: List[str] = field(default_factory=list)


class ExportFormat(str, Enum):
    PDF = "pdf"
    PNG = "png"
    JPEG = "jpeg"
    TXT = "txt"


# ─── Protocols ────────────────────────────────────────────────────────────────

@runtime_checkable
class TextRecognizer(Protocol):
    def recognize(self, image: np.ndarray, languages: Sequence[str]) -> OCRResult:
        ...


@runtime_checkable
class PageStore(Protocol):
    def save_page(self, document_id: str, page: ScannedPage) -> str:
        """Persist a page; returns the page id."""
        ...


@runtime_checkable
class DocumentExporter(Protocol):
    def export(self, pages: Sequence[ScannedPage], fmt: ExportFormat) -> bytes:
        ...
