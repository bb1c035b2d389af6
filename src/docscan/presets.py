"""
Filter presets.

A preset is a fixed tuple of pipeline steps with literal parameters. Each
step type is a small frozen dataclass; ImageEnhancer dispatches on the
step's type, so adding a step means adding a dataclass and a handler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple, Union


class FilterPreset(str, Enum):
    ORIGINAL = "original"
    DOCUMENT = "document"
    GRAYSCALE = "grayscale"
    MAGIC = "magic"
    WHITEBOARD = "whiteboard"
    BOOK = "book"
    RECEIPT = "receipt"
    PHOTO = "photo"
    BLUEPRINT = "blueprint"


# ── Step variants ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Grayscale:
    pass


@dataclass(frozen=True)
class Invert:
    pass


@dataclass(frozen=True)
class WhiteBalance:
    method: str = "smart"          # smart | gray_world | white_patch


@dataclass(frozen=True)
class Temperature:
    value: float


@dataclass(frozen=True)
class Brightness:
    value: float


@dataclass(frozen=True)
class Contrast:
    value: float


@dataclass(frozen=True)
class Saturation:
    value: float


@dataclass(frozen=True)
class Vibrance:
    """Saturation boost that favors muted colors."""
    amount: float


@dataclass(frozen=True)
class ShadowRecovery:
    amount: float


@dataclass(frozen=True)
class AutoContrast:
    """CLAHE on the LAB L channel."""
    clip_limit: float = 2.0
    tile_grid: int = 8


@dataclass(frozen=True)
class Denoise:
    strength: float = 3.0
    method: str = "bilateral"      # bilateral | nlmeans


@dataclass(frozen=True)
class AdaptiveThreshold:
    block_size: int = 11
    c: float = 2.0


@dataclass(frozen=True)
class MorphClose:
    kernel_size: int = 2


@dataclass(frozen=True)
class Sharpen:
    amount: float
    radius: float = 1.5


@dataclass(frozen=True)
class EdgeAwareSharpen:
    amount: float = 0.6


Step = Union[
    Grayscale, Invert, WhiteBalance, Temperature, Brightness, Contrast,
    Saturation, Vibrance, ShadowRecovery, AutoContrast, Denoise,
    AdaptiveThreshold, MorphClose, Sharpen, EdgeAwareSharpen,
]


# ── Preset table ──────────────────────────────────────────────────────────────

PRESETS: Dict[FilterPreset, Tuple[Step, ...]] = {
    FilterPreset.ORIGINAL: (),
    FilterPreset.DOCUMENT: (
        WhiteBalance(),
        ShadowRecovery(40),
        Denoise(strength=5, method="bilateral"),
        AdaptiveThreshold(block_size=11, c=2),
        MorphClose(),
        EdgeAwareSharpen(0.5),
    ),
    FilterPreset.GRAYSCALE: (
        Grayscale(),
        Contrast(10),
        Sharpen(0.3),
    ),
    FilterPreset.MAGIC: (
        WhiteBalance(),
        AutoContrast(),
        ShadowRecovery(30),
        Sharpen(0.4),
        Vibrance(15),
    ),
    FilterPreset.WHITEBOARD: (
        Temperature(-10),
        Brightness(20),
        Contrast(40),
        Saturation(-30),
        Sharpen(0.6),
    ),
    FilterPreset.BOOK: (
        Grayscale(),
        Contrast(15),
        Brightness(10),
        Sharpen(0.4),
    ),
    FilterPreset.RECEIPT: (
        Grayscale(),
        AdaptiveThreshold(block_size=15, c=5),
        Denoise(strength=5),
        Sharpen(0.6),
    ),
    FilterPreset.PHOTO: (
        WhiteBalance(),
        Contrast(5),
        Saturation(10),
        Sharpen(0.2),
    ),
    FilterPreset.BLUEPRINT: (
        Invert(),
        Contrast(20),
        Sharpen(0.5),
    ),
}

PRESET_LABELS: Dict[FilterPreset, str] = {
    FilterPreset.ORIGINAL:   "Original",
    FilterPreset.DOCUMENT:   "Document",
    FilterPreset.GRAYSCALE:  "Grayscale",
    FilterPreset.MAGIC:      "Magic Color",
    FilterPreset.WHITEBOARD: "Whiteboard",
    FilterPreset.BOOK:       "Book",
    FilterPreset.RECEIPT:    "Receipt",
    FilterPreset.PHOTO:      "Photo",
    FilterPreset.BLUEPRINT:  "Blueprint",
}


def resolve_preset(name: Union[str, FilterPreset]) -> FilterPreset:
    """
    Accept an enum member or its string value (case-insensitive).

    Raises:
        ValueError: unknown preset name
    """
    if isinstance(name, FilterPreset):
        return name
    return FilterPreset(str(name).strip().lower())
