"""
Utility functions shared across the scanning pipeline
"""

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import magic
import numpy as np
from loguru import logger

from docscan.exceptions import InvalidInputError


ALLOWED_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tiff', '.tif']


def validate_image_file(file_path: str, allowed_extensions: Optional[List[str]] = None) -> Tuple[bool, str]:
    """
    Validate if file is a valid image

    Args:
        file_path: Path to file
        allowed_extensions: List of allowed extensions (default: common image formats)

    Returns:
        (is_valid, message)
    """
    if allowed_extensions is None:
        allowed_extensions = ALLOWED_EXTENSIONS

    if not os.path.exists(file_path):
        return False, "File not found"

    ext = os.path.splitext(file_path)[1].lower()
    if ext not in allowed_extensions:
        return False, f"Invalid extension: {ext}. Allowed: {allowed_extensions}"

    # Verify MIME type (don't trust extension alone)
    try:
        mime = magic.from_file(file_path, mime=True)
        if not mime.startswith('image/'):
            return False, f"Not an image file (MIME type: {mime})"
    except Exception as e:
        logger.warning(f"Could not verify MIME type: {e}")

    return True, "Valid image file"


def load_image(file_path: str) -> np.ndarray:
    """
    Read an image from disk as BGR (or BGRA when it carries alpha).

    Raises:
        FileNotFoundError: path does not exist
        InvalidInputError: file is not a decodable image
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Image not found: {file_path}")

    is_valid, msg = validate_image_file(file_path)
    if not is_valid:
        raise InvalidInputError(f"{file_path}: {msg}")

    # imdecode handles non-ASCII paths that imread chokes on
    img = cv2.imdecode(np.fromfile(file_path, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidInputError(f"Cannot read image: {file_path}")
    if img.dtype != np.uint8:
        img = cv2.convertScaleAbs(img, alpha=255.0 / max(float(img.max()), 1.0))
    return img


def save_image(image: np.ndarray, output_path: str, jpg_quality: int = 92) -> str:
    """Write an image, creating the parent directory. Returns the path."""
    ensure_directory(str(Path(output_path).parent))
    ext = Path(output_path).suffix.lower()
    if ext in ('.jpg', '.jpeg'):
        ok = cv2.imwrite(output_path, image, [cv2.IMWRITE_JPEG_QUALITY, jpg_quality])
    elif ext == '.png':
        ok = cv2.imwrite(output_path, image, [cv2.IMWRITE_PNG_COMPRESSION, 3])
    else:
        ok = cv2.imwrite(output_path, image)
    if not ok:
        raise InvalidInputError(f"Could not write image: {output_path}")
    return output_path


def ensure_directory(dir_path: str) -> str:
    """
    Ensure directory exists, create if it doesn't

    Returns:
        Absolute path to directory
    """
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return str(path.absolute())


def format_processing_time(milliseconds: int) -> str:
    """
    Format processing time in human-readable format (e.g., "1.23s", "456ms")
    """
    if milliseconds < 1000:
        return f"{milliseconds}ms"
    else:
        seconds = milliseconds / 1000
        return f"{seconds:.2f}s"


# ── Channel layout helpers ────────────────────────────────────────────────────

def check_image(image: np.ndarray) -> None:
    """Reject anything that is not a non-empty uint8 gray/BGR/BGRA array."""
    if not isinstance(image, np.ndarray) or image.size == 0:
        raise InvalidInputError("Expected a non-empty numpy image")
    if image.dtype != np.uint8:
        raise InvalidInputError(f"Expected uint8 image, got {image.dtype}")
    if image.ndim == 2:
        return
    if image.ndim == 3 and image.shape[2] in (1, 3, 4):
        return
    raise InvalidInputError(f"Unsupported image shape: {image.shape}")


def to_bgr(image: np.ndarray) -> Tuple[np.ndarray, Optional[np.ndarray], bool]:
    """
    Split an image into (bgr, alpha, was_gray) so color operations can run
    on 3 channels. restore_layout() reverses it.
    """
    check_image(image)
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR), None, True
    if image.shape[2] == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2BGR), None, True
    if image.shape[2] == 4:
        return np.ascontiguousarray(image[:, :, :3]), image[:, :, 3].copy(), False
    return image, None, False


def restore_layout(bgr: np.ndarray, alpha: Optional[np.ndarray], was_gray: bool) -> np.ndarray:
    if was_gray:
        return cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
    if alpha is not None:
        return np.dstack([bgr, alpha])
    return bgr


def match_layout(result: np.ndarray, like: np.ndarray) -> np.ndarray:
    """Re-add the trailing axis an (H, W, 1) input loses in OpenCV calls."""
    if like.ndim == 3 and like.shape[2] == 1 and result.ndim == 2:
        return result[:, :, np.newaxis]
    return result


def to_gray(image: np.ndarray) -> np.ndarray:
    check_image(image)
    if image.ndim == 2:
        return image
    if image.shape[2] == 1:
        return image[:, :, 0]
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


# ── Lookup tables ─────────────────────────────────────────────────────────────

def round_half_up(value: float) -> int:
    """2.5 → 3, -2.5 → -2"""
    return int(np.floor(value + 0.5))


def clip_to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half away from zero and saturate, like cv::saturate_cast."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


def linear_lut(alpha: float, beta: float) -> np.ndarray:
    """out = in * alpha + beta, saturated."""
    return clip_to_uint8(np.arange(256, dtype=np.float64) * alpha + beta)


def power_lut(exponent: float) -> np.ndarray:
    """out = 255 * (in / 255) ** exponent, saturated."""
    return clip_to_uint8(np.power(np.arange(256, dtype=np.float64) / 255.0, exponent) * 255.0)


def scale_channels(bgr: np.ndarray, scales: Tuple[float, float, float]) -> np.ndarray:
    """Multiply B, G, R by independent factors through one 3-channel LUT."""
    ramp = np.arange(256, dtype=np.float64)[:, None]
    lut = clip_to_uint8(ramp * np.asarray(scales, dtype=np.float64)[None, :])
    return cv2.LUT(bgr, lut.reshape(1, 256, 3))


# ── Resizing ──────────────────────────────────────────────────────────────────

def resize_max(img: np.ndarray, target: int, upscale: bool = False) -> Tuple[np.ndarray, float]:
    """
    Resize so the longest side equals target, preserving aspect ratio.

    Returns (resized, scale) where scale = new / old. Images already within
    the target are returned untouched with scale 1.0 unless upscale is set.
    """
    h, w = img.shape[:2]
    max_side = max(h, w)
    if not upscale and max_side <= target:
        return img, 1.0
    if upscale and max_side >= target:
        return img, 1.0
    scale = target / max_side
    new_w, new_h = max(1, int(round(w * scale))), max(1, int(round(h * scale)))
    interp = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_CUBIC
    return match_layout(cv2.resize(img, (new_w, new_h), interpolation=interp), img), scale


# Logging setup helper
def setup_logging(log_file: Optional[str] = "logs/docscan.log", level: str = "INFO"):
    """
    Setup logging configuration

    Args:
        log_file: Path to log file (None disables the file sink)
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    logger.remove()

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level
    )

    if log_file:
        ensure_directory(os.path.dirname(log_file) or ".")
        logger.add(
            log_file,
            rotation="10 MB",
            retention="30 days",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
        )

    logger.info("Logging initialized")
