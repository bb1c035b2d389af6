"""
Shared fixtures: synthetic OpenCV-drawn frames
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


PAGE_TOP_LEFT = (50, 40)
PAGE_BOTTOM_RIGHT = (350, 260)


@pytest.fixture
def document_frame():
    """Dark 400x300 desk with a bright 300x220 page on it."""
    img = np.full((300, 400, 3), 30, dtype=np.uint8)
    cv2.rectangle(img, PAGE_TOP_LEFT, PAGE_BOTTOM_RIGHT, (235, 235, 235), thickness=-1)
    return img


@pytest.fixture
def tilted_document_frame():
    """Page drawn as a skewed quadrilateral on a dark 640x480 background."""
    img = np.full((480, 640, 3), 25, dtype=np.uint8)
    quad = np.array([[120, 80], [520, 60], [560, 420], [90, 400]], dtype=np.int32)
    cv2.fillConvexPoly(img, quad, (240, 240, 240))
    return img


@pytest.fixture
def blank_frame():
    """Uniform gray frame: nothing to detect."""
    return np.full((240, 320, 3), 128, dtype=np.uint8)


@pytest.fixture
def text_page():
    """White page with black text lines and a soft shadow on the left half."""
    img = np.full((240, 320, 3), 230, dtype=np.uint8)
    for i, line in enumerate(["INVOICE 2041", "Total: 25.00", "Thank you"]):
        cv2.putText(img, line, (20, 60 + i * 50), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (20, 20, 20), 2)
    shadow = np.linspace(0.45, 1.0, 160, dtype=np.float32)
    img[:, :160] = (img[:, :160].astype(np.float32) * shadow[None, :, None]).astype(np.uint8)
    return img


@pytest.fixture
def gradient_image():
    """Horizontal 0..255 ramp, 256 wide, identical in every channel."""
    ramp = np.tile(np.arange(256, dtype=np.uint8), (64, 1))
    return cv2.merge([ramp, ramp, ramp])


@pytest.fixture
def warm_image():
    """Neutral scene under tungsten light: red lifted, blue suppressed."""
    img = np.zeros((100, 100, 3), dtype=np.uint8)
    img[:, :] = (90, 130, 170)          # B, G, R
    cv2.rectangle(img, (20, 20), (80, 80), (150, 200, 240), thickness=-1)
    return img


@pytest.fixture
def noisy_color_image():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(120, 160, 3), dtype=np.uint8)


@pytest.fixture
def image_file(tmp_path, document_frame):
    path = tmp_path / "page.png"
    cv2.imwrite(str(path), document_frame)
    return str(path)
