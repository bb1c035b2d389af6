"""
Tests for image I/O, layout helpers and the command line
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

import docscan.utils
from docscan.exceptions import InvalidInputError
from docscan.utils import (
    check_image,
    clip_to_uint8,
    format_processing_time,
    load_image,
    match_layout,
    resize_max,
    restore_layout,
    round_half_up,
    save_image,
    to_bgr,
    validate_image_file,
)

sys.path.insert(0, str(Path(__file__).parent.parent))


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(0.49) == 0


def test_clip_to_uint8():
    out = clip_to_uint8(np.array([-4.0, 0.5, 127.49, 254.5, 300.0]))
    assert out.tolist() == [0, 1, 127, 255, 255]
    assert out.dtype == np.uint8


@pytest.mark.parametrize("bad", [
    np.zeros((0, 0), dtype=np.uint8),
    np.zeros((4, 4), dtype=np.float32),
    np.zeros((4, 4, 2), dtype=np.uint8),
    [[1, 2], [3, 4]],
])
def test_check_image_rejects(bad):
    with pytest.raises(InvalidInputError):
        check_image(bad)


def test_invalid_input_is_a_value_error():
    with pytest.raises(ValueError):
        check_image(np.zeros((4, 4, 5), dtype=np.uint8))


def test_layout_round_trip_keeps_alpha():
    bgra = np.zeros((5, 6, 4), dtype=np.uint8)
    bgra[:, :, 3] = 42
    bgr, alpha, was_gray = to_bgr(bgra)
    assert bgr.shape == (5, 6, 3) and not was_gray
    np.testing.assert_array_equal(restore_layout(bgr, alpha, was_gray), bgra)


def test_match_layout_restores_single_channel_axis():
    column = np.zeros((5, 6, 1), dtype=np.uint8)
    flat = np.zeros((5, 6), dtype=np.uint8)
    assert match_layout(flat, column).shape == (5, 6, 1)
    assert match_layout(flat, flat) is flat
    bgr = np.zeros((5, 6, 3), dtype=np.uint8)
    assert match_layout(bgr, column) is bgr


def test_resize_max():
    img = np.zeros((100, 400, 3), dtype=np.uint8)
    small, scale = resize_max(img, 200)
    assert small.shape == (50, 200, 3)
    assert scale == pytest.approx(0.5)

    same, scale = resize_max(img, 1000)
    assert same is img and scale == 1.0


def test_resize_max_single_channel():
    small, _ = resize_max(np.zeros((100, 400, 1), dtype=np.uint8), 200)
    assert small.shape == (50, 200, 1)


def test_format_processing_time():
    assert format_processing_time(456) == "456ms"
    assert format_processing_time(1234) == "1.23s"


def test_save_and_load(tmp_path, document_frame):
    path = save_image(document_frame, str(tmp_path / "out" / "page.png"))
    np.testing.assert_array_equal(load_image(path), document_frame)


def test_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(str(tmp_path / "nope.png"))


def test_validate_rejects_extension(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hello")
    is_valid, _ = validate_image_file(str(path))
    assert not is_valid


def test_validate_rejects_non_image_mime(image_file, monkeypatch):
    monkeypatch.setattr(docscan.utils.magic, "from_file", lambda path, mime=True: "text/plain")
    is_valid, message = validate_image_file(image_file)
    assert not is_valid
    assert "text/plain" in message


def test_validate_tolerates_mime_lookup_failure(image_file, monkeypatch):
    def broken(path, mime=True):
        raise OSError("no magic database")

    monkeypatch.setattr(docscan.utils.magic, "from_file", broken)
    assert validate_image_file(image_file) == (True, "Valid image file")


def test_load_rejects_garbage(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not really a png")
    with pytest.raises(InvalidInputError):
        load_image(str(path))


# ─── Command line ─────────────────────────────────────────────────────────────

def test_cli_analyze(tmp_path, monkeypatch, image_file, capsys):
    import main

    monkeypatch.chdir(tmp_path)
    assert main.main(["analyze", image_file]) == 0
    assert "ANALYSIS" in capsys.readouterr().out


def test_cli_scan(tmp_path, monkeypatch, image_file):
    import main

    monkeypatch.chdir(tmp_path)
    output = tmp_path / "scanned.png"
    thumb = tmp_path / "thumb.png"
    code = main.main(["scan", image_file, "-o", str(output), "--preset", "grayscale",
                      "--thumbnail", str(thumb)])

    assert code == 0
    assert cv2.imread(str(output)) is not None
    assert max(cv2.imread(str(thumb)).shape[:2]) <= 200


def test_cli_missing_file(tmp_path, monkeypatch):
    import main

    monkeypatch.chdir(tmp_path)
    assert main.main(["analyze", str(tmp_path / "missing.png")]) == 1


def test_cli_preset_help_lists_labels(capsys):
    import main

    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["scan", "--help"])
    text = " ".join(capsys.readouterr().out.split())
    assert "magic (Magic Color)" in text
    assert "document (Document)" in text
