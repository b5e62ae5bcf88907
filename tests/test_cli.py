import json

import pytest

from form_registration.cli import EXIT_BAD_INPUT, EXIT_DEGENERATE, EXIT_NOT_FOUND, EXIT_OK, main
from form_registration.image_processing import PixelBuffer

from conftest import blank_page, page_with_marks


@pytest.fixture
def marked_file(tmp_path):
    img, truth = page_with_marks()
    path = tmp_path / "page.png"
    PixelBuffer(img).save(path)
    return path, truth


def test_corners_prints_json(marked_file, capsys):
    path, truth = marked_file

    assert main(["corners", str(path), "--mark-areas"]) == EXIT_OK

    payload = json.loads(capsys.readouterr().out)
    assert payload["corners"]["tl"]["x"] == pytest.approx(truth["tl"][0], abs=2)
    assert set(payload["mark_areas"]) == {"tl", "tr", "br", "bl"}


def test_corners_not_found_exit_code(tmp_path, capsys):
    path = tmp_path / "blank.png"
    PixelBuffer(blank_page(200, 200)).save(path)

    assert main(["corners", str(path)]) == EXIT_NOT_FOUND
    assert "not found" in capsys.readouterr().err


def test_region_prints_rectangle(tmp_path, capsys):
    img = blank_page(200, 200)
    img[60:140, 50:150] = 0
    img[62:138, 52:148] = 255
    path = tmp_path / "box.png"
    PixelBuffer(img).save(path)

    assert main(["region", str(path), "100", "100", "--padding", "1"]) == EXIT_OK

    rect = json.loads(capsys.readouterr().out)
    assert rect == {"x": 51, "y": 61, "width": 98, "height": 78}


def test_rectify_writes_output(marked_file, tmp_path, capsys):
    path, _ = marked_file
    out = tmp_path / "out" / "region.png"

    code = main([
        "rectify", str(path),
        "--ideal", "27,27", "372,27", "372,472", "27,472",
        "--rect", "100,100,50,30",
        "-o", str(out),
    ])

    assert code == EXIT_OK
    assert PixelBuffer.from_file(out).shape == (50, 30)
    assert json.loads(capsys.readouterr().out)["output"] == str(out)


def test_rectify_degenerate_corners_exit_code(marked_file, tmp_path):
    path, _ = marked_file

    code = main([
        "rectify", str(path),
        "--ideal", "27,27", "372,27", "372,472", "27,472",
        "--corners", "0,0", "10,10", "20,20", "0,40",
        "--rect", "100,100,50,30",
        "-o", str(tmp_path / "never.png"),
    ])

    assert code == EXIT_DEGENERATE
    assert not (tmp_path / "never.png").exists()


def test_missing_image_is_bad_input(tmp_path):
    assert main(["corners", str(tmp_path / "nope.png")]) == EXIT_BAD_INPUT


def test_invalid_threshold_is_bad_input(marked_file):
    path, _ = marked_file
    assert main(["corners", str(path), "--threshold", "999"]) == EXIT_BAD_INPUT
