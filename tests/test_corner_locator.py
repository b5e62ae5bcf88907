import pytest

from form_registration.image_processing import (
    CornerLocator,
    PixelBuffer,
    locate_fiducial_corners,
    mark_areas_from_corners,
)
from form_registration.models import CornerSet, DetectionSettings, Point

from conftest import draw_square, page_with_marks


def test_all_four_marks_found_within_two_pixels(marked_page):
    buf, truth = marked_page

    corners = locate_fiducial_corners(buf)

    assert corners is not None
    for key in ("tl", "tr", "br", "bl"):
        found = getattr(corners, key)
        tx, ty = truth[key]
        assert abs(found.x - tx) <= 2
        assert abs(found.y - ty) <= 2


def test_missing_mark_fails_the_whole_detection():
    img, _ = page_with_marks()
    # erase the bottom-right mark
    img[500 - 40:, 400 - 40:] = 255

    assert locate_fiducial_corners(PixelBuffer(img)) is None


def test_marks_outside_corner_quadrants_are_ignored():
    # inset 100 puts the marks outside the 20% windows (80 x 100)
    img, _ = page_with_marks(inset=100)
    assert locate_fiducial_corners(PixelBuffer(img)) is None


def test_mark_closest_to_page_corner_wins():
    img, truth = page_with_marks()
    # a second, larger mark further inside the top-left quadrant
    draw_square(img, 50, 60, 20)

    corners = locate_fiducial_corners(PixelBuffer(img))

    assert corners.tl.x == pytest.approx(truth["tl"][0])
    assert corners.tl.y == pytest.approx(truth["tl"][1])


def test_marks_smaller_than_min_size_are_not_found(marked_page):
    buf, _ = marked_page
    assert locate_fiducial_corners(buf, DetectionSettings(min_size=16)) is None


def test_quadrants_cover_outer_twenty_percent():
    quadrants = CornerLocator.quadrants(400, 500)

    assert [q.key for q in quadrants] == ["tl", "tr", "br", "bl"]
    assert quadrants[0].window == (0, 0, 80, 100)
    assert quadrants[1].window == (320, 0, 400, 100)
    assert quadrants[2].window == (320, 400, 400, 500)
    assert quadrants[3].window == (0, 400, 80, 500)
    assert quadrants[0].target == Point(x=0, y=0)
    assert quadrants[2].target == Point(x=399, y=499)


def test_mark_areas_are_centered_squares():
    corners = CornerSet(
        tl=Point(x=27, y=27), tr=Point(x=372, y=27),
        br=Point(x=372, y=472), bl=Point(x=27, y=472),
    )

    areas = mark_areas_from_corners(corners, 400, 500, DetectionSettings(min_size=15))

    # 3% of the shorter side (12) is below min_size, so min_size wins
    assert areas["tl"].width == 15
    assert areas["tl"].x == pytest.approx(19.5)
    assert areas["br"].y == pytest.approx(464.5)

    large = mark_areas_from_corners(corners, 1000, 2000, DetectionSettings(min_size=15))
    assert large["tr"].width == pytest.approx(30)
