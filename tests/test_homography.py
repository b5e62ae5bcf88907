import numpy as np
import pytest

from form_registration.exceptions import DegenerateHomographyError
from form_registration.image_processing import solve_homography
from form_registration.image_processing.homography import gauss_jordan_solve
from form_registration.models import CornerSet, Homography

UNIT_SQUARE = [(0, 0), (1, 0), (1, 1), (0, 1)]


def test_unit_square_to_itself_is_identity():
    h = solve_homography(UNIT_SQUARE, UNIT_SQUARE)

    np.testing.assert_allclose(h.as_array(), np.eye(3), atol=1e-6)


def test_result_is_normalized_to_unit_corner():
    src = [(10, 20), (300, 25), (310, 420), (5, 410)]
    dst = [(0, 0), (200, 0), (200, 300), (0, 300)]

    h = solve_homography(src, dst)

    assert h.matrix[2][2] == 1.0


def test_maps_each_source_corner_onto_its_destination():
    src = [(12.5, 30.0), (580.0, 18.0), (601.0, 790.0), (20.0, 810.0)]
    dst = [(0, 0), (500, 0), (500, 700), (0, 700)]

    h = solve_homography(src, dst)

    for (x, y), (u, v) in zip(src, dst):
        mapped = h.apply(x, y)
        assert mapped.x == pytest.approx(u, abs=1e-6)
        assert mapped.y == pytest.approx(v, abs=1e-6)


def test_recovers_a_known_perspective_transform():
    known = np.array([
        [0.9, -0.12, 15.0],
        [0.08, 1.1, -7.0],
        [1e-4, -2e-4, 1.0],
    ])
    src = np.array([(0, 0), (400, 0), (400, 600), (0, 600)], dtype=float)
    homogeneous = np.c_[src, np.ones(4)] @ known.T
    dst = homogeneous[:, :2] / homogeneous[:, 2:]

    h = solve_homography([tuple(p) for p in src], [tuple(p) for p in dst])

    np.testing.assert_allclose(h.as_array(), known, rtol=1e-6, atol=1e-9)


def test_accepts_corner_sets():
    corners = CornerSet.from_list([(0, 0), (10, 0), (10, 10), (0, 10)])
    shifted = CornerSet.from_list([(5, 5), (15, 5), (15, 15), (5, 15)])

    h = solve_homography(corners, shifted)

    mapped = h.apply(2, 3)
    assert (mapped.x, mapped.y) == (pytest.approx(7), pytest.approx(8))


def test_three_collinear_source_points_are_degenerate():
    src = [(0, 0), (50, 50), (100, 100), (0, 100)]
    with pytest.raises(DegenerateHomographyError):
        solve_homography(src, UNIT_SQUARE)


def test_collinear_destination_points_are_degenerate():
    dst = [(0, 0), (10, 0), (20, 0), (0, 10)]
    with pytest.raises(DegenerateHomographyError):
        solve_homography(UNIT_SQUARE, dst)


def test_coincident_points_are_degenerate():
    src = [(3, 3), (3, 3), (10, 10), (0, 10)]
    with pytest.raises(DegenerateHomographyError):
        solve_homography(src, UNIT_SQUARE)


def test_wrong_number_of_points_is_a_value_error():
    with pytest.raises(ValueError):
        solve_homography(UNIT_SQUARE[:3], UNIT_SQUARE)


def test_gauss_jordan_pivots_on_largest_entry():
    # zero in the first pivot position requires a row swap
    system = np.array([
        [0.0, 2.0, 4.0],
        [3.0, 1.0, 5.0],
    ])
    np.testing.assert_allclose(gauss_jordan_solve(system), [1.0, 2.0])


def test_gauss_jordan_rejects_singular_systems():
    system = np.array([
        [1.0, 2.0, 3.0],
        [2.0, 4.0, 6.0],
    ])
    with pytest.raises(DegenerateHomographyError):
        gauss_jordan_solve(system)


def test_homography_rejects_non_finite_entries():
    with pytest.raises(ValueError):
        Homography.from_array(np.array([[np.nan, 0, 0], [0, 1, 0], [0, 0, 1]]))
