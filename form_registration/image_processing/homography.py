"""
Homography estimation from four point correspondences.

The 3x3 projective transform is found from the direct linear transform
(DLT) system with h22 fixed to 1: two equations per correspondence give an
8x8 linear system, solved by Gauss-Jordan elimination with partial
pivoting.

Degenerate inputs (coincident points, three collinear points, or a
numerically singular system) raise DegenerateHomographyError instead of
returning a meaningless matrix.
"""

from itertools import combinations
from typing import Sequence, Union

import numpy as np

from ..exceptions import DegenerateHomographyError
from ..models import CornerSet, Homography, Point, PointLike, as_point

# Triangle test: 2*area <= tolerance * longest_side^2 counts as collinear
COLLINEAR_TOLERANCE = 1e-6
# Pivot below this fraction of the largest coefficient counts as singular
PIVOT_EPSILON = 1e-10

Points = Union[CornerSet, Sequence[PointLike]]


def _as_point_list(points: Points, name: str) -> list:
    if isinstance(points, CornerSet):
        return points.as_list()
    pts = [as_point(p) for p in points]
    if len(pts) != 4:
        raise ValueError(f"{name} must contain exactly 4 points, got {len(pts)}")
    return pts


def check_point_configuration(points: Sequence[Point], name: str = "points") -> None:
    """
    Reject point sets that cannot define a projective transform.

    Args:
        points: Four points
        name: Label used in the error message

    Raises:
        DegenerateHomographyError: If two points coincide or any three are
            collinear
    """
    for a, b, c in combinations(points, 3):
        longest_sq = max(
            (a.x - b.x) ** 2 + (a.y - b.y) ** 2,
            (b.x - c.x) ** 2 + (b.y - c.y) ** 2,
            (a.x - c.x) ** 2 + (a.y - c.y) ** 2,
        )
        twice_area = abs((b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x))
        if longest_sq == 0 or twice_area <= COLLINEAR_TOLERANCE * longest_sq:
            raise DegenerateHomographyError(
                f"Degenerate {name}: ({a.x}, {a.y}), ({b.x}, {b.y}), ({c.x}, {c.y}) "
                f"are coincident or collinear"
            )


def build_dlt_system(src: Sequence[Point], dst: Sequence[Point]) -> np.ndarray:
    """
    Augmented 8x9 DLT matrix for h = (h00, h01, h02, h10, h11, h12, h20, h21).

    Each correspondence (x, y) -> (u, v) contributes
        x*h00 + y*h01 + h02 - x*u*h20 - y*u*h21 = u
        x*h10 + y*h11 + h12 - x*v*h20 - y*v*h21 = v
    """
    rows = []
    for p, q in zip(src, dst):
        x, y, u, v = p.x, p.y, q.x, q.y
        rows.append([x, y, 1.0, 0.0, 0.0, 0.0, -x * u, -y * u, u])
        rows.append([0.0, 0.0, 0.0, x, y, 1.0, -x * v, -y * v, v])
    return np.array(rows, dtype=np.float64)


def gauss_jordan_solve(augmented: np.ndarray) -> np.ndarray:
    """
    Solve an n x (n+1) augmented system with partial pivoting.

    Args:
        augmented: Augmented matrix [A | b]

    Returns:
        Solution vector of length n

    Raises:
        DegenerateHomographyError: If a pivot falls below PIVOT_EPSILON
            relative to the largest coefficient
    """
    m = np.array(augmented, dtype=np.float64)
    n = m.shape[0]
    scale = np.max(np.abs(m[:, :n]))
    if scale == 0:
        raise DegenerateHomographyError("Linear system has no non-zero coefficients")

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(m[col:, col])))
        if pivot_row != col:
            m[[col, pivot_row]] = m[[pivot_row, col]]

        pivot = m[col, col]
        if abs(pivot) < PIVOT_EPSILON * scale:
            raise DegenerateHomographyError(
                f"Singular system: pivot {pivot:.3e} in column {col}"
            )

        m[col, col:] /= pivot
        for row in range(n):
            if row != col:
                factor = m[row, col]
                if factor != 0.0:
                    m[row, col:] -= factor * m[col, col:]

    return m[:, n]


def solve_homography(src: Points, dst: Points) -> Homography:
    """
    Compute the homography mapping four source points onto four destination points.

    Points correspond by order (tl, tr, br, bl on both sides).

    Args:
        src: Four source points or a CornerSet
        dst: Four destination points or a CornerSet

    Returns:
        Homography normalized to h22 = 1

    Raises:
        DegenerateHomographyError: For coincident, collinear or otherwise
            unsolvable configurations
    """
    src_pts = _as_point_list(src, "src")
    dst_pts = _as_point_list(dst, "dst")
    check_point_configuration(src_pts, "source points")
    check_point_configuration(dst_pts, "destination points")

    h = gauss_jordan_solve(build_dlt_system(src_pts, dst_pts))
    if not np.all(np.isfinite(h)):
        raise DegenerateHomographyError("Homography solution is not finite")

    matrix = np.append(h, 1.0).reshape(3, 3)
    return Homography.from_array(matrix)
