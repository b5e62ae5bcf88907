"""
Pydantic models for registration inputs and outputs.

These models define the value types exchanged between the detection core
and its collaborators (template editor, grading pipeline).
"""

import math
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Point(BaseModel):
    """An (x, y) coordinate in source-image pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


PointLike = Union[Point, Tuple[float, float], Sequence[float]]


def as_point(value: PointLike) -> Point:
    """Coerce a Point or an (x, y) pair into a Point."""
    if isinstance(value, Point):
        return value
    x, y = value
    return Point(x=float(x), y=float(y))


class CornerSet(BaseModel):
    """
    The four fiducial corners of a page.

    All four corners are required; a partially detected set cannot be
    constructed.
    """

    model_config = ConfigDict(frozen=True)

    tl: Point
    tr: Point
    br: Point
    bl: Point

    def as_list(self) -> List[Point]:
        """Corners in homography order: tl, tr, br, bl."""
        return [self.tl, self.tr, self.br, self.bl]

    @classmethod
    def from_list(cls, points: Sequence[PointLike]) -> "CornerSet":
        if len(points) != 4:
            raise ValueError(f"A corner set needs exactly 4 points, got {len(points)}")
        tl, tr, br, bl = (as_point(p) for p in points)
        return cls(tl=tl, tr=tr, br=br, bl=bl)


class Rectangle(BaseModel):
    """Axis-aligned rectangle in source-image pixel space."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def inflate(self, padding: float) -> "Rectangle":
        """
        Grow the rectangle by ``padding`` on every side.

        Negative padding shrinks it; the size never drops below zero.
        """
        return Rectangle(
            x=self.x - padding,
            y=self.y - padding,
            width=max(0.0, self.width + 2 * padding),
            height=max(0.0, self.height + 2 * padding),
        )


class DetectionSettings(BaseModel):
    """
    User-tunable detection parameters.

    Only the three recognized fields are accepted. The camelCase alias
    ``minSize`` is honoured for settings persisted by the template editor.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    min_size: int = Field(15, ge=1, alias="minSize", description="Minimum blob dimension in pixels")
    threshold: int = Field(160, ge=0, le=255, description="Grayscale cut between dark and light")
    padding: int = Field(0, description="Signed inflation applied to detected rectangles")

    @classmethod
    def from_config(cls, config=None) -> "DetectionSettings":
        """
        Build settings from the ``detection`` section of the YAML config.

        Args:
            config: ConfigLoader instance; the global loader when omitted

        Returns:
            DetectionSettings with config values over built-in defaults
        """
        if config is None:
            from .config import get_config
            config = get_config()
        section = config.get_section("detection") or {}
        return cls(**{k: v for k, v in section.items() if k in ("min_size", "threshold", "padding")})


class Homography(BaseModel):
    """3x3 projective transform normalized so that the bottom-right entry is 1."""

    model_config = ConfigDict(frozen=True)

    matrix: Tuple[Tuple[float, float, float], Tuple[float, float, float], Tuple[float, float, float]]

    @field_validator("matrix")
    @classmethod
    def validate_matrix(cls, v):
        if any(not math.isfinite(value) for row in v for value in row):
            raise ValueError("Homography entries must be finite")
        return v

    @classmethod
    def from_array(cls, array: np.ndarray) -> "Homography":
        array = np.asarray(array, dtype=np.float64).reshape(3, 3)
        return cls(matrix=tuple(tuple(float(v) for v in row) for row in array))

    def as_array(self) -> np.ndarray:
        return np.array(self.matrix, dtype=np.float64)

    def apply(self, x: float, y: float) -> Optional[Point]:
        """
        Map a single point through the transform.

        Returns:
            The mapped Point, or None if the point maps to infinity
        """
        (h00, h01, h02), (h10, h11, h12), (h20, h21, h22) = self.matrix
        denom = h20 * x + h21 * y + h22
        if denom == 0:
            return None
        return Point(
            x=(h00 * x + h01 * y + h02) / denom,
            y=(h10 * x + h11 * y + h12) / denom,
        )

    def apply_many(self, xs: np.ndarray, ys: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Vectorized mapping of coordinate arrays; infinities where the denominator is zero."""
        h = self.as_array()
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        denom = h[2, 0] * xs + h[2, 1] * ys + h[2, 2]
        with np.errstate(divide="ignore", invalid="ignore"):
            sx = (h[0, 0] * xs + h[0, 1] * ys + h[0, 2]) / denom
            sy = (h[1, 0] * xs + h[1, 1] * ys + h[1, 2]) / denom
        return sx, sy
