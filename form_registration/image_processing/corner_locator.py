"""
Fiducial corner detection.

Each corner of the page is searched in its own window covering the outer
20% x 20% of the image. The accepted dark blob closest to the image corner
wins in each window; all four windows must produce a mark.
"""

import math
from typing import Dict, List, NamedTuple, Optional

from ..models import CornerSet, DetectionSettings, Point, Rectangle
from .blob_analyzer import BlobAnalyzer, SearchWindow
from .pixel_buffer import PixelBuffer

QUADRANT_RATIO = 0.2
# Display size of a mark relative to the shorter page side
MARK_DISPLAY_RATIO = 0.03

CORNER_KEYS = ("tl", "tr", "br", "bl")


class Quadrant(NamedTuple):
    key: str
    window: SearchWindow
    target: Point


class CornerLocator:
    """Locates the four printed corner marks of a scanned page."""

    def __init__(self, settings: Optional[DetectionSettings] = None):
        self.settings = settings or DetectionSettings()
        self.analyzer = BlobAnalyzer(self.settings)

    @staticmethod
    def quadrants(width: int, height: int) -> List[Quadrant]:
        """
        Corner search windows with their target points.

        Args:
            width: Image width
            height: Image height

        Returns:
            Quadrants in tl, tr, br, bl order
        """
        qw = max(1, int(math.floor(width * QUADRANT_RATIO)))
        qh = max(1, int(math.floor(height * QUADRANT_RATIO)))
        right, bottom = width - 1, height - 1
        return [
            Quadrant("tl", SearchWindow(0, 0, qw, qh), Point(x=0, y=0)),
            Quadrant("tr", SearchWindow(width - qw, 0, width, qh), Point(x=right, y=0)),
            Quadrant("br", SearchWindow(width - qw, height - qh, width, height), Point(x=right, y=bottom)),
            Quadrant("bl", SearchWindow(0, height - qh, qw, height), Point(x=0, y=bottom)),
        ]

    def locate(self, buffer: PixelBuffer) -> Optional[CornerSet]:
        """
        Find the four corner marks.

        Args:
            buffer: Scanned page

        Returns:
            CornerSet of mark centroids, or None unless every quadrant
            produced a mark
        """
        found: Dict[str, Point] = {}
        for quadrant in self.quadrants(buffer.width, buffer.height):
            blob = self.analyzer.best_blob(buffer, quadrant.window, quadrant.target)
            if blob is None:
                return None
            found[quadrant.key] = blob.centroid
        return CornerSet(**found)


def locate_fiducial_corners(
    buffer: PixelBuffer,
    settings: Optional[DetectionSettings] = None
) -> Optional[CornerSet]:
    """Convenience wrapper around CornerLocator.locate()."""
    return CornerLocator(settings).locate(buffer)


def mark_areas_from_corners(
    corners: CornerSet,
    image_width: int,
    image_height: int,
    settings: Optional[DetectionSettings] = None
) -> Dict[str, Rectangle]:
    """
    Square areas centered on detected marks, as shown in the template editor.

    The side length is the larger of min_size and 3% of the shorter page
    side.

    Returns:
        Mapping of corner key (tl, tr, br, bl) to Rectangle
    """
    settings = settings or DetectionSettings()
    size = max(float(settings.min_size), min(image_width, image_height) * MARK_DISPLAY_RATIO)
    areas = {}
    for key, point in zip(CORNER_KEYS, corners.as_list()):
        areas[key] = Rectangle(x=point.x - size / 2, y=point.y - size / 2, width=size, height=size)
    return areas
