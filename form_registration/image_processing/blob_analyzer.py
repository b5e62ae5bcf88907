"""
Connected-component analysis on scanned pages.

Two flood-fill modes over 4-connected neighbours:

1. Bright-interior fill ("magic wand"): grow from a seed through light
   pixels and stop at the first ring of dark border pixels. The bounding box
   of the filled region becomes an answer-area rectangle.
2. Dark-blob extraction: find every dark component inside a search window
   and keep the compact, reasonably sized ones as fiducial candidates.

Both modes work on a binary mask of the search window only, so the label
and visited images stay as small as the window.
"""

import math
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

import cv2
import numpy as np

from ..models import DetectionSettings, Point, PointLike, Rectangle, as_point
from .pixel_buffer import PixelBuffer

# Dark components larger than this are runaway ink (rulings, borders, smudges)
MAX_BLOB_PIXELS = 5000
# Accepted marks must cover less than this share of the whole page
MAX_BLOB_AREA_RATIO = 0.05
# max(w, h) / min(w, h) must stay below this to reject thin lines
MAX_ASPECT_RATIO = 2.5
# A bright fill covering more than this share of the page has no real border
MAX_FILL_RATIO = 0.5
# PixelBuffer.luma_milli() is luminance times this factor
LUMA_SCALE = 1000


class SearchWindow(NamedTuple):
    """Half-open pixel window [x0, x1) x [y0, y1)."""

    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def area(self) -> int:
        return self.width * self.height

    def clip(self, width: int, height: int) -> "SearchWindow":
        return SearchWindow(
            max(0, self.x0), max(0, self.y0), min(width, self.x1), min(height, self.y1)
        )


@dataclass(frozen=True)
class Blob:
    """A connected dark region found during one search pass."""

    pixel_count: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int
    centroid_x: float
    centroid_y: float
    # Raster index of the first pixel met by the scan, for stable ordering
    first_pixel: int = 0
    capped: bool = False

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def centroid(self) -> Point:
        return Point(x=self.centroid_x, y=self.centroid_y)

    @property
    def aspect_ratio(self) -> float:
        return max(self.width, self.height) / min(self.width, self.height)


class BlobAnalyzer:
    """
    Flood-fill based blob and region detector.

    Thresholds come from DetectionSettings; the structural limits
    (pixel cap, area ratio, aspect ratio) are fixed so that existing
    template calibrations keep matching.
    """

    def __init__(self, settings: Optional[DetectionSettings] = None):
        """
        Initialize the analyzer.

        Args:
            settings: Detection settings; built-in defaults when omitted
        """
        self.settings = settings or DetectionSettings()

    # ------------------------------------------------------------------
    # Bright-interior mode
    # ------------------------------------------------------------------

    def fill_bright_region(self, buffer: PixelBuffer, seed: PointLike) -> Optional[Rectangle]:
        """
        Detect the light rectangle enclosing a seed point.

        The fill runs through 4-connected pixels whose luminance is above
        the threshold and stops at the first dark pixel in every direction.

        Args:
            buffer: Page to search
            seed: Click position in image coordinates

        Returns:
            Bounding rectangle inflated by the padding setting, or None if the
            seed is outside the image or on a dark pixel, the fill leaks over
            half of the image, or the result is smaller than min_size
        """
        seed = as_point(seed)
        sx, sy = int(math.floor(seed.x)), int(math.floor(seed.y))
        if not buffer.contains(sx, sy):
            return None

        cut = self.settings.threshold * LUMA_SCALE
        luma = buffer.luma_milli()
        if luma[sy, sx] <= cut:
            return None

        light = np.where(luma > cut, 255, 0).astype(np.uint8)
        filled_count, _, _, (x, y, w, h) = cv2.floodFill(
            light, None, (sx, sy), 128, loDiff=0, upDiff=0, flags=4
        )

        if filled_count > buffer.area * MAX_FILL_RATIO:
            return None

        rect = Rectangle(x=x, y=y, width=w, height=h).inflate(self.settings.padding)
        if rect.width < self.settings.min_size or rect.height < self.settings.min_size:
            return None
        return rect

    # ------------------------------------------------------------------
    # Dark-blob mode
    # ------------------------------------------------------------------

    def find_dark_blobs(self, buffer: PixelBuffer, window: SearchWindow) -> List[Blob]:
        """
        Extract every 4-connected dark component inside a window.

        Components are returned in raster order of their first pixel.
        A component larger than MAX_BLOB_PIXELS is returned once with
        ``capped`` set and its size clamped to the cap.

        Args:
            buffer: Page to search
            window: Search window in image coordinates

        Returns:
            List of blobs (unfiltered)
        """
        window = window.clip(buffer.width, buffer.height)
        if window.width <= 0 or window.height <= 0:
            return []

        region = buffer.luma_milli()[window.y0:window.y1, window.x0:window.x1]
        dark = (region < self.settings.threshold * LUMA_SCALE).astype(np.uint8)
        num_labels, labels, stats, centroids = cv2.connectedComponentsWithStats(
            dark, connectivity=4, ltype=cv2.CV_32S
        )
        if num_labels <= 1:
            return []

        # First raster position per label: np.unique returns first occurrences
        flat = labels.ravel()
        found_labels, first_index = np.unique(flat, return_index=True)

        blobs = []
        for label, first in zip(found_labels, first_index):
            if label == 0:
                continue
            left = int(stats[label, cv2.CC_STAT_LEFT])
            top = int(stats[label, cv2.CC_STAT_TOP])
            count = int(stats[label, cv2.CC_STAT_AREA])
            capped = count > MAX_BLOB_PIXELS
            cx, cy = centroids[label]
            fy, fx = divmod(int(first), window.width)
            blobs.append(Blob(
                pixel_count=min(count, MAX_BLOB_PIXELS),
                min_x=window.x0 + left,
                max_x=window.x0 + left + int(stats[label, cv2.CC_STAT_WIDTH]) - 1,
                min_y=window.y0 + top,
                max_y=window.y0 + top + int(stats[label, cv2.CC_STAT_HEIGHT]) - 1,
                centroid_x=window.x0 + float(cx),
                centroid_y=window.y0 + float(cy),
                first_pixel=(window.y0 + fy) * buffer.width + window.x0 + fx,
                capped=capped,
            ))

        blobs.sort(key=lambda b: b.first_pixel)
        return blobs

    def accept_blob(self, blob: Blob, image_area: int) -> bool:
        """
        Check whether a blob looks like a printed fiducial mark.

        Args:
            blob: Candidate blob
            image_area: Pixel area of the whole page

        Returns:
            True if the blob is large enough, small relative to the page,
            compact, and not a runaway component
        """
        if blob.capped:
            return False
        if blob.pixel_count < self.settings.min_size ** 2:
            return False
        if blob.pixel_count >= image_area * MAX_BLOB_AREA_RATIO:
            return False
        return blob.aspect_ratio < MAX_ASPECT_RATIO

    def best_blob(
        self,
        buffer: PixelBuffer,
        window: SearchWindow,
        target: PointLike
    ) -> Optional[Blob]:
        """
        Pick the accepted blob whose centroid is closest to a target point.

        Ties keep the blob found first in raster order.
        """
        target = as_point(target)
        best = None
        best_distance = math.inf
        for blob in self.find_dark_blobs(buffer, window):
            if not self.accept_blob(blob, buffer.area):
                continue
            distance = blob.centroid.distance_to(target)
            if distance < best_distance:
                best, best_distance = blob, distance
        return best


def detect_region_from_seed(
    buffer: PixelBuffer,
    seed: PointLike,
    settings: Optional[DetectionSettings] = None
) -> Optional[Rectangle]:
    """
    Magic-wand detection of the light region under a seed point.

    Returns:
        Detected Rectangle, or None when nothing usable was found
    """
    return BlobAnalyzer(settings).fill_bright_region(buffer, seed)
