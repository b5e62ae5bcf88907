"""
Registration service: detect corner marks, then dewarp template regions.

This module composes the corner locator, homography solver and perspective
resampler into the "detect-then-dewarp" workflow used when grading scanned
answer sheets. Failures are returned as results so that a batch of regions
or pages continues past individual problems.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from ..config import get_value
from ..exceptions import DegenerateHomographyError, FiducialsNotFoundError, RegistrationError
from ..image_processing import (
    BlobAnalyzer,
    CornerLocator,
    PixelBuffer,
    solve_homography,
    warp_with_homography,
)
from ..models import CornerSet, DetectionSettings, PointLike, Rectangle
from ..utils.logger import LoggerAdapter, get_logger, log_execution_time
from .corner_cache import CornerCache

logger = get_logger(__name__)

CORNERS_SUPPLIED = "supplied"
CORNERS_CACHED = "cache"
CORNERS_DETECTED = "detected"


class RegistrationResult(BaseModel):
    """Outcome of rectifying one target rectangle."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool
    target: Rectangle
    image: Optional[PixelBuffer] = None
    source_corners: Optional[CornerSet] = None
    corners_source: Optional[str] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    def raise_for_status(self) -> "RegistrationResult":
        """Raise the matching RegistrationError for a failed result."""
        if self.success:
            return self
        if self.reason == FiducialsNotFoundError.reason:
            raise FiducialsNotFoundError(self.message or "Fiducial marks not found")
        if self.reason == DegenerateHomographyError.reason:
            raise DegenerateHomographyError(self.message or "Degenerate corner configuration")
        raise RegistrationError(self.message or "Registration failed")


class RegistrationService:
    """
    Service for aligning scanned pages to their template.

    Corner marks found on a page are memoized per image identity, so
    rectifying many regions of one page searches for the marks only once,
    also when the regions are processed from several threads.
    """

    def __init__(
        self,
        settings: Optional[DetectionSettings] = None,
        cache: Optional[CornerCache] = None
    ):
        """
        Initialize the registration service.

        Args:
            settings: Detection settings; YAML defaults when omitted
            cache: Corner cache shared with other services; a new one sized
                from corner_cache.max_entries when omitted
        """
        self.settings = settings or DetectionSettings.from_config()
        self.locator = CornerLocator(self.settings)
        self.analyzer = BlobAnalyzer(self.settings)
        self.cache = cache if cache is not None else CornerCache(
            max_entries=get_value("corner_cache.max_entries")
        )

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_region(self, buffer: PixelBuffer, seed: PointLike) -> Optional[Rectangle]:
        """Magic-wand region detection with the service's settings."""
        rect = self.analyzer.fill_bright_region(buffer, seed)
        if rect is None:
            logger.debug(f"No region found at seed {seed}")
        return rect

    def locate_corners(self, buffer: PixelBuffer) -> Optional[CornerSet]:
        """Corner marks of a page, from the cache when already known."""
        corners, _ = self.resolve_corners(buffer)
        return corners

    def resolve_corners(
        self,
        buffer: PixelBuffer,
        source_corners: Optional[CornerSet] = None
    ) -> Tuple[Optional[CornerSet], Optional[str]]:
        """
        Obtain source corners: supplied, cached, or freshly detected.

        Args:
            buffer: Scanned page
            source_corners: Corners already known to the caller

        Returns:
            Tuple of (corners or None, where they came from)
        """
        if source_corners is not None:
            return source_corners, CORNERS_SUPPLIED

        log = LoggerAdapter(logger, {'image': buffer.identity[:12]})
        cached = self.cache.get(buffer.identity)
        if cached is not None:
            log.debug("Using cached corners")
            return cached, CORNERS_CACHED

        def search() -> Optional[CornerSet]:
            log.debug(f"Searching corner marks in {buffer.width}x{buffer.height} image")
            return self.locator.locate(buffer)

        corners = self.cache.get_or_compute(buffer.identity, search)
        if corners is None:
            log.warning("Fiducial marks not found")
            return None, None
        return corners, CORNERS_DETECTED

    # ------------------------------------------------------------------
    # Rectification
    # ------------------------------------------------------------------

    def detect_and_rectify(
        self,
        buffer: PixelBuffer,
        ideal_corners: CornerSet,
        target: Rectangle,
        source_corners: Optional[CornerSet] = None
    ) -> RegistrationResult:
        """
        Rectify one template rectangle out of a scanned page.

        Args:
            buffer: Scanned page
            ideal_corners: Corner positions on the template
            target: Region in template coordinates
            source_corners: Corners already known for this page

        Returns:
            RegistrationResult with the rectified image and the corners used
        """
        return self.rectify_many(buffer, ideal_corners, [target], source_corners)[0]

    def rectify_many(
        self,
        buffer: PixelBuffer,
        ideal_corners: CornerSet,
        targets: Sequence[Rectangle],
        source_corners: Optional[CornerSet] = None
    ) -> List[RegistrationResult]:
        """
        Rectify several template rectangles out of one page.

        The corners are resolved and the homography solved once for all
        targets.

        Returns:
            One RegistrationResult per target, in input order
        """
        corners, origin = self.resolve_corners(buffer, source_corners)
        if corners is None:
            return [
                RegistrationResult(
                    success=False,
                    target=target,
                    reason=FiducialsNotFoundError.reason,
                    message="Fiducial marks not found; adjust threshold or min_size",
                )
                for target in targets
            ]

        try:
            homography = solve_homography(ideal_corners, corners)
        except DegenerateHomographyError as e:
            logger.warning(f"Degenerate corner configuration: {e}")
            return [
                RegistrationResult(
                    success=False,
                    target=target,
                    source_corners=corners,
                    corners_source=origin,
                    reason=DegenerateHomographyError.reason,
                    message=str(e),
                )
                for target in targets
            ]

        results = []
        for target in targets:
            image = warp_with_homography(buffer, homography, target)
            results.append(RegistrationResult(
                success=True,
                target=target,
                image=image,
                source_corners=corners,
                corners_source=origin,
            ))
        logger.debug(f"Rectified {len(results)} regions (corners {origin})")
        return results

    @log_execution_time(logger)
    def rectify_pages(
        self,
        pages: Sequence[PixelBuffer],
        ideal_corners: CornerSet,
        targets: Sequence[Rectangle],
        max_workers: Optional[int] = None
    ) -> List[List[RegistrationResult]]:
        """
        Rectify the same template rectangles on many pages in parallel.

        Args:
            pages: Scanned pages
            ideal_corners: Corner positions on the template
            targets: Regions in template coordinates
            max_workers: Thread count; batch.max_workers from config when omitted

        Returns:
            Per page, the list of results for every target
        """
        if max_workers is None:
            max_workers = get_value("batch.max_workers")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(
                lambda page: self.rectify_many(page, ideal_corners, targets),
                pages,
            ))
