"""
form_registration - fiducial detection and perspective rectification for scanned forms.

Locates the printed corner marks and answer-region rectangles on scanned
paper forms and rectifies scanned pages against their template, so that
regions defined once on the template map onto every scanned copy.
"""

from .exceptions import (
    DegenerateHomographyError,
    FiducialsNotFoundError,
    ImageDecodeError,
    RegistrationError,
)
from .image_processing import (
    PixelBuffer,
    detect_region_from_seed,
    locate_fiducial_corners,
    mark_areas_from_corners,
    rectify_region,
    solve_homography,
)
from .models import CornerSet, DetectionSettings, Homography, Point, Rectangle
from .services import CornerCache, RegistrationResult, RegistrationService

__version__ = "1.0.0"

__all__ = [
    'PixelBuffer',
    'Point',
    'CornerSet',
    'Rectangle',
    'DetectionSettings',
    'Homography',
    'detect_region_from_seed',
    'locate_fiducial_corners',
    'mark_areas_from_corners',
    'solve_homography',
    'rectify_region',
    'CornerCache',
    'RegistrationResult',
    'RegistrationService',
    'RegistrationError',
    'FiducialsNotFoundError',
    'DegenerateHomographyError',
    'ImageDecodeError',
]
