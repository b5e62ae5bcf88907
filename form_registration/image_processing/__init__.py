"""
Image processing library for form registration.

This package provides fiducial-mark detection, magic-wand region
detection, homography estimation and perspective rectification for
scanned answer sheets.
"""

from .pixel_buffer import PixelBuffer
from .blob_analyzer import Blob, BlobAnalyzer, SearchWindow, detect_region_from_seed
from .corner_locator import CornerLocator, locate_fiducial_corners, mark_areas_from_corners
from .homography import solve_homography
from .perspective import rectify_region, warp_with_homography

__all__ = [
    'PixelBuffer',
    'Blob',
    'BlobAnalyzer',
    'SearchWindow',
    'detect_region_from_seed',
    'CornerLocator',
    'locate_fiducial_corners',
    'mark_areas_from_corners',
    'solve_homography',
    'rectify_region',
    'warp_with_homography'
]
