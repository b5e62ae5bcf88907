"""
Perspective resampling of template regions out of skewed scans.

The homography is solved in the inverse direction (ideal -> source), so
every output pixel is looked up directly in the source image without
inverting a matrix. Sampling is nearest-neighbour; pixels that map outside
the source are written fully transparent.
"""

import math

import numpy as np

from ..models import CornerSet, Homography, Rectangle
from .homography import solve_homography
from .pixel_buffer import PixelBuffer


def warp_with_homography(
    buffer: PixelBuffer,
    homography: Homography,
    target_rect: Rectangle
) -> PixelBuffer:
    """
    Resample a rectangle of ideal space through an ideal -> source homography.

    Args:
        buffer: Source image
        homography: Transform mapping ideal coordinates to source coordinates
        target_rect: Region to extract, in ideal coordinates

    Returns:
        RGBA buffer of floor(width) x floor(height) pixels
    """
    out_w = int(math.floor(target_rect.width))
    out_h = int(math.floor(target_rect.height))
    output = np.zeros((out_h, out_w, 4), dtype=np.uint8)
    if out_w == 0 or out_h == 0:
        return PixelBuffer(output)

    dy, dx = np.mgrid[0:out_h, 0:out_w].astype(np.float64)
    sx, sy = homography.apply_many(target_rect.x + dx, target_rect.y + dy)

    # Round half up, matching the reference sampler
    with np.errstate(invalid="ignore"):
        src_x = np.floor(sx + 0.5)
        src_y = np.floor(sy + 0.5)
        inside = (
            np.isfinite(src_x) & np.isfinite(src_y)
            & (src_x >= 0) & (src_x < buffer.width)
            & (src_y >= 0) & (src_y < buffer.height)
        )

    ix = src_x[inside].astype(np.intp)
    iy = src_y[inside].astype(np.intp)
    output[inside] = buffer.pixels[iy, ix]
    return PixelBuffer(output)


def rectify_region(
    buffer: PixelBuffer,
    source_corners: CornerSet,
    ideal_corners: CornerSet,
    target_rect: Rectangle
) -> PixelBuffer:
    """
    Cut a template rectangle out of a scanned page, undoing skew and scale.

    Args:
        buffer: Scanned page
        source_corners: Corner marks found on the scan
        ideal_corners: Corner marks as positioned on the template
        target_rect: Region in template coordinates

    Returns:
        Rectified RGBA buffer of the target rectangle's size

    Raises:
        DegenerateHomographyError: If either corner set is degenerate
    """
    homography = solve_homography(ideal_corners, source_corners)
    return warp_with_homography(buffer, homography, target_rect)
