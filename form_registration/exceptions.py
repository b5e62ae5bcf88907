"""
Error taxonomy for form registration.

Absence of marks or regions is normally reported as ``None`` by the
detection functions. These exceptions exist for the cases that must be
distinguished from plain absence, and for callers that prefer raising.
"""


class RegistrationError(Exception):
    """Base class for all registration errors."""

    reason = "registration_error"


class FiducialsNotFoundError(RegistrationError):
    """No complete set of four corner marks could be located."""

    reason = "fiducials_not_found"


class DegenerateHomographyError(RegistrationError):
    """Corner points are coincident, collinear or otherwise unsolvable."""

    reason = "degenerate_homography"


class ImageDecodeError(RegistrationError):
    """Image bytes or file could not be decoded into pixels."""

    reason = "image_decode_error"
