"""
Services layer for form registration.

This package provides the high-level detect-then-dewarp workflow.
"""

from .corner_cache import CornerCache
from .registration_service import RegistrationResult, RegistrationService

__all__ = ['CornerCache', 'RegistrationResult', 'RegistrationService']
