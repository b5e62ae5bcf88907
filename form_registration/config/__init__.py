"""Configuration module for form registration."""

from .config_loader import get_config, reload_config, get_value

__all__ = ['get_config', 'reload_config', 'get_value']
