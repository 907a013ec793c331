"""
Core module initialization.
Exports configuration, logging utilities and the error hierarchy.
"""

from qrmenu.core.config import get_settings, Settings, EnvironmentMode
from qrmenu.core.exceptions import QRMenuError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "QRMenuError"]
