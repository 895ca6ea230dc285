"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from restaurant_pos.core.config import get_settings, Settings, EnvironmentMode, setup_logging
from restaurant_pos.core.exceptions import (
    POSError,
    NotFoundError,
    ConflictError,
    BusinessRuleError,
    PermissionDeniedError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "setup_logging",
    "POSError",
    "NotFoundError",
    "ConflictError",
    "BusinessRuleError",
    "PermissionDeniedError",
]
