"""
Core utilities for the gallery harvester.

This module contains shared utilities used across all components:
- Configuration management
- Structured logging
- Error logging and tracking
"""

from galleryharvest.core.logging import get_logger, setup_logging, init_harvest_logging
from galleryharvest.core.config import Config, HarvestSettings
from galleryharvest.core.error_logger import get_error_logger, ErrorLogger
from galleryharvest.core.error_models import (
    ErrorComponent,
    ErrorSeverity,
    ErrorType,
    ErrorStage,
    ErrorRecord,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "init_harvest_logging",
    "Config",
    "HarvestSettings",
    "get_error_logger",
    "ErrorLogger",
    "ErrorComponent",
    "ErrorSeverity",
    "ErrorType",
    "ErrorStage",
    "ErrorRecord",
]
