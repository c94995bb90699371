"""Utilities for codestate."""

from .config_manager import ConfigError, ConfigManager
from .logging_config import setup_logging

__all__ = [
    'ConfigError',
    'ConfigManager',
    'setup_logging',
]
