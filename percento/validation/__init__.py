"""
Percento validation module.

This module provides configuration validation and schema enforcement.
"""

from percento.validation.config import Config, ConfigError, PercentoConfig

__all__ = ["Config", "ConfigError", "PercentoConfig"]
