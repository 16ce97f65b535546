"""
Configuration management for Relief.

This module provides dataclass-based configuration models for
type-safe configuration with validation.
"""

from relief.config.settings import (
    ReliefConfig,
    TileSourceConfig,
    GridConfig,
    MaterialConfig,
    load_config,
)

__all__ = [
    "ReliefConfig",
    "TileSourceConfig",
    "GridConfig",
    "MaterialConfig",
    "load_config",
]
