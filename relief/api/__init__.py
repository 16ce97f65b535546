"""
API schemas for frontend integration.

This module provides the JSON contracts between the tile grid and a
UI/input layer.
"""

from relief.api.schemas import (
    # Requests
    GridRequest,
    AddTileRequest,
    # Status
    TileSchema,
    GridStatus,
    APIError,
    # Conversion
    tile_to_schema,
    grid_to_status,
)

__all__ = [
    "GridRequest",
    "AddTileRequest",
    "TileSchema",
    "GridStatus",
    "APIError",
    "tile_to_schema",
    "grid_to_status",
]
