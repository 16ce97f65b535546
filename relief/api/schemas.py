"""
JSON schemas for the Relief grid API.

These schemas define the JSON contracts between the tile grid and a
UI/input layer: the requests it may send (init, add, clear) and the
status it gets back.
"""

from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field, asdict


@dataclass
class GridRequest:
    """Request to (re)initialise the grid around a location."""
    lat: float = 0.0
    lon: float = 0.0
    zoom: int = 10
    grid_dimension: int = 3


@dataclass
class AddTileRequest:
    """Request to add the tile under a world position (e.g. a double click)."""
    world_x: float = 0.0
    world_y: float = 0.0


@dataclass
class TileSchema:
    """Single tile status."""
    key: str = ""
    z: int = 0
    x: int = 0
    y: int = 0
    state: str = "empty"  # "empty", "fetching", "decoded", "geometry_built", "positioned", "failed"
    position: Optional[List[float]] = None  # [x, y, z] world units
    seam_x: bool = False
    seam_y: bool = False
    vertex_count: int = 0
    min_elevation: Optional[float] = None
    max_elevation: Optional[float] = None
    error_message: Optional[str] = None


@dataclass
class GridStatus:
    """Whole-grid status."""
    anchor: Optional[str] = None
    zoom: int = 0
    grid_dimension: int = 0
    generation: int = 0
    tiles: List[TileSchema] = field(default_factory=list)
    total_count: int = 0
    ready_count: int = 0
    failed_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class APIError:
    """API error response."""
    error: str = ""
    code: str = "unknown_error"
    details: Optional[Dict[str, Any]] = None


# Helper functions for conversion

def tile_to_schema(tile) -> TileSchema:
    """Convert internal Tile object to schema."""
    schema = TileSchema(
        key=tile.key,
        z=int(tile.index.z),
        x=int(tile.index.x),
        y=int(tile.index.y),
        state=tile.state.value,
        seam_x=bool(tile.seam_x),
        seam_y=bool(tile.seam_y),
    )
    if tile.position is not None:
        schema.position = [float(v) for v in tile.position]
    if tile.geometry is not None:
        schema.vertex_count = tile.geometry.vertex_count
    if tile.elevation is not None:
        schema.min_elevation = tile.elevation.min_elevation
        schema.max_elevation = tile.elevation.max_elevation
    if tile.error is not None:
        schema.error_message = str(tile.error)
    return schema


def grid_to_status(grid) -> GridStatus:
    """Convert a TileGrid to a status snapshot."""
    tiles = sorted(grid.tiles, key=lambda t: (t.index.x, t.index.y))
    return GridStatus(
        anchor=grid.anchor.key() if grid.anchor is not None else None,
        zoom=int(grid.zoom),
        grid_dimension=int(grid.grid_dimension),
        generation=int(grid.generation),
        tiles=[tile_to_schema(t) for t in tiles],
        total_count=len(tiles),
        ready_count=sum(1 for t in tiles if t.is_ready),
        failed_count=sum(1 for t in tiles if t.failed),
    )
