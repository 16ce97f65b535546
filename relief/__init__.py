"""
Relief - seamless 3D terrain from elevation raster tiles.

This package turns terrarium elevation tiles into positioned height-field
meshes and stitches the seams between neighbouring tiles.

Main modules:
    - relief.dem: tile coordinates, terrarium decoding, raster retrieval
    - relief.core: height-field meshes, tiles, seam stitching, the tile grid
    - relief.visualization: matplotlib renderer and plots
    - relief.config: Configuration management
    - relief.api: JSON schemas for a UI/input layer

Quick start:
    >>> import asyncio
    >>> from relief import TileGrid, SyntheticRasterSource
    >>>
    >>> grid = TileGrid(SyntheticRasterSource())
    >>> tiles = asyncio.run(grid.init((45.8326, 6.8652), zoom=10, grid_dimension=3))
    >>> print(f"Ready: {len(tiles)} tiles")
"""

__version__ = "0.1.0"
__author__ = "Relief Team"

# Core exports
from relief.core.grid import TileGrid, NullRenderer
from relief.core.tile import Tile, TileState
from relief.core.mesh import HeightFieldGeometry, build_height_field
from relief.core.seams import resolve_seam_x, resolve_seam_y, resolve_seams

# DEM exports
from relief.dem.coordinates import (
    TileIndex,
    geo_to_tile_index,
    tile_to_world_position,
    world_position_to_tile_index,
)
from relief.dem.decoder import PixelBuffer, ElevationGrid, decode_elevation
from relief.dem.loader import HttpRasterSource
from relief.dem.synthetic import SyntheticRasterSource

# Errors
from relief.errors import ReliefError, RetrievalError, InvalidElevationData, ShapeMismatchError

# Config exports
from relief.config.settings import ReliefConfig

__all__ = [
    # Version
    "__version__",
    # Core
    "TileGrid",
    "NullRenderer",
    "Tile",
    "TileState",
    "HeightFieldGeometry",
    "build_height_field",
    "resolve_seam_x",
    "resolve_seam_y",
    "resolve_seams",
    # DEM
    "TileIndex",
    "geo_to_tile_index",
    "tile_to_world_position",
    "world_position_to_tile_index",
    "PixelBuffer",
    "ElevationGrid",
    "decode_elevation",
    "HttpRasterSource",
    "SyntheticRasterSource",
    # Errors
    "ReliefError",
    "RetrievalError",
    "InvalidElevationData",
    "ShapeMismatchError",
    # Config
    "ReliefConfig",
]
