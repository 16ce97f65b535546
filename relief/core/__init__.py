"""
Core terrain pipeline.

This module provides:
    - Height-field mesh construction from elevation grids
    - The Tile aggregate and its state machine
    - Seam stitching between adjacent tiles
    - TileGrid, the orchestrator behind init / add_from_position / clear
"""

from relief.core.mesh import HeightFieldGeometry, build_height_field, vertices_per_side
from relief.core.tile import Tile, TileState
from relief.core.seams import resolve_seam_x, resolve_seam_y, resolve_seams
from relief.core.grid import TileGrid, Renderer, NullRenderer

__all__ = [
    "HeightFieldGeometry",
    "build_height_field",
    "vertices_per_side",
    "Tile",
    "TileState",
    "resolve_seam_x",
    "resolve_seam_y",
    "resolve_seams",
    "TileGrid",
    "Renderer",
    "NullRenderer",
]
