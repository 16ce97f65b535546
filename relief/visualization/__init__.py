"""
Visualization tools for terrain tiles.

This module provides:
    - A matplotlib-backed Renderer for the tile grid
    - Static plots of elevation grids, tile meshes and seam profiles
"""

from relief.visualization.plotting import (
    tile_surface,
    plot_tile_mesh,
    plot_terrain,
    plot_elevation,
    plot_seam_profile,
)
from relief.visualization.renderer import MatplotlibRenderer

__all__ = [
    "tile_surface",
    "plot_tile_mesh",
    "plot_terrain",
    "plot_elevation",
    "plot_seam_profile",
    "MatplotlibRenderer",
]
