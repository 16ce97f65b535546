"""
Matplotlib implementation of the tile grid's Renderer.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union
import logging

import matplotlib.pyplot as plt

from relief.core.tile import Tile
from relief.dem.coordinates import TileIndex
from relief.visualization.plotting import plot_terrain

logger = logging.getLogger(__name__)


class MatplotlibRenderer:
    """
    Keeps the tiles a grid has displayed and draws them on demand.

    Tiles are held by reference, so seam corrections made after add() show
    up in the next draw().
    """

    def __init__(self, stride: int = 4):
        self.stride = stride
        self.meshes: Dict[TileIndex, Tile] = {}
        self.disposed: List[TileIndex] = []

    def add(self, tile: Tile) -> None:
        self.meshes[tile.index] = tile

    def dispose(self, tile: Tile) -> None:
        self.meshes.pop(tile.index, None)
        self.disposed.append(tile.index)

    def draw(self, ax=None, title: Optional[str] = None):
        """Draw every displayed tile; returns the 3D axes."""
        return plot_terrain(self.meshes.values(), ax=ax, stride=self.stride, title=title)

    def save(self, path: Union[str, Path], dpi: int = 150, title: Optional[str] = None) -> Path:
        """Draw into a new figure and save it."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        fig = plt.figure(figsize=(10, 8))
        ax = fig.add_subplot(projection='3d')
        self.draw(ax=ax, title=title)
        fig.savefig(path, dpi=dpi, bbox_inches='tight')
        plt.close(fig)

        logger.info("Saved %d tiles to %s", len(self.meshes), path)
        return path
