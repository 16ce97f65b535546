"""
Static plotting functions for terrain tiles.

This module draws decoded elevation grids, positioned tile meshes and
seam profiles with matplotlib.
"""

from typing import Iterable, Optional, Tuple
import numpy as np
import matplotlib.pyplot as plt

from relief.core.tile import Tile
from relief.dem.decoder import ElevationGrid


def tile_surface(tile: Tile) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    World-space X, Y, Z arrays (n, n) for a positioned tile.

    Raises:
        ValueError: If the tile has no geometry
    """
    if tile.geometry is None:
        raise ValueError(f"Tile {tile.key} has no geometry")

    n = tile.geometry.n
    grid = tile.geometry.positions.reshape(n, n, 3).astype(np.float64)
    ox, oy, oz = tile.position if tile.position is not None else (0.0, 0.0, 0.0)
    return grid[..., 0] + ox, grid[..., 1] + oy, grid[..., 2] + oz


def plot_tile_mesh(ax, tile: Tile, stride: int = 4):
    """
    Draw one tile on 3D axes using the tile's material.

    Args:
        ax: Matplotlib 3D axes
        tile: Positioned tile
        stride: Row/column stride (higher = faster, coarser)

    Returns:
        The artist created by matplotlib
    """
    X, Y, Z = tile_surface(tile)
    material = tile.material

    if material.wireframe:
        return ax.plot_wireframe(
            X, Y, Z,
            rstride=stride, cstride=stride,
            color=material.color, linewidth=material.line_width,
        )
    return ax.plot_surface(
        X, Y, Z,
        rstride=stride, cstride=stride,
        cmap=material.cmap, linewidth=0, antialiased=False,
    )


def plot_terrain(
    tiles: Iterable[Tile],
    ax=None,
    stride: int = 4,
    title: Optional[str] = None,
):
    """
    Draw every tile that has geometry.

    Args:
        tiles: Tiles to draw; tiles without geometry are skipped
        ax: Matplotlib 3D axes (creates new figure if None)
        stride: Row/column stride
        title: Optional title

    Returns:
        Matplotlib 3D axes
    """
    if ax is None:
        fig = plt.figure(figsize=(10, 8))
        ax = fig.add_subplot(projection='3d')

    drawn = 0
    for tile in tiles:
        if tile.geometry is None:
            continue
        plot_tile_mesh(ax, tile, stride=stride)
        drawn += 1

    if title:
        ax.set_title(title, fontweight='bold')
    elif drawn:
        ax.set_title(f'{drawn} tiles', fontweight='bold')

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')

    return ax


def plot_elevation(
    elevation: ElevationGrid,
    ax: Optional[plt.Axes] = None,
    cmap: str = 'terrain',
    title: Optional[str] = None,
    show_colorbar: bool = True,
) -> plt.Axes:
    """
    Plot a decoded elevation grid.

    Args:
        elevation: Elevation grid in metres
        ax: Matplotlib axes (creates new figure if None)
        cmap: Colormap for terrain
        title: Optional title
        show_colorbar: Whether to show colorbar

    Returns:
        Matplotlib axes
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 8))

    im = ax.imshow(elevation.as_array(), cmap=cmap, origin='upper', aspect='equal')

    if title:
        ax.set_title(title, fontweight='bold')

    ax.set_xlabel('Column')
    ax.set_ylabel('Row')

    if show_colorbar:
        plt.colorbar(im, ax=ax, label='Elevation (m)', shrink=0.7)

    return ax


def plot_seam_profile(
    tile: Tile,
    neighbor: Tile,
    axis: str = 'x',
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """
    Compare the heights on both sides of a shared edge.

    For axis 'x' the tile's last column is plotted against the neighbour's
    first column; for 'y' the last row against the first row. After
    stitching the two lines coincide.
    """
    if tile.geometry is None or neighbor.geometry is None:
        raise ValueError("Both tiles need geometry")
    if axis not in ('x', 'y'):
        raise ValueError(f"axis must be 'x' or 'y', got {axis!r}")

    n = tile.geometry.n
    z = tile.geometry.z.reshape(n, n)
    zn = neighbor.geometry.z.reshape(neighbor.geometry.n, neighbor.geometry.n)
    if axis == 'x':
        edge, neighbor_edge = z[:, -1], zn[:, 0]
    else:
        edge, neighbor_edge = z[-1, :], zn[0, :]

    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    ax.plot(edge, label=f'{tile.key} (last {"column" if axis == "x" else "row"})')
    ax.plot(neighbor_edge, '--', label=f'{neighbor.key} (first {"column" if axis == "x" else "row"})')
    ax.set_xlabel('Vertex')
    ax.set_ylabel('Z')
    ax.set_title(f'Seam {axis.upper()}: {tile.key} / {neighbor.key}', fontweight='bold')
    ax.legend(fontsize=8)

    return ax
