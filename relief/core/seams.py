"""
Seam stitching between adjacent tiles.

Tiles are meshed independently from nearest-neighbour samples, so two
tiles rarely agree on the heights along their shared edge. Stitching copies
the neighbour's first row (or column) into this tile's last row (or column)
so the boundary vertices match exactly.
"""

from typing import Mapping, Optional
import logging
import math

from relief.core.tile import Tile
from relief.dem.coordinates import TileIndex
from relief.errors import ShapeMismatchError

logger = logging.getLogger(__name__)


def _grid_side(tile: Tile) -> int:
    if tile.geometry is None:
        raise ShapeMismatchError(f"Tile {tile.key} has no geometry")
    count = tile.geometry.vertex_count
    side = math.isqrt(count)
    if side * side != count or side < 2:
        raise ShapeMismatchError(f"Tile {tile.key} has a non-square vertex grid ({count} vertices)")
    return side


def check_seam_compatible(tile: Tile, neighbor: Tile) -> int:
    """
    Vertex grid side shared by two tiles.

    Raises:
        ShapeMismatchError: If either tile lacks a square grid or the sides differ
    """
    n = _grid_side(tile)
    n_neighbor = _grid_side(neighbor)
    if n != n_neighbor:
        raise ShapeMismatchError(
            f"Cannot stitch {tile.key} ({n}x{n}) to {neighbor.key} ({n_neighbor}x{n_neighbor})"
        )
    return n


def resolve_seam_y(tile: Tile, neighbor: Tile, update_normals: bool = True) -> bool:
    """
    Copy the +y neighbour's first row into the tile's last row.

    Args:
        tile: Tile to correct
        neighbor: Tile directly south (y + 1)
        update_normals: Recompute the tile's normals after the copy

    Returns:
        True if the tile was stitched, False if it was already stitched or
        the grids are incompatible (logged, nothing mutated)
    """
    if tile.seam_y:
        return False
    try:
        n = check_seam_compatible(tile, neighbor)
    except ShapeMismatchError as exc:
        logger.error("resolve_seam_y skipped: %s", exc)
        return False

    total = n * n
    tile.geometry.z[total - n:total] = neighbor.geometry.z[0:n]
    tile.seam_y = True
    if update_normals:
        tile.geometry.compute_vertex_normals()
    return True


def resolve_seam_x(tile: Tile, neighbor: Tile, update_normals: bool = True) -> bool:
    """
    Copy the +x neighbour's first column into the tile's last column.

    Args:
        tile: Tile to correct
        neighbor: Tile directly east (x + 1)
        update_normals: Recompute the tile's normals after the copy

    Returns:
        True if the tile was stitched, False otherwise (see resolve_seam_y)
    """
    if tile.seam_x:
        return False
    try:
        n = check_seam_compatible(tile, neighbor)
    except ShapeMismatchError as exc:
        logger.error("resolve_seam_x skipped: %s", exc)
        return False

    total = n * n
    # Vertex i in the last column maps to i - n + 1 in the neighbour.
    tile.geometry.z[n - 1:total:n] = neighbor.geometry.z[0:total:n]
    tile.seam_x = True
    if update_normals:
        tile.geometry.compute_vertex_normals()
    return True


def resolve_seams(tile: Tile, cache: Mapping[TileIndex, Tile]) -> bool:
    """
    Stitch a tile against whichever of its +x / +y neighbours are ready.

    Normals are recomputed once if anything changed.

    Returns:
        True if either seam was stitched
    """
    if not tile.is_ready:
        return False

    worked = False
    neighbor_y: Optional[Tile] = cache.get(tile.index.neighbor_y())
    neighbor_x: Optional[Tile] = cache.get(tile.index.neighbor_x())

    if not tile.seam_y and neighbor_y is not None and neighbor_y.is_ready:
        worked = resolve_seam_y(tile, neighbor_y, update_normals=False) or worked
    if not tile.seam_x and neighbor_x is not None and neighbor_x.is_ready:
        worked = resolve_seam_x(tile, neighbor_x, update_normals=False) or worked

    if worked:
        tile.geometry.compute_vertex_normals()
        logger.debug("Stitched %s (seam_x=%s, seam_y=%s)", tile.key, tile.seam_x, tile.seam_y)
    return worked
