"""
Height-field mesh construction.

This module turns a decoded elevation grid into a regular vertex grid
displaced along z, with triangle indices and area-weighted vertex normals.
The grid is laid out like a planar subdivision centred on the origin: row 0
is the northern edge (y = +size/2) and columns run west to east.
"""

from dataclasses import dataclass, field
from typing import Optional
import math
import numpy as np

from relief.config.settings import DEFAULT_TILE_SIZE, DEFAULT_VERTICAL_EXAGGERATION
from relief.dem.decoder import ElevationGrid
from relief.errors import InvalidElevationData


def _build_grid_triangles(n: int) -> np.ndarray:
    """Two triangles (a, b, d) and (b, c, d) per quad of an n x n grid."""
    iy, ix = np.mgrid[0:n - 1, 0:n - 1]
    a = (ix + n * iy).ravel()
    b = (ix + n * (iy + 1)).ravel()
    c = (ix + 1 + n * (iy + 1)).ravel()
    d = (ix + 1 + n * iy).ravel()
    first = np.stack([a, b, d], axis=1)
    second = np.stack([b, c, d], axis=1)
    # Interleave so each quad's triangles stay adjacent.
    return np.stack([first, second], axis=1).reshape(-1, 3).astype(np.uint32)


@dataclass(eq=False)
class HeightFieldGeometry:
    """
    Vertex grid of one terrain tile.

    Attributes:
        size: Edge length of the tile in world units
        n: Vertices per side
        positions: float32 array (n * n, 3)
        indices: uint32 array (2 * (n - 1)**2, 3) of triangle vertex indices
        normals: float32 array (n * n, 3), None until computed
    """
    size: float
    n: int
    positions: np.ndarray
    indices: np.ndarray
    normals: Optional[np.ndarray] = None
    disposed: bool = field(default=False, compare=False)

    @classmethod
    def plane(cls, size: float, segments: int) -> "HeightFieldGeometry":
        """Flat size x size grid with the given number of segments per side."""
        if segments < 1:
            raise ValueError(f"segments must be >= 1, got {segments}")
        n = segments + 1
        step = size / segments
        half = size / 2

        iy, ix = np.mgrid[0:n, 0:n]
        positions = np.zeros((n * n, 3), dtype=np.float32)
        positions[:, 0] = (ix * step - half).ravel()
        positions[:, 1] = -(iy * step - half).ravel()

        return cls(size=size, n=n, positions=positions, indices=_build_grid_triangles(n))

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def quad_count(self) -> int:
        return (self.n - 1) * (self.n - 1)

    @property
    def z(self) -> np.ndarray:
        """Writable view of the vertex heights."""
        return self.positions[:, 2]

    def get_z(self, i: int) -> float:
        return float(self.positions[i, 2])

    def set_z(self, i: int, value: float) -> None:
        self.positions[i, 2] = value

    def compute_vertex_normals(self) -> np.ndarray:
        """
        Recompute per-vertex normals from the current positions.

        Face normals are accumulated unnormalised (so larger faces weigh
        more) and each vertex sum is normalised afterwards.
        """
        pos = self.positions.astype(np.float64)
        tri = self.indices.astype(np.int64)

        pa, pb, pc = pos[tri[:, 0]], pos[tri[:, 1]], pos[tri[:, 2]]
        face_normals = np.cross(pc - pb, pa - pb)

        normals = np.zeros_like(pos)
        for k in range(3):
            np.add.at(normals, tri[:, k], face_normals)

        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        lengths[lengths == 0] = 1.0
        self.normals = (normals / lengths).astype(np.float32)
        return self.normals

    def dispose(self) -> None:
        """Release vertex data."""
        self.positions = np.zeros((0, 3), dtype=np.float32)
        self.indices = np.zeros((0, 3), dtype=np.uint32)
        self.normals = None
        self.disposed = True


def vertices_per_side(raster_width: int) -> int:
    """Vertex grid side for a raster: one vertex every two pixels, plus one."""
    return raster_width // 2 + 1


def build_height_field(
    elevation: ElevationGrid,
    size: float = DEFAULT_TILE_SIZE,
    vertical_exaggeration: float = DEFAULT_VERTICAL_EXAGGERATION,
) -> HeightFieldGeometry:
    """
    Build a displaced vertex grid from an elevation grid.

    Each vertex takes the nearest elevation sample, scaled by
    vertical_exaggeration. The last row and the last column of the grid are
    left at z = 0; seam stitching fills them from the neighbouring tiles.

    Args:
        elevation: Square elevation grid (width == height >= 2)
        size: Tile edge length in world units
        vertical_exaggeration: Metres to world-units factor

    Returns:
        HeightFieldGeometry with n * n vertices and normals computed

    Raises:
        InvalidElevationData: If the grid is not square or too small

    Example:
        >>> grid = ElevationGrid(4, 4, np.zeros(16, dtype=np.float32))
        >>> build_height_field(grid).n
        3
    """
    width, height = elevation.width, elevation.height
    if width < 2 or height < 2:
        raise InvalidElevationData(f"Elevation grid too small: {width} x {height}")
    if width != height:
        raise InvalidElevationData(f"Elevation grid must be square, got {width} x {height}")

    n = vertices_per_side(width)
    geometry = HeightFieldGeometry.plane(size, n - 1)

    n_elevation = math.sqrt(len(elevation))
    ratio = n_elevation / (n - 1)

    i = np.arange(n * n - n)
    i = i[i % n != n - 1]
    col = i // n
    row = i % n

    # Round half up, on doubles.
    sample_row = np.floor(col * ratio + 0.5)
    sample = np.floor(sample_row * n_elevation + row * ratio + 0.5).astype(np.int64)

    heights = elevation.values[sample].astype(np.float64) * vertical_exaggeration
    geometry.positions[i, 2] = heights.astype(np.float32)

    geometry.compute_vertex_normals()
    return geometry
