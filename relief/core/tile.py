"""
Terrain tile aggregate.

A Tile owns the decoded elevation, the built geometry and the seam flags
for one tile index, and walks a forward-only state machine:

    EMPTY -> FETCHING -> DECODED -> GEOMETRY_BUILT -> POSITIONED

Any state before POSITIONED may drop to FAILED instead.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from relief.config.settings import (
    DEFAULT_TILE_SIZE,
    DEFAULT_VERTICAL_EXAGGERATION,
    MaterialConfig,
)
from relief.core.mesh import HeightFieldGeometry, build_height_field
from relief.dem.coordinates import (
    TileIndex,
    WorldPosition,
    elevation_url,
    osm_url,
    overlay_urls,
    tile_to_world_position,
)
from relief.dem.decoder import ElevationGrid, PixelBuffer, decode_elevation


class TileState(Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    DECODED = "decoded"
    GEOMETRY_BUILT = "geometry_built"
    POSITIONED = "positioned"
    FAILED = "failed"


_ORDER = [
    TileState.EMPTY,
    TileState.FETCHING,
    TileState.DECODED,
    TileState.GEOMETRY_BUILT,
    TileState.POSITIONED,
]


@dataclass(eq=False)
class Tile:
    """
    One unit of the terrain grid.

    Attributes:
        index: Tile coordinates (zoom, x, y)
        size: Edge length in world units
        material: Display material, passed explicitly per tile
        elevation: Decoded elevation grid, set once
        geometry: Vertex grid, set once and then only seam-corrected
        position: World position relative to the grid anchor
        seam_x: Last column already copied from the +x neighbour
        seam_y: Last row already copied from the +y neighbour
        state: Pipeline state
        error: Error that failed the tile, if any
    """
    index: TileIndex
    size: float = DEFAULT_TILE_SIZE
    material: MaterialConfig = field(default_factory=MaterialConfig)
    elevation: Optional[ElevationGrid] = None
    geometry: Optional[HeightFieldGeometry] = None
    position: Optional[WorldPosition] = None
    seam_x: bool = False
    seam_y: bool = False
    state: TileState = TileState.EMPTY
    error: Optional[Exception] = None

    def __repr__(self) -> str:
        return f"Tile({self.key}, state={self.state.value}, seam_x={self.seam_x}, seam_y={self.seam_y})"

    @property
    def key(self) -> str:
        return self.index.key()

    @property
    def is_ready(self) -> bool:
        """Geometry built and positioned, so seams may be resolved."""
        return self.state is TileState.POSITIONED and self.geometry is not None

    @property
    def failed(self) -> bool:
        return self.state is TileState.FAILED

    def _advance(self, new_state: TileState) -> None:
        if self.state is TileState.FAILED:
            raise RuntimeError(f"Tile {self.key} has failed and cannot move to {new_state.value}")
        if new_state is TileState.FAILED:
            if self.state is TileState.POSITIONED:
                raise RuntimeError(f"Tile {self.key} is already positioned")
        elif _ORDER.index(new_state) != _ORDER.index(self.state) + 1:
            raise RuntimeError(
                f"Tile {self.key} cannot move from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    def start_fetch(self) -> None:
        self._advance(TileState.FETCHING)

    def decode(self, pixels: PixelBuffer) -> ElevationGrid:
        """Decode the fetched raster into the tile's elevation grid."""
        elevation = decode_elevation(pixels)
        self.elevation = elevation
        self._advance(TileState.DECODED)
        return elevation

    def build_geometry(
        self,
        vertical_exaggeration: float = DEFAULT_VERTICAL_EXAGGERATION,
    ) -> HeightFieldGeometry:
        if self.elevation is None:
            raise RuntimeError(f"Tile {self.key} has no elevation to build from")
        geometry = build_height_field(self.elevation, self.size, vertical_exaggeration)
        self.geometry = geometry
        self._advance(TileState.GEOMETRY_BUILT)
        return geometry

    def set_position(self, anchor) -> WorldPosition:
        """Place the tile relative to the grid anchor."""
        position = tile_to_world_position(
            self.index.z, self.index.x, self.index.y, anchor, self.size
        )
        self.position = position
        self._advance(TileState.POSITIONED)
        return position

    def fail(self, error: Exception) -> None:
        self.error = error
        self._advance(TileState.FAILED)

    def dispose(self) -> None:
        """Release geometry; the tile keeps its index and flags."""
        if self.geometry is not None:
            self.geometry.dispose()
        self.geometry = None

    def url(self, base_url: str) -> str:
        return elevation_url(base_url, self.index)

    def osm_url(self, base_url: str) -> str:
        return osm_url(base_url, self.index)

    def overlay_urls(self, base_url: str, token: Optional[str]) -> List[str]:
        return overlay_urls(base_url, self.index, token)
