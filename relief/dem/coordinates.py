"""
Coordinate system transformations for elevation tiles.

This module provides tools for converting between geographic coordinates
(lat, lon), fractional and integer Web-Mercator tile indices, and world
positions anchored to a chosen center tile. It also builds the raster
URLs for a tile.
"""

from typing import List, NamedTuple, Optional
import math


class TileIndex(NamedTuple):
    """
    Integer tile coordinates in the XYZ quad-tree scheme.

    Immutable and hashable; used directly as the tile cache key.

    Example:
        >>> TileIndex(10, 531, 364).key()
        '10/531/364'
    """
    z: int
    x: int
    y: int

    def key(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"

    @classmethod
    def from_key(cls, key: str) -> "TileIndex":
        """Parse a "{z}/{x}/{y}" key."""
        parts = key.strip("/").split("/")
        if len(parts) != 3:
            raise ValueError(f"Invalid tile key: {key!r}")
        z, x, y = (int(p) for p in parts)
        return cls(z, x, y)

    def neighbor_x(self) -> "TileIndex":
        """Adjacent tile in +x (east)."""
        return TileIndex(self.z, self.x + 1, self.y)

    def neighbor_y(self) -> "TileIndex":
        """Adjacent tile in +y (south)."""
        return TileIndex(self.z, self.x, self.y + 1)

    def children(self) -> List["TileIndex"]:
        """The four tiles covering this one at the next zoom level."""
        z, x, y = self.z + 1, self.x * 2, self.y * 2
        return [
            TileIndex(z, x, y),
            TileIndex(z, x, y + 1),
            TileIndex(z, x + 1, y),
            TileIndex(z, x + 1, y + 1),
        ]


class FractionalTileIndex(NamedTuple):
    """A point in tile space, not necessarily on a tile corner."""
    x: float
    y: float


class WorldPosition(NamedTuple):
    """Position in world units relative to the grid anchor."""
    x: float
    y: float
    z: float = 0.0


def _frac(value: float) -> float:
    # Truncating remainder: keeps the sign of negative inputs.
    return math.fmod(value, 1.0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def long_to_tile_x(lon: float, zoom: int) -> float:
    """Fractional tile x for a longitude in degrees."""
    return (lon + 180) / 360 * 2 ** zoom


def lat_to_tile_y(lat: float, zoom: int) -> float:
    """Fractional tile y for a latitude in degrees (Web Mercator)."""
    lat_rad = lat * math.pi / 180
    return (1 - math.log(math.tan(lat_rad) + 1 / math.cos(lat_rad)) / math.pi) / 2 * 2 ** zoom


def geo_to_fractional_tile(lat: float, lon: float, zoom: int) -> FractionalTileIndex:
    """Fractional tile coordinates for a geographic location."""
    return FractionalTileIndex(long_to_tile_x(lon, zoom), lat_to_tile_y(lat, zoom))


def geo_to_tile_index(lat: float, lon: float, zoom: int) -> TileIndex:
    """
    Integer tile containing a geographic location.

    Args:
        lat: Latitude in degrees
        lon: Longitude in degrees
        zoom: Zoom level (>= 0)

    Returns:
        TileIndex with x and y in [0, 2**zoom)

    Example:
        >>> index = geo_to_tile_index(45.8326, 6.8652, 10)
        >>> print(f"Tile: {index.key()}")
    """
    max_tile = 2 ** zoom
    frac_tile = geo_to_fractional_tile(lat, lon, zoom)
    x = abs(int(math.fmod(math.floor(frac_tile.x), max_tile)))
    y = abs(int(math.fmod(math.floor(frac_tile.y), max_tile)))
    return TileIndex(zoom, x, y)


def tile_to_world_position(
    zoom: int,
    x: float,
    y: float,
    anchor,
    tile_size: float,
) -> WorldPosition:
    """
    World position of a tile relative to the grid anchor.

    Args:
        zoom: Zoom level of the tile
        x: Tile x index
        y: Tile y index
        anchor: Anchor tile (any object with x and y)
        tile_size: Tile edge length in world units

    Returns:
        WorldPosition; world y grows northwards, so it decreases with tile y.
    """
    scale = 2 ** (10 - zoom)
    offset_x = anchor.x / scale
    offset_y = anchor.y / scale
    return WorldPosition(
        (x - anchor.x - _frac(offset_x) + _frac(anchor.x)) * tile_size,
        (-y + anchor.y + _frac(offset_y) - _frac(anchor.y)) * tile_size,
        0.0,
    )


def world_position_to_tile_index(
    zoom: int,
    world_x: float,
    world_y: float,
    anchor,
    tile_size: float,
) -> TileIndex:
    """
    Tile under a world position, rounded to the nearest tile.

    Approximate inverse of tile_to_world_position; exact for positions
    produced by it.
    """
    anchor_position = tile_to_world_position(zoom, anchor.x, anchor.y, anchor, tile_size)
    delta_x = _round_half_up((world_x - anchor_position.x) / tile_size)
    delta_y = _round_half_up(-(world_y - anchor_position.y) / tile_size)
    return TileIndex(zoom, int(anchor.x + delta_x), int(anchor.y + delta_y))


def elevation_url(base_url: str, index: TileIndex) -> str:
    """Terrarium elevation PNG for a tile."""
    return f"{base_url}/{index.z}/{index.x}/{index.y}.png"


def osm_url(base_url: str, index: TileIndex) -> str:
    """OpenStreetMap basemap tile."""
    return f"{base_url}/{index.z}/{index.x}/{index.y}.png"


def mapbox_url(base_url: str, index: TileIndex, token: Optional[str]) -> str:
    """Mapbox satellite tile (retina, JPEG quality 80)."""
    return f"{base_url}/{index.z}/{index.x}/{index.y}@2x.jpg80?access_token={token}"


def overlay_urls(base_url: str, index: TileIndex, token: Optional[str]) -> List[str]:
    """Satellite tiles for the four children of a tile, in children() order."""
    return [mapbox_url(base_url, child, token) for child in index.children()]
