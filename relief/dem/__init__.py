"""
Elevation tile data: coordinates, decoding, retrieval and synthetic tiles.

This module provides tools for working with terrarium elevation tiles:
    - Converting between lat/lon, tile indices and world positions
    - Decoding terrarium pixel buffers into elevation grids
    - Fetching raster tiles over HTTP
    - Generating synthetic tiles for testing
"""

from relief.dem.coordinates import (
    TileIndex,
    FractionalTileIndex,
    WorldPosition,
    long_to_tile_x,
    lat_to_tile_y,
    geo_to_tile_index,
    tile_to_world_position,
    world_position_to_tile_index,
    elevation_url,
    mapbox_url,
    osm_url,
    overlay_urls,
)

from relief.dem.decoder import (
    PixelBuffer,
    ElevationGrid,
    decode_elevation,
    encode_elevation,
)

from relief.dem.loader import (
    RasterSource,
    HttpRasterSource,
    decode_image,
)

from relief.dem.synthetic import (
    generate_synthetic_dem,
    generate_random_dem,
    SyntheticRasterSource,
)

__all__ = [
    # Coordinates
    "TileIndex",
    "FractionalTileIndex",
    "WorldPosition",
    "long_to_tile_x",
    "lat_to_tile_y",
    "geo_to_tile_index",
    "tile_to_world_position",
    "world_position_to_tile_index",
    "elevation_url",
    "mapbox_url",
    "osm_url",
    "overlay_urls",
    # Decoding
    "PixelBuffer",
    "ElevationGrid",
    "decode_elevation",
    "encode_elevation",
    # Retrieval
    "RasterSource",
    "HttpRasterSource",
    "decode_image",
    # Synthetic
    "generate_synthetic_dem",
    "generate_random_dem",
    "SyntheticRasterSource",
]
