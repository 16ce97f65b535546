#!/usr/bin/env python3
"""
Demo script for the Relief terrain tile grid.

This script demonstrates:
1. Building a grid of elevation tiles around a location
2. Stitching the seams between neighbouring tiles
3. Rendering the stitched terrain with matplotlib

Tiles come from the public terrarium endpoint, or from the offline
synthetic source with --synthetic. Outputs are saved to outputs/terrain.png
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

from relief.api import grid_to_status
from relief.config import load_config
from relief.core import TileGrid
from relief.dem import HttpRasterSource, SyntheticRasterSource
from relief.visualization import MatplotlibRenderer


async def run_grid(config, synthetic_mode, renderer):
    """
    Initialise a grid from the configuration and return it.

    Args:
        config: ReliefConfig with location and grid settings
        synthetic_mode: Terrain mode for the offline source, or None for HTTP
        renderer: Renderer receiving the positioned tiles
    """
    if synthetic_mode is not None:
        source = SyntheticRasterSource(mode=synthetic_mode)
        grid = TileGrid(source, renderer, config.grid, config.source, config.material)
        await grid.init(config.geo_location)
        return grid

    async with HttpRasterSource(config.source) as source:
        grid = TileGrid(source, renderer, config.grid, config.source, config.material)
        await grid.init(config.geo_location)
        return grid


def main():
    """Main demo entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Relief terrain tile grid demo')
    parser.add_argument('--lat', type=float, default=None,
                        help='Latitude of the centre tile (default: from config)')
    parser.add_argument('--lon', type=float, default=None,
                        help='Longitude of the centre tile (default: from config)')
    parser.add_argument('--zoom', type=int, default=None,
                        help='Tile zoom level')
    parser.add_argument('--tiles', type=int, default=None,
                        help='Tiles per grid side')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML or JSON configuration file')
    parser.add_argument('--synthetic', choices=['hills', 'ridge', 'flat', 'valley', 'random'],
                        default=None, help='Use offline synthetic tiles instead of HTTP')
    parser.add_argument('--output', type=str, default='outputs/terrain.png',
                        help='Rendered PNG path')
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    config = load_config(args.config)
    lat, lon = config.geo_location
    if args.lat is not None:
        lat = args.lat
    if args.lon is not None:
        lon = args.lon
    config.geo_location = (lat, lon)
    if args.zoom is not None:
        config.grid.zoom = args.zoom
    if args.tiles is not None:
        config.grid.grid_dimension = args.tiles

    print("Relief Terrain Demo")
    print("=" * 60)
    print(f"Location: lat={lat:.5f}, lon={lon:.5f}")
    print(f"Grid: {config.grid.grid_dimension}x{config.grid.grid_dimension} tiles at zoom {config.grid.zoom}")
    print(f"Source: {'synthetic (' + args.synthetic + ')' if args.synthetic else config.source.elevation_base_url}")

    renderer = MatplotlibRenderer()
    try:
        grid = asyncio.run(run_grid(config, args.synthetic, renderer))
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    status = grid_to_status(grid)
    print("\nGrid status:")
    print(json.dumps(status.to_dict(), indent=2))

    if status.ready_count == 0:
        print("No tiles could be loaded.")
        sys.exit(1)

    output = renderer.save(
        Path(args.output),
        title=f"Relief at ({lat:.3f}, {lon:.3f}), zoom {config.grid.zoom}",
    )
    print(f"\nSaved: {output}")
    print(f"Tiles ready: {status.ready_count}/{status.total_count}")


if __name__ == '__main__':
    main()
