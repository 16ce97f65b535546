"""
Synthetic elevation tiles for testing and development.

This module provides synthetic terrain generators and an offline
RasterSource that serves them as terrarium-encoded pixel buffers, so the
tile grid can run without network access.
"""

from typing import Iterable, Optional
import asyncio
import re
import numpy as np

from relief.dem.coordinates import TileIndex
from relief.dem.decoder import PixelBuffer, encode_elevation
from relief.errors import RetrievalError


_TILE_PATH_RE = re.compile(r"/(\d+)/(-?\d+)/(-?\d+)(?:@2x)?\.\w+")


def generate_synthetic_dem(
    height: int = 256,
    width: int = 256,
    mode: str = 'hills',
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate a synthetic DEM for testing.

    Creates terrain with predictable features, heights relative to zero.

    Args:
        height: Number of rows.
        width: Number of columns.
        mode: Type of terrain:
            - 'hills': Multiple Gaussian hills (default)
            - 'ridge': Central diagonal ridge
            - 'flat': Flat terrain (all zeros)
            - 'valley': Valley in the center
        seed: Random seed for reproducibility.

    Returns:
        dem: float32 array (H, W) of terrain heights.

    Example:
        >>> dem = generate_synthetic_dem(256, 256, mode='hills', seed=42)
        >>> print(f"Height range: [{dem.min():.1f}, {dem.max():.1f}]")
    """
    rng = np.random.default_rng(seed)

    y, x = np.mgrid[0:height, 0:width].astype(np.float32)

    if mode == 'flat':
        dem = np.zeros((height, width), dtype=np.float32)

    elif mode == 'hills':
        dem = np.zeros((height, width), dtype=np.float32)
        num_hills = 5
        for _ in range(num_hills):
            cx = rng.uniform(0.2 * width, 0.8 * width)
            cy = rng.uniform(0.2 * height, 0.8 * height)
            sigma = rng.uniform(0.1, 0.3) * width
            amplitude = rng.uniform(10, 50)
            dem += amplitude * np.exp(-((x - cx)**2 + (y - cy)**2) / (2 * sigma**2))

    elif mode == 'ridge':
        ridge_dir = np.array([1, 1]) / np.sqrt(2)
        center = np.array([width / 2, height / 2])
        dist = np.abs((x - center[0]) * ridge_dir[1] - (y - center[1]) * ridge_dir[0])
        dem = 40.0 * np.exp(-dist**2 / (2 * (0.15 * width)**2))
        dem += 5 * rng.standard_normal((height, width)).astype(np.float32)
        dem = np.maximum(dem, 0)

    elif mode == 'valley':
        cx, cy = width / 2, height / 2
        dist = np.sqrt((x - cx)**2 + (y - cy)**2)
        dem = 0.1 * dist
        dem = np.minimum(dem, 50)

    else:
        raise ValueError(f"Unknown DEM mode: {mode}. Choose from: 'hills', 'ridge', 'flat', 'valley'")

    return dem.astype(np.float32)


def generate_random_dem(
    height: int = 256,
    width: int = 256,
    seed: Optional[int] = None,
    num_octaves: int = 4,
    persistence: float = 0.5,
    scale: float = 50.0,
    height_range: float = 60.0,
) -> np.ndarray:
    """
    Generate random terrain using multi-octave noise (Perlin-like).

    Args:
        height: Number of rows.
        width: Number of columns.
        seed: Random seed for reproducibility.
        num_octaves: Number of noise layers (more = more detail).
        persistence: Amplitude decay per octave (0-1).
        scale: Base scale of features (larger = smoother).
        height_range: Maximum terrain height.

    Returns:
        dem: float32 array (H, W) of terrain heights in [0, height_range].
    """
    from scipy.ndimage import zoom

    rng = np.random.default_rng(seed)

    dem = np.zeros((height, width), dtype=np.float32)

    for octave in range(num_octaves):
        freq = 2 ** octave
        amp = persistence ** octave

        noise_h = max(2, int(height // (scale / freq)))
        noise_w = max(2, int(width // (scale / freq)))

        noise = rng.standard_normal((noise_h + 2, noise_w + 2)).astype(np.float32)
        zoomed = zoom(noise, (height / noise.shape[0], width / noise.shape[1]), order=3)
        zoomed = zoomed[:height, :width]

        dem += amp * zoomed * 20

    dem = dem - dem.min()
    dem = dem / (dem.max() + 1e-8) * height_range

    return dem.astype(np.float32)


def parse_tile_url(url: str) -> TileIndex:
    """Extract the tile index from a "/{z}/{x}/{y}.ext" URL."""
    match = _TILE_PATH_RE.search(url)
    if match is None:
        raise ValueError(f"No tile coordinates in URL: {url}")
    z, x, y = (int(g) for g in match.groups())
    return TileIndex(z, x, y)


class SyntheticRasterSource:
    """
    Offline RasterSource producing terrarium tiles from synthetic terrain.

    Each tile is seeded from its own index, so the same URL always yields
    the same pixels.

    Args:
        mode: Terrain mode for generate_synthetic_dem, or 'random'
        tile_pixels: Raster width and height
        base_elevation: Metres added to every sample
        height_scale: Factor applied to the generated heights
        missing: Tile indices that fail with RetrievalError
    """

    def __init__(
        self,
        mode: str = 'hills',
        tile_pixels: int = 256,
        base_elevation: float = 500.0,
        height_scale: float = 20.0,
        missing: Optional[Iterable[TileIndex]] = None,
    ):
        self.mode = mode
        self.tile_pixels = tile_pixels
        self.base_elevation = base_elevation
        self.height_scale = height_scale
        self.missing = set(missing or ())
        self.requests = []

    def render(self, index: TileIndex) -> np.ndarray:
        """Elevation in metres for one tile."""
        seed = [index.z, index.x & 0xFFFFFFFF, index.y & 0xFFFFFFFF]
        size = self.tile_pixels
        if self.mode == 'random':
            dem = generate_random_dem(size, size, seed=seed)
        else:
            dem = generate_synthetic_dem(size, size, mode=self.mode, seed=seed)
        return self.base_elevation + self.height_scale * dem

    async def fetch(self, url: str) -> PixelBuffer:
        self.requests.append(url)
        # Yield like a real network fetch would.
        await asyncio.sleep(0)
        index = parse_tile_url(url)
        if index in self.missing:
            raise RetrievalError(url, "tile not available", status_code=404)
        return encode_elevation(self.render(index))
