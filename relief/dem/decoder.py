"""
Terrarium elevation decoding.

Elevation tiles pack a signed height in metres into the RGB channels of a
PNG: ``height = R * 256 + G + B / 256 - 32768``. This module turns decoded
pixel buffers into elevation grids and back.
"""

from dataclasses import dataclass
from typing import Union
import numpy as np

from relief.errors import InvalidElevationData


TERRARIUM_OFFSET = 32768.0


@dataclass
class PixelBuffer:
    """
    Decoded raster image.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        data: uint8 array of shape (height, width, 4), row-major RGBA
    """
    width: int
    height: int
    data: np.ndarray

    @property
    def channels(self) -> int:
        if self.width <= 0 or self.height <= 0:
            return 0
        return int(np.asarray(self.data).size // (self.width * self.height))


@dataclass(frozen=True)
class ElevationGrid:
    """
    Row-major grid of elevations in metres.

    ``values`` is a flat, read-only float32 array of length width * height.
    """
    width: int
    height: int
    values: np.ndarray

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float32).reshape(-1)
        if values.size != self.width * self.height:
            raise InvalidElevationData(
                f"Elevation grid has {values.size} values, expected "
                f"{self.width} x {self.height}"
            )
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return int(self.values.size)

    def as_array(self) -> np.ndarray:
        """(height, width) view of the values."""
        return self.values.reshape(self.height, self.width)

    @property
    def min_elevation(self) -> float:
        return float(self.values.min())

    @property
    def max_elevation(self) -> float:
        return float(self.values.max())


def decode_elevation(pixels: PixelBuffer) -> ElevationGrid:
    """
    Decode a terrarium-encoded pixel buffer into an elevation grid.

    The alpha channel is ignored and out-of-range values are not rejected.

    Args:
        pixels: RGBA pixel buffer

    Returns:
        ElevationGrid with the same width and height

    Raises:
        InvalidElevationData: If a dimension is zero or the buffer size
            does not match width * height * 4

    Example:
        >>> data = np.array([[[128, 0, 0, 255]]], dtype=np.uint8)
        >>> decode_elevation(PixelBuffer(1, 1, data)).values[0]
        0.0
    """
    width, height = int(pixels.width), int(pixels.height)
    if width <= 0 or height <= 0:
        raise InvalidElevationData(f"Empty pixel buffer: {width} x {height}")

    data = np.asarray(pixels.data)
    if data.size != width * height * 4:
        raise InvalidElevationData(
            f"Pixel buffer holds {data.size} bytes, expected {width} x {height} x 4"
        )

    rgba = data.reshape(width * height, 4).astype(np.float64)
    elevation = rgba[:, 0] * 256.0 + rgba[:, 1] + rgba[:, 2] / 256.0 - TERRARIUM_OFFSET

    return ElevationGrid(width=width, height=height, values=elevation.astype(np.float32))


def encode_elevation(
    elevation: Union[np.ndarray, ElevationGrid],
    alpha: int = 255,
) -> PixelBuffer:
    """
    Pack elevations in metres into a terrarium RGBA pixel buffer.

    Heights are quantised to 1/256 m and clipped to the encodable range
    [-32768, 32768).

    Args:
        elevation: (height, width) array of metres, or an ElevationGrid
        alpha: Value for the alpha channel

    Returns:
        PixelBuffer that decode_elevation maps back to the quantised heights
    """
    if isinstance(elevation, ElevationGrid):
        elevation = elevation.as_array()
    elevation = np.asarray(elevation, dtype=np.float64)
    if elevation.ndim != 2:
        raise ValueError("elevation must be a 2D array")

    height, width = elevation.shape
    shifted = np.clip(elevation + TERRARIUM_OFFSET, 0.0, 65536.0 - 1.0 / 256.0)
    # Quantise first so that the three channels agree on one value.
    fixed = np.floor(shifted * 256.0).astype(np.int64)

    data = np.empty((height, width, 4), dtype=np.uint8)
    data[..., 0] = fixed >> 16
    data[..., 1] = (fixed >> 8) & 0xFF
    data[..., 2] = fixed & 0xFF
    data[..., 3] = alpha

    return PixelBuffer(width=width, height=height, data=data)
