"""
Exception hierarchy for Relief.

Every error here is contained at the tile level: the grid marks the tile
as failed (or skips a seam) and keeps serving the rest of the terrain.
"""

from typing import Optional


class ReliefError(Exception):
    """Base exception for terrain tile errors."""
    pass


class RetrievalError(ReliefError):
    """Raster fetch failed (network error, HTTP status, undecodable image)."""

    def __init__(self, url: str, message: str = "", status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        detail = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"Failed to retrieve {url}{detail}: {message}")


class InvalidElevationData(ReliefError):
    """Pixel buffer or elevation grid has unusable dimensions."""
    pass


class ShapeMismatchError(ReliefError):
    """Seam stitching between vertex grids of different resolution."""
    pass
