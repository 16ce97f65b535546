"""
Raster retrieval for elevation tiles.

This module defines the RasterSource interface the tile grid fetches
through, and an HTTP implementation that downloads PNG tiles with httpx
and decodes them to RGBA pixel buffers with Pillow.
"""

from typing import Optional, Protocol
import asyncio
import io
import logging

import httpx
import numpy as np
from PIL import Image, UnidentifiedImageError

from relief.config.settings import TileSourceConfig
from relief.dem.decoder import PixelBuffer
from relief.errors import RetrievalError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class RasterSource(Protocol):
    """Anything that can turn a tile URL into a decoded pixel buffer."""

    async def fetch(self, url: str) -> PixelBuffer:
        """
        Retrieve and decode one raster.

        Raises:
            RetrievalError: If the raster cannot be fetched or decoded
        """
        ...


def decode_image(content: bytes, url: str = "<memory>") -> PixelBuffer:
    """
    Decode encoded image bytes (PNG, JPEG, ...) into an RGBA pixel buffer.

    Raises:
        RetrievalError: If Pillow cannot read the image
    """
    try:
        with Image.open(io.BytesIO(content)) as img:
            rgba = img.convert("RGBA")
            data = np.asarray(rgba, dtype=np.uint8).copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise RetrievalError(url, f"cannot decode image: {exc}") from exc

    height, width = data.shape[:2]
    return PixelBuffer(width=width, height=height, data=data)


class HttpRasterSource:
    """
    Fetch raster tiles over HTTP.

    Retries connection errors and retryable status codes with exponential
    backoff, then decodes the body with Pillow. Use it as an async context
    manager, or call aclose() when done.

    Example:
        >>> async with HttpRasterSource() as source:
        ...     pixels = await source.fetch(url)
    """

    def __init__(
        self,
        config: Optional[TileSourceConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or TileSourceConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=True,
            timeout=httpx.Timeout(self.config.timeout_s),
            transport=transport,
        )

    async def __aenter__(self) -> "HttpRasterSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str) -> bytes:
        attempts = max(1, self.config.max_attempts)
        last_error = RetrievalError(url, "no attempts made")

        for attempt in range(1, attempts + 1):
            delay = self.config.backoff_s(attempt)
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                resp = await self._client.get(url)
            except httpx.RequestError as exc:
                last_error = RetrievalError(url, f"{type(exc).__name__}: {exc}")
                logger.debug("Attempt %d/%d for %s failed: %s", attempt, attempts, url, exc)
                continue

            if resp.status_code in RETRYABLE_STATUS_CODES:
                last_error = RetrievalError(url, resp.reason_phrase, status_code=resp.status_code)
                logger.debug("Attempt %d/%d for %s returned %d", attempt, attempts, url, resp.status_code)
                continue
            if resp.status_code >= 400:
                raise RetrievalError(url, resp.reason_phrase, status_code=resp.status_code)
            return resp.content

        raise last_error

    async def fetch(self, url: str) -> PixelBuffer:
        content = await self._get(url)
        pixels = decode_image(content, url)
        logger.debug("Fetched %s (%dx%d)", url, pixels.width, pixels.height)
        return pixels
