"""
Tile grid orchestration.

TileGrid owns the tile cache and drives every tile through
fetch -> decode -> build -> position, hands finished tiles to a renderer,
and stitches seams once tiles and their neighbours are ready.

Pipelines run on one asyncio event loop. Fetches are bounded by
GridConfig.max_concurrency; decode, build and positioning run
synchronously once a fetch returns. clear() cancels in-flight pipelines
and bumps a generation counter so late results are never inserted or
rendered.
"""

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Set, Union
import asyncio
import logging

from relief.config.settings import GridConfig, MaterialConfig, TileSourceConfig
from relief.core.seams import resolve_seams
from relief.core.tile import Tile
from relief.dem.coordinates import (
    TileIndex,
    geo_to_tile_index,
    world_position_to_tile_index,
)
from relief.dem.loader import RasterSource
from relief.errors import InvalidElevationData, RetrievalError

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Rendering collaborator that displays and releases tile meshes."""

    def add(self, tile: Tile) -> None:
        """Display a positioned tile (tile.geometry at tile.position)."""
        ...

    def dispose(self, tile: Tile) -> None:
        """Release everything displayed for a tile."""
        ...


class NullRenderer:
    """Renderer that displays nothing."""

    def add(self, tile: Tile) -> None:
        pass

    def dispose(self, tile: Tile) -> None:
        pass


class TileGrid:
    """
    Cache of terrain tiles around an anchor tile.

    Args:
        source: RasterSource used to fetch elevation rasters
        renderer: Receives positioned tiles and dispose signals
        config: Grid settings (zoom, dimension, tile size, concurrency)
        source_config: Tile endpoints; only elevation_base_url is used here
        material: Material handed to every tile

    Example:
        >>> grid = TileGrid(SyntheticRasterSource())
        >>> tiles = asyncio.run(grid.init((45.83, 6.86), zoom=10, grid_dimension=3))
        >>> print(f"{len(tiles)} tiles ready")
    """

    def __init__(
        self,
        source: RasterSource,
        renderer: Optional[Renderer] = None,
        config: Optional[GridConfig] = None,
        source_config: Optional[TileSourceConfig] = None,
        material: Optional[MaterialConfig] = None,
    ):
        self.source = source
        self.renderer = renderer if renderer is not None else NullRenderer()
        self.config = config or GridConfig()
        self.source_config = source_config or TileSourceConfig()
        self.material = material or MaterialConfig()

        self.zoom = self.config.zoom
        self.grid_dimension = self.config.grid_dimension
        self.geo_location: Optional[Sequence[float]] = None
        self.anchor: Optional[TileIndex] = None
        self.generation = 0

        self._cache: Dict[TileIndex, Tile] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._semaphore_loop: Optional[asyncio.AbstractEventLoop] = None

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, item: Union[TileIndex, str]) -> bool:
        if isinstance(item, str):
            item = TileIndex.from_key(item)
        return item in self._cache

    def __iter__(self) -> Iterator[Tile]:
        return iter(list(self._cache.values()))

    @property
    def cache(self) -> Mapping[TileIndex, Tile]:
        """Read-only view of the tile cache."""
        return MappingProxyType(self._cache)

    @property
    def tiles(self) -> List[Tile]:
        return list(self._cache.values())

    @property
    def ready_tiles(self) -> List[Tile]:
        return [tile for tile in self._cache.values() if tile.is_ready]

    @property
    def failed_tiles(self) -> List[Tile]:
        return [tile for tile in self._cache.values() if tile.failed]

    def get(self, index: Union[TileIndex, str]) -> Optional[Tile]:
        if isinstance(index, str):
            index = TileIndex.from_key(index)
        return self._cache.get(index)

    def _limiter(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._semaphore_loop is not loop:
            self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
            self._semaphore_loop = loop
        return self._semaphore

    def _create_tile(self, index: TileIndex) -> Tile:
        tile = Tile(index=index, size=self.config.tile_size, material=self.material)
        self._cache[index] = tile
        return tile

    def _spawn(self, tile: Tile, generation: int, completed: Optional[List[Tile]] = None) -> asyncio.Task:
        task = asyncio.ensure_future(self._run_pipeline(tile, generation, completed))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_pipeline(
        self,
        tile: Tile,
        generation: int,
        completed: Optional[List[Tile]] = None,
    ) -> Tile:
        tile.start_fetch()
        url = tile.url(self.source_config.elevation_base_url)

        try:
            async with self._limiter():
                pixels = await self.source.fetch(url)

            if generation != self.generation:
                logger.debug("Discarding %s: grid was cleared during fetch", tile.key)
                return tile

            tile.decode(pixels)
            tile.build_geometry(self.config.vertical_exaggeration)
            tile.set_position(self.anchor)
        except (RetrievalError, InvalidElevationData) as exc:
            tile.fail(exc)
            logger.warning("Tile %s failed: %s", tile.key, exc)
            return tile
        except Exception as exc:
            tile.fail(exc)
            logger.exception("Tile %s failed unexpectedly", tile.key)
            return tile

        try:
            self.renderer.add(tile)
        except Exception:
            logger.exception("Renderer failed to display tile %s", tile.key)
            return tile

        if completed is not None:
            completed.append(tile)
        logger.debug("Tile %s positioned at %s", tile.key, tile.position)
        return tile

    def _log_pipeline_errors(self, results: Sequence[object]) -> int:
        """Log exceptions that escaped a pipeline; returns how many."""
        errors = 0
        for result in results:
            if isinstance(result, asyncio.CancelledError) or not isinstance(result, BaseException):
                continue
            errors += 1
            logger.error("Tile pipeline raised %s", type(result).__name__, exc_info=result)
        return errors

    async def init(
        self,
        geo_location: Optional[Sequence[float]] = None,
        zoom: Optional[int] = None,
        grid_dimension: Optional[int] = None,
    ) -> List[Tile]:
        """
        Build a grid_dimension x grid_dimension block of tiles around a location.

        Any previous tiles are cleared first. All pipelines run concurrently
        (bounded by max_concurrency); once every one has settled, seams are
        resolved over the successful tiles in reverse completion order.

        Args:
            geo_location: (lat, lon) in degrees; defaults to the last location
            zoom: Zoom level; defaults to the current one
            grid_dimension: Tiles per side; defaults to the current one

        Returns:
            Successfully positioned tiles, in completion order
        """
        if geo_location is not None:
            self.geo_location = tuple(geo_location)
        if self.geo_location is None:
            raise ValueError("init() needs a geo_location")
        if zoom is not None:
            if zoom < 0:
                raise ValueError(f"zoom must be >= 0, got {zoom}")
            self.zoom = zoom
        if grid_dimension is not None:
            if grid_dimension < 1:
                raise ValueError(f"grid_dimension must be >= 1, got {grid_dimension}")
            self.grid_dimension = grid_dimension

        if self._cache or self._tasks:
            self.clear()

        lat, lon = self.geo_location
        self.anchor = geo_to_tile_index(lat, lon, self.zoom)
        logger.info(
            "Initialising %dx%d grid at %s (lat=%.5f, lon=%.5f)",
            self.grid_dimension, self.grid_dimension, self.anchor.key(), lat, lon,
        )

        offset = (self.grid_dimension - 1) // 2
        batch = []
        for i in range(self.grid_dimension):
            for j in range(self.grid_dimension):
                index = TileIndex(self.zoom, self.anchor.x + i - offset, self.anchor.y + j - offset)
                batch.append(self._create_tile(index))

        generation = self.generation
        completed: List[Tile] = []
        results = await asyncio.gather(
            *(self._spawn(tile, generation, completed) for tile in batch),
            return_exceptions=True,
        )
        self._log_pipeline_errors(results)

        if generation != self.generation:
            logger.info("Grid cleared before initialisation finished")
            return []

        # Reverse completion order keeps visible re-stitch artifacts down.
        for tile in reversed(completed):
            resolve_seams(tile, self._cache)

        failed = len(batch) - len(completed)
        if failed:
            logger.warning("%d of %d tiles failed", failed, len(batch))
        return completed

    async def go(self, lat: float, lon: float) -> List[Tile]:
        """Drop the current grid and initialise a new one at (lat, lon)."""
        self.clear()
        return await self.init((lat, lon))

    async def add_from_position(self, world_x: float, world_y: float) -> Optional[Tile]:
        """
        Add the tile under a world position.

        Does nothing if that tile is already cached. Otherwise runs its
        pipeline and then re-resolves seams across the whole cache.

        Returns:
            The new tile (possibly failed), or None if it already existed or
            the grid was cleared meanwhile
        """
        if self.anchor is None:
            raise RuntimeError("add_from_position() needs an initialised grid")

        index = world_position_to_tile_index(
            self.zoom, world_x, world_y, self.anchor, self.config.tile_size
        )
        if index in self._cache:
            logger.debug("Tile %s already cached", index.key())
            return None

        logger.info("Adding tile %s at (%.1f, %.1f)", index.key(), world_x, world_y)
        tile = self._create_tile(index)
        generation = self.generation
        results = await asyncio.gather(self._spawn(tile, generation), return_exceptions=True)
        self._log_pipeline_errors(results)

        if generation != self.generation:
            return None

        for cached in list(self._cache.values()):
            resolve_seams(cached, self._cache)
        return tile

    def clear(self) -> int:
        """
        Cancel in-flight pipelines and release every cached tile.

        The renderer gets exactly one dispose() per cached tile. The anchor
        is stale afterwards until the next init().

        Returns:
            Number of tiles released
        """
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        count = len(self._cache)
        for tile in self._cache.values():
            self.renderer.dispose(tile)
            tile.dispose()

        self._cache = {}
        self.generation += 1
        self.anchor = None
        if count:
            logger.info("Cleared %d tiles", count)
        return count
