"""
Configuration settings for Relief.

This module provides typed configuration classes for the tile sources,
the tile grid and the per-tile material, supporting loading from
YAML/JSON files and the RELIEF_MAPBOX_TOKEN environment variable.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple, Union
import json
import os


DEFAULT_TILE_SIZE = 600.0
DEFAULT_VERTICAL_EXAGGERATION = 0.045


def _token_from_env() -> Optional[str]:
    return os.environ.get("RELIEF_MAPBOX_TOKEN")


@dataclass
class TileSourceConfig:
    """
    Raster tile endpoints and HTTP behaviour.

    Attributes:
        elevation_base_url: Terrarium-encoded elevation PNG tiles
        mapbox_base_url: Satellite overlay tiles (consumed by the material layer)
        mapbox_token: Access token for the satellite overlay
        osm_base_url: Alternate basemap tiles
        timeout_s: Per-request timeout in seconds
        max_attempts: Attempts per tile before giving up
        backoff_base_s: First retry delay, doubled on each further attempt
        backoff_max_s: Upper bound for a single retry delay
    """
    elevation_base_url: str = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium"
    mapbox_base_url: str = "https://api.mapbox.com/v4/mapbox.satellite"
    mapbox_token: Optional[str] = field(default_factory=_token_from_env)
    osm_base_url: str = "https://c.tile.openstreetmap.org"
    timeout_s: float = 30.0
    max_attempts: int = 3
    backoff_base_s: float = 0.5
    backoff_max_s: float = 8.0

    def backoff_s(self, attempt: int) -> float:
        """Delay before the given (1-based) attempt."""
        if attempt <= 1:
            return 0.0
        return min(self.backoff_max_s, self.backoff_base_s * 2 ** (attempt - 2))


@dataclass
class GridConfig:
    """
    Tile grid settings.

    Attributes:
        zoom: Tile zoom level used by init()
        grid_dimension: Tiles per side created by init()
        tile_size: Edge length of one tile in world units
        vertical_exaggeration: Metres to world-units factor for heights
        max_concurrency: Tile pipelines allowed to fetch at the same time
    """
    zoom: int = 10
    grid_dimension: int = 3
    tile_size: float = DEFAULT_TILE_SIZE
    vertical_exaggeration: float = DEFAULT_VERTICAL_EXAGGERATION
    max_concurrency: int = 8

    def __post_init__(self):
        if self.zoom < 0:
            raise ValueError(f"zoom must be >= 0, got {self.zoom}")
        if self.grid_dimension < 1:
            raise ValueError(f"grid_dimension must be >= 1, got {self.grid_dimension}")
        if self.tile_size <= 0:
            raise ValueError(f"tile_size must be > 0, got {self.tile_size}")
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")


@dataclass(frozen=True)
class MaterialConfig:
    """
    Display material handed to each tile.

    Attributes:
        wireframe: Draw the mesh as a wireframe instead of a shaded surface
        cmap: Colormap for shaded surfaces
        color: Line color for wireframes
        line_width: Wireframe line width
    """
    wireframe: bool = True
    cmap: str = "terrain"
    color: str = "steelblue"
    line_width: float = 0.3


@dataclass
class ReliefConfig:
    """
    Main Relief configuration.

    Attributes:
        source: Raster tile endpoints and HTTP settings
        grid: Tile grid settings
        material: Per-tile display material
        geo_location: Default (lat, lon) for the demo
    """
    source: TileSourceConfig = field(default_factory=TileSourceConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    material: MaterialConfig = field(default_factory=MaterialConfig)
    geo_location: Tuple[float, float] = (45.8326, 6.8652)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, (list, tuple)):
                return [convert(v) for v in obj]
            else:
                return obj
        return convert(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ReliefConfig":
        """Create from dictionary."""
        source = TileSourceConfig(**data.get('source', {}))
        grid = GridConfig(**data.get('grid', {}))
        material = MaterialConfig(**data.get('material', {}))

        return cls(
            source=source,
            grid=grid,
            material=material,
            geo_location=tuple(data.get('geo_location', (45.8326, 6.8652))),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReliefConfig":
        """Load configuration from YAML file."""
        import yaml

        path = Path(path)
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "ReliefConfig":
        """Load configuration from JSON file."""
        path = Path(path)
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        import yaml

        path = Path(path)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_json(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def for_preview(cls) -> "ReliefConfig":
        """Small, coarse grid for quick looks."""
        return cls(
            grid=GridConfig(zoom=9, grid_dimension=2, max_concurrency=4),
        )

    @classmethod
    def for_detail(cls) -> "ReliefConfig":
        """Larger grid at a finer zoom, shaded instead of wireframe."""
        return cls(
            grid=GridConfig(zoom=12, grid_dimension=5, max_concurrency=8),
            material=MaterialConfig(wireframe=False),
        )


def load_config(path: Optional[Union[str, Path]] = None) -> ReliefConfig:
    """
    Load configuration from file or return defaults.

    Supports YAML and JSON files based on extension.

    Args:
        path: Path to configuration file (optional)

    Returns:
        ReliefConfig instance
    """
    if path is None:
        return ReliefConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        return ReliefConfig.from_yaml(path)
    elif suffix == '.json':
        return ReliefConfig.from_json(path)
    else:
        raise ValueError(f"Unsupported configuration format: {suffix}")
