"""
Shared fixtures for the Relief tests.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest


def make_pixels(elevation):
    """Terrarium pixel buffer for a (H, W) array of metres."""
    from relief.dem.decoder import encode_elevation

    return encode_elevation(np.asarray(elevation, dtype=np.float64))


def make_ready_tile(index, elevation, vertical_exaggeration=1.0, anchor=None):
    """Run a tile through the whole pipeline without a grid."""
    from relief.core.tile import Tile

    tile = Tile(index=index)
    tile.start_fetch()
    tile.decode(make_pixels(elevation))
    tile.build_geometry(vertical_exaggeration)
    tile.set_position(anchor if anchor is not None else index)
    return tile


@pytest.fixture
def location():
    """(lat, lon) of the default demo location."""
    return (45.8326, 6.8652)


@pytest.fixture
def rng():
    return np.random.default_rng(42)
