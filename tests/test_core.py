"""
Tests for relief.core module.

These tests verify height-field meshes, the tile state machine and seam
stitching.
"""

import logging

import pytest
import numpy as np

from conftest import make_pixels, make_ready_tile


class TestHeightFieldGeometry:
    """Tests for the vertex grid container."""

    def test_plane_layout(self):
        """Test that row 0 is the northern edge and columns run east."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(600.0, 2)

        assert geom.n == 3
        assert geom.vertex_count == 9
        np.testing.assert_allclose(geom.positions[0], [-300.0, 300.0, 0.0])
        np.testing.assert_allclose(geom.positions[2], [300.0, 300.0, 0.0])
        np.testing.assert_allclose(geom.positions[8], [300.0, -300.0, 0.0])

    def test_triangle_count(self):
        """Test two triangles per quad."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(600.0, 4)

        assert geom.quad_count == 16
        assert geom.indices.shape == (32, 3)
        assert geom.indices.max() == geom.vertex_count - 1

    def test_flat_normals_point_up(self):
        """Test that a flat grid has +z unit normals."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(600.0, 4)
        normals = geom.compute_vertex_normals()

        assert normals.dtype == np.float32
        np.testing.assert_allclose(normals, np.tile([0.0, 0.0, 1.0], (25, 1)), atol=1e-6)

    def test_normals_are_unit_length(self, rng):
        """Test normal length on a bumpy grid."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(600.0, 8)
        geom.z[:] = rng.uniform(-50, 50, geom.vertex_count)
        normals = geom.compute_vertex_normals()

        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), 1.0, atol=1e-5)

    def test_set_and_get_z(self):
        """Test single-vertex height access."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(10.0, 2)
        geom.set_z(4, 2.5)

        assert geom.get_z(4) == pytest.approx(2.5)
        assert geom.z[4] == pytest.approx(2.5)

    def test_dispose(self):
        """Test that dispose releases vertex data."""
        from relief.core.mesh import HeightFieldGeometry

        geom = HeightFieldGeometry.plane(10.0, 2)
        geom.compute_vertex_normals()
        geom.dispose()

        assert geom.disposed
        assert geom.vertex_count == 0
        assert geom.normals is None


class TestBuildHeightField:
    """Tests for mesh construction from elevation grids."""

    def test_vertices_per_side(self):
        """Test one vertex every two pixels, plus one."""
        from relief.core.mesh import vertices_per_side

        assert vertices_per_side(256) == 129
        assert vertices_per_side(512) == 257

    def test_standard_tile_counts(self):
        """Test vertex and triangle counts for a 256 px tile."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(256, 256, np.full(256 * 256, 1000.0))
        geom = build_height_field(elevation, 600.0, 0.045)

        assert geom.n == 129
        assert geom.vertex_count == 129 * 129
        assert geom.indices.shape == (2 * 128 * 128, 3)
        assert geom.normals.shape == (129 * 129, 3)

    def test_interior_scaled_by_exaggeration(self):
        """Test that sampled heights are metres times the exaggeration."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(16, 16, np.full(256, 1000.0))
        geom = build_height_field(elevation, 600.0, 0.045)
        z = geom.z.reshape(geom.n, geom.n)

        np.testing.assert_allclose(z[:-1, :-1], 45.0, rtol=1e-6)

    def test_last_row_and_column_zero(self):
        """Test that the edges left for stitching stay at zero."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(16, 16, np.full(256, 1000.0))
        geom = build_height_field(elevation, 600.0, 0.045)
        z = geom.z.reshape(geom.n, geom.n)

        assert np.all(z[-1, :] == 0)
        assert np.all(z[:, -1] == 0)

    def test_nearest_sample_indices(self):
        """Test the sampled elevation for each vertex of a small grid."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(4, 4, np.arange(16, dtype=np.float32))
        geom = build_height_field(elevation, 600.0, 1.0)

        np.testing.assert_allclose(geom.z, [0, 2, 0, 8, 10, 0, 0, 0, 0])

    def test_deterministic(self, rng):
        """Test that the same input gives the same geometry."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(32, 32, rng.uniform(0, 3000, 32 * 32))
        a = build_height_field(elevation)
        b = build_height_field(elevation)

        np.testing.assert_array_equal(a.positions, b.positions)
        np.testing.assert_array_equal(a.indices, b.indices)
        np.testing.assert_array_equal(a.normals, b.normals)

    def test_elevation_not_mutated(self, rng):
        """Test that building does not touch the elevation grid."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid

        elevation = ElevationGrid(32, 32, rng.uniform(0, 3000, 32 * 32))
        before = elevation.values.copy()
        build_height_field(elevation)

        np.testing.assert_array_equal(elevation.values, before)

    def test_non_square_raises(self):
        """Test that non-square grids are rejected."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid
        from relief.errors import InvalidElevationData

        with pytest.raises(InvalidElevationData):
            build_height_field(ElevationGrid(8, 4, np.zeros(32)))

    def test_too_small_raises(self):
        """Test that 1 x 1 grids are rejected."""
        from relief.core.mesh import build_height_field
        from relief.dem.decoder import ElevationGrid
        from relief.errors import InvalidElevationData

        with pytest.raises(InvalidElevationData):
            build_height_field(ElevationGrid(1, 1, np.zeros(1)))


class TestTile:
    """Tests for the tile state machine."""

    def test_full_pipeline(self):
        """Test EMPTY through POSITIONED."""
        from relief.core.tile import Tile, TileState
        from relief.dem.coordinates import TileIndex

        index = TileIndex(10, 531, 364)
        tile = Tile(index=index)
        assert tile.state is TileState.EMPTY

        tile.start_fetch()
        assert tile.state is TileState.FETCHING

        tile.decode(make_pixels(np.full((16, 16), 800.0)))
        assert tile.state is TileState.DECODED
        assert tile.elevation.width == 16

        tile.build_geometry(0.045)
        assert tile.state is TileState.GEOMETRY_BUILT
        assert tile.geometry.n == 9
        assert not tile.is_ready

        position = tile.set_position(index)
        assert tile.state is TileState.POSITIONED
        assert tile.is_ready
        assert position.x == pytest.approx(0.0)
        assert tile.seam_x is False
        assert tile.seam_y is False

    def test_skipping_a_step_raises(self):
        """Test that states cannot be skipped."""
        from relief.core.tile import Tile
        from relief.dem.coordinates import TileIndex

        tile = Tile(index=TileIndex(1, 0, 0))

        with pytest.raises(RuntimeError):
            tile.decode(make_pixels(np.zeros((4, 4))))

    def test_fail_from_fetching(self):
        """Test that a fetching tile may fail."""
        from relief.core.tile import Tile, TileState
        from relief.dem.coordinates import TileIndex
        from relief.errors import RetrievalError

        tile = Tile(index=TileIndex(1, 0, 0))
        tile.start_fetch()
        error = RetrievalError("https://x/1/0/0.png", "gone", status_code=404)
        tile.fail(error)

        assert tile.state is TileState.FAILED
        assert tile.failed
        assert tile.error is error
        assert not tile.is_ready

    def test_failed_tile_is_terminal(self):
        """Test that a failed tile cannot continue."""
        from relief.core.tile import Tile
        from relief.dem.coordinates import TileIndex

        tile = Tile(index=TileIndex(1, 0, 0))
        tile.start_fetch()
        tile.fail(RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            tile.decode(make_pixels(np.zeros((4, 4))))

    def test_positioned_tile_cannot_fail(self):
        """Test that POSITIONED is final."""
        from relief.dem.coordinates import TileIndex

        tile = make_ready_tile(TileIndex(10, 0, 0), np.zeros((4, 4)))

        with pytest.raises(RuntimeError):
            tile.fail(RuntimeError("late"))

    def test_urls(self):
        """Test tile URL helpers."""
        from relief.core.tile import Tile
        from relief.dem.coordinates import TileIndex

        tile = Tile(index=TileIndex(10, 531, 364))

        assert tile.key == "10/531/364"
        assert tile.url("https://e/t") == "https://e/t/10/531/364.png"
        assert tile.osm_url("https://o") == "https://o/10/531/364.png"
        assert len(tile.overlay_urls("https://m", "tok")) == 4

    def test_dispose_releases_geometry(self):
        """Test that dispose drops geometry but keeps identity."""
        from relief.dem.coordinates import TileIndex

        tile = make_ready_tile(TileIndex(10, 0, 0), np.zeros((4, 4)))
        geometry = tile.geometry
        tile.dispose()

        assert tile.geometry is None
        assert geometry.disposed
        assert tile.key == "10/0/0"


class TestSeams:
    """Tests for seam stitching."""

    def _pair(self, rng, size=16):
        from relief.dem.coordinates import TileIndex

        tile = make_ready_tile(TileIndex(10, 5, 5), rng.uniform(0, 100, (size, size)))
        east = make_ready_tile(TileIndex(10, 6, 5), rng.uniform(200, 300, (size, size)))
        south = make_ready_tile(TileIndex(10, 5, 6), rng.uniform(400, 500, (size, size)))
        return tile, east, south

    def test_seam_y_copies_first_row(self, rng):
        """Test that the last row takes the +y neighbour's first row."""
        from relief.core.seams import resolve_seam_y

        tile, _, south = self._pair(rng)
        n = tile.geometry.n
        total = n * n

        assert resolve_seam_y(tile, south) is True
        assert tile.seam_y is True
        np.testing.assert_array_equal(tile.geometry.z[total - n:total], south.geometry.z[0:n])

    def test_seam_x_copies_first_column(self, rng):
        """Test that the last column takes the +x neighbour's first column."""
        from relief.core.seams import resolve_seam_x

        tile, east, _ = self._pair(rng)
        n = tile.geometry.n
        total = n * n

        assert resolve_seam_x(tile, east) is True
        assert tile.seam_x is True
        np.testing.assert_array_equal(tile.geometry.z[n - 1:total:n], east.geometry.z[0:total:n])

    def test_seam_leaves_rest_untouched(self, rng):
        """Test that only the edge vertices change."""
        from relief.core.seams import resolve_seam_x

        tile, east, _ = self._pair(rng)
        n = tile.geometry.n
        before = tile.geometry.z.reshape(n, n).copy()
        east_before = east.geometry.positions.copy()

        resolve_seam_x(tile, east)
        after = tile.geometry.z.reshape(n, n)

        np.testing.assert_array_equal(after[:, :-1], before[:, :-1])
        np.testing.assert_array_equal(east.geometry.positions, east_before)

    def test_seam_is_idempotent(self, rng):
        """Test that a second call is a no-op."""
        from relief.core.seams import resolve_seam_x, resolve_seam_y

        tile, east, south = self._pair(rng)
        resolve_seam_x(tile, east)
        resolve_seam_y(tile, south)
        snapshot = tile.geometry.positions.copy()

        east.geometry.z[:] = 9999.0
        south.geometry.z[:] = 9999.0

        assert resolve_seam_x(tile, east) is False
        assert resolve_seam_y(tile, south) is False
        np.testing.assert_array_equal(tile.geometry.positions, snapshot)

    def test_normals_recomputed(self, rng):
        """Test that normals follow the stitched heights."""
        from relief.core.seams import resolve_seam_y

        tile, _, south = self._pair(rng)
        before = tile.geometry.normals.copy()
        resolve_seam_y(tile, south)

        assert not np.array_equal(tile.geometry.normals, before)

    def test_shape_mismatch_is_skipped(self, rng, caplog):
        """Test that mismatched grids are logged and left byte-identical."""
        from relief.core.seams import resolve_seam_x, resolve_seam_y
        from relief.dem.coordinates import TileIndex

        tile = make_ready_tile(TileIndex(10, 5, 5), rng.uniform(0, 100, (16, 16)))
        coarse = make_ready_tile(TileIndex(10, 6, 5), rng.uniform(0, 100, (8, 8)))
        positions = tile.geometry.positions.tobytes()
        normals = tile.geometry.normals.tobytes()
        coarse_positions = coarse.geometry.positions.tobytes()
        coarse_normals = coarse.geometry.normals.tobytes()

        with caplog.at_level(logging.ERROR, logger="relief.core.seams"):
            assert resolve_seam_x(tile, coarse) is False
            assert resolve_seam_y(tile, coarse) is False

        assert tile.seam_x is False
        assert tile.seam_y is False
        assert tile.geometry.positions.tobytes() == positions
        assert tile.geometry.normals.tobytes() == normals
        assert coarse.seam_x is False
        assert coarse.seam_y is False
        assert coarse.geometry.positions.tobytes() == coarse_positions
        assert coarse.geometry.normals.tobytes() == coarse_normals
        assert "resolve_seam_x skipped" in caplog.text

    def test_resolve_seams_uses_ready_neighbors(self, rng):
        """Test stitching against a cache."""
        from relief.core.seams import resolve_seams

        tile, east, south = self._pair(rng)
        cache = {t.index: t for t in (tile, east, south)}

        assert resolve_seams(tile, cache) is True
        assert tile.seam_x and tile.seam_y
        assert resolve_seams(tile, cache) is False

    def test_resolve_seams_without_neighbors(self, rng):
        """Test that a lone tile is left as is."""
        from relief.core.seams import resolve_seams

        tile, _, _ = self._pair(rng)

        assert resolve_seams(tile, {tile.index: tile}) is False
        assert not tile.seam_x and not tile.seam_y

    def test_resolve_seams_skips_unready_neighbor(self, rng):
        """Test that neighbours without geometry are ignored."""
        from relief.core.seams import resolve_seams
        from relief.core.tile import Tile

        tile, _, _ = self._pair(rng)
        pending = Tile(index=tile.index.neighbor_x())
        pending.start_fetch()

        assert resolve_seams(tile, {tile.index: tile, pending.index: pending}) is False
        assert tile.seam_x is False
