"""Tests for core.raster_engine."""

from __future__ import annotations

import numpy as np
import pytest
import rasterio
from shapely.geometry import box

from core.errors import ServiceUnavailableError
from core.raster_engine import as_raster, grid_of
from tests.conftest import CRS, PIXEL, SHAPE, TRANSFORM, X0, Y0, make_bands, make_dem, uniform_layout, SNOW


def _row_box(row: int):
    """Polygon covering one full row of pixels."""
    top = Y0 - row * PIXEL
    return box(X0, top - PIXEL, X0 + SHAPE[1] * PIXEL, top)


class TestGrid:

    def test_as_raster_attrs(self) -> None:
        da = as_raster(np.zeros(SHAPE), TRANSFORM, CRS, name="z", units="m")
        assert da.dims == ("y", "x")
        assert da.attrs["crs"] == CRS
        assert da.attrs["transform"] == tuple(TRANSFORM)[:6]
        assert da.attrs["units"] == "m"

    def test_grid_of_dataset(self) -> None:
        transform, crs, shape = grid_of(make_bands(uniform_layout(SNOW)))
        assert transform == TRANSFORM
        assert crs == CRS
        assert shape == SHAPE


class TestAreas:

    def test_planar_area(self, engine, glacier) -> None:
        assert engine.area_km2(glacier.geometry, CRS) == pytest.approx(0.09)

    def test_geodesic_area(self, engine) -> None:
        # one degree square at the equator is roughly 12,300 km²
        area = engine.area_km2(box(0, 0, 1, 1), "EPSG:4326")
        assert 12000 < area < 12500

    def test_empty_geometry_has_no_area(self, engine) -> None:
        assert engine.area_km2(box(0, 0, 1, 1).difference(box(0, 0, 1, 1)), CRS) == 0.0

    def test_intersection_with_empty(self, engine, glacier) -> None:
        empty = box(0, 0, 1, 1).difference(box(0, 0, 1, 1))
        assert engine.intersection(glacier.geometry, empty, CRS).is_empty

    def test_intersection_area(self, engine, glacier) -> None:
        overlap = engine.intersection(glacier.geometry, _row_box(0), CRS)
        assert engine.area_km2(overlap, CRS) == pytest.approx(0.009)

    def test_to_crs_round_trip(self, engine, glacier) -> None:
        geographic = engine.to_crs(glacier.geometry, CRS, "EPSG:4326")
        assert -180 < geographic.bounds[0] < 180
        back = engine.to_crs(geographic, "EPSG:4326", CRS)
        assert back.bounds == pytest.approx(glacier.geometry.bounds, abs=1e-3)


class TestMasks:

    def test_geometry_mask_uses_pixel_centres(self, engine) -> None:
        like = make_dem(np.zeros(SHAPE))
        # covers the centres of the first two columns only
        geometry = box(X0, Y0 - SHAPE[0] * PIXEL, X0 + 50.0, Y0)
        mask = engine.geometry_mask(geometry, like)
        assert mask[:, :2].all()
        assert not mask[:, 2:].any()

    def test_vectorize_area_and_tags(self, engine) -> None:
        like = make_dem(np.zeros(SHAPE))
        mask = np.zeros(SHAPE, dtype=bool)
        mask[2:4, 3:8] = True
        outline = engine.vectorize(mask, like, {"RGIId": "RGI60-13.53885", "LS_ID": "S", "LS_DATE": "2020-08-15"})

        assert outline.area_km2 == pytest.approx(10 * PIXEL * PIXEL / 1e6)
        assert outline.rgi_id == "RGI60-13.53885"
        assert outline.date == "2020-08-15"
        assert np.array_equal(engine.geometry_mask(outline.geometry, like), mask)

    def test_vectorize_empty_mask(self, engine) -> None:
        outline = engine.vectorize(np.zeros(SHAPE, dtype=bool), make_dem(np.zeros(SHAPE)))
        assert outline.is_empty
        assert outline.area_km2 == 0.0


class TestReduceRegion:

    def test_reducers(self, engine, ramp_dem, glacier) -> None:
        assert engine.reduce_region(ramp_dem, glacier.geometry, "count") == 100
        assert engine.reduce_region(ramp_dem, glacier.geometry, "mean") == pytest.approx(4045.0)
        assert engine.reduce_region(ramp_dem, glacier.geometry, "median") == pytest.approx(4045.0)
        assert engine.min_max(ramp_dem, glacier.geometry) == (4000.0, 4090.0)
        assert engine.reduce_region(ramp_dem, glacier.geometry, "stddev") == pytest.approx(np.std(ramp_dem.values))

    def test_percentile(self, engine, ramp_dem, glacier) -> None:
        assert engine.reduce_region(ramp_dem, glacier.geometry, ("percentile", 50)) == pytest.approx(4045.0)
        assert engine.reduce_region(ramp_dem, glacier.geometry, ("percentile", 0)) == pytest.approx(4000.0)

    def test_nan_pixels_are_ignored(self, engine, ramp_dem, glacier) -> None:
        masked = ramp_dem.where(ramp_dem > 4050)
        masked.attrs = dict(ramp_dem.attrs)
        assert engine.reduce_region(masked, glacier.geometry, "count") == 40
        assert engine.reduce_region(masked, glacier.geometry, "min") == 4060.0

    def test_empty_region_gives_none(self, engine, ramp_dem) -> None:
        outside = box(0, 0, 10, 10)
        assert engine.reduce_region(ramp_dem, outside, "mean") is None
        assert engine.reduce_region(ramp_dem, outside, "count") == 0

    def test_unknown_reducer(self, engine, ramp_dem, glacier) -> None:
        with pytest.raises(ValueError):
            engine.reduce_region(ramp_dem, glacier.geometry, "mode")


class TestLoadDem:

    def test_reprojects_onto_band_grid(self, engine, tmp_path) -> None:
        path = tmp_path / "dem.tif"
        values = np.arange(SHAPE[0] * SHAPE[1], dtype=np.float32).reshape(SHAPE)
        with rasterio.open(
            path, "w", driver="GTiff", height=SHAPE[0], width=SHAPE[1], count=1,
            dtype="float32", crs=CRS, transform=TRANSFORM,
        ) as dst:
            dst.write(values, 1)

        dem = engine.load_dem(path, like=make_bands(uniform_layout(SNOW)))
        assert dem.shape == SHAPE
        np.testing.assert_allclose(dem.values, values, rtol=1e-5, atol=1e-4)
        assert dem.attrs["crs"] == CRS

    def test_unreadable_dem_is_retryable(self, engine, tmp_path) -> None:
        with pytest.raises(ServiceUnavailableError):
            engine.load_dem(tmp_path / "missing.tif", like=make_dem(np.zeros(SHAPE)))
