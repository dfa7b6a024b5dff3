"""Tests for core.illumination and the terrain derivatives it relies on."""

from __future__ import annotations

import math

import numpy as np
import pytest

from config.settings import QualityThresholds
from core.illumination import IlluminationModel, illumination
from tests.conftest import INVALID, SHAPE, SNOW, make_bands, make_dem, uniform_layout


@pytest.fixture
def model(engine) -> IlluminationModel:
    return IlluminationModel(engine)


def _north_facing_dem():
    """45 degree slope descending towards the north."""
    rows = 4000.0 + np.arange(SHAPE[0]) * 30.0
    return make_dem(np.repeat(rows[:, np.newaxis], SHAPE[1], axis=1))


class TestIlluminationFunction:

    def test_flat_terrain_is_cosine_of_zenith(self) -> None:
        il = illumination(np.zeros(3), np.zeros(3), 180.0, 45.0)
        np.testing.assert_allclose(il, math.cos(math.radians(45.0)))

    def test_slope_facing_the_sun(self) -> None:
        il = illumination(np.array([30.0]), np.array([180.0]), 180.0, 30.0)
        # sun 60 degrees from zenith on a 30 degree slope towards it
        assert il[0] == pytest.approx(math.cos(math.radians(30.0)))


class TestTerrain:

    def test_ramp_faces_south(self, engine, ramp_dem) -> None:
        slope, aspect = engine.slope_aspect(ramp_dem)
        np.testing.assert_allclose(slope, math.degrees(math.atan(10.0 / 30.0)))
        np.testing.assert_allclose(aspect, 180.0)

    def test_north_facing(self, engine) -> None:
        slope, aspect = engine.slope_aspect(_north_facing_dem())
        np.testing.assert_allclose(slope, 45.0)
        np.testing.assert_allclose(np.cos(np.radians(aspect)), 1.0)

    def test_east_facing(self, engine) -> None:
        cols = 4000.0 - np.arange(SHAPE[1]) * 30.0
        dem = make_dem(np.repeat(cols[np.newaxis, :], SHAPE[0], axis=0))
        _, aspect = engine.slope_aspect(dem)
        np.testing.assert_allclose(aspect, 90.0)

    def test_single_row_grid_is_flat(self, engine) -> None:
        slope, aspect = engine.slope_aspect(make_dem(np.array([[1.0, 2.0, 3.0]])))
        assert not slope.any()
        assert not aspect.any()


class TestIlluminationModel:

    def test_flat_dem_is_fully_lit(self, model, flat_dem) -> None:
        shadow = model.shadow_mask(flat_dem, 180.0, 45.0)
        assert shadow.shape == SHAPE
        assert not shadow.any()

    def test_slope_facing_away_from_low_sun_is_shadowed(self, model) -> None:
        shadow = model.shadow_mask(_north_facing_dem(), 180.0, 20.0)
        assert shadow.all()

    def test_threshold_is_inclusive_for_shadow(self, engine, flat_dem) -> None:
        # flat terrain under a 45 degree sun has illumination cos(45)
        model = IlluminationModel(engine, QualityThresholds(illumination_threshold=math.cos(math.radians(45.0)) + 1e-12))
        assert model.shadow_mask(flat_dem, 180.0, 45.0).all()

    def test_missing_dem_is_shadowed(self, model) -> None:
        values = np.full(SHAPE, 4500.0)
        values[4, 4] = np.nan
        shadow = model.shadow_mask(make_dem(values), 180.0, 45.0)
        assert shadow[4, 4]
        assert shadow.sum() == 1

    def test_neighbours_of_a_dem_hole_keep_their_slope(self, engine) -> None:
        values = np.full(SHAPE, 4500.0)
        values[4, 4] = np.nan
        slope, _ = engine.slope_aspect(make_dem(values))
        assert np.isnan(slope[4, 4])
        for row, col in ((3, 4), (5, 4), (4, 3), (4, 5)):
            assert slope[row, col] == 0.0

    def test_non_positive_temperature_is_removed(self, model, flat_dem) -> None:
        layout = uniform_layout(SNOW)
        layout[0] = [INVALID] * SHAPE[1]
        masked, keep = model.mask_scene(make_bands(layout), flat_dem, 180.0, 45.0)

        assert not keep[0].any()
        assert keep[1:].all()
        assert np.isnan(masked["G"].values[0]).all()
        assert masked["G"].values[1, 0] == pytest.approx(SNOW["G"])

    def test_masked_bands_keep_georeference(self, model, flat_dem) -> None:
        bands = make_bands(uniform_layout(SNOW))
        masked, _ = model.mask_scene(bands, flat_dem, 180.0, 45.0)
        assert masked.attrs["crs"] == bands.attrs["crs"]
        assert masked.attrs["transform"] == bands.attrs["transform"]
