"""Shared fixtures: a 10 x 10 UTM grid of 30 m pixels over a synthetic glacier."""

from __future__ import annotations

import numpy as np
import pytest
import xarray as xr
from rasterio.transform import Affine
from shapely.geometry import box

from core.models import Glacier, Scene, SensorId
from core.raster_engine import RasterEngine, as_raster

CRS = "EPSG:32645"
PIXEL = 30.0
X0, Y0 = 500000.0, 3100000.0
SHAPE = (10, 10)
TRANSFORM = Affine(PIXEL, 0.0, X0, 0.0, -PIXEL, Y0)

# Band values that fall inside exactly one LANDSAT_8 class (or none)
SNOW = {"G": 0.6, "NIR": 0.5, "SWIR1": 0.1, "T": 265.0}
ICE = {"G": 0.4, "NIR": 0.3, "SWIR1": 0.05, "T": 280.0}
DEBRIS = {"G": 0.2, "NIR": 0.3, "SWIR1": 0.3, "T": 300.0}
UNCLASSIFIED = {"G": 0.4, "NIR": 0.3, "SWIR1": 0.4, "T": 280.0}
INVALID = {"G": 0.4, "NIR": 0.3, "SWIR1": 0.4, "T": 0.0}


def make_bands(layout, shape=SHAPE, transform=TRANSFORM, crs=CRS) -> xr.Dataset:
    """BandSet from a per-pixel layout (2D list/array of preset dicts)."""
    height, width = shape
    data = {name: np.zeros(shape) for name in ("B", "G", "R", "NIR", "SWIR1", "SWIR2", "T", "QA")}
    for row in range(height):
        for col in range(width):
            for name, value in layout[row][col].items():
                data[name][row, col] = value
    data["B"] += 0.3
    data["R"] += 0.3
    data["SWIR2"] += 0.1

    return xr.Dataset(
        {name: (("y", "x"), values) for name, values in data.items()},
        attrs={"crs": crs, "transform": tuple(transform)[:6]},
    )


def uniform_layout(preset, shape=SHAPE):
    return [[preset] * shape[1] for _ in range(shape[0])]


def make_dem(values, transform=TRANSFORM, crs=CRS):
    return as_raster(np.asarray(values, dtype=np.float64), transform, crs, name="elevation")


def make_scene(bands, sensor=SensorId.LANDSAT_8, date="2020-08-15", scene_id="LC08_TEST",
               sun_azimuth=180.0, sun_elevation=45.0, rgi_id="RGI60-13.53885") -> Scene:
    return Scene(
        scene_id=scene_id,
        date=date,
        sensor=sensor,
        sun_azimuth=sun_azimuth,
        sun_elevation=sun_elevation,
        bands=bands,
        rgi_id=rgi_id,
    )


@pytest.fixture
def engine() -> RasterEngine:
    return RasterEngine()


@pytest.fixture
def glacier() -> Glacier:
    """Glacier covering the whole grid (0.09 km²)."""
    return Glacier(
        rgi_id="RGI60-13.53885",
        geometry=box(X0, Y0 - SHAPE[0] * PIXEL, X0 + SHAPE[1] * PIXEL, Y0),
        crs=CRS,
    )


@pytest.fixture
def ramp_dem():
    """Elevation rising 10 m per row towards the north: 4000 m (south) to 4090 m."""
    rows = 4000.0 + (SHAPE[0] - 1 - np.arange(SHAPE[0])) * 10.0
    return make_dem(np.repeat(rows[:, np.newaxis], SHAPE[1], axis=1))


@pytest.fixture
def flat_dem():
    return make_dem(np.full(SHAPE, 4500.0))
