"""
Catálogo local de cenas Landsat (GeoTIFF multibanda + metadados JSON)
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

import numpy as np
import rasterio
import xarray as xr
from rasterio.errors import RasterioError
from rasterio.transform import from_bounds
from rasterio.warp import reproject, Resampling
from shapely.geometry import box
from pyproj import CRS

from config.settings import DEFAULT_CONFIG
from core.errors import CatalogError, MissingSceneError, ServiceUnavailableError
from core.merger import SceneMerger
from core.models import BAND_NAMES, Scene, SensorId
from core.raster_engine import RasterEngine

_M_PER_DEG = 111320.0


@dataclass(frozen=True)
class CatalogEntry:
    scene_id: str
    date: str
    sensor: SensorId
    sun_azimuth: float
    sun_elevation: float
    path: Path
    crs: str
    bounds: tuple
    res: tuple


class LocalSceneCatalog:
    """Cenas guardadas como ``<nome>.tif`` com sidecar ``<nome>.json``.

    O sidecar traz scene_id, date (YYYY-MM-DD), sensor, sun_azimuth e
    sun_elevation. As descrições das bandas dão os nomes (B, G, R, NIR, SWIR1,
    SWIR2, T, QA); sem descrições, assume essa ordem.
    """

    def __init__(self, root, config=None, engine=None, merger=None):
        self.logger = logging.getLogger(__name__)
        self.root = Path(root)
        self.config = config or DEFAULT_CONFIG
        self.engine = engine or RasterEngine(self.config)
        self.merger = merger or SceneMerger()
        self.entries = self._index()

    def _index(self) -> List[CatalogEntry]:
        entries = []
        for sidecar in sorted(self.root.glob("*.json")):
            try:
                entries.append(self._read_entry(sidecar))
            except CatalogError as e:
                self.logger.warning(f"Skipping {sidecar.name}: {e}")

        self.logger.info(f"✅ {len(entries)} scenes indexed in {self.root}")
        return entries

    def _read_entry(self, sidecar: Path) -> CatalogEntry:
        try:
            with open(sidecar, 'r') as f:
                meta = json.load(f)
            path = sidecar.with_name(meta.get("file", sidecar.stem + ".tif"))
            with rasterio.open(path) as src:
                crs = src.crs.to_string()
                bounds = tuple(src.bounds)
                res = src.res
            return CatalogEntry(
                scene_id=str(meta["scene_id"]),
                date=str(meta["date"])[:10],
                sensor=SensorId.parse(meta.get("sensor")),
                sun_azimuth=float(meta["sun_azimuth"]),
                sun_elevation=float(meta["sun_elevation"]),
                path=path,
                crs=crs,
                bounds=bounds,
                res=res,
            )
        except (KeyError, TypeError, ValueError, RasterioError) as e:
            raise CatalogError(str(e)) from e

    def _footprint(self, glacier, crs: str):
        geometry = self.engine.to_crs(glacier.geometry, glacier.crs, crs)
        buffer = self.config.dem_buffer_m
        if CRS.from_user_input(crs).is_geographic:
            buffer = buffer / _M_PER_DEG
        return box(*geometry.bounds).buffer(buffer, join_style=2)

    def _entries_for(self, glacier, start: str, end: str) -> List[CatalogEntry]:
        return [
            entry for entry in self.entries
            if start <= entry.date <= end
            and box(*entry.bounds).intersects(self.engine.to_crs(glacier.geometry, glacier.crs, entry.crs))
        ]

    def available_dates(self, glacier, start: str, end: str) -> List[str]:
        return sorted({entry.date for entry in self._entries_for(glacier, start, end)})

    def search(self, glacier, start: str, end: str) -> List[Scene]:
        return [self.get(glacier, date) for date in self.available_dates(glacier, start, end)]

    def get(self, glacier, date: str) -> Scene:
        entries = self._entries_for(glacier, date, date)
        if not entries:
            raise MissingSceneError(glacier.rgi_id, date)

        grid = self._target_grid(glacier, entries[0])
        tiles = [(entry, self._read_bands(entry, grid)) for entry in entries]
        return self.merger.merge_same_day(tiles, glacier.rgi_id)

    def _target_grid(self, glacier, entry: CatalogEntry) -> dict:
        west, south, east, north = self._footprint(glacier, entry.crs).bounds
        x_res, y_res = entry.res
        width = max(int(np.ceil((east - west) / x_res)), 1)
        height = max(int(np.ceil((north - south) / y_res)), 1)
        grid_east = west + width * x_res
        grid_north = south + height * y_res
        return {
            "crs": entry.crs,
            "transform": from_bounds(west, south, grid_east, grid_north, width, height),
            "shape": (height, width),
        }

    def _read_bands(self, entry: CatalogEntry, grid: dict) -> xr.Dataset:
        try:
            with rasterio.open(entry.path) as src:
                names = [d if d else n for d, n in zip(src.descriptions, BAND_NAMES)]
                data_vars = {}
                for index, name in enumerate(names, start=1):
                    destination = np.full(grid["shape"], np.nan, dtype=np.float64)
                    reproject(
                        source=rasterio.band(src, index),
                        destination=destination,
                        src_transform=src.transform,
                        src_crs=src.crs,
                        dst_transform=grid["transform"],
                        dst_crs=grid["crs"],
                        resampling=Resampling.nearest,
                        src_nodata=src.nodata,
                        dst_nodata=np.nan,
                    )
                    data_vars[name] = (("y", "x"), destination)
        except RasterioError as e:
            raise ServiceUnavailableError(f"Read failed for {entry.path.name}: {e}") from e

        missing = set(BAND_NAMES) - set(data_vars)
        if missing:
            raise CatalogError(f"{entry.path.name} lacks bands {sorted(missing)}")

        return xr.Dataset(
            data_vars,
            attrs={
                "crs": grid["crs"],
                "transform": tuple(grid["transform"])[:6],
                "scene_id": entry.scene_id,
                "date": entry.date,
            },
        )
