"""
Estatísticas da linha de neve transitória (TSLA) e métricas de qualidade
"""
import logging
import math
from typing import Dict, Optional

import numpy as np
import xarray as xr

from config.settings import DEFAULT_CONFIG, DEFAULT_QUALITY
from core.coverage import CoverageResult, percent
from core.models import Scene, SnowlineState, TSLAResult
from core.raster_engine import grid_of

STAT_REDUCERS = {
    "mean": "mean",
    "median": "median",
    "min": "min",
    "max": "max",
    "stdev": "stddev",
}

# Quality metrics when no snowline elevation band can be derived
UNCERTAIN_PCT = 100.0


class SnowlineStatisticsEngine:
    """Transforma uma cena resolvida num TSLAResult.

    A unidade começa GATED. Vira INSUFFICIENT quando a fração classificada da
    geleira fica abaixo do cloud-free threshold ou não há neve; vira ESTIMATED
    quando existem as estatísticas do DEM nos pixels de neve mais baixos.
    """

    def __init__(self, engine, config=None, thresholds=None):
        self.logger = logging.getLogger(__name__)
        self.engine = engine
        self.config = config or DEFAULT_CONFIG
        self.quality = thresholds or DEFAULT_QUALITY

    def percentile_masked_dem(self, dem: xr.DataArray, snow_outline) -> Optional[xr.DataArray]:
        """DEM restrito às elevações até o percentil P da região de neve."""
        e_p = self.engine.reduce_region(
            dem, snow_outline.geometry, ("percentile", self.config.percentile_bin_size)
        )
        if e_p is None:
            return None
        masked = dem.where(dem <= e_p)
        masked.attrs = dict(dem.attrs)
        return masked

    def snow_statistics(self, dem: xr.DataArray, snow_outline) -> Optional[Dict[str, float]]:
        masked = self.percentile_masked_dem(dem, snow_outline)
        if masked is None:
            return None

        stats = {
            name: self.engine.reduce_region(masked, snow_outline.geometry, reducer)
            for name, reducer in STAT_REDUCERS.items()
        }
        if any(value is None for value in stats.values()):
            return None
        return stats

    def tsl_range_metrics(self, dem, glacier_geometry, coverage: CoverageResult, stats, tags) -> tuple:
        """Fração de nuvem e de área classificada da geleira dentro de (média - dp, média + dp]."""
        if stats is None or not (stats["mean"] > 0 and stats["stdev"] > 0):
            return UNCERTAIN_PCT, UNCERTAIN_PCT

        _, crs, _ = grid_of(dem)
        low = stats["mean"] - stats["stdev"]
        high = stats["mean"] + stats["stdev"]

        z = np.asarray(dem, dtype=np.float64)
        with np.errstate(invalid="ignore"):
            in_band = (z > low) & (z <= high)
        in_band &= self.engine.geometry_mask(glacier_geometry, dem)

        band = self.engine.vectorize(in_band, dem, tags)
        if band.is_empty:
            return UNCERTAIN_PCT, UNCERTAIN_PCT

        cloud_in_band = self.engine.intersection(band.geometry, coverage.outlines["cloud"].geometry, crs)
        total_in_band = self.engine.intersection(band.geometry, coverage.outlines["total"].geometry, crs)

        return (
            percent(self.engine.area_km2(cloud_in_band, crs), band.area_km2),
            percent(self.engine.area_km2(total_in_band, crs), band.area_km2),
        )

    def estimate(self, scene: Scene, glacier, coverage: CoverageResult, dem: xr.DataArray) -> TSLAResult:
        tags = scene.tags()
        _, crs, _ = grid_of(dem)
        glacier_geometry = self.engine.to_crs(glacier.geometry, glacier.crs, crs)

        glacier_min, glacier_max = self.engine.min_max(dem, glacier_geometry)

        debris_ice = coverage.outlines["debris_ice"]
        debris_ice_max = None
        if debris_ice.area_km2 > 0:
            debris_ice_max = self.engine.reduce_region(dem, debris_ice.geometry, "max")

        state = SnowlineState.GATED
        stats = None
        snow = coverage.outlines["snow"]
        class_coverage = coverage.class_coverage_pct
        cf_threshold = self.quality.cloud_free_threshold_pct

        if math.isnan(class_coverage) or class_coverage < cf_threshold:
            state = SnowlineState.INSUFFICIENT
            self.logger.debug(
                f"   {tags['RGIId']} {tags['LS_DATE']}: classified {class_coverage:.1f}% < {cf_threshold}%"
            )
        elif snow.area_km2 == 0:
            state = SnowlineState.INSUFFICIENT
            self.logger.debug(f"   {tags['RGIId']} {tags['LS_DATE']}: no snow-covered area")
        else:
            stats = self.snow_statistics(dem, snow)
            state = SnowlineState.ESTIMATED if stats is not None else SnowlineState.INSUFFICIENT

        cloud_in_range, class_in_range = self.tsl_range_metrics(
            dem, glacier_geometry, coverage, stats, tags
        )

        stats = stats or {}
        return TSLAResult(
            rgi_id=snow.rgi_id,
            scene_id=snow.scene_id,
            date=snow.date,
            sensor=scene.sensor.value,
            glacier_area=coverage.glacier_area,
            glacier_elev_min=glacier_min,
            glacier_elev_max=glacier_max,
            tsla_mean=stats.get("mean"),
            tsla_median=stats.get("median"),
            tsla_min=stats.get("min"),
            tsla_max=stats.get("max"),
            tsla_stdev=stats.get("stdev"),
            snow_area=snow.area_km2,
            ice_area=coverage.area("ice"),
            debris_area=coverage.area("debris"),
            cloud_area=coverage.area("cloud"),
            debris_ice_area=debris_ice.area_km2,
            debris_ice_max_elev=debris_ice_max,
            class_coverage_pct=class_coverage,
            cloud_fraction_pct=coverage.cloud_fraction_pct,
            cloud_in_tsl_range_pct=cloud_in_range,
            class_in_tsl_range_pct=class_in_range,
            state=state,
            status=1 if state is SnowlineState.ESTIMATED else 0,
            tool_version=self.config.tool_version,
        )
