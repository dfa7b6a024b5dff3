"""
Partição das classes de superfície e métricas de cobertura
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict

import numpy as np

from core.models import ClassifiedRaster, SurfaceClass, VectorOutline
from core.raster_engine import as_raster, grid_of

REGIONS = ("snow", "ice", "debris", "cloud", "debris_ice", "total")


def percent(numerator: float, denominator: float) -> float:
    """numerador / denominador * 100, NaN para denominador nulo ou ausente."""
    if denominator is None or numerator is None or denominator == 0 or math.isnan(denominator):
        return math.nan
    return numerator / denominator * 100


@dataclass(frozen=True)
class CoverageResult:
    classified: ClassifiedRaster
    outlines: Dict[str, VectorOutline]
    glacier_area: float
    class_coverage_pct: float
    cloud_fraction_pct: float

    def area(self, region: str) -> float:
        return self.outlines[region].area_km2


class CoverageResolver:

    def __init__(self, engine):
        self.logger = logging.getLogger(__name__)
        self.engine = engine

    def partition(self, masks: Dict[SurfaceClass, np.ndarray], valid, like, tags: dict = None) -> ClassifiedRaster:
        """Restringe as máscaras aos pixels válidos; nuvem/desconhecido é o resíduo."""
        transform, crs, _ = grid_of(like)
        valid = np.asarray(valid, dtype=bool)

        def _wrap(mask, name):
            return as_raster(np.asarray(mask, dtype=bool) & valid, transform, crs, name=name)

        snow = _wrap(masks[SurfaceClass.SNOW], "snow")
        ice = _wrap(masks[SurfaceClass.ICE], "ice")
        debris = _wrap(masks[SurfaceClass.DEBRIS], "debris")

        detected = snow | ice | debris
        cloud_unknown = _wrap(~detected.values, "cloud_unknown")

        return ClassifiedRaster(
            snow=snow,
            ice=ice,
            debris=debris,
            cloud_unknown=cloud_unknown,
            valid=as_raster(valid, transform, crs, name="valid"),
            attrs=dict(tags or {}),
        )

    def resolve(self, masks: Dict[SurfaceClass, np.ndarray], valid, glacier, like, tags: dict = None) -> CoverageResult:
        tags = dict(tags or {})
        _, crs, _ = grid_of(like)

        on_glacier = self.engine.glacier_mask(glacier, like)
        classified = self.partition(masks, np.asarray(valid, dtype=bool) & on_glacier, like, tags)

        regions = {
            "snow": classified.snow,
            "ice": classified.ice,
            "debris": classified.debris,
            "cloud": classified.cloud_unknown,
            "debris_ice": classified.debris_plus_ice,
            "total": classified.total,
        }
        outlines = {
            name: self.engine.vectorize(region.values, like, tags)
            for name, region in regions.items()
        }

        glacier_area = self.engine.area_km2(glacier.geometry, glacier.crs)
        total_area = outlines["total"].area_km2

        class_coverage = percent(total_area, glacier_area)
        # reprojected outlines may overshoot the RGI polygon
        if not math.isnan(class_coverage):
            class_coverage = min(class_coverage, 100.0)

        cloud_fraction = percent(outlines["cloud"].area_km2, total_area)

        self.logger.debug(
            f"   Coverage {tags.get('RGIId')} {tags.get('LS_DATE')}: "
            f"snow={outlines['snow'].area_km2:.3f} ice={outlines['ice'].area_km2:.3f} "
            f"debris={outlines['debris'].area_km2:.3f} cloud={outlines['cloud'].area_km2:.3f} km² "
            f"| classified {class_coverage:.1f}% of {glacier_area:.3f} km²"
        )

        return CoverageResult(
            classified=classified,
            outlines=outlines,
            glacier_area=glacier_area,
            class_coverage_pct=class_coverage,
            cloud_fraction_pct=cloud_fraction,
        )
