"""
Processamento de unidades individuais (geleira x data)
"""
import asyncio
import logging
from typing import Optional

import xarray as xr

from config.settings import DEFAULT_CONFIG, DEFAULT_QUALITY
from core.classifier import SurfaceClassifier
from core.coverage import CoverageResolver
from core.errors import CatalogError, MissingSceneError, ServiceUnavailableError
from core.illumination import IlluminationModel
from core.indices import compute_indices
from core.models import Glacier, Scene, TSLAResult
from core.raster_engine import RasterEngine
from core.snowline import SnowlineStatisticsEngine


class UnitProcessor:

    def __init__(
        self,
        catalog,
        dem,
        engine: RasterEngine = None,
        quality_thresholds=None,
        config=None,
        exporter=None,
        max_retries: int = None
    ):
        self.logger = logging.getLogger(__name__)
        self.catalog = catalog
        # DEM path, or a callable mapping a Scene to a DEM aligned with its bands
        self.dem = dem
        self.config = config or DEFAULT_CONFIG
        self.quality = quality_thresholds or DEFAULT_QUALITY
        self.engine = engine or RasterEngine(self.config)
        self.exporter = exporter
        self.max_retries = max_retries if max_retries is not None else self.config.max_retries
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1 (got {self.max_retries})")

        self.illumination = IlluminationModel(self.engine, self.quality)
        self.classifier = SurfaceClassifier()
        self.resolver = CoverageResolver(self.engine)
        self.snowline = SnowlineStatisticsEngine(self.engine, self.config, self.quality)

    async def process(
        self,
        glacier: Glacier,
        date: str,
        unit_idx: int,
        total_units: int,
        pbar: Optional = None
    ) -> Optional[TSLAResult]:

        label = f"[{unit_idx+1:02d}/{total_units:02d}] {glacier.rgi_id} {date}"

        for attempt in range(self.max_retries):
            try:
                if attempt == 0:
                    self.logger.debug(label)

                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, self.run_unit, glacier, date)

                if pbar:
                    pbar.update(1)
                return result

            except (MissingSceneError, CatalogError) as e:
                self.logger.warning(f"{label} skipped: {e}")
                if pbar:
                    pbar.update(1)
                return None

            except ServiceUnavailableError as e:
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Tried {attempt + 2}/{self.max_retries}: {e}")
                    await asyncio.sleep(2 ** attempt)
                else:
                    self.logger.error(f"{label} fault: {e}")
                    if pbar:
                        pbar.update(1)
                    return None

            except Exception as e:
                self.logger.error(f"{label} fault: {e}", exc_info=True)
                if pbar:
                    pbar.update(1)
                return None

    def load_dem(self, scene: Scene) -> xr.DataArray:
        if callable(self.dem):
            return self.dem(scene)
        return self.engine.load_dem(self.dem, like=scene.bands)

    def run_unit(self, glacier: Glacier, date: str) -> TSLAResult:
        scene = self.catalog.get(glacier, date)
        dem = self.load_dem(scene)
        return self.process_scene(scene, glacier, dem)

    def process_scene(self, scene: Scene, glacier: Glacier, dem: xr.DataArray) -> TSLAResult:
        """Máscara de iluminação -> índices -> classes -> cobertura -> snowline, para uma cena"""
        masked, keep = self.illumination.mask_scene(
            scene.bands, dem, scene.sun_azimuth, scene.sun_elevation
        )

        indices = compute_indices(masked, self.quality)
        masks = self.classifier.classify_all(indices, scene.sensor)

        coverage = self.resolver.resolve(masks, keep, glacier, scene.bands, scene.tags())
        result = self.snowline.estimate(scene, glacier, coverage, dem)

        if self.exporter is not None:
            self.exporter.export(coverage.classified, scene)

        self.logger.debug(
            f"   {result.rgi_id} {result.date}: {result.state.value} "
            f"(TSLA median={result.tsla_median}, coverage={result.class_coverage_pct:.1f}%)"
        )
        return result
