"""
Orquestrador principal do pipeline de TSLA
"""
import asyncio
import logging
import json
from typing import List, Optional

from tqdm import tqdm
from shapely.geometry import shape

from config.settings import DEFAULT_CONFIG, DEFAULT_QUALITY
from core.models import Glacier
from core.processor import UnitProcessor
from core.sink import ResultSink


def load_glaciers(path, rgi_ids: List[str] = None, crs: str = "EPSG:4326") -> List[Glacier]:
    """Carrega geleiras de um GeoJSON (FeatureCollection com propriedade RGIId)"""
    with open(path, 'r') as f:
        data = json.load(f)

    features = data['features'] if data.get('type') == 'FeatureCollection' else [data]
    glaciers = []
    for feature in features:
        rgi_id = feature.get('properties', {}).get('RGIId')
        if rgi_id is None:
            continue
        if rgi_ids and rgi_id not in rgi_ids:
            continue
        glaciers.append(Glacier(rgi_id=rgi_id, geometry=shape(feature['geometry']), crs=crs))
    return glaciers


class TSLAPipeline:
    """Processa cada unidade (geleira, data) de forma independente e coleta os resultados."""

    def __init__(
        self,
        glaciers: List[Glacier],
        catalog,
        dem,
        start_date: str,
        end_date: str,
        engine=None,
        quality_thresholds=None,
        config=None,
        exporter=None,
        sink: ResultSink = None,
        batch_size: int = None,
        max_retries: int = None
    ):
        self.logger = logging.getLogger(__name__)
        self.glaciers = glaciers
        self.catalog = catalog
        self.start_date = start_date
        self.end_date = end_date
        self.config = config or DEFAULT_CONFIG
        self.quality = quality_thresholds or DEFAULT_QUALITY
        self.batch_size = batch_size or self.config.batch_size

        self.sink = sink if sink is not None else ResultSink()
        self.processor = UnitProcessor(
            catalog,
            dem,
            engine=engine,
            quality_thresholds=self.quality,
            config=self.config,
            exporter=exporter,
            max_retries=max_retries
        )

        self.units = []
        self.stats = {"success": 0, "failed": 0, "skipped": 0}

    def plan_units(self) -> list:
        """Produto cartesiano das geleiras com as datas que têm imagem"""
        units = []
        for glacier in self.glaciers:
            dates = self.catalog.available_dates(glacier, self.start_date, self.end_date)
            if not dates:
                self.logger.warning(f"No Landsat scene for {glacier.rgi_id} ({self.start_date} - {self.end_date})")
                self.stats["skipped"] += 1
                continue
            units.extend((glacier, date) for date in dates)

        self.logger.info(f"📍 {len(self.glaciers)} glaciers, {len(units)} units")
        return units

    async def run_pipeline(self) -> int:
        """Processa todas as unidades em lotes"""
        self.logger.info("🚀 Starting batch processing...")

        with tqdm(total=len(self.units), desc="Processing units", unit="unit") as pbar:
            for batch_idx in range(0, len(self.units), self.batch_size):
                batch = self.units[batch_idx:batch_idx + self.batch_size]
                batch_num = batch_idx // self.batch_size + 1
                total_batches = (len(self.units) + self.batch_size - 1) // self.batch_size

                self.logger.info(f"📦 Batch {batch_num}/{total_batches} ({len(batch)} units)")

                tasks = [
                    self.processor.process(
                        glacier,
                        date,
                        batch_idx + i,
                        len(self.units),
                        pbar
                    )
                    for i, (glacier, date) in enumerate(batch)
                ]

                batch_results = await asyncio.gather(*tasks)
                for result in batch_results:
                    if result is None:
                        self.stats["failed"] += 1
                    else:
                        self.sink.append(result)
                        self.stats["success"] += 1

                self.logger.debug(
                    f"✅ Batch {batch_num}: {sum(r is not None for r in batch_results)}/{len(batch)} success"
                )

        return len(self.sink)

    async def execute(self, output_path: Optional[str] = None) -> bool:
        """Executa pipeline completo"""
        try:
            self.units = self.plan_units()
            if not self.units:
                self.logger.error("❌ No units to process")
                return False

            await self.run_pipeline()

            if not len(self.sink):
                self.logger.error("❌ No unit produced a result")
                return False

            if output_path:
                self.sink.to_netcdf(output_path)

            estimated = sum(r.status for r in self.sink.results())
            self.logger.info(f"\n📊 Processing complete:")
            self.logger.info(f"   Results: {len(self.sink)} ({estimated} with TSLA estimate)")
            self.logger.info(f"   Omitted units: {self.stats['failed']}")
            return True

        except Exception as e:
            self.logger.error(f"❌ Fatal error: {e}", exc_info=True)
            return False
