"""
Glacier surface classification and TSLA retrieval
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

from config.settings import load_config
from core.exporter import ClassificationExporter
from core.pipeline import TSLAPipeline, load_glaciers
from core.raster_engine import RasterEngine
from core.searcher import LocalSceneCatalog
from utils.logger import setup_logger

for handler in logging.root.handlers[:]:
    logging.root.removeHandler(handler)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)8s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)

def main():
    parser = argparse.ArgumentParser(description="Glacier surface classification and TSLA retrieval")

    parser.add_argument("--glaciers", required=True, help="Glacier outlines GeoJSON (features with RGIId)")
    parser.add_argument("--rgi-ids", nargs="*", help="Only process these RGI IDs")
    parser.add_argument("--scenes", required=True, help="Scene catalog directory (GeoTIFF + JSON sidecars)")
    parser.add_argument("--dem", required=True, help="DEM GeoTIFF")
    parser.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    parser.add_argument("--output", required=True, help="Output NetCDF file")
    parser.add_argument("--cf-threshold", type=float, help="Minimum classified glacier share (%%) for a TSLA estimate")
    parser.add_argument("--percentile", type=float, help="Percentile of the snow-covered elevations taken as snowline")
    parser.add_argument("--batch-size", type=int, help="Batch size")
    parser.add_argument("--export-classes", help="Directory for classification GeoTIFFs")
    parser.add_argument("--log-level", default="INFO", help="Log level")

    args = parser.parse_args()

    quality, config = load_config()
    if args.cf_threshold is not None:
        quality = replace(quality, cloud_free_threshold_pct=args.cf_threshold)
    if args.percentile is not None:
        config = replace(config, percentile_bin_size=args.percentile)
    if args.batch_size is not None:
        config = replace(config, batch_size=args.batch_size)

    output_path = Path(args.output)
    setup_logger("core", args.log_level, output_path.parent / "pipeline.log")

    logger.info("="*70)
    logger.info("TSLA PIPELINE")
    logger.info("="*70)
    logger.info(f"Glaciers: {args.glaciers}")
    logger.info(f"Scenes: {args.scenes}")
    logger.info(f"DEM: {args.dem}")
    logger.info(f"Period: {args.start} to {args.end}")
    logger.info(f"Output: {args.output}")
    logger.info(f"Cloud-free threshold: {quality.cloud_free_threshold_pct}%")
    logger.info(f"Percentile bin size: {config.percentile_bin_size}")
    if args.export_classes:
        logger.info(f"Export classification: {args.export_classes}")
    logger.info("="*70 + "\n")

    glaciers = load_glaciers(args.glaciers, args.rgi_ids)
    if not glaciers:
        logger.error("ERROR: no glacier with an RGIId found in --glaciers")
        sys.exit(1)

    engine = RasterEngine(config)
    catalog = LocalSceneCatalog(args.scenes, config=config, engine=engine)
    exporter = ClassificationExporter(args.export_classes) if args.export_classes else None

    pipeline = TSLAPipeline(
        glaciers=glaciers,
        catalog=catalog,
        dem=args.dem,
        start_date=args.start,
        end_date=args.end,
        engine=engine,
        quality_thresholds=quality,
        config=config,
        exporter=exporter
    )

    success = asyncio.run(pipeline.execute(output_path))

    if success:
        logger.info("\n" + "="*70)
        logger.info("PIPELINE COMPLETED SUCCESSFULLY!")
        logger.info("="*70)
    else:
        logger.error("\n" + "="*70)
        logger.error("PIPELINE FAILED!")
        logger.error("="*70)
        sys.exit(1)

if __name__ == "__main__":
    main()
