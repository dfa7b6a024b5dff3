import json
import logging
from pathlib import Path

import numpy as np
import rasterio
from rasterio.transform import Affine

from core.models import ClassifiedRaster, Scene, SurfaceClass

logger = logging.getLogger(__name__)

CLASS_LABELS = {
    0: "No data",
    int(SurfaceClass.SNOW): "Snow",
    int(SurfaceClass.ICE): "Ice",
    int(SurfaceClass.DEBRIS): "Debris",
    int(SurfaceClass.CLOUD_UNKNOWN): "Cloud/Unknown",
}


class ClassificationExporter:
    """Grava a classificação combinada de uma cena como GeoTIFF."""

    def __init__(self, output_dir):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def filename(self, scene: Scene) -> str:
        sensor = scene.sensor.value.replace("LANDSAT_", "L")
        rgi_id = (scene.rgi_id or "unknown").replace(".", "-")
        return f"SurfClass_{sensor}_{rgi_id}_{scene.date}.tif"

    def export(self, classified: ClassifiedRaster, scene: Scene) -> Path:
        codes = classified.codes()
        crs = codes.attrs.get('crs', 'EPSG:4326')
        transform = Affine(*codes.attrs['transform'][:6])
        ny, nx = codes.shape

        output_path = self.output_dir / self.filename(scene)

        with rasterio.open(
            output_path, 'w',
            driver='GTiff',
            height=ny,
            width=nx,
            count=1,
            dtype=rasterio.uint8,
            crs=crs,
            transform=transform,
            compress='lzw',
            nodata=0
        ) as dst:
            dst.write(codes.values.astype(np.uint8), 1)
            dst.set_band_description(1, 'Classification')
            dst.update_tags(
                RGIId=scene.rgi_id,
                LS_ID=scene.scene_id,
                LS_DATE=scene.date,
                SENSOR=scene.sensor.value,
                CLASSES=json.dumps(CLASS_LABELS),
            )

        logger.debug(f"Classification exported: {output_path.name}")
        return output_path
