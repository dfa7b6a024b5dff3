import logging
from typing import List, Tuple

import xarray as xr

from core.models import Scene


class SceneMerger:
    """Mosaica aquisições do mesmo dia numa grade; tiles posteriores por cima."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def mosaic(self, datasets: List[xr.Dataset]) -> xr.Dataset:
        merged = datasets[0]
        for ds in datasets[1:]:
            merged = ds.combine_first(merged)
        merged.attrs = datasets[0].attrs.copy()
        return merged

    def merge_same_day(self, tiles: List[Tuple[object, xr.Dataset]], rgi_id: str = None) -> Scene:
        """Monta uma Scene a partir dos tiles (entrada do catálogo, bandas) de uma data.

        Metadados (scene id, sensor, posição do Sol) vêm do primeiro tile.
        """
        first, _ = tiles[0]
        datasets = [ds for _, ds in tiles]

        if len(datasets) == 1:
            bands = datasets[0]
        else:
            scene_ids = [entry.scene_id for entry, _ in tiles]
            self.logger.debug(f"📅 {first.date}: Merging {len(datasets)} scenes: {scene_ids}")

            bands = self.mosaic(datasets)
            bands.attrs['num_scenes_merged'] = len(datasets)

        return Scene(
            scene_id=first.scene_id,
            date=first.date,
            sensor=first.sensor,
            sun_azimuth=first.sun_azimuth,
            sun_elevation=first.sun_elevation,
            bands=bands,
            rgi_id=rgi_id,
        )
