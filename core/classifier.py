"""
Classificação de superfícies por thresholds espectrais
"""
import logging
from typing import Dict

import numpy as np

from core.models import IndexSet, SensorId, SurfaceClass
from core.thresholds import ThresholdCatalog, ThresholdRow


def within(values, lower, upper):
    """Teste de intervalo aberto estrito; NaN nunca está dentro."""
    with np.errstate(invalid="ignore"):
        return (values > lower) & (values < upper)


def matches(indices: IndexSet, row: ThresholdRow):
    return (
        within(indices.ndsi, row.ndsi_min, row.ndsi_max)
        & within(indices.ratio1, row.ratio1_min, row.ratio1_max)
        & within(indices.ratio2, row.ratio2_min, row.ratio2_max)
    )


class SurfaceClassifier:

    def __init__(self, catalog=ThresholdCatalog):
        self.logger = logging.getLogger(__name__)
        self.catalog = catalog

    def classify(self, indices: IndexSet, sensor, surface_class: SurfaceClass) -> np.ndarray:
        row = self.catalog.get(sensor, surface_class)
        return np.asarray(matches(indices, row), dtype=bool)

    def classify_all(self, indices: IndexSet, sensor) -> Dict[SurfaceClass, np.ndarray]:
        sensor = SensorId.parse(sensor)
        if sensor is SensorId.UNKNOWN:
            self.logger.warning("Unknown sensor, every pixel resolves to cloud/unknown")

        masks = {
            surface_class: self.classify(indices, sensor, surface_class)
            for surface_class in self.catalog.CLASSIFIABLE
        }

        self.logger.debug(
            f"   {sensor.value}: "
            + " | ".join(f"{c.name.lower()}={int(m.sum())}" for c, m in masks.items())
        )
        return masks
