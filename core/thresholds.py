"""
Catálogo de thresholds por sensor e classe de superfície
"""
from types import MappingProxyType
from typing import NamedTuple

from core.models import SensorId, SurfaceClass


class ThresholdRow(NamedTuple):
    ndsi_min: float
    ndsi_max: float
    ratio1_min: float
    ratio1_max: float
    ratio2_min: float
    ratio2_max: float

    @property
    def is_vacuous(self) -> bool:
        return (
            self.ndsi_min >= self.ndsi_max
            or self.ratio1_min >= self.ratio1_max
            or self.ratio2_min >= self.ratio2_max
        )


# min == max on every index, the strict predicate can never hold
VACUOUS_ROW = ThresholdRow(99, 99, 99, 99, 99, 99)

#                        NDSI min  NDSI max  Ratio1 min  Ratio1 max  Ratio2 min  Ratio2 max
_SNOW_L1_L5 = ThresholdRow(-99,    -0.6,     -0.9,       -0.15,      -0.15,      99)
_SNOW_L7 = ThresholdRow(   -99,    -0.6,     -1.5,        0,         -0.15,      99)
_SNOW_L8 = ThresholdRow(   -99,    -0.6,     -0.7,       -0.15,      -0.15,      99)

_ICE_L1_L5 = ThresholdRow( -99,    -0.45,    -0.8,        0.3,       -0.6,       -0.15)
_ICE_L7 = ThresholdRow(    -99,    -0.5,     -0.4,        0.55,      -0.7,       -0.15)
_ICE_L8 = ThresholdRow(    -99,    -0.6,     -0.4,        0.55,      -0.7,       -0.15)

_DEBRIS_L1_L5 = ThresholdRow(-0.2,  99,       0.1,        1,         -0.8,       -0.2)
_DEBRIS_L7 = ThresholdRow(   -0.1,  99,       0,          0.6,       -0.8,       -0.2)
_DEBRIS_L8 = ThresholdRow(   -0.2,  99,       0,          0.6,       -0.8,       -0.3)

_LEGACY_SENSORS = (
    SensorId.LANDSAT_1,
    SensorId.LANDSAT_2,
    SensorId.LANDSAT_3,
    SensorId.LANDSAT_4,
    SensorId.LANDSAT_5,
)


def _build_table():
    table = {}
    for sensor in _LEGACY_SENSORS:
        table[(sensor, SurfaceClass.SNOW)] = _SNOW_L1_L5
        table[(sensor, SurfaceClass.ICE)] = _ICE_L1_L5
        table[(sensor, SurfaceClass.DEBRIS)] = _DEBRIS_L1_L5

    table[(SensorId.LANDSAT_7, SurfaceClass.SNOW)] = _SNOW_L7
    table[(SensorId.LANDSAT_7, SurfaceClass.ICE)] = _ICE_L7
    table[(SensorId.LANDSAT_7, SurfaceClass.DEBRIS)] = _DEBRIS_L7

    table[(SensorId.LANDSAT_8, SurfaceClass.SNOW)] = _SNOW_L8
    table[(SensorId.LANDSAT_8, SurfaceClass.ICE)] = _ICE_L8
    table[(SensorId.LANDSAT_8, SurfaceClass.DEBRIS)] = _DEBRIS_L8

    return MappingProxyType(table)


class ThresholdCatalog:
    """Tabela somente leitura de limites de classificação, por (SensorId, SurfaceClass)."""

    CLASSIFIABLE = (SurfaceClass.SNOW, SurfaceClass.ICE, SurfaceClass.DEBRIS)

    _TABLE = _build_table()

    @classmethod
    def get(cls, sensor, surface_class: SurfaceClass) -> ThresholdRow:
        if surface_class not in cls.CLASSIFIABLE:
            raise ValueError(f"{surface_class.name} has no spectral bounds")
        return cls._TABLE.get((SensorId.parse(sensor), surface_class), VACUOUS_ROW)

    @classmethod
    def sensors(cls):
        return sorted({sensor for sensor, _ in cls._TABLE}, key=lambda s: s.value)
