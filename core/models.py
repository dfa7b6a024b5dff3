"""
Modelos de dados do pipeline de TSLA
"""
from dataclasses import dataclass, field, asdict
from enum import Enum, IntEnum
from typing import Optional, Dict

import xarray as xr

BAND_NAMES = ["B", "G", "R", "NIR", "SWIR1", "SWIR2", "T", "QA"]


class SensorId(Enum):
    LANDSAT_1 = "LANDSAT_1"
    LANDSAT_2 = "LANDSAT_2"
    LANDSAT_3 = "LANDSAT_3"
    LANDSAT_4 = "LANDSAT_4"
    LANDSAT_5 = "LANDSAT_5"
    LANDSAT_6 = "LANDSAT_6"
    LANDSAT_7 = "LANDSAT_7"
    LANDSAT_8 = "LANDSAT_8"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value) -> "SensorId":
        """Converte o id do satélite ("LANDSAT_8", "landsat-8") em SensorId."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        key = str(value).strip().upper().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


class SurfaceClass(IntEnum):
    """Classes de superfície, com o código usado no raster de classificação."""
    SNOW = 1
    ICE = 2
    DEBRIS = 3
    CLOUD_UNKNOWN = 4


class SnowlineState(Enum):
    GATED = "gated"
    INSUFFICIENT = "insufficient"
    ESTIMATED = "estimated"


@dataclass(frozen=True)
class Glacier:
    rgi_id: str
    geometry: object
    crs: str = "EPSG:4326"


@dataclass(frozen=True)
class Scene:
    """Aquisição de uma (geleira, data), tiles do mesmo dia já mosaicados."""
    scene_id: str
    date: str
    sensor: SensorId
    sun_azimuth: float
    sun_elevation: float
    bands: xr.Dataset
    rgi_id: str = None

    def tags(self) -> Dict[str, str]:
        return {"RGIId": self.rgi_id, "LS_ID": self.scene_id, "LS_DATE": self.date}


@dataclass(frozen=True)
class IndexSet:
    ndsi: object
    ratio1: object
    ratio2: object


@dataclass(frozen=True)
class VectorOutline:
    geometry: object
    area_km2: float
    attrs: Dict[str, object] = field(default_factory=dict)

    @property
    def rgi_id(self):
        return self.attrs.get("RGIId")

    @property
    def scene_id(self):
        return self.attrs.get("LS_ID")

    @property
    def date(self):
        return self.attrs.get("LS_DATE")

    @property
    def is_empty(self) -> bool:
        return self.geometry is None or self.geometry.is_empty


@dataclass(frozen=True)
class ClassifiedRaster:
    """Máscaras disjuntas por classe, restritas aos pixels válidos da geleira."""
    snow: xr.DataArray
    ice: xr.DataArray
    debris: xr.DataArray
    cloud_unknown: xr.DataArray
    valid: xr.DataArray
    attrs: Dict[str, object] = field(default_factory=dict)

    @property
    def debris_plus_ice(self) -> xr.DataArray:
        return self.debris | self.ice

    @property
    def detected(self) -> xr.DataArray:
        return self.debris_plus_ice | self.snow

    @property
    def total(self) -> xr.DataArray:
        return (self.detected | self.cloud_unknown) & self.valid

    def mask(self, surface_class: SurfaceClass) -> xr.DataArray:
        return {
            SurfaceClass.SNOW: self.snow,
            SurfaceClass.ICE: self.ice,
            SurfaceClass.DEBRIS: self.debris,
            SurfaceClass.CLOUD_UNKNOWN: self.cloud_unknown,
        }[surface_class]

    def codes(self) -> xr.DataArray:
        """Raster de banda única: 1 neve, 2 gelo, 3 detrito, 4 nuvem/desconhecido, 0 fora."""
        codes = xr.zeros_like(self.valid, dtype="uint8")
        for surface_class in SurfaceClass:
            codes = codes.where(~self.mask(surface_class), int(surface_class))
        codes.attrs = dict(self.valid.attrs)
        codes.attrs.update(self.attrs)
        return codes


@dataclass(frozen=True)
class TSLAResult:
    rgi_id: str
    scene_id: str
    date: str
    sensor: str
    glacier_area: float
    glacier_elev_min: Optional[float]
    glacier_elev_max: Optional[float]
    tsla_mean: Optional[float]
    tsla_median: Optional[float]
    tsla_min: Optional[float]
    tsla_max: Optional[float]
    tsla_stdev: Optional[float]
    snow_area: float
    ice_area: float
    debris_area: float
    cloud_area: float
    debris_ice_area: float
    debris_ice_max_elev: Optional[float]
    class_coverage_pct: float
    cloud_fraction_pct: float
    cloud_in_tsl_range_pct: float
    class_in_tsl_range_pct: float
    state: SnowlineState
    status: int
    tool_version: str = None

    def to_record(self) -> Dict[str, object]:
        record = asdict(self)
        record["state"] = self.state.value
        return record
