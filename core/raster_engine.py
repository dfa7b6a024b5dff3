"""
Motor raster/geometria local: derivadas do terreno, estatísticas zonais,
vetorização e áreas
"""
import logging
from typing import Optional, Tuple

import numpy as np
import rasterio
import xarray as xr
from pyproj import CRS, Geod, Transformer
from rasterio.errors import RasterioError
from rasterio import features
from rasterio.transform import Affine
from rasterio.warp import reproject, Resampling
from shapely.geometry import Polygon, mapping, shape
from shapely.ops import transform as shapely_transform, unary_union

from config.settings import DEFAULT_CONFIG
from core.errors import ServiceUnavailableError
from core.models import VectorOutline

# Metres per degree, used to scale geographic grids for terrain derivatives
_M_PER_DEG_LAT = 110574.0
_M_PER_DEG_LON = 111320.0

_GEOD = Geod(ellps="WGS84")


def _nan_gradient(z, spacing: float, axis: int) -> np.ndarray:
    """Média das diferenças progressiva e regressiva válidas ao longo de ``axis``.

    Igual a ``np.gradient`` onde os vizinhos existem; junto a células sem DEM usa
    só o lado disponível, e uma célula sem DEM fica NaN.
    """
    diff = np.diff(z, axis=axis) / spacing

    pad = [(0, 0)] * z.ndim
    pad[axis] = (1, 0)
    backward = np.pad(diff, pad, constant_values=np.nan)
    pad[axis] = (0, 1)
    forward = np.pad(diff, pad, constant_values=np.nan)

    count = np.isfinite(backward).astype(np.int8) + np.isfinite(forward).astype(np.int8)
    total = np.where(np.isfinite(backward), backward, 0.0) + np.where(np.isfinite(forward), forward, 0.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(count > 0, total / count, np.nan)


def as_raster(data, transform, crs: str, name: str = None, **attrs) -> xr.DataArray:
    """Envolve um array 2D num DataArray georreferenciado (transform/crs em attrs)."""
    da = xr.DataArray(np.asarray(data), dims=("y", "x"), name=name)
    da.attrs.update({"crs": str(crs), "transform": tuple(Affine(*tuple(transform)[:6]))[:6]})
    da.attrs.update(attrs)
    return da


def grid_of(raster) -> Tuple[Affine, str, Tuple[int, int]]:
    transform = Affine(*raster.attrs["transform"][:6])
    crs = raster.attrs.get("crs", "EPSG:4326")
    if isinstance(raster, xr.Dataset):
        first = next(iter(raster.data_vars.values()))
        height, width = first.shape[-2:]
    else:
        height, width = raster.shape[-2:]
    return transform, crs, (height, width)


class RasterEngine:

    def __init__(self, config=None):
        self.logger = logging.getLogger(__name__)
        self.config = config or DEFAULT_CONFIG

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------
    def to_crs(self, geometry, src_crs: str, dst_crs: str):
        if CRS.from_user_input(src_crs) == CRS.from_user_input(dst_crs):
            return geometry
        transformer = Transformer.from_crs(src_crs, dst_crs, always_xy=True)
        return shapely_transform(transformer.transform, geometry)

    def area_km2(self, geometry, crs: str) -> float:
        if geometry is None or geometry.is_empty:
            return 0.0
        if CRS.from_user_input(crs).is_geographic:
            area, _ = _GEOD.geometry_area_perimeter(geometry)
            return abs(area) / (1000 * 1000)
        return geometry.area / (1000 * 1000)

    def intersection(self, a, b, crs: str = None):
        if a is None or b is None or a.is_empty or b.is_empty:
            return Polygon()
        # snap to the area tolerance on metric grids
        if crs is not None and not CRS.from_user_input(crs).is_geographic:
            return a.intersection(b, grid_size=self.config.area_tolerance_m)
        return a.intersection(b)

    # ------------------------------------------------------------------
    # Raster <-> vector
    # ------------------------------------------------------------------
    def geometry_mask(self, geometry, like) -> np.ndarray:
        """True para pixels cujo centro cai dentro da geometria."""
        transform, _, out_shape = grid_of(like)
        if geometry is None or geometry.is_empty:
            return np.zeros(out_shape, dtype=bool)
        return features.geometry_mask(
            [mapping(geometry)],
            out_shape=out_shape,
            transform=transform,
            invert=True,
        )

    def glacier_mask(self, glacier, like) -> np.ndarray:
        _, crs, _ = grid_of(like)
        geometry = self.to_crs(glacier.geometry, glacier.crs, crs)
        return self.geometry_mask(geometry, like)

    def vectorize(self, mask, like, tags: dict = None) -> VectorOutline:
        """Contorno poligonal dos pixels True, com os atributos dados."""
        transform, crs, _ = grid_of(like)
        mask = np.asarray(mask, dtype=bool)

        polygons = [
            shape(geom)
            for geom, value in features.shapes(mask.astype(np.uint8), mask=mask, transform=transform)
            if value == 1
        ]
        geometry = unary_union(polygons) if polygons else Polygon()

        attrs = dict(tags or {})
        return VectorOutline(
            geometry=geometry,
            area_km2=self.area_km2(geometry, crs),
            attrs=attrs,
        )

    # ------------------------------------------------------------------
    # Zonal statistics
    # ------------------------------------------------------------------
    def reduce_region(self, raster, geometry, reducer) -> Optional[float]:
        """Reduz os pixels finitos de ``raster`` dentro de ``geometry``.

        ``reducer``: mean, median, min, max, stddev, count ou
        ``("percentile", p)``. Região vazia retorna None.
        """
        inside = self.geometry_mask(geometry, raster)
        data = np.asarray(raster, dtype=np.float64)
        values = data[inside & np.isfinite(data)]

        if reducer == "count":
            return int(values.size)
        if values.size == 0:
            return None

        if isinstance(reducer, tuple) and reducer[0] == "percentile":
            return float(np.percentile(values, reducer[1]))
        if reducer == "mean":
            return float(np.mean(values))
        if reducer == "median":
            return float(np.median(values))
        if reducer == "min":
            return float(np.min(values))
        if reducer == "max":
            return float(np.max(values))
        if reducer == "stddev":
            return float(np.std(values))

        raise ValueError(f"Unknown reducer: {reducer}")

    def min_max(self, raster, geometry) -> Tuple[Optional[float], Optional[float]]:
        return self.reduce_region(raster, geometry, "min"), self.reduce_region(raster, geometry, "max")

    # ------------------------------------------------------------------
    # Terrain
    # ------------------------------------------------------------------
    def slope_aspect(self, dem) -> Tuple[np.ndarray, np.ndarray]:
        """Declividade e aspecto em graus; aspecto horário a partir do norte, no sentido da descida."""
        transform, crs, (height, width) = grid_of(dem)
        z = np.asarray(dem, dtype=np.float64)

        if height < 2 or width < 2:
            return np.zeros_like(z), np.zeros_like(z)

        dx = abs(transform.a)
        dy = abs(transform.e)
        if CRS.from_user_input(crs).is_geographic:
            lat = transform.f + transform.e * height / 2
            dx = dx * _M_PER_DEG_LON * np.cos(np.radians(lat))
            dy = dy * _M_PER_DEG_LAT

        dz_drow = _nan_gradient(z, dy, axis=0)
        dz_dcol = _nan_gradient(z, dx, axis=1)
        # rows run south when the transform is north-up
        dz_dnorth = -dz_drow if transform.e < 0 else dz_drow
        dz_deast = dz_dcol if transform.a > 0 else -dz_dcol

        slope = np.degrees(np.arctan(np.hypot(dz_deast, dz_dnorth)))
        aspect = np.degrees(np.arctan2(-dz_deast, -dz_dnorth)) % 360.0
        return slope, aspect

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------
    def load_dem(self, dem_path, like) -> xr.DataArray:
        """Reprojeta o DEM na grade de ``like`` (bilinear, nodata NaN)."""
        transform, crs, out_shape = grid_of(like)
        destination = np.full(out_shape, np.nan, dtype=np.float32)

        try:
            with rasterio.open(dem_path) as src:
                reproject(
                    source=rasterio.band(src, 1),
                    destination=destination,
                    src_transform=src.transform,
                    src_crs=src.crs,
                    dst_transform=transform,
                    dst_crs=crs,
                    resampling=Resampling.bilinear,
                    src_nodata=src.nodata,
                    dst_nodata=np.nan,
                )
        except RasterioError as e:
            raise ServiceUnavailableError(f"DEM read failed ({dem_path}): {e}") from e

        return as_raster(destination.astype(np.float64), transform, crs, name="elevation")
