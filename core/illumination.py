"""
Modelo de iluminação (máscara de sombra a partir do DEM e posição do Sol)
"""
import logging

import numpy as np
import xarray as xr

from config.settings import DEFAULT_QUALITY


def illumination(slope_deg, aspect_deg, sun_azimuth: float, sun_elevation: float):
    """cos(Z)·cos(s) + sin(Z)·sin(s)·cos(az - a), sendo Z o zênite solar."""
    slope = np.radians(np.asarray(slope_deg, dtype=np.float64))
    aspect = np.radians(np.asarray(aspect_deg, dtype=np.float64))
    azimuth = np.radians(sun_azimuth)
    zenith = np.radians(90.0 - sun_elevation)

    return (
        np.cos(zenith) * np.cos(slope)
        + np.sin(zenith) * np.sin(slope) * np.cos(azimuth - aspect)
    )


class IlluminationModel:

    def __init__(self, terrain, thresholds=None):
        self.logger = logging.getLogger(__name__)
        self.terrain = terrain
        self.quality = thresholds or DEFAULT_QUALITY

    def shadow_mask(self, dem, sun_azimuth: float, sun_elevation: float) -> np.ndarray:
        """True onde o pixel está sombreado (iluminação <= threshold ou sem DEM)."""
        slope, aspect = self.terrain.slope_aspect(dem)
        il = illumination(slope, aspect, sun_azimuth, sun_elevation)

        with np.errstate(invalid="ignore"):
            lit = il > self.quality.illumination_threshold

        # no DEM value, no illumination
        shadow = ~lit | ~np.isfinite(np.asarray(dem, dtype=np.float64))
        self.logger.debug(
            f"   Illumination: {int(shadow.sum())}/{shadow.size} pixels shadowed "
            f"(az={sun_azimuth:.1f}, el={sun_elevation:.1f})"
        )
        return shadow

    def valid_mask(self, bands: xr.Dataset, shadow) -> np.ndarray:
        """Pixels iluminados com banda térmica positiva."""
        t = np.asarray(bands["T"], dtype=np.float64)
        with np.errstate(invalid="ignore"):
            return ~np.asarray(shadow, dtype=bool) & (t > 0)

    def apply(self, bands: xr.Dataset, keep) -> xr.Dataset:
        """Mascara o BandSet; pixels removidos viram NaN."""
        dims = bands["T"].dims
        masked = bands.where(xr.DataArray(np.asarray(keep, dtype=bool), dims=dims))
        masked.attrs = dict(bands.attrs)
        return masked

    def mask_scene(self, bands: xr.Dataset, dem, sun_azimuth: float, sun_elevation: float):
        shadow = self.shadow_mask(dem, sun_azimuth, sun_elevation)
        keep = self.valid_mask(bands, shadow)
        return self.apply(bands, keep), keep
