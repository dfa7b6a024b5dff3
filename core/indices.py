"""
Índices espectrais (NDSI e razões com temperatura de brilho)
"""
import numpy as np

from config.settings import DEFAULT_QUALITY
from core.models import IndexSet


def normalized_temperature(t, thresholds=None):
    """Temperatura de brilho (com piso de congelamento) reescalada para a faixa de reflectância."""
    quality = thresholds or DEFAULT_QUALITY
    # np.fmax would swallow NaN; keep invalid pixels invalid
    t_eff = np.where(t < quality.min_brightness_temp, quality.min_brightness_temp, t)
    return (t_eff - quality.temp_offset) / quality.temp_scale


def compute_indices(bands, thresholds=None) -> IndexSet:
    """NDSI, Ratio1 e Ratio2 para cada pixel de um BandSet.

    Aceita um ``xarray.Dataset`` ou qualquer mapeamento banda -> array.
    Denominadores nulos geram NaN, que falha em toda comparação de threshold.
    """
    green = np.asarray(bands["G"], dtype=np.float64)
    nir = np.asarray(bands["NIR"], dtype=np.float64)
    swir = np.asarray(bands["SWIR1"], dtype=np.float64)
    t = np.asarray(bands["T"], dtype=np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        t_norm = normalized_temperature(t, thresholds)

        ndsi = (swir - green) / (swir + green)

        green_nir = green + nir
        ratio1 = (t_norm - green_nir) / (t_norm + green_nir)

        ratio2 = (green - t_norm) / (green + t_norm)

    return IndexSet(
        ndsi=_nan_for_inf(ndsi),
        ratio1=_nan_for_inf(ratio1),
        ratio2=_nan_for_inf(ratio2),
    )


def _nan_for_inf(values):
    values = np.asarray(values, dtype=np.float64)
    values[np.isinf(values)] = np.nan
    return values
