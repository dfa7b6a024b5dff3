"""
Configurações e constantes do pipeline de TSLA
"""
import os
from dataclasses import dataclass, replace

@dataclass
class QualityThresholds:
    """Thresholds de qualidade para máscaras e gates"""
    # Scene-level
    cloud_free_threshold_pct: float = 20.0

    # Pixel-level
    illumination_threshold: float = 0.35
    min_brightness_temp: float = 263.15

    # Brightness temperature normalization: (T - offset) / scale
    temp_offset: float = 230.0
    temp_scale: float = 70.0

@dataclass
class TSLAConfig:
    """Configuração geral do pipeline"""
    percentile_bin_size: float = 2.0
    dem_buffer_m: float = 1000.0
    area_tolerance_m: float = 0.1
    batch_size: int = 10
    max_retries: int = 3
    tool_version: str = "0.8.1"

# Instâncias padrão
DEFAULT_QUALITY = QualityThresholds()
DEFAULT_CONFIG = TSLAConfig()


def load_config(env=None) -> tuple:
    """Aplica overrides TSLA_* do ambiente sobre os defaults"""
    env = os.environ if env is None else env

    quality = DEFAULT_QUALITY
    config = DEFAULT_CONFIG

    if "TSLA_CF_THRESHOLD" in env:
        quality = replace(quality, cloud_free_threshold_pct=float(env["TSLA_CF_THRESHOLD"]))
    if "TSLA_PERCENTILE_BIN_SIZE" in env:
        config = replace(config, percentile_bin_size=float(env["TSLA_PERCENTILE_BIN_SIZE"]))
    if "TSLA_BATCH_SIZE" in env:
        config = replace(config, batch_size=int(env["TSLA_BATCH_SIZE"]))
    if "TSLA_MAX_RETRIES" in env:
        config = replace(config, max_retries=int(env["TSLA_MAX_RETRIES"]))

    if config.max_retries < 1:
        raise ValueError(f"TSLA_MAX_RETRIES must be at least 1 (got {config.max_retries})")

    return quality, config
