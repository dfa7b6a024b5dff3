"""
Módulo de configuração
"""
from .settings import QualityThresholds, TSLAConfig, DEFAULT_QUALITY, DEFAULT_CONFIG, load_config

__all__ = ['QualityThresholds', 'TSLAConfig', 'DEFAULT_QUALITY', 'DEFAULT_CONFIG', 'load_config']
