"""
Componentes principais do pipeline
"""
from core.models import SensorId, SurfaceClass, SnowlineState, Glacier, Scene, TSLAResult
from core.indices import compute_indices
from core.thresholds import ThresholdCatalog, ThresholdRow
from core.classifier import SurfaceClassifier
from core.illumination import IlluminationModel
from core.coverage import CoverageResolver
from core.snowline import SnowlineStatisticsEngine
from core.raster_engine import RasterEngine
from core.searcher import LocalSceneCatalog
from core.merger import SceneMerger
from core.sink import ResultSink
from core.processor import UnitProcessor
from core.pipeline import TSLAPipeline

__all__ = [
    'SensorId',
    'SurfaceClass',
    'SnowlineState',
    'Glacier',
    'Scene',
    'TSLAResult',
    'compute_indices',
    'ThresholdCatalog',
    'ThresholdRow',
    'SurfaceClassifier',
    'IlluminationModel',
    'CoverageResolver',
    'SnowlineStatisticsEngine',
    'RasterEngine',
    'LocalSceneCatalog',
    'SceneMerger',
    'ResultSink',
    'UnitProcessor',
    'TSLAPipeline'
]
