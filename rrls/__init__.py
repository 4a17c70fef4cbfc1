"""Package initializer for rrls.

Exposes the recursive ridge estimator, the random feature mapper and the
streaming modules built on them.
"""

from .RRLS_main import RecursiveRidge, EstimatorState
from .RRLS_batch import BatchRidge, PretrainResult, load_pretraining, pretrain
from .rff import RFMapper, ProjectionSet, draw_projections
from .performance import PerformanceTracker
from .config import RRLSConfig, MapperConfig, load_config
from .modules import ModuleState, RRLSEstimatorModule, RFMapperModule
from .errors import ConfigInvalid, DimensionMismatch, PretrainLoadFailed, DegenerateVariance

__all__ = ["RecursiveRidge", "EstimatorState", "BatchRidge", "PretrainResult",
           "load_pretraining", "pretrain", "RFMapper", "ProjectionSet",
           "draw_projections", "PerformanceTracker", "RRLSConfig", "MapperConfig",
           "load_config", "ModuleState", "RRLSEstimatorModule", "RFMapperModule",
           "ConfigInvalid", "DimensionMismatch", "PretrainLoadFailed",
           "DegenerateVariance"]
