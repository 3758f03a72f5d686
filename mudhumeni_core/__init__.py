"""
Package initialization file for Mudhumeni Core
"""

__version__ = "1.0.0"
__description__ = "Mudhumeni - Borehole Siting and Groundwater Analysis for Agricultural Fields"

from mudhumeni_core.models import (
    PrecipitationAnalyzer, GroundwaterPotentialAggregator, GeologyScorer,
    DepthEstimator, SuccessProbabilityModel, WaterBudgetEstimator
)

from mudhumeni_core.utils.errors import (
    MudhumeniError, InvalidGeometry, DataUnavailable, Timeout, ComputationError,
    CacheError, BoreholeSiteFailure
)
from mudhumeni_core.utils.geo_processor import FieldGeometry

__all__ = [
    'PrecipitationAnalyzer',
    'GroundwaterPotentialAggregator',
    'GeologyScorer',
    'DepthEstimator',
    'SuccessProbabilityModel',
    'WaterBudgetEstimator',
    'FieldGeometry',
    'MudhumeniError',
    'InvalidGeometry',
    'DataUnavailable',
    'Timeout',
    'ComputationError',
    'CacheError',
    'BoreholeSiteFailure'
]
