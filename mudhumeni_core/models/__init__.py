"""
Models module initialization - Borehole Siting Analysis
"""

from .precipitation import PrecipitationAnalyzer
from .groundwater_potential import GroundwaterPotentialAggregator
from .geology import GeologyScorer
from .borehole_depth import DepthEstimator
from .success_probability import SuccessProbabilityModel
from .water_budget import WaterBudgetEstimator

__all__ = [
    'PrecipitationAnalyzer',
    'GroundwaterPotentialAggregator',
    'GeologyScorer',
    'DepthEstimator',
    'SuccessProbabilityModel',
    'WaterBudgetEstimator'
]
