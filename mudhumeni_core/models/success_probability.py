"""
BOREHOLE SUCCESS PROBABILITY MODEL
Weighted fusion of geology, precipitation reliability and terrain stats into a 0-100 probability
"""

import numpy as np
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional
import logging

import requests

from mudhumeni_core.models.precipitation import ReliabilityScores
from mudhumeni_core.utils.core import DataValidator, SeverityClassifier
from mudhumeni_core.utils.errors import ComputationError, DataUnavailable
from mudhumeni_core.config.settings import SUCCESS_WEIGHTS, SUCCESS_FAILURE_PROBABILITIES

logger = logging.getLogger(__name__)


@dataclass
class SuccessAssessment:
    probability: float
    rating: str
    recommendations: List[str]
    contributions: Dict[str, float] = field(default_factory=dict)
    is_fallback: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SuccessProbabilityModel:
    """
    probability = sum(stat * weight for weighted numeric stats)
                  + geology_score * 0.25 + reliability.overall * 0.25
    reported on a 0-100 scale
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def calculate(self, latitude: float, longitude: float, geology_score: float,
                  reliability: ReliabilityScores,
                  stats: Optional[Mapping[str, Any]] = None,
                  upstream_error: Optional[BaseException] = None) -> SuccessAssessment:
        """
        Args:
            latitude, longitude: Field centroid
            geology_score: GeologyScorer output in [0, 1]
            reliability: precipitation reliability scores
            stats: terrain stats; only numeric entries named in the weights count
            upstream_error: failure of an input stage, mapped to a calibrated probability
        """
        valid, message = DataValidator.validate_coordinates(latitude, longitude)
        if not valid:
            self.logger.warning(f"Success probability defaulted: {message}")
            return self._assessment(SUCCESS_FAILURE_PROBABILITIES['invalid_coordinates'],
                                    is_fallback=True, note=message)

        if upstream_error is not None:
            return self.failure_assessment(upstream_error)

        try:
            contributions = {}
            for name, value in (stats or {}).items():
                if name in SUCCESS_WEIGHTS and DataValidator.is_number(value):
                    contributions[name] = float(value) * SUCCESS_WEIGHTS[name]
            contributions['geology_score'] = float(geology_score) * SUCCESS_WEIGHTS['geology']
            contributions['precipitation_reliability'] = float(reliability.overall) * SUCCESS_WEIGHTS['precipitation']

            probability = float(np.clip(100 * sum(contributions.values()), 0, 100))
        except Exception as e:
            return self.failure_assessment(e)

        self.logger.info(f"Borehole success probability: {probability:.1f}%")
        return self._assessment(probability, contributions=contributions)

    @staticmethod
    def classify_failure(error: BaseException) -> str:
        if isinstance(error, ComputationError) and error.stage in ('geology', 'precipitation'):
            return error.stage
        if isinstance(error, (DataUnavailable, requests.exceptions.RequestException)):
            return 'network'
        return 'other'

    def failure_assessment(self, error: BaseException) -> SuccessAssessment:
        """Calibrated probability for a failed computation, by cause"""
        cause = self.classify_failure(error)
        self.logger.error(f"Success probability fell back ({cause}): {error}")
        return self._assessment(SUCCESS_FAILURE_PROBABILITIES[cause], is_fallback=True,
                                note=f"Estimated with degraded inputs ({cause} failure)")

    def _assessment(self, probability: float, contributions: Optional[Dict[str, float]] = None,
                    is_fallback: bool = False, note: Optional[str] = None) -> SuccessAssessment:
        rating = SeverityClassifier.classify(probability)
        return SuccessAssessment(
            probability=round(probability, 2),
            rating=rating,
            recommendations=self._generate_recommendations(rating),
            contributions={k: round(v, 4) for k, v in (contributions or {}).items()},
            is_fallback=is_fallback,
            note=note,
        )

    @staticmethod
    def _generate_recommendations(rating: str) -> List[str]:
        recommendations = {
            'favorable': [
                "Proceed to siting survey at the recommended depth",
                "Log drilling returns to confirm aquifer depth",
            ],
            'moderate': [
                "Commission a geophysical (resistivity) survey before drilling",
                "Budget for drilling to the maximum of the depth window",
            ],
            'unfavorable': [
                "Run a geophysical survey to locate fracture zones first",
                "Consider rainwater harvesting as a supplementary source",
            ],
            'critical': [
                "Drilling is not recommended without a hydrogeological survey",
                "Prioritise surface water storage and rainwater harvesting",
            ],
        }
        return recommendations[rating]
