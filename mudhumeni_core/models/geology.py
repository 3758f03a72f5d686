"""
GEOLOGY SCORING MODEL
Borehole-oriented geology score in [0, 1] from:
- Aquifer presence (sandstone / limestone / gravel formations)
- Rock hardness (softer rock drills easier and stores more water)
- Fracture density from geology-tagged features
- Elevation and slope of the site
Scores are cached per location (4-decimal rounding) for the process lifetime.
"""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence
import logging

from mudhumeni_core.data_sources import DataProvider, GeologicalFeature, GeologicalFormation
from mudhumeni_core.utils.cache import GEOLOGY_SCORE_CACHE, GeologyScoreCache
from mudhumeni_core.utils.core import StatisticsUtils
from mudhumeni_core.utils.errors import ComputationError, DataUnavailable
from mudhumeni_core.utils.geo_processor import GeoProcessor
from mudhumeni_core.config.settings import (
    GEOLOGY_WEIGHTS, AQUIFER_ROCK_TYPES, ROCK_HARDNESS_TABLE, UNKNOWN_ROCK_HARDNESS,
    ROCK_STRENGTH_REFERENCE_MPA, GEOLOGY_ELEVATION_REFERENCE_M, GEOLOGY_SLOPE_REFERENCE_DEG,
    DEFAULT_GEOLOGY_SCORE, GEOLOGY_SEARCH_RADIUS_KM, GEOLOGY_FEATURE_RADIUS_M
)

logger = logging.getLogger(__name__)


@dataclass
class GeologyAssessment:
    """Sub-scores behind a geology score"""
    score: float
    aquifer: float
    hardness: float
    fractures: float
    elevation: float
    slope: float
    formation_count: int
    feature_count: int
    is_fallback: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class GeologyScorer:
    """
    Weighted geology score:
    aquifer 0.4, hardness 0.2, fractures 0.2, elevation 0.1, slope 0.1
    """

    def __init__(self, provider: DataProvider, cache: GeologyScoreCache = GEOLOGY_SCORE_CACHE):
        self.logger = logging.getLogger(__name__)
        self.provider = provider
        self.cache = cache

    def score(self, latitude: float, longitude: float,
              elevation_m: Optional[float], mean_slope: float) -> float:
        """Cached geology score for a location"""
        key = (latitude, longitude)
        cached = self.cache.get(key)
        if cached is not None:
            self.logger.info(f"✓ Geology score cache hit for {self.cache.make_key(latitude, longitude)}")
            return cached

        assessment = self.assess(latitude, longitude, elevation_m, mean_slope)
        if assessment.is_fallback:
            return assessment.score
        return self.cache.set_if_absent(key, assessment.score)

    def assess(self, latitude: float, longitude: float,
               elevation_m: Optional[float], mean_slope: float) -> GeologyAssessment:
        """Fetch geology and compute all sub-scores (uncached)"""
        formations: List[GeologicalFormation] = []
        features: List[GeologicalFeature] = []
        failures = []

        try:
            formations = self.provider.fetch_geological_formations(
                latitude, longitude, GEOLOGY_SEARCH_RADIUS_KM)
        except DataUnavailable as e:
            failures.append(e)
            self.logger.warning(f"Geological formations unavailable: {e}")

        try:
            features = self.provider.fetch_geological_features(
                latitude, longitude, GEOLOGY_FEATURE_RADIUS_M)
        except DataUnavailable as e:
            failures.append(e)
            self.logger.warning(f"Geological features unavailable: {e}")

        elevation_score = self.score_elevation(elevation_m)
        slope_score = self.score_slope(mean_slope)

        if len(failures) == 2:
            self.logger.warning(f"⚠ No geology data; using default score {DEFAULT_GEOLOGY_SCORE}")
            return GeologyAssessment(
                score=DEFAULT_GEOLOGY_SCORE, aquifer=0.0, hardness=UNKNOWN_ROCK_HARDNESS,
                fractures=0.0, elevation=elevation_score, slope=slope_score,
                formation_count=0, feature_count=0, is_fallback=True,
                note='Geology providers unavailable; default geology score applied',
            )

        try:
            sub_scores = {
                'aquifer': self.score_aquifer_presence(formations),
                'hardness': self.score_rock_hardness(formations, features),
                'fractures': self.score_fracture_zones(features),
                'elevation': elevation_score,
                'slope': slope_score,
            }
            total = StatisticsUtils.clamp(sum(GEOLOGY_WEIGHTS[k] * v for k, v in sub_scores.items()))
        except Exception as e:
            raise ComputationError('geology', e) from e

        self.logger.info(
            f"Geology score {total:.3f} from {len(formations)} formations, {len(features)} features"
        )
        return GeologyAssessment(
            score=round(total, 6), formation_count=len(formations), feature_count=len(features),
            **{k: round(v, 6) for k, v in sub_scores.items()}
        )

    # ------------------------------------------------------------------
    # Sub-scores
    # ------------------------------------------------------------------

    @staticmethod
    def score_aquifer_presence(formations: Sequence[GeologicalFormation]) -> float:
        if not formations:
            return 0.0
        aquifers = sum(1 for f in formations if str(f.type).lower() in AQUIFER_ROCK_TYPES)
        return aquifers / len(formations)

    @staticmethod
    def composite_hardness(rock_type: str) -> Optional[float]:
        properties = ROCK_HARDNESS_TABLE.get(str(rock_type).lower())
        if properties is None:
            return None
        mohs, strength, weight = properties
        return (0.4 * mohs / 10 + 0.6 * strength / ROCK_STRENGTH_REFERENCE_MPA) * weight

    def _nearest_feature_rock(self, formation: GeologicalFormation,
                              features: Sequence[GeologicalFeature]) -> Optional[str]:
        candidates = [f for f in features if f.rock_type and f.rock_type.lower() in ROCK_HARDNESS_TABLE]
        if not candidates:
            return None
        lat, lon = formation.coords
        nearest = min(candidates, key=lambda f: GeoProcessor.calculate_distance(lat, lon, *f.coords))
        return nearest.rock_type

    def score_rock_hardness(self, formations: Sequence[GeologicalFormation],
                            features: Sequence[GeologicalFeature]) -> float:
        """1 - coverage-weighted composite hardness; neutral 0.5 with no formations"""
        hardness = []
        coverage = []
        for formation in formations:
            value = self.composite_hardness(formation.type)
            if value is None:
                rock_type = self._nearest_feature_rock(formation, features)
                value = self.composite_hardness(rock_type) if rock_type else None
            if value is None:
                value = UNKNOWN_ROCK_HARDNESS
            hardness.append(value)
            coverage.append(max(float(formation.magnitude or 0.0), 0.0))

        if not hardness or sum(coverage) == 0:
            return UNKNOWN_ROCK_HARDNESS
        average = float(np.average(hardness, weights=coverage))
        return StatisticsUtils.clamp(1 - average)

    @staticmethod
    def score_fracture_zones(features: Sequence[GeologicalFeature]) -> float:
        if not features:
            return 0.0
        return sum(1 for f in features if f.tag == 'fracture') / len(features)

    @staticmethod
    def score_elevation(elevation_m: Optional[float]) -> float:
        if elevation_m is None:
            return 0.5
        return StatisticsUtils.clamp(1 - elevation_m / GEOLOGY_ELEVATION_REFERENCE_M)

    @staticmethod
    def score_slope(mean_slope: float) -> float:
        return StatisticsUtils.clamp(1 - mean_slope / GEOLOGY_SLOPE_REFERENCE_DEG)
