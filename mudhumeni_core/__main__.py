"""
MUDHUMENI MAIN ORCHESTRATOR
Borehole siting analysis for agricultural fields
"""

import json
import logging
import sys
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import requests

from mudhumeni_core import __version__
from mudhumeni_core.data_sources import (
    AccessibilityAnalyzer, DataProvider, HttpDataProvider, ProviderTerrainAnalyzer,
    SlopeStatistics, TerrainAnalyzer
)
from mudhumeni_core.data_integration import EarthEngineRasterService
from mudhumeni_core.models.precipitation import PrecipitationAnalyzer, PrecipitationMetrics
from mudhumeni_core.models.water_budget import WaterBudgetEstimator
from mudhumeni_core.models.groundwater_potential import GroundwaterPotentialAggregator
from mudhumeni_core.models.geology import GeologyScorer
from mudhumeni_core.models.borehole_depth import DepthEstimator
from mudhumeni_core.models.success_probability import SuccessAssessment, SuccessProbabilityModel
from mudhumeni_core.utils.core import ReportExporter, get_timestamp
from mudhumeni_core.utils.errors import (
    BoreholeSiteFailure, ComputationError, DataUnavailable, InvalidGeometry, MudhumeniError
)
from mudhumeni_core.utils.geo_processor import FieldGeometry
from mudhumeni_core.utils.logging_setup import configure_logging
from mudhumeni_core.config.settings import (
    ENVIRONMENT, ORCHESTRATOR_MAX_WORKERS, TERRAIN_FALLBACK_SLOPE_DEG,
    DEFAULT_GEOLOGY_SCORE, OUTPUT_DIR, SAMPLE_FIELD
)

logger = logging.getLogger(__name__)

# Errors an optional remote section may raise without failing the report
RECOVERABLE_ERRORS = (MudhumeniError, requests.exceptions.RequestException)


@dataclass
class PotentialResult:
    """Outputs of the groundwater potential pipeline"""
    elevation: Optional[float]
    slope: SlopeStatistics
    precipitation: PrecipitationMetrics
    geology_score: float
    point_score: Dict[str, Any]
    potential_map: Dict[str, Any]
    precipitation_error: Optional[BaseException] = None
    geology_error: Optional[BaseException] = None
    notes: List[str] = field(default_factory=list)

    @property
    def upstream_error(self) -> Optional[BaseException]:
        return self.geology_error or self.precipitation_error


class BoreholeSiteAnalyzer:
    """
    Main orchestrator for borehole site analysis
    Fans out independent lookups, then derives depth, success and water budget
    """

    def __init__(self,
                 provider: Optional[DataProvider] = None,
                 terrain_analyzer: Optional[TerrainAnalyzer] = None,
                 accessibility_analyzer: Optional[AccessibilityAnalyzer] = None,
                 environment: str = ENVIRONMENT,
                 max_workers: int = ORCHESTRATOR_MAX_WORKERS,
                 precipitation_config: Optional[Dict[str, Any]] = None,
                 recharge_config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        self.logger = logging.getLogger(__name__)

        if provider is None:
            raster_service = EarthEngineRasterService()
            provider = HttpDataProvider(raster_service=raster_service, config=precipitation_config)
            terrain_analyzer = terrain_analyzer or raster_service

        self.provider = provider
        self.terrain_analyzer = terrain_analyzer or ProviderTerrainAnalyzer(provider)
        self.accessibility_analyzer = accessibility_analyzer
        self.environment = environment
        # the potential pipeline blocks on the terrain task, so two workers minimum
        self.max_workers = max(2, max_workers)

        self.precipitation_analyzer = PrecipitationAnalyzer(
            provider, environment=environment, config=precipitation_config,
            recharge_config=recharge_config, rng=rng
        )
        self.geology_scorer = GeologyScorer(provider)
        self.potential_aggregator = GroundwaterPotentialAggregator(provider)
        self.depth_estimator = DepthEstimator()
        self.success_model = SuccessProbabilityModel()
        self.water_budget = WaterBudgetEstimator()

    def analyze_field(self, geojson: Dict[str, Any]) -> Dict[str, Any]:
        """
        Complete borehole viability analysis of a field polygon

        Args:
            geojson: {'geometry': {'coordinates': [[[lon, lat], ...]]}} or a GeoJSON Feature

        Returns:
            Report with viability, environment, accessibility and metadata sections

        Raises:
            InvalidGeometry: polygon failed validation
            BoreholeSiteFailure: any other unrecoverable error
        """
        field_geometry = FieldGeometry.from_geojson(geojson)

        logger.info(f"{'='*70}")
        logger.info(f"BOREHOLE SITE ANALYSIS: {field_geometry.properties.get('name', 'field')}")
        logger.info(f"Centroid: {field_geometry.latitude:.5f}, {field_geometry.longitude:.5f} "
                    f"| Area: {field_geometry.area_m2 / 10000:.2f} ha")
        logger.info(f"{'='*70}")

        try:
            return self._analyze(field_geometry)
        except BoreholeSiteFailure:
            raise
        except Exception as e:
            logger.error(f"❌ Borehole site analysis failed: {e}")
            raise BoreholeSiteFailure(f"Borehole site analysis failed: {e}", e) from e

    def _analyze(self, field_geometry: FieldGeometry) -> Dict[str, Any]:
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            # 1. Independent lookups
            terrain_future = pool.submit(self._terrain_statistics, field_geometry)
            hydrogeology_future = pool.submit(self._hydrogeology, field_geometry)
            accessibility_future = pool.submit(self._accessibility, field_geometry)
            potential_future = pool.submit(self._groundwater_potential, field_geometry, terrain_future)

            slope_stats, terrain_note = terrain_future.result()
            hydrogeology = hydrogeology_future.result()
            accessibility = accessibility_future.result()
            potential = potential_future.result()

            # 2. Derived from precipitation
            depth_future = pool.submit(
                self.depth_estimator.estimate,
                potential.elevation, slope_stats.mean,
                potential.precipitation.recharge_patterns.efficiency,
            )
            success_future = pool.submit(self._success_probability, field_geometry, potential)
            depth = depth_future.result()
            success = success_future.result()

        water = self.water_budget.estimate(potential.precipitation, field_geometry.area_m2)

        notes = list(potential.notes)
        if terrain_note:
            notes.insert(0, terrain_note)

        report = {
            'viability': {
                'field_potential_analysis': {
                    'success_probability': success.probability,
                    'rating': success.rating,
                    'potential_score': potential.point_score['potential_score'],
                    'geology_score': potential.geology_score,
                    'terrain_scores': {
                        'elevation_score': round(GeologyScorer.score_elevation(potential.elevation), 4),
                        'slope_score': round(GeologyScorer.score_slope(slope_stats.mean), 4),
                    },
                    'normalized_layers': potential.point_score['normalized_layers'],
                    'weights': potential.point_score['weights'],
                    'recommendations': success.recommendations,
                },
            },
            'environment': {
                'precipitation': potential.precipitation.to_dict(),
                'water': {
                    'water_availability': water.to_dict(),
                    'borehole_depth_analysis': depth.to_dict(),
                    'borehole_success_analysis': success.to_dict(),
                },
                'hydro_geological_features': hydrogeology,
                'potential_map': potential.potential_map,
                'terrain': {
                    **slope_stats.to_dict(),
                    'is_fallback': terrain_note is not None,
                    'note': terrain_note,
                },
            },
            'accessibility': {
                'accessibility_analysis': accessibility,
            },
            'metadata': {
                **field_geometry.to_dict(),
                'elevation_m': potential.elevation,
                'timestamp': get_timestamp(),
                'version': __version__,
                'environment': self.environment,
                'notes': notes,
            },
        }

        logger.info(f"✅ Analysis complete: success {success.probability:.1f}% ({success.rating}), "
                    f"depth {depth.minimum_depth:.0f}-{depth.maximum_depth:.0f} m")
        return ReportExporter.camelize(report)

    # ------------------------------------------------------------------
    # First fan-out
    # ------------------------------------------------------------------

    def _terrain_statistics(self, field_geometry: FieldGeometry) -> Tuple[SlopeStatistics, Optional[str]]:
        try:
            return self.terrain_analyzer.slope_statistics(field_geometry), None
        except RECOVERABLE_ERRORS as e:
            self.logger.warning(f"⚠ Terrain analysis unavailable: {e}")
            return (SlopeStatistics(mean=TERRAIN_FALLBACK_SLOPE_DEG),
                    f"Terrain slope unavailable; assumed {TERRAIN_FALLBACK_SLOPE_DEG}° mean slope")

    def _hydrogeology(self, field_geometry: FieldGeometry) -> Dict[str, Any]:
        try:
            result = self.provider.fetch_lithology(field_geometry.latitude, field_geometry.longitude)
        except RECOVERABLE_ERRORS as e:
            self.logger.warning(f"⚠ Hydrogeology lookup failed: {e}")
            result = {'success': False, 'data': [], 'error': str(e)}

        if not result.get('success'):
            return {**result, 'available': False, 'note': 'Lithology unavailable for this location'}
        return {**result, 'available': True}

    def _accessibility(self, field_geometry: FieldGeometry) -> Dict[str, Any]:
        if self.accessibility_analyzer is None:
            return {'available': False, 'note': 'No accessibility analyzer configured'}
        try:
            return self.accessibility_analyzer.analyze(field_geometry.latitude, field_geometry.longitude)
        except Exception as e:
            self.logger.warning(f"⚠ Accessibility analysis failed: {e}")
            return {'available': False, 'note': f"Accessibility analysis failed: {e}"}

    def _groundwater_potential(self, field_geometry: FieldGeometry,
                               terrain_future: "Future[Tuple[SlopeStatistics, Optional[str]]]"
                               ) -> PotentialResult:
        lat, lon = field_geometry.centroid
        notes = []

        try:
            elevation, _ = self.provider.fetch_point_elevation(lat, lon)
        except RECOVERABLE_ERRORS as e:
            self.logger.warning(f"⚠ Elevation unavailable: {e}")
            elevation = None
            notes.append('Elevation unavailable; terrain-based depth estimate skipped')

        slope_stats, _ = terrain_future.result()

        precipitation_error = None
        try:
            precipitation = self.precipitation_analyzer.analyze(lat, lon, mean_slope=slope_stats.mean)
        except ComputationError as e:
            self.logger.error(f"❌ Precipitation analysis failed: {e}")
            precipitation_error = e
            precipitation = PrecipitationAnalyzer.default_metrics(
                'Precipitation analysis failed; default reliability applied')
        if precipitation.note:
            notes.append(precipitation.note)

        geology_error = None
        try:
            geology_score = self.geology_scorer.score(lat, lon, elevation, slope_stats.mean)
        except ComputationError as e:
            self.logger.error(f"❌ Geology scoring failed: {e}")
            geology_error = e
            geology_score = DEFAULT_GEOLOGY_SCORE
            notes.append('Geology scoring failed; default geology score applied')

        overall = precipitation.reliability_scores.overall
        point_score = self.potential_aggregator.score_point(
            {'elevation': elevation, 'slope': slope_stats.mean,
             'soil': precipitation.mean_soil_moisture, 'temp': None},
            geology_score, overall,
        )

        try:
            potential_map = {'available': True,
                             **self.potential_aggregator.produce_potential_map(field_geometry, geology_score, overall)}
        except RECOVERABLE_ERRORS as e:
            self.logger.warning(f"⚠ Potential map unavailable: {e}")
            potential_map = {'available': False, 'handle': None,
                             'weights': point_score['weights'], 'note': str(e)}

        return PotentialResult(
            elevation=elevation,
            slope=slope_stats,
            precipitation=precipitation,
            geology_score=geology_score,
            point_score=point_score,
            potential_map=potential_map,
            precipitation_error=precipitation_error,
            geology_error=geology_error,
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Second fan-out
    # ------------------------------------------------------------------

    def _success_probability(self, field_geometry: FieldGeometry,
                             potential: PotentialResult) -> SuccessAssessment:
        stats = {
            'elevation': GeologyScorer.score_elevation(potential.elevation),
            'soil': potential.precipitation.mean_soil_moisture,
            'slope_mean': potential.slope.mean,
        }
        return self.success_model.calculate(
            field_geometry.latitude, field_geometry.longitude,
            potential.geology_score, potential.precipitation.reliability_scores,
            stats=stats, upstream_error=potential.upstream_error,
        )


def load_field(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main():
    """Main execution function"""
    configure_logging()

    if len(sys.argv) > 1:
        geojson = load_field(Path(sys.argv[1]))
    else:
        logger.info("No field file given; analyzing the sample field")
        geojson = SAMPLE_FIELD

    analyzer = BoreholeSiteAnalyzer()

    try:
        report = analyzer.analyze_field(geojson)
    except InvalidGeometry as e:
        logger.error(f"❌ Invalid field polygon: {e}")
        sys.exit(2)
    except BoreholeSiteFailure as e:
        logger.error(f"❌ {e.message}")
        sys.exit(1)

    name = str((geojson.get('properties') or {}).get('name', 'field')).replace(' ', '_')
    ReportExporter.to_json(report, OUTPUT_DIR / 'reports' / f"{name}_borehole_report.json")

    viability = report['viability']['fieldPotentialAnalysis']
    depth = report['environment']['water']['boreholeDepthAnalysis']
    print("\n" + "="*70)
    print("BOREHOLE SITE SUMMARY")
    print("="*70)
    print(f"  Success probability: {viability['successProbability']:.1f}% ({viability['rating']})")
    print(f"  Depth window: {depth['minimumDepth']:.0f}-{depth['maximumDepth']:.0f} m "
          f"(recommended {depth['recommendedDepth']:.0f} m)")
    print(f"  Potential score: {viability['potentialScore']:.2f}")
    print("="*70 + "\n")


if __name__ == "__main__":
    main()
