"""
EARTH ENGINE RASTER INTEGRATION
Potential-surface composition and terrain slope statistics
computed server-side with Google Earth Engine
"""

import ee
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Sequence, Tuple
import logging

from mudhumeni_core.data_sources import PotentialLayer, SlopeStatistics, TerrainAnalyzer
from mudhumeni_core.utils.errors import DataUnavailable
from mudhumeni_core.utils.geo_processor import FieldGeometry
from mudhumeni_core.config.settings import (
    GEE_PROJECT_ID, GEE_DEADLINE_MS, GEE_DATASETS, GEE_COLLECTION_WINDOW_DAYS,
    GEE_SLOPE_SCALE_M, GEE_POTENTIAL_PALETTE, SLOPE_CLASSES
)

logger = logging.getLogger(__name__)


class EarthEngineRasterService(TerrainAnalyzer):
    """
    Google Earth Engine backed raster service
    - weighted groundwater potential surface (opaque map handle)
    - SRTM-derived slope statistics for a field polygon
    """

    _initialized = False

    @classmethod
    def initialize(cls):
        """Initialize GEE with project ID (one-time only)"""
        if cls._initialized:
            return
        if GEE_PROJECT_ID == 'your-gee-project-id':
            logger.error("❌ GEE_PROJECT_ID not configured!")
            logger.error("   Set environment variable GEE_PROJECT_ID=your-actual-project-id")
            raise DataUnavailable('earth-engine', RuntimeError('GEE project ID not configured'))
        try:
            ee.Initialize(project=GEE_PROJECT_ID)
            ee.data.setDeadline(GEE_DEADLINE_MS)
        except Exception as e:
            logger.error(f"Failed to initialize GEE: {e}")
            logger.error("Try: earthengine authenticate to set up GEE credentials")
            raise DataUnavailable('earth-engine', e) from e
        cls._initialized = True
        logger.info(f"✓ Google Earth Engine initialized with project: {GEE_PROJECT_ID}")

    @staticmethod
    def _region(bbox: Tuple[float, float, float, float]) -> "ee.Geometry":
        min_lon, min_lat, max_lon, max_lat = bbox
        return ee.Geometry.Rectangle([min_lon, min_lat, max_lon, max_lat])

    @staticmethod
    def _load_layer(layer: PotentialLayer, region: "ee.Geometry") -> "ee.Image":
        if layer.constant is not None:
            return ee.Image.constant(layer.constant).clip(region)

        if layer.collection:
            end = datetime.now(timezone.utc)
            start = end - timedelta(days=GEE_COLLECTION_WINDOW_DAYS)
            image = (ee.ImageCollection(layer.dataset)
                     .filterBounds(region)
                     .filterDate(start.strftime('%Y-%m-%d'), end.strftime('%Y-%m-%d'))
                     .select(layer.band)
                     .mean())
        else:
            image = ee.Image(layer.dataset).select(layer.band)

        if layer.derive == 'slope':
            image = ee.Terrain.slope(image)
        if layer.scale_factor != 1.0:
            image = image.multiply(layer.scale_factor)

        return image.unitScale(layer.min_value, layer.max_value).clamp(0, 1).clip(region)

    def produce_potential_raster(self, layers: Sequence[PotentialLayer],
                                 weights: Dict[str, float],
                                 bbox: Tuple[float, float, float, float]) -> Dict[str, Any]:
        self.initialize()
        try:
            region = self._region(bbox)
            weighted = [
                self._load_layer(layer, region).multiply(weights.get(layer.name, 0.0)).rename('potential')
                for layer in layers
            ]
            potential = ee.ImageCollection(weighted).sum().clip(region)
            map_id = potential.getMapId({'min': 0, 'max': 1, 'palette': GEE_POTENTIAL_PALETTE})
        except ee.EEException as e:
            raise DataUnavailable('earth-engine', e) from e

        logger.info("✓ Groundwater potential surface published")
        return {
            'map_id': map_id['mapid'],
            'url_format': map_id['tile_fetcher'].url_format,
        }

    @staticmethod
    def _field_region(field_geometry: FieldGeometry) -> "ee.Geometry":
        return ee.Geometry.Polygon([field_geometry.coordinates])

    @staticmethod
    def _slope_image() -> "ee.Image":
        return ee.Terrain.slope(ee.Image(GEE_DATASETS['elevation']['dataset']))

    def mean_slope(self, field_geometry: FieldGeometry) -> float:
        return self.slope_statistics(field_geometry).mean

    def slope_statistics(self, field_geometry: FieldGeometry) -> SlopeStatistics:
        self.initialize()
        try:
            region = self._field_region(field_geometry)
            slope = self._slope_image()

            reducer = (ee.Reducer.mean()
                       .combine(ee.Reducer.median(), sharedInputs=True)
                       .combine(ee.Reducer.stdDev(), sharedInputs=True))
            stats = slope.reduceRegion(
                reducer=reducer, geometry=region, scale=GEE_SLOPE_SCALE_M,
                maxPixels=1e9, bestEffort=True
            ).getInfo()

            # slope >= 0, so the first class only needs an upper bound
            lower = None
            class_bands = []
            for name, upper in SLOPE_CLASSES:
                in_class = slope.lte(upper) if lower is None else slope.gt(lower).And(slope.lte(upper))
                class_bands.append(in_class.rename(name))
                lower = upper
            distribution = ee.Image.cat(class_bands).reduceRegion(
                reducer=ee.Reducer.mean(), geometry=region, scale=GEE_SLOPE_SCALE_M,
                maxPixels=1e9, bestEffort=True
            ).getInfo()
        except ee.EEException as e:
            raise DataUnavailable('earth-engine', e) from e

        if stats.get('slope_mean') is None:
            raise DataUnavailable('earth-engine', ValueError('no slope pixels inside field'))

        return SlopeStatistics(
            mean=float(stats['slope_mean']),
            median=stats.get('slope_median'),
            std_dev=stats.get('slope_stdDev'),
            distribution={k: round(float(v), 4) for k, v in (distribution or {}).items() if v is not None},
        )
