"""
Configuration settings for the Mudhumeni borehole siting engine

This module contains ONLY configuration constants.
Live data is fetched from public APIs at request time:
- Open-Meteo: hourly rainfall + soil moisture archive, point elevation
- Macrostrat: geological map units and lithology
- Overpass (OpenStreetMap): geology-tagged features
- Google Earth Engine (GEE): SRTM slope, SMAP soil moisture, MODIS LST rasters
"""

from pathlib import Path
import os

# Runtime environment: 'development' or 'production'
ENVIRONMENT = os.getenv('MUDHUMENI_ENV', 'development')
VALID_ENVIRONMENTS = ('development', 'production')

# Output directories (created lazily by the logging setup)
OUTPUT_DIR = Path(os.getenv('MUDHUMENI_OUTPUT_DIR', Path.cwd() / 'mudhumeni_outputs'))
LOG_DIR = OUTPUT_DIR / 'logs'
LOG_FILE = LOG_DIR / 'mudhumeni.log'
LOG_LEVEL = os.getenv('MUDHUMENI_LOG_LEVEL', 'INFO')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 5

# Google Earth Engine Configuration
GEE_PROJECT_ID = os.getenv('GEE_PROJECT_ID', 'your-gee-project-id')
GEE_DEADLINE_MS = 15000

GEOD_ELLIPSOID = 'WGS84'

# ============================================================================
# PRECIPITATION ANALYSIS
# ============================================================================

PRECIPITATION_CONFIG = {
    'years_back': 10,
    'timeout_ms': 20000,
    'max_retries': 3,          # attempts, including the first
    'retry_delay_ms': 2000,
    'retry_backoff': 1.5,
}

# Synthetic fallback series (used when the archive API is unavailable)
SYNTHETIC_PRECIPITATION = {
    'years': 5,
    'rainy_months': (3, 4, 5, 6, 7, 8),     # April-September, 0-indexed
    'rainy_day_mm': (5.0, 15.0),
    'dry_day_mm': (1.0, 4.0),
    'heavy_rain_probability': 0.05,
    'heavy_rain_extra_mm': (10.0, 30.0),
    'soil_moisture': (0.3, 0.5),
}

# Micro-perturbation applied to all-zero real responses in development
ZERO_RAINFALL_PERTURBATION_MM = (0.0, 2.0)

DEFAULT_SOIL_MOISTURE = 0.4            # record default when provider omits it
DRY_MONTH_THRESHOLD_MM = 30.0

# Extreme events
DROUGHT_RATIO_THRESHOLD = 0.3
DROUGHT_MIN_CONSECUTIVE_RECORDS = 30
HEAVY_RAINFALL_RATIO = 2.0
DROUGHT_SEVERITY_TABLE = [
    # (lower bound of rainfall / monthly_avg, severity)
    (0.5, 0.0),
    (0.3, 0.3),
    (0.1, 0.7),
    (0.0, 1.0),
]

# ============================================================================
# RECHARGE ANALYSIS
# ============================================================================

RECHARGE_CONFIG = {
    'soil_moisture_threshold': 0.30,
    'soil_factor_high': 1.5,
    'soil_factor_low': 0.7,
    'slope_threshold_deg': 15,
    'slope_factor_high': 0.5,    # steep terrain, runoff dominates
    'slope_factor_low': 1.2,
    'min_annual_rainfall_mm': 200,    # below this the history is flagged as recharge-limited
    'bedrock_depth_min_m': 30,
    'infiltration_rate_min': 10,     # mm/h
}

RECHARGE_DEFAULT_SOIL_MOISTURE = 0.3
RECHARGE_THRESHOLD_CAP_MM = 20.0
RECHARGE_THRESHOLD_STD_FACTOR = 0.3
RECHARGE_MAX_RAIN_FRACTION = 0.7
RECHARGE_MONTHLY_AVG_FRACTION = 0.5
RECHARGE_FALLBACK_TOP_FRACTION = 0.2
RECHARGE_FALLBACK_EFFICIENCY = 0.2
RECHARGE_EFFICIENCY_BOUNDS = (0.01, 1.0)
RECHARGE_EFFICIENCY_BLEND = {'overall': 0.7, 'monthly': 0.3}

DEFAULT_RELIABILITY_SCORE = 0.5

# ============================================================================
# CACHES
# ============================================================================

CACHE_CONFIG = {
    'geology_ttl_ms': None,    # unbounded
    'geospatial_ttl_ms': {
        'flood': 60 * 60 * 1000,
        'roads': 30 * 60 * 1000,
        'country': 24 * 60 * 60 * 1000,
        'geology': 24 * 60 * 60 * 1000,
        'elevation': 24 * 60 * 60 * 1000,
    },
    'sweep_interval_ms': 5 * 60 * 1000,    # expired-entry eviction period
}
GEOLOGY_CACHE_PRECISION = 4

# ============================================================================
# DATA PROVIDERS
# ============================================================================

OPEN_METEO_ARCHIVE_URL = 'https://archive-api.open-meteo.com/v1/archive'
OPEN_METEO_ELEVATION_URL = 'https://api.open-meteo.com/v1/elevation'
MACROSTRAT_UNITS_URL = 'https://macrostrat.org/api/v2/geologic_units/map'
OVERPASS_API_URL = 'https://overpass-api.de/api/interpreter'

PROVIDER_TIMEOUTS_SECONDS = {
    'precipitation': PRECIPITATION_CONFIG['timeout_ms'] / 1000,
    'lithology': 8,
    'default': 15,
}
RETRY_STATUS_CODES = [429, 500, 502, 503, 504]

GEOLOGY_SEARCH_RADIUS_KM = 5.0
GEOLOGY_FEATURE_RADIUS_M = 5000
GEOLOGY_FORMATION_GRID_SIZE = 3
KM_TO_DEGREE_LAT = 111.0

FRACTURE_FEATURE_TAGS = ('fault', 'fracture', 'fissure', 'joint')

# Lithology keywords -> canonical rock type used by the hardness table
ROCK_TYPE_KEYWORDS = {
    'sandstone': 'sandstone',
    'limestone': 'limestone',
    'dolomite': 'limestone',
    'gravel': 'gravel',
    'conglomerate': 'gravel',
    'granite': 'granite',
    'granodiorite': 'plutonic',
    'diorite': 'plutonic',
    'gabbro': 'plutonic',
    'tonalite': 'plutonic',
    'shale': 'shale',
    'mudstone': 'shale',
    'siltstone': 'shale',
    'clay': 'clay',
    'gneiss': 'metamorphic',
    'schist': 'metamorphic',
    'quartzite': 'metamorphic',
    'marble': 'metamorphic',
    'metamorphic': 'metamorphic',
    'plutonic': 'plutonic',
}

# Earth Engine datasets for the potential layers
GEE_DATASETS = {
    'elevation': {'dataset': 'USGS/SRTMGL1_003', 'band': 'elevation'},
    'soil': {'dataset': 'NASA_USDA/HSL/SMAP10KM_soil_moisture', 'band': 'ssm', 'collection': True},
    'temp': {'dataset': 'MODIS/061/MOD11A1', 'band': 'LST_Day_1km', 'collection': True,
             'scale_factor': 0.02},
}
GEE_COLLECTION_WINDOW_DAYS = 365
GEE_SLOPE_SCALE_M = 30
GEE_POTENTIAL_PALETTE = ['#d73027', '#fc8d59', '#fee08b', '#d9ef8b', '#91cf60', '#1a9850']

# Slope classes (degrees, upper bounds)
SLOPE_CLASSES = [
    ('OPTIMAL', 5),
    ('MODERATE', 8),
    ('STEEP', 16),
    ('VERY_STEEP', 30),
    ('EXTREME', 90),
]
TERRAIN_FALLBACK_SLOPE_DEG = 5.0

# ============================================================================
# GROUNDWATER POTENTIAL
# ============================================================================

POTENTIAL_LAYER_RANGES = {
    'elevation': (0.0, 3000.0),   # metres
    'slope': (0.0, 45.0),         # degrees
    'soil': (0.0, 1.0),           # volumetric fraction
    'temp': (250.0, 350.0),       # Kelvin
}

POTENTIAL_DEFAULT_WEIGHTS = {
    'elevation': 0.15,
    'slope': 0.10,
    'landcover': 0.10,
    'soil': 0.15,
    'temp': 0.10,
    'geology': 0.20,
    'precipitation': 0.20,
}
POTENTIAL_WEIGHT_ADJUSTMENT = 0.05
POTENTIAL_HIGH_RELIABILITY = 0.8
POTENTIAL_LOW_RELIABILITY = 0.4

# ============================================================================
# GEOLOGY SCORING
# ============================================================================

GEOLOGY_WEIGHTS = {
    'aquifer': 0.4,
    'hardness': 0.2,
    'fractures': 0.2,
    'elevation': 0.1,
    'slope': 0.1,
}

AQUIFER_ROCK_TYPES = ('sandstone', 'limestone', 'gravel')

# rock type -> (Mohs hardness, compressive strength MPa, weight)
ROCK_HARDNESS_TABLE = {
    'granite': (7, 200, 0.7),
    'limestone': (5, 60, 0.5),
    'sandstone': (4, 50, 0.4),
    'shale': (3, 30, 0.3),
    'clay': (1, 10, 0.1),
    'metamorphic': (6, 150, 0.6),
    'plutonic': (7, 200, 0.7),
}
UNKNOWN_ROCK_HARDNESS = 0.5
ROCK_STRENGTH_REFERENCE_MPA = 200.0
GEOLOGY_ELEVATION_REFERENCE_M = 1000.0
GEOLOGY_SLOPE_REFERENCE_DEG = 45.0
DEFAULT_GEOLOGY_SCORE = 0.5

# ============================================================================
# BOREHOLE DEPTH
# ============================================================================

DEPTH_DEFAULTS_M = {'minimum': 30.0, 'maximum': 200.0}
DEPTH_BOUNDS_M = (20.0, 250.0)
AQUIFER_BASE_DEPTH_M = 50.0
AQUIFER_HIGH_EFFICIENCY = 0.6
AQUIFER_HIGH_EFFICIENCY_REDUCTION_M = 15.0
CONFINING_LAYERS = {
    'clay': {'depth_m': 25.0, 'max_slope_deg': 5.0},
    'bedrock': {'depth_m': 60.0, 'min_slope_deg': 10.0},
}
DEPTH_LIMITATIONS = [
    'Local well data would improve accuracy',
    'Actual water table depth may vary',
    'Local geological variations may not be captured',
]
DEPTH_LOW_CONFIDENCE_LIMITATIONS = [
    'Limited geological data available',
    'Recommend local hydrogeological survey',
]

# ============================================================================
# SUCCESS PROBABILITY
# ============================================================================

SUCCESS_WEIGHTS = {
    'elevation': 0.15,
    'soil': 0.20,
    'temp': 0.15,
    'geology': 0.25,
    'precipitation': 0.25,
}
SUCCESS_FAILURE_PROBABILITIES = {
    'invalid_coordinates': 50.0,
    'network': 45.0,
    'geology': 40.0,
    'precipitation': 42.0,
    'other': 50.0,
}
VIABILITY_RATINGS = [
    ('favorable', 70.0),
    ('moderate', 50.0),
    ('unfavorable', 30.0),
    ('critical', 0.0),
]

# ============================================================================
# WATER BUDGET
# ============================================================================

WATER_BUDGET_DEFAULTS = {
    'runoff_coefficient': 0.3,
    'aquifer_thickness_m': 10.0,
    'specific_yield': 0.15,
    'soil_depth_m': 1.0,
    'soil_porosity': 0.45,
}

# Orchestration
ORCHESTRATOR_MAX_WORKERS = 4
SAMPLE_FIELD = {
    'type': 'Feature',
    'properties': {'name': 'Harare sample field'},
    'geometry': {
        'type': 'Polygon',
        'coordinates': [[
            [31.0500, -17.8300],
            [31.0545, -17.8300],
            [31.0545, -17.8260],
            [31.0500, -17.8260],
            [31.0500, -17.8300],
        ]],
    },
}
