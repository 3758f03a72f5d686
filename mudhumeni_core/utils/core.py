"""
Core utility functions for the Mudhumeni borehole siting engine
"""

import json
import numpy as np
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple
from datetime import datetime, timezone
import logging
import math
import re

from mudhumeni_core.config.settings import VIABILITY_RATINGS

logger = logging.getLogger(__name__)


class DataValidator:
    """Validates coordinates and numeric inputs"""

    @staticmethod
    def validate_coordinates(latitude: float, longitude: float,
                             allow_null_island: bool = False) -> Tuple[bool, str]:
        """Validate geographic coordinates"""
        try:
            latitude = float(latitude)
            longitude = float(longitude)
        except (TypeError, ValueError) as e:
            return False, f"Invalid coordinate type: {e}"

        if math.isnan(latitude) or math.isnan(longitude):
            return False, "Coordinates must not be NaN"

        if not (-90 <= latitude <= 90):
            return False, f"Latitude {latitude}° outside global range [-90°, 90°]"

        if not (-180 <= longitude <= 180):
            return False, f"Longitude {longitude}° outside global range [-180°, 180°]"

        # (0, 0) is the usual placeholder for a missing location
        if not allow_null_island and abs(latitude) < 1e-7 and abs(longitude) < 1e-7:
            return False, "Coordinates (0, 0) are a placeholder, not a field location"

        return True, "Valid coordinates"

    @staticmethod
    def is_number(value: Any) -> bool:
        """True for finite ints/floats (bools excluded)"""
        if isinstance(value, bool):
            return False
        if isinstance(value, (int, float, np.integer, np.floating)):
            return math.isfinite(float(value))
        return False


class StatisticsUtils:
    """Small statistics helpers with explicit zero handling"""

    @staticmethod
    def mean(values: Sequence[float]) -> float:
        return float(np.mean(values)) if len(values) else 0.0

    @staticmethod
    def population_std(values: Sequence[float]) -> float:
        return float(np.std(values)) if len(values) else 0.0

    @staticmethod
    def variability_coefficient(values: Sequence[float]) -> float:
        """Population std / mean; 0 when mean is 0"""
        mean = StatisticsUtils.mean(values)
        if mean == 0:
            return 0.0
        return StatisticsUtils.population_std(values) / mean

    @staticmethod
    def least_squares_slope(x: Sequence[float], y: Sequence[float]) -> float:
        """Slope of the least-squares line through (x, y); 0 for fewer than 2 distinct x"""
        if len(x) < 2 or len(set(x)) < 2:
            return 0.0
        slope, _ = np.polyfit(np.asarray(x, dtype=float), np.asarray(y, dtype=float), 1)
        return float(slope)

    @staticmethod
    def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
        return float(np.clip(value, lower, upper))


class SeverityClassifier:
    """Classify a success probability (0-100) into a viability rating"""

    @staticmethod
    def classify(success_probability: float) -> str:
        for rating, lower_bound in VIABILITY_RATINGS:
            if success_probability >= lower_bound:
                return rating
        return VIABILITY_RATINGS[-1][0]


class ReportExporter:
    """Serialize report documents"""

    _CAMEL_RE = re.compile(r'_([a-z0-9])')

    @staticmethod
    def to_camel(key: str) -> str:
        return ReportExporter._CAMEL_RE.sub(lambda m: m.group(1).upper(), key)

    @staticmethod
    def camelize(value: Any) -> Any:
        """Recursively convert snake_case dict keys to camelCase"""
        if isinstance(value, dict):
            return {
                (ReportExporter.to_camel(k) if isinstance(k, str) else k): ReportExporter.camelize(v)
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple)):
            return [ReportExporter.camelize(v) for v in value]
        return value

    @staticmethod
    def _json_default(value: Any) -> Any:
        if isinstance(value, (np.integer,)):
            return int(value)
        if isinstance(value, (np.floating,)):
            return float(value)
        if isinstance(value, (set, frozenset)):
            return sorted(value)
        return str(value)

    @staticmethod
    def to_json_string(report: Dict[str, Any]) -> str:
        return json.dumps(report, indent=2, default=ReportExporter._json_default)

    @staticmethod
    def to_json(report: Dict[str, Any], output_path: Path) -> None:
        """Export report to JSON"""
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            f.write(ReportExporter.to_json_string(report))

        logger.info(f"JSON report exported to {output_path}")


def get_timestamp() -> str:
    """Current UTC timestamp in ISO format"""
    return datetime.now(timezone.utc).isoformat()


def iso_from_millis(timestamp_ms: float) -> str:
    """ISO-8601 UTC string from milliseconds since epoch"""
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).isoformat()
