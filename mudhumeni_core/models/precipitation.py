"""
PRECIPITATION ANALYSIS MODEL
Hourly rainfall + soil moisture history -> annual, seasonal, trend,
extreme-event, recharge and reliability metrics for a field
"""

import math
import numpy as np
import pandas as pd
from collections.abc import Mapping
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from dateutil.relativedelta import relativedelta
from scipy.signal import argrelextrema

from mudhumeni_core.data_sources import DataProvider, PrecipitationRecord
from mudhumeni_core.utils.core import StatisticsUtils, iso_from_millis
from mudhumeni_core.utils.errors import ComputationError, DataUnavailable
from mudhumeni_core.config.settings import (
    ENVIRONMENT, VALID_ENVIRONMENTS, PRECIPITATION_CONFIG, RECHARGE_CONFIG, SYNTHETIC_PRECIPITATION,
    ZERO_RAINFALL_PERTURBATION_MM, DRY_MONTH_THRESHOLD_MM,
    DROUGHT_RATIO_THRESHOLD, DROUGHT_MIN_CONSECUTIVE_RECORDS, HEAVY_RAINFALL_RATIO,
    DROUGHT_SEVERITY_TABLE, RECHARGE_DEFAULT_SOIL_MOISTURE, RECHARGE_THRESHOLD_CAP_MM,
    RECHARGE_THRESHOLD_STD_FACTOR, RECHARGE_MAX_RAIN_FRACTION, RECHARGE_MONTHLY_AVG_FRACTION,
    RECHARGE_FALLBACK_TOP_FRACTION, RECHARGE_FALLBACK_EFFICIENCY, RECHARGE_EFFICIENCY_BOUNDS,
    RECHARGE_EFFICIENCY_BLEND, DEFAULT_RELIABILITY_SCORE
)

logger = logging.getLogger(__name__)

MONTHS = tuple(range(12))
MS_PER_DAY = 86_400_000


@dataclass(frozen=True)
class AnnualMetric:
    year: int
    total_rainfall: float
    average_monthly: float
    variability_coefficient: float
    dry_month_count: int
    months_observed: int = 12


@dataclass
class SeasonalPatterns:
    monthly_averages: List[float]
    wet_season: List[int]
    dry_season: List[int]
    transition_periods: List[int]
    seasonality_index: float
    monthly_variability: List[float] = field(default_factory=list)


@dataclass
class TrendAnalysis:
    long_term_slope: float
    year_over_year_changes: List[Dict[str, Any]]
    cycle_analysis: Dict[str, Any]


@dataclass
class DroughtEvent:
    start_date: str
    end_date: str
    duration_records: int
    severity: float


@dataclass
class HeavyRainfallEvent:
    date: str
    amount: float
    intensity: float


@dataclass
class ExtremeEvents:
    droughts: List[DroughtEvent]
    heavy_rainfall_events: List[HeavyRainfallEvent]

    @property
    def max_heavy_rainfall_intensity(self) -> float:
        return max((e.intensity for e in self.heavy_rainfall_events), default=0.0)


@dataclass
class RechargeEvent:
    date: str
    amount: float


@dataclass
class RechargePatterns:
    events: List[RechargeEvent]
    annual_recharge: Dict[int, float]
    efficiency: float
    fallback_flag: bool
    threshold_mm: float = 0.0


@dataclass
class ReliabilityScores:
    overall: float
    seasonal: float
    trend: float
    recharge: float


@dataclass
class PrecipitationMetrics:
    """Container for precipitation analysis results"""
    annual_metrics: List[AnnualMetric]
    seasonal_patterns: SeasonalPatterns
    trends: TrendAnalysis
    extremes: ExtremeEvents
    recharge_patterns: RechargePatterns
    reliability_scores: ReliabilityScores
    record_count: int
    mean_soil_moisture: Optional[float]
    data_source: str
    is_fallback: bool = False
    note: Optional[str] = None

    @property
    def average_annual_rainfall_mm(self) -> float:
        return StatisticsUtils.mean([m.total_rainfall for m in self.annual_metrics])

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['average_annual_rainfall_mm'] = round(self.average_annual_rainfall_mm, 2)
        data['recharge_patterns']['annual_recharge'] = {
            str(year): total for year, total in self.recharge_patterns.annual_recharge.items()
        }
        return data


class GroupedPrecipitation(Mapping):
    """
    Read-only mapping year -> (month index 0..11 -> tuple of rain values),
    grouped by UTC calendar month.
    """

    def __init__(self, groups: Dict[int, Dict[int, Sequence[float]]]):
        self._groups = MappingProxyType({
            int(year): MappingProxyType({int(m): tuple(values) for m, values in months.items()})
            for year, months in groups.items()
        })

    @classmethod
    def from_records(cls, records: Sequence[PrecipitationRecord]) -> "GroupedPrecipitation":
        return cls.from_frame(records_to_frame(records))

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "GroupedPrecipitation":
        groups: Dict[int, Dict[int, List[float]]] = {}
        for (year, month), rain in frame.groupby(['year', 'month'], sort=True)['rain_mm']:
            groups.setdefault(int(year), {})[int(month)] = rain.tolist()
        return cls(groups)

    def __getitem__(self, year: int) -> Mapping:
        return self._groups[year]

    def __iter__(self):
        return iter(sorted(self._groups))

    def __len__(self) -> int:
        return len(self._groups)

    @property
    def years(self) -> List[int]:
        return sorted(self._groups)

    def month_totals(self, year: int) -> Dict[int, float]:
        return {month: float(sum(values)) for month, values in self._groups[year].items()}


def records_to_frame(records: Sequence[PrecipitationRecord]) -> pd.DataFrame:
    """Records as a time-ordered DataFrame with UTC year and 0-indexed month columns"""
    frame = pd.DataFrame(
        [(r.timestamp, float(r.rain_mm), r.soil_moisture) for r in records],
        columns=['timestamp', 'rain_mm', 'soil_moisture'],
    )
    frame = frame.sort_values('timestamp', kind='stable').reset_index(drop=True)
    moments = pd.to_datetime(frame['timestamp'], unit='ms', utc=True)
    frame['year'] = moments.dt.year.astype(int)
    frame['month'] = (moments.dt.month - 1).astype(int)
    return frame


def drought_severity(rainfall: float, monthly_average: float) -> float:
    """Severity from the ratio of rainfall to the month's average total"""
    if monthly_average <= 0:
        return 1.0
    ratio = rainfall / monthly_average
    for lower_bound, severity in DROUGHT_SEVERITY_TABLE:
        if ratio >= lower_bound:
            return severity
    return DROUGHT_SEVERITY_TABLE[-1][1]


def _cyclic_distance(a: int, b: int) -> int:
    d = abs(a - b) % 12
    return min(d, 12 - d)


def _neighbors(month: int) -> Tuple[int, int]:
    return ((month - 1) % 12, (month + 1) % 12)


class PrecipitationAnalyzer:
    """
    Precipitation analysis over a 10-year hourly history:
    - Annual totals, variability and dry-month counts
    - Wet/dry/transition seasons and seasonality index
    - Long-term trend, year-over-year change, wet/dry cycles
    - Droughts and heavy-rainfall events
    - Soil- and slope-adjusted recharge events and efficiency
    - Reliability scores feeding the downstream models
    """

    def __init__(self,
                 provider: DataProvider,
                 environment: str = ENVIRONMENT,
                 config: Optional[Dict[str, Any]] = None,
                 recharge_config: Optional[Dict[str, Any]] = None,
                 rng: Optional[np.random.Generator] = None):
        self.logger = logging.getLogger(__name__)
        self.provider = provider
        if environment not in VALID_ENVIRONMENTS:
            raise ValueError(f"Unknown environment '{environment}', expected one of {VALID_ENVIRONMENTS}")
        self.environment = environment
        self.config = {**PRECIPITATION_CONFIG, **(config or {})}
        self.recharge_config = {**RECHARGE_CONFIG, **(recharge_config or {})}
        self.rng = rng if rng is not None else np.random.default_rng()

    # ------------------------------------------------------------------
    # Fetch policy
    # ------------------------------------------------------------------

    def analyze(self, latitude: float, longitude: float, mean_slope: float,
                end_date: Optional[date] = None) -> PrecipitationMetrics:
        """
        Fetch the rainfall history for a point and analyze it.

        Args:
            latitude, longitude: Field centroid
            mean_slope: Mean terrain slope of the field in degrees
            end_date: Last day of the history (defaults to today, UTC)

        Raises:
            ComputationError: if the metrics cannot be computed from the series
        """
        end_date = end_date or datetime.now(timezone.utc).date()
        start_date = end_date - relativedelta(years=self.config['years_back'])
        notes = []

        try:
            records = self.provider.fetch_historical_hourly(latitude, longitude, start_date, end_date)
            data_source = 'open-meteo'
            is_fallback = False
        except DataUnavailable as e:
            self.logger.warning(f"⚠ Precipitation data unavailable ({e}); using synthetic series")
            records = self.generate_synthetic_series(end_date)
            data_source = 'synthetic'
            is_fallback = True
            notes.append('Historical rainfall unavailable; analysis uses a synthetic 5-year series')
        else:
            records, zero_note = self._handle_all_zero(records)
            if zero_note:
                notes.append(zero_note)

        return self.analyze_records(records, mean_slope, data_source=data_source,
                                    is_fallback=is_fallback, notes=notes)

    def generate_synthetic_series(self, end_date: date) -> List[PrecipitationRecord]:
        """Five years of daily records with an April-September rainy season"""
        synthetic = SYNTHETIC_PRECIPITATION
        start_date = end_date - relativedelta(years=synthetic['years'])
        start_ms = int(datetime(start_date.year, start_date.month, start_date.day,
                                tzinfo=timezone.utc).timestamp() * 1000)
        n_days = (end_date - start_date).days

        timestamps = start_ms + np.arange(n_days, dtype=np.int64) * MS_PER_DAY
        months = pd.to_datetime(timestamps, unit='ms', utc=True).month.to_numpy() - 1
        rainy = np.isin(months, synthetic['rainy_months'])

        base = np.where(rainy,
                        self.rng.uniform(*synthetic['rainy_day_mm'], size=n_days),
                        self.rng.uniform(*synthetic['dry_day_mm'], size=n_days))
        heavy = self.rng.random(n_days) < synthetic['heavy_rain_probability']
        rain = base + heavy * self.rng.uniform(*synthetic['heavy_rain_extra_mm'], size=n_days)
        soil = self.rng.uniform(*synthetic['soil_moisture'], size=n_days)

        return [
            PrecipitationRecord(timestamp=int(ts), rain_mm=float(r), soil_moisture=float(s))
            for ts, r, s in zip(timestamps, rain, soil)
        ]

    def _handle_all_zero(self, records: List[PrecipitationRecord]
                         ) -> Tuple[List[PrecipitationRecord], Optional[str]]:
        if not records or any(r.rain_mm > 0 for r in records):
            return records, None

        if self.environment == 'development':
            self.logger.warning("All rainfall values are zero; applying development micro-perturbation")
            perturbed = self.rng.uniform(*ZERO_RAINFALL_PERTURBATION_MM, size=len(records))
            records = [
                PrecipitationRecord(r.timestamp, float(p), r.soil_moisture)
                for r, p in zip(records, perturbed)
            ]
            return records, 'All-zero rainfall response perturbed (development environment)'

        self.logger.warning("⚠ All rainfall values in the response are zero; keeping them as reported")
        return records, 'Rainfall provider reported zero rainfall for the whole period'

    # ------------------------------------------------------------------
    # Analysis pipeline
    # ------------------------------------------------------------------

    def analyze_records(self, records: Sequence[PrecipitationRecord], mean_slope: float,
                        data_source: str = 'provided', is_fallback: bool = False,
                        notes: Optional[List[str]] = None) -> PrecipitationMetrics:
        """Run all analysis stages over an already-fetched series"""
        notes = list(notes or [])
        if not records:
            raise ComputationError('precipitation', ValueError('no precipitation records'))

        try:
            frame = records_to_frame(records)
            grouped = GroupedPrecipitation.from_frame(frame)

            # Stage 1: independent descriptive statistics
            annual = self.calculate_annual_metrics(grouped)
            seasonal = self.analyze_seasonal_patterns(grouped)
            trends = self.calculate_trends(annual)

            # Stage 2: record-level scans against the seasonal baseline
            extremes = self.detect_extreme_events(frame, seasonal.monthly_averages)
            recharge = self.analyze_recharge(frame, seasonal.monthly_averages, mean_slope)

            # Stage 3
            reliability = self.calculate_reliability(seasonal, trends, recharge)
        except ComputationError:
            raise
        except Exception as e:
            self.logger.error(f"Precipitation analysis failed: {e}")
            raise ComputationError('precipitation', e) from e

        if recharge.fallback_flag:
            notes.append('No rainfall exceeded the recharge threshold; recharge estimated '
                         'from the top 20% of records with efficiency 0.2')
            is_fallback = True

        min_annual = self.recharge_config['min_annual_rainfall_mm']
        mean_annual = StatisticsUtils.mean([m.total_rainfall for m in annual])
        if mean_annual < min_annual:
            notes.append(f'Mean annual rainfall {mean_annual:.0f} mm is below {min_annual} mm; '
                         'recharge is likely limited')

        soil = frame['soil_moisture'].dropna()
        self.logger.info(
            f"✓ Precipitation analyzed: {len(frame)} records, {len(annual)} years, "
            f"reliability {reliability.overall:.2f}"
        )

        return PrecipitationMetrics(
            annual_metrics=annual,
            seasonal_patterns=seasonal,
            trends=trends,
            extremes=extremes,
            recharge_patterns=recharge,
            reliability_scores=reliability,
            record_count=int(len(frame)),
            mean_soil_moisture=float(soil.mean()) if len(soil) else None,
            data_source=data_source,
            is_fallback=is_fallback,
            note='; '.join(notes) if notes else None,
        )

    @staticmethod
    def default_metrics(note: str) -> PrecipitationMetrics:
        """Calibrated neutral metrics used when the analysis itself failed"""
        score = DEFAULT_RELIABILITY_SCORE
        return PrecipitationMetrics(
            annual_metrics=[],
            seasonal_patterns=SeasonalPatterns(
                monthly_averages=[0.0] * 12, wet_season=[], dry_season=[],
                transition_periods=list(MONTHS), seasonality_index=0.0,
                monthly_variability=[0.0] * 12,
            ),
            trends=TrendAnalysis(long_term_slope=0.0, year_over_year_changes=[],
                                 cycle_analysis={'peaks': [], 'troughs': [], 'average_cycle_length': None}),
            extremes=ExtremeEvents(droughts=[], heavy_rainfall_events=[]),
            recharge_patterns=RechargePatterns(events=[], annual_recharge={}, efficiency=score,
                                               fallback_flag=True),
            reliability_scores=ReliabilityScores(overall=score, seasonal=score, trend=score, recharge=score),
            record_count=0,
            mean_soil_moisture=None,
            data_source='default',
            is_fallback=True,
            note=note,
        )

    # ------------------------------------------------------------------
    # Stage 1
    # ------------------------------------------------------------------

    def calculate_annual_metrics(self, grouped: GroupedPrecipitation) -> List[AnnualMetric]:
        """
        average_monthly always divides by 12; variability and dry months only
        see months with data, so partial years report months_observed < 12.
        """
        metrics = []
        for year in grouped.years:
            month_totals = list(grouped.month_totals(year).values())
            total = float(sum(month_totals))
            metrics.append(AnnualMetric(
                year=year,
                total_rainfall=round(total, 3),
                average_monthly=round(total / 12, 3),
                variability_coefficient=round(StatisticsUtils.variability_coefficient(month_totals), 4),
                dry_month_count=int(sum(1 for t in month_totals if t < DRY_MONTH_THRESHOLD_MM)),
                months_observed=len(month_totals),
            ))
        return metrics

    def analyze_seasonal_patterns(self, grouped: GroupedPrecipitation) -> SeasonalPatterns:
        years = grouped.years
        totals = np.zeros((max(len(years), 1), 12))
        for i, year in enumerate(years):
            for month, total in grouped.month_totals(year).items():
                totals[i, month] = total

        averages = totals.mean(axis=0)
        variability = [StatisticsUtils.variability_coefficient(totals[:, m]) for m in MONTHS]
        wet, dry = self._classify_seasons(averages)
        transition = [m for m in MONTHS if m not in wet and m not in dry]

        max_avg, min_avg = float(averages.max()), float(averages.min())
        seasonality = (max_avg - min_avg) / (max_avg + min_avg) if (max_avg + min_avg) > 0 else 0.0

        return SeasonalPatterns(
            monthly_averages=[float(v) for v in averages],
            wet_season=sorted(wet),
            dry_season=sorted(dry),
            transition_periods=transition,
            seasonality_index=StatisticsUtils.clamp(seasonality),
            monthly_variability=[float(v) for v in variability],
        )

    @staticmethod
    def _classify_seasons(averages: np.ndarray) -> Tuple[set, set]:
        """
        Wet season: peak month plus neighbours above half the peak.
        Dry season: trough month plus neighbours below twice the trough,
        excluding wet months. A flat profile has no seasons.
        """
        max_avg, min_avg = float(averages.max()), float(averages.min())
        if max_avg == min_avg:
            return set(), set()

        peak = int(np.argmax(averages))
        # tied minima resolve to the month furthest from the peak
        candidates = [m for m in MONTHS if averages[m] == min_avg]
        trough = max(candidates, key=lambda m: (_cyclic_distance(m, peak), -m))

        wet = {peak}
        for month in _neighbors(peak):
            if month != trough and averages[month] > max_avg / 2:
                wet.add(month)

        dry = {trough}
        for month in _neighbors(trough):
            if month not in wet and averages[month] < 2 * min_avg:
                dry.add(month)

        return wet, dry

    def calculate_trends(self, annual: List[AnnualMetric]) -> TrendAnalysis:
        years = [m.year for m in annual]
        totals = [m.total_rainfall for m in annual]

        slope = StatisticsUtils.least_squares_slope(years, totals)

        changes = []
        for previous, current in zip(annual, annual[1:]):
            change = current.total_rainfall - previous.total_rainfall
            changes.append({
                'year': current.year,
                'change_mm': round(change, 3),
                'change_percent': (round(change / previous.total_rainfall * 100, 2)
                                   if previous.total_rainfall != 0 else None),
            })

        return TrendAnalysis(
            long_term_slope=round(slope, 6),
            year_over_year_changes=changes,
            cycle_analysis=self._analyze_cycles(years, totals),
        )

    @staticmethod
    def _analyze_cycles(years: List[int], totals: List[float]) -> Dict[str, Any]:
        if len(years) < 3:
            return {'peaks': [], 'troughs': [], 'average_cycle_length': None}

        values = np.asarray(totals, dtype=float)
        peak_idx = argrelextrema(values, np.greater)[0]
        trough_idx = argrelextrema(values, np.less)[0]

        extremes = sorted([(int(i), 'peak') for i in peak_idx] + [(int(i), 'trough') for i in trough_idx])
        alternating = []
        for index, kind in extremes:
            if not alternating or alternating[-1][1] != kind:
                alternating.append((index, kind))

        intervals = [years[b[0]] - years[a[0]] for a, b in zip(alternating, alternating[1:])]
        return {
            'peaks': [years[i] for i in peak_idx],
            'troughs': [years[i] for i in trough_idx],
            'average_cycle_length': float(np.mean(intervals)) if intervals else None,
        }

    # ------------------------------------------------------------------
    # Stage 2
    # ------------------------------------------------------------------

    def detect_extreme_events(self, frame: pd.DataFrame,
                              monthly_averages: Sequence[float]) -> ExtremeEvents:
        droughts: List[DroughtEvent] = []
        heavy: List[HeavyRainfallEvent] = []

        run_count = 0
        run_start = None
        run_end = None
        run_rain = 0.0
        run_avg = 0.0

        def close_run():
            if run_count >= DROUGHT_MIN_CONSECUTIVE_RECORDS:
                droughts.append(DroughtEvent(
                    start_date=iso_from_millis(run_start),
                    end_date=iso_from_millis(run_end),
                    duration_records=run_count,
                    severity=drought_severity(run_rain / run_count, run_avg / run_count),
                ))

        for timestamp, rain, month in zip(frame['timestamp'], frame['rain_mm'], frame['month']):
            average = monthly_averages[int(month)]

            if rain < DROUGHT_RATIO_THRESHOLD * average:
                if run_count == 0:
                    run_start = int(timestamp)
                    run_rain = run_avg = 0.0
                run_count += 1
                run_end = int(timestamp)
                run_rain += float(rain)
                run_avg += average
            else:
                close_run()
                run_count = 0

            if average > 0 and rain > HEAVY_RAINFALL_RATIO * average:
                heavy.append(HeavyRainfallEvent(
                    date=iso_from_millis(int(timestamp)),
                    amount=float(rain),
                    intensity=round(float(rain) / average, 4),
                ))
        close_run()

        return ExtremeEvents(droughts=droughts, heavy_rainfall_events=heavy)

    def _slope_factor(self, mean_slope: float) -> float:
        cfg = self.recharge_config
        return cfg['slope_factor_low'] if mean_slope < cfg['slope_threshold_deg'] else cfg['slope_factor_high']

    def _soil_factors(self, soil_moisture: pd.Series) -> np.ndarray:
        cfg = self.recharge_config
        soil = soil_moisture.fillna(RECHARGE_DEFAULT_SOIL_MOISTURE).to_numpy(dtype=float)
        return np.where(soil > cfg['soil_moisture_threshold'], cfg['soil_factor_high'], cfg['soil_factor_low'])

    def analyze_recharge(self, frame: pd.DataFrame, monthly_averages: Sequence[float],
                         mean_slope: float) -> RechargePatterns:
        averages = np.asarray(monthly_averages, dtype=float)
        rain = frame['rain_mm'].to_numpy(dtype=float)
        months = frame['month'].to_numpy(dtype=int)

        threshold = min(float(averages.mean() + RECHARGE_THRESHOLD_STD_FACTOR * averages.std()),
                        RECHARGE_THRESHOLD_CAP_MM)
        adjusted = threshold * self._soil_factors(frame['soil_moisture']) * self._slope_factor(mean_slope)
        cutoff = np.minimum(adjusted, RECHARGE_MAX_RAIN_FRACTION * float(rain.max()))

        event_mask = rain > cutoff
        fallback = not event_mask.any()

        if fallback:
            self.logger.warning("No recharge events above threshold; using top-20% fallback")
            n_events = max(1, math.ceil(RECHARGE_FALLBACK_TOP_FRACTION * len(rain)))
            top = np.argsort(-rain, kind='stable')[:n_events]
            event_mask = np.zeros(len(rain), dtype=bool)
            event_mask[top] = True
            efficiency = RECHARGE_FALLBACK_EFFICIENCY
        else:
            efficiency = self._recharge_efficiency(rain, months, adjusted, averages)

        event_frame = frame.loc[event_mask]
        events = [
            RechargeEvent(date=iso_from_millis(int(ts)), amount=float(amount))
            for ts, amount in zip(event_frame['timestamp'], event_frame['rain_mm'])
        ]
        annual = {int(year): round(float(total), 3)
                  for year, total in event_frame.groupby('year')['rain_mm'].sum().items()}

        return RechargePatterns(
            events=events,
            annual_recharge=annual,
            efficiency=round(efficiency, 4),
            fallback_flag=fallback,
            threshold_mm=round(threshold, 4),
        )

    @staticmethod
    def _recharge_efficiency(rain: np.ndarray, months: np.ndarray,
                             adjusted: np.ndarray, averages: np.ndarray) -> float:
        """
        Share of rainfall in excess of the binding threshold. A record
        above both adjusted_threshold and half the monthly average gets
        weight w = min(rain/adjusted, rain/(0.5*avg)) and recharges
        rain * (1 - 1/w).
        """
        record_avg = averages[months]
        half_avg = RECHARGE_MONTHLY_AVG_FRACTION * record_avg
        qualifies = (adjusted > 0) & (half_avg > 0) & (rain > adjusted) & (rain > half_avg)

        recharge = np.zeros_like(rain)
        with np.errstate(divide='ignore', invalid='ignore'):
            weight = np.minimum(rain / adjusted, rain / half_avg)
            recharge[qualifies] = rain[qualifies] * (1 - 1 / weight[qualifies])

        total_rain = float(rain.sum())
        overall = float(recharge.sum()) / total_rain if total_rain > 0 else 0.0

        month_rain = np.bincount(months, weights=rain, minlength=12)
        month_recharge = np.bincount(months, weights=recharge, minlength=12)
        wet_months = month_rain > 0
        monthly_eff = float(np.mean(month_recharge[wet_months] / month_rain[wet_months])) if wet_months.any() else 0.0

        blended = RECHARGE_EFFICIENCY_BLEND['overall'] * overall + RECHARGE_EFFICIENCY_BLEND['monthly'] * monthly_eff
        return StatisticsUtils.clamp(blended, *RECHARGE_EFFICIENCY_BOUNDS)

    # ------------------------------------------------------------------
    # Stage 3
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_reliability(seasonal: SeasonalPatterns, trends: TrendAnalysis,
                              recharge: RechargePatterns) -> ReliabilityScores:
        seasonal_score = StatisticsUtils.clamp(1 - seasonal.seasonality_index)
        trend_score = StatisticsUtils.clamp(1 - abs(trends.long_term_slope))
        recharge_score = StatisticsUtils.clamp(recharge.efficiency)
        overall = (seasonal_score + trend_score + recharge_score) / 3

        return ReliabilityScores(
            overall=round(overall, 4),
            seasonal=round(seasonal_score, 4),
            trend=round(trend_score, 4),
            recharge=round(recharge_score, 4),
        )
