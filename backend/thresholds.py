"""Per-metric severity classification for vital-sign readings."""

import math
from typing import Dict, Optional, Tuple, Union

from models import Metric, MetricStatus, Reading, ReadingIn

Band = Tuple[Optional[float], Optional[float]]


class VitalThresholds:
    """Warning and critical bands per metric.

    A value is in a band when it is strictly below the lower bound or
    strictly above the upper bound; `None` means the side is unbounded.
    Boundary values themselves are normal.
    """

    WARNING: Dict[Metric, Band] = {
        Metric.HEART_RATE: (60, 100),  # bpm
        Metric.SPO2: (95, None),  # percentage
        Metric.TEMPERATURE: (36.0, 37.5),  # Celsius
        Metric.STRESS_LEVEL: (None, 50),
    }

    CRITICAL: Dict[Metric, Band] = {
        Metric.HEART_RATE: (50, 110),
        Metric.SPO2: (90, None),
        Metric.TEMPERATURE: (35.0, 38.5),
        Metric.STRESS_LEVEL: (None, 70),
    }

    @classmethod
    def in_band(cls, band: Band, value: float) -> bool:
        low, high = band
        if low is not None and value < low:
            return True
        if high is not None and value > high:
            return True
        return False


def _metric(metric: Union[Metric, str]) -> Metric:
    try:
        return Metric(metric)
    except ValueError:
        raise ValueError(f"Unknown metric: {metric}")


def classify(metric: Union[Metric, str], value: float) -> MetricStatus:
    """Map a single metric value to normal / warning / critical.

    The critical band is checked first. NaN compares false against every
    bound and so classifies as normal; ingestion rejects it earlier.

    Raises:
        ValueError: If the metric is not one of the four scored vitals.
    """
    m = _metric(metric)
    if isinstance(value, float) and math.isnan(value):
        return MetricStatus.NORMAL
    if VitalThresholds.in_band(VitalThresholds.CRITICAL[m], value):
        return MetricStatus.CRITICAL
    if VitalThresholds.in_band(VitalThresholds.WARNING[m], value):
        return MetricStatus.WARNING
    return MetricStatus.NORMAL


def classify_reading(reading: Optional[Union[Reading, ReadingIn]]) -> Dict[Metric, MetricStatus]:
    """Status for each scored metric; all normal when there is no reading yet."""
    if reading is None:
        return {m: MetricStatus.NORMAL for m in Metric}
    return {m: classify(m, getattr(reading, m.value)) for m in Metric}
