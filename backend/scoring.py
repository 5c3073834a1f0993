"""
Health score calculation.

The score starts at 100 and loses a fixed penalty for every metric that
sits in its warning band, plus an extra penalty when it reaches the
critical band. Penalties are independent per metric and the total is
clamped to [0, 100]. Metric interactions are not modelled.
"""

from typing import Dict, Optional, Tuple, Union

from models import HealthScore, Metric, MetricStatus, Reading, ReadingIn
from thresholds import classify

DEFAULT_SCORE = 75

# metric -> (warning penalty, additional critical penalty)
PENALTIES: Dict[Metric, Tuple[int, int]] = {
    Metric.HEART_RATE: (10, 15),
    Metric.SPO2: (10, 20),
    Metric.TEMPERATURE: (10, 20),
    Metric.STRESS_LEVEL: (10, 15),
}

# (minimum score, label, description), highest band first
SCORE_BANDS = [
    (80, "Excellent",
     "Your health metrics are in excellent condition. Keep up the great work with your healthy lifestyle!"),
    (60, "Good",
     "Your health indicators are good overall. Consider minor improvements in stress management."),
    (40, "Fair",
     "Some health metrics need attention. Focus on regular monitoring and healthy habits."),
    (0, "Needs Attention",
     "Several health indicators require attention. Please consult with a healthcare professional."),
]

AnyReading = Union[Reading, ReadingIn]


def score_reading(reading: AnyReading) -> int:
    score = 100
    for metric, (warning_penalty, critical_penalty) in PENALTIES.items():
        status = classify(metric, getattr(reading, metric.value))
        if status is MetricStatus.NORMAL:
            continue
        score -= warning_penalty
        if status is MetricStatus.CRITICAL:
            score -= critical_penalty
    return max(0, min(100, score))


def score_label(score: int) -> Tuple[str, str]:
    for minimum, label, description in SCORE_BANDS:
        if score >= minimum:
            return label, description
    return SCORE_BANDS[-1][1], SCORE_BANDS[-1][2]


def score_breakdown(score: int) -> Dict[str, int]:
    """Per-system sub-scores shown next to the overall score."""
    return {
        "cardiovascular": min(100, score + 5),
        "respiratory": min(100, score + 2),
        "stress_management": max(60, score - 10),
    }


def score_trend(current: int, previous: Optional[int]) -> str:
    if previous is None or current == previous:
        return "stable"
    return "up" if current > previous else "down"


def health_score(
    reading: Optional[AnyReading], previous: Optional[AnyReading] = None
) -> HealthScore:
    """Score the latest reading.

    With no reading the neutral placeholder `DEFAULT_SCORE` is returned
    with `computed=False`.
    """
    if reading is None:
        label, description = score_label(DEFAULT_SCORE)
        return HealthScore(
            score=DEFAULT_SCORE,
            computed=False,
            label=label,
            description=description,
            breakdown=score_breakdown(DEFAULT_SCORE),
        )

    score = score_reading(reading)
    label, description = score_label(score)
    previous_score = score_reading(previous) if previous is not None else None
    return HealthScore(
        score=score,
        computed=True,
        label=label,
        description=description,
        trend=score_trend(score, previous_score),
        breakdown=score_breakdown(score),
    )
