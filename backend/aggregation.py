"""
Session aggregation: averages and duration formatting for a monitoring
session, plus the summary returned when a session ends.

Readings are passed newest first, the order the store and the live
window both use.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from itertools import islice
from typing import Optional, Sequence, Union

from classifiers import achievements
from models import Reading, ReadingIn, SessionAverages, SessionSummary
from scoring import health_score

AnyReading = Union[Reading, ReadingIn]

DEFAULT_AVERAGE_WINDOW = 24


def round_half_up(value: float) -> int:
    """Integer rounding with halves going up, as the dashboard displays it."""
    return int(math.floor(value + 0.5))


def to_fixed(value: float, digits: int = 1) -> str:
    """Fixed-point string of the exact binary value, halves away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def session_averages(
    readings: Sequence[AnyReading], window: int = DEFAULT_AVERAGE_WINDOW
) -> SessionAverages:
    """Means over at most the `window` most recent readings.

    Heart rate, SpO2 and stress are rounded to integers; temperature is
    formatted with one decimal. An empty sequence gives the zero result.
    """
    recent = list(islice(readings, window))
    if not recent:
        return SessionAverages()

    n = len(recent)
    return SessionAverages(
        avg_hr=round_half_up(sum(r.heart_rate for r in recent) / n),
        avg_spo2=round_half_up(sum(r.spo2 for r in recent) / n),
        avg_temp=to_fixed(sum(r.temperature for r in recent) / n),
        avg_stress=round_half_up(sum(r.stress_level for r in recent) / n),
    )


def format_duration(seconds: float) -> str:
    """HH:MM:SS, zero padded; the hour field grows past two digits as needed."""
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def summarize_session(
    user_id: str,
    readings: Sequence[AnyReading],
    duration_seconds: int,
    window: int = DEFAULT_AVERAGE_WINDOW,
) -> SessionSummary:
    latest: Optional[AnyReading] = readings[0] if readings else None
    previous: Optional[AnyReading] = readings[1] if len(readings) > 1 else None
    return SessionSummary(
        user_id=user_id,
        duration_seconds=max(0, int(duration_seconds)),
        duration=format_duration(duration_seconds),
        data_points=len(readings),
        health_score=health_score(latest, previous),
        averages=session_averages(readings, window),
        achievements=achievements(latest, len(readings)),
    )
