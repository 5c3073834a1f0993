"""
Synthetic reading producer.

The running baseline is an explicit `SimulatorState` value: each call
to `generate_reading` takes a state and returns the next one, so a new
session simply starts from `SimulatorState.initial()`.
"""

import math
import random
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from aggregation import round_half_up, to_fixed
from models import AlertIn, ReadingIn, Severity


@dataclass(frozen=True)
class SimulatorState:
    heart_rate: float
    spo2: float
    temperature: float
    stress_level: float

    @classmethod
    def initial(
        cls,
        heart_rate: float = 72,
        spo2: float = 98,
        temperature: float = 36.6,
        stress_level: float = 30,
    ) -> "SimulatorState":
        return cls(heart_rate, spo2, temperature, stress_level)


# metric -> (variance, min, max) of the random walk
WALK = {
    "heart_rate": (5, 55, 110),
    "spo2": (2, 92, 100),
    "temperature": (0.2, 35.5, 38.0),
    "stress_level": (8, 10, 85),
}


def _walk(rng: random.Random, base: float, variance: float, low: float, high: float) -> float:
    change = (rng.random() - 0.5) * variance
    return max(low, min(high, base + change))


def generate_reading(
    state: SimulatorState,
    user_id: str,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[ReadingIn, SimulatorState]:
    """Advance the random walk one step and build a reading from it."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    next_state = replace(
        state,
        **{
            field: _walk(rng, getattr(state, field), variance, low, high)
            for field, (variance, low, high) in WALK.items()
        },
    )

    ecg_base = math.sin(now.timestamp() * 1000 / 100) * 50
    ecg_value = ecg_base + (rng.random() - 0.5) * 20
    gsr_value = next_state.stress_level * 2 + (rng.random() - 0.5) * 10

    reading = ReadingIn(
        user_id=user_id,
        timestamp=now,
        heart_rate=round_half_up(next_state.heart_rate),
        spo2=round_half_up(next_state.spo2),
        temperature=float(to_fixed(next_state.temperature, 1)),
        stress_level=round_half_up(next_state.stress_level),
        gsr_value=float(to_fixed(gsr_value, 2)),
        ecg_value=float(to_fixed(ecg_value, 2)),
    )
    return reading, next_state


def generate_history(
    state: SimulatorState,
    user_id: str,
    count: int = 50,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[List[ReadingIn], SimulatorState]:
    """Back-fill `count` readings one minute apart, oldest first, ending at `now`."""
    now = now or datetime.now(timezone.utc)
    readings = []
    for i in range(count - 1, -1, -1):
        reading, state = generate_reading(state, user_id, rng, now - timedelta(minutes=i))
        readings.append(reading)
    return readings, state


def maybe_alert(
    reading: ReadingIn,
    rng: Optional[random.Random] = None,
    probability: float = 0.05,
) -> Optional[AlertIn]:
    """Occasionally emit one of the producer's canned alerts for `reading`."""
    rng = rng or random.Random()
    if rng.random() >= probability:
        return None
    candidates = [
        AlertIn(
            user_id=reading.user_id,
            alert_type=Severity.WARNING,
            sensor="heart_rate",
            message="Heart rate slightly elevated. Consider taking a short break.",
            value=reading.heart_rate,
        ),
        AlertIn(
            user_id=reading.user_id,
            alert_type=Severity.INFO,
            sensor="stress",
            message="Stress levels detected. Deep breathing recommended.",
            value=reading.stress_level,
        ),
    ]
    return rng.choice(candidates)
