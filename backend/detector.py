from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from models import AnomalyEvent, Reading, ReadingIn, Severity

logger = logging.getLogger(__name__)

# Absolute thresholds
HIGH_HEART_RATE: float = 100
LOW_HEART_RATE: float = 50
CRITICAL_SPO2: float = 90
LOW_SPO2: float = 95
HIGH_TEMPERATURE: float = 38.5
TEMPERATURE_RANGE: tuple[float, float] = (35.5, 37.5)

# Rate-of-change thresholds between consecutive readings
STRESS_DELTA: float = 20
GSR_DELTA: float = 30

DEFAULT_QUEUE_SIZE: int = 5


def _fmt(value: float) -> str:
    return f"{value:g}"


@dataclass(frozen=True)
class _Snapshot:
    heart_rate: float
    stress_level: float
    gsr_value: float

    @classmethod
    def of(cls, reading: Union[Reading, ReadingIn]) -> "_Snapshot":
        return cls(reading.heart_rate, reading.stress_level, reading.gsr_value)


class AnomalyDetector:
    """
    Rule-based anomaly detector over consecutive readings of one session.

    Holds the previous heart rate / stress / GSR values and a bounded,
    newest-first queue of anomaly events. Absolute rules look at the new
    reading only; delta rules compare it to the previous snapshot, which
    is replaced after every evaluated reading whether or not a rule fired.
    """

    def __init__(
        self,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        ttl_seconds: Optional[float] = None,
        notifier: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.queue_size = queue_size
        self.ttl_seconds = ttl_seconds
        self.notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._previous: Optional[_Snapshot] = None
        self._events: deque[AnomalyEvent] = deque(maxlen=queue_size)
        self.active = False

    # --- lifecycle ---

    def start(self) -> None:
        self.active = True

    def stop(self) -> None:
        self.active = False

    def reset(self) -> None:
        """Forget the previous snapshot and all queued events."""
        self._previous = None
        self._events.clear()

    # --- queries ---

    @property
    def events(self) -> list[AnomalyEvent]:
        return list(self._events)

    @property
    def previous(self) -> Optional[_Snapshot]:
        return self._previous

    # --- mutation ---

    def process(self, reading: Union[Reading, ReadingIn]) -> list[AnomalyEvent]:
        """
        Evaluate one reading and return the events it fired.
        Readings are ignored (state untouched) while the detector is inactive.
        """
        if not self.active:
            return []

        self.expire()

        previous = self._previous or _Snapshot.of(reading)
        fired = self._evaluate(reading, previous)
        self._previous = _Snapshot.of(reading)

        if fired:
            # keep the batch order at the front of the queue; maxlen evicts the oldest
            for event in reversed(fired):
                self._events.appendleft(event)
            logger.info(
                "Anomalies detected for %s: %s",
                reading.user_id,
                ", ".join(e.title for e in fired),
            )
            if any(e.type in (Severity.CRITICAL, Severity.WARNING) for e in fired):
                self._notify()

        return fired

    def dismiss(self, event_id: str) -> bool:
        for event in self._events:
            if event.id == event_id:
                self._events.remove(event)
                return True
        return False

    def expire(self) -> int:
        """Drop events older than the TTL. No-op when no TTL is configured."""
        if self.ttl_seconds is None:
            return 0
        cutoff = self._clock() - timedelta(seconds=self.ttl_seconds)
        kept = [e for e in self._events if e.timestamp >= cutoff]
        dropped = len(self._events) - len(kept)
        if dropped:
            self._events = deque(kept, maxlen=self.queue_size)
        return dropped

    # --- rules ---

    def _evaluate(self, reading: Union[Reading, ReadingIn], previous: _Snapshot) -> list[AnomalyEvent]:
        events: list[AnomalyEvent] = []
        hr = reading.heart_rate
        spo2 = reading.spo2
        temp = reading.temperature

        if hr > HIGH_HEART_RATE:
            events.append(self._make_event(
                "hr", Severity.WARNING, "High Heart Rate",
                f"Heart rate is elevated at {_fmt(hr)} BPM. Consider resting.",
            ))

        # 0 means no signal, not bradycardia
        if 0 < hr < LOW_HEART_RATE:
            events.append(self._make_event(
                "hr-low", Severity.WARNING, "Low Heart Rate",
                f"Heart rate is below normal at {_fmt(hr)} BPM.",
            ))

        if spo2 < CRITICAL_SPO2:
            events.append(self._make_event(
                "spo2", Severity.CRITICAL, "Critical SpO2 Level",
                f"Blood oxygen is critically low at {_fmt(spo2)}%. Seek immediate attention.",
            ))
        elif spo2 < LOW_SPO2:
            events.append(self._make_event(
                "spo2-low", Severity.WARNING, "Low SpO2 Level",
                f"Blood oxygen is below optimal at {_fmt(spo2)}%. Practice deep breathing.",
            ))

        low_temp, high_temp = TEMPERATURE_RANGE
        if temp > HIGH_TEMPERATURE:
            events.append(self._make_event(
                "temp", Severity.CRITICAL, "High Temperature",
                f"Body temperature is elevated at {_fmt(temp)}°C. Monitor closely.",
            ))
        elif temp < low_temp or temp > high_temp:
            events.append(self._make_event(
                "temp-abnormal", Severity.WARNING, "Temperature Variation",
                f"Body temperature is {_fmt(temp)}°C, outside normal range.",
            ))

        stress_change = reading.stress_level - previous.stress_level
        if abs(stress_change) > STRESS_DELTA:
            direction = "increase" if stress_change > 0 else "decrease"
            events.append(self._make_event(
                "stress-spike", Severity.WARNING, "Stress Event Detected",
                f"Sudden {direction} in stress levels detected.",
            ))

        if abs(reading.gsr_value - previous.gsr_value) > GSR_DELTA:
            events.append(self._make_event(
                "gsr-spike", Severity.INFO, "GSR Spike Detected",
                "Sudden change in galvanic skin response. Possible emotional response.",
            ))

        return events

    def _make_event(self, prefix: str, severity: Severity, title: str, message: str) -> AnomalyEvent:
        return AnomalyEvent(
            id=f"{prefix}-{uuid.uuid4().hex[:12]}",
            type=severity,
            title=title,
            message=message,
            timestamp=self._clock(),
        )

    def _notify(self) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier()
        except Exception:
            logger.debug("Audible notification failed", exc_info=True)
