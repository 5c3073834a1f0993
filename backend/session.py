"""
Monitoring session runtime.

One `MonitoringSession` per active user session. It owns the anomaly
detector, the alert manager and the live reading window, and drives two
asyncio timers:

- a tick (default 1 s) advancing the session duration and the simulated
  battery level;
- a reading cadence (default 2 s) producing a simulated reading and
  ingesting it through the service.

Everything runs on the event loop: new readings arrive through the
`EventStream` callback and are handled one at a time, so the detector's
snapshot and the alert set each have a single writer. Blocking store
calls run in worker threads via `asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import deque
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from aggregation import format_duration, session_averages, summarize_session
from alert_manager import AlertManager
from classifiers import emotion_for, generate_insights, quick_insights, wellness_recommendations
from detector import AnomalyDetector
from models import (
    Alert,
    AnomalyEvent,
    DashboardSnapshot,
    Reading,
    SessionSummary,
    UserProfile,
)
from scoring import health_score
from simulator import SimulatorState, generate_history, generate_reading, maybe_alert
from stream import Subscription
from thresholds import classify_reading

if TYPE_CHECKING:
    from service_monitoring import MonitoringService

logger = logging.getLogger(__name__)

INITIAL_BATTERY = 85.0
MIN_BATTERY = 20.0
BATTERY_DRAIN_PER_TICK = 0.01


def baseline_deltas(profile: Optional[UserProfile], reading: Optional[Reading]) -> dict[str, float]:
    """Difference between the latest reading and the user's personal baselines."""
    if profile is None or reading is None:
        return {}
    pairs = (
        ("heart_rate", profile.baseline_hr, reading.heart_rate),
        ("spo2", profile.baseline_spo2, reading.spo2),
        ("temperature", profile.baseline_temp, reading.temperature),
    )
    return {name: round(value - base, 1) for name, base, value in pairs if base is not None}


def build_snapshot(
    user_id: str,
    readings: Sequence[Reading],
    alerts: list[Alert],
    profile: Optional[UserProfile] = None,
    anomalies: Optional[list[AnomalyEvent]] = None,
    average_window: int = 24,
    monitoring: bool = False,
    duration_seconds: int = 0,
    battery_level: float = 0.0,
    last_update: Optional[datetime] = None,
) -> DashboardSnapshot:
    """Everything the live dashboard shows, computed from newest-first readings."""
    latest = readings[0] if readings else None
    previous = readings[1] if len(readings) > 1 else None
    return DashboardSnapshot(
        user_id=user_id,
        monitoring=monitoring,
        latest_reading=latest,
        statuses=classify_reading(latest),
        health_score=health_score(latest, previous),
        emotion=emotion_for(latest),
        insights=generate_insights(latest, previous),
        quick_insights=quick_insights(latest),
        recommendations=wellness_recommendations(latest),
        anomalies=anomalies or [],
        alerts=alerts,
        averages=session_averages(readings, average_window),
        baseline_deltas=baseline_deltas(profile, latest),
        duration=format_duration(duration_seconds),
        battery_level=round(battery_level, 2),
        last_update=last_update,
    )


class MonitoringSession:
    def __init__(
        self,
        user_id: str,
        service: MonitoringService,
        window: int = 50,
        queue_size: int = 5,
        ttl_seconds: Optional[float] = None,
        average_window: int = 24,
        reading_interval: float = 2.0,
        tick_interval: float = 1.0,
        alert_probability: float = 0.05,
        notifier: Optional[Callable[[], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.user_id = user_id
        self.service = service
        self.average_window = average_window
        self.reading_interval = reading_interval
        self.tick_interval = tick_interval
        self.alert_probability = alert_probability
        self.rng = rng or random.Random()

        self.detector = AnomalyDetector(queue_size=queue_size, ttl_seconds=ttl_seconds, notifier=notifier)
        self.alerts = AlertManager(user_id, service.alerts)
        self.readings: deque[Reading] = deque(maxlen=window)
        self.sim_state = SimulatorState.initial()

        self.duration_seconds = 0
        self.battery_level = INITIAL_BATTERY
        self.last_update: Optional[datetime] = None
        self.running = False

        self._tasks: list[asyncio.Task] = []
        self._subscriptions: list[Subscription] = []

    # --- lifecycle ---

    async def start(self, history_count: int = 0) -> None:
        """Seed history, load the live window and active alerts, then start the timers."""
        if self.running:
            return
        self.running = True
        self.detector.start()
        self._subscriptions = [
            self.service.stream.subscribe_readings(self.user_id, self.on_reading),
            self.service.stream.subscribe_alerts(self.user_id, self.on_alert),
        ]

        if history_count > 0:
            history, self.sim_state = generate_history(self.sim_state, self.user_id, history_count, self.rng)
            await asyncio.to_thread(self.service.ingest_history, history)

        recent = await asyncio.to_thread(self.service.get_recent, self.user_id, self.readings.maxlen)
        if not self.running:
            return
        # recent is newest first; keep any live reading that arrived meanwhile in front
        live = list(self.readings)
        live_ids = {r.id for r in live}
        merged = live + [r for r in recent if r.id not in live_ids]
        self.readings.clear()
        self.readings.extend(merged[: self.readings.maxlen])
        await self.alerts.refresh()
        if not self.running:
            return

        self._tasks = [
            asyncio.create_task(self._tick_loop()),
            asyncio.create_task(self._reading_loop()),
        ]

    def stop(self) -> None:
        """Halt both timers and both subscriptions immediately."""
        if not self.running:
            return
        self.running = False
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        self.detector.stop()
        self.alerts.close()

    # --- event handlers ---

    def on_reading(self, reading: Reading) -> None:
        if not self.running:
            return
        self.readings.appendleft(reading)
        self.last_update = datetime.now(timezone.utc)
        self.detector.process(reading)

    def on_alert(self, alert: Alert) -> None:
        if not self.running:
            return
        self.alerts.append(alert)

    # --- timers ---

    def tick(self) -> None:
        self.duration_seconds += 1
        self.battery_level = max(MIN_BATTERY, self.battery_level - BATTERY_DRAIN_PER_TICK)

    async def produce_once(self) -> Optional[Reading]:
        """Generate one simulated reading, ingest it, and maybe raise a producer alert."""
        reading, self.sim_state = generate_reading(self.sim_state, self.user_id, self.rng)
        stored = await self.service.ingest_reading(reading)
        alert = maybe_alert(reading, self.rng, self.alert_probability)
        if alert is not None:
            await self.service.create_alert(alert)
        return stored

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    async def _reading_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reading_interval)
            try:
                await self.produce_once()
            except Exception:
                logger.exception("Reading producer failed for %s", self.user_id)

    # --- views ---

    @property
    def latest(self) -> Optional[Reading]:
        return self.readings[0] if self.readings else None

    def snapshot(self, profile: Optional[UserProfile] = None) -> DashboardSnapshot:
        self.detector.expire()
        return build_snapshot(
            self.user_id,
            readings=list(self.readings),
            alerts=self.alerts.list(),
            profile=profile,
            anomalies=self.detector.events,
            average_window=self.average_window,
            monitoring=self.running,
            duration_seconds=self.duration_seconds,
            battery_level=self.battery_level,
            last_update=self.last_update,
        )

    def summary(self) -> SessionSummary:
        return summarize_session(
            self.user_id, list(self.readings), self.duration_seconds, self.average_window
        )
