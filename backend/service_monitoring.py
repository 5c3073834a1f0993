"""
Service / facade layer.

This module implements ingestion rules and normalization before any DB
interaction and owns the per-user monitoring sessions. It is free of
SQL: it calls the repositories for storage and the `EventStream` to
notify sessions of new readings and alerts. All write paths go through
this service so validation happens in one place.

Key responsibilities:
- protect the system (max batch sizes, recent-reading limits)
- validate readings (finite values, spo2 range, non-negative counts)
- enforce timestamp rules (timezone-awareness, UTC, no reordering)
- isolate storage failures: log them and fall back, never crash a session
- start/stop monitoring sessions
"""

import asyncio
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional

import psycopg

from models import (
    AcknowledgeResult,
    Alert,
    AlertIn,
    AnomalyEvent,
    DashboardSnapshot,
    Reading,
    ReadingIn,
    UserProfile,
)
from notifications import TerminalBell
from repo_alerts import AlertRepo
from repo_profiles import ProfileRepo
from repo_readings import ReadingRepo
from session import MonitoringSession, build_snapshot
from settings import settings
from stream import EventStream

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("heart_rate", "spo2", "temperature", "stress_level", "gsr_value", "ecg_value")
NON_NEGATIVE_FIELDS = ("heart_rate", "temperature", "stress_level", "gsr_value")


class MonitoringService:
    """Ingestion rules + storage isolation + session ownership.

    Example usage:
        svc = MonitoringService(ReadingRepo(), AlertRepo(), ProfileRepo())
        await svc.ingest_reading(reading, caller_user='user_001')
    """

    def __init__(
        self,
        readings: ReadingRepo,
        alerts: AlertRepo,
        profiles: ProfileRepo,
        stream: Optional[EventStream] = None,
    ):
        self.readings = readings
        self.alerts = alerts
        self.profiles = profiles
        self.stream = stream or EventStream()
        self.sessions: Dict[str, MonitoringSession] = {}
        self._last_timestamp: Dict[str, datetime] = {}
        self._ingest_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # --- validation ---

    def validate_reading(self, reading: ReadingIn, caller_user: str | None = None) -> ReadingIn:
        """Validate and normalize `reading` in place.

        Raises:
        - `ValueError` for non-finite or physically impossible values,
          naive timestamps, or a timestamp older than the user's last reading
        - `PermissionError` if `caller_user` writes for another user
        """

        if caller_user and reading.user_id != caller_user:
            raise PermissionError("Cannot write readings for another user")

        if reading.timestamp.tzinfo is None:
            raise ValueError("Timestamp must include timezone info (e.g., 2026-02-20T10:00:00Z)")
        reading.timestamp = reading.timestamp.astimezone(timezone.utc)

        for field in NUMERIC_FIELDS:
            if not math.isfinite(getattr(reading, field)):
                raise ValueError(f"{field} must be a finite number")
        for field in NON_NEGATIVE_FIELDS:
            if getattr(reading, field) < 0:
                raise ValueError(f"{field} must not be negative, got {getattr(reading, field)}")
        if not 0 <= reading.spo2 <= 100:
            raise ValueError(f"spo2 must be between 0 and 100, got {reading.spo2}")

        return reading

    def _check_order(self, reading: ReadingIn) -> None:
        last = self._last_timestamp.get(reading.user_id)
        if last is not None and reading.timestamp < last:
            raise ValueError(
                f"Reading at {reading.timestamp.isoformat()} is older than the last accepted "
                f"reading at {last.isoformat()}"
            )

    # --- readings ---

    def store_reading(self, reading: ReadingIn) -> Optional[Reading]:
        """Persist one reading. Returns None (and logs) when the store fails."""
        try:
            return self.readings.insert_reading(reading)
        except psycopg.Error:
            logger.exception("Failed to store reading for %s", reading.user_id)
            return None

    async def ingest_reading(self, reading: ReadingIn, caller_user: str | None = None) -> Optional[Reading]:
        """Validate, persist and publish one reading.

        Ingests for one user are serialized from the order check through
        publish, so subscribed sessions see readings one at a time, in
        arrival order, even when a store call is slow.
        """
        self.validate_reading(reading, caller_user)

        async with self._ingest_locks[reading.user_id]:
            self._check_order(reading)
            stored = await asyncio.to_thread(self.store_reading, reading)
            if stored is None:
                return None
            last = self._last_timestamp.get(stored.user_id)
            self._last_timestamp[stored.user_id] = (
                stored.timestamp if last is None else max(last, stored.timestamp)
            )
            self.stream.publish_reading(stored)
        return stored

    def ingest_history(self, readings: List[ReadingIn], caller_user: str | None = None) -> int:
        """Batch-insert back-filled readings. They are stored but not published."""
        if len(readings) == 0:
            return 0
        if len(readings) > settings.max_batch_size:
            raise ValueError(
                f"Too many readings in one request: {len(readings)} (max {settings.max_batch_size})"
            )
        for r in readings:
            self.validate_reading(r, caller_user)
        try:
            return self.readings.insert_readings(readings)
        except psycopg.Error:
            logger.exception("Failed to store %d back-filled readings", len(readings))
            return 0

    def get_recent(self, user_id: str, limit: int) -> List[Reading]:
        """Recent readings for `user_id`, newest first, capped by configured limits."""
        limit = max(1, min(limit, settings.max_recent_limit))
        try:
            return self.readings.fetch_recent(user_id, limit)
        except psycopg.Error:
            logger.exception("Failed to fetch recent readings for %s", user_id)
            return []

    # --- alerts ---

    def store_alert(self, alert: AlertIn) -> Optional[Alert]:
        try:
            return self.alerts.insert_alert(alert)
        except psycopg.Error:
            logger.exception("Failed to store %s alert for %s", alert.sensor, alert.user_id)
            return None

    async def create_alert(self, alert: AlertIn, caller_user: str | None = None) -> Optional[Alert]:
        if caller_user and alert.user_id != caller_user:
            raise PermissionError("Cannot create alerts for another user")
        stored = await asyncio.to_thread(self.store_alert, alert)
        if stored is not None:
            self.stream.publish_alert(stored)
        return stored

    async def get_active_alerts(self, user_id: str) -> List[Alert]:
        session = self.sessions.get(user_id)
        if session is not None and session.running:
            return session.alerts.list()
        try:
            return await asyncio.to_thread(self.alerts.fetch_unacknowledged, user_id)
        except psycopg.Error:
            logger.exception("Failed to fetch alerts for %s", user_id)
            return []

    async def acknowledge_alert(self, user_id: str, alert_id: str) -> AcknowledgeResult:
        """Acknowledge through the live session when there is one, else in the store only."""
        session = self.sessions.get(user_id)
        if session is not None and session.running:
            return await session.alerts.acknowledge(alert_id)
        try:
            persisted = await asyncio.to_thread(self.alerts.update_acknowledged, alert_id, True)
        except psycopg.Error:
            logger.exception("Failed to persist acknowledgment of alert %s", alert_id)
            persisted = False
        return AcknowledgeResult(alert_id=alert_id, found=persisted, persisted=persisted)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            return self.profiles.fetch_profile(user_id)
        except psycopg.Error:
            logger.exception("Failed to fetch profile for %s", user_id)
            return None

    # --- sessions ---

    async def start_session(self, user_id: str) -> MonitoringSession:
        """Start monitoring for `user_id`, replacing any previous session."""
        previous = self.sessions.get(user_id)
        if previous is not None:
            previous.stop()
        self._last_timestamp.pop(user_id, None)

        session = MonitoringSession(
            user_id,
            self,
            window=settings.reading_window,
            queue_size=settings.anomaly_queue_size,
            ttl_seconds=settings.anomaly_ttl_seconds,
            average_window=settings.average_window,
            reading_interval=settings.reading_interval_seconds,
            tick_interval=settings.tick_interval_seconds,
            alert_probability=settings.alert_probability,
            notifier=TerminalBell() if settings.audio_alerts else None,
        )
        self.sessions[user_id] = session
        await session.start(history_count=settings.history_seed_count)
        logger.info("Monitoring session started for %s", user_id)
        return session

    def stop_session(self, user_id: str) -> Optional[MonitoringSession]:
        session = self.sessions.get(user_id)
        if session is None:
            return None
        session.stop()
        logger.info("Monitoring session stopped for %s after %ss", user_id, session.duration_seconds)
        return session

    def stop_all(self) -> None:
        for session in self.sessions.values():
            session.stop()

    def get_anomalies(self, user_id: str) -> List[AnomalyEvent]:
        session = self.sessions.get(user_id)
        if session is None:
            return []
        session.detector.expire()
        return session.detector.events

    def dismiss_anomaly(self, user_id: str, event_id: str) -> bool:
        session = self.sessions.get(user_id)
        return session.detector.dismiss(event_id) if session is not None else False

    async def dashboard(self, user_id: str) -> DashboardSnapshot:
        profile = await asyncio.to_thread(self.get_profile, user_id)
        session = self.sessions.get(user_id)
        if session is not None:
            return session.snapshot(profile)
        return build_snapshot(
            user_id,
            readings=await asyncio.to_thread(self.get_recent, user_id, settings.reading_window),
            alerts=await self.get_active_alerts(user_id),
            profile=profile,
            average_window=settings.average_window,
        )

    def health_check(self) -> None:
        """Perform a lightweight DB ping via the repository."""

        self.readings.ping()
