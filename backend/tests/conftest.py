"""
Pytest configuration and in-memory repositories for the backend tests.

The fakes mirror the public methods of `ReadingRepo`, `AlertRepo` and
`ProfileRepo`. Setting `fail = True` makes every call raise
`psycopg.OperationalError`, the way a dropped connection surfaces from
the real repositories.
"""

import itertools
import os
import sys
import threading
from datetime import datetime, timedelta, timezone

import psycopg
import pytest

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from models import Alert, AlertIn, Reading, ReadingIn, Severity, UserProfile  # noqa: E402
from service_monitoring import MonitoringService  # noqa: E402
from settings import settings  # noqa: E402

T0 = datetime(2026, 2, 20, 10, 0, 0, tzinfo=timezone.utc)


class FakeReadingRepo:
    def __init__(self):
        self.rows = []
        self.fail = False
        self.gate = None  # threading.Event; insert_reading waits on it when set
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise psycopg.OperationalError("connection refused")

    def insert_reading(self, reading: ReadingIn) -> Reading:
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self._check()
        stored = Reading(id=str(next(self._ids)), **reading.model_dump())
        self.rows.append(stored)
        return stored

    def insert_readings(self, readings) -> int:
        self._check()
        for r in readings:
            self.rows.append(Reading(id=str(next(self._ids)), **r.model_dump()))
        return len(readings)

    def fetch_recent(self, user_id: str, limit: int):
        self._check()
        mine = [r for r in self.rows if r.user_id == user_id]
        return sorted(mine, key=lambda r: r.timestamp, reverse=True)[:limit]

    def ping(self):
        self._check()


class FakeAlertRepo:
    def __init__(self):
        self.rows = {}
        self.fail = False
        self.gate = None  # threading.Event; update_acknowledged waits on it when set
        self.updates = []
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise psycopg.OperationalError("connection refused")

    def insert_alert(self, alert: AlertIn) -> Alert:
        self._check()
        alert_id = str(next(self._ids))
        stored = Alert(
            id=alert_id,
            created_at=T0 + timedelta(seconds=int(alert_id)),
            **alert.model_dump(),
        )
        self.rows[alert_id] = stored
        return stored.model_copy()

    def fetch_unacknowledged(self, user_id: str):
        self._check()
        active = [a for a in self.rows.values() if a.user_id == user_id and not a.acknowledged]
        return [a.model_copy() for a in sorted(active, key=lambda a: a.created_at, reverse=True)]

    def update_acknowledged(self, alert_id: str, acknowledged: bool = True) -> bool:
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self._check()
        self.updates.append(alert_id)
        row = self.rows.get(alert_id)
        if row is None:
            return False
        self.rows[alert_id] = row.model_copy(update={"acknowledged": acknowledged})
        return True


class FakeProfileRepo:
    def __init__(self, profiles=None):
        self.profiles = {p.user_id: p for p in (profiles or [])}
        self.fail = False

    def fetch_profile(self, user_id: str):
        if self.fail:
            raise psycopg.OperationalError("connection refused")
        return self.profiles.get(user_id)


def reading_in(offset_seconds: int = 0, **overrides) -> ReadingIn:
    values = dict(
        user_id="user_001",
        timestamp=T0 + timedelta(seconds=offset_seconds),
        heart_rate=72,
        spo2=98,
        temperature=36.6,
        stress_level=25,
        gsr_value=50,
        ecg_value=0,
    )
    values.update(overrides)
    return ReadingIn(**values)


def stored_reading(offset_seconds: int = 0, **overrides) -> Reading:
    reading = reading_in(offset_seconds, **overrides)
    return Reading(id=f"r{offset_seconds}", **reading.model_dump())


def alert_in(user_id: str = "user_001", **overrides) -> AlertIn:
    values = dict(
        user_id=user_id,
        alert_type=Severity.WARNING,
        sensor="heart_rate",
        message="Heart rate slightly elevated. Consider taking a short break.",
        value=104,
    )
    values.update(overrides)
    return AlertIn(**values)


@pytest.fixture
def make_reading():
    return reading_in


@pytest.fixture
def make_stored_reading():
    return stored_reading


@pytest.fixture
def make_alert():
    return alert_in


@pytest.fixture
def reading_repo():
    return FakeReadingRepo()


@pytest.fixture
def alert_repo():
    return FakeAlertRepo()


@pytest.fixture
def profile_repo():
    return FakeProfileRepo([
        UserProfile(user_id="user_001", name="Demo User", age=34,
                    baseline_hr=70, baseline_spo2=98, baseline_temp=36.6),
    ])


@pytest.fixture
def service(reading_repo, alert_repo, profile_repo):
    return MonitoringService(reading_repo, alert_repo, profile_repo)


@pytest.fixture
def gate():
    return threading.Event()


@pytest.fixture
def quiet_settings(monkeypatch):
    """Session timers that never fire during a test, no history seeding, no bell."""
    monkeypatch.setattr(settings, "reading_interval_seconds", 3600.0)
    monkeypatch.setattr(settings, "tick_interval_seconds", 3600.0)
    monkeypatch.setattr(settings, "history_seed_count", 0)
    monkeypatch.setattr(settings, "audio_alerts", False)
    return settings
