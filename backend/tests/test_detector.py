from datetime import datetime, timedelta, timezone

import pytest

from detector import AnomalyDetector
from models import Severity

T0 = datetime(2026, 2, 20, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now


def started(**kwargs) -> AnomalyDetector:
    detector = AnomalyDetector(**kwargs)
    detector.start()
    return detector


class TestRules:
    def test_high_heart_rate_on_first_reading(self, make_reading):
        detector = started()
        events = detector.process(make_reading(heart_rate=105, spo2=98, temperature=36.8, stress_level=30))

        assert len(events) == 1
        assert events[0].title == "High Heart Rate"
        assert events[0].type == Severity.WARNING
        assert events[0].message == "Heart rate is elevated at 105 BPM. Consider resting."

    def test_high_heart_rate_after_a_calm_reading(self, make_reading):
        detector = started()
        detector.process(make_reading(heart_rate=70, stress_level=30, gsr_value=20))

        events = detector.process(make_reading(heart_rate=105, stress_level=32, gsr_value=22, offset_seconds=2))

        assert [(e.title, e.type) for e in events] == [("High Heart Rate", Severity.WARNING)]

    @pytest.mark.parametrize("before,after,fires", [
        (30, 50, False),
        (30, 51, True),
        (50, 30, False),
        (51, 30, True),
    ])
    def test_stress_delta_is_strict(self, make_reading, before, after, fires):
        detector = started()
        detector.process(make_reading(stress_level=before))
        events = detector.process(make_reading(stress_level=after, offset_seconds=2))
        assert [e.title for e in events] == (["Stress Event Detected"] if fires else [])

    @pytest.mark.parametrize("before,after,fires", [
        (20, 50, False),
        (20, 51, True),
        (50, 20, False),
        (51, 20, True),
    ])
    def test_gsr_delta_is_strict(self, make_reading, before, after, fires):
        detector = started()
        detector.process(make_reading(gsr_value=before))
        events = detector.process(make_reading(gsr_value=after, offset_seconds=2))
        assert [e.title for e in events] == (["GSR Spike Detected"] if fires else [])

    def test_low_heart_rate_but_not_zero(self, make_reading):
        detector = started()
        assert [e.title for e in detector.process(make_reading(heart_rate=45))] == ["Low Heart Rate"]
        assert detector.process(make_reading(heart_rate=0, offset_seconds=2)) == []

    def test_critical_spo2_suppresses_low_spo2(self, make_reading):
        detector = started()
        events = detector.process(make_reading(spo2=88))
        assert [(e.title, e.type) for e in events] == [("Critical SpO2 Level", Severity.CRITICAL)]

        events = detector.process(make_reading(spo2=93, offset_seconds=2))
        assert [(e.title, e.type) for e in events] == [("Low SpO2 Level", Severity.WARNING)]

    def test_temperature_rules(self, make_reading):
        detector = started()
        assert [e.title for e in detector.process(make_reading(temperature=38.6))] == ["High Temperature"]
        assert [e.title for e in detector.process(make_reading(temperature=37.8))] == ["Temperature Variation"]
        assert [e.title for e in detector.process(make_reading(temperature=35.2))] == ["Temperature Variation"]

    def test_stress_increase(self, make_reading):
        detector = started()
        assert detector.process(make_reading(stress_level=30)) == []

        events = detector.process(make_reading(stress_level=55, offset_seconds=2))
        assert len(events) == 1
        assert events[0].title == "Stress Event Detected"
        assert "increase" in events[0].message

    def test_stress_decrease(self, make_reading):
        detector = started()
        detector.process(make_reading(stress_level=60))
        events = detector.process(make_reading(stress_level=30, offset_seconds=2))
        assert "decrease" in events[0].message

    def test_gsr_spike_is_info(self, make_reading):
        detector = started()
        detector.process(make_reading(gsr_value=50))
        events = detector.process(make_reading(gsr_value=90, offset_seconds=2))
        assert [(e.title, e.type) for e in events] == [("GSR Spike Detected", Severity.INFO)]

    def test_first_reading_has_no_delta_events(self, make_reading):
        detector = started()
        assert detector.process(make_reading(stress_level=80, gsr_value=500)) == []

    def test_previous_updates_even_without_events(self, make_reading):
        detector = started()
        detector.process(make_reading(stress_level=20))
        detector.process(make_reading(stress_level=35, offset_seconds=2))
        assert detector.previous.stress_level == 35
        # 35 -> 50 is within the delta threshold
        assert detector.process(make_reading(stress_level=50, offset_seconds=4)) == []

    def test_simultaneous_events_keep_rule_order(self, make_reading):
        detector = started()
        events = detector.process(make_reading(heart_rate=105, spo2=88, temperature=38.6))
        assert [e.title for e in events] == ["High Heart Rate", "Critical SpO2 Level", "High Temperature"]
        assert [e.title for e in detector.events] == [e.title for e in events]


class TestQueue:
    def test_bounded_newest_first(self, make_reading):
        detector = started(queue_size=5)
        fired = []
        for i in range(7):
            fired.extend(detector.process(make_reading(heart_rate=105 + i, offset_seconds=2 * i)))

        queued = detector.events
        assert len(queued) == 5
        assert [e.id for e in queued] == [e.id for e in reversed(fired[-5:])]
        assert fired[0].id not in {e.id for e in queued}

    def test_event_ids_are_unique(self, make_reading):
        detector = started(queue_size=10)
        for i in range(10):
            detector.process(make_reading(heart_rate=105, offset_seconds=i))
        assert len({e.id for e in detector.events}) == 10

    def test_dismiss(self, make_reading):
        detector = started()
        event = detector.process(make_reading(heart_rate=105))[0]
        assert detector.dismiss(event.id) is True
        assert detector.events == []
        assert detector.dismiss(event.id) is False

    def test_ttl_expiry(self, make_reading):
        clock = FakeClock()
        detector = started(ttl_seconds=30, clock=clock)
        detector.process(make_reading(heart_rate=105))

        clock.now = T0 + timedelta(seconds=29)
        assert detector.expire() == 0
        clock.now = T0 + timedelta(seconds=31)
        assert detector.expire() == 1
        assert detector.events == []

    def test_no_ttl_keeps_events(self, make_reading):
        clock = FakeClock()
        detector = started(clock=clock)
        detector.process(make_reading(heart_rate=105))
        clock.now = T0 + timedelta(days=1)
        assert detector.expire() == 0
        assert len(detector.events) == 1


class TestLifecycle:
    def test_inactive_detector_ignores_readings(self, make_reading):
        detector = AnomalyDetector()
        assert detector.process(make_reading(heart_rate=150)) == []
        assert detector.previous is None
        assert detector.events == []

    def test_stopped_detector_keeps_state(self, make_reading):
        detector = started()
        detector.process(make_reading(stress_level=20))
        detector.stop()
        assert detector.process(make_reading(stress_level=90, offset_seconds=2)) == []
        assert detector.previous.stress_level == 20

    def test_reset(self, make_reading):
        detector = started()
        detector.process(make_reading(heart_rate=105))
        detector.reset()
        assert detector.previous is None
        assert detector.events == []


class TestNotifier:
    def test_rings_for_warning(self, make_reading):
        calls = []
        detector = started(notifier=lambda: calls.append(1))
        detector.process(make_reading(heart_rate=105))
        assert calls == [1]

    def test_silent_for_info_only(self, make_reading):
        calls = []
        detector = started(notifier=lambda: calls.append(1))
        detector.process(make_reading(gsr_value=50))
        detector.process(make_reading(gsr_value=90, offset_seconds=2))
        assert calls == []

    def test_notifier_failure_is_ignored(self, make_reading):
        def broken():
            raise OSError("no audio device")

        detector = started(notifier=broken)
        events = detector.process(make_reading(spo2=85))
        assert len(events) == 1
        assert len(detector.events) == 1
