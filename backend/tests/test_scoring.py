import pytest

from scoring import DEFAULT_SCORE, health_score, score_breakdown, score_label, score_reading


class TestScoreReading:
    def test_all_normal_is_perfect(self, make_reading):
        assert score_reading(make_reading()) == 100

    def test_warning_and_critical_penalties(self, make_reading):
        assert score_reading(make_reading(heart_rate=105)) == 90
        assert score_reading(make_reading(heart_rate=120)) == 75
        assert score_reading(make_reading(spo2=85)) == 70
        assert score_reading(make_reading(temperature=39)) == 70
        assert score_reading(make_reading(stress_level=80)) == 75

    def test_penalties_are_independent_per_metric(self, make_reading):
        assert score_reading(make_reading(heart_rate=105, stress_level=55)) == 80

    def test_extreme_values_clamp_at_zero(self, make_reading):
        reading = make_reading(heart_rate=300, spo2=0, temperature=45, stress_level=100)
        assert score_reading(reading) == 0

    def test_moving_out_of_range_never_raises_the_score(self, make_reading):
        scores = [score_reading(make_reading(heart_rate=hr)) for hr in (72, 95, 105, 115, 200)]
        assert scores == sorted(scores, reverse=True)


class TestLabels:
    @pytest.mark.parametrize("score,label", [
        (100, "Excellent"),
        (80, "Excellent"),
        (79, "Good"),
        (60, "Good"),
        (59, "Fair"),
        (40, "Fair"),
        (39, "Needs Attention"),
        (0, "Needs Attention"),
    ])
    def test_bands(self, score, label):
        assert score_label(score)[0] == label

    def test_breakdown(self):
        assert score_breakdown(100) == {"cardiovascular": 100, "respiratory": 100, "stress_management": 90}
        assert score_breakdown(0) == {"cardiovascular": 5, "respiratory": 2, "stress_management": 60}


class TestHealthScore:
    def test_no_reading_is_placeholder(self):
        result = health_score(None)
        assert result.score == DEFAULT_SCORE
        assert result.computed is False
        assert result.label == "Good"
        assert result.trend == "stable"

    def test_computed_from_latest(self, make_reading):
        result = health_score(make_reading())
        assert result.computed is True
        assert result.score == 100
        assert result.label == "Excellent"

    def test_trend_against_previous(self, make_reading):
        better = make_reading(heart_rate=72)
        worse = make_reading(heart_rate=120)
        assert health_score(better, worse).trend == "up"
        assert health_score(worse, better).trend == "down"
        assert health_score(better, better).trend == "stable"
