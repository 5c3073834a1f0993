"""
Rule-based emotion, insight and wellness classifiers.

Every classifier here is an ordered list of (predicate, result) pairs.
Ranges overlap between rules, so the order of each list is part of its
meaning: the emotion classifier stops at the first match, the others
collect matches in list order and cap the output.

All functions are pure and accept `None` for a missing reading.
"""

from typing import Callable, List, Optional, Tuple, Union

from models import Achievement, EmotionState, Insight, Reading, ReadingIn, Recommendation

AnyReading = Union[Reading, ReadingIn]

MAX_INSIGHTS = 4
MAX_RECOMMENDATIONS = 3


# ── Emotion ────────────────────────────────────────────────────

EmotionRule = Tuple[Callable[[float, float], bool], EmotionState]

EMOTION_RULES: List[EmotionRule] = [
    (lambda hr, stress: stress < 30 and 60 <= hr <= 80,
     EmotionState(emotion="Calm", description="You are in a relaxed and peaceful state")),
    (lambda hr, stress: stress > 60 or hr > 100,
     EmotionState(emotion="Stressed", description="Elevated stress indicators detected")),
    (lambda hr, stress: 80 < hr <= 100 and stress < 60,
     EmotionState(emotion="Excited", description="Elevated heart rate with low stress")),
    (lambda hr, stress: 30 <= stress <= 50,
     EmotionState(emotion="Focused", description="Moderate alertness, good for productivity")),
]

NEUTRAL = EmotionState(emotion="Neutral", description="Balanced emotional state")


def classify_emotion(heart_rate: float, stress_level: float) -> EmotionState:
    for predicate, state in EMOTION_RULES:
        if predicate(heart_rate, stress_level):
            return state
    return NEUTRAL


def emotion_for(reading: Optional[AnyReading]) -> EmotionState:
    if reading is None:
        return NEUTRAL
    return classify_emotion(reading.heart_rate, reading.stress_level)


# ── AI insights ────────────────────────────────────────────────

LevelRule = Tuple[Callable[[float], bool], str, str]

HEART_RATE_LEVELS: List[LevelRule] = [
    (lambda hr: 60 <= hr <= 80, "positive",
     "Your heart rate is optimal and within the healthy resting range."),
    (lambda hr: 80 < hr <= 100, "neutral",
     "Heart rate is slightly elevated. Consider taking a moment to relax."),
    (lambda hr: hr > 100, "warning",
     "Heart rate is elevated. Deep breathing exercises recommended."),
]

SPO2_LEVELS: List[LevelRule] = [
    (lambda spo2: 95 <= spo2 <= 100, "positive",
     "Excellent blood oxygen saturation. Respiratory function is optimal."),
    (lambda spo2: 90 <= spo2 < 95, "neutral",
     "Blood oxygen slightly below optimal. Ensure proper breathing."),
]

STRESS_LEVELS: List[LevelRule] = [
    (lambda stress: stress <= 30, "positive",
     "Low stress levels detected. You are in a calm state."),
    (lambda stress: stress <= 60, "neutral",
     "Moderate stress detected. Mindfulness techniques may help."),
    (lambda stress: True, "warning",
     "High stress levels. Consider taking a break or practicing relaxation."),
]

HEART_RATE_DELTA = 10
STRESS_DELTA = 15


def _first_level(rules: List[LevelRule], value: float) -> Optional[Insight]:
    for predicate, polarity, message in rules:
        if predicate(value):
            return Insight(type=polarity, message=message)
    return None


def _delta_insights(reading: AnyReading, previous: AnyReading) -> List[Insight]:
    insights = []

    hr_change = reading.heart_rate - previous.heart_rate
    if abs(hr_change) > HEART_RATE_DELTA:
        rising = hr_change > 0
        insights.append(Insight(
            type="warning" if rising else "positive",
            message=f"Heart rate {'increased' if rising else 'decreased'} by "
                    f"{abs(hr_change):g} BPM in the last minute.",
        ))

    stress_change = reading.stress_level - previous.stress_level
    if abs(stress_change) > STRESS_DELTA:
        rising = stress_change > 0
        insights.append(Insight(
            type="warning" if rising else "positive",
            message=f"Stress levels {'rising' if rising else 'declining'}. "
                    f"{'Consider a break.' if rising else 'Great progress!'}",
        ))

    return insights


def generate_insights(
    reading: Optional[AnyReading], previous: Optional[AnyReading] = None
) -> List[Insight]:
    """Up to four ranked insights: heart-rate band, deltas, SpO2 band, stress band."""
    if reading is None:
        return []

    insights: List[Insight] = []
    hr_insight = _first_level(HEART_RATE_LEVELS, reading.heart_rate)
    if hr_insight:
        insights.append(hr_insight)
    if previous is not None:
        insights.extend(_delta_insights(reading, previous))
    for rules, value in ((SPO2_LEVELS, reading.spo2), (STRESS_LEVELS, reading.stress_level)):
        level = _first_level(rules, value)
        if level:
            insights.append(level)
    return insights[:MAX_INSIGHTS]


# ── Quick insights ─────────────────────────────────────────────

QUICK_INSIGHT_RULES: List[Tuple[str, List[LevelRule]]] = [
    ("heart_rate", [
        (lambda hr: 60 <= hr <= 100, "success",
         "Your heart rate is within the healthy range. Your cardiovascular system is functioning optimally."),
        (lambda hr: True, "warning",
         "Heart rate is outside the normal range. Consider taking a break and practicing deep breathing exercises."),
    ]),
    ("spo2", [
        (lambda spo2: spo2 >= 95, "success",
         "Blood oxygen levels are excellent. Your lungs are efficiently oxygenating your blood."),
        (lambda spo2: True, "warning",
         "Blood oxygen saturation is below optimal levels. Ensure you are breathing deeply and regularly."),
    ]),
    ("temperature", [
        (lambda temp: 36.0 <= temp <= 37.5, "success",
         "Body temperature is stable and within normal range. No concerns detected."),
        (lambda temp: True, "warning",
         "Body temperature is outside normal range. Monitor closely and stay hydrated."),
    ]),
    ("stress_level", [
        (lambda stress: stress <= 40, "success",
         "Stress levels are low. You are maintaining good emotional balance and relaxation."),
        (lambda stress: stress <= 60, "info",
         "Moderate stress detected. Consider taking short breaks and practicing mindfulness techniques."),
        (lambda stress: True, "warning",
         "Elevated stress levels detected. Try relaxation techniques like meditation, yoga, or a short walk."),
    ]),
]


def quick_insights(reading: Optional[AnyReading]) -> List[Insight]:
    """One insight per metric."""
    if reading is None:
        return []
    out = []
    for field, rules in QUICK_INSIGHT_RULES:
        insight = _first_level(rules, getattr(reading, field))
        if insight:
            out.append(insight)
    return out


# ── Wellness recommendations ───────────────────────────────────

WellnessRule = Tuple[Callable[[AnyReading], bool], Recommendation]

WELLNESS_RULES: List[WellnessRule] = [
    (lambda r: r.stress_level > 50,
     Recommendation(key="breathing", text="Try 4-7-8 breathing: Inhale for 4s, hold for 7s, exhale for 8s")),
    (lambda r: r.heart_rate > 90,
     Recommendation(key="meditation",
                    text="Your heart rate is elevated. Consider taking a 5-minute meditation break")),
    (lambda r: r.spo2 < 95,
     Recommendation(key="deep_breathing",
                    text="Practice deep breathing exercises to improve oxygen saturation")),
    (lambda r: r.temperature > 37.5,
     Recommendation(key="hydration",
                    text="Stay hydrated! Drink a glass of water to help regulate body temperature")),
    (lambda r: r.stress_level < 30 and r.heart_rate < 80,
     Recommendation(key="light_exercise",
                    text="Your vitals are great! This is a good time for light exercise or stretching")),
    (lambda r: r.heart_rate < 60,
     Recommendation(key="warm_beverage",
                    text="Low heart rate detected. Consider having a warm beverage if feeling sluggish")),
]

FALLBACK_RECOMMENDATION = Recommendation(
    key="keep_moving",
    text="All vitals normal! Consider maintaining activity with regular movement",
)


def wellness_recommendations(reading: Optional[AnyReading]) -> List[Recommendation]:
    if reading is None:
        return [FALLBACK_RECOMMENDATION]
    matched = [rec for predicate, rec in WELLNESS_RULES if predicate(reading)]
    return (matched or [FALLBACK_RECOMMENDATION])[:MAX_RECOMMENDATIONS]


# ── Achievements ───────────────────────────────────────────────

AchievementRule = Tuple[str, str, str, Callable[[Optional[AnyReading], int], bool]]

ACHIEVEMENTS: List[AchievementRule] = [
    ("calm_day", "Calm Day", "Maintained low stress for extended period",
     lambda r, count: r is not None and r.stress_level < 30),
    ("stable_heart", "Stable Heart", "Heart rate in optimal range",
     lambda r, count: r is not None and 60 <= r.heart_rate <= 80),
    ("stress_warrior", "Stress Warrior", "Successfully lowered stress levels",
     lambda r, count: r is not None and r.stress_level < 40),
    ("data_champion", "Data Champion", "Collected 50+ health readings",
     lambda r, count: count >= 50),
    ("zen_master", "Zen Master", "Perfect vital signs balance",
     lambda r, count: r is not None and 60 <= r.heart_rate <= 80 and r.stress_level < 30),
    ("health_guardian", "Health Guardian", "Consistent monitoring streak",
     lambda r, count: count >= 100),
]


def achievements(latest: Optional[AnyReading], readings_count: int) -> List[Achievement]:
    """Badges for a session; vital-based ones need a reading to be earned."""
    return [
        Achievement(id=key, name=name, description=description,
                    earned=predicate(latest, readings_count))
        for key, name, description, predicate in ACHIEVEMENTS
    ]
