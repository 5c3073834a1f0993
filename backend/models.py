"""
Pydantic models used across the backend.

Input shapes (`ReadingIn`, `AlertIn`) validate at the FastAPI route
boundary and are reused in service/repo layers. Stored shapes add the
DB-assigned fields (`id`, `created_at`) in a separate subclass rather
than re-using the input model.

The remaining models are result shapes produced by the engine modules
(`thresholds`, `scoring`, `detector`, `classifiers`, `aggregation`) and
returned as-is by the routes.

Guidelines:
- Keep models minimal and stable. Semantic validation (finite values,
  spo2 range, timestamp rules) lives in `MonitoringService`.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Metric(str, Enum):
    HEART_RATE = "heart_rate"
    SPO2 = "spo2"
    TEMPERATURE = "temperature"
    STRESS_LEVEL = "stress_level"


class MetricStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class Severity(str, Enum):
    """Severity tier of alerts and anomaly events."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ReadingIn(BaseModel):
    """One sample from the sensor suite, as sent by a reading producer.

    Fields:
    - `user_id`: user the sample belongs to.
    - `timestamp`: ISO-8601 timestamp. Service enforces timezone-awareness.
    - `heart_rate`: beats per minute.
    - `spo2`: blood oxygen saturation in percent.
    - `temperature`: body temperature in °C.
    - `stress_level`: 0–100 score derived from GSR.
    - `gsr_value`: raw galvanic skin response magnitude.
    - `ecg_value`: instantaneous ECG amplitude sample.
    """

    user_id: str
    timestamp: datetime
    heart_rate: float
    spo2: float
    temperature: float
    stress_level: float
    gsr_value: float = 0.0
    ecg_value: float = 0.0


class Reading(ReadingIn):
    id: str


class AlertIn(BaseModel):
    """Durable notification tied to a user and a sensor."""

    user_id: str
    alert_type: Severity
    sensor: str
    message: str
    value: Optional[float] = None
    acknowledged: bool = False


class Alert(AlertIn):
    id: str
    created_at: datetime


class AnomalyEvent(BaseModel):
    """Transient notification derived from consecutive readings. Never persisted."""

    id: str
    type: Severity
    title: str
    message: str
    timestamp: datetime


class UserProfile(BaseModel):
    user_id: str
    name: str
    age: Optional[int] = None
    baseline_hr: Optional[float] = None
    baseline_spo2: Optional[float] = None
    baseline_temp: Optional[float] = None


class HealthScore(BaseModel):
    """Aggregate 0–100 score.

    `computed` is False when no reading was available and `score` holds
    the neutral placeholder instead of a calculated value.
    """

    score: int
    computed: bool
    label: str
    description: str
    trend: str = "stable"
    breakdown: Dict[str, int] = Field(default_factory=dict)


class SessionAverages(BaseModel):
    avg_hr: int = 0
    avg_spo2: int = 0
    avg_temp: str = "0.0"
    avg_stress: int = 0


class Insight(BaseModel):
    type: str  # positive | neutral | warning, or success | info | warning for quick insights
    message: str


class EmotionState(BaseModel):
    emotion: str
    description: str


class Recommendation(BaseModel):
    key: str
    text: str


class Achievement(BaseModel):
    id: str
    name: str
    description: str
    earned: bool


class AcknowledgeResult(BaseModel):
    """Outcome of an alert acknowledgment.

    - `found`: the alert was in the active set when the call started.
    - `persisted`: the store reported the update as applied.
    - `reverted`: the optimistic local removal was undone after a store error.
    - `applied`: False when the session was torn down before completion.
    """

    alert_id: str
    found: bool
    persisted: bool
    reverted: bool = False
    applied: bool = True


class DashboardSnapshot(BaseModel):
    user_id: str
    monitoring: bool
    latest_reading: Optional[Reading] = None
    statuses: Dict[Metric, MetricStatus]
    health_score: HealthScore
    emotion: EmotionState
    insights: List[Insight]
    quick_insights: List[Insight]
    recommendations: List[Recommendation]
    anomalies: List[AnomalyEvent]
    alerts: List[Alert]
    averages: SessionAverages
    baseline_deltas: Dict[str, float] = Field(default_factory=dict)
    duration: str = "00:00:00"
    battery_level: float = 0.0
    last_update: Optional[datetime] = None


class SessionSummary(BaseModel):
    user_id: str
    duration_seconds: int
    duration: str
    data_points: int
    health_score: HealthScore
    averages: SessionAverages
    achievements: List[Achievement]
