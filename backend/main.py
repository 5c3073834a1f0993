import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List
import random

from fastapi import FastAPI, Query, HTTPException

from logging_config import setup_logging
from models import (
    AcknowledgeResult,
    Alert,
    AlertIn,
    AnomalyEvent,
    DashboardSnapshot,
    Reading,
    ReadingIn,
    SessionSummary,
)
from repo_alerts import AlertRepo
from repo_profiles import ProfileRepo
from repo_readings import ReadingRepo
from service_monitoring import MonitoringService
from settings import settings
from simulator import SimulatorState, generate_history

logger = setup_logging(settings.log_level, settings.log_file)

# Instantiate the repos + service here so the routes remain thin and
# replaceable for testing (tests swap `svc` for one built on fakes).
svc = MonitoringService(ReadingRepo(), AlertRepo(), ProfileRepo())


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    svc.stop_all()


app = FastAPI(title="VitalWatch Backend", lifespan=lifespan)


@app.get("/health")
def health():
    try:
        svc.health_check()
        return {"ok": True}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


@app.post("/readings", response_model=Reading)
async def ingest(reading: ReadingIn):
    try:
        stored = await svc.ingest_reading(reading, caller_user=None)  # later: auth user here
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if stored is None:
        raise HTTPException(status_code=503, detail="Reading could not be stored")
    return stored


@app.post("/readings/batch")
def ingest_batch(readings: List[ReadingIn]):
    try:
        return {"inserted": svc.ingest_history(readings, caller_user=None)}
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/readings", response_model=List[Reading])
def recent(user_id: str = Query(...), limit: int = 50):
    return svc.get_recent(user_id, limit)


@app.get("/dashboard", response_model=DashboardSnapshot)
async def dashboard(user_id: str = settings.default_user):
    return await svc.dashboard(user_id)


@app.get("/alerts", response_model=List[Alert])
async def alerts(user_id: str = settings.default_user):
    return await svc.get_active_alerts(user_id)


@app.post("/alerts", response_model=Alert)
async def create_alert(alert: AlertIn):
    try:
        stored = await svc.create_alert(alert, caller_user=None)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if stored is None:
        raise HTTPException(status_code=503, detail="Alert could not be stored")
    return stored


@app.post("/alerts/{alert_id}/acknowledge", response_model=AcknowledgeResult)
async def acknowledge(alert_id: str, user_id: str = settings.default_user):
    return await svc.acknowledge_alert(user_id, alert_id)


@app.get("/anomalies", response_model=List[AnomalyEvent])
async def anomalies(user_id: str = settings.default_user):
    return svc.get_anomalies(user_id)


@app.delete("/anomalies/{event_id}")
async def dismiss_anomaly(event_id: str, user_id: str = settings.default_user):
    return {"dismissed": svc.dismiss_anomaly(user_id, event_id)}


@app.post("/session/start", response_model=DashboardSnapshot)
async def start_session(user_id: str = settings.default_user):
    session = await svc.start_session(user_id)
    return session.snapshot(await asyncio.to_thread(svc.get_profile, user_id))


@app.post("/session/stop", response_model=SessionSummary)
async def stop_session(user_id: str = settings.default_user):
    session = svc.stop_session(user_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No monitoring session for {user_id}")
    return session.summary()


@app.get("/session/summary", response_model=SessionSummary)
async def session_summary(user_id: str = settings.default_user):
    session = svc.sessions.get(user_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No monitoring session for {user_id}")
    return session.summary()


@app.post("/seed")
def seed(user_id: str = settings.default_user, count: int = 50):
    history, _ = generate_history(
        SimulatorState.initial(), user_id, count, random.Random(), datetime.now(timezone.utc)
    )
    try:
        return {"inserted": svc.ingest_history(history)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
