import os
import sys

import psycopg

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from settings import settings

DDL = '''
CREATE TABLE IF NOT EXISTS health_readings (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    timestamp TIMESTAMP WITH TIME ZONE NOT NULL,
    heart_rate DOUBLE PRECISION NOT NULL,
    spo2 DOUBLE PRECISION NOT NULL CHECK (spo2 >= 0 AND spo2 <= 100),
    temperature DOUBLE PRECISION NOT NULL,
    stress_level DOUBLE PRECISION NOT NULL,
    gsr_value DOUBLE PRECISION NOT NULL DEFAULT 0,
    ecg_value DOUBLE PRECISION NOT NULL DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_readings_user_ts ON health_readings (user_id, timestamp DESC);

CREATE TABLE IF NOT EXISTS health_alerts (
    id BIGSERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    alert_type TEXT NOT NULL CHECK (alert_type IN ('critical', 'warning', 'info')),
    sensor TEXT NOT NULL,
    message TEXT NOT NULL,
    value DOUBLE PRECISION,
    acknowledged BOOLEAN NOT NULL DEFAULT false,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_alerts_user_active ON health_alerts (user_id, created_at DESC)
    WHERE acknowledged = false;

CREATE TABLE IF NOT EXISTS user_profiles (
    user_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    age INTEGER,
    baseline_hr DOUBLE PRECISION,
    baseline_spo2 DOUBLE PRECISION,
    baseline_temp DOUBLE PRECISION,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
);
'''

print('Connecting to', settings.db_url)
with psycopg.connect(settings.db_url, connect_timeout=5) as conn:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
print('DDL applied')
