"""
Database connection helper.

This module centralizes how connections are created. Right now we use
`psycopg.connect(settings.db_url)` which opens a new connection per call.

Repositories (`repo_readings`, `repo_alerts`, `repo_profiles`) only ever
obtain connections through `get_conn()`, so switching to a pool changes
this file alone.

Usage:
    from db import get_conn
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1;")
"""

import psycopg
from settings import settings


def get_conn():
    """Return a new psycopg connection using `settings.db_url`.

    A short `connect_timeout` keeps reading ingestion and alert
    acknowledgment from hanging when the database is unreachable; callers
    log the resulting `psycopg.OperationalError` and carry on.
    """

    return psycopg.connect(settings.db_url, connect_timeout=5)
