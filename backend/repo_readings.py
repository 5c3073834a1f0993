"""
Repository: SQL operations for `health_readings`.

This file contains only DB interaction code. It maps Pydantic models
to SQL parameters and converts DB rows back to `Reading` models. Keep
business rules (validation, normalization) out of this module.

Important notes:
- Failures surface as `psycopg.Error`; callers decide whether to log or
  propagate.
- Writes commit before returning so a published reading is durable.
"""

from typing import List

from db import get_conn
from models import Reading, ReadingIn

_COLUMNS = "id, user_id, timestamp, heart_rate, spo2, temperature, stress_level, gsr_value, ecg_value"


def _row_to_reading(r) -> Reading:
    return Reading(
        id=str(r[0]),
        user_id=r[1],
        timestamp=r[2],
        heart_rate=r[3],
        spo2=r[4],
        temperature=r[5],
        stress_level=r[6],
        gsr_value=r[7],
        ecg_value=r[8],
    )


def _params(reading: ReadingIn) -> tuple:
    return (
        reading.user_id,
        reading.timestamp,
        reading.heart_rate,
        reading.spo2,
        reading.temperature,
        reading.stress_level,
        reading.gsr_value,
        reading.ecg_value,
    )


_INSERT = (
    "INSERT INTO health_readings "
    "(user_id, timestamp, heart_rate, spo2, temperature, stress_level, gsr_value, ecg_value) "
    "VALUES (%s, %s, %s, %s, %s, %s, %s, %s)"
)


class ReadingRepo:
    """DB access only. No business logic here."""

    def insert_reading(self, reading: ReadingIn) -> Reading:
        """Insert one reading and return it with its DB-assigned id."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(_INSERT + f" RETURNING {_COLUMNS}", _params(reading))
                row = cur.fetchone()
            conn.commit()
        return _row_to_reading(row)

    def insert_readings(self, readings: List[ReadingIn]) -> int:
        """Batch-insert readings with a single executemany() and one commit."""

        rows = [_params(r) for r in readings]
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.executemany(_INSERT, rows)
            conn.commit()
        return len(rows)

    def fetch_recent(self, user_id: str, limit: int) -> List[Reading]:
        """Most recent `limit` readings for `user_id`, newest first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM health_readings "
                    "WHERE user_id=%s ORDER BY timestamp DESC LIMIT %s",
                    (user_id, limit),
                )
                return [_row_to_reading(r) for r in cur.fetchall()]

    def ping(self) -> None:
        """Lightweight DB health check. Raises on error."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
