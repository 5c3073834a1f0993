"""
Repository: SQL operations for `health_alerts`.

Acknowledged rows are kept for audit; only the `acknowledged` flag
changes. `update_acknowledged` reports whether a row matched so the
caller can tell an unknown id from a successful update.
"""

from typing import List

from db import get_conn
from models import Alert, AlertIn

_COLUMNS = "id, user_id, alert_type, sensor, message, value, acknowledged, created_at"


def _row_to_alert(r) -> Alert:
    return Alert(
        id=str(r[0]),
        user_id=r[1],
        alert_type=r[2],
        sensor=r[3],
        message=r[4],
        value=r[5],
        acknowledged=r[6],
        created_at=r[7],
    )


class AlertRepo:
    """DB access only. No business logic here."""

    def insert_alert(self, alert: AlertIn) -> Alert:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO health_alerts (user_id, alert_type, sensor, message, value, acknowledged) "
                    f"VALUES (%s, %s, %s, %s, %s, %s) RETURNING {_COLUMNS}",
                    (
                        alert.user_id,
                        alert.alert_type.value,
                        alert.sensor,
                        alert.message,
                        alert.value,
                        alert.acknowledged,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_alert(row)

    def fetch_unacknowledged(self, user_id: str) -> List[Alert]:
        """Active alerts for `user_id`, newest first."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM health_alerts "
                    "WHERE user_id=%s AND acknowledged=false ORDER BY created_at DESC",
                    (user_id,),
                )
                return [_row_to_alert(r) for r in cur.fetchall()]

    def update_acknowledged(self, alert_id: str, acknowledged: bool = True) -> bool:
        """Set the flag; returns False when no row has this id."""

        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE health_alerts SET acknowledged=%s WHERE id::text=%s",
                    (acknowledged, alert_id),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated
