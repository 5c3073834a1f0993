"""Repository: read-only access to `user_profiles`."""

from typing import Optional

from db import get_conn
from models import UserProfile


class ProfileRepo:
    def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT user_id, name, age, baseline_hr, baseline_spo2, baseline_temp "
                    "FROM user_profiles WHERE user_id=%s",
                    (user_id,),
                )
                r = cur.fetchone()
        if r is None:
            return None
        return UserProfile(
            user_id=r[0],
            name=r[1],
            age=r[2],
            baseline_hr=r[3],
            baseline_spo2=r[4],
            baseline_temp=r[5],
        )
