"""
Active (unacknowledged) alert set for one user's monitoring session.

Acknowledgment is optimistic: the alert leaves the active set before
the store update runs, and comes back at its old position if the store
raises. Results that complete after `close()` are not applied.

Ids acknowledged here are remembered so a late insert event from the
alert channel cannot bring an acknowledged alert back.
"""

import asyncio
import logging
from typing import List, Optional, Set

import psycopg

from models import AcknowledgeResult, Alert
from repo_alerts import AlertRepo

logger = logging.getLogger(__name__)


class AlertManager:
    def __init__(self, user_id: str, store: AlertRepo):
        self.user_id = user_id
        self.store = store
        self._active: List[Alert] = []
        self._acknowledged: Set[str] = set()
        self._generation = 0
        self.closed = False

    def list(self) -> List[Alert]:
        """Current unacknowledged alerts, newest first."""
        return list(self._active)

    def load(self, alerts: List[Alert]) -> None:
        """Replace the active set, e.g. with the initial fetch from the store."""
        self._active = [
            a for a in alerts
            if not a.acknowledged and a.id not in self._acknowledged
        ]

    def append(self, alert: Alert) -> bool:
        """Insert at the front. Returns False when the alert was ignored."""
        if self.closed or alert.user_id != self.user_id:
            return False
        if alert.acknowledged or alert.id in self._acknowledged:
            return False
        if any(a.id == alert.id for a in self._active):
            return False
        self._active.insert(0, alert)
        return True

    async def acknowledge(self, alert_id: str) -> AcknowledgeResult:
        """Acknowledge `alert_id` locally and in the store.

        Unknown ids are a no-op for the caller; the store update is still
        attempted. Store errors are logged, not raised.
        """
        generation = self._generation
        index = self._index_of(alert_id)
        removed: Optional[Alert] = self._active.pop(index) if index is not None else None
        # an id acknowledged by an earlier call stays marked whatever this call's outcome
        newly_marked = alert_id not in self._acknowledged
        self._acknowledged.add(alert_id)

        store_error = False
        try:
            persisted = await asyncio.to_thread(self.store.update_acknowledged, alert_id, True)
        except psycopg.Error:
            logger.exception("Failed to persist acknowledgment of alert %s", alert_id)
            persisted = False
            store_error = True

        if generation != self._generation:
            logger.info("Session closed before acknowledgment of %s completed; result discarded", alert_id)
            return AcknowledgeResult(
                alert_id=alert_id, found=removed is not None, persisted=persisted, applied=False
            )

        reverted = False
        if store_error:
            if newly_marked:
                self._acknowledged.discard(alert_id)
            if removed is not None and self._index_of(alert_id) is None:
                self._active.insert(min(index, len(self._active)), removed)
                reverted = True
        elif not persisted:
            logger.warning("Alert %s not found in store while acknowledging", alert_id)

        return AcknowledgeResult(
            alert_id=alert_id,
            found=removed is not None,
            persisted=persisted,
            reverted=reverted,
        )

    async def refresh(self) -> bool:
        """Reconcile the active set with the store. Keeps the current set on failure."""
        generation = self._generation
        try:
            alerts = await asyncio.to_thread(self.store.fetch_unacknowledged, self.user_id)
        except psycopg.Error:
            logger.exception("Failed to refresh alerts for %s", self.user_id)
            return False
        if generation != self._generation:
            return False
        self.load(alerts)
        return True

    def close(self) -> None:
        self._generation += 1
        self.closed = True

    def _index_of(self, alert_id: str) -> Optional[int]:
        for i, alert in enumerate(self._active):
            if alert.id == alert_id:
                return i
        return None
