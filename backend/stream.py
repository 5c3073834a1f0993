"""
In-process event stream for newly inserted readings and alerts.

Two independent channels per user. Delivery is at most once, in publish
order within a channel, with no ordering between the reading and alert
channels. A failing subscriber is logged and skipped; it never breaks
the publisher or the other subscribers.
"""

import itertools
import logging
from collections import defaultdict
from typing import Callable, Dict

from models import Alert, Reading

logger = logging.getLogger(__name__)

ReadingCallback = Callable[[Reading], None]
AlertCallback = Callable[[Alert], None]

READINGS = "readings"
ALERTS = "alerts"


class Subscription:
    """Handle returned by `subscribe_*`; call `unsubscribe()` to disconnect."""

    def __init__(self, stream: "EventStream", channel: str, user_id: str, token: int):
        self._stream = stream
        self.channel = channel
        self.user_id = user_id
        self.token = token

    def unsubscribe(self) -> None:
        self._stream._remove(self.channel, self.user_id, self.token)


class EventStream:
    def __init__(self):
        self._subscribers: Dict[tuple, Dict[int, Callable]] = defaultdict(dict)
        self._tokens = itertools.count(1)

    def subscribe_readings(self, user_id: str, callback: ReadingCallback) -> Subscription:
        return self._add(READINGS, user_id, callback)

    def subscribe_alerts(self, user_id: str, callback: AlertCallback) -> Subscription:
        return self._add(ALERTS, user_id, callback)

    def publish_reading(self, reading: Reading) -> int:
        return self._publish(READINGS, reading.user_id, reading)

    def publish_alert(self, alert: Alert) -> int:
        return self._publish(ALERTS, alert.user_id, alert)

    def close(self) -> None:
        """Disconnect every subscriber."""
        self._subscribers.clear()

    def _add(self, channel: str, user_id: str, callback: Callable) -> Subscription:
        token = next(self._tokens)
        self._subscribers[(channel, user_id)][token] = callback
        return Subscription(self, channel, user_id, token)

    def _remove(self, channel: str, user_id: str, token: int) -> None:
        subs = self._subscribers.get((channel, user_id))
        if subs is not None:
            subs.pop(token, None)

    def _publish(self, channel: str, user_id: str, item) -> int:
        # copy: callbacks may unsubscribe while we iterate
        callbacks = list(self._subscribers.get((channel, user_id), {}).values())
        delivered = 0
        for callback in callbacks:
            try:
                callback(item)
                delivered += 1
            except Exception:
                logger.exception("Subscriber on %s/%s failed", channel, user_id)
        return delivered
