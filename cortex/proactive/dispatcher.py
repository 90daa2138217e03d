"""
Notification Dispatcher: rate-limited creation of proactive notifications.

create_notification passes four gates in order, and any failure returns None:

    1. the proactive system is enabled
    2. the user has sent fewer than max_daily_notifications today (UTC)
    3. the channel is in available_channels
    4. relevance >= default_min_relevance

The fourth gate is independent of the subscription's own min_relevance,
which the content filter has usually applied already. Both stay.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

import structlog

from cortex.config import ProactiveConfig, merge_config
from cortex.proactive.models import (
    DEFAULT_CHANNEL,
    Notification,
    NotificationDraft,
    NotificationStatus,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


def utc_day(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).date().isoformat()


class NotificationStore(Protocol):
    def list(self, user_id: str) -> list[Notification]: ...
    def append(self, notification: Notification) -> None: ...
    def daily_count(self, key: str) -> int: ...
    def increment_daily(self, key: str) -> int: ...
    def clear(self) -> None: ...


class InMemoryNotificationStore:
    def __init__(self) -> None:
        self._notifications: dict[str, list[Notification]] = {}
        self._daily_counts: dict[str, int] = {}

    def list(self, user_id: str) -> list[Notification]:
        return self._notifications.get(user_id, [])

    def append(self, notification: Notification) -> None:
        self._notifications.setdefault(notification.user_id, []).append(notification)

    def daily_count(self, key: str) -> int:
        return self._daily_counts.get(key, 0)

    def increment_daily(self, key: str) -> int:
        # Keys are "user:day"; only the newest day's counters are kept.
        day = key.rpartition(":")[2]
        for stale in [k for k in self._daily_counts if k.rpartition(":")[2] != day]:
            del self._daily_counts[stale]
        self._daily_counts[key] = self._daily_counts.get(key, 0) + 1
        return self._daily_counts[key]

    def clear(self) -> None:
        self._notifications.clear()
        self._daily_counts.clear()


class NotificationDispatcher:
    def __init__(
        self,
        config: Optional[ProactiveConfig] = None,
        store: Optional[NotificationStore] = None,
        clock: Optional[Clock] = None,
    ):
        self._config = config or ProactiveConfig()
        self._store = store if store is not None else InMemoryNotificationStore()
        self._clock = clock or time.time

    @property
    def config(self) -> ProactiveConfig:
        return self._config

    def configure(self, **overrides) -> ProactiveConfig:
        self._config = merge_config(self._config, overrides)
        return self._config

    def create_notification(self, user_id: str, draft: NotificationDraft) -> Optional[Notification]:
        if not self._config.enabled:
            return None

        now = self._clock()
        day_key = f"{user_id}:{utc_day(now)}"
        if self._store.daily_count(day_key) >= self._config.max_daily_notifications:
            logger.debug("dispatcher.rate_limited", user_id=user_id, day=day_key)
            return None

        channel = draft.channel or DEFAULT_CHANNEL
        if channel not in self._config.available_channels:
            logger.debug("dispatcher.channel_unavailable", user_id=user_id, channel=channel)
            return None

        if draft.relevance < self._config.default_min_relevance:
            return None

        notification = Notification(
            user_id=user_id,
            title=draft.title,
            body=draft.body,
            url=draft.url,
            relevance=draft.relevance,
            topics=list(draft.topics),
            channel=channel,
            created_at=now,
        )
        self._store.append(notification)
        self._store.increment_daily(day_key)
        logger.info(
            "dispatcher.created",
            user_id=user_id,
            notification_id=notification.id,
            channel=channel,
        )
        return notification.model_copy(deep=True)

    def get_notifications(
        self,
        user_id: str,
        status: Optional[NotificationStatus] = None,
        limit: Optional[int] = None,
    ) -> list[Notification]:
        items = [n for n in self._store.list(user_id) if status is None or n.status == status]
        if limit is not None and limit > 0:
            items = items[-limit:]
        return [n.model_copy(deep=True) for n in items]

    def _set_status(self, user_id: str, notification_id: str, status: NotificationStatus) -> bool:
        for notification in self._store.list(user_id):
            if notification.id == notification_id:
                notification.status = status
                return True
        return False

    def mark_delivered(self, user_id: str, notification_id: str) -> bool:
        return self._set_status(user_id, notification_id, "delivered")

    def mark_failed(self, user_id: str, notification_id: str) -> bool:
        return self._set_status(user_id, notification_id, "failed")

    def clear_all(self) -> None:
        self._store.clear()
