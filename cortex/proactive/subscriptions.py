"""Subscription Manager: one upserted opt-in record per user."""

from __future__ import annotations

import time
from typing import Any, Optional, Protocol

import structlog
from pydantic import ValidationError

from cortex.proactive.models import DEFAULT_CHANNEL, DEFAULT_MIN_RELEVANCE, Subscription

logger = structlog.get_logger(__name__)


class SubscriptionStore(Protocol):
    def get(self, user_id: str) -> Optional[Subscription]: ...
    def put(self, subscription: Subscription) -> None: ...
    def values(self) -> list[Subscription]: ...
    def clear(self) -> None: ...


class InMemorySubscriptionStore:
    def __init__(self) -> None:
        self._subs: dict[str, Subscription] = {}

    def get(self, user_id: str) -> Optional[Subscription]:
        return self._subs.get(user_id)

    def put(self, subscription: Subscription) -> None:
        self._subs[subscription.user_id] = subscription

    def values(self) -> list[Subscription]:
        return list(self._subs.values())

    def clear(self) -> None:
        self._subs.clear()


class SubscriptionManager:
    def __init__(self, store: Optional[SubscriptionStore] = None):
        self._store = store if store is not None else InMemorySubscriptionStore()

    def subscribe(
        self,
        user_id: str,
        channels: Optional[list[str]] = None,
        topic_filters: Optional[list[str]] = None,
        min_relevance: Optional[float] = None,
    ) -> Subscription:
        """Opt *user_id* in, replacing any previous subscription."""
        sub = Subscription(
            user_id=user_id,
            opted_in=True,
            channels=list(channels) if channels else [DEFAULT_CHANNEL],
            topic_filters=list(topic_filters or []),
            min_relevance=DEFAULT_MIN_RELEVANCE if min_relevance is None else min_relevance,
        )
        self._store.put(sub)
        logger.info("subscriptions.subscribed", user_id=user_id, channels=sub.channels)
        return sub.model_copy(deep=True)

    def unsubscribe(self, user_id: str) -> bool:
        sub = self._store.get(user_id)
        if sub is None:
            return False
        self._store.put(sub.model_copy(update={"opted_in": False, "updated_at": time.time()}))
        logger.info("subscriptions.unsubscribed", user_id=user_id)
        return True

    def get_subscription(self, user_id: str) -> Optional[Subscription]:
        sub = self._store.get(user_id)
        return sub.model_copy(deep=True) if sub is not None else None

    def is_subscribed(self, user_id: str) -> bool:
        sub = self._store.get(user_id)
        return sub is not None and sub.opted_in

    def update_subscription(self, user_id: str, **updates: Any) -> Optional[Subscription]:
        """Patch an existing subscription; None when the user never subscribed or a value is invalid."""
        sub = self._store.get(user_id)
        if sub is None:
            return None
        merged = {**sub.model_dump(), **updates, "user_id": user_id, "updated_at": time.time()}
        try:
            updated = Subscription(**merged)
        except ValidationError as e:
            logger.warning("subscriptions.invalid_update", user_id=user_id, error=str(e))
            return None
        self._store.put(updated)
        return updated.model_copy(deep=True)

    def get_active_subscriptions(self) -> list[Subscription]:
        return [s.model_copy(deep=True) for s in self._store.values() if s.opted_in]

    def clear_all(self) -> None:
        self._store.clear()
