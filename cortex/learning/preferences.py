"""Preference Engine: recency-weighted topic interests and style inference."""

from __future__ import annotations

import time
from typing import Optional, Protocol

import structlog

from cortex.learning.chat_logger import ChatLogger
from cortex.learning.models import PreferredStyle, UserPreferences

logger = structlog.get_logger(__name__)

# Per-step decay applied from the newest interaction backwards.
RECENCY_DECAY = 0.95

CONCISE_MAX_CHARS = 50
MODERATE_MAX_CHARS = 200


class PreferenceStore(Protocol):
    def get(self, user_id: str) -> Optional[UserPreferences]: ...
    def put(self, preferences: UserPreferences) -> None: ...
    def clear(self) -> None: ...


class InMemoryPreferenceStore:
    def __init__(self) -> None:
        self._prefs: dict[str, UserPreferences] = {}

    def get(self, user_id: str) -> Optional[UserPreferences]:
        return self._prefs.get(user_id)

    def put(self, preferences: UserPreferences) -> None:
        self._prefs[preferences.user_id] = preferences

    def clear(self) -> None:
        self._prefs.clear()


def infer_verbosity(mean_input_length: float) -> str:
    if mean_input_length < CONCISE_MAX_CHARS:
        return "concise"
    if mean_input_length < MODERATE_MAX_CHARS:
        return "moderate"
    return "detailed"


class PreferenceEngine:
    """
    Derives UserPreferences from a user's full chat history.

    Preferences are recomputed from scratch on every update, so calling
    update_preferences twice without new interactions gives the same
    interests. The top topic always carries weight 1.0.
    """

    def __init__(self, chat_logger: ChatLogger, store: Optional[PreferenceStore] = None):
        self._chat_logger = chat_logger
        self._store = store if store is not None else InMemoryPreferenceStore()

    def update_preferences(self, user_id: str) -> UserPreferences:
        history = self._chat_logger.get_chat_history(user_id)
        previous = self._store.get(user_id)
        length = len(history)

        scores: dict[str, float] = {}
        for i, interaction in enumerate(history):
            weight = RECENCY_DECAY ** (length - 1 - i)
            for topic in interaction.topics:
                scores[topic] = scores.get(topic, 0.0) + weight

        peak = max(scores.values(), default=0.0)
        interests = {topic: score / peak for topic, score in scores.items()} if peak > 0 else {}

        style = previous.preferred_style.model_copy() if previous else PreferredStyle()
        if history:
            mean_length = sum(len(item.input) for item in history) / length
            style.verbosity = infer_verbosity(mean_length)

        prefs = UserPreferences(
            user_id=user_id,
            topic_interests=interests,
            preferred_style=style,
            interaction_count=length,
            updated_at=time.time(),
        )
        self._store.put(prefs)
        logger.debug(
            "preferences.updated",
            user_id=user_id,
            topics=len(interests),
            verbosity=style.verbosity,
        )
        return prefs.model_copy(deep=True)

    def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        prefs = self._store.get(user_id)
        return prefs.model_copy(deep=True) if prefs is not None else None

    def get_top_interests(self, user_id: str, limit: int = 5) -> list[str]:
        prefs = self._store.get(user_id)
        if prefs is None:
            return []
        ranked = sorted(prefs.topic_interests.items(), key=lambda kv: kv[1], reverse=True)
        return [topic for topic, _ in ranked[:limit]]

    def clear(self) -> None:
        self._store.clear()
