"""
Chat Logger: privacy-gated interaction history.

Interactions are redacted at write time according to the configured
PrivacyLevel, so whatever is stored is already safe to keep:

    off       nothing is stored
    minimal   first 50 characters, then "..."
    standard  e-mail addresses and phone numbers (local and international) replaced
    full      verbatim

Each user's history is capped; the oldest entries fall off first.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Optional, Protocol

import structlog

from cortex.config import LearningConfig, PrivacyLevel, merge_config
from cortex.learning.models import ChatInteraction
from cortex.privacy.redaction import PIIRedactor

logger = structlog.get_logger(__name__)

MINIMAL_PREFIX_LENGTH = 50
MAX_TOPICS = 10

STOP_WORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "shall", "can", "need", "must", "ought",
    "i", "me", "my", "we", "our", "you", "your", "he", "him", "his", "she",
    "her", "it", "its", "they", "them", "their", "what", "which", "who",
    "whom", "this", "that", "these", "those", "am", "in", "on", "at", "to",
    "for", "of", "with", "by", "from", "as", "into", "about", "between",
    "through", "during", "before", "after", "above", "below", "and", "but",
    "or", "nor", "not", "so", "if", "then", "than", "too", "very", "just",
    "because", "how", "when", "where", "why", "all", "each", "every",
    "both", "few", "more", "most", "other", "some", "such", "no", "only",
    "same", "also", "up", "out", "off",
})

_NON_WORD_RE = re.compile(r"[^\w\s]")

_STANDARD_REDACTOR = PIIRedactor(
    categories=["email", "phone_intl", "phone", "phone_local"],
    tokens={
        "email": "[EMAIL]",
        "phone_intl": "[PHONE]",
        "phone": "[PHONE]",
        "phone_local": "[PHONE]",
    },
)


def extract_topics(text: str, limit: int = MAX_TOPICS) -> list[str]:
    """Most frequent content words in *text*; first occurrence breaks ties."""
    words = _NON_WORD_RE.sub(" ", (text or "").lower()).split()
    counts = Counter(w for w in words if len(w) > 2 and w not in STOP_WORDS)
    return [word for word, _ in counts.most_common(limit)]


def redact_for_privacy(text: str, level: PrivacyLevel) -> str:
    if level is PrivacyLevel.OFF:
        return ""
    if level is PrivacyLevel.MINIMAL:
        if len(text) > MINIMAL_PREFIX_LENGTH:
            return text[:MINIMAL_PREFIX_LENGTH] + "..."
        return text
    if level is PrivacyLevel.STANDARD:
        return _STANDARD_REDACTOR.redact(text)
    return text


class InteractionStore(Protocol):
    def get(self, user_id: str) -> list[ChatInteraction]: ...
    def put(self, user_id: str, interactions: list[ChatInteraction]) -> None: ...
    def delete(self, user_id: str) -> bool: ...
    def clear(self) -> None: ...


class InMemoryInteractionStore:
    def __init__(self) -> None:
        self._logs: dict[str, list[ChatInteraction]] = {}

    def get(self, user_id: str) -> list[ChatInteraction]:
        return self._logs.get(user_id, [])

    def put(self, user_id: str, interactions: list[ChatInteraction]) -> None:
        self._logs[user_id] = interactions

    def delete(self, user_id: str) -> bool:
        return self._logs.pop(user_id, None) is not None

    def clear(self) -> None:
        self._logs.clear()


class ChatLogger:
    """Per-user interaction log with write-time redaction."""

    def __init__(
        self,
        config: Optional[LearningConfig] = None,
        store: Optional[InteractionStore] = None,
    ):
        self._config = config or LearningConfig()
        self._store = store if store is not None else InMemoryInteractionStore()

    @property
    def config(self) -> LearningConfig:
        return self._config

    def configure(self, **overrides) -> LearningConfig:
        self._config = merge_config(self._config, overrides)
        logger.info(
            "chat_logger.configured",
            enabled=self._config.enabled,
            privacy_level=self._config.privacy_level.value,
        )
        return self._config

    def log_interaction(
        self,
        user_id: str,
        input: str,
        output: str,
        channel: Optional[str] = None,
        topics: Optional[list[str]] = None,
    ) -> Optional[ChatInteraction]:
        """
        Record one exchange for *user_id*.

        Returns None, storing nothing, when learning is disabled or the
        privacy level is ``off``.
        """
        level = self._config.privacy_level
        if not self._config.enabled or level is PrivacyLevel.OFF:
            return None

        if topics is not None:
            resolved_topics = list(topics)
        elif self._config.track_topics:
            resolved_topics = extract_topics(input)
        else:
            resolved_topics = []

        interaction = ChatInteraction(
            user_id=user_id,
            input=redact_for_privacy(input, level),
            output=redact_for_privacy(output, level),
            topics=resolved_topics,
            channel=channel,
        )

        history = list(self._store.get(user_id))
        history.append(interaction)
        cap = self._config.max_interactions_per_user
        if len(history) > cap:
            history = history[-cap:]
        self._store.put(user_id, history)

        logger.debug(
            "chat_logger.logged",
            user_id=user_id,
            topics=len(resolved_topics),
            history=len(history),
        )
        return interaction.model_copy(deep=True)

    def get_chat_history(self, user_id: str, limit: Optional[int] = None) -> list[ChatInteraction]:
        history = self._store.get(user_id)
        if limit is not None and limit > 0:
            history = history[-limit:]
        return [item.model_copy(deep=True) for item in history]

    def get_interaction_count(self, user_id: str) -> int:
        return len(self._store.get(user_id))

    def clear_chat_history(self, user_id: str) -> bool:
        return self._store.delete(user_id)

    def clear_all(self) -> None:
        self._store.clear()
