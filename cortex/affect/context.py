"""
Emotional Context Tracker: the rolling emotional memory of a session.

A single message says little about how a conversation is going. The tracker
keeps a bounded window of recent EmotionAnalysis results per session and
derives three aggregates from it: the sentiment trend over the newest
entries, the mean sentiment score, and the most frequent dominant emotion.

Storage is injected. The default InMemoryContextStore lives for the process
lifetime; tests build a fresh tracker per case instead of clearing a global.
Calls for the same session are last-writer-wins.
"""

from __future__ import annotations

import copy
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence

import structlog

from cortex.affect.analyzer import EmotionAnalysis, EmotionLabel, Sentiment, analyze_emotion
from cortex.config import EmotionalContextConfig, merge_config

logger = structlog.get_logger(__name__)


class SentimentTrend(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    MIXED = "mixed"


@dataclass
class EmotionalContext:
    session_key: str
    history: list[EmotionAnalysis] = field(default_factory=list)
    trend: SentimentTrend = SentimentTrend.NEUTRAL
    average_sentiment: float = 0.0
    dominant_emotion: EmotionLabel = EmotionLabel.NEUTRAL
    updated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "session_key": self.session_key,
            "history_length": len(self.history),
            "trend": self.trend.value,
            "average_sentiment": round(self.average_sentiment, 3),
            "dominant_emotion": self.dominant_emotion.value,
            "updated_at": self.updated_at,
        }


class ContextStore(Protocol):
    def get(self, session_key: str) -> Optional[EmotionalContext]: ...
    def put(self, context: EmotionalContext) -> None: ...
    def delete(self, session_key: str) -> bool: ...
    def clear(self) -> None: ...


class InMemoryContextStore:
    """Process-lifetime map of session key to context."""

    def __init__(self) -> None:
        self._contexts: dict[str, EmotionalContext] = {}

    def get(self, session_key: str) -> Optional[EmotionalContext]:
        return self._contexts.get(session_key)

    def put(self, context: EmotionalContext) -> None:
        self._contexts[context.session_key] = context

    def delete(self, session_key: str) -> bool:
        return self._contexts.pop(session_key, None) is not None

    def clear(self) -> None:
        self._contexts.clear()

    def __len__(self) -> int:
        return len(self._contexts)


def compute_sentiment_trend(
    history: Sequence[EmotionAnalysis],
    window: int = 5,
) -> SentimentTrend:
    """
    Classify the direction of the newest *window* entries.

    A strict majority of one polarity wins. When both polarities appear
    without a majority (including an exact tie) the trend is mixed; a window
    of neutral readings is neutral.
    """
    recent = list(history)[-window:] if window > 0 else []
    if not recent:
        return SentimentTrend.NEUTRAL

    positive = sum(1 for a in recent if a.sentiment is Sentiment.POSITIVE)
    negative = sum(1 for a in recent if a.sentiment is Sentiment.NEGATIVE)
    half = len(recent) / 2

    if positive > half:
        return SentimentTrend.POSITIVE
    if negative > half:
        return SentimentTrend.NEGATIVE
    if positive and negative:
        return SentimentTrend.MIXED
    if positive > negative:
        return SentimentTrend.POSITIVE
    if negative > positive:
        return SentimentTrend.NEGATIVE
    return SentimentTrend.NEUTRAL


def _most_frequent_dominant(history: Sequence[EmotionAnalysis]) -> EmotionLabel:
    counts = Counter(a.dominant for a in history if a.dominant is not EmotionLabel.NEUTRAL)
    if not counts:
        return EmotionLabel.NEUTRAL
    # Counter.most_common keeps first-seen order among ties.
    return counts.most_common(1)[0][0]


class EmotionalContextTracker:
    """Maintains bounded per-session emotion history."""

    def __init__(
        self,
        config: Optional[EmotionalContextConfig] = None,
        store: Optional[ContextStore] = None,
    ):
        self._config = config or EmotionalContextConfig()
        self._store = store if store is not None else InMemoryContextStore()

    @property
    def config(self) -> EmotionalContextConfig:
        return self._config

    def configure(self, **overrides) -> EmotionalContextConfig:
        self._config = merge_config(self._config, overrides)
        return self._config

    def analyze_text(self, text: str) -> EmotionAnalysis:
        return analyze_emotion(text)

    def process_message(
        self,
        session_key: str,
        text: str,
        analysis: Optional[EmotionAnalysis] = None,
    ) -> Optional[EmotionalContext]:
        """
        Append a reading for *text* to the session and return the updated context.

        A precomputed *analysis* is used as-is so callers that already scored
        the message do not pay for it twice. Returns None when tracking is
        disabled.
        """
        if not self._config.enabled:
            return None

        reading = analysis if analysis is not None else analyze_emotion(text)
        context = self._store.get(session_key) or EmotionalContext(session_key=session_key)

        context.history.append(copy.deepcopy(reading))
        overflow = len(context.history) - self._config.history_window_size
        if overflow > 0:
            del context.history[:overflow]

        context.trend = compute_sentiment_trend(context.history, self._config.trend_window)
        context.average_sentiment = (
            sum(a.sentiment_score for a in context.history) / len(context.history)
        )
        context.dominant_emotion = _most_frequent_dominant(context.history)
        context.updated_at = time.time()
        self._store.put(context)

        logger.debug(
            "emotional_context.updated",
            session_key=session_key,
            history=len(context.history),
            trend=context.trend.value,
        )
        return copy.deepcopy(context)

    def get_emotional_context(self, session_key: str) -> Optional[EmotionalContext]:
        context = self._store.get(session_key)
        return copy.deepcopy(context) if context is not None else None

    def clear_emotional_context(self, session_key: str) -> bool:
        return self._store.delete(session_key)

    def clear_all(self) -> None:
        self._store.clear()
