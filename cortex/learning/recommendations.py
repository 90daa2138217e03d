"""Recommendation Generator: scores a content catalog against learned interests."""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from cortex.learning.models import ContentItem, Recommendation
from cortex.learning.preferences import PreferenceEngine

logger = structlog.get_logger(__name__)


def _find_matching_interest(topic: str, interests: dict[str, float]) -> Optional[tuple[str, float]]:
    """First interest equal to, containing, or contained in *topic* (case-insensitive)."""
    needle = topic.lower()
    for interest, weight in interests.items():
        candidate = interest.lower()
        if candidate == needle or candidate in needle or needle in candidate:
            return interest, weight
    return None


def score_item(item: ContentItem, interests: dict[str, float]) -> tuple[float, list[str]]:
    if not item.topics:
        return 0.0, []
    total = 0.0
    matched: list[str] = []
    for topic in item.topics:
        hit = _find_matching_interest(topic, interests)
        if hit is not None:
            total += hit[1]
            matched.append(topic)
    return total / len(item.topics), matched


class RecommendationGenerator:
    def __init__(self, preferences: PreferenceEngine):
        self._preferences = preferences

    def generate_recommendations(
        self,
        user_id: str,
        catalog: Sequence[ContentItem],
        limit: int = 5,
        min_relevance: float = 0.1,
    ) -> list[Recommendation]:
        """
        Rank *catalog* for *user_id*.

        Returns an empty list when the user has no tracked interests. Items
        with equal relevance keep their catalog order.
        """
        prefs = self._preferences.get_preferences(user_id)
        if prefs is None or not prefs.topic_interests:
            return []

        scored: list[tuple[float, int, ContentItem, list[str]]] = []
        for index, item in enumerate(catalog):
            relevance, matched = score_item(item, prefs.topic_interests)
            if relevance < min_relevance:
                continue
            scored.append((relevance, index, item, matched))

        # Rank on the raw score; rounding only applies to the returned value.
        scored.sort(key=lambda entry: (-entry[0], entry[1]))
        ranked = [
            Recommendation(
                title=item.title,
                summary=item.summary,
                url=item.url,
                relevance=round(relevance, 2),
                matched_topics=matched,
            )
            for relevance, _, item, matched in scored[:limit]
        ]
        logger.debug(
            "recommendations.generated",
            user_id=user_id,
            catalog=len(catalog),
            returned=len(ranked),
        )
        return ranked
