"""
Content Filter: decides which catalog items a subscriber should hear about.

The filter set is the subscription's explicit topic filters, or the user's
learned interests when none were given. Each item topic that overlaps a
filter (bidirectional substring, case-insensitive) contributes that filter's
interest weight, or 0.5 when the caller supplied no weight for it. The
threshold is checked against the raw score; the result carries it rounded
to two decimals.
"""

from __future__ import annotations

from typing import Optional, Sequence

from cortex.learning.models import ContentItem
from cortex.proactive.models import FilterResult, Subscription

UNSCORED_FILTER_WEIGHT = 0.5


def filter_content(
    item: ContentItem,
    subscription: Subscription,
    topic_interests: Optional[dict[str, float]] = None,
) -> FilterResult:
    if not subscription.opted_in:
        return FilterResult(item=item)

    interests = topic_interests or {}
    filters = subscription.topic_filters or list(interests)
    if not filters:
        return FilterResult(item=item)

    total = 0.0
    matched: list[str] = []
    for topic in item.topics:
        needle = topic.lower()
        for flt in filters:
            candidate = flt.lower()
            if candidate in needle or needle in candidate:
                total += interests.get(flt, UNSCORED_FILTER_WEIGHT)
                matched.append(topic)
                break

    relevance = min(1.0, total / max(1, len(filters)))
    return FilterResult(
        item=item,
        matched=bool(matched) and relevance >= subscription.min_relevance,
        relevance=round(relevance, 2),
        matched_topics=matched,
    )


def filter_catalog(
    items: Sequence[ContentItem],
    subscription: Subscription,
    topic_interests: Optional[dict[str, float]] = None,
) -> list[FilterResult]:
    """Matching items only, most relevant first."""
    results = [filter_content(item, subscription, topic_interests) for item in items]
    return sorted((r for r in results if r.matched), key=lambda r: r.relevance, reverse=True)
