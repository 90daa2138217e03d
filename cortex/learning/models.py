"""
Learning Data Models: what the agent remembers about a user.

ChatInteraction is the unit of history. UserPreferences is derived from that
history and never edited by hand. ContentItem and Recommendation are the
catalog side: items come in from the caller, recommendations go out.
"""

from __future__ import annotations

import time
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field

Verbosity = Literal["concise", "moderate", "detailed"]
Formality = Literal["casual", "neutral", "formal"]


class ChatInteraction(BaseModel):
    """One logged exchange, already redacted for the configured privacy level."""

    id: str = Field(default_factory=lambda: f"interaction-{uuid.uuid4().hex[:12]}")
    user_id: str
    input: str = ""
    output: str = ""
    timestamp: float = Field(default_factory=time.time)
    topics: list[str] = Field(default_factory=list)
    channel: Optional[str] = None


class PreferredStyle(BaseModel):
    verbosity: Verbosity = "moderate"
    formality: Formality = "neutral"


class UserPreferences(BaseModel):
    user_id: str
    topic_interests: dict[str, float] = Field(default_factory=dict)
    preferred_style: PreferredStyle = Field(default_factory=PreferredStyle)
    interaction_count: int = 0
    updated_at: float = Field(default_factory=time.time)


class ContentItem(BaseModel):
    """A catalog entry the caller offers for recommendation or notification."""

    title: str
    summary: str = ""
    url: Optional[str] = None
    topics: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    id: str = Field(default_factory=lambda: f"rec-{uuid.uuid4().hex[:12]}")
    title: str
    summary: str = ""
    url: Optional[str] = None
    relevance: float = 0.0
    matched_topics: list[str] = Field(default_factory=list)
    generated_at: float = Field(default_factory=time.time)
