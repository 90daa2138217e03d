"""Proactive notification data models."""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from cortex.learning.models import ContentItem

NotificationStatus = Literal["pending", "delivered", "failed"]


class NotificationChannel(str, Enum):
    EMAIL = "email"
    WEBHOOK = "webhook"
    IN_APP = "in-app"


DEFAULT_CHANNEL = NotificationChannel.IN_APP.value
DEFAULT_MIN_RELEVANCE = 0.3


class Subscription(BaseModel):
    """A user's opt-in to proactive notifications. One per user."""

    user_id: str
    opted_in: bool = True
    channels: list[str] = Field(default_factory=lambda: [DEFAULT_CHANNEL])
    topic_filters: list[str] = Field(default_factory=list)
    min_relevance: float = DEFAULT_MIN_RELEVANCE
    updated_at: float = Field(default_factory=time.time)


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: f"notif-{uuid.uuid4().hex[:12]}")
    user_id: str
    title: str
    body: str = ""
    url: Optional[str] = None
    relevance: float = 0.0
    topics: list[str] = Field(default_factory=list)
    channel: str = DEFAULT_CHANNEL
    created_at: float = Field(default_factory=time.time)
    status: NotificationStatus = "pending"


class NotificationDraft(BaseModel):
    """Caller-supplied content for a notification before gating."""

    title: str
    body: str = ""
    url: Optional[str] = None
    relevance: float = 0.0
    topics: list[str] = Field(default_factory=list)
    channel: Optional[str] = None


class FilterResult(BaseModel):
    item: ContentItem
    matched: bool = False
    relevance: float = 0.0
    matched_topics: list[str] = Field(default_factory=list)
