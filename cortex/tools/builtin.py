"""
Built-in Tools: the agent's view into Cortex's own state.

Three action-dispatching tools let an agent loop inspect and steer the
learning, proactive and self-update subsystems through the same executor
that runs the simulated backends:

    learning     preferences, interests, history, topics, recommendations
    proactive    subscriptions and notifications
    self_update  improvement proposals and their safety checks

Handlers are synchronous and answer with JSON-able dicts. Anything the
caller got wrong comes back as ``{"error": ...}``, which the executor
reports as a failed call.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError

from cortex.learning.chat_logger import ChatLogger, extract_topics
from cortex.learning.models import ContentItem
from cortex.learning.preferences import PreferenceEngine
from cortex.learning.recommendations import RecommendationGenerator
from cortex.proactive.dispatcher import NotificationDispatcher
from cortex.proactive.subscriptions import SubscriptionManager
from cortex.self_update.models import TestResults, UpdateCategory, UpdateStatus
from cortex.self_update.monitor import UpdateMonitor
from cortex.tools.registry import ToolDefinition, ToolRegistry, action_schema

logger = structlog.get_logger(__name__)


class ActionTool:
    """Dispatch ``action`` to a ``_<action>`` method, reporting bad input as an error."""

    name: str = ""
    description: str = ""
    category: str = ""
    actions: tuple[str, ...] = ()
    properties: dict[str, dict[str, Any]] = {}

    def __call__(self, action: str, **params: Any) -> dict[str, Any]:
        method: Optional[Callable[..., dict[str, Any]]] = getattr(self, f"_{action}", None)
        if method is None or action not in self.actions:
            return {"error": f"Unknown action: {action}"}
        try:
            return method(**params)
        except (TypeError, ValueError, ValidationError) as e:
            logger.info("builtin_tool.bad_input", tool=self.name, action=action, error=str(e))
            return {"error": str(e)}

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=action_schema(list(self.actions), **self.properties),
            handler=self,
            category=self.category,
        )


def _require(value: Optional[str], field: str) -> str:
    if not value:
        raise ValueError(f"{field} is required")
    return value


class LearningTool(ActionTool):
    name = "learning"
    description = (
        "Inspect what has been learned about a user: topic interests, "
        "preferred style, chat history and personalised recommendations."
    )
    category = "learning"
    actions = (
        "get_preferences", "get_interests", "get_history",
        "get_interaction_count", "extract_topics", "get_recommendations",
    )
    properties = {
        "user_id": {"type": "string"},
        "text": {"type": "string"},
        "limit": {"type": "integer"},
        "catalog": {"type": "array", "items": {"type": "object"}},
    }

    def __init__(
        self,
        chat_logger: ChatLogger,
        preferences: PreferenceEngine,
        recommender: RecommendationGenerator,
    ):
        self._chat_logger = chat_logger
        self._preferences = preferences
        self._recommender = recommender

    def _get_preferences(self, user_id: Optional[str] = None) -> dict[str, Any]:
        prefs = self._preferences.get_preferences(_require(user_id, "user_id"))
        return {"preferences": prefs.model_dump(mode="json") if prefs else None}

    def _get_interests(self, user_id: Optional[str] = None, limit: int = 5) -> dict[str, Any]:
        return {"interests": self._preferences.get_top_interests(_require(user_id, "user_id"), limit)}

    def _get_history(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> dict[str, Any]:
        history = self._chat_logger.get_chat_history(_require(user_id, "user_id"), limit)
        return {"history": [item.model_dump(mode="json") for item in history]}

    def _get_interaction_count(self, user_id: Optional[str] = None) -> dict[str, Any]:
        return {"count": self._chat_logger.get_interaction_count(_require(user_id, "user_id"))}

    def _extract_topics(self, text: Optional[str] = None, limit: int = 10) -> dict[str, Any]:
        return {"topics": extract_topics(_require(text, "text"), limit)}

    def _get_recommendations(
        self,
        user_id: Optional[str] = None,
        catalog: Optional[list[dict[str, Any]]] = None,
        limit: int = 5,
    ) -> dict[str, Any]:
        items = [ContentItem(**entry) for entry in catalog or []]
        recs = self._recommender.generate_recommendations(_require(user_id, "user_id"), items, limit=limit)
        return {"recommendations": [rec.model_dump(mode="json") for rec in recs]}


class ProactiveTool(ActionTool):
    name = "proactive"
    description = (
        "Manage a user's opt-in to proactive notifications and read or "
        "acknowledge the notifications already queued for them."
    )
    category = "proactive"
    actions = (
        "check_subscription", "subscribe", "unsubscribe",
        "get_notifications", "mark_delivered", "list_subscriptions",
    )
    properties = {
        "user_id": {"type": "string"},
        "channels": {"type": "array", "items": {"type": "string"}},
        "topic_filters": {"type": "array", "items": {"type": "string"}},
        "min_relevance": {"type": "number"},
        "status": {"type": "string", "enum": ["pending", "delivered", "failed"]},
        "notification_id": {"type": "string"},
        "limit": {"type": "integer"},
    }

    def __init__(self, subscriptions: SubscriptionManager, dispatcher: NotificationDispatcher):
        self._subscriptions = subscriptions
        self._dispatcher = dispatcher

    def _check_subscription(self, user_id: Optional[str] = None) -> dict[str, Any]:
        sub = self._subscriptions.get_subscription(_require(user_id, "user_id"))
        return {
            "subscribed": sub is not None and sub.opted_in,
            "subscription": sub.model_dump(mode="json") if sub else None,
        }

    def _subscribe(
        self,
        user_id: Optional[str] = None,
        channels: Optional[list[str]] = None,
        topic_filters: Optional[list[str]] = None,
        min_relevance: Optional[float] = None,
    ) -> dict[str, Any]:
        sub = self._subscriptions.subscribe(
            _require(user_id, "user_id"),
            channels=channels,
            topic_filters=topic_filters,
            min_relevance=min_relevance,
        )
        return {"subscription": sub.model_dump(mode="json")}

    def _unsubscribe(self, user_id: Optional[str] = None) -> dict[str, Any]:
        return {"unsubscribed": self._subscriptions.unsubscribe(_require(user_id, "user_id"))}

    def _get_notifications(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        notifications = self._dispatcher.get_notifications(_require(user_id, "user_id"), status, limit)
        return {"notifications": [n.model_dump(mode="json") for n in notifications]}

    def _mark_delivered(
        self,
        user_id: Optional[str] = None,
        notification_id: Optional[str] = None,
    ) -> dict[str, Any]:
        found = self._dispatcher.mark_delivered(
            _require(user_id, "user_id"), _require(notification_id, "notification_id"),
        )
        if not found:
            return {"error": f"Notification not found: {notification_id}"}
        return {"delivered": True}

    def _list_subscriptions(self) -> dict[str, Any]:
        return {
            "subscriptions": [
                s.model_dump(mode="json") for s in self._subscriptions.get_active_subscriptions()
            ],
        }


class SelfUpdateTool(ActionTool):
    name = "self_update"
    description = (
        "Track proposed improvements to the agent: record a discovery, move "
        "it through testing and approval, and run safety checks before applying."
    )
    category = "self_update"
    actions = (
        "status", "discover", "list", "get", "safety_check",
        "approve", "reject", "update_status",
    )
    properties = {
        "proposal_id": {"type": "string"},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "category": {"type": "string", "enum": [c.value for c in UpdateCategory]},
        "source": {"type": "string"},
        "impact": {"type": "string", "enum": ["low", "medium", "high"]},
        "risk": {"type": "string", "enum": ["low", "medium", "high"]},
        "status": {"type": "string", "enum": [s.value for s in UpdateStatus]},
        "reason": {"type": "string"},
        "tests_passed": {"type": "boolean"},
        "test_details": {"type": "string"},
    }

    def __init__(self, monitor: UpdateMonitor):
        self._monitor = monitor

    def _status(self) -> dict[str, Any]:
        config = self._monitor.config
        return {
            "enabled": config.enabled,
            "pending": self._monitor.count_pending(),
            "max_pending_proposals": config.max_pending_proposals,
            "require_approval": config.require_approval,
            "auto_apply_low_risk": config.auto_apply_low_risk,
        }

    def _discover(
        self,
        title: Optional[str] = None,
        description: str = "",
        category: Optional[str] = None,
        source: str = "agent",
        impact: str = "low",
        risk: str = "low",
    ) -> dict[str, Any]:
        if _require(category, "category") not in {c.value for c in UpdateCategory}:
            raise ValueError(f"Unknown category: {category}")
        proposal = self._monitor.discover_update(
            title=_require(title, "title"),
            description=description,
            category=category,
            source=source,
            impact=impact,
            risk=risk,
        )
        if proposal is None:
            return {"error": "Self-update is disabled or the pending proposal limit was reached"}
        return {"proposal": proposal.model_dump(mode="json")}

    def _list(self, status: Optional[str] = None, category: Optional[str] = None) -> dict[str, Any]:
        proposals = self._monitor.list_proposals(status=status, category=category)
        return {"proposals": [p.model_dump(mode="json") for p in proposals]}

    def _get(self, proposal_id: Optional[str] = None) -> dict[str, Any]:
        proposal = self._monitor.get_proposal(_require(proposal_id, "proposal_id"))
        if proposal is None:
            return {"error": f"Proposal not found: {proposal_id}"}
        return {"proposal": proposal.model_dump(mode="json")}

    def _safety_check(self, proposal_id: Optional[str] = None) -> dict[str, Any]:
        report = self._monitor.run_safety_check(_require(proposal_id, "proposal_id"))
        if report is None:
            return {"error": f"Proposal not found: {proposal_id}"}
        return {"report": report.model_dump(mode="json")}

    def _approve(self, proposal_id: Optional[str] = None) -> dict[str, Any]:
        proposal = self._monitor.approve_proposal(_require(proposal_id, "proposal_id"))
        if proposal is None:
            return {"error": f"Proposal {proposal_id} is not awaiting approval"}
        return {"proposal": proposal.model_dump(mode="json")}

    def _reject(self, proposal_id: Optional[str] = None, reason: Optional[str] = None) -> dict[str, Any]:
        proposal = self._monitor.reject_proposal(_require(proposal_id, "proposal_id"), _require(reason, "reason"))
        if proposal is None:
            return {"error": f"Proposal {proposal_id} cannot be rejected"}
        return {"proposal": proposal.model_dump(mode="json")}

    def _update_status(
        self,
        proposal_id: Optional[str] = None,
        status: Optional[str] = None,
        reason: Optional[str] = None,
        tests_passed: Optional[bool] = None,
        test_details: str = "",
    ) -> dict[str, Any]:
        results = TestResults(passed=tests_passed, details=test_details) if tests_passed is not None else None
        proposal = self._monitor.update_proposal_status(
            _require(proposal_id, "proposal_id"),
            _require(status, "status"),
            rejection_reason=reason,
            test_results=results,
        )
        if proposal is None:
            return {"error": f"Cannot move proposal {proposal_id} to {status}"}
        return {"proposal": proposal.model_dump(mode="json")}


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    chat_logger: ChatLogger,
    preferences: PreferenceEngine,
    recommender: RecommendationGenerator,
    subscriptions: SubscriptionManager,
    dispatcher: NotificationDispatcher,
    monitor: UpdateMonitor,
) -> list[str]:
    """Register the learning, proactive and self_update tools; return their names."""
    tools = (
        LearningTool(chat_logger, preferences, recommender),
        ProactiveTool(subscriptions, dispatcher),
        SelfUpdateTool(monitor),
    )
    for tool in tools:
        registry.register(tool.definition())
    logger.debug("builtin_tools.registered", count=len(tools))
    return [tool.name for tool in tools]
