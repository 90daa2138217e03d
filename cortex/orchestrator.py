"""
Orchestrator: one message in, one aggregated OrchestrationResult out.

For every user message the orchestrator runs the same fixed pipeline:

1. Emotion analysis of the raw text
2. Session emotional-context update (reusing the analysis from step 1)
3. Task complexity classification, plus model selection when models are offered
4. Topic extraction and interaction logging
5. Preference recomputation and top interests
6. Recommendations from the caller's content catalog
7. Proactive notifications for subscribed users
8. Response hints (tone, verbosity, topics to emphasise)
9. Faculty detection and execution

Every component is injected, so tests and embedding applications can swap
stores, clocks or routers without touching this module. from_config()
wires the default in-memory stack.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from cortex.affect.analyzer import EmotionAnalysis, EmotionLabel, analyze_emotion
from cortex.affect.context import EmotionalContext, EmotionalContextTracker, SentimentTrend
from cortex.config import CortexConfig, FacultyConfig, LearningConfig, ModelSelectionConfig
from cortex.faculties.router import FacultyRouter
from cortex.faculties.types import FacultyActivation, FacultyContext, FacultyResult
from cortex.learning.chat_logger import ChatLogger, extract_topics
from cortex.learning.models import ChatInteraction, ContentItem, Recommendation, UserPreferences
from cortex.learning.preferences import PreferenceEngine
from cortex.learning.recommendations import RecommendationGenerator
from cortex.proactive.content_filter import filter_catalog
from cortex.proactive.dispatcher import NotificationDispatcher
from cortex.proactive.models import Notification, NotificationDraft
from cortex.proactive.subscriptions import SubscriptionManager
from cortex.providers.model_switch import (
    ModelSwitchResult,
    OllamaModelInfo,
    TaskComplexity,
    classify_task_complexity,
    select_model_for_task,
)
from cortex.self_update.monitor import UpdateMonitor
from cortex.tools.builtin import register_builtin_tools
from cortex.tools.executor import ToolExecutor
from cortex.tools.registry import ToolRegistry
from cortex.tools.simulated import register_simulated_tools

logger = structlog.get_logger(__name__)

MAX_RECOMMENDATIONS = 3
MAX_NOTIFICATIONS = 3
MAX_TOP_INTERESTS = 5

Tone = Literal["empathetic", "calming", "enthusiastic", "encouraging", "neutral"]

TONE_BY_EMOTION: dict[EmotionLabel, Tone] = {
    EmotionLabel.SADNESS: "empathetic",
    EmotionLabel.FEAR: "empathetic",
    EmotionLabel.ANGER: "calming",
    EmotionLabel.DISGUST: "calming",
    EmotionLabel.JOY: "enthusiastic",
    EmotionLabel.ANTICIPATION: "enthusiastic",
    EmotionLabel.TRUST: "encouraging",
}


class OrchestrationRequest(BaseModel):
    user_id: str
    session_key: str
    ollama_models: list[OllamaModelInfo] = Field(default_factory=list)
    content_catalog: Optional[list[ContentItem]] = None
    channel: Optional[str] = None


class ResponseHints(BaseModel):
    tone: Tone = "neutral"
    verbosity: Literal["concise", "moderate", "detailed"] = "moderate"
    include_recommendations: bool = False
    relevant_topics: list[str] = Field(default_factory=list)


@dataclass
class OrchestrationResult:
    emotion: EmotionAnalysis
    task_complexity: TaskComplexity
    response_hints: ResponseHints
    faculty_activation: FacultyActivation
    emotional_context: Optional[EmotionalContext] = None
    model_selection: Optional[ModelSwitchResult] = None
    interaction: Optional[ChatInteraction] = None
    preferences: Optional[UserPreferences] = None
    top_interests: list[str] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    faculty_result: Optional[FacultyResult] = None

    def to_dict(self) -> dict[str, Any]:
        def dump(value: Any) -> Any:
            if isinstance(value, BaseModel):
                return value.model_dump(mode="json")
            if hasattr(value, "to_dict"):
                return value.to_dict()
            if isinstance(value, list):
                return [dump(v) for v in value]
            if dataclasses.is_dataclass(value):
                return dataclasses.asdict(value)
            return value.value if hasattr(value, "value") else value

        return {f.name: dump(getattr(self, f.name)) for f in dataclasses.fields(self)}


def compute_response_hints(
    emotion: EmotionAnalysis,
    context: Optional[EmotionalContext],
    preferences: Optional[UserPreferences],
    top_interests: Sequence[str],
) -> ResponseHints:
    """Tone from the message's dominant emotion; verbosity and topics from learning."""
    tone: Tone = TONE_BY_EMOTION.get(emotion.dominant, "neutral")
    if tone == "neutral" and context is not None and context.trend is SentimentTrend.NEGATIVE:
        tone = "empathetic"
    return ResponseHints(
        tone=tone,
        verbosity=preferences.preferred_style.verbosity if preferences else "moderate",
        include_recommendations=bool(top_interests),
        relevant_topics=list(top_interests),
    )


class Orchestrator:
    """Runs the per-message pipeline over injected components."""

    def __init__(
        self,
        *,
        emotions: EmotionalContextTracker,
        chat_logger: ChatLogger,
        preferences: PreferenceEngine,
        recommender: RecommendationGenerator,
        subscriptions: SubscriptionManager,
        dispatcher: NotificationDispatcher,
        router: FacultyRouter,
        tools: ToolExecutor,
        updates: Optional[UpdateMonitor] = None,
        faculty_config: Optional[FacultyConfig] = None,
        model_config: Optional[ModelSelectionConfig] = None,
    ):
        self.emotions = emotions
        self.chat_logger = chat_logger
        self.preferences = preferences
        self.recommender = recommender
        self.subscriptions = subscriptions
        self.dispatcher = dispatcher
        self.router = router
        self.tools = tools
        self.updates = updates or UpdateMonitor()
        self._faculty_config = faculty_config or FacultyConfig()
        self._model_config = model_config or ModelSelectionConfig()

    @classmethod
    def from_config(cls, config: Optional[CortexConfig] = None) -> "Orchestrator":
        """Wire the default in-memory stack, tools included."""
        config = config or CortexConfig()
        chat_logger = ChatLogger(config.learning)
        preferences = PreferenceEngine(chat_logger)
        recommender = RecommendationGenerator(preferences)
        subscriptions = SubscriptionManager()
        dispatcher = NotificationDispatcher(config.proactive)
        updates = UpdateMonitor(config.self_update)

        registry = ToolRegistry()
        register_simulated_tools(registry, default_index=config.faculties.memory_index_name)
        register_builtin_tools(
            registry,
            chat_logger=chat_logger,
            preferences=preferences,
            recommender=recommender,
            subscriptions=subscriptions,
            dispatcher=dispatcher,
            monitor=updates,
        )

        return cls(
            emotions=EmotionalContextTracker(config.emotion),
            chat_logger=chat_logger,
            preferences=preferences,
            recommender=recommender,
            subscriptions=subscriptions,
            dispatcher=dispatcher,
            router=FacultyRouter(config=config.faculties),
            tools=ToolExecutor(registry, default_timeout=config.faculties.tool_timeout),
            updates=updates,
            faculty_config=config.faculties,
            model_config=config.models,
        )

    @property
    def learning_config(self) -> LearningConfig:
        return self.chat_logger.config

    async def process_message(self, text: str, request: OrchestrationRequest) -> OrchestrationResult:
        user_id = request.user_id

        emotion = analyze_emotion(text)
        emotional_context = self.emotions.process_message(request.session_key, text, emotion)

        task_complexity = classify_task_complexity(text)
        model_selection = None
        if request.ollama_models:
            model_selection = select_model_for_task(
                request.ollama_models, task_complexity, self._model_config.fallback_model,
            )

        topics = extract_topics(text)
        interaction = self.chat_logger.log_interaction(
            user_id, text, "", channel=request.channel, topics=topics,
        )

        preferences = self.preferences.update_preferences(user_id)
        top_interests = self.preferences.get_top_interests(user_id, MAX_TOP_INTERESTS)

        recommendations: list[Recommendation] = []
        if request.content_catalog and self.learning_config.enable_recommendations:
            recommendations = self.recommender.generate_recommendations(
                user_id, request.content_catalog, limit=MAX_RECOMMENDATIONS,
            )

        notifications = self._notify(user_id, request.content_catalog, preferences)

        hints = compute_response_hints(emotion, emotional_context, preferences, top_interests)

        ctx = FacultyContext(
            tools=self.tools,
            config=self._faculty_config,
            user_id=user_id,
            session_key=request.session_key,
        )
        activation, faculty_result = await self.router.route(text, ctx)

        logger.info(
            "orchestrator.processed",
            user_id=user_id,
            session_key=request.session_key,
            sentiment=emotion.sentiment.value,
            complexity=task_complexity.value,
            faculty=activation.faculty.value,
            recommendations=len(recommendations),
            notifications=len(notifications),
        )
        return OrchestrationResult(
            emotion=emotion,
            emotional_context=emotional_context,
            task_complexity=task_complexity,
            model_selection=model_selection,
            interaction=interaction,
            preferences=preferences,
            top_interests=top_interests,
            recommendations=recommendations,
            notifications=notifications,
            response_hints=hints,
            faculty_activation=activation,
            faculty_result=faculty_result,
        )

    def _notify(
        self,
        user_id: str,
        catalog: Optional[Sequence[ContentItem]],
        preferences: UserPreferences,
    ) -> list[Notification]:
        if not catalog or not self.subscriptions.is_subscribed(user_id):
            return []
        subscription = self.subscriptions.get_subscription(user_id)
        if subscription is None:
            return []

        created: list[Notification] = []
        matches = filter_catalog(catalog, subscription, preferences.topic_interests)
        for match in matches[:MAX_NOTIFICATIONS]:
            notification = self.dispatcher.create_notification(
                user_id,
                NotificationDraft(
                    title=f"Recommended: {match.item.title}",
                    body=match.item.summary,
                    url=match.item.url,
                    relevance=match.relevance,
                    topics=match.matched_topics,
                ),
            )
            if notification is not None:
                created.append(notification)
        return created

    def record_response(
        self,
        user_id: str,
        output: str,
        channel: Optional[str] = None,
    ) -> Optional[ChatInteraction]:
        """Log the generated reply as a follow-up interaction and refresh preferences."""
        interaction = self.chat_logger.log_interaction(user_id, "", output, channel=channel)
        self.preferences.update_preferences(user_id)
        return interaction
