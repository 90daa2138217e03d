# cortex/config.py
"""
Configuration for the Cortex orchestration layer.

Every component takes a typed config object with explicit defaults. Values
are loaded from environment variables (via an optional .env file) and
validated with Pydantic, so a bad value fails at construction time instead
of deep inside the pipeline.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, TypeVar

import structlog
from pydantic import BaseModel, BeforeValidator, Field, model_validator
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

# Resolve .env relative to the project root (one level above cortex/ package),
# so the config works regardless of the user's current working directory.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


def _coerce_str_list(value: object) -> list[str]:
    """Coerce env-var values into a list of stripped, non-empty strings.

    Accepts:
      - A single str         -> ["value"]
      - Comma-separated str  -> ["a", "b"]
      - JSON array str       -> (parsed by pydantic-settings before this runs)
      - An existing list     -> passthrough with str coercion
    """
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return []
        if "," in stripped:
            return [part.strip() for part in stripped.split(",") if part.strip()]
        return [stripped]
    return []


StrList = Annotated[list[str], BeforeValidator(_coerce_str_list)]


class PrivacyLevel(str, Enum):
    """How much of a chat interaction survives into the log."""
    OFF = "off"
    MINIMAL = "minimal"
    STANDARD = "standard"
    FULL = "full"


class EmotionalContextConfig(BaseSettings):
    """Rolling emotional context per session."""

    enabled: bool = Field(True, alias="CORTEX_EMOTION_ENABLED")
    history_window_size: int = Field(20, alias="CORTEX_EMOTION_HISTORY_WINDOW")
    # Entries inspected when classifying the sentiment trend
    trend_window: int = Field(5, alias="CORTEX_EMOTION_TREND_WINDOW")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_windows(self) -> "EmotionalContextConfig":
        self.history_window_size = max(1, int(self.history_window_size))
        self.trend_window = max(1, min(int(self.trend_window), self.history_window_size))
        return self


class LearningConfig(BaseSettings):
    """Chat logging, preference learning and recommendations."""

    enabled: bool = Field(True, alias="CORTEX_LEARNING_ENABLED")
    privacy_level: PrivacyLevel = Field(PrivacyLevel.STANDARD, alias="CORTEX_PRIVACY_LEVEL")
    max_interactions_per_user: int = Field(500, alias="CORTEX_MAX_INTERACTIONS_PER_USER")
    track_topics: bool = Field(True, alias="CORTEX_TRACK_TOPICS")
    enable_recommendations: bool = Field(True, alias="CORTEX_ENABLE_RECOMMENDATIONS")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "LearningConfig":
        self.max_interactions_per_user = max(1, int(self.max_interactions_per_user))
        return self


class ProactiveConfig(BaseSettings):
    """Opt-in proactive notifications."""

    enabled: bool = Field(True, alias="CORTEX_PROACTIVE_ENABLED")
    default_min_relevance: float = Field(0.3, alias="CORTEX_PROACTIVE_MIN_RELEVANCE")
    max_daily_notifications: int = Field(10, alias="CORTEX_MAX_DAILY_NOTIFICATIONS")
    available_channels: StrList = Field(
        default_factory=lambda: ["in-app"],
        alias="CORTEX_NOTIFICATION_CHANNELS",
    )

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "ProactiveConfig":
        self.default_min_relevance = max(0.0, min(1.0, float(self.default_min_relevance)))
        self.max_daily_notifications = max(0, int(self.max_daily_notifications))
        return self


class SelfUpdateConfig(BaseSettings):
    """Self-update proposal tracking."""

    enabled: bool = Field(True, alias="CORTEX_SELF_UPDATE_ENABLED")
    auto_apply_low_risk: bool = Field(False, alias="CORTEX_AUTO_APPLY_LOW_RISK")
    require_approval: bool = Field(True, alias="CORTEX_REQUIRE_APPROVAL")
    max_pending_proposals: int = Field(50, alias="CORTEX_MAX_PENDING_PROPOSALS")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "SelfUpdateConfig":
        self.max_pending_proposals = max(0, int(self.max_pending_proposals))
        return self


class ModelSelectionConfig(BaseSettings):
    """Dynamic model switching."""

    fallback_model: str = Field("llama3.3:latest", alias="CORTEX_FALLBACK_MODEL")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}


class FacultyConfig(BaseSettings):
    """Faculty routing and the simulated tool backends behind it."""

    enabled: bool = Field(True, alias="CORTEX_FACULTIES_ENABLED")
    memory_index_name: str = Field("default", alias="CORTEX_MEMORY_INDEX")
    tool_timeout: float = Field(30.0, alias="CORTEX_TOOL_TIMEOUT")
    local_model: str = Field("ollama/llama3", alias="CORTEX_PRIVACY_LOCAL_MODEL")

    model_config = {"env_file": _ENV_FILE, "extra": "ignore", "populate_by_name": True}

    @model_validator(mode="after")
    def normalize_limits(self) -> "FacultyConfig":
        self.tool_timeout = max(0.1, float(self.tool_timeout))
        return self


_ConfigT = TypeVar("_ConfigT", bound=BaseModel)


def merge_config(config: _ConfigT, overrides: dict[str, Any]) -> _ConfigT:
    """Shallow-merge *overrides* into a copy of *config* and re-validate it.

    Unknown keys raise instead of silently vanishing.
    """
    unknown = set(overrides) - set(type(config).model_fields)
    if unknown:
        raise ValueError(f"Unknown {type(config).__name__} field(s): {', '.join(sorted(unknown))}")
    merged = {**config.model_dump(), **overrides}
    return type(config)(**merged)


class CortexConfig:
    """
    Master configuration that composes all subsystem configs.

    Every component receives its config from here. No global state, no
    hidden settings.
    """

    def __init__(self):
        self.emotion = EmotionalContextConfig()
        self.learning = LearningConfig()
        self.proactive = ProactiveConfig()
        self.self_update = SelfUpdateConfig()
        self.models = ModelSelectionConfig()
        self.faculties = FacultyConfig()

    def __repr__(self) -> str:
        return (
            f"CortexConfig(privacy_level={self.learning.privacy_level.value!r}, "
            f"proactive={self.proactive.enabled}, "
            f"self_update={self.self_update.enabled})"
        )
