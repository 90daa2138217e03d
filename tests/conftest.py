"""
Shared fixtures for the Cortex test suite.

Provides sample models and catalog items, default configs, and fresh
in-memory components so individual test modules can focus on behavior
rather than setup.
"""

from __future__ import annotations

import pytest

from cortex.config import CortexConfig, FacultyConfig, LearningConfig, PrivacyLevel
from cortex.faculties.types import FacultyContext
from cortex.learning.chat_logger import ChatLogger
from cortex.learning.models import ContentItem
from cortex.learning.preferences import PreferenceEngine
from cortex.orchestrator import Orchestrator
from cortex.providers.model_switch import OllamaModelInfo
from cortex.tools.executor import ToolExecutor
from cortex.tools.registry import ToolRegistry
from cortex.tools.simulated import register_simulated_tools


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------

class FakeClock:
    """Callable float-epoch clock that tests advance by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

@pytest.fixture()
def sample_models() -> list[OllamaModelInfo]:
    return [
        OllamaModelInfo(name="tinyllama:latest", size=1_000_000),
        OllamaModelInfo(name="llama3.3:latest", size=4_000_000_000),
        OllamaModelInfo(name="deepseek-r1:latest", size=7_000_000_000, is_reasoning=True),
    ]


@pytest.fixture()
def sample_catalog() -> list[ContentItem]:
    return [
        ContentItem(
            title="AI in Healthcare",
            summary="New advances in medical AI",
            topics=["ai", "healthcare"],
            url="https://example.com/1",
        ),
        ContentItem(
            title="TypeScript 6.0",
            summary="New TS features",
            topics=["typescript", "programming"],
            url="https://example.com/2",
        ),
        ContentItem(
            title="Climate Change Report",
            summary="Latest findings",
            topics=["climate", "science"],
            url="https://example.com/3",
        ),
    ]


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

@pytest.fixture()
def learning_config() -> LearningConfig:
    return LearningConfig(privacy_level=PrivacyLevel.FULL)


@pytest.fixture()
def chat_logger(learning_config) -> ChatLogger:
    return ChatLogger(learning_config)


@pytest.fixture()
def preference_engine(chat_logger) -> PreferenceEngine:
    return PreferenceEngine(chat_logger)


@pytest.fixture()
def executor() -> ToolExecutor:
    registry = ToolRegistry()
    register_simulated_tools(registry)
    return ToolExecutor(registry, default_timeout=5.0)


@pytest.fixture()
def faculty_ctx(executor) -> FacultyContext:
    return FacultyContext(tools=executor, config=FacultyConfig(), user_id="test-user", session_key="test-session")


@pytest.fixture()
def cortex_config() -> CortexConfig:
    config = CortexConfig()
    config.learning = LearningConfig(privacy_level=PrivacyLevel.FULL)
    return config


@pytest.fixture()
def orchestrator(cortex_config) -> Orchestrator:
    return Orchestrator.from_config(cortex_config)
