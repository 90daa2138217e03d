"""
Faculty Types: the shared vocabulary of the faculty layer.

A faculty is a specialised handler for one category of user intent
(fixing errors, searching memory, protecting PII, ...). Routing produces a
FacultyActivation; running a faculty produces a FacultyResult, which is a
tagged union so callers branch on ``result.success`` and never see a
half-filled envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field

from cortex.config import FacultyConfig
from cortex.tools.executor import ToolExecutor


class FacultyName(str, Enum):
    SELF_HEALING = "self-healing"
    COUNCIL = "council"
    MEMORY = "memory"
    SENSES = "senses"
    RESEARCH = "research"
    WORKFLOW = "workflow"
    PRIVACY = "privacy"
    SHEPHERD = "shepherd"
    SIMULATOR = "simulator"
    AUTODIDACT = "autodidact"
    NONE = "none"


class FacultyActivation(BaseModel):
    faculty: FacultyName
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ""


class FacultySuccess(BaseModel):
    success: Literal[True] = True
    data: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class FacultyFailure(BaseModel):
    success: Literal[False] = False
    error: str
    metadata: dict[str, Any] = Field(default_factory=dict)


FacultyResult = Union[FacultySuccess, FacultyFailure]


def ok(data: dict[str, Any], **metadata: Any) -> FacultySuccess:
    return FacultySuccess(data=data, metadata=metadata)


def fail(error: str, **metadata: Any) -> FacultyFailure:
    return FacultyFailure(error=error, metadata=metadata)


def drop_none(**params: Any) -> dict[str, Any]:
    """Keyword arguments minus the ones that are None, for optional tool params."""
    return {key: value for key, value in params.items() if value is not None}


@dataclass
class FacultyContext:
    """What a faculty handler gets besides its request."""
    tools: ToolExecutor
    config: FacultyConfig = field(default_factory=FacultyConfig)
    user_id: Optional[str] = None
    session_key: Optional[str] = None

    async def call(self, tool_name: str, **params: Any):
        """Run a tool through the executor with a generated call id."""
        return await self.tools.execute(self.tools.next_call_id(tool_name), tool_name, params)


class IntentDetector(Protocol):
    """Decides whether a message belongs to one faculty."""

    faculty: FacultyName
    confidence: float
    reason: str

    def detect(self, text: str) -> bool: ...


class KeywordIntentDetector:
    """Case-insensitive substring match against a fixed keyword list."""

    def __init__(self, faculty: FacultyName, keywords: tuple[str, ...], confidence: float, reason: str):
        self.faculty = faculty
        self.keywords = keywords
        self.confidence = confidence
        self.reason = reason

    def detect(self, text: str) -> bool:
        lowered = text.lower()
        return any(keyword in lowered for keyword in self.keywords)

    def __repr__(self) -> str:
        return f"KeywordIntentDetector({self.faculty.value}, {len(self.keywords)} keywords)"
