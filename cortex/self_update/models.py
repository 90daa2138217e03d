"""Self-update proposal models."""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UpdateStatus(str, Enum):
    DISCOVERED = "discovered"
    ANALYZING = "analyzing"
    TESTING = "testing"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPLIED = "applied"
    FAILED = "failed"


class UpdateCategory(str, Enum):
    MODEL = "model"
    PERFORMANCE = "performance"
    SECURITY = "security"
    FEATURE = "feature"
    BUGFIX = "bugfix"
    DEPENDENCY = "dependency"


class ImpactLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


TERMINAL_STATUSES = frozenset({UpdateStatus.APPLIED, UpdateStatus.REJECTED, UpdateStatus.FAILED})

# Forward order of the happy path; a proposal may skip ahead but never go back.
PIPELINE_ORDER: tuple[UpdateStatus, ...] = (
    UpdateStatus.DISCOVERED,
    UpdateStatus.ANALYZING,
    UpdateStatus.TESTING,
    UpdateStatus.AWAITING_APPROVAL,
    UpdateStatus.APPROVED,
    UpdateStatus.APPLIED,
)

LEVEL_RANK: dict[ImpactLevel, int] = {
    ImpactLevel.LOW: 1,
    ImpactLevel.MEDIUM: 2,
    ImpactLevel.HIGH: 3,
}


class TestResults(BaseModel):
    __test__ = False  # keep pytest from collecting this model

    passed: bool
    details: str = ""
    run_at: float = Field(default_factory=time.time)


class UpdateProposal(BaseModel):
    id: str = Field(default_factory=lambda: f"update-{uuid.uuid4().hex[:12]}")
    title: str
    description: str = ""
    category: UpdateCategory
    source: str = "unknown"
    status: UpdateStatus = UpdateStatus.DISCOVERED
    impact: ImpactLevel = ImpactLevel.LOW
    risk: ImpactLevel = ImpactLevel.LOW
    discovered_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)
    test_results: Optional[TestResults] = None
    rejection_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class SafetyCheck(BaseModel):
    name: str
    passed: bool
    detail: str = ""


class SafetyReport(BaseModel):
    proposal_id: str
    safe: bool
    risk_level: ImpactLevel
    checks: list[SafetyCheck] = Field(default_factory=list)
