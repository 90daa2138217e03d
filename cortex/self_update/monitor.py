"""
Update Monitor: track improvement proposals through a gated pipeline.

A proposal starts as ``discovered`` and moves forward through analysis,
testing and approval until it is applied, rejected or fails:

    discovered -> analyzing -> testing -> awaiting_approval -> approved -> applied
                \\______________ rejected / failed (from any open state)

Stages may be skipped going forward, never revisited. ``approved`` is only
reachable from ``awaiting_approval`` and ``applied`` only from ``approved``.
Two policies can shortcut the tail of the pipeline:

    require_approval=False   awaiting_approval is promoted to approved
    auto_apply_low_risk=True an approved, low-risk proposal whose tests
                             passed is applied straight away
"""

from __future__ import annotations

import time
from typing import Optional, Protocol

import structlog

from cortex.config import SelfUpdateConfig, merge_config
from cortex.self_update.models import (
    LEVEL_RANK,
    PIPELINE_ORDER,
    ImpactLevel,
    SafetyCheck,
    SafetyReport,
    TestResults,
    UpdateCategory,
    UpdateProposal,
    UpdateStatus,
)

logger = structlog.get_logger(__name__)

RISKY_CATEGORIES = frozenset({UpdateCategory.SECURITY, UpdateCategory.FEATURE})
MIN_DESCRIPTION_LENGTH = 20


class ProposalStore(Protocol):
    def get(self, proposal_id: str) -> Optional[UpdateProposal]: ...
    def put(self, proposal: UpdateProposal) -> None: ...
    def values(self) -> list[UpdateProposal]: ...
    def clear(self) -> None: ...


class InMemoryProposalStore:
    def __init__(self) -> None:
        self._proposals: dict[str, UpdateProposal] = {}

    def get(self, proposal_id: str) -> Optional[UpdateProposal]:
        return self._proposals.get(proposal_id)

    def put(self, proposal: UpdateProposal) -> None:
        self._proposals[proposal.id] = proposal

    def values(self) -> list[UpdateProposal]:
        return list(self._proposals.values())

    def clear(self) -> None:
        self._proposals.clear()


def _coerce(enum_cls, value, field: str):
    """*value* as a member of *enum_cls*, or None (logged) when it is not one."""
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("self_update.invalid_value", field=field, value=value)
        return None


def is_valid_transition(current: UpdateStatus, target: UpdateStatus) -> bool:
    if current in (UpdateStatus.APPLIED, UpdateStatus.REJECTED, UpdateStatus.FAILED):
        return False
    if target in (UpdateStatus.REJECTED, UpdateStatus.FAILED):
        return True
    if target is UpdateStatus.APPROVED:
        return current is UpdateStatus.AWAITING_APPROVAL
    if target is UpdateStatus.APPLIED:
        return current is UpdateStatus.APPROVED
    return PIPELINE_ORDER.index(target) >= PIPELINE_ORDER.index(current)


class UpdateMonitor:
    """Owns every proposal and enforces the pipeline's transition rules."""

    def __init__(
        self,
        config: Optional[SelfUpdateConfig] = None,
        store: Optional[ProposalStore] = None,
    ):
        self._config = config or SelfUpdateConfig()
        self._store = store if store is not None else InMemoryProposalStore()

    @property
    def config(self) -> SelfUpdateConfig:
        return self._config

    def configure(self, **overrides) -> SelfUpdateConfig:
        self._config = merge_config(self._config, overrides)
        logger.info(
            "self_update.configured",
            enabled=self._config.enabled,
            require_approval=self._config.require_approval,
            auto_apply_low_risk=self._config.auto_apply_low_risk,
        )
        return self._config

    def count_pending(self) -> int:
        return sum(1 for p in self._store.values() if not p.is_terminal)

    def discover_update(
        self,
        title: str,
        description: str,
        category: UpdateCategory | str,
        source: str,
        impact: ImpactLevel | str = ImpactLevel.LOW,
        risk: ImpactLevel | str = ImpactLevel.LOW,
    ) -> Optional[UpdateProposal]:
        """
        Register a newly found improvement.

        Returns None when self-update is disabled, when *category*, *impact*
        or *risk* is not a known value, or when the number of open
        proposals has reached ``max_pending_proposals``.
        """
        if not self._config.enabled:
            return None
        category = _coerce(UpdateCategory, category, "category")
        impact = _coerce(ImpactLevel, impact, "impact")
        risk = _coerce(ImpactLevel, risk, "risk")
        if category is None or impact is None or risk is None:
            return None
        if self.count_pending() >= self._config.max_pending_proposals:
            logger.warning(
                "self_update.pending_limit",
                pending=self.count_pending(),
                limit=self._config.max_pending_proposals,
            )
            return None

        now = time.time()
        proposal = UpdateProposal(
            title=title,
            description=description,
            category=category,
            source=source,
            impact=impact,
            risk=risk,
            discovered_at=now,
            updated_at=now,
        )
        self._store.put(proposal)
        logger.info(
            "self_update.discovered",
            proposal_id=proposal.id,
            category=proposal.category.value,
            risk=proposal.risk.value,
        )
        return proposal.model_copy(deep=True)

    def get_proposal(self, proposal_id: str) -> Optional[UpdateProposal]:
        proposal = self._store.get(proposal_id)
        return proposal.model_copy(deep=True) if proposal is not None else None

    def list_proposals(
        self,
        status: Optional[UpdateStatus | str] = None,
        category: Optional[UpdateCategory | str] = None,
    ) -> list[UpdateProposal]:
        """Matching proposals, most recently updated first. Unknown filter values match nothing."""
        wanted_status = wanted_category = None
        if status is not None:
            wanted_status = _coerce(UpdateStatus, status, "status")
            if wanted_status is None:
                return []
        if category is not None:
            wanted_category = _coerce(UpdateCategory, category, "category")
            if wanted_category is None:
                return []
        matches = [
            p for p in self._store.values()
            if (wanted_status is None or p.status is wanted_status)
            and (wanted_category is None or p.category is wanted_category)
        ]
        matches.sort(key=lambda p: p.updated_at, reverse=True)
        return [p.model_copy(deep=True) for p in matches]

    def update_proposal_status(
        self,
        proposal_id: str,
        status: UpdateStatus | str,
        rejection_reason: Optional[str] = None,
        test_results: Optional[TestResults] = None,
    ) -> Optional[UpdateProposal]:
        """
        Move a proposal to *status*, then apply the approval policies.

        Returns None for an unknown id, an unknown status or a transition
        the pipeline does not allow; the stored proposal is left untouched
        in that case.
        """
        proposal = self._store.get(proposal_id)
        if proposal is None:
            return None

        target = _coerce(UpdateStatus, status, "status")
        if target is None:
            return None
        if not is_valid_transition(proposal.status, target):
            logger.warning(
                "self_update.invalid_transition",
                proposal_id=proposal_id,
                current=proposal.status.value,
                target=target.value,
            )
            return None

        updates: dict = {"status": target, "updated_at": time.time()}
        if rejection_reason:
            updates["rejection_reason"] = rejection_reason
        if test_results is not None:
            updates["test_results"] = test_results
        updated = self._apply_policies(proposal.model_copy(update=updates))

        self._store.put(updated)
        logger.info(
            "self_update.transition",
            proposal_id=proposal_id,
            previous=proposal.status.value,
            requested=target.value,
            status=updated.status.value,
        )
        return updated.model_copy(deep=True)

    def _apply_policies(self, proposal: UpdateProposal) -> UpdateProposal:
        if not self._config.require_approval and proposal.status is UpdateStatus.AWAITING_APPROVAL:
            proposal = proposal.model_copy(update={"status": UpdateStatus.APPROVED})
        if (
            self._config.auto_apply_low_risk
            and proposal.status is UpdateStatus.APPROVED
            and proposal.risk is ImpactLevel.LOW
            and proposal.test_results is not None
            and proposal.test_results.passed
        ):
            proposal = proposal.model_copy(update={"status": UpdateStatus.APPLIED})
        return proposal

    def approve_proposal(self, proposal_id: str) -> Optional[UpdateProposal]:
        """Approve a proposal; only valid while it is awaiting approval."""
        proposal = self._store.get(proposal_id)
        if proposal is None or proposal.status is not UpdateStatus.AWAITING_APPROVAL:
            return None
        return self.update_proposal_status(proposal_id, UpdateStatus.APPROVED)

    def reject_proposal(self, proposal_id: str, reason: str) -> Optional[UpdateProposal]:
        return self.update_proposal_status(proposal_id, UpdateStatus.REJECTED, rejection_reason=reason)

    def run_safety_check(self, proposal_id: str) -> Optional[SafetyReport]:
        proposal = self._store.get(proposal_id)
        if proposal is None:
            return None

        risky_category = proposal.category in RISKY_CATEGORIES
        tests_passed = proposal.test_results is not None and proposal.test_results.passed
        checks = [
            SafetyCheck(
                name="category_risk",
                passed=not risky_category,
                detail=(
                    f"Category '{proposal.category.value}' requires careful review"
                    if risky_category
                    else f"Category '{proposal.category.value}' is low risk"
                ),
            ),
            SafetyCheck(
                name="impact_risk_ratio",
                passed=LEVEL_RANK[proposal.impact] >= LEVEL_RANK[proposal.risk],
                detail=f"Impact ({proposal.impact.value}) vs risk ({proposal.risk.value})",
            ),
            SafetyCheck(
                name="test_verification",
                passed=tests_passed,
                detail="Tests passed" if tests_passed else "Tests have not passed yet",
            ),
            SafetyCheck(
                name="description_quality",
                passed=len(proposal.description) >= MIN_DESCRIPTION_LENGTH,
                detail=f"Description length: {len(proposal.description)} characters",
            ),
        ]

        if proposal.risk is ImpactLevel.HIGH or risky_category:
            risk_level = ImpactLevel.HIGH
        elif proposal.risk is ImpactLevel.MEDIUM:
            risk_level = ImpactLevel.MEDIUM
        else:
            risk_level = ImpactLevel.LOW

        report = SafetyReport(
            proposal_id=proposal_id,
            safe=all(c.passed for c in checks),
            risk_level=risk_level,
            checks=checks,
        )
        logger.debug(
            "self_update.safety_check",
            proposal_id=proposal_id,
            safe=report.safe,
            risk_level=risk_level.value,
        )
        return report

    def clear_all(self) -> None:
        self._store.clear()
