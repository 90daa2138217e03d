"""
Faculty Router: pick at most one faculty per message and run it.

Detectors are consulted in a fixed precedence order and the first hit wins:

    self-healing > council > memory > senses > research > workflow
    > privacy > shepherd > simulator > autodidact > none

Any detector implementing IntentDetector can replace a keyword one without
touching the router. activate_faculty never raises: an unexpected exception
inside a handler is logged and returned as a FacultyFailure.
"""

from __future__ import annotations

import random
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from cortex.config import FacultyConfig
from cortex.faculties import (
    autodidact,
    council,
    memory,
    privacy,
    research,
    self_healing,
    senses,
    shepherd,
    simulator,
    workflow,
)
from cortex.faculties.types import (
    FacultyActivation,
    FacultyContext,
    FacultyName,
    FacultyResult,
    IntentDetector,
    fail,
)

logger = structlog.get_logger(__name__)

NO_FACULTY = FacultyActivation(
    faculty=FacultyName.NONE, confidence=0.0, reason="No specialized faculty needed",
)

DEFAULT_DETECTORS: tuple[IntentDetector, ...] = (
    self_healing.DETECTOR,
    council.DETECTOR,
    memory.DETECTOR,
    senses.DETECTOR,
    research.DETECTOR,
    workflow.DETECTOR,
    privacy.DETECTOR,
    shepherd.DETECTOR,
    simulator.DETECTOR,
    autodidact.DETECTOR,
)

Handler = Callable[[str, FacultyContext], Awaitable[FacultyResult]]


def _senses(text: str, ctx: FacultyContext) -> Awaitable[FacultyResult]:
    request = senses.infer_senses_request(text)
    if request is None:
        async def _undetermined() -> FacultyResult:
            return fail("Could not determine senses action")
        return _undetermined()
    return senses.perceive(request, ctx)


def default_handlers(rng: Optional[random.Random] = None) -> dict[FacultyName, Handler]:
    """Map each faculty to the request the router builds from raw text."""
    return {
        FacultyName.SELF_HEALING: lambda text, ctx: self_healing.heal_error(
            self_healing.SelfHealingRequest(error=text, auto_create_pr=False), ctx),
        FacultyName.COUNCIL: lambda text, ctx: council.convene_council(
            council.CouncilRequest(problem=text, process_type="sequential"), ctx),
        FacultyName.MEMORY: lambda text, ctx: memory.search_memory(
            memory.MemoryRequest(action="search", query=text, top_k=5,
                                 index_name=ctx.config.memory_index_name), ctx),
        FacultyName.SENSES: _senses,
        FacultyName.RESEARCH: lambda text, ctx: research.conduct_research(
            research.ResearchRequest(query=text, top_k=5, retriever_type="hybrid"), ctx),
        FacultyName.WORKFLOW: lambda text, ctx: workflow.automate_workflow(
            workflow.WorkflowRequest(action="get_templates"), ctx),
        FacultyName.PRIVACY: lambda text, ctx: privacy.protect_privacy(
            privacy.PrivacyRequest(text=text, redact=True, use_local_model=True), ctx),
        FacultyName.SHEPHERD: lambda text, ctx: shepherd.shepherd_codebase(
            shepherd.ShepherdRequest(action="health_check"), ctx),
        FacultyName.SIMULATOR: lambda text, ctx: simulator.run_simulation(
            simulator.SimulatorRequest(scenario=text, iterations=3), ctx, rng),
        FacultyName.AUTODIDACT: lambda text, ctx: autodidact.discover_capability(
            autodidact.AutodidactRequest(query=text, limit=5), ctx),
    }


class FacultyRouter:
    def __init__(
        self,
        detectors: Sequence[IntentDetector] = DEFAULT_DETECTORS,
        handlers: Optional[dict[FacultyName, Handler]] = None,
        config: Optional[FacultyConfig] = None,
    ):
        self._detectors = tuple(detectors)
        self._handlers = handlers if handlers is not None else default_handlers()
        self._config = config or FacultyConfig()

    def detect_faculty(self, text: str) -> FacultyActivation:
        """First detector in precedence order that claims *text*."""
        if not self._config.enabled:
            return NO_FACULTY.model_copy()
        for detector in self._detectors:
            if detector.detect(text):
                return FacultyActivation(
                    faculty=detector.faculty,
                    confidence=detector.confidence,
                    reason=detector.reason,
                )
        return NO_FACULTY.model_copy()

    def detected_intents(self, text: str) -> list[FacultyName]:
        """Every faculty whose detector fires, in precedence order."""
        return [d.faculty for d in self._detectors if d.detect(text)]

    async def activate_faculty(
        self,
        activation: FacultyActivation,
        text: str,
        ctx: FacultyContext,
    ) -> Optional[FacultyResult]:
        """Run the selected faculty; None when nothing was selected."""
        if activation.faculty is FacultyName.NONE:
            return None

        handler = self._handlers.get(activation.faculty)
        if handler is None:
            return fail(f"Unknown faculty: {activation.faculty.value}")

        try:
            result = await handler(text, ctx)
        except Exception as e:
            logger.error(
                "router.faculty_error",
                faculty=activation.faculty.value,
                error=f"{type(e).__name__}: {e}",
            )
            return fail(str(e) or type(e).__name__, faculty=activation.faculty.value)

        logger.info(
            "router.activated",
            faculty=activation.faculty.value,
            success=result.success,
        )
        return result

    async def route(self, text: str, ctx: FacultyContext) -> tuple[FacultyActivation, Optional[FacultyResult]]:
        activation = self.detect_faculty(text)
        return activation, await self.activate_faculty(activation, text, ctx)
