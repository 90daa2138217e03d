"""
Council faculty: decompose a problem across several cooperating agents.

Software projects (an explicit tech stack, or a problem phrased as build /
create / develop / implement) go through a MetaGPT-style SOP that produces a
PRD, an architecture and code. Everything else convenes a CrewAI-style crew
with one agent per role and a single shared task.
"""

from __future__ import annotations

import re
import time
from typing import Literal, Optional

import structlog
from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    drop_none,
    fail,
    ok,
)

logger = structlog.get_logger(__name__)

COUNCIL_KEYWORDS = (
    "plan", "strategy", "design", "multi-step", "complex", "coordinate",
    "team", "collaborate", "research and", "analyze and",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.COUNCIL, COUNCIL_KEYWORDS, 0.8, "Requires complex multi-agent reasoning",
)

DEFAULT_ROLES = ("researcher", "analyst", "reviewer")

_SOFTWARE_RE = re.compile(r"build|create|develop|implement")


def detect_council_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class CouncilRequest(BaseModel):
    problem: str
    roles: Optional[list[str]] = None
    process_type: Literal["sequential", "hierarchical"] = "sequential"
    tech_stack: Optional[str] = None


def is_software_project(request: CouncilRequest) -> bool:
    return bool(request.tech_stack) or bool(_SOFTWARE_RE.search(request.problem.lower()))


async def convene_council(request: CouncilRequest, ctx: FacultyContext) -> FacultyResult:
    if is_software_project(request):
        return await _software_project(request, ctx)
    return await _general_reasoning(request, ctx)


async def _software_project(request: CouncilRequest, ctx: FacultyContext) -> FacultyResult:
    created = await ctx.call(
        "metagpt",
        action="create_project",
        project_name=f"Council_{int(time.time() * 1000)}",
        requirements=request.problem,
        sop_type="waterfall" if request.process_type == "hierarchical" else "agile",
        **drop_none(tech_stack=request.tech_stack),
    )
    if not created.success:
        return fail(created.error or "Failed to create project")

    project_id = created.data["project_id"]
    prd = await ctx.call("metagpt", action="generate_prd", project_id=project_id)
    arch = await ctx.call("metagpt", action="design_architecture", project_id=project_id)
    code = await ctx.call("metagpt", action="write_code", project_id=project_id)

    return ok(
        {
            "crew_id": project_id,
            "artifacts": {
                "prd": prd.data.get("prd"),
                "architecture": arch.data.get("architecture"),
                "code": code.data.get("code"),
            },
        },
        project_type="software",
        sop=request.process_type,
    )


async def _general_reasoning(request: CouncilRequest, ctx: FacultyContext) -> FacultyResult:
    crew = await ctx.call(
        "crewai",
        action="create_crew",
        name=f"Council_{int(time.time() * 1000)}",
        process_type=request.process_type,
    )
    if not crew.success:
        return fail(crew.error or "Failed to create crew")

    crew_id = crew.data["crew_id"]
    agent_ids: list[str] = []
    for role in request.roles or DEFAULT_ROLES:
        agent = await ctx.call(
            "crewai",
            action="create_agent",
            crew_id=crew_id,
            name=f"{role}_agent",
            role=role,
            goal=f"Contribute to solving: {request.problem}",
            backstory=f"Expert {role} with deep domain knowledge",
        )
        if agent.success:
            agent_ids.append(agent.data["agent_id"])

    task = await ctx.call(
        "crewai",
        action="create_task",
        crew_id=crew_id,
        description=request.problem,
        **drop_none(agent_id=agent_ids[0] if agent_ids else None),
    )
    if not task.success:
        return fail(task.error or "Failed to create task", crew_id=crew_id)

    run = await ctx.call("crewai", action="execute_crew", crew_id=crew_id)
    if not run.success:
        return fail(run.error or "Crew execution failed", crew_id=crew_id)

    logger.info("council.deliberated", crew_id=crew_id, agents=len(agent_ids))
    return ok(
        {
            "crew_id": crew_id,
            "agent_ids": agent_ids,
            "tasks": run.data.get("tasks", []),
            "execution_results": run.data.get("result"),
        },
        project_type="general",
        process=request.process_type,
    )
