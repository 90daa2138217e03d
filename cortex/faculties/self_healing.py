"""Self-Healing faculty: analyze an error, patch it, verify the patch."""

from __future__ import annotations

from typing import Optional

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

ERROR_KEYWORDS = (
    "error", "exception", "crash", "bug", "fix", "broken", "failing",
    "stack trace", "traceback", "undefined", "null pointer", "segfault",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.SELF_HEALING, ERROR_KEYWORDS, 0.9, "Detected error or debugging request",
)


def detect_error_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class SelfHealingRequest(BaseModel):
    error: str
    repository: Optional[str] = None
    issue_url: Optional[str] = None
    auto_create_pr: bool = False


async def heal_error(request: SelfHealingRequest, ctx: FacultyContext) -> FacultyResult:
    analysis_result = await ctx.call(
        "swe_agent",
        action="analyze_issue",
        description=request.error,
        **drop_none(issue_url=request.issue_url, repository=request.repository),
    )
    if not analysis_result.success:
        return fail(analysis_result.error or "Failed to analyze issue")

    raw = analysis_result.data.get("analysis", {})
    analysis = {
        "root_cause": raw.get("root_cause", "Unknown"),
        "complexity": raw.get("complexity", "Unknown"),
        "confidence": raw.get("confidence", 0.0),
    }

    fix_result = await ctx.call(
        "swe_agent",
        action="fix_issue",
        description=request.error,
        auto_create_pr=request.auto_create_pr,
        **drop_none(repository=request.repository),
    )
    if not fix_result.success:
        return fail(fix_result.error or "Failed to fix issue", analysis=analysis)

    fix = fix_result.data
    test_result = await ctx.call("swe_agent", action="run_tests", fix_id=fix["fix_id"])
    tests_pass = test_result.success and test_result.data.get("tests_pass") is True

    pr_url = None
    if request.auto_create_pr and tests_pass:
        pr_result = await ctx.call("swe_agent", action="create_pr", fix_id=fix["fix_id"])
        if pr_result.success:
            pr_url = pr_result.data.get("pr_url")

    logger.info("self_healing.completed", fix_id=fix["fix_id"], tests_pass=tests_pass)
    return ok(
        {
            "fix_id": fix["fix_id"],
            "patch": fix.get("patch"),
            "files_modified": fix.get("files_modified", []),
            "tests_pass": tests_pass,
            "pr_url": pr_url,
            "analysis": analysis,
        },
        analysis_duration="simulated",
        fix_duration="simulated",
    )
