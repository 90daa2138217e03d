"""Shepherd faculty: code health checks, test runs and security review."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    ok,
)

SHEPHERD_KEYWORDS = (
    "code quality", "health check", "lint", "test coverage", "technical debt",
    "refactor", "improve code", "best practices", "code review", "static analysis",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.SHEPHERD, SHEPHERD_KEYWORDS, 0.7, "Related to code health monitoring",
)

# Each recent automated fix costs this many health points.
FIX_PENALTY = 10
HEALTHY_SCORE = 80


def detect_shepherd_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class ShepherdRequest(BaseModel):
    action: Literal["health_check", "suggest_improvements", "run_tests", "check_security"]
    repository: Optional[str] = None
    files: list[str] = []


def _issue(kind: str, severity: str, file: str, description: str, fix: str) -> dict[str, str]:
    return {
        "type": kind,
        "severity": severity,
        "file": file,
        "description": description,
        "suggested_fix": fix,
    }


async def shepherd_codebase(request: ShepherdRequest, ctx: FacultyContext) -> FacultyResult:
    if request.action == "health_check":
        listed = await ctx.call("swe_agent", action="list_fixes")
        recent_fixes = len(listed.data.get("fixes", []))
        health_score = max(0, 100 - recent_fixes * FIX_PENALTY)
        issues = [
            _issue("style", "low", "src/utils/helper.py", "Inconsistent indentation detected",
                   "Run the formatter"),
            _issue("performance", "medium", "src/data/processor.py",
                   "Inefficient loop detected in data processing", "Use a comprehension"),
        ]
        return ok(
            {
                "health_score": health_score,
                "issues": issues if health_score < HEALTHY_SCORE else [],
                "suggestions": [
                    "Consider adding more unit tests for edge cases",
                    "Update dependencies to latest stable versions",
                    "Add documentation for public APIs",
                ],
            },
            repository=request.repository or "unknown",
            checks_run=["style", "performance", "tests"],
        )

    if request.action == "suggest_improvements":
        return ok(
            {"suggestions": [
                "Extract repeated code into reusable functions",
                "Add error handling for async operations",
                "Implement caching for expensive computations",
                "Enable strict type checking",
                "Add integration tests for critical paths",
            ]},
            analysis_type="static_analysis",
        )

    if request.action == "run_tests":
        passed, failed = 42, 3
        return ok(
            {
                "test_results": {"passed": passed, "failed": failed, "coverage": "85.5%"},
                "issues": [
                    _issue("test", "high", "tests/test_integration.py", f"{failed} tests failing",
                           "Review failing test cases and fix implementation"),
                ] if failed else [],
                "health_score": 100 if failed == 0 else 70,
            },
            total_tests=passed + failed,
        )

    return ok(
        {
            "issues": [
                _issue("security", "high", "src/api/auth.py", "Potential SQL injection vulnerability",
                       "Use parameterized queries"),
            ],
            "health_score": 60,
            "suggestions": [
                "Enable Content Security Policy headers",
                "Implement rate limiting on API endpoints",
                "Rotate API keys regularly",
            ],
        },
        scan_type="security",
    )
