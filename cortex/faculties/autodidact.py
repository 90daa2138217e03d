"""Autodidact faculty: discover public APIs and explain how to wire them in."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    fail,
    ok,
)

AUTODIDACT_KEYWORDS = (
    "find api", "discover", "learn how", "integrate", "new capability",
    "available apis", "what apis", "how can i", "is there an api", "find service",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.AUTODIDACT, AUTODIDACT_KEYWORDS, 0.7, "Seeking new capabilities or API discovery",
)

MAX_EXAMPLES = 2


def detect_autodidact_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class AutodidactRequest(BaseModel):
    query: str
    category: Optional[str] = None
    limit: int = 5


def setup_steps(api: dict[str, Any]) -> list[str]:
    name = api.get("name", "API")
    auth = api.get("auth", "No")
    steps = [f"Visit the {name} documentation at {api.get('url', '')}"]
    if auth != "No":
        steps.append(f"Register for an API key (auth type: {auth})")
        steps.append("Store API key securely in environment variables")
    steps += [
        "Install an HTTP client library",
        f"Make a test request to {name} endpoint",
        "Parse and validate the response",
        "Integrate into your application logic",
    ]
    return steps


def integration_example(api: dict[str, Any]) -> str:
    headers = ', headers={"Authorization": "Bearer YOUR_API_KEY"}' if api.get("auth", "No") != "No" else ""
    return (
        f"# Example: Using {api.get('name', 'API')}\n"
        f'response = client.get("{api.get("url", "")}/endpoint"{headers})\n'
        "data = response.json()"
    )


async def discover_capability(request: AutodidactRequest, ctx: FacultyContext) -> FacultyResult:
    if request.category:
        found = await ctx.call("public_apis", action="by_category", category=request.category,
                               limit=request.limit)
    else:
        found = await ctx.call("public_apis", action="search", query=request.query, limit=request.limit)
    if not found.success:
        return fail(found.error or "Failed to search APIs")

    apis = found.data.get("apis", [])
    if not apis:
        return ok({"apis": []}, query=request.query, results_found=0)

    return ok(
        {
            "apis": apis,
            "setup_instructions": [{"api": api.get("name", ""), "steps": setup_steps(api)} for api in apis],
            "examples": [integration_example(api) for api in apis[:MAX_EXAMPLES]],
        },
        query=request.query,
        results_found=len(apis),
    )
