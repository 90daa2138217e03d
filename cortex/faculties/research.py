"""Research faculty: run a retrieval pipeline over a query and summarise it."""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, Field

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    fail,
    ok,
)

RESEARCH_KEYWORDS = (
    "research", "investigate", "study", "analyze", "survey", "review",
    "literature", "find information", "learn about", "what are the",
    "compare", "gather data",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.RESEARCH, RESEARCH_KEYWORDS, 0.75, "Requires deep research or information gathering",
)

SUMMARY_FINDINGS = 3
SUMMARY_SNIPPET_CHARS = 150


def detect_research_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class ResearchRequest(BaseModel):
    query: str
    top_k: int = 5
    retriever_type: Literal["bm25", "embedding", "hybrid"] = "hybrid"
    documents: list[dict[str, Any]] = Field(default_factory=list)


def summarize_findings(query: str, results: list[dict[str, Any]]) -> str:
    if not results:
        return f'No findings for query: "{query}"'
    top = "\n".join(
        f"{i}. {r.get('content', '')[:SUMMARY_SNIPPET_CHARS]}..."
        for i, r in enumerate(results[:SUMMARY_FINDINGS], start=1)
    )
    return (
        f'Research Summary for "{query}":\n\nTop Findings:\n{top}\n\n'
        f"Total sources analyzed: {len(results)}"
    )


async def conduct_research(request: ResearchRequest, ctx: FacultyContext) -> FacultyResult:
    pipeline = await ctx.call(
        "haystack",
        action="create_pipeline",
        pipeline_name=f"Research_{int(time.time() * 1000)}",
        retriever_type=request.retriever_type,
    )
    if not pipeline.success:
        return fail(pipeline.error or "Failed to create research pipeline")
    pipeline_id = pipeline.data["pipeline_id"]

    if request.documents:
        added = await ctx.call(
            "haystack", action="add_documents", pipeline_id=pipeline_id, documents=request.documents,
        )
        if not added.success:
            return fail("Failed to add documents to pipeline")

    queried = await ctx.call(
        "haystack", action="query", pipeline_id=pipeline_id, query=request.query, top_k=request.top_k,
    )
    if not queried.success:
        return fail(queried.error or "Research query failed")

    results = queried.data.get("results", [])
    return ok(
        {
            "pipeline_id": pipeline_id,
            "findings": [
                {
                    "content": r.get("content", ""),
                    "score": r.get("score", 0),
                    "source": (r.get("meta") or {}).get("source", "unknown"),
                }
                for r in results
            ],
            "summary": summarize_findings(request.query, results),
            "document_count": len(results),
        },
        query=request.query,
        retriever_type=request.retriever_type,
    )
