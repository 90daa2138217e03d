"""Memory faculty: index documents and search them."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    fail,
    ok,
)

MEMORY_KEYWORDS = (
    "search code", "search for", "find in", "look up", "retrieve", "remember",
    "what does", "where is", "show me", "documentation for", "examples of",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.MEMORY, MEMORY_KEYWORDS, 0.8, "Requires code search or knowledge retrieval",
)


def detect_memory_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class MemoryDocument(BaseModel):
    text: Optional[str] = None
    path: Optional[str] = None


class MemoryRequest(BaseModel):
    action: Literal["index", "search", "stats"]
    index_name: Optional[str] = None
    documents: list[MemoryDocument] = Field(default_factory=list)
    query: Optional[str] = None
    top_k: int = 5


async def _find_index(ctx: FacultyContext, index_name: str) -> Optional[dict[str, Any]]:
    listed = await ctx.call("llamaindex", action="list_indexes")
    for index in listed.data.get("indexes", []):
        if index["name"] == index_name:
            return index
    return None


async def search_memory(request: MemoryRequest, ctx: FacultyContext) -> FacultyResult:
    if request.action == "index":
        return await _index(request, ctx)
    if request.action == "stats":
        return await _stats(request, ctx)

    if not request.query or not request.index_name:
        return fail("query and indexName are required for search")

    index = await _find_index(ctx, request.index_name)
    if index is None:
        return fail(f"Index not found: {request.index_name}")

    found = await ctx.call(
        "llamaindex",
        action="query",
        index_id=index["index_id"],
        query=request.query,
        top_k=request.top_k,
    )
    if not found.success:
        return fail(found.error or "Search failed")

    return ok(
        {"index_id": index["index_id"], "results": found.data.get("results", [])},
        index_name=request.index_name,
        top_k=request.top_k,
    )


async def _index(request: MemoryRequest, ctx: FacultyContext) -> FacultyResult:
    name = request.index_name or "default"
    existing = await _find_index(ctx, name)
    if existing is None:
        created = await ctx.call("llamaindex", action="create_index", index_name=name)
        if not created.success:
            return fail(created.error or "Failed to create index")
        index_id = created.data["index_id"]
    else:
        index_id = existing["index_id"]

    document_ids = []
    for doc in request.documents:
        params = {k: v for k, v in (("document_text", doc.text), ("document_path", doc.path)) if v}
        ingested = await ctx.call("llamaindex", action="ingest_document", index_id=index_id, **params)
        if ingested.success:
            document_ids.append(ingested.data["document_id"])

    return ok(
        {"index_id": index_id, "document_ids": document_ids},
        index_name=name,
        document_count=len(document_ids),
    )


async def _stats(request: MemoryRequest, ctx: FacultyContext) -> FacultyResult:
    if not request.index_name:
        return fail("indexName is required for stats")
    index = await _find_index(ctx, request.index_name)
    if index is None:
        return fail(f"Index not found: {request.index_name}")
    return ok({"index_id": index["index_id"], "stats": {"document_count": index["document_count"]}})
