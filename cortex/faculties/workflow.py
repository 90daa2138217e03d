"""Workflow faculty: automation templates and workflow lifecycle."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    fail,
    ok,
)

WORKFLOW_KEYWORDS = (
    "automate", "workflow", "schedule", "recurring", "integration", "connect",
    "trigger when", "every day", "every hour", "webhook", "api integration",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.WORKFLOW, WORKFLOW_KEYWORDS, 0.75, "Involves automation or workflow creation",
)


def detect_workflow_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class WorkflowRequest(BaseModel):
    action: Literal["create", "list", "execute", "activate", "get_templates"]
    description: Optional[str] = None
    workflow_id: Optional[str] = None
    workflow_json: Optional[dict[str, Any]] = None


def default_workflow(description: str) -> dict[str, Any]:
    """Webhook trigger feeding a single processing step."""
    return {
        "name": description,
        "nodes": [
            {"type": "n8n-nodes-base.webhook", "name": "Webhook", "position": [250, 300]},
            {"type": "n8n-nodes-base.code", "name": "Process", "position": [450, 300]},
        ],
        "connections": {},
    }


async def automate_workflow(request: WorkflowRequest, ctx: FacultyContext) -> FacultyResult:
    if request.action == "get_templates":
        result = await ctx.call("n8n", action="get_templates")
        if not result.success:
            return fail(result.error or "Failed to fetch templates")
        return ok({"templates": result.data.get("templates", [])})

    if request.action == "create":
        if not request.workflow_json and not request.description:
            return fail("workflowJson or description is required to create a workflow")
        definition = request.workflow_json or default_workflow(request.description or "Automated Workflow")
        result = await ctx.call("n8n", action="create_workflow", workflow_json=definition)
        if not result.success:
            return fail(result.error or "Failed to create workflow")
        return ok({"workflow_id": result.data.get("id")}, description=request.description)

    if request.action == "list":
        result = await ctx.call("n8n", action="list_workflows", limit=50)
        if not result.success:
            return fail(result.error or "Failed to list workflows")
        return ok({"workflows": result.data.get("data", [])})

    if not request.workflow_id:
        return fail(f"workflowId is required to {request.action} a workflow")
    tool_action = "execute_workflow" if request.action == "execute" else "activate_workflow"
    result = await ctx.call("n8n", action=tool_action, workflow_id=request.workflow_id)
    if not result.success:
        return fail(result.error or f"Failed to {request.action} workflow")
    return ok({"workflow_id": request.workflow_id, "execution_result": result.data})
