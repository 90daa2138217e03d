"""
Tool Registry: the catalog of backends the faculties can call.

Every tool is registered with a JSON Schema for its parameters, a short
description, and a handler. Faculties never import a backend directly; they
ask the executor to run a tool by name, which keeps the backends swappable
(a simulated in-memory stand-in today, a real client later).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


def action_schema(actions: list[str], **properties: dict[str, Any]) -> dict[str, Any]:
    """JSON Schema for the action-dispatch tools: a required ``action`` plus extras."""
    return {
        "type": "object",
        "properties": {
            "action": {"type": "string", "enum": list(actions)},
            **properties,
        },
        "required": ["action"],
    }


@dataclass
class ToolDefinition:
    """A registered tool with its schema, description, and handler."""
    name: str
    description: str
    input_schema: dict[str, Any]          # JSON Schema for tool parameters
    handler: Optional[Callable] = None    # Sync or async; called with **params
    category: str = "general"             # "simulated", "learning", "proactive", ...
    enabled: bool = True                  # Can be disabled without removal
    simulated: bool = False               # Backend returns canned data
    timeout: Optional[float] = None       # Per-tool timeout in seconds (None = use default)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


class ToolRegistry:
    """Name-to-definition map with collision protection."""

    def __init__(self):
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition, *, allow_override: bool = False) -> None:
        """Register a tool, blocking accidental name collisions by default."""
        existing = self._tools.get(tool.name)
        if existing is not None and not allow_override:
            logger.warning(
                "tool_registry.name_collision",
                name=tool.name,
                existing_category=existing.category,
                new_category=tool.category,
            )
            raise ValueError(
                f"Tool '{tool.name}' is already registered. "
                "Use allow_override=True for an explicit replacement."
            )

        self._tools[tool.name] = tool
        logger.debug("tool_registry.registered", name=tool.name, category=tool.category)

    def unregister(self, name: str) -> bool:
        if name in self._tools:
            del self._tools[name]
            logger.info("tool_registry.unregistered", name=name)
            return True
        return False

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def list_tools(self, category: Optional[str] = None) -> list[dict[str, Any]]:
        """List registered tools with metadata, optionally for one category."""
        return [
            {
                "name": tool.name,
                "category": tool.category,
                "enabled": tool.enabled,
                "simulated": tool.simulated,
            }
            for tool in self._tools.values()
            if category is None or tool.category == category
        ]

    @property
    def count(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
