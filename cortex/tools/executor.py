"""
Tool Executor: the boundary between a faculty and a backend.

Faculties ask for a tool by name with a dict of parameters and always get a
ToolExecutionResult back. The executor enforces:

1. LOOKUP: unknown or disabled tools fail cleanly
2. VALIDATION: parameters are checked against the tool's JSON Schema
3. TIMEOUT: async handlers cannot hang the pipeline
4. ENVELOPE: a handler payload carrying an ``error`` key is a failure, and
   any exception becomes a failure with the exception text

Nothing raised by a handler escapes execute().
"""

from __future__ import annotations

import asyncio
import inspect
import time
import traceback
from typing import Any, Optional

import structlog

from cortex.tools.registry import ToolRegistry

logger = structlog.get_logger(__name__)


class ToolExecutionResult:
    """The outcome of one tool call, success or failure."""

    def __init__(
        self,
        call_id: str,
        tool_name: str,
        success: bool,
        result: Any = None,
        error: Optional[str] = None,
        execution_time: float = 0.0,
    ):
        self.call_id = call_id
        self.tool_name = tool_name
        self.success = success
        self.result = result
        self.error = error
        self.execution_time = execution_time

    @property
    def data(self) -> dict[str, Any]:
        """The payload as a dict (empty on failure or non-dict payloads)."""
        return self.result if self.success and isinstance(self.result, dict) else {}

    def __repr__(self) -> str:
        status = "ok" if self.success else f"error={self.error!r}"
        return f"ToolExecutionResult({self.tool_name}, {status})"


# JSON Schema type -> Python types (for lightweight validation)
_JSON_TYPE_MAP: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


def _validate_tool_input(
    schema: dict[str, Any],
    tool_input: dict[str, Any],
) -> Optional[str]:
    """
    Lightweight JSON Schema validation for tool inputs.

    Checks required fields, basic types and string enums. Returns an error
    message on failure, or None if the input is valid.
    """
    required = schema.get("required", [])
    properties = schema.get("properties", {})

    missing = [name for name in required if name not in tool_input]
    if missing:
        return f"Missing required parameter(s): {', '.join(missing)}"

    for name, value in tool_input.items():
        prop_schema = properties.get(name)
        if not prop_schema or not isinstance(prop_schema, dict):
            continue
        expected_type = prop_schema.get("type")
        py_types = _JSON_TYPE_MAP.get(expected_type) if expected_type else None
        if py_types is not None:
            # In Python bool is a subclass of int, but JSON booleans are distinct
            if isinstance(value, bool) and expected_type in ("integer", "number"):
                return f"Parameter '{name}' expected {expected_type}, got boolean"
            if not isinstance(value, py_types):
                return f"Parameter '{name}' expected {expected_type}, got {type(value).__name__}"
        allowed = prop_schema.get("enum")
        if allowed and value not in allowed:
            return f"Parameter '{name}' must be one of: {', '.join(map(str, allowed))}"

    return None


class ToolExecutor:
    """Executes registered tools with validation, timeouts and observability."""

    def __init__(self, registry: ToolRegistry, default_timeout: float = 30.0):
        self._registry = registry
        self._default_timeout = default_timeout
        self._call_counter = 0

        self._total_executions = 0
        self._total_successes = 0
        self._total_failures = 0

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def _fail(self, call_id: str, tool_name: str, error: str, elapsed: float = 0.0) -> ToolExecutionResult:
        self._total_failures += 1
        return ToolExecutionResult(
            call_id=call_id,
            tool_name=tool_name,
            success=False,
            error=error,
            execution_time=elapsed,
        )

    def next_call_id(self, prefix: str) -> str:
        self._call_counter += 1
        return f"{prefix}-{self._call_counter}"

    async def execute(
        self,
        call_id: str,
        tool_name: str,
        tool_input: dict[str, Any],
    ) -> ToolExecutionResult:
        """
        Run *tool_name* with *tool_input*.

        Args:
            call_id: Caller-chosen id for log correlation
            tool_name: Which tool to execute
            tool_input: Parameters, validated against the tool schema

        Returns:
            ToolExecutionResult with success/failure and payload
        """
        start_time = time.monotonic()
        self._total_executions += 1

        logger.debug(
            "tool_executor.executing",
            tool_name=tool_name,
            call_id=call_id,
            input_keys=list(tool_input.keys()),
        )

        tool_def = self._registry.get(tool_name)
        if not tool_def:
            return self._fail(call_id, tool_name, f"Unknown tool: {tool_name}")

        if not tool_def.enabled:
            return self._fail(call_id, tool_name, f"Tool '{tool_name}' is currently disabled.")

        handler = tool_def.handler
        if not handler:
            return self._fail(call_id, tool_name, f"No handler registered for tool: {tool_name}")

        validation_error = _validate_tool_input(tool_def.input_schema, tool_input)
        if validation_error:
            return self._fail(call_id, tool_name, validation_error)

        timeout = tool_def.timeout if tool_def.timeout is not None else self._default_timeout
        try:
            outcome = handler(**tool_input)
            if inspect.isawaitable(outcome):
                outcome = await asyncio.wait_for(outcome, timeout=timeout)
        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start_time
            logger.warning("tool_executor.timeout", tool_name=tool_name, timeout=timeout)
            return self._fail(call_id, tool_name, f"Tool execution timed out after {timeout}s", elapsed)
        except Exception as e:
            elapsed = time.monotonic() - start_time
            error_detail = f"{type(e).__name__}: {str(e)}"
            logger.error(
                "tool_executor.error",
                tool_name=tool_name,
                error=error_detail,
                traceback=traceback.format_exc(),
            )
            return self._fail(call_id, tool_name, error_detail, elapsed)

        elapsed = time.monotonic() - start_time
        if isinstance(outcome, dict) and outcome.get("error"):
            logger.info("tool_executor.rejected", tool_name=tool_name, error=outcome["error"])
            return self._fail(call_id, tool_name, str(outcome["error"]), elapsed)

        self._total_successes += 1
        logger.debug("tool_executor.success", tool_name=tool_name, elapsed=round(elapsed, 4))
        return ToolExecutionResult(
            call_id=call_id,
            tool_name=tool_name,
            success=True,
            result=outcome,
            execution_time=elapsed,
        )

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "total_executions": self._total_executions,
            "successes": self._total_successes,
            "failures": self._total_failures,
            "success_rate": (
                self._total_successes / max(1, self._total_executions)
            ),
        }
