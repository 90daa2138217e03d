from __future__ import annotations

import asyncio

import pytest

from cortex.tools.executor import ToolExecutionResult, ToolExecutor
from cortex.tools.registry import ToolDefinition, ToolRegistry


def _make_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="echo",
            description="sync echo",
            input_schema={
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "count": {"type": "integer"},
                    "mode": {"type": "string", "enum": ["loud", "quiet"]},
                },
                "required": ["text"],
            },
            handler=lambda text="", count=1, mode="quiet": {"echo": text * count, "mode": mode},
            category="test",
        )
    )

    async def _async_echo(text=""):
        return {"echo": text}

    registry.register(
        ToolDefinition(
            name="async_echo",
            description="async echo",
            input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
            handler=_async_echo,
            category="test",
        )
    )
    return registry


@pytest.mark.asyncio
async def test_sync_handler_runs_inline() -> None:
    executor = ToolExecutor(registry=_make_registry())

    result = await executor.execute("call_1", "echo", {"text": "ab", "count": 2})

    assert result.success is True
    assert result.data == {"echo": "abab", "mode": "quiet"}
    assert result.call_id == "call_1"


@pytest.mark.asyncio
async def test_async_handler_awaited() -> None:
    executor = ToolExecutor(registry=_make_registry())

    result = await executor.execute("call_2", "async_echo", {"text": "hi"})

    assert result.success is True
    assert result.data == {"echo": "hi"}


@pytest.mark.asyncio
async def test_unknown_tool() -> None:
    executor = ToolExecutor(registry=_make_registry())

    result = await executor.execute("call_3", "nope", {})

    assert result.success is False
    assert result.error == "Unknown tool: nope"
    assert result.data == {}


@pytest.mark.asyncio
async def test_disabled_tool() -> None:
    registry = _make_registry()
    registry.get("echo").enabled = False
    executor = ToolExecutor(registry=registry)

    result = await executor.execute("call_4", "echo", {"text": "x"})

    assert result.success is False
    assert "disabled" in (result.error or "")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params,message",
    [
        ({}, "Missing required parameter(s): text"),
        ({"text": 5}, "Parameter 'text' expected string, got int"),
        ({"text": "x", "count": True}, "Parameter 'count' expected integer, got boolean"),
        ({"text": "x", "mode": "shout"}, "Parameter 'mode' must be one of: loud, quiet"),
    ],
)
async def test_validation_errors(params, message) -> None:
    executor = ToolExecutor(registry=_make_registry())

    result = await executor.execute("call_5", "echo", params)

    assert result.success is False
    assert result.error == message


@pytest.mark.asyncio
async def test_error_payload_is_a_failure() -> None:
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="grumpy",
            description="always refuses",
            input_schema={"type": "object", "properties": {}},
            handler=lambda: {"error": "no thanks"},
        )
    )
    executor = ToolExecutor(registry=registry)

    result = await executor.execute("call_6", "grumpy", {})

    assert result.success is False
    assert result.error == "no thanks"
    assert executor.stats["failures"] == 1


@pytest.mark.asyncio
async def test_handler_exception_is_captured() -> None:
    def _explode():
        raise KeyError("missing")

    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="explode",
            description="raises",
            input_schema={"type": "object", "properties": {}},
            handler=_explode,
        )
    )
    executor = ToolExecutor(registry=registry)

    result = await executor.execute("call_7", "explode", {})

    assert result.success is False
    assert result.error == "KeyError: 'missing'"


@pytest.mark.asyncio
async def test_async_timeout() -> None:
    async def _slow():
        await asyncio.sleep(1.0)
        return {"done": True}

    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="slow",
            description="slow async tool",
            input_schema={"type": "object", "properties": {}},
            handler=_slow,
            timeout=0.05,
        )
    )
    executor = ToolExecutor(registry=registry, default_timeout=10.0)

    result = await executor.execute("call_8", "slow", {})

    assert result.success is False
    assert "timed out after 0.05s" in (result.error or "")


@pytest.mark.asyncio
async def test_stats_and_call_ids() -> None:
    executor = ToolExecutor(registry=_make_registry())
    assert executor.next_call_id("echo") == "echo-1"
    assert executor.next_call_id("echo") == "echo-2"

    await executor.execute("a", "echo", {"text": "x"})
    await executor.execute("b", "nope", {})

    assert executor.stats == {
        "total_executions": 2,
        "successes": 1,
        "failures": 1,
        "success_rate": 0.5,
    }


def test_data_is_empty_for_non_dict_payloads() -> None:
    result = ToolExecutionResult("c", "t", success=True, result="plain text")
    assert result.data == {}
    assert "ok" in repr(result)


@pytest.mark.asyncio
async def test_simulated_unknown_action(executor) -> None:
    result = await executor.execute("call_9", "whisper", {"action": "translate"})

    assert result.success is False
    assert "must be one of" in (result.error or "")
