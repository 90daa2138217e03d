"""
Tests for cortex.integration: the reply-pipeline hooks.
"""

from __future__ import annotations

import pytest

from cortex.integration import (
    HINTS_HEADER,
    TONE_GUIDANCE,
    VERBOSITY_GUIDANCE,
    apply_response_hints,
    integrate_message,
)
from cortex.orchestrator import ResponseHints


class _BrokenOrchestrator:
    async def process_message(self, text, request):
        raise RuntimeError("store unavailable")


class TestIntegrateMessage:
    @pytest.mark.asyncio
    async def test_empathetic_reply(self, orchestrator):
        integration = await integrate_message(
            orchestrator, "I'm feeling really down and worried about everything", "s1", user_id="u1",
        )
        assert integration is not None
        assert integration.should_be_empathetic is True
        assert integration.should_be_detailed is False
        assert integration.response_hints is integration.result.response_hints

    @pytest.mark.asyncio
    async def test_anonymous_user(self, orchestrator):
        integration = await integrate_message(orchestrator, "hello", "s1", channel="web")
        assert integration.result.interaction.user_id == "unknown"
        assert integration.result.interaction.channel == "web"

    @pytest.mark.asyncio
    async def test_failure_returns_none(self):
        assert await integrate_message(_BrokenOrchestrator(), "hello", "s1") is None

    @pytest.mark.asyncio
    async def test_detailed_for_long_winded_users(self, orchestrator):
        integration = await integrate_message(orchestrator, "word " * 60, "s1", user_id="u1")
        assert integration.should_be_detailed is True


class TestApplyResponseHints:
    def test_no_guidance_leaves_prompt(self):
        assert apply_response_hints("You are helpful.", ResponseHints()) == "You are helpful."

    def test_full_guidance(self):
        hints = ResponseHints(tone="empathetic", verbosity="concise", relevant_topics=["ai", "rust"])
        prompt = apply_response_hints("You are helpful.", hints)
        assert prompt == (
            "You are helpful.\n\n"
            f"{HINTS_HEADER}\n"
            f"{TONE_GUIDANCE['empathetic']}\n"
            f"{VERBOSITY_GUIDANCE['concise']}\n"
            "When relevant, emphasize these topics: ai, rust.\n"
        )

    def test_moderate_verbosity_adds_nothing(self):
        prompt = apply_response_hints("base", ResponseHints(tone="calming", verbosity="moderate"))
        assert prompt == f"base\n\n{HINTS_HEADER}\n{TONE_GUIDANCE['calming']}\n"

    def test_topics_only(self):
        prompt = apply_response_hints("base", ResponseHints(relevant_topics=["python"]))
        assert prompt.endswith("When relevant, emphasize these topics: python.\n")
