"""
Tests for cortex.faculties.router: precedence, activation and failure handling.
"""

from __future__ import annotations

import random

import pytest

from cortex.config import FacultyConfig
from cortex.faculties.router import FacultyRouter, default_handlers
from cortex.faculties.types import FacultyActivation, FacultyName, ok


class _AlwaysDetector:
    """Claims every message for one faculty."""

    def __init__(self, faculty: FacultyName):
        self.faculty = faculty
        self.confidence = 0.5
        self.reason = "always"

    def detect(self, text: str) -> bool:
        return True


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetectFaculty:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Fix the null pointer error in validator.ts", FacultyName.SELF_HEALING),
            ("Design a multi-step plan to refactor the authentication system", FacultyName.COUNCIL),
            ("Search for all API endpoint definitions", FacultyName.MEMORY),
            ("Transcribe meeting.mp3 for me", FacultyName.SENSES),
            ("Research the history of Unix", FacultyName.RESEARCH),
            ("Research the latest trends in LLM architecture", FacultyName.RESEARCH),
            ("Automate the export every day", FacultyName.WORKFLOW),
            ("My email is john@example.com and phone is 555-1234", FacultyName.PRIVACY),
            ("Run a lint pass over the repo", FacultyName.SHEPHERD),
            ("What if traffic doubles overnight", FacultyName.SIMULATOR),
            ("Is there an API for currency rates", FacultyName.AUTODIDACT),
        ],
    )
    def test_routes(self, text, expected):
        assert FacultyRouter().detect_faculty(text).faculty is expected

    def test_activation_carries_detector_metadata(self):
        activation = FacultyRouter().detect_faculty("Fix the crash")
        assert activation.confidence == 0.9
        assert activation.reason == "Detected error or debugging request"

    def test_nothing_matches(self):
        activation = FacultyRouter().detect_faculty("What's the weather today?")
        assert activation.faculty is FacultyName.NONE
        assert activation.confidence == 0.0
        assert activation.reason == "No specialized faculty needed"

    def test_precedence(self):
        router = FacultyRouter()
        text = "Fix this bug and plan the rollout"
        assert router.detected_intents(text)[:2] == [FacultyName.SELF_HEALING, FacultyName.COUNCIL]
        assert router.detect_faculty(text).faculty is FacultyName.SELF_HEALING

    def test_disabled(self):
        router = FacultyRouter(config=FacultyConfig(enabled=False))
        assert router.detect_faculty("Fix the crash").faculty is FacultyName.NONE

    def test_custom_detectors(self):
        router = FacultyRouter(detectors=[_AlwaysDetector(FacultyName.SHEPHERD)])
        activation = router.detect_faculty("anything at all")
        assert activation.faculty is FacultyName.SHEPHERD
        assert activation.reason == "always"


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

class TestActivateFaculty:
    @pytest.mark.asyncio
    async def test_none_returns_no_result(self, faculty_ctx):
        activation, result = await FacultyRouter().route("hello there", faculty_ctx)
        assert activation.faculty is FacultyName.NONE
        assert result is None

    @pytest.mark.asyncio
    async def test_self_healing_end_to_end(self, faculty_ctx):
        activation, result = await FacultyRouter().route(
            "Fix the null pointer error in validator.ts", faculty_ctx,
        )
        assert activation.faculty is FacultyName.SELF_HEALING
        assert result.success is True
        assert result.data["files_modified"] == ["validator.ts"]
        assert result.data["pr_url"] is None

    @pytest.mark.asyncio
    async def test_memory_uses_configured_index(self, faculty_ctx):
        _, result = await FacultyRouter().route("Search for all API endpoint definitions", faculty_ctx)
        assert result.success is True
        assert result.metadata["index_name"] == "default"

    @pytest.mark.asyncio
    async def test_privacy_redacts(self, faculty_ctx):
        _, result = await FacultyRouter().route(
            "My email is john@example.com and phone is 555-1234", faculty_ctx,
        )
        assert result.data["has_pii"] is True
        assert "john@example.com" not in result.data["redacted_text"]
        assert result.data["recommended_model"] == faculty_ctx.config.local_model

    @pytest.mark.asyncio
    async def test_undetermined_senses_action(self, faculty_ctx):
        activation, result = await FacultyRouter().route("Play this video", faculty_ctx)
        assert activation.faculty is FacultyName.SENSES
        assert result.success is False
        assert result.error == "Could not determine senses action"

    @pytest.mark.asyncio
    async def test_seeded_simulator(self, faculty_ctx):
        first = FacultyRouter(handlers=default_handlers(random.Random(3)))
        second = FacultyRouter(handlers=default_handlers(random.Random(3)))
        _, a = await first.route("What if we add a second region", faculty_ctx)
        _, b = await second.route("What if we add a second region", faculty_ctx)
        assert a.data["outcomes"] == b.data["outcomes"]
        assert a.data["insights"][0].startswith("Average success rate")

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_failure(self, faculty_ctx):
        async def _boom(text, ctx):
            raise RuntimeError("backend exploded")

        router = FacultyRouter(handlers={FacultyName.SHEPHERD: _boom})
        activation = FacultyActivation(faculty=FacultyName.SHEPHERD, confidence=0.7)
        result = await router.activate_faculty(activation, "lint", faculty_ctx)
        assert result.success is False
        assert result.error == "backend exploded"
        assert result.metadata["faculty"] == "shepherd"

    @pytest.mark.asyncio
    async def test_missing_handler(self, faculty_ctx):
        router = FacultyRouter(handlers={})
        activation = FacultyActivation(faculty=FacultyName.COUNCIL, confidence=0.8)
        result = await router.activate_faculty(activation, "plan", faculty_ctx)
        assert result.error == "Unknown faculty: council"

    @pytest.mark.asyncio
    async def test_custom_handler(self, faculty_ctx):
        async def _echo(text, ctx):
            return ok({"echo": text, "user": ctx.user_id})

        router = FacultyRouter(
            detectors=[_AlwaysDetector(FacultyName.WORKFLOW)],
            handlers={FacultyName.WORKFLOW: _echo},
        )
        _, result = await router.route("ping", faculty_ctx)
        assert result.data == {"echo": "ping", "user": "test-user"}
