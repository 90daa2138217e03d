"""
Tests for cortex.faculties: each faculty against the simulated backends.

Covers:
- Intent detectors for every faculty
- Success envelopes and their data shape
- Expected failure paths (missing fields, unknown entities) as FacultyFailure
"""

from __future__ import annotations

import random

import pytest

from cortex.faculties import (
    autodidact,
    council,
    memory,
    privacy,
    research,
    self_healing,
    senses,
    shepherd,
    simulator,
    workflow,
)
from cortex.faculties.types import FacultyFailure, FacultySuccess, drop_none


class TestDropNone:
    def test_removes_none_only(self):
        assert drop_none(a=1, b=None, c=0, d="") == {"a": 1, "c": 0, "d": ""}


class TestDetectors:
    @pytest.mark.parametrize(
        "detect,text",
        [
            (self_healing.detect_error_intent, "Fix the null pointer error in validator.ts"),
            (council.detect_council_intent, "Design a multi-step plan"),
            (memory.detect_memory_intent, "Search for all API endpoint definitions"),
            (senses.detect_senses_intent, "Transcribe this audio file"),
            (research.detect_research_intent, "Research the latest quantum computing papers"),
            (workflow.detect_workflow_intent, "Automate my daily report every day"),
            (privacy.detect_privacy_intent, "Keep this confidential"),
            (shepherd.detect_shepherd_intent, "Run a code quality health check"),
            (simulator.detect_simulator_intent, "What if we doubled the cache size"),
            (autodidact.detect_autodidact_intent, "Is there an API for weather data"),
        ],
    )
    def test_fires(self, detect, text):
        assert detect(text) is True

    def test_case_insensitive(self):
        assert self_healing.detect_error_intent("STACK TRACE attached") is True

    def test_privacy_fires_on_pii_alone(self):
        assert privacy.detect_privacy_intent("My email is john@example.com") is True

    def test_nothing_fires_on_small_talk(self):
        text = "What's the weather today?"
        detectors = [
            self_healing.detect_error_intent, council.detect_council_intent,
            memory.detect_memory_intent, research.detect_research_intent,
            workflow.detect_workflow_intent, privacy.detect_privacy_intent,
            shepherd.detect_shepherd_intent, simulator.detect_simulator_intent,
            autodidact.detect_autodidact_intent,
        ]
        assert not any(detect(text) for detect in detectors)


class TestSelfHealing:
    @pytest.mark.asyncio
    async def test_heals_without_pr(self, faculty_ctx):
        result = await self_healing.heal_error(
            self_healing.SelfHealingRequest(error="TypeError: null value in parser.py"), faculty_ctx,
        )
        assert isinstance(result, FacultySuccess)
        assert result.data["tests_pass"] is True
        assert result.data["pr_url"] is None
        assert result.data["files_modified"] == ["parser.py"]
        assert result.data["analysis"]["root_cause"] == "Missing null check before dereference"

    @pytest.mark.asyncio
    async def test_opens_pr_when_asked(self, faculty_ctx):
        result = await self_healing.heal_error(
            self_healing.SelfHealingRequest(error="crash on startup", auto_create_pr=True), faculty_ctx,
        )
        assert result.success is True
        assert result.data["pr_url"].endswith(result.data["fix_id"])


class TestCouncil:
    def test_software_detection(self):
        assert council.is_software_project(council.CouncilRequest(problem="Build a todo app"))
        assert council.is_software_project(council.CouncilRequest(problem="x", tech_stack="go"))
        assert not council.is_software_project(council.CouncilRequest(problem="Plan a team offsite"))

    @pytest.mark.asyncio
    async def test_software_project_produces_artifacts(self, faculty_ctx):
        result = await council.convene_council(
            council.CouncilRequest(problem="Implement a URL shortener", tech_stack="python"), faculty_ctx,
        )
        assert result.success is True
        assert result.metadata["project_type"] == "software"
        artifacts = result.data["artifacts"]
        assert "URL shortener" in artifacts["prd"]
        assert "python" in artifacts["architecture"]
        assert artifacts["code"]

    @pytest.mark.asyncio
    async def test_general_reasoning_uses_crew(self, faculty_ctx):
        result = await council.convene_council(
            council.CouncilRequest(problem="Plan a team offsite", roles=["planner", "critic"]), faculty_ctx,
        )
        assert result.success is True
        assert result.metadata["project_type"] == "general"
        assert len(result.data["agent_ids"]) == 2
        assert result.data["tasks"][0]["status"] == "completed"
        assert "planner, critic" in result.data["execution_results"]


class TestMemory:
    @pytest.mark.asyncio
    async def test_index_then_search(self, faculty_ctx):
        indexed = await memory.search_memory(
            memory.MemoryRequest(
                action="index",
                index_name="docs",
                documents=[
                    memory.MemoryDocument(text="The router picks a faculty by keyword"),
                    memory.MemoryDocument(text="Notifications are rate limited per day"),
                ],
            ),
            faculty_ctx,
        )
        assert indexed.success is True
        assert len(indexed.data["document_ids"]) == 2

        found = await memory.search_memory(
            memory.MemoryRequest(action="search", index_name="docs", query="router faculty"), faculty_ctx,
        )
        assert found.success is True
        assert found.data["results"][0]["text"] == "The router picks a faculty by keyword"

        stats = await memory.search_memory(memory.MemoryRequest(action="stats", index_name="docs"), faculty_ctx)
        assert stats.data["stats"]["document_count"] == 2

    @pytest.mark.asyncio
    async def test_search_requires_query_and_index(self, faculty_ctx):
        result = await memory.search_memory(memory.MemoryRequest(action="search", query="x"), faculty_ctx)
        assert isinstance(result, FacultyFailure)
        assert result.error == "query and indexName are required for search"

    @pytest.mark.asyncio
    async def test_unknown_index(self, faculty_ctx):
        result = await memory.search_memory(
            memory.MemoryRequest(action="search", index_name="missing", query="x"), faculty_ctx,
        )
        assert result.success is False
        assert result.error == "Index not found: missing"

    @pytest.mark.asyncio
    async def test_default_index_exists(self, faculty_ctx):
        result = await memory.search_memory(
            memory.MemoryRequest(action="search", index_name="default", query="anything"), faculty_ctx,
        )
        assert result.success is True
        assert result.data["results"] == []


class TestSenses:
    def test_infer_transcribe_path(self):
        request = senses.infer_senses_request("Please transcribe meeting.mp3")
        assert request.action == "transcribe"
        assert request.audio_path == "meeting.mp3"

    def test_infer_transcribe_url(self):
        request = senses.infer_senses_request("transcribe https://example.com/a.wav")
        assert request.audio_url == "https://example.com/a.wav"
        assert request.audio_path is None

    def test_infer_nothing(self):
        assert senses.infer_senses_request("show me a video") is None

    @pytest.mark.asyncio
    async def test_transcribe(self, faculty_ctx):
        result = await senses.perceive(
            senses.SensesRequest(action="transcribe", audio_path="call.wav"), faculty_ctx,
        )
        assert result.success is True
        assert result.data["transcription"]["language"] == "en"
        assert "call.wav" in result.data["transcription"]["text"]

    @pytest.mark.asyncio
    async def test_transcribe_needs_source(self, faculty_ctx):
        result = await senses.perceive(senses.SensesRequest(action="transcribe"), faculty_ctx)
        assert result.success is False

    @pytest.mark.asyncio
    async def test_generate_image(self, faculty_ctx):
        result = await senses.perceive(
            senses.SensesRequest(action="generate_image", image_prompt="a red fox"), faculty_ctx,
        )
        assert result.data["image"]["path"].endswith(".png")
        assert result.data["image"]["prompt"] == "a red fox"

    @pytest.mark.asyncio
    async def test_synthesize_speech(self, faculty_ctx):
        result = await senses.perceive(
            senses.SensesRequest(action="synthesize_speech", text="x" * 30), faculty_ctx,
        )
        assert result.data["speech"]["duration"] == 2.0

    @pytest.mark.asyncio
    async def test_speech_needs_text(self, faculty_ctx):
        result = await senses.perceive(senses.SensesRequest(action="synthesize_speech"), faculty_ctx)
        assert result.error == "text is required for speech synthesis"


class TestResearch:
    @pytest.mark.asyncio
    async def test_canned_findings_without_documents(self, faculty_ctx):
        result = await research.conduct_research(research.ResearchRequest(query="graph databases"), faculty_ctx)
        assert result.success is True
        assert result.data["document_count"] == 2
        assert result.data["findings"][0]["source"] == "simulated-web"
        assert result.data["summary"].startswith('Research Summary for "graph databases"')

    @pytest.mark.asyncio
    async def test_ranks_supplied_documents(self, faculty_ctx):
        docs = [
            {"content": "Cooking pasta at home", "meta": {"source": "blog"}},
            {"content": "Graph databases store nodes and edges", "meta": {"source": "wiki"}},
        ]
        result = await research.conduct_research(
            research.ResearchRequest(query="graph databases", documents=docs), faculty_ctx,
        )
        assert result.data["findings"][0]["source"] == "wiki"

    def test_summary_without_results(self):
        assert research.summarize_findings("x", []) == 'No findings for query: "x"'


class TestWorkflow:
    @pytest.mark.asyncio
    async def test_templates(self, faculty_ctx):
        result = await workflow.automate_workflow(workflow.WorkflowRequest(action="get_templates"), faculty_ctx)
        assert len(result.data["templates"]) == 3

    @pytest.mark.asyncio
    async def test_create_list_execute(self, faculty_ctx):
        created = await workflow.automate_workflow(
            workflow.WorkflowRequest(action="create", description="Nightly backup"), faculty_ctx,
        )
        workflow_id = created.data["workflow_id"]

        listed = await workflow.automate_workflow(workflow.WorkflowRequest(action="list"), faculty_ctx)
        assert [w["name"] for w in listed.data["workflows"]] == ["Nightly backup"]

        executed = await workflow.automate_workflow(
            workflow.WorkflowRequest(action="execute", workflow_id=workflow_id), faculty_ctx,
        )
        assert executed.data["execution_result"]["status"] == "success"

    @pytest.mark.asyncio
    async def test_create_needs_definition(self, faculty_ctx):
        result = await workflow.automate_workflow(workflow.WorkflowRequest(action="create"), faculty_ctx)
        assert result.success is False

    @pytest.mark.asyncio
    async def test_activate_unknown(self, faculty_ctx):
        result = await workflow.automate_workflow(
            workflow.WorkflowRequest(action="activate", workflow_id="wf_missing"), faculty_ctx,
        )
        assert result.error == "Workflow not found: wf_missing"


class TestPrivacy:
    @pytest.mark.parametrize(
        "types,expected",
        [([], "low"), (["email"], "low"), (["email", "phone"], "medium"), (["ssn"], "high"), (["credit_card"], "high")],
    )
    def test_assess_risk(self, types, expected):
        assert privacy.assess_risk(types) == expected

    @pytest.mark.asyncio
    async def test_detects_and_redacts(self, faculty_ctx):
        result = await privacy.protect_privacy(
            privacy.PrivacyRequest(
                text="My email is john@example.com and phone is 555-1234",
                redact=True,
                use_local_model=True,
            ),
            faculty_ctx,
        )
        assert result.success is True
        assert result.data["has_pii"] is True
        assert result.data["pii_types"] == ["email", "phone"]
        assert result.data["risk_level"] == "medium"
        assert "john@example.com" not in result.data["redacted_text"]
        assert result.data["recommended_model"] == "ollama/llama3"

    @pytest.mark.asyncio
    async def test_clean_text(self, faculty_ctx):
        result = await privacy.protect_privacy(
            privacy.PrivacyRequest(text="nothing to see", redact=True, use_local_model=True), faculty_ctx,
        )
        assert result.data == {
            "has_pii": False,
            "pii_types": [],
            "redacted_text": None,
            "recommended_model": None,
            "risk_level": "low",
        }


class TestShepherd:
    @pytest.mark.asyncio
    async def test_health_check_without_fixes(self, faculty_ctx):
        result = await shepherd.shepherd_codebase(shepherd.ShepherdRequest(action="health_check"), faculty_ctx)
        assert result.data["health_score"] == 100
        assert result.data["issues"] == []

    @pytest.mark.asyncio
    async def test_health_drops_with_recent_fixes(self, faculty_ctx):
        for _ in range(3):
            await self_healing.heal_error(self_healing.SelfHealingRequest(error="bug"), faculty_ctx)
        result = await shepherd.shepherd_codebase(shepherd.ShepherdRequest(action="health_check"), faculty_ctx)
        assert result.data["health_score"] == 70
        assert len(result.data["issues"]) == 2

    @pytest.mark.asyncio
    async def test_run_tests(self, faculty_ctx):
        result = await shepherd.shepherd_codebase(shepherd.ShepherdRequest(action="run_tests"), faculty_ctx)
        assert result.metadata["total_tests"] == 45
        assert result.data["health_score"] == 70

    @pytest.mark.asyncio
    async def test_security(self, faculty_ctx):
        result = await shepherd.shepherd_codebase(shepherd.ShepherdRequest(action="check_security"), faculty_ctx)
        assert result.data["issues"][0]["type"] == "security"


class TestSimulator:
    @pytest.mark.asyncio
    async def test_seeded_run_is_reproducible(self, faculty_ctx):
        request = simulator.SimulatorRequest(scenario="double the cache", iterations=4)
        first = await simulator.run_simulation(request, faculty_ctx, random.Random(7))
        second = await simulator.run_simulation(request, faculty_ctx, random.Random(7))
        assert first.data["outcomes"] == second.data["outcomes"]
        assert len(first.data["outcomes"]) == 4
        assert first.metadata["iteration_count"] == 4

    def test_metrics_in_range(self):
        outcome = simulator.simulate_iteration("s", 1, random.Random(1))
        assert 0.6 <= outcome["metrics"]["success_rate"] <= 0.9
        assert 100 <= outcome["metrics"]["cost"] <= 300

    def test_summary_outlook(self):
        wins = [{"metrics": {"success_rate": 0.8}}] * 3
        losses = [{"metrics": {"success_rate": 0.6}}] * 3
        assert "favorable" in simulator.summarize_simulation("s", wins)
        assert "challenging" in simulator.summarize_simulation("s", losses)

    def test_insights_recommendation(self):
        insights = simulator.generate_insights([{"metrics": {"success_rate": 0.9}}])
        assert insights[-1] == "Recommendation: Proceed with implementation"


class TestAutodidact:
    @pytest.mark.asyncio
    async def test_search(self, faculty_ctx):
        result = await autodidact.discover_capability(
            autodidact.AutodidactRequest(query="weather forecast"), faculty_ctx,
        )
        assert result.success is True
        assert result.metadata["results_found"] >= 1
        assert len(result.data["examples"]) <= 2
        assert result.data["setup_instructions"][0]["steps"]

    @pytest.mark.asyncio
    async def test_category(self, faculty_ctx):
        result = await autodidact.discover_capability(
            autodidact.AutodidactRequest(query="x", category="Books"), faculty_ctx,
        )
        assert [api["name"] for api in result.data["apis"]] == ["Open Library"]

    @pytest.mark.asyncio
    async def test_no_match(self, faculty_ctx):
        result = await autodidact.discover_capability(
            autodidact.AutodidactRequest(query="zzzz"), faculty_ctx,
        )
        assert result.success is True
        assert result.data == {"apis": []}

    def test_setup_steps_include_auth(self):
        steps = autodidact.setup_steps({"name": "NewsAPI", "auth": "apiKey", "url": "https://newsapi.org"})
        assert "Register for an API key (auth type: apiKey)" in steps
        no_auth = autodidact.setup_steps({"name": "Open Library", "auth": "No", "url": ""})
        assert not any("API key" in step for step in no_auth)
