"""
Simulated Tool Backends.

In-memory stand-ins for the third-party systems the faculties delegate to:
SWE-agent, CrewAI, MetaGPT, LlamaIndex, Haystack, n8n, Whisper, Diffusers,
Piper TTS, LiteLLM and the public-apis catalog. None of them touch the
network. Each keeps whatever state it needs in plain dicts and answers with
a JSON-able payload tagged ``"simulated": True``. A payload with an
``error`` key is turned into a failed ToolExecutionResult by the executor.

Only the actions the faculties actually use are implemented.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import Any, Callable, Optional

import structlog

from cortex.tools.registry import ToolDefinition, ToolRegistry, action_schema

logger = structlog.get_logger(__name__)

_WORD_RE = re.compile(r"[a-z0-9]+")


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:10]}"


def _overlap_score(query: str, text: str) -> float:
    """Fraction of query words present in *text*."""
    q = set(_WORD_RE.findall(query.lower()))
    if not q:
        return 0.0
    t = set(_WORD_RE.findall(text.lower()))
    return len(q & t) / len(q)


class SimulatedBackend:
    """Base class: dispatches ``action`` to a ``_<action>`` method."""

    name: str = ""
    description: str = ""
    actions: tuple[str, ...] = ()
    properties: dict[str, dict[str, Any]] = {}

    async def __call__(self, action: str, **params: Any) -> dict[str, Any]:
        method: Optional[Callable[..., dict[str, Any]]] = getattr(self, f"_{action}", None)
        if method is None or action not in self.actions:
            return {"error": f"Unknown action: {action}"}
        payload = method(**params)
        payload.setdefault("simulated", True)
        return payload

    def definition(self, timeout: Optional[float] = None) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            input_schema=action_schema(list(self.actions), **self.properties),
            handler=self,
            category="simulated",
            simulated=True,
            timeout=timeout,
        )


class SWEAgentBackend(SimulatedBackend):
    name = "swe_agent"
    description = "Analyze an issue, propose a patch, run tests and open a pull request."
    actions = ("analyze_issue", "fix_issue", "run_tests", "create_pr", "list_fixes")
    properties = {
        "issue_url": {"type": "string"},
        "repository": {"type": "string"},
        "description": {"type": "string"},
        "auto_create_pr": {"type": "boolean"},
        "fix_id": {"type": "string"},
    }

    def __init__(self) -> None:
        self._fixes: dict[str, dict[str, Any]] = {}

    def _analyze_issue(self, description: str = "", issue_url: Optional[str] = None,
                       repository: Optional[str] = None, **_: Any) -> dict[str, Any]:
        lowered = description.lower()
        if "null" in lowered or "undefined" in lowered:
            root_cause = "Missing null check before dereference"
        elif "timeout" in lowered:
            root_cause = "Unbounded wait on a slow dependency"
        else:
            root_cause = "Unhandled edge case in input validation"
        return {
            "analysis": {
                "root_cause": root_cause,
                "complexity": "medium" if len(lowered.split()) > 12 else "low",
                "confidence": 0.82,
            },
            "issue_url": issue_url,
            "repository": repository or "local",
        }

    def _fix_issue(self, description: str = "", repository: Optional[str] = None,
                   auto_create_pr: bool = False, **_: Any) -> dict[str, Any]:
        fix_id = _new_id("fix")
        files = re.findall(r"[\w/.-]+\.(?:py|ts|js|go|rs|java)\b", description) or ["src/main.py"]
        fix = {
            "fix_id": fix_id,
            "patch": f"--- a/{files[0]}\n+++ b/{files[0]}\n@@\n+    if value is None:\n+        return None\n",
            "files_modified": files,
            "repository": repository or "local",
            "created_at": time.time(),
        }
        self._fixes[fix_id] = fix
        return dict(fix)

    def _run_tests(self, fix_id: str = "", **_: Any) -> dict[str, Any]:
        if fix_id not in self._fixes:
            return {"error": f"Fix not found: {fix_id}"}
        return {"fix_id": fix_id, "tests_pass": True, "passed": 12, "failed": 0}

    def _create_pr(self, fix_id: str = "", **_: Any) -> dict[str, Any]:
        if fix_id not in self._fixes:
            return {"error": f"Fix not found: {fix_id}"}
        return {"fix_id": fix_id, "pr_url": f"https://example.invalid/pull/{fix_id}"}

    def _list_fixes(self, **_: Any) -> dict[str, Any]:
        return {"fixes": [dict(fix) for fix in self._fixes.values()]}


class CrewAIBackend(SimulatedBackend):
    name = "crewai"
    description = "Assemble a crew of role-playing agents and run tasks through it."
    actions = ("create_crew", "create_agent", "create_task", "execute_crew")
    properties = {
        "name": {"type": "string"},
        "process_type": {"type": "string"},
        "crew_id": {"type": "string"},
        "role": {"type": "string"},
        "goal": {"type": "string"},
        "backstory": {"type": "string"},
        "description": {"type": "string"},
        "agent_id": {"type": "string"},
    }

    def __init__(self) -> None:
        self._crews: dict[str, dict[str, Any]] = {}
        self._agents: dict[str, dict[str, Any]] = {}

    def _create_crew(self, name: str = "crew", process_type: str = "sequential", **_: Any) -> dict[str, Any]:
        crew_id = _new_id("crew")
        self._crews[crew_id] = {"name": name, "process_type": process_type, "agents": [], "tasks": []}
        return {"crew_id": crew_id, "name": name, "process_type": process_type}

    def _create_agent(self, role: str = "", name: str = "", goal: str = "",
                      crew_id: Optional[str] = None, **_: Any) -> dict[str, Any]:
        if not role:
            return {"error": "role is required"}
        agent_id = _new_id("agent")
        self._agents[agent_id] = {"name": name or f"{role}_agent", "role": role, "goal": goal}
        if crew_id in self._crews:
            self._crews[crew_id]["agents"].append(agent_id)
        return {"agent_id": agent_id, "role": role}

    def _create_task(self, crew_id: str = "", description: str = "",
                     agent_id: Optional[str] = None, **_: Any) -> dict[str, Any]:
        crew = self._crews.get(crew_id)
        if crew is None:
            return {"error": f"Crew not found: {crew_id}"}
        task = {
            "id": _new_id("task"),
            "description": description,
            "assigned_to": agent_id or "",
            "status": "pending",
        }
        crew["tasks"].append(task)
        return {"task_id": task["id"], "crew_id": crew_id}

    def _execute_crew(self, crew_id: str = "", **_: Any) -> dict[str, Any]:
        crew = self._crews.get(crew_id)
        if crew is None:
            return {"error": f"Crew not found: {crew_id}"}
        for task in crew["tasks"]:
            task["status"] = "completed"
        roles = [self._agents[a]["role"] for a in crew["agents"] if a in self._agents]
        return {
            "crew_id": crew_id,
            "tasks": [dict(task) for task in crew["tasks"]],
            "result": f"Crew of {len(roles)} ({', '.join(roles)}) completed "
                      f"{len(crew['tasks'])} task(s) using a {crew['process_type']} process.",
        }


class MetaGPTBackend(SimulatedBackend):
    name = "metagpt"
    description = "Run a software-company SOP: PRD, architecture and code for a project."
    actions = ("create_project", "generate_prd", "design_architecture", "write_code")
    properties = {
        "project_name": {"type": "string"},
        "requirements": {"type": "string"},
        "tech_stack": {"type": "string"},
        "sop_type": {"type": "string"},
        "project_id": {"type": "string"},
    }

    def __init__(self) -> None:
        self._projects: dict[str, dict[str, Any]] = {}

    def _create_project(self, project_name: str = "project", requirements: str = "",
                        tech_stack: Optional[str] = None, sop_type: str = "agile", **_: Any) -> dict[str, Any]:
        if not requirements:
            return {"error": "requirements is required"}
        project_id = _new_id("proj")
        self._projects[project_id] = {
            "name": project_name,
            "requirements": requirements,
            "tech_stack": tech_stack or "python",
            "sop_type": sop_type,
        }
        return {"project_id": project_id, "project_name": project_name, "sop_type": sop_type}

    def _project(self, project_id: str) -> Optional[dict[str, Any]]:
        return self._projects.get(project_id)

    def _generate_prd(self, project_id: str = "", **_: Any) -> dict[str, Any]:
        project = self._project(project_id)
        if project is None:
            return {"error": f"Project not found: {project_id}"}
        return {"prd": f"# PRD: {project['name']}\n\nGoal: {project['requirements']}\n"}

    def _design_architecture(self, project_id: str = "", **_: Any) -> dict[str, Any]:
        project = self._project(project_id)
        if project is None:
            return {"error": f"Project not found: {project_id}"}
        return {"architecture": f"Layered service on {project['tech_stack']}: api -> domain -> storage"}

    def _write_code(self, project_id: str = "", **_: Any) -> dict[str, Any]:
        project = self._project(project_id)
        if project is None:
            return {"error": f"Project not found: {project_id}"}
        return {"code": f"# {project['name']}\n\ndef main():\n    raise NotImplementedError\n"}


class LlamaIndexBackend(SimulatedBackend):
    name = "llamaindex"
    description = "Create document indexes, ingest documents and query them."
    actions = ("create_index", "ingest_document", "list_indexes", "query")
    properties = {
        "index_name": {"type": "string"},
        "index_id": {"type": "string"},
        "document_text": {"type": "string"},
        "document_path": {"type": "string"},
        "query": {"type": "string"},
        "top_k": {"type": "integer"},
    }

    def __init__(self, default_indexes: Optional[list[str]] = None) -> None:
        self._indexes: dict[str, dict[str, Any]] = {}
        for name in default_indexes or []:
            self._create_index(index_name=name)

    def _create_index(self, index_name: str = "", **_: Any) -> dict[str, Any]:
        if not index_name:
            return {"error": "index_name is required"}
        index_id = _new_id("idx")
        self._indexes[index_id] = {"name": index_name, "documents": {}, "created_at": time.time()}
        return {"index_id": index_id, "index_name": index_name}

    def _ingest_document(self, index_id: str = "", document_text: Optional[str] = None,
                         document_path: Optional[str] = None, **_: Any) -> dict[str, Any]:
        index = self._indexes.get(index_id)
        if index is None:
            return {"error": f"Index not found: {index_id}"}
        if not document_text and not document_path:
            return {"error": "document_text or document_path is required"}
        doc_id = _new_id("doc")
        index["documents"][doc_id] = {
            "text": document_text or f"Contents of {document_path}",
            "path": document_path,
        }
        return {"document_id": doc_id, "index_id": index_id}

    def _list_indexes(self, **_: Any) -> dict[str, Any]:
        return {
            "indexes": [
                {"index_id": idx_id, "name": idx["name"], "document_count": len(idx["documents"])}
                for idx_id, idx in self._indexes.items()
            ]
        }

    def _query(self, index_id: str = "", query: str = "", top_k: int = 5, **_: Any) -> dict[str, Any]:
        index = self._indexes.get(index_id)
        if index is None:
            return {"error": f"Index not found: {index_id}"}
        scored = [
            {"text": doc["text"], "score": round(_overlap_score(query, doc["text"]), 3),
             "metadata": {"document_id": doc_id, "path": doc["path"]}}
            for doc_id, doc in index["documents"].items()
        ]
        scored = [hit for hit in scored if hit["score"] > 0]
        scored.sort(key=lambda hit: hit["score"], reverse=True)
        return {"results": scored[:top_k], "index_id": index_id}


class HaystackBackend(SimulatedBackend):
    name = "haystack"
    description = "Build a retrieval pipeline over documents and query it."
    actions = ("create_pipeline", "add_documents", "query")
    properties = {
        "pipeline_name": {"type": "string"},
        "retriever_type": {"type": "string", "enum": ["bm25", "embedding", "hybrid"]},
        "pipeline_id": {"type": "string"},
        "documents": {"type": "array"},
        "query": {"type": "string"},
        "top_k": {"type": "integer"},
    }

    def __init__(self) -> None:
        self._pipelines: dict[str, dict[str, Any]] = {}

    def _create_pipeline(self, pipeline_name: str = "pipeline", retriever_type: str = "hybrid", **_: Any) -> dict[str, Any]:
        pipeline_id = _new_id("pipe")
        self._pipelines[pipeline_id] = {"name": pipeline_name, "retriever": retriever_type, "documents": []}
        return {"pipeline_id": pipeline_id, "retriever_type": retriever_type}

    def _add_documents(self, pipeline_id: str = "", documents: Optional[list] = None, **_: Any) -> dict[str, Any]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return {"error": f"Pipeline not found: {pipeline_id}"}
        added = [d for d in documents or [] if isinstance(d, dict) and d.get("content")]
        pipeline["documents"].extend(added)
        return {"pipeline_id": pipeline_id, "added": len(added)}

    def _query(self, pipeline_id: str = "", query: str = "", top_k: int = 5, **_: Any) -> dict[str, Any]:
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            return {"error": f"Pipeline not found: {pipeline_id}"}
        if not pipeline["documents"]:
            results = [
                {"content": f"Overview of recent work on {query}", "score": 0.72,
                 "meta": {"source": "simulated-web"}},
                {"content": f"Survey notes related to {query}", "score": 0.61,
                 "meta": {"source": "simulated-arxiv"}},
            ]
        else:
            results = [
                {"content": d["content"], "score": round(_overlap_score(query, d["content"]), 3),
                 "meta": d.get("meta") or {}}
                for d in pipeline["documents"]
            ]
            results.sort(key=lambda r: r["score"], reverse=True)
        return {"results": results[:top_k], "pipeline_id": pipeline_id}


_N8N_TEMPLATES = [
    {"name": "Daily Report", "description": "Collect metrics and e-mail a summary every morning",
     "category": "reporting"},
    {"name": "Webhook to Slack", "description": "Forward incoming webhooks to a Slack channel",
     "category": "notifications"},
    {"name": "RSS Digest", "description": "Poll feeds and bundle new items into a digest",
     "category": "content"},
]


class N8nBackend(SimulatedBackend):
    name = "n8n"
    description = "Create, list, run and browse templates for automation workflows."
    actions = ("get_templates", "create_workflow", "list_workflows", "execute_workflow", "activate_workflow")
    properties = {
        "workflow_json": {"type": "object"},
        "workflow_id": {"type": "string"},
        "limit": {"type": "integer"},
    }

    def __init__(self) -> None:
        self._workflows: dict[str, dict[str, Any]] = {}

    def _get_templates(self, **_: Any) -> dict[str, Any]:
        return {"templates": [dict(t) for t in _N8N_TEMPLATES]}

    def _create_workflow(self, workflow_json: Optional[dict] = None, **_: Any) -> dict[str, Any]:
        if not workflow_json:
            return {"error": "workflow_json is required"}
        workflow_id = _new_id("wf")
        self._workflows[workflow_id] = {
            "id": workflow_id,
            "name": workflow_json.get("name", "Workflow"),
            "active": False,
            "definition": workflow_json,
        }
        return {"id": workflow_id, "name": self._workflows[workflow_id]["name"]}

    def _list_workflows(self, limit: int = 50, **_: Any) -> dict[str, Any]:
        items = list(self._workflows.values())[:limit]
        return {"data": [{"id": w["id"], "name": w["name"], "active": w["active"]} for w in items]}

    def _execute_workflow(self, workflow_id: str = "", **_: Any) -> dict[str, Any]:
        if workflow_id not in self._workflows:
            return {"error": f"Workflow not found: {workflow_id}"}
        return {"execution_id": _new_id("exec"), "workflow_id": workflow_id, "status": "success"}

    def _activate_workflow(self, workflow_id: str = "", **_: Any) -> dict[str, Any]:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return {"error": f"Workflow not found: {workflow_id}"}
        workflow["active"] = True
        return {"id": workflow_id, "active": True}


class WhisperBackend(SimulatedBackend):
    name = "whisper"
    description = "Transcribe an audio file or URL."
    actions = ("transcribe_file",)
    properties = {
        "audio_path": {"type": "string"},
        "audio_url": {"type": "string"},
        "language": {"type": "string"},
        "model": {"type": "string"},
    }

    def _transcribe_file(self, audio_path: Optional[str] = None, audio_url: Optional[str] = None,
                         language: str = "auto", model: str = "base", **_: Any) -> dict[str, Any]:
        source = audio_path or audio_url
        if not source:
            return {"error": "audio_path or audio_url is required"}
        return {
            "transcription": f"[simulated transcript of {source}]",
            "language": "en" if language == "auto" else language,
            "duration_seconds": 42.0,
            "model": model,
            "timestamp_segments": [{"start": 0.0, "end": 42.0, "text": f"[simulated transcript of {source}]"}],
        }


class DiffusersBackend(SimulatedBackend):
    name = "diffusers"
    description = "Generate an image from a text prompt."
    actions = ("generate_image",)
    properties = {"prompt": {"type": "string"}, "model": {"type": "string"}}

    def _generate_image(self, prompt: str = "", model: str = "sd-1.5", **_: Any) -> dict[str, Any]:
        if not prompt:
            return {"error": "prompt is required"}
        return {"image_path": f"/tmp/{_new_id('image')}.png", "prompt": prompt, "model": model}


class PiperTTSBackend(SimulatedBackend):
    name = "piper_tts"
    description = "Synthesize speech from text."
    actions = ("synthesize",)
    properties = {"text": {"type": "string"}, "voice": {"type": "string"}}

    def _synthesize(self, text: str = "", voice: str = "en_US-lessac-medium", **_: Any) -> dict[str, Any]:
        if not text:
            return {"error": "text is required"}
        # Roughly 15 characters of speech per second.
        return {"audio_path": f"/tmp/{_new_id('speech')}.wav", "voice": voice,
                "duration_seconds": round(len(text) / 15, 1)}


class LiteLLMBackend(SimulatedBackend):
    name = "litellm"
    description = "Configure model routing and fallback chains."
    actions = ("set_fallback_chain", "get_fallback_chain")
    properties = {"fallback_models": {"type": "string"}}

    def __init__(self) -> None:
        self._chain: list[str] = []

    def _set_fallback_chain(self, fallback_models: str = "", **_: Any) -> dict[str, Any]:
        chain = [m.strip() for m in fallback_models.split(",") if m.strip()]
        if not chain:
            return {"error": "fallback_models is required"}
        self._chain = chain
        return {"fallback_chain": list(chain)}

    def _get_fallback_chain(self, **_: Any) -> dict[str, Any]:
        return {"fallback_chain": list(self._chain)}


_PUBLIC_APIS = [
    {"name": "Open-Meteo", "description": "Weather forecast API without key", "category": "Weather",
     "url": "https://open-meteo.com", "auth": "No", "https": True},
    {"name": "OpenWeatherMap", "description": "Current weather and forecasts", "category": "Weather",
     "url": "https://openweathermap.org/api", "auth": "apiKey", "https": True},
    {"name": "NewsAPI", "description": "Headlines and articles from news sources", "category": "News",
     "url": "https://newsapi.org", "auth": "apiKey", "https": True},
    {"name": "ExchangeRate-API", "description": "Currency exchange rates", "category": "Currency Exchange",
     "url": "https://www.exchangerate-api.com", "auth": "apiKey", "https": True},
    {"name": "GitHub", "description": "Repositories, issues and pull requests", "category": "Development",
     "url": "https://docs.github.com/en/rest", "auth": "OAuth", "https": True},
    {"name": "Open Library", "description": "Books, authors and covers", "category": "Books",
     "url": "https://openlibrary.org/developers/api", "auth": "No", "https": True},
    {"name": "Translate API", "description": "Machine translation between languages", "category": "Text Analysis",
     "url": "https://libretranslate.com", "auth": "No", "https": True},
]


class PublicApisBackend(SimulatedBackend):
    name = "public_apis"
    description = "Search a catalog of free public APIs."
    actions = ("search", "by_category")
    properties = {
        "query": {"type": "string"},
        "category": {"type": "string"},
        "limit": {"type": "integer"},
    }

    def _search(self, query: str = "", limit: int = 5, **_: Any) -> dict[str, Any]:
        scored = []
        for api in _PUBLIC_APIS:
            haystack = f"{api['name']} {api['description']} {api['category']}"
            score = _overlap_score(query, haystack)
            if score > 0:
                scored.append((score, api))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return {"apis": [dict(api) for _, api in scored[:limit]]}

    def _by_category(self, category: str = "", limit: int = 5, **_: Any) -> dict[str, Any]:
        wanted = category.lower()
        return {"apis": [dict(a) for a in _PUBLIC_APIS if a["category"].lower() == wanted][:limit]}


def build_simulated_backends(default_index: str = "default") -> list[SimulatedBackend]:
    return [
        SWEAgentBackend(),
        CrewAIBackend(),
        MetaGPTBackend(),
        LlamaIndexBackend(default_indexes=[default_index]),
        HaystackBackend(),
        N8nBackend(),
        WhisperBackend(),
        DiffusersBackend(),
        PiperTTSBackend(),
        LiteLLMBackend(),
        PublicApisBackend(),
    ]


def register_simulated_tools(
    registry: ToolRegistry,
    default_index: str = "default",
    timeout: Optional[float] = None,
) -> list[str]:
    """Register every simulated backend on *registry*; returns the tool names."""
    names = []
    for backend in build_simulated_backends(default_index):
        registry.register(backend.definition(timeout=timeout))
        names.append(backend.name)
    logger.info("simulated_tools.registered", count=len(names))
    return names
