"""
Dynamic Model Switching: pick a local model sized to the task.

classify_task_complexity buckets a prompt into one of four tiers with keyword
sets checked in priority order (reasoning, complex, moderate, simple) and a
word-count fallback. select_model_for_task then maps the tier onto the
models the caller has available, ordered by size.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)

FALLBACK_MODEL = "llama3.3:latest"


class TaskComplexity(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    REASONING = "reasoning"


class OllamaModelInfo(BaseModel):
    name: str
    size: int = 0
    is_reasoning: bool = False
    family: Optional[str] = None
    parameter_size: Optional[str] = None


class ModelSwitchResult(BaseModel):
    model_id: str
    reason: str
    complexity: TaskComplexity


# Checked in this order; the first tier with a substring hit wins.
COMPLEXITY_KEYWORDS: tuple[tuple[TaskComplexity, tuple[str, ...]], ...] = (
    (TaskComplexity.REASONING, (
        "prove", "theorem", "derive", "analyze", "logic", "mathematical",
        "deduce", "reason", "evaluate", "critique", "compare", "contrast",
        "synthesize", "hypothesize",
    )),
    (TaskComplexity.COMPLEX, (
        "explain", "implement", "design", "architect", "refactor", "optimize",
        "debug", "troubleshoot", "integrate", "migrate",
    )),
    (TaskComplexity.MODERATE, (
        "write", "create", "generate", "describe", "summarize", "translate",
        "convert", "format", "list", "outline",
    )),
    (TaskComplexity.SIMPLE, (
        "hello", "hi", "thanks", "yes", "no", "ok", "help", "what", "when",
        "where", "who",
    )),
)

SHORT_PROMPT_WORDS = 3
COMPLEX_PROMPT_WORDS = 50
MODERATE_PROMPT_WORDS = 15


def classify_task_complexity(text: str) -> TaskComplexity:
    lowered = text.lower()
    words = lowered.split()
    if len(words) <= SHORT_PROMPT_WORDS:
        return TaskComplexity.SIMPLE

    for tier, keywords in COMPLEXITY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return tier

    if len(words) > COMPLEX_PROMPT_WORDS:
        return TaskComplexity.COMPLEX
    if len(words) > MODERATE_PROMPT_WORDS:
        return TaskComplexity.MODERATE
    return TaskComplexity.SIMPLE


def select_model_for_task(
    models: Sequence[OllamaModelInfo],
    complexity: TaskComplexity,
    fallback_model: str = FALLBACK_MODEL,
) -> ModelSwitchResult:
    if not models:
        return ModelSwitchResult(
            model_id=fallback_model,
            reason="No models available, using default fallback",
            complexity=complexity,
        )

    by_size = sorted(models, key=lambda m: m.size)
    smallest, largest = by_size[0], by_size[-1]

    if complexity is TaskComplexity.REASONING:
        reasoning = [m for m in by_size if m.is_reasoning]
        if reasoning:
            return ModelSwitchResult(
                model_id=reasoning[-1].name,
                reason="Selected reasoning model for analytical task",
                complexity=complexity,
            )
        return ModelSwitchResult(
            model_id=largest.name,
            reason="No reasoning model available, using largest model",
            complexity=complexity,
        )

    if complexity is TaskComplexity.COMPLEX:
        return ModelSwitchResult(
            model_id=largest.name,
            reason="Selected largest model for complex task",
            complexity=complexity,
        )

    if complexity is TaskComplexity.MODERATE:
        return ModelSwitchResult(
            model_id=by_size[len(by_size) // 2].name,
            reason="Selected mid-sized model for moderate task",
            complexity=complexity,
        )

    return ModelSwitchResult(
        model_id=smallest.name,
        reason="Selected smallest model for simple task",
        complexity=complexity,
    )


def dynamic_model_select(
    text: str,
    models: Sequence[OllamaModelInfo],
    fallback_model: str = FALLBACK_MODEL,
) -> ModelSwitchResult:
    complexity = classify_task_complexity(text)
    result = select_model_for_task(models, complexity, fallback_model)
    logger.debug(
        "model_switch.selected",
        complexity=complexity.value,
        model=result.model_id,
        candidates=len(models),
    )
    return result
