"""
Cortex command line.

    cortex process TEXT [--user ID] [--session KEY] [--json]
    cortex classify TEXT
    cortex route TEXT

``process`` runs the full orchestration pipeline once and prints the
result; ``classify`` and ``route`` show the cheap per-message decisions
(emotion, complexity, faculty) without touching any state.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from typing import Any

import click
import structlog
from rich.console import Console
from rich.table import Table

from cortex.affect.analyzer import analyze_emotion
from cortex.config import CortexConfig
from cortex.faculties.router import FacultyRouter
from cortex.orchestrator import OrchestrationRequest, Orchestrator
from cortex.privacy.redaction import PIIRedactor
from cortex.providers.model_switch import classify_task_complexity

console = Console()


@functools.lru_cache(maxsize=1)
def _get_log_redactor() -> PIIRedactor:
    return PIIRedactor(enabled=True)


def _redact_sensitive_fields(logger, method_name, event_dict):
    """
    Structlog processor that redacts message text from log output.

    PII tokens are replaced before truncation so that full patterns are
    never written out.
    """
    sensitive_keys = {"text", "input", "output", "query", "content"}
    max_display_len = 80

    for key in sensitive_keys:
        if key in event_dict:
            val = event_dict[key]
            if isinstance(val, str):
                val = _get_log_redactor().redact(val)
                if len(val) > max_display_len:
                    val = val[:max_display_len] + "... [truncated]"
                event_dict[key] = val

    return event_dict


_logging_configured = False


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure structlog over standard-library logging. Later calls are no-ops."""
    global _logging_configured  # noqa: PLW0603
    if _logging_configured:
        return
    _logging_configured = True

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            _redact_sensitive_fields,
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def async_cmd(func):
    """Decorator to run an async Click command via asyncio.run()."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(func(*args, **kwargs))

    return wrapper


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show info-level logs")
def cli(verbose: bool) -> None:
    """Cortex - emotion, learning and faculty routing for chat agents."""
    configure_logging(logging.INFO if verbose else logging.WARNING)


@cli.command("process")
@click.argument("text")
@click.option("--user", "user_id", default="cli-user", show_default=True, help="User id")
@click.option("--session", "session_key", default="cli-session", show_default=True, help="Session key")
@click.option("--json", "json_output", is_flag=True, help="JSON output")
@async_cmd
async def process_cmd(text: str, user_id: str, session_key: str, json_output: bool) -> None:
    """Run one message through the full pipeline."""
    orchestrator = Orchestrator.from_config(CortexConfig())
    result = await orchestrator.process_message(
        text, OrchestrationRequest(user_id=user_id, session_key=session_key, channel="cli"),
    )

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    table = Table(title="Orchestration", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Sentiment", f"{result.emotion.sentiment.value} ({result.emotion.sentiment_score:+.2f})")
    table.add_row("Dominant emotion", result.emotion.dominant.value)
    if result.emotional_context is not None:
        table.add_row("Session trend", result.emotional_context.trend.value)
    table.add_row("Complexity", result.task_complexity.value)
    table.add_row("Tone", result.response_hints.tone)
    table.add_row("Verbosity", result.response_hints.verbosity)
    table.add_row("Interests", ", ".join(result.top_interests) or "-")
    table.add_row("Faculty", f"{result.faculty_activation.faculty.value} ({result.faculty_activation.confidence:.2f})")
    if result.faculty_result is not None:
        outcome = "ok" if result.faculty_result.success else f"failed: {result.faculty_result.error}"
        table.add_row("Faculty result", outcome)
    console.print(table)


@cli.command("classify")
@click.argument("text")
def classify_cmd(text: str) -> None:
    """Show the emotion reading and task complexity for TEXT."""
    analysis = analyze_emotion(text)
    table = Table(title="Classification")
    table.add_column("Emotion")
    table.add_column("Score", justify="right")
    for label, score in analysis.emotions:
        table.add_row(label.value, f"{score:.2f}")
    console.print(table)
    console.print(
        f"Sentiment: [bold]{analysis.sentiment.value}[/bold] ({analysis.sentiment_score:+.2f})  "
        f"Dominant: [bold]{analysis.dominant.value}[/bold]  "
        f"Complexity: [bold]{classify_task_complexity(text).value}[/bold]"
    )


@cli.command("route")
@click.argument("text")
def route_cmd(text: str) -> None:
    """Show which faculty TEXT would be routed to."""
    router = FacultyRouter(config=CortexConfig().faculties)
    activation = router.detect_faculty(text)
    console.print(
        f"[bold]{activation.faculty.value}[/bold] "
        f"(confidence {activation.confidence:.2f}): {activation.reason}"
    )
    others = [name.value for name in router.detected_intents(text)[1:]]
    if others:
        console.print(f"Also matched: {', '.join(others)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
