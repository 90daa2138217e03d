"""
Reply-pipeline integration.

A chat surface calls integrate_message() before generating a reply and
apply_response_hints() to fold the resulting guidance into its system
prompt. Orchestration trouble must never block a reply, so
integrate_message() logs failures and returns None.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import structlog

from cortex.orchestrator import OrchestrationRequest, OrchestrationResult, Orchestrator, ResponseHints

logger = structlog.get_logger(__name__)

TONE_GUIDANCE = {
    "empathetic": "Respond with empathy and understanding. Acknowledge the user's emotions and concerns.",
    "calming": "Use a calm, reassuring tone. Help the user feel heard and supported.",
    "encouraging": "Be encouraging and motivational. Emphasize positive aspects and progress.",
    "enthusiastic": "Be enthusiastic and upbeat. Match the user's positive energy.",
}

VERBOSITY_GUIDANCE = {
    "concise": "Keep responses brief and to the point. Avoid unnecessary elaboration.",
    "detailed": "Provide detailed and thorough responses. Don't skip important context.",
}

HINTS_HEADER = "[Response Hints]"


@dataclass
class ReplyIntegration:
    result: OrchestrationResult
    response_hints: ResponseHints
    should_be_empathetic: bool
    should_be_detailed: bool


async def integrate_message(
    orchestrator: Orchestrator,
    text: str,
    session_key: str,
    user_id: Optional[str] = None,
    channel: Optional[str] = None,
) -> Optional[ReplyIntegration]:
    """Run the orchestration pipeline for an inbound message; None on failure."""
    try:
        result = await orchestrator.process_message(
            text,
            OrchestrationRequest(
                user_id=user_id or "unknown",
                session_key=session_key,
                channel=channel,
            ),
        )
    except Exception as e:
        logger.warning(
            "integration.failed",
            session_key=session_key,
            error=f"{type(e).__name__}: {e}",
        )
        return None

    hints = result.response_hints
    return ReplyIntegration(
        result=result,
        response_hints=hints,
        should_be_empathetic=hints.tone in ("empathetic", "calming"),
        should_be_detailed=hints.verbosity == "detailed",
    )


def apply_response_hints(system_prompt: str, hints: ResponseHints) -> str:
    """Append tone, verbosity and topic guidance; unchanged when there is none."""
    lines = []
    if hints.tone in TONE_GUIDANCE:
        lines.append(TONE_GUIDANCE[hints.tone])
    if hints.verbosity in VERBOSITY_GUIDANCE:
        lines.append(VERBOSITY_GUIDANCE[hints.verbosity])
    if hints.relevant_topics:
        lines.append(f"When relevant, emphasize these topics: {', '.join(hints.relevant_topics)}.")

    if not lines:
        return system_prompt
    return system_prompt + f"\n\n{HINTS_HEADER}\n" + "\n".join(lines) + "\n"
