"""
Privacy faculty: PII detection, redaction and local-model routing.

The intent detector fires on privacy vocabulary ("confidential", "gdpr", ...)
and also on the presence of PII itself, so a message that simply contains
an e-mail address or phone number is routed here.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    fail,
    ok,
)
from cortex.privacy.redaction import PIIRedactor, contains_pii, default_redactor

logger = structlog.get_logger(__name__)

PRIVACY_KEYWORDS = (
    "private", "confidential", "sensitive", "personal", "secure", "encrypt",
    "redact", "anonymize", "pii", "gdpr", "hipaa",
)

HIGH_RISK_TYPES = frozenset({"ssn", "credit_card"})

LOCAL_FALLBACK_CHAIN = "ollama/llama3,ollama/mistral,gpt-4"


class PrivacyIntentDetector(KeywordIntentDetector):
    def detect(self, text: str) -> bool:
        return super().detect(text) or contains_pii(text)


DETECTOR = PrivacyIntentDetector(
    FacultyName.PRIVACY, PRIVACY_KEYWORDS, 0.85, "Detected potential PII in request",
)


def detect_privacy_intent(text: str) -> bool:
    return DETECTOR.detect(text)


def assess_risk(pii_types: list[str]) -> str:
    if HIGH_RISK_TYPES.intersection(pii_types):
        return "high"
    if len(pii_types) >= 2:
        return "medium"
    return "low"


class PrivacyRequest(BaseModel):
    text: str
    redact: bool = False
    use_local_model: bool = False


async def protect_privacy(
    request: PrivacyRequest,
    ctx: FacultyContext,
    redactor: PIIRedactor | None = None,
) -> FacultyResult:
    redactor = redactor or default_redactor()
    pii_types = redactor.detect_pii_types(request.text)
    has_pii = bool(pii_types)

    recommended_model = None
    if has_pii and request.use_local_model:
        switched = await ctx.call(
            "litellm", action="set_fallback_chain", fallback_models=LOCAL_FALLBACK_CHAIN,
        )
        if not switched.success:
            return fail(switched.error or "Failed to switch to a local model", pii_types=pii_types)
        recommended_model = ctx.config.local_model

    redacted_text = redactor.redact(request.text) if request.redact and has_pii else None
    risk_level = assess_risk(pii_types)

    if has_pii:
        logger.info("privacy.pii_detected", types=pii_types, risk=risk_level)
    return ok(
        {
            "has_pii": has_pii,
            "pii_types": pii_types,
            "redacted_text": redacted_text,
            "recommended_model": recommended_model,
            "risk_level": risk_level,
        },
        pii_pattern_count=len(pii_types),
    )
