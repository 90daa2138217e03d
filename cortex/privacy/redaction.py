"""
PII Detection and Redaction.

Two consumers share this module. The chat logger scrubs e-mail addresses and
phone numbers from stored interactions at the ``standard`` privacy level, and
the privacy faculty scans incoming messages for a wider set of categories
(SSNs, card numbers, IP addresses, street addresses) to decide whether a
request should be routed to a local model.

Patterns are deliberately simple and biased toward North American formats.
They are a best-effort filter, not a guarantee that no PII survives.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

# Valid IPv4 octet: 0-255
_OCTET = r"(?:25[0-5]|2[0-4]\d|[01]?\d\d?)"


@dataclass
class RedactionResult:
    """Result of a scan pass over some text."""
    original_length: int
    redacted_length: int
    redactions_made: int
    categories_found: list[str] = field(default_factory=list)

    @property
    def has_pii(self) -> bool:
        return self.redactions_made > 0


# Detection patterns with their default replacement tokens.
# Order matters: each pattern runs over the output of the previous one, so
# broader phone formats must precede the seven-digit local form.
PII_PATTERNS: list[tuple[str, re.Pattern, str]] = [
    (
        "email",
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        "[EMAIL_REDACTED]",
    ),
    (
        "phone_intl",
        re.compile(r"\+\d{1,3}[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9}\b"),
        "[PHONE_REDACTED]",
    ),
    (
        "phone",
        re.compile(r"\b(?:1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"),
        "[PHONE_REDACTED]",
    ),
    (
        "ssn",
        re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        "[SSN_REDACTED]",
    ),
    (
        "credit_card",
        re.compile(
            r"\b(?:"
            r"(?:\d{4}[-\s]?){3}\d{4}"      # 16-digit (Visa/MC/Discover)
            r"|"
            r"\d{4}[-\s]?\d{6}[-\s]?\d{5}"  # 15-digit (Amex)
            r")\b"
        ),
        "[CARD_REDACTED]",
    ),
    (
        "phone_local",
        re.compile(r"\b\d{3}[-.]\d{4}\b"),
        "[PHONE_REDACTED]",
    ),
    (
        "ip_address",
        re.compile(r"\b" + r"\.".join([_OCTET] * 4) + r"\b"),
        "[IP_REDACTED]",
    ),
    (
        "address",
        re.compile(
            r"\b\d+\s+[A-Za-z]+\s+(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd)\b",
            re.IGNORECASE,
        ),
        "[ADDRESS_REDACTED]",
    ),
]

# Pattern categories collapse onto these user-facing PII types.
PII_TYPE_BY_CATEGORY: dict[str, str] = {
    "email": "email",
    "phone_intl": "phone",
    "phone": "phone",
    "phone_local": "phone",
    "ssn": "ssn",
    "credit_card": "credit_card",
    "ip_address": "ip_address",
    "address": "address",
}


class PIIRedactor:
    """
    Detects and redacts PII from text content.

    ``categories`` restricts the active patterns (all of them by default) and
    ``tokens`` overrides the replacement token per category, which is how the
    chat logger gets its short ``[EMAIL]`` / ``[PHONE]`` markers.
    """

    def __init__(
        self,
        enabled: bool = True,
        categories: Optional[list[str]] = None,
        tokens: Optional[dict[str, str]] = None,
    ):
        self._enabled = enabled
        wanted = set(categories) if categories is not None else None
        overrides = tokens or {}
        self._total_redaction_passes = 0
        self._total_redacted_items = 0
        self._lock = threading.Lock()

        self._active_patterns = [
            (name, pattern, overrides.get(name, replacement))
            for name, pattern, replacement in PII_PATTERNS
            if wanted is None or name in wanted
        ]

        logger.debug(
            "pii_redactor.initialized",
            enabled=enabled,
            active_patterns=len(self._active_patterns),
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _substitute(self, name: str, pattern: re.Pattern, replacement: str, text: str) -> tuple[str, int]:
        if name != "credit_card":
            return pattern.subn(replacement, text)

        # Luhn check keeps random digit runs (order numbers, timestamps) intact.
        def _cc_replacer(m: re.Match) -> str:
            digits = "".join(c for c in m.group() if c.isdigit())
            if self._luhn_check(digits):
                return replacement
            return m.group()

        redacted = pattern.sub(_cc_replacer, text)
        hits = sum(
            1 for m in pattern.finditer(text)
            if self._luhn_check("".join(c for c in m.group() if c.isdigit()))
        )
        return redacted, hits

    def redact(self, text: str) -> str:
        """
        Redact PII from the given text.

        Returns the original text unchanged when redaction is disabled.
        """
        if not self._enabled or not text:
            return text

        result = text
        items_this_call = 0
        for name, pattern, replacement in self._active_patterns:
            result, count = self._substitute(name, pattern, replacement, result)
            items_this_call += count

        if result != text:
            with self._lock:
                self._total_redaction_passes += 1
                self._total_redacted_items += items_this_call
            logger.debug("pii_redactor.redacted", original_length=len(text), items=items_this_call)

        return result

    def scan(self, text: str) -> RedactionResult:
        """
        Scan text for PII without mutating it.

        Runs regardless of the ``enabled`` flag.
        """
        if not text:
            return RedactionResult(original_length=0, redacted_length=0, redactions_made=0)

        redactions = 0
        categories: list[str] = []
        redacted = text

        for name, pattern, replacement in self._active_patterns:
            redacted, count = self._substitute(name, pattern, replacement, redacted)
            if count > 0:
                redactions += count
                categories.append(name)

        return RedactionResult(
            original_length=len(text),
            redacted_length=len(redacted),
            redactions_made=redactions,
            categories_found=categories,
        )

    def detect_pii_types(self, text: str) -> list[str]:
        """Return the distinct PII types found in *text*, in detection order."""
        found: list[str] = []
        for category in self.scan(text).categories_found:
            pii_type = PII_TYPE_BY_CATEGORY.get(category, category)
            if pii_type not in found:
                found.append(pii_type)
        return found

    @staticmethod
    def _luhn_check(digits: str) -> bool:
        """Validate a digit string with the Luhn algorithm."""
        if not digits or not digits.isdigit():
            return False
        total = 0
        for i, ch in enumerate(reversed(digits)):
            n = int(ch)
            if i % 2 == 1:
                n *= 2
                if n > 9:
                    n -= 9
            total += n
        return total % 10 == 0

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                "enabled": self._enabled,
                "total_passes": self._total_redaction_passes,
                "total_items_redacted": self._total_redacted_items,
                "active_patterns": len(self._active_patterns),
            }


_DEFAULT_REDACTOR: Optional[PIIRedactor] = None


def default_redactor() -> PIIRedactor:
    """Shared all-category redactor used by PII intent detection."""
    global _DEFAULT_REDACTOR  # noqa: PLW0603
    if _DEFAULT_REDACTOR is None:
        _DEFAULT_REDACTOR = PIIRedactor()
    return _DEFAULT_REDACTOR


def contains_pii(text: str) -> bool:
    return default_redactor().scan(text).has_pii
