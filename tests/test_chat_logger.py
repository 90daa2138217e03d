"""
Tests for cortex.learning.chat_logger: privacy-gated interaction history.

Covers:
- Topic extraction (stop words, short words, frequency order)
- Redaction per privacy level (off, minimal, standard, full)
- Per-user cap, history limit, counts and clearing
- Disabled learning
"""

from __future__ import annotations

import pytest

from cortex.config import LearningConfig, PrivacyLevel
from cortex.learning.chat_logger import ChatLogger, extract_topics, redact_for_privacy


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _logger(**overrides) -> ChatLogger:
    return ChatLogger(LearningConfig(**overrides))


class TestExtractTopics:
    def test_drops_stop_words_and_short_words(self):
        assert extract_topics("Tell me about the AI and ML") == ["tell"]

    def test_orders_by_frequency(self):
        topics = extract_topics("python tests python docs python tests")
        assert topics == ["python", "tests", "docs"]

    def test_ties_keep_first_occurrence(self):
        assert extract_topics("zebra apple mango") == ["zebra", "apple", "mango"]

    def test_limit(self):
        text = " ".join(f"word{i}" for i in range(20))
        assert len(extract_topics(text)) == 10
        assert len(extract_topics(text, limit=3)) == 3

    def test_empty(self):
        assert extract_topics("") == []


class TestRedactForPrivacy:
    def test_off_stores_nothing(self):
        assert redact_for_privacy("secret", PrivacyLevel.OFF) == ""

    def test_minimal_truncates(self):
        text = "x" * 80
        assert redact_for_privacy(text, PrivacyLevel.MINIMAL) == "x" * 50 + "..."

    def test_minimal_keeps_short_text(self):
        assert redact_for_privacy("short", PrivacyLevel.MINIMAL) == "short"

    def test_standard_masks_email_and_phone(self):
        redacted = redact_for_privacy("mail bob@example.com or call 555-123-4567", PrivacyLevel.STANDARD)
        assert redacted == "mail [EMAIL] or call [PHONE]"

    @pytest.mark.parametrize(
        "text",
        ["call 555-1234 tonight", "call +44 20 7946 0958 tonight", "call 555.123.4567 tonight"],
    )
    def test_standard_masks_every_phone_format(self, text):
        assert redact_for_privacy(text, PrivacyLevel.STANDARD) == "call [PHONE] tonight"

    def test_full_is_verbatim(self):
        text = "mail bob@example.com"
        assert redact_for_privacy(text, PrivacyLevel.FULL) == text


class TestLogInteraction:
    def test_logs_and_extracts_topics(self):
        log = _logger(privacy_level=PrivacyLevel.FULL)
        interaction = log.log_interaction("u1", "Tell me about machine learning", "Sure")
        assert interaction is not None
        assert interaction.id.startswith("interaction-")
        assert "machine" in interaction.topics
        assert log.get_interaction_count("u1") == 1

    def test_explicit_topics_win(self):
        log = _logger()
        interaction = log.log_interaction("u1", "anything at all", "", topics=["custom"])
        assert interaction.topics == ["custom"]

    def test_topic_tracking_disabled(self):
        log = _logger(track_topics=False)
        assert log.log_interaction("u1", "machine learning", "").topics == []

    def test_standard_level_redacts_stored_text(self):
        log = _logger(privacy_level=PrivacyLevel.STANDARD)
        log.log_interaction("u1", "reach me at bob@example.com", "ok")
        assert log.get_chat_history("u1")[0].input == "reach me at [EMAIL]"

    def test_standard_level_redacts_local_phone(self):
        log = _logger(privacy_level=PrivacyLevel.STANDARD)
        log.log_interaction("u1", "call 555-1234", "ok")
        assert log.get_chat_history("u1")[0].input == "call [PHONE]"

    def test_privacy_off_stores_nothing(self):
        log = _logger(privacy_level=PrivacyLevel.OFF)
        assert log.log_interaction("u1", "hello", "hi") is None
        assert log.get_interaction_count("u1") == 0

    def test_disabled_stores_nothing(self):
        log = _logger(enabled=False)
        assert log.log_interaction("u1", "hello", "hi") is None
        assert log.get_chat_history("u1") == []

    def test_cap_drops_oldest(self):
        log = _logger(max_interactions_per_user=3, privacy_level=PrivacyLevel.FULL)
        for i in range(5):
            log.log_interaction("u1", f"message {i}", "")
        history = log.get_chat_history("u1")
        assert [h.input for h in history] == ["message 2", "message 3", "message 4"]

    def test_channel_recorded(self):
        log = _logger()
        assert log.log_interaction("u1", "hello", "", channel="slack").channel == "slack"


class TestHistory:
    def test_limit_returns_newest(self):
        log = _logger(privacy_level=PrivacyLevel.FULL)
        for i in range(4):
            log.log_interaction("u1", f"message {i}", "")
        assert [h.input for h in log.get_chat_history("u1", limit=2)] == ["message 2", "message 3"]

    @pytest.mark.parametrize("limit", [0, -1, None])
    def test_non_positive_limit_returns_everything(self, limit):
        log = _logger()
        log.log_interaction("u1", "hello", "")
        log.log_interaction("u1", "again", "")
        assert len(log.get_chat_history("u1", limit=limit)) == 2

    def test_returns_copies(self):
        log = _logger()
        log.log_interaction("u1", "hello", "")
        log.get_chat_history("u1")[0].topics.append("tampered")
        assert "tampered" not in log.get_chat_history("u1")[0].topics

    def test_unknown_user(self):
        assert _logger().get_chat_history("nobody") == []

    def test_clear_user(self):
        log = _logger()
        log.log_interaction("u1", "hello", "")
        assert log.clear_chat_history("u1") is True
        assert log.clear_chat_history("u1") is False

    def test_clear_all(self):
        log = _logger()
        log.log_interaction("u1", "hello", "")
        log.log_interaction("u2", "hello", "")
        log.clear_all()
        assert log.get_interaction_count("u1") == 0
        assert log.get_interaction_count("u2") == 0


class TestConfigure:
    def test_configure_merges(self):
        log = _logger()
        config = log.configure(privacy_level="minimal")
        assert config.privacy_level is PrivacyLevel.MINIMAL
        assert config.enabled is True
