"""Opt-in proactive notifications."""
