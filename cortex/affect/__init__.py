"""Emotion analysis and per-session emotional context."""
