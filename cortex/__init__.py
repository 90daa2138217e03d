"""
Cortex: a cognitive layer for chat agents.

Tracks the emotional tone of a conversation, learns what each user cares
about, surfaces relevant content proactively, picks a model sized to the
task and routes messages to specialised faculties.
"""

__version__ = "0.1.0"
