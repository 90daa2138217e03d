"""Chat logging, preference learning and recommendations."""
