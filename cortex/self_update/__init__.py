"""Self-update proposals and their approval pipeline."""
