"""Model providers and task-based model selection."""
