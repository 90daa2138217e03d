"""Tool registry, executor and the tools behind the faculties."""
