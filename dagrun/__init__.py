"""Run tasks with dependencies as a directed acyclic graph, from code or YAML files."""

__version__ = "0.2.0"