"""Dependency graph and task hierarchy."""

from taskweave.graph.cycles import find_cycle_path, find_cycles
from taskweave.graph.dependencies import DependencyGraphEngine, summarize_subtasks
from taskweave.graph.hierarchy import HierarchyManager

__all__ = [
    "DependencyGraphEngine",
    "HierarchyManager",
    "find_cycle_path",
    "find_cycles",
    "summarize_subtasks",
]
