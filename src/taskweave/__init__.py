"""Taskweave - task relationship and transition engine.

Dependency graph with cycle detection, parent/child hierarchy, and
per-project workflow state machines over an abstract task store.
"""

__version__ = "0.1.0"

from taskweave.engine import Engine, build_engine
from taskweave.errors import (
    CircularDependencyError,
    HierarchyRule,
    HierarchyValidationError,
    InvalidTransitionError,
    NotFoundError,
    TaskweaveError,
    ValidationError,
)

__all__ = [
    "CircularDependencyError",
    "Engine",
    "HierarchyRule",
    "HierarchyValidationError",
    "InvalidTransitionError",
    "NotFoundError",
    "TaskweaveError",
    "ValidationError",
    "__version__",
    "build_engine",
]
