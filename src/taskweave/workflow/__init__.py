"""Workflow tables, transition validation, and status changes."""

from taskweave.workflow.registry import (
    STANDARD_TRANSITIONS,
    WorkflowRegistry,
    build_default_registry,
    describe_workflow,
)
from taskweave.workflow.transitions import TaskTransitionService, initial_status
from taskweave.workflow.validator import TransitionValidator

__all__ = [
    "STANDARD_TRANSITIONS",
    "TaskTransitionService",
    "TransitionValidator",
    "WorkflowRegistry",
    "build_default_registry",
    "describe_workflow",
    "initial_status",
]
