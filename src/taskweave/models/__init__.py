"""Pydantic models for the Taskweave engine."""

from taskweave.models.activity import (
    ActivityAction,
    ActivityEvent,
    DependencyAdded,
    DependencyRemoved,
    StatusChanged,
    TaskMoved,
)
from taskweave.models.graph import (
    BlockingInfo,
    BlockingTask,
    BulkDependencyFailure,
    BulkDependencyItem,
    BulkDependencyResult,
    BulkDependencySuccess,
    BulkOperation,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DependencyStatusFilter,
    ImpactAnalysis,
    ImpactedTask,
    ImpactType,
    SubtaskSummary,
    TaskDependencies,
    TaskTreeNode,
    TreeTask,
)
from taskweave.models.tasks import (
    BLOCKING_DEPENDENCY_TYPES,
    DependencyType,
    IssueType,
    Project,
    ProjectRole,
    StatusCategory,
    Task,
    TaskDependency,
    TaskPriority,
    TaskStatus,
    TaskSummary,
    WorkflowType,
    utcnow,
)
from taskweave.models.workflow import TransitionRule, WorkflowDefinition

__all__ = [
    # Tasks
    "BLOCKING_DEPENDENCY_TYPES",
    "DependencyType",
    "IssueType",
    "Project",
    "ProjectRole",
    "StatusCategory",
    "Task",
    "TaskDependency",
    "TaskPriority",
    "TaskStatus",
    "TaskSummary",
    "WorkflowType",
    "utcnow",
    # Workflow
    "TransitionRule",
    "WorkflowDefinition",
    # Graph read models
    "BlockingInfo",
    "BlockingTask",
    "BulkDependencyFailure",
    "BulkDependencyItem",
    "BulkDependencyResult",
    "BulkDependencySuccess",
    "BulkOperation",
    "DependencyEdge",
    "DependencyGraph",
    "DependencyNode",
    "DependencyStatusFilter",
    "ImpactAnalysis",
    "ImpactType",
    "ImpactedTask",
    "SubtaskSummary",
    "TaskDependencies",
    "TaskTreeNode",
    "TreeTask",
    # Activity
    "ActivityAction",
    "ActivityEvent",
    "DependencyAdded",
    "DependencyRemoved",
    "StatusChanged",
    "TaskMoved",
]
