"""Read models returned by the dependency and hierarchy engines."""

from enum import StrEnum

from pydantic import BaseModel, Field

from taskweave.models.tasks import (
    DependencyType,
    IssueType,
    TaskDependency,
    TaskPriority,
    TaskStatus,
)


class BlockingTask(BaseModel):
    """A neighbor in the blocking graph."""

    task_id: str
    task_key: str
    title: str
    status: TaskStatus
    type: DependencyType


class BlockingInfo(BaseModel):
    """Whether a task can start, and what stands in its way."""

    task_id: str
    is_blocked: bool
    blocked_by: list[BlockingTask] = Field(default_factory=list)
    blocking: list[BlockingTask] = Field(default_factory=list)
    can_start: bool
    reason: str | None = None


class TaskDependencies(BaseModel):
    """All edges touching a task, grouped by direction."""

    task_id: str
    blocking: list[TaskDependency] = Field(default_factory=list)
    blocked_by: list[TaskDependency] = Field(default_factory=list)
    related_to: list[TaskDependency] = Field(default_factory=list)


class SubtaskSummary(BaseModel):
    """Aggregate over a parent's direct children."""

    parent_task_id: str
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    todo: int = 0
    completion_percentage: int = 0
    estimated_hours: float = 0.0
    logged_hours: float = 0.0
    remaining_hours: float = 0.0


class TreeTask(BaseModel):
    """Task fields shown on a tree node."""

    id: str
    key: str
    title: str
    status: TaskStatus
    issue_type: IssueType
    priority: TaskPriority
    estimated_hours: float | None = None


class TaskTreeNode(BaseModel):
    """A task plus its children, built down to a depth bound."""

    task: TreeTask
    children: list["TaskTreeNode"] = Field(default_factory=list)
    depth: int
    has_children: bool
    completion_percentage: int


class DependencyNode(BaseModel):
    task_id: str
    task_key: str
    title: str
    status: TaskStatus
    project_id: str | None = None
    level: int = 0
    is_blocked: bool = False
    blocked_by: list[str] = Field(default_factory=list)
    blocking: list[str] = Field(default_factory=list)


class DependencyEdge(BaseModel):
    """Edge drawn from the blocking task to the task it holds up."""

    id: str
    from_task_id: str
    to_task_id: str
    type: DependencyType
    weight: int = 1


class DependencyGraph(BaseModel):
    project_id: str
    nodes: list[DependencyNode] = Field(default_factory=list)
    edges: list[DependencyEdge] = Field(default_factory=list)
    cycles: list[list[str]] = Field(default_factory=list)


class ImpactType(StrEnum):
    DIRECT = "DIRECT"
    INDIRECT = "INDIRECT"


class ImpactedTask(BaseModel):
    task_id: str
    task_key: str
    title: str
    impact_type: ImpactType
    impact_level: int


class ImpactAnalysis(BaseModel):
    """Tasks held up, directly or transitively, by one task."""

    task_id: str
    impacted_tasks: list[ImpactedTask] = Field(default_factory=list)
    critical_path: list[str] = Field(default_factory=list)
    total_impacted_tasks: int = 0
    max_impact_level: int = 0


class DependencyStatusFilter(StrEnum):
    """ACTIVE edges still block; RESOLVED edges point at finished work."""

    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    ALL = "ALL"


class BulkOperation(StrEnum):
    CREATE = "CREATE"
    DELETE = "DELETE"


class BulkDependencyItem(BaseModel):
    dependent_task_id: str
    blocking_task_id: str
    type: DependencyType = DependencyType.BLOCKS


class BulkDependencySuccess(BaseModel):
    dependent_task_id: str
    blocking_task_id: str
    dependency_id: str | None = None


class BulkDependencyFailure(BaseModel):
    dependent_task_id: str
    blocking_task_id: str
    error: str


class BulkDependencyResult(BaseModel):
    successful: list[BulkDependencySuccess] = Field(default_factory=list)
    failed: list[BulkDependencyFailure] = Field(default_factory=list)
    circular_dependencies: list[list[str]] = Field(default_factory=list)
