"""Task, project, and dependency models."""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TaskStatus(StrEnum):
    """Lifecycle status of a task."""

    DRAFT = "DRAFT"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    REVIEW = "REVIEW"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class StatusCategory(StrEnum):
    """Board column a status is displayed under."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"


class TaskPriority(StrEnum):
    """Task priority levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class IssueType(StrEnum):
    """Kind of work item."""

    TASK = "TASK"
    BUG = "BUG"
    STORY = "STORY"


class DependencyType(StrEnum):
    """Relationship between a dependent task and a blocking task.

    BLOCKS and IS_BLOCKED_BY both mean the dependent task cannot proceed
    until the blocking task is done. RELATES_TO never blocks.
    """

    BLOCKS = "BLOCKS"
    IS_BLOCKED_BY = "IS_BLOCKED_BY"
    RELATES_TO = "RELATES_TO"

    @property
    def is_blocking(self) -> bool:
        return self is not DependencyType.RELATES_TO


BLOCKING_DEPENDENCY_TYPES = frozenset({DependencyType.BLOCKS, DependencyType.IS_BLOCKED_BY})


class WorkflowType(StrEnum):
    """Workflow a project uses to govern status transitions."""

    BASIC = "BASIC"
    AGILE = "AGILE"
    BUG_TRACKING = "BUG_TRACKING"
    CUSTOM = "CUSTOM"


class ProjectRole(StrEnum):
    """Role of a user within a project, ranked by authority."""

    PROJECT_ADMIN = "PROJECT_ADMIN"
    PROJECT_LEAD = "PROJECT_LEAD"
    DEVELOPER = "DEVELOPER"
    REPORTER = "REPORTER"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        """Authority level; higher outranks lower."""
        return _ROLE_RANKS[self]


_ROLE_RANKS = {
    ProjectRole.VIEWER: 0,
    ProjectRole.REPORTER: 1,
    ProjectRole.DEVELOPER: 2,
    ProjectRole.PROJECT_LEAD: 3,
    ProjectRole.PROJECT_ADMIN: 4,
}


class Project(BaseModel):
    """A project that owns tasks and selects a workflow."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    key: str = Field(..., description="Short project key, e.g. WEB")
    name: str = ""
    workflow_type: WorkflowType = WorkflowType.BASIC


class Task(BaseModel):
    """A unit of work as seen by the engine.

    ``logged_hours`` is the sum of the task's time entries, read-only here.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    key: str = Field(..., description="Human-readable key, e.g. WEB-12")
    title: str
    status: TaskStatus = TaskStatus.DRAFT
    project_id: str | None = None
    parent_id: str | None = None
    issue_type: IssueType = IssueType.TASK
    priority: TaskPriority = TaskPriority.MEDIUM
    assignee_ids: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)
    logged_hours: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)

    def summary(self) -> "TaskSummary":
        return TaskSummary(
            id=self.id,
            key=self.key,
            title=self.title,
            status=self.status,
            project_id=self.project_id,
            priority=self.priority,
        )


class TaskSummary(BaseModel):
    """Denormalized task fields attached to dependency records."""

    id: str
    key: str
    title: str
    status: TaskStatus
    project_id: str | None = None
    priority: TaskPriority | None = None


class TaskDependency(BaseModel):
    """Directed edge: ``dependent_task_id`` waits on ``blocking_task_id``."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    dependent_task_id: str
    blocking_task_id: str
    type: DependencyType = DependencyType.BLOCKS
    created_at: datetime = Field(default_factory=utcnow)

    dependent_task: TaskSummary | None = None
    blocking_task: TaskSummary | None = None

    @property
    def is_blocking(self) -> bool:
        return self.type.is_blocking
