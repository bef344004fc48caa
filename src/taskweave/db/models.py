"""SQLModel tables backing the task store.

Architecture:
- Project / ProjectMember: projects, their workflow selection, and roles
- Task: work items with a self-referencing parent pointer
- TaskDependency: directed edges, unique per (dependent, blocking, type)
- WorkflowScheme / WorkflowTransition: stored rules for CUSTOM workflows
- TimeEntry: logged effort, read for subtask rollups
- ActivityLogEntry: serialized audit events
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Index,
    Text,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

from taskweave.models import (
    DependencyType,
    IssueType,
    ProjectRole,
    TaskPriority,
    TaskStatus,
    WorkflowType,
    utcnow,
)


def _new_id() -> str:
    return str(uuid4())


def _enum_column(enum_cls: type, name: str, *, nullable: bool = False, **kwargs: Any) -> Column:
    return Column(
        Enum(enum_cls, name=name, values_callable=lambda enum: [e.value for e in enum]),
        nullable=nullable,
        **kwargs,
    )


# =============================================================================
# Base Model
# =============================================================================


class TimestampMixin(SQLModel):
    """Mixin for created/updated timestamps."""

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        description="When this record was created",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        description="When this record was last updated",
        sa_column_kwargs={"onupdate": utcnow},
    )


# =============================================================================
# Workflow schemes
# =============================================================================


class WorkflowScheme(TimestampMixin, table=True):
    """A named set of stored transitions used by CUSTOM projects."""

    __tablename__ = "workflow_schemes"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    name: str = Field(max_length=255)
    description: str | None = Field(default=None, sa_type=Text)
    is_default: bool = Field(default=False)


class WorkflowTransition(TimestampMixin, table=True):
    """One stored transition rule."""

    __tablename__ = "workflow_transitions"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    scheme_id: str = Field(foreign_key="workflow_schemes.id", index=True, max_length=64)
    name: str = Field(max_length=255)
    from_status: TaskStatus = Field(sa_column=_enum_column(TaskStatus, "taskstatus"))
    to_status: TaskStatus = Field(sa_column=_enum_column(TaskStatus, "taskstatus"))
    issue_type: IssueType | None = Field(
        default=None,
        sa_column=_enum_column(IssueType, "issuetype", nullable=True),
    )
    required_role: ProjectRole | None = Field(
        default=None,
        sa_column=_enum_column(ProjectRole, "projectrole", nullable=True),
    )


# =============================================================================
# Projects
# =============================================================================


class Project(TimestampMixin, table=True):
    """A project; selects the workflow its tasks follow."""

    __tablename__ = "projects"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    key: str = Field(max_length=16, unique=True, index=True)
    name: str = Field(default="", max_length=255)
    workflow_type: WorkflowType = Field(
        default=WorkflowType.BASIC,
        sa_column=_enum_column(WorkflowType, "workflowtype"),
    )
    workflow_scheme_id: str | None = Field(
        default=None,
        foreign_key="workflow_schemes.id",
        max_length=64,
        description="Stored scheme consulted when workflow_type is CUSTOM",
    )

    def __repr__(self) -> str:
        return f"<Project {self.key} workflow={self.workflow_type}>"


class ProjectMember(TimestampMixin, table=True):
    """A user's role within a project."""

    __tablename__ = "project_members"
    __table_args__ = (
        Index("ix_project_members_project_user_unique", "project_id", "user_id", unique=True),
    )

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=64)
    user_id: str = Field(index=True, max_length=64)
    role: ProjectRole = Field(
        default=ProjectRole.DEVELOPER,
        sa_column=_enum_column(ProjectRole, "projectrole"),
    )

    def __repr__(self) -> str:
        return f"<ProjectMember project={self.project_id} user={self.user_id} role={self.role}>"


# =============================================================================
# Tasks and dependencies
# =============================================================================


class Task(TimestampMixin, table=True):
    """A work item."""

    __tablename__ = "tasks"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    key: str = Field(max_length=32, unique=True, index=True)
    title: str = Field(max_length=500)
    status: TaskStatus = Field(
        default=TaskStatus.DRAFT,
        sa_column=_enum_column(TaskStatus, "taskstatus", index=True),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=_enum_column(TaskPriority, "taskpriority"),
    )
    issue_type: IssueType = Field(
        default=IssueType.TASK,
        sa_column=_enum_column(IssueType, "issuetype"),
    )
    project_id: str | None = Field(
        default=None, foreign_key="projects.id", index=True, max_length=64
    )
    parent_task_id: str | None = Field(
        default=None, foreign_key="tasks.id", index=True, max_length=64
    )
    assignee_ids: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )
    estimated_hours: float | None = Field(default=None, ge=0)

    def __repr__(self) -> str:
        return f"<Task {self.key} status={self.status}>"


class TaskDependency(SQLModel, table=True):
    """Edge meaning ``dependent_task_id`` waits on ``blocking_task_id``."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        UniqueConstraint(
            "dependent_task_id",
            "blocking_task_id",
            "type",
            name="uq_task_dependencies_edge",
        ),
        CheckConstraint("dependent_task_id <> blocking_task_id", name="ck_no_self_dependency"),
    )

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    dependent_task_id: str = Field(foreign_key="tasks.id", index=True, max_length=64)
    blocking_task_id: str = Field(foreign_key="tasks.id", index=True, max_length=64)
    type: DependencyType = Field(
        default=DependencyType.BLOCKS,
        sa_column=_enum_column(DependencyType, "dependencytype"),
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class TimeEntry(SQLModel, table=True):
    """Hours logged against a task."""

    __tablename__ = "time_entries"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    task_id: str = Field(foreign_key="tasks.id", index=True, max_length=64)
    user_id: str | None = Field(default=None, max_length=64)
    hours: float = Field(ge=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ActivityLogEntry(SQLModel, table=True):
    """Serialized audit event."""

    __tablename__ = "activity_log"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=64)
    task_id: str = Field(index=True, max_length=64)
    actor_id: str | None = Field(default=None, max_length=64)
    action: str = Field(max_length=64, index=True)
    payload: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
