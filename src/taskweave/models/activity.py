"""Typed audit events for moves, transitions, and dependency changes.

Each action kind has its own record so the audit trail never carries an
untyped metadata blob. ``ActivityEvent`` is the discriminated union.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from taskweave.models.tasks import DependencyType, TaskStatus, utcnow


class ActivityAction(StrEnum):
    TASK_MOVED = "TASK_MOVED"
    STATUS_CHANGED = "STATUS_CHANGED"
    DEPENDENCY_ADDED = "DEPENDENCY_ADDED"
    DEPENDENCY_REMOVED = "DEPENDENCY_REMOVED"


class _ActivityBase(BaseModel):
    task_id: str
    actor_id: str | None = None
    occurred_at: datetime = Field(default_factory=utcnow)


class TaskMoved(_ActivityBase):
    action: Literal[ActivityAction.TASK_MOVED] = ActivityAction.TASK_MOVED
    previous_parent_id: str | None
    new_parent_id: str | None


class StatusChanged(_ActivityBase):
    action: Literal[ActivityAction.STATUS_CHANGED] = ActivityAction.STATUS_CHANGED
    previous_status: TaskStatus
    new_status: TaskStatus
    transition_name: str | None = None


class DependencyAdded(_ActivityBase):
    action: Literal[ActivityAction.DEPENDENCY_ADDED] = ActivityAction.DEPENDENCY_ADDED
    dependency_id: str
    blocking_task_id: str
    dependency_type: DependencyType


class DependencyRemoved(_ActivityBase):
    action: Literal[ActivityAction.DEPENDENCY_REMOVED] = ActivityAction.DEPENDENCY_REMOVED
    dependency_id: str
    blocking_task_id: str
    dependency_type: DependencyType


ActivityEvent = Annotated[
    TaskMoved | StatusChanged | DependencyAdded | DependencyRemoved,
    Field(discriminator="action"),
]
