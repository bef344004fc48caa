"""Abstract persistence interface consumed by the engine.

The engine never creates tasks; it reads tasks, projects, and memberships,
and mutates only parent pointers, statuses, and dependency edges.

Two context managers delimit units of work:

- ``transaction()`` wraps a check-then-act sequence. Everything inside
  commits together or not at all, and concurrent transactions touching the
  task graph are serialized, so two individually acyclic inserts cannot
  interleave into a cycle.
- ``snapshot()`` wraps a read-only call so all of its reads observe one
  consistent view of the store.

Both nest: an inner block joins the outer one.
"""

from collections.abc import Iterable
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from taskweave.models import (
    ActivityEvent,
    DependencyType,
    IssueType,
    Project,
    ProjectRole,
    Task,
    TaskDependency,
    TaskStatus,
    TransitionRule,
)


class TaskStore(Protocol):
    """Storage operations the engine issues."""

    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    def snapshot(self) -> AbstractAsyncContextManager[None]: ...

    # Tasks
    async def get_task(self, task_id: str) -> Task | None: ...

    async def get_tasks(self, task_ids: Iterable[str]) -> dict[str, Task]: ...

    async def list_children(self, parent_id: str) -> list[Task]:
        """Direct children ordered by creation time."""
        ...

    async def list_project_tasks(self, project_id: str) -> list[Task]:
        """All tasks in a project ordered by creation time."""
        ...

    async def set_task_parent(self, task_id: str, parent_id: str | None) -> Task: ...

    async def set_task_status(self, task_id: str, status: TaskStatus) -> Task: ...

    # Projects
    async def get_project(self, project_id: str) -> Project | None: ...

    async def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None: ...

    # Dependencies
    async def get_dependency(self, dependency_id: str) -> TaskDependency | None: ...

    async def find_dependency(
        self,
        dependent_task_id: str,
        blocking_task_id: str,
        dependency_type: DependencyType,
    ) -> TaskDependency | None: ...

    async def list_dependencies(
        self,
        *,
        dependent_task_id: str | None = None,
        blocking_task_id: str | None = None,
        touching_task_ids: Iterable[str] | None = None,
        types: Iterable[DependencyType] | None = None,
    ) -> list[TaskDependency]:
        """Edges matching every given filter.

        ``touching_task_ids`` matches edges with either endpoint in the set.
        """
        ...

    async def add_dependency(self, dependency: TaskDependency) -> TaskDependency: ...

    async def delete_dependency(self, dependency_id: str) -> bool:
        """Remove an edge; False when it did not exist."""
        ...

    # Workflow schemes
    async def list_workflow_rules(
        self,
        project_id: str,
        issue_type: IssueType | None = None,
    ) -> list[TransitionRule] | None:
        """Stored transition rules for a CUSTOM project.

        None means the project has no workflow scheme attached.
        """
        ...

    # Audit
    async def record_activity(self, event: ActivityEvent) -> None: ...
