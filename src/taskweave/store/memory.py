"""In-process task store.

Used by tests and by embedders that keep the graph in memory. Transactions
hold an asyncio lock for their duration and roll back to a snapshot of
every collection when the block raises.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field

import structlog

from taskweave.errors import NotFoundError
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

log = structlog.get_logger()


@dataclass
class _State:
    tasks: dict[str, Task] = field(default_factory=dict)
    projects: dict[str, Project] = field(default_factory=dict)
    members: dict[tuple[str, str], ProjectRole] = field(default_factory=dict)
    dependencies: dict[str, TaskDependency] = field(default_factory=dict)
    workflow_rules: dict[str, list[TransitionRule]] = field(default_factory=dict)
    activity: list[ActivityEvent] = field(default_factory=list)

    def copy(self) -> "_State":
        # Stored models are replaced, never mutated, so shallow copies suffice
        return _State(
            tasks=dict(self.tasks),
            projects=dict(self.projects),
            members=dict(self.members),
            dependencies=dict(self.dependencies),
            workflow_rules={k: list(v) for k, v in self.workflow_rules.items()},
            activity=list(self.activity),
        )


class InMemoryTaskStore:
    """Dictionary-backed implementation of ``TaskStore``."""

    def __init__(self) -> None:
        self._state = _State()
        self._lock = asyncio.Lock()
        self._in_transaction: ContextVar[bool] = ContextVar(
            f"taskweave_memory_tx_{id(self)}", default=False
        )

    # -------------------------------------------------------------------------
    # Units of work
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._in_transaction.get():
            yield
            return

        async with self._lock:
            saved = self._state.copy()
            token = self._in_transaction.set(True)
            try:
                yield
            except BaseException:
                self._state = saved
                log.debug("memory_store_rollback")
                raise
            finally:
                self._in_transaction.reset(token)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        # No awaits happen between reads, so every read already sees one state
        yield

    # -------------------------------------------------------------------------
    # Seeding (not part of the engine-facing protocol)
    # -------------------------------------------------------------------------

    def add_project(self, project: Project) -> Project:
        self._state.projects[project.id] = project
        return project

    def add_task(self, task: Task) -> Task:
        self._state.tasks[task.id] = task
        return task

    def set_member_role(self, project_id: str, user_id: str, role: ProjectRole) -> None:
        self._state.members[(project_id, user_id)] = role

    def set_workflow_rules(self, project_id: str, rules: Iterable[TransitionRule]) -> None:
        self._state.workflow_rules[project_id] = list(rules)

    @property
    def activity(self) -> list[ActivityEvent]:
        return list(self._state.activity)

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def get_task(self, task_id: str) -> Task | None:
        return self._state.tasks.get(task_id)

    async def get_tasks(self, task_ids: Iterable[str]) -> dict[str, Task]:
        tasks = self._state.tasks
        return {task_id: tasks[task_id] for task_id in task_ids if task_id in tasks}

    async def list_children(self, parent_id: str) -> list[Task]:
        children = [t for t in self._state.tasks.values() if t.parent_id == parent_id]
        return sorted(children, key=lambda t: t.created_at)

    async def list_project_tasks(self, project_id: str) -> list[Task]:
        tasks = [t for t in self._state.tasks.values() if t.project_id == project_id]
        return sorted(tasks, key=lambda t: t.created_at)

    async def set_task_parent(self, task_id: str, parent_id: str | None) -> Task:
        return self._replace_task(task_id, parent_id=parent_id)

    async def set_task_status(self, task_id: str, status: TaskStatus) -> Task:
        return self._replace_task(task_id, status=status)

    def _replace_task(self, task_id: str, **updates: object) -> Task:
        task = self._state.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        updated = task.model_copy(update=updates)
        self._state.tasks[task_id] = updated
        return updated

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    async def get_project(self, project_id: str) -> Project | None:
        return self._state.projects.get(project_id)

    async def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None:
        return self._state.members.get((project_id, user_id))

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    async def get_dependency(self, dependency_id: str) -> TaskDependency | None:
        return self._state.dependencies.get(dependency_id)

    async def find_dependency(
        self,
        dependent_task_id: str,
        blocking_task_id: str,
        dependency_type: DependencyType,
    ) -> TaskDependency | None:
        for dep in self._state.dependencies.values():
            if (
                dep.dependent_task_id == dependent_task_id
                and dep.blocking_task_id == blocking_task_id
                and dep.type == dependency_type
            ):
                return dep
        return None

    async def list_dependencies(
        self,
        *,
        dependent_task_id: str | None = None,
        blocking_task_id: str | None = None,
        touching_task_ids: Iterable[str] | None = None,
        types: Iterable[DependencyType] | None = None,
    ) -> list[TaskDependency]:
        touching = set(touching_task_ids) if touching_task_ids is not None else None
        wanted_types = set(types) if types is not None else None

        results = []
        for dep in self._state.dependencies.values():
            if dependent_task_id is not None and dep.dependent_task_id != dependent_task_id:
                continue
            if blocking_task_id is not None and dep.blocking_task_id != blocking_task_id:
                continue
            if touching is not None and not (
                dep.dependent_task_id in touching or dep.blocking_task_id in touching
            ):
                continue
            if wanted_types is not None and dep.type not in wanted_types:
                continue
            results.append(dep)
        return sorted(results, key=lambda d: d.created_at)

    async def add_dependency(self, dependency: TaskDependency) -> TaskDependency:
        stored = dependency.model_copy(update={"dependent_task": None, "blocking_task": None})
        self._state.dependencies[stored.id] = stored
        return stored

    async def delete_dependency(self, dependency_id: str) -> bool:
        return self._state.dependencies.pop(dependency_id, None) is not None

    # -------------------------------------------------------------------------
    # Workflow schemes and audit
    # -------------------------------------------------------------------------

    async def list_workflow_rules(
        self,
        project_id: str,
        issue_type: IssueType | None = None,
    ) -> list[TransitionRule] | None:
        rules = self._state.workflow_rules.get(project_id)
        if rules is None:
            return None
        return [r for r in rules if r.issue_type is None or r.issue_type == issue_type]

    async def record_activity(self, event: ActivityEvent) -> None:
        self._state.activity.append(event)
