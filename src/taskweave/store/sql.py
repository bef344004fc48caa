"""Relational task store over SQLModel tables.

Each ``transaction()`` opens one session and one database transaction; all
store calls inside it share that session through a context variable. On
PostgreSQL the transaction first takes a transaction-scoped advisory lock,
so concurrent graph mutations (cycle check + insert, depth check + re-parent)
serialize instead of interleaving.
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

import structlog
from pydantic import TypeAdapter
from sqlalchemy import func, or_, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import col, select

from taskweave.db import models as db
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

# Arbitrary 64-bit key shared by every process touching the task graph
GRAPH_LOCK_KEY = 0x7461736B_67726168

_activity_adapter: TypeAdapter[ActivityEvent] = TypeAdapter(ActivityEvent)


def _aware(value: datetime) -> datetime:
    # SQLite returns timestamps without their offset
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _to_task(row: db.Task, logged_hours: float = 0.0) -> Task:
    return Task(
        id=row.id,
        key=row.key,
        title=row.title,
        status=row.status,
        project_id=row.project_id,
        parent_id=row.parent_task_id,
        issue_type=row.issue_type,
        priority=row.priority,
        assignee_ids=list(row.assignee_ids or []),
        estimated_hours=row.estimated_hours,
        logged_hours=logged_hours,
        created_at=_aware(row.created_at),
    )


def _to_dependency(row: db.TaskDependency) -> TaskDependency:
    return TaskDependency(
        id=row.id,
        dependent_task_id=row.dependent_task_id,
        blocking_task_id=row.blocking_task_id,
        type=row.type,
        created_at=_aware(row.created_at),
    )


def _to_project(row: db.Project) -> Project:
    return Project(id=row.id, key=row.key, name=row.name, workflow_type=row.workflow_type)


class SqlTaskStore:
    """``TaskStore`` backed by an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._current: ContextVar[AsyncSession | None] = ContextVar(
            f"taskweave_sql_session_{id(self)}", default=None
        )

    # -------------------------------------------------------------------------
    # Units of work
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._current.get() is not None:
            yield
            return

        async with self._session_factory() as session, session.begin():
            await self._acquire_graph_lock(session)
            token = self._current.set(session)
            try:
                yield
            finally:
                self._current.reset(token)

    @asynccontextmanager
    async def snapshot(self) -> AsyncIterator[None]:
        if self._current.get() is not None:
            yield
            return

        async with self._session_factory() as session:
            if session.get_bind().dialect.name == "postgresql":
                await session.connection(
                    execution_options={"isolation_level": "REPEATABLE READ"}
                )
            token = self._current.set(session)
            try:
                yield
            finally:
                self._current.reset(token)
                await session.rollback()

    async def _acquire_graph_lock(self, session: AsyncSession) -> None:
        if session.get_bind().dialect.name != "postgresql":
            return
        await session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"), {"key": GRAPH_LOCK_KEY}
        )

    @asynccontextmanager
    async def _session(self, *, write: bool = False) -> AsyncIterator[AsyncSession]:
        current = self._current.get()
        if current is not None:
            yield current
            return

        async with self._session_factory() as session:
            if write:
                async with session.begin():
                    yield session
            else:
                yield session

    # -------------------------------------------------------------------------
    # Seeding (not part of the engine-facing protocol)
    # -------------------------------------------------------------------------

    async def add_project(
        self,
        project: Project,
        *,
        workflow_scheme_id: str | None = None,
    ) -> Project:
        async with self._session(write=True) as session:
            session.add(
                db.Project(
                    id=project.id,
                    key=project.key,
                    name=project.name,
                    workflow_type=project.workflow_type,
                    workflow_scheme_id=workflow_scheme_id,
                )
            )
        return project

    async def add_task(self, task: Task) -> Task:
        async with self._session(write=True) as session:
            session.add(
                db.Task(
                    id=task.id,
                    key=task.key,
                    title=task.title,
                    status=task.status,
                    priority=task.priority,
                    issue_type=task.issue_type,
                    project_id=task.project_id,
                    parent_task_id=task.parent_id,
                    assignee_ids=list(task.assignee_ids),
                    estimated_hours=task.estimated_hours,
                    created_at=task.created_at,
                )
            )
        return task

    async def set_member_role(self, project_id: str, user_id: str, role: ProjectRole) -> None:
        async with self._session(write=True) as session:
            session.add(db.ProjectMember(project_id=project_id, user_id=user_id, role=role))

    async def log_hours(self, task_id: str, hours: float, *, user_id: str | None = None) -> None:
        async with self._session(write=True) as session:
            session.add(db.TimeEntry(task_id=task_id, hours=hours, user_id=user_id))

    async def create_workflow_scheme(
        self,
        name: str,
        rules: Iterable[TransitionRule],
        *,
        description: str | None = None,
    ) -> str:
        """Persist a scheme and its rules; returns the scheme id."""
        async with self._session(write=True) as session:
            scheme = db.WorkflowScheme(name=name, description=description)
            session.add(scheme)
            await session.flush()
            for rule in rules:
                session.add(
                    db.WorkflowTransition(
                        scheme_id=scheme.id,
                        name=rule.name,
                        from_status=rule.from_status,
                        to_status=rule.to_status,
                        issue_type=rule.issue_type,
                        required_role=rule.required_role,
                    )
                )
            return scheme.id

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def _logged_hours(self, session: AsyncSession, task_ids: list[str]) -> dict[str, float]:
        if not task_ids:
            return {}
        result = await session.execute(
            select(db.TimeEntry.task_id, func.sum(db.TimeEntry.hours))
            .where(col(db.TimeEntry.task_id).in_(task_ids))
            .group_by(db.TimeEntry.task_id)
        )
        return {task_id: float(total or 0.0) for task_id, total in result.all()}

    async def _hydrate(self, session: AsyncSession, rows: list[db.Task]) -> list[Task]:
        hours = await self._logged_hours(session, [row.id for row in rows])
        return [_to_task(row, hours.get(row.id, 0.0)) for row in rows]

    async def get_task(self, task_id: str) -> Task | None:
        async with self._session() as session:
            row = await session.get(db.Task, task_id)
            if row is None:
                return None
            return (await self._hydrate(session, [row]))[0]

    async def get_tasks(self, task_ids: Iterable[str]) -> dict[str, Task]:
        ids = list(dict.fromkeys(task_ids))
        if not ids:
            return {}
        async with self._session() as session:
            result = await session.execute(select(db.Task).where(col(db.Task.id).in_(ids)))
            tasks = await self._hydrate(session, list(result.scalars().all()))
        return {task.id: task for task in tasks}

    async def list_children(self, parent_id: str) -> list[Task]:
        async with self._session() as session:
            result = await session.execute(
                select(db.Task)
                .where(col(db.Task.parent_task_id) == parent_id)
                .order_by(col(db.Task.created_at), col(db.Task.key))
            )
            return await self._hydrate(session, list(result.scalars().all()))

    async def list_project_tasks(self, project_id: str) -> list[Task]:
        async with self._session() as session:
            result = await session.execute(
                select(db.Task)
                .where(col(db.Task.project_id) == project_id)
                .order_by(col(db.Task.created_at), col(db.Task.key))
            )
            return await self._hydrate(session, list(result.scalars().all()))

    async def _update_task(self, task_id: str, **values: object) -> Task:
        async with self._session(write=True) as session:
            row = await session.get(db.Task, task_id)
            if row is None:
                raise NotFoundError("Task", task_id)
            for name, value in values.items():
                setattr(row, name, value)
            session.add(row)
            await session.flush()
            return (await self._hydrate(session, [row]))[0]

    async def set_task_parent(self, task_id: str, parent_id: str | None) -> Task:
        return await self._update_task(task_id, parent_task_id=parent_id)

    async def set_task_status(self, task_id: str, status: TaskStatus) -> Task:
        return await self._update_task(task_id, status=status)

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    async def get_project(self, project_id: str) -> Project | None:
        async with self._session() as session:
            row = await session.get(db.Project, project_id)
            return _to_project(row) if row else None

    async def get_member_role(self, project_id: str, user_id: str) -> ProjectRole | None:
        async with self._session() as session:
            result = await session.execute(
                select(db.ProjectMember.role).where(
                    col(db.ProjectMember.project_id) == project_id,
                    col(db.ProjectMember.user_id) == user_id,
                )
            )
            return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    async def get_dependency(self, dependency_id: str) -> TaskDependency | None:
        async with self._session() as session:
            row = await session.get(db.TaskDependency, dependency_id)
            return _to_dependency(row) if row else None

    async def find_dependency(
        self,
        dependent_task_id: str,
        blocking_task_id: str,
        dependency_type: DependencyType,
    ) -> TaskDependency | None:
        async with self._session() as session:
            result = await session.execute(
                select(db.TaskDependency).where(
                    col(db.TaskDependency.dependent_task_id) == dependent_task_id,
                    col(db.TaskDependency.blocking_task_id) == blocking_task_id,
                    col(db.TaskDependency.type) == dependency_type,
                )
            )
            row = result.scalars().first()
            return _to_dependency(row) if row else None

    async def list_dependencies(
        self,
        *,
        dependent_task_id: str | None = None,
        blocking_task_id: str | None = None,
        touching_task_ids: Iterable[str] | None = None,
        types: Iterable[DependencyType] | None = None,
    ) -> list[TaskDependency]:
        stmt = select(db.TaskDependency)
        if dependent_task_id is not None:
            stmt = stmt.where(col(db.TaskDependency.dependent_task_id) == dependent_task_id)
        if blocking_task_id is not None:
            stmt = stmt.where(col(db.TaskDependency.blocking_task_id) == blocking_task_id)
        if touching_task_ids is not None:
            ids = list(touching_task_ids)
            if not ids:
                return []
            stmt = stmt.where(
                or_(
                    col(db.TaskDependency.dependent_task_id).in_(ids),
                    col(db.TaskDependency.blocking_task_id).in_(ids),
                )
            )
        if types is not None:
            stmt = stmt.where(col(db.TaskDependency.type).in_(list(types)))
        stmt = stmt.order_by(col(db.TaskDependency.created_at))

        async with self._session() as session:
            result = await session.execute(stmt)
            return [_to_dependency(row) for row in result.scalars().all()]

    async def add_dependency(self, dependency: TaskDependency) -> TaskDependency:
        async with self._session(write=True) as session:
            row = db.TaskDependency(
                id=dependency.id,
                dependent_task_id=dependency.dependent_task_id,
                blocking_task_id=dependency.blocking_task_id,
                type=dependency.type,
                created_at=dependency.created_at,
            )
            session.add(row)
            await session.flush()
            return _to_dependency(row)

    async def delete_dependency(self, dependency_id: str) -> bool:
        async with self._session(write=True) as session:
            row = await session.get(db.TaskDependency, dependency_id)
            if row is None:
                return False
            await session.delete(row)
            await session.flush()
            return True

    # -------------------------------------------------------------------------
    # Workflow schemes and audit
    # -------------------------------------------------------------------------

    async def list_workflow_rules(
        self,
        project_id: str,
        issue_type: IssueType | None = None,
    ) -> list[TransitionRule] | None:
        async with self._session() as session:
            project = await session.get(db.Project, project_id)
            if project is None or project.workflow_scheme_id is None:
                return None
            stmt = (
                select(db.WorkflowTransition)
                .where(col(db.WorkflowTransition.scheme_id) == project.workflow_scheme_id)
                .order_by(col(db.WorkflowTransition.created_at))
            )
            if issue_type is not None:
                stmt = stmt.where(
                    or_(
                        col(db.WorkflowTransition.issue_type).is_(None),
                        col(db.WorkflowTransition.issue_type) == issue_type,
                    )
                )
            else:
                stmt = stmt.where(col(db.WorkflowTransition.issue_type).is_(None))
            result = await session.execute(stmt)
            return [
                TransitionRule(
                    name=row.name,
                    from_status=row.from_status,
                    to_status=row.to_status,
                    required_role=row.required_role,
                    issue_type=row.issue_type,
                )
                for row in result.scalars().all()
            ]

    async def record_activity(self, event: ActivityEvent) -> None:
        payload = _activity_adapter.dump_python(event, mode="json")
        async with self._session(write=True) as session:
            session.add(
                db.ActivityLogEntry(
                    task_id=event.task_id,
                    actor_id=event.actor_id,
                    action=event.action.value,
                    payload=payload,
                    created_at=event.occurred_at,
                )
            )
        log.debug("activity_recorded", action=event.action.value, task_id=event.task_id)
