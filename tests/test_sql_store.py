"""Tests for the relational store, run against SQLite through aiosqlite."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import select

from taskweave.db import ActivityLogEntry, init_db
from taskweave.db import models as tables
from taskweave.engine import Engine, build_engine
from taskweave.errors import (
    CircularDependencyError,
    HierarchyValidationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from taskweave.models import (
    ActivityEvent,
    BulkDependencyItem,
    BulkOperation,
    DependencyType,
    IssueType,
    Project,
    ProjectRole,
    Task,
    TaskStatus,
    TransitionRule,
    WorkflowType,
)
from taskweave.store import SqlTaskStore

_BASE_TIME = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskweave.db'}")
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def sql_store(session_factory: async_sessionmaker[AsyncSession]) -> SqlTaskStore:
    store = SqlTaskStore(session_factory)
    await store.add_project(Project(id="proj-web", key="WEB", name="Website"))
    return store


@pytest.fixture
def sql_engine(sql_store: SqlTaskStore) -> Engine:
    return build_engine(sql_store)


class _Seeder:
    """Adds tasks with strictly increasing creation times."""

    def __init__(self, store: SqlTaskStore) -> None:
        self.store = store
        self.count = 0

    async def task(self, title: str | None = None, **fields: object) -> Task:
        self.count += 1
        n = self.count
        fields.setdefault("project_id", "proj-web")
        return await self.store.add_task(
            Task(
                id=f"task-{n}",
                key=f"WEB-{n}",
                title=title or f"Task {n}",
                created_at=_BASE_TIME + timedelta(seconds=n),
                **fields,  # type: ignore[arg-type]
            )
        )


@pytest.fixture
def seed(sql_store: SqlTaskStore) -> _Seeder:
    return _Seeder(sql_store)


async def _activity_rows(factory: async_sessionmaker[AsyncSession]) -> list[ActivityLogEntry]:
    async with factory() as session:
        result = await session.execute(
            select(ActivityLogEntry).order_by(ActivityLogEntry.created_at)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())


# =============================================================================
# Timestamps
# =============================================================================


class TestSqlTimestamps:
    """Rows are written with timezone-aware UTC timestamps."""

    @pytest.mark.asyncio
    async def test_task_created_at_round_trips(
        self, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        task = await seed.task()

        stored = await sql_store.get_task(task.id)

        assert stored.created_at == _BASE_TIME + timedelta(seconds=1)
        assert stored.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_default_timestamps_written(
        self, sql_store: SqlTaskStore, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        before = datetime.now(UTC)
        await sql_store.add_project(Project(id="proj-ops", key="OPS"))

        async with session_factory() as session:
            row = await session.get(tables.Project, "proj-ops")

        assert row is not None
        assert row.created_at.replace(tzinfo=UTC) >= before.replace(microsecond=0)


# =============================================================================
# Dependencies
# =============================================================================


class TestSqlDependencies:
    """Dependency operations persisted through SQLModel tables."""

    @pytest.mark.asyncio
    async def test_create_and_read_back(self, sql_engine: Engine, seed: _Seeder) -> None:
        api = await seed.task("Build API")
        schema = await seed.task("Write schema")

        dep = await sql_engine.dependencies.create_dependency(api.id, schema.id)

        deps = await sql_engine.dependencies.get_task_dependencies(api.id)
        assert [d.id for d in deps.blocked_by] == [dep.id]
        assert deps.blocked_by[0].blocking_task.title == "Write schema"

        info = await sql_engine.dependencies.get_blocking_info(api.id)
        assert info.is_blocked is True
        assert info.reason == "Blocked by: Write schema"

    @pytest.mark.asyncio
    async def test_cycle_rejected_and_nothing_written(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        a, b, c = await seed.task(), await seed.task(), await seed.task()
        await sql_engine.dependencies.create_dependency(a.id, b.id)
        await sql_engine.dependencies.create_dependency(b.id, c.id)

        with pytest.raises(CircularDependencyError) as exc_info:
            await sql_engine.dependencies.create_dependency(c.id, a.id)

        assert exc_info.value.path == [c.id, a.id, b.id, c.id]
        assert len(await sql_store.list_dependencies()) == 2

    @pytest.mark.asyncio
    async def test_duplicate_rejected(self, sql_engine: Engine, seed: _Seeder) -> None:
        a, b = await seed.task(), await seed.task()
        await sql_engine.dependencies.create_dependency(a.id, b.id, DependencyType.RELATES_TO)

        with pytest.raises(ValidationError, match="already exists"):
            await sql_engine.dependencies.create_dependency(a.id, b.id, DependencyType.RELATES_TO)

    @pytest.mark.asyncio
    async def test_delete_twice(self, sql_engine: Engine, seed: _Seeder) -> None:
        a, b = await seed.task(), await seed.task()
        dep = await sql_engine.dependencies.create_dependency(a.id, b.id)

        await sql_engine.dependencies.delete_dependency(dep.id)
        with pytest.raises(NotFoundError):
            await sql_engine.dependencies.delete_dependency(dep.id)

    @pytest.mark.asyncio
    async def test_activity_rows_written(
        self,
        sql_engine: Engine,
        seed: _Seeder,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        a, b = await seed.task(), await seed.task()
        dep = await sql_engine.dependencies.create_dependency(a.id, b.id, actor_id="user-1")
        await sql_engine.dependencies.delete_dependency(dep.id, actor_id="user-1")

        rows = await _activity_rows(session_factory)

        assert [r.action for r in rows] == ["DEPENDENCY_ADDED", "DEPENDENCY_REMOVED"]
        assert rows[0].task_id == a.id
        assert rows[0].actor_id == "user-1"
        assert rows[0].payload["blocking_task_id"] == b.id
        assert rows[0].payload["dependency_id"] == dep.id


class TestSqlSubtasks:
    @pytest.mark.asyncio
    async def test_logged_hours_roll_up(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        parent = await seed.task()
        done = await seed.task(
            parent_id=parent.id, status=TaskStatus.COMPLETED, estimated_hours=4.0
        )
        await seed.task(parent_id=parent.id, status=TaskStatus.PAUSED, estimated_hours=2.0)
        await sql_store.log_hours(done.id, 1.5, user_id="user-1")
        await sql_store.log_hours(done.id, 1.0)

        summary = await sql_engine.dependencies.get_subtask_summary(parent.id)

        assert summary.total == 2
        assert summary.completed == 1
        assert summary.in_progress == 1
        assert summary.completion_percentage == 50
        assert summary.estimated_hours == 6.0
        assert summary.logged_hours == 2.5
        assert summary.remaining_hours == 3.5


# =============================================================================
# Hierarchy
# =============================================================================


class TestSqlHierarchy:
    @pytest.mark.asyncio
    async def test_move_and_tree(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        root = await seed.task()
        child = await seed.task()

        await sql_engine.hierarchy.move_task(child.id, root.id)

        assert (await sql_store.get_task(child.id)).parent_id == root.id
        assert await sql_engine.hierarchy.get_depth(child.id) == 1
        tree = await sql_engine.hierarchy.build_task_tree(root.id)
        assert [n.task.id for n in tree.children] == [child.id]

    @pytest.mark.asyncio
    async def test_rejected_move_leaves_parent(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        root = await seed.task()
        child = await seed.task(parent_id=root.id)

        with pytest.raises(HierarchyValidationError):
            await sql_engine.hierarchy.move_task(root.id, child.id)

        assert (await sql_store.get_task(root.id)).parent_id is None


# =============================================================================
# Workflow
# =============================================================================


class TestSqlWorkflow:
    @pytest.mark.asyncio
    async def test_role_from_membership(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        task = await seed.task(status=TaskStatus.REVIEW)
        await sql_store.set_member_role("proj-web", "lead-1", ProjectRole.PROJECT_LEAD)

        updated = await sql_engine.transitions.change_status(
            task.id, TaskStatus.COMPLETED, actor_id="lead-1"
        )

        assert updated.status is TaskStatus.COMPLETED
        assert (await sql_store.get_task(task.id)).status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stored_scheme_rules(
        self, sql_engine: Engine, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        scheme_id = await sql_store.create_workflow_scheme(
            "Lab flow",
            [
                TransitionRule(
                    name="Ship",
                    from_status=TaskStatus.DRAFT,
                    to_status=TaskStatus.COMPLETED,
                    required_role=ProjectRole.DEVELOPER,
                ),
                TransitionRule(
                    name="Verify Fix",
                    from_status=TaskStatus.DRAFT,
                    to_status=TaskStatus.REVIEW,
                    issue_type=IssueType.BUG,
                ),
            ],
        )
        await sql_store.add_project(
            Project(id="proj-lab", key="LAB", workflow_type=WorkflowType.CUSTOM),
            workflow_scheme_id=scheme_id,
        )
        task = await seed.task(project_id="proj-lab")

        rules = await sql_store.list_workflow_rules("proj-lab", IssueType.TASK)
        assert [r.name for r in rules] == ["Ship"]

        with pytest.raises(InvalidTransitionError, match="or higher"):
            await sql_engine.transitions.change_status(
                task.id, TaskStatus.COMPLETED, role=ProjectRole.VIEWER
            )
        updated = await sql_engine.transitions.change_status(
            task.id, TaskStatus.COMPLETED, role=ProjectRole.PROJECT_ADMIN
        )
        assert updated.status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_project_without_scheme(self, sql_store: SqlTaskStore) -> None:
        assert await sql_store.list_workflow_rules("proj-web") is None


# =============================================================================
# Activity failures
# =============================================================================


class _ConflictingWriteSink:
    """Writes a row that cannot commit: the project id already exists."""

    def __init__(self, store: SqlTaskStore) -> None:
        self.store = store
        self.calls = 0

    async def record(self, event: ActivityEvent) -> None:
        self.calls += 1
        await self.store.add_project(Project(id="proj-web", key="DUP"))


class TestSqlActivityFailures:
    @pytest.mark.asyncio
    async def test_failed_audit_write_keeps_bulk_delete(
        self, sql_store: SqlTaskStore, seed: _Seeder
    ) -> None:
        a, b = await seed.task(), await seed.task()
        dep = await build_engine(sql_store).dependencies.create_dependency(a.id, b.id)
        sink = _ConflictingWriteSink(sql_store)
        engine = build_engine(sql_store, activity=sink)

        result = await engine.dependencies.bulk_dependency_operation(
            BulkOperation.DELETE,
            [BulkDependencyItem(dependent_task_id=a.id, blocking_task_id=b.id)],
        )

        assert [s.dependency_id for s in result.successful] == [dep.id]
        assert sink.calls == 1
        assert await sql_store.get_dependency(dep.id) is None
