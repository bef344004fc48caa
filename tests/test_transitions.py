"""Tests for task status changes through the transition service."""

from collections.abc import Callable

import pytest

from taskweave.engine import Engine
from taskweave.errors import InvalidTransitionError, NotFoundError, ValidationError
from taskweave.graph import DependencyGraphEngine
from taskweave.models import (
    ActivityAction,
    IssueType,
    Project,
    ProjectRole,
    Task,
    TaskStatus,
    TransitionRule,
    WorkflowType,
)
from taskweave.store import InMemoryTaskStore
from taskweave.workflow import (
    TaskTransitionService,
    TransitionValidator,
    build_default_registry,
    initial_status,
)

TaskFactory = Callable[..., Task]


@pytest.fixture
def custom_project(store: InMemoryTaskStore) -> Project:
    return store.add_project(
        Project(id="proj-lab", key="LAB", name="Lab", workflow_type=WorkflowType.CUSTOM)
    )


def _service(store: InMemoryTaskStore, **kwargs) -> TaskTransitionService:
    validator = TransitionValidator(build_default_registry())
    return TaskTransitionService(store, validator, DependencyGraphEngine(store), **kwargs)


# =============================================================================
# Built-in workflows
# =============================================================================


class TestChangeStatus:
    """Tests for change_status against the built-in tables."""

    @pytest.mark.asyncio
    async def test_start_work_from_draft(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        """A developer may start a draft task; no role is needed."""
        task = make_task()
        store.set_member_role("proj-web", "dev-1", ProjectRole.DEVELOPER)

        updated = await engine.transitions.change_status(
            task.id, TaskStatus.IN_PROGRESS, actor_id="dev-1"
        )

        assert updated.status is TaskStatus.IN_PROGRESS
        assert (await store.get_task(task.id)).status is TaskStatus.IN_PROGRESS
        [event] = store.activity
        assert event.action is ActivityAction.STATUS_CHANGED
        assert event.previous_status is TaskStatus.DRAFT
        assert event.new_status is TaskStatus.IN_PROGRESS
        assert event.transition_name == "Start Work"
        assert event.actor_id == "dev-1"

    @pytest.mark.asyncio
    async def test_disallowed_pair_leaves_status(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task()

        with pytest.raises(InvalidTransitionError):
            await engine.transitions.change_status(
                task.id, TaskStatus.COMPLETED, role=ProjectRole.PROJECT_ADMIN
            )

        assert (await store.get_task(task.id)).status is TaskStatus.DRAFT
        assert store.activity == []

    @pytest.mark.asyncio
    async def test_role_from_membership(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task(status=TaskStatus.REVIEW)
        store.set_member_role("proj-web", "dev-1", ProjectRole.DEVELOPER)
        store.set_member_role("proj-web", "lead-1", ProjectRole.PROJECT_LEAD)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await engine.transitions.change_status(task.id, "COMPLETED", actor_id="dev-1")
        assert exc_info.value.required_role == ProjectRole.PROJECT_LEAD

        updated = await engine.transitions.change_status(task.id, "COMPLETED", actor_id="lead-1")
        assert updated.status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_explicit_role_overrides_membership(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task(status=TaskStatus.REVIEW)
        store.set_member_role("proj-web", "dev-1", ProjectRole.DEVELOPER)

        updated = await engine.transitions.change_status(
            task.id, TaskStatus.COMPLETED, actor_id="dev-1", role=ProjectRole.PROJECT_LEAD
        )
        assert updated.status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_non_member_has_no_role(self, engine: Engine, make_task: TaskFactory) -> None:
        task = make_task(status=TaskStatus.REVIEW)
        with pytest.raises(InvalidTransitionError):
            await engine.transitions.change_status(
                task.id, TaskStatus.COMPLETED, actor_id="stranger"
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("alias", "expected"),
        [
            ("in review", TaskStatus.REVIEW),
            ("Paused", TaskStatus.PAUSED),
            ("qa", TaskStatus.REVIEW),
        ],
    )
    async def test_status_aliases(
        self, engine: Engine, make_task: TaskFactory, alias: str, expected: TaskStatus
    ) -> None:
        task = make_task(status=TaskStatus.IN_PROGRESS)
        updated = await engine.transitions.change_status(task.id, alias)
        assert updated.status is expected

    @pytest.mark.asyncio
    async def test_unknown_status(self, engine: Engine, make_task: TaskFactory) -> None:
        with pytest.raises(ValidationError, match="Unknown task status"):
            await engine.transitions.change_status(make_task().id, "SHIPPED")

    @pytest.mark.asyncio
    async def test_same_status_is_noop(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task(status=TaskStatus.REJECTED)

        updated = await engine.transitions.change_status(task.id, TaskStatus.REJECTED)

        assert updated.status is TaskStatus.REJECTED
        assert store.activity == []

    @pytest.mark.asyncio
    async def test_unknown_task(self, engine: Engine) -> None:
        with pytest.raises(NotFoundError):
            await engine.transitions.change_status("ghost", TaskStatus.ASSIGNED)

    @pytest.mark.asyncio
    async def test_task_without_project_uses_default_workflow(
        self, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task(project_id=None)
        service = _service(store, default_workflow=WorkflowType.CUSTOM)

        updated = await service.change_status(task.id, TaskStatus.COMPLETED)
        assert updated.status is TaskStatus.COMPLETED


class TestBlockedStart:
    """Tests for refusing to start a task that is still blocked."""

    @pytest.mark.asyncio
    async def test_blocked_task_cannot_start(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        blocker = make_task("Write schema")
        task = make_task("Build API", status=TaskStatus.ASSIGNED)
        await engine.dependencies.create_dependency(task.id, blocker.id)

        with pytest.raises(ValidationError) as exc_info:
            await engine.transitions.change_status(task.id, TaskStatus.IN_PROGRESS)

        assert exc_info.value.message == "Blocked by: Write schema"
        assert exc_info.value.details["blocked_by"] == [blocker.id]
        assert (await store.get_task(task.id)).status is TaskStatus.ASSIGNED

    @pytest.mark.asyncio
    async def test_completed_blocker_releases(self, engine: Engine, make_task: TaskFactory) -> None:
        blocker = make_task(status=TaskStatus.COMPLETED)
        task = make_task(status=TaskStatus.ASSIGNED)
        await engine.dependencies.create_dependency(task.id, blocker.id)

        updated = await engine.transitions.change_status(task.id, TaskStatus.IN_PROGRESS)
        assert updated.status is TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_enforcement_can_be_disabled(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        blocker = make_task()
        task = make_task(status=TaskStatus.ASSIGNED)
        await engine.dependencies.create_dependency(task.id, blocker.id)
        service = _service(store, enforce_blocking_on_start=False)

        updated = await service.change_status(task.id, TaskStatus.IN_PROGRESS)
        assert updated.status is TaskStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_blocked_task_may_move_elsewhere(
        self, engine: Engine, make_task: TaskFactory
    ) -> None:
        blocker = make_task()
        task = make_task()
        await engine.dependencies.create_dependency(task.id, blocker.id)

        updated = await engine.transitions.change_status(task.id, TaskStatus.REJECTED)
        assert updated.status is TaskStatus.REJECTED


# =============================================================================
# CUSTOM workflows
# =============================================================================


class TestCustomWorkflow:
    """Tests for projects whose rules live in a stored scheme."""

    @pytest.mark.asyncio
    async def test_no_scheme_allows_any_change(
        self, engine: Engine, make_task: TaskFactory, custom_project: Project
    ) -> None:
        task = make_task(project_id=custom_project.id, status=TaskStatus.REJECTED)

        updated = await engine.transitions.change_status(task.id, TaskStatus.COMPLETED)
        assert updated.status is TaskStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_stored_rules_apply_with_rank(
        self,
        engine: Engine,
        store: InMemoryTaskStore,
        make_task: TaskFactory,
        custom_project: Project,
    ) -> None:
        store.set_workflow_rules(
            custom_project.id,
            [
                TransitionRule(
                    name="Ship",
                    from_status=TaskStatus.DRAFT,
                    to_status=TaskStatus.COMPLETED,
                    required_role=ProjectRole.DEVELOPER,
                )
            ],
        )
        task = make_task(project_id=custom_project.id)

        with pytest.raises(InvalidTransitionError, match="not defined"):
            await engine.transitions.change_status(
                task.id, TaskStatus.REVIEW, role=ProjectRole.PROJECT_ADMIN
            )
        with pytest.raises(InvalidTransitionError, match="or higher"):
            await engine.transitions.change_status(
                task.id, TaskStatus.COMPLETED, role=ProjectRole.REPORTER
            )

        updated = await engine.transitions.change_status(
            task.id, TaskStatus.COMPLETED, role=ProjectRole.PROJECT_LEAD
        )
        assert updated.status is TaskStatus.COMPLETED
        assert store.activity[-1].transition_name == "Ship"

    @pytest.mark.asyncio
    async def test_issue_type_scoped_rules(
        self,
        engine: Engine,
        store: InMemoryTaskStore,
        make_task: TaskFactory,
        custom_project: Project,
    ) -> None:
        store.set_workflow_rules(
            custom_project.id,
            [
                TransitionRule(
                    name="Verify Fix",
                    from_status=TaskStatus.DRAFT,
                    to_status=TaskStatus.REVIEW,
                    issue_type=IssueType.BUG,
                )
            ],
        )
        bug = make_task(project_id=custom_project.id, issue_type=IssueType.BUG)
        story = make_task(project_id=custom_project.id, issue_type=IssueType.STORY)

        updated = await engine.transitions.change_status(bug.id, "REVIEW")
        assert updated.status is TaskStatus.REVIEW
        with pytest.raises(InvalidTransitionError):
            await engine.transitions.change_status(story.id, "REVIEW")


# =============================================================================
# Available transitions and initial status
# =============================================================================


class TestAvailableTransitions:
    @pytest.mark.asyncio
    async def test_built_in(
        self, engine: Engine, store: InMemoryTaskStore, make_task: TaskFactory
    ) -> None:
        task = make_task(status=TaskStatus.REVIEW)
        store.set_member_role("proj-web", "lead-1", ProjectRole.PROJECT_LEAD)

        rules = await engine.transitions.available_transitions(task.id, actor_id="lead-1")
        assert [r.name for r in rules] == ["Approve", "Request Changes", "Reject Review"]

    @pytest.mark.asyncio
    async def test_custom_without_scheme_is_empty(
        self, engine: Engine, make_task: TaskFactory, custom_project: Project
    ) -> None:
        task = make_task(project_id=custom_project.id)
        assert await engine.transitions.available_transitions(task.id) == []

    @pytest.mark.asyncio
    async def test_custom_with_scheme(
        self,
        engine: Engine,
        store: InMemoryTaskStore,
        make_task: TaskFactory,
        custom_project: Project,
    ) -> None:
        rule = TransitionRule(name="Go", from_status=TaskStatus.DRAFT, to_status=TaskStatus.PAUSED)
        store.set_workflow_rules(custom_project.id, [rule])
        task = make_task(project_id=custom_project.id)

        assert await engine.transitions.available_transitions(task.id) == [rule]


class TestInitialStatus:
    def test_unassigned_is_draft(self) -> None:
        assert initial_status() is TaskStatus.DRAFT
        assert initial_status([]) is TaskStatus.DRAFT

    def test_assigned(self) -> None:
        assert initial_status(["user-1"]) is TaskStatus.ASSIGNED
