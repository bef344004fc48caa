"""Task status changes.

Resolves a task's workflow (built-in table or the project's stored scheme)
and the actor's project role, validates the change, optionally refuses to
start a blocked task, and persists the new status in one transaction.
"""

from collections.abc import Iterable

import structlog

from taskweave.activity import ActivitySink, emit_activity
from taskweave.config import settings
from taskweave.errors import NotFoundError, ValidationError
from taskweave.graph.dependencies import DependencyGraphEngine
from taskweave.models import (
    ProjectRole,
    StatusChanged,
    Task,
    TaskStatus,
    TransitionRule,
    WorkflowType,
)
from taskweave.status import normalize_task_status
from taskweave.store.base import TaskStore
from taskweave.workflow.validator import TransitionValidator

log = structlog.get_logger()


def initial_status(assignee_ids: Iterable[str] | None = None) -> TaskStatus:
    """Status for a newly created task: ASSIGNED when it has assignees, else DRAFT."""
    return TaskStatus.ASSIGNED if assignee_ids and any(assignee_ids) else TaskStatus.DRAFT


class TaskTransitionService:
    """Applies validated status changes to tasks."""

    def __init__(
        self,
        store: TaskStore,
        validator: TransitionValidator,
        dependencies: DependencyGraphEngine,
        activity: ActivitySink | None = None,
        *,
        enforce_blocking_on_start: bool | None = None,
        default_workflow: WorkflowType | None = None,
    ) -> None:
        self._store = store
        self._validator = validator
        self._dependencies = dependencies
        self._activity = activity
        self.enforce_blocking_on_start = (
            settings.enforce_blocking_on_start
            if enforce_blocking_on_start is None
            else enforce_blocking_on_start
        )
        self.default_workflow = default_workflow or settings.default_workflow

    async def _require_task(self, task_id: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _workflow_for(self, task: Task) -> tuple[WorkflowType, list[TransitionRule] | None]:
        if task.project_id is None:
            return self.default_workflow, None
        project = await self._store.get_project(task.project_id)
        if project is None:
            raise NotFoundError("Project", task.project_id)
        if project.workflow_type is WorkflowType.CUSTOM:
            rules = await self._store.list_workflow_rules(project.id, task.issue_type)
            return project.workflow_type, rules
        return project.workflow_type, None

    async def _resolve_role(
        self,
        task: Task,
        actor_id: str | None,
        role: ProjectRole | None,
    ) -> ProjectRole | None:
        if role is not None or actor_id is None or task.project_id is None:
            return role
        return await self._store.get_member_role(task.project_id, actor_id)

    async def change_status(
        self,
        task_id: str,
        to_status: TaskStatus | str,
        *,
        actor_id: str | None = None,
        role: ProjectRole | None = None,
    ) -> Task:
        """Move a task to ``to_status`` if its workflow and the actor's role allow it.

        ``role`` overrides the membership lookup for ``actor_id``. Setting
        the current status again is a no-op.

        Raises:
            ValidationError: Unknown status, or starting a task that is still blocked.
            NotFoundError: The task or its project is missing.
            InvalidTransitionError: No rule permits the change for this role.
        """
        target = normalize_task_status(to_status)
        if target is None:
            raise ValidationError(
                f"Unknown task status: {to_status}",
                details={"status": str(to_status)},
            )

        async with self._store.transaction():
            task = await self._require_task(task_id)
            previous = task.status
            if previous == target:
                return task

            workflow_type, custom_rules = await self._workflow_for(task)
            acting_role = await self._resolve_role(task, actor_id, role)
            rule = self._validator.validate_transition(
                workflow_type, previous, target, acting_role, custom_rules=custom_rules
            )

            if self.enforce_blocking_on_start and target is TaskStatus.IN_PROGRESS:
                info = await self._dependencies.get_blocking_info(task_id)
                if info.is_blocked:
                    raise ValidationError(
                        info.reason or "Task is blocked",
                        details={"blocked_by": [b.task_id for b in info.blocked_by]},
                    )

            updated = await self._store.set_task_status(task_id, target)

        log.info(
            "Task status changed",
            task_id=task_id,
            from_status=previous.value,
            to_status=target.value,
            workflow=workflow_type.value,
            transition=rule.name if rule else None,
        )
        await emit_activity(
            self._activity,
            StatusChanged(
                task_id=task_id,
                actor_id=actor_id,
                previous_status=previous,
                new_status=target,
                transition_name=rule.name if rule else None,
            ),
        )
        return updated

    async def available_transitions(
        self,
        task_id: str,
        *,
        actor_id: str | None = None,
        role: ProjectRole | None = None,
    ) -> list[TransitionRule]:
        """Transitions the actor could take from the task's current status."""
        async with self._store.snapshot():
            task = await self._require_task(task_id)
            workflow_type, custom_rules = await self._workflow_for(task)
            acting_role = await self._resolve_role(task, actor_id, role)

        if workflow_type is WorkflowType.CUSTOM and custom_rules is not None:
            return self._validator.available_custom_transitions(
                custom_rules, task.status, acting_role
            )
        return self._validator.get_available_transitions(workflow_type, task.status, acting_role)
