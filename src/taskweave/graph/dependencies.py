"""Dependency graph engine.

Creates and deletes dependency edges, answers blocking questions, and
builds the diagnostic views (project graph, impact analysis). Every
mutation runs inside one store transaction so the cycle check and the
insert cannot be separated by a concurrent writer; every read runs inside
one store snapshot.
"""

import math
from collections.abc import Iterable

import structlog

from taskweave.activity import ActivitySink, emit_activity
from taskweave.errors import CircularDependencyError, NotFoundError, TaskweaveError, ValidationError
from taskweave.graph.cycles import (
    blocking_digraph,
    build_adjacency,
    dependency_levels,
    downstream_levels,
    find_cycle_path,
    find_cycles,
    longest_chain,
)
from taskweave.models import (
    BLOCKING_DEPENDENCY_TYPES,
    BlockingInfo,
    BlockingTask,
    BulkDependencyFailure,
    BulkDependencyItem,
    BulkDependencyResult,
    BulkDependencySuccess,
    BulkOperation,
    DependencyAdded,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    DependencyRemoved,
    DependencyStatusFilter,
    DependencyType,
    ImpactAnalysis,
    ImpactedTask,
    ImpactType,
    StatusCategory,
    SubtaskSummary,
    Task,
    TaskDependencies,
    TaskDependency,
    TaskSummary,
)
from taskweave.status import is_terminal, status_category
from taskweave.store.base import TaskStore

log = structlog.get_logger()


def summarize_subtasks(parent_task_id: str, children: Iterable[Task]) -> SubtaskSummary:
    """Aggregate status counts and effort over a parent's direct children."""
    total = completed = in_progress = todo = 0
    estimated = logged = 0.0

    for child in children:
        total += 1
        category = status_category(child.status)
        if is_terminal(child.status):
            completed += 1
        elif category is StatusCategory.IN_PROGRESS:
            in_progress += 1
        elif category is StatusCategory.TODO:
            todo += 1
        estimated += child.estimated_hours or 0.0
        logged += child.logged_hours

    # Round half up, so 12.5% reports as 13
    percentage = math.floor(completed * 100 / total + 0.5) if total else 0

    return SubtaskSummary(
        parent_task_id=parent_task_id,
        total=total,
        completed=completed,
        in_progress=in_progress,
        todo=todo,
        completion_percentage=percentage,
        estimated_hours=estimated,
        logged_hours=logged,
        remaining_hours=max(0.0, estimated - logged),
    )


def _with_summaries(dep: TaskDependency, tasks: dict[str, Task]) -> TaskDependency:
    dependent = tasks.get(dep.dependent_task_id)
    blocking = tasks.get(dep.blocking_task_id)
    return dep.model_copy(
        update={
            "dependent_task": dependent.summary() if dependent else None,
            "blocking_task": blocking.summary() if blocking else None,
        }
    )


def _blocking_task(task: TaskSummary, dependency_type: DependencyType) -> BlockingTask:
    return BlockingTask(
        task_id=task.id,
        task_key=task.key,
        title=task.title,
        status=task.status,
        type=dependency_type,
    )


class DependencyGraphEngine:
    """Owns the dependency edges between tasks."""

    def __init__(self, store: TaskStore, activity: ActivitySink | None = None) -> None:
        self._store = store
        self._activity = activity

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require_task(self, task_id: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def _blocking_adjacency(self) -> dict[str, list[str]]:
        edges = await self._store.list_dependencies(types=BLOCKING_DEPENDENCY_TYPES)
        return build_adjacency(edges)

    async def _endpoint_tasks(self, deps: Iterable[TaskDependency]) -> dict[str, Task]:
        ids: list[str] = []
        for dep in deps:
            ids.extend((dep.dependent_task_id, dep.blocking_task_id))
        return await self._store.get_tasks(ids)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_dependency(
        self,
        dependent_task_id: str,
        blocking_task_id: str,
        dependency_type: DependencyType = DependencyType.BLOCKS,
        *,
        actor_id: str | None = None,
    ) -> TaskDependency:
        """Add an edge meaning ``dependent_task_id`` waits on ``blocking_task_id``.

        Raises:
            ValidationError: Self-dependency, or the same edge already exists.
            NotFoundError: Either task is missing.
            CircularDependencyError: The edge would close a cycle; carries the path.
        """
        if dependent_task_id == blocking_task_id:
            raise ValidationError(
                "A task cannot depend on itself",
                details={"task_id": dependent_task_id},
            )

        async with self._store.transaction():
            tasks = await self._store.get_tasks([dependent_task_id, blocking_task_id])
            for task_id in (dependent_task_id, blocking_task_id):
                if task_id not in tasks:
                    raise NotFoundError("Task", task_id)

            existing = await self._store.find_dependency(
                dependent_task_id, blocking_task_id, dependency_type
            )
            if existing is not None:
                raise ValidationError(
                    "Dependency already exists",
                    details={"dependency_id": existing.id, "type": dependency_type.value},
                )

            if dependency_type.is_blocking:
                path = find_cycle_path(
                    await self._blocking_adjacency(), dependent_task_id, blocking_task_id
                )
                if path is not None:
                    log.info(
                        "Rejected circular dependency",
                        dependent_task_id=dependent_task_id,
                        blocking_task_id=blocking_task_id,
                        path=path,
                    )
                    raise CircularDependencyError(path)

            stored = await self._store.add_dependency(
                TaskDependency(
                    dependent_task_id=dependent_task_id,
                    blocking_task_id=blocking_task_id,
                    type=dependency_type,
                )
            )

        log.info(
            "Dependency created",
            dependency_id=stored.id,
            dependent_task_id=dependent_task_id,
            blocking_task_id=blocking_task_id,
            type=dependency_type.value,
        )
        await emit_activity(
            self._activity,
            DependencyAdded(
                task_id=dependent_task_id,
                actor_id=actor_id,
                dependency_id=stored.id,
                blocking_task_id=blocking_task_id,
                dependency_type=dependency_type,
            ),
        )
        return _with_summaries(stored, tasks)

    async def delete_dependency(self, dependency_id: str, *, actor_id: str | None = None) -> None:
        """Remove an edge. A second delete of the same id raises NotFoundError."""
        async with self._store.transaction():
            dep = await self._delete_in_tx(dependency_id)
        await self._dependency_removed(dep, actor_id=actor_id)

    async def _delete_in_tx(self, dependency_id: str) -> TaskDependency:
        dep = await self._store.get_dependency(dependency_id)
        if dep is None or not await self._store.delete_dependency(dependency_id):
            raise NotFoundError("Dependency", dependency_id)
        return dep

    async def _dependency_removed(self, dep: TaskDependency, *, actor_id: str | None) -> None:
        log.info("Dependency deleted", dependency_id=dep.id)
        await emit_activity(
            self._activity,
            DependencyRemoved(
                task_id=dep.dependent_task_id,
                actor_id=actor_id,
                dependency_id=dep.id,
                blocking_task_id=dep.blocking_task_id,
                dependency_type=dep.type,
            ),
        )

    async def bulk_dependency_operation(
        self,
        operation: BulkOperation,
        items: Iterable[BulkDependencyItem],
        *,
        actor_id: str | None = None,
    ) -> BulkDependencyResult:
        """Apply each item as its own unit; one failure does not stop the rest."""
        result = BulkDependencyResult()

        for item in items:
            try:
                if operation is BulkOperation.CREATE:
                    dep = await self.create_dependency(
                        item.dependent_task_id,
                        item.blocking_task_id,
                        item.type,
                        actor_id=actor_id,
                    )
                    dependency_id = dep.id
                else:
                    dependency_id = await self._delete_matching(item, actor_id=actor_id)
            except CircularDependencyError as e:
                result.circular_dependencies.append(e.path)
                result.failed.append(
                    BulkDependencyFailure(
                        dependent_task_id=item.dependent_task_id,
                        blocking_task_id=item.blocking_task_id,
                        error=e.message,
                    )
                )
                continue
            except TaskweaveError as e:
                result.failed.append(
                    BulkDependencyFailure(
                        dependent_task_id=item.dependent_task_id,
                        blocking_task_id=item.blocking_task_id,
                        error=e.message,
                    )
                )
                continue

            result.successful.append(
                BulkDependencySuccess(
                    dependent_task_id=item.dependent_task_id,
                    blocking_task_id=item.blocking_task_id,
                    dependency_id=dependency_id,
                )
            )

        log.info(
            "Bulk dependency operation finished",
            operation=operation.value,
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return result

    async def _delete_matching(self, item: BulkDependencyItem, *, actor_id: str | None) -> str:
        async with self._store.transaction():
            match = await self._store.find_dependency(
                item.dependent_task_id, item.blocking_task_id, item.type
            )
            if match is None:
                raise NotFoundError(
                    "Dependency", f"{item.dependent_task_id} -> {item.blocking_task_id}"
                )
            dep = await self._delete_in_tx(match.id)
        await self._dependency_removed(dep, actor_id=actor_id)
        return dep.id

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_task_dependencies(self, task_id: str) -> TaskDependencies:
        """Edges touching a task: what it blocks, what blocks it, what it relates to."""
        async with self._store.snapshot():
            await self._require_task(task_id)
            deps = await self._store.list_dependencies(touching_task_ids=[task_id])
            tasks = await self._endpoint_tasks(deps)

        result = TaskDependencies(task_id=task_id)
        for dep in deps:
            enriched = _with_summaries(dep, tasks)
            if not dep.is_blocking:
                result.related_to.append(enriched)
            elif dep.blocking_task_id == task_id:
                result.blocking.append(enriched)
            else:
                result.blocked_by.append(enriched)
        return result

    async def get_blocking_info(self, task_id: str) -> BlockingInfo:
        """Whether a task can start.

        A task is blocked while any task it waits on (BLOCKS or IS_BLOCKED_BY)
        has not reached a terminal status.
        """
        deps = await self.get_task_dependencies(task_id)

        blocked_by = [
            _blocking_task(dep.blocking_task, dep.type)
            for dep in deps.blocked_by
            if dep.blocking_task is not None and not is_terminal(dep.blocking_task.status)
        ]
        blocking = [
            _blocking_task(dep.dependent_task, dep.type)
            for dep in deps.blocking
            if dep.dependent_task is not None
        ]

        is_blocked = bool(blocked_by)
        reason = None
        if is_blocked:
            reason = "Blocked by: " + ", ".join(t.title for t in blocked_by)

        return BlockingInfo(
            task_id=task_id,
            is_blocked=is_blocked,
            blocked_by=blocked_by,
            blocking=blocking,
            can_start=not is_blocked,
            reason=reason,
        )

    async def get_subtask_summary(self, parent_task_id: str) -> SubtaskSummary:
        async with self._store.snapshot():
            await self._require_task(parent_task_id)
            children = await self._store.list_children(parent_task_id)
        return summarize_subtasks(parent_task_id, children)

    async def list_dependencies(
        self,
        *,
        project_id: str | None = None,
        task_id: str | None = None,
        dependency_type: DependencyType | None = None,
        status: DependencyStatusFilter = DependencyStatusFilter.ALL,
    ) -> list[TaskDependency]:
        """Edges filtered by project, task, type, and blocking-task status.

        ACTIVE keeps edges whose blocking task is still open; RESOLVED keeps
        edges whose blocking task is terminal.
        """
        async with self._store.snapshot():
            touching: list[str] | None = None
            if project_id is not None:
                if await self._store.get_project(project_id) is None:
                    raise NotFoundError("Project", project_id)
                touching = [t.id for t in await self._store.list_project_tasks(project_id)]
            if task_id is not None:
                await self._require_task(task_id)
                touching = [task_id]

            deps = await self._store.list_dependencies(
                touching_task_ids=touching,
                types=[dependency_type] if dependency_type is not None else None,
            )
            tasks = await self._endpoint_tasks(deps)

        results = []
        for dep in deps:
            enriched = _with_summaries(dep, tasks)
            if project_id is not None and project_id not in {
                t.project_id for t in (enriched.dependent_task, enriched.blocking_task) if t
            }:
                continue
            if status is not DependencyStatusFilter.ALL:
                blocker = enriched.blocking_task
                resolved = blocker is not None and is_terminal(blocker.status)
                if (status is DependencyStatusFilter.RESOLVED) != resolved:
                    continue
            results.append(enriched)
        return results

    async def generate_dependency_graph(self, project_id: str) -> DependencyGraph:
        """Nodes, edges, and any cycles among one project's tasks.

        Cycles are enumerated for diagnostics; creation already refuses them.
        """
        async with self._store.snapshot():
            if await self._store.get_project(project_id) is None:
                raise NotFoundError("Project", project_id)
            tasks = await self._store.list_project_tasks(project_id)
            task_ids = [t.id for t in tasks]
            deps = await self._store.list_dependencies(touching_task_ids=task_ids)

        by_id = {t.id: t for t in tasks}
        internal = [
            d for d in deps if d.dependent_task_id in by_id and d.blocking_task_id in by_id
        ]
        graph = blocking_digraph(build_adjacency(internal), task_ids)
        levels = dependency_levels(graph)

        nodes = []
        for task in tasks:
            blocked_by = list(graph.predecessors(task.id))
            nodes.append(
                DependencyNode(
                    task_id=task.id,
                    task_key=task.key,
                    title=task.title,
                    status=task.status,
                    project_id=task.project_id,
                    level=levels.get(task.id, 0),
                    is_blocked=any(not is_terminal(by_id[b].status) for b in blocked_by),
                    blocked_by=blocked_by,
                    blocking=list(graph.successors(task.id)),
                )
            )

        edges = [
            DependencyEdge(
                id=d.id,
                from_task_id=d.blocking_task_id,
                to_task_id=d.dependent_task_id,
                type=d.type,
            )
            for d in internal
        ]

        cycles = find_cycles(graph)
        if cycles:
            log.warning("Dependency cycles present", project_id=project_id, cycles=cycles)

        return DependencyGraph(project_id=project_id, nodes=nodes, edges=edges, cycles=cycles)

    async def analyze_impact(self, task_id: str) -> ImpactAnalysis:
        """Tasks held up by ``task_id``, directly (level 1) or transitively."""
        async with self._store.snapshot():
            await self._require_task(task_id)
            graph = blocking_digraph(await self._blocking_adjacency())
            levels = downstream_levels(graph, task_id)
            tasks = await self._store.get_tasks(levels)

        impacted = [
            ImpactedTask(
                task_id=tid,
                task_key=tasks[tid].key,
                title=tasks[tid].title,
                impact_type=ImpactType.DIRECT if level == 1 else ImpactType.INDIRECT,
                impact_level=level,
            )
            for tid, level in sorted(levels.items(), key=lambda kv: (kv[1], kv[0]))
            if tid in tasks
        ]

        return ImpactAnalysis(
            task_id=task_id,
            impacted_tasks=impacted,
            critical_path=longest_chain(graph, task_id),
            total_impacted_tasks=len(impacted),
            max_impact_level=max((t.impact_level for t in impacted), default=0),
        )

