"""Parent/child hierarchy manager.

The hierarchy is a forest separate from the dependency graph. Moves are
validated against four rules (parent exists, same project, no cycle,
bounded depth) inside one store transaction. Tree and descendant walks
load a project's tasks once and traverse the in-memory child index with an
explicit queue.
"""

from collections import defaultdict, deque

import structlog

from taskweave.activity import ActivitySink, emit_activity
from taskweave.config import settings
from taskweave.errors import HierarchyRule, HierarchyValidationError, NotFoundError, ValidationError
from taskweave.graph.dependencies import summarize_subtasks
from taskweave.models import Task, TaskMoved, TaskTreeNode, TreeTask
from taskweave.status import is_terminal
from taskweave.store.base import TaskStore

log = structlog.get_logger()

ChildIndex = dict[str, list[Task]]


def _tree_task(task: Task) -> TreeTask:
    return TreeTask(
        id=task.id,
        key=task.key,
        title=task.title,
        status=task.status,
        issue_type=task.issue_type,
        priority=task.priority,
        estimated_hours=task.estimated_hours,
    )


class HierarchyManager:
    """Validates re-parenting and renders bounded task trees."""

    def __init__(
        self,
        store: TaskStore,
        activity: ActivitySink | None = None,
        *,
        max_depth: int | None = None,
        ancestor_walk_limit: int | None = None,
        default_tree_depth: int | None = None,
    ) -> None:
        self._store = store
        self._activity = activity
        self.max_depth = max_depth if max_depth is not None else settings.max_hierarchy_depth
        self.ancestor_walk_limit = (
            ancestor_walk_limit if ancestor_walk_limit is not None else settings.ancestor_walk_limit
        )
        self.default_tree_depth = (
            default_tree_depth if default_tree_depth is not None else settings.default_tree_depth
        )

    async def _require_task(self, task_id: str) -> Task:
        task = await self._store.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    # =========================================================================
    # Traversal
    # =========================================================================

    async def _child_index(self, root: Task, levels: int | None = None) -> ChildIndex:
        """Children keyed by parent id, each list in creation order.

        Project tasks come from one bulk read. A task outside any project is
        walked level by level, stopping after ``levels`` levels when given.
        """
        index: ChildIndex = defaultdict(list)
        if root.project_id is not None:
            for task in await self._store.list_project_tasks(root.project_id):
                if task.parent_id is not None:
                    index[task.parent_id].append(task)
            return index

        seen = {root.id}
        frontier = [root.id]
        level = 0
        while frontier and (levels is None or level < levels):
            level += 1
            next_frontier = []
            for parent_id in frontier:
                children = await self._store.list_children(parent_id)
                index[parent_id] = children
                for child in children:
                    if child.id not in seen:
                        seen.add(child.id)
                        next_frontier.append(child.id)
            frontier = next_frontier
        return index

    @staticmethod
    def _subtree(root_id: str, index: ChildIndex) -> tuple[list[str], int]:
        """Descendant ids in breadth-first order, and the subtree's height."""
        descendants: list[str] = []
        seen = {root_id}
        height = 0
        queue = deque([(root_id, 0)])
        while queue:
            node_id, depth = queue.popleft()
            height = max(height, depth)
            for child in index.get(node_id, ()):
                if child.id in seen:
                    continue
                seen.add(child.id)
                descendants.append(child.id)
                queue.append((child.id, depth + 1))
        return descendants, height

    async def _depth_of(self, task: Task) -> int:
        hops = 0
        current = task
        while current.parent_id is not None:
            if hops >= self.ancestor_walk_limit:
                log.warning(
                    "Ancestor walk limit reached",
                    task_id=task.id,
                    limit=self.ancestor_walk_limit,
                )
                break
            parent = await self._store.get_task(current.parent_id)
            if parent is None:
                log.warning(
                    "Dangling parent pointer", task_id=current.id, parent_id=current.parent_id
                )
                break
            hops += 1
            current = parent
        return hops

    async def get_depth(self, task_id: str) -> int:
        """Number of parent hops from a task to its root (a root is depth 0)."""
        async with self._store.snapshot():
            return await self._depth_of(await self._require_task(task_id))

    async def get_descendant_ids(self, task_id: str) -> list[str]:
        async with self._store.snapshot():
            task = await self._require_task(task_id)
            index = await self._child_index(task)
        return self._subtree(task.id, index)[0]

    # =========================================================================
    # Moves
    # =========================================================================

    async def move_task(
        self,
        task_id: str,
        new_parent_id: str | None,
        *,
        actor_id: str | None = None,
    ) -> Task:
        """Re-parent a task, or detach it when ``new_parent_id`` is None.

        Raises:
            NotFoundError: The task itself is missing.
            HierarchyValidationError: A hierarchy rule failed; ``rule`` names it.
        """
        async with self._store.transaction():
            task = await self._require_task(task_id)
            previous_parent_id = task.parent_id

            if new_parent_id is not None:
                await self._validate_move(task, new_parent_id)

            if previous_parent_id == new_parent_id:
                return task
            updated = await self._store.set_task_parent(task_id, new_parent_id)

        log.info(
            "Task moved",
            task_id=task_id,
            previous_parent_id=previous_parent_id,
            new_parent_id=new_parent_id,
        )
        await emit_activity(
            self._activity,
            TaskMoved(
                task_id=task_id,
                actor_id=actor_id,
                previous_parent_id=previous_parent_id,
                new_parent_id=new_parent_id,
            ),
        )
        return updated

    async def _validate_move(self, task: Task, new_parent_id: str) -> None:
        if new_parent_id == task.id:
            raise HierarchyValidationError(
                HierarchyRule.SELF_PARENT,
                "A task cannot be its own parent",
                details={"task_id": task.id},
            )

        parent = await self._store.get_task(new_parent_id)
        if parent is None:
            raise HierarchyValidationError(
                HierarchyRule.PARENT_NOT_FOUND,
                f"Parent task not found: {new_parent_id}",
                details={"parent_id": new_parent_id},
            )

        if parent.project_id != task.project_id:
            raise HierarchyValidationError(
                HierarchyRule.CROSS_PROJECT,
                "Parent task must belong to the same project",
                details={
                    "task_project_id": task.project_id,
                    "parent_project_id": parent.project_id,
                },
            )

        descendants, height = self._subtree(task.id, await self._child_index(task))
        if new_parent_id in descendants:
            raise HierarchyValidationError(
                HierarchyRule.WOULD_CREATE_CYCLE,
                "Cannot move a task under one of its own descendants",
                details={"task_id": task.id, "parent_id": new_parent_id},
            )

        resulting_depth = await self._depth_of(parent) + 1 + height
        if resulting_depth > self.max_depth:
            raise HierarchyValidationError(
                HierarchyRule.MAX_DEPTH_EXCEEDED,
                f"Move would nest tasks {resulting_depth} levels deep (limit {self.max_depth})",
                limit=self.max_depth,
                details={"resulting_depth": resulting_depth},
            )

    # =========================================================================
    # Trees
    # =========================================================================

    async def build_task_tree(self, root_id: str, max_depth: int | None = None) -> TaskTreeNode:
        """Render ``root_id`` and its descendants down to ``max_depth`` levels.

        Nodes on the bound keep ``has_children`` but get no children list.
        A node with children takes its completion from the subtask summary;
        a leaf is 100 when terminal, else 0.
        """
        bound = self.default_tree_depth if max_depth is None else max_depth
        if bound < 0:
            raise ValidationError("max_depth must be zero or greater", details={"max_depth": bound})

        async with self._store.snapshot():
            root = await self._require_task(root_id)
            # One extra level so nodes on the bound can report completion
            index = await self._child_index(root, levels=bound + 1)

        def make_node(task: Task, depth: int) -> TaskTreeNode:
            children = index.get(task.id, [])
            if children:
                completion = summarize_subtasks(task.id, children).completion_percentage
            else:
                completion = 100 if is_terminal(task.status) else 0
            return TaskTreeNode(
                task=_tree_task(task),
                depth=depth,
                has_children=bool(children),
                completion_percentage=completion,
            )

        root_node = make_node(root, 0)
        seen = {root.id}
        queue = deque([(root, root_node)])
        while queue:
            task, node = queue.popleft()
            if node.depth >= bound:
                continue
            for child in index.get(task.id, ()):
                if child.id in seen:
                    continue
                seen.add(child.id)
                child_node = make_node(child, node.depth + 1)
                node.children.append(child_node)
                queue.append((child, child_node))

        return root_node
