"""Pytest configuration and fixtures."""

import itertools
from collections.abc import Callable
from typing import Any

import pytest

from taskweave.engine import Engine, build_engine
from taskweave.models import Project, Task, TaskStatus, WorkflowType
from taskweave.store import InMemoryTaskStore

TaskFactory = Callable[..., Task]

_DEFAULT_PROJECT: Any = object()


@pytest.fixture
def store() -> InMemoryTaskStore:
    """Empty in-memory store."""
    return InMemoryTaskStore()


@pytest.fixture
def project(store: InMemoryTaskStore) -> Project:
    """A BASIC-workflow project."""
    return store.add_project(Project(id="proj-web", key="WEB", name="Website"))


@pytest.fixture
def other_project(store: InMemoryTaskStore) -> Project:
    return store.add_project(
        Project(id="proj-ops", key="OPS", name="Operations", workflow_type=WorkflowType.AGILE)
    )


@pytest.fixture
def engine(store: InMemoryTaskStore) -> Engine:
    """Engine over the in-memory store; activity lands in ``store.activity``."""
    return build_engine(store)


@pytest.fixture
def make_task(store: InMemoryTaskStore, project: Project) -> TaskFactory:
    """Factory seeding tasks into ``project`` unless told otherwise."""
    counter = itertools.count(1)

    def _make(
        title: str | None = None,
        *,
        status: TaskStatus = TaskStatus.DRAFT,
        parent_id: str | None = None,
        project_id: str | None = _DEFAULT_PROJECT,
        **fields: Any,
    ) -> Task:
        n = next(counter)
        return store.add_task(
            Task(
                id=f"task-{n}",
                key=f"{project.key}-{n}",
                title=title or f"Task {n}",
                status=status,
                parent_id=parent_id,
                project_id=project.id if project_id is _DEFAULT_PROJECT else project_id,
                **fields,
            )
        )

    return _make
