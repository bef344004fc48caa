"""Wiring for the engine's components.

``build_engine`` constructs the workflow registry once and hands the same
instance to every component that needs it.
"""

from dataclasses import dataclass

from taskweave.activity import ActivitySink, StoreActivitySink
from taskweave.graph import DependencyGraphEngine, HierarchyManager
from taskweave.store.base import TaskStore
from taskweave.workflow import (
    TaskTransitionService,
    TransitionValidator,
    WorkflowRegistry,
    build_default_registry,
)


@dataclass(frozen=True)
class Engine:
    store: TaskStore
    registry: WorkflowRegistry
    validator: TransitionValidator
    dependencies: DependencyGraphEngine
    hierarchy: HierarchyManager
    transitions: TaskTransitionService


def build_engine(
    store: TaskStore,
    *,
    activity: ActivitySink | None = None,
    registry: WorkflowRegistry | None = None,
) -> Engine:
    """Assemble an engine over ``store``.

    Activity goes to the store's audit log unless another sink is given.
    """
    registry = registry or build_default_registry()
    sink = activity if activity is not None else StoreActivitySink(store)
    validator = TransitionValidator(registry)
    dependencies = DependencyGraphEngine(store, sink)
    return Engine(
        store=store,
        registry=registry,
        validator=validator,
        dependencies=dependencies,
        hierarchy=HierarchyManager(store, sink),
        transitions=TaskTransitionService(store, validator, dependencies, sink),
    )
