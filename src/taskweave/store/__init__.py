"""Task store protocol and its implementations."""

from taskweave.store.base import TaskStore
from taskweave.store.memory import InMemoryTaskStore
from taskweave.store.sql import SqlTaskStore

__all__ = ["InMemoryTaskStore", "SqlTaskStore", "TaskStore"]
