"""Activity sinks for the audit trail.

Sinks receive typed events after a mutation has been applied. Recording is
fire-and-forget: a failing sink is logged and never undoes or masks the
operation that produced the event.
"""

from typing import Protocol

import structlog

from taskweave.models import ActivityEvent
from taskweave.store.base import TaskStore

log = structlog.get_logger()


class ActivitySink(Protocol):
    async def record(self, event: ActivityEvent) -> None: ...


class LoggingActivitySink:
    """Writes events to the structured log only."""

    async def record(self, event: ActivityEvent) -> None:
        log.info(
            "activity",
            action=event.action.value,
            task_id=event.task_id,
            actor_id=event.actor_id,
            **event.model_dump(
                mode="json",
                exclude={"action", "task_id", "actor_id", "occurred_at"},
            ),
        )


class StoreActivitySink:
    """Persists events through the task store's audit log."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    async def record(self, event: ActivityEvent) -> None:
        await self._store.record_activity(event)


async def emit_activity(sink: ActivitySink | None, event: ActivityEvent) -> None:
    if sink is None:
        return
    try:
        await sink.record(event)
    except Exception as e:
        log.warning(
            "Activity sink failed",
            action=event.action.value,
            task_id=event.task_id,
            error=str(e),
        )
