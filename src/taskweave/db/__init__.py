"""Taskweave database module - relational storage via SQLModel.

This module provides:
- SQLModel tables for projects, tasks, dependencies, and workflow schemes
- Async connection management with SQLAlchemy 2.0

Usage:
    from taskweave.db import async_session_factory, Task

    async with async_session_factory()() as session:
        task = await session.get(Task, task_id)
"""

from taskweave.db.connection import (
    async_session_factory,
    check_database_health,
    close_db,
    get_engine,
    init_db,
)
from taskweave.db.models import (
    ActivityLogEntry,
    Project,
    ProjectMember,
    Task,
    TaskDependency,
    TimeEntry,
    WorkflowScheme,
    WorkflowTransition,
)

__all__ = [
    # Connection
    "async_session_factory",
    "check_database_health",
    "close_db",
    "get_engine",
    "init_db",
    # Models
    "ActivityLogEntry",
    "Project",
    "ProjectMember",
    "Task",
    "TaskDependency",
    "TimeEntry",
    "WorkflowScheme",
    "WorkflowTransition",
]
