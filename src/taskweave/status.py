"""Status aliases, board categories, and the terminal set."""

from taskweave.models import StatusCategory, TaskStatus

# Statuses that no longer hold up dependent tasks
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED})

_STATUS_ALIASES: dict[str, TaskStatus] = {
    "TODO": TaskStatus.DRAFT,
    "TO_DO": TaskStatus.DRAFT,
    "BACKLOG": TaskStatus.DRAFT,
    "DRAFT": TaskStatus.DRAFT,
    "ASSIGNED": TaskStatus.ASSIGNED,
    "IN_PROGRESS": TaskStatus.IN_PROGRESS,
    "PAUSED": TaskStatus.PAUSED,
    "ON_HOLD": TaskStatus.PAUSED,
    "IN_REVIEW": TaskStatus.REVIEW,
    "REVIEW": TaskStatus.REVIEW,
    "TESTING": TaskStatus.REVIEW,
    "QA": TaskStatus.REVIEW,
    "DONE": TaskStatus.COMPLETED,
    "COMPLETED": TaskStatus.COMPLETED,
    "CLOSED": TaskStatus.COMPLETED,
    "REJECTED": TaskStatus.REJECTED,
}

_CATEGORIES: dict[TaskStatus, StatusCategory] = {
    TaskStatus.DRAFT: StatusCategory.TODO,
    TaskStatus.ASSIGNED: StatusCategory.TODO,
    TaskStatus.IN_PROGRESS: StatusCategory.IN_PROGRESS,
    TaskStatus.PAUSED: StatusCategory.IN_PROGRESS,
    TaskStatus.REVIEW: StatusCategory.REVIEW,
    TaskStatus.COMPLETED: StatusCategory.DONE,
    TaskStatus.REJECTED: StatusCategory.DONE,
}


def normalize_task_status(value: object) -> TaskStatus | None:
    """Map a loosely spelled status ("in review", "Done", "qa") to a TaskStatus.

    Returns None for anything unrecognized, including non-strings.
    """
    if isinstance(value, TaskStatus):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().upper().replace("-", "_").replace(" ", "_")
    if not key:
        return None
    return _STATUS_ALIASES.get(key)


def status_category(status: TaskStatus) -> StatusCategory:
    return _CATEGORIES[status]


def is_terminal(status: TaskStatus) -> bool:
    return status in TERMINAL_STATUSES
