"""Exceptions raised by the task relationship and transition engine.

Every rejection carries structured ``details`` so callers can render an
actionable message (the offending path, the limit that was hit, the rule
that did not match) instead of a generic failure.
"""

from enum import StrEnum


class TaskweaveError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(TaskweaveError):
    """Raised when input is malformed, self-referential, or duplicated."""


class NotFoundError(TaskweaveError):
    """Raised when a referenced task, dependency, or project does not exist."""

    def __init__(self, entity_type: str, identifier: str) -> None:
        super().__init__(
            f"{entity_type} not found: {identifier}",
            details={"entity_type": entity_type, "identifier": identifier},
        )
        self.entity_type = entity_type
        self.identifier = identifier


class CircularDependencyError(TaskweaveError):
    """Raised when a new dependency edge would close a cycle."""

    def __init__(self, path: list[str]) -> None:
        super().__init__(
            "Circular dependency detected: " + " -> ".join(path),
            details={"path": list(path)},
        )
        self.path = list(path)


class HierarchyRule(StrEnum):
    """Parent/child rules checked by a task move."""

    SELF_PARENT = "self_parent"
    PARENT_NOT_FOUND = "parent_not_found"
    CROSS_PROJECT = "cross_project"
    WOULD_CREATE_CYCLE = "would_create_cycle"
    MAX_DEPTH_EXCEEDED = "max_depth_exceeded"


class HierarchyValidationError(TaskweaveError):
    """Raised when re-parenting a task breaks a hierarchy rule."""

    def __init__(
        self,
        rule: HierarchyRule,
        message: str,
        *,
        limit: int | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        merged: dict[str, object] = {"rule": rule.value, **(details or {})}
        if limit is not None:
            merged["limit"] = limit
        super().__init__(message, details=merged)
        self.rule = rule
        self.limit = limit


class InvalidTransitionError(TaskweaveError):
    """Raised when no workflow rule permits a status change for the acting role."""

    def __init__(
        self,
        from_status: str,
        to_status: str,
        *,
        reason: str,
        rule_name: str | None = None,
        required_role: str | None = None,
    ) -> None:
        super().__init__(
            reason,
            details={
                "from_status": from_status,
                "to_status": to_status,
                "rule_name": rule_name,
                "required_role": required_role,
            },
        )
        self.from_status = from_status
        self.to_status = to_status
        self.rule_name = rule_name
        self.required_role = required_role
