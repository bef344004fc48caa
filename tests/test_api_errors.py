"""Tests for API error factories and domain error translation."""

import pytest
from fastapi import HTTPException

from taskweave.api.errors import (
    CONFLICT_ERROR,
    INTERNAL_ERROR,
    VALIDATION_ERROR,
    handle_engine_errors,
    raise_conflict,
    raise_for_domain_error,
    raise_internal_error,
    raise_not_found,
    raise_validation_error,
)
from taskweave.errors import (
    CircularDependencyError,
    HierarchyRule,
    HierarchyValidationError,
    InvalidTransitionError,
    NotFoundError,
    TaskweaveError,
    ValidationError,
)


# =============================================================================
# Factories
# =============================================================================
class TestFactories:
    """Tests for the raise_* helpers."""

    def test_not_found_with_id(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_not_found("task", resource_id="task-1")
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Task not found: task-1"

    def test_not_found_without_id(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_not_found("Project")
        assert exc_info.value.detail == "Project not found"

    def test_validation_default_message(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_validation_error()
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == {"message": VALIDATION_ERROR}

    def test_conflict_carries_details(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_conflict(details={"path": ["a", "b", "a"]})
        assert exc_info.value.status_code == 409
        assert exc_info.value.detail == {"message": CONFLICT_ERROR, "path": ["a", "b", "a"]}

    def test_internal_error_hides_message(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_internal_error(RuntimeError("password=hunter2"), context="testing")
        assert exc_info.value.status_code == 500
        assert INTERNAL_ERROR in exc_info.value.detail
        assert "ref:" in exc_info.value.detail
        assert "hunter2" not in exc_info.value.detail
        assert isinstance(exc_info.value.__cause__, RuntimeError)


# =============================================================================
# Domain translation
# =============================================================================
class TestRaiseForDomainError:
    """Each engine error maps to one status code."""

    @pytest.mark.parametrize(
        ("exc", "status_code"),
        [
            (NotFoundError("Task", "t1"), 404),
            (CircularDependencyError(["a", "b", "a"]), 409),
            (InvalidTransitionError("DRAFT", "COMPLETED", reason="no rule"), 409),
            (
                InvalidTransitionError(
                    "REVIEW",
                    "COMPLETED",
                    reason="needs lead",
                    rule_name="Approve",
                    required_role="PROJECT_LEAD",
                ),
                403,
            ),
            (HierarchyValidationError(HierarchyRule.SELF_PARENT, "self"), 400),
            (ValidationError("bad"), 400),
            (TaskweaveError("unexpected"), 500),
        ],
    )
    def test_status_codes(self, exc: TaskweaveError, status_code: int) -> None:
        with pytest.raises(HTTPException) as exc_info:
            raise_for_domain_error(exc)
        assert exc_info.value.status_code == status_code

    def test_hierarchy_details_exposed(self) -> None:
        exc = HierarchyValidationError(
            HierarchyRule.MAX_DEPTH_EXCEEDED,
            "too deep",
            limit=10,
            details={"resulting_depth": 11},
        )
        with pytest.raises(HTTPException) as exc_info:
            raise_for_domain_error(exc)
        assert exc_info.value.detail == {
            "message": "too deep",
            "rule": "max_depth_exceeded",
            "resulting_depth": 11,
            "limit": 10,
        }


class TestHandleEngineErrors:
    @pytest.mark.asyncio
    async def test_translates_domain_errors(self) -> None:
        @handle_engine_errors("loading task")
        async def route() -> None:
            raise NotFoundError("Task", "t1")

        with pytest.raises(HTTPException) as exc_info:
            await route()
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_http_exceptions_pass_through(self) -> None:
        @handle_engine_errors("loading task")
        async def route() -> None:
            raise HTTPException(status_code=418, detail="teapot")

        with pytest.raises(HTTPException) as exc_info:
            await route()
        assert exc_info.value.status_code == 418

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_500(self) -> None:
        @handle_engine_errors("loading task")
        async def route() -> None:
            raise KeyError("boom")

        with pytest.raises(HTTPException) as exc_info:
            await route()
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_preserves_return_and_name(self) -> None:
        @handle_engine_errors("loading task")
        async def get_thing() -> int:
            return 42

        assert await get_thing() == 42
        assert get_thing.__name__ == "get_thing"
