"""Dependency edge endpoints."""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from taskweave.api.deps import get_actor, get_engine
from taskweave.api.errors import handle_engine_errors
from taskweave.engine import Engine
from taskweave.models import (
    BulkDependencyItem,
    BulkDependencyResult,
    BulkOperation,
    DependencyStatusFilter,
    DependencyType,
    ProjectRole,
    TaskDependency,
)

router = APIRouter(prefix="/dependencies", tags=["dependencies"])

Actor = tuple[str | None, ProjectRole | None]


# =============================================================================
# Request Models
# =============================================================================


class CreateDependencyRequest(BaseModel):
    """Request to make one task wait on another."""

    dependent_task_id: str
    blocking_task_id: str
    type: DependencyType = DependencyType.BLOCKS


class BulkDependencyRequest(BaseModel):
    operation: BulkOperation
    items: list[BulkDependencyItem] = Field(min_length=1)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=TaskDependency, status_code=status.HTTP_201_CREATED)
@handle_engine_errors("creating dependency")
async def create_dependency(
    request: CreateDependencyRequest,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> TaskDependency:
    return await engine.dependencies.create_dependency(
        request.dependent_task_id,
        request.blocking_task_id,
        request.type,
        actor_id=actor[0],
    )


@router.get("", response_model=list[TaskDependency])
@handle_engine_errors("listing dependencies")
async def list_dependencies(
    project_id: str | None = Query(default=None),
    task_id: str | None = Query(default=None),
    dependency_type: DependencyType | None = Query(default=None, alias="type"),
    status_filter: DependencyStatusFilter = Query(
        default=DependencyStatusFilter.ALL, alias="status"
    ),
    engine: Engine = Depends(get_engine),
) -> list[TaskDependency]:
    return await engine.dependencies.list_dependencies(
        project_id=project_id,
        task_id=task_id,
        dependency_type=dependency_type,
        status=status_filter,
    )


@router.delete("/{dependency_id}", status_code=status.HTTP_204_NO_CONTENT)
@handle_engine_errors("deleting dependency")
async def delete_dependency(
    dependency_id: str,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> None:
    await engine.dependencies.delete_dependency(dependency_id, actor_id=actor[0])


@router.post("/bulk", response_model=BulkDependencyResult)
@handle_engine_errors("bulk dependency operation")
async def bulk_dependencies(
    request: BulkDependencyRequest,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> BulkDependencyResult:
    """Apply a batch of creates or deletes; per-item failures are reported, not raised."""
    return await engine.dependencies.bulk_dependency_operation(
        request.operation, request.items, actor_id=actor[0]
    )
