"""Task relationship and lifecycle endpoints.

Blocking, subtasks, hierarchy moves and trees, impact analysis, and status
transitions. Authorization happens upstream; the acting user and role
arrive as headers.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from taskweave.api.deps import get_actor, get_engine
from taskweave.api.errors import handle_engine_errors
from taskweave.engine import Engine
from taskweave.models import (
    BlockingInfo,
    ImpactAnalysis,
    ProjectRole,
    SubtaskSummary,
    Task,
    TaskDependencies,
    TaskTreeNode,
    TransitionRule,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

Actor = tuple[str | None, ProjectRole | None]


class MoveTaskRequest(BaseModel):
    """New parent for a task; null detaches it."""

    parent_id: str | None = None


class ChangeStatusRequest(BaseModel):
    status: str


# =============================================================================
# Relationships
# =============================================================================


@router.get("/{task_id}/dependencies", response_model=TaskDependencies)
@handle_engine_errors("getting task dependencies")
async def get_task_dependencies(
    task_id: str,
    engine: Engine = Depends(get_engine),
) -> TaskDependencies:
    return await engine.dependencies.get_task_dependencies(task_id)


@router.get("/{task_id}/blocking", response_model=BlockingInfo)
@handle_engine_errors("getting blocking info")
async def get_blocking_info(
    task_id: str,
    engine: Engine = Depends(get_engine),
) -> BlockingInfo:
    return await engine.dependencies.get_blocking_info(task_id)


@router.get("/{task_id}/impact", response_model=ImpactAnalysis)
@handle_engine_errors("analyzing impact")
async def analyze_impact(
    task_id: str,
    engine: Engine = Depends(get_engine),
) -> ImpactAnalysis:
    return await engine.dependencies.analyze_impact(task_id)


@router.get("/{task_id}/subtasks/summary", response_model=SubtaskSummary)
@handle_engine_errors("summarizing subtasks")
async def get_subtask_summary(
    task_id: str,
    engine: Engine = Depends(get_engine),
) -> SubtaskSummary:
    return await engine.dependencies.get_subtask_summary(task_id)


# =============================================================================
# Hierarchy
# =============================================================================


@router.get("/{task_id}/tree", response_model=TaskTreeNode)
@handle_engine_errors("building task tree")
async def get_task_tree(
    task_id: str,
    max_depth: int | None = Query(default=None, ge=0),
    engine: Engine = Depends(get_engine),
) -> TaskTreeNode:
    return await engine.hierarchy.build_task_tree(task_id, max_depth)


@router.put("/{task_id}/parent", response_model=Task)
@handle_engine_errors("moving task")
async def move_task(
    task_id: str,
    request: MoveTaskRequest,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> Task:
    return await engine.hierarchy.move_task(task_id, request.parent_id, actor_id=actor[0])


# =============================================================================
# Status transitions
# =============================================================================


@router.post("/{task_id}/status", response_model=Task)
@handle_engine_errors("changing task status")
async def change_status(
    task_id: str,
    request: ChangeStatusRequest,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> Task:
    actor_id, role = actor
    return await engine.transitions.change_status(
        task_id, request.status, actor_id=actor_id, role=role
    )


@router.get("/{task_id}/transitions", response_model=list[TransitionRule])
@handle_engine_errors("listing available transitions")
async def available_transitions(
    task_id: str,
    engine: Engine = Depends(get_engine),
    actor: Actor = Depends(get_actor),
) -> list[TransitionRule]:
    actor_id, role = actor
    return await engine.transitions.available_transitions(task_id, actor_id=actor_id, role=role)
