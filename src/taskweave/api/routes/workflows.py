"""Read-only workflow table endpoints."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from taskweave.api.deps import get_engine
from taskweave.engine import Engine
from taskweave.models import (
    ProjectRole,
    TaskStatus,
    TransitionRule,
    WorkflowDefinition,
    WorkflowType,
)

router = APIRouter(prefix="/workflows", tags=["workflows"])


class TransitionCheckResponse(BaseModel):
    workflow_type: WorkflowType
    from_status: TaskStatus
    to_status: TaskStatus
    role: ProjectRole | None
    allowed: bool


@router.get("", response_model=list[WorkflowDefinition])
async def list_workflows(engine: Engine = Depends(get_engine)) -> list[WorkflowDefinition]:
    return list(engine.registry)


@router.get("/{workflow_type}", response_model=WorkflowDefinition)
async def get_workflow(
    workflow_type: WorkflowType,
    engine: Engine = Depends(get_engine),
) -> WorkflowDefinition:
    return engine.registry.get(workflow_type)


@router.get("/{workflow_type}/transitions", response_model=list[TransitionRule])
async def get_available_transitions(
    workflow_type: WorkflowType,
    status: TaskStatus = Query(...),
    role: ProjectRole | None = Query(default=None),
    engine: Engine = Depends(get_engine),
) -> list[TransitionRule]:
    return engine.validator.get_available_transitions(workflow_type, status, role)


@router.get("/{workflow_type}/check", response_model=TransitionCheckResponse)
async def check_transition(
    workflow_type: WorkflowType,
    from_status: TaskStatus = Query(...),
    to_status: TaskStatus = Query(...),
    role: ProjectRole | None = Query(default=None),
    engine: Engine = Depends(get_engine),
) -> TransitionCheckResponse:
    """Whether the built-in table permits a change; CUSTOM always answers true."""
    return TransitionCheckResponse(
        workflow_type=workflow_type,
        from_status=from_status,
        to_status=to_status,
        role=role,
        allowed=engine.validator.is_transition_allowed(workflow_type, from_status, to_status, role),
    )
