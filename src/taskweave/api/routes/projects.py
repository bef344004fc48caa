"""Project-level graph views."""

from fastapi import APIRouter, Depends

from taskweave.api.deps import get_engine
from taskweave.api.errors import handle_engine_errors
from taskweave.engine import Engine
from taskweave.models import DependencyGraph

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/{project_id}/dependency-graph", response_model=DependencyGraph)
@handle_engine_errors("generating dependency graph")
async def get_dependency_graph(
    project_id: str,
    engine: Engine = Depends(get_engine),
) -> DependencyGraph:
    """Nodes, edges, and diagnostic cycle list for one project."""
    return await engine.dependencies.generate_dependency_graph(project_id)
