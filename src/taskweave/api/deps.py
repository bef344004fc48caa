"""FastAPI dependencies."""

from fastapi import Header, Request

from taskweave.engine import Engine
from taskweave.models import ProjectRole


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_actor(
    x_actor_id: str | None = Header(default=None),
    x_project_role: ProjectRole | None = Header(default=None),
) -> tuple[str | None, ProjectRole | None]:
    """Acting user and optional role asserted by the authenticating gateway."""
    return x_actor_id, x_project_role
