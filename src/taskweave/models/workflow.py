"""Workflow definition models."""

from pydantic import BaseModel, ConfigDict, Field

from taskweave.models.tasks import IssueType, ProjectRole, TaskStatus, WorkflowType


class TransitionRule(BaseModel):
    """One permitted status change, optionally gated by a project role."""

    model_config = ConfigDict(frozen=True)

    name: str
    from_status: TaskStatus
    to_status: TaskStatus
    required_role: ProjectRole | None = None
    description: str | None = None
    issue_type: IssueType | None = Field(
        default=None,
        description="Restrict the rule to one issue type (custom schemes only)",
    )

    def permits(self, role: ProjectRole | None) -> bool:
        """Exact role match, as used by the built-in tables."""
        return self.required_role is None or self.required_role == role

    def permits_ranked(self, role: ProjectRole | None) -> bool:
        """Role-or-higher match, as used by stored custom schemes."""
        if self.required_role is None:
            return True
        if role is None:
            return False
        return role.rank >= self.required_role.rank


class WorkflowDefinition(BaseModel):
    """A workflow type and its ordered transition table."""

    model_config = ConfigDict(frozen=True)

    workflow_type: WorkflowType
    description: str
    rules: tuple[TransitionRule, ...] = ()

    @property
    def is_dynamic(self) -> bool:
        """True when rules come from an external store rather than this table."""
        return self.workflow_type is WorkflowType.CUSTOM
