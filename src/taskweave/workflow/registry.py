"""Built-in workflow tables and the registry that serves them.

The registry is built once and never mutated; lookups go through read-only
mappings. BASIC, AGILE, and BUG_TRACKING currently share one standard
table. CUSTOM has an empty table because its rules live in the store.
"""

from collections.abc import Iterable, Iterator
from types import MappingProxyType

import structlog

from taskweave.models import (
    ProjectRole,
    TaskStatus,
    TransitionRule,
    WorkflowDefinition,
    WorkflowType,
)

log = structlog.get_logger()

_S = TaskStatus

STANDARD_TRANSITIONS: tuple[TransitionRule, ...] = (
    # Forward flow
    TransitionRule(name="Assign Task", from_status=_S.DRAFT, to_status=_S.ASSIGNED),
    TransitionRule(name="Start Work", from_status=_S.DRAFT, to_status=_S.IN_PROGRESS),
    TransitionRule(name="Reject Draft", from_status=_S.DRAFT, to_status=_S.REJECTED),
    TransitionRule(name="Begin Work", from_status=_S.ASSIGNED, to_status=_S.IN_PROGRESS),
    TransitionRule(name="Back to Draft", from_status=_S.ASSIGNED, to_status=_S.DRAFT),
    TransitionRule(name="Reject Assignment", from_status=_S.ASSIGNED, to_status=_S.REJECTED),
    TransitionRule(
        name="Submit for Review", from_status=_S.IN_PROGRESS, to_status=_S.REVIEW
    ),
    TransitionRule(name="Pause Work", from_status=_S.IN_PROGRESS, to_status=_S.PAUSED),
    TransitionRule(name="Stop Work", from_status=_S.IN_PROGRESS, to_status=_S.ASSIGNED),
    # Recovery from PAUSED
    TransitionRule(name="Resume Work", from_status=_S.PAUSED, to_status=_S.IN_PROGRESS),
    TransitionRule(name="Return to To Do", from_status=_S.PAUSED, to_status=_S.ASSIGNED),
    TransitionRule(
        name="Reject Paused",
        from_status=_S.PAUSED,
        to_status=_S.REJECTED,
        required_role=ProjectRole.PROJECT_LEAD,
    ),
    # Review outcomes
    TransitionRule(
        name="Approve",
        from_status=_S.REVIEW,
        to_status=_S.COMPLETED,
        required_role=ProjectRole.PROJECT_LEAD,
    ),
    TransitionRule(name="Request Changes", from_status=_S.REVIEW, to_status=_S.IN_PROGRESS),
    TransitionRule(
        name="Reject Review",
        from_status=_S.REVIEW,
        to_status=_S.REJECTED,
        required_role=ProjectRole.PROJECT_LEAD,
    ),
    # Corrections after the fact
    TransitionRule(
        name="Reopen Completed",
        from_status=_S.COMPLETED,
        to_status=_S.IN_PROGRESS,
        required_role=ProjectRole.PROJECT_LEAD,
    ),
    TransitionRule(
        name="Reopen",
        from_status=_S.REJECTED,
        to_status=_S.ASSIGNED,
        description="The only way out of REJECTED",
    ),
)

WORKFLOW_DESCRIPTIONS = MappingProxyType(
    {
        WorkflowType.BASIC: "Simple linear workflow: Draft -> Assigned -> In Progress -> Completed",
        WorkflowType.AGILE: "Agile/Scrum workflow with backlog and review stages",
        WorkflowType.BUG_TRACKING: "Bug tracking workflow with confirmation and testing stages",
        WorkflowType.CUSTOM: "Custom workflow defined by a stored workflow scheme",
    }
)


def describe_workflow(workflow_type: WorkflowType) -> str:
    return WORKFLOW_DESCRIPTIONS[workflow_type]


def _index(definition: WorkflowDefinition) -> MappingProxyType:
    index: dict[tuple[TaskStatus, TaskStatus], TransitionRule] = {}
    for rule in definition.rules:
        key = (rule.from_status, rule.to_status)
        if key in index:
            raise ValueError(
                f"{definition.workflow_type} workflow defines {key[0]} -> {key[1]} twice "
                f"({index[key].name!r} and {rule.name!r})"
            )
        index[key] = rule
    return MappingProxyType(index)


class WorkflowRegistry:
    """Read-only map from workflow type to its ordered transition table.

    Construction rejects a table that lists the same (from, to) pair twice,
    so every permitted pair resolves to exactly one rule.
    """

    def __init__(self, definitions: Iterable[WorkflowDefinition]) -> None:
        definitions = list(definitions)
        missing = set(WorkflowType) - {d.workflow_type for d in definitions}
        if missing:
            raise ValueError(f"No workflow definition for: {', '.join(sorted(missing))}")

        self._definitions = MappingProxyType({d.workflow_type: d for d in definitions})
        self._rule_index = MappingProxyType(
            {d.workflow_type: _index(d) for d in definitions}
        )

    def __iter__(self) -> Iterator[WorkflowDefinition]:
        return iter(self._definitions.values())

    def get(self, workflow_type: WorkflowType) -> WorkflowDefinition:
        return self._definitions[workflow_type]

    def rules(self, workflow_type: WorkflowType) -> tuple[TransitionRule, ...]:
        return self._definitions[workflow_type].rules

    def find_rule(
        self,
        workflow_type: WorkflowType,
        from_status: TaskStatus,
        to_status: TaskStatus,
    ) -> TransitionRule | None:
        return self._rule_index[workflow_type].get((from_status, to_status))

    def describe(self, workflow_type: WorkflowType) -> str:
        return self._definitions[workflow_type].description


def build_default_registry() -> WorkflowRegistry:
    """Registry holding the built-in tables."""
    definitions = [
        WorkflowDefinition(
            workflow_type=workflow_type,
            description=WORKFLOW_DESCRIPTIONS[workflow_type],
            rules=() if workflow_type is WorkflowType.CUSTOM else STANDARD_TRANSITIONS,
        )
        for workflow_type in WorkflowType
    ]
    registry = WorkflowRegistry(definitions)
    log.debug("Workflow registry built", workflows=[d.workflow_type.value for d in registry])
    return registry
