"""Transition validator.

The single place where a status change is checked against a workflow table
and the acting user's project role. Built-in tables require an exact role
match when a rule names one; rules stored for CUSTOM projects accept the
named role or any role that outranks it.
"""

from collections.abc import Sequence

from taskweave.errors import InvalidTransitionError
from taskweave.models import ProjectRole, TaskStatus, TransitionRule, WorkflowType
from taskweave.workflow.registry import WorkflowRegistry


class TransitionValidator:
    def __init__(self, registry: WorkflowRegistry) -> None:
        self.registry = registry

    # =========================================================================
    # Built-in tables
    # =========================================================================

    def is_transition_allowed(
        self,
        workflow_type: WorkflowType,
        from_status: TaskStatus,
        to_status: TaskStatus,
        role: ProjectRole | None,
    ) -> bool:
        """True when the table has a ``from -> to`` rule the role satisfies.

        CUSTOM always answers True: its rules live elsewhere and are checked
        by ``validate_transition``.
        """
        if self.registry.get(workflow_type).is_dynamic:
            return True
        rule = self.registry.find_rule(workflow_type, from_status, to_status)
        return rule is not None and rule.permits(role)

    def get_available_transitions(
        self,
        workflow_type: WorkflowType,
        current_status: TaskStatus,
        role: ProjectRole | None,
    ) -> list[TransitionRule]:
        """Rules leaving ``current_status`` that the role may use, in table order."""
        return [
            rule
            for rule in self.registry.rules(workflow_type)
            if rule.from_status == current_status and rule.permits(role)
        ]

    def check(
        self,
        workflow_type: WorkflowType,
        from_status: TaskStatus,
        to_status: TaskStatus,
        role: ProjectRole | None,
    ) -> TransitionRule:
        """Return the matching built-in rule or raise InvalidTransitionError."""
        rule = self.registry.find_rule(workflow_type, from_status, to_status)
        if rule is None:
            raise InvalidTransitionError(
                from_status,
                to_status,
                reason=(
                    f"Transition from {from_status} to {to_status} is not allowed "
                    f"in the {workflow_type} workflow"
                ),
            )
        if not rule.permits(role):
            raise InvalidTransitionError(
                from_status,
                to_status,
                reason=f"Transition '{rule.name}' requires role {rule.required_role}",
                rule_name=rule.name,
                required_role=rule.required_role,
            )
        return rule

    # =========================================================================
    # Stored CUSTOM rules
    # =========================================================================

    def check_custom(
        self,
        rules: Sequence[TransitionRule] | None,
        from_status: TaskStatus,
        to_status: TaskStatus,
        role: ProjectRole | None,
    ) -> TransitionRule | None:
        """Validate against stored rules; None rules means no scheme, so anything goes."""
        if rules is None:
            return None

        candidates = [r for r in rules if r.from_status == from_status and r.to_status == to_status]
        if not candidates:
            raise InvalidTransitionError(
                from_status,
                to_status,
                reason=(
                    f"Transition from {from_status} to {to_status} is not defined "
                    "in the project's workflow scheme"
                ),
            )
        for rule in candidates:
            if rule.permits_ranked(role):
                return rule

        rule = candidates[0]
        raise InvalidTransitionError(
            from_status,
            to_status,
            reason=f"Transition '{rule.name}' requires role {rule.required_role} or higher",
            rule_name=rule.name,
            required_role=rule.required_role,
        )

    def available_custom_transitions(
        self,
        rules: Sequence[TransitionRule],
        current_status: TaskStatus,
        role: ProjectRole | None,
    ) -> list[TransitionRule]:
        return [r for r in rules if r.from_status == current_status and r.permits_ranked(role)]

    def validate_transition(
        self,
        workflow_type: WorkflowType,
        from_status: TaskStatus,
        to_status: TaskStatus,
        role: ProjectRole | None,
        *,
        custom_rules: Sequence[TransitionRule] | None = None,
    ) -> TransitionRule | None:
        """Check any workflow type; CUSTOM defers to ``custom_rules``.

        Returns the rule that permitted the change, or None when a CUSTOM
        project has no stored scheme.
        """
        if self.registry.get(workflow_type).is_dynamic:
            return self.check_custom(custom_rules, from_status, to_status, role)
        return self.check(workflow_type, from_status, to_status, role)
