"""
Two-Stage Rule Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Known trigger, operator, field and action variants
- This catches malformed rule specs

STAGE 2 - SEMANTIC VALIDATION:
- Operator/value compatibility
- Condition depth limits
- Priority bounds
- Trigger/condition coherence
- This catches rules that parse but can never evaluate sensibly

IMPORTANT: Validation NEVER silently fixes issues.
A rule with any error-level issue is rejected as a whole.
"""

from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from fincore.config import get_settings
from fincore.config.settings import EngineSettings
from fincore.models.automation import (
    NUMERIC_FIELDS,
    Condition,
    ConditionOperator,
    RuleSpec,
    RuleValidationResult,
    SnapshotField,
    TriggerType,
    ValidationIssue,
)
from fincore.models.budget import OverallHealth


# Which snapshot field a trigger is normally paired with
_TRIGGER_FIELDS = {
    TriggerType.LOW_BALANCE: SnapshotField.BALANCE,
    TriggerType.BILL_DUE: SnapshotField.BILL_AMOUNT,
    TriggerType.INCOME_RECEIVED: SnapshotField.INCOME,
    TriggerType.SPENDING_EXCEEDED: SnapshotField.SPENDING,
    TriggerType.SAVINGS_GOAL: SnapshotField.SAVINGS,
    TriggerType.DEBT_PAYMENT: SnapshotField.DEBT,
}

_ORDERING_OPERATORS = (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN)


class RuleValidationError(Exception):
    """A rule spec failed validation. Carries every issue found."""

    def __init__(self, result: RuleValidationResult):
        self.result = result
        self.issues = result.issues
        errors = [i.message for i in result.issues if i.severity == "error"]
        super().__init__(
            f"Invalid automation rule ({len(errors)} errors): " + "; ".join(errors)
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class RuleValidator:
    """
    Validates rule specs through a two-stage pipeline.

    Stage 1: Schema validation (Pydantic parse of the spec)
    Stage 2: Semantic validation (only when stage 1 passes)
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_settings().engine

    @staticmethod
    def _too_deep_issue(message: str) -> ValidationIssue:
        return ValidationIssue(
            field="condition",
            issue_type="too_deep",
            message=message,
            severity="error",
            suggested_fix="Flatten the condition into fewer levels",
        )

    def _validate_schema(
        self,
        raw: Union[RuleSpec, dict],
    ) -> tuple[Optional[RuleSpec], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_spec_or_None, list_of_issues)
        """
        if isinstance(raw, RuleSpec):
            return raw, []

        try:
            return RuleSpec.model_validate(raw), []
        except PydanticValidationError as e:
            issues = []
            too_deep = False
            for err in e.errors():
                # Pydantic reports runaway nesting as a cyclic reference
                if err["type"] == "recursion_loop":
                    too_deep = True
                    continue
                issues.append(ValidationIssue(
                    field=".".join(str(part) for part in err["loc"]) or "rule",
                    issue_type=err["type"],
                    message=err["msg"],
                    severity="error",
                ))
            if too_deep:
                issues.append(self._too_deep_issue(
                    f"Condition nests far more than {self._settings.max_condition_depth} levels"
                ))
            return None, issues

    def _validate_condition_node(
        self,
        node: Condition,
        path: str,
    ) -> list[ValidationIssue]:
        issues = []

        if node.operator in _ORDERING_OPERATORS and not _is_number(node.value):
            issues.append(ValidationIssue(
                field=f"{path}.value",
                issue_type="incompatible",
                message=(
                    f"{node.operator.value} needs a numeric value, "
                    f"got {type(node.value).__name__}"
                ),
                severity="error",
                suggested_fix="Use a number, or switch to EQUALS / CONTAINS",
            ))

        if node.field in NUMERIC_FIELDS:
            if node.operator == ConditionOperator.CONTAINS:
                issues.append(ValidationIssue(
                    field=f"{path}.operator",
                    issue_type="suspicious_operator",
                    message=f"CONTAINS on numeric field '{node.field.value}' compares digit strings",
                    severity="warning",
                    suggested_fix="Use GREATER_THAN or LESS_THAN for amounts",
                ))
            elif node.operator not in _ORDERING_OPERATORS and not _is_number(node.value):
                issues.append(ValidationIssue(
                    field=f"{path}.value",
                    issue_type="incompatible",
                    message=f"Field '{node.field.value}' is numeric but the value is not",
                    severity="error",
                ))

        if node.field == SnapshotField.BUDGET_HEALTH:
            allowed = {h.value for h in OverallHealth}
            if node.operator in (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS):
                if node.value not in allowed:
                    issues.append(ValidationIssue(
                        field=f"{path}.value",
                        issue_type="invalid_value",
                        message=f"Budget health must be one of {sorted(allowed)}",
                        severity="error",
                    ))

        for idx, child in enumerate(node.additional_conditions):
            issues.extend(
                self._validate_condition_node(child, f"{path}.additional_conditions.{idx}")
            )

        return issues

    def _validate_semantic(
        self,
        spec: RuleSpec,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_depth = self._settings.max_condition_depth
        if spec.condition.depth > max_depth:
            issues.append(self._too_deep_issue(
                f"Condition nests {spec.condition.depth} levels (max {max_depth})"
            ))

        issues.extend(self._validate_condition_node(spec.condition, "condition"))

        if spec.priority > self._settings.max_priority:
            issues.append(ValidationIssue(
                field="priority",
                issue_type="out_of_range",
                message=f"Priority {spec.priority} exceeds {self._settings.max_priority}",
                severity="error",
            ))

        expected_field = _TRIGGER_FIELDS.get(TriggerType(spec.trigger.type))
        if expected_field is not None:
            fields = {node.field for node in spec.condition.iter_nodes()}
            if expected_field not in fields:
                issues.append(ValidationIssue(
                    field="condition.field",
                    issue_type="incoherent",
                    message=(
                        f"{spec.trigger.type} rules usually test '{expected_field.value}', "
                        f"this condition does not"
                    ),
                    severity="warning",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(self, raw: Union[RuleSpec, dict]) -> RuleValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            raw: A RuleSpec or a plain dict in RuleSpec shape

        Returns:
            RuleValidationResult with all issues found
        """
        all_issues = []

        spec, schema_issues = self._validate_schema(raw)
        all_issues.extend(schema_issues)
        schema_valid = spec is not None

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if spec is not None:
            semantic_valid, semantic_issues = self._validate_semantic(spec)
            all_issues.extend(semantic_issues)

        warnings = [i.message for i in all_issues if i.severity == "warning"]

        rule_name = spec.name if spec else (raw.get("name") if isinstance(raw, dict) else None)

        return RuleValidationResult(
            rule_name=rule_name,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            spec=spec,
            issues=all_issues,
            warnings=warnings,
        )

    def parse_trigger_type(self, value: Union[TriggerType, str]) -> TriggerType:
        """
        Parse a trigger-type filter.

        Raises:
            RuleValidationError: If the value names no known trigger
        """
        try:
            return TriggerType(value)
        except ValueError as e:
            issue = ValidationIssue(
                field="trigger_type",
                issue_type="unknown_trigger",
                message=f"Unknown trigger type: {value!r}",
                severity="error",
                suggested_fix=f"Use one of {', '.join(t.value for t in TriggerType)}",
            )
            raise RuleValidationError(RuleValidationResult(
                schema_valid=False,
                semantic_valid=False,
                is_valid=False,
                issues=[issue],
            )) from e

    def get_user_friendly_summary(
        self,
        result: RuleValidationResult,
    ) -> str:
        """
        Generate a readable summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("The rule cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.field}: {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     Fix: {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()
