"""Rule validation package."""

from fincore.validation.validator import RuleValidationError, RuleValidator

__all__ = ["RuleValidationError", "RuleValidator"]
