"""Rule Evaluator: applies one validator to one field value.

Contract:
    - evaluate() never raises; failure is reported as RuleResult.fail(message)
    - cross-field rules read from the full value map, so callers always pass it
    - no I/O, no randomness
"""

import re
from functools import lru_cache
from typing import Callable, Mapping, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

from healthmate.forms.models import (
    Email,
    EqualsField,
    MaxLength,
    MinLength,
    Nullable,
    Pattern,
    Required,
)


class RuleResult(BaseModel):
    """Outcome of a single validator: ok, or failed with a message."""

    ok: bool
    message: Optional[str] = None

    @classmethod
    def passed(cls) -> "RuleResult":
        return cls(ok=True)

    @classmethod
    def fail(cls, message: str) -> "RuleResult":
        return cls(ok=False, message=message)


_PASS = RuleResult.passed()


@lru_cache(maxsize=128)
def _compile(regex: str) -> re.Pattern:
    return re.compile(regex)


def _is_empty(value: str) -> bool:
    return value == ""


def _required(v: Required, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    if not value.strip():
        return RuleResult.fail(v.message)
    return _PASS


def _min_length(v: MinLength, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    if nullable and _is_empty(value):
        return _PASS
    if len(value.strip()) < v.n:
        return RuleResult.fail(v.message)
    return _PASS


def _max_length(v: MaxLength, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    if nullable and _is_empty(value):
        return _PASS
    if len(value.strip()) > v.n:
        return RuleResult.fail(v.message)
    return _PASS


def _pattern(v: Pattern, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    if nullable and _is_empty(value):
        return _PASS
    if _compile(v.regex).fullmatch(value) is None:
        return RuleResult.fail(v.message)
    return _PASS


def _email(v: Email, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    if nullable and _is_empty(value):
        return _PASS
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return RuleResult.fail(v.message)
    return _PASS


def _equals_field(v: EqualsField, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    other = all_values.get(v.other)
    if value != ("" if other is None else other):
        return RuleResult.fail(v.message)
    return _PASS


def _nullable(v: Nullable, value: str, all_values: Mapping[str, str], nullable: bool) -> RuleResult:
    # Marker only; the schema validator short-circuits empty optional fields
    return _PASS


_EVALUATORS: dict[type, Callable[..., RuleResult]] = {
    Required: _required,
    MinLength: _min_length,
    MaxLength: _max_length,
    Pattern: _pattern,
    Email: _email,
    EqualsField: _equals_field,
    Nullable: _nullable,
}


def evaluate(
    validator,
    value: Optional[str],
    all_values: Optional[Mapping[str, str]] = None,
    nullable: bool = False,
) -> RuleResult:
    """Evaluate one validator against one value.

    Args:
        validator: Any Validator variant from healthmate.forms.models
        value: The field's current value (None is treated as empty)
        all_values: Full value map of the form, for cross-field rules
        nullable: Whether the field is marked Nullable

    Returns:
        RuleResult, ok or failed with the validator's message
    """
    fn = _EVALUATORS.get(type(validator))
    if fn is None:
        return RuleResult.fail(f"Unsupported validator: {type(validator).__name__}")
    return fn(validator, "" if value is None else str(value), all_values or {}, nullable)
