"""Form models: validator variants, schemas, state snapshots and submit outcomes.

Rule sets are plain data: a FormSchema is an ordered list of FieldRule, each
holding an ordered list of tagged Validator variants interpreted by the rule
evaluator. Nothing here performs validation itself.
"""

import re
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ── Validator variants ──


class Required(BaseModel):
    """Fails on an empty or whitespace-only value."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["required"] = "required"
    message: str = "This field is required"


class MinLength(BaseModel):
    """Fails if the trimmed value is shorter than n."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["min_length"] = "min_length"
    n: int = Field(ge=0)
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_message(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("message"):
            data = {**data, "message": f"Must be at least {data.get('n')} characters"}
        return data


class MaxLength(BaseModel):
    """Fails if the trimmed value is longer than n."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["max_length"] = "max_length"
    n: int = Field(ge=0)
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_message(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("message"):
            data = {**data, "message": f"Must be at most {data.get('n')} characters"}
        return data


class Pattern(BaseModel):
    """Fails if the value does not fully match regex."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["pattern"] = "pattern"
    regex: str
    message: str = "Invalid format"

    @field_validator("regex")
    @classmethod
    def _must_compile(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid pattern {v!r}: {e}") from e
        return v


class Email(BaseModel):
    """Fails if the value is not shaped like local@domain.tld."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["email"] = "email"
    message: str = "Invalid email address"


class EqualsField(BaseModel):
    """Cross-field rule: fails if the value differs from another field's value."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["equals_field"] = "equals_field"
    other: str
    message: str = "Fields must match"


class Nullable(BaseModel):
    """Marks the field optional: an empty value skips every other validator."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["nullable"] = "nullable"


Validator = Annotated[
    Union[Required, MinLength, MaxLength, Pattern, Email, EqualsField, Nullable],
    Field(discriminator="kind"),
]


# ── Schemas ──


class FieldRule(BaseModel):
    """Validation rules for one field, run in declaration order."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(min_length=1)
    validators: list[Validator] = Field(default_factory=list)

    @property
    def is_required(self) -> bool:
        return any(isinstance(v, Required) for v in self.validators)

    @property
    def is_nullable(self) -> bool:
        return any(isinstance(v, Nullable) for v in self.validators)


class FormSchema(BaseModel):
    """Ordered set of field rules for one form. Field names are unique."""

    model_config = ConfigDict(frozen=True)

    rules: list[FieldRule] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_fields(self) -> "FormSchema":
        seen: set[str] = set()
        for rule in self.rules:
            if rule.field in seen:
                raise ValueError(f"Duplicate field '{rule.field}' in form schema")
            seen.add(rule.field)

        for rule in self.rules:
            for v in rule.validators:
                if isinstance(v, EqualsField) and v.other not in seen:
                    raise ValueError(
                        f"Field '{rule.field}' references unknown field '{v.other}'"
                    )
        return self

    @property
    def fields(self) -> list[str]:
        return [rule.field for rule in self.rules]

    def rule_for(self, field: str) -> Optional[FieldRule]:
        for rule in self.rules:
            if rule.field == field:
                return rule
        return None


# ── State ──


class FormState(BaseModel):
    """Immutable snapshot of one form instance.

    is_valid and is_dirty are derived by the store when the snapshot is built.
    """

    model_config = ConfigDict(frozen=True)

    values: dict[str, str] = Field(default_factory=dict)
    touched: frozenset[str] = Field(default_factory=frozenset)
    errors: dict[str, str] = Field(default_factory=dict)
    is_submitting: bool = False
    submit_count: int = 0
    is_valid: bool = False
    is_dirty: bool = False

    @property
    def visible_errors(self) -> dict[str, str]:
        """Errors a user should see: touched fields only, until a submit is attempted."""
        if self.submit_count > 0:
            return dict(self.errors)
        return {f: msg for f, msg in self.errors.items() if f in self.touched}


class PasswordStrength(BaseModel):
    """Password strength score 0-5 with its display label and color token."""

    score: int = Field(ge=0, le=5)
    label: Literal["", "Very Weak", "Weak", "Fair", "Good", "Strong"]
    color: str


# ── Submission outcomes ──


class RejectReason(str, Enum):
    """Why a submit call did not resolve."""

    VALIDATION_FAILED = "validation_failed"  # Schema errors, handler not called
    BUSY = "busy"                            # A submission is already in flight
    HANDLER_ERROR = "handler_error"          # Handler was called and failed


class Resolved(BaseModel):
    """The handler ran and succeeded."""

    status: Literal["resolved"] = "resolved"
    result: Any = None


class Rejected(BaseModel):
    """The submit did not succeed. Form values are left untouched."""

    status: Literal["rejected"] = "rejected"
    reason: RejectReason
    message: str = ""
    errors: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)


SubmitOutcome = Union[Resolved, Rejected]


# ── Form definitions ──


class FormDefinition(BaseModel):
    """A named form: its rule set plus the submit policy the product applies to it."""

    form_id: str
    title: str = ""
    validation: FormSchema
    initial_values: dict[str, str] = Field(default_factory=dict)
    require_dirty: bool = False     # Pristine form is never submittable
    reset_on_success: bool = False
    success_message: str = "Submitted successfully."
    failure_message: str = "Submission failed. Please try again."
    strength_field: Optional[str] = None

    @model_validator(mode="after")
    def _check_fields(self) -> "FormDefinition":
        fields = set(self.validation.fields)
        unknown = set(self.initial_values) - fields
        if unknown:
            raise ValueError(f"Initial values for unknown fields: {', '.join(sorted(unknown))}")
        if self.strength_field is not None and self.strength_field not in fields:
            raise ValueError(f"Strength field '{self.strength_field}' is not a form field")
        return self
