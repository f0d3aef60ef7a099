"""Form validation and submission engine.

Usage:
    from healthmate.forms import FormStore, SubmissionController, load_form_definition

    definition = load_form_definition("register")
    store = FormStore(definition.validation, definition.initial_values)
    store.set_value("email", "a@b.com")
    store.set_touched("email")
    outcome = await SubmissionController.for_definition(definition).submit(store, None, handler)
"""

from healthmate.forms.definitions import get_all_form_ids, load_form_definition
from healthmate.forms.engine import SchemaValidator, schema_validator, validate
from healthmate.forms.models import (
    Email,
    EqualsField,
    FieldRule,
    FormDefinition,
    FormSchema,
    FormState,
    MaxLength,
    MinLength,
    Nullable,
    PasswordStrength,
    Pattern,
    Rejected,
    RejectReason,
    Required,
    Resolved,
    SubmitOutcome,
)
from healthmate.forms.password import score_password
from healthmate.forms.rules import RuleResult, evaluate
from healthmate.forms.store import FormStore
from healthmate.forms.submission import SubmissionController, submit

__all__ = [
    "Email",
    "EqualsField",
    "FieldRule",
    "FormDefinition",
    "FormSchema",
    "FormState",
    "FormStore",
    "MaxLength",
    "MinLength",
    "Nullable",
    "PasswordStrength",
    "Pattern",
    "Rejected",
    "RejectReason",
    "Required",
    "Resolved",
    "RuleResult",
    "SchemaValidator",
    "SubmissionController",
    "SubmitOutcome",
    "evaluate",
    "get_all_form_ids",
    "load_form_definition",
    "schema_validator",
    "score_password",
    "submit",
    "validate",
]
