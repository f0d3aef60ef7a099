"""Schema Validator: runs a form schema over a full value map.

This is the single place where field errors are computed. The store calls it
on every validating transition and the submission controller calls it before
handing values to a submit handler.

Usage:
    errors = schema_validator.validate(schema, values)
    if not errors:
        # every field passed
"""

import time
from typing import Mapping, Optional

import structlog

from healthmate.forms.models import FieldRule, FormSchema, Nullable
from healthmate.forms.rules import evaluate

logger = structlog.get_logger()


class SchemaValidator:
    """Evaluates every field rule of a schema, fail-fast per field.

    Design principles:
        - Deterministic: same schema and values → same error map
        - Total: never raises for any value map
        - Ordered: fields in schema order, validators in declaration order
    """

    def validate(self, schema: FormSchema, values: Mapping[str, Optional[str]]) -> dict[str, str]:
        """Validate all fields of a form.

        Args:
            schema: Ordered field rules
            values: Current value of every field (missing fields count as empty)

        Returns:
            Mapping of field name to the message of its first failing validator.
            Fields that pass are omitted.
        """
        start_time = time.perf_counter()

        normalized = {f: _as_text(values.get(f)) for f in schema.fields}
        errors: dict[str, str] = {}

        for rule in schema.rules:
            message = self.validate_field(rule, normalized)
            if message is not None:
                errors[rule.field] = message

        logger.debug(
            "form_validated",
            fields=len(schema.rules),
            total_errors=len(errors),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )
        return errors

    def validate_field(self, rule: FieldRule, values: Mapping[str, str]) -> Optional[str]:
        """Return the first failing message for one field, or None if it passes."""
        value = _as_text(values.get(rule.field))
        nullable = rule.is_nullable

        # Optional and empty: valid regardless of the remaining validators
        if nullable and value == "":
            return None

        for validator in rule.validators:
            if isinstance(validator, Nullable):
                continue
            result = evaluate(validator, value, values, nullable=nullable)
            if not result.ok:
                return result.message
        return None


def _as_text(value: Optional[str]) -> str:
    return "" if value is None else str(value)


# Module-level singleton
schema_validator = SchemaValidator()


def validate(schema: FormSchema, values: Mapping[str, Optional[str]]) -> dict[str, str]:
    """Validate values against schema with the shared validator."""
    return schema_validator.validate(schema, values)
