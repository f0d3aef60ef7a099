"""Form State Store: single source of truth for one mounted form.

Every transition builds a new immutable FormState and swaps it in with one
assignment, so readers never observe values and errors from different updates.
"""

import itertools
from typing import Mapping, Optional

import structlog

from healthmate.forms.engine import schema_validator
from healthmate.forms.models import FormSchema, FormState

logger = structlog.get_logger()


class FormStore:
    """Holds values, touched flags, errors and submit flags for one form instance.

    Validation is lazy: typing into a field that was never touched shows no
    error until the field is blurred (set_touched) or a submit is attempted.

    The in-flight flag is owned by the submission that set it: begin_submitting
    hands out a token and only end_submitting with that token clears it.
    """

    def __init__(self, schema: FormSchema, initial_values: Optional[Mapping[str, str]] = None):
        self.schema = schema
        self._tokens = itertools.count(1)
        self._in_flight: Optional[int] = None
        self._initial = self._complete(initial_values or {})
        self._state = self._build(values=dict(self._initial))

    # ── Reads ──

    def get_state(self) -> FormState:
        """Current snapshot."""
        return self._state

    @property
    def initial_values(self) -> dict[str, str]:
        return dict(self._initial)

    @property
    def is_submitting(self) -> bool:
        return self._state.is_submitting

    def can_submit(self, require_dirty: bool = False) -> bool:
        """Submit-button enablement: valid, idle and, if required, dirty."""
        state = self._state
        if state.is_submitting or not state.is_valid:
            return False
        return state.is_dirty or not require_dirty

    # ── Transitions ──

    def set_value(self, field: str, value: Optional[str]) -> FormState:
        """Update one field; re-validate only if it was touched or a submit was attempted."""
        self._check_field(field)
        state = self._state
        values = {**state.values, field: "" if value is None else str(value)}

        if field in state.touched or state.submit_count > 0:
            errors = schema_validator.validate(self.schema, values)
        else:
            errors = self._refresh_existing(state.errors, values)

        self._state = self._build(
            values=values,
            touched=state.touched,
            errors=errors,
            is_submitting=state.is_submitting,
            submit_count=state.submit_count,
        )
        return self._state

    def set_touched(self, field: str) -> FormState:
        """Mark a field touched and re-validate the whole form."""
        self._check_field(field)
        state = self._state
        self._state = self._build(
            values=state.values,
            touched=state.touched | {field},
            errors=schema_validator.validate(self.schema, state.values),
            is_submitting=state.is_submitting,
            submit_count=state.submit_count,
        )
        return self._state

    def reset(self, values: Optional[Mapping[str, str]] = None) -> FormState:
        """Restore values (given map or initial snapshot) and clear touched, errors and submit flags.

        A submission still awaiting its handler keeps the in-flight flag until
        it settles.
        """
        if values is not None:
            for field in values:
                self._check_field(field)
            restored = self._complete(values)
        else:
            restored = dict(self._initial)

        self._state = self._build(values=restored, is_submitting=self._in_flight is not None)
        logger.debug("form_reset", fields=len(restored))
        return self._state

    def attempt_submit(self, schema: Optional[FormSchema] = None) -> dict[str, str]:
        """Touch every field, count the attempt and re-validate. Returns the errors."""
        schema = schema or self.schema
        state = self._state
        errors = schema_validator.validate(schema, state.values)
        self._state = self._build(
            values=state.values,
            touched=state.touched | set(schema.fields),
            errors=errors,
            is_submitting=state.is_submitting,
            submit_count=state.submit_count + 1,
        )
        return errors

    def begin_submitting(self) -> Optional[int]:
        """Flag a submission in flight. Returns its token, or None if one already is."""
        if self._in_flight is not None:
            return None
        self._in_flight = next(self._tokens)
        self._state = self._state.model_copy(update={"is_submitting": True})
        return self._in_flight

    def end_submitting(self, token: int) -> bool:
        """Clear the in-flight flag if token owns it, keeping values and touched as they are."""
        if token != self._in_flight:
            return False
        self._in_flight = None
        self._state = self._state.model_copy(update={"is_submitting": False})
        return True

    # ── Internals ──

    def _check_field(self, field: str) -> None:
        if self.schema.rule_for(field) is None:
            raise ValueError(f"Unknown field '{field}'")

    def _complete(self, values: Mapping[str, str]) -> dict[str, str]:
        """Value map with every schema field present."""
        return {
            f: "" if values.get(f) is None else str(values.get(f))
            for f in self.schema.fields
        }

    def _refresh_existing(self, errors: Mapping[str, str], values: Mapping[str, str]) -> dict[str, str]:
        """Recompute fields that already show an error. Never adds a new one."""
        if not errors:
            return {}
        fresh = schema_validator.validate(self.schema, values)
        return {f: fresh[f] for f in errors if f in fresh}

    def _build(
        self,
        values: dict[str, str],
        touched: frozenset[str] = frozenset(),
        errors: Optional[dict[str, str]] = None,
        is_submitting: bool = False,
        submit_count: int = 0,
    ) -> FormState:
        errors = errors or {}
        required_filled = all(
            values.get(rule.field, "").strip()
            for rule in self.schema.rules
            if rule.is_required
        )
        return FormState(
            values=values,
            touched=frozenset(touched),
            errors=errors,
            is_submitting=is_submitting,
            submit_count=submit_count,
            is_valid=not errors and required_filled,
            is_dirty=values != self._initial,
        )
