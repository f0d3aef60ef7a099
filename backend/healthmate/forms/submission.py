"""Submission Controller: guards and sequences the async submit of one form.

At most one submission is in flight per form: a second submit while the first
is pending is rejected, not queued. The controller never retries; a retry is
a new, user-initiated submit.

Usage:
    controller = SubmissionController(reset_on_success=True)
    outcome = await controller.submit(store, schema, handler)
    if outcome.status == "rejected":
        # outcome.reason is validation_failed, busy or handler_error
"""

import time
from typing import Any, Awaitable, Callable, Mapping, Optional

import structlog

from healthmate.forms.models import (
    FormDefinition,
    FormSchema,
    Rejected,
    RejectReason,
    Resolved,
    SubmitOutcome,
)
from healthmate.forms.store import FormStore
from healthmate.models.events import NotificationEvent, SubmissionStartedEvent

logger = structlog.get_logger()

SubmitHandler = Callable[[Mapping[str, str]], Awaitable[Any]]
EventCallback = Optional[Callable[[dict], Awaitable[None]]]

DEFAULT_FAILURE_MESSAGE = "Submission failed. Please try again."


class SubmissionController:
    """Runs a submit handler against a FormStore, gated by validity and in-flight state."""

    def __init__(
        self,
        reset_on_success: bool = False,
        success_message: Optional[str] = None,
        failure_message: str = DEFAULT_FAILURE_MESSAGE,
        event_callback: EventCallback = None,
        form_id: str = "form",
    ):
        self.reset_on_success = reset_on_success
        self.success_message = success_message
        self.failure_message = failure_message
        self.event_callback = event_callback
        self.form_id = form_id

    @classmethod
    def for_definition(
        cls, definition: FormDefinition, event_callback: EventCallback = None
    ) -> "SubmissionController":
        """Controller configured with a form definition's submit policy."""
        return cls(
            reset_on_success=definition.reset_on_success,
            success_message=definition.success_message,
            failure_message=definition.failure_message,
            event_callback=event_callback,
            form_id=definition.form_id,
        )

    async def submit(
        self,
        store: FormStore,
        schema: Optional[FormSchema],
        handler: SubmitHandler,
    ) -> SubmitOutcome:
        """Validate, then hand the current values to handler.

        Args:
            store: The form's state store
            schema: Rules to validate against (defaults to the store's schema)
            handler: Async callable receiving the value map

        Returns:
            Resolved(result) on success, Rejected(...) otherwise
        """
        schema = schema or store.schema
        errors = store.attempt_submit(schema)

        if errors:
            logger.info(
                "form_submit_rejected",
                form_id=self.form_id,
                reason=RejectReason.VALIDATION_FAILED.value,
                fields=sorted(errors),
            )
            return Rejected(
                reason=RejectReason.VALIDATION_FAILED,
                message="Please fix the highlighted fields.",
                errors=errors,
            )

        # Check-and-set with no await in between: a concurrent submit sees the flag
        token = store.begin_submitting()
        if token is None:
            logger.info("form_submit_rejected", form_id=self.form_id, reason=RejectReason.BUSY.value)
            return Rejected(reason=RejectReason.BUSY, message="A submission is already in progress.")

        values = dict(store.get_state().values)
        start_time = time.perf_counter()

        try:
            await self._emit(SubmissionStartedEvent(form_id=self.form_id).model_dump())
            result = await handler(values)
        except Exception as e:
            message = str(e).strip() or self.failure_message
            store.end_submitting(token)
            logger.warning(
                "form_submit_failed",
                form_id=self.form_id,
                error=message,
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            await self._emit(
                NotificationEvent(form_id=self.form_id, level="error", message=message).model_dump()
            )
            return Rejected(reason=RejectReason.HANDLER_ERROR, message=message)
        finally:
            # Also covers cancellation of the awaiting task
            store.end_submitting(token)

        if self.reset_on_success:
            store.reset()

        logger.info(
            "form_submit_succeeded",
            form_id=self.form_id,
            reset=self.reset_on_success,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        if self.success_message:
            await self._emit(
                NotificationEvent(form_id=self.form_id, level="success", message=self.success_message).model_dump()
            )
        return Resolved(result=result)

    async def _emit(self, event: dict) -> None:
        if self.event_callback is None:
            return
        try:
            await self.event_callback(event)
        except Exception as e:
            logger.warning("form_event_failed", form_id=self.form_id, error=str(e))


async def submit(
    store: FormStore,
    schema: Optional[FormSchema],
    handler: SubmitHandler,
    reset_on_success: bool = False,
) -> SubmitOutcome:
    """Submit once with a default controller."""
    return await SubmissionController(reset_on_success=reset_on_success).submit(store, schema, handler)
