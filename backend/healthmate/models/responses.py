"""API response models."""

from pydantic import BaseModel
from typing import Any, Optional, Literal

from healthmate.forms import FormState, PasswordStrength


class FormSummary(BaseModel):
    """Short description of an available form."""

    form_id: str
    title: str
    fields: list[str]


class ValidateFormResponse(BaseModel):
    """Result of a stateless validation run."""

    form_id: str
    errors: dict[str, str]
    is_valid: bool


class FormStateResponse(BaseModel):
    """Snapshot of a form session as a client renders it."""

    values: dict[str, str]
    touched: list[str]
    errors: dict[str, str]
    visible_errors: dict[str, str]
    is_submitting: bool
    submit_count: int
    is_valid: bool
    is_dirty: bool

    @classmethod
    def from_state(cls, state: FormState) -> "FormStateResponse":
        return cls(
            values=state.values,
            touched=sorted(state.touched),
            errors=state.errors,
            visible_errors=state.visible_errors,
            is_submitting=state.is_submitting,
            submit_count=state.submit_count,
            is_valid=state.is_valid,
            is_dirty=state.is_dirty,
        )


class FormSessionResponse(BaseModel):
    """A form session with its current state and submit enablement."""

    session_id: str
    form_id: str
    state: FormStateResponse
    can_submit: bool
    password_strength: Optional[PasswordStrength] = None
    websocket_url: str


class SubmitResponse(BaseModel):
    """Outcome of a submit plus the form session afterwards."""

    status: Literal["resolved", "rejected"]
    reason: Optional[str] = None
    message: str = ""
    errors: dict[str, str] = {}
    result: Any = None
    session: FormSessionResponse


class HealthDependency(BaseModel):
    """Health status of a single dependency."""

    status: Literal["healthy", "unhealthy", "degraded"]
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseModel):
    """System health check response."""

    status: Literal["healthy", "unhealthy", "degraded"]
    version: str = "1.0.0"
    uptime_seconds: float
    active_form_sessions: int = 0
    dependencies: dict[str, HealthDependency]
