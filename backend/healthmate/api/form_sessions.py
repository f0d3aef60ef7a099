"""Form sessions API: mount a form, drive its transitions, submit it."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request

import structlog

from healthmate.api.forms import get_definition_or_404
from healthmate.forms import SubmissionController, score_password
from healthmate.models.requests import ResetFormRequest, SetValueRequest
from healthmate.models.responses import FormSessionResponse, FormStateResponse, SubmitResponse
from healthmate.services.form_sessions import FormSession, SessionLimitError
from healthmate.services.notifications import notification_bus

logger = structlog.get_logger()

router = APIRouter()


def _get_session_or_404(request: Request, session_id: str) -> FormSession:
    session = request.app.state.form_sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Form session {session_id} not found")
    return session


def _session_response(session: FormSession) -> FormSessionResponse:
    definition = session.definition
    state = session.store.get_state()

    strength = None
    if definition.strength_field:
        strength = score_password(state.values.get(definition.strength_field, ""))

    return FormSessionResponse(
        session_id=session.session_id,
        form_id=session.form_id,
        state=FormStateResponse.from_state(state),
        can_submit=session.store.can_submit(require_dirty=definition.require_dirty),
        password_strength=strength,
        websocket_url=f"/ws/form-sessions/{session.session_id}",
    )


# ─── Endpoints ───


@router.post("/forms/{form_id}/sessions", status_code=201, response_model=FormSessionResponse)
async def create_form_session(form_id: str, request: Request):
    """Mount a form: create its state store with the form's initial values."""
    definition = get_definition_or_404(form_id)
    try:
        session = request.app.state.form_sessions.create(definition)
    except SessionLimitError as e:
        raise HTTPException(status_code=429, detail=str(e))
    return _session_response(session)


@router.get("/form-sessions/{session_id}", response_model=FormSessionResponse)
async def get_form_session(session_id: str, request: Request):
    """Current state of a form session."""
    return _session_response(_get_session_or_404(request, session_id))


@router.put("/form-sessions/{session_id}/values/{field}", response_model=FormSessionResponse)
async def set_field_value(session_id: str, field: str, request_body: SetValueRequest, request: Request):
    """User input: update one field's value."""
    session = _get_session_or_404(request, session_id)
    session.store.set_value(field, request_body.value)
    return _session_response(session)


@router.post("/form-sessions/{session_id}/touched/{field}", response_model=FormSessionResponse)
async def touch_field(session_id: str, field: str, request: Request):
    """User left a field: mark it touched and re-validate."""
    session = _get_session_or_404(request, session_id)
    session.store.set_touched(field)
    return _session_response(session)


@router.post("/form-sessions/{session_id}/submit", response_model=SubmitResponse)
async def submit_form_session(session_id: str, request: Request):
    """Submit the form through its HealthMate API handler."""
    session = _get_session_or_404(request, session_id)

    handler = request.app.state.gateway.handler_for(session.form_id)
    if handler is None:
        raise HTTPException(status_code=409, detail=f"Form {session.form_id} has no submit handler")

    controller = SubmissionController.for_definition(
        session.definition,
        event_callback=notification_bus.create_callback(session_id),
    )
    outcome = await controller.submit(session.store, session.definition.validation, handler)
    logger.info("form_session_submitted", session_id=session_id, form_id=session.form_id, status=outcome.status)

    if outcome.status == "resolved":
        return SubmitResponse(
            status="resolved",
            result=outcome.result,
            message=session.definition.success_message,
            session=_session_response(session),
        )
    return SubmitResponse(
        status="rejected",
        reason=outcome.reason,
        message=outcome.message,
        errors=outcome.errors,
        session=_session_response(session),
    )


@router.post("/form-sessions/{session_id}/reset", response_model=FormSessionResponse)
async def reset_form_session(session_id: str, request: Request, request_body: Optional[ResetFormRequest] = None):
    """Restore initial (or given) values and clear touched, errors and submit flags."""
    session = _get_session_or_404(request, session_id)
    session.store.reset(request_body.values if request_body else None)
    return _session_response(session)


@router.delete("/form-sessions/{session_id}", status_code=204)
async def delete_form_session(session_id: str, request: Request):
    """Unmount a form: discard its state and notify connected clients."""
    _get_session_or_404(request, session_id)
    request.app.state.form_sessions.delete(session_id)
