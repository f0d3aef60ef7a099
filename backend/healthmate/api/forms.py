"""Forms API: form definitions, stateless validation and password strength."""

from fastapi import APIRouter, HTTPException

import structlog

from healthmate.forms import (
    FormDefinition,
    PasswordStrength,
    get_all_form_ids,
    load_form_definition,
    score_password,
    validate,
)
from healthmate.models.requests import PasswordStrengthRequest, ValidateFormRequest
from healthmate.models.responses import FormSummary, ValidateFormResponse

logger = structlog.get_logger()

router = APIRouter()


def get_definition_or_404(form_id: str) -> FormDefinition:
    definition = load_form_definition(form_id)
    if definition is None:
        raise HTTPException(status_code=404, detail=f"Form {form_id} not found")
    return definition


@router.get("/forms", response_model=list[FormSummary])
async def list_forms():
    """List the forms this service can validate and submit."""
    summaries = []
    for form_id in get_all_form_ids():
        definition = load_form_definition(form_id)
        summaries.append(FormSummary(
            form_id=form_id,
            title=definition.title,
            fields=definition.validation.fields,
        ))
    return summaries


@router.get("/forms/{form_id}", response_model=FormDefinition)
async def get_form(form_id: str):
    """Full definition of one form: rules, initial values and submit policy."""
    return get_definition_or_404(form_id)


@router.post("/forms/{form_id}/validate", response_model=ValidateFormResponse)
async def validate_form(form_id: str, request_body: ValidateFormRequest):
    """Validate a full value map against a form's rules, without any session state."""
    definition = get_definition_or_404(form_id)

    unknown = set(request_body.values) - set(definition.validation.fields)
    if unknown:
        raise ValueError(f"Unknown fields for form '{form_id}': {', '.join(sorted(unknown))}")

    errors = validate(definition.validation, request_body.values)
    logger.debug("form_values_validated", form_id=form_id, total_errors=len(errors))
    required_filled = all(
        (request_body.values.get(rule.field) or "").strip()
        for rule in definition.validation.rules
        if rule.is_required
    )
    return ValidateFormResponse(
        form_id=form_id,
        errors=errors,
        is_valid=not errors and required_filled,
    )


@router.post("/password-strength", response_model=PasswordStrength)
async def password_strength(request_body: PasswordStrengthRequest):
    """Score a password 0-5."""
    return score_password(request_body.password)
