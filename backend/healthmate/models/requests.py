"""API request models."""

from pydantic import BaseModel, Field
from typing import Optional


class ValidateFormRequest(BaseModel):
    """Values to validate against a form's rules."""

    values: dict[str, Optional[str]] = Field(
        default_factory=dict,
        description="Field name to current value; missing fields count as empty",
        examples=[{"email": "not-an-email", "password": "secret1"}],
    )


class PasswordStrengthRequest(BaseModel):
    """Password to score."""

    password: str = Field(default="", max_length=256)


class SetValueRequest(BaseModel):
    """New value for one field of a form session."""

    value: Optional[str] = Field(default="", max_length=10000)


class ResetFormRequest(BaseModel):
    """Optional values to reset a form session to (defaults to its initial values)."""

    values: Optional[dict[str, str]] = None
