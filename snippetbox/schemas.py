"""Pydantic form models decoded from POST bodies and re-rendered on error."""

from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field

from .validator import Validator


FormT = TypeVar("FormT", bound=BaseModel)


class FormDecodeError(Exception):
    """The request body could not be decoded into the form model."""


# ==================== Form Schemas ====================

class SnippetCreateForm(BaseModel):
    """Fields for creating a snippet."""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    content: str = ""
    expires: int = 0
    validator: Validator = Field(default_factory=Validator)


class UserSignupForm(BaseModel):
    """Fields for registering a new account."""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    password: str = ""
    validator: Validator = Field(default_factory=Validator)


class UserLoginForm(BaseModel):
    """Fields for logging in."""
    model_config = ConfigDict(extra="ignore")

    email: str = ""
    password: str = ""
    validator: Validator = Field(default_factory=Validator)


# ==================== Decoding ====================

async def decode_post_form(request: Request, form_cls: type[FormT]) -> FormT:
    """Populate ``form_cls`` from the urlencoded body of ``request``.

    Only the form's own input fields are read; the validator is never taken
    from client data. Raises FormDecodeError when the body is malformed or a
    value has the wrong type (e.g. a non-numeric ``expires``).
    """
    try:
        body = await request.form()
    except Exception as e:
        raise FormDecodeError(str(e)) from e

    values = {
        name: body[name]
        for name in form_cls.model_fields
        if name != "validator" and name in body
    }
    for name, value in values.items():
        if not isinstance(value, str):
            raise FormDecodeError(f"field {name!r} must be a plain value")
    try:
        return form_cls.model_validate(values)
    except ValueError as e:
        raise FormDecodeError(str(e)) from e
