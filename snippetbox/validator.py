"""Form validation predicates and the error container forms carry."""

import re
from typing import Any

from pydantic import BaseModel, Field

EMAIL_RX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


# ==================== Predicates ====================

def not_blank(value: str) -> bool:
    """True if the value contains something other than whitespace."""
    return value.strip() != ""


def max_chars(value: str, n: int) -> bool:
    """True if the value has at most n characters (code points, not bytes)."""
    return len(value) <= n


def min_chars(value: str, n: int) -> bool:
    return len(value) >= n


def allowed_value(value: Any, *candidates: Any) -> bool:
    return value in candidates


def matches(value: str, rx: re.Pattern) -> bool:
    return rx.match(value) is not None


# ==================== Error Container ====================

class Validator(BaseModel):
    """Accumulates field-level and form-level validation errors."""
    field_errors: dict[str, list[str]] = Field(default_factory=dict)
    non_field_errors: list[str] = Field(default_factory=list)

    def valid(self) -> bool:
        return not self.field_errors and not self.non_field_errors

    def add_field_error(self, key: str, message: str) -> None:
        self.field_errors.setdefault(key, []).append(message)

    def add_non_field_error(self, message: str) -> None:
        self.non_field_errors.append(message)

    def check_field(self, ok: bool, key: str, message: str) -> None:
        """Record ``message`` against ``key`` when the check failed."""
        if not ok:
            self.add_field_error(key, message)

    def first_error(self, key: str) -> str | None:
        """First recorded message for a field, for display next to the input."""
        errors = self.field_errors.get(key)
        return errors[0] if errors else None
