"""Error kinds raised by the stores and the HTTP error responses built from them."""

from enum import Enum
from http import HTTPStatus

from fastapi.responses import PlainTextResponse

from .logger import logger


class ErrorKind(str, Enum):
    """Distinguishable failure kinds a store can report."""
    NO_RECORD = "NO_RECORD"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"


_DEFAULT_MESSAGES = {
    ErrorKind.NO_RECORD: "no matching record found",
    ErrorKind.DUPLICATE_EMAIL: "duplicate email",
    ErrorKind.INVALID_CREDENTIALS: "invalid credentials",
}


class ModelError(Exception):
    """Expected store failure; callers branch on ``kind``."""

    def __init__(self, kind: ErrorKind, message: str | None = None):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        super().__init__(self.message)


class LoginRequired(Exception):
    """Raised when a route needs an authenticated user and there is none."""


# ==================== Error Responses ====================


def server_error(exc: BaseException) -> PlainTextResponse:
    """Log the failure with its traceback and send a generic 500 to the client."""
    logger.error(f"Internal server error: {exc!r}", exc_info=exc)
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    return PlainTextResponse(status.phrase, status_code=status.value)


def client_error(status_code: int) -> PlainTextResponse:
    """Plain status-phrase response for problems caused by the request."""
    return PlainTextResponse(HTTPStatus(status_code).phrase, status_code=status_code)


def not_found() -> PlainTextResponse:
    return client_error(HTTPStatus.NOT_FOUND)
