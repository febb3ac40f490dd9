"""
Error values for the auth service.

Credential and token checks return one of these instead of raising;
the routers turn them into JSON responses with ``error_response``.
"""
from dataclasses import dataclass
from typing import Any, Dict

from fastapi import status
from fastapi.responses import JSONResponse


@dataclass(frozen=True)
class AuthError:
    """Base for all error values."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def body(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class MissingField(AuthError):
    """A required request field is absent or empty."""
    field: str
    status_code = status.HTTP_400_BAD_REQUEST

    def body(self) -> Dict[str, Any]:
        return {"field": self.field, "error": f"The {self.field} field is required"}


@dataclass(frozen=True)
class InvalidField(AuthError):
    """A request field is present but unusable."""
    field: str
    reason: str
    status_code = status.HTTP_400_BAD_REQUEST

    def body(self) -> Dict[str, Any]:
        return {"field": self.field, "error": self.reason}


@dataclass(frozen=True)
class InvalidCredentials(AuthError):
    """
    Login failed.

    Used both for an unknown email and for a wrong password so the two
    cannot be told apart.
    """
    status_code = status.HTTP_401_UNAUTHORIZED

    def body(self) -> Dict[str, Any]:
        return {"field": "email", "error": "Email or password is invalid"}


@dataclass(frozen=True)
class Unauthorized(AuthError):
    """Missing, invalid, expired or stale token."""
    message: str = "Invalid token"
    status_code = status.HTTP_401_UNAUTHORIZED

    def body(self) -> Dict[str, Any]:
        return {"message": self.message}


@dataclass(frozen=True)
class DuplicateField(AuthError):
    """A unique field already holds the submitted value."""
    field: str
    status_code = status.HTTP_409_CONFLICT

    def body(self) -> Dict[str, Any]:
        return {"field": self.field, "error": f"The {self.field} is already registered"}


@dataclass(frozen=True)
class InternalError(AuthError):
    message: str = "Internal server error"

    def body(self) -> Dict[str, Any]:
        return {"message": self.message}


def error_response(error: AuthError) -> JSONResponse:
    """Build the JSON response for an error value."""
    return JSONResponse(status_code=error.status_code, content=error.body())


class AuthFailure(Exception):
    """
    Carries an error value out of a FastAPI dependency.

    Dependencies cannot return early, so they raise this and the app's
    exception handler answers with ``error_response``.
    """
    def __init__(self, error: AuthError):
        super().__init__(error)
        self.error = error
