"""Error taxonomy shared by the engines, the console and the routes.

Every error carries a stable `code` plus a human message; routes render them
in the structured `{ "error": { code, message, detail } }` format and the
console turns them into notifications. None of them is fatal.
"""

from typing import Any


class AdminError(RuntimeError):
    """Base class for errors surfaced to the admin."""

    code = "ADMIN_ERROR"
    status_code = 400

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        if code:
            self.code = code


class ValidationError(AdminError):
    """A required field is missing; raised before any store call."""

    code = "VALIDATION_FAILED"
    status_code = 422


class FetchError(AdminError):
    """A read failed; the view falls back to an empty state."""

    code = "FETCH_FAILED"
    status_code = 502


class WriteError(AdminError):
    """A create/update/delete failed; local state is left untouched."""

    code = "WRITE_FAILED"
    status_code = 502


class DuplicateSubmission(WriteError):
    """The same mutation is already running on another worker."""

    code = "DUPLICATE_SUBMISSION"
    status_code = 409


class NotFoundError(AdminError):
    code = "NOT_FOUND"
    status_code = 404


class ConfirmationRequired(AdminError):
    """Destructive operation issued without an explicit confirmation."""

    code = "CONFIRMATION_REQUIRED"
    status_code = 409


def require_fields(record: dict[str, Any], required: tuple[str, ...], *, message: str | None = None) -> None:
    """Raise ValidationError unless every required field is a non-blank string."""
    missing = [name for name in required if not str(record.get(name) or "").strip()]
    if missing:
        raise ValidationError(
            message or "Please fill in all required fields",
            detail={"missing": missing},
        )
