"""Error envelope returned by every endpoint on failure."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str = Field(description="Stable machine code, e.g. VALIDATION_FAILED or WRITE_FAILED")
    message: str = Field(description="Human-readable message shown to the admin")
    detail: dict[str, Any] | None = None


class ErrorResponse(BaseModel):
    """{ "error": { "code", "message", "detail" } }"""

    error: ErrorDetail

    @classmethod
    def build(cls, code: str, message: str, detail: dict[str, Any] | None = None) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=code, message=message, detail=detail))
