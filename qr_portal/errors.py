from __future__ import annotations

from typing import Dict, Optional

from fastapi import HTTPException


# Error codes used when a plain HTTPException (e.g. from routing) is rendered.
STATUS_ERROR_CODES: Dict[int, str] = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    429: "RATE_LIMIT_EXCEEDED",
    500: "SERVER_ERROR",
}


class ApiError(HTTPException):
    """HTTP error rendered as {success: false, error, message}."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.error = error
        self.message = message


def error_code_for(exc: HTTPException) -> str:
    code = getattr(exc, "error", None)
    if code:
        return str(code)
    return STATUS_ERROR_CODES.get(int(exc.status_code), "ERROR")
