"""
Request-level error taxonomy.

Every failure that reaches the HTTP layer is one of:
- ValidationError: the caller sent bad input
- NotFoundError:   a referenced entity does not exist
- UpstreamError:   the X API failed or rejected the call
- StorageError:    PostgreSQL failed

`main.py` renders these into `{"ok": false, "error": {...}}` responses.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        body.update(self.details)
        return body


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404


class UpstreamError(AppError):
    code = "UPSTREAM_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        upstream_body: str | None = None,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if upstream_body is not None:
            details["upstream_body"] = upstream_body
        super().__init__(message, code=code, status_code=status_code, details=details)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body


class StorageError(AppError):
    code = "DATABASE_ERROR"
    status_code = 500
