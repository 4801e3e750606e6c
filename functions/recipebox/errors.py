"""
Error taxonomy for the HTTP layer.

Routes raise these; ``create_app`` installs a handler that renders them as
JSON bodies so no failure escapes as an HTML error page.
"""

from __future__ import annotations

from typing import Any, Optional


class ApiError(Exception):
    status_code = 500

    def __init__(
        self,
        error: str,
        *,
        details: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(error)
        self.error = error
        self.details = details
        self.extra = extra or {}
        self.headers = headers or {}

    def to_dict(self) -> dict[str, Any]:
        body = dict(self.extra)
        body["error"] = self.error
        if self.details is not None:
            body["details"] = self.details
        return body


class ClientError(ApiError):
    """Bad or missing input."""

    status_code = 400


class UnauthorizedError(ApiError):
    """No usable credential."""

    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class UpstreamFailure(ApiError):
    """The database or the OAuth provider failed."""

    status_code = 500
