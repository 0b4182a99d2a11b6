"""Domain-level exceptions raised by the service layer."""

from __future__ import annotations

from fastapi import status


class NdropError(Exception):
    """Base class for domain errors; carries the HTTP status it maps to."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    reason: str = "error"
    detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None, reason: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail
        if reason:
            self.reason = reason


class ValidationError(NdropError):
    reason = "invalid"
    detail = "Invalid request"


class NotFoundError(NdropError):
    status_code = status.HTTP_404_NOT_FOUND
    reason = "not_found"
    detail = "Not found"


class ForbiddenError(NdropError):
    status_code = status.HTTP_403_FORBIDDEN
    reason = "forbidden"
    detail = "Forbidden"


class ConflictError(NdropError):
    status_code = status.HTTP_409_CONFLICT
    reason = "conflict"
    detail = "Conflict"


class ChatUnavailableError(ConflictError):
    reason = "chat_unavailable"
    detail = "Chat is only available for accepted or confirmed meetings"


class UpstreamError(NdropError):
    status_code = status.HTTP_502_BAD_GATEWAY
    reason = "upstream"
    detail = "Upstream service failed"
