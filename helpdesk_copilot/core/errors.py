"""Error taxonomy shared by the drafting and ticket services."""

from __future__ import annotations

from typing import Any


class HelpdeskError(Exception):
    status_code: int = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    @property
    def detail(self) -> dict[str, Any]:
        return {"message": self.message, **self.extra}


class NotConfigured(HelpdeskError):
    """Completion credentials are missing; nothing was attempted."""

    status_code = 503


class GenerationFailed(HelpdeskError):
    """The completion service errored, timed out or returned unusable output."""

    status_code = 502


class GuardrailBlocked(HelpdeskError):
    status_code = 422

    def __init__(self, phrases: list[str], draft_text: str = "") -> None:
        super().__init__(
            "Draft still contains banned phrases after retry: " + ", ".join(phrases),
            phrases=list(phrases),
        )
        self.phrases = list(phrases)
        self.draft_text = draft_text


class Unauthorized(HelpdeskError):
    status_code = 401


class Forbidden(HelpdeskError):
    status_code = 403


class NotFound(HelpdeskError):
    status_code = 404


class ValidationFailed(HelpdeskError):
    status_code = 400


__all__ = [
    "HelpdeskError",
    "NotConfigured",
    "GenerationFailed",
    "GuardrailBlocked",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "ValidationFailed",
]
