"""ChainException hierarchy for controlled chain aborts."""

from __future__ import annotations


class ChainException(Exception):
    """Base for all chain exceptions."""


class ChainAbort(ChainException):
    """Controlled abort with HTTP status code and detail."""

    def __init__(self, detail: str, *, status_code: int = 400) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class ChainInternalError(ChainException):
    """Executor-level error: a middleware broke the continuation contract."""

    def __init__(self, detail: str, *, cause: Exception | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.cause = cause
