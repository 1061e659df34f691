"""Error taxonomy shared by the registries, pipeline, tools and providers."""

from __future__ import annotations


class CadreError(Exception):
    """Base class for every error raised by cadre."""

    code = "CadreError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(CadreError):
    """Bad caller input (missing agent name, blank task text, ...)."""

    code = "ValidationError"


class NotFoundError(CadreError):
    """Unknown agent or conversation id."""

    code = "NotFoundError"


class UpstreamError(CadreError):
    """The completion client or a tool failed."""

    code = "UpstreamError"

    def __init__(self, message: str = "", source: str = ""):
        super().__init__(message)
        self.source = source


class RunTimeoutError(CadreError, TimeoutError):
    """A pipeline run exceeded its deadline."""

    code = "TimeoutError"


class ParseError(CadreError):
    """Completion output did not have the expected structure."""

    code = "ParseError"


class ToolContextError(ValidationError):
    """A tool was invoked without the context fields it needs."""

    code = "ToolContextError"


def error_type(exc: BaseException) -> str:
    """Stable error label for failure results."""
    if isinstance(exc, CadreError):
        return exc.code
    return type(exc).__name__
