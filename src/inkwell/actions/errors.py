"""Error taxonomy for the action engine.

Every error carries a machine-readable ``error_code`` and a human-readable
``message`` so UI layers can branch on the code and show the message as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorCode:
    """Constants for error codes raised by the action engine."""

    NO_SELECTION = "no_selection"
    HANDLED_EXTERNALLY = "handled_externally"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_ERROR = "provider_error"
    SUPERSEDED = "superseded"
    UNKNOWN_ACTION = "unknown_action"
    INVALID_TRANSITION = "invalid_transition"


@dataclass
class ActionEngineError(Exception):
    """Base exception for every failure surfaced by the action engine.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable description, safe to show to the user.
        suggestion: Actionable guidance for recovery.
    """

    error_code: str
    message: str
    suggestion: str = ""

    # Control signals override this to ``False``.
    is_failure: ClassVar[bool] = True

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class NoSelectionError(ActionEngineError):
    """The action needs selected text and none was supplied."""

    error_code: str = field(default=ErrorCode.NO_SELECTION)
    message: str = field(default="Please select some text first.")
    suggestion: str = field(default="Select the text the action should work on and try again")


@dataclass
class HandledExternallyError(ActionEngineError):
    """Control signal: the action was routed to the citation manager.

    No suggestion will be produced and nothing is left pending.
    """

    error_code: str = field(default=ErrorCode.HANDLED_EXTERNALLY)
    message: str = field(default="Action opened in the citation manager.")
    suggestion: str = field(default="")
    action_id: str | None = field(default=None)

    is_failure: ClassVar[bool] = False


@dataclass
class ProviderUnavailableError(ActionEngineError):
    """The completion provider is not configured."""

    error_code: str = field(default=ErrorCode.PROVIDER_UNAVAILABLE)
    message: str = field(
        default="AI assistant is not configured. Please add your API key in Settings."
    )
    suggestion: str = field(default="Set an API key with INKWELL_API_KEY or in settings.json")


@dataclass
class ProviderError(ActionEngineError):
    """Remote failure reported by the completion provider.

    ``message`` is surfaced verbatim; ``code`` narrows the failure
    (``rate_limited``, ``timeout``, ``http_404`` ...).
    """

    error_code: str = field(default=ErrorCode.PROVIDER_ERROR)
    message: str = field(default="Request failed.")
    suggestion: str = field(default="")
    code: str = field(default="request_failed")
    status_code: int | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["code"] = self.code
        if self.status_code is not None:
            result["status_code"] = self.status_code
        return result


@dataclass
class ExecutionSupersededError(ActionEngineError):
    """The run was cancelled or replaced by a newer invocation before it finished."""

    error_code: str = field(default=ErrorCode.SUPERSEDED)
    message: str = field(default="The action was superseded by a newer request.")
    suggestion: str = field(default="")

    is_failure: ClassVar[bool] = False


@dataclass
class UnknownActionError(ActionEngineError):
    """No action with the requested composite id exists in the registry."""

    error_code: str = field(default=ErrorCode.UNKNOWN_ACTION)
    message: str = field(default="Unknown action")
    suggestion: str = field(default="Run `inkwell list` to see the available action ids")
    action_id: str | None = field(default=None)

    @classmethod
    def for_id(cls, action_id: str) -> UnknownActionError:
        return cls(message=f"Unknown action '{action_id}'", action_id=action_id)


@dataclass
class InvalidTransitionError(ActionEngineError):
    """A lifecycle transition outside the permitted set was attempted."""

    error_code: str = field(default=ErrorCode.INVALID_TRANSITION)
    message: str = field(default="Invalid suggestion lifecycle transition")
    suggestion: str = field(default="")


class ParseSkip(Exception):
    """Raised inside the parser to drop one malformed action block.

    Never escapes :func:`inkwell.actions.parser.parse_actions`.
    """


__all__ = [
    "ErrorCode",
    "ActionEngineError",
    "NoSelectionError",
    "HandledExternallyError",
    "ProviderUnavailableError",
    "ProviderError",
    "ExecutionSupersededError",
    "UnknownActionError",
    "InvalidTransitionError",
    "ParseSkip",
]
