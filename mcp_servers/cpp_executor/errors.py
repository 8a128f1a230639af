"""
Error taxonomy for the execution adapter.

Stage errors carry the stage that failed plus a short suggestion. They never
leave the adapter: `ExecutionAdapter.execute` converts them into a failed
`ExecutionResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class CdpError(Exception):
    """Transport-level failure talking to Chrome over the DevTools protocol."""


@dataclass
class ExecutorError(Exception):
    """Structured error with the stage that failed."""

    stage: str
    reason: str
    suggestion: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.stage}] {self.reason}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "stage": self.stage,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


class SessionInitError(ExecutorError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            stage="session",
            reason=reason,
            suggestion="Check MCP_BROWSER_BINARY / MCP_BROWSER_PORT and that Chrome can start",
            details=details,
        )


class NavigationError(ExecutorError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            stage="navigate",
            reason=reason,
            suggestion="The compiler site may be slow or unreachable; retry or raise MCP_NAVIGATION_TIMEOUT",
            details=details,
        )


class EditorNotReadyError(ExecutorError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            stage="editor_ready",
            reason=reason,
            suggestion="The code editor did not load; retry the request",
            details=details,
        )


class UIStateTimeoutError(ExecutorError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            stage="input_area",
            reason=reason,
            suggestion="An overlay or ad kept the stdin box hidden; retry the request",
            details=details,
        )


class InputBoxUnavailableError(ExecutorError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            stage="inject_input",
            reason=reason,
            suggestion="Program input could not be delivered; retry the request",
            details=details,
        )


class ToolArgumentError(ValueError):
    """Raised by tool handlers when call arguments fail validation."""

    def __init__(self, tool: str, reason: str) -> None:
        super().__init__(reason)
        self.tool = tool
        self.reason = reason


__all__ = [
    "CdpError",
    "EditorNotReadyError",
    "ExecutorError",
    "InputBoxUnavailableError",
    "NavigationError",
    "SessionInitError",
    "ToolArgumentError",
    "UIStateTimeoutError",
]
