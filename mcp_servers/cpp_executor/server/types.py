"""
Type definitions for MCP server responses and handlers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..adapter import ExecutionAdapter


@dataclass(slots=True)
class ToolContent:
    """Single content item in tool response."""

    type: str
    text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass(slots=True)
class ToolResult:
    """Result of a tool execution."""

    content: list[ToolContent] = field(default_factory=list)
    is_error: bool = False
    # Structured payload, sent alongside the text content as `data`.
    data: Any | None = None

    @classmethod
    def text(cls, text: str, data: Any | None = None) -> ToolResult:
        return cls(content=[ToolContent(type="text", text=text or "")], data=data)

    @classmethod
    def error(
        cls,
        message: str,
        *,
        tool: str | None = None,
        suggestion: str | None = None,
    ) -> ToolResult:
        payload: dict[str, Any] = {"ok": False, "error": message}
        if tool:
            payload["tool"] = tool
        text = f"Error: {message}"
        if suggestion:
            payload["suggestion"] = suggestion
            text += f"\nSuggestion: {suggestion}"
        return cls(content=[ToolContent(type="text", text=text)], is_error=True, data=payload)

    def to_content_list(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.content]

    def to_response(self) -> dict[str, Any]:
        """Render as the `result` of a tools/call response."""
        response: dict[str, Any] = {"content": self.to_content_list(), "isError": self.is_error}
        if self.data is not None and not self.is_error:
            response["data"] = self.data
        return response


HandlerFunc = Callable[["ExecutionAdapter", dict[str, Any]], Awaitable[ToolResult]]
