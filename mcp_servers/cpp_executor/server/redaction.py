"""Redaction utilities for logging.

Source code and stdin can be large and may hold user data, so logs carry a
length summary instead of the text itself.
"""

from __future__ import annotations

from typing import Any

# Argument keys whose string values are summarized, never logged verbatim.
_BULK_KEYS = {"code", "input", "expectedOutput", "problemDescription"}

_MAX_LOG_TEXT = 512


def summarize_text(value: str) -> str:
    return f"<{len(value)} chars>"


def redact_tool_arguments(tool: str, args: dict[str, Any]) -> dict[str, Any]:
    """Redact tool arguments for safe logging."""
    return _redact_any(args, tool=tool, key=None)


def redact_jsonrpc_for_log(payload: dict[str, Any]) -> dict[str, Any]:
    """Redact a JSON-RPC message (request or response) for trace logging."""
    msg = dict(payload) if isinstance(payload, dict) else {}

    if msg.get("method") == "tools/call":
        params = msg.get("params")
        if isinstance(params, dict):
            name = params.get("name")
            args = params.get("arguments")
            if isinstance(name, str) and isinstance(args, dict):
                params = dict(params)
                params["arguments"] = redact_tool_arguments(name, args)
                msg["params"] = params

    result = msg.get("result")
    if isinstance(result, dict) and isinstance(result.get("content"), list):
        content = []
        for item in result["content"]:
            if isinstance(item, dict) and isinstance(item.get("text"), str) and len(item["text"]) > _MAX_LOG_TEXT:
                item = {**item, "text": item["text"][:_MAX_LOG_TEXT] + f"... <truncated {len(item['text'])} chars>"}
            content.append(item)
        result = {**result, "content": content}
        result.pop("data", None)
        msg["result"] = result
    return msg


def _redact_any(value: Any, *, tool: str, key: str | None) -> Any:
    if isinstance(value, dict):
        return {k: _redact_any(v, tool=tool, key=str(k)) for k, v in value.items()}

    if isinstance(value, list):
        return [_redact_any(v, tool=tool, key=key) for v in value]

    if isinstance(value, str) and key in _BULK_KEYS:
        return summarize_text(value)

    return value


__all__ = ["redact_jsonrpc_for_log", "redact_tool_arguments", "summarize_text"]
