"""
MCP server that compiles and runs C++ on a remote online compiler.

This module provides the main entry point and protocol handling. Tool
dispatch is handled via registry pattern in server/registry.py; page
automation lives in adapter.py.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import signal
import sys
import time
from collections.abc import Callable
from typing import Any

from .adapter import ExecutionAdapter
from .config import ExecutorConfig
from .errors import ToolArgumentError
from .server.contract import (
    DEFAULT_PROTOCOL_VERSION,
    LATEST_PROTOCOL_VERSION,
    SERVER_INFO,
    SUPPORTED_PROTOCOL_VERSIONS,
    initialize_result,
    select_protocol,
    tools_list,
)
from .server.redaction import redact_jsonrpc_for_log, redact_tool_arguments
from .server.registry import ToolRegistry, create_default_registry
from .server.types import ToolResult
from .session_manager import SessionManager

logger = logging.getLogger("mcp.cpp_executor")

__all__ = [
    "SUPPORTED_PROTOCOL_VERSIONS",
    "LATEST_PROTOCOL_VERSION",
    "DEFAULT_PROTOCOL_VERSION",
    "McpServer",
    "main",
]

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

MAX_METHOD_LENGTH = 100
# Source code travels inside one JSON line.
MAX_LINE_BYTES = 16 * 1024 * 1024


def configure_logging() -> None:
    level = os.environ.get("MCP_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )


def _write_message(payload: dict[str, Any]) -> None:
    """Write JSON-RPC message to stdout."""
    data = json.dumps(payload, ensure_ascii=False)
    sys.stdout.buffer.write((data + "\n").encode())
    sys.stdout.buffer.flush()


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _result(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


class McpServer:
    """MCP Server with registry-based tool dispatch."""

    def __init__(
        self,
        config: ExecutorConfig | None = None,
        *,
        adapter: ExecutionAdapter | None = None,
        registry: ToolRegistry | None = None,
        write: Callable[[dict[str, Any]], None] = _write_message,
    ) -> None:
        self.config = config or ExecutorConfig.from_env()
        self.adapter = adapter or ExecutionAdapter(SessionManager(self.config), self.config)
        self.registry = registry or create_default_registry()
        self._write = write
        self._started = time.monotonic()
        self._calls: set[asyncio.Task] = set()

    # ─────────────────────────────────────────────────────────────────────────
    # Methods
    # ─────────────────────────────────────────────────────────────────────────

    def handle_initialize(self, request_id: Any, params: dict[str, Any]) -> dict[str, Any]:
        protocol = select_protocol(params.get("protocolVersion"))
        return _result(request_id, initialize_result(protocol))

    def handle_list_tools(self, request_id: Any) -> dict[str, Any]:
        return _result(request_id, {"tools": tools_list()})

    def handle_health(self, request_id: Any) -> dict[str, Any]:
        return _result(
            request_id,
            {
                "status": "healthy",
                "server": SERVER_INFO["name"],
                "version": SERVER_INFO["version"],
                "uptime": round(time.monotonic() - self._started, 3),
                "sessionActive": self.adapter.sessions.active,
            },
        )

    def _log_call(self, name: str, arguments: dict[str, Any]) -> None:
        """Log tool call with sanitized arguments."""
        logger.info("tool=%s args=%s", name, redact_tool_arguments(name, arguments))

    async def handle_call_tool(self, request_id: Any, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return _error(request_id, INVALID_PARAMS, "Missing tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return _result(request_id, ToolResult.error("'arguments' must be an object", tool=name).to_response())

        self._log_call(name, arguments)
        try:
            if not self.registry.has(name):
                result = ToolResult.error(f"Unknown tool: {name}", tool=name)
            else:
                result = await self.registry.dispatch(name, self.adapter, arguments)
        except ToolArgumentError as e:
            logger.info("tool_error tool=%s reason=%s", e.tool, e.reason)
            result = ToolResult.error(e.reason, tool=e.tool, suggestion="Check the tool's inputSchema")
        except Exception as exc:
            logger.exception("tool_call_failed")
            result = ToolResult.error(str(exc) or type(exc).__name__, tool=name)

        return _result(request_id, result.to_response())

    async def dispatch(self, message: Any) -> dict[str, Any] | None:
        """Handle one decoded JSON-RPC message; return the response, or None for notifications."""
        if not isinstance(message, dict):
            return _error(None, INVALID_REQUEST, "Invalid Request")

        request_id = message.get("id")
        method = message.get("method")
        if message.get("jsonrpc") != "2.0" or not isinstance(method, str) or not method:
            return _error(request_id, INVALID_REQUEST, "Invalid Request")
        if len(method) > MAX_METHOD_LENGTH:
            return _error(request_id, INVALID_PARAMS, "Invalid method")

        params = message.get("params")
        if not isinstance(params, dict):
            params = {}

        if method == "initialize":
            return self.handle_initialize(request_id, params)
        if method.startswith("notifications/"):
            return None
        if method == "tools/list":
            return self.handle_list_tools(request_id)
        if method == "tools/call":
            return await self.handle_call_tool(request_id, params)
        if method == "ping":
            return _result(request_id, {})
        if method == "health":
            return self.handle_health(request_id)
        return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    # ─────────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────────

    def _send(self, payload: dict[str, Any]) -> None:
        if os.environ.get("MCP_TRACE"):
            logger.info("send %s", redact_jsonrpc_for_log(payload))
        self._write(payload)

    async def _respond(self, message: Any) -> None:
        response = await self.dispatch(message)
        if response is not None:
            self._send(response)

    async def handle_line(self, line: bytes) -> None:
        """Decode one line; tools/call runs as its own task so pings stay responsive."""
        line = line.strip()
        if not line:
            return
        try:
            message = json.loads(line.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.info("parse_error %s", exc)
            self._send(_error(None, PARSE_ERROR, "Parse error"))
            return

        if os.environ.get("MCP_TRACE") and isinstance(message, dict):
            logger.info("recv %s", redact_jsonrpc_for_log(message))

        if isinstance(message, dict) and message.get("method") == "tools/call":
            task = asyncio.create_task(self._respond(message))
            self._calls.add(task)
            task.add_done_callback(self._calls.discard)
            return
        await self._respond(message)

    async def drain(self) -> None:
        """Wait for in-flight tool calls to answer."""
        if self._calls:
            await asyncio.gather(*list(self._calls), return_exceptions=True)

    async def serve(self, reader: asyncio.StreamReader) -> None:
        """Read newline-delimited JSON-RPC from `reader` until EOF or a stop signal."""
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, stop.set)
        stopper = asyncio.create_task(stop.wait())

        try:
            while True:
                read = asyncio.create_task(reader.readline())
                done, _ = await asyncio.wait({read, stopper}, return_when=asyncio.FIRST_COMPLETED)
                if stopper in done:
                    read.cancel()
                    logger.info("signal received; shutting down")
                    for task in list(self._calls):
                        task.cancel()
                    break
                try:
                    line = read.result()
                except ValueError as exc:
                    # Over-long line: the stream cannot resync, so stop.
                    logger.error("read_failed %s", exc)
                    break
                if not line:
                    await self.drain()
                    break
                await self.handle_line(line)
        finally:
            stopper.cancel()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)
            await self.adapter.shutdown()


async def _stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def _run() -> None:
    server = McpServer()
    logger.info("server_start name=%s compiler=%s", SERVER_INFO["name"], server.config.compiler_url)
    await server.serve(await _stdin_reader())


def main() -> None:
    """Main entry point for MCP server."""
    configure_logging()
    asyncio.run(_run())


if __name__ == "__main__":
    main()
