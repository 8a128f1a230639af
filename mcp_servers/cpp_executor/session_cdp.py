"""Raw CDP WebSocket connection (asyncio, `websockets`)."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from .errors import CdpError

logger = logging.getLogger("mcp.cpp_executor.cdp")


def _import_websockets():
    try:
        import websockets

        return websockets
    except ImportError as exc:
        raise CdpError("The 'websockets' package is required (pip install websockets)") from exc


class CdpConnection:
    """
    Low-level CDP connection to a single page target.

    A reader task routes command responses to their waiting futures and
    everything else into a bounded event queue, including events that
    arrive while a command is in flight.
    """

    def __init__(self, ws: Any, ws_url: str, timeout: float = 10.0) -> None:
        self.ws = ws
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        self._pending: dict[int, asyncio.Future] = {}
        self._events: deque[dict[str, Any]] = deque(maxlen=2000)
        self._waiters: dict[str, list[asyncio.Future]] = {}
        self._event_sink: Callable[[dict[str, Any]], None] | None = None
        self._closed_reason: str | None = None
        self._reader: asyncio.Task | None = None

    @classmethod
    async def connect(cls, ws_url: str, timeout: float = 10.0) -> CdpConnection:
        websockets = _import_websockets()
        try:
            ws = await asyncio.wait_for(
                websockets.connect(ws_url, ping_interval=None, max_size=None, open_timeout=timeout),
                timeout=timeout,
            )
        except Exception as exc:  # noqa: BLE001
            raise CdpError(f"CDP connect failed: {exc}") from exc
        conn = cls(ws, ws_url, timeout=timeout)
        conn.start()
        return conn

    def start(self) -> None:
        if self._reader is None:
            self._reader = asyncio.get_running_loop().create_task(self._read_loop(), name="cdp-reader")

    @property
    def closed(self) -> bool:
        return self._closed_reason is not None

    def set_event_sink(self, sink: Callable[[dict[str, Any]], None] | None) -> None:
        """Attach a callback invoked for every received CDP event."""
        self._event_sink = sink

    async def _read_loop(self) -> None:
        try:
            async for raw in self.ws:
                self._route(raw)
            self._closed_reason = "CDP connection closed"
        except Exception as exc:  # noqa: BLE001
            self._closed_reason = f"CDP connection lost: {exc}"
            logger.info("cdp_reader_stopped reason=%s", exc)
        finally:
            if self._closed_reason is None:
                self._closed_reason = "CDP connection closed"
            self._fail_pending(self._closed_reason)

    def _route(self, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return
        if not isinstance(data, dict):
            return

        msg_id = data.get("id")
        if isinstance(msg_id, int):
            fut = self._pending.pop(msg_id, None)
            if fut is None or fut.done():
                return
            if "error" in data:
                fut.set_exception(CdpError(str(data["error"])))
            else:
                result = data.get("result")
                fut.set_result(result if isinstance(result, dict) else {})
            return

        if isinstance(data.get("method"), str):
            self._push_event(data)

    def _push_event(self, event: dict[str, Any]) -> None:
        sink = self._event_sink
        if sink is not None:
            with contextlib.suppress(Exception):
                sink(event)

        method = event["method"]
        params = event.get("params")
        params = params if isinstance(params, dict) else {}
        waiters = self._waiters.get(method)
        while waiters:
            fut = waiters.pop(0)
            if not fut.done():
                fut.set_result(params)
                return
        self._events.append(event)

    def _fail_pending(self, reason: str) -> None:
        for fut in self._pending.values():
            if not fut.done():
                fut.set_exception(CdpError(reason))
        self._pending.clear()
        for waiters in self._waiters.values():
            for fut in waiters:
                if not fut.done():
                    fut.set_exception(CdpError(reason))
        self._waiters.clear()

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Pop the oldest queued event params for the given event name."""
        for ev in self._events:
            if ev.get("method") == event_name:
                self._events.remove(ev)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def discard_events(self, event_name: str) -> int:
        """Drop queued events with this name (stale load events before a new navigation)."""
        kept = [ev for ev in self._events if ev.get("method") != event_name]
        dropped = len(self._events) - len(kept)
        self._events.clear()
        self._events.extend(kept)
        return dropped

    async def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send CDP command and wait for its response."""
        if self._closed_reason is not None:
            raise CdpError(self._closed_reason)

        msg_id = self._next_id
        self._next_id += 1
        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = fut
        try:
            try:
                await self.ws.send(json.dumps(msg))
            except Exception as exc:  # noqa: BLE001
                raise CdpError(f"CDP send failed: {exc}") from exc
            try:
                return await asyncio.wait_for(fut, timeout=timeout or self.timeout)
            except asyncio.TimeoutError as exc:
                raise CdpError(f"CDP response timed out: {method}") from exc
        finally:
            self._pending.pop(msg_id, None)

    async def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict[str, Any] | None:
        """Wait for a CDP event; queued events are consumed first."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued
        if self._closed_reason is not None:
            return None

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(event_name, []).append(fut)
        try:
            return await asyncio.wait_for(fut, timeout=max(0.0, timeout))
        except (asyncio.TimeoutError, CdpError):
            return None
        finally:
            waiters = self._waiters.get(event_name)
            if waiters and fut in waiters:
                waiters.remove(fut)

    async def close(self) -> None:
        """Close the WebSocket and stop the reader."""
        if self._closed_reason is None:
            self._closed_reason = "CDP connection closed"
        with contextlib.suppress(Exception):
            await self.ws.close()
        reader = self._reader
        if reader is not None and not reader.done():
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await reader
        self._fail_pending(self._closed_reason)


__all__ = ["CdpConnection"]
