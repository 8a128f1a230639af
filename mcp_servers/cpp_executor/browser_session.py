"""
High-level page operations over a CDP connection.

This is the narrow page capability surface the execution adapter depends
on: navigate, wait for a JS condition, evaluate, set editor/input values,
read element text, click, press keys.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

from .errors import CdpError
from .session_cdp import CdpConnection

# Modifier bitmask used by Input.dispatchKeyEvent.
MODIFIER_ALT = 1
MODIFIER_CTRL = 2
MODIFIER_META = 4
MODIFIER_SHIFT = 8

_KEY_CODES = {
    "Enter": 13,
    "Tab": 9,
    "Escape": 27,
    "Backspace": 8,
}


class BrowserSession:
    """Browser tab driven over CDP."""

    # Network counts as settled while at most this many requests are pending.
    idle_connections = 2

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = "") -> None:
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._enabled: set[str] = set()
        self._inflight: set[str] = set()
        self._quiet_since: float | None = time.monotonic()
        self.conn.set_event_sink(self._on_event)

    @property
    def alive(self) -> bool:
        return not self.conn.closed

    async def close(self) -> None:
        await self.conn.close()

    async def enable_domains(self, *domains: str) -> None:
        """Enable CDP domains (Page, Runtime, Network) once per session."""
        for domain in domains:
            if domain in self._enabled:
                continue
            await self.conn.send(f"{domain}.enable")
            self._enabled.add(domain)

    async def set_user_agent(self, user_agent: str) -> None:
        if user_agent:
            await self.conn.send("Network.setUserAgentOverride", {"userAgent": user_agent})

    # ─────────────────────────────────────────────────────────────────────────
    # Network tracking
    # ─────────────────────────────────────────────────────────────────────────

    def _on_event(self, event: dict[str, Any]) -> None:
        method = event.get("method")
        params = event.get("params") or {}
        request_id = params.get("requestId")
        if not isinstance(request_id, str):
            return
        if method == "Network.requestWillBeSent":
            self._inflight.add(request_id)
        elif method in ("Network.loadingFinished", "Network.loadingFailed"):
            self._inflight.discard(request_id)
        else:
            return
        # Churn at or below the threshold leaves the quiet window running.
        if len(self._inflight) > self.idle_connections:
            self._quiet_since = None
        elif self._quiet_since is None:
            self._quiet_since = time.monotonic()

    @property
    def inflight_requests(self) -> int:
        return len(self._inflight)

    async def wait_network_idle(self, timeout: float, *, idle_s: float = 0.5, interval: float = 0.1) -> bool:
        """Wait until at most `idle_connections` requests have stayed pending for `idle_s` seconds."""
        deadline = time.monotonic() + timeout
        while True:
            now = time.monotonic()
            quiet_since = self._quiet_since
            if quiet_since is not None and now - quiet_since >= idle_s:
                return True
            if now >= deadline:
                return False
            await asyncio.sleep(min(interval, max(0.0, deadline - now)))

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    async def navigate(self, url: str, timeout: float = 30.0, *, idle_s: float = 0.5) -> bool:
        """Navigate and wait for the load event plus network idle.

        Returns False when the page did not settle in time; raises CdpError when
        Chrome reports a navigation failure.
        """
        await self.enable_domains("Page", "Runtime", "Network")
        deadline = time.monotonic() + timeout
        self.conn.discard_events("Page.loadEventFired")
        self._inflight.clear()
        self._quiet_since = time.monotonic()

        result = await self.conn.send("Page.navigate", {"url": url}, timeout=timeout)
        if result.get("errorText"):
            raise CdpError(f"Navigation to {url} failed: {result['errorText']}")
        self.tab_url = url

        loaded = await self.conn.wait_for_event("Page.loadEventFired", timeout=max(0.0, deadline - time.monotonic()))
        if loaded is None:
            return False
        return await self.wait_network_idle(max(0.0, deadline - time.monotonic()), idle_s=idle_s)

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    async def eval_js(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript and return its value (undefined and null map to None)."""
        result = await self.conn.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
            timeout=timeout,
        )
        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exc = details.get("exception") or {}
            text = exc.get("description") or details.get("text") or "JavaScript exception"
            raise CdpError(str(text))

        value = result.get("result")
        if not isinstance(value, dict):
            return None
        if value.get("type") == "undefined":
            return None
        if value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value")

    async def wait_for_condition(self, expression: str, timeout: float, *, interval: float = 0.1) -> bool:
        """Poll a JS expression until it is truthy. Returns False on timeout."""
        deadline = time.monotonic() + timeout
        while True:
            try:
                if await self.eval_js(expression, timeout=max(0.5, interval * 5)):
                    return True
            except CdpError:
                # Execution context is often torn down mid-navigation; keep polling.
                if self.conn.closed:
                    raise
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            await asyncio.sleep(min(interval, remaining))

    async def wait_for_selector(
        self, selector: str, timeout: float, *, visible: bool = False, interval: float = 0.1
    ) -> bool:
        sel = json.dumps(selector)
        if visible:
            expression = f"(() => {{ const el = document.querySelector({sel}); return !!el && el.offsetParent !== null; }})()"
        else:
            expression = f"!!document.querySelector({sel})"
        return await self.wait_for_condition(expression, timeout, interval=interval)

    # ─────────────────────────────────────────────────────────────────────────
    # Content
    # ─────────────────────────────────────────────────────────────────────────

    async def set_editor_value(self, editor_id: str, text: str) -> bool:
        """Replace an Ace editor's content through its own API (keeps undo/cursor semantics)."""
        expression = (
            "(() => {"
            f" const editor = window.ace && window.ace.edit({json.dumps(editor_id)});"
            " if (!editor) return false;"
            f" editor.setValue({json.dumps(text)}, -1);"
            " return true;"
            "})()"
        )
        return bool(await self.eval_js(expression))

    async def set_input_value(self, selector: str, text: str) -> bool:
        expression = (
            "(() => {"
            f" const el = document.querySelector({json.dumps(selector)});"
            " if (!el) return false;"
            f" el.value = {json.dumps(text)};"
            " el.dispatchEvent(new Event('input', { bubbles: true }));"
            " el.dispatchEvent(new Event('change', { bubbles: true }));"
            " return true;"
            "})()"
        )
        return bool(await self.eval_js(expression))

    async def read_text(self, selector: str) -> str:
        value = await self.eval_js(
            f"(() => {{ const el = document.querySelector({json.dumps(selector)}); return el ? el.textContent : ''; }})()"
        )
        return value if isinstance(value, str) else ""

    # ─────────────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────────────

    async def element_center(self, selector: str) -> tuple[float, float] | None:
        """Scroll the element into view and return its centre, or None if it has no box."""
        box = await self.eval_js(
            "(() => {"
            f" const el = document.querySelector({json.dumps(selector)});"
            " if (!el) return null;"
            " el.scrollIntoView({ block: 'center', inline: 'center' });"
            " const r = el.getBoundingClientRect();"
            " if (!r.width || !r.height) return null;"
            " return { x: r.left + r.width / 2, y: r.top + r.height / 2 };"
            "})()"
        )
        if not isinstance(box, dict):
            return None
        return float(box["x"]), float(box["y"])

    async def click(self, x: float, y: float, button: str = "left") -> None:
        for event_type in ("mouseMoved", "mousePressed", "mouseReleased"):
            params: dict[str, Any] = {"type": event_type, "x": x, "y": y}
            if event_type != "mouseMoved":
                params.update({"button": button, "clickCount": 1})
            await self.conn.send("Input.dispatchMouseEvent", params)

    async def click_selector(self, selector: str) -> bool:
        """Click the element's centre. Returns False if it is missing or has no box."""
        center = await self.element_center(selector)
        if center is None:
            return False
        await self.click(*center)
        return True

    async def press_key(self, key: str, modifiers: int = 0) -> None:
        key_code = _KEY_CODES.get(key, ord(key.upper()) if len(key) == 1 else 0)
        code = f"Key{key.upper()}" if len(key) == 1 else key
        for event_type in ("rawKeyDown", "keyUp"):
            await self.conn.send(
                "Input.dispatchKeyEvent",
                {
                    "type": event_type,
                    "key": key,
                    "code": code,
                    "windowsVirtualKeyCode": key_code,
                    "modifiers": modifiers,
                },
            )


__all__ = [
    "MODIFIER_ALT",
    "MODIFIER_CTRL",
    "MODIFIER_META",
    "MODIFIER_SHIFT",
    "BrowserSession",
]
