from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from mcp_servers.cpp_executor.browser_session import MODIFIER_CTRL, BrowserSession
from mcp_servers.cpp_executor.errors import CdpError


class DummyConn:
    def __init__(self, evaluate: Callable[[str], dict[str, Any]] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.closed = False
        self.sink: Callable[[dict[str, Any]], None] | None = None
        self.evaluate = evaluate or (lambda expression: {"result": {"type": "undefined"}})
        self.navigate_result: dict[str, Any] = {"frameId": "F1"}
        self.load_event: dict[str, Any] | None = {"timestamp": 1.0}

    def set_event_sink(self, sink: Callable[[dict[str, Any]], None] | None) -> None:
        self.sink = sink

    def discard_events(self, event_name: str) -> int:  # noqa: ARG002
        return 0

    async def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None):  # noqa: ARG002
        self.calls.append((method, params))
        if method == "Runtime.evaluate":
            return self.evaluate(params["expression"])
        if method == "Page.navigate":
            return self.navigate_result
        return {}

    async def wait_for_event(self, event_name: str, timeout: float = 10.0):  # noqa: ARG002
        return self.load_event

    async def close(self) -> None:
        self.closed = True

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]


def _value(value: Any) -> dict[str, Any]:
    return {"result": {"type": "number" if isinstance(value, (int, float)) else "string", "value": value}}


def test_eval_js_returns_by_value() -> None:
    conn = DummyConn(lambda expression: _value(123))
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.eval_js("1 + 2")) == 123

    method, params = conn.calls[0]
    assert method == "Runtime.evaluate"
    assert params["returnByValue"] is True
    assert params["awaitPromise"] is True


def test_eval_js_maps_undefined_and_null_to_none() -> None:
    session = BrowserSession(DummyConn(), tab_id="t1")
    assert asyncio.run(session.eval_js("void 0")) is None

    session = BrowserSession(DummyConn(lambda e: {"result": {"type": "object", "subtype": "null"}}), tab_id="t1")
    assert asyncio.run(session.eval_js("null")) is None


def test_eval_js_raises_on_page_exception() -> None:
    conn = DummyConn(
        lambda e: {
            "result": {"type": "object"},
            "exceptionDetails": {"text": "Uncaught", "exception": {"description": "ReferenceError: ace is not defined"}},
        }
    )
    session = BrowserSession(conn, tab_id="t1")
    with pytest.raises(CdpError, match="ReferenceError"):
        asyncio.run(session.eval_js("ace.edit('editor_1')"))


def test_wait_for_condition_polls_until_truthy() -> None:
    answers = iter([False, False, True])
    conn = DummyConn(lambda e: {"result": {"type": "boolean", "value": next(answers)}})
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.wait_for_condition("ready()", 1.0, interval=0.001)) is True
    assert conn.methods().count("Runtime.evaluate") == 3


def test_wait_for_condition_times_out() -> None:
    session = BrowserSession(DummyConn(lambda e: {"result": {"type": "boolean", "value": False}}), tab_id="t1")
    assert asyncio.run(session.wait_for_condition("ready()", 0.05, interval=0.01)) is False


def test_wait_for_condition_tolerates_context_teardown() -> None:
    answers = iter([CdpError("Execution context was destroyed."), True])

    def evaluate(expression: str) -> dict[str, Any]:
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return {"result": {"type": "boolean", "value": answer}}

    session = BrowserSession(DummyConn(evaluate), tab_id="t1")
    assert asyncio.run(session.wait_for_condition("ready()", 1.0, interval=0.001)) is True


def test_wait_for_condition_stops_on_closed_connection() -> None:
    conn = DummyConn()

    def evaluate(expression: str) -> dict[str, Any]:
        conn.closed = True
        raise CdpError("CDP connection closed")

    conn.evaluate = evaluate
    session = BrowserSession(conn, tab_id="t1")
    with pytest.raises(CdpError):
        asyncio.run(session.wait_for_condition("ready()", 1.0, interval=0.001))
    assert session.alive is False


def test_network_idle_tolerates_a_few_long_lived_requests() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")
    for rid in ("1", "2", "3"):
        conn.sink({"method": "Network.requestWillBeSent", "params": {"requestId": rid}})
    assert session.inflight_requests == 3
    assert asyncio.run(session.wait_network_idle(0.05, idle_s=0.0, interval=0.01)) is False

    conn.sink({"method": "Network.loadingFailed", "params": {"requestId": "2"}})
    assert session.inflight_requests == 2
    assert asyncio.run(session.wait_network_idle(0.05, idle_s=0.0, interval=0.01)) is True


def test_network_idle_settles_despite_background_beacons() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")

    async def beacons() -> None:
        for n in range(100):
            conn.sink({"method": "Network.requestWillBeSent", "params": {"requestId": f"b{n}"}})
            await asyncio.sleep(0.01)
            conn.sink({"method": "Network.loadingFinished", "params": {"requestId": f"b{n}"}})
            await asyncio.sleep(0.02)

    async def scenario() -> bool:
        task = asyncio.create_task(beacons())
        try:
            return await session.wait_network_idle(2.0, idle_s=0.2, interval=0.01)
        finally:
            task.cancel()

    assert asyncio.run(scenario()) is True


def test_network_idle_window_restarts_after_a_burst() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")

    async def scenario() -> tuple[bool, bool]:
        for rid in ("1", "2", "3"):
            conn.sink({"method": "Network.requestWillBeSent", "params": {"requestId": rid}})
        await asyncio.sleep(0.05)
        conn.sink({"method": "Network.loadingFinished", "params": {"requestId": "3"}})
        early = await session.wait_network_idle(0.05, idle_s=0.2, interval=0.01)
        later = await session.wait_network_idle(1.0, idle_s=0.2, interval=0.01)
        return early, later

    assert asyncio.run(scenario()) == (False, True)


def test_navigate_waits_for_load_and_idle() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.navigate("https://www.onlinegdb.com/online_c++_compiler", 1.0, idle_s=0.0)) is True
    assert conn.methods()[:3] == ["Page.enable", "Runtime.enable", "Network.enable"]
    assert ("Page.navigate", {"url": "https://www.onlinegdb.com/online_c++_compiler"}) in conn.calls
    assert session.tab_url == "https://www.onlinegdb.com/online_c++_compiler"


def test_navigate_reports_missing_load_event() -> None:
    conn = DummyConn()
    conn.load_event = None
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.navigate("https://example.com", 0.1, idle_s=0.0)) is False


def test_navigate_raises_on_error_text() -> None:
    conn = DummyConn()
    conn.navigate_result = {"frameId": "F1", "errorText": "net::ERR_NAME_NOT_RESOLVED"}
    session = BrowserSession(conn, tab_id="t1")
    with pytest.raises(CdpError, match="ERR_NAME_NOT_RESOLVED"):
        asyncio.run(session.navigate("https://nope.invalid", 1.0, idle_s=0.0))


def test_enable_domains_is_cached() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")

    async def scenario() -> None:
        await session.enable_domains("Page", "Network")
        await session.enable_domains("Page", "Runtime")

    asyncio.run(scenario())
    assert conn.methods() == ["Page.enable", "Network.enable", "Runtime.enable"]


def test_set_editor_value_escapes_source() -> None:
    conn = DummyConn(lambda e: _value(True))
    session = BrowserSession(conn, tab_id="t1")
    code = 'int main() { printf("hi\\n"); }'
    assert asyncio.run(session.set_editor_value("editor_1", code)) is True
    expression = conn.calls[0][1]["expression"]
    assert 'window.ace.edit("editor_1")' in expression
    assert '"int main() { printf(\\"hi\\\\n\\"); }"' in expression


def test_click_selector_dispatches_mouse_sequence() -> None:
    conn = DummyConn(lambda e: {"result": {"type": "object", "value": {"x": 10, "y": 20}}})
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.click_selector("#control-btn-run")) is True
    mouse = [p["type"] for m, p in conn.calls if m == "Input.dispatchMouseEvent"]
    assert mouse == ["mouseMoved", "mousePressed", "mouseReleased"]


def test_click_selector_without_box_returns_false() -> None:
    conn = DummyConn(lambda e: {"result": {"type": "object", "subtype": "null"}})
    session = BrowserSession(conn, tab_id="t1")
    assert asyncio.run(session.click_selector("#control-btn-run")) is False
    assert "Input.dispatchMouseEvent" not in conn.methods()


def test_press_key_with_ctrl_modifier() -> None:
    conn = DummyConn()
    session = BrowserSession(conn, tab_id="t1")
    asyncio.run(session.press_key("Enter", MODIFIER_CTRL))
    keys = [p for m, p in conn.calls if m == "Input.dispatchKeyEvent"]
    assert [k["type"] for k in keys] == ["rawKeyDown", "keyUp"]
    assert all(k["modifiers"] == MODIFIER_CTRL and k["windowsVirtualKeyCode"] == 13 for k in keys)


def test_read_text_defaults_to_empty_string() -> None:
    session = BrowserSession(DummyConn(), tab_id="t1")
    assert asyncio.run(session.read_text("#tab-stdout pre.msg")) == ""
