"""
Remote execution adapter.

Drives the shared compiler tab through a fixed sequence of stages:

    navigate -> editor_ready -> input_mode -> input_area -> inject_code
    -> inject_input -> trigger_run -> await_completion -> capture

Every stage has its own timeout (see `timeouts.StageTimeouts`). The page has
no completion event, so completion is a bounded poll over panel state.
`execute()` never raises: stage failures and unexpected faults become a
failed `ExecutionResult`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

from . import compiler_page as ui
from .browser_session import MODIFIER_CTRL
from .config import ExecutorConfig
from .errors import (
    CdpError,
    EditorNotReadyError,
    ExecutorError,
    InputBoxUnavailableError,
    NavigationError,
    UIStateTimeoutError,
)
from .models import DEFAULT_TIME_LIMIT, ExecutionRequest, ExecutionResult
from .normalizer import normalize
from .session_manager import SessionManager

logger = logging.getLogger("mcp.cpp_executor.adapter")


class PageDriver(Protocol):
    """Page capabilities the state machine needs (BrowserSession, or a test double)."""

    async def navigate(self, url: str, timeout: float = 30.0, *, idle_s: float = 0.5) -> bool: ...

    async def eval_js(self, expression: str, *, timeout: float | None = None) -> Any: ...

    async def wait_for_condition(self, expression: str, timeout: float, *, interval: float = 0.1) -> bool: ...

    async def wait_for_selector(
        self, selector: str, timeout: float, *, visible: bool = False, interval: float = 0.1
    ) -> bool: ...

    async def set_editor_value(self, editor_id: str, text: str) -> bool: ...

    async def set_input_value(self, selector: str, text: str) -> bool: ...

    async def read_text(self, selector: str) -> str: ...

    async def click_selector(self, selector: str) -> bool: ...

    async def press_key(self, key: str, modifiers: int = 0) -> None: ...


class ExecutionAdapter:
    def __init__(self, sessions: SessionManager, config: ExecutorConfig | None = None) -> None:
        self.sessions = sessions
        self.config = config or sessions.config
        self.timeouts = self.config.timeouts

    async def execute(self, code: str, input: str = "", time_limit: float = DEFAULT_TIME_LIMIT) -> ExecutionResult:
        """Compile and run `code` on the remote page with `input` as stdin."""
        request = ExecutionRequest(code=code, input=input or "", time_limit=self.config.clamp_time_limit(time_limit))
        started = time.monotonic()
        try:
            async with self.sessions.exclusive():
                page = await self.sessions.ensure_ready()
                result = await self._run_with_deadline(page, request)
        except ExecutorError as exc:
            logger.info("execution_failed stage=%s reason=%s", exc.stage, exc.reason)
            result = ExecutionResult.failure(str(exc))
        except CdpError as exc:
            logger.info("execution_failed cdp=%s", exc)
            result = ExecutionResult.failure(str(exc))
        except Exception as exc:
            logger.exception("execution_crashed")
            result = ExecutionResult.failure(str(exc) or type(exc).__name__)

        logger.info("execution_done success=%s elapsed=%.2fs", result.success, time.monotonic() - started)
        return result

    async def shutdown(self) -> None:
        await self.sessions.cleanup()

    async def _run_with_deadline(self, page: PageDriver, request: ExecutionRequest) -> ExecutionResult:
        deadline = self.config.execution_deadline
        if deadline <= 0:
            return await self.run_stages(page, request)
        try:
            return await asyncio.wait_for(self.run_stages(page, request), timeout=deadline)
        except asyncio.TimeoutError:
            logger.info("execution_deadline_exceeded deadline=%.1fs", deadline)
            return ExecutionResult.failure(f"overall deadline of {deadline:g}s exceeded")

    async def run_stages(self, page: PageDriver, request: ExecutionRequest) -> ExecutionResult:
        """Run the stage sequence against an already-acquired page."""
        await self._navigate(page)
        await self._await_editor(page)
        await self._select_input_mode(page)
        await self._await_input_area(page)
        await self._inject_code(page, request.code)
        if request.has_input:
            await self._inject_input(page, request.input)
        await self._trigger_run(page)

        captured = await self._await_completion(page, request.time_limit)
        if captured is None:
            # Still running, hung, or the panel never rendered: indistinguishable here.
            logger.info("completion_poll_exhausted")
            return normalize("", "")
        return normalize(*captured)

    # ─────────────────────────────────────────────────────────────────────────
    # Stages
    # ─────────────────────────────────────────────────────────────────────────

    async def _navigate(self, page: PageDriver) -> None:
        logger.debug("stage=navigate url=%s", self.config.compiler_url)
        timeout = self.timeouts.navigation_s
        try:
            settled = await page.navigate(self.config.compiler_url, timeout, idle_s=self.timeouts.network_idle_s)
        except CdpError as exc:
            raise NavigationError(str(exc), url=self.config.compiler_url) from exc
        if not settled:
            raise NavigationError(f"page did not settle within {timeout:g}s", url=self.config.compiler_url)

    async def _await_editor(self, page: PageDriver) -> None:
        logger.debug("stage=editor_ready")
        timeout = self.timeouts.editor_ready_s
        if not await page.wait_for_selector(ui.EDITOR_SELECTOR, timeout, interval=self.timeouts.poll_interval_s):
            raise EditorNotReadyError(f"{ui.EDITOR_SELECTOR} did not appear within {timeout:g}s")

    async def _select_input_mode(self, page: PageDriver) -> None:
        logger.debug("stage=input_mode")
        if not await page.eval_js(ui.SELECT_TEXT_INPUT_MODE_JS):
            logger.debug("text input mode toggle not found")

    async def _await_input_area(self, page: PageDriver) -> None:
        logger.debug("stage=input_area")
        timeout = self.timeouts.ui_state_s
        ready = await page.wait_for_condition(ui.INPUT_AREA_READY_JS, timeout, interval=self.timeouts.poll_interval_s)
        if not ready:
            raise UIStateTimeoutError(f"ad banner hidden + stdin visible not reached within {timeout:g}s")

    async def _inject_code(self, page: PageDriver, code: str) -> None:
        logger.debug("stage=inject_code chars=%d", len(code))
        if not await page.set_editor_value(ui.EDITOR_ID, code):
            raise EditorNotReadyError("editor API (window.ace) is not available")

    async def _inject_input(self, page: PageDriver, text: str) -> None:
        logger.debug("stage=inject_input chars=%d", len(text))
        attempts = self.timeouts.input_box_attempts
        for attempt in range(1, attempts + 1):
            visible = await page.wait_for_selector(
                ui.STDIN_SELECTOR,
                self.timeouts.input_box_attempt_s,
                visible=True,
                interval=self.timeouts.poll_interval_s,
            )
            if visible:
                break
            logger.debug("stdin box hidden attempt=%d/%d", attempt, attempts)
        else:
            raise InputBoxUnavailableError(
                f"{ui.STDIN_SELECTOR} not visible after {attempts} attempts", attempts=attempts
            )

        if not await page.set_input_value(ui.STDIN_SELECTOR, text):
            raise InputBoxUnavailableError(f"{ui.STDIN_SELECTOR} disappeared before input could be written")

    async def _trigger_run(self, page: PageDriver) -> None:
        logger.debug("stage=trigger_run")
        if await page.click_selector(ui.RUN_BUTTON_SELECTOR):
            return
        # Run control hidden or relocated: the editor's keyboard shortcut still works.
        logger.debug("run button unavailable; using Ctrl+Enter")
        await page.press_key("Enter", MODIFIER_CTRL)

    async def _await_completion(self, page: PageDriver, time_limit: float) -> tuple[str, str] | None:
        attempts = self.timeouts.completion_attempts(time_limit)
        logger.debug("stage=await_completion attempts=%d", attempts)
        for _ in range(attempts):
            done = await page.wait_for_condition(
                ui.COMPLETION_JS, self.timeouts.completion_attempt_s, interval=self.timeouts.poll_interval_s
            )
            if not done:
                continue
            stdout, stderr = await self._capture(page)
            if stdout.strip() or stderr.strip():
                return stdout, stderr
        return None

    async def _capture(self, page: PageDriver) -> tuple[str, str]:
        logger.debug("stage=capture")
        stdout = await page.read_text(ui.STDOUT_PANEL_SELECTOR)
        stderr = await page.read_text(ui.STDERR_PANEL_SELECTOR)
        return stdout, stderr


__all__ = ["ExecutionAdapter", "PageDriver"]
