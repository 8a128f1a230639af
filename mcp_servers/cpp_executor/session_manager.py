"""
Process-wide browser session.

One Chrome process and one tab, created on the first execution request and
reused until `cleanup()`. A session is either absent or fully initialized:
a failed initialization tears down whatever it created before raising.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from .browser_session import BrowserSession
from .config import ExecutorConfig
from .errors import CdpError, SessionInitError
from .launcher import BrowserLauncher
from .session_cdp import CdpConnection

logger = logging.getLogger("mcp.cpp_executor.session")

ConnectFunc = Callable[[str, float], Awaitable[CdpConnection]]


class SessionManager:
    """Owns the shared browser session and the single execution slot."""

    def __init__(
        self,
        config: ExecutorConfig,
        launcher: BrowserLauncher | None = None,
        *,
        connect: ConnectFunc | None = None,
    ) -> None:
        self.config = config
        self.launcher = launcher or BrowserLauncher(config)
        self._connect = connect or CdpConnection.connect
        self._session: BrowserSession | None = None
        self._init_lock = asyncio.Lock()
        self._slot = asyncio.Lock()

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def busy(self) -> bool:
        return self._slot.locked()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Hold the single execution slot; at most one execution touches the page at a time."""
        async with self._slot:
            yield

    async def ensure_ready(self) -> BrowserSession:
        """Return the live session, creating it on first use."""
        async with self._init_lock:
            session = self._session
            if session is not None and session.alive:
                return session
            if session is not None:
                logger.info("session_stale tab=%s; rebuilding", session.tab_id)
                await self._teardown(session, close_browser=False)
                self._session = None

            self._session = await self._open()
            return self._session

    async def _open(self) -> BrowserSession:
        launch = await asyncio.to_thread(self.launcher.ensure_running)
        if not await asyncio.to_thread(self.launcher.cdp_ready):
            # Stop a launch that never answered on the CDP port.
            if self.launcher.process is not None:
                await asyncio.to_thread(self.launcher.stop)
            raise SessionInitError(launch.message, command=launch.command)
        if launch.started:
            logger.info("browser_launched port=%s", self.config.cdp_port)

        try:
            target = await asyncio.to_thread(self.launcher.new_tab)
        except CdpError as exc:
            raise SessionInitError(str(exc)) from exc

        tab_id = str(target.get("id") or "")
        session: BrowserSession | None = None
        try:
            conn = await self._connect(target["webSocketDebuggerUrl"], self.config.cdp_timeout)
            session = BrowserSession(conn, tab_id=tab_id, tab_url=str(target.get("url") or ""))
            await session.enable_domains("Page", "Runtime", "Network")
            await session.set_user_agent(self.config.user_agent)
        except CdpError as exc:
            if session is not None:
                await session.close()
            await asyncio.to_thread(self.launcher.close_tab, tab_id)
            raise SessionInitError(str(exc), tab=tab_id) from exc

        logger.info("session_ready tab=%s", tab_id)
        return session

    async def _teardown(self, session: BrowserSession, *, close_browser: bool) -> None:
        with contextlib.suppress(CdpError):
            await session.close()
        if session.tab_id:
            await asyncio.to_thread(self.launcher.close_tab, session.tab_id)
        if close_browser:
            await asyncio.to_thread(self.launcher.stop)

    async def cleanup(self) -> None:
        """Close the tab and the launcher-owned browser. No-op without a session."""
        async with self._init_lock:
            session = self._session
            self._session = None
            if session is not None:
                await self._teardown(session, close_browser=True)
                logger.info("session_closed tab=%s", session.tab_id)
            elif self.launcher.process is not None:
                await asyncio.to_thread(self.launcher.stop)


__all__ = ["SessionManager"]
