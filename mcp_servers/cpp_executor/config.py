from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .timeouts import StageTimeouts, stage_timeouts_from_env

DEFAULT_COMPILER_URL = "https://www.onlinegdb.com/online_c++_compiler"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # IMPORTANT: Avoid snap versions - they ignore --user-data-dir!
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    "/snap/bin/chromium",
]


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_float(name: str, fallback: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return fallback
    try:
        return float(raw)
    except ValueError:
        return fallback


@dataclass
class ExecutorConfig:
    binary_path: str
    profile_path: str
    cdp_port: int = 9222
    mode: str = "launch"
    headless: bool = True
    extra_flags: list[str] = field(default_factory=list)
    compiler_url: str = DEFAULT_COMPILER_URL
    user_agent: str = DEFAULT_USER_AGENT
    cdp_timeout: float = 10.0
    max_time_limit: float = 60.0
    execution_deadline: float = 180.0
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)

    @staticmethod
    def normalize_mode(raw: str | None) -> str:
        mode = (raw or "").strip().lower()
        if mode in {"attach", "connect", "external"}:
            return "attach"
        return "launch"

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("MCP_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "google-chrome"

    @classmethod
    def from_env(cls) -> ExecutorConfig:
        profile = expand_path(os.environ.get("MCP_BROWSER_PROFILE", "~/.cache/cpp-executor/browser-profile"))
        port = int(os.environ.get("MCP_BROWSER_PORT", "9222"))
        flags_raw = os.environ.get("MCP_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        return cls(
            binary_path=cls.detect_binary(),
            profile_path=profile,
            cdp_port=port,
            mode=cls.normalize_mode(os.environ.get("MCP_BROWSER_MODE")),
            headless=os.environ.get("MCP_HEADLESS", "1") != "0",
            extra_flags=extra_flags,
            compiler_url=os.environ.get("MCP_COMPILER_URL", "").strip() or DEFAULT_COMPILER_URL,
            user_agent=os.environ.get("MCP_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
            cdp_timeout=max(1.0, _env_float("MCP_CDP_TIMEOUT", 10.0)),
            max_time_limit=max(1.0, _env_float("MCP_MAX_TIME_LIMIT", 60.0)),
            execution_deadline=max(0.0, _env_float("MCP_EXECUTION_DEADLINE", 180.0)),
            timeouts=stage_timeouts_from_env(os.environ),
        )

    def clamp_time_limit(self, value: float) -> float:
        """Cap a caller-supplied time limit at the configured ceiling."""
        return min(float(value), self.max_time_limit)
