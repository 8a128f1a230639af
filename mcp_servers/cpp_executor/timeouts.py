"""Per-stage timeout and retry budgets for the execution state machine."""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class StageTimeouts:
    navigation_s: float = 30.0
    network_idle_s: float = 0.5
    editor_ready_s: float = 15.0
    ui_state_s: float = 10.0
    input_box_attempt_s: float = 2.0
    input_box_attempts: int = 5
    completion_attempt_s: float = 1.0
    completion_min_attempts: int = 30
    # Seconds granted on top of the program's time limit for compile + page round trips.
    compile_grace_s: float = 25.0
    poll_interval_s: float = 0.1

    def completion_attempts(self, time_limit: float) -> int:
        """Number of completion polls for a program allowed to run ``time_limit`` seconds."""
        window = max(0.0, float(time_limit)) + self.compile_grace_s
        by_window = math.ceil(window / max(0.05, self.completion_attempt_s))
        return max(self.completion_min_attempts, by_window)

    def stage_budget(self, time_limit: float) -> float:
        """Worst-case seconds the timed stages may take together for ``time_limit``."""
        return (
            self.navigation_s
            + self.editor_ready_s
            + self.ui_state_s
            + self.input_box_attempt_s * self.input_box_attempts
            + self.completion_attempt_s * self.completion_attempts(time_limit)
        )


_PROFILE_DEFAULTS: dict[str, StageTimeouts] = {
    "fast": StageTimeouts(
        navigation_s=20.0,
        editor_ready_s=10.0,
        ui_state_s=6.0,
        input_box_attempts=3,
        completion_min_attempts=20,
        compile_grace_s=15.0,
    ),
    "default": StageTimeouts(),
    "slow": StageTimeouts(
        navigation_s=60.0,
        editor_ready_s=30.0,
        ui_state_s=20.0,
        input_box_attempt_s=3.0,
        input_box_attempts=8,
        completion_min_attempts=60,
        compile_grace_s=50.0,
        poll_interval_s=0.2,
    ),
}


def _coerce_profile(raw: str | None) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return "default"
    value = raw.strip().lower()
    return value if value in _PROFILE_DEFAULTS else "default"


def _env_float(env: Mapping[str, str], *keys: str, fallback: float) -> float:
    for key in keys:
        raw = env.get(key)
        if raw is None:
            continue
        try:
            value = float(raw)
        except ValueError:
            continue
        if value > 0:
            return value
    return float(fallback)


def stage_timeouts_from_env(env: Mapping[str, str] | None = None) -> StageTimeouts:
    env_map = os.environ if env is None else env
    base = _PROFILE_DEFAULTS[_coerce_profile(env_map.get("MCP_TIMEOUT_PROFILE"))]
    return replace(
        base,
        navigation_s=_env_float(env_map, "MCP_NAVIGATION_TIMEOUT", fallback=base.navigation_s),
        editor_ready_s=_env_float(env_map, "MCP_EDITOR_TIMEOUT", fallback=base.editor_ready_s),
        ui_state_s=_env_float(env_map, "MCP_UI_STATE_TIMEOUT", fallback=base.ui_state_s),
    )


__all__ = ["StageTimeouts", "stage_timeouts_from_env"]
