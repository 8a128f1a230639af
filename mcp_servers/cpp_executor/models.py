from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_TIME_LIMIT = 5.0


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    code: str
    input: str = ""
    time_limit: float = DEFAULT_TIME_LIMIT

    @property
    def has_input(self) -> bool:
        return bool(self.input.strip())


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of one execution. `execution_time` / `memory_usage` are reserved and stay None."""

    success: bool
    output: str
    error: str | None = None
    execution_time: str | None = None
    memory_usage: str | None = None

    @classmethod
    def failure(cls, message: str) -> ExecutionResult:
        return cls(success=False, output="", error=f"Execution failed: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "executionTime": self.execution_time,
            "memoryUsage": self.memory_usage,
        }


@dataclass(frozen=True, slots=True)
class TestCase:
    input: str
    expected_output: str

    __test__ = False  # not a pytest class


@dataclass(frozen=True, slots=True)
class TestOutcome:
    test_number: int
    passed: bool
    input: str
    expected: str
    actual: str
    error: str | None = None

    __test__ = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "testNumber": self.test_number,
            "passed": self.passed,
            "input": self.input,
            "expected": self.expected,
            "actual": self.actual,
            "error": self.error,
        }
