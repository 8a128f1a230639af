"""
Execution tool handlers - single runs and test-case submissions.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from ...errors import ToolArgumentError
from ...judge import run_test_cases
from ...models import DEFAULT_TIME_LIMIT, TestCase
from ..types import ToolResult

if TYPE_CHECKING:
    from ...adapter import ExecutionAdapter


def require_string(tool: str, args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str):
        raise ToolArgumentError(tool, f"'{key}' is required and must be a string")
    return value


def optional_string(tool: str, args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ToolArgumentError(tool, f"'{key}' must be a string")
    return value


def _time_limit(tool: str, args: dict[str, Any]) -> float:
    value = args.get("timeLimit")
    if value is None:
        return DEFAULT_TIME_LIMIT
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolArgumentError(tool, "'timeLimit' must be a positive number of seconds")
    try:
        seconds = float(value)
    except OverflowError:
        seconds = math.inf
    if not math.isfinite(seconds) or seconds <= 0:
        raise ToolArgumentError(tool, "'timeLimit' must be a positive number of seconds")
    return seconds


def _test_cases(tool: str, args: dict[str, Any]) -> list[TestCase]:
    raw = args.get("testCases")
    if not isinstance(raw, list):
        raise ToolArgumentError(tool, "'testCases' is required and must be an array")
    cases = []
    for idx, item in enumerate(raw, start=1):
        if not isinstance(item, dict):
            raise ToolArgumentError(tool, f"testCases[{idx}] must be an object")
        cases.append(
            TestCase(
                input=require_string(tool, item, "input"),
                expected_output=require_string(tool, item, "expectedOutput"),
            )
        )
    return cases


def _inline(text: str) -> str:
    return text.replace("\n", "\\n")


async def handle_execute_cpp_code(adapter: ExecutionAdapter, args: dict[str, Any]) -> ToolResult:
    tool = "execute_cpp_code"
    code = require_string(tool, args, "code")
    stdin = optional_string(tool, args, "input")
    time_limit = _time_limit(tool, args)

    result = await adapter.execute(code, stdin, time_limit)

    lines = ["**Execution Result:**", f"Status: {'Success' if result.success else 'Failed'}", ""]
    if result.output:
        lines += ["**Output:**", "```", result.output, "```", ""]
    if result.error:
        lines += ["**Error:**", "```", result.error, "```", ""]
    return ToolResult.text("\n".join(lines), data=result.to_dict())


async def handle_submit_solution(adapter: ExecutionAdapter, args: dict[str, Any]) -> ToolResult:
    tool = "submit_solution"
    problem_name = require_string(tool, args, "problemName")
    code = require_string(tool, args, "code")
    cases = _test_cases(tool, args)
    optional_string(tool, args, "functionSignature")

    outcomes = await run_test_cases(adapter, code, cases)
    passed = sum(1 for o in outcomes if o.passed)

    lines = [f"**Testing Solution for: {problem_name}**", "", f"**Test Results: {passed}/{len(cases)} passed**", ""]
    for o in outcomes:
        lines += [
            f"{'PASS' if o.passed else 'FAIL'} **Test {o.test_number}**",
            f"Input: `{_inline(o.input)}`",
            f"Expected: `{_inline(o.expected)}`",
            f"Actual: `{_inline(o.actual)}`",
            "",
        ]
    data = {
        "problemName": problem_name,
        "passed": passed,
        "total": len(cases),
        "testResults": [o.to_dict() for o in outcomes],
    }
    return ToolResult.text("\n".join(lines), data=data)


EXECUTION_HANDLERS = {
    "execute_cpp_code": handle_execute_cpp_code,
    "submit_solution": handle_submit_solution,
}
