"""
Test-case judging on top of the execution adapter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from .models import DEFAULT_TIME_LIMIT, TestCase, TestOutcome

if TYPE_CHECKING:
    from .adapter import ExecutionAdapter

logger = logging.getLogger("mcp.cpp_executor.judge")


def outputs_match(actual: str, expected: str) -> bool:
    return actual.strip() == expected.strip()


async def run_test_cases(
    adapter: ExecutionAdapter,
    code: str,
    cases: Iterable[TestCase],
    *,
    time_limit: float = DEFAULT_TIME_LIMIT,
) -> list[TestOutcome]:
    """Run `code` once per case, in order. Cases never overlap on the page."""
    outcomes: list[TestOutcome] = []
    for number, case in enumerate(cases, start=1):
        result = await adapter.execute(code, case.input, time_limit)
        passed = result.success and outputs_match(result.output, case.expected_output)
        logger.info("test_case number=%d passed=%s", number, passed)
        outcomes.append(
            TestOutcome(
                test_number=number,
                passed=passed,
                input=case.input,
                expected=case.expected_output,
                actual=result.output or result.error or "No output",
                error=result.error,
            )
        )
    return outcomes


__all__ = ["outputs_match", "run_test_cases"]
