"""
Analysis tool handlers - static inspection, no execution.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from ...analysis import analyze_code, generate_test_skeletons
from ...errors import ToolArgumentError
from ..types import ToolResult
from .execution import require_string

if TYPE_CHECKING:
    from ...adapter import ExecutionAdapter

MAX_GENERATED_CASES = 50


async def handle_optimize_code(adapter: ExecutionAdapter, args: dict[str, Any]) -> ToolResult:
    tool = "optimize_code"
    code = require_string(tool, args, "code")
    constraints = args.get("constraints") or {}
    if not isinstance(constraints, dict):
        raise ToolArgumentError(tool, "'constraints' must be an object")

    report = analyze_code(code, constraints)

    lines = ["**Code Optimization Analysis**", "", "**Analysis:**"]
    lines.append(f"- Deepest loop nesting: {report.max_loop_depth}")
    if report.recursive_functions:
        lines.append(f"- Recursive functions: {', '.join(report.recursive_functions)}")
    if report.stl_containers:
        lines.append(f"- STL containers: {', '.join(report.stl_containers)}")
    if report.stl_algorithms:
        lines.append(f"- STL algorithms: {', '.join(report.stl_algorithms)}")
    lines.append(f"- Fast I/O: {'yes' if report.fast_io else 'no'}")
    lines += ["", "**Suggestions:**"]
    lines += [f"- {s}" for s in report.suggestions]
    return ToolResult.text("\n".join(lines), data=report.to_dict())


async def handle_generate_test_cases(adapter: ExecutionAdapter, args: dict[str, Any]) -> ToolResult:
    tool = "generate_test_cases"
    description = require_string(tool, args, "problemDescription")
    count = args.get("numTestCases", 5)
    if isinstance(count, float) and math.isfinite(count) and count.is_integer():
        count = int(count)
    if isinstance(count, bool) or not isinstance(count, int):
        raise ToolArgumentError(tool, "'numTestCases' must be an integer")
    if not 1 <= count <= MAX_GENERATED_CASES:
        raise ToolArgumentError(tool, f"'numTestCases' must be between 1 and {MAX_GENERATED_CASES}")

    skeletons = generate_test_skeletons(count)

    lines = ["**Generated Test Cases**", "", f"**Problem:** {description}", "", "**Test Cases:**", ""]
    for case in skeletons:
        lines += [
            f"**Test Case {case['testNumber']}:**",
            "Input: [Generate based on problem description]",
            "Expected Output: [Calculate expected result]",
            f"Description: {case['description']}",
            "",
        ]
    lines.append("**Note:** Fill in concrete inputs and expected outputs from the problem requirements.")
    return ToolResult.text("\n".join(lines), data={"testCases": skeletons})


ANALYSIS_HANDLERS = {
    "optimize_code": handle_optimize_code,
    "generate_test_cases": handle_generate_test_cases,
}
