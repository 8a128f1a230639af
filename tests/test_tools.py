from __future__ import annotations

import asyncio

import pytest

from mcp_servers.cpp_executor.analysis import (
    analyze_code,
    case_label,
    generate_test_skeletons,
    loop_depth,
    recursive_functions,
    strip_comments_and_strings,
)
from mcp_servers.cpp_executor.errors import ToolArgumentError
from mcp_servers.cpp_executor.models import ExecutionResult
from mcp_servers.cpp_executor.normalizer import normalize
from mcp_servers.cpp_executor.server.registry import create_default_registry

MAX_OF_LIST = """#include <bits/stdc++.h>
using namespace std;
int main() {
    int n; cin >> n;
    vector<int> a(n);
    for (auto &x : a) cin >> x;
    cout << *max_element(a.begin(), a.end()) << endl;
}
"""


class FakeAdapter:
    """Runs a Python stand-in for the submitted program."""

    def __init__(self, program=None) -> None:
        self.program = program or (lambda stdin: ("", ""))
        self.calls: list[tuple[str, str, float]] = []

    async def execute(self, code: str, input: str = "", time_limit: float = 5.0) -> ExecutionResult:
        self.calls.append((code, input, time_limit))
        return normalize(*self.program(input))


def max_of_list(stdin: str) -> tuple[str, str]:
    n, *values = (int(x) for x in stdin.split())
    return f"{max(values[:n])}\n", ""


def _call(adapter: FakeAdapter, name: str, args: dict):
    return asyncio.run(create_default_registry().dispatch(name, adapter, args))


def test_registry_exposes_four_tools() -> None:
    registry = create_default_registry()
    assert sorted(registry.tool_names) == [
        "execute_cpp_code",
        "generate_test_cases",
        "optimize_code",
        "submit_solution",
    ]
    assert len(registry) == 4


def test_unknown_tool_raises_key_error() -> None:
    with pytest.raises(KeyError):
        _call(FakeAdapter(), "compile_rust", {})


def test_execute_cpp_code_passes_arguments_through() -> None:
    adapter = FakeAdapter(lambda stdin: ("Sum: 8\nProduct: 15\n", ""))
    result = _call(adapter, "execute_cpp_code", {"code": "int main(){}", "input": "5 3", "timeLimit": 2})
    assert adapter.calls == [("int main(){}", "5 3", 2.0)]
    assert result.is_error is False
    assert result.data == {
        "success": True,
        "output": "Sum: 8\nProduct: 15",
        "error": None,
        "executionTime": None,
        "memoryUsage": None,
    }
    assert "Status: Success" in result.content[0].text


def test_execute_cpp_code_defaults() -> None:
    adapter = FakeAdapter(lambda stdin: ("", "error: 'x' was not declared"))
    result = _call(adapter, "execute_cpp_code", {"code": "int main(){ x; }"})
    assert adapter.calls == [("int main(){ x; }", "", 5.0)]
    assert result.data["success"] is False
    text = result.content[0].text
    assert "Status: Failed" in text
    assert "**Error:**" in text


@pytest.mark.parametrize(
    "args",
    [
        {},
        {"code": 42},
        {"code": "int main(){}", "input": ["5"]},
        {"code": "int main(){}", "timeLimit": 0},
        {"code": "int main(){}", "timeLimit": "5"},
        {"code": "int main(){}", "timeLimit": True},
        {"code": "int main(){}", "timeLimit": float("nan")},
        {"code": "int main(){}", "timeLimit": float("inf")},
        {"code": "int main(){}", "timeLimit": 10**400},
    ],
)
def test_execute_cpp_code_rejects_bad_arguments_before_running(args: dict) -> None:
    adapter = FakeAdapter()
    with pytest.raises(ToolArgumentError):
        _call(adapter, "execute_cpp_code", args)
    assert adapter.calls == []


def test_submit_solution_all_pass() -> None:
    adapter = FakeAdapter(max_of_list)
    cases = [
        {"input": "3\n1 5 2", "expectedOutput": "5"},
        {"input": "1\n-4", "expectedOutput": "-4\n"},
        {"input": "4\n7 7 7 7", "expectedOutput": " 7 "},
    ]
    result = _call(adapter, "submit_solution", {"problemName": "Max", "code": MAX_OF_LIST, "testCases": cases})
    assert result.data["problemName"] == "Max"
    assert result.data["passed"] == 3
    assert result.data["total"] == 3
    assert [r["testNumber"] for r in result.data["testResults"]] == [1, 2, 3]
    assert [c[1] for c in adapter.calls] == [c["input"] for c in cases]
    assert "3/3 passed" in result.content[0].text


def test_submit_solution_reports_mismatch_and_failures() -> None:
    def program(stdin: str) -> tuple[str, str]:
        if stdin == "boom":
            return "", "Segmentation fault (core dumped)"
        return max_of_list(stdin)

    adapter = FakeAdapter(program)
    cases = [
        {"input": "2\n1 2", "expectedOutput": "2"},
        {"input": "2\n1 2", "expectedOutput": "1"},
        {"input": "boom", "expectedOutput": ""},
    ]
    result = _call(adapter, "submit_solution", {"problemName": "Max", "code": MAX_OF_LIST, "testCases": cases})
    outcomes = result.data["testResults"]
    assert result.data["passed"] == 1
    assert [o["passed"] for o in outcomes] == [True, False, False]
    assert outcomes[1]["actual"] == "2"
    assert outcomes[2]["actual"] == "Segmentation fault (core dumped)"
    assert outcomes[2]["error"] == "Segmentation fault (core dumped)"


def test_submit_solution_validates_cases() -> None:
    adapter = FakeAdapter()
    with pytest.raises(ToolArgumentError, match="testCases"):
        _call(adapter, "submit_solution", {"problemName": "P", "code": "c", "testCases": "none"})
    with pytest.raises(ToolArgumentError, match="expectedOutput"):
        _call(adapter, "submit_solution", {"problemName": "P", "code": "c", "testCases": [{"input": "1"}]})
    assert adapter.calls == []


def test_optimize_code_flags_nested_loops_and_slow_io() -> None:
    code = """
    #include <iostream>
    using namespace std;
    int main() {
        int n; cin >> n;
        for (int i = 0; i < n; i++) {
            for (int j = 0; j < n; j++) {
                cout << i * j << endl;
            }
        }
    }
    """
    result = _call(FakeAdapter(), "optimize_code", {"code": code, "constraints": {"timeComplexity": "O(n log n)"}})
    data = result.data
    assert data["maxLoopDepth"] == 2
    assert data["io"] == {"cin": True, "scanf": False, "fastIo": False, "endl": True}
    joined = " ".join(data["suggestions"])
    assert "O(n^2)" in joined
    assert "sync_with_stdio" in joined
    assert "O(n log n)" in joined


def test_optimize_code_never_executes() -> None:
    adapter = FakeAdapter()
    _call(adapter, "optimize_code", {"code": "int main(){}"})
    assert adapter.calls == []


def test_generate_test_cases_labels() -> None:
    result = _call(FakeAdapter(), "generate_test_cases", {"problemDescription": "Find the maximum"})
    labels = [c["description"] for c in result.data["testCases"]]
    assert labels == ["Minimum case", "Normal case", "Normal case", "Normal case", "Maximum/Edge case"]
    assert "Find the maximum" in result.content[0].text


def test_generate_test_cases_rejects_bad_counts() -> None:
    for count in (0, 2.5, "3", 1000, 10**400, float("inf"), float("-inf"), float("nan")):
        with pytest.raises(ToolArgumentError):
            _call(FakeAdapter(), "generate_test_cases", {"problemDescription": "x", "numTestCases": count})


def test_loop_depth_counts_braced_and_unbraced_nesting() -> None:
    assert loop_depth("int main() { return 0; }") == 0
    assert loop_depth("for (int i=0;i<n;i++) { for (int j=0;j<n;j++) { for (;;) {} } }") == 3
    assert loop_depth("for (int i=0;i<n;i++) for (int j=0;j<n;j++) s += i*j; for (;;) {}") == 2
    assert loop_depth("while (x) { y(); } while (z) { w(); }") == 1


def test_recursion_detection() -> None:
    code = """
    long long fib(int n) {
        if (n < 2) return n;
        return fib(n - 1) + fib(n - 2);
    }
    int twice(int n) { return 2 * n; }
    int main() { return fib(10) + twice(3); }
    """
    assert recursive_functions(code) == ["fib"]


def test_comments_and_strings_do_not_count() -> None:
    code = '// for (;;) {}\nint main() { /* while (1) {} */ puts("for (;;)"); }'
    stripped = strip_comments_and_strings(code)
    assert loop_depth(stripped) == 0
    assert "for" not in stripped


def test_memory_patterns() -> None:
    report = analyze_code("int dp[5000000];\nint main() { int *p = new int[10]; delete[] p; }")
    assert report.large_arrays == [5000000]
    assert report.dynamic_allocation is True


def test_case_labels_and_skeletons() -> None:
    assert case_label(1, 1) == "Minimum case"
    assert [s["testNumber"] for s in generate_test_skeletons(3)] == [1, 2, 3]
