"""
Static inspection of C++ source and test-case skeletons.

Nothing here compiles or runs code. The checks are lexical heuristics over
the source with comments and string literals stripped; they point at likely
hot spots, they do not prove complexity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_STRING_RE = re.compile(r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'')

_LOOP_RE = re.compile(r"\b(for|while)\s*\(")
_FUNCTION_DEF_RE = re.compile(
    r"^[ \t]*(?:[\w:<>,\*&\s]+?)\b([A-Za-z_]\w*)\s*\([^;{)]*\)\s*(?:const\s*)?\{",
    re.MULTILINE,
)
_CONTROL_WORDS = {"if", "for", "while", "switch", "catch", "return", "else", "do"}

_STL_CONTAINERS = (
    "vector",
    "map",
    "unordered_map",
    "set",
    "unordered_set",
    "multiset",
    "deque",
    "list",
    "queue",
    "priority_queue",
    "stack",
    "bitset",
    "string",
)
_STL_ALGORITHMS = ("sort", "lower_bound", "upper_bound", "binary_search", "accumulate", "reverse", "unique")

_FAST_IO_RE = re.compile(r"sync_with_stdio\s*\(\s*(?:false|0)\s*\)")
_ENDL_RE = re.compile(r"\bendl\b")
_CIN_RE = re.compile(r"\bcin\s*>>")
_SCANF_RE = re.compile(r"\bscanf\s*\(")
_NEW_RE = re.compile(r"\bnew\b")
_MALLOC_RE = re.compile(r"\b(malloc|calloc|realloc)\s*\(")
_LARGE_ARRAY_RE = re.compile(r"\[\s*(\d[\d']*)\s*\]")

LARGE_ARRAY_ELEMENTS = 1_000_000


@dataclass(slots=True)
class CodeAnalysis:
    max_loop_depth: int = 0
    recursive_functions: list[str] = field(default_factory=list)
    stl_containers: list[str] = field(default_factory=list)
    stl_algorithms: list[str] = field(default_factory=list)
    uses_cin: bool = False
    uses_scanf: bool = False
    fast_io: bool = False
    uses_endl: bool = False
    dynamic_allocation: bool = False
    large_arrays: list[int] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "maxLoopDepth": self.max_loop_depth,
            "recursiveFunctions": self.recursive_functions,
            "stlContainers": self.stl_containers,
            "stlAlgorithms": self.stl_algorithms,
            "io": {
                "cin": self.uses_cin,
                "scanf": self.uses_scanf,
                "fastIo": self.fast_io,
                "endl": self.uses_endl,
            },
            "memory": {
                "dynamicAllocation": self.dynamic_allocation,
                "largeArrays": self.large_arrays,
            },
            "suggestions": self.suggestions,
        }


def strip_comments_and_strings(code: str) -> str:
    code = _BLOCK_COMMENT_RE.sub(" ", code)
    code = _LINE_COMMENT_RE.sub("", code)
    return _STRING_RE.sub('""', code)


def loop_depth(code: str) -> int:
    """Deepest nesting of for/while loops, tracked by brace scope."""
    depth = 0
    deepest = 0
    # Each entry: is this brace scope opened by a loop header.
    scopes: list[bool] = []
    pending_loop = False
    pending_unbraced = 0
    i = 0
    while i < len(code):
        match = _LOOP_RE.match(code, i)
        if match and (i == 0 or not (code[i - 1].isalnum() or code[i - 1] == "_")):
            pending_loop = True
            depth += 1
            deepest = max(deepest, depth)
            i = _skip_parens(code, match.end() - 1)
            # An unbraced body ends at the next ';' unless a '{' follows.
            rest = code[i:].lstrip()
            if not rest.startswith("{"):
                pending_unbraced += 1
                pending_loop = False
            continue
        ch = code[i]
        if ch == "{":
            scopes.append(pending_loop)
            pending_loop = False
        elif ch == "}":
            if scopes and scopes.pop():
                depth -= 1
        elif ch == ";" and pending_unbraced:
            depth -= pending_unbraced
            pending_unbraced = 0
        i += 1
    return deepest


def _skip_parens(code: str, start: int) -> int:
    level = 0
    for idx in range(start, len(code)):
        if code[idx] == "(":
            level += 1
        elif code[idx] == ")":
            level -= 1
            if level == 0:
                return idx + 1
    return len(code)


def _function_bodies(code: str) -> dict[str, str]:
    bodies: dict[str, str] = {}
    for match in _FUNCTION_DEF_RE.finditer(code):
        name = match.group(1)
        if name in _CONTROL_WORDS:
            continue
        start = match.end()
        level = 1
        idx = start
        while idx < len(code) and level:
            if code[idx] == "{":
                level += 1
            elif code[idx] == "}":
                level -= 1
            idx += 1
        bodies[name] = code[start : idx - 1]
    return bodies


def recursive_functions(code: str) -> list[str]:
    found = []
    for name, body in _function_bodies(code).items():
        if re.search(rf"\b{re.escape(name)}\s*\(", body):
            found.append(name)
    return found


def analyze_code(code: str, constraints: dict[str, Any] | None = None) -> CodeAnalysis:
    source = strip_comments_and_strings(code)
    constraints = constraints or {}
    report = CodeAnalysis()

    report.max_loop_depth = loop_depth(source)
    report.recursive_functions = recursive_functions(source)
    report.stl_containers = [c for c in _STL_CONTAINERS if re.search(rf"\b(?:std::)?{c}\s*<", source)]
    report.stl_algorithms = [a for a in _STL_ALGORITHMS if re.search(rf"\b(?:std::)?{a}\s*\(", source)]
    report.uses_cin = bool(_CIN_RE.search(source))
    report.uses_scanf = bool(_SCANF_RE.search(source))
    report.fast_io = bool(_FAST_IO_RE.search(source))
    report.uses_endl = bool(_ENDL_RE.search(source))
    report.dynamic_allocation = bool(_NEW_RE.search(source) or _MALLOC_RE.search(source))
    for raw in _LARGE_ARRAY_RE.findall(source):
        size = int(raw.replace("'", ""))
        if size >= LARGE_ARRAY_ELEMENTS:
            report.large_arrays.append(size)

    report.suggestions = _suggestions(report, constraints)
    return report


def _suggestions(report: CodeAnalysis, constraints: dict[str, Any]) -> list[str]:
    out: list[str] = []
    if report.max_loop_depth >= 3:
        out.append(
            f"Loops nest {report.max_loop_depth} deep (roughly O(n^{report.max_loop_depth})); "
            "look for prefix sums, sorting + two pointers or hashing to drop a level."
        )
    elif report.max_loop_depth == 2:
        out.append("Nested loops suggest O(n^2); fine for n up to ~10^4, consider a faster approach beyond that.")

    if report.recursive_functions:
        names = ", ".join(report.recursive_functions)
        out.append(
            f"Recursive function(s) {names}: memoize overlapping subproblems and watch stack depth for large inputs."
        )

    if report.uses_cin and not report.fast_io:
        out.append("Add ios::sync_with_stdio(false); cin.tie(nullptr); for faster input.")
    if report.uses_endl:
        out.append("Prefer '\\n' over endl; endl flushes the stream on every line.")

    if "map" in report.stl_containers or "set" in report.stl_containers:
        out.append("Ordered map/set cost O(log n) per operation; unordered_* gives average O(1) when order is unused.")
    if "vector" in report.stl_containers and "sort" not in report.stl_algorithms:
        out.append("Call reserve() on vectors whose final size is known to avoid reallocations.")

    if report.dynamic_allocation:
        out.append("Manual new/malloc detected; prefer STL containers or smart pointers to avoid leaks.")
    if report.large_arrays:
        out.append(
            "Large fixed-size arrays ("
            + ", ".join(str(n) for n in report.large_arrays)
            + " elements) should be global or static to stay off the stack."
        )

    if target := constraints.get("timeComplexity"):
        out.append(f"Target time complexity: {target}. Check the loop structure above against it.")
    if target := constraints.get("spaceComplexity"):
        out.append(f"Target space complexity: {target}.")
    if limit := constraints.get("memoryLimit"):
        out.append(f"Memory limit {limit}: size arrays and containers to fit within it.")

    if not out:
        out.append("No obvious hot spots found; profile with large inputs to confirm.")
    return out


def case_label(index: int, total: int) -> str:
    if index == 1:
        return "Minimum case"
    if index == total:
        return "Maximum/Edge case"
    return "Normal case"


def generate_test_skeletons(count: int) -> list[dict[str, Any]]:
    return [
        {
            "testNumber": i,
            "input": "",
            "expectedOutput": "",
            "description": case_label(i, count),
        }
        for i in range(1, count + 1)
    ]


__all__ = [
    "CodeAnalysis",
    "analyze_code",
    "generate_test_skeletons",
    "loop_depth",
    "recursive_functions",
    "strip_comments_and_strings",
    "case_label",
]
