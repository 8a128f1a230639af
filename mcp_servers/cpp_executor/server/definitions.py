"""
MCP tool definitions.
"""

from __future__ import annotations

from typing import Any

# ═══════════════════════════════════════════════════════════════════════════════
# EXECUTION
# ═══════════════════════════════════════════════════════════════════════════════

EXECUTE_CPP_CODE_TOOL: dict[str, Any] = {
    "name": "execute_cpp_code",
    "description": """Compile and run C++ code on the OnlineGDB compiler with optional stdin.
RESPONSE: status, normalized stdout (or the error text when there is no stdout), stderr.
NOTE: any stderr output (including compiler warnings) marks the run as failed.""",
    "inputSchema": {
        "type": "object",
        "properties": {
            "code": {"type": "string", "description": "The C++ code to execute"},
            "input": {"type": "string", "description": "Input data for the program (optional)"},
            "timeLimit": {
                "type": "number",
                "description": "Time limit in seconds (default: 5)",
                "default": 5,
                "exclusiveMinimum": 0,
            },
        },
        "required": ["code"],
    },
}

SUBMIT_SOLUTION_TOOL: dict[str, Any] = {
    "name": "submit_solution",
    "description": """Run a complete solution against test cases, one execution per case.
A case passes when the run succeeds and trimmed stdout equals the trimmed expected output.""",
    "inputSchema": {
        "type": "object",
        "properties": {
            "problemName": {"type": "string", "description": "Name of the problem being solved"},
            "code": {"type": "string", "description": "The C++ solution code"},
            "testCases": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "input": {"type": "string"},
                        "expectedOutput": {"type": "string"},
                    },
                    "required": ["input", "expectedOutput"],
                },
                "description": "Test cases to validate the solution",
            },
            "functionSignature": {
                "type": "string",
                "description": "Expected function signature if applicable",
            },
        },
        "required": ["problemName", "code", "testCases"],
    },
}

# ═══════════════════════════════════════════════════════════════════════════════
# ANALYSIS (no execution)
# ═══════════════════════════════════════════════════════════════════════════════

OPTIMIZE_CODE_TOOL: dict[str, Any] = {
    "name": "optimize_code",
    "description": "Statically inspect C++ code (loops, recursion, STL, I/O, memory) and suggest optimizations",
    "inputSchema": {
        "type": "object",
        "properties": {
            "code": {"type": "string", "description": "The C++ code to analyze and optimize"},
            "constraints": {
                "type": "object",
                "properties": {
                    "timeComplexity": {"type": "string", "description": "Target time complexity"},
                    "spaceComplexity": {"type": "string", "description": "Target space complexity"},
                    "memoryLimit": {"type": "string", "description": "Memory limit (e.g., '256MB')"},
                },
            },
        },
        "required": ["code"],
    },
}

GENERATE_TEST_CASES_TOOL: dict[str, Any] = {
    "name": "generate_test_cases",
    "description": "Produce test case skeletons (minimum, normal and edge cases) for a problem description",
    "inputSchema": {
        "type": "object",
        "properties": {
            "problemDescription": {"type": "string", "description": "Description of the coding problem"},
            "numTestCases": {
                "type": "number",
                "description": "Number of test cases to generate",
                "default": 5,
            },
        },
        "required": ["problemDescription"],
    },
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    EXECUTE_CPP_CODE_TOOL,
    SUBMIT_SOLUTION_TOOL,
    OPTIMIZE_CODE_TOOL,
    GENERATE_TEST_CASES_TOOL,
]
