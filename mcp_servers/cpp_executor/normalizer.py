"""Canonicalize captured stdout/stderr panel text and classify the run."""

from __future__ import annotations

import re

from .models import ExecutionResult

_BLANK_RUNS = re.compile(r"\n{2,}")


def clean_text(raw: str | None) -> str:
    """Drop carriage returns, collapse newline runs, trim."""
    text = (raw or "").replace("\r", "")
    return _BLANK_RUNS.sub("\n", text).strip()


def normalize(raw_output: str | None, raw_error: str | None) -> ExecutionResult:
    """
    Build the result for one captured (stdout, stderr) pair.

    Any non-empty stderr marks the run as failed, even next to valid stdout:
    the compiler page reports warnings and runtime errors on the same panel.
    When stdout is empty the error text is surfaced as `output` too.
    """
    output = clean_text(raw_output)
    error = clean_text(raw_error)

    has_error = bool(error)
    has_output = bool(output)

    return ExecutionResult(
        success=has_output and not has_error,
        output=output if has_output else error,
        error=error if has_error else None,
    )


__all__ = ["clean_text", "normalize"]
