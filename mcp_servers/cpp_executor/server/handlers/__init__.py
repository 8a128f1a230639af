"""
Tool handlers organized by domain.

All handlers follow the signature: async (adapter, arguments) -> ToolResult
"""

from .analysis import ANALYSIS_HANDLERS
from .execution import EXECUTION_HANDLERS

# Aggregate all handlers
ALL_HANDLERS = {
    **EXECUTION_HANDLERS,
    **ANALYSIS_HANDLERS,
}

__all__ = [
    "ALL_HANDLERS",
    "ANALYSIS_HANDLERS",
    "EXECUTION_HANDLERS",
]
