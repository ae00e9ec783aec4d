"""Tools that expose web search and fetch to an agent orchestrator."""

from webguard.tools.base import (
    ToolResult,
    BaseTool,
)

__all__ = [
    "ToolResult",
    "BaseTool",
]
