"""
MCP tools for SpendSight data.
"""

from spendsight_mcp.tools.tools import (
    TOOL_PERMISSIONS,
    SpendSightTools,
    create_tool_schemas,
)

__all__ = ["SpendSightTools", "TOOL_PERMISSIONS", "create_tool_schemas"]
