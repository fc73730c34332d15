"""
Utility functions for SpendSight MCP.
"""

from spendsight_mcp.utils.date_utils import get_month_range, parse_period
from spendsight_mcp.utils.ids import get_prefix, has_prefix, new_id
from spendsight_mcp.utils.validators import (
    ValidationIssue,
    is_duplicate_transaction,
    validate_transaction,
)

__all__ = [
    "parse_period",
    "get_month_range",
    "new_id",
    "get_prefix",
    "has_prefix",
    "ValidationIssue",
    "is_duplicate_transaction",
    "validate_transaction",
]
