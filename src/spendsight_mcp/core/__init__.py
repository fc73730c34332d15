"""
Core functionality for SpendSight MCP.
"""

from spendsight_mcp.core.auth import AuthSession, make_user
from spendsight_mcp.core.categories import CategoryStore, rule_matches
from spendsight_mcp.core.csv_import import (
    CSVImportPipeline,
    InMemoryFile,
    LocalFile,
    parse_csv,
    parse_csv_line,
)
from spendsight_mcp.core.exceptions import (
    CategoryCycleError,
    CategoryNotFoundError,
    ImportFileError,
    PermissionDeniedError,
    SpendSightError,
)
from spendsight_mcp.core.ledger import TransactionLedger

__all__ = [
    "AuthSession",
    "make_user",
    "CategoryStore",
    "rule_matches",
    "CSVImportPipeline",
    "InMemoryFile",
    "LocalFile",
    "parse_csv",
    "parse_csv_line",
    "TransactionLedger",
    "SpendSightError",
    "CategoryCycleError",
    "CategoryNotFoundError",
    "ImportFileError",
    "PermissionDeniedError",
]
