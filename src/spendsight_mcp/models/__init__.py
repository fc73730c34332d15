"""
Pydantic models for SpendSight data structures.
"""

from spendsight_mcp.models.category import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryHierarchy,
    CategoryPatch,
    CategoryRule,
    CategoryRulePatch,
    CategoryStats,
    DefaultCategory,
    RuleMatchType,
    RuleOperator,
)
from spendsight_mcp.models.imports import (
    ImportErrorKind,
    ImportFailure,
    ImportOutcome,
    ImportState,
    ImportSuccess,
)
from spendsight_mcp.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionPatch,
    TransactionStats,
)
from spendsight_mcp.models.user import ROLE_PERMISSIONS, Permission, User, UserRole

__all__ = [
    # Transactions
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionPatch",
    "TransactionStats",
    # Categories
    "Category",
    "CategoryHierarchy",
    "CategoryPatch",
    "CategoryRule",
    "CategoryRulePatch",
    "CategoryStats",
    "DefaultCategory",
    "DEFAULT_CATEGORIES",
    "RuleMatchType",
    "RuleOperator",
    # Imports
    "ImportErrorKind",
    "ImportFailure",
    "ImportOutcome",
    "ImportState",
    "ImportSuccess",
    # Users
    "Permission",
    "ROLE_PERMISSIONS",
    "User",
    "UserRole",
]
