"""
MCP tool definitions for SpendSight data.

Exposes the ledger, category store and CSV import through the Model
Context Protocol.
"""

from datetime import datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional

from spendsight_mcp.config import Settings, get_settings
from spendsight_mcp.core.categories import CategoryStore
from spendsight_mcp.core.csv_import import CSVImportPipeline, LocalFile
from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.models.category import (
    CategoryHierarchy,
    CategoryPatch,
    RuleMatchType,
    RuleOperator,
)
from spendsight_mcp.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionPatch,
)
from spendsight_mcp.models.user import Permission
from spendsight_mcp.utils.currency import format_currency, with_conversion
from spendsight_mcp.utils.date_utils import parse_period
from spendsight_mcp.utils.ids import IdSupplier, new_id
from spendsight_mcp.utils.validators import (
    is_duplicate_transaction,
    sanitize_notes,
    validate_transaction,
)


def _parse_bound(value: Optional[str], end: bool = False) -> Optional[datetime]:
    """Parse a YYYY-MM-DD (or ISO datetime) bound; date-only ends cover the whole day."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if end and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


def _hierarchy_to_dict(node: CategoryHierarchy) -> Dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "description": node.description,
        "color": node.color,
        "icon": node.icon,
        "subcategories": [_hierarchy_to_dict(child) for child in node.subcategories],
    }


class SpendSightTools:
    """Collection of MCP tools for recording and reviewing expenses."""

    def __init__(
        self,
        ledger: TransactionLedger,
        categories: CategoryStore,
        importer: Optional[CSVImportPipeline] = None,
        settings: Optional[Settings] = None,
        id_supplier: IdSupplier = new_id,
    ):
        """
        Initialize tools with the session's stores.

        Args:
            ledger: Transaction ledger
            categories: Category store
            importer: CSV import pipeline (default: one bound to ``ledger``)
            settings: Settings (default: global settings)
            id_supplier: Callable producing prefixed unique ids
        """
        self.ledger = ledger
        self.categories = categories
        self.settings = settings or get_settings()
        self._new_id = id_supplier
        self.importer = importer or CSVImportPipeline(
            ledger, id_supplier=id_supplier, settings=self.settings
        )

    def _build_filter(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        **predicates: Any,
    ) -> TransactionFilter:
        if period:
            start, end = parse_period(period)
        else:
            start, end = _parse_bound(start_date), _parse_bound(end_date, end=True)
        return TransactionFilter(start_date=start, end_date=end, **predicates)

    # Transactions

    def get_transactions(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        category: Optional[str] = None,
        card_id: Optional[str] = None,
        merchant: Optional[str] = None,
        currency: Optional[str] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        is_reimbursable: Optional[bool] = None,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """
        Get transactions with optional filters.

        Args:
            period: Period shorthand (this_month, last_30_days, ytd, etc.)
            start_date: Filter by date >= this (YYYY-MM-DD)
            end_date: Filter by date <= this (YYYY-MM-DD, whole day included)
            category: Exact category name
            card_id: Exact card id
            merchant: Case-insensitive substring of the merchant
            currency: Exact currency code
            min_amount: Filter by amount >= this
            max_amount: Filter by amount <= this
            is_reimbursable: Filter by reimbursable flag
            limit: Maximum number of transactions to return (default: 100)

        Returns:
            Dict with transaction count and list of transactions
        """
        txn_filter = self._build_filter(
            period,
            start_date,
            end_date,
            category=category,
            card_id=card_id,
            merchant=merchant,
            currency=currency,
            min_amount=min_amount,
            max_amount=max_amount,
            is_reimbursable=is_reimbursable,
        )
        transactions = self.ledger.query(txn_filter)[:limit]

        return {
            "count": len(transactions),
            "transactions": [txn.model_dump(mode="json") for txn in transactions],
        }

    def get_transaction(self, transaction_id: str) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If transaction_id is not found
        """
        txn = self.ledger.get(transaction_id)
        if txn is None:
            raise ValueError(f"Transaction not found: {transaction_id}")
        return txn.model_dump(mode="json")

    def add_transaction(
        self,
        date: str,
        merchant: str,
        amount: float,
        category: str,
        currency: Optional[str] = None,
        card_id: str = "card_default",
        is_reimbursable: bool = False,
        notes: Optional[str] = None,
        category_id: Optional[str] = None,
        convert_to: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Validate and record a new expense.

        Args:
            convert_to: Optional currency to record a converted amount in

        Returns:
            Dict with the stored transaction and a duplicate hint

        Raises:
            ValueError: If the input does not pass validation
        """
        draft = TransactionDraft(
            date=date,
            merchant=merchant,
            amount=amount,
            currency=(currency or self.settings.default_currency).upper(),
            category=category,
            category_id=category_id,
            card_id=card_id,
            is_reimbursable=is_reimbursable,
            notes=sanitize_notes(notes, self.settings.notes_max_length) if notes else None,
        )
        issues = validate_transaction(
            draft,
            max_amount=self.settings.large_amount_threshold,
            max_notes_length=self.settings.notes_max_length,
        )
        if issues:
            raise ValueError(", ".join(issue.message for issue in issues))

        possible_duplicate = is_duplicate_transaction(
            self.ledger, draft, self.settings.duplicate_threshold_seconds
        )

        now = datetime.now()
        txn = Transaction(
            id=self._new_id("trx"),
            **draft.model_dump(),
            created_at=now,
            updated_at=now,
        )
        if convert_to:
            txn = with_conversion(txn, convert_to)

        self.ledger.add(txn)
        return {
            "transaction": txn.model_dump(mode="json"),
            "possible_duplicate": possible_duplicate,
        }

    def update_transaction(self, transaction_id: str, **fields: Any) -> Dict[str, Any]:
        """
        Apply a partial update.

        Raises:
            ValueError: If transaction_id is not found or a field is invalid
        """
        updated = self.ledger.update(transaction_id, TransactionPatch(**fields))
        if updated is None:
            raise ValueError(f"Transaction not found: {transaction_id}")
        return updated.model_dump(mode="json")

    def delete_transaction(self, transaction_id: str) -> Dict[str, Any]:
        return {
            "transaction_id": transaction_id,
            "deleted": self.ledger.delete(transaction_id),
        }

    def categorize_transaction(self, transaction_id: str) -> Dict[str, Any]:
        """
        Apply category rules to a stored transaction.

        Raises:
            ValueError: If transaction_id is not found
        """
        txn = self.ledger.get(transaction_id)
        if txn is None:
            raise ValueError(f"Transaction not found: {transaction_id}")

        category = self.categories.categorize(txn)
        if category is None:
            return {"transaction_id": transaction_id, "matched": False}

        self.ledger.update(
            transaction_id,
            TransactionPatch(category=category.name, category_id=category.id),
        )
        return {
            "transaction_id": transaction_id,
            "matched": True,
            "category": category.name,
            "category_id": category.id,
        }

    # Analytics

    def get_stats(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        category: Optional[str] = None,
        card_id: Optional[str] = None,
        currency: Optional[str] = None,
        is_reimbursable: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Get count, total, average, min and max of amounts plus per-currency sums.

        Per-currency sums are raw; amounts are never converted.
        """
        stats = self.ledger.stats(
            self._build_filter(
                period,
                start_date,
                end_date,
                category=category,
                card_id=card_id,
                currency=currency,
                is_reimbursable=is_reimbursable,
            )
        )
        result = stats.model_dump(mode="json")
        result["formatted_breakdown"] = {
            code: format_currency(total, code)
            for code, total in stats.currency_breakdown.items()
        }
        return result

    def get_spending_by_category(
        self,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get spending aggregated by category, sorted by amount (descending).
        """
        txn_filter = self._build_filter(period, start_date, end_date)
        breakdown = self.ledger.category_breakdown(txn_filter)
        total_spending = sum(stat.total_spend for stat in breakdown)

        return {
            "period": {
                "start_date": txn_filter.start_date.isoformat() if txn_filter.start_date else None,
                "end_date": txn_filter.end_date.isoformat() if txn_filter.end_date else None,
            },
            "total_spending": round(total_spending, 2),
            "category_count": len(breakdown),
            "categories": [stat.model_dump(mode="json") for stat in breakdown],
        }

    # Categories

    def get_category_hierarchy(self) -> Dict[str, Any]:
        roots = self.categories.hierarchy()
        return {
            "count": len(roots),
            "categories": [_hierarchy_to_dict(node) for node in roots],
        }

    def add_category(
        self,
        name: str,
        parent_id: Optional[str] = None,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If parent_id is given but does not exist
        """
        if parent_id and self.categories.get(parent_id) is None:
            raise ValueError(f"Category not found: {parent_id}")

        category_id = self.categories.add(
            name,
            parent_id=parent_id,
            description=description,
            color=color,
            icon=icon,
        )
        return {"category_id": category_id, "name": name}

    def update_category(self, category_id: str, **fields: Any) -> Dict[str, Any]:
        """
        Raises:
            ValueError: If category_id is not found
        """
        updated = self.categories.update(category_id, CategoryPatch(**fields))
        if updated is None:
            raise ValueError(f"Category not found: {category_id}")
        return updated.model_dump(mode="json")

    def delete_category(self, category_id: str) -> Dict[str, Any]:
        """Delete a category and its rules; children are kept as orphans."""
        orphaned = [
            c.id for c in self.categories.all() if c.parent_id == category_id
        ]
        deleted = self.categories.delete(category_id)
        return {
            "category_id": category_id,
            "deleted": deleted,
            "orphaned_children": orphaned if deleted else [],
        }

    def add_category_rule(
        self,
        category_id: str,
        match_type: str,
        match_value: str,
        operator: Optional[str] = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> Dict[str, Any]:
        rule_id = self.categories.add_rule(
            category_id,
            RuleMatchType(match_type),
            match_value,
            operator=RuleOperator(operator) if operator else None,
            priority=priority,
            is_active=is_active,
        )
        return {"rule_id": rule_id, "category_id": category_id}

    def get_category_rules(self, category_id: str) -> Dict[str, Any]:
        rules = self.categories.rules_for(category_id)
        return {
            "count": len(rules),
            "rules": [rule.model_dump(mode="json") for rule in rules],
        }

    def seed_default_categories(self) -> Dict[str, Any]:
        created = self.categories.seed_defaults()
        return {"created": created, "total": len(self.categories)}

    # Import

    async def import_csv(self, path: str) -> Dict[str, Any]:
        """Import a CSV file from disk into the ledger."""
        outcome = await self.importer.run_import(LocalFile(Path(path)))
        self.importer.reset()
        return outcome.model_dump(mode="json")


# Permission required by each tool
TOOL_PERMISSIONS: Dict[str, Permission] = {
    "get_transactions": Permission.VIEW_TRANSACTIONS,
    "get_transaction": Permission.VIEW_TRANSACTIONS,
    "add_transaction": Permission.EDIT_TRANSACTIONS,
    "update_transaction": Permission.EDIT_TRANSACTIONS,
    "delete_transaction": Permission.DELETE_TRANSACTIONS,
    "categorize_transaction": Permission.EDIT_TRANSACTIONS,
    "get_stats": Permission.VIEW_ANALYTICS,
    "get_spending_by_category": Permission.VIEW_ANALYTICS,
    "get_category_hierarchy": Permission.VIEW_TRANSACTIONS,
    "add_category": Permission.MANAGE_CATEGORIES,
    "update_category": Permission.MANAGE_CATEGORIES,
    "delete_category": Permission.MANAGE_CATEGORIES,
    "add_category_rule": Permission.MANAGE_CATEGORIES,
    "get_category_rules": Permission.VIEW_TRANSACTIONS,
    "seed_default_categories": Permission.MANAGE_CATEGORIES,
    "import_csv": Permission.EDIT_TRANSACTIONS,
}


_PERIOD_SCHEMA = {
    "type": "string",
    "description": (
        "Period shorthand: this_month, last_month, "
        "last_7_days, last_30_days, last_90_days, ytd, "
        "this_year, last_year"
    ),
}
_DATE_SCHEMA = {
    "type": "string",
    "pattern": r"^\d{4}-\d{2}-\d{2}$",
}
_ID_SCHEMA = {"type": "string"}


def _date(description: str) -> Dict[str, Any]:
    return {**_DATE_SCHEMA, "description": description}


def create_tool_schemas() -> List[Dict[str, Any]]:
    """
    Create MCP tool schemas for all tools.

    Returns:
        List of tool schema definitions
    """
    return [
        {
            "name": "get_transactions",
            "description": (
                "Get transactions with optional filters. Supports date ranges, "
                "category, card, merchant, currency, amount and reimbursable "
                "filters. Use 'period' for common date ranges."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "period": _PERIOD_SCHEMA,
                    "start_date": _date("Start date (YYYY-MM-DD)"),
                    "end_date": _date("End date (YYYY-MM-DD), inclusive"),
                    "category": {"type": "string", "description": "Exact category name"},
                    "card_id": {"type": "string", "description": "Exact card id"},
                    "merchant": {
                        "type": "string",
                        "description": "Filter by merchant name (case-insensitive substring)",
                    },
                    "currency": {"type": "string", "description": "3-letter currency code"},
                    "min_amount": {"type": "number", "description": "Minimum amount"},
                    "max_amount": {"type": "number", "description": "Maximum amount"},
                    "is_reimbursable": {"type": "boolean"},
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of results (default: 100)",
                        "default": 100,
                    },
                },
            },
        },
        {
            "name": "get_transaction",
            "description": "Get a single transaction by id.",
            "inputSchema": {
                "type": "object",
                "properties": {"transaction_id": _ID_SCHEMA},
                "required": ["transaction_id"],
            },
        },
        {
            "name": "add_transaction",
            "description": (
                "Record a new expense. The input is validated first; the reply "
                "flags a possible duplicate (same merchant and amount within "
                "a few minutes)."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "date": _date("Transaction date (YYYY-MM-DD)"),
                    "merchant": {"type": "string"},
                    "amount": {"type": "number", "exclusiveMinimum": 0},
                    "currency": {"type": "string", "description": "3-letter code"},
                    "category": {"type": "string"},
                    "category_id": {"type": "string"},
                    "card_id": {"type": "string", "default": "card_default"},
                    "is_reimbursable": {"type": "boolean", "default": False},
                    "notes": {"type": "string", "maxLength": 500},
                    "convert_to": {
                        "type": "string",
                        "description": "Also record the amount converted to this currency",
                    },
                },
                "required": ["date", "merchant", "amount", "category"],
            },
        },
        {
            "name": "update_transaction",
            "description": "Update some fields of a transaction.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "transaction_id": _ID_SCHEMA,
                    "date": _date("New date (YYYY-MM-DD)"),
                    "merchant": {"type": "string"},
                    "amount": {"type": "number", "exclusiveMinimum": 0},
                    "currency": {"type": "string"},
                    "category": {"type": "string"},
                    "category_id": {"type": "string"},
                    "card_id": {"type": "string"},
                    "is_reimbursable": {"type": "boolean"},
                    "notes": {"type": "string", "maxLength": 500},
                },
                "required": ["transaction_id"],
            },
        },
        {
            "name": "delete_transaction",
            "description": "Permanently delete a transaction.",
            "inputSchema": {
                "type": "object",
                "properties": {"transaction_id": _ID_SCHEMA},
                "required": ["transaction_id"],
            },
        },
        {
            "name": "categorize_transaction",
            "description": "Apply category rules to a transaction and store the match.",
            "inputSchema": {
                "type": "object",
                "properties": {"transaction_id": _ID_SCHEMA},
                "required": ["transaction_id"],
            },
        },
        {
            "name": "get_stats",
            "description": (
                "Get count, total, average, min and max amount plus raw totals "
                "per currency (no conversion) for the filtered transactions."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "period": _PERIOD_SCHEMA,
                    "start_date": _date("Start date (YYYY-MM-DD)"),
                    "end_date": _date("End date (YYYY-MM-DD), inclusive"),
                    "category": {"type": "string"},
                    "card_id": {"type": "string"},
                    "currency": {"type": "string"},
                    "is_reimbursable": {"type": "boolean"},
                },
            },
        },
        {
            "name": "get_spending_by_category",
            "description": (
                "Get spending aggregated by category for a date range, "
                "sorted by amount."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "period": _PERIOD_SCHEMA,
                    "start_date": _date("Start date (YYYY-MM-DD)"),
                    "end_date": _date("End date (YYYY-MM-DD), inclusive"),
                },
            },
        },
        {
            "name": "get_category_hierarchy",
            "description": "Get the tree of non-archived categories.",
            "inputSchema": {"type": "object", "properties": {}},
        },
        {
            "name": "add_category",
            "description": "Create a category, optionally below a parent.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "parent_id": _ID_SCHEMA,
                    "description": {"type": "string"},
                    "color": {"type": "string"},
                    "icon": {"type": "string"},
                },
                "required": ["name"],
            },
        },
        {
            "name": "update_category",
            "description": "Rename, move, archive or restyle a category.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "category_id": _ID_SCHEMA,
                    "name": {"type": "string"},
                    "parent_id": _ID_SCHEMA,
                    "description": {"type": "string"},
                    "color": {"type": "string"},
                    "icon": {"type": "string"},
                    "is_archived": {"type": "boolean"},
                },
                "required": ["category_id"],
            },
        },
        {
            "name": "delete_category",
            "description": (
                "Delete a category and its rules. Child categories are kept "
                "and reported as orphaned."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {"category_id": _ID_SCHEMA},
                "required": ["category_id"],
            },
        },
        {
            "name": "add_category_rule",
            "description": "Add an auto-categorization rule to a category.",
            "inputSchema": {
                "type": "object",
                "properties": {
                    "category_id": _ID_SCHEMA,
                    "match_type": {
                        "type": "string",
                        "enum": [m.value for m in RuleMatchType],
                    },
                    "match_value": {"type": "string"},
                    "operator": {
                        "type": "string",
                        "enum": [o.value for o in RuleOperator],
                    },
                    "priority": {
                        "type": "integer",
                        "description": "Lower values are tried first",
                        "default": 0,
                    },
                    "is_active": {"type": "boolean", "default": True},
                },
                "required": ["category_id", "match_type", "match_value"],
            },
        },
        {
            "name": "get_category_rules",
            "description": "List the active rules of a category.",
            "inputSchema": {
                "type": "object",
                "properties": {"category_id": _ID_SCHEMA},
                "required": ["category_id"],
            },
        },
        {
            "name": "seed_default_categories",
            "description": "Create the default categories if none exist yet.",
            "inputSchema": {"type": "object", "properties": {}},
        },
        {
            "name": "import_csv",
            "description": (
                "Import transactions from a CSV file with the columns "
                "date, merchant, amount, currency and optionally category, "
                "cardid, reimbursable, notes. Invalid rows are skipped."
            ),
            "inputSchema": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Path to a .csv file"},
                },
                "required": ["path"],
            },
        },
    ]
