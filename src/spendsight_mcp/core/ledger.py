"""
In-memory transaction ledger.

Holds the transactions of the current session and answers filtered
queries and aggregate statistics over them.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional

from spendsight_mcp.models.category import CategoryStats
from spendsight_mcp.models.transaction import (
    Transaction,
    TransactionFilter,
    TransactionPatch,
    TransactionStats,
)

logger = logging.getLogger(__name__)


class TransactionLedger:
    """
    Owns the session's transactions.

    Records are kept in insertion order. Nothing is validated here;
    callers run ``validate_transaction`` before adding.
    """

    def __init__(self, transactions: Optional[Iterable[Transaction]] = None):
        """
        Initialize the ledger.

        Args:
            transactions: Optional initial records, kept in the given order
        """
        self._transactions: List[Transaction] = list(transactions or [])

    def __len__(self) -> int:
        return len(self._transactions)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._transactions[:])

    def all(self) -> List[Transaction]:
        return self._transactions[:]

    def add(self, transaction: Transaction) -> None:
        self._transactions.append(transaction)
        logger.debug("Added transaction %s", transaction.id)

    def update(self, transaction_id: str, patch: TransactionPatch) -> Optional[Transaction]:
        """
        Merge the set fields of ``patch`` into a transaction.

        Returns:
            The replacement record, or None if the id is unknown (nothing changes)
        """
        for idx, txn in enumerate(self._transactions):
            if txn.id != transaction_id:
                continue

            data = txn.model_dump()
            data.update(patch.changes())
            data["updated_at"] = max(datetime.now(), txn.created_at)
            updated = Transaction.model_validate(data)

            self._transactions[idx] = updated
            logger.debug("Updated transaction %s", transaction_id)
            return updated

        logger.debug("Update skipped, unknown transaction %s", transaction_id)
        return None

    def delete(self, transaction_id: str) -> bool:
        """Remove a transaction. Returns False if it was not present."""
        remaining = [txn for txn in self._transactions if txn.id != transaction_id]
        removed = len(remaining) != len(self._transactions)
        self._transactions = remaining
        if removed:
            logger.debug("Deleted transaction %s", transaction_id)
        return removed

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return next(
            (txn for txn in self._transactions if txn.id == transaction_id), None
        )

    def query(self, filter: Optional[TransactionFilter] = None) -> List[Transaction]:
        """
        Get transactions matching every predicate of ``filter``.

        Args:
            filter: Predicates to apply; None returns everything

        Returns:
            Matching transactions in insertion order
        """
        if filter is None:
            return self._transactions[:]
        return [txn for txn in self._transactions if filter.matches(txn)]

    def stats(self, filter: Optional[TransactionFilter] = None) -> TransactionStats:
        """
        Aggregate amounts over the filtered (or full) ledger.

        Currency buckets hold raw sums; amounts are never converted, so the
        overall total mixes currencies as-is.
        """
        transactions = self.query(filter)
        if not transactions:
            return TransactionStats()

        amounts = [txn.amount for txn in transactions]
        breakdown: Dict[str, float] = defaultdict(float)
        for txn in transactions:
            breakdown[txn.currency] += txn.amount

        total = sum(amounts)
        return TransactionStats(
            total_count=len(amounts),
            total_amount=total,
            average_amount=total / len(amounts),
            min_amount=min(amounts),
            max_amount=max(amounts),
            currency_breakdown=dict(breakdown),
        )

    def category_breakdown(
        self, filter: Optional[TransactionFilter] = None
    ) -> List[CategoryStats]:
        """
        Spending per category, sorted by total spend (descending).

        Transactions are grouped by ``category``; amounts are summed raw.
        """
        spending: Dict[str, float] = defaultdict(float)
        counts: Dict[str, int] = defaultdict(int)
        category_ids: Dict[str, Optional[str]] = {}

        for txn in self.query(filter):
            spending[txn.category] += txn.amount
            counts[txn.category] += 1
            category_ids.setdefault(txn.category, txn.category_id)

        grand_total = sum(spending.values())
        result = [
            CategoryStats(
                id=category_ids[name],
                name=name,
                total_spend=round(amount, 2),
                transaction_count=counts[name],
                percentage_of_total=(
                    round(amount / grand_total * 100, 2) if grand_total else 0.0
                ),
            )
            for name, amount in spending.items()
        ]
        result.sort(key=lambda stat: stat.total_spend, reverse=True)
        return result

    def import_batch(self, transactions: Iterable[Transaction]) -> int:
        """Append pre-validated transactions in order. Returns how many."""
        batch = list(transactions)
        self._transactions.extend(batch)
        logger.info("Imported batch of %d transactions", len(batch))
        return len(batch)

    def clear(self) -> None:
        self._transactions = []
        logger.info("Cleared ledger")
