"""
Validation helpers for transactions and related input.

Validation never raises: problems come back as a list of
``ValidationIssue`` entries so callers decide whether to block.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel

from spendsight_mcp.models.transaction import (
    NOTES_MAX_LENGTH,
    Transaction,
    TransactionDraft,
    to_naive_local,
)

LARGE_AMOUNT_THRESHOLD = 1_000_000
DUPLICATE_THRESHOLD_SECONDS = 300

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")

Candidate = Union[TransactionDraft, Transaction]


class ValidationIssue(BaseModel):
    """A single field-level problem."""

    model_config = {"frozen": True}

    field: str
    message: str


def validate_transaction(
    candidate: Candidate,
    *,
    now: Optional[datetime] = None,
    max_amount: float = LARGE_AMOUNT_THRESHOLD,
    max_notes_length: int = NOTES_MAX_LENGTH,
) -> List[ValidationIssue]:
    """
    Validate a candidate transaction.

    Args:
        candidate: Form input or a complete transaction
        now: Reference time for the future-date check (default: current time)
        max_amount: Amounts above this are reported as unusually large
        max_notes_length: Maximum allowed notes length

    Returns:
        Ordered list of issues; empty when the candidate is acceptable
    """
    issues: List[ValidationIssue] = []
    now = to_naive_local(now) or datetime.now()

    if candidate.date is None:
        issues.append(ValidationIssue(field="date", message="Date is required"))
    elif candidate.date > now:
        issues.append(
            ValidationIssue(field="date", message="Date cannot be in the future")
        )

    amount = candidate.amount
    if amount is None or not math.isfinite(amount) or amount <= 0:
        issues.append(
            ValidationIssue(field="amount", message="Amount must be greater than 0")
        )
    if amount is not None and amount > max_amount:
        issues.append(
            ValidationIssue(field="amount", message="Amount seems unusually large")
        )

    if not candidate.merchant or not candidate.merchant.strip():
        issues.append(ValidationIssue(field="merchant", message="Merchant is required"))

    if not candidate.currency or len(candidate.currency) != 3:
        issues.append(
            ValidationIssue(
                field="currency",
                message="Valid currency code is required (e.g., USD, EUR)",
            )
        )

    if not candidate.card_id:
        issues.append(ValidationIssue(field="card_id", message="Card is required"))

    if not candidate.category or not candidate.category.strip():
        issues.append(ValidationIssue(field="category", message="Category is required"))

    if candidate.notes and len(candidate.notes) > max_notes_length:
        issues.append(
            ValidationIssue(
                field="notes",
                message=f"Notes must be {max_notes_length} characters or less",
            )
        )

    return issues


def is_duplicate_transaction(
    existing: Iterable[Transaction],
    candidate: Candidate,
    threshold_seconds: int = DUPLICATE_THRESHOLD_SECONDS,
) -> bool:
    """
    Check whether a candidate looks like an already recorded transaction.

    A match needs the exact same amount, the same merchant ignoring case,
    and dates less than ``threshold_seconds`` apart. This is only a hint;
    the ledger accepts duplicates.
    """
    if not candidate.date or not candidate.amount or not candidate.merchant:
        return False

    window = timedelta(seconds=threshold_seconds)
    merchant = candidate.merchant.lower()

    return any(
        abs(txn.date - candidate.date) < window
        and txn.amount == candidate.amount
        and txn.merchant.lower() == merchant
        for txn in existing
    )


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def validate_currency_code(code: str) -> bool:
    """ISO 4217 codes are three upper-case letters."""
    return bool(_CURRENCY_RE.match(code))


def validate_date_range(start_date: datetime, end_date: datetime) -> bool:
    return start_date <= end_date


def sanitize_notes(notes: str, max_length: int = NOTES_MAX_LENGTH) -> str:
    """Trim, cut to ``max_length`` and drop angle brackets."""
    return notes.strip()[:max_length].replace("<", "").replace(">", "")
