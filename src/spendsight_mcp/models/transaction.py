"""
Transaction models for SpendSight data.
"""

import math
from datetime import datetime
from typing import Annotated, Dict, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

NOTES_MAX_LENGTH = 500


def to_naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


LocalDatetime = Annotated[datetime, AfterValidator(to_naive_local)]


class Transaction(BaseModel):
    """
    Represents one recorded expense.

    Instances are frozen: edits produce a replacement record, so a value
    returned by the ledger never changes behind the caller's back.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    # Required fields
    id: str
    date: LocalDatetime
    amount: float  # Always positive, currency-agnostic magnitude
    currency: str = Field(min_length=3, max_length=3)
    merchant: str
    category: str
    card_id: str

    # Categorization
    category_id: Optional[str] = None

    # Flags & free text
    is_reimbursable: bool = False
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)
    receipt_url: Optional[str] = None

    # Timestamps
    created_at: LocalDatetime
    updated_at: LocalDatetime

    # Multi-currency provenance
    original_amount: Optional[float] = None
    original_currency: Optional[str] = None
    converted_amount: Optional[float] = None
    converted_currency: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def day(self) -> str:
        """Calendar day of the transaction as YYYY-MM-DD."""
        return self.date.date().isoformat()

    @field_validator("amount")
    @classmethod
    def validate_amount_positive(cls, v: float) -> float:
        """Amounts are magnitudes: finite and strictly positive."""
        if not math.isfinite(v) or v <= 0:
            raise ValueError(f"Amount must be greater than 0, got {v}")
        return v

    @field_validator("currency", "original_currency", "converted_currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    @field_validator("merchant", "card_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def check_timestamps(self) -> "Transaction":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not be earlier than created_at")
        return self


class TransactionDraft(BaseModel):
    """
    Candidate transaction as entered in a form, before it has an id.

    Every field is optional so that incomplete input can still be validated
    and reported field by field.
    """

    model_config = {"populate_by_name": True}

    date: Optional[LocalDatetime] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    merchant: Optional[str] = None
    category: Optional[str] = None
    category_id: Optional[str] = None
    card_id: Optional[str] = None
    is_reimbursable: bool = False
    notes: Optional[str] = None
    receipt_url: Optional[str] = None


class TransactionPatch(BaseModel):
    """
    Partial update for a transaction.

    Only fields that were explicitly set are merged into the stored record.
    """

    model_config = {"extra": "forbid"}

    date: Optional[LocalDatetime] = None
    amount: Optional[float] = Field(default=None, gt=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    merchant: Optional[str] = None
    category: Optional[str] = None
    category_id: Optional[str] = None
    card_id: Optional[str] = None
    is_reimbursable: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)
    receipt_url: Optional[str] = None
    original_amount: Optional[float] = None
    original_currency: Optional[str] = None
    converted_amount: Optional[float] = None
    converted_currency: Optional[str] = None

    def changes(self) -> Dict[str, object]:
        """Return only the fields the caller set."""
        return self.model_dump(exclude_unset=True)


class TransactionFilter(BaseModel):
    """Predicates for ledger queries; unset fields match everything."""

    start_date: Optional[LocalDatetime] = None
    end_date: Optional[LocalDatetime] = None
    category: Optional[str] = None
    card_id: Optional[str] = None
    merchant: Optional[str] = None  # Case-insensitive substring
    currency: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    is_reimbursable: Optional[bool] = None

    def matches(self, txn: Transaction) -> bool:
        """Check a transaction against every predicate that is set."""
        if self.start_date is not None and txn.date < self.start_date:
            return False
        if self.end_date is not None and txn.date > self.end_date:
            return False
        if self.category is not None and txn.category != self.category:
            return False
        if self.card_id is not None and txn.card_id != self.card_id:
            return False
        if self.merchant and self.merchant.lower() not in txn.merchant.lower():
            return False
        if self.currency is not None and txn.currency != self.currency:
            return False
        if self.min_amount is not None and txn.amount < self.min_amount:
            return False
        if self.max_amount is not None and txn.amount > self.max_amount:
            return False
        if (
            self.is_reimbursable is not None
            and txn.is_reimbursable != self.is_reimbursable
        ):
            return False
        return True


class TransactionStats(BaseModel):
    """Aggregates over a set of transactions."""

    total_count: int = 0
    total_amount: float = 0.0
    average_amount: float = 0.0
    min_amount: float = 0.0
    max_amount: float = 0.0
    # Raw sums per currency, never converted
    currency_breakdown: Dict[str, float] = Field(default_factory=dict)
