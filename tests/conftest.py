"""
Pytest configuration and fixtures for spendsight-mcp tests.
"""

import itertools
from datetime import datetime
from pathlib import Path
from typing import Callable, List

import pytest

from spendsight_mcp.config import Settings
from spendsight_mcp.core.categories import CategoryStore
from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.models.transaction import Transaction


@pytest.fixture
def id_supplier() -> Callable[[str], str]:
    """Deterministic ids: trx_1, cat_2, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}_{next(counter)}"


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def make_transaction() -> Callable[..., Transaction]:
    """Factory for valid transactions with overridable fields."""
    counter = itertools.count(1)

    def factory(**overrides) -> Transaction:
        created = datetime(2024, 1, 1, 9, 0)
        fields = {
            "id": f"trx_s{next(counter)}",
            "date": datetime(2024, 1, 15, 12, 0),
            "amount": 10.0,
            "currency": "USD",
            "merchant": "Starbucks",
            "category": "Meals",
            "card_id": "card_default",
            "created_at": created,
            "updated_at": created,
        }
        fields.update(overrides)
        return Transaction(**fields)

    return factory


@pytest.fixture
def sample_transactions(make_transaction) -> List[Transaction]:
    """Mixed-currency transactions: 100 USD, 50 USD, 30 EUR."""
    return [
        make_transaction(
            amount=100.0,
            merchant="Delta Airlines",
            category="Travel",
            date=datetime(2024, 1, 10),
            card_id="card_a",
        ),
        make_transaction(
            amount=50.0,
            merchant="Amazon",
            category="Office Supplies",
            date=datetime(2024, 1, 20),
            card_id="card_b",
            is_reimbursable=True,
        ),
        make_transaction(
            amount=30.0,
            currency="EUR",
            merchant="Cafe de Flore",
            category="Meals",
            date=datetime(2024, 2, 5),
            card_id="card_a",
        ),
    ]


@pytest.fixture
def ledger(sample_transactions) -> TransactionLedger:
    return TransactionLedger(sample_transactions)


@pytest.fixture
def category_store(id_supplier) -> CategoryStore:
    return CategoryStore(id_supplier=id_supplier)


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write CSV text to a file in tmp_path and return its path."""

    def writer(content: str, name: str = "transactions.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return writer
