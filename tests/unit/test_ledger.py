"""
Unit tests for the transaction ledger.
"""

from datetime import datetime

import pytest
from freezegun import freeze_time
from pydantic import ValidationError

from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.models.transaction import TransactionFilter, TransactionPatch


class TestCrud:
    def test_add_and_get(self, make_transaction):
        ledger = TransactionLedger()
        txn = make_transaction(id="trx_a")
        ledger.add(txn)

        assert len(ledger) == 1
        assert ledger.get("trx_a") == txn

    def test_get_unknown_returns_none(self, ledger):
        assert ledger.get("trx_missing") is None

    @freeze_time("2024-03-01 08:00:00")
    def test_update_merges_fields_and_refreshes_updated_at(self, ledger, sample_transactions):
        original = sample_transactions[0]
        updated = ledger.update(original.id, TransactionPatch(merchant="United", notes="rebooked"))

        assert updated is not None
        assert updated.merchant == "United"
        assert updated.notes == "rebooked"
        assert updated.amount == original.amount
        assert updated.created_at == original.created_at
        assert updated.updated_at == datetime(2024, 3, 1, 8, 0)
        assert ledger.get(original.id) == updated

    def test_update_keeps_previous_value_objects_intact(self, ledger, sample_transactions):
        original = sample_transactions[0]
        ledger.update(original.id, TransactionPatch(amount=1.0))
        assert original.amount == 100.0

    def test_update_unknown_id_is_noop(self, ledger):
        before = ledger.all()
        assert ledger.update("trx_missing", TransactionPatch(amount=1.0)) is None
        assert ledger.all() == before

    def test_update_cannot_break_invariants(self, ledger, sample_transactions):
        with pytest.raises(ValidationError):
            ledger.update(sample_transactions[0].id, TransactionPatch(merchant=" "))
        assert ledger.get(sample_transactions[0].id) == sample_transactions[0]

    def test_delete(self, ledger, sample_transactions):
        assert ledger.delete(sample_transactions[1].id) is True
        assert ledger.get(sample_transactions[1].id) is None
        assert len(ledger) == 2

    def test_delete_unknown_id_is_noop(self, ledger):
        assert ledger.delete("trx_missing") is False
        assert len(ledger) == 3

    def test_ledger_accepts_duplicates(self, make_transaction):
        ledger = TransactionLedger()
        ledger.add(make_transaction(id="trx_1"))
        ledger.add(make_transaction(id="trx_2"))
        assert len(ledger) == 2

    def test_import_batch_preserves_order(self, make_transaction):
        ledger = TransactionLedger([make_transaction(id="trx_0")])
        batch = [make_transaction(id=f"trx_{i}") for i in range(1, 4)]

        assert ledger.import_batch(batch) == 3
        assert [t.id for t in ledger] == ["trx_0", "trx_1", "trx_2", "trx_3"]

    def test_clear(self, ledger):
        ledger.clear()
        assert len(ledger) == 0
        assert ledger.query() == []


class TestQuery:
    def test_no_filter_returns_all_in_insertion_order(self, ledger, sample_transactions):
        assert ledger.query() == sample_transactions
        assert ledger.query(TransactionFilter()) == sample_transactions

    def test_date_range_is_inclusive(self, ledger):
        result = ledger.query(
            TransactionFilter(start_date=datetime(2024, 1, 10), end_date=datetime(2024, 1, 20))
        )
        assert [t.merchant for t in result] == ["Delta Airlines", "Amazon"]

    def test_filters_combine_with_and(self, ledger):
        result = ledger.query(TransactionFilter(card_id="card_a", currency="USD"))
        assert [t.merchant for t in result] == ["Delta Airlines"]

    def test_merchant_substring(self, ledger):
        assert [t.merchant for t in ledger.query(TransactionFilter(merchant="AMAZ"))] == ["Amazon"]

    def test_amount_bounds(self, ledger):
        result = ledger.query(TransactionFilter(min_amount=30, max_amount=50))
        assert sorted(t.amount for t in result) == [30.0, 50.0]

    def test_reimbursable(self, ledger):
        result = ledger.query(TransactionFilter(is_reimbursable=True))
        assert [t.merchant for t in result] == ["Amazon"]

    def test_category(self, ledger):
        assert len(ledger.query(TransactionFilter(category="Travel"))) == 1
        assert ledger.query(TransactionFilter(category="travel")) == []

    def test_query_result_is_a_copy(self, ledger):
        ledger.query().clear()
        assert len(ledger) == 3


class TestStats:
    def test_empty_ledger(self):
        stats = TransactionLedger().stats()
        assert stats.total_count == 0
        assert stats.total_amount == 0
        assert stats.average_amount == 0
        assert stats.min_amount == 0
        assert stats.max_amount == 0
        assert stats.currency_breakdown == {}

    def test_empty_filter_result(self, ledger):
        stats = ledger.stats(TransactionFilter(currency="JPY"))
        assert stats.total_count == 0
        assert stats.currency_breakdown == {}

    def test_mixed_currencies_are_not_converted(self, ledger):
        stats = ledger.stats()
        assert stats.total_count == 3
        assert stats.total_amount == 180
        assert stats.average_amount == 60
        assert stats.min_amount == 30
        assert stats.max_amount == 100
        assert stats.currency_breakdown == {"USD": 150, "EUR": 30}

    def test_stats_respect_filter(self, ledger):
        stats = ledger.stats(TransactionFilter(card_id="card_a"))
        assert stats.total_count == 2
        assert stats.currency_breakdown == {"USD": 100, "EUR": 30}


class TestCategoryBreakdown:
    def test_sorted_by_spend_with_percentages(self, ledger):
        breakdown = ledger.category_breakdown()

        assert [s.name for s in breakdown] == ["Travel", "Office Supplies", "Meals"]
        assert breakdown[0].transaction_count == 1
        assert breakdown[0].percentage_of_total == pytest.approx(55.56)
        assert sum(s.percentage_of_total for s in breakdown) == pytest.approx(100, abs=0.05)

    def test_empty(self):
        assert TransactionLedger().category_breakdown() == []
