"""
Unit tests for the CSV import pipeline.
"""

from datetime import datetime

import pytest

from spendsight_mcp.config import Settings
from spendsight_mcp.core.csv_import import (
    CSVImportPipeline,
    InMemoryFile,
    LocalFile,
    RowError,
    parse_amount,
    parse_csv,
    parse_csv_line,
    parse_date,
    row_to_transaction,
)
from spendsight_mcp.core.exceptions import ImportFileError
from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.models.imports import (
    ImportErrorKind,
    ImportFailure,
    ImportState,
    ImportSuccess,
)

HEADER = "Date,Merchant,Amount,Currency"


@pytest.fixture
def pipeline(id_supplier, settings) -> CSVImportPipeline:
    return CSVImportPipeline(TransactionLedger(), id_supplier=id_supplier, settings=settings)


class TestParseCsvLine:
    def test_simple_fields_are_trimmed(self):
        assert parse_csv_line(" a , b,c ") == ["a", "b", "c"]

    def test_quoted_comma_does_not_split(self):
        assert parse_csv_line('2024-01-15,"Acme, Inc.",5') == ["2024-01-15", "Acme, Inc.", "5"]

    def test_empty_fields_are_kept(self):
        assert parse_csv_line("a,,c,") == ["a", "", "c", ""]

    def test_doubled_quotes_are_not_unescaped(self):
        # "" just toggles quoting twice; no literal quote is produced
        assert parse_csv_line('"say ""hi"""') == ["say hi"]


class TestParseCsv:
    def test_blank_lines_are_skipped(self):
        text = "a,b\n\n   \n1,2\r\n3,4\n"
        assert parse_csv(text) == [["a", "b"], ["1", "2"], ["3", "4"]]

    def test_empty_text(self):
        assert parse_csv("") == []


class TestValueParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-15", datetime(2024, 1, 15)),
            ("2024-01-15T08:30:00", datetime(2024, 1, 15, 8, 30)),
            ("01/15/2024", datetime(2024, 1, 15)),
            ("15.01.2024", datetime(2024, 1, 15)),
        ],
    )
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(RowError):
            parse_date("yesterday")

    def test_parse_amount(self):
        assert parse_amount("5.50") == 5.5

    @pytest.mark.parametrize("value", ["-5", "0", "abc", "nan", "inf"])
    def test_parse_amount_rejects(self, value):
        with pytest.raises(RowError):
            parse_amount(value)


class TestRowToTransaction:
    NOW = datetime(2024, 2, 1)

    def _row(self, headers, values, id_supplier):
        return row_to_transaction(headers, values, now=self.NOW, id_supplier=id_supplier)

    def test_defaults(self, id_supplier):
        txn = self._row(
            ["date", "merchant", "amount", "currency"],
            ["2024-01-15", "Starbucks", "5.50", "usd"],
            id_supplier,
        )
        assert txn.id == "trx_1"
        assert txn.amount == 5.50
        assert txn.currency == "USD"
        assert txn.category == "Uncategorized"
        assert txn.card_id == "card_imported"
        assert txn.is_reimbursable is False
        assert txn.notes is None
        assert txn.created_at == txn.updated_at == self.NOW

    def test_optional_columns(self, id_supplier):
        txn = self._row(
            ["notes", "reimbursable", "cardid", "category", "currency", "amount", "merchant", "date"],
            ["client lunch", "TRUE", "card_7", "Meals", "EUR", "42", "Bistro", "2024-01-20"],
            id_supplier,
        )
        assert txn.notes == "client lunch"
        assert txn.is_reimbursable is True
        assert txn.card_id == "card_7"
        assert txn.category == "Meals"

    @pytest.mark.parametrize("flag", ["yes", "1", "t", ""])
    def test_reimbursable_only_for_true(self, id_supplier, flag):
        txn = self._row(
            ["date", "merchant", "amount", "currency", "reimbursable"],
            ["2024-01-15", "Starbucks", "5", "USD", flag],
            id_supplier,
        )
        assert txn.is_reimbursable is False

    def test_missing_required_column(self, id_supplier):
        with pytest.raises(RowError, match="currency"):
            self._row(["date", "merchant", "amount"], ["2024-01-15", "Starbucks", "5"], id_supplier)

    def test_short_row_counts_as_missing(self, id_supplier):
        with pytest.raises(RowError, match="amount, currency"):
            self._row(
                ["date", "merchant", "amount", "currency"], ["2024-01-15", "Starbucks"], id_supplier
            )

    def test_model_invariants_reject_row(self, id_supplier):
        with pytest.raises(RowError, match="currency"):
            self._row(
                ["date", "merchant", "amount", "currency"],
                ["2024-01-15", "Starbucks", "5", "DOLLARS"],
                id_supplier,
            )


class TestImportText:
    def test_single_row(self, pipeline):
        outcome = pipeline.import_text(f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n")

        assert isinstance(outcome, ImportSuccess)
        assert outcome.imported_count == 1
        assert outcome.skipped_count == 0
        [txn] = pipeline.ledger.all()
        assert txn.amount == 5.50
        assert txn.currency == "USD"
        assert txn.category == "Uncategorized"

    def test_bad_row_is_skipped(self, pipeline):
        outcome = pipeline.import_text(
            f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n2024-01-16,Refund,-5,USD\n"
        )

        assert outcome.status == "success"
        assert outcome.imported_count == 1
        assert outcome.skipped_count == 1
        assert outcome.errors[0].startswith("Row 3:")
        assert len(pipeline.ledger) == 1

    def test_header_only_is_an_error(self, pipeline):
        outcome = pipeline.import_text(f"{HEADER}\n\n")

        assert isinstance(outcome, ImportFailure)
        assert outcome.kind is ImportErrorKind.EMPTY_FILE

    def test_no_valid_rows(self, pipeline):
        outcome = pipeline.import_text(f"{HEADER}\nnot-a-date,X,1,USD\n2024-01-15,Y,zero,USD\n")

        assert outcome.status == "error"
        assert outcome.kind is ImportErrorKind.NO_VALID_ROWS
        assert outcome.skipped_count == 2
        assert "2 row(s) were invalid" in outcome.message
        assert len(pipeline.ledger) == 0

    def test_headers_are_case_insensitive_and_order_free(self, pipeline):
        outcome = pipeline.import_text(
            ' CURRENCY , amount,MERCHANT ,Date\nusd,"12.00","Acme, Inc.",2024-01-15\n'
        )
        assert outcome.imported_count == 1
        assert pipeline.ledger.all()[0].merchant == "Acme, Inc."

    def test_rows_keep_file_order(self, pipeline):
        pipeline.import_text(
            f"{HEADER}\n2024-01-15,First,1,USD\n2024-01-14,Second,2,USD\n2024-01-16,Third,3,USD\n"
        )
        assert [t.merchant for t in pipeline.ledger] == ["First", "Second", "Third"]

    def test_duplicates_kept_by_default(self, pipeline):
        row = "2024-01-15,Starbucks,5.50,USD"
        outcome = pipeline.import_text(f"{HEADER}\n{row}\n{row}\n")
        assert outcome.imported_count == 2

    def test_duplicates_skipped_when_enabled(self, id_supplier):
        pipeline = CSVImportPipeline(
            TransactionLedger(),
            id_supplier=id_supplier,
            settings=Settings(_env_file=None, import_skip_duplicates=True),
        )
        row = "2024-01-15,Starbucks,5.50,USD"
        outcome = pipeline.import_text(f"{HEADER}\n{row}\n{row}\n")

        assert outcome.imported_count == 1
        assert outcome.skipped_count == 1
        assert "duplicate" in outcome.errors[0]


class FailingFile:
    name = "broken.csv"

    async def read_text(self) -> str:
        raise ImportFileError("disk on fire")


class TestRunImport:
    @pytest.mark.asyncio
    async def test_success_cycle(self, pipeline):
        assert pipeline.state is ImportState.IDLE
        outcome = await pipeline.run_import(
            InMemoryFile("jan.csv", f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n")
        )

        assert outcome.status == "success"
        assert pipeline.state is ImportState.SUCCESS
        assert pipeline.last_outcome == outcome

        pipeline.reset()
        assert pipeline.state is ImportState.IDLE

    @pytest.mark.asyncio
    async def test_wrong_extension_never_loads(self, pipeline):
        outcome = await pipeline.run_import(InMemoryFile("jan.xlsx", "whatever"))

        assert outcome.kind is ImportErrorKind.INVALID_FILE_TYPE
        assert pipeline.state is ImportState.ERROR
        assert len(pipeline.ledger) == 0

    @pytest.mark.asyncio
    async def test_extension_check_ignores_case(self, pipeline):
        outcome = await pipeline.run_import(
            InMemoryFile("JAN.CSV", f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n")
        )
        assert outcome.status == "success"

    @pytest.mark.asyncio
    async def test_read_failure_is_distinct(self, pipeline):
        outcome = await pipeline.run_import(FailingFile())

        assert outcome.kind is ImportErrorKind.READ_FAILED
        assert pipeline.state is ImportState.ERROR

    @pytest.mark.asyncio
    async def test_busy_while_loading(self, pipeline):
        pipeline.state = ImportState.LOADING
        outcome = await pipeline.run_import(InMemoryFile("jan.csv", ""))

        assert outcome.kind is ImportErrorKind.BUSY
        assert pipeline.state is ImportState.LOADING

    @pytest.mark.asyncio
    async def test_new_run_after_error(self, pipeline):
        await pipeline.run_import(InMemoryFile("jan.txt", ""))
        outcome = await pipeline.run_import(
            InMemoryFile("jan.csv", f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n")
        )
        assert outcome.status == "success"

    @pytest.mark.asyncio
    async def test_local_file(self, pipeline, write_csv):
        path = write_csv(f"{HEADER}\n2024-01-15,Starbucks,5.50,USD\n")
        outcome = await pipeline.run_import(LocalFile(path))
        assert outcome.imported_count == 1

    @pytest.mark.asyncio
    async def test_missing_local_file(self, pipeline, tmp_path):
        outcome = await pipeline.run_import(LocalFile(tmp_path / "missing.csv"))
        assert outcome.kind is ImportErrorKind.READ_FAILED
