"""
CSV import pipeline.

Turns delimited text into transactions row by row. A bad row is counted and
skipped; it never aborts the batch.

The line parser is narrow: double quotes toggle a quoted
section and are dropped, commas split only outside quotes, and each field
is trimmed. Escaped quotes ("") and newlines inside quoted fields are not
supported.
"""

import asyncio
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from spendsight_mcp.config import Settings, get_settings
from spendsight_mcp.core.exceptions import ImportFileError
from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.models.imports import (
    ImportErrorKind,
    ImportFailure,
    ImportOutcome,
    ImportState,
    ImportSuccess,
)
from spendsight_mcp.models.transaction import Transaction, to_naive_local
from spendsight_mcp.utils.ids import IdSupplier, new_id
from spendsight_mcp.utils.validators import is_duplicate_transaction

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "merchant", "amount", "currency")
DEFAULT_CATEGORY = "Uncategorized"

# Tried in order after ISO 8601
_DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d")


class RowError(ValueError):
    """A single CSV row could not be turned into a transaction."""
    pass


class FileSource(Protocol):
    """Something selected for import: a name and its full text."""

    name: str

    async def read_text(self) -> str:
        ...


class LocalFile:
    """A file on disk, read as UTF-8 off the event loop."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.name = self.path.name

    async def read_text(self) -> str:
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ImportFileError(f"Could not read {self.path}: {e}") from e


class InMemoryFile:
    """Upload content that is already in memory."""

    def __init__(self, name: str, content: str):
        self.name = name
        self._content = content

    async def read_text(self) -> str:
        return self._content


def parse_csv_line(line: str) -> List[str]:
    """
    Split one line into trimmed fields.

    Args:
        line: A single line without its newline

    Returns:
        List of field values
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> List[List[str]]:
    """Parse text into rows, skipping blank lines entirely."""
    return [parse_csv_line(line) for line in text.splitlines() if line.strip()]


def parse_date(value: str) -> datetime:
    """
    Parse an import date.

    Accepts ISO 8601 dates and datetimes, plus MM/DD/YYYY, DD.MM.YYYY and
    YYYY/MM/DD. Aware datetimes are converted to naive local time.

    Raises:
        RowError: If the value is not a date
    """
    value = value.strip()
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        raise RowError(f"Invalid date: {value!r}")

    return to_naive_local(parsed)


def parse_amount(value: str) -> float:
    """
    Parse a positive, finite amount.

    Raises:
        RowError: If the value is not a number greater than 0
    """
    try:
        amount = float(value)
    except ValueError:
        raise RowError(f"Invalid amount: {value!r}")
    if not math.isfinite(amount) or amount <= 0:
        raise RowError(f"Amount must be greater than 0: {value!r}")
    return amount


def row_to_transaction(
    headers: List[str],
    values: List[str],
    *,
    now: datetime,
    id_supplier: IdSupplier = new_id,
    default_card_id: str = "card_imported",
) -> Transaction:
    """
    Map one data row onto a transaction using the header names.

    Raises:
        RowError: If a required column is missing or a value is invalid
    """
    record: Dict[str, str] = {
        header: values[idx] if idx < len(values) else ""
        for idx, header in enumerate(headers)
    }

    missing = [col for col in REQUIRED_COLUMNS if not record.get(col)]
    if missing:
        raise RowError(f"Missing required field(s): {', '.join(missing)}")

    try:
        return Transaction(
            id=id_supplier("trx"),
            date=parse_date(record["date"]),
            amount=parse_amount(record["amount"]),
            currency=record["currency"].upper(),
            merchant=record["merchant"],
            category=record.get("category") or DEFAULT_CATEGORY,
            card_id=record.get("cardid") or default_card_id,
            is_reimbursable=record.get("reimbursable", "").lower() == "true",
            notes=record.get("notes") or None,
            created_at=now,
            updated_at=now,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise RowError(problems) from e


class CSVImportPipeline:
    """
    Imports CSV files into a ledger.

    States move IDLE -> LOADING -> SUCCESS | ERROR. A new run may start from
    any state except LOADING.
    """

    def __init__(
        self,
        ledger: TransactionLedger,
        *,
        id_supplier: IdSupplier = new_id,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            ledger: Ledger that receives imported transactions
            id_supplier: Callable producing prefixed unique ids
            settings: Import settings (default: global settings)
        """
        self.ledger = ledger
        self._new_id = id_supplier
        self.settings = settings or get_settings()
        self.state = ImportState.IDLE
        self.last_outcome: Optional[ImportOutcome] = None

    def reset(self) -> None:
        """Return to IDLE once a result has been shown."""
        if self.state is not ImportState.LOADING:
            self.state = ImportState.IDLE

    async def run_import(self, source: FileSource) -> ImportOutcome:
        """
        Read a selected file and import it.

        Args:
            source: File name and content provider

        Returns:
            ImportSuccess or ImportFailure; never raises for bad input
        """
        if self.state is ImportState.LOADING:
            return ImportFailure(
                kind=ImportErrorKind.BUSY,
                message="An import is already in progress",
            )

        self.state = ImportState.IDLE
        extension = self.settings.import_extension.lower()
        if not source.name.lower().endswith(extension):
            return self._finish(
                ImportFailure(
                    kind=ImportErrorKind.INVALID_FILE_TYPE,
                    message=f"Please select a {extension} file",
                )
            )

        self.state = ImportState.LOADING
        logger.info("Importing %s", source.name)
        try:
            text = await source.read_text()
        except ImportFileError as e:
            logger.warning("Failed to read %s: %s", source.name, e)
            return self._finish(
                ImportFailure(
                    kind=ImportErrorKind.READ_FAILED,
                    message=f"Failed to read file: {e}",
                )
            )
        except Exception:
            self.state = ImportState.ERROR
            raise

        return self._finish(self.import_text(text))

    def import_text(self, text: str) -> ImportOutcome:
        """
        Parse CSV text and commit the valid rows.

        Returns:
            ImportSuccess with imported/skipped counts when at least one row
            is valid, otherwise ImportFailure
        """
        rows = parse_csv(text)
        if len(rows) < 2:
            return ImportFailure(
                kind=ImportErrorKind.EMPTY_FILE,
                message="CSV file must contain a header row and at least one data row",
            )

        headers = [h.strip().lower() for h in rows[0]]
        now = datetime.now()
        accepted: List[Transaction] = []
        errors: List[str] = []

        # Data rows are numbered from 2 (the header is row 1)
        for row_number, values in enumerate(rows[1:], start=2):
            try:
                txn = row_to_transaction(
                    headers,
                    values,
                    now=now,
                    id_supplier=self._new_id,
                    default_card_id=self.settings.import_default_card_id,
                )
                if self.settings.import_skip_duplicates and self._is_duplicate(txn, accepted):
                    raise RowError("Looks like a duplicate of an existing transaction")
            except RowError as e:
                logger.debug("Skipping row %d: %s", row_number, e)
                errors.append(f"Row {row_number}: {e}")
                continue
            accepted.append(txn)

        if not accepted:
            return ImportFailure(
                kind=ImportErrorKind.NO_VALID_ROWS,
                message=f"No valid transactions found. {len(errors)} row(s) were invalid.",
                skipped_count=len(errors),
                errors=errors,
            )

        self.ledger.import_batch(accepted)
        return ImportSuccess(
            imported_count=len(accepted),
            skipped_count=len(errors),
            errors=errors,
        )

    def _is_duplicate(self, txn: Transaction, batch: List[Transaction]) -> bool:
        threshold = self.settings.duplicate_threshold_seconds
        return is_duplicate_transaction(
            self.ledger, txn, threshold
        ) or is_duplicate_transaction(batch, txn, threshold)

    def _finish(self, outcome: ImportOutcome) -> ImportOutcome:
        self.state = (
            ImportState.SUCCESS
            if isinstance(outcome, ImportSuccess)
            else ImportState.ERROR
        )
        self.last_outcome = outcome
        if isinstance(outcome, ImportSuccess):
            logger.info(
                "Import finished: %d imported, %d skipped",
                outcome.imported_count,
                outcome.skipped_count,
            )
        else:
            logger.info("Import failed (%s): %s", outcome.kind.value, outcome.message)
        return outcome
