"""
Outcome models for CSV imports.
"""

from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field


class ImportState(str, Enum):
    """Lifecycle of a single import run."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ImportErrorKind(str, Enum):
    """Why an import produced no transactions."""

    INVALID_FILE_TYPE = "invalid_file_type"
    READ_FAILED = "read_failed"
    EMPTY_FILE = "empty_file"
    NO_VALID_ROWS = "no_valid_rows"
    BUSY = "busy"


class ImportFailure(BaseModel):
    """Nothing was imported."""

    status: Literal["error"] = "error"
    kind: ImportErrorKind
    message: str
    skipped_count: int = 0
    errors: List[str] = Field(default_factory=list)


class ImportSuccess(BaseModel):
    """At least one row was committed to the ledger."""

    status: Literal["success"] = "success"
    imported_count: int
    skipped_count: int = 0
    # Per-row rejection reasons, e.g. "Row 3: Invalid amount"
    errors: List[str] = Field(default_factory=list)


ImportOutcome = Annotated[Union[ImportSuccess, ImportFailure], Field(discriminator="status")]
