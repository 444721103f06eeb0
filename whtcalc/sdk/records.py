"""
Reading and writing income record files.

This module turns lines of text into IncomeRecords and back. CLI commands
should be thin wrappers that call these functions.

Input format
------------

    Income_Code,Description,Date,Income_Amount,WHT_Amount,Checksum
    IN001,Freelance Work,25/07/2025,10000.00,1000.00,30

The header is optional. Only the first non-empty line is checked, and it is
treated as a header if it mentions income_code, description or checksum
(case-insensitive). The checksum column is optional on input.

Partial success:
    A bad line never aborts an import. Each failing line is reported as a
    ParseError carrying its line number and text, and the remaining lines are
    still read. Callers decide what to do with the errors.

Output formats
--------------

    csv   header + full() lines (checksum column = calculated checksum)
    pipe  code|description|date|income|wht, no header, no checksum
    txt   fixed-width report for reading, not for re-import
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Literal, Sequence

from .record import IncomeRecord, ParseError, ValidationError, split_csv_line

# Configure logging based on LOG_LEVEL environment variable
_log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, _log_level, logging.INFO),
    format="%(asctime)s.%(msecs)03d %(levelname)s: %(message)s",
    datefmt="%H:%M:%S"
)
logger = logging.getLogger(__name__)

CSV_HEADER = "Income_Code,Description,Date,Income_Amount,WHT_Amount,Checksum"
HEADER_TOKENS = ("income_code", "description", "checksum")

ExportFormat = Literal["csv", "pipe", "txt"]
SortKey = Literal["code", "date", "income"]

__all__ = [
    "CSV_HEADER",
    "ImportResult",
    "is_header_line",
    "split_csv_line",
    "import_lines",
    "load_records",
    "save_records",
    "export_records",
    "sort_records",
]


@dataclass
class ImportResult:
    """Records parsed from a batch of lines plus the lines that failed."""

    records: List[IncomeRecord] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


def is_header_line(line: str) -> bool:
    """True if `line` looks like the column header row."""
    if line is None:
        return False
    lowered = line.lower()
    return any(token in lowered for token in HEADER_TOKENS)


def import_lines(lines: Iterable[str]) -> ImportResult:
    """Parse record lines, skipping blanks and an optional header.

    Args:
        lines: Raw lines (with or without trailing newlines). Line numbers in
            errors are 1-based positions in this sequence.

    Returns:
        ImportResult with the parsed records in input order and one
        ParseError per rejected line.
    """
    result = ImportResult()
    header_checked = False

    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue

        if not header_checked:
            header_checked = True
            if is_header_line(line):
                logger.debug(f"line {line_number}: header skipped")
                continue

        try:
            record = IncomeRecord.from_line(line)
        except ParseError as e:
            result.errors.append(e.at_line(line_number))
            logger.warning(f"Error parsing line {line_number}: {e.reason}")
            continue
        except ValidationError as e:
            result.errors.append(ParseError(
                f"Validation error: {e}", line, line_number, kind="validation", field=e.field
            ))
            logger.warning(f"Error parsing line {line_number}: {e}")
            continue

        result.records.append(record)

    logger.info(f"Parsed {len(result.records)} records, {len(result.errors)} errors")
    return result


def load_records(path: Path) -> ImportResult:
    """Read a CSV income file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file isn't a .csv file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.suffix.lower() != ".csv":
        raise ValueError(f"File must be a CSV file: {path}")

    with open(path, "r", encoding="utf-8") as f:
        result = import_lines(f)

    logger.debug(f"loaded {path.name}: {len(result.records)} records")
    return result


def save_records(path: Path, records: Sequence[IncomeRecord], keep_original: bool = False) -> Path:
    """Write records as CSV with a header row.

    The checksum column holds each record's calculated checksum, so verify
    (or recalculate) before saving. With keep_original=True the stored
    original checksums are written instead, leaving mismatches detectable.

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write(CSV_HEADER + "\n")
        for record in records:
            if keep_original:
                f.write(f"{record.without_checksum()},{record.original_checksum}\n")
            else:
                f.write(record.full() + "\n")

    logger.info(f"Wrote {len(records)} records to {path}")
    return path


def _write_pipe(path: Path, records: Sequence[IncomeRecord]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        for record in records:
            f.write(record.to_pipe_line() + "\n")


def _write_text_report(path: Path, records: Sequence[IncomeRecord]) -> None:
    columns = (
        f"{'Code':<8} {'Description':<20} {'Date':<12} {'Income':>12} {'WHT':>12} "
        f"{'Net':>12} {'Orig.CS':>8} {'Calc.CS':>8} {'Valid':>5}"
    )
    with open(path, "w", encoding="utf-8") as f:
        f.write("Income Records Report\n")
        f.write(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("=" * len(columns) + "\n\n")
        f.write(columns + "\n")
        f.write("-" * len(columns) + "\n")
        for record in records:
            f.write(record.to_formatted_row() + "\n")
        f.write(f"\nTotal Records: {len(records)}\n")


def export_records(records: Sequence[IncomeRecord], path: Path, fmt: ExportFormat = "csv") -> Path:
    """Export records in one of the supported formats.

    Raises:
        ValueError: Unknown format
    """
    path = Path(path)
    if fmt == "csv":
        return save_records(path, records)

    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "pipe":
        _write_pipe(path, records)
    elif fmt == "txt":
        _write_text_report(path, records)
    else:
        raise ValueError(f"Unsupported export format: {fmt}")

    logger.info(f"Exported {len(records)} records to {path} ({fmt})")
    return path


def sort_records(records: Iterable[IncomeRecord], by: SortKey = "code") -> List[IncomeRecord]:
    """Return records sorted by code, calendar date or income amount."""
    if by == "code":
        return sorted(records, key=lambda r: r.code)
    if by == "date":
        return sorted(records, key=lambda r: r.parsed_date)
    if by == "income":
        return sorted(records, key=lambda r: r.income_amount)
    raise ValueError(f"Unknown sort key: {by}")
