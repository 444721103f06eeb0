"""
Checksum calculation and verification for income records.

Algorithm
---------

The checksum is computed over a record's canonical text without the
checksum field (IncomeRecord.without_checksum()):

    1. Count uppercase letters A-Z.
    2. Count digits 0-9 and '.' characters.
    3. Checksum = letters + numeric.

Everything else (lowercase letters, spaces, commas, slashes, quotes) is
ignored. Example:

    IN001,Freelance Work,25/07/2025,10000.00,1000.00
    letters: I N F W                        = 4
    numeric: 001 25072025 10000.00 1000.00  = 26
    checksum                                = 30

This is a content fingerprint, not a cryptographic digest. Anyone who can
edit the file can also recompute it.

Repair
------

repair() overwrites original_checksum with the recomputed value for every
mismatched record. After that the mismatch can no longer be detected, so
repair() is never called by verify() or batch_verify(); callers must invoke
it explicitly. Every overwrite is logged at WARNING level and returned to
the caller as a RepairEntry.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .record import IncomeRecord

logger = logging.getLogger(__name__)


class CharacterCounts(NamedTuple):
    """Character-class counts for one line of text."""

    letters: int
    numeric: int

    @property
    def total(self) -> int:
        return self.letters + self.numeric


def count_characters(text: str) -> CharacterCounts:
    """Count uppercase A-Z letters and digit/period characters in `text`."""
    if text is None:
        raise ValueError("Line cannot be None")

    letters = 0
    numeric = 0
    for ch in text:
        if "A" <= ch <= "Z":
            letters += 1
        elif "0" <= ch <= "9" or ch == ".":
            numeric += 1
    return CharacterCounts(letters, numeric)


def checksum_from_line(text: str) -> int:
    """Checksum of an arbitrary line of text."""
    return count_characters(text).total


def compute_checksum(record: IncomeRecord) -> int:
    """Checksum of a record's current canonical text."""
    if record is None:
        raise ValueError("Record cannot be None")
    return checksum_from_line(record.without_checksum())


def is_valid(record: IncomeRecord) -> bool:
    """Whether the record's current content matches its original checksum.

    Pure query: unlike verify(), nothing is written to the record.
    """
    return compute_checksum(record) == record.original_checksum


# =============================================================================
# VERIFICATION
# =============================================================================

def verify(record: Optional[IncomeRecord]) -> bool:
    """Verify one record and store the outcome on it.

    Writes calculated_checksum and sets validity to VALID or INVALID.

    Returns:
        True if the computed checksum equals original_checksum. False for a
        mismatch and for a None record (logged, not raised).
    """
    if record is None:
        logger.error("Cannot validate a None record")
        return False

    calculated = compute_checksum(record)
    valid = calculated == record.original_checksum
    record.mark_verified(calculated, valid)

    if not valid:
        logger.debug(
            f"{record.code}: checksum mismatch (original {record.original_checksum}, "
            f"calculated {calculated})"
        )
    return valid


@dataclass(frozen=True)
class ValidationSummary:
    """Result of one batch verification pass. Lists keep input order."""

    total: int = 0
    valid: Tuple[IncomeRecord, ...] = ()
    invalid: Tuple[Optional[IncomeRecord], ...] = ()

    @property
    def valid_count(self) -> int:
        return len(self.valid)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid)

    @property
    def validity_percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.valid_count / self.total * 100.0

    @property
    def has_invalid_records(self) -> bool:
        return len(self.invalid) > 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "valid": self.valid_count,
            "invalid": self.invalid_count,
            "validity_percentage": round(self.validity_percentage, 1),
            "invalid_codes": [r.code for r in self.invalid if r is not None],
        }

    def __str__(self) -> str:
        return (
            f"ValidationSummary(total={self.total}, valid={self.valid_count}, "
            f"invalid={self.invalid_count}, validity={self.validity_percentage:.1f}%)"
        )


def _safe_verify(record: Optional[IncomeRecord]) -> bool:
    try:
        return verify(record)
    except Exception as e:
        # Anything unexpected counts as a failed verification for this record
        code = getattr(record, "code", "?")
        logger.warning(f"Error validating record {code}: {e}")
        if record is not None:
            record.mark_verified(record.calculated_checksum, False)
        return False


def batch_verify(
    records: Optional[Sequence[Optional[IncomeRecord]]],
    max_workers: Optional[int] = None,
) -> ValidationSummary:
    """Verify every record and partition them into valid and invalid.

    A record whose verification fails with an error is counted as invalid;
    the rest of the batch is still processed. None entries are counted as
    invalid.

    Args:
        records: Records to verify, in the order they should be reported.
        max_workers: If greater than 1, verify distinct records on a thread
            pool. Results are still collected here, in input order.

    Returns:
        A fresh ValidationSummary.
    """
    if not records:
        logger.info("No records to validate")
        return ValidationSummary()

    records = list(records)
    logger.info(f"Validating {len(records)} records...")

    if max_workers and max_workers > 1:
        verdicts = _verify_parallel(records, max_workers)
    else:
        verdicts = [_safe_verify(r) for r in records]

    valid: List[IncomeRecord] = []
    invalid: List[Optional[IncomeRecord]] = []
    for record, ok in zip(records, verdicts):
        if ok:
            valid.append(record)
        else:
            invalid.append(record)

    summary = ValidationSummary(total=len(records), valid=tuple(valid), invalid=tuple(invalid))
    logger.info(
        f"Validation completed: {summary.total} total, "
        f"{summary.valid_count} valid, {summary.invalid_count} invalid"
    )
    return summary


def _verify_parallel(records: List[Optional[IncomeRecord]], max_workers: int) -> List[bool]:
    # A record listed twice must not be verified by two threads at once, so
    # only first occurrences go to the pool; repeats are verified afterwards.
    seen = set()
    pooled = []
    for index, record in enumerate(records):
        if id(record) not in seen:
            seen.add(id(record))
            pooled.append(index)

    verdicts: List[bool] = [False] * len(records)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        results = executor.map(_safe_verify, [records[i] for i in pooled])
        for index, ok in zip(pooled, results):
            verdicts[index] = ok

    pooled_set = set(pooled)
    for index, record in enumerate(records):
        if index not in pooled_set:
            verdicts[index] = _safe_verify(record)
    return verdicts


# =============================================================================
# MAINTENANCE
# =============================================================================

def recalculate_checksums(records: Optional[Iterable[IncomeRecord]]) -> int:
    """Refresh calculated_checksum on every record without judging validity.

    Returns:
        Number of records updated.
    """
    if not records:
        return 0

    updated = 0
    for record in records:
        if record is None:
            continue
        record.set_calculated_checksum(compute_checksum(record))
        updated += 1

    logger.info(f"Recalculated checksums for {updated} records")
    return updated


@dataclass(frozen=True)
class RepairEntry:
    """Audit line for one overwritten checksum."""

    code: str
    previous_checksum: int
    new_checksum: int


@dataclass(frozen=True)
class RepairResult:
    """Outcome of a repair pass."""

    examined: int = 0
    repaired: Tuple[RepairEntry, ...] = ()

    @property
    def repaired_count(self) -> int:
        return len(self.repaired)


def repair(records: Optional[Iterable[IncomeRecord]]) -> RepairResult:
    """Overwrite original_checksum on every mismatched record.

    This erases the evidence that a record's content no longer matches the
    checksum it was delivered with. Only call it after a person has reviewed
    the mismatches.

    Every record ends up VALID. Records that already matched are verified but
    not changed.

    Returns:
        RepairResult listing each overwritten checksum.
    """
    if not records:
        return RepairResult()

    examined = 0
    entries: List[RepairEntry] = []
    for record in records:
        if record is None:
            continue
        examined += 1
        calculated = compute_checksum(record)
        previous = record.original_checksum
        if calculated != previous:
            record.original_checksum = calculated
            entries.append(RepairEntry(record.code, previous, calculated))
            logger.warning(
                f"REPAIR {record.code}: original checksum {previous} overwritten with {calculated}"
            )
        record.mark_verified(calculated, True)

    logger.info(f"Repaired {len(entries)} of {examined} records")
    return RepairResult(examined=examined, repaired=tuple(entries))


# =============================================================================
# DIAGNOSTICS
# =============================================================================

@dataclass(frozen=True)
class ValidationReport:
    """Detailed checksum diagnostics for one record."""

    valid: bool = False
    transaction_line: str = ""
    original_checksum: int = 0
    calculated_checksum: int = 0
    letter_count: int = 0
    numeric_count: int = 0
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "transaction_line": self.transaction_line,
            "original_checksum": self.original_checksum,
            "calculated_checksum": self.calculated_checksum,
            "letter_count": self.letter_count,
            "numeric_count": self.numeric_count,
            "errors": list(self.errors),
        }

    def __str__(self) -> str:
        lines = [
            "Validation report",
            f"  Transaction line:    {self.transaction_line}",
            f"  Original checksum:   {self.original_checksum}",
            f"  Calculated checksum: {self.calculated_checksum}",
            f"  Uppercase letters:   {self.letter_count}",
            f"  Digits/periods:      {self.numeric_count}",
            f"  Valid:               {'yes' if self.valid else 'no'}",
        ]
        if self.errors:
            lines.append("  Errors:")
            lines.extend(f"    - {e}" for e in self.errors)
        return "\n".join(lines)


def validation_report(record: Optional[IncomeRecord]) -> ValidationReport:
    """Explain the checksum outcome for a record without modifying it."""
    if record is None:
        return ValidationReport(errors=("Record is null",))

    line = record.without_checksum()
    counts = count_characters(line)
    valid = counts.total == record.original_checksum

    errors = ()
    if not valid:
        errors = (
            f"Checksum mismatch: expected {record.original_checksum}, calculated {counts.total}",
        )

    return ValidationReport(
        valid=valid,
        transaction_line=line,
        original_checksum=record.original_checksum,
        calculated_checksum=counts.total,
        letter_count=counts.letters,
        numeric_count=counts.numeric,
        errors=errors,
    )
