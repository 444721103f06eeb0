"""
Income record data model.

An IncomeRecord is one declared income payment: an income code, a short
description, the payment date, the gross income amount and the withholding
tax (WHT) deducted at source. Every record also carries two checksums:

    original_checksum   - supplied by the source line (0 if absent)
    calculated_checksum - written by the checksum module after verification

Field rules
-----------

    code                2 uppercase letters + 3 digits (IN001). Input is
                        trimmed and uppercased before the check.
    description         1-20 characters after trimming.
    date                DD/MM/YYYY and a real calendar date.
    income_amount       > 0, stored rounded to 2 decimals.
    withholding_amount  >= 0, stored rounded to 2 decimals.

A record can never be observed breaking one of these rules: the constructor
and every setter either store a valid value or raise ValidationError and
leave the record as it was.

Validity lifecycle
------------------

`validity` caches the result of the last checksum comparison. It starts out
UNVALIDATED, is set by checksum.verify(), and is reset to UNVALIDATED by
every field setter. After editing a record, verify it again.

Canonical text
--------------

The checksum is computed over without_checksum(), so its exact field order
and formatting are part of the integrity contract:

    IN001,Freelance Work,25/07/2025,10000.00,1000.00
"""

import logging
import re
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, List, Literal, Optional, Union

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Z]{2}\d{3}$", re.ASCII)
DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$", re.ASCII)
# Plain ASCII decimal numbers: no digit separators, no NaN or Infinity
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$", re.ASCII)
DATE_FORMAT = "%d/%m/%Y"
MAX_DESCRIPTION_LENGTH = 20

CENT = Decimal("0.01")

SerializationFormat = Literal["csv", "csv_without_checksum", "pipe"]
Amount = Union[Decimal, int, float, str]

# Field names accepted by apply_edit(), in construction order
EDITABLE_FIELDS = (
    "code",
    "description",
    "date",
    "income_amount",
    "withholding_amount",
    "original_checksum",
)


class Validity(str, Enum):
    """Outcome of the last checksum comparison for a record."""

    UNVALIDATED = "unvalidated"
    VALID = "valid"
    INVALID = "invalid"


# =============================================================================
# ERRORS
# =============================================================================

class ValidationError(ValueError):
    """Raised when a single field violates its format or range rule."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        self.errors = [f"{field}: {message}"]
        super().__init__(f"{field}: {message}")


class ParseError(ValueError):
    """Raised when a raw line can't be turned into a record.

    kind is "format" for structural problems (too few fields, malformed
    numbers) and "validation" when the line parsed but a field broke its
    rule. The batch reader fills in line_number.
    """

    def __init__(
        self,
        reason: str,
        text: str = "",
        line_number: Optional[int] = None,
        kind: Literal["format", "validation"] = "format",
        field: Optional[str] = None,
    ):
        self.reason = reason
        self.text = text
        self.line_number = line_number
        self.kind = kind
        self.field = field
        super().__init__(self._describe())

    def _describe(self) -> str:
        prefix = f"Line {self.line_number}: " if self.line_number is not None else ""
        suffix = f" - {self.text}" if self.text else ""
        return f"{prefix}{self.reason}{suffix}"

    def at_line(self, line_number: int) -> "ParseError":
        """Return a copy of this error tagged with a line number."""
        return ParseError(self.reason, self.text, line_number, self.kind, self.field)


# =============================================================================
# FIELD VALIDATORS
# =============================================================================

def round_currency(value: Decimal) -> Decimal:
    """Round a monetary amount to 2 decimals, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(field, f"must be a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        # floats go through str() so 0.1 stays 0.1
        text = str(value).strip()
        if not NUMBER_PATTERN.match(text):
            raise ValidationError(field, f"must be a number, got {value!r}")
        result = Decimal(text)
    else:
        raise ValidationError(field, f"must be a number, got {type(value).__name__}")
    if not result.is_finite():
        raise ValidationError(field, f"must be a finite number, got {value!r}")
    return result


def validate_code(code: Any) -> str:
    if code is None or not str(code).strip():
        raise ValidationError("code", "Income code cannot be empty")
    normalized = str(code).strip().upper()
    if not CODE_PATTERN.match(normalized):
        raise ValidationError("code", "Income code must be 2 letters followed by 3 digits (e.g., IN001)")
    return normalized


def validate_description(description: Any) -> str:
    if description is None or not str(description).strip():
        raise ValidationError("description", "Description cannot be empty")
    trimmed = str(description).strip()
    if len(trimmed) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "description", f"Description cannot exceed {MAX_DESCRIPTION_LENGTH} characters"
        )
    return trimmed


def validate_date(date: Any) -> str:
    if date is None or not str(date).strip():
        raise ValidationError("date", "Date cannot be empty")
    trimmed = str(date).strip()
    if not DATE_PATTERN.match(trimmed):
        raise ValidationError("date", "Date must be in DD/MM/YYYY format")
    try:
        datetime.strptime(trimmed, DATE_FORMAT)
    except ValueError:
        raise ValidationError("date", f"Invalid date values: {trimmed}")
    return trimmed


def validate_income_amount(amount: Any) -> Decimal:
    value = _to_decimal(amount, "income_amount")
    if value <= 0:
        raise ValidationError("income_amount", "Income amount must be positive")
    rounded = round_currency(value)
    if rounded <= 0:
        raise ValidationError("income_amount", "Income amount must be at least 0.01")
    return rounded


def validate_withholding_amount(amount: Any) -> Decimal:
    value = _to_decimal(amount, "withholding_amount")
    if value < 0:
        raise ValidationError("withholding_amount", "WHT amount cannot be negative")
    return round_currency(value)


def validate_checksum_value(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("original_checksum", f"Checksum must be an integer, got {value!r}")
    return value


_VALIDATORS = {
    "code": validate_code,
    "description": validate_description,
    "date": validate_date,
    "income_amount": validate_income_amount,
    "withholding_amount": validate_withholding_amount,
    "original_checksum": validate_checksum_value,
}


# =============================================================================
# RECORD
# =============================================================================

def _csv_field(value: str) -> str:
    """Quote a text field that contains the delimiter or a quote.

    Embedded quotes are doubled, so split_csv_line() reads the field back
    unchanged. Quotes are never counted by the checksum.
    """
    if "," in value or '"' in value:
        escaped = value.replace('"', '""')
        return f'"{escaped}"'
    return value


class IncomeRecord:
    """A single income declaration with field validation and checksum state."""

    def __init__(
        self,
        code: str,
        description: str,
        date: str,
        income_amount: Amount,
        withholding_amount: Amount,
        original_checksum: int = 0,
    ):
        # Validate in declaration order; the first failure wins
        self._code = validate_code(code)
        self._description = validate_description(description)
        self._date = validate_date(date)
        self._income_amount = validate_income_amount(income_amount)
        self._withholding_amount = validate_withholding_amount(withholding_amount)
        self._original_checksum = validate_checksum_value(original_checksum)
        self._calculated_checksum = 0
        self._validity = Validity.UNVALIDATED

    # --- validated fields ---------------------------------------------------

    @property
    def code(self) -> str:
        return self._code

    @code.setter
    def code(self, value: str) -> None:
        self._code = validate_code(value)
        self._invalidate()

    @property
    def description(self) -> str:
        return self._description

    @description.setter
    def description(self, value: str) -> None:
        self._description = validate_description(value)
        self._invalidate()

    @property
    def date(self) -> str:
        return self._date

    @date.setter
    def date(self, value: str) -> None:
        self._date = validate_date(value)
        self._invalidate()

    @property
    def income_amount(self) -> Decimal:
        return self._income_amount

    @income_amount.setter
    def income_amount(self, value: Amount) -> None:
        self._income_amount = validate_income_amount(value)
        self._invalidate()

    @property
    def withholding_amount(self) -> Decimal:
        return self._withholding_amount

    @withholding_amount.setter
    def withholding_amount(self, value: Amount) -> None:
        self._withholding_amount = validate_withholding_amount(value)
        self._invalidate()

    @property
    def original_checksum(self) -> int:
        return self._original_checksum

    @original_checksum.setter
    def original_checksum(self, value: int) -> None:
        self._original_checksum = validate_checksum_value(value)
        self._invalidate()

    # --- derived state ------------------------------------------------------

    @property
    def calculated_checksum(self) -> int:
        return self._calculated_checksum

    @property
    def validity(self) -> Validity:
        return self._validity

    @property
    def is_valid(self) -> bool:
        """True only if the last verification matched and nothing changed since."""
        return self._validity is Validity.VALID

    @property
    def net_amount(self) -> Decimal:
        return round_currency(self._income_amount - self._withholding_amount)

    @property
    def parsed_date(self) -> datetime:
        return datetime.strptime(self._date, DATE_FORMAT)

    def _invalidate(self) -> None:
        self._validity = Validity.UNVALIDATED

    def mark_verified(self, calculated_checksum: int, valid: bool) -> None:
        """Store the outcome of a checksum comparison.

        Called by the checksum module; not a field edit, so it does not
        reset validity.
        """
        self._calculated_checksum = calculated_checksum
        self._validity = Validity.VALID if valid else Validity.INVALID

    def set_calculated_checksum(self, calculated_checksum: int) -> None:
        """Store a recomputed checksum without touching validity."""
        self._calculated_checksum = calculated_checksum

    def update(
        self,
        description: str,
        date: str,
        income_amount: Amount,
        withholding_amount: Amount,
    ) -> None:
        """Replace the editable payload fields in one step.

        All four values are validated before any of them is stored, so a
        failure leaves the record unchanged.
        """
        new_description = validate_description(description)
        new_date = validate_date(date)
        new_income = validate_income_amount(income_amount)
        new_withholding = validate_withholding_amount(withholding_amount)

        self._description = new_description
        self._date = new_date
        self._income_amount = new_income
        self._withholding_amount = new_withholding
        self._invalidate()

    # --- serialization ------------------------------------------------------

    def without_checksum(self) -> str:
        """Canonical comma form without the checksum (the checksum input)."""
        return (
            f"{self._code},{_csv_field(self._description)},{self._date},"
            f"{self._income_amount:.2f},{self._withholding_amount:.2f}"
        )

    def full(self) -> str:
        """Canonical comma form followed by the calculated checksum."""
        return f"{self.without_checksum()},{self._calculated_checksum}"

    def to_pipe_line(self) -> str:
        return (
            f"{self._code}|{self._description}|{self._date}|"
            f"{self._income_amount:.2f}|{self._withholding_amount:.2f}"
        )

    def serialize(self, fmt: SerializationFormat = "csv") -> str:
        if fmt == "csv":
            return self.full()
        if fmt == "csv_without_checksum":
            return self.without_checksum()
        if fmt == "pipe":
            return self.to_pipe_line()
        raise ValueError(f"Unknown record format: {fmt}")

    @classmethod
    def from_line(cls, text: str, delimiter: str = ",") -> "IncomeRecord":
        """Parse one delimited line into a record.

        The comma form honours double-quoted fields and accepts an optional
        sixth checksum field. The pipe form must have exactly five fields.

        Raises:
            ParseError: blank line, wrong field count or malformed number
            ValidationError: a field breaks its rule
        """
        if text is None or not text.strip():
            raise ParseError("Line cannot be empty", text or "")

        line = text.strip()
        if delimiter == ",":
            parts = [_clean_value(p) for p in split_csv_line(line)]
            if len(parts) < 5:
                raise ParseError(f"Line must have at least 5 fields, got {len(parts)}", line)
        elif delimiter == "|":
            parts = [p.strip() for p in line.split("|")]
            if len(parts) != 5:
                raise ParseError(f"Line must have exactly 5 fields, got {len(parts)}", line)
        else:
            raise ValueError(f"Unsupported delimiter: {delimiter!r}")

        code, description, date = parts[0], parts[1], parts[2]
        income = _parse_decimal(parts[3], "income_amount", line)
        withholding = _parse_decimal(parts[4], "withholding_amount", line)

        original_checksum = 0
        if len(parts) >= 6 and parts[5]:
            if not INTEGER_PATTERN.match(parts[5]):
                raise ParseError(f"Invalid number format for checksum: {parts[5]!r}", line)
            original_checksum = int(parts[5])

        return cls(code, description, date, income, withholding, original_checksum)

    # --- copies and display -------------------------------------------------

    def copy(self) -> "IncomeRecord":
        """Return an independent copy, including checksum state."""
        clone = IncomeRecord(
            self._code,
            self._description,
            self._date,
            self._income_amount,
            self._withholding_amount,
            self._original_checksum,
        )
        clone._calculated_checksum = self._calculated_checksum
        clone._validity = self._validity
        return clone

    def to_dict(self) -> dict:
        return {
            "code": self._code,
            "description": self._description,
            "date": self._date,
            "income_amount": f"{self._income_amount:.2f}",
            "withholding_amount": f"{self._withholding_amount:.2f}",
            "net_amount": f"{self.net_amount:.2f}",
            "original_checksum": self._original_checksum,
            "calculated_checksum": self._calculated_checksum,
            "validity": self._validity.value,
        }

    def to_display_string(self, currency: str = "Rs") -> str:
        return (
            f"{self._code} - {self._description} ({self._date}) - "
            f"Income: {currency} {self._income_amount:.2f}, "
            f"WHT: {currency} {self._withholding_amount:.2f}, "
            f"Net: {currency} {self.net_amount:.2f}"
        )

    def to_formatted_row(self) -> str:
        """Fixed-width row used by the text export."""
        marker = {"valid": "OK", "invalid": "BAD"}.get(self._validity.value, "-")
        return (
            f"{self._code:<8} {self._description:<20} {self._date:<12} "
            f"{self._income_amount:>12.2f} {self._withholding_amount:>12.2f} "
            f"{self.net_amount:>12.2f} {self._original_checksum:>8d} "
            f"{self._calculated_checksum:>8d} {marker:>5}"
        )

    def __repr__(self) -> str:
        return (
            f"IncomeRecord(code={self._code!r}, description={self._description!r}, "
            f"date={self._date!r}, income={self._income_amount:.2f}, "
            f"wht={self._withholding_amount:.2f}, original_checksum={self._original_checksum}, "
            f"calculated_checksum={self._calculated_checksum}, validity={self._validity.value})"
        )

    # --- standalone checks --------------------------------------------------

    @staticmethod
    def is_valid_code(code: Optional[str]) -> bool:
        return _passes(validate_code, code)

    @staticmethod
    def is_valid_date(date: Optional[str]) -> bool:
        return _passes(validate_date, date)

    @staticmethod
    def is_valid_income_amount(amount: Amount) -> bool:
        return _passes(validate_income_amount, amount)

    @staticmethod
    def is_valid_amount(amount: Amount) -> bool:
        return _passes(validate_withholding_amount, amount)


def _passes(validator, value) -> bool:
    try:
        validator(value)
    except ValidationError:
        return False
    return True


def split_csv_line(line: str) -> List[str]:
    """Split a comma line.

    Double quotes toggle quoted mode and are dropped. Inside quotes a doubled
    quote ("") stands for one literal quote.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0

    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return fields


def _clean_value(value: str) -> str:
    # Quotes were already consumed by split_csv_line; what remains is literal
    return value.strip()


def _parse_decimal(value: str, field: str, line: str) -> Decimal:
    if not value:
        raise ParseError(f"Empty value for {field}", line)
    if not NUMBER_PATTERN.match(value):
        raise ParseError(f"Invalid number format for {field}: {value!r}", line)
    return Decimal(value)


# =============================================================================
# PUBLIC HELPERS
# =============================================================================

def parse_line(text: str, fmt: Literal["csv", "pipe"] = "csv") -> IncomeRecord:
    """Parse a single record line in the comma (default) or pipe form."""
    if fmt == "csv":
        return IncomeRecord.from_line(text, ",")
    if fmt == "pipe":
        return IncomeRecord.from_line(text, "|")
    raise ValueError(f"Unknown line format: {fmt}")


def apply_edit(record: IncomeRecord, field: str, value: Any) -> IncomeRecord:
    """Return a copy of `record` with one field replaced.

    The input record is not modified. The returned record is UNVALIDATED and
    must be verified before it can feed a tax calculation.

    Raises:
        ValidationError: unknown field, or the new value breaks the field rule
    """
    if field not in _VALIDATORS:
        raise ValidationError(field, f"Unknown field; expected one of {', '.join(EDITABLE_FIELDS)}")

    updated = record.copy()
    setattr(updated, field, value)
    logger.debug(f"{record.code}: edited {field}")
    return updated


def validation_errors(values: dict) -> List[str]:
    """Collect every field error for a set of raw values.

    Unlike the constructor, which stops at the first failing field, this
    reports all of them. Missing keys count as empty values.
    """
    errors = []
    for field in EDITABLE_FIELDS:
        if field == "original_checksum" and field not in values:
            continue
        try:
            _VALIDATORS[field](values.get(field))
        except ValidationError as e:
            errors.append(str(e))
    return errors
