"""Tax liability calculation from verified income records.

Formula (defaults: threshold 150,000.00, rate 12%):

    total_income      = round2(sum of income amounts)
    total_withholding = round2(sum of WHT amounts)
    taxable_income    = max(0, total_income - threshold)
    gross_tax         = taxable_income * rate
    net_tax_payable   = max(0, round2(gross_tax - total_withholding))

Rounding happens after each summation and after the final subtraction, never
per addend. Excess withholding is not refunded: net tax payable floors at 0.

compute() trusts its caller to pass only records that passed checksum
verification. Use input_guard() first when the set comes from elsewhere.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from ..record import IncomeRecord, Validity, round_currency
from .schemas import TaxRules

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _as_decimal(value) -> Decimal:
    # str() keeps float inputs such as 0.1 exact
    return value if isinstance(value, Decimal) else Decimal(str(value))


class TaxInputError(ValueError):
    """Raised when the tax engine is given an unusable record collection."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__(f"Invalid tax calculation input: {'; '.join(problems)}")


@dataclass(frozen=True)
class TaxBreakdown:
    """Full tax calculation for one set of records. Recomputed on every call."""

    record_count: int
    total_income: Decimal
    tax_free_threshold: Decimal
    taxable_income: Decimal
    tax_rate: Decimal
    gross_tax: Decimal
    total_withholding: Decimal
    net_tax_payable: Decimal
    average_income: Decimal
    average_withholding: Decimal
    effective_rate: Decimal
    withholding_coverage: Decimal

    @classmethod
    def empty(cls, rules: TaxRules) -> "TaxBreakdown":
        return cls(
            record_count=0,
            total_income=ZERO,
            tax_free_threshold=rules.tax_free_threshold,
            taxable_income=ZERO,
            tax_rate=rules.tax_rate,
            gross_tax=ZERO,
            total_withholding=ZERO,
            net_tax_payable=ZERO,
            average_income=ZERO,
            average_withholding=ZERO,
            effective_rate=ZERO,
            withholding_coverage=ZERO,
        )

    def to_dict(self) -> dict:
        """JSON-friendly view; money as 2dp strings, percentages as 2dp strings."""
        return {
            "record_count": self.record_count,
            "total_income": _money(self.total_income),
            "tax_free_threshold": _money(self.tax_free_threshold),
            "taxable_income": _money(self.taxable_income),
            "tax_rate": str(self.tax_rate),
            "gross_tax": _money(self.gross_tax),
            "total_withholding": _money(self.total_withholding),
            "net_tax_payable": _money(self.net_tax_payable),
            "average_income": _money(self.average_income),
            "average_withholding": _money(self.average_withholding),
            "effective_rate": _money(self.effective_rate),
            "withholding_coverage": _money(self.withholding_coverage),
        }


@dataclass(frozen=True)
class TaxScenario:
    """Tax outcome for a hypothetical income with no withholding."""

    income: Decimal
    taxable_income: Decimal
    tax_payable: Decimal
    effective_rate: Decimal


class TaxEngine:
    """Flat-rate tax calculator over a set of income records."""

    def __init__(self, rules: Optional[TaxRules] = None):
        self.rules = rules or TaxRules()

    @property
    def threshold(self) -> Decimal:
        return self.rules.tax_free_threshold

    @property
    def rate(self) -> Decimal:
        return self.rules.tax_rate

    # --- totals -------------------------------------------------------------

    def total_income(self, records: Optional[Iterable[IncomeRecord]]) -> Decimal:
        if not records:
            return ZERO
        return round_currency(sum((r.income_amount for r in records if r is not None), ZERO))

    def total_withholding(self, records: Optional[Iterable[IncomeRecord]]) -> Decimal:
        if not records:
            return ZERO
        return round_currency(sum((r.withholding_amount for r in records if r is not None), ZERO))

    def taxable_income(self, total_income: Decimal) -> Decimal:
        return max(ZERO, total_income - self.threshold)

    def calculate_tax(self, total_income: Decimal, total_withholding: Decimal) -> Decimal:
        """Net tax payable for already-rounded totals."""
        gross_tax = self.taxable_income(total_income) * self.rate
        return max(ZERO, round_currency(gross_tax - total_withholding))

    # --- main entry points --------------------------------------------------

    def tax_payable(self, records: Sequence[IncomeRecord]) -> Decimal:
        """Net tax payable for `records`.

        Raises:
            TaxInputError: if records is None
        """
        if records is None:
            raise TaxInputError(["Records list cannot be None"])
        if len(records) == 0:
            logger.info("No records provided for tax calculation")
            return ZERO

        total_income = self.total_income(records)
        total_withholding = self.total_withholding(records)
        payable = self.calculate_tax(total_income, total_withholding)

        logger.info(
            f"Tax calculation: {len(records)} records, income {total_income:,.2f}, "
            f"WHT {total_withholding:,.2f}, payable {payable:,.2f}"
        )
        return payable

    def compute(self, records: Sequence[IncomeRecord]) -> TaxBreakdown:
        """Compute the full tax breakdown for a set of verified records.

        An empty set yields a zero breakdown.

        Raises:
            TaxInputError: if records is None
        """
        if records is None:
            raise TaxInputError(["Records list cannot be None"])
        if len(records) == 0:
            return TaxBreakdown.empty(self.rules)

        count = len(records)
        total_income = self.total_income(records)
        total_withholding = self.total_withholding(records)
        taxable = self.taxable_income(total_income)
        gross_tax = taxable * self.rate
        net_payable = max(ZERO, round_currency(gross_tax - total_withholding))

        effective_rate = net_payable / total_income * HUNDRED if total_income > 0 else ZERO
        coverage = total_withholding / gross_tax * HUNDRED if gross_tax > 0 else ZERO

        breakdown = TaxBreakdown(
            record_count=count,
            total_income=total_income,
            tax_free_threshold=self.threshold,
            taxable_income=taxable,
            tax_rate=self.rate,
            gross_tax=gross_tax,
            total_withholding=total_withholding,
            net_tax_payable=net_payable,
            average_income=total_income / count,
            average_withholding=total_withholding / count,
            effective_rate=effective_rate,
            withholding_coverage=coverage,
        )
        logger.debug(f"Tax breakdown: {breakdown.to_dict()}")
        return breakdown

    # --- preconditions ------------------------------------------------------

    def check_inputs(self, records: Optional[Sequence[IncomeRecord]]) -> List[str]:
        """List the reasons `records` is unfit for compute(). Empty if fit."""
        if records is None:
            return ["Records list is None"]
        if len(records) == 0:
            return ["Records list is empty"]

        problems = []
        for index, record in enumerate(records):
            if record is None:
                problems.append(f"Record #{index + 1} is None")
                continue
            if record.validity is not Validity.VALID:
                problems.append(f"Record {record.code} is not verified valid ({record.validity.value})")
            if record.income_amount < 0:
                problems.append(f"Record {record.code} has negative income amount")
            if record.withholding_amount < 0:
                problems.append(f"Record {record.code} has negative WHT amount")
        return problems

    def input_guard(self, records: Optional[Sequence[IncomeRecord]]) -> None:
        """Raise TaxInputError unless every record is present, VALID and non-negative."""
        problems = self.check_inputs(records)
        if problems:
            for problem in problems:
                logger.warning(problem)
            raise TaxInputError(problems)

    # --- what-if helpers ----------------------------------------------------

    def tax_for_record(self, record: Optional[IncomeRecord]) -> Decimal:
        """Tax payable if `record` were the only income."""
        if record is None:
            return ZERO
        return self.tax_payable([record])

    def is_income_above_threshold(self, income: Decimal) -> bool:
        return _as_decimal(income) > self.threshold

    def required_withholding(self, total_income: Decimal) -> Decimal:
        """Withholding needed to cover the full liability on `total_income`."""
        return self.taxable_income(_as_decimal(total_income)) * self.rate

    def simulate_scenarios(
        self, base_income: Decimal, increments: Iterable[Decimal]
    ) -> List[TaxScenario]:
        """Tax outcome for base_income + each increment, assuming no withholding."""
        scenarios = []
        base = _as_decimal(base_income)
        for increment in increments:
            income = base + _as_decimal(increment)
            payable = self.calculate_tax(income, ZERO)
            scenarios.append(TaxScenario(
                income=income,
                taxable_income=self.taxable_income(income),
                tax_payable=payable,
                effective_rate=payable / income * HUNDRED if income > 0 else ZERO,
            ))
        return scenarios


def compute_tax(records: Sequence[IncomeRecord], rules: Optional[TaxRules] = None) -> TaxBreakdown:
    """Shortcut for TaxEngine(rules).compute(records)."""
    return TaxEngine(rules).compute(records)
