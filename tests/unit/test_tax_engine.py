"""Tests for the flat-rate tax engine.

Scenarios use the packaged defaults: 150,000.00 tax-free threshold and 12%.
"""

from decimal import Decimal

import pytest

from whtcalc.sdk.checksum import batch_verify, compute_checksum
from whtcalc.sdk.record import IncomeRecord
from whtcalc.sdk.taxes import TaxEngine, TaxInputError, TaxRules, compute_tax


def make_record(code: str, income: str, wht: str, verified: bool = True) -> IncomeRecord:
    record = IncomeRecord(code, "Client work", "01/07/2025", income, wht)
    record.original_checksum = compute_checksum(record)
    if verified:
        batch_verify([record])
    return record


@pytest.fixture
def engine():
    return TaxEngine()


class TestTaxPayable:
    """Net tax payable from known inputs."""

    def test_withholding_covers_tax(self, engine):
        records = [make_record("IN001", "200000.00", "10000.00")]
        assert engine.tax_payable(records) == Decimal("0.00")

    def test_partial_withholding(self, engine):
        records = [make_record("IN001", "200000.00", "5000.00")]
        assert engine.tax_payable(records) == Decimal("1000.00")

    def test_totals_across_records(self, engine):
        records = [
            make_record("IN001", "100000.00", "2000.00"),
            make_record("IN002", "100000.00", "3000.00"),
        ]
        assert engine.tax_payable(records) == Decimal("1000.00")

    def test_income_at_threshold_is_untaxed(self, engine):
        records = [make_record("IN001", "150000.00", "0.00")]
        assert engine.tax_payable(records) == Decimal("0.00")

    def test_one_cent_above_threshold(self, engine):
        # 0.01 * 0.12 = 0.0012 rounds to 0.00
        records = [make_record("IN001", "150000.01", "0.00")]
        assert engine.tax_payable(records) == Decimal("0.00")
        assert engine.is_income_above_threshold(Decimal("150000.01"))
        assert not engine.is_income_above_threshold(Decimal("150000.00"))

    def test_taxable_income_at_boundary(self, engine):
        at = engine.compute([make_record("IN001", "150000.00", "0.00")])
        above = engine.compute([make_record("IN001", "150000.01", "0.00")])
        assert at.taxable_income == Decimal("0")
        assert above.taxable_income == Decimal("0.01")

    def test_excess_withholding_not_refunded(self, engine):
        records = [make_record("IN001", "160000.00", "50000.00")]
        assert engine.tax_payable(records) == Decimal("0.00")

    def test_rounding_happens_after_subtraction(self, engine):
        # gross 150000.05 - 150000 = 0.05 * 0.12 = 0.006 -> 0.01
        records = [make_record("IN001", "150000.05", "0.00")]
        assert engine.tax_payable(records) == Decimal("0.01")

    def test_empty_records(self, engine):
        assert engine.tax_payable([]) == Decimal("0")

    def test_none_records(self, engine):
        with pytest.raises(TaxInputError):
            engine.tax_payable(None)


class TestCompute:
    """Full breakdown."""

    def test_breakdown_fields(self, engine):
        records = [
            make_record("IN001", "100000.00", "2000.00"),
            make_record("IN002", "100000.00", "3000.00"),
        ]

        breakdown = engine.compute(records)

        assert breakdown.record_count == 2
        assert breakdown.total_income == Decimal("200000.00")
        assert breakdown.total_withholding == Decimal("5000.00")
        assert breakdown.taxable_income == Decimal("50000.00")
        assert breakdown.gross_tax == Decimal("6000.00")
        assert breakdown.net_tax_payable == Decimal("1000.00")
        assert breakdown.average_income == Decimal("100000.00")
        assert breakdown.average_withholding == Decimal("2500.00")
        assert breakdown.effective_rate == Decimal("0.5")
        assert breakdown.withholding_coverage.quantize(Decimal("0.01")) == Decimal("83.33")

    def test_empty_breakdown(self, engine):
        breakdown = engine.compute([])
        assert breakdown.record_count == 0
        assert breakdown.net_tax_payable == Decimal("0")
        assert breakdown.tax_free_threshold == Decimal("150000.00")

    def test_below_threshold_has_zero_coverage(self, engine):
        breakdown = engine.compute([make_record("IN001", "1000.00", "100.00")])
        assert breakdown.gross_tax == Decimal("0")
        assert breakdown.withholding_coverage == Decimal("0")

    def test_to_dict_formats_money(self, engine):
        data = engine.compute([make_record("IN001", "200000.00", "5000.00")]).to_dict()
        assert data["net_tax_payable"] == "1000.00"
        assert data["gross_tax"] == "6000.00"
        assert data["tax_rate"] == "0.12"

    def test_compute_does_not_mutate_records(self, engine):
        records = [make_record("IN001", "200000.00", "5000.00")]
        before = records[0].to_dict()
        engine.compute(records)
        assert records[0].to_dict() == before

    def test_compute_tax_with_custom_rules(self):
        rules = TaxRules(tax_free_threshold=Decimal("0"), tax_rate=Decimal("0.10"))
        breakdown = compute_tax([make_record("IN001", "1000.00", "50.00")], rules)
        assert breakdown.net_tax_payable == Decimal("50.00")


class TestInputGuard:
    """Preconditions for compute()."""

    def test_verified_records_pass(self, engine):
        engine.input_guard([make_record("IN001", "1000.00", "0.00")])

    def test_unverified_record_rejected(self, engine):
        records = [make_record("IN001", "1000.00", "0.00", verified=False)]
        with pytest.raises(TaxInputError) as exc:
            engine.input_guard(records)
        assert "IN001" in exc.value.problems[0]

    def test_none_entry_and_empty_list(self, engine):
        assert engine.check_inputs(None) == ["Records list is None"]
        assert engine.check_inputs([]) == ["Records list is empty"]
        problems = engine.check_inputs([make_record("IN001", "1000.00", "0.00"), None])
        assert problems == ["Record #2 is None"]

    def test_edited_record_rejected(self, engine):
        record = make_record("IN001", "1000.00", "0.00")
        record.description = "Changed"
        with pytest.raises(TaxInputError):
            engine.input_guard([record])


class TestWhatIf:
    """Helpers for hypothetical incomes."""

    def test_tax_for_record(self, engine):
        assert engine.tax_for_record(make_record("IN001", "200000.00", "0.00")) == Decimal("6000.00")
        assert engine.tax_for_record(None) == Decimal("0")

    def test_required_withholding(self, engine):
        assert engine.required_withholding(Decimal("200000")) == Decimal("6000.00")
        assert engine.required_withholding("100000") == Decimal("0")

    def test_simulate_scenarios(self, engine):
        scenarios = engine.simulate_scenarios(Decimal("150000"), [Decimal("0"), Decimal("50000")])

        assert [s.tax_payable for s in scenarios] == [Decimal("0.00"), Decimal("6000.00")]
        assert scenarios[1].income == Decimal("200000")
        assert scenarios[1].effective_rate == Decimal("3")
