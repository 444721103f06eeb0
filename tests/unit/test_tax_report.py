"""Tests for the plain-text tax and validation reports."""

from whtcalc.sdk.checksum import ValidationSummary, batch_verify, compute_checksum
from whtcalc.sdk.record import IncomeRecord
from whtcalc.sdk.taxes import TaxEngine, format_tax_report, format_validation_summary


def make_record(code, income, wht, checksum=None):
    record = IncomeRecord(code, "Client work", "01/07/2025", income, wht)
    record.original_checksum = compute_checksum(record) if checksum is None else checksum
    return record


def test_empty_breakdown_message():
    report = format_tax_report(TaxEngine().compute([]))
    assert report == "No records available for tax calculation."


def test_report_sections_and_amounts():
    records = [make_record("IN001", "200000.00", "5000.00")]
    batch_verify(records)

    report = format_tax_report(TaxEngine().compute(records))

    for heading in ("TAX CALCULATION SUMMARY", "INPUT DATA", "TAX CALCULATION", "STATISTICS"):
        assert heading in report
    assert "NET TAX PAYABLE" in report
    assert "Rs 200,000.00" in report
    assert "Rs 150,000.00" in report
    assert "Rs 6,000.00" in report
    assert "Rs 1,000.00" in report
    assert "12.0%" in report


def test_report_currency_label():
    breakdown = TaxEngine().compute([make_record("IN001", "1000.00", "0.00")])
    report = format_tax_report(breakdown, currency="LKR")
    assert "LKR 1,000.00" in report
    assert "Rs " not in report


def test_validation_summary_lists_invalid_codes():
    records = [make_record("IN001", "1000.00", "0.00"), make_record("IN002", "1000.00", "0.00", checksum=1)]
    text = format_validation_summary(batch_verify(records))

    assert "VALIDATION SUMMARY" in text
    assert "50.0%" in text
    assert "Invalid: IN002" in text


def test_validation_summary_all_valid():
    text = format_validation_summary(ValidationSummary(total=0))
    assert "Invalid:" not in text
