"""Plain-text reports for tax breakdowns and validation summaries."""

from ..checksum import ValidationSummary
from .engine import TaxBreakdown


def format_tax_report(breakdown: TaxBreakdown, currency: str = "Rs") -> str:
    """Format a tax breakdown as a human-readable summary."""
    if breakdown.record_count == 0:
        return "No records available for tax calculation."

    def money(value) -> str:
        return f"{currency} {value:,.2f}"

    lines = []
    lines.append("TAX CALCULATION SUMMARY")
    lines.append("=" * 60)
    lines.append("")

    lines.append("INPUT DATA")
    lines.append("-" * 60)
    lines.append(f"  {'Number of records':<28} {breakdown.record_count:>20}")
    lines.append(f"  {'Total income':<28} {money(breakdown.total_income):>20}")
    lines.append(f"  {'Total WHT paid':<28} {money(breakdown.total_withholding):>20}")
    lines.append("")

    lines.append("TAX CALCULATION")
    lines.append("-" * 60)
    lines.append(f"  {'Tax-free threshold':<28} {money(breakdown.tax_free_threshold):>20}")
    lines.append(f"  {'Taxable income':<28} {money(breakdown.taxable_income):>20}")
    lines.append(f"  {'Tax rate':<28} {breakdown.tax_rate * 100:>19.1f}%")
    lines.append(f"  {'Gross tax':<28} {money(breakdown.gross_tax):>20}")
    lines.append(f"  {'Less: WHT paid':<28} {money(breakdown.total_withholding):>20}")
    lines.append("  " + "-" * 49)
    lines.append(f"  {'NET TAX PAYABLE':<28} {money(breakdown.net_tax_payable):>20}")
    lines.append("")

    lines.append("STATISTICS")
    lines.append("-" * 60)
    lines.append(f"  {'Average income per record':<28} {money(breakdown.average_income):>20}")
    lines.append(f"  {'Average WHT per record':<28} {money(breakdown.average_withholding):>20}")
    lines.append(f"  {'Effective tax rate':<28} {breakdown.effective_rate:>19.2f}%")
    lines.append(f"  {'WHT coverage':<28} {breakdown.withholding_coverage:>19.1f}%")

    return "\n".join(lines)


def format_validation_summary(summary: ValidationSummary) -> str:
    """One-screen text summary of a batch verification."""
    lines = [
        "VALIDATION SUMMARY",
        "=" * 60,
        f"  {'Total records':<28} {summary.total:>8}",
        f"  {'Valid records':<28} {summary.valid_count:>8}",
        f"  {'Invalid records':<28} {summary.invalid_count:>8}",
        f"  {'Validity':<28} {summary.validity_percentage:>7.1f}%",
    ]
    invalid_codes = [r.code for r in summary.invalid if r is not None]
    if invalid_codes:
        lines.append("")
        lines.append(f"  Invalid: {', '.join(invalid_codes)}")
    return "\n".join(lines)
