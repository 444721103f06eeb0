"""taxes - Tax liability calculation and reporting.

Scope:
- Flat-rate tax over income above a tax-free threshold, less WHT paid
- Input guard for record sets of unknown provenance
- Text rendering of the resulting breakdown

Constraints:
- Pure calculation - no file access, no checksum verification
- Rules come from TaxRules (defaults: 150,000.00 threshold, 12% rate),
  loaded from rules.yaml or a user-supplied file via sdk.config

Usage:
    from whtcalc.sdk.taxes import TaxEngine, format_tax_report

    engine = TaxEngine()
    engine.input_guard(summary.valid)
    breakdown = engine.compute(summary.valid)
    print(format_tax_report(breakdown))
"""

from .schemas import TaxRules, DEFAULT_TAX_FREE_THRESHOLD, DEFAULT_TAX_RATE

from .engine import (
    TaxEngine,
    TaxBreakdown,
    TaxScenario,
    TaxInputError,
    compute_tax,
)

from .report import (
    format_tax_report,
    format_validation_summary,
)

__all__ = [
    # Rules
    "TaxRules",
    "DEFAULT_TAX_FREE_THRESHOLD",
    "DEFAULT_TAX_RATE",
    # Engine
    "TaxEngine",
    "TaxBreakdown",
    "TaxScenario",
    "TaxInputError",
    "compute_tax",
    # Reports
    "format_tax_report",
    "format_validation_summary",
]
