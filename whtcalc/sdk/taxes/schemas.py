"""Pydantic schema for tax rules validation.

Validates the tax rules YAML file and provides typed access to the
threshold and rate used by the tax engine.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TAX_FREE_THRESHOLD = Decimal("150000.00")
DEFAULT_TAX_RATE = Decimal("0.12")


class TaxRules(BaseModel):
    """Flat-rate tax rules: income above the threshold is taxed at one rate."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    tax_free_threshold: Decimal = Field(
        default=DEFAULT_TAX_FREE_THRESHOLD, ge=0,
        description="Income up to this amount is not taxed",
    )
    tax_rate: Decimal = Field(
        default=DEFAULT_TAX_RATE, ge=0, le=1,
        description="Tax rate as decimal (0.12 = 12%)",
    )
    currency_symbol: str = Field(default="Rs", min_length=1, description="Label used in reports")
