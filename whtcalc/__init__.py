"""WHT Calc - income declaration checksum validation and tax computation."""

__version__ = "0.3.0"
