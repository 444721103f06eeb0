"""WHT Calc CLI - command-line interface for record validation and tax calculation."""
