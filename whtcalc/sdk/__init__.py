"""WHT Calc SDK - Core record validation and tax calculation."""

from .config import (
    get_config_dir,
    get_settings_path,
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    unset_setting,
    validate_setting,
    load_tax_rules,
    get_tax_rules_path,
    ConfigError,
    KNOWN_SETTINGS,
)

from .record import (
    IncomeRecord,
    Validity,
    ValidationError,
    ParseError,
    parse_line,
    apply_edit,
    validation_errors,
    round_currency,
    EDITABLE_FIELDS,
)

from .checksum import (
    CharacterCounts,
    ValidationSummary,
    ValidationReport,
    RepairEntry,
    RepairResult,
    count_characters,
    checksum_from_line,
    compute_checksum,
    is_valid,
    verify,
    batch_verify,
    recalculate_checksums,
    repair,
    validation_report,
)

from .taxes import (
    TaxRules,
    TaxEngine,
    TaxBreakdown,
    TaxScenario,
    TaxInputError,
    compute_tax,
    format_tax_report,
    format_validation_summary,
)

from . import records

__all__ = [
    # Config
    "get_config_dir",
    "get_settings_path",
    "load_settings",
    "save_settings",
    "get_setting",
    "set_setting",
    "unset_setting",
    "validate_setting",
    "load_tax_rules",
    "get_tax_rules_path",
    "ConfigError",
    "KNOWN_SETTINGS",
    # Record model
    "IncomeRecord",
    "Validity",
    "ValidationError",
    "ParseError",
    "parse_line",
    "apply_edit",
    "validation_errors",
    "round_currency",
    "EDITABLE_FIELDS",
    # Checksum
    "CharacterCounts",
    "ValidationSummary",
    "ValidationReport",
    "RepairEntry",
    "RepairResult",
    "count_characters",
    "checksum_from_line",
    "compute_checksum",
    "is_valid",
    "verify",
    "batch_verify",
    "recalculate_checksums",
    "repair",
    "validation_report",
    # Tax
    "TaxRules",
    "TaxEngine",
    "TaxBreakdown",
    "TaxScenario",
    "TaxInputError",
    "compute_tax",
    "format_tax_report",
    "format_validation_summary",
    # Records module
    "records",
]
