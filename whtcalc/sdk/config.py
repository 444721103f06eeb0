"""Configuration management for WHT Calc.

Configuration lives in two places:

1. settings.json - machine-specific settings in the config directory
   - tax_rules: path to a tax rules YAML file (optional)
   - default_output_format: "text" or "json" for CLI output

2. Tax rules YAML - threshold, rate and currency label
   - Packaged default: whtcalc/sdk/taxes/rules.yaml
   - Override: the file named by the tax_rules setting

Config directory resolution:
1. WHT_CALC_CONFIG_PATH environment variable (if set)
2. $XDG_CONFIG_HOME/wht-calc/ (default ~/.config/wht-calc/)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from .taxes.schemas import TaxRules

logger = logging.getLogger(__name__)

APP_NAME = "wht-calc"
SETTINGS_FILENAME = "settings.json"
DEFAULT_RULES_PATH = Path(__file__).parent / "taxes" / "rules.yaml"

# Setting key -> allowed values (None means any string)
KNOWN_SETTINGS = {
    "tax_rules": None,
    "default_output_format": ("text", "json"),
}


class ConfigError(Exception):
    """Raised when a settings or tax rules file is unusable."""
    pass


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Resolution order:
    1. WHT_CALC_CONFIG_PATH environment variable
    2. $XDG_CONFIG_HOME/wht-calc/ (~/.config/wht-calc/)

    Returns:
        Path to the configuration directory
    """
    env_path = os.environ.get("WHT_CALC_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg_config_home) / APP_NAME


def get_settings_path() -> Path:
    """Get the path to settings.json (may not exist yet)."""
    return get_config_dir() / SETTINGS_FILENAME


def load_settings() -> dict:
    """Load machine-specific settings from settings.json.

    Returns:
        Settings dictionary (empty dict if file doesn't exist)

    Raises:
        ConfigError: If the file exists but isn't a JSON object
    """
    settings_file = get_settings_path()

    if not settings_file.exists():
        return {}

    with open(settings_file, "r") as f:
        try:
            settings = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {settings_file}: {e}")

    if not isinstance(settings, dict):
        raise ConfigError(f"Settings file must contain a JSON object: {settings_file}")
    return settings


def save_settings(settings: dict) -> Path:
    """Save machine-specific settings to settings.json.

    Returns:
        Path to the saved settings file
    """
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    settings_file = config_dir / SETTINGS_FILENAME

    with open(settings_file, "w") as f:
        json.dump(settings, f, indent=2)

    return settings_file


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value from settings.json, or `default` if unset."""
    settings = load_settings()
    return settings.get(key, default)


def validate_setting(key: str, value: str) -> None:
    """Check a setting key and value before it's saved.

    Raises:
        ConfigError: Unknown key or value outside the allowed choices
    """
    if key not in KNOWN_SETTINGS:
        raise ConfigError(
            f"Unknown setting '{key}'. Known settings: {', '.join(sorted(KNOWN_SETTINGS))}"
        )
    allowed = KNOWN_SETTINGS[key]
    if allowed is not None and value not in allowed:
        raise ConfigError(f"Invalid value for {key}: '{value}'. Expected one of: {', '.join(allowed)}")


def set_setting(key: str, value: Any) -> Path:
    """Set a setting value in settings.json.

    Returns:
        Path to the saved settings file
    """
    validate_setting(key, value)
    settings = load_settings()
    settings[key] = value
    return save_settings(settings)


def unset_setting(key: str) -> bool:
    """Remove a setting. Returns True if it was set."""
    settings = load_settings()
    if key not in settings:
        return False
    del settings[key]
    save_settings(settings)
    return True


# =============================================================================
# Tax rules
# =============================================================================

def get_tax_rules_path() -> Path:
    """Resolve the tax rules file: the tax_rules setting, else the packaged default."""
    configured = get_setting("tax_rules")
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_RULES_PATH


def load_tax_rules(path: Optional[Path] = None) -> TaxRules:
    """Load and validate tax rules from YAML.

    Args:
        path: Explicit rules file. Defaults to get_tax_rules_path().

    Returns:
        Validated TaxRules

    Raises:
        FileNotFoundError: If the rules file doesn't exist
        ConfigError: If the YAML is malformed or fails schema validation
    """
    rules_file = Path(path) if path else get_tax_rules_path()
    if not rules_file.exists():
        raise FileNotFoundError(f"Tax rules file not found: {rules_file}")

    with open(rules_file, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {rules_file}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Tax rules must be a mapping: {rules_file}")

    # YAML floats like 0.12 would otherwise reach Decimal with binary noise
    for key in ("tax_free_threshold", "tax_rate"):
        if isinstance(data.get(key), float):
            data[key] = str(data[key])

    try:
        rules = TaxRules.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid tax rules in {rules_file}:\n{e}")

    logger.debug(f"Loaded tax rules from {rules_file}: {rules}")
    return rules
