"""Tests for settings.json handling and tax rules loading.

Mock strategy:
- WHT_CALC_CONFIG_PATH env var points to a temp config dir
"""

import json
from decimal import Decimal

import pytest

from whtcalc.sdk import config
from whtcalc.sdk.config import ConfigError


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    path = tmp_path / "config"
    monkeypatch.setenv("WHT_CALC_CONFIG_PATH", str(path))
    return path


class TestConfigDir:
    """Config directory resolution."""

    def test_env_var_wins(self, config_dir):
        assert config.get_config_dir() == config_dir

    def test_xdg_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("WHT_CALC_CONFIG_PATH", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert config.get_config_dir() == tmp_path / "wht-calc"


class TestSettings:
    """settings.json round trips."""

    def test_missing_file_is_empty(self, config_dir):
        assert config.load_settings() == {}
        assert config.get_setting("tax_rules", "fallback") == "fallback"

    def test_set_and_get(self, config_dir):
        path = config.set_setting("default_output_format", "json")

        assert path == config_dir / "settings.json"
        assert json.loads(path.read_text()) == {"default_output_format": "json"}
        assert config.get_setting("default_output_format") == "json"

    def test_set_rejects_unknown_key(self, config_dir):
        with pytest.raises(ConfigError):
            config.set_setting("colour", "blue")

    def test_set_rejects_bad_choice(self, config_dir):
        with pytest.raises(ConfigError):
            config.set_setting("default_output_format", "xml")

    def test_unset(self, config_dir):
        config.set_setting("default_output_format", "json")
        assert config.unset_setting("default_output_format") is True
        assert config.unset_setting("default_output_format") is False
        assert config.load_settings() == {}

    def test_invalid_json(self, config_dir):
        config_dir.mkdir()
        (config_dir / "settings.json").write_text("{not json")
        with pytest.raises(ConfigError):
            config.load_settings()

    def test_non_object_json(self, config_dir):
        config_dir.mkdir()
        (config_dir / "settings.json").write_text("[1, 2]")
        with pytest.raises(ConfigError):
            config.load_settings()


class TestTaxRules:
    """Tax rules YAML loading."""

    def test_packaged_defaults(self, config_dir):
        rules = config.load_tax_rules()
        assert config.get_tax_rules_path() == config.DEFAULT_RULES_PATH
        assert rules.tax_free_threshold == Decimal("150000.00")
        assert rules.tax_rate == Decimal("0.12")
        assert rules.currency_symbol == "Rs"

    def test_rules_from_setting(self, config_dir, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("tax_free_threshold: 100000\ntax_rate: 0.1\ncurrency_symbol: LKR\n")
        config.set_setting("tax_rules", str(rules_file))

        rules = config.load_tax_rules()

        assert rules.tax_free_threshold == Decimal("100000")
        assert rules.tax_rate == Decimal("0.1")
        assert rules.currency_symbol == "LKR"

    def test_missing_rules_file(self, config_dir, tmp_path):
        with pytest.raises(FileNotFoundError):
            config.load_tax_rules(tmp_path / "nope.yaml")

    def test_rate_out_of_range(self, config_dir, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("tax_rate: 1.5\n")
        with pytest.raises(ConfigError):
            config.load_tax_rules(rules_file)

    def test_unknown_key_rejected(self, config_dir, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("tax_rate: 0.1\nbrackets: []\n")
        with pytest.raises(ConfigError):
            config.load_tax_rules(rules_file)

    def test_not_a_mapping(self, config_dir, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            config.load_tax_rules(rules_file)

    def test_empty_file_uses_defaults(self, config_dir, tmp_path):
        rules_file = tmp_path / "rules.yaml"
        rules_file.write_text("")
        assert config.load_tax_rules(rules_file).tax_rate == Decimal("0.12")
