"""Settings CLI commands for WHT Calc.

Manages settings.json - tax rules path and output preferences.
"""

import click

from whtcalc.sdk import (
    KNOWN_SETTINGS,
    ConfigError,
    get_settings_path,
    get_tax_rules_path,
    load_settings,
    set_setting,
    unset_setting,
)


@click.group()
def settings():
    """Manage settings (settings.json).

    Available settings:
    - tax_rules: path to a tax rules YAML file
    - default_output_format: text or json
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and their values."""
    settings_path = get_settings_path()
    try:
        current = load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if not current:
        click.echo("No settings configured (using defaults).")
    else:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")

    click.echo()
    click.echo("Effective paths:")
    click.echo(f"  tax_rules: {get_tax_rules_path()}")


@settings.command("set")
@click.argument("key", type=click.Choice(sorted(KNOWN_SETTINGS)))
@click.argument("value")
def settings_set(key, value):
    """Set KEY to VALUE.

    \b
    Examples:
        wht-calc settings set default_output_format json
        wht-calc settings set tax_rules ~/tax/rules-2025.yaml
    """
    try:
        path = set_setting(key, value)
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="VALUE")

    click.echo(f"Set {key}: {value}")
    click.echo(f"Saved to: {path}")


@settings.command("unset")
@click.argument("key")
def settings_unset(key):
    """Remove KEY, reverting to its default."""
    try:
        removed = unset_setting(key)
    except ConfigError as e:
        raise click.ClickException(str(e))

    if removed:
        click.echo(f"Cleared {key} setting.")
    else:
        click.echo(f"{key} was not set.")
