"""WHT Calc CLI - Income record validation and withholding tax calculation."""

import json
from pathlib import Path
from typing import Optional

import click

from whtcalc import __version__
from whtcalc.sdk import (
    ConfigError,
    TaxEngine,
    TaxInputError,
    batch_verify,
    count_characters,
    format_tax_report,
    load_tax_rules,
)

from .records_commands import load_file, records_cli as records_group, resolve_output_format
from .settings_commands import settings as settings_group


@click.group()
@click.version_option(version=__version__, prog_name="wht-calc")
def cli():
    """WHT Calc - Income record checksums and withholding tax.

    Reads income CSV files, verifies each record's checksum and computes
    the tax still payable after withholding.

    Tax rules are loaded from (in order):

    \b
    1. the file named by the 'tax_rules' setting
    2. the packaged rules.yaml (threshold 150,000.00, rate 12%)

    Settings live in WHT_CALC_CONFIG_PATH or ~/.config/wht-calc/.
    """
    pass


# Add subcommand groups
cli.add_command(records_group, name="records")
cli.add_command(settings_group)


@cli.command("tax")
@click.argument("file", type=click.Path())
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default=None, help="Output format (default: setting or text).")
@click.option("--rules", "rules_path", type=click.Path(), default=None,
              help="Tax rules YAML to use instead of the configured one.")
def tax(file: str, output_format: Optional[str], rules_path: Optional[str]):
    """Compute tax payable for the valid records in FILE.

    Records with a mismatched checksum are excluded from the calculation
    and counted in the output.

    \b
    Examples:
      wht-calc tax income.csv
      wht-calc tax income.csv --format json
    """
    try:
        rules = load_tax_rules(Path(rules_path) if rules_path else None)
    except (FileNotFoundError, ConfigError) as e:
        raise click.ClickException(str(e))

    loaded = load_file(file)
    summary = batch_verify(loaded.records)
    engine = TaxEngine(rules)

    valid_records = list(summary.valid)
    if valid_records:
        try:
            engine.input_guard(valid_records)
        except TaxInputError as e:
            raise click.ClickException(str(e))
    breakdown = engine.compute(valid_records)

    if resolve_output_format(output_format) == "json":
        output = {
            "file": file,
            "excluded_invalid": summary.invalid_count,
            "skipped_lines": len(loaded.errors),
            "tax": breakdown.to_dict(),
        }
        click.echo(json.dumps(output, indent=2))
        return

    click.echo(format_tax_report(breakdown, rules.currency_symbol))
    if summary.has_invalid_records:
        codes = ", ".join(r.code for r in summary.invalid if r is not None)
        click.echo(click.style(
            f"\nExcluded {summary.invalid_count} record(s) with checksum mismatch: {codes}",
            fg="yellow",
        ))
    if loaded.errors:
        click.echo(click.style(f"Skipped {len(loaded.errors)} unparseable line(s)", fg="yellow"))


@cli.command("checksum")
@click.argument("line")
def checksum(line: str):
    """Show the checksum of LINE.

    LINE is a record without its checksum column, e.g.

    \b
      wht-calc checksum "IN001,Freelance Work,25/07/2025,10000.00,1000.00"
    """
    counts = count_characters(line)
    click.echo(f"Uppercase letters: {counts.letters}")
    click.echo(f"Digits/periods:    {counts.numeric}")
    click.echo(f"Checksum:          {counts.total}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
