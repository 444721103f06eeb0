"""Records command group: validate, repair, edit and export income files."""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from whtcalc.sdk import (
    EDITABLE_FIELDS,
    ConfigError,
    IncomeRecord,
    ValidationError,
    apply_edit,
    batch_verify,
    get_setting,
    records,
    repair,
    validation_report,
    verify,
)

from .renderers.records_renderer import (
    render_parse_errors,
    render_records_table,
    render_validation_summary,
)


def load_file(path: str) -> records.ImportResult:
    """Load an income CSV, converting SDK errors to CLI errors."""
    try:
        return records.load_records(Path(path))
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))


def resolve_output_format(output_format: Optional[str]) -> str:
    """Explicit --format wins, then the default_output_format setting, then text."""
    if output_format:
        return output_format
    try:
        return get_setting("default_output_format", "text")
    except ConfigError as e:
        raise click.ClickException(str(e))


def _find_record(loaded: records.ImportResult, code: str) -> IncomeRecord:
    wanted = code.strip().upper()
    for record in loaded.records:
        if record.code == wanted:
            return record
    raise click.ClickException(f"No record with code {wanted}")


@click.group()
def records_cli():
    """Validate and maintain income record files.

    Files are CSV with columns:
    Income_Code,Description,Date,Income_Amount,WHT_Amount,Checksum

    \b
    Examples:
      wht-calc records list income.csv --sort date
      wht-calc records validate income.csv
      wht-calc records show income.csv IN001
      wht-calc records export income.csv out.txt --format txt
      wht-calc records repair income.csv -o repaired.csv
    """
    pass


@records_cli.command("list")
@click.argument("file", type=click.Path())
@click.option("--sort", "sort_key", type=click.Choice(["code", "date", "income"]),
              default=None, help="Sort records before display.")
def records_list(file: str, sort_key: Optional[str]):
    """List the records in FILE without verifying them."""
    loaded = load_file(file)
    console = Console()

    render_parse_errors(console, loaded.errors)
    shown = records.sort_records(loaded.records, sort_key) if sort_key else loaded.records
    if not shown:
        click.echo(f"No records found in {file}")
        return

    render_records_table(console, shown)
    click.echo(f"Total: {len(shown)} record(s)")


@records_cli.command("validate")
@click.argument("file", type=click.Path())
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default=None, help="Output format (default: setting or text).")
@click.option("--strict", is_flag=True,
              help="Exit with status 1 if any line was rejected or any checksum mismatched.")
@click.option("--workers", type=click.IntRange(min=1), default=1,
              help="Verify records on this many threads.")
def records_validate(file: str, output_format: Optional[str], strict: bool, workers: int):
    """Verify the checksum of every record in FILE.

    Lines that can't be parsed are reported and skipped. Parsed records are
    verified and split into valid and invalid.
    """
    loaded = load_file(file)
    summary = batch_verify(loaded.records, max_workers=workers)

    if resolve_output_format(output_format) == "json":
        output = {
            "file": file,
            "summary": summary.to_dict(),
            "records": [r.to_dict() for r in loaded.records],
            "parse_errors": [
                {"line": e.line_number, "kind": e.kind, "field": e.field,
                 "reason": e.reason, "text": e.text}
                for e in loaded.errors
            ],
        }
        click.echo(json.dumps(output, indent=2))
    else:
        console = Console()
        render_parse_errors(console, loaded.errors)
        if loaded.records:
            render_records_table(console, loaded.records)
        render_validation_summary(console, summary)

    if strict and (summary.has_invalid_records or loaded.has_errors):
        raise SystemExit(1)


@records_cli.command("show")
@click.argument("file", type=click.Path())
@click.argument("code")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]),
              default=None, help="Output format (default: setting or text).")
def records_show(file: str, code: str, output_format: Optional[str]):
    """Explain the checksum of record CODE in FILE.

    Shows the canonical line, the character counts and both checksums.
    """
    loaded = load_file(file)
    record = _find_record(loaded, code)
    report = validation_report(record)

    if resolve_output_format(output_format) == "json":
        click.echo(json.dumps({"record": record.to_dict(), "report": report.to_dict()}, indent=2))
        return

    click.echo(record.to_display_string())
    click.echo(str(report))


@records_cli.command("edit")
@click.argument("file", type=click.Path())
@click.argument("code")
@click.argument("field", type=click.Choice(list(EDITABLE_FIELDS)))
@click.argument("value")
@click.option("--output", "-o", type=click.Path(), default=None,
              help="Write the edited file here (default: print only).")
def records_edit(file: str, code: str, field: str, value: str, output: Optional[str]):
    """Change FIELD of record CODE in FILE to VALUE.

    The edited record is re-verified. Its stored checksum is not changed, so
    content edits show up as a checksum mismatch until the file is repaired.
    """
    loaded = load_file(file)
    record = _find_record(loaded, code)

    new_value = value
    if field == "original_checksum":
        try:
            new_value = int(value)
        except ValueError:
            raise click.BadParameter(f"Checksum must be an integer, got '{value}'")

    try:
        edited = apply_edit(record, field, new_value)
    except ValidationError as e:
        raise click.BadParameter(str(e))

    valid = verify(edited)
    status = click.style("valid", fg="green") if valid else click.style("checksum mismatch", fg="red")
    click.echo(edited.to_display_string())
    click.echo(f"Checksum: original {edited.original_checksum}, calculated {edited.calculated_checksum} ({status})")

    if output:
        updated = [edited if r is record else r for r in loaded.records]
        records.save_records(Path(output), updated, keep_original=True)
        click.echo(f"Saved to: {output}")


@records_cli.command("export")
@click.argument("file", type=click.Path())
@click.argument("output", type=click.Path())
@click.option("--format", "export_format", type=click.Choice(["csv", "pipe", "txt"]),
              default="csv", help="Export format (default: csv).")
def records_export(file: str, output: str, export_format: str):
    """Export the records in FILE to OUTPUT.

    \b
    Formats:
      csv   Header + records with their calculated checksums
      pipe  code|description|date|income|wht (no checksum)
      txt   Fixed-width report with validity markers
    """
    loaded = load_file(file)
    batch_verify(loaded.records)
    records.export_records(loaded.records, Path(output), export_format)
    click.echo(f"Exported {len(loaded.records)} record(s) to {output}")
    if loaded.errors:
        click.echo(f"Skipped {len(loaded.errors)} unparseable line(s)", err=True)


@records_cli.command("repair")
@click.argument("file", type=click.Path())
@click.option("--output", "-o", type=click.Path(), default=None,
              help="Write the repaired file here (default: overwrite FILE).")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
def records_repair(file: str, output: Optional[str], yes: bool):
    """Overwrite mismatched checksums in FILE with recomputed values.

    This makes tampered or edited records look valid. Review the mismatches
    with 'wht-calc records validate' first.
    """
    loaded = load_file(file)
    if loaded.errors:
        raise click.ClickException(
            f"{len(loaded.errors)} line(s) could not be parsed; fix them before repairing "
            f"(they would be dropped from the file)."
        )

    summary = batch_verify(loaded.records)
    if not summary.has_invalid_records:
        click.echo("All checksums match. Nothing to repair.")
        return

    click.echo(f"{summary.invalid_count} record(s) have mismatched checksums:")
    for record in summary.invalid:
        click.echo(
            f"  {record.code}: stored {record.original_checksum}, "
            f"calculated {record.calculated_checksum}"
        )

    if not yes:
        click.confirm("\nOverwrite the stored checksums? This cannot be detected later", abort=True)

    result = repair(loaded.records)
    target = Path(output) if output else Path(file)
    records.save_records(target, loaded.records)

    for entry in result.repaired:
        click.echo(f"Repaired {entry.code}: {entry.previous_checksum} -> {entry.new_checksum}")
    click.echo(click.style(f"\nRepaired {result.repaired_count} record(s). Saved to: {target}", fg="green"))
