"""Rich renderer for income records and validation results.

Transforms SDK objects into formatted Rich tables.
"""

from typing import Sequence

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from whtcalc.sdk import IncomeRecord, ParseError, ValidationSummary, Validity


_VALIDITY_STYLE = {
    Validity.VALID: "[green]✓[/green]",
    Validity.INVALID: "[red]✗[/red]",
    Validity.UNVALIDATED: "[dim]-[/dim]",
}


def render_parse_errors(console: Console, errors: Sequence[ParseError]) -> None:
    """Render rejected input lines in a warning panel."""
    if not errors:
        return

    lines = []
    for error in errors:
        location = f"line {error.line_number}" if error.line_number is not None else "input"
        lines.append(f"[yellow]{location}[/yellow] ({error.kind}): {error.reason}")
        if error.text:
            lines.append(f"  [dim]{error.text}[/dim]")

    console.print(Panel(
        "\n".join(lines),
        title=f"{len(errors)} line(s) skipped",
        border_style="yellow",
    ))


def render_records_table(console: Console, records: Sequence[IncomeRecord], currency: str = "Rs") -> None:
    """Render records with their checksum state."""
    table = Table(show_header=True, header_style="bold", box=box.SIMPLE_HEAD)
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Date")
    table.add_column(f"Income ({currency})", justify="right")
    table.add_column(f"WHT ({currency})", justify="right")
    table.add_column(f"Net ({currency})", justify="right")
    table.add_column("Orig.CS", justify="right")
    table.add_column("Calc.CS", justify="right")
    table.add_column("Valid", justify="center")

    for record in records:
        if record is None:
            continue
        table.add_row(
            record.code,
            record.description,
            record.date,
            f"{record.income_amount:,.2f}",
            f"{record.withholding_amount:,.2f}",
            f"{record.net_amount:,.2f}",
            str(record.original_checksum),
            str(record.calculated_checksum),
            _VALIDITY_STYLE[record.validity],
        )

    console.print(table)


def render_validation_summary(console: Console, summary: ValidationSummary) -> None:
    """Render the totals of a validation pass."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("key", style="dim")
    table.add_column("value", justify="right")

    table.add_row("Total records", str(summary.total))
    table.add_row("Valid", f"[green]{summary.valid_count}[/green]")
    invalid_style = "red" if summary.has_invalid_records else "green"
    table.add_row("Invalid", f"[{invalid_style}]{summary.invalid_count}[/{invalid_style}]")
    table.add_row("Validity", f"{summary.validity_percentage:.1f}%")

    border = "red" if summary.has_invalid_records else "green"
    console.print(Panel(table, title="Validation", border_style=border))
