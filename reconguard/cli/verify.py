"""
reconguard verify: audit ledger verification.

Usage:
    reconguard verify .reconguard/ledger
    reconguard verify .reconguard/ledger --format json
    reconguard verify .reconguard/ledger --quiet && echo "clean"

Exit codes:
    0  Ledger fully valid (sequence + chain + record hashes + signatures)
    1  Ledger has violations
    2  Error (missing or malformed ledger)
"""

import json
import sys
from pathlib import Path

import click

from reconguard.cli._output import _Color, banner, row_fail, row_info, row_ok
from reconguard.core.exceptions import LedgerError
from reconguard.ledger.ledger import LEDGER_FILENAME, read_entries, verify_entries


@click.command(name="verify")
@click.argument("ledger", type=click.Path())
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--quiet", "-q", is_flag=True, help="No output. Exit code only.")
def verify_command(ledger: str, fmt: str, quiet: bool) -> None:
    """Verify a ReconGuard ledger directory or ledger.jsonl file."""
    path = Path(ledger)
    if path.is_dir():
        path = path / LEDGER_FILENAME
    if not path.exists():
        if not quiet:
            click.echo(f"Error: ledger not found: {path}", err=True)
        sys.exit(2)

    try:
        report = verify_entries(read_entries(path))
    except LedgerError as exc:
        if not quiet:
            click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if quiet:
        sys.exit(0 if report.valid else 1)

    if fmt == "json":
        click.echo(json.dumps({"ledger": str(path), **report.to_dict()}, indent=2))
    else:
        banner("Audit Ledger Verification")
        click.echo(row_info("Ledger", str(path)))
        click.echo(row_info("Entries", str(report.total_entries)))
        click.echo()
        if report.valid:
            click.echo(row_ok("Ledger", "intact, chain, hashes and signatures valid"))
        else:
            click.echo(row_fail("Ledger", f"{len(report.violations)} violation(s)"))
            for violation in report.violations:
                click.echo(f"      {_Color.red('•')} {violation}")
        click.echo()

    sys.exit(0 if report.valid else 1)
