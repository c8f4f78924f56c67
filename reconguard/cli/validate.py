"""
reconguard validate-profile / validate-governance: CI gates.

Exit codes:
    0  valid
    1  one or more rules violated (all of them are printed)
    2  file missing or unparseable
"""

import json
import sys

import click

from reconguard.cli._output import _Color, banner, row_fail, row_info, row_ok
from reconguard.core.exceptions import ConfigError
from reconguard.policy.governance import (
    ValidationResult,
    validate_governance_policy,
    validate_profile,
)
from reconguard.policy.loader import load_governance_policy, load_profile

_FORMAT_OPTION = click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)


def _report(title: str, subject: str, result: ValidationResult, fmt: str) -> None:
    if fmt == "json":
        click.echo(json.dumps({"subject": subject, **result.to_dict()}, indent=2))
    else:
        banner(title)
        click.echo(row_info("Subject", subject))
        click.echo()
        if result.ok:
            click.echo(row_ok("Result", "valid"))
        else:
            click.echo(row_fail("Result", f"{len(result.errors)} violation(s)"))
            for error in result.errors:
                click.echo(f"      {_Color.red('•')} {error}")
        click.echo()
    sys.exit(0 if result.ok else 1)


@click.command(name="validate-profile")
@click.argument("path", type=click.Path())
@_FORMAT_OPTION
def validate_profile_command(path: str, fmt: str) -> None:
    """Validate a policy profile file (YAML or JSON)."""
    try:
        profile = load_profile(path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    _report("Policy Profile Validation", profile.name or path,
            validate_profile(profile), fmt)


@click.command(name="validate-governance")
@click.argument("path", type=click.Path())
@_FORMAT_OPTION
def validate_governance_command(path: str, fmt: str) -> None:
    """Validate a tiered governance policy file (YAML or JSON)."""
    try:
        policy = load_governance_policy(path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    _report("Governance Policy Validation", policy.model_id or path,
            validate_governance_policy(policy), fmt)
