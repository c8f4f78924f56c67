"""
reconguard/cli/__init__.py

ReconGuard CLI: root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    reconguard = "reconguard.cli:cli"

Adding a new command:
    1. Create reconguard/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from reconguard.cli._output import _Color
from reconguard.cli.evaluate import evaluate_command
from reconguard.cli.validate import validate_governance_command, validate_profile_command
from reconguard.cli.verify import verify_command


@click.group()
@click.version_option(package_name="reconguard")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="RECONGUARD_LOG_LEVEL",
)
@click.option("--no-color", is_flag=True, help="Disable ANSI color.")
def cli(log_level: str, no_color: bool) -> None:
    """
    ReconGuard: guard composition and audit reconciliation.

    \b
    Commands:
      evaluate             Evaluate a proposal under a policy profile.
      validate-profile     CI gate for policy profiles.
      validate-governance  CI gate for tiered governance policies.
      verify               Verify a signed audit ledger.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _Color.configure(not no_color)


cli.add_command(evaluate_command)
cli.add_command(validate_profile_command)
cli.add_command(validate_governance_command)
cli.add_command(verify_command)
