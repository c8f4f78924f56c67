"""
reconguard evaluate: run one proposal through the reconciliation engine.

Usage:
    reconguard evaluate profile.yaml proposal.json
    reconguard evaluate eu_neurorights proposal.json --format json
    reconguard evaluate profile.yaml proposal.json --ledger .reconguard/ledger --key key.pem

PROFILE is a YAML/JSON file or the name of a built-in profile.

Exit codes:
    0  Allowed (record sealed, and appended if --ledger was given)
    1  Rejected (guard, constraint, context or evidence)
    2  Error (profile invalid, file missing or malformed)
    3  Internal defect (monotonicity self-check disagreed with the guards)
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from reconguard.cli._output import _Color, banner, row_fail, row_info, row_ok, row_warn
from reconguard.core.crypto import Ed25519KeyManager
from reconguard.core.exceptions import ConfigError, LedgerError, MonotonicityViolation
from reconguard.ledger.ledger import AuditLedger
from reconguard.policy import profile as builtin_profiles
from reconguard.policy.loader import load_profile, load_proposal
from reconguard.policy.profile import PolicyProfile
from reconguard.reconciliation.engine import ReconciliationEngine, ReconciliationResult

DEFAULT_KEY_FILENAME = "signing_key.pem"

BUILTIN_PROFILES = {
    "default":           builtin_profiles.default_profile,
    "eu_neurorights":    builtin_profiles.eu_neurorights,
    "chile_neurorights": builtin_profiles.chile_neurorights,
    "phoenix_medical":   builtin_profiles.phoenix_medical,
}


def resolve_profile(spec: str) -> PolicyProfile:
    """A path to a profile file, or a built-in profile name."""
    if not Path(spec).exists() and spec in BUILTIN_PROFILES:
        return BUILTIN_PROFILES[spec]()
    return load_profile(spec)


def _load_key(key_path: Optional[str], ledger_path: str) -> Ed25519KeyManager:
    """
    The ledger's signing key. Without --key it lives in the ledger
    directory, so every run appending to one ledger signs with one key.
    """
    path = Path(key_path) if key_path else Path(ledger_path) / DEFAULT_KEY_FILENAME
    if path.exists():
        return Ed25519KeyManager.from_file(path)
    key = Ed25519KeyManager.generate()
    key.save(path)
    return key


def _print_human(result: ReconciliationResult, profile: PolicyProfile, entry=None) -> None:
    banner("Proposal Reconciliation")
    click.echo(row_info("Profile", f"{profile.name} v{profile.version} ({profile.authority})"))
    click.echo()

    if result.allowed:
        record = result.record
        decision = record.decision
        if decision.is_allow:
            click.echo(row_ok("Outcome", "Allowed"))
        else:
            click.echo(row_warn("Outcome", f"Allowed with {decision}"))
        click.echo(row_info("Record", record.record_id))
        click.echo(row_info("Subject", record.subject))
        for snap in record.metrics:
            click.echo(row_info(snap.name, f"{snap.before} -> {snap.after}"))
        click.echo(row_ok("Monotonicity", "respected"))
        if entry is not None:
            click.echo(row_ok("Ledger", f"entry {entry.sequence} signed and appended"))
    else:
        rejection = result.rejection
        click.echo(row_fail("Outcome", "Rejected"))
        click.echo(row_info("Category", rejection.category))
        click.echo(row_info("Source", rejection.source or "-"))
        click.echo(row_info("Reason", rejection.reason))
        for violation in rejection.violations:
            click.echo(f"      {_Color.red('•')} {violation}")
    click.echo()


@click.command(name="evaluate")
@click.argument("profile_spec", metavar="PROFILE")
@click.argument("proposal_path", metavar="PROPOSAL", type=click.Path())
@click.option(
    "--ledger", "ledger_path",
    type=click.Path(file_okay=False),
    envvar="RECONGUARD_LEDGER",
    default=None,
    help="Append allowed records to this ledger directory.",
)
@click.option(
    "--key", "key_path",
    type=click.Path(dir_okay=False),
    envvar="RECONGUARD_KEY",
    default=None,
    help="Ed25519 PEM key for ledger signing (created if missing). "
         "Defaults to signing_key.pem inside the ledger directory.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
def evaluate_command(
    profile_spec: str,
    proposal_path: str,
    ledger_path: Optional[str],
    key_path: Optional[str],
    fmt: str,
) -> None:
    """Evaluate PROPOSAL under PROFILE."""
    try:
        profile = resolve_profile(profile_spec)
        engine = ReconciliationEngine(profile)
        proposal = load_proposal(proposal_path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        for error in exc.errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(2)

    try:
        result = engine.reconcile(proposal)
    except MonotonicityViolation as exc:
        click.echo(f"DEFECT: {exc}", err=True)
        sys.exit(3)

    entry = None
    if result.allowed and ledger_path:
        try:
            ledger = AuditLedger(_load_key(key_path, ledger_path), ledger_path)
            entry = ledger.append(result.record)
        except (LedgerError, ValueError) as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(2)

    if fmt == "json":
        payload = result.to_dict()
        if entry is not None:
            payload["ledger_entry"] = {
                "sequence":    entry.sequence,
                "causal_hash": entry.causal_hash,
                "signature":   entry.signature,
            }
        click.echo(json.dumps(payload, indent=2))
    else:
        _print_human(result, profile, entry)

    sys.exit(0 if result.allowed else 1)
