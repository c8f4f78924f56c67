"""
Load profiles, governance policies and proposals from YAML or JSON files.

Format is chosen by suffix: .yaml/.yml via PyYAML safe_load, .json via
the json module. Any parse or shape error becomes a ConfigError carrying
the path, so the CLI can report it uniformly.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from reconguard.core.exceptions import ConfigError
from reconguard.core.models import Proposal
from reconguard.policy.governance import GovernancePolicy
from reconguard.policy.profile import PolicyProfile, profile_from_dict

YAML_SUFFIXES = (".yaml", ".yml")

PathLike = Union[str, Path]


def load_document(path: PathLike) -> Dict[str, Any]:
    """Parse a YAML or JSON mapping from path."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"File not found: {path}", {"path": str(path)})

    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    try:
        if suffix in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        elif suffix == ".json":
            data = json.loads(text)
        else:
            raise ConfigError(
                f"Unsupported file type '{suffix}' (expected .yaml, .yml or .json)",
                {"path": str(path)},
            )
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not parse {path}: {exc}", {"path": str(path)}) from exc

    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a mapping at the top of {path}, got {type(data).__name__}",
            {"path": str(path)},
        )
    return data


def load_profile(path: PathLike) -> PolicyProfile:
    """
    Load a PolicyProfile. Structural validity is NOT checked here; call
    profile.validate() or hand it to the engine.
    """
    data = load_document(path)
    # A governance document may carry its profile under "profile"
    if "profile" in data and isinstance(data["profile"], dict):
        data = data["profile"]
    try:
        return profile_from_dict(data)
    except (KeyError, ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid profile in {path}: {exc}", {"path": str(path)}) from exc


def load_governance_policy(path: PathLike) -> GovernancePolicy:
    data = load_document(path)
    try:
        return GovernancePolicy.from_dict(data)
    except (KeyError, ValueError, TypeError) as exc:
        raise ConfigError(
            f"Invalid governance policy in {path}: {exc}", {"path": str(path)}
        ) from exc


def load_proposal(path: PathLike) -> Proposal:
    data = load_document(path)
    try:
        return Proposal.from_dict(data)
    except (KeyError, ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid proposal in {path}: {exc}", {"path": str(path)}) from exc
