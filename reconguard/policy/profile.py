"""
Policy profiles: governance rules as swappable, self-validating artifacts.

A PolicyProfile is immutable. Mappings are stored read-only and sequences
as tuples, so a profile snapshot handed to an in-flight evaluation can
never change under it. "Updating" a profile means building a new one
(with_changes) and installing it with ReconciliationEngine.replace_policy.
"""

import hashlib
import json
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from reconguard.core.models import Direction, is_finite_number
from reconguard.core.time import audit_timestamp
from reconguard.policy.guards import DEFAULT_SOFT_RATIO
from reconguard.policy.microspace import ResourceLimits

DEFAULT_MINIMUM_RIGHTS = (
    "right_to_consent",
    "right_to_abort",
    "right_to_identity",
    "right_to_privacy",
)

DEFAULT_ENVELOPE = ("duty_cycle", "session_minutes")

# Hard constitutional ceiling on risk-of-harm
ROH_CEILING = 0.30

PROHIBITIVE_MARKER = "Forbidden"


class Polarity(Enum):
    """Whether an enforced constraint blocks proposals outright"""
    PERMISSIVE  = "permissive"
    PROHIBITIVE = "prohibitive"


@dataclass(frozen=True)
class NamedConstraint:
    """
    A named boolean constraint.

    Polarity defaults from the naming convention: a name containing
    "Forbidden" is prohibitive.
    """
    name:        str
    description: str = ""
    enforced:    bool = True
    polarity:    Optional[Polarity] = None

    def __post_init__(self):
        if self.polarity is None:
            polarity = (
                Polarity.PROHIBITIVE
                if isinstance(self.name, str) and PROHIBITIVE_MARKER in self.name
                else Polarity.PERMISSIVE
            )
            object.__setattr__(self, "polarity", polarity)

    @property
    def blocks(self) -> bool:
        return self.enforced and self.polarity is Polarity.PROHIBITIVE

    def to_dict(self) -> dict:
        return {
            "name":        self.name,
            "description": self.description,
            "enforced":    self.enforced,
            "polarity":    self.polarity.value,
        }

    @staticmethod
    def from_dict(data: dict) -> "NamedConstraint":
        polarity = data.get("polarity")
        return NamedConstraint(
            name=data["name"],
            description=data.get("description", ""),
            enforced=data.get("enforced", True),
            polarity=Polarity(polarity) if polarity else None,
        )


@dataclass(frozen=True)
class PolicyProfile:
    """A named, versioned configuration bundle governing one deployment."""

    name:               str
    version:            str
    authority:          str
    ceilings:           Mapping[str, float] = field(default_factory=dict)
    directions:         Mapping[str, Direction] = field(default_factory=dict)
    monotonic_metrics:  Tuple[str, ...] = ()
    envelope:           Tuple[str, ...] = DEFAULT_ENVELOPE
    constraints:        Tuple[NamedConstraint, ...] = ()
    minimum_rights:     Tuple[str, ...] = DEFAULT_MINIMUM_RIGHTS
    safe_regions:       Mapping[str, Tuple[float, ...]] = field(default_factory=dict)
    resource_limits:    ResourceLimits = field(default_factory=ResourceLimits)
    soft_ratio:         float = DEFAULT_SOFT_RATIO
    enforce_directions: bool = True
    effective_date:     str = field(default_factory=audit_timestamp)
    notes:              Optional[str] = None

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, "ceilings", MappingProxyType(dict(self.ceilings)))
        set_(self, "directions", MappingProxyType({
            metric: Direction(d) for metric, d in self.directions.items()
        }))
        set_(self, "monotonic_metrics", tuple(self.monotonic_metrics))
        set_(self, "envelope", tuple(self.envelope))
        set_(self, "constraints", tuple(self.constraints))
        set_(self, "minimum_rights", tuple(self.minimum_rights))
        set_(self, "safe_regions", MappingProxyType({
            jurisdiction: tuple(region)
            for jurisdiction, region in self.safe_regions.items()
        }))

    # ── Validation ────────────────────────────────────────────

    def validate(self) -> List[str]:
        """
        Return every structural defect of this profile. Empty means valid.

        Values of the wrong type (a numeric name, a word where a ceiling
        belongs) are reported like any other defect rather than raised.
        """
        errors: List[str] = []

        for label, value, problem in (
            ("name", self.name, "must not be empty"),
            ("authority", self.authority, "must be specified"),
            ("version", self.version, "must not be empty"),
        ):
            if not isinstance(value, str):
                errors.append(f"policy profile {label} must be a string, got {value!r}")
            elif not value.strip():
                errors.append(f"policy profile {label} {problem}")

        for metric, ceiling in self.ceilings.items():
            if not is_finite_number(ceiling):
                errors.append(
                    f"ceiling '{metric}' must be a finite number, got {ceiling!r}"
                )
            elif not 0.0 <= ceiling <= 1.0:
                errors.append(
                    f"ceiling '{metric}' must be in [0.0, 1.0], got {ceiling}"
                )

        if not self.minimum_rights:
            errors.append("minimum rights floor must not be empty")
        elif any(not isinstance(r, str) or not r.strip() for r in self.minimum_rights):
            errors.append("minimum rights entries must be non-blank strings")

        if not is_finite_number(self.soft_ratio) or not 0.0 < self.soft_ratio <= 1.0:
            errors.append(f"soft_ratio must be in (0.0, 1.0], got {self.soft_ratio!r}")

        if not isinstance(self.enforce_directions, bool):
            errors.append(
                f"enforce_directions must be true or false, got {self.enforce_directions!r}"
            )

        for metric in self.monotonic_metrics:
            if not isinstance(metric, str) or metric not in self.ceilings:
                errors.append(
                    f"monotonic metric '{metric}' has no ceiling"
                )

        if (
            not all(isinstance(m, str) and m for m in self.envelope)
            or len(self.envelope) != 2
            or len(set(self.envelope)) != 2
        ):
            errors.append(
                f"envelope must name two distinct metrics, got {list(self.envelope)}"
            )

        seen = set()
        for constraint in self.constraints:
            if not isinstance(constraint.name, str) or not constraint.name.strip():
                errors.append("constraint names must be non-blank strings")
            elif not isinstance(constraint.enforced, bool):
                errors.append(
                    f"constraint '{constraint.name}' enforced must be true or false, "
                    f"got {constraint.enforced!r}"
                )
            elif constraint.name in seen:
                errors.append(f"duplicate constraint '{constraint.name}'")
            else:
                seen.add(constraint.name)

        errors.extend(self.resource_limits.validate())
        return errors

    def is_valid(self) -> bool:
        return not self.validate()

    # ── Lookups ───────────────────────────────────────────────

    def ceiling_for(self, metric: str) -> Optional[float]:
        return self.ceilings.get(metric)

    def direction_for(self, metric: str) -> Direction:
        return self.directions.get(metric, Direction.UNCONSTRAINED)

    def is_constraint_enforced(self, name: str) -> bool:
        for constraint in self.constraints:
            if constraint.name == name:
                return constraint.enforced
        return False

    def prohibitive_constraints(self) -> List[NamedConstraint]:
        return [c for c in self.constraints if c.blocks]

    def safe_region(self, jurisdiction: str) -> Optional[Tuple[float, ...]]:
        return self.safe_regions.get(jurisdiction)

    @property
    def profile_hash(self) -> str:
        """Deterministic hash of the profile for versioning."""
        json_str = json.dumps(self.to_dict(), sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    # ── Copy-on-write ─────────────────────────────────────────

    def with_changes(self, **changes: Any) -> "PolicyProfile":
        return replace(self, **changes)

    def with_constraint(self, constraint: NamedConstraint) -> "PolicyProfile":
        return replace(self, constraints=self.constraints + (constraint,))

    # ── Serialization ─────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name":               self.name,
            "version":            self.version,
            "authority":          self.authority,
            "ceilings":           dict(self.ceilings),
            "directions":         {m: d.value for m, d in self.directions.items()},
            "monotonic_metrics":  list(self.monotonic_metrics),
            "envelope":           list(self.envelope),
            "constraints":        [c.to_dict() for c in self.constraints],
            "minimum_rights":     list(self.minimum_rights),
            "safe_regions":       {j: list(r) for j, r in self.safe_regions.items()},
            "resource_limits":    self.resource_limits.to_dict(),
            "soft_ratio":         self.soft_ratio,
            "enforce_directions": self.enforce_directions,
            "effective_date":     self.effective_date,
            "notes":              self.notes,
        }


_MAPPING_FIELDS  = ("ceilings", "directions", "safe_regions")
_SEQUENCE_FIELDS = ("monotonic_metrics", "envelope", "minimum_rights", "constraints")


def _shaped(data: Mapping[str, Any], key: str) -> Any:
    """
    data[key] with null read as empty. TypeError when a mapping field is
    not a mapping or a list field is not a list.
    """
    value = data[key]
    if key in _MAPPING_FIELDS:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise TypeError(f"'{key}' must be a mapping, got {type(value).__name__}")
    elif key in _SEQUENCE_FIELDS:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"'{key}' must be a list, got {type(value).__name__}")
    return value


def profile_from_dict(data: Mapping[str, Any]) -> PolicyProfile:
    """
    Build a profile from a plain mapping (parsed YAML or JSON).

    Missing optional keys take the profile defaults. A document whose shape
    is wrong (a string where a list of rights belongs, a scalar where a
    ceiling table belongs) raises TypeError or ValueError. Wrong values
    inside a well-shaped document are left to validate(), so they can all
    be reported at once.
    """
    version = data.get("version", "")
    kwargs: Dict[str, Any] = {
        "name":      data.get("name", ""),
        "version":   str(version) if isinstance(version, (int, float)) else version,
        "authority": data.get("authority", ""),
    }
    for key in _MAPPING_FIELDS + ("monotonic_metrics", "envelope", "minimum_rights"):
        if key in data:
            kwargs[key] = _shaped(data, key)
    if "constraints" in data:
        constraints = []
        for entry in _shaped(data, "constraints"):
            if not isinstance(entry, Mapping):
                raise TypeError(f"constraint entries must be mappings, got {entry!r}")
            constraints.append(NamedConstraint.from_dict(entry))
        kwargs["constraints"] = constraints
    if "safe_regions" in kwargs:
        for jurisdiction, region in kwargs["safe_regions"].items():
            if not isinstance(region, (list, tuple)):
                raise TypeError(
                    f"safe region for '{jurisdiction}' must be a list, got {region!r}"
                )
    if "resource_limits" in data:
        kwargs["resource_limits"] = ResourceLimits.from_dict(data["resource_limits"] or {})
    for key in ("soft_ratio", "enforce_directions", "effective_date", "notes"):
        if key in data:
            kwargs[key] = data[key]
    return PolicyProfile(**kwargs)


# ── Built-in profiles ─────────────────────────────────────────

def default_profile(
    name: str = "default",
    version: str = "1.0",
    authority: str = "local",
) -> PolicyProfile:
    """
    Baseline profile: BCI ceiling 0.25, risk-of-harm ceiling 0.30 guarded
    for monotonicity, duty cycle and session length tighten-only.
    """
    return PolicyProfile(
        name=name,
        version=version,
        authority=authority,
        ceilings={"bci": 0.25, "roh": ROH_CEILING},
        directions={
            "duty_cycle":      Direction.NON_INCREASING,
            "session_minutes": Direction.NON_INCREASING,
        },
        monotonic_metrics=("roh",),
    )


def eu_neurorights() -> PolicyProfile:
    """EU neurorights profile (GDPR-aligned)."""
    base = default_profile("EU_neurorights", "1.0", "EU_AI_Act")
    return base.with_changes(
        ceilings={**base.ceilings, "bci": 0.20},
        constraints=(
            NamedConstraint(
                "noSubconsciousTargeting",
                "Prohibit targeting subconscious neural processes",
            ),
            NamedConstraint(
                "noInnerStateGovernance",
                "Prohibit using inner-state biomarkers for governance",
            ),
        ),
    )


def chile_neurorights() -> PolicyProfile:
    """Chilean neurorights constitutional amendment profile."""
    base = default_profile("Chile_neurorights", "1.0", "Chilean_Constitutional_Amendment")
    return base.with_changes(
        constraints=(
            NamedConstraint("mentalPrivacy", "Protect mental privacy and freedom of thought"),
            NamedConstraint("psych_integrity", "Protect psychological integrity"),
        ),
    )


def phoenix_medical() -> PolicyProfile:
    """Phoenix medical corridor profile."""
    base = default_profile("Phoenix_medical", "1.0", "Phoenix_Medical_Authority")
    return base.with_changes(
        safe_regions={"US/Arizona": (0.0, 0.3, 0.0, 0.5)},
        notes="bounded-auto module scope, high risk class",
    )
