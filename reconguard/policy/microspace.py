"""
Microspace resource guard.

Applies one ResourceCeilingGuard per resource dimension against a single
(MicrospaceState, ActivityRequest) pair:

    density   keyed by occupant organism   fraction of volume   DegradePrecision
    power     keyed by ecosystem role      mW                   PauseAndRest
    duration  keyed by occupant organism   seconds              PauseAndRest

UNITS: density is compared fraction-to-fraction. The state reports swarm
volume / microspace volume (0.01 == 1%) and the ceiling table holds the
same unit (0.005 == 0.5%). Nothing is scaled by 100 anywhere.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from reconguard.core.decision import Decision, DecisionKind, combine_all
from reconguard.core.models import ActivityRequest, MicrospaceState, is_finite_number
from reconguard.policy.guards import ResourceCeilingGuard

DENSITY_CEILINGS: Mapping[str, float] = MappingProxyType({
    "soil_rhizosphere":   0.005,
    "insect_thorax":      0.001,
    "coral_zooxanthella": 0.0005,
    "neural_tissue":      0.0001,
})
DEFAULT_DENSITY_CEILING = 0.001

POWER_LIMITS_MW: Mapping[str, float] = MappingProxyType({
    "nutrient_cycling": 10.0,
    "flight_metabolic": 1.0,
    "photosynthesis":   0.5,
})
DEFAULT_POWER_LIMIT_MW = 1.0

OCCUPANCY_LIMITS_SECS: Mapping[str, float] = MappingProxyType({
    "soil_rhizosphere":   3600,    # 60 min
    "insect_thorax":      1800,    # 30 min
    "coral_zooxanthella": 14400,   # 4 hrs
    "neural_tissue":      7200,    # 2 hrs
})
DEFAULT_OCCUPANCY_LIMIT_SECS = 3600


@dataclass(frozen=True)
class ResourceLimits:
    """Category-keyed ceiling tables, each with a fallback default."""
    density:          Mapping[str, float] = field(default_factory=lambda: DENSITY_CEILINGS)
    density_default:  float = DEFAULT_DENSITY_CEILING
    power:            Mapping[str, float] = field(default_factory=lambda: POWER_LIMITS_MW)
    power_default:    float = DEFAULT_POWER_LIMIT_MW
    duration:         Mapping[str, float] = field(default_factory=lambda: OCCUPANCY_LIMITS_SECS)
    duration_default: float = DEFAULT_OCCUPANCY_LIMIT_SECS

    def __post_init__(self):
        for attr in ("density", "power", "duration"):
            object.__setattr__(
                self, attr, MappingProxyType(dict(getattr(self, attr)))
            )

    def validate(self) -> List[str]:
        errors: List[str] = []
        for category, ceiling in self.density.items():
            if not is_finite_number(ceiling) or not 0.0 <= ceiling <= 1.0:
                errors.append(
                    f"density ceiling for '{category}' must be a fraction in "
                    f"[0.0, 1.0], got {ceiling!r}"
                )
        if not is_finite_number(self.density_default) or not 0.0 <= self.density_default <= 1.0:
            errors.append(
                f"default density ceiling must be in [0.0, 1.0], got {self.density_default!r}"
            )
        for label, table, default in (
            ("power", self.power, self.power_default),
            ("duration", self.duration, self.duration_default),
        ):
            for category, ceiling in table.items():
                if not is_finite_number(ceiling) or ceiling < 0:
                    errors.append(
                        f"{label} limit for '{category}' must be a non-negative number, "
                        f"got {ceiling!r}"
                    )
            if not is_finite_number(default) or default < 0:
                errors.append(
                    f"default {label} limit must be a non-negative number, got {default!r}"
                )
        return errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "density":          dict(self.density),
            "density_default":  self.density_default,
            "power":            dict(self.power),
            "power_default":    self.power_default,
            "duration":         dict(self.duration),
            "duration_default": self.duration_default,
        }

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "ResourceLimits":
        """
        Tables must be mappings (TypeError otherwise). Individual values are
        kept as given so validate() can report every bad one.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"resource_limits must be a mapping, got {type(data).__name__}")
        defaults = ResourceLimits()
        kwargs = {}
        for table in ("density", "power", "duration"):
            value = data.get(table, getattr(defaults, table))
            if not isinstance(value, Mapping):
                raise TypeError(
                    f"resource_limits.{table} must be a mapping, got {type(value).__name__}"
                )
            kwargs[table] = value
            kwargs[f"{table}_default"] = data.get(
                f"{table}_default", getattr(defaults, f"{table}_default")
            )
        return ResourceLimits(**kwargs)


class MicrospaceGuard:
    """Three resource gates over one microspace activity."""

    def __init__(self, limits: ResourceLimits = None):
        self.limits = limits or ResourceLimits()
        self.name = "microspace"
        self.density_guard = ResourceCeilingGuard(
            self.limits.density,
            self.limits.density_default,
            soft_kind=DecisionKind.DEGRADE_PRECISION,
            name="density",
        )
        self.power_guard = ResourceCeilingGuard(
            self.limits.power,
            self.limits.power_default,
            soft_kind=DecisionKind.PAUSE_AND_REST,
            unit="mW",
            name="power",
        )
        self.duration_guard = ResourceCeilingGuard(
            self.limits.duration,
            self.limits.duration_default,
            soft_kind=DecisionKind.PAUSE_AND_REST,
            unit="s",
            name="duration",
        )

    def evaluate_density(self, state: MicrospaceState) -> Decision:
        return self.density_guard.evaluate(
            state.occupant_organism, state.density_fraction()
        )

    def evaluate_power(self, state: MicrospaceState, request: ActivityRequest) -> Decision:
        return self.power_guard.evaluate(state.ecosystem_role, request.energy_draw_mw)

    def evaluate_duration(self, state: MicrospaceState, request: ActivityRequest) -> Decision:
        return self.duration_guard.evaluate(state.occupant_organism, request.duration_secs)

    def evaluate_all(
        self,
        state: MicrospaceState,
        request: ActivityRequest,
    ) -> List[Tuple[str, Decision]]:
        """Evaluate every dimension without short-circuiting, for display."""
        return [
            ("density", self.evaluate_density(state)),
            ("power", self.evaluate_power(state, request)),
            ("duration", self.evaluate_duration(state, request)),
        ]

    def evaluate(self, state: MicrospaceState, request: ActivityRequest) -> Decision:
        """
        Density, then power, then duration.

        Returns the first Forbid as soon as it is seen. Otherwise the
        first soft decision observed, or AllowFull.
        """
        observed = []
        for check in (
            lambda: self.evaluate_density(state),
            lambda: self.evaluate_power(state, request),
            lambda: self.evaluate_duration(state, request),
        ):
            decision = check()
            if decision.is_forbid:
                return decision
            observed.append(decision)
        return combine_all(observed)
