"""
Guard definitions and evaluation logic.

A guard is anything with a `name` and an `evaluate(...)` method returning a
Decision. Guards are composed by the engine as an ordered list, never by
inheritance. Every guard here is a pure function of its constructor
arguments and the evaluate() inputs.
"""

from typing import Mapping, Optional, Protocol

from reconguard.core.decision import Decision, DecisionKind
from reconguard.core.models import Direction

DEFAULT_SOFT_RATIO     = 0.85
RESOURCE_SOFT_RATIO    = 0.8


class Guard(Protocol):
    """Capability: evaluate a proposed change into a graded Decision."""

    name: str

    def evaluate(self, *args, **kwargs) -> Decision: ...


class CeilingGuard:
    """Hard ceiling with a soft warning band below it."""

    def __init__(
        self,
        ceiling: float,
        soft_ratio: float = DEFAULT_SOFT_RATIO,
        name: str = "ceiling",
    ):
        self.ceiling = ceiling
        self.soft_ratio = soft_ratio
        self.name = name

    @property
    def soft_threshold(self) -> float:
        return max(self.ceiling * self.soft_ratio, 0.0)

    def evaluate(self, proposed: float) -> Decision:
        if not proposed <= self.ceiling:
            return Decision.forbid(
                f"{self.name} {proposed:.4g} exceeds ceiling {self.ceiling:.4g}",
                source=self.name,
            )
        if proposed > self.soft_threshold:
            return Decision.degrade(
                f"{self.name} {proposed:.4g} approaching ceiling "
                f"{self.ceiling:.4g} (soft threshold {self.soft_threshold:.4g})",
                source=self.name,
            )
        return Decision.allow(source=self.name)

    def __repr__(self) -> str:
        return f"CeilingGuard(name={self.name!r}, ceiling={self.ceiling}, soft_ratio={self.soft_ratio})"


class MonotonicityGuard:
    """
    Absolute ceiling on a tracked metric.

    Only the ceiling is enforced: the metric may move in either direction
    while it stays under the ceiling. Direction is DirectionGuard's job.
    """

    def __init__(self, ceiling: float, current: float, name: str = "monotonicity"):
        self.ceiling = ceiling
        self.current = current
        self.name = name

    def evaluate(self, proposed: float) -> Decision:
        if not proposed <= self.ceiling:
            return Decision.forbid(
                f"{self.name} {self.current:.4g} -> {proposed:.4g} "
                f"exceeds ceiling {self.ceiling:.4g}",
                source=self.name,
            )
        return Decision.allow(source=self.name)


class DirectionGuard:
    """Forbid a transition that moves against the declared Direction."""

    def __init__(self, direction: Direction, current: float, name: str = "direction"):
        self.direction = direction
        self.current = current
        self.name = name

    def evaluate(self, proposed: float) -> Decision:
        if not self.direction.permits(self.current, proposed):
            return Decision.forbid(
                f"{self.name} must be {self.direction.value}: "
                f"{self.current:.4g} -> {proposed:.4g}",
                source=self.name,
            )
        return Decision.allow(source=self.name)


class EnvelopeGuard:
    """
    Tighten-only constraint on a pair of exposure metrics.

    Each proposed value may shrink or hold. Growth of either one is
    forbidden.
    """

    def __init__(
        self,
        current_a: float,
        current_b: float,
        name: str = "envelope",
        labels: tuple = ("a", "b"),
    ):
        self.current_a = current_a
        self.current_b = current_b
        self.name = name
        self.labels = labels

    def evaluate(self, proposed_a: float, proposed_b: float) -> Decision:
        pairs = (
            (self.labels[0], self.current_a, proposed_a),
            (self.labels[1], self.current_b, proposed_b),
        )
        for label, current, proposed in pairs:
            if not proposed <= current:
                return Decision.forbid(
                    f"{self.name} may only tighten: {label} "
                    f"{current:.4g} -> {proposed:.4g}",
                    source=self.name,
                )
        return Decision.allow(source=self.name)


class ResourceCeilingGuard:
    """
    Category-keyed ceiling with a fallback default.

    The soft decision kind is fixed per resource dimension (density
    degrades precision, power and duration pause).
    """

    def __init__(
        self,
        ceiling_table: Mapping[str, float],
        default_ceiling: float,
        soft_kind: DecisionKind = DecisionKind.DEGRADE_PRECISION,
        soft_ratio: float = RESOURCE_SOFT_RATIO,
        unit: str = "",
        name: str = "resource",
    ):
        if soft_kind not in (DecisionKind.DEGRADE_PRECISION, DecisionKind.PAUSE_AND_REST):
            raise ValueError(f"soft_kind must be a soft decision, got {soft_kind}")
        self.ceiling_table = dict(ceiling_table)
        self.default_ceiling = default_ceiling
        self.soft_kind = soft_kind
        self.soft_ratio = soft_ratio
        self.unit = unit
        self.name = name

    def ceiling_for(self, category: Optional[str]) -> float:
        return self.ceiling_table.get(category, self.default_ceiling)

    def evaluate(self, category: str, value: float) -> Decision:
        ceiling = self.ceiling_for(category)
        unit = f" {self.unit}" if self.unit else ""
        source = f"{self.name}/{category}"

        if not value <= ceiling:
            return Decision.forbid(
                f"{self.name} {value:.4g}{unit} exceeds ceiling "
                f"{ceiling:.4g}{unit} for {category}",
                source=source,
            )
        if value > ceiling * self.soft_ratio:
            return Decision(
                self.soft_kind,
                f"{self.name} {value:.4g}{unit} approaching ceiling "
                f"{ceiling:.4g}{unit} for {category}",
                source,
            )
        return Decision.allow(source=source)
