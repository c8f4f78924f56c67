"""
reconguard/core/models.py

Proposal-side data model.

A Proposal is built by the caller for each decision request and is never
persisted by the engine. It carries:

    subject      : identifier of whoever the transition applies to
    context      : CorridorContext (jurisdiction / corridor)
    evidence     : EvidenceBundle backing the change
    metrics      : ordered mapping  name → MetricChange(current, proposed)
    activity     : optional (MicrospaceState, ActivityRequest) for the
                   resource-ceiling stage

Context and evidence each expose validate() → List[str]. An empty list
means valid. Every violated invariant is reported, not just the first.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from reconguard.core.time import audit_timestamp

MAX_EVIDENCE_TAGS = 20


def is_finite_number(value: Any) -> bool:
    """int or float, not bool, not NaN or infinite."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


# ─────────────────────────────────────────────────────────────
# Metrics
# ─────────────────────────────────────────────────────────────

class Direction(Enum):
    """Allowed direction of a tracked metric across one transition"""
    NON_INCREASING = "non_increasing"
    NON_DECREASING = "non_decreasing"
    UNCONSTRAINED  = "unconstrained"

    def permits(self, before: float, after: float) -> bool:
        if self is Direction.NON_INCREASING:
            return after <= before
        if self is Direction.NON_DECREASING:
            return after >= before
        return True


@dataclass(frozen=True)
class MetricChange:
    """A (current, proposed) pair for one metric."""
    current:  float
    proposed: float

    @property
    def delta(self) -> float:
        return self.proposed - self.current


# ─────────────────────────────────────────────────────────────
# Corridor context
# ─────────────────────────────────────────────────────────────

class ConsentStatus(Enum):
    """Community consent (FPIC) status for a corridor"""
    NOT_REQUIRED = "not_required"
    PENDING      = "pending"
    GRANTED      = "granted"
    DENIED       = "denied"
    REVOKED      = "revoked"


@dataclass(frozen=True)
class ImpactMetrics:
    """Normalized [0, 1] ecological impact figures for a corridor."""
    climate:         float = 0.0
    biodiversity:    float = 0.0
    fragility:       float = 0.0
    corridor_safety: float = 1.0
    service:         float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "climate":         self.climate,
            "biodiversity":    self.biodiversity,
            "fragility":       self.fragility,
            "corridor_safety": self.corridor_safety,
            "service":         self.service,
        }


@dataclass
class CorridorContext:
    """Jurisdiction/corridor a proposal is evaluated in."""
    corridor_id:    str
    name:           str = ""
    jurisdictions:  List[str] = field(default_factory=list)
    consent_status: ConsentStatus = ConsentStatus.NOT_REQUIRED
    impact:         ImpactMetrics = field(default_factory=ImpactMetrics)

    def validate(self) -> List[str]:
        errors: List[str] = []

        if not self.corridor_id or not self.corridor_id.strip():
            errors.append("corridor_id must not be empty")

        if not self.jurisdictions:
            errors.append("corridor must declare at least one jurisdiction")
        elif any(not j or not j.strip() for j in self.jurisdictions):
            errors.append("jurisdiction entries must not be blank")

        if self.consent_status in (ConsentStatus.DENIED, ConsentStatus.REVOKED):
            errors.append(
                f"community consent is {self.consent_status.value}"
            )

        for metric, value in self.impact.as_dict().items():
            if not 0.0 <= value <= 1.0:
                errors.append(
                    f"impact metric '{metric}' must be in [0.0, 1.0], got {value}"
                )

        return errors

    @staticmethod
    def from_dict(data: dict) -> "CorridorContext":
        return CorridorContext(
            corridor_id=data.get("corridor_id", ""),
            name=data.get("name", ""),
            jurisdictions=list(data.get("jurisdictions", [])),
            consent_status=ConsentStatus(
                data.get("consent_status", ConsentStatus.NOT_REQUIRED.value)
            ),
            impact=ImpactMetrics(**data.get("impact", {})),
        )


# ─────────────────────────────────────────────────────────────
# Evidence
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class EvidenceTag:
    """A single citation-backed evidence tag."""
    hex_id:      str
    domain:      str
    description: str = ""
    citation:    str = ""
    version:     str = "1.0"

    @staticmethod
    def from_dict(data: dict) -> "EvidenceTag":
        return EvidenceTag(
            hex_id=data["hex_id"],
            domain=data["domain"],
            description=data.get("description", ""),
            citation=data.get("citation", ""),
            version=data.get("version", "1.0"),
        )


@dataclass
class EvidenceBundle:
    """
    Citation-backed confidence input.

    Values are stored as given. Out-of-range factors are a validation
    error, not something to clamp silently.
    """
    bundle_id:        str
    knowledge_factor: float
    uncertainty:      float
    tags:             List[EvidenceTag] = field(default_factory=list)
    created_at:       str = field(default_factory=audit_timestamp)
    provenance:       Optional[Dict[str, str]] = None

    def add_tag(self, tag: EvidenceTag) -> None:
        self.tags.append(tag)

    def validate(self) -> List[str]:
        errors: List[str] = []

        if not self.bundle_id:
            errors.append("bundle id must not be empty")
        if not self.tags:
            errors.append("evidence bundle must contain at least one tag")
        elif len(self.tags) > MAX_EVIDENCE_TAGS:
            errors.append(
                f"evidence bundle cannot exceed {MAX_EVIDENCE_TAGS} tags, "
                f"got {len(self.tags)}"
            )
        if not 0.0 <= self.knowledge_factor <= 1.0:
            errors.append(
                f"knowledge factor must be in [0.0, 1.0], got {self.knowledge_factor}"
            )
        if not 0.0 <= self.uncertainty <= 1.0:
            errors.append(
                f"uncertainty must be in [0.0, 1.0], got {self.uncertainty}"
            )

        return errors

    def effective_margin(self) -> float:
        return self.knowledge_factor * (1.0 - self.uncertainty)

    @staticmethod
    def from_dict(data: dict) -> "EvidenceBundle":
        bundle = EvidenceBundle(
            bundle_id=data.get("bundle_id", ""),
            knowledge_factor=float(data["knowledge_factor"]),
            uncertainty=float(data["uncertainty"]),
            provenance=data.get("provenance"),
        )
        if "created_at" in data:
            bundle.created_at = data["created_at"]
        for tag in data.get("tags", []):
            if isinstance(tag, str):
                tag = EvidenceDomains.by_name(tag)
            else:
                tag = EvidenceTag.from_dict(tag)
            bundle.add_tag(tag)
        return bundle


class EvidenceDomains:
    """Standard biophysical evidence tags."""

    @staticmethod
    def atp() -> EvidenceTag:
        return EvidenceTag(
            "0x_atp_", "bio.atp.v1",
            "ATP consumption and mitochondrial coupling efficiency",
            "doi:10.1038/nrn3711",
        )

    @staticmethod
    def thermal() -> EvidenceTag:
        return EvidenceTag(
            "0x_thrm", "bio.thermal.v1",
            "Localized cortical temperature rise under stimulation",
            "doi:10.1016/j.neuroimage.2017.11.014",
        )

    @staticmethod
    def interface_coherence() -> EvidenceTag:
        return EvidenceTag(
            "0x_cohe", "bio.interface_coherence.v1",
            "Signal stability and artifact rates at the electrode interface",
            "doi:10.1109/TNSRE.2022.3141234",
        )

    @staticmethod
    def em_saturation() -> EvidenceTag:
        return EvidenceTag(
            "0x_emsat", "bio.em_saturation.v1",
            "Electromagnetic field saturation limits for neural safety",
            "doi:10.1109/TBME.2020.3001589",
        )

    @staticmethod
    def autonomic() -> EvidenceTag:
        return EvidenceTag(
            "0x_autos", "bio.autonomic.v1",
            "HRV, LF/HF ratio, and sympathetic/parasympathetic balance",
            "doi:10.1016/j.jelectrocard.2015.08.008",
        )

    @staticmethod
    def inflammation() -> EvidenceTag:
        return EvidenceTag(
            "0x_infl_", "bio.inflammation.v1",
            "IL-6, TNF-alpha, CRP, and BDNF levels under neural load",
            "doi:10.1038/s41577-021-00566-3",
        )

    @staticmethod
    def interoception() -> EvidenceTag:
        return EvidenceTag(
            "0x_intro", "neuro.interoception.v1",
            "Internal body state awareness and cognitive load integration",
            "doi:10.1038/s41583-021-00440-0",
        )

    @staticmethod
    def eco_impact() -> EvidenceTag:
        return EvidenceTag(
            "0x_ecoi_", "eco.impact.v1",
            "Ecological footprint and corridor biodiversity metrics",
            "doi:10.1038/s41467-021-22649-4",
        )

    @classmethod
    def by_name(cls, name: str) -> EvidenceTag:
        factory = getattr(cls, name, None)
        if factory is None or name.startswith("_") or name == "by_name":
            raise KeyError(f"Unknown evidence domain: {name}")
        return factory()


# ─────────────────────────────────────────────────────────────
# Microspace activity
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MicrospaceState:
    """Occupancy state of one microspace."""
    microspace_id:            str
    occupant_organism:        str
    volume_mm3:               float
    current_swarm_volume_mm3: float
    ecosystem_role:           str

    def density_fraction(self) -> float:
        """Swarm volume as a fraction of the microspace volume."""
        return self.current_swarm_volume_mm3 / self.volume_mm3

    def validate(self) -> List[str]:
        errors: List[str] = []
        if not self.microspace_id:
            errors.append("microspace_id must not be empty")
        if not self.occupant_organism:
            errors.append("occupant_organism must not be empty")
        if not is_finite_number(self.volume_mm3) or not self.volume_mm3 > 0:
            errors.append(f"volume_mm3 must be a positive finite number, got {self.volume_mm3}")
        if (
            not is_finite_number(self.current_swarm_volume_mm3)
            or not self.current_swarm_volume_mm3 >= 0
        ):
            errors.append(
                "current_swarm_volume_mm3 must be a non-negative finite number, "
                f"got {self.current_swarm_volume_mm3}"
            )
        return errors

    @staticmethod
    def from_dict(data: dict) -> "MicrospaceState":
        return MicrospaceState(
            microspace_id=data["microspace_id"],
            occupant_organism=data["occupant_organism"],
            volume_mm3=float(data["volume_mm3"]),
            current_swarm_volume_mm3=float(data["current_swarm_volume_mm3"]),
            ecosystem_role=data["ecosystem_role"],
        )


@dataclass(frozen=True)
class ActivityRequest:
    """A proposed swarm activity inside one microspace."""
    target_microspace_id: str
    energy_draw_mw:       float
    duration_secs:        float
    activity_type:        str = ""

    def validate(self) -> List[str]:
        errors: List[str] = []
        if not self.target_microspace_id:
            errors.append("target_microspace_id must not be empty")
        for attr in ("energy_draw_mw", "duration_secs"):
            value = getattr(self, attr)
            if not is_finite_number(value) or not value >= 0:
                errors.append(f"{attr} must be a non-negative finite number, got {value}")
        return errors

    @staticmethod
    def from_dict(data: dict) -> "ActivityRequest":
        return ActivityRequest(
            target_microspace_id=data["target_microspace_id"],
            energy_draw_mw=float(data["energy_draw_mw"]),
            duration_secs=float(data["duration_secs"]),
            activity_type=data.get("activity_type", ""),
        )


# ─────────────────────────────────────────────────────────────
# Proposal
# ─────────────────────────────────────────────────────────────

@dataclass
class Proposal:
    """One request to move a subject from its current to a proposed state."""
    subject:     str
    context:     CorridorContext
    evidence:    EvidenceBundle
    metrics:     Dict[str, MetricChange] = field(default_factory=dict)
    description: str = ""
    activity:    Optional[Tuple[MicrospaceState, ActivityRequest]] = None

    @classmethod
    def from_values(
        cls,
        subject:  str,
        context:  CorridorContext,
        evidence: EvidenceBundle,
        description: str = "",
        **pairs: Tuple[float, float],
    ) -> "Proposal":
        """
        Build a proposal from keyword (current, proposed) pairs.

            Proposal.from_values("did:x:1", ctx, ev, roh=(0.10, 0.14))
        """
        metrics = {
            name: MetricChange(float(current), float(proposed))
            for name, (current, proposed) in pairs.items()
        }
        return cls(
            subject=subject,
            context=context,
            evidence=evidence,
            metrics=metrics,
            description=description,
        )

    def validate(self) -> List[str]:
        """
        Structural checks on the proposal itself: every metric value is a
        finite number, and an attached activity is well formed and targets
        the microspace its state describes.
        """
        errors: List[str] = []
        if not self.subject or not str(self.subject).strip():
            errors.append("subject must not be empty")

        for name, change in self.metrics.items():
            for label, value in (("current", change.current), ("proposed", change.proposed)):
                if not is_finite_number(value):
                    errors.append(
                        f"metric '{name}' {label} value must be a finite number, got {value!r}"
                    )

        if self.activity is not None:
            state, request = self.activity
            errors.extend(state.validate())
            errors.extend(request.validate())
            if request.target_microspace_id != state.microspace_id:
                errors.append(
                    f"activity targets microspace '{request.target_microspace_id}' "
                    f"but state describes '{state.microspace_id}'"
                )
        return errors

    def change(self, metric: str) -> Optional[MetricChange]:
        return self.metrics.get(metric)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Proposal":
        metrics = {}
        for name, pair in data.get("metrics", {}).items():
            if isinstance(pair, Mapping):
                current, proposed = pair["current"], pair["proposed"]
            else:
                current, proposed = pair
            metrics[name] = MetricChange(float(current), float(proposed))

        activity = None
        if data.get("activity"):
            activity = (
                MicrospaceState.from_dict(data["activity"]["state"]),
                ActivityRequest.from_dict(data["activity"]["request"]),
            )

        return Proposal(
            subject=data["subject"],
            context=CorridorContext.from_dict(data.get("context", {})),
            evidence=EvidenceBundle.from_dict(data["evidence"]),
            metrics=metrics,
            description=data.get("description", ""),
            activity=activity,
        )
