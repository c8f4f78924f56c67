"""
reconguard/core/audit.py

AuditRecord: the sealed outcome of one allowed proposal.

Lifecycle:
    create()              → unsealed, no outcome
    set_outcome()         → decision + before/after snapshots (unsealed only)
    check_monotonicity()  → independent self-check against the profile
    seal()                → permanently immutable

Once sealed, every attribute assignment or deletion raises
SealedRecordError. Snapshots are frozen and held in a tuple, so there is
no in-place path around the seal either. Sealing twice is an error, never
a silent overwrite.

The self-check deliberately does not consult guards. It recomputes, per
snapshot, whether the transition moves in the direction the profile tags
for that metric and stays under the profile's ceiling for it. Guards and
self-check must agree; the engine treats disagreement as a defect.
"""

import hashlib
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from reconguard.core.canonical import canonicalize
from reconguard.core.decision import Decision
from reconguard.core.exceptions import MonotonicityViolation, SealedRecordError
from reconguard.core.models import Direction, MetricChange
from reconguard.core.time import audit_timestamp

RECORD_ID_PREFIX = "audit-"


class Outcome(Enum):
    ALLOWED  = "Allowed"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class MetricSnapshot:
    """One metric's value before and after the recorded transition."""
    name:   str
    before: float
    after:  float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "before": self.before, "after": self.after}


@dataclass
class AuditRecord:
    """Decision record for one proposal. See module docstring for lifecycle."""

    record_id:               str
    subject:                 str
    policy_profile:          str
    created_at:              str
    context_id:              str = ""
    evidence_id:             str = ""
    description:             str = ""
    outcome:                 Optional[Outcome] = None
    decision:                Optional[Decision] = None
    metrics:                 Tuple[MetricSnapshot, ...] = ()
    monotonicity_ok:         bool = False
    monotonicity_violations: Tuple[str, ...] = ()
    _sealed:                 bool = field(default=False, repr=False)

    # ── Seal enforcement ──────────────────────────────────────

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("_sealed", False):
            raise SealedRecordError(
                f"Audit record is sealed; cannot set '{name}'",
                {"record_id": self.__dict__.get("record_id")},
            )
        super().__setattr__(name, value)

    def __delattr__(self, name: str) -> None:
        if self.__dict__.get("_sealed", False):
            raise SealedRecordError(
                f"Audit record is sealed; cannot delete '{name}'",
                {"record_id": self.record_id},
            )
        super().__delattr__(name)

    @property
    def sealed(self) -> bool:
        return self._sealed

    # ── Constructor ───────────────────────────────────────────

    @classmethod
    def create(
        cls,
        subject:        str,
        policy_profile: str,
        context_id:     str = "",
        evidence_id:    str = "",
        description:    str = "",
    ) -> "AuditRecord":
        return cls(
            record_id=      f"{RECORD_ID_PREFIX}{uuid.uuid4()}",
            subject=        subject,
            policy_profile= policy_profile,
            created_at=     audit_timestamp(),
            context_id=     context_id,
            evidence_id=    evidence_id,
            description=    description,
        )

    # ── Mutation (unsealed only) ──────────────────────────────

    def set_outcome(
        self,
        decision: Decision,
        metrics:  Union[Mapping[str, MetricChange], Iterable[MetricSnapshot]],
    ) -> None:
        """
        Record the composed decision and the before/after snapshots.

        A Forbid never reaches an audit record: forbidden proposals are
        rejected before a record exists.
        """
        self._require_unsealed("set_outcome")
        if decision.is_forbid:
            raise ValueError(
                f"Forbid cannot be recorded as an allowed outcome: {decision}"
            )

        if isinstance(metrics, Mapping):
            snapshots = tuple(
                MetricSnapshot(name, change.current, change.proposed)
                for name, change in metrics.items()
            )
        else:
            snapshots = tuple(metrics)

        self.outcome                 = Outcome.ALLOWED
        self.decision                = decision
        self.metrics                 = snapshots
        self.monotonicity_ok         = False
        self.monotonicity_violations = ()

    def check_monotonicity(self, profile) -> bool:
        """
        Recompute invariant compliance of every snapshot against profile.

        profile must expose direction_for(metric) and ceiling_for(metric).
        Stores and returns the verdict.
        """
        self._require_unsealed("check_monotonicity")
        if self.outcome is None:
            raise ValueError("Cannot check monotonicity before set_outcome()")

        violations: List[str] = []
        for snap in self.metrics:
            direction: Direction = profile.direction_for(snap.name)
            if not direction.permits(snap.before, snap.after):
                violations.append(
                    f"{snap.name}: {snap.before} -> {snap.after} violates "
                    f"{direction.value}"
                )
            ceiling = profile.ceiling_for(snap.name)
            if ceiling is not None and not snap.after <= ceiling:
                violations.append(
                    f"{snap.name}: {snap.after} exceeds ceiling {ceiling}"
                )

        self.monotonicity_violations = tuple(violations)
        self.monotonicity_ok         = not violations
        return self.monotonicity_ok

    def respects_monotonicity(self) -> bool:
        return self.monotonicity_ok

    def seal(self) -> "AuditRecord":
        """
        One-time transition to immutable. Returns self.

        Requires an outcome and a passing self-check.
        """
        self._require_unsealed("seal")
        if self.outcome is None or self.decision is None:
            raise ValueError("Cannot seal an audit record without an outcome")
        if not self.monotonicity_ok:
            raise MonotonicityViolation(
                "Cannot seal an audit record that fails the monotonicity self-check",
                {
                    "record_id":  self.record_id,
                    "violations": list(self.monotonicity_violations),
                },
            )
        self._sealed = True
        return self

    def _require_unsealed(self, operation: str) -> None:
        if self._sealed:
            raise SealedRecordError(
                f"Audit record is sealed; {operation}() not permitted",
                {"record_id": self.record_id},
            )

    # ── Serialization ─────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id":              self.record_id,
            "subject":         self.subject,
            "policy_profile":  self.policy_profile,
            "outcome":         self.outcome.value if self.outcome else None,
            "decision":        self.decision.to_dict() if self.decision else None,
            "metrics":         [snap.to_dict() for snap in self.metrics],
            "monotonicity_ok": self.monotonicity_ok,
            "created_at":      self.created_at,
            "context_id":      self.context_id,
            "evidence_id":     self.evidence_id,
            "description":     self.description,
        }

    def canonical_bytes(self) -> bytes:
        """
        RFC 8785 bytes of to_dict(). Only sealed records have canonical
        bytes; this is what an external signer or ledger receives.
        """
        if not self._sealed:
            raise ValueError("Only sealed audit records have canonical bytes")
        return canonicalize(self.to_dict())

    def record_hash(self) -> str:
        return hashlib.sha256(self.canonical_bytes()).hexdigest()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "AuditRecord":
        """
        Rebuild a sealed record from its serialized form (ledger replay).
        Trusts the data; callers verify signatures and hashes separately.
        """
        record = AuditRecord(
            record_id=       data["id"],
            subject=         data["subject"],
            policy_profile=  data["policy_profile"],
            created_at=      data["created_at"],
            context_id=      data.get("context_id", ""),
            evidence_id=     data.get("evidence_id", ""),
            description=     data.get("description", ""),
            outcome=         Outcome(data["outcome"]) if data.get("outcome") else None,
            decision=        Decision.from_dict(data["decision"]) if data.get("decision") else None,
            metrics=         tuple(
                MetricSnapshot(m["name"], m["before"], m["after"])
                for m in data.get("metrics", [])
            ),
            monotonicity_ok= data.get("monotonicity_ok", False),
        )
        record._sealed = True
        return record
