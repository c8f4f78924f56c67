"""
Reconciliation engine: decides whether a proposed transition may proceed
under the active policy profile, and seals the decision into an
AuditRecord.

PROTOCOL INVARIANT: evaluation order is fixed.
    1. Context validation        → ContextInvalid
    2. Evidence validation       → EvidenceInvalid
    3. Guards, in stage order    → GuardRejection on the FIRST Forbid
           ceiling → monotonicity → envelope → direction → resource
    4. Prohibitive constraints   → PolicyConstraintViolated
    5. AuditRecord + self-check  → MonotonicityViolation (defect, fatal)
    6. Seal and return

Steps 1–4 are business outcomes and leave the engine untouched. Step 5
failing means the guards let through something the audit invariant
forbids; that is never reported as a normal decision.

CONCURRENCY: the active profile and its derived guards live in one
immutable _EngineSnapshot. evaluate() reads the snapshot reference once
and uses only that object, so replace_policy() installing snapshot N+1
mid-flight cannot affect an evaluation that started on snapshot N.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from reconguard.core.audit import AuditRecord, Outcome
from reconguard.core.decision import Decision, combine_all
from reconguard.core.exceptions import (
    ConfigError,
    ContextInvalid,
    EvidenceInvalid,
    GuardRejection,
    MonotonicityViolation,
    PolicyConstraintViolated,
    ProposalError,
    RejectionError,
)
from reconguard.core.models import Direction, Proposal
from reconguard.policy.guards import (
    CeilingGuard,
    DirectionGuard,
    EnvelopeGuard,
    MonotonicityGuard,
)
from reconguard.policy.microspace import MicrospaceGuard
from reconguard.policy.profile import PolicyProfile

logger = logging.getLogger("reconguard")

STAGE_ORDER = ("ceiling", "monotonicity", "envelope", "direction", "resource")


@dataclass(frozen=True)
class _EngineSnapshot:
    """A validated profile together with the guards derived from it."""
    profile:          PolicyProfile
    ceiling_guards:   Mapping[str, CeilingGuard]
    microspace_guard: MicrospaceGuard


@dataclass(frozen=True)
class GuardStep:
    """One pending guard evaluation in a plan."""
    stage:    str
    guard:    object
    run:      Callable[[], Decision]


@dataclass(frozen=True)
class Rejection:
    """Display form of a business rejection."""
    reason:     str
    source:     str
    category:   str
    stage:      str = ""
    violations: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "reason":     self.reason,
            "source":     self.source,
            "category":   self.category,
            "stage":      self.stage,
            "violations": list(self.violations),
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """Allowed (with a sealed record) or Rejected (with the reason)."""
    outcome:   Outcome
    record:    Optional[AuditRecord] = None
    rejection: Optional[Rejection] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOWED

    def to_dict(self) -> dict:
        return {
            "outcome":   self.outcome.value,
            "record":    self.record.to_dict() if self.record else None,
            "rejection": self.rejection.to_dict() if self.rejection else None,
        }


class ReconciliationEngine:
    """
    Owns one PolicyProfile (swappable) and the guard set derived from it.

    Construction is the only place structural policy defects are caught:
    an invalid profile raises ConfigError and no engine is created.
    """

    def __init__(self, profile: PolicyProfile):
        self._lock = threading.Lock()
        self._snapshot = self._build_snapshot(profile)
        self._counts: Dict[str, int] = {"allowed": 0, "rejected": 0, "defects": 0}
        logger.info(
            "Reconciliation engine initialized with profile %s v%s",
            profile.name, profile.version,
        )

    # ── Policy lifecycle ──────────────────────────────────────

    @property
    def profile(self) -> PolicyProfile:
        return self._snapshot.profile

    @staticmethod
    def _build_snapshot(profile: PolicyProfile) -> _EngineSnapshot:
        errors = profile.validate()
        if errors:
            raise ConfigError(
                f"Invalid policy profile '{profile.name}'",
                {"profile": profile.name, "errors": errors},
            )

        ceiling_guards = {
            metric: CeilingGuard(ceiling, profile.soft_ratio, name=metric)
            for metric, ceiling in profile.ceilings.items()
            if metric not in profile.monotonic_metrics
        }
        return _EngineSnapshot(
            profile=profile,
            ceiling_guards=MappingProxyType(ceiling_guards),
            microspace_guard=MicrospaceGuard(profile.resource_limits),
        )

    def replace_policy(self, profile: PolicyProfile) -> None:
        """
        Validate profile, then atomically install it with fresh guards.

        On ConfigError the previous profile stays active. Evaluations
        already running finish against the snapshot they started with.
        """
        snapshot = self._build_snapshot(profile)
        with self._lock:
            previous = self._snapshot.profile
            self._snapshot = snapshot
        logger.info(
            "Policy profile replaced: %s v%s -> %s v%s",
            previous.name, previous.version, profile.name, profile.version,
        )

    # ── Guard planning ────────────────────────────────────────

    def guard_plan(
        self,
        proposal: Proposal,
        snapshot: Optional[_EngineSnapshot] = None,
    ) -> Iterator[GuardStep]:
        """
        Yield the guard evaluations for proposal in stage order.

        Lazy: nothing is evaluated until a step's run() is called, so a
        caller that stops at the first Forbid never runs the rest.
        Guards only apply to metrics the proposal actually carries.
        """
        snapshot = snapshot or self._snapshot
        profile = snapshot.profile
        metrics = proposal.metrics

        # ceiling
        for metric, guard in snapshot.ceiling_guards.items():
            change = metrics.get(metric)
            if change is not None:
                yield GuardStep("ceiling", guard, _bind(guard.evaluate, change.proposed))

        # monotonicity
        for metric in profile.monotonic_metrics:
            change = metrics.get(metric)
            if change is not None:
                guard = MonotonicityGuard(profile.ceilings[metric], change.current, name=metric)
                yield GuardStep("monotonicity", guard, _bind(guard.evaluate, change.proposed))

        # envelope
        name_a, name_b = profile.envelope
        change_a, change_b = metrics.get(name_a), metrics.get(name_b)
        if change_a is not None and change_b is not None:
            guard = EnvelopeGuard(
                change_a.current, change_b.current,
                name="envelope", labels=(name_a, name_b),
            )
            yield GuardStep(
                "envelope", guard,
                _bind(guard.evaluate, change_a.proposed, change_b.proposed),
            )

        # direction
        if profile.enforce_directions:
            for metric, direction in profile.directions.items():
                change = metrics.get(metric)
                if change is None or direction is Direction.UNCONSTRAINED:
                    continue
                guard = DirectionGuard(direction, change.current, name=metric)
                yield GuardStep("direction", guard, _bind(guard.evaluate, change.proposed))

        # resource
        if proposal.activity is not None:
            state, request = proposal.activity
            micro = snapshot.microspace_guard
            yield GuardStep("resource", micro.density_guard,
                            _bind(micro.evaluate_density, state))
            yield GuardStep("resource", micro.power_guard,
                            _bind(micro.evaluate_power, state, request))
            yield GuardStep("resource", micro.duration_guard,
                            _bind(micro.evaluate_duration, state, request))

    # ── Evaluation ────────────────────────────────────────────

    def evaluate(self, proposal: Proposal) -> AuditRecord:
        """
        Evaluate proposal and return its sealed AuditRecord.

        Raises:
            ContextInvalid / EvidenceInvalid   input validation failed
            GuardRejection                     a guard returned Forbid
            PolicyConstraintViolated           enforced prohibitive constraint
            MonotonicityViolation              guards and self-check disagree
        """
        snapshot = self._snapshot
        profile = snapshot.profile
        logger.info(
            "Evaluating proposal for subject %s under %s",
            proposal.subject, profile.name,
        )

        # Step 1: context, plus the proposal's own values and microspace state
        context_errors = list(proposal.context.validate())
        context_errors.extend(proposal.validate())
        if context_errors:
            logger.warning("Proposal for %s rejected: invalid context %s",
                           proposal.subject, context_errors)
            raise ContextInvalid(
                "Proposal context is invalid",
                {"subject": proposal.subject, "violations": context_errors},
            )

        # Step 2: evidence
        evidence_errors = proposal.evidence.validate()
        if evidence_errors:
            logger.warning("Proposal for %s rejected: invalid evidence %s",
                           proposal.subject, evidence_errors)
            raise EvidenceInvalid(
                "Evidence bundle is invalid",
                {"subject": proposal.subject, "violations": evidence_errors},
            )

        # Step 3: guards, short-circuit on first Forbid
        observed: List[Decision] = []
        for step in self.guard_plan(proposal, snapshot):
            decision = step.run()
            logger.debug("Guard %s/%s -> %s", step.stage, decision.source, decision)
            if decision.is_forbid:
                logger.warning("Proposal for %s forbidden by %s guard: %s",
                               proposal.subject, step.stage, decision.reason)
                raise GuardRejection(
                    decision,
                    {"stage": step.stage, "subject": proposal.subject},
                )
            observed.append(decision)

        # Step 4: prohibitive constraints
        for constraint in profile.prohibitive_constraints():
            logger.warning("Proposal for %s blocked by constraint %s",
                           proposal.subject, constraint.name)
            raise PolicyConstraintViolated(
                constraint.name,
                {"stage": "constraint", "subject": proposal.subject},
            )

        # Step 5: record + independent self-check
        record = AuditRecord.create(
            subject=        proposal.subject,
            policy_profile= profile.name,
            context_id=     proposal.context.corridor_id,
            evidence_id=    proposal.evidence.bundle_id,
            description=    proposal.description,
        )
        record.set_outcome(combine_all(observed), proposal.metrics)

        if not record.check_monotonicity(profile):
            logger.error(
                "DEFECT: guards allowed %s but monotonicity self-check failed: %s",
                record.record_id, list(record.monotonicity_violations),
            )
            raise MonotonicityViolation(
                "Guards allowed a transition that violates the monotonicity invariant",
                {
                    "record_id":  record.record_id,
                    "subject":    proposal.subject,
                    "violations": list(record.monotonicity_violations),
                },
            )

        # Step 6: seal
        record.seal()
        logger.info("Proposal for %s APPROVED (%s) as %s",
                    proposal.subject, record.decision, record.record_id)
        return record

    def reconcile(self, proposal: Proposal) -> ReconciliationResult:
        """
        evaluate(), with business rejections returned as a Rejected result.

        MonotonicityViolation is not a business outcome and propagates.
        """
        try:
            record = self.evaluate(proposal)
        except MonotonicityViolation:
            self._count("defects")
            raise
        except ProposalError as exc:
            self._count("rejected")
            category = "context" if isinstance(exc, ContextInvalid) else "evidence"
            return ReconciliationResult(
                outcome=Outcome.REJECTED,
                rejection=Rejection(
                    reason=exc.message,
                    source=category,
                    category=category,
                    stage=category,
                    violations=tuple(exc.violations),
                ),
            )
        except RejectionError as exc:
            self._count("rejected")
            return ReconciliationResult(
                outcome=Outcome.REJECTED,
                rejection=Rejection(
                    reason=exc.message,
                    source=exc.source,
                    category=exc.category,
                    stage=exc.details.get("stage", ""),
                ),
            )
        self._count("allowed")
        return ReconciliationResult(outcome=Outcome.ALLOWED, record=record)

    def reconcile_many(
        self,
        proposals: Iterable[Proposal],
        max_workers: Optional[int] = None,
    ) -> List[ReconciliationResult]:
        """
        Reconcile unrelated proposals in parallel. Results keep input order.
        """
        proposals = list(proposals)
        if not proposals:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.reconcile, proposals))

    def _count(self, outcome: str) -> None:
        with self._lock:
            self._counts[outcome] += 1

    def get_stats(self) -> Dict[str, object]:
        """Describe the active snapshot and reconcile() outcome counts."""
        with self._lock:
            snapshot = self._snapshot
            counts = dict(self._counts)
        profile = snapshot.profile
        return {
            "profile":           profile.name,
            "profile_version":   profile.version,
            "profile_hash":      profile.profile_hash,
            "ceiling_guards":    sorted(snapshot.ceiling_guards),
            "monotonic_metrics": list(profile.monotonic_metrics),
            "envelope":          list(profile.envelope),
            "stage_order":       list(STAGE_ORDER),
            "decisions":         dict(counts),
        }


def _bind(fn: Callable[..., Decision], *args) -> Callable[[], Decision]:
    return lambda: fn(*args)
