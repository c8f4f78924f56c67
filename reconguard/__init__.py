"""
reconguard/__init__.py

ReconGuard: Guard Composition & Audit Reconciliation Engine

Graded guards (ceiling, monotonicity, envelope, direction, microspace
resources) are composed under a fixed precedence into one decision per
proposal. Allowed proposals are sealed into AuditRecords that re-check
the monotonicity invariant independently of the guards, and may be
appended to a signed, hash-chained ledger.
"""

__version__ = "0.1.0"

from reconguard.core.decision import Decision, DecisionKind, combine, combine_all
from reconguard.core.models import (
    ActivityRequest,
    CorridorContext,
    Direction,
    EvidenceBundle,
    EvidenceDomains,
    EvidenceTag,
    MetricChange,
    MicrospaceState,
    Proposal,
)
from reconguard.core.audit import AuditRecord, MetricSnapshot, Outcome
from reconguard.core.exceptions import (
    ConfigError,
    ContextInvalid,
    EvidenceInvalid,
    GuardRejection,
    MonotonicityViolation,
    PolicyConstraintViolated,
    ReconGuardError,
    SealedRecordError,
)
from reconguard.core.crypto import Ed25519KeyManager
from reconguard.policy.profile import PolicyProfile, default_profile
from reconguard.reconciliation.engine import ReconciliationEngine, ReconciliationResult
from reconguard.ledger.ledger import AuditLedger

__all__ = [
    # Decisions
    "Decision",
    "DecisionKind",
    "combine",
    "combine_all",
    # Proposal model
    "ActivityRequest",
    "CorridorContext",
    "Direction",
    "EvidenceBundle",
    "EvidenceDomains",
    "EvidenceTag",
    "MetricChange",
    "MicrospaceState",
    "Proposal",
    # Policy + engine
    "PolicyProfile",
    "default_profile",
    "ReconciliationEngine",
    "ReconciliationResult",
    # Audit
    "AuditRecord",
    "MetricSnapshot",
    "Outcome",
    "AuditLedger",
    "Ed25519KeyManager",
    # Errors
    "ReconGuardError",
    "ConfigError",
    "ContextInvalid",
    "EvidenceInvalid",
    "GuardRejection",
    "MonotonicityViolation",
    "PolicyConstraintViolated",
    "SealedRecordError",
]
