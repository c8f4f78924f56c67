"""
ReconGuard Reconciliation

Composes guard outcomes per proposal and seals allowed decisions into
audit records.
"""

from reconguard.reconciliation.engine import (
    ReconciliationEngine,
    ReconciliationResult,
    Rejection,
    STAGE_ORDER,
)

__all__ = [
    "ReconciliationEngine",
    "ReconciliationResult",
    "Rejection",
    "STAGE_ORDER",
]
