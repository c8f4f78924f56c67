"""
ReconGuard Ledger - Append-Only Audit Trail

Sealed audit records, signed and hash-chained.
"""

from reconguard.ledger.ledger import (
    AuditLedger,
    GENESIS_HASH,
    LedgerEntry,
    VerificationReport,
    read_entries,
    verify_entries,
)

__all__ = [
    "AuditLedger",
    "GENESIS_HASH",
    "LedgerEntry",
    "VerificationReport",
    "read_entries",
    "verify_entries",
]
