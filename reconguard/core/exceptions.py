"""
ReconGuard Exception Hierarchy

All exceptions inherit from ReconGuardError for easy catching.

Business rejections (RejectionError subclasses) are the normal "no" of the
engine. MonotonicityViolation is a defect signal and must never be caught
and downgraded into a normal decision.
"""


class ReconGuardError(Exception):
    """Base exception for all ReconGuard errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(ReconGuardError):
    """Raised when a policy profile or config file is structurally invalid"""

    @property
    def errors(self) -> list:
        return list(self.details.get("errors", []))


class ProposalError(ReconGuardError):
    """Raised when a proposal's inputs fail validation before any guard runs"""

    @property
    def violations(self) -> list:
        return list(self.details.get("violations", []))


class ContextInvalid(ProposalError):
    """Raised when the corridor context of a proposal is invalid"""
    pass


class EvidenceInvalid(ProposalError):
    """Raised when the evidence bundle of a proposal is invalid"""
    pass


class RejectionError(ReconGuardError):
    """Normal business rejection of a proposal. Not an engine fault."""

    category = "rejection"

    @property
    def source(self) -> str:
        return self.details.get("source", "")


class GuardRejection(RejectionError):
    """Raised when a guard returns Forbid"""

    category = "guard"

    def __init__(self, decision, details: dict = None):
        merged = {"source": decision.source}
        merged.update(details or {})
        super().__init__(decision.reason, merged)
        self.decision = decision


class PolicyConstraintViolated(RejectionError):
    """Raised when an enforced prohibitive constraint blocks a proposal"""

    category = "constraint"

    def __init__(self, name: str, details: dict = None):
        merged = {"source": name}
        merged.update(details or {})
        super().__init__(f"Policy constraint violated: {name}", merged)
        self.name = name


class MonotonicityViolation(ReconGuardError):
    """Raised when guards allowed a transition the audit self-check rejects"""
    pass


class SealedRecordError(ReconGuardError):
    """Raised on any mutation attempt against a sealed audit record"""
    pass


class LedgerError(ReconGuardError):
    """Raised when ledger operations fail"""
    pass
