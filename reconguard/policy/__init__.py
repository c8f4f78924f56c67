"""
ReconGuard Policy

Components:
- PolicyProfile: immutable, self-validating policy configuration
- Guards: ceiling, monotonicity, direction, envelope, resource-ceiling
- MicrospaceGuard: three resource gates over one microspace activity
- Governance validator: tiered CI gate for deployment policies
"""

from reconguard.policy.guards import (
    CeilingGuard,
    DirectionGuard,
    EnvelopeGuard,
    Guard,
    MonotonicityGuard,
    ResourceCeilingGuard,
)
from reconguard.policy.microspace import MicrospaceGuard, ResourceLimits
from reconguard.policy.profile import (
    NamedConstraint,
    PolicyProfile,
    Polarity,
    chile_neurorights,
    default_profile,
    eu_neurorights,
    phoenix_medical,
    profile_from_dict,
)
from reconguard.policy.governance import (
    GovernancePolicy,
    ValidationResult,
    validate_governance_policy,
    validate_profile,
)

__all__ = [
    "CeilingGuard",
    "DirectionGuard",
    "EnvelopeGuard",
    "Guard",
    "MonotonicityGuard",
    "ResourceCeilingGuard",
    "MicrospaceGuard",
    "ResourceLimits",
    "NamedConstraint",
    "PolicyProfile",
    "Polarity",
    "chile_neurorights",
    "default_profile",
    "eu_neurorights",
    "phoenix_medical",
    "profile_from_dict",
    "GovernancePolicy",
    "ValidationResult",
    "validate_governance_policy",
    "validate_profile",
]
