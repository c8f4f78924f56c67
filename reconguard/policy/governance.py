"""
Tiered governance-policy validator.

Checks a deployment's governance policy against risk-tier requirements
(oversight, log retention, tamper-evident storage, decision traces,
consent) and against consent/provenance cross-checks. Every violated rule
is collected; validation never stops at the first one.

Typical CI usage: fail the pipeline if not validate_governance_policy(p).ok
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from reconguard.core.models import is_finite_number
from reconguard.core.time import audit_timestamp
from reconguard.policy.profile import PolicyProfile, profile_from_dict


class RiskTier(Enum):
    LOW      = "low"
    MEDIUM   = "medium"
    HIGH     = "high"
    CRITICAL = "critical"


class UseCase(Enum):
    TRIAGE                   = "triage"
    DIAGNOSTIC_SUPPORT       = "diagnostic_support"
    TREATMENT_RECOMMENDATION = "treatment_recommendation"
    MONITORING               = "monitoring"
    ADMINISTRATIVE           = "administrative"
    RESEARCH_ONLY            = "research_only"


class OversightPattern(Enum):
    """How human oversight is wired into the workflow"""
    HUMAN_REVIEW_REQUIRED    = "human_review_required"
    HUMAN_OVERRIDE_CAPABLE   = "human_override_capable"
    AUTONOMOUS_WITHIN_LIMITS = "autonomous_within_limits"


@dataclass(frozen=True)
class TierRequirements:
    allowed_oversight:         FrozenSet[OversightPattern]
    min_retention_years:       int = 0
    tamper_evident_required:   bool = False
    full_trace_required:       bool = False
    individual_consent_required: bool = False


_HUMAN_IN_LOOP = frozenset({
    OversightPattern.HUMAN_REVIEW_REQUIRED,
    OversightPattern.HUMAN_OVERRIDE_CAPABLE,
})

TIER_REQUIREMENTS: Mapping[RiskTier, TierRequirements] = {
    RiskTier.LOW: TierRequirements(
        allowed_oversight=frozenset(OversightPattern),
    ),
    RiskTier.MEDIUM: TierRequirements(
        allowed_oversight=_HUMAN_IN_LOOP,
        min_retention_years=5,
        individual_consent_required=True,
    ),
    RiskTier.HIGH: TierRequirements(
        allowed_oversight=_HUMAN_IN_LOOP,
        min_retention_years=7,
        tamper_evident_required=True,
        full_trace_required=True,
        individual_consent_required=True,
    ),
    RiskTier.CRITICAL: TierRequirements(
        allowed_oversight=_HUMAN_IN_LOOP,
        min_retention_years=7,
        tamper_evident_required=True,
        full_trace_required=True,
        individual_consent_required=True,
    ),
}


@dataclass(frozen=True)
class ConsentProfile:
    requires_individual_consent: bool = False
    involves_community_data:     bool = False
    community_consent_granted:   bool = False


@dataclass(frozen=True)
class LoggingProfile:
    min_retention_years:     int = 0
    tamper_evident_required: bool = False
    full_trace_required:     bool = False


@dataclass(frozen=True)
class DatasetProvenancePolicy:
    require_source_and_license:            bool = True
    require_consent_and_jurisdiction_tags: bool = True
    require_biosignal_labelling:           bool = False


@dataclass
class GovernancePolicy:
    """Governance policy for one model/stack, optionally layered on a profile."""
    model_id:               str
    owner:                  str
    use_case:               UseCase
    risk_tier:              RiskTier
    oversight:              OversightPattern
    consent:                ConsentProfile = field(default_factory=ConsentProfile)
    logging:                LoggingProfile = field(default_factory=LoggingProfile)
    provenance:             DatasetProvenancePolicy = field(default_factory=DatasetProvenancePolicy)
    uses_biosignals:        bool = False
    touches_community_data: bool = False
    profile:                Optional[PolicyProfile] = None
    created_at:             str = field(default_factory=audit_timestamp)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "GovernancePolicy":
        profile = None
        if data.get("profile"):
            profile = profile_from_dict(data["profile"])
        return GovernancePolicy(
            model_id=data.get("model_id", ""),
            owner=data.get("owner", ""),
            use_case=UseCase(data["use_case"]),
            risk_tier=RiskTier(data["risk_tier"]),
            oversight=OversightPattern(data["oversight"]),
            consent=ConsentProfile(**data.get("consent", {})),
            logging=LoggingProfile(**data.get("logging", {})),
            provenance=DatasetProvenancePolicy(**data.get("provenance", {})),
            uses_biosignals=data.get("uses_biosignals", False),
            touches_community_data=data.get("touches_community_data", False),
            profile=profile,
        )


@dataclass
class ValidationResult:
    """
    Result of validate_governance_policy().

    Returned, not raised, so CI callers can print every error.
    bool(result) is True iff valid.
    """
    ok:     bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "errors": list(self.errors)}


def validate_governance_policy(policy: GovernancePolicy) -> ValidationResult:
    """Apply tier rules and cross-checks. Collects every violation."""
    errors: List[str] = []
    tier = policy.risk_tier
    rules = TIER_REQUIREMENTS[tier]
    tier_name = tier.value.capitalize()

    # 1. Identifiers
    for label, value in (("model_id", policy.model_id), ("owner", policy.owner)):
        if not isinstance(value, str):
            errors.append(f"{label} must be a string, got {value!r}")
        elif not value.strip():
            errors.append(f"{label} must not be empty")

    # 2. Oversight by tier
    if policy.oversight not in rules.allowed_oversight:
        errors.append(
            f"{policy.oversight.value} oversight is not allowed for {tier_name} risk"
        )

    # 3. Consent by tier
    if rules.individual_consent_required and not policy.consent.requires_individual_consent:
        errors.append(
            f"{tier_name} risk deployments must require individual consent/notice"
        )

    # 4. Community data sovereignty
    if policy.touches_community_data or policy.consent.involves_community_data:
        if not policy.consent.community_consent_granted:
            errors.append(
                "community consent must be granted before deploying models "
                "that touch community/indigenous data"
            )

    # 5. Logging by tier
    retention = policy.logging.min_retention_years
    if not is_finite_number(retention):
        errors.append(f"min_retention_years must be a number, got {retention!r}")
    elif retention < rules.min_retention_years:
        errors.append(
            f"{tier_name} risk deployments must retain logs for at least "
            f"{rules.min_retention_years} years"
        )
    if rules.tamper_evident_required and not policy.logging.tamper_evident_required:
        errors.append(
            f"{tier_name} risk deployments must use tamper-evident log storage"
        )
    if rules.full_trace_required and not policy.logging.full_trace_required:
        errors.append(
            f"{tier_name} risk deployments must store full decision traces"
        )

    # 6. Biosignal provenance
    if policy.uses_biosignals and not policy.provenance.require_biosignal_labelling:
        errors.append(
            "uses_biosignals requires biosignal labelling in dataset provenance"
        )

    # 7. General provenance
    if not policy.provenance.require_source_and_license:
        errors.append("training datasets must declare source and license")
    if not policy.provenance.require_consent_and_jurisdiction_tags:
        errors.append("training datasets must include consent and jurisdiction tags")

    # 8. Layered profile
    if policy.profile is not None:
        errors.extend(
            f"profile: {error}" for error in policy.profile.validate()
        )

    return ValidationResult(ok=not errors, errors=errors)


def validate_profile(profile: PolicyProfile) -> ValidationResult:
    """Structural profile check in the same pass/fail shape CI expects."""
    errors = profile.validate()
    return ValidationResult(ok=not errors, errors=errors)
