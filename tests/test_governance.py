"""
tests/test_governance.py

Tiered governance validator. Every violated rule is reported.
"""

import pytest

from reconguard.policy.governance import (
    ConsentProfile,
    DatasetProvenancePolicy,
    GovernancePolicy,
    LoggingProfile,
    OversightPattern,
    RiskTier,
    UseCase,
    validate_governance_policy,
    validate_profile,
)
from reconguard.policy.profile import default_profile


def make_policy(**overrides) -> GovernancePolicy:
    """A High-risk policy that satisfies every rule, with overrides."""
    fields = dict(
        model_id=  "triage-model-v3",
        owner=     "clinical-ai-team",
        use_case=  UseCase.TRIAGE,
        risk_tier= RiskTier.HIGH,
        oversight= OversightPattern.HUMAN_REVIEW_REQUIRED,
        consent=   ConsentProfile(requires_individual_consent=True),
        logging=   LoggingProfile(
            min_retention_years=     7,
            tamper_evident_required= True,
            full_trace_required=     True,
        ),
    )
    fields.update(overrides)
    return GovernancePolicy(**fields)


class TestTierRules:

    def test_compliant_high_risk(self):
        result = validate_governance_policy(make_policy())
        assert result.ok, result.errors
        assert bool(result) is True

    def test_high_risk_collects_all_violations(self):
        result = validate_governance_policy(make_policy(
            oversight= OversightPattern.AUTONOMOUS_WITHIN_LIMITS,
            consent=   ConsentProfile(),
            logging=   LoggingProfile(min_retention_years=3),
        ))
        assert not result
        assert len(result.errors) == 5
        assert any("autonomous_within_limits" in e for e in result.errors)
        assert any("7 years" in e for e in result.errors)
        assert any("tamper-evident" in e for e in result.errors)
        assert any("full decision traces" in e for e in result.errors)
        assert any("individual consent" in e for e in result.errors)

    def test_medium_needs_five_years(self):
        result = validate_governance_policy(make_policy(
            risk_tier= RiskTier.MEDIUM,
            logging=   LoggingProfile(min_retention_years=4),
        ))
        assert result.errors == [
            "Medium risk deployments must retain logs for at least 5 years"
        ]

    def test_low_risk_may_be_autonomous(self):
        result = validate_governance_policy(make_policy(
            risk_tier= RiskTier.LOW,
            oversight= OversightPattern.AUTONOMOUS_WITHIN_LIMITS,
            consent=   ConsentProfile(),
            logging=   LoggingProfile(),
        ))
        assert result.ok, result.errors

    @pytest.mark.parametrize("tier", [RiskTier.HIGH, RiskTier.CRITICAL])
    def test_autonomy_disallowed_at_top_tiers(self, tier):
        result = validate_governance_policy(make_policy(
            risk_tier= tier,
            oversight= OversightPattern.AUTONOMOUS_WITHIN_LIMITS,
        ))
        assert len(result.errors) == 1


class TestCrossChecks:

    def test_community_data_requires_consent(self):
        result = validate_governance_policy(make_policy(touches_community_data=True))
        assert len(result.errors) == 1
        assert "community consent" in result.errors[0]

    def test_community_consent_granted(self):
        result = validate_governance_policy(make_policy(
            touches_community_data=True,
            consent=ConsentProfile(
                requires_individual_consent= True,
                community_consent_granted=   True,
            ),
        ))
        assert result.ok

    def test_biosignals_require_labelling(self):
        result = validate_governance_policy(make_policy(uses_biosignals=True))
        assert len(result.errors) == 1
        ok = validate_governance_policy(make_policy(
            uses_biosignals=True,
            provenance=DatasetProvenancePolicy(require_biosignal_labelling=True),
        ))
        assert ok.ok

    def test_provenance_flags(self):
        result = validate_governance_policy(make_policy(
            provenance=DatasetProvenancePolicy(
                require_source_and_license=            False,
                require_consent_and_jurisdiction_tags= False,
            ),
        ))
        assert len(result.errors) == 2

    def test_empty_identifiers(self):
        result = validate_governance_policy(make_policy(model_id=" ", owner=""))
        assert len(result.errors) == 2

    def test_wrong_types_reported(self):
        result = validate_governance_policy(make_policy(
            model_id=2024,
            logging=LoggingProfile(
                min_retention_years=     "seven",
                tamper_evident_required= True,
                full_trace_required=     True,
            ),
        ))
        assert result.errors == [
            "model_id must be a string, got 2024",
            "min_retention_years must be a number, got 'seven'",
        ]


class TestLayeredProfile:

    def test_profile_errors_prefixed(self):
        bad = default_profile().with_changes(
            ceilings={"bci": 1.5, "roh": 0.3}, minimum_rights=(),
        )
        result = validate_governance_policy(make_policy(profile=bad))
        assert "profile: ceiling 'bci' must be in [0.0, 1.0], got 1.5" in result.errors
        assert "profile: minimum rights floor must not be empty" in result.errors

    def test_validate_profile_shape(self):
        result = validate_profile(default_profile())
        assert result.ok
        assert result.to_dict() == {"ok": True, "errors": []}


class TestFromDict:

    def test_from_dict(self):
        policy = GovernancePolicy.from_dict({
            "model_id":  "m",
            "owner":     "o",
            "use_case":  "monitoring",
            "risk_tier": "medium",
            "oversight": "human_override_capable",
            "consent":   {"requires_individual_consent": True},
            "logging":   {"min_retention_years": 5},
            "profile":   {"name": "p", "version": "1", "authority": "a"},
        })
        assert policy.risk_tier is RiskTier.MEDIUM
        assert policy.profile.name == "p"
        assert validate_governance_policy(policy).ok
