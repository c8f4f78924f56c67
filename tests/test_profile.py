"""
tests/test_profile.py

PolicyProfile validation, immutability and built-ins.
"""

import dataclasses

import pytest

from reconguard.core.models import Direction
from reconguard.policy.microspace import ResourceLimits
from reconguard.policy.profile import (
    ROH_CEILING,
    NamedConstraint,
    Polarity,
    PolicyProfile,
    chile_neurorights,
    default_profile,
    eu_neurorights,
    phoenix_medical,
    profile_from_dict,
)


class TestValidation:

    @pytest.mark.parametrize(
        "factory", [default_profile, eu_neurorights, chile_neurorights, phoenix_medical]
    )
    def test_builtins_valid(self, factory):
        assert factory().validate() == []

    def test_reports_every_error(self):
        """An out-of-range ceiling and an empty rights floor are both reported."""
        profile = default_profile().with_changes(
            ceilings={"bci": 1.5, "roh": 0.30},
            minimum_rights=(),
        )
        errors = profile.validate()
        assert "ceiling 'bci' must be in [0.0, 1.0], got 1.5" in errors
        assert "minimum rights floor must not be empty" in errors
        assert not profile.is_valid()

    def test_identity_fields_required(self):
        profile = PolicyProfile(name="", version="", authority="")
        assert len(profile.validate()) == 3

    def test_monotonic_metric_needs_ceiling(self):
        profile = default_profile().with_changes(monotonic_metrics=("roh", "fatigue"))
        assert profile.validate() == ["monotonic metric 'fatigue' has no ceiling"]

    def test_envelope_needs_two_distinct_metrics(self):
        profile = default_profile().with_changes(envelope=("duty_cycle", "duty_cycle"))
        assert len(profile.validate()) == 1

    def test_duplicate_constraint(self):
        c = NamedConstraint("mentalPrivacy")
        profile = default_profile().with_changes(constraints=(c, c))
        assert profile.validate() == ["duplicate constraint 'mentalPrivacy'"]

    def test_resource_limit_errors_included(self):
        profile = default_profile().with_changes(
            resource_limits=ResourceLimits(density_default=2.0),
        )
        assert len(profile.validate()) == 1

    def test_soft_ratio_range(self):
        profile = default_profile().with_changes(soft_ratio=0.0)
        assert len(profile.validate()) == 1

    def test_wrong_types_are_reported_not_raised(self):
        profile = default_profile().with_changes(
            name=2024,
            authority=["board"],
            ceilings={"bci": "high", "roh": 0.30},
            minimum_rights=("right_to_consent", 7),
            soft_ratio="most",
        )
        errors = profile.validate()
        assert "policy profile name must be a string, got 2024" in errors
        assert "policy profile authority must be a string, got ['board']" in errors
        assert "ceiling 'bci' must be a finite number, got 'high'" in errors
        assert "minimum rights entries must be non-blank strings" in errors
        assert len(errors) == 5

    def test_nan_ceiling_rejected(self):
        profile = default_profile().with_changes(ceilings={"bci": float("nan"), "roh": 0.30})
        assert len(profile.validate()) == 1

    def test_non_numeric_resource_limit(self):
        profile = default_profile().with_changes(
            resource_limits=ResourceLimits(power={"flight_metabolic": "high"}),
        )
        assert profile.validate() == [
            "power limit for 'flight_metabolic' must be a non-negative number, got 'high'"
        ]


class TestImmutability:

    def test_fields_frozen(self, profile):
        with pytest.raises(dataclasses.FrozenInstanceError):
            profile.name = "other"

    def test_mappings_read_only(self, profile):
        with pytest.raises(TypeError):
            profile.ceilings["bci"] = 0.9

    def test_with_changes_leaves_original(self, profile):
        stricter = profile.with_changes(ceilings={"bci": 0.10, "roh": 0.30})
        assert profile.ceiling_for("bci") == 0.25
        assert stricter.ceiling_for("bci") == 0.10

    def test_sequences_become_tuples(self):
        profile = PolicyProfile("p", "1", "a", minimum_rights=["x"], envelope=["a", "b"])
        assert profile.minimum_rights == ("x",)
        assert profile.envelope == ("a", "b")

    def test_profile_hash(self, profile):
        same = profile.with_changes()
        other = profile.with_changes(version="2.0")
        assert profile.profile_hash == same.profile_hash
        assert profile.profile_hash != other.profile_hash


class TestLookups:

    def test_default_profile_shape(self, profile):
        assert profile.ceiling_for("roh") == ROH_CEILING
        assert profile.monotonic_metrics == ("roh",)
        assert profile.direction_for("duty_cycle") is Direction.NON_INCREASING
        assert profile.direction_for("roh") is Direction.UNCONSTRAINED
        assert profile.ceiling_for("unknown") is None

    def test_eu_is_stricter_on_bci(self):
        assert eu_neurorights().ceiling_for("bci") == 0.20
        assert eu_neurorights().is_constraint_enforced("noSubconsciousTargeting")

    def test_safe_region(self):
        assert phoenix_medical().safe_region("US/Arizona") == (0.0, 0.3, 0.0, 0.5)
        assert phoenix_medical().safe_region("EU") is None


class TestNamedConstraint:

    def test_polarity_from_name(self):
        assert NamedConstraint("ForbiddenDeepStimulation").polarity is Polarity.PROHIBITIVE
        assert NamedConstraint("mentalPrivacy").polarity is Polarity.PERMISSIVE

    def test_explicit_polarity_wins(self):
        c = NamedConstraint("noRemoteControl", polarity=Polarity.PROHIBITIVE)
        assert c.blocks

    def test_unenforced_never_blocks(self):
        assert not NamedConstraint("ForbiddenX", enforced=False).blocks

    def test_prohibitive_constraints(self, profile):
        p = profile.with_constraint(NamedConstraint("ForbiddenX"))
        assert [c.name for c in p.prohibitive_constraints()] == ["ForbiddenX"]
        assert eu_neurorights().prohibitive_constraints() == []


class TestFromDict:

    def test_from_plain_mapping(self):
        profile = profile_from_dict({
            "name":              "custom",
            "version":           1,
            "authority":         "lab",
            "ceilings":          {"bci": 0.2, "roh": 0.3},
            "directions":        {"duty_cycle": "non_increasing"},
            "monotonic_metrics": ["roh"],
            "constraints":       [{"name": "ForbiddenX", "enforced": False}],
            "resource_limits":   {"power_default": 2.0},
            "enforce_directions": False,
        })
        assert profile.version == "1"
        assert profile.direction_for("duty_cycle") is Direction.NON_INCREASING
        assert profile.constraints[0].polarity is Polarity.PROHIBITIVE
        assert profile.resource_limits.power_default == 2.0
        assert profile.enforce_directions is False
        assert profile.validate() == []

    def test_dict_round_trip(self):
        original = eu_neurorights()
        rebuilt = profile_from_dict(original.to_dict())
        assert rebuilt.profile_hash == original.profile_hash
