"""
tests/test_microspace.py

MicrospaceGuard: density (fraction of volume), power (mW) and duration (s).
"""

import pytest

from reconguard.core.decision import DecisionKind
from reconguard.policy.microspace import (
    DEFAULT_DENSITY_CEILING,
    DENSITY_CEILINGS,
    MicrospaceGuard,
    ResourceLimits,
)


@pytest.fixture
def guard():
    return MicrospaceGuard()


class TestDensity:

    def test_fraction_against_fraction(self, guard, make_activity):
        """1 mm3 of swarm in 1000 mm3 soil is 0.1%, under the 0.5% ceiling."""
        state, _ = make_activity(organism="soil_rhizosphere", swarm=1.0)
        assert state.density_fraction() == pytest.approx(0.001)
        assert guard.evaluate_density(state).is_allow

    def test_soft_band_degrades_precision(self, guard, make_activity):
        state, _ = make_activity(organism="soil_rhizosphere", swarm=4.5)
        assert guard.evaluate_density(state).kind is DecisionKind.DEGRADE_PRECISION

    def test_one_percent_in_soil_forbidden(self, guard, make_activity):
        state, _ = make_activity(organism="soil_rhizosphere", swarm=10.0)
        decision = guard.evaluate_density(state)
        assert decision.is_forbid
        assert decision.source == "density/soil_rhizosphere"

    def test_unknown_organism_uses_default(self, guard, make_activity):
        state, _ = make_activity(organism="lichen_mat", swarm=2.0)
        assert guard.density_guard.ceiling_for("lichen_mat") == DEFAULT_DENSITY_CEILING
        assert guard.evaluate_density(state).is_forbid

    def test_neural_tissue_is_strictest(self):
        assert DENSITY_CEILINGS["neural_tissue"] == min(DENSITY_CEILINGS.values())


class TestPowerAndDuration:

    def test_power_pause_band(self, guard, make_activity):
        state, request = make_activity(role="photosynthesis", energy=0.45)
        assert guard.evaluate_power(state, request).kind is DecisionKind.PAUSE_AND_REST

    def test_power_over_limit(self, guard, make_activity):
        state, request = make_activity(role="photosynthesis", energy=0.6)
        assert guard.evaluate_power(state, request).is_forbid

    def test_duration_bands(self, guard, make_activity):
        for duration, expected in (
            (1000, DecisionKind.ALLOW_FULL),
            (1500, DecisionKind.PAUSE_AND_REST),
            (2000, DecisionKind.FORBID),
        ):
            state, request = make_activity(organism="insect_thorax", duration=duration)
            assert guard.evaluate_duration(state, request).kind is expected


class TestComposition:

    def test_first_forbid_returned(self, guard, make_activity):
        """Density forbids first; duration would too, but density is reported."""
        state, request = make_activity(
            organism="insect_thorax", swarm=5.0, duration=5000,
        )
        decision = guard.evaluate(state, request)
        assert decision.is_forbid
        assert decision.source.startswith("density/")

    def test_first_soft_observed_wins(self, guard, make_activity):
        state, request = make_activity(
            organism="soil_rhizosphere", role="photosynthesis",
            swarm=4.5, energy=0.45,
        )
        assert guard.evaluate(state, request).kind is DecisionKind.DEGRADE_PRECISION

    def test_all_clear(self, guard, make_activity):
        state, request = make_activity()
        assert guard.evaluate(state, request).is_allow

    def test_evaluate_all_reports_every_dimension(self, guard, make_activity):
        state, request = make_activity(swarm=5.0, energy=5.0, duration=5000)
        results = guard.evaluate_all(state, request)
        assert [name for name, _ in results] == ["density", "power", "duration"]
        assert all(d.is_forbid for _, d in results)


class TestResourceLimits:

    def test_defaults_valid(self):
        assert ResourceLimits().validate() == []

    def test_percent_density_rejected(self):
        """0.5 meant as 0.5% is a unit error: density ceilings are fractions."""
        limits = ResourceLimits(density={"soil_rhizosphere": 5.0})
        errors = limits.validate()
        assert len(errors) == 1
        assert "soil_rhizosphere" in errors[0]

    def test_negative_limits_rejected(self):
        limits = ResourceLimits(power={"photosynthesis": -1.0}, duration_default=-5)
        assert len(limits.validate()) == 2

    def test_from_dict_overrides(self):
        limits = ResourceLimits.from_dict({"power": {"custom": 2.0}, "power_default": 0.5})
        assert limits.power["custom"] == 2.0
        assert limits.power_default == 0.5
        assert limits.density == DENSITY_CEILINGS

    def test_tables_read_only(self):
        with pytest.raises(TypeError):
            ResourceLimits().density["soil_rhizosphere"] = 1.0

    def test_custom_limits_flow_into_guard(self, make_activity):
        guard = MicrospaceGuard(ResourceLimits(power={"flight_metabolic": 10.0}))
        state, request = make_activity(energy=5.0)
        assert guard.evaluate_power(state, request).is_allow
