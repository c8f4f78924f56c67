"""
tests/test_loader.py

YAML/JSON loading of profiles, governance policies and proposals.
"""

import json

import pytest
import yaml

from reconguard.core.exceptions import ConfigError
from reconguard.core.models import Direction, MetricChange
from reconguard.policy.loader import (
    load_document,
    load_governance_policy,
    load_profile,
    load_proposal,
)


PROFILE_YAML = """
name: Lab_profile
version: "2.1"
authority: Lab_Ethics_Board
ceilings:
  bci: 0.2
  roh: 0.3
directions:
  duty_cycle: non_increasing
  session_minutes: non_increasing
monotonic_metrics: [roh]
constraints:
  - name: ForbiddenDeepStimulation
    enforced: false
resource_limits:
  power:
    flight_metabolic: 2.0
"""

PROPOSAL = {
    "subject": "did:test:42",
    "context": {
        "corridor_id":    "corridor-1",
        "jurisdictions":  ["EU"],
        "consent_status": "granted",
    },
    "evidence": {
        "bundle_id":        "bundle-1",
        "knowledge_factor": 0.9,
        "uncertainty":      0.1,
        "tags":             ["atp", "thermal"],
    },
    "metrics": {"roh": [0.10, 0.14]},
}


class TestLoadProfile:

    def test_yaml(self, tmp_path):
        path = tmp_path / "profile.yaml"
        path.write_text(PROFILE_YAML)
        profile = load_profile(path)
        assert profile.name == "Lab_profile"
        assert profile.version == "2.1"
        assert profile.direction_for("duty_cycle") is Direction.NON_INCREASING
        assert profile.resource_limits.power["flight_metabolic"] == 2.0
        assert profile.validate() == []

    def test_json(self, tmp_path):
        path = tmp_path / "profile.json"
        path.write_text(json.dumps(yaml.safe_load(PROFILE_YAML)))
        assert load_profile(path).ceiling_for("bci") == 0.2

    def test_nested_under_profile_key(self, tmp_path):
        path = tmp_path / "governance.yml"
        path.write_text(yaml.safe_dump({"model_id": "m", "profile": yaml.safe_load(PROFILE_YAML)}))
        assert load_profile(path).name == "Lab_profile"

    def test_invalid_profile_still_loads(self, tmp_path):
        """Structural problems are validate()'s job, so they can all be listed."""
        path = tmp_path / "bad.yaml"
        path.write_text("name: bad\nversion: '1'\nauthority: a\nceilings: {bci: 1.5}\nminimum_rights: []\n")
        assert len(load_profile(path).validate()) == 2

    def test_bad_direction_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("name: p\nversion: '1'\nauthority: a\ndirections: {x: sideways}\n")
        with pytest.raises(ConfigError):
            load_profile(path)

    def test_non_string_name_is_a_validation_error(self, tmp_path):
        path = tmp_path / "numeric.yaml"
        path.write_text("name: 2024\nversion: 3\nauthority: a\n")
        profile = load_profile(path)
        assert profile.version == "3"
        assert profile.validate() == ["policy profile name must be a string, got 2024"]

    def test_non_numeric_limit_is_a_validation_error(self, tmp_path):
        path = tmp_path / "limits.yaml"
        path.write_text(
            "name: p\nversion: '1'\nauthority: a\n"
            "resource_limits:\n  power:\n    flight_metabolic: high\n  duration_default: forever\n"
        )
        assert len(load_profile(path).validate()) == 2

    @pytest.mark.parametrize("fragment", [
        "minimum_rights: right_to_consent",
        "ceilings: 0.3",
        "constraints: [ForbiddenX]",
        "constraints: [{enforced: true}]",
        "resource_limits: strict",
        "resource_limits: {power: 5}",
        "safe_regions: {EU: north}",
    ])
    def test_wrong_shape_is_config_error(self, tmp_path, fragment):
        path = tmp_path / "shape.yaml"
        path.write_text(f"name: p\nversion: '1'\nauthority: a\n{fragment}\n")
        with pytest.raises(ConfigError) as exc_info:
            load_profile(path)
        assert str(path) in str(exc_info.value)


class TestLoadDocument:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError) as exc_info:
            load_document(tmp_path / "nope.yaml")
        assert exc_info.value.details["path"].endswith("nope.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "profile.toml"
        path.write_text("name = 'x'")
        with pytest.raises(ConfigError):
            load_document(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("name: [unclosed\n")
        with pytest.raises(ConfigError):
            load_document(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(ConfigError):
            load_document(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_document(path)


class TestLoadProposal:

    def test_json_proposal(self, tmp_path):
        path = tmp_path / "proposal.json"
        path.write_text(json.dumps(PROPOSAL))
        proposal = load_proposal(path)
        assert proposal.subject == "did:test:42"
        assert proposal.metrics["roh"] == MetricChange(0.10, 0.14)
        assert len(proposal.evidence.tags) == 2

    def test_missing_evidence(self, tmp_path):
        path = tmp_path / "proposal.json"
        path.write_text(json.dumps({k: v for k, v in PROPOSAL.items() if k != "evidence"}))
        with pytest.raises(ConfigError):
            load_proposal(path)

    def test_unknown_evidence_domain(self, tmp_path):
        data = dict(PROPOSAL, evidence=dict(PROPOSAL["evidence"], tags=["astrology"]))
        path = tmp_path / "proposal.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ConfigError):
            load_proposal(path)


class TestLoadGovernance:

    def test_yaml_policy(self, tmp_path):
        path = tmp_path / "gov.yaml"
        path.write_text(
            "model_id: m\nowner: o\nuse_case: triage\nrisk_tier: low\n"
            "oversight: autonomous_within_limits\n"
        )
        assert load_governance_policy(path).owner == "o"

    def test_unknown_tier(self, tmp_path):
        path = tmp_path / "gov.yaml"
        path.write_text(
            "model_id: m\nowner: o\nuse_case: triage\nrisk_tier: extreme\n"
            "oversight: autonomous_within_limits\n"
        )
        with pytest.raises(ConfigError):
            load_governance_policy(path)
