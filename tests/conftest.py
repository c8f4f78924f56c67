"""
tests/conftest.py

Shared fixtures: a valid corridor context, a valid evidence bundle, a
proposal builder, and an engine on the default profile.
"""

import pytest

from reconguard.core.crypto import Ed25519KeyManager
from reconguard.core.models import (
    ActivityRequest,
    ConsentStatus,
    CorridorContext,
    EvidenceBundle,
    EvidenceDomains,
    MicrospaceState,
    Proposal,
)
from reconguard.policy.profile import default_profile
from reconguard.reconciliation.engine import ReconciliationEngine


@pytest.fixture
def context():
    """A corridor context that passes validation."""
    return CorridorContext(
        corridor_id=    "corridor-phx-01",
        name=           "Phoenix West",
        jurisdictions=  ["US/Arizona"],
        consent_status= ConsentStatus.GRANTED,
    )


@pytest.fixture
def evidence():
    """An evidence bundle that passes validation."""
    return EvidenceBundle(
        bundle_id=        "bundle-001",
        knowledge_factor= 0.9,
        uncertainty=      0.1,
        tags=             [EvidenceDomains.atp(), EvidenceDomains.thermal()],
    )


@pytest.fixture
def make_proposal(context, evidence):
    """
    Factory: make_proposal(roh=(0.10, 0.14), activity=(state, request)).
    Metric pairs are (current, proposed).
    """
    def _make(subject="did:test:subject-1", activity=None, **pairs):
        proposal = Proposal.from_values(subject, context, evidence, **pairs)
        proposal.activity = activity
        return proposal
    return _make


@pytest.fixture
def make_activity():
    """Factory for a (MicrospaceState, ActivityRequest) pair."""
    def _make(
        organism="insect_thorax",
        role="flight_metabolic",
        volume=1000.0,
        swarm=0.1,
        energy=0.3,
        duration=600,
        target="ms-001",
    ):
        state = MicrospaceState(
            microspace_id=            "ms-001",
            occupant_organism=        organism,
            volume_mm3=               volume,
            current_swarm_volume_mm3= swarm,
            ecosystem_role=           role,
        )
        request = ActivityRequest(
            target_microspace_id= target,
            energy_draw_mw=       energy,
            duration_secs=        duration,
            activity_type=        "survey",
        )
        return state, request
    return _make


@pytest.fixture
def profile():
    return default_profile()


@pytest.fixture
def engine(profile):
    return ReconciliationEngine(profile)


@pytest.fixture
def key():
    """A fresh Ed25519 key manager for each test."""
    return Ed25519KeyManager.generate()
