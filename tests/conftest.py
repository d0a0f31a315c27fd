"""Shared fixtures for agent-proof tests."""

from __future__ import annotations

import pytest
from solders.keypair import Keypair

from agent_proof.sdk.agent import (
    AGENT_SCHEMA_DESCRIPTION,
    AGENT_SCHEMA_LAYOUT,
    AGENT_SCHEMA_NAME,
    credential_name_for,
)
from agent_proof.sdk.client import AgentProofClient
from agent_proof.sdk.models import InitResult
from tests.helpers import FakeChain


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def authority() -> Keypair:
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def client(chain: FakeChain, authority: Keypair) -> AgentProofClient:
    """Client signing as ``authority`` against the in-memory chain."""
    return AgentProofClient(chain, authority, network="localnet", clock=chain.clock)  # type: ignore[arg-type]


@pytest.fixture
def initialized(client: AgentProofClient) -> InitResult:
    """Credential, schema and schema mint for the agent ``nix``."""
    return client.initialize(
        credential_name_for("nix"),
        AGENT_SCHEMA_NAME,
        AGENT_SCHEMA_DESCRIPTION,
        AGENT_SCHEMA_LAYOUT,
    )
