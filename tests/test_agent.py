"""Test the AgentIdentity schema helpers."""

from __future__ import annotations

import pytest

from agent_proof.sdk.agent import (
    AGENT_SCHEMA_LAYOUT,
    build_agent_data,
    credential_name_for,
    token_name_for,
)
from agent_proof.sdk.errors import ValidationError
from agent_proof.sdk.hashing import hash_string

HASH = hash_string("capabilities")


def test_credential_name_for() -> None:
    """Test credential naming."""
    assert credential_name_for("nix") == "agent-proof-nix"


def test_credential_name_must_fit_seed() -> None:
    """The prefixed credential name must fit a PDA seed."""
    # "agent-proof-" takes 12 of the 32 seed bytes
    credential_name_for("a" * 20)
    with pytest.raises(ValidationError) as exc_info:
        credential_name_for("a" * 21)
    assert exc_info.value.bound == 32


def test_token_name_for() -> None:
    """Test proof token naming."""
    assert token_name_for("nix") == "Agent Proof: nix"


def test_build_agent_data_encodes_with_schema() -> None:
    """Agent data matches the canonical schema fields."""
    data = build_agent_data("nix", "claude", "openclaw", "owner", HASH, created_at=1_700_000_000)
    assert data == {
        "agent_name": "nix",
        "agent_type": "claude",
        "platform": "openclaw",
        "owner_pubkey": "owner",
        "capabilities_hash": HASH,
        "created_at": 1_700_000_000,
    }
    assert AGENT_SCHEMA_LAYOUT.decode(AGENT_SCHEMA_LAYOUT.encode(data)) == data


def test_build_agent_data_defaults_created_at() -> None:
    """created_at defaults to the current time."""
    data = build_agent_data("nix", "claude", "openclaw", "owner", HASH)
    assert data["created_at"] > 0


@pytest.mark.parametrize("bad_hash", ["abc", "z" * 64])
def test_build_agent_data_rejects_bad_hash(bad_hash: str) -> None:
    """The capabilities hash must be 64 hex characters."""
    with pytest.raises(ValidationError, match="capabilities_hash"):
        build_agent_data("nix", "claude", "openclaw", "owner", bad_hash)


def test_build_agent_data_rejects_long_name() -> None:
    """Agent names are limited to 32 bytes."""
    with pytest.raises(ValidationError, match="agent_name"):
        build_agent_data("n" * 33, "claude", "openclaw", "owner", HASH)
