"""The AgentIdentity schema.

Defines the attestation structure for AI agent identity proofs. When
tokenized, each attestation mints a non-transferable NFT that proves an agent
was operating under an authority at a specific point in time.
"""

from __future__ import annotations

import time
from typing import Any

from agent_proof.sdk.errors import ValidationError
from agent_proof.sdk.hashing import HASH_HEX_LENGTH
from agent_proof.sdk.layout import FieldType, SchemaLayout
from agent_proof.sdk.pda import MAX_SEED_LENGTH, validate_name

CREDENTIAL_PREFIX = "agent-proof-"
AGENT_SCHEMA_NAME = "AgentIdentity"
AGENT_SCHEMA_DESCRIPTION = "Proof of AI agent identity and existence"
AGENT_SCHEMA_VERSION = 1
MAX_AGENT_NAME_LENGTH = 32

AGENT_SCHEMA_LAYOUT = SchemaLayout.from_fields([
    ("agent_name", FieldType.STRING),
    ("agent_type", FieldType.STRING),
    ("platform", FieldType.STRING),
    ("owner_pubkey", FieldType.STRING),
    ("capabilities_hash", FieldType.STRING),
    ("created_at", FieldType.U64),
])

TOKEN_NAME_PREFIX = "Agent Proof"
TOKEN_SYMBOL = "APROOF"
DEFAULT_TOKEN_URI = "https://agent-proof.dev/metadata.json"


def credential_name_for(agent_name: str) -> str:
    """Credential name an agent's attestations are issued under."""
    name = f"{CREDENTIAL_PREFIX}{agent_name}"
    validate_name(name, "credential_name", MAX_SEED_LENGTH)
    return name


def token_name_for(agent_name: str) -> str:
    return f"{TOKEN_NAME_PREFIX}: {agent_name}"


def build_agent_data(
    agent_name: str,
    agent_type: str,
    platform: str,
    owner_pubkey: str,
    capabilities_hash: str,
    created_at: int | None = None,
) -> dict[str, Any]:
    """Assemble field values for one AgentIdentity attestation."""
    validate_name(agent_name, "agent_name", MAX_AGENT_NAME_LENGTH)
    if len(capabilities_hash) != HASH_HEX_LENGTH:
        raise ValidationError("capabilities_hash", f"must be {HASH_HEX_LENGTH} hex characters", HASH_HEX_LENGTH)
    try:
        bytes.fromhex(capabilities_hash)
    except ValueError:
        raise ValidationError("capabilities_hash", "must be valid hex")

    return {
        "agent_name": agent_name,
        "agent_type": agent_type,
        "platform": platform,
        "owner_pubkey": owner_pubkey,
        "capabilities_hash": capabilities_hash,
        "created_at": int(time.time()) if created_at is None else created_at,
    }
