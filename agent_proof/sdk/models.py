"""Pydantic models for agent-proof data structures.

Decoded on-chain accounts, per-step lifecycle results and the verification
report all live here so the CLI can render them as tables or dump them as
JSON without knowing how they were produced.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_proof.sdk.layout import SchemaLayout


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttestationStatus(str, Enum):
    """Attestation status enum."""
    VALID = "valid"
    EXPIRED = "expired"


class CredentialAccount(BaseModel):
    """Credential account: an authority's right to issue attestations."""

    address: str = Field(..., description="Credential PDA")
    authority: str = Field(..., description="Credential authority")
    name: str = Field(..., description="Credential name")
    authorized_signers: list[str] = Field(default_factory=list)


class SchemaAccount(BaseModel):
    """Versioned attestation layout registered under a credential."""

    address: str = Field(..., description="Schema PDA")
    credential_address: str = Field(..., description="Owning credential")
    name: str
    description: str = ""
    field_names: list[str] = Field(default_factory=list)
    field_types: list[int] = Field(default_factory=list)
    is_paused: bool = False
    version: int = 1

    def schema_layout(self) -> SchemaLayout:
        return SchemaLayout.from_bytes(bytes(self.field_types), self.field_names)


class AttestationAccount(BaseModel):
    """Attestation account as stored by the attestation service."""

    model_config = ConfigDict(ser_json_bytes="base64")

    address: str = Field(..., description="Attestation PDA")
    nonce: str = Field(..., description="Uniqueness key under (credential, schema)")
    credential_address: str
    schema_address: str
    data: bytes = Field(..., description="Payload encoded with the schema layout")
    signer: str = Field(..., description="Signer that issued the attestation")
    expiry: int = Field(..., description="Unix timestamp after which the attestation is expired")
    token_account: str = Field(..., description="Recipient token account of the proof token")


class SubmissionResult(BaseModel):
    """Outcome of a confirmed transaction."""

    signature: str
    cu_used: int = 0
    cu_limit: int = 0


class StepResult(BaseModel):
    """One lifecycle step: either submitted and confirmed, or skipped."""

    step: str
    address: str
    skipped: bool = False
    signature: str | None = None
    cu_used: int = 0
    cu_limit: int = 0


class InitResult(BaseModel):
    """Credential, schema and collection mint prepared by ``initialize``."""

    network: str
    authority: str
    credential: str
    schema_address: str
    schema_mint: str
    steps: list[StepResult] = Field(default_factory=list)

    @property
    def total_cu(self) -> int:
        return sum(step.cu_used for step in self.steps)


class AttestResult(BaseModel):
    """A freshly minted tokenized attestation."""

    attestation: str
    mint: str
    nonce: str
    recipient: str
    expiry: int
    data: dict[str, Any] = Field(default_factory=dict)
    signature: str
    cu_used: int = 0
    cu_limit: int = 0


class RevokeResult(BaseModel):
    attestation: str
    mint: str
    signature: str
    cu_used: int = 0
    cu_limit: int = 0


class VerificationReport(BaseModel):
    """Read-only verification of an attestation address."""

    attestation: str
    credential: str
    schema_address: str
    schema_name: str
    schema_version: int
    schema_paused: bool
    signer: str
    expiry: int
    checked_at: int = Field(..., description="Unix time the expiry was compared against")
    expired: bool
    token_present: bool
    token_mint: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def status(self) -> AttestationStatus:
        return AttestationStatus.EXPIRED if self.expired else AttestationStatus.VALID


class DeploymentAddresses(BaseModel):
    """Summary written to ``addresses.json`` after ``init``."""

    model_config = ConfigDict(populate_by_name=True)

    network: str
    credential: str
    schema_address: str = Field(..., alias="schema")
    schema_mint: str
    authority: str
    agent_name: str | None = None
    agent_type: str | None = None
    platform: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
