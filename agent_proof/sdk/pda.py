"""Program-derived address helpers for the Solana Attestation Service.

Every address the lifecycle touches is a PDA computed from a fixed seed tuple,
so an account's existence can be checked before it is created. All functions
here are pure: no RPC, no clock.
"""

from __future__ import annotations

from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID

from agent_proof.sdk.errors import ValidationError

SAS_PROGRAM_ID = Pubkey.from_string("22zoJMtdu4tQc2PzL74ZUT7FrwgB1Udec8DdW4yw4BdG")

CREDENTIAL_SEED = b"credential"
SCHEMA_SEED = b"schema"
ATTESTATION_SEED = b"attestation"
SCHEMA_MINT_SEED = b"schemaMint"
ATTESTATION_MINT_SEED = b"attestationMint"
SAS_SEED = b"sas"
EVENT_AUTHORITY_SEED = b"__event_authority"

# Solana caps each PDA seed at 32 bytes.
MAX_SEED_LENGTH = 32
MAX_SCHEMA_VERSION = 255


def to_pubkey(value: Pubkey | str, field: str = "address") -> Pubkey:
    """Parse a base58 address, raising ValidationError on bad input."""
    if isinstance(value, Pubkey):
        return value
    if not value:
        raise ValidationError(field, "address is required")
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise ValidationError(field, f"invalid base58 address '{value}' ({e})")


def validate_name(name: str, field: str = "name", bound: int = MAX_SEED_LENGTH) -> bytes:
    """Return the UTF-8 encoding of a seed name after checking its length."""
    if not name:
        raise ValidationError(field, "must not be empty", bound)
    encoded = name.encode("utf-8")
    if len(encoded) > bound:
        raise ValidationError(field, f"must be at most {bound} bytes (got {len(encoded)})", bound)
    return encoded


def validate_version(version: int) -> int:
    if not 1 <= version <= MAX_SCHEMA_VERSION:
        raise ValidationError("version", f"must be between 1 and {MAX_SCHEMA_VERSION}", MAX_SCHEMA_VERSION)
    return version


def derive_credential_address(authority: Pubkey, name: str) -> Pubkey:
    """Credential PDA for an (authority, name) pair."""
    seeds = [CREDENTIAL_SEED, bytes(authority), validate_name(name, "credential_name")]
    return Pubkey.find_program_address(seeds, SAS_PROGRAM_ID)[0]


def derive_schema_address(credential: Pubkey, name: str, version: int = 1) -> Pubkey:
    """Schema PDA for a (credential, name, version) triple."""
    seeds = [
        SCHEMA_SEED,
        bytes(credential),
        validate_name(name, "schema_name"),
        bytes([validate_version(version)]),
    ]
    return Pubkey.find_program_address(seeds, SAS_PROGRAM_ID)[0]


def derive_attestation_address(credential: Pubkey, schema: Pubkey, nonce: Pubkey) -> Pubkey:
    """Attestation PDA; the nonce keeps attestations under one schema apart."""
    seeds = [ATTESTATION_SEED, bytes(credential), bytes(schema), bytes(nonce)]
    return Pubkey.find_program_address(seeds, SAS_PROGRAM_ID)[0]


def derive_schema_mint_address(schema: Pubkey) -> Pubkey:
    """Collection mint created when a schema is tokenized."""
    return Pubkey.find_program_address([SCHEMA_MINT_SEED, bytes(schema)], SAS_PROGRAM_ID)[0]


def derive_attestation_mint_address(attestation: Pubkey) -> Pubkey:
    """Proof token mint minted alongside a tokenized attestation."""
    return Pubkey.find_program_address([ATTESTATION_MINT_SEED, bytes(attestation)], SAS_PROGRAM_ID)[0]


def derive_sas_authority_address() -> Pubkey:
    return Pubkey.find_program_address([SAS_SEED], SAS_PROGRAM_ID)[0]


def derive_event_authority_address() -> Pubkey:
    return Pubkey.find_program_address([EVENT_AUTHORITY_SEED], SAS_PROGRAM_ID)[0]


def derive_token_account_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    """Token-2022 associated token account for (owner, mint)."""
    seeds = [bytes(owner), bytes(TOKEN_2022_PROGRAM_ID), bytes(mint)]
    return Pubkey.find_program_address(seeds, ASSOCIATED_TOKEN_PROGRAM_ID)[0]
