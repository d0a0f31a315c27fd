"""Account layouts of the Solana Attestation Service.

Each SAS account starts with a one-byte discriminator followed by borsh
encoded fields. The layouts are also used to filter program accounts by
field offset when listing.
"""

from __future__ import annotations

from construct import (
    ConstructError,
    Flag,
    GreedyBytes,
    Int8ul,
    Int32ul,
    Int64sl,
    Prefixed,
    PrefixedArray,
    Struct,
)

from agent_proof.sdk.errors import NotFoundError
from agent_proof.sdk.layout import BORSH_STRING, PUBKEY, strip_container
from agent_proof.sdk.models import AttestationAccount, CredentialAccount, SchemaAccount

CREDENTIAL_DISCRIMINATOR = 0
SCHEMA_DISCRIMINATOR = 1
ATTESTATION_DISCRIMINATOR = 2

BORSH_BYTES = Prefixed(Int32ul, GreedyBytes)
STRING_VEC = PrefixedArray(Int32ul, BORSH_STRING)

CREDENTIAL_LAYOUT = Struct(
    "discriminator" / Int8ul,
    "authority" / PUBKEY,
    "name" / BORSH_BYTES,
    "authorized_signers" / PrefixedArray(Int32ul, PUBKEY),
)

SCHEMA_LAYOUT = Struct(
    "discriminator" / Int8ul,
    "credential" / PUBKEY,
    "name" / BORSH_BYTES,
    "description" / BORSH_BYTES,
    "layout" / BORSH_BYTES,
    "field_names" / BORSH_BYTES,
    "is_paused" / Flag,
    "version" / Int8ul,
)

ATTESTATION_LAYOUT = Struct(
    "discriminator" / Int8ul,
    "nonce" / PUBKEY,
    "credential" / PUBKEY,
    "schema" / PUBKEY,
    "data" / BORSH_BYTES,
    "signer" / PUBKEY,
    "expiry" / Int64sl,
    "token_account" / PUBKEY,
)

# memcmp offsets for getProgramAccounts filters
CREDENTIAL_AUTHORITY_OFFSET = 1
ATTESTATION_CREDENTIAL_OFFSET = 1 + 32


def _parse(layout: Struct, discriminator: int, kind: str, address: str, data: bytes) -> dict:
    if not data or data[0] != discriminator:
        raise NotFoundError(kind, address)
    try:
        return strip_container(layout.parse(data))
    except ConstructError:
        raise NotFoundError(kind, address)


def decode_credential(address: str, data: bytes) -> CredentialAccount:
    parsed = _parse(CREDENTIAL_LAYOUT, CREDENTIAL_DISCRIMINATOR, "credential", address, data)
    return CredentialAccount(
        address=address,
        authority=parsed["authority"],
        name=parsed["name"].decode("utf-8", errors="replace"),
        authorized_signers=list(parsed["authorized_signers"]),
    )


def decode_schema(address: str, data: bytes) -> SchemaAccount:
    parsed = _parse(SCHEMA_LAYOUT, SCHEMA_DISCRIMINATOR, "schema", address, data)
    try:
        field_names = list(STRING_VEC.parse(parsed["field_names"]))
    except ConstructError:
        raise NotFoundError("schema", address)
    return SchemaAccount(
        address=address,
        credential_address=parsed["credential"],
        name=parsed["name"].decode("utf-8", errors="replace"),
        description=parsed["description"].decode("utf-8", errors="replace"),
        field_names=field_names,
        field_types=list(parsed["layout"]),
        is_paused=parsed["is_paused"],
        version=parsed["version"],
    )


def decode_attestation(address: str, data: bytes) -> AttestationAccount:
    parsed = _parse(ATTESTATION_LAYOUT, ATTESTATION_DISCRIMINATOR, "attestation", address, data)
    return AttestationAccount(
        address=address,
        nonce=parsed["nonce"],
        credential_address=parsed["credential"],
        schema_address=parsed["schema"],
        data=parsed["data"],
        signer=parsed["signer"],
        expiry=parsed["expiry"],
        token_account=parsed["token_account"],
    )
