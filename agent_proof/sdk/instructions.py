"""Instruction builders for the Solana Attestation Service.

Only the instructions the agent-proof lifecycle needs are covered. Each
builder takes already-derived addresses so the caller decides what to check
for existence before submitting.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Sequence

from construct import Int8ul, Int16ul, Int32ul, Int64sl, Int64ul, PrefixedArray, Struct
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID

from agent_proof.sdk.accounts import BORSH_BYTES, STRING_VEC
from agent_proof.sdk.errors import ValidationError
from agent_proof.sdk.layout import BORSH_STRING, PUBKEY, SchemaLayout
from agent_proof.sdk.pda import SAS_PROGRAM_ID, validate_name

MAX_MINT_ACCOUNT_SPACE = 0xFFFF


class SasInstruction(IntEnum):
    CREATE_CREDENTIAL = 0
    CREATE_SCHEMA = 1
    TOKENIZE_SCHEMA = 9
    CREATE_TOKENIZED_ATTESTATION = 10
    CLOSE_TOKENIZED_ATTESTATION = 11


CREATE_CREDENTIAL_ARGS = Struct(
    "name" / BORSH_STRING,
    "signers" / PrefixedArray(Int32ul, PUBKEY),
)

CREATE_SCHEMA_ARGS = Struct(
    "name" / BORSH_STRING,
    "description" / BORSH_STRING,
    "layout" / BORSH_BYTES,
    "field_names" / STRING_VEC,
)

TOKENIZE_SCHEMA_ARGS = Struct(
    "max_size" / Int64ul,
)

CREATE_TOKENIZED_ATTESTATION_ARGS = Struct(
    "nonce" / PUBKEY,
    "data" / BORSH_BYTES,
    "expiry" / Int64sl,
    "name" / BORSH_STRING,
    "uri" / BORSH_STRING,
    "symbol" / BORSH_STRING,
    "mint_account_space" / Int16ul,
)

CLOSE_TOKENIZED_ATTESTATION_ARGS = Struct()

ARGS_LAYOUTS: dict[SasInstruction, Struct] = {
    SasInstruction.CREATE_CREDENTIAL: CREATE_CREDENTIAL_ARGS,
    SasInstruction.CREATE_SCHEMA: CREATE_SCHEMA_ARGS,
    SasInstruction.TOKENIZE_SCHEMA: TOKENIZE_SCHEMA_ARGS,
    SasInstruction.CREATE_TOKENIZED_ATTESTATION: CREATE_TOKENIZED_ATTESTATION_ARGS,
    SasInstruction.CLOSE_TOKENIZED_ATTESTATION: CLOSE_TOKENIZED_ATTESTATION_ARGS,
}


def _encode(kind: SasInstruction, args: dict[str, Any]) -> bytes:
    return Int8ul.build(kind) + ARGS_LAYOUTS[kind].build(args)


def _signer(pubkey: Pubkey, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=True, is_writable=writable)


def _writable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


def _readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def create_credential(
    payer: Pubkey,
    authority: Pubkey,
    credential: Pubkey,
    name: str,
    signers: Sequence[Pubkey],
) -> Instruction:
    validate_name(name, "credential_name")
    accounts = [
        _signer(payer, writable=True),
        _writable(credential),
        _signer(authority),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    data = _encode(SasInstruction.CREATE_CREDENTIAL, {"name": name, "signers": list(signers)})
    return Instruction(SAS_PROGRAM_ID, data, accounts)


def create_schema(
    payer: Pubkey,
    authority: Pubkey,
    credential: Pubkey,
    schema: Pubkey,
    name: str,
    description: str,
    layout: SchemaLayout,
) -> Instruction:
    validate_name(name, "schema_name")
    accounts = [
        _signer(payer, writable=True),
        _signer(authority),
        _readonly(credential),
        _writable(schema),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    data = _encode(
        SasInstruction.CREATE_SCHEMA,
        {
            "name": name,
            "description": description,
            "layout": layout.layout_bytes(),
            "field_names": list(layout.field_names),
        },
    )
    return Instruction(SAS_PROGRAM_ID, data, accounts)


def tokenize_schema(
    payer: Pubkey,
    authority: Pubkey,
    credential: Pubkey,
    schema: Pubkey,
    mint: Pubkey,
    sas_authority: Pubkey,
    max_size: int,
) -> Instruction:
    accounts = [
        _signer(payer, writable=True),
        _signer(authority),
        _readonly(credential),
        _readonly(schema),
        _writable(mint),
        _readonly(sas_authority),
        _readonly(SYSTEM_PROGRAM_ID),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    data = _encode(SasInstruction.TOKENIZE_SCHEMA, {"max_size": max_size})
    return Instruction(SAS_PROGRAM_ID, data, accounts)


def create_tokenized_attestation(
    payer: Pubkey,
    authority: Pubkey,
    credential: Pubkey,
    schema: Pubkey,
    attestation: Pubkey,
    schema_mint: Pubkey,
    attestation_mint: Pubkey,
    sas_authority: Pubkey,
    recipient: Pubkey,
    recipient_token_account: Pubkey,
    nonce: Pubkey,
    data: bytes,
    expiry: int,
    name: str,
    uri: str,
    symbol: str,
    mint_account_space: int,
) -> Instruction:
    if mint_account_space > MAX_MINT_ACCOUNT_SPACE:
        raise ValidationError(
            "mint_account_space",
            f"token metadata too large ({mint_account_space} bytes)",
            MAX_MINT_ACCOUNT_SPACE,
        )
    accounts = [
        _signer(payer, writable=True),
        _signer(authority),
        _readonly(credential),
        _readonly(schema),
        _writable(attestation),
        _readonly(SYSTEM_PROGRAM_ID),
        _writable(schema_mint),
        _writable(attestation_mint),
        _readonly(sas_authority),
        _writable(recipient_token_account),
        _readonly(recipient),
        _readonly(TOKEN_2022_PROGRAM_ID),
        _readonly(ASSOCIATED_TOKEN_PROGRAM_ID),
    ]
    args = {
        "nonce": nonce,
        "data": data,
        "expiry": expiry,
        "name": name,
        "uri": uri,
        "symbol": symbol,
        "mint_account_space": mint_account_space,
    }
    return Instruction(SAS_PROGRAM_ID, _encode(SasInstruction.CREATE_TOKENIZED_ATTESTATION, args), accounts)


def close_tokenized_attestation(
    payer: Pubkey,
    authority: Pubkey,
    credential: Pubkey,
    attestation: Pubkey,
    event_authority: Pubkey,
    attestation_mint: Pubkey,
    sas_authority: Pubkey,
    attestation_token_account: Pubkey,
) -> Instruction:
    accounts = [
        _signer(payer, writable=True),
        _signer(authority),
        _readonly(credential),
        _writable(attestation),
        _readonly(event_authority),
        _readonly(SYSTEM_PROGRAM_ID),
        _readonly(SAS_PROGRAM_ID),
        _writable(attestation_mint),
        _readonly(sas_authority),
        _writable(attestation_token_account),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    data = _encode(SasInstruction.CLOSE_TOKENIZED_ATTESTATION, {})
    return Instruction(SAS_PROGRAM_ID, data, accounts)
