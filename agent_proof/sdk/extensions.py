"""Token-2022 mint extensions used by tokenized schemas and attestations.

The set is closed: each extension the attestation service configures is a
frozen dataclass that knows its encoded length, which is all that is needed
to size a mint account before creating it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from solders.pubkey import Pubkey

BASE_MINT_SIZE = 82
BASE_ACCOUNT_SIZE = 165
ACCOUNT_TYPE_SIZE = 1
TLV_HEADER_SIZE = 4  # u16 type + u16 length
MULTISIG_SIZE = 355
PUBKEY_SIZE = 32


def _borsh_str_len(value: str) -> int:
    return 4 + len(value.encode("utf-8"))


@dataclass(frozen=True)
class MintCloseAuthority:
    close_authority: Pubkey

    def data_size(self) -> int:
        return PUBKEY_SIZE


@dataclass(frozen=True)
class NonTransferable:
    def data_size(self) -> int:
        return 0


@dataclass(frozen=True)
class PermanentDelegate:
    delegate: Pubkey

    def data_size(self) -> int:
        return PUBKEY_SIZE


@dataclass(frozen=True)
class MetadataPointer:
    authority: Pubkey
    metadata_address: Pubkey

    def data_size(self) -> int:
        return 2 * PUBKEY_SIZE


@dataclass(frozen=True)
class TokenMetadata:
    """Variable-length metadata stored directly in the mint."""
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    additional_metadata: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    def data_size(self) -> int:
        size = 2 * PUBKEY_SIZE
        size += _borsh_str_len(self.name) + _borsh_str_len(self.symbol) + _borsh_str_len(self.uri)
        size += 4 + sum(_borsh_str_len(k) + _borsh_str_len(v) for k, v in self.additional_metadata)
        return size


@dataclass(frozen=True)
class GroupPointer:
    authority: Pubkey
    group_address: Pubkey

    def data_size(self) -> int:
        return 2 * PUBKEY_SIZE


@dataclass(frozen=True)
class GroupMemberPointer:
    authority: Pubkey
    member_address: Pubkey

    def data_size(self) -> int:
        return 2 * PUBKEY_SIZE


@dataclass(frozen=True)
class TokenGroupMember:
    mint: Pubkey
    group: Pubkey
    member_number: int

    def data_size(self) -> int:
        return 2 * PUBKEY_SIZE + 8


MintExtension = Union[
    MintCloseAuthority,
    NonTransferable,
    PermanentDelegate,
    MetadataPointer,
    TokenMetadata,
    GroupPointer,
    GroupMemberPointer,
    TokenGroupMember,
]


def mint_size(extensions: list[MintExtension] | None = None) -> int:
    """Account space needed for a Token-2022 mint carrying ``extensions``."""
    if not extensions:
        return BASE_MINT_SIZE

    size = BASE_ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE
    size += sum(TLV_HEADER_SIZE + ext.data_size() for ext in extensions)
    # A mint must never be mistaken for a multisig account.
    if size == MULTISIG_SIZE:
        size += TLV_HEADER_SIZE
    return size


def schema_mint_extensions(sas_authority: Pubkey, schema_mint: Pubkey) -> list[MintExtension]:
    """Extensions on the collection mint of a tokenized schema."""
    return [GroupPointer(authority=sas_authority, group_address=schema_mint)]


def attestation_mint_extensions(
    sas_authority: Pubkey,
    attestation_mint: Pubkey,
    schema_mint: Pubkey,
    attestation: Pubkey,
    schema: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> list[MintExtension]:
    """Extensions on the non-transferable proof token of an attestation."""
    return [
        GroupMemberPointer(authority=sas_authority, member_address=attestation_mint),
        NonTransferable(),
        MetadataPointer(authority=sas_authority, metadata_address=attestation_mint),
        PermanentDelegate(delegate=sas_authority),
        MintCloseAuthority(close_authority=sas_authority),
        TokenMetadata(
            update_authority=sas_authority,
            mint=attestation_mint,
            name=name,
            symbol=symbol,
            uri=uri,
            additional_metadata=(("attestation", str(attestation)), ("schema", str(schema))),
        ),
        TokenGroupMember(mint=attestation_mint, group=schema_mint, member_number=1),
    ]
