"""Test Token-2022 mint sizing."""

from __future__ import annotations

from solders.keypair import Keypair

from agent_proof.sdk.extensions import (
    GroupPointer,
    NonTransferable,
    TokenMetadata,
    attestation_mint_extensions,
    mint_size,
    schema_mint_extensions,
)

A = Keypair.from_seed(bytes([1] * 32)).pubkey()
B = Keypair.from_seed(bytes([2] * 32)).pubkey()


def test_mint_without_extensions() -> None:
    """A plain mint is the base mint size."""
    assert mint_size() == 82
    assert mint_size([]) == 82


def test_schema_mint_size() -> None:
    """Test the tokenized schema mint size."""
    # base account + account type + one group pointer TLV
    assert mint_size(schema_mint_extensions(A, B)) == 165 + 1 + 4 + 64


def test_zero_length_extension_still_costs_header() -> None:
    """Empty extensions still take a TLV header."""
    assert mint_size([NonTransferable()]) == 165 + 1 + 4


def test_multisig_sized_mint_padded() -> None:
    """A mint the size of a multisig account gets padding."""
    # 166 + 2 * 68 = 302
    extensions = [GroupPointer(A, B), GroupPointer(A, B)]
    assert mint_size(extensions) == 302

    padded = [*extensions, *[NonTransferable()] * 13]
    assert mint_size(padded) == 354

    # 166 + 4 + (64 + 4 + 105 + 4 + 4 + 4) lands exactly on the multisig size
    metadata = TokenMetadata(A, B, "x" * 105, "", "")
    assert mint_size([metadata]) == 355 + 4


def test_attestation_mint_size_grows_with_metadata() -> None:
    """Longer metadata grows the attestation mint."""
    short = attestation_mint_extensions(A, A, B, B, B, "Agent Proof: a", "APROOF", "https://x")
    longer = attestation_mint_extensions(A, A, B, B, B, "Agent Proof: abcdef", "APROOF", "https://x")
    assert len(short) == 7
    assert mint_size(longer) - mint_size(short) == 5
