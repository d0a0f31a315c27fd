"""In-memory stand-in for the Solana RPC client and the attestation program.

FakeChain answers the RPC calls the SDK makes and applies the effects of the
SAS instructions agent-proof builds, so lifecycle and CLI tests run without a
validator. It only models what the tests observe: account existence, data and
owner, plus the checks that make creation fail on a taken address.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any

import base58
from solana.rpc.core import RPCException
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from spl.token.constants import TOKEN_2022_PROGRAM_ID

from agent_proof.sdk.accounts import (
    ATTESTATION_LAYOUT,
    CREDENTIAL_LAYOUT,
    SCHEMA_LAYOUT,
    STRING_VEC,
    decode_credential,
)
from agent_proof.sdk.instructions import ARGS_LAYOUTS, SasInstruction
from agent_proof.sdk.layout import strip_container
from agent_proof.sdk.pda import (
    SAS_PROGRAM_ID,
    derive_attestation_address,
    derive_credential_address,
    derive_schema_address,
)

SIMULATED_UNITS = 25_000


class ProgramError(Exception):
    """Instruction rejected by the simulated program."""


@dataclass
class FakeAccount:
    data: bytes
    owner: Pubkey
    lamports: int = 1_000_000


def _response(value: Any) -> SimpleNamespace:
    return SimpleNamespace(value=value)


def _memcmp_bytes(encoded: str) -> bytes:
    return base58.b58decode(encoded)


def decode_instruction_data(data: bytes) -> tuple[SasInstruction, dict[str, Any]]:
    """Split instruction data into its discriminator and decoded arguments."""
    kind = SasInstruction(data[0])
    return kind, strip_container(ARGS_LAYOUTS[kind].parse(data[1:]))


class FakeChain:
    """Minimal RPC client backed by a dict of accounts."""

    def __init__(self, now: int = 1_700_000_000, balance: int = 2_000_000_000):
        self.accounts: dict[Pubkey, FakeAccount] = {}
        self.balances: dict[Pubkey, int] = {}
        self.default_balance = balance
        self.now = now
        self.sent: list[list[SasInstruction]] = []
        self.airdrops: list[tuple[Pubkey, int]] = []
        self.fail_send: Exception | None = None

    def clock(self) -> float:
        return float(self.now)

    # --- RPC surface ---
    def get_account_info(self, pubkey: Pubkey, commitment: Any = None) -> SimpleNamespace:
        account = self.accounts.get(pubkey)
        if account is None:
            return _response(None)
        return _response(SimpleNamespace(data=account.data, owner=account.owner, lamports=account.lamports))

    def get_balance(self, pubkey: Pubkey, commitment: Any = None) -> SimpleNamespace:
        return _response(self.balances.get(pubkey, self.default_balance))

    def request_airdrop(self, pubkey: Pubkey, lamports: int, commitment: Any = None) -> SimpleNamespace:
        self.airdrops.append((pubkey, lamports))
        self.balances[pubkey] = self.balances.get(pubkey, self.default_balance) + lamports
        return _response(Signature.default())

    def get_latest_blockhash(self, commitment: Any = None) -> SimpleNamespace:
        return _response(SimpleNamespace(blockhash=Hash.default(), last_valid_block_height=1_000))

    def simulate_transaction(self, tx: VersionedTransaction, sig_verify: bool = False, commitment: Any = None) -> SimpleNamespace:
        scratch = {address: FakeAccount(a.data, a.owner, a.lamports) for address, a in self.accounts.items()}
        try:
            self._execute(tx, scratch)
        except ProgramError as e:
            return _response(SimpleNamespace(err=str(e), logs=[f"Program log: {e}"], units_consumed=None))
        return _response(SimpleNamespace(err=None, logs=[], units_consumed=SIMULATED_UNITS))

    def send_transaction(self, tx: VersionedTransaction, opts: Any = None) -> SimpleNamespace:
        if self.fail_send is not None:
            raise self.fail_send
        try:
            kinds = self._execute(tx, self.accounts)
        except ProgramError as e:
            raise RPCException(str(e))
        self.sent.append(kinds)
        return _response(tx.signatures[0])

    def confirm_transaction(self, signature: Signature, commitment: Any = None, last_valid_block_height: int | None = None) -> SimpleNamespace:
        return _response([SimpleNamespace(err=None)])

    def get_program_accounts(
        self, program_id: Pubkey, commitment: Any = None, encoding: str = "base64", filters: list | None = None
    ) -> SimpleNamespace:
        matches = []
        for address, account in self.accounts.items():
            if account.owner != program_id:
                continue
            if all(
                account.data[f.offset:f.offset + len(_memcmp_bytes(f.bytes))] == _memcmp_bytes(f.bytes)
                for f in filters or []
            ):
                matches.append(SimpleNamespace(pubkey=address, account=SimpleNamespace(data=account.data)))
        return _response(matches)

    # --- Program emulation ---
    def _execute(self, tx: VersionedTransaction, accounts: dict[Pubkey, FakeAccount]) -> list[SasInstruction]:
        message = tx.message
        keys = list(message.account_keys)
        kinds = []
        for compiled in message.instructions:
            if keys[compiled.program_id_index] != SAS_PROGRAM_ID:
                continue
            metas = [keys[i] for i in bytes(compiled.accounts)]
            kind, args = decode_instruction_data(bytes(compiled.data))
            handler = getattr(self, f"_ix_{kind.name.lower()}")
            handler(accounts, metas, args)
            kinds.append(kind)
        return kinds

    @staticmethod
    def _create(accounts: dict[Pubkey, FakeAccount], address: Pubkey, data: bytes, owner: Pubkey = SAS_PROGRAM_ID) -> None:
        if address in accounts:
            raise ProgramError(f"account {address} already in use")
        accounts[address] = FakeAccount(data=data, owner=owner)

    @staticmethod
    def _authority_of(accounts: dict[Pubkey, FakeAccount], credential: Pubkey) -> str:
        if credential not in accounts:
            raise ProgramError(f"credential {credential} not initialized")
        return decode_credential(str(credential), accounts[credential].data).authority

    def _ix_create_credential(self, accounts, metas, args) -> None:
        _, credential, authority = metas[:3]
        if derive_credential_address(authority, args["name"]) != credential:
            raise ProgramError("invalid credential PDA")
        data = CREDENTIAL_LAYOUT.build({
            "discriminator": 0,
            "authority": authority,
            "name": args["name"].encode("utf-8"),
            "authorized_signers": args["signers"],
        })
        self._create(accounts, credential, data)

    def _ix_create_schema(self, accounts, metas, args) -> None:
        _, authority, credential, schema = metas[:4]
        if self._authority_of(accounts, credential) != str(authority):
            raise ProgramError("signer is not the credential authority")
        if derive_schema_address(credential, args["name"], 1) != schema:
            raise ProgramError("invalid schema PDA")
        data = SCHEMA_LAYOUT.build({
            "discriminator": 1,
            "credential": credential,
            "name": args["name"].encode("utf-8"),
            "description": args["description"].encode("utf-8"),
            "layout": args["layout"],
            "field_names": STRING_VEC.build(args["field_names"]),
            "is_paused": False,
            "version": 1,
        })
        self._create(accounts, schema, data)

    def _ix_tokenize_schema(self, accounts, metas, args) -> None:
        _, authority, credential, schema, mint = metas[:5]
        if self._authority_of(accounts, credential) != str(authority):
            raise ProgramError("signer is not the credential authority")
        if schema not in accounts:
            raise ProgramError(f"schema {schema} not initialized")
        self._create(accounts, mint, bytes(args["max_size"]), TOKEN_2022_PROGRAM_ID)

    def _ix_create_tokenized_attestation(self, accounts, metas, args) -> None:
        authority, credential, schema, attestation = metas[1:5]
        schema_mint, attestation_mint = metas[6:8]
        token_account = metas[9]
        if self._authority_of(accounts, credential) != str(authority):
            raise ProgramError("signer is not the credential authority")
        if schema_mint not in accounts:
            raise ProgramError("schema is not tokenized")
        nonce = Pubkey.from_string(args["nonce"])
        if derive_attestation_address(credential, schema, nonce) != attestation:
            raise ProgramError("invalid attestation PDA")
        data = ATTESTATION_LAYOUT.build({
            "discriminator": 2,
            "nonce": nonce,
            "credential": credential,
            "schema": schema,
            "data": args["data"],
            "signer": authority,
            "expiry": args["expiry"],
            "token_account": token_account,
        })
        self._create(accounts, attestation, data)
        self._create(accounts, attestation_mint, bytes(args["mint_account_space"]), TOKEN_2022_PROGRAM_ID)
        self._create(accounts, token_account, bytes(170), TOKEN_2022_PROGRAM_ID)

    def _ix_close_tokenized_attestation(self, accounts, metas, args) -> None:
        authority, credential, attestation = metas[1:4]
        attestation_mint = metas[7]
        token_account = metas[9]
        if self._authority_of(accounts, credential) != str(authority):
            raise ProgramError("signer is not the credential authority")
        for address in (attestation, attestation_mint, token_account):
            if address not in accounts:
                raise ProgramError(f"account {address} not found")
            del accounts[address]

    # --- Test conveniences ---
    def pause_schema(self, schema: Pubkey) -> None:
        account = self.accounts[schema]
        parsed = SCHEMA_LAYOUT.parse(account.data)
        parsed["is_paused"] = True
        account.data = SCHEMA_LAYOUT.build(parsed)

    def burn(self, address: Pubkey) -> None:
        del self.accounts[address]
