"""Core agent-proof SDK functionality.

Provides a high-level interface over the Solana Attestation Service for the
agent identity lifecycle: credential, schema, tokenized schema, tokenized
attestation, verification and revocation. Every step that writes derives its
target address first and checks whether an account already lives there, so
any step can be re-run safely after a failure.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import base58
from solana.exceptions import SolanaRpcException
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import MemcmpOpts
from solders.account import Account
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_2022_PROGRAM_ID

from agent_proof.sdk import instructions
from agent_proof.sdk.accounts import (
    ATTESTATION_CREDENTIAL_OFFSET,
    ATTESTATION_DISCRIMINATOR,
    CREDENTIAL_AUTHORITY_OFFSET,
    CREDENTIAL_DISCRIMINATOR,
    decode_attestation,
    decode_credential,
    decode_schema,
)
from agent_proof.sdk.agent import TOKEN_NAME_PREFIX, TOKEN_SYMBOL, DEFAULT_TOKEN_URI
from agent_proof.sdk.errors import (
    AlreadyExistsError,
    NetworkError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from agent_proof.sdk.extensions import attestation_mint_extensions, mint_size, schema_mint_extensions
from agent_proof.sdk.layout import SchemaLayout
from agent_proof.sdk.models import (
    AttestationAccount,
    AttestResult,
    CredentialAccount,
    InitResult,
    RevokeResult,
    SchemaAccount,
    StepResult,
    VerificationReport,
)
from agent_proof.sdk.pda import (
    derive_attestation_address,
    derive_attestation_mint_address,
    derive_credential_address,
    derive_event_authority_address,
    derive_sas_authority_address,
    derive_schema_address,
    derive_schema_mint_address,
    derive_token_account_address,
    SAS_PROGRAM_ID,
    to_pubkey,
)
from agent_proof.sdk.transaction import TransactionSubmitter

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
LAMPORTS_PER_SOL = 1_000_000_000
MAINNET = "mainnet"

def _discriminator_filter(discriminator: int) -> MemcmpOpts:
    return MemcmpOpts(offset=0, bytes=base58.b58encode(bytes([discriminator])).decode())


class AgentProofClient:
    """High-level client for agent identity attestations."""

    def __init__(
        self,
        rpc: Client,
        payer: Keypair | None = None,
        network: str = "devnet",
        commitment: Commitment = Confirmed,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the client.

        Args:
            rpc: Solana RPC client, shared for the whole process
            payer: Fee payer and credential authority (read-only use if omitted)
            network: Cluster name, used to refuse airdrops on mainnet
            commitment: Commitment level for reads and confirmations
            clock: Source of the current unix time
        """
        if rpc is None:
            raise ValueError("RPC client is required")

        self.rpc = rpc
        self.payer = payer
        self.network = network
        self.commitment = commitment
        self.clock = clock
        self.submitter = TransactionSubmitter(rpc, payer, commitment) if payer else None

    @property
    def authority(self) -> Pubkey:
        return self._require_payer().pubkey()

    def _require_payer(self) -> Keypair:
        if self.payer is None:
            raise ValidationError("keypair", "A keypair is required for this operation")
        return self.payer

    def _require_submitter(self) -> TransactionSubmitter:
        if self.submitter is None:
            raise ValidationError("keypair", "A keypair is required to submit transactions")
        return self.submitter

    def _now(self) -> int:
        return int(self.clock())

    # --- Reads ---
    def get_account(self, address: Pubkey) -> Account | None:
        """Fetch the raw account at ``address`` or None when it does not exist."""
        try:
            return self.rpc.get_account_info(address, commitment=self.commitment).value
        except (RPCException, SolanaRpcException) as e:
            raise NetworkError(f"Failed to fetch account {address}: {e}") from e

    def account_exists(self, address: Pubkey) -> bool:
        return self.get_account(address) is not None

    def _account_data(self, address: Pubkey, kind: str) -> bytes:
        account = self.get_account(address)
        if account is None:
            raise NotFoundError(kind, str(address))
        return bytes(account.data)

    def fetch_credential(self, address: Pubkey) -> CredentialAccount:
        return decode_credential(str(address), self._account_data(address, "credential"))

    def fetch_schema(self, address: Pubkey) -> SchemaAccount:
        return decode_schema(str(address), self._account_data(address, "schema"))

    def fetch_attestation(self, address: Pubkey) -> AttestationAccount:
        return decode_attestation(str(address), self._account_data(address, "attestation"))

    def get_balance(self, address: Pubkey | None = None) -> int:
        """Balance in lamports of ``address`` (defaults to the authority)."""
        target = address or self.authority
        try:
            return self.rpc.get_balance(target, commitment=self.commitment).value
        except (RPCException, SolanaRpcException) as e:
            raise NetworkError(f"Failed to fetch balance: {e}") from e

    def airdrop(self, lamports: int = LAMPORTS_PER_SOL) -> str:
        """Request test SOL for the authority (devnet/localnet only)."""
        if self.network == MAINNET:
            raise ValidationError("network", "Airdrops are not available on mainnet")
        try:
            signature = self.rpc.request_airdrop(self.authority, lamports, commitment=self.commitment).value
            self.rpc.confirm_transaction(signature, commitment=self.commitment)
        except (RPCException, SolanaRpcException) as e:
            raise NetworkError(f"Airdrop failed: {e}") from e
        logger.info("Airdropped %d lamports to %s", lamports, self.authority)
        return str(signature)

    # --- Lifecycle ---
    def create_credential(self, name: str, signers: list[Pubkey] | None = None) -> StepResult:
        """Create the credential ``name`` owned by the authority, unless it exists."""
        authority = self.authority
        credential = derive_credential_address(authority, name)
        if self.account_exists(credential):
            logger.info("Credential %s already exists, skipping", credential)
            return StepResult(step="credential", address=str(credential), skipped=True)

        ix = instructions.create_credential(
            payer=authority,
            authority=authority,
            credential=credential,
            name=name,
            signers=signers or [authority],
        )
        result = self._require_submitter().submit([ix], "Create credential")
        return StepResult(step="credential", address=str(credential), **result.model_dump())

    def create_schema(
        self,
        credential_name: str,
        name: str,
        description: str,
        layout: SchemaLayout,
        version: int = 1,
    ) -> StepResult:
        """Register ``layout`` under the credential, unless that version exists.

        An existing schema with a different layout is rejected: layouts are
        immutable and a change needs a new version number.
        """
        authority = self.authority
        credential = derive_credential_address(authority, credential_name)
        schema = derive_schema_address(credential, name, version)

        if self.account_exists(schema):
            existing = self.fetch_schema(schema)
            if existing.schema_layout() != layout:
                raise ValidationError(
                    "layout",
                    f"schema {name} v{version} already exists at {schema} with a different layout; "
                    "use a new version",
                )
            logger.info("Schema %s already exists, skipping", schema)
            return StepResult(step="schema", address=str(schema), skipped=True)

        ix = instructions.create_schema(
            payer=authority,
            authority=authority,
            credential=credential,
            schema=schema,
            name=name,
            description=description,
            layout=layout,
        )
        result = self._require_submitter().submit([ix], "Create schema")
        return StepResult(step="schema", address=str(schema), **result.model_dump())

    def tokenize_schema(self, credential: Pubkey, schema: Pubkey) -> StepResult:
        """Create the collection mint for ``schema``, unless it exists."""
        authority = self.authority
        mint = derive_schema_mint_address(schema)
        if self.account_exists(mint):
            logger.info("Schema %s already tokenized, skipping", schema)
            return StepResult(step="tokenize", address=str(mint), skipped=True)

        sas_authority = derive_sas_authority_address()
        ix = instructions.tokenize_schema(
            payer=authority,
            authority=authority,
            credential=credential,
            schema=schema,
            mint=mint,
            sas_authority=sas_authority,
            max_size=mint_size(schema_mint_extensions(sas_authority, mint)),
        )
        result = self._require_submitter().submit([ix], "Tokenize schema")
        return StepResult(step="tokenize", address=str(mint), **result.model_dump())

    def initialize(
        self,
        credential_name: str,
        schema_name: str,
        description: str,
        layout: SchemaLayout,
        version: int = 1,
    ) -> InitResult:
        """Run credential, schema and tokenize steps in order."""
        authority = self.authority
        credential = derive_credential_address(authority, credential_name)
        schema = derive_schema_address(credential, schema_name, version)

        steps = [self.create_credential(credential_name)]
        steps.append(self.create_schema(credential_name, schema_name, description, layout, version))
        steps.append(self.tokenize_schema(credential, schema))

        return InitResult(
            network=self.network,
            authority=str(authority),
            credential=str(credential),
            schema_address=str(schema),
            schema_mint=steps[-1].address,
            steps=steps,
        )

    def create_attestation(
        self,
        credential: Pubkey,
        schema: Pubkey,
        nonce: Pubkey,
        data: dict,
        recipient: Pubkey | None = None,
        expiry_days: int = 365,
        token_name: str = TOKEN_NAME_PREFIX,
        token_symbol: str = TOKEN_SYMBOL,
        token_uri: str = DEFAULT_TOKEN_URI,
    ) -> AttestResult:
        """Issue a tokenized attestation and mint its proof token to ``recipient``.

        Raises:
            AlreadyExistsError: an attestation already exists for this nonce
            NotFoundError: the schema is missing or not tokenized
        """
        if expiry_days <= 0:
            raise ValidationError("expiry", "must be a positive number of days")

        authority = self.authority
        recipient = recipient or authority
        attestation = derive_attestation_address(credential, schema, nonce)
        if self.account_exists(attestation):
            raise AlreadyExistsError("attestation", str(attestation))

        schema_account = self.fetch_schema(schema)
        if schema_account.credential_address != str(credential):
            raise ValidationError("schema", f"schema {schema} does not belong to credential {credential}")
        schema_mint = derive_schema_mint_address(schema)
        if not self.account_exists(schema_mint):
            raise NotFoundError("tokenized schema", str(schema_mint))

        payload = schema_account.schema_layout().encode(data)
        expiry = self._now() + expiry_days * SECONDS_PER_DAY

        attestation_mint = derive_attestation_mint_address(attestation)
        sas_authority = derive_sas_authority_address()
        extensions = attestation_mint_extensions(
            sas_authority, attestation_mint, schema_mint, attestation, schema,
            token_name, token_symbol, token_uri,
        )
        ix = instructions.create_tokenized_attestation(
            payer=authority,
            authority=authority,
            credential=credential,
            schema=schema,
            attestation=attestation,
            schema_mint=schema_mint,
            attestation_mint=attestation_mint,
            sas_authority=sas_authority,
            recipient=recipient,
            recipient_token_account=derive_token_account_address(recipient, attestation_mint),
            nonce=nonce,
            data=payload,
            expiry=expiry,
            name=token_name,
            uri=token_uri,
            symbol=token_symbol,
            mint_account_space=mint_size(extensions),
        )
        result = self._require_submitter().submit([ix], "Create tokenized attestation")

        return AttestResult(
            attestation=str(attestation),
            mint=str(attestation_mint),
            nonce=str(nonce),
            recipient=str(recipient),
            expiry=expiry,
            data=data,
            **result.model_dump(),
        )

    def verify(self, address: Pubkey | str) -> VerificationReport:
        """Read-only check of an attestation.

        Raises:
            NotFoundError: no attestation account exists at ``address``
        """
        attestation_address = to_pubkey(address, "address")
        attestation = self.fetch_attestation(attestation_address)
        return self._build_report(attestation, {})

    def _build_report(self, attestation: AttestationAccount, schemas: dict[str, SchemaAccount]) -> VerificationReport:
        if attestation.schema_address not in schemas:
            schemas[attestation.schema_address] = self.fetch_schema(Pubkey.from_string(attestation.schema_address))
        schema = schemas[attestation.schema_address]
        data = schema.schema_layout().decode(attestation.data)

        now = self._now()
        mint = derive_attestation_mint_address(Pubkey.from_string(attestation.address))
        mint_account = self.get_account(mint)
        token_present = mint_account is not None and mint_account.owner == TOKEN_2022_PROGRAM_ID

        return VerificationReport(
            attestation=attestation.address,
            credential=attestation.credential_address,
            schema_address=attestation.schema_address,
            schema_name=schema.name,
            schema_version=schema.version,
            schema_paused=schema.is_paused,
            signer=attestation.signer,
            expiry=attestation.expiry,
            checked_at=now,
            expired=now >= attestation.expiry,
            token_present=token_present,
            token_mint=str(mint),
            data=data,
        )

    def revoke(self, address: Pubkey | str) -> RevokeResult:
        """Close a tokenized attestation and burn its proof token.

        Raises:
            NotFoundError: no attestation account exists at ``address``
            UnauthorizedError: the signer is not the credential authority
        """
        authority = self.authority
        attestation_address = to_pubkey(address, "address")
        attestation = self.fetch_attestation(attestation_address)
        credential = self.fetch_credential(Pubkey.from_string(attestation.credential_address))
        if credential.authority != str(authority):
            raise UnauthorizedError(
                f"Only the credential authority {credential.authority} may revoke {attestation_address}"
            )

        attestation_mint = derive_attestation_mint_address(attestation_address)
        ix = instructions.close_tokenized_attestation(
            payer=authority,
            authority=authority,
            credential=Pubkey.from_string(credential.address),
            attestation=attestation_address,
            event_authority=derive_event_authority_address(),
            attestation_mint=attestation_mint,
            sas_authority=derive_sas_authority_address(),
            attestation_token_account=Pubkey.from_string(attestation.token_account),
        )
        result = self._require_submitter().submit([ix], "Close tokenized attestation")
        return RevokeResult(attestation=str(attestation_address), mint=str(attestation_mint), **result.model_dump())

    # --- Listing ---
    def _scan(self, filters: list[MemcmpOpts]) -> list[tuple[str, bytes]]:
        try:
            accounts = self.rpc.get_program_accounts(
                SAS_PROGRAM_ID, commitment=self.commitment, encoding="base64", filters=filters
            ).value
        except (RPCException, SolanaRpcException) as e:
            raise NetworkError(f"Failed to list program accounts: {e}") from e
        return [(str(keyed.pubkey), bytes(keyed.account.data)) for keyed in accounts]

    def list_credentials(self, authority: Pubkey) -> list[CredentialAccount]:
        filters = [
            _discriminator_filter(CREDENTIAL_DISCRIMINATOR),
            MemcmpOpts(offset=CREDENTIAL_AUTHORITY_OFFSET, bytes=str(authority)),
        ]
        return [decode_credential(address, data) for address, data in self._scan(filters)]

    def list_attestations(self, authority: Pubkey | None = None) -> list[VerificationReport]:
        """Attestations issued under every credential owned by ``authority``."""
        owner = authority or self.authority
        schemas: dict[str, SchemaAccount] = {}
        reports: list[VerificationReport] = []

        for credential in self.list_credentials(owner):
            filters = [
                _discriminator_filter(ATTESTATION_DISCRIMINATOR),
                MemcmpOpts(offset=ATTESTATION_CREDENTIAL_OFFSET, bytes=credential.address),
            ]
            for address, data in self._scan(filters):
                reports.append(self._build_report(decode_attestation(address, data), schemas))

        reports.sort(key=lambda report: report.expiry)
        return reports
