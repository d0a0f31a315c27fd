"""CLI configuration management for agent-proof using pydantic-settings.

Handles RPC client setup, keypair loading and environment configuration.
The RPC client and keypair are created once per process and carried in a
CliContext that every command passes to the SDK explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment
from solders.keypair import Keypair

from agent_proof.sdk.agent import DEFAULT_TOKEN_URI
from agent_proof.sdk.client import AgentProofClient
from agent_proof.sdk.keypair import DEFAULT_KEYPAIR_PATH, load_keypair

Network = Literal["devnet", "mainnet", "localnet"]

NETWORK_RPC_URLS: dict[str, str] = {
    "devnet": "https://api.devnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
    "localnet": "http://127.0.0.1:8899",
}


class AgentProofConfig(BaseSettings):
    """agent-proof CLI configuration using pydantic-settings BaseSettings."""

    model_config = SettingsConfigDict(
        env_prefix="AGENT_PROOF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    network: Network = Field(default="devnet", description="Solana cluster")
    rpc_url: str | None = Field(default=None, description="RPC endpoint; defaults to the cluster's public endpoint")
    keypair_path: Path = Field(default=DEFAULT_KEYPAIR_PATH, description="Authority keypair file")
    commitment: Literal["processed", "confirmed", "finalized"] = Field(default="confirmed")
    token_uri: str = Field(default=DEFAULT_TOKEN_URI, description="Metadata URI of proof tokens")
    min_balance_sol: float = Field(default=0.05, description="Balance below which init requests an airdrop")
    expiry_days: int = Field(default=365, description="Default attestation lifetime in days")

    @field_validator("expiry_days")
    @classmethod
    def validate_expiry_days(cls, v: int) -> int:
        """Validate expiry is positive."""
        if v <= 0:
            raise ValueError("Expiry days must be positive")
        return v

    def resolved_rpc_url(self) -> str:
        return self.rpc_url or NETWORK_RPC_URLS[self.network]


def create_rpc_client(config: AgentProofConfig) -> Client:
    """Create Solana RPC client from configuration."""
    return Client(config.resolved_rpc_url(), commitment=Commitment(config.commitment))


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@dataclass
class CliContext:
    """Per-process state shared by a command: config plus lazily created handles."""

    config: AgentProofConfig
    json_output: bool = False
    _rpc: Client | None = field(default=None, repr=False)
    _keypair: Keypair | None = field(default=None, repr=False)

    @property
    def rpc(self) -> Client:
        if self._rpc is None:
            self._rpc = create_rpc_client(self.config)
        return self._rpc

    @property
    def keypair(self) -> Keypair:
        if self._keypair is None:
            self._keypair = load_keypair(self.config.keypair_path)
        return self._keypair

    def client(self, with_keypair: bool = True) -> AgentProofClient:
        return AgentProofClient(
            self.rpc,
            self.keypair if with_keypair else None,
            network=self.config.network,
            commitment=Commitment(self.config.commitment),
        )


def build_context(
    keypair: Path | None = None,
    rpc: str | None = None,
    mainnet: bool | None = None,
    json_output: bool = False,
) -> CliContext:
    """Load configuration and apply command-line overrides."""
    config = AgentProofConfig()
    overrides: dict[str, object] = {}
    if keypair is not None:
        overrides["keypair_path"] = keypair
    if rpc is not None:
        overrides["rpc_url"] = rpc
    if mainnet is not None:
        overrides["network"] = "mainnet" if mainnet else "devnet"
    if overrides:
        config = config.model_copy(update=overrides)
    return CliContext(config=config, json_output=json_output)
