"""Typer CLI for agent-proof.

Provides commands: init, attest, verify, list, status, revoke, keygen.
Main entrypoint for the agent-proof command-line interface.
"""

from __future__ import annotations

import json
import time
from pathlib import Path

import typer
from solders.pubkey import Pubkey

from agent_proof import __version__
from agent_proof.cli.config import CliContext, build_context, configure_logging
from agent_proof.cli.output import Presenter, console
from agent_proof.sdk.agent import (
    AGENT_SCHEMA_DESCRIPTION,
    AGENT_SCHEMA_LAYOUT,
    AGENT_SCHEMA_NAME,
    AGENT_SCHEMA_VERSION,
    TOKEN_SYMBOL,
    build_agent_data,
    credential_name_for,
    token_name_for,
)
from agent_proof.sdk.client import LAMPORTS_PER_SOL, MAINNET, AgentProofClient
from agent_proof.sdk.errors import AgentProofError, NetworkError, NotFoundError, ValidationError
from agent_proof.sdk.hashing import default_capabilities_hash, hash_capabilities_file
from agent_proof.sdk.keypair import generate_keypair, save_keypair
from agent_proof.sdk.models import DeploymentAddresses
from agent_proof.sdk.pda import (
    derive_credential_address,
    derive_schema_address,
    derive_schema_mint_address,
    to_pubkey,
)


app = typer.Typer(
    name="agent-proof",
    help="Verifiable AI agent identity attestations on Solana",
    add_completion=False,
    rich_markup_mode="rich",
)

DEFAULT_ADDRESSES_FILE = Path("addresses.json")

KEYPAIR_OPTION = typer.Option(None, "--keypair", "-k", help="Path to keypair file")
RPC_OPTION = typer.Option(None, "--rpc", help="RPC URL")
NETWORK_OPTION = typer.Option(None, "--mainnet/--devnet", help="Target cluster")
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")
VERBOSE_OPTION = typer.Option(False, "--verbose", help="Log RPC and transaction details")
ADDRESSES_OPTION = typer.Option(DEFAULT_ADDRESSES_FILE, "--addresses", help="Deployment summary file")

CLI_ERRORS = (AgentProofError, ValueError, OSError)


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"agent-proof version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    )
) -> None:
    """AI agents create verifiable proof-of-existence on Solana."""
    pass


def _setup(
    keypair: Path | None, rpc: str | None, mainnet: bool | None, json_output: bool, verbose: bool
) -> tuple[CliContext, Presenter]:
    configure_logging(verbose)
    presenter = Presenter(json_output)
    try:
        ctx = build_context(keypair, rpc, mainnet, json_output)
    except CLI_ERRORS as e:
        _fail(presenter, "loading configuration", e)
    return ctx, presenter


def _fail(presenter: Presenter, action: str, error: Exception, missing_proof: bool = False) -> None:
    if missing_proof and isinstance(error, NotFoundError):
        presenter.not_found(error)
    else:
        presenter.error(action, error)
    raise typer.Exit(1)


def _load_addresses(path: Path) -> DeploymentAddresses | None:
    """Load the deployment summary written by ``init``, if present."""
    if not path.exists():
        return None
    try:
        return DeploymentAddresses.model_validate(json.loads(path.read_text()))
    except json.JSONDecodeError as e:
        raise ValidationError("addresses", f"Invalid JSON in addresses file: {e}")
    except OSError as e:
        raise ValidationError("addresses", f"Cannot read addresses file {path}: {e.strerror or e}")


def _check_writable(path: Path) -> None:
    """Fail before any transaction if the addresses file cannot be written."""
    if path.is_dir():
        raise ValidationError("addresses", f"Addresses path {path} is a directory")
    if not path.parent.is_dir():
        raise ValidationError("addresses", f"Directory {path.parent} does not exist")


def _save_addresses(path: Path, addresses: DeploymentAddresses) -> None:
    try:
        path.write_text(addresses.model_dump_json(by_alias=True, indent=2))
    except OSError as e:
        raise ValidationError("addresses", f"Cannot write addresses file {path}: {e.strerror or e}")


def _ensure_balance(client: AgentProofClient, ctx: CliContext, presenter: Presenter) -> None:
    """Warn about a low balance and top it up off mainnet."""
    balance = client.get_balance()
    minimum = int(ctx.config.min_balance_sol * LAMPORTS_PER_SOL)
    if balance >= minimum:
        return

    presenter.warn(f"Low balance: {balance / LAMPORTS_PER_SOL:.4f} SOL")
    if ctx.config.network == MAINNET:
        return
    try:
        signature = client.airdrop()
        presenter.info(f"[green]✓ Airdrop: {signature[:16]}...[/green]")
    except NetworkError as e:
        presenter.warn(f"Airdrop failed, continuing: {e}")


@app.command()
def init(
    name: str = typer.Option(..., "--name", "-n", help="Agent name"),
    agent_type: str = typer.Option("custom", "--type", "-t", help="Agent type, e.g. claude, gpt-4"),
    platform: str = typer.Option("custom", "--platform", "-p", help="Agent platform, e.g. openclaw"),
    addresses: Path = ADDRESSES_OPTION,
    keypair: Path | None = KEYPAIR_OPTION,
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Create the agent's credential and schema, and tokenize the schema."""
    ctx, presenter = _setup(keypair, rpc, mainnet, json_output, verbose)
    try:
        credential_name = credential_name_for(name)
        _check_writable(addresses)
        client = ctx.client()
        _ensure_balance(client, ctx, presenter)

        result = client.initialize(
            credential_name,
            AGENT_SCHEMA_NAME,
            AGENT_SCHEMA_DESCRIPTION,
            AGENT_SCHEMA_LAYOUT,
            AGENT_SCHEMA_VERSION,
        )
        _save_addresses(addresses, DeploymentAddresses(
            network=result.network,
            credential=result.credential,
            schema_address=result.schema_address,
            schema_mint=result.schema_mint,
            authority=result.authority,
            agent_name=name,
            agent_type=agent_type,
            platform=platform,
        ))
        presenter.init_result(result, name, agent_type, platform)
        presenter.info(f"📝 Saved to {addresses}")
    except CLI_ERRORS as e:
        _fail(presenter, "initializing agent identity", e)


@app.command()
def attest(
    name: str = typer.Option(..., "--name", "-n", help="Agent name used at init"),
    agent_type: str | None = typer.Option(None, "--type", "-t", help="Agent type (defaults to the init value)"),
    platform: str | None = typer.Option(None, "--platform", "-p", help="Agent platform (defaults to the init value)"),
    capabilities: Path | None = typer.Option(None, "--capabilities", "-c", help="Capabilities manifest to hash"),
    nonce: str | None = typer.Option(None, "--nonce", help="Nonce address (random if omitted)"),
    recipient: str | None = typer.Option(None, "--recipient", help="Proof token recipient (defaults to authority)"),
    expiry: int | None = typer.Option(None, "--expiry", help="Days until the attestation expires"),
    addresses: Path = ADDRESSES_OPTION,
    keypair: Path | None = KEYPAIR_OPTION,
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Issue a tokenized attestation and mint the proof NFT."""
    ctx, presenter = _setup(keypair, rpc, mainnet, json_output, verbose)
    try:
        deployment = _load_addresses(addresses)
        if deployment is not None and deployment.agent_name == name:
            agent_type = agent_type or deployment.agent_type
            platform = platform or deployment.platform

        client = ctx.client()
        authority = client.authority
        credential = derive_credential_address(authority, credential_name_for(name))
        schema = derive_schema_address(credential, AGENT_SCHEMA_NAME, AGENT_SCHEMA_VERSION)

        capabilities_hash = (
            hash_capabilities_file(capabilities)
            if capabilities
            else default_capabilities_hash(name, int(time.time() * 1000))
        )
        data = build_agent_data(
            name, agent_type or "custom", platform or "custom", str(authority), capabilities_hash
        )
        nonce_key = to_pubkey(nonce, "nonce") if nonce else generate_keypair().pubkey()
        recipient_key = to_pubkey(recipient, "recipient") if recipient else None

        result = client.create_attestation(
            credential,
            schema,
            nonce_key,
            data,
            recipient=recipient_key,
            expiry_days=expiry if expiry is not None else ctx.config.expiry_days,
            token_name=token_name_for(name),
            token_symbol=TOKEN_SYMBOL,
            token_uri=ctx.config.token_uri,
        )
        presenter.attest_result(result)
    except CLI_ERRORS as e:
        _fail(presenter, "creating attestation", e)


@app.command()
def verify(
    address: str = typer.Argument(..., help="Attestation address to verify"),
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Verify an agent's attestation proof."""
    ctx, presenter = _setup(None, rpc, mainnet, json_output, verbose)
    try:
        report = ctx.client(with_keypair=False).verify(address)
        presenter.verification(report)
    except CLI_ERRORS as e:
        _fail(presenter, "verifying attestation", e, missing_proof=True)


@app.command("list")
def list_command(
    agent: str | None = typer.Option(None, "--agent", "-a", help="Authority public key (defaults to keypair)"),
    keypair: Path | None = KEYPAIR_OPTION,
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List attestations issued under an identity's credentials."""
    ctx, presenter = _setup(keypair, rpc, mainnet, json_output, verbose)
    try:
        if agent:
            authority = to_pubkey(agent, "agent")
            client = ctx.client(with_keypair=False)
        else:
            client = ctx.client()
            authority = client.authority
        reports = client.list_attestations(authority)
        presenter.attestation_list(str(authority), reports)
    except CLI_ERRORS as e:
        _fail(presenter, "listing attestations", e)


@app.command()
def status(
    name: str | None = typer.Option(None, "--name", "-n", help="Agent name (defaults to addresses file)"),
    addresses: Path = ADDRESSES_OPTION,
    keypair: Path | None = KEYPAIR_OPTION,
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show authority, balance and deployment state."""
    ctx, presenter = _setup(keypair, rpc, mainnet, json_output, verbose)
    try:
        client = ctx.client()
        authority = client.authority
        if name is None:
            deployment = _load_addresses(addresses)
            name = deployment.agent_name if deployment else None

        summary: dict = {
            "network": ctx.config.network,
            "rpc_url": ctx.config.resolved_rpc_url(),
            "authority": str(authority),
            "balance_lamports": client.get_balance(),
            "agent_name": name,
            "accounts": [],
        }
        if name:
            summary["accounts"] = _account_states(client, authority, name)
        presenter.status(summary)
    except CLI_ERRORS as e:
        _fail(presenter, "reading status", e)


def _account_states(client: AgentProofClient, authority: Pubkey, name: str) -> list[dict]:
    credential = derive_credential_address(authority, credential_name_for(name))
    schema = derive_schema_address(credential, AGENT_SCHEMA_NAME, AGENT_SCHEMA_VERSION)
    mint = derive_schema_mint_address(schema)
    return [
        {"kind": kind, "address": str(address), "exists": client.account_exists(address)}
        for kind, address in (("Credential", credential), ("Schema", schema), ("Schema Mint", mint))
    ]


@app.command()
def revoke(
    address: str = typer.Argument(..., help="Attestation address to revoke"),
    keypair: Path | None = KEYPAIR_OPTION,
    rpc: str | None = RPC_OPTION,
    mainnet: bool | None = NETWORK_OPTION,
    json_output: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Revoke an attestation and burn its proof token."""
    ctx, presenter = _setup(keypair, rpc, mainnet, json_output, verbose)
    try:
        result = ctx.client().revoke(address)
        presenter.revoke_result(result)
    except CLI_ERRORS as e:
        _fail(presenter, "revoking attestation", e, missing_proof=True)


@app.command()
def keygen(
    output: Path | None = typer.Option(None, "--output", "-o", help="Keypair file (defaults to configured path)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing key file"),
    json_output: bool = JSON_OPTION,
) -> None:
    """Generate a new authority keypair file."""
    ctx, presenter = _setup(None, None, None, json_output, False)
    try:
        keypair = generate_keypair()
        path = save_keypair(keypair, output or ctx.config.keypair_path, force=force)
        presenter.keygen_result(str(keypair.pubkey()), str(path))
    except CLI_ERRORS as e:
        _fail(presenter, "generating keypair", e)


if __name__ == "__main__":
    app()
