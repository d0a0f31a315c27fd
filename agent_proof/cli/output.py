"""Console presentation for agent-proof commands.

Human output goes through rich; ``--json`` output is a single JSON document
on stdout so it can be piped into other tools.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from agent_proof.sdk.client import LAMPORTS_PER_SOL
from agent_proof.sdk.models import (
    AttestResult,
    InitResult,
    RevokeResult,
    StepResult,
    VerificationReport,
)

console = Console()
err_console = Console(stderr=True)


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def _short(value: str, length: int = 16) -> str:
    return value if len(value) <= length else f"{value[:length]}..."


class Presenter:
    """Renders command results either for people or for machines."""

    def __init__(self, json_output: bool = False):
        self.json_output = json_output

    def emit_json(self, payload: dict[str, Any]) -> None:
        typer.echo(json.dumps(payload, indent=2, default=str))

    def info(self, message: str) -> None:
        if not self.json_output:
            console.print(message)

    def warn(self, message: str) -> None:
        if not self.json_output:
            err_console.print(f"[yellow]⚠ {message}[/yellow]")

    def error(self, action: str, error: Exception) -> None:
        if self.json_output:
            self.emit_json({"success": False, "error": str(error), "error_type": type(error).__name__})
        else:
            err_console.print(f"❌ Error {action}: {error}", soft_wrap=True)

    def not_found(self, error: Exception) -> None:
        if self.json_output:
            self.emit_json({"success": False, "found": False, "error": str(error)})
        else:
            err_console.print(f"✗ No proof found: {error}", soft_wrap=True)
            err_console.print("[dim]The address may not hold an agent proof, or it may have been revoked.[/dim]")

    def _rule(self) -> None:
        console.rule(style="dim")

    def _step(self, step: StepResult) -> None:
        if step.skipped:
            console.print(f"[green]✓[/green] {step.step}: already exists, skipped")
        else:
            console.print(
                f"[green]✓[/green] {step.step}: {_short(step.signature or '')} "
                f"[dim]({step.cu_used:,} CU)[/dim]"
            )

    def init_result(self, result: InitResult, agent_name: str, agent_type: str, platform: str) -> None:
        if self.json_output:
            self.emit_json({"success": True, **result.model_dump(mode="json"), "total_cu": result.total_cu})
            return

        for step in result.steps:
            self._step(step)
        console.print("\n📋 Agent Identity Initialized")
        self._rule()
        console.print(f"Network:     {result.network}")
        console.print(f"Authority:   {result.authority}")
        console.print(f"Agent Name:  {agent_name}")
        console.print(f"Agent Type:  {agent_type}")
        console.print(f"Platform:    {platform}")
        self._rule()
        console.print(f"Credential:  [cyan]{result.credential}[/cyan]")
        console.print(f"Schema:      [cyan]{result.schema_address}[/cyan]")
        console.print(f"Schema Mint: [cyan]{result.schema_mint}[/cyan]")
        console.print(f"Total CU:    {result.total_cu:,}")
        self._rule()
        console.print("✅ Ready to create attestations!")
        console.print(f'Run: agent-proof attest --name "{agent_name}"')

    def attest_result(self, result: AttestResult) -> None:
        if self.json_output:
            self.emit_json({"success": True, **result.model_dump(mode="json")})
            return

        data = result.data
        console.print("\n🎫 Agent Proof Minted")
        self._rule()
        console.print(f"Agent:       {data.get('agent_name')}")
        console.print(f"Type:        {data.get('agent_type')}")
        console.print(f"Platform:    {data.get('platform')}")
        console.print(f"Owner:       {data.get('owner_pubkey')}")
        console.print(f"Hash:        {_short(str(data.get('capabilities_hash', '')))}")
        console.print(f"Expires:     {_iso(result.expiry)}")
        self._rule()
        console.print(f"Signature:   {_short(result.signature, 32)}")
        console.print(f"Attestation: [cyan]{result.attestation}[/cyan]")
        console.print(f"Token Mint:  [cyan]{result.mint}[/cyan]")
        console.print(f"Nonce:       {result.nonce}")
        self._rule()
        console.print("✅ Proof NFT minted to the recipient wallet")
        console.print(f"Verify with: agent-proof verify {result.attestation}")

    def verification(self, report: VerificationReport) -> None:
        if self.json_output:
            self.emit_json({"success": True, "found": True, **report.model_dump(mode="json"), "status": report.status.value})
            return

        console.print("\n🔍 Agent Proof Verified")
        self._rule()
        if report.expired:
            console.print("Status:      [yellow]⚠ Expired[/yellow]")
        else:
            console.print("Status:      [green]✓ Valid[/green]")
        if report.schema_paused:
            console.print("[yellow]⚠ This agent's schema has been paused by the issuer.[/yellow]")
        self._rule()
        for key, value in report.data.items():
            console.print(f"{key + ':':<18} {value}")
        self._rule()
        console.print(f"Expires:     {_iso(report.expiry)}")
        console.print(f"Attestation: [cyan]{report.attestation}[/cyan]")
        console.print(f"Schema:      [cyan]{report.schema_address}[/cyan] ({report.schema_name} v{report.schema_version})")
        console.print(f"Credential:  [cyan]{report.credential}[/cyan]")
        if report.token_present:
            console.print(f"Token Mint:  [cyan]{report.token_mint}[/cyan]")
        else:
            console.print("Token Mint:  [yellow]absent (burned or never minted)[/yellow]")
        self._rule()

    def attestation_list(self, authority: str, reports: list[VerificationReport]) -> None:
        if self.json_output:
            self.emit_json({
                "success": True,
                "authority": authority,
                "count": len(reports),
                "attestations": [report.model_dump(mode="json") for report in reports],
            })
            return

        if not reports:
            console.print(f"No attestations found for {authority}")
            return

        table = Table(title=f"Agent proofs for {_short(authority, 20)}")
        table.add_column("Attestation", style="cyan", no_wrap=True)
        table.add_column("Agent")
        table.add_column("Status")
        table.add_column("Token")
        table.add_column("Expires")
        for report in reports:
            table.add_row(
                report.attestation,
                str(report.data.get("agent_name", "")),
                report.status.value,
                "yes" if report.token_present else "no",
                _iso(report.expiry)[:10],
            )
        console.print(table)

    def status(self, summary: dict[str, Any]) -> None:
        if self.json_output:
            self.emit_json({"success": True, **summary})
            return

        console.print("\n📡 Agent Proof Status")
        self._rule()
        console.print(f"Network:     {summary['network']}")
        console.print(f"RPC:         {summary['rpc_url']}")
        console.print(f"Authority:   {summary['authority']}")
        console.print(f"Balance:     {summary['balance_lamports'] / LAMPORTS_PER_SOL:.4f} SOL")
        for entry in summary.get("accounts", []):
            marker = "[green]✓[/green]" if entry["exists"] else "[red]✗[/red]"
            console.print(f"{entry['kind'] + ':':<13}{marker} {entry['address']}")
        self._rule()

    def revoke_result(self, result: RevokeResult) -> None:
        if self.json_output:
            self.emit_json({"success": True, **result.model_dump(mode="json")})
            return

        console.print("✅ Attestation revoked successfully!")
        console.print(f"Attestation: [bold]{result.attestation}[/bold]")
        console.print(f"Burned mint: {result.mint}")
        console.print(f"Signature:   {_short(result.signature, 32)}")

    def keygen_result(self, pubkey: str, path: str) -> None:
        if self.json_output:
            self.emit_json({"success": True, "pubkey": pubkey, "path": path})
            return

        console.print("✅ Keypair generated")
        console.print(f"Public key: [bold]{pubkey}[/bold]")
        console.print(f"Saved to:   {path}")
