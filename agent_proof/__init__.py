"""Agent Proof: verifiable AI agent identity attestations on Solana."""

__version__ = "0.1.0"
