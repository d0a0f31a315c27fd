"""Error hierarchy for agent-proof.

Every failure a command can surface derives from AgentProofError so the CLI
can report it with a single handler.
"""

from __future__ import annotations


class AgentProofError(Exception):
    """Base class for agent-proof errors."""


class ValidationError(AgentProofError):
    """Malformed input rejected before any network call."""

    def __init__(self, field: str, message: str, bound: int | None = None):
        self.field = field
        self.bound = bound
        super().__init__(f"{field}: {message}")


class AlreadyExistsError(AgentProofError):
    """An account already lives at the derived address."""

    def __init__(self, kind: str, address: str):
        self.kind = kind
        self.address = address
        super().__init__(f"{kind} already exists at {address}")


class NotFoundError(AgentProofError):
    """No account exists at the requested address."""

    def __init__(self, kind: str, address: str):
        self.kind = kind
        self.address = address
        super().__init__(f"No {kind} found at {address}")


class NetworkError(AgentProofError):
    """RPC failure, simulation failure or confirmation timeout."""

    def __init__(self, message: str, logs: list[str] | None = None):
        self.logs = logs or []
        super().__init__(message)


class UnauthorizedError(AgentProofError):
    """Signer is not the credential authority."""
