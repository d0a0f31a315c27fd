"""SHA-256 helpers for agent proof hashes."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from agent_proof.sdk.errors import ValidationError

HASH_HEX_LENGTH = 64


def hash_string(value: str) -> str:
    """Hex SHA-256 of a UTF-8 string."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def canonical_json_hash(data: dict[str, Any]) -> str:
    """Generate deterministic SHA256 hash from canonical JSON.

    Args:
        data: Dictionary to hash

    Returns:
        Hex-encoded SHA256 hash
    """
    if not data:
        raise ValidationError("capabilities", "manifest cannot be empty")
    canonical_json = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hash_string(canonical_json)


def hash_capabilities_file(path: Path) -> str:
    """Hash a capabilities manifest.

    JSON objects are hashed in canonical form so key order and whitespace do
    not change the digest; anything else is hashed as raw text.
    """
    if not path.exists():
        raise ValidationError("capabilities", f"Capabilities file not found: {path}")

    content = path.read_text(encoding="utf-8")
    try:
        manifest = json.loads(content)
    except json.JSONDecodeError:
        return hash_string(content)
    if isinstance(manifest, dict):
        return canonical_json_hash(manifest)
    return hash_string(content)


def default_capabilities_hash(agent_name: str, timestamp_ms: int) -> str:
    """Placeholder digest used when no capabilities manifest is supplied."""
    return hash_string(f"agent:{agent_name}:{timestamp_ms}")
