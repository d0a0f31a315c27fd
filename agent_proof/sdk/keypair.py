"""Local keypair files in the Solana CLI format.

A keypair file is a JSON array of 64 integers: the 32-byte ed25519 seed
followed by the 32-byte public key.
"""

from __future__ import annotations

import json
from pathlib import Path

from nacl.signing import SigningKey
from solders.keypair import Keypair

from agent_proof.sdk.errors import ValidationError

DEFAULT_KEYPAIR_PATH = Path("~/.config/solana/id.json")
SECRET_KEY_LENGTH = 64


def keypair_from_secret(secret: bytes) -> Keypair:
    """Build a Keypair, checking that the stored public key matches the seed."""
    if len(secret) != SECRET_KEY_LENGTH:
        raise ValidationError("keypair", f"expected {SECRET_KEY_LENGTH} bytes, got {len(secret)}", SECRET_KEY_LENGTH)
    seed, public_key = secret[:32], secret[32:]
    if bytes(SigningKey(seed).verify_key) != public_key:
        raise ValidationError("keypair", "public key does not match secret seed")
    return Keypair.from_bytes(secret)


def load_keypair(path: Path | str) -> Keypair:
    """Load a keypair from a JSON secret-key file."""
    keypair_path = Path(path).expanduser()
    if not keypair_path.exists():
        raise ValidationError("keypair", f"Keypair file not found: {keypair_path}")

    try:
        raw = json.loads(keypair_path.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError("keypair", f"Invalid JSON in keypair file: {e}")
    except OSError as e:
        raise ValidationError("keypair", f"Cannot read keypair file {keypair_path}: {e.strerror or e}")
    if not isinstance(raw, list) or not all(isinstance(b, int) and 0 <= b <= 255 for b in raw):
        raise ValidationError("keypair", "Keypair file must be a JSON array of byte values")
    return keypair_from_secret(bytes(raw))


def generate_keypair() -> Keypair:
    """Generate a fresh random keypair."""
    signing_key = SigningKey.generate()
    return Keypair.from_seed(bytes(signing_key))


def save_keypair(keypair: Keypair, path: Path | str, force: bool = False) -> Path:
    """Write ``keypair`` to ``path``; refuses to overwrite unless ``force``."""
    keypair_path = Path(path).expanduser()
    if keypair_path.exists() and not force:
        raise ValidationError("output", f"Key file {keypair_path} already exists. Use --force to overwrite.")
    try:
        keypair_path.parent.mkdir(parents=True, exist_ok=True)
        keypair_path.write_text(json.dumps(list(bytes(keypair))))
        keypair_path.chmod(0o600)
    except OSError as e:
        raise ValidationError("output", f"Cannot write key file {keypair_path}: {e.strerror or e}")
    return keypair_path
