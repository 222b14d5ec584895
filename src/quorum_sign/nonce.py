"""Per-request nonce generation for signed approval messages."""

from __future__ import annotations

import hashlib
import secrets
import time

DEFAULT_NONCE_LENGTH = 16


def generate_nonce(length: int = DEFAULT_NONCE_LENGTH) -> str:
    """Return a fresh hex token for embedding in a signed message.

    The token is the SHA-256 digest of the current time concatenated with a
    random value, truncated to ``length`` hex characters. It is stateless;
    collisions are caught by :mod:`quorum_sign.guard`, not here.

    Raises:
        ValueError: If ``length`` is outside ``1..64``.
    """

    if not 1 <= length <= 64:
        raise ValueError("Nonce length must be between 1 and 64 hex characters")
    seed = f"{time.time_ns()}{secrets.token_hex(16)}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:length]
