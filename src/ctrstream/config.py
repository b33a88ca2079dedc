"""PBKDF2 options and environment configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .crypto import (
    DEFAULT_HASH,
    DEFAULT_ITERATIONS,
    DEFAULT_KEY_BITS,
    check_key_bits,
)
from .utils import CtrParameterError

ENV_PASSWORD = "CTRSTREAM_PASSWORD"
ENV_ITERATIONS = "CTRSTREAM_ITERATIONS"
ENV_HASH = "CTRSTREAM_HASH"
ENV_KEY_BITS = "CTRSTREAM_KEY_BITS"


@dataclass(frozen=True)
class Pbkdf2Options:
    """Parameters for password-based key derivation.

    The defaults match ``openssl enc -aes-256-ctr -pbkdf2``.

    Attributes:
        iterations: PBKDF2 iteration count.
        hash: Hash name (``"SHA-1"``, ``"SHA-256"``, ``"sha512"``, …).
        key_bits: AES key size, 128 or 256.
    """

    iterations: int = DEFAULT_ITERATIONS
    hash: str = DEFAULT_HASH
    key_bits: int = DEFAULT_KEY_BITS

    def __post_init__(self) -> None:
        check_key_bits(self.key_bits)
        if self.iterations <= 0:
            raise CtrParameterError(f"iterations must be positive, got {self.iterations}")

    @classmethod
    def from_env(cls) -> Pbkdf2Options:
        """Build options from ``CTRSTREAM_*`` variables (``.env`` is loaded first).

        Unset variables fall back to the defaults.

        Raises:
            CtrParameterError: If a variable holds a non-integer where one is required.
        """
        load_dotenv()
        return cls(
            iterations=_env_int(ENV_ITERATIONS, DEFAULT_ITERATIONS),
            hash=os.environ.get(ENV_HASH) or DEFAULT_HASH,
            key_bits=_env_int(ENV_KEY_BITS, DEFAULT_KEY_BITS),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise CtrParameterError(f"{name} must be an integer, got {raw!r}") from exc


def get_env_password() -> str | None:
    """Load ``.env`` and return ``CTRSTREAM_PASSWORD``, if set."""
    load_dotenv()
    return os.environ.get(ENV_PASSWORD) or None
