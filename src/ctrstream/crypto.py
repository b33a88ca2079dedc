"""Cryptographic provider (AES-CTR block + PBKDF2) and key/IV derivation."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Protocol

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .utils import SALT_SIZE, CtrParameterError, CtrProviderError

BLOCK_SIZE = 16  # AES block / counter size in bytes
IV_BITS = BLOCK_SIZE * 8
KEY_BITS = (128, 256)
KEY_SIZES = tuple(bits // 8 for bits in KEY_BITS)

DEFAULT_ITERATIONS = 10_000  # `openssl enc -pbkdf2` default
DEFAULT_HASH = "SHA-256"
DEFAULT_KEY_BITS = 256

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "SHA1": hashes.SHA1,
    "SHA224": hashes.SHA224,
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


def normalize_hash_name(name: str) -> str:
    """Map ``"SHA-256"``, ``"sha256"`` or ``"sha_256"`` to ``"SHA256"``."""
    return name.upper().replace("-", "").replace("_", "")


class CipherProvider(Protocol):
    """The primitives the streaming engine needs from a crypto library."""

    def pbkdf2_derive(
        self,
        password: str,
        salt: bytes,
        iterations: int,
        hash_name: str,
        output_bits: int,
    ) -> bytes:
        ...

    def aes_ctr_block(self, key: bytes, counter: bytes, data: bytes) -> bytes:
        ...


class CryptographyProvider:
    """:class:`CipherProvider` backed by the ``cryptography`` package."""

    def pbkdf2_derive(
        self,
        password: str,
        salt: bytes,
        iterations: int,
        hash_name: str,
        output_bits: int,
    ) -> bytes:
        """Run PBKDF2-HMAC and return ``output_bits // 8`` bytes.

        Raises:
            CtrProviderError: If the hash is unknown or the parameters are rejected.
        """
        algorithm = _HASHES.get(normalize_hash_name(hash_name))
        if algorithm is None:
            raise CtrProviderError(f"Unsupported PBKDF2 hash algorithm: {hash_name!r}")
        try:
            kdf = PBKDF2HMAC(
                algorithm=algorithm(),
                length=output_bits // 8,
                salt=bytes(salt),
                iterations=iterations,
            )
            return kdf.derive(password.encode("utf-8"))
        except (UnsupportedAlgorithm, ValueError, TypeError) as exc:
            raise CtrProviderError(f"PBKDF2 derivation failed: {exc}") from exc

    def aes_ctr_block(self, key: bytes, counter: bytes, data: bytes) -> bytes:
        """XOR *data* with the AES keystream block for *counter*."""
        try:
            encryptor = Cipher(algorithms.AES(bytes(key)), modes.CTR(bytes(counter))).encryptor()
            return encryptor.update(bytes(data)) + encryptor.finalize()
        except (UnsupportedAlgorithm, ValueError, TypeError) as exc:
            raise CtrProviderError(f"AES-CTR operation failed: {exc}") from exc


_default_provider: CryptographyProvider | None = None


def default_provider() -> CipherProvider:
    """Return the shared :class:`CryptographyProvider` instance."""
    global _default_provider
    if _default_provider is None:
        _default_provider = CryptographyProvider()
    return _default_provider


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivedKey:
    """Key and IV produced by :func:`derive_key_and_iv`.

    Unpacks like a tuple: ``key, iv = derive_key_and_iv(...)``.
    """

    key: bytes
    iv: bytes

    def __iter__(self) -> Iterator[bytes]:
        yield self.key
        yield self.iv


def check_key_bits(key_bits: int) -> None:
    if key_bits not in KEY_BITS:
        raise CtrParameterError(f"key_bits must be one of {KEY_BITS}, got {key_bits}")


def check_key_and_iv(key: bytes, iv: bytes) -> None:
    """Validate explicitly supplied key material.

    Raises:
        CtrParameterError: If the key is not 16/32 bytes or the IV not 16 bytes.
    """
    if len(key) not in KEY_SIZES:
        raise CtrParameterError(f"Key must be 16 or 32 bytes, got {len(key)}")
    if len(iv) != BLOCK_SIZE:
        raise CtrParameterError(f"IV must be {BLOCK_SIZE} bytes, got {len(iv)}")


def check_salt(salt: bytes) -> None:
    if len(salt) != SALT_SIZE:
        raise CtrParameterError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")


def derive_key_and_iv(
    salt: bytes,
    password: str,
    *,
    key_bits: int = DEFAULT_KEY_BITS,
    iterations: int = DEFAULT_ITERATIONS,
    hash: str = DEFAULT_HASH,
    provider: CipherProvider | None = None,
) -> DerivedKey:
    """Derive an AES key and CTR IV from *password* the way ``openssl enc -pbkdf2`` does.

    A single PBKDF2 run produces ``key_bits + 128`` bits; the first
    ``key_bits / 8`` bytes are the key and the remaining 16 bytes the IV.

    Args:
        salt: 8-byte salt.
        password: Password text (encoded as UTF-8).
        key_bits: 128 or 256.
        iterations: PBKDF2 iteration count.
        hash: Hash name, e.g. ``"SHA-256"`` or ``"sha512"``.
        provider: Crypto provider; defaults to :class:`CryptographyProvider`.

    Raises:
        CtrParameterError: On invalid *key_bits*, *iterations* or *salt*.
        CtrProviderError: If the provider rejects the hash or parameters.
    """
    check_key_bits(key_bits)
    check_salt(salt)
    if iterations <= 0:
        raise CtrParameterError(f"iterations must be positive, got {iterations}")

    provider = provider or default_provider()
    material = provider.pbkdf2_derive(password, bytes(salt), iterations, hash, key_bits + IV_BITS)
    split = key_bits // 8
    if len(material) != split + BLOCK_SIZE:
        raise CtrProviderError(
            f"PBKDF2 returned {len(material)} bytes, expected {split + BLOCK_SIZE}"
        )
    return DerivedKey(key=material[:split], iv=material[split:])


async def derive_key_and_iv_async(
    salt: bytes,
    password: str,
    *,
    key_bits: int = DEFAULT_KEY_BITS,
    iterations: int = DEFAULT_ITERATIONS,
    hash: str = DEFAULT_HASH,
    provider: CipherProvider | None = None,
) -> DerivedKey:
    """Same as :func:`derive_key_and_iv`, run in a worker thread."""
    return await asyncio.to_thread(
        derive_key_and_iv,
        salt,
        password,
        key_bits=key_bits,
        iterations=iterations,
        hash=hash,
        provider=provider,
    )
