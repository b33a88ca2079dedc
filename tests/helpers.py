"""Known vectors, a fake provider and chunking helpers shared by the tests."""

from __future__ import annotations

import base64
from collections.abc import Iterable

# ---------------------------------------------------------------------------
# Known vectors (OpenSSL 1.1.1h)
# ---------------------------------------------------------------------------
# echo "hello, world" | openssl aes-256-ctr -S AC2FDA1FA716E4B3 \
#   -K 95C2692DFAEA430A7F3712BE22E786384EA3E29EDA7ECDA52CECFC3AF327F916 \
#   -iv C7215956D07AE3D880A18BAA046EE598 -a
SALT = bytes.fromhex("AC2FDA1FA716E4B3")
KEY = bytes.fromhex("95C2692DFAEA430A7F3712BE22E786384EA3E29EDA7ECDA52CECFC3AF327F916")
IV = bytes.fromhex("C7215956D07AE3D880A18BAA046EE598")
PLAINTEXT = b"hello, world\n"
CIPHERTEXT = base64.b64decode("wc70/4v9cC2D8QrMUg==")

# echo "hello, world" | openssl aes-{128,256}-ctr -pbkdf2 -md sha256 -iter 100000 -pass pass:1234 -a
SALTED_128 = base64.b64decode("U2FsdGVkX19kKECUdeI1JBp93ySDysKQlQcLj/s=")
SALTED_256 = base64.b64decode("U2FsdGVkX18EPpkR74ZBC37ge0DsKGUWv0AAm3M=")


class XorCounterProvider:
    """Deterministic fake provider: the keystream block is the counter itself.

    Records every block call as ``(counter, data)`` so tests can inspect
    call granularity and counter progression.
    """

    def __init__(self) -> None:
        self.block_calls: list[tuple[bytes, bytes]] = []
        self.derive_calls = 0

    def pbkdf2_derive(
        self,
        password: str,
        salt: bytes,
        iterations: int,
        hash_name: str,
        output_bits: int,
    ) -> bytes:
        self.derive_calls += 1
        seed = salt + password.encode("utf-8")
        length = output_bits // 8
        return (seed * (length // len(seed) + 1))[:length]

    def aes_ctr_block(self, key: bytes, counter: bytes, data: bytes) -> bytes:
        self.block_calls.append((bytes(counter), bytes(data)))
        return bytes(c ^ d for c, d in zip(counter, data))


def split_chunks(data: bytes, sizes: Iterable[int]) -> list[bytes]:
    """Split *data* into chunks of the given sizes, cycling through *sizes*."""
    pattern = list(sizes)
    if not pattern or any(size <= 0 for size in pattern):
        raise ValueError("Chunk sizes must be a non-empty list of positive integers")
    chunks: list[bytes] = []
    pos = 0
    idx = 0
    while pos < len(data):
        size = pattern[idx % len(pattern)]
        chunks.append(data[pos : pos + size])
        pos += size
        idx += 1
    return chunks
