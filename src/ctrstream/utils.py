"""Utility functions: exceptions, salted header packing, counter and stream helpers."""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from typing import TYPE_CHECKING, BinaryIO, Union

if TYPE_CHECKING:
    from .reader import ChunkReader

# ---------------------------------------------------------------------------
# Library-specific exceptions
# ---------------------------------------------------------------------------


class CtrStreamError(Exception):
    """Base exception for ctrstream."""


class CtrParameterError(CtrStreamError):
    """Raised for invalid keys, IVs, salts or derivation parameters."""


class CtrFramingError(CtrStreamError):
    """Raised when a salted stream has a short or malformed header."""


class CtrProviderError(CtrStreamError):
    """Raised when the cryptographic provider rejects its input."""


class CtrShortReadError(CtrStreamError):
    """Raised when a source ends before the requested number of bytes arrived.

    Attributes:
        partial: The bytes that were read before the source ended.
        expected: The number of bytes that were requested.
    """

    def __init__(self, partial: bytes, expected: int) -> None:
        super().__init__(f"expected {expected} bytes, but got {len(partial)}")
        self.partial = partial
        self.expected = expected


# ---------------------------------------------------------------------------
# Salted header format
# ---------------------------------------------------------------------------
# 8-byte magic  |  8-byte salt
# "Salted__"    |  <salt>
# Total: 16 bytes, identical to `openssl enc` output.
MAGIC = b"Salted__"
SALT_SIZE = 8
HEADER_SIZE = len(MAGIC) + SALT_SIZE  # 16 bytes


def pack_header(salt: bytes) -> bytes:
    """Pack the salted header that precedes a password-derived ciphertext.

    Args:
        salt: The 8-byte PBKDF2 salt.

    Returns:
        ``b"Salted__" + salt``.

    Raises:
        CtrParameterError: If *salt* is not exactly 8 bytes.
    """
    if len(salt) != SALT_SIZE:
        raise CtrParameterError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")
    return MAGIC + bytes(salt)


def unpack_header(header_bytes: bytes) -> bytes:
    """Unpack a salted header and return the salt.

    Raises:
        CtrFramingError: If the header is not 16 bytes or the magic doesn't match.
    """
    if len(header_bytes) != HEADER_SIZE:
        raise CtrFramingError(
            f"Header must be exactly {HEADER_SIZE} bytes, got {len(header_bytes)}"
        )
    magic = header_bytes[: len(MAGIC)]
    if magic != MAGIC:
        raise CtrFramingError(
            f"Invalid magic bytes: expected {MAGIC!r}, got {bytes(magic)!r}. "
            "The stream was not produced by a password-based encryption."
        )
    return bytes(header_bytes[len(MAGIC) :])


async def read_header(reader: ChunkReader) -> bytes:
    """Consume exactly one salted header from *reader* and return its salt.

    Raises:
        CtrFramingError: If the stream ends inside the header or the magic is wrong.
    """
    try:
        magic = await reader.read_exact(len(MAGIC))
        if magic != MAGIC:
            raise CtrFramingError(
                f"Invalid magic bytes: expected {MAGIC!r}, got {magic!r}"
            )
        return await reader.read_exact(SALT_SIZE)
    except CtrShortReadError as exc:
        raise CtrFramingError(
            f"Stream too short for a salted header ({HEADER_SIZE} bytes required): {exc}"
        ) from exc


# ---------------------------------------------------------------------------
# Counter helpers
# ---------------------------------------------------------------------------


def increment_counter(counter: bytearray) -> None:
    """Increment a big-endian counter in place, wrapping to all zeros on overflow."""
    for i in range(len(counter) - 1, -1, -1):
        counter[i] = (counter[i] + 1) & 0xFF
        if counter[i] != 0:
            break


# ---------------------------------------------------------------------------
# Stream helpers
# ---------------------------------------------------------------------------

BYTES_LIKE = (bytes, bytearray, memoryview)

ByteSource = Union[bytes, bytearray, memoryview, Iterable[bytes], AsyncIterable[bytes]]


async def _iterate(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def as_async_chunks(source: ByteSource) -> AsyncIterable[bytes]:
    """Normalise *source* into an async iterable of byte chunks.

    Accepts a single bytes-like object (one chunk), any synchronous iterable
    of chunks, or an async iterable, which is returned unchanged.  The
    chunks themselves are type-checked by :class:`ChunkReader` as they are
    pulled.
    """
    if isinstance(source, BYTES_LIKE):
        return _iterate([bytes(source)])
    if isinstance(source, AsyncIterable):
        return source
    if isinstance(source, Iterable):
        return _iterate(source)
    raise TypeError(f"Unsupported byte source: {type(source).__name__}")


async def collect(stream: AsyncIterable[bytes]) -> bytes:
    """Drain *stream* and return the concatenation of its chunks."""
    parts: list[bytes] = []
    async for chunk in stream:
        parts.append(chunk)
    return b"".join(parts)


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

DEFAULT_CHUNK_SIZE = 64 * 1024


def check_chunk_size(chunk_size: int) -> None:
    """Raise :class:`CtrParameterError` unless *chunk_size* is a positive integer."""
    if chunk_size <= 0:
        raise CtrParameterError(f"Chunk size must be positive, got {chunk_size}")


async def _read_chunks(fh: BinaryIO, chunk_size: int) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(fh.read, chunk_size)
        if not chunk:
            return
        yield chunk


def iter_fileobj(fh: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield chunks read from a binary file object, reading in a worker thread.

    Raises:
        CtrParameterError: Immediately, if *chunk_size* is not positive.
    """
    check_chunk_size(chunk_size)
    return _read_chunks(fh, chunk_size)


async def write_stream(
    stream: AsyncIterable[bytes],
    fh: BinaryIO,
    flush_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Write every chunk of *stream* to *fh* and return the number of bytes written.

    Small chunks are gathered and written in batches of about *flush_size*
    bytes, one worker-thread call per batch.
    """
    total = 0
    pending = bytearray()
    async for chunk in stream:
        pending.extend(chunk)
        total += len(chunk)
        if len(pending) >= flush_size:
            await asyncio.to_thread(fh.write, bytes(pending))
            pending.clear()
    if pending:
        await asyncio.to_thread(fh.write, bytes(pending))
    return total


async def _prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    if first:
        yield first
    async for chunk in rest:
        yield chunk


async def write_stream_to_path(
    stream: AsyncIterable[bytes],
    path: Union[str, os.PathLike],
    flush_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Write *stream* to the file at *path*, returning the number of bytes written.

    The file is only opened once the stream has produced its first chunk
    (or ended), so errors raised up front, such as a malformed header or an
    unsupported hash, leave no output file behind.  A file that was opened
    and then fails mid-stream is removed.
    """
    iterator = stream.__aiter__()
    try:
        first = await iterator.__anext__()
    except StopAsyncIteration:
        first = b""

    try:
        with open(path, "wb") as fh:
            return await write_stream(_prepend(first, iterator), fh, flush_size)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(path)
        raise
