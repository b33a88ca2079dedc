"""Public entry points: explicit-key and password-based streaming AES-CTR."""

from __future__ import annotations

import asyncio
import os
import pathlib
from collections.abc import AsyncIterator
from typing import Union

from .cipher import CounterBlockCipher
from .config import Pbkdf2Options
from .crypto import (
    CipherProvider,
    check_salt,
    default_provider,
    derive_key_and_iv_async,
)
from .reader import ChunkReader
from .utils import (
    DEFAULT_CHUNK_SIZE,
    SALT_SIZE,
    ByteSource,
    as_async_chunks,
    check_chunk_size,
    collect,
    iter_fileobj,
    pack_header,
    read_header,
    write_stream_to_path,
)

# ---------------------------------------------------------------------------
# Explicit key / IV
# ---------------------------------------------------------------------------


def _transform(
    source: ByteSource,
    key: bytes,
    iv: bytes,
    salt: bytes | None,
    provider: CipherProvider | None,
) -> AsyncIterator[bytes]:
    if salt is not None:
        check_salt(salt)
    engine = CounterBlockCipher(key, iv, provider)
    return engine.transform(ChunkReader(as_async_chunks(source)))


def encrypt(
    source: ByteSource,
    key: bytes,
    iv: bytes,
    salt: bytes | None = None,
    *,
    provider: CipherProvider | None = None,
) -> AsyncIterator[bytes]:
    """Encrypt *source* with AES-CTR under an explicit key and IV.

    No header is written; the output has exactly as many bytes as the input.
    *salt* is only validated, never embedded: it is there so callers can
    carry the salt an external tool was given alongside the key.

    Raises:
        CtrParameterError: Immediately, if key, IV or salt has the wrong length.
    """
    return _transform(source, key, iv, salt, provider)


def decrypt(
    source: ByteSource,
    key: bytes,
    iv: bytes,
    salt: bytes | None = None,
    *,
    provider: CipherProvider | None = None,
) -> AsyncIterator[bytes]:
    """Decrypt a header-less AES-CTR stream; the inverse of :func:`encrypt`."""
    return _transform(source, key, iv, salt, provider)


# ---------------------------------------------------------------------------
# Password based (``Salted__`` container)
# ---------------------------------------------------------------------------


async def _encrypt_with_password(
    reader: ChunkReader,
    password: str,
    salt: bytes,
    options: Pbkdf2Options,
    provider: CipherProvider,
) -> AsyncIterator[bytes]:
    try:
        key, iv = await derive_key_and_iv_async(
            salt,
            password,
            key_bits=options.key_bits,
            iterations=options.iterations,
            hash=options.hash,
            provider=provider,
        )
        yield pack_header(salt)
        async for chunk in CounterBlockCipher(key, iv, provider).transform(reader):
            yield chunk
    finally:
        await reader.aclose()


async def _decrypt_with_password(
    reader: ChunkReader,
    password: str,
    options: Pbkdf2Options,
    provider: CipherProvider,
) -> AsyncIterator[bytes]:
    try:
        salt = await read_header(reader)
        key, iv = await derive_key_and_iv_async(
            salt,
            password,
            key_bits=options.key_bits,
            iterations=options.iterations,
            hash=options.hash,
            provider=provider,
        )
        async for chunk in CounterBlockCipher(key, iv, provider).transform(reader):
            yield chunk
    finally:
        await reader.aclose()


def encrypt_with_password(
    source: ByteSource,
    password: str,
    options: Pbkdf2Options | None = None,
    *,
    salt: bytes | None = None,
    provider: CipherProvider | None = None,
) -> AsyncIterator[bytes]:
    """Encrypt *source* into the ``Salted__`` container format.

    The first output chunk is the 16-byte header, followed by the ciphertext.
    With a fixed *salt* the output matches
    ``openssl enc -aes-<bits>-ctr -pbkdf2 -S <salt> -iter <n> -md <hash>``.

    Args:
        source: Plaintext chunks.
        password: Password text.
        options: PBKDF2 parameters; defaults to :class:`Pbkdf2Options`.
        salt: Optional 8-byte salt; a random one is generated when omitted.
        provider: Crypto provider; defaults to :class:`CryptographyProvider`.

    Raises:
        CtrParameterError: Immediately, for a salt of the wrong length.
        CtrProviderError: On first iteration, if the provider rejects the hash.
    """
    if salt is None:
        salt = os.urandom(SALT_SIZE)
    check_salt(salt)
    return _encrypt_with_password(
        ChunkReader(as_async_chunks(source)),
        password,
        bytes(salt),
        options or Pbkdf2Options(),
        provider or default_provider(),
    )


def decrypt_with_password(
    source: ByteSource,
    password: str,
    options: Pbkdf2Options | None = None,
    *,
    provider: CipherProvider | None = None,
) -> AsyncIterator[bytes]:
    """Decrypt a ``Salted__`` container produced by :func:`encrypt_with_password`.

    The options must match the ones used for encryption; a wrong password
    or wrong options yield garbage rather than an error, since CTR mode
    carries no integrity check.

    Raises:
        CtrFramingError: On first iteration, if the header is short or malformed.
        CtrProviderError: On first iteration, if the provider rejects the hash.
    """
    return _decrypt_with_password(
        ChunkReader(as_async_chunks(source)),
        password,
        options or Pbkdf2Options(),
        provider or default_provider(),
    )


# ---------------------------------------------------------------------------
# Convenience wrapper
# ---------------------------------------------------------------------------


class CtrCodec:
    """Password-based AES-CTR codec bound to one password and option set.

    Example::

        codec = CtrCodec("correct horse")
        blob = codec.encrypt_bytes(b"secret")
        assert codec.decrypt_bytes(blob) == b"secret"

    The ``*_bytes`` and ``*_file`` helpers run their own event loop and must
    not be called from inside a running one; use the ``*_stream`` methods
    there instead.

    Args:
        password: Password text.
        options: PBKDF2 parameters; defaults to :class:`Pbkdf2Options`.
        provider: Crypto provider; defaults to :class:`CryptographyProvider`.
    """

    def __init__(
        self,
        password: str,
        options: Pbkdf2Options | None = None,
        provider: CipherProvider | None = None,
    ) -> None:
        self._password = password
        self._options = options or Pbkdf2Options()
        self._provider = provider

    @property
    def options(self) -> Pbkdf2Options:
        return self._options

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def encrypt_stream(self, source: ByteSource, salt: bytes | None = None) -> AsyncIterator[bytes]:
        """Header + ciphertext for *source*; see :func:`encrypt_with_password`."""
        return encrypt_with_password(
            source, self._password, self._options, salt=salt, provider=self._provider
        )

    def decrypt_stream(self, source: ByteSource) -> AsyncIterator[bytes]:
        """Plaintext for a salted *source*; see :func:`decrypt_with_password`."""
        return decrypt_with_password(
            source, self._password, self._options, provider=self._provider
        )

    # ------------------------------------------------------------------
    # Whole buffers
    # ------------------------------------------------------------------

    def encrypt_bytes(self, data: bytes, salt: bytes | None = None) -> bytes:
        return asyncio.run(collect(self.encrypt_stream(data, salt=salt)))

    def decrypt_bytes(self, blob: bytes) -> bytes:
        return asyncio.run(collect(self.decrypt_stream(blob)))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def encrypt_file(
        self,
        path: Union[str, pathlib.Path],
        output_path: Union[str, pathlib.Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """Stream-encrypt a file into another file.

        Returns:
            Number of bytes written, header included.

        Raises:
            CtrParameterError: If *chunk_size* is not positive; no file is opened.
        """
        check_chunk_size(chunk_size)
        return asyncio.run(self._convert_file(path, output_path, chunk_size, encrypting=True))

    def decrypt_file(
        self,
        path: Union[str, pathlib.Path],
        output_path: Union[str, pathlib.Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """Stream-decrypt a file produced by :meth:`encrypt_file`.

        Returns:
            Number of plaintext bytes written.
        """
        check_chunk_size(chunk_size)
        return asyncio.run(self._convert_file(path, output_path, chunk_size, encrypting=False))

    async def _convert_file(
        self,
        path: Union[str, pathlib.Path],
        output_path: Union[str, pathlib.Path],
        chunk_size: int,
        encrypting: bool,
    ) -> int:
        with open(path, "rb") as src:
            chunks = iter_fileobj(src, chunk_size)
            stream = self.encrypt_stream(chunks) if encrypting else self.decrypt_stream(chunks)
            return await write_stream_to_path(stream, output_path)
