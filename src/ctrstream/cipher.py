"""Block-aligned AES-CTR transform over an async chunk stream.

Input chunks of any size are consumed through a :class:`ChunkReader` at most
one counter block at a time.  Every delivery, even a partial one, is run
through the provider as a full 16-byte block under the current counter and
only the freshly filled slice of the result is emitted.  The counter advances
exactly once per completed block, so the output bytes never depend on how
the input happened to be chunked.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from .crypto import BLOCK_SIZE, CipherProvider, check_key_and_iv, default_provider
from .reader import ChunkReader
from .utils import increment_counter


class CounterBlockCipher:
    """Streaming AES-CTR engine; encryption and decryption are the same call.

    Example::

        engine = CounterBlockCipher(key, iv)
        async for chunk in engine.transform(ChunkReader(source)):
            sink.write(chunk)

    Args:
        key: 16- or 32-byte AES key.
        initial_counter: 16-byte initial counter block (the IV).  The engine
            keeps its own copy; the caller's buffer is never modified.
        provider: Crypto provider; defaults to :class:`CryptographyProvider`.

    Raises:
        CtrParameterError: If the key or counter has the wrong length.
    """

    def __init__(
        self,
        key: bytes,
        initial_counter: bytes,
        provider: CipherProvider | None = None,
    ) -> None:
        check_key_and_iv(key, initial_counter)
        self._key = bytes(key)
        self._counter = bytearray(initial_counter)
        self._provider = provider or default_provider()

        # Block window: scratch block plus how much of it the input has filled.
        self._window = bytearray(BLOCK_SIZE)
        self._offset = 0

    @property
    def counter(self) -> bytes:
        """Snapshot of the counter block that the next input byte will use."""
        return bytes(self._counter)

    def _process(self, data: bytes) -> bytes:
        start = self._offset
        end = start + len(data)
        self._window[start:end] = data
        keystream_block = self._provider.aes_ctr_block(
            self._key, bytes(self._counter), bytes(self._window)
        )
        out = keystream_block[start:end]

        if end == BLOCK_SIZE:
            increment_counter(self._counter)
            self._offset = 0
        else:
            self._offset = end
        return out

    async def transform(self, reader: ChunkReader) -> AsyncIterator[bytes]:
        """Yield the transformed bytes, one output chunk per read from *reader*.

        Output length always equals input length.  The reader is closed when
        the generator finishes or is closed early by the consumer.
        """
        try:
            while True:
                data = await reader.read_up_to(BLOCK_SIZE - self._offset)
                if not data:
                    return
                yield self._process(data)
        finally:
            await reader.aclose()
