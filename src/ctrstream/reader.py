"""Sized reads over an async stream of arbitrarily-sized byte chunks."""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from .utils import BYTES_LIKE, CtrShortReadError


class ChunkReader:
    """Re-assemble upstream chunks into reads of a caller-chosen size.

    Upstream chunk boundaries carry no meaning: chunks larger than a request
    are split and the remainder is kept for the next call, smaller chunks
    are concatenated across pulls.  Nothing is pulled from the source until
    a read asks for it.

    Example::

        reader = ChunkReader(source)
        magic = await reader.read_exact(8)
        block = await reader.read_up_to(16)

    Args:
        source: Any async iterable of ``bytes`` chunks.
    """

    def __init__(self, source: AsyncIterable[bytes]) -> None:
        self._iterator: AsyncIterator[bytes] = source.__aiter__()
        self._backlog = bytearray()
        self._exhausted = False

    @property
    def exhausted(self) -> bool:
        """``True`` once the source has ended and the backlog is empty."""
        return self._exhausted and not self._backlog

    async def _pull(self) -> bool:
        """Append the next non-empty upstream chunk to the backlog.

        Returns ``False`` when the source is exhausted.
        """
        if self._exhausted:
            return False
        while True:
            try:
                chunk = await self._iterator.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                return False
            if not isinstance(chunk, BYTES_LIKE):
                raise TypeError(
                    f"Source chunks must be bytes-like, got {type(chunk).__name__}"
                )
            if chunk:
                self._backlog.extend(chunk)
                return True

    def _take(self, n: int) -> bytes:
        data = bytes(self._backlog[:n])
        del self._backlog[:n]
        return data

    async def read_up_to(self, n: int) -> bytes:
        """Return between 1 and *n* bytes, or ``b""`` once the source is exhausted.

        Only pulls from the source when nothing is buffered, so a short
        read never waits for more data than is already available.
        """
        if n <= 0:
            raise ValueError(f"Read size must be positive, got {n}")
        if not self._backlog and not await self._pull():
            return b""
        return self._take(n)

    async def read_exact(self, n: int) -> bytes:
        """Return exactly *n* bytes, pulling as many chunks as needed.

        Raises:
            CtrShortReadError: If the source ends before *n* bytes arrived.
                The buffered bytes are handed back on the exception and the
                reader is left empty.
        """
        if n < 0:
            raise ValueError(f"Read size must be non-negative, got {n}")
        while len(self._backlog) < n:
            if not await self._pull():
                raise CtrShortReadError(self._take(len(self._backlog)), n)
        return self._take(n)

    async def aclose(self) -> None:
        """Close the underlying iterator if it supports it."""
        self._exhausted = True
        self._backlog.clear()
        aclose = getattr(self._iterator, "aclose", None)
        if aclose is not None:
            await aclose()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._drain()

    async def _drain(self) -> AsyncIterator[bytes]:
        if self._backlog:
            yield self._take(len(self._backlog))
        while await self._pull():
            yield self._take(len(self._backlog))
