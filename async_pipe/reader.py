"""
Pipe Reader

The read half of a pipe. Reads suspend while the pipe is empty and the
writer is still open, and return b"" exactly once the writer has closed and
every buffered byte has been delivered.

Usage:
    writer, reader = create_pipe()

    chunk = await reader.read(1024)    # 1..1024 bytes, or b"" at end-of-stream
    rest = await reader.read()         # everything until end-of-stream

    async for chunk in reader:         # chunks until end-of-stream
        handle(chunk)
"""
from __future__ import annotations

import asyncio
import logging
import weakref

from . import config
from .core import PipeCore, PipeState

logger = logging.getLogger(__name__)


class Reader:
    """
    Exclusive read access to one pipe.

    Created by create_pipe(). Closing the reader, or letting it be garbage
    collected, discards anything still buffered and makes further writes
    fail with ClosedError.
    """

    def __init__(self, core: PipeCore, chunk_size: int | None = None) -> None:
        core.attach_reader()
        self._core = core
        self._chunk_size = chunk_size
        self._finalizer = weakref.finalize(self, core.release_reader)
        self._finalizer.atexit = False

    @property
    def chunk_size(self) -> int:
        """Read size used by iteration and read()."""
        return self._chunk_size or config.settings.chunk_size

    # ── Read ──────────────────────────────────────────────────────────────────

    async def read(self, n: int = -1) -> bytes:
        """
        Read up to n bytes.

        Args:
            n: Maximum bytes to return. A negative value reads until
               end-of-stream and returns everything.

        Returns:
            Between 1 and n bytes, or b"" at end-of-stream.

        Raises:
            ValueError:   If n is 0.
            RuntimeError: If another task is already waiting on this reader.
        """
        if n == 0:
            raise ValueError("n must be non-zero; b\"\" is reserved for end-of-stream")
        if n > 0:
            return await self._core.pop(n)

        chunks = []
        while True:
            chunk = await self._core.pop(self.chunk_size)
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)

    async def readexactly(self, n: int) -> bytes:
        """
        Read exactly n bytes.

        Raises asyncio.IncompleteReadError, carrying the bytes that did
        arrive, if end-of-stream comes first.
        """
        if n < 0:
            raise ValueError("readexactly size can not be less than zero")
        buf = bytearray()
        while len(buf) < n:
            chunk = await self._core.pop(n - len(buf))
            if not chunk:
                raise asyncio.IncompleteReadError(bytes(buf), n)
            buf += chunk
        return bytes(buf)

    def __aiter__(self) -> Reader:
        return self

    async def __anext__(self) -> bytes:
        chunk = await self._core.pop(self.chunk_size)
        if not chunk:
            raise StopAsyncIteration
        return chunk

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """
        Stop reading. Further writes fail with ClosedError and further
        reads return b"". Safe to call more than once.
        """
        self._finalizer.detach()
        if self._core.close_reader():
            logger.debug("Reader closed after %d byte(s)", self._core.bytes_read)

    def at_eof(self) -> bool:
        """True when the writer is closed and the buffer is drained."""
        return self._core.at_eof()

    async def __aenter__(self) -> Reader:
        return self

    async def __aexit__(self, *_: object) -> None:
        self.close()

    def __copy__(self) -> Reader:
        raise TypeError("a pipe Reader cannot be copied")

    def __deepcopy__(self, memo: dict) -> Reader:
        raise TypeError("a pipe Reader cannot be copied")

    # ── Introspection ─────────────────────────────────────────────────────────

    def is_flushed(self) -> bool:
        """True when nothing is waiting in the buffer."""
        return self._core.is_flushed()

    @property
    def bytes_read(self) -> int:
        return self._core.bytes_read

    @property
    def state(self) -> PipeState:
        return self._core.state

    def __repr__(self) -> str:
        return f"<Reader {self._core!r}>"
