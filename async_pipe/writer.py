"""
Pipe Writer

The write half of a pipe. Mirrors the parts of asyncio.StreamWriter that
make sense for an in-memory stream: write, drain, close.

Usage:
    writer, reader = create_pipe()

    await writer.write(b"hello ")
    writer.write_nowait(b"world")      # never suspends, safe from other threads
    writer.close()                     # reader sees b"" once the buffer drains

Context manager usage:
    async with writer:
        await writer.write(data)
"""
from __future__ import annotations

import logging
import weakref

from .core import PipeCore, PipeState, as_bytes_view

logger = logging.getLogger(__name__)


class Writer:
    """
    Exclusive write access to one pipe.

    Created by create_pipe(). Closing the writer, or letting it be garbage
    collected, signals end-of-stream to the reader.
    """

    def __init__(self, core: PipeCore) -> None:
        core.attach_writer()
        self._core = core
        self._finalizer = weakref.finalize(self, core.release_writer)
        self._finalizer.atexit = False

    # ── Write ─────────────────────────────────────────────────────────────────

    async def write(self, data: bytes | bytearray | memoryview) -> int:
        """
        Append data to the pipe.

        Never suspends on an unbounded pipe. On a bounded pipe, waits for
        the reader to make room and hands data over piecewise.

        Returns:
            len(data)

        Raises:
            ClosedError: If the reader is gone or this writer was closed.
            TypeError:   If data is not bytes-like.
        """
        view = as_bytes_view(data)
        total = self._core.push(view)
        while total < len(view):
            await self._core.wait_writable()
            total += self._core.push(view[total:])
        return total

    def write_nowait(self, data: bytes | bytearray | memoryview) -> int:
        """
        Append as much of data as fits without waiting.

        Returns:
            Bytes accepted: always len(data) on an unbounded pipe, possibly
            fewer on a bounded one.

        Raises:
            ClosedError: If the reader is gone or this writer was closed.
        """
        return self._core.push(data)

    async def drain(self) -> None:
        """
        Wait until the reader has consumed everything written so far.

        Raises ClosedError once the reader is gone, even if nothing was buffered.
        """
        await self._core.wait_flushed()

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def close(self) -> None:
        """Signal end-of-stream. Safe to call more than once."""
        self._finalizer.detach()
        if self._core.close_writer():
            logger.debug("Writer closed after %d byte(s)", self._core.bytes_written)

    def is_closing(self) -> bool:
        return self._core.writer_closed

    async def __aenter__(self) -> Writer:
        return self

    async def __aexit__(self, *_: object) -> None:
        self.close()

    def __copy__(self) -> Writer:
        raise TypeError("a pipe Writer cannot be copied")

    def __deepcopy__(self, memo: dict) -> Writer:
        raise TypeError("a pipe Writer cannot be copied")

    # ── Introspection ─────────────────────────────────────────────────────────

    def is_flushed(self) -> bool:
        """True when the reader has consumed every byte written so far."""
        return self._core.is_flushed()

    @property
    def bytes_written(self) -> int:
        return self._core.bytes_written

    @property
    def capacity(self) -> int:
        """Buffer capacity in bytes; 0 means unbounded."""
        return self._core.capacity

    @property
    def state(self) -> PipeState:
        return self._core.state

    def __repr__(self) -> str:
        return f"<Writer {self._core!r}>"
