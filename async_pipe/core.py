"""
Pipe Core

Shared buffer and wake-up state behind one Writer/Reader pair. Handles
call into PipeCore; nothing else should.

Every field is read and written under a single threading.Lock, held only
for short critical sections that never await. A task that has to wait
registers an asyncio.Future in its side's pending slot and awaits it
outside the lock. Whoever produces the event it waits for (push, pop,
close) takes the future out of the slot and resolves it, so each event
resumes at most one waiter and the woken task re-checks state from the
top. A waiter that is cancelled removes its own registration on the way
out.

State machine:
    OPEN -> (writer closed) -> DRAINING -> (buffer drained) -> CLOSED
    OPEN | DRAINING -> (reader closed) -> ABANDONED
"""
from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum
from typing import Callable

from .exceptions import ClosedError

logger = logging.getLogger(__name__)


class PipeState(str, Enum):
    """Lifecycle state of a pipe."""

    OPEN = "open"
    DRAINING = "draining"  # writer closed, bytes still buffered
    CLOSED = "closed"  # writer closed, buffer drained
    ABANDONED = "abandoned"  # reader gone, writes fail


def _resolve(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)


def _wake(waiter: asyncio.Future[None] | None) -> None:
    """Resume a suspended task from whichever thread produced the event."""
    if waiter is None:
        return
    try:
        waiter.get_loop().call_soon_threadsafe(_resolve, waiter)
    except RuntimeError:
        # The waiting task's loop is gone, and the task with it.
        logger.debug("Skipped wake-up for a waiter whose event loop is closed")


def as_bytes_view(data: object) -> memoryview:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"data argument must be a bytes-like object, not {type(data).__name__!r}"
        )
    view = memoryview(data)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


class PipeCore:
    """
    Byte buffer shared by exactly one Writer and one Reader.

    capacity == 0 means unbounded: push() always accepts the whole chunk.
    With a positive capacity the buffer never holds more than that many
    bytes and writers wait in wait_writable() for the reader to make room.
    """

    def __init__(self, capacity: int = 0) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._lock = threading.Lock()
        self._buffer = bytearray()
        self._capacity = capacity
        self._writer_closed = False
        self._reader_closed = False
        self._pending_reader: asyncio.Future[None] | None = None
        self._pending_writer: asyncio.Future[None] | None = None
        self._writer_attached = False
        self._reader_attached = False
        self._bytes_written = 0
        self._bytes_read = 0

    # ── Handle registration ───────────────────────────────────────────────────

    def attach_writer(self) -> None:
        with self._lock:
            if self._writer_attached:
                raise RuntimeError("pipe already has a Writer")
            self._writer_attached = True

    def attach_reader(self) -> None:
        with self._lock:
            if self._reader_attached:
                raise RuntimeError("pipe already has a Reader")
            self._reader_attached = True

    # ── Writer side ───────────────────────────────────────────────────────────

    def push(self, data: bytes | bytearray | memoryview) -> int:
        """
        Append as much of data as capacity allows and wake the reader.

        Returns:
            Number of bytes accepted. Always len(data) when unbounded; may be
            fewer (including 0) when bounded and the buffer is near full.

        Raises:
            TypeError: If data is not bytes-like.
            ClosedError: If the reader is gone or the writer was closed.
        """
        view = as_bytes_view(data)
        with self._lock:
            self._check_writable()
            if self._capacity:
                accepted = min(len(view), self._capacity - len(self._buffer))
            else:
                accepted = len(view)
            if accepted == 0:
                return 0
            self._buffer += view[:accepted]
            self._bytes_written += accepted
            waiter = self._take_pending_reader()
        _wake(waiter)
        return accepted

    async def wait_writable(self) -> None:
        """
        Suspend until the buffer has free space.

        Returns immediately when unbounded. Raises ClosedError if the pipe
        stops accepting writes while waiting.
        """
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                self._check_writable()
                if not self._capacity or len(self._buffer) < self._capacity:
                    return
                waiter = self._register_writer(loop)
            await self._suspend_writer(waiter)

    async def wait_flushed(self) -> None:
        """
        Suspend until the reader has consumed every buffered byte.

        Raises ClosedError if the reader is gone.
        """
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._reader_closed:
                    raise ClosedError("Pipe reader is closed", side="reader")
                if not self._buffer:
                    return
                waiter = self._register_writer(loop)
            await self._suspend_writer(waiter)

    def close_writer(self) -> bool:
        """
        Mark the writer closed and wake both sides. Idempotent.

        Returns True if this call closed the writer.
        """
        with self._lock:
            if self._writer_closed:
                return False
            self._writer_closed = True
            buffered = len(self._buffer)
            reader = self._take_pending_reader()
            writer = self._take_pending_writer()
        _wake(reader)
        _wake(writer)
        logger.debug("Pipe writer closed with %d byte(s) still buffered", buffered)
        return True

    def release_writer(self) -> None:
        """Teardown hook for a Writer that was collected without close()."""
        self._release(self._close_released_writer)

    def _close_released_writer(self) -> None:
        if self.close_writer():
            logger.debug("Writer released without close(), signalled end-of-stream")

    # ── Reader side ───────────────────────────────────────────────────────────

    async def pop(self, max_len: int) -> bytes:
        """
        Remove and return up to max_len bytes from the front of the buffer.

        Buffered bytes are returned before end-of-stream. Returns b"" once the
        writer is closed and the buffer is empty. Otherwise suspends until
        the next push or close.

        Raises:
            RuntimeError: If another task is already waiting in pop().
        """
        if max_len <= 0:
            raise ValueError(f"max_len must be > 0, got {max_len}")
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._buffer:
                    chunk = bytes(self._buffer[:max_len])
                    del self._buffer[:max_len]
                    self._bytes_read += len(chunk)
                    writer = self._take_pending_writer()
                    break
                if self._writer_closed or self._reader_closed:
                    return b""
                if self._pending_reader is not None:
                    raise RuntimeError(
                        "read() called while another task is already waiting for data"
                    )
                waiter = loop.create_future()
                self._pending_reader = waiter
            try:
                await waiter
            finally:
                with self._lock:
                    if self._pending_reader is waiter:
                        self._pending_reader = None
        _wake(writer)
        return chunk

    def close_reader(self) -> bool:
        """
        Mark the reader gone, discard buffered bytes and wake the writer.
        Idempotent.

        Returns True if this call closed the reader.
        """
        with self._lock:
            if self._reader_closed:
                return False
            self._reader_closed = True
            discarded = len(self._buffer)
            self._buffer.clear()
            reader = self._take_pending_reader()
            writer = self._take_pending_writer()
        _wake(reader)
        _wake(writer)
        logger.debug("Pipe reader closed, discarded %d buffered byte(s)", discarded)
        return True

    def release_reader(self) -> None:
        """Teardown hook for a Reader that was collected without close()."""
        self._release(self._close_released_reader)

    def _close_released_reader(self) -> None:
        if self.close_reader():
            logger.debug("Reader released without close(), further writes will fail")

    def _release(self, close: Callable[[], None]) -> None:
        """
        Run a teardown hook without ever blocking on the lock.

        Finalizers can fire from a garbage collection started inside one of
        this core's own critical sections, on the thread that holds the
        lock. If the lock is taken, the close is handed to the running
        event loop (it runs once the current critical section is over) or,
        outside a loop, to a short-lived thread that waits for the lock.
        """
        if self._lock.acquire(blocking=False):
            self._lock.release()
            close()
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            threading.Thread(target=close, name="async-pipe-release", daemon=True).start()
        else:
            loop.call_soon(close)

    # ── Introspection ─────────────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def state(self) -> PipeState:
        with self._lock:
            if self._reader_closed:
                return PipeState.ABANDONED
            if not self._writer_closed:
                return PipeState.OPEN
            return PipeState.DRAINING if self._buffer else PipeState.CLOSED

    @property
    def buffered(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def bytes_written(self) -> int:
        with self._lock:
            return self._bytes_written

    @property
    def bytes_read(self) -> int:
        with self._lock:
            return self._bytes_read

    @property
    def writer_closed(self) -> bool:
        with self._lock:
            return self._writer_closed

    @property
    def reader_closed(self) -> bool:
        with self._lock:
            return self._reader_closed

    def is_flushed(self) -> bool:
        """True when every written byte has been consumed (or discarded)."""
        with self._lock:
            return not self._buffer

    def at_eof(self) -> bool:
        """True when a read would return end-of-stream without waiting."""
        with self._lock:
            return not self._buffer and (self._writer_closed or self._reader_closed)

    def __repr__(self) -> str:
        return (
            f"<PipeCore state={self.state.value} buffered={self.buffered} "
            f"capacity={self._capacity}>"
        )

    # ── Internals (caller holds self._lock) ───────────────────────────────────

    def _check_writable(self) -> None:
        if self._reader_closed:
            raise ClosedError(
                "Pipe reader is closed", side="reader",
                context={"bytes_written": self._bytes_written},
            )
        if self._writer_closed:
            raise ClosedError("Pipe writer is closed", side="writer")

    def _take_pending_reader(self) -> asyncio.Future[None] | None:
        waiter, self._pending_reader = self._pending_reader, None
        return waiter

    def _take_pending_writer(self) -> asyncio.Future[None] | None:
        waiter, self._pending_writer = self._pending_writer, None
        return waiter

    def _register_writer(self, loop: asyncio.AbstractEventLoop) -> asyncio.Future[None]:
        if self._pending_writer is not None:
            raise RuntimeError(
                "write() or drain() called while another task is already waiting"
            )
        waiter = loop.create_future()
        self._pending_writer = waiter
        return waiter

    async def _suspend_writer(self, waiter: asyncio.Future[None]) -> None:
        try:
            await waiter
        finally:
            with self._lock:
                if self._pending_writer is waiter:
                    self._pending_writer = None
