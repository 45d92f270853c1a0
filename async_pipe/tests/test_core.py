"""
Tests for async_pipe.core

Exercises PipeCore directly: buffering, the pending-reader/pending-writer
slots, cancellation clean-up and the state machine.
"""
import asyncio
import threading
import time

import pytest

from async_pipe.core import PipeCore, PipeState
from async_pipe.exceptions import ClosedError


# ── Helpers ───────────────────────────────────────────────────────────────────

async def _settle(rounds: int = 5) -> None:
    """Let scheduled wake-ups and the tasks they resume run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def core():
    return PipeCore()


@pytest.fixture
def bounded_core():
    return PipeCore(capacity=4)


# ── Construction ──────────────────────────────────────────────────────────────

def test_negative_capacity_raises_value_error():
    with pytest.raises(ValueError, match="capacity"):
        PipeCore(capacity=-1)


def test_new_core_is_open_and_empty(core):
    assert core.state is PipeState.OPEN
    assert core.buffered == 0
    assert core.is_flushed()
    assert not core.at_eof()


def test_second_writer_attach_raises(core):
    core.attach_writer()
    with pytest.raises(RuntimeError, match="already has a Writer"):
        core.attach_writer()


def test_second_reader_attach_raises(core):
    core.attach_reader()
    with pytest.raises(RuntimeError, match="already has a Reader"):
        core.attach_reader()


# ── push() ────────────────────────────────────────────────────────────────────

def test_push_appends_and_counts(core):
    assert core.push(b"abc") == 3
    assert core.push(bytearray(b"de")) == 2
    assert core.buffered == 5
    assert core.bytes_written == 5


def test_push_accepts_memoryview_of_wider_items(core):
    import array

    data = array.array("H", [1, 2, 3])
    assert core.push(memoryview(data)) == data.itemsize * 3


def test_push_rejects_str(core):
    with pytest.raises(TypeError, match="bytes-like"):
        core.push("text")


def test_push_empty_is_noop(core):
    assert core.push(b"") == 0
    assert core.is_flushed()


def test_push_after_writer_closed_raises(core):
    core.close_writer()
    with pytest.raises(ClosedError) as exc_info:
        core.push(b"x")
    assert exc_info.value.side == "writer"


def test_push_after_reader_closed_raises(core):
    core.close_reader()
    with pytest.raises(ClosedError) as exc_info:
        core.push(b"x")
    assert exc_info.value.side == "reader"


def test_bounded_push_accepts_only_free_space(bounded_core):
    assert bounded_core.push(b"abcdef") == 4
    assert bounded_core.push(b"g") == 0
    assert bounded_core.buffered == 4


# ── pop() ─────────────────────────────────────────────────────────────────────

async def test_pop_returns_prefix_in_order(core):
    core.push(b"hello world")
    assert await core.pop(5) == b"hello"
    assert await core.pop(100) == b" world"
    assert core.bytes_read == 11


async def test_pop_rejects_non_positive_size(core):
    with pytest.raises(ValueError, match="max_len"):
        await core.pop(0)


async def test_pop_returns_buffered_bytes_before_eof(core):
    core.push(b"tail")
    core.close_writer()
    assert core.state is PipeState.DRAINING
    assert await core.pop(10) == b"tail"
    assert core.state is PipeState.CLOSED
    assert await core.pop(10) == b""


async def test_pop_suspends_until_push(core):
    task = asyncio.create_task(core.pop(10))
    await _settle()
    assert not task.done()

    core.push(b"data")
    assert await task == b"data"


async def test_pop_suspends_until_close(core):
    task = asyncio.create_task(core.pop(10))
    await _settle()
    assert not task.done()

    core.close_writer()
    assert await task == b""


async def test_second_waiting_pop_raises_runtime_error(core):
    first = asyncio.create_task(core.pop(10))
    await _settle()

    with pytest.raises(RuntimeError, match="already waiting"):
        await core.pop(10)

    core.close_writer()
    assert await first == b""


# ── Cancellation ──────────────────────────────────────────────────────────────

async def test_cancelled_pop_clears_pending_slot(core):
    task = asyncio.create_task(core.pop(10))
    await _settle()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # A fresh pop can register again and is woken normally.
    follow_up = asyncio.create_task(core.pop(10))
    await _settle()
    core.push(b"ok")
    assert await follow_up == b"ok"


async def test_cancel_after_wake_keeps_data(core):
    """Bytes pushed to a reader that is then cancelled stay in the buffer."""
    task = asyncio.create_task(core.pop(10))
    await _settle()

    core.push(b"kept")
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await core.pop(10) == b"kept"


async def test_timed_out_pop_leaves_core_usable(core):
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(core.pop(4), timeout=0.01)

    core.push(b"late")
    assert await core.pop(4) == b"late"


# ── Bounded capacity ──────────────────────────────────────────────────────────

async def test_wait_writable_returns_immediately_when_unbounded(core):
    core.push(b"x" * 10_000)
    await core.wait_writable()


async def test_wait_writable_resumes_after_pop(bounded_core):
    bounded_core.push(b"abcd")
    task = asyncio.create_task(bounded_core.wait_writable())
    await _settle()
    assert not task.done()

    assert await bounded_core.pop(1) == b"a"
    await _settle()
    assert task.done()
    await task


async def test_wait_writable_raises_when_reader_closes(bounded_core):
    bounded_core.push(b"abcd")
    task = asyncio.create_task(bounded_core.wait_writable())
    await _settle()

    bounded_core.close_reader()
    with pytest.raises(ClosedError, match="reader is closed"):
        await task


async def test_cancelled_wait_writable_clears_pending_slot(bounded_core):
    bounded_core.push(b"abcd")
    task = asyncio.create_task(bounded_core.wait_writable())
    await _settle()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    # Registering again would raise RuntimeError if the slot were stale.
    again = asyncio.create_task(bounded_core.wait_writable())
    await _settle()
    await bounded_core.pop(4)
    await again


# ── wait_flushed() ────────────────────────────────────────────────────────────

async def test_wait_flushed_waits_for_reader(core):
    core.push(b"abc")
    task = asyncio.create_task(core.wait_flushed())
    await _settle()
    assert not task.done()

    await core.pop(2)
    await _settle()
    assert not task.done()

    await core.pop(2)
    await _settle()
    assert task.done()


async def test_wait_flushed_after_reader_closed_raises(core):
    core.close_reader()
    with pytest.raises(ClosedError):
        await core.wait_flushed()


# ── Closing ───────────────────────────────────────────────────────────────────

def test_close_writer_is_idempotent(core):
    assert core.close_writer() is True
    assert core.close_writer() is False
    assert core.state is PipeState.CLOSED


async def test_close_reader_discards_buffer_and_reads_eof(core):
    core.push(b"lost")
    assert core.close_reader() is True
    assert core.close_reader() is False
    assert core.state is PipeState.ABANDONED
    assert core.buffered == 0
    assert await core.pop(10) == b""


def test_release_writer_after_close_is_noop(core):
    core.close_writer()
    core.release_writer()
    assert core.state is PipeState.CLOSED


async def test_release_while_locked_defers_to_running_loop(core):
    with core._lock:
        core.release_writer()
        core.release_reader()

    assert not core.writer_closed
    assert not core.reader_closed
    await _settle()
    assert core.writer_closed
    assert core.state is PipeState.ABANDONED


def test_release_while_locked_without_loop_closes_from_helper_thread(core):
    with core._lock:
        core.release_writer()

    deadline = time.monotonic() + 2
    while not core.writer_closed and time.monotonic() < deadline:
        time.sleep(0.01)
    assert core.state is PipeState.CLOSED


def test_repr_mentions_state(core):
    assert "state=open" in repr(core)


# ── Threads ───────────────────────────────────────────────────────────────────

async def test_push_from_another_thread_wakes_reader(core):
    task = asyncio.create_task(core.pop(10))
    await _settle()

    thread = threading.Thread(target=core.push, args=(b"threaded",))
    thread.start()
    result = await asyncio.wait_for(task, timeout=2)
    thread.join()

    assert result == b"threaded"
