"""
Stream Transfer Helpers

Connect a pipe to the rest of the byte-stream world.

    copy_into(source, writer)   drain any byte source into a Writer
    copy_out(reader, sink)      drain a Reader into any byte sink

Usage:
    writer, reader = create_pipe()

    producer = asyncio.create_task(copy_into(open("in.bin", "rb"), writer))
    await copy_out(reader, stream_writer)      # e.g. an asyncio.StreamWriter
    await producer
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterable, Iterable
from typing import Any, AsyncIterator

from . import config
from .interface import ByteSink, ByteSource
from .reader import Reader
from .writer import Writer

logger = logging.getLogger(__name__)


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def _iter_chunks(source: Any, chunk_size: int) -> AsyncIterator[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        if source:
            yield bytes(source)
        return

    if isinstance(source, ByteSource):
        while True:
            chunk = await _maybe_await(source.read(chunk_size))
            if not chunk:
                return
            yield chunk

    elif isinstance(source, AsyncIterable):
        async for chunk in source:
            yield chunk

    elif isinstance(source, Iterable):
        for chunk in source:
            yield chunk

    else:
        raise TypeError(
            f"cannot copy from {type(source).__name__!r}: expected bytes, an object "
            "with read(n), or an (async) iterable of bytes"
        )


async def copy_into(
    source: Any,
    writer: Writer,
    *,
    chunk_size: int | None = None,
    close: bool = True,
) -> int:
    """
    Copy every byte from source into writer.

    Args:
        source:     bytes, an object with a sync or async read(n), or a sync
                    or async iterable of bytes chunks.
        writer:     The pipe Writer to feed.
        chunk_size: Read size for read(n) sources. Defaults to settings.chunk_size.
        close:      Close the writer once the source is exhausted, so the
                    reader sees end-of-stream. The writer is left open if
                    copying fails.

    Returns:
        Total bytes copied.

    Raises:
        ClosedError: If the pipe's reader goes away mid-copy.
        TypeError:   If source is not a supported byte source.
    """
    size = chunk_size or config.settings.chunk_size
    total = 0
    async for chunk in _iter_chunks(source, size):
        total += await writer.write(chunk)

    if close:
        writer.close()
    logger.debug("Copied %d byte(s) into pipe", total)
    return total


async def copy_out(
    reader: Reader,
    sink: ByteSink,
    *,
    chunk_size: int | None = None,
) -> int:
    """
    Copy from reader into sink until end-of-stream.

    sink.write() may be sync or async. When write() is sync and the sink
    has an async drain() (asyncio.StreamWriter), drain is awaited after
    every chunk.

    Returns:
        Total bytes copied.
    """
    size = chunk_size or reader.chunk_size
    drain = getattr(sink, "drain", None)
    total = 0
    while True:
        chunk = await reader.read(size)
        if not chunk:
            break
        result = sink.write(chunk)
        if inspect.isawaitable(result):
            await result
        elif drain is not None:
            await _maybe_await(drain())
        total += len(chunk)

    logger.debug("Copied %d byte(s) out of pipe", total)
    return total
