"""
Byte Stream Protocol Definitions

Structural interfaces for the things a pipe can be plugged into. Both
sync and async implementations satisfy them: the transfer helpers await
the result of read()/write() only when it is awaitable, so io.BytesIO,
asyncio.StreamReader/StreamWriter and the pipe's own Reader/Writer all fit.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """Anything with a read(n) returning bytes, b"" at end-of-stream."""

    def read(self, n: int = -1) -> Any:
        """
        Return up to n bytes, or an awaitable resolving to them.

        An empty result means end-of-stream.
        """
        ...


@runtime_checkable
class ByteSink(Protocol):
    """Anything with a write(data) that consumes bytes."""

    def write(self, data: bytes) -> Any:
        """Consume data. May return an awaitable, which will be awaited."""
        ...
