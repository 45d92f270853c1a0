"""
Pipe Exceptions

Errors raised by the pipe handles. End-of-stream is never an error: a
read that finds the writer closed and the buffer drained returns b"".
"""
from __future__ import annotations

from typing import Any, Optional


class PipeError(Exception):
    """Base exception for all pipe errors."""

    def __init__(
        self,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ClosedError(PipeError):
    """
    Raised when writing to a pipe that can no longer deliver the bytes.

    side is "reader" when the Reader has been closed or released (nobody
    will ever consume the data) and "writer" when the Writer itself was
    already closed.
    """

    def __init__(
        self,
        message: str,
        side: str,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        ctx = context or {}
        ctx["side"] = side
        super().__init__(message, ctx)
        self.side = side
