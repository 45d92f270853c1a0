"""
async_pipe: in-memory byte pipe between two asyncio tasks.

Public API:
    create_pipe  - build a connected (Writer, Reader) pair
    Writer       - write half: write / write_nowait / drain / close
    Reader       - read half: read / readexactly / async iteration / close
    PipeState    - OPEN, DRAINING, CLOSED, ABANDONED
    ClosedError  - writing after the reader went away (or after close)
    PipeError    - base class for pipe errors
    copy_into    - feed any byte source into a Writer
    copy_out     - drain a Reader into any byte sink
"""
from .core import PipeState
from .exceptions import ClosedError, PipeError
from .pipe import create_pipe
from .reader import Reader
from .transfer import copy_into, copy_out
from .writer import Writer

__all__ = [
    "create_pipe",
    "Writer",
    "Reader",
    "PipeState",
    "ClosedError",
    "PipeError",
    "copy_into",
    "copy_out",
]
