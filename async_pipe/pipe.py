"""
Pipe Construction

create_pipe() is the only way to obtain a connected Writer/Reader pair.
"""
from __future__ import annotations

import logging

from . import config
from .core import PipeCore
from .reader import Reader
from .writer import Writer

logger = logging.getLogger(__name__)


def create_pipe(
    capacity: int | None = None,
    chunk_size: int | None = None,
) -> tuple[Writer, Reader]:
    """
    Create a connected (writer, reader) pair over a fresh buffer.

    Args:
        capacity:   Maximum buffered bytes before write() suspends. 0 means
                    unbounded. None (default) uses settings.capacity.
        chunk_size: Read size for the reader's iteration and read(). None
                    (default) follows settings.chunk_size.

    Raises:
        ValueError: If capacity is negative or chunk_size is not positive.
    """
    if capacity is None:
        capacity = config.settings.capacity
    if chunk_size is not None and chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
    core = PipeCore(capacity)
    writer, reader = Writer(core), Reader(core, chunk_size=chunk_size)
    logger.debug("Created pipe (capacity=%s)", capacity or "unbounded")
    return writer, reader
