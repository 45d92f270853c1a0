"""
Pipe Configuration

Defaults applied by create_pipe() and the transfer helpers. All environment
variables are read here and nowhere else.

    ASYNC_PIPE_CAPACITY    buffer capacity in bytes, 0 = unbounded (default 0)
    ASYNC_PIPE_CHUNK_SIZE  read size used by iteration and copies (default 1024)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import dotenv_values

DEFAULT_CAPACITY = 0
DEFAULT_CHUNK_SIZE = 1024


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""
    pass


def _optional_env_int(env: Mapping[str, Optional[str]], name: str, default: int) -> int:
    """Get an optional integer variable with a default."""
    value = env.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


@dataclass(frozen=True)
class PipeSettings:
    """Pipe defaults."""
    capacity: int = DEFAULT_CAPACITY
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.capacity < 0:
            raise ConfigurationError(
                f"capacity must be >= 0 (0 means unbounded), got {self.capacity}"
            )
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be > 0, got {self.chunk_size}")

    @property
    def bounded(self) -> bool:
        return self.capacity > 0


def load_settings(env_file: str | os.PathLike[str] | None = None) -> PipeSettings:
    """
    Load settings from environment variables.

    If env_file is given, its values are read with python-dotenv and used
    wherever the real environment does not define the same variable.
    """
    env: dict[str, Optional[str]] = {}
    if env_file is not None:
        env.update(dotenv_values(env_file))
    env.update(os.environ)

    return PipeSettings(
        capacity=_optional_env_int(env, "ASYNC_PIPE_CAPACITY", DEFAULT_CAPACITY),
        chunk_size=_optional_env_int(env, "ASYNC_PIPE_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
    )


settings = load_settings()
