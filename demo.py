#!/usr/bin/env python3
"""
Pipe demo.

Spawns a producer task that writes a message into the pipe in small
pieces, while the main task reads until end-of-stream and prints what
arrived.

Usage:
    python demo.py
    python demo.py --message "some other text" --piece 3 --delay 0.05
    python demo.py --capacity 4 -v        # bounded pipe, debug logging
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

load_dotenv(".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("async_pipe.demo")


async def run(message: bytes, piece: int, delay: float, capacity: int | None) -> bytes:
    from async_pipe import create_pipe

    writer, reader = create_pipe(capacity=capacity)

    async def produce() -> None:
        async with writer:
            for i in range(0, len(message), piece):
                await writer.write(message[i:i + piece])
                logger.info("wrote %r", message[i:i + piece])
                await asyncio.sleep(delay)

    producer = asyncio.create_task(produce())

    received = bytearray()
    async for chunk in reader:
        logger.info("read  %r", chunk)
        received += chunk
    await producer

    return bytes(received)


def main() -> None:
    parser = argparse.ArgumentParser(description="async_pipe producer/consumer demo")
    parser.add_argument("--message", default="hello world")
    parser.add_argument("--piece", type=int, default=4, help="bytes per write")
    parser.add_argument("--delay", type=float, default=0.0, help="seconds between writes")
    parser.add_argument("--capacity", type=int, default=None, help="0 = unbounded")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger("async_pipe").setLevel(logging.DEBUG)

    received = asyncio.run(
        run(args.message.encode(), max(args.piece, 1), args.delay, args.capacity)
    )
    print(f"Received: {received.decode(errors='replace')!r}")


if __name__ == "__main__":
    main()
