"""Incremental newline splitting of the agent's stdout."""
from __future__ import annotations

import asyncio
import codecs
from typing import AsyncIterator

CHUNK_SIZE = 64 * 1024


class LineSplitter:
    """Reassemble logical lines from arbitrarily chunked text.

    ``feed`` returns the complete lines found so far; any trailing partial
    line stays buffered until more text arrives or ``close`` is called.
    Lines are stripped and whitespace-only lines are dropped.
    """

    __slots__ = ("_buffer",)

    def __init__(self):
        self._buffer = ""

    def feed(self, chunk: str) -> list[str]:
        if not chunk:
            return []
        self._buffer += chunk
        if "\n" not in self._buffer:
            return []
        *complete, self._buffer = self._buffer.split("\n")
        return [line for line in (raw.strip() for raw in complete) if line]

    def close(self) -> list[str]:
        rest = self._buffer.strip()
        self._buffer = ""
        return [rest] if rest else []


async def read_lines(reader: asyncio.StreamReader,
                     chunk_size: int = CHUNK_SIZE) -> AsyncIterator[str]:
    """Yield logical lines from a byte stream as chunks arrive."""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    splitter = LineSplitter()
    while True:
        chunk = await reader.read(chunk_size)
        if not chunk:
            break
        for line in splitter.feed(decoder.decode(chunk)):
            yield line
    for line in splitter.feed(decoder.decode(b"", final=True)):
        yield line
    for line in splitter.close():
        yield line
