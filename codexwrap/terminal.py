"""Escape-to-cancel handling while an agent process is running."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from typing import Any, Callable, TextIO

log = logging.getLogger(__name__)

ESC = b"\x1b"


def _isatty(stream: Any) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError, OSError):
        return False


class PromptReader:
    """Read input lines from ``stdin`` on the event loop.

    The descriptor is polled with ``loop.add_reader`` only while a line is
    awaited, so no worker thread is left blocked in a read when the session
    is interrupted. Bytes past the first newline are kept for the next call.
    """

    def __init__(self, stdin: TextIO, chunk_size: int = 4096):
        self.stdin = stdin
        self.chunk_size = chunk_size
        self._buffer = b""
        self._eof = False

    async def readline(self) -> str:
        """Return the next line without its newline; EOFError once input ends."""
        while b"\n" not in self._buffer and not self._eof:
            chunk = await self._read_chunk()
            if not chunk:
                self._eof = True
            self._buffer += chunk
        if not self._buffer:
            raise EOFError
        line, _, self._buffer = self._buffer.partition(b"\n")
        return line.decode("utf-8", errors="replace").rstrip("\r")

    async def _read_chunk(self) -> bytes:
        fd = self.stdin.fileno()
        loop = asyncio.get_running_loop()
        ready = loop.create_future()

        def _on_readable() -> None:
            if ready.done():
                return
            try:
                ready.set_result(os.read(fd, self.chunk_size))
            except OSError as exc:
                ready.set_exception(exc)

        loop.add_reader(fd, _on_readable)
        try:
            return await ready
        finally:
            loop.remove_reader(fd)


class EscapeWatcher:
    """Watch stdin for an Escape keypress and interrupt ``process``.

    While active the terminal is in cbreak mode so single keys arrive without
    Enter. ``close`` restores the previous terminal attributes and may be
    called any number of times. With a non-tty (or missing) ``stdin`` the
    watcher does nothing and ``aborted`` stays False.
    """

    def __init__(self, process, stdin: TextIO | None = None,
                 on_escape: Callable[[], None] | None = None,
                 loop: asyncio.AbstractEventLoop | None = None):
        self.process = process
        self.stdin = stdin
        self.on_escape = on_escape
        self.loop = loop
        self.aborted = False
        self._fd: int | None = None
        self._saved_attrs = None
        self._closed = False

    def start(self) -> None:
        if self._closed or self.stdin is None or os.name != "posix":
            return
        if not _isatty(self.stdin):
            return
        import termios
        import tty

        fd = self.stdin.fileno()
        try:
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except termios.error as exc:
            log.debug("cannot enter cbreak mode: %s", exc)
            self._saved_attrs = None
            return
        loop = self.loop or asyncio.get_running_loop()
        loop.add_reader(fd, self._on_readable)
        self.loop = loop
        self._fd = fd

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, 1024)
        except OSError as exc:
            log.debug("stdin read failed: %s", exc)
            self.close()
            return
        self.feed(data)

    def feed(self, data: bytes) -> None:
        """Handle raw keyboard input; ESC requests cancellation once."""
        if self.aborted or not data or ESC not in data:
            return
        self.aborted = True
        if self.on_escape is not None:
            self.on_escape()
        if self.process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self.process.send_signal(signal.SIGINT)
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._fd is None:
            return
        import termios

        if self.loop is not None:
            self.loop.remove_reader(self._fd)
        if self._saved_attrs is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
            except termios.error as exc:
                log.debug("cannot restore terminal mode: %s", exc)
        self._fd = None

    def __enter__(self) -> EscapeWatcher:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()
