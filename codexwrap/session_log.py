"""Per-session JSONL log of the raw agent stream."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

log = logging.getLogger(__name__)

SUFFIX = ".jsonl"


def log_stamp(now: datetime) -> str:
    """Filesystem-safe UTC timestamp, e.g. ``2026-01-01T00-00-00-000Z``."""
    now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


def iso_now(now: datetime) -> str:
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SessionLog:
    """Append-only log file for one agent invocation.

    The file is named ``<thread_id>.jsonl`` when the thread id is known at
    open time. Otherwise it starts under a timestamp name and is renamed once,
    on ``finalize``, after the thread id has been recorded.
    """

    def __init__(self, log_dir: Path, path: Path, fh: TextIO, thread_id: str | None):
        self.log_dir = log_dir
        self.path = path
        self.thread_id = thread_id
        self.closed = False
        self._fh = fh

    @classmethod
    def open(cls, log_dir: Path, subcommand: str | None, prompt: str | None,
             thread_id: str | None = None, now: datetime | None = None) -> SessionLog:
        now = now or datetime.now(timezone.utc)
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        if thread_id:
            path = log_dir / f"{thread_id}{SUFFIX}"
        else:
            path = log_dir / f"{log_stamp(now)}-{subcommand or 'exec'}{SUFFIX}"
        append = bool(thread_id) and path.exists()
        fh = open(path, "a" if append else "w", encoding="utf-8")
        log.debug("session log %s (%s)", path, "append" if append else "new")

        if append:
            fh.write("\n")
        fh.write(f"# Prompt: {prompt or ''}\n")
        if thread_id:
            fh.write(f"# Thread: {thread_id}\n")
        fh.write(f"# Timestamp: {iso_now(now)}\n")
        fh.write("# --- JSON Output ---\n")
        fh.flush()
        return cls(log_dir, path, fh, thread_id)

    @property
    def pending_path(self) -> Path | None:
        """Canonical path the file will be renamed to on finalize, if any."""
        if not self.thread_id:
            return None
        target = self.log_dir / f"{self.thread_id}{SUFFIX}"
        return None if target == self.path else target

    def record_thread(self, thread_id: str | None) -> None:
        if not thread_id or self.thread_id or self.closed:
            return
        self.thread_id = thread_id
        self._fh.write(f"# Thread: {thread_id}\n")
        self._fh.flush()

    def write_line(self, line: str) -> None:
        if self.closed:
            return
        self._fh.write(line + "\n")
        self._fh.flush()

    def finalize(self, thread_id: str | None = None) -> Path:
        """Record ``thread_id`` if still unknown, close, and rename once."""
        if self.closed:
            return self.path
        if thread_id:
            self.record_thread(thread_id)
        self.closed = True
        self._fh.close()

        target = self.pending_path
        if target is not None:
            try:
                self.path.rename(target)
            except OSError as exc:
                log.debug("could not rename %s -> %s: %s", self.path, target, exc)
            else:
                log.debug("renamed %s -> %s", self.path, target)
                self.path = target
        return self.path

    def __enter__(self) -> SessionLog:
        return self

    def __exit__(self, *exc) -> None:
        self.finalize()
