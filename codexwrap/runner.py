"""Spawn the agent once and stream its events through the renderer and log."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import signal as _signal
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, TextIO

from codexwrap.events import NonJsonLine, classify, thread_id_of
from codexwrap.session_log import SessionLog
from codexwrap.stream import read_lines
from codexwrap.terminal import EscapeWatcher

log = logging.getLogger(__name__)

AGENT_FLAGS = (
    "exec",
    "--skip-git-repo-check",
    "--dangerously-bypass-approvals-and-sandbox",
    "--json",
)


@dataclass
class RunRequest:
    subcommand: str
    prompt: str
    thread_id: str | None = None

    @property
    def resuming(self) -> bool:
        return self.subcommand == "resume" and bool(self.thread_id)


@dataclass
class RunResult:
    code: int | None
    signal: str | None = None
    thread_id: str | None = None
    aborted: bool = False
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return not self.aborted and self.code != 0

    @property
    def exit_status(self) -> int:
        """Status this run contributes to the wrapper's own exit code."""
        if not self.failed:
            return 0
        return self.code if self.code is not None else 1


def build_args(request: RunRequest) -> list[str]:
    args = [*AGENT_FLAGS, request.prompt]
    if request.resuming:
        args += ["resume", request.thread_id]
    return args


def split_returncode(returncode: int | None) -> tuple[int | None, str | None]:
    """Split an asyncio return code into (exit code, signal name)."""
    if returncode is None or returncode >= 0:
        return returncode, None
    try:
        return None, _signal.Signals(-returncode).name
    except ValueError:
        return None, f"SIG{-returncode}"


class _Pipeline:
    """Per-invocation line handling: thread discovery, logging, rendering."""

    def __init__(self, renderer, session_log: SessionLog):
        self.renderer = renderer
        self.session_log = session_log
        self.thread_id: str | None = None

    def handle(self, line: str) -> None:
        event = classify(line)
        if isinstance(event, NonJsonLine):
            self.session_log.write_line(line)
            self.renderer.on_non_json_line(line, event.error)
            return
        tid = thread_id_of(event)
        if tid and not self.thread_id:
            log.debug("thread id %s", tid)
            self.thread_id = tid
            self.session_log.record_thread(tid)
        self.session_log.write_line(line)
        self.renderer.on_event(event)


async def run_agent(renderer, request: RunRequest, *, command: Sequence[str] = ("codex",),
                    log_dir: Path = Path("logs"), stdin: TextIO | None = None) -> RunResult:
    """Run the agent for one turn and return how it ended.

    ``stdin`` is the terminal to watch for Escape; pass None to disable
    cancellation (the child inherits the real stdin either way).
    """
    session_log = SessionLog.open(log_dir, request.subcommand, request.prompt, request.thread_id)
    argv = [*command, *build_args(request)]
    log.debug("spawning %s", argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=None,
            stdout=asyncio.subprocess.PIPE,
            stderr=None,
        )
    except OSError as exc:
        renderer.on_process_error(exc)
        session_log.finalize(request.thread_id)
        return RunResult(code=1, error=exc)

    pipeline = _Pipeline(renderer, session_log)
    watcher = EscapeWatcher(proc, stdin, on_escape=renderer.on_cancel_requested)
    try:
        with watcher:
            async for line in read_lines(proc.stdout):
                pipeline.handle(line)
            returncode = await proc.wait()
    except BaseException:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
        raise
    finally:
        session_log.finalize(pipeline.thread_id or request.thread_id)

    aborted = watcher.aborted
    code, sig = split_returncode(returncode)
    renderer.on_process_exit(code, sig, aborted)
    return RunResult(code=code, signal=sig, thread_id=pipeline.thread_id, aborted=aborted)
