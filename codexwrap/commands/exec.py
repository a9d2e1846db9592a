"""Exec command — one prompt, one agent run."""
from __future__ import annotations

from typing import Awaitable, Callable

from codexwrap.runner import RunRequest, RunResult

Runner = Callable[..., Awaitable[RunResult]]


async def cmd_exec(renderer, request: RunRequest, run: Runner) -> RunResult:
    """Run ``request`` once and report the thread id it ended on."""
    renderer.on_start(request.subcommand, request.thread_id)
    result = await run(renderer, request)
    renderer.report_thread(result.thread_id or request.thread_id)
    return result
