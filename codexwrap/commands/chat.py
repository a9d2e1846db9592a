"""Chat command — interactive multi-turn loop over one thread."""
from __future__ import annotations

from typing import Awaitable, Callable

from codexwrap.commands.exec import Runner
from codexwrap.runner import RunRequest

EXIT_COMMANDS = ("/exit", "/quit")
THREAD_COMMAND = "/thread"

PROMPT = "> "

ReadInput = Callable[[str], Awaitable[str]]


async def cmd_chat(renderer, subcommand: str, thread_id: str | None,
                   run: Runner, read_input: ReadInput) -> str | None:
    """Prompt for messages until exit; return the final thread id.

    Turns run strictly one after another. The first thread id any turn
    reports is kept and every later turn resumes it. ``read_input`` raises
    EOFError when input ends.
    """
    current = thread_id or None
    renderer.on_start(subcommand, current)
    renderer.on_interactive_help()

    while True:
        try:
            text = (await read_input(PROMPT)).strip()
        except EOFError:
            break
        if not text:
            continue
        if text in EXIT_COMMANDS:
            break
        if text == THREAD_COMMAND:
            renderer.on_current_thread(current)
            continue

        request = RunRequest(
            subcommand="resume" if current else subcommand,
            prompt=text,
            thread_id=current,
        )
        result = await run(renderer, request)
        if not current and result.thread_id:
            current = result.thread_id

    renderer.report_thread(current)
    renderer.on_bye()
    return current
