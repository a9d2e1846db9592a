"""CLI entry point for codex-wrap."""
from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from codexwrap import __version__, config

USAGE = """\
Usage:
  codex-wrap exec <prompt>
  codex-wrap exec    # no prompt -> interactive chat
  codex-wrap resume <thread_id> <prompt>
  codex-wrap resume <thread_id>   # no prompt -> interactive chat on existing thread"""

KNOWN_COMMANDS = ("exec", "resume")


@dataclass
class CliOptions:
    subcommand: str
    prompt: str | None
    thread_id: str | None
    interactive: bool
    format: str = "human"
    ascii: bool = False
    color: bool = False
    log_dir: Path | None = None
    show_reasoning: bool = False
    verbose: bool = False


def _build_parser() -> argparse.ArgumentParser:
    # Shared options, inherited by every subcommand
    global_opts = argparse.ArgumentParser(add_help=False)
    global_opts.add_argument("--format", "-f", choices=["human", "json"], default="human",
                             help="Output format (default: human)")
    global_opts.add_argument("--ascii", action="store_true",
                             help="Force ASCII output (no Unicode glyphs)")
    global_opts.add_argument("--color", action="store_true",
                             help="Force color output (for piping to less -R)")
    global_opts.add_argument("--log-dir", metavar="DIR", type=Path,
                             help="Directory for session logs (default: ./logs)")
    global_opts.add_argument("--show-reasoning", action="store_true",
                             help="Render reasoning items")
    global_opts.add_argument("--verbose", "-v", action="store_true",
                             help="Debug logging on stderr")

    parser = argparse.ArgumentParser(
        prog="codex-wrap",
        description="Readable transcripts for codex exec --json",
    )
    parser.add_argument("--version", action="version", version=f"codex-wrap {__version__}")

    sub = parser.add_subparsers(dest="command")

    p_exec = sub.add_parser("exec", parents=[global_opts], help="Start a new thread")
    p_exec.add_argument("prompt", nargs=argparse.REMAINDER, help="Prompt (omit for chat)")

    p_resume = sub.add_parser("resume", parents=[global_opts], help="Continue a thread")
    p_resume.add_argument("thread_id", nargs="?", help="Thread ID to resume")
    p_resume.add_argument("prompt", nargs=argparse.REMAINDER, help="Prompt (omit for chat)")

    return parser


def _usage_exit(console: Console, message: str | None = None):
    if message:
        console.print(message, markup=False)
    console.print(USAGE, markup=False)
    sys.exit(1)


def parse_cli(argv: list[str], console: Console | None = None) -> CliOptions:
    """Turn CLI tokens into options; prints usage and exits 1 on bad input."""
    console = console or Console(stderr=True, highlight=False)
    if not argv or (argv[0] not in KNOWN_COMMANDS and not argv[0].startswith("-")):
        _usage_exit(console)

    args = _build_parser().parse_args(argv)
    if args.command not in KNOWN_COMMANDS:
        _usage_exit(console)

    thread_id = getattr(args, "thread_id", None)
    if args.command == "resume" and not thread_id:
        _usage_exit(console, "Error: thread_id is required for `resume`.")

    prompt = " ".join(args.prompt or []).strip() or None
    return CliOptions(
        subcommand=args.command,
        prompt=prompt,
        thread_id=thread_id,
        interactive=prompt is None,
        format=args.format,
        ascii=args.ascii,
        color=args.color,
        log_dir=args.log_dir,
        show_reasoning=args.show_reasoning,
        verbose=args.verbose,
    )


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


async def _run(options: CliOptions, renderer, run) -> int:
    if options.interactive:
        from codexwrap.commands.chat import cmd_chat
        from codexwrap.terminal import PromptReader
        reader = PromptReader(sys.stdin)

        async def read_input(prompt: str) -> str:
            renderer.err_console.print(prompt, end="", markup=False)
            return await reader.readline()

        await cmd_chat(renderer, options.subcommand, options.thread_id, run, read_input)
        return 0

    from codexwrap.commands.exec import cmd_exec
    from codexwrap.runner import RunRequest
    request = RunRequest(options.subcommand, options.prompt, options.thread_id)
    result = await cmd_exec(renderer, request, run)
    return result.exit_status


def main(argv: list[str] | None = None):
    options = parse_cli(sys.argv[1:] if argv is None else argv)
    _setup_logging(options.verbose or config.debug_enabled())

    from codexwrap.formatters.human import HumanRenderer, detect_ascii, make_consoles
    from codexwrap.runner import run_agent
    console, err_console = make_consoles(force_color=options.color)
    if options.format == "json":
        from codexwrap.formatters.json import JsonRenderer
        renderer_cls = JsonRenderer
    else:
        renderer_cls = HumanRenderer
    renderer = renderer_cls(
        console, err_console,
        show_reasoning=options.show_reasoning or config.show_reasoning(),
        ascii_mode=options.ascii or detect_ascii(console.file),
    )

    run = functools.partial(
        run_agent,
        command=config.agent_command(),
        log_dir=options.log_dir or config.log_dir(),
        stdin=sys.stdin,
    )
    try:
        code = asyncio.run(_run(options, renderer, run))
    except KeyboardInterrupt:
        code = 130
    except Exception:
        err_console.print_exception()
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
