"""Human formatter — Rich terminal transcript of the agent's event stream."""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.text import Text

from codexwrap.events import (
    AgentMessage, CommandExecution, Event, FileChangeItem, ItemCompleted,
    Reasoning, ThreadStarted, TodoList, TurnCompleted, TurnStarted, Usage,
    UnknownEvent, UnknownItem, ItemStarted, Item,
)

MAX_OUTPUT_LINES = 8

CHANGE_LABELS = {
    "add": ("Added", "green"),
    "update": ("Edited", "yellow"),
    "delete": ("Deleted", "red"),
}
DEFAULT_CHANGE_LABEL = ("Changed", "blue")


LOCALE_VARS = ("LC_ALL", "LC_CTYPE", "LANG")


def _locale_name() -> str:
    # first non-empty variable wins, as in setlocale(3)
    return next((os.environ[name] for name in LOCALE_VARS if os.environ.get(name)), "")


def detect_ascii(stream=None) -> bool:
    """True when todo glyphs should fall back to ASCII on ``stream`` (default stdout)."""
    encoding = getattr(stream if stream is not None else sys.stdout, "encoding", None)
    if not encoding or not encoding.lower().replace("-", "").startswith("utf"):
        return True
    locale_name = _locale_name()
    return bool(locale_name) and "utf" not in locale_name.lower()


def make_consoles(force_color: bool = False) -> tuple[Console, Console]:
    """Return (stdout, stderr) consoles for transcript and diagnostics."""
    if force_color:
        return (Console(force_terminal=True, highlight=False),
                Console(stderr=True, force_terminal=True, highlight=False))
    return Console(highlight=False), Console(stderr=True, highlight=False)


def change_label(kind: str) -> tuple[str, str]:
    """Map a file change kind to its (label, color)."""
    return CHANGE_LABELS.get(kind, DEFAULT_CHANGE_LABEL)


def split_output(output: str | None, max_lines: int = MAX_OUTPUT_LINES) -> tuple[list[str], int]:
    """Return the first ``max_lines`` output lines and how many were omitted."""
    if not output:
        return [], 0
    normalized = output[:-1] if output.endswith("\n") else output
    lines = normalized.split("\n") if normalized else []
    return lines[:max_lines], max(len(lines) - max_lines, 0)


@dataclass
class RendererState:
    turn_count: int = 0
    thread_shown: bool = False


class HumanRenderer:
    """Render classified events to a Rich console.

    Transcript output goes to ``console``; banners, process outcomes and
    other diagnostics go to ``err_console``.
    """

    name = "rich"

    def __init__(self, console: Console | None = None, err_console: Console | None = None,
                 show_reasoning: bool = False, ascii_mode: bool = False):
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)
        self.show_reasoning = show_reasoning
        self.ascii_mode = ascii_mode
        self.state = RendererState()

    # ── Session chrome ────────────────────────────────────────────────

    def on_start(self, subcommand: str, thread_id: str | None = None) -> None:
        t = Text(style="dim")
        t.append(f"[codex-wrap:{self.name}]", style="bold")
        t.append(f"  renderer={self.name}")
        t.append(f"  mode={subcommand}")
        if thread_id:
            t.append(f"  thread={thread_id}")
        self.err_console.print(t)
        self.err_console.print()

    def on_interactive_help(self) -> None:
        self.err_console.print(
            "Interactive mode.\n"
            "Type a message and press Enter.\n"
            "Commands:\n"
            "  /exit, /quit   exit chat\n"
            "  /thread        print current thread id",
            markup=False,
        )

    def report_thread(self, thread_id: str | None) -> None:
        self.err_console.print(f"Current thread id: {thread_id or '(none)'}", markup=False)

    def on_current_thread(self, thread_id: str | None) -> None:
        if thread_id:
            self.err_console.print(f"Current thread: {thread_id}", markup=False)
        else:
            self.err_console.print("No thread yet. Send a message first.")

    def on_bye(self) -> None:
        self.err_console.print("Bye.")

    # ── Events ────────────────────────────────────────────────────────

    def on_event(self, event: Event) -> None:
        if isinstance(event, ThreadStarted):
            self._render_thread_started(event.thread_id)
        elif isinstance(event, TurnStarted):
            self._render_turn_started()
        elif isinstance(event, TurnCompleted):
            self._render_turn_completed(event.usage)
        elif isinstance(event, ItemCompleted):
            self._render_item(event.item)
        elif isinstance(event, ItemStarted):
            # completed items carry the final state; nothing to show yet
            pass
        else:
            self._render_unknown_event(event)

    def _render_thread_started(self, thread_id: str | None) -> None:
        if self.state.thread_shown or thread_id is None:
            return
        self.state.thread_shown = True
        self.console.print(Text(f"Thread: {thread_id}", style="bold bright_black"))

    def _render_turn_started(self) -> None:
        self.state.turn_count += 1
        sep = "-" if self.ascii_mode else "─"
        self.console.print()
        self.console.print(Text(f"{sep * 3} Turn #{self.state.turn_count} {sep * 3}",
                                style="bright_black"))

    def _render_turn_completed(self, usage: Usage) -> None:
        # Token usage is accepted but not shown.
        pass

    def _render_item(self, item: Item | None) -> None:
        if item is None:
            return
        if isinstance(item, AgentMessage):
            self._render_agent_message(item)
        elif isinstance(item, Reasoning):
            self._render_reasoning(item)
        elif isinstance(item, FileChangeItem):
            self._render_file_change(item)
        elif isinstance(item, CommandExecution):
            self._render_command(item)
        elif isinstance(item, TodoList):
            self._render_todo_list(item)
        else:
            self._render_unknown_item(item)

    def _render_agent_message(self, item: AgentMessage) -> None:
        t = Text()
        t.append("[Agent]", style="bold cyan")
        t.append(" ")
        t.append(item.text)
        self.console.print()
        self.console.print(t)

    def _render_reasoning(self, item: Reasoning) -> None:
        if not self.show_reasoning:
            return
        self.console.print()
        self.console.print(Text("[Thinking]", style="bold magenta"))
        self.console.print(Text(item.text, style="dim"))

    def _render_file_change(self, item: FileChangeItem) -> None:
        for change in item.changes:
            label, color = change_label(change.kind)
            t = Text()
            t.append(f"[{label}]", style=f"bold {color}")
            t.append(" ")
            t.append(change.path)
            self.console.print()
            self.console.print(t)

    def _render_command(self, item: CommandExecution) -> None:
        code = item.exit_code
        ok = code is None or code == 0
        t = Text()
        t.append("[Ran]", style="bold green" if ok else "bold red")
        t.append(" ")
        t.append(item.command)
        t.append(" ")
        t.append(f"(exit={code if code is not None else '?'})", style="bright_black")
        self.console.print()
        self.console.print(t)

        shown, omitted = split_output(item.aggregated_output)
        for line in shown:
            self.console.print(Text(f"  > {line}", style="bright_black"))
        if omitted:
            self.console.print(Text(f"  > ... ({omitted} lines omitted)", style="bright_black"))

    def _render_todo_list(self, item: TodoList) -> None:
        done_mark, todo_mark = ("[x]", "[ ]") if self.ascii_mode else ("✓", "•")
        self.console.print()
        self.console.print(Text("[Plan]", style="bold blue"))
        for step in item.items:
            t = Text("  ")
            if step.completed:
                t.append(done_mark, style="green")
            else:
                t.append(todo_mark, style="yellow")
            t.append(" ")
            t.append(step.text)
            self.console.print(t)

    def _render_unknown_item(self, item: UnknownItem) -> None:
        self.console.print()
        self.console.print(Text(f"[item:{item.type_name}]", style="dim"))

    def _render_unknown_event(self, event: UnknownEvent) -> None:
        self.console.print()
        self.console.print(Text(f"[event:{event.type_name}]", style="dim"))

    # ── Stream / process diagnostics ──────────────────────────────────

    def on_non_json_line(self, line: str, error: str = "") -> None:
        self.err_console.print(Text(f"[non-json] {line}", style="dim"))

    def on_cancel_requested(self) -> None:
        self.err_console.print()
        self.err_console.print("Escape pressed. Terminating codex run...", markup=False)

    def on_process_exit(self, code: int | None, signal: str | None, aborted: bool) -> None:
        if aborted:
            self.err_console.print(Text("codex run cancelled (Escape).", style="dim"))
            return
        if code == 0:
            return
        if signal:
            self.err_console.print(Text(f"codex terminated by signal {signal}", style="red"))
            return
        self.err_console.print(Text(f"codex exited with code {code if code is not None else '?'}",
                                    style="red"))

    def on_process_error(self, error: BaseException) -> None:
        t = Text("Error spawning codex:", style="red")
        t.append(" ")
        t.append(str(error) or type(error).__name__, style="default")
        self.err_console.print(t)
