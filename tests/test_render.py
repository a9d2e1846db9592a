"""Tests for codexwrap.formatters — human and JSON renderers."""
from __future__ import annotations

import io
import json

from codexwrap.events import (
    AgentMessage, CommandExecution, FileChange, FileChangeItem, ItemCompleted,
    ItemStarted, Reasoning, ThreadStarted, TodoList, TodoStep, TurnCompleted,
    TurnStarted, UnknownEvent, UnknownItem, Usage, classify,
)
from codexwrap.formatters.human import LOCALE_VARS, change_label, detect_ascii, split_output
from codexwrap.formatters.json import JsonRenderer


def lines_of(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.strip()]


class TestHelpers:
    def test_change_labels(self):
        assert change_label("add")[0] == "Added"
        assert change_label("update")[0] == "Edited"
        assert change_label("delete")[0] == "Deleted"
        assert change_label("rename")[0] == "Changed"
        assert change_label("change")[0] == "Changed"

    def test_detect_ascii_from_encoding(self, monkeypatch):
        for name in LOCALE_VARS:
            monkeypatch.delenv(name, raising=False)
        assert detect_ascii(io.TextIOWrapper(io.BytesIO(), encoding="utf-8")) is False
        assert detect_ascii(io.TextIOWrapper(io.BytesIO(), encoding="latin-1")) is True
        assert detect_ascii(object()) is True

    def test_detect_ascii_locale_precedence(self, monkeypatch):
        stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        monkeypatch.setenv("LANG", "C")
        monkeypatch.setenv("LC_ALL", "en_US.UTF-8")
        assert detect_ascii(stream) is False
        monkeypatch.setenv("LC_ALL", "")
        monkeypatch.setenv("LC_CTYPE", "POSIX")
        assert detect_ascii(stream) is True

    def test_split_output_trailing_newline(self):
        assert split_output("a\nb\n") == (["a", "b"], 0)
        assert split_output("a\nb\n\n") == (["a", "b", ""], 0)

    def test_split_output_empty(self):
        assert split_output(None) == ([], 0)
        assert split_output("") == ([], 0)
        assert split_output("\n") == ([], 0)

    def test_split_output_cap(self):
        shown, omitted = split_output("\n".join(str(i) for i in range(12)))
        assert shown == [str(i) for i in range(8)]
        assert omitted == 4


class TestStart:
    def test_banner(self, capture):
        c = capture()
        c.renderer.on_start("resume", "t-9")
        assert "[codex-wrap:rich]" in c.err
        assert "renderer=rich" in c.err
        assert "mode=resume" in c.err
        assert "thread=t-9" in c.err
        assert c.out == ""

    def test_banner_without_thread(self, capture):
        c = capture()
        c.renderer.on_start("exec")
        assert "thread=" not in c.err


class TestThreadAndTurns:
    def test_thread_banner_once(self, capture):
        c = capture()
        c.renderer.on_event(ThreadStarted("abc"))
        c.renderer.on_event(ThreadStarted("xyz"))
        assert "Thread: abc" in c.out
        assert "xyz" not in c.out
        assert c.renderer.state.thread_shown is True

    def test_thread_banner_waits_for_real_id(self, capture):
        c = capture()
        c.renderer.on_event(ThreadStarted(None))
        assert c.out == ""
        assert c.renderer.state.thread_shown is False
        c.renderer.on_event(ThreadStarted("abc"))
        assert lines_of(c.out) == ["Thread: abc"]

    def test_turn_counter(self, capture):
        c = capture(ascii_mode=True)
        c.renderer.on_event(TurnStarted())
        c.renderer.on_event(TurnStarted())
        assert lines_of(c.out) == ["--- Turn #1 ---", "--- Turn #2 ---"]
        assert c.renderer.state.turn_count == 2

    def test_turn_counter_per_instance(self, capture):
        a, b = capture(), capture()
        a.renderer.on_event(TurnStarted())
        b.renderer.on_event(TurnStarted())
        assert "Turn #1" in a.out
        assert "Turn #1" in b.out

    def test_turn_completed_silent(self, capture):
        c = capture()
        c.renderer.on_event(TurnCompleted(Usage(1, 2, 3)))
        assert c.out == ""
        assert c.err == ""

    def test_item_started_ignored(self, capture):
        c = capture()
        c.renderer.on_event(ItemStarted(AgentMessage("partial")))
        assert c.out == ""


class TestItems:
    def test_agent_message_verbatim(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(AgentMessage("**bold** [red]not markup[/red]")))
        assert "[Agent] **bold** [red]not markup[/red]" in c.out

    def test_reasoning_hidden_by_default(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(Reasoning("secret thoughts")))
        assert c.out == ""
        assert c.err == ""

    def test_reasoning_shown_when_enabled(self, capture):
        c = capture(show_reasoning=True)
        c.renderer.on_event(ItemCompleted(Reasoning("secret thoughts")))
        assert "[Thinking]" in c.out
        assert "secret thoughts" in c.out

    def test_file_changes_in_order(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(FileChangeItem([
            FileChange("/a", "add"), FileChange("/b", "delete"),
        ])))
        assert lines_of(c.out) == ["[Added] /a", "[Deleted] /b"]

    def test_file_change_fallback_label(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(FileChangeItem([
            FileChange("/c", "update"), FileChange("/d", "move"),
        ])))
        assert lines_of(c.out) == ["[Edited] /c", "[Changed] /d"]

    def test_command_with_exit_code(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(CommandExecution("make test", "ok\n", 2)))
        assert lines_of(c.out) == ["[Ran] make test (exit=2)", "  > ok"]

    def test_command_unknown_exit(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(CommandExecution("sleep 9", None, None)))
        assert lines_of(c.out) == ["[Ran] sleep 9 (exit=?)"]

    def test_command_whole_float_exit(self, capture):
        c = capture()
        ev = classify('{"type":"item.completed","item":{"type":"command_execution",'
                      '"command":"false","exit_code":1.0}}')
        c.renderer.on_event(ev)
        assert lines_of(c.out) == ["[Ran] false (exit=1)"]

    def test_command_output_truncated(self, capture):
        c = capture()
        output = "".join(f"line {i}\n" for i in range(12))
        c.renderer.on_event(ItemCompleted(CommandExecution("seq", output, 0)))
        out = lines_of(c.out)
        assert out[1:9] == [f"  > line {i}" for i in range(8)]
        assert out[9] == "  > ... (4 lines omitted)"
        assert len(out) == 10

    def test_command_output_at_cap_not_truncated(self, capture):
        c = capture()
        output = "\n".join(f"l{i}" for i in range(8))
        c.renderer.on_event(ItemCompleted(CommandExecution("seq", output, 0)))
        assert "omitted" not in c.out

    def test_todo_list_order_and_glyphs(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(TodoList([
            TodoStep("zeta", True), TodoStep("alpha", False),
        ])))
        assert lines_of(c.out) == ["[Plan]", "  ✓ zeta", "  • alpha"]

    def test_todo_list_ascii(self, capture):
        c = capture(ascii_mode=True)
        c.renderer.on_event(ItemCompleted(TodoList([TodoStep("a", True), TodoStep("b")])))
        assert lines_of(c.out) == ["[Plan]", "  [x] a", "  [ ] b"]

    def test_unknown_item_and_event(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(UnknownItem("web_search")))
        c.renderer.on_event(UnknownEvent("turn.failed"))
        assert lines_of(c.out) == ["[item:web_search]", "[event:turn.failed]"]

    def test_missing_item_renders_nothing(self, capture):
        c = capture()
        c.renderer.on_event(ItemCompleted(None))
        assert c.out == ""


class TestDiagnostics:
    def test_non_json_line(self, capture):
        c = capture()
        c.renderer.on_non_json_line("warning: something", "Expecting value")
        assert "[non-json] warning: something" in c.err
        assert c.out == ""

    def test_exit_success_quiet(self, capture):
        c = capture()
        c.renderer.on_process_exit(0, None, False)
        assert c.err == ""

    def test_exit_cancelled(self, capture):
        c = capture()
        c.renderer.on_process_exit(130, None, True)
        assert "cancelled" in c.err
        assert "exited with code" not in c.err

    def test_exit_signal(self, capture):
        c = capture()
        c.renderer.on_process_exit(None, "SIGTERM", False)
        assert "codex terminated by signal SIGTERM" in c.err

    def test_exit_code(self, capture):
        c = capture()
        c.renderer.on_process_exit(7, None, False)
        assert "codex exited with code 7" in c.err

    def test_process_error(self, capture):
        c = capture()
        c.renderer.on_process_error(FileNotFoundError(2, "No such file", "codex"))
        assert "Error spawning codex:" in c.err

    def test_report_thread(self, capture):
        c = capture()
        c.renderer.report_thread("t-1")
        c.renderer.report_thread(None)
        assert "Current thread id: t-1" in c.err
        assert "Current thread id: (none)" in c.err


class TestJsonRenderer:
    def test_events_passed_through(self, capture, sample_events):
        c = capture(JsonRenderer)
        for rec in sample_events:
            c.renderer.on_event(classify(json.dumps(rec)))
        decoded = [json.loads(line) for line in c.out.splitlines()]
        assert decoded == sample_events

    def test_banner_names_renderer(self, capture):
        c = capture(JsonRenderer)
        c.renderer.on_start("exec")
        assert "renderer=json" in c.err
        assert c.out == ""
