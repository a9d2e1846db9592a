"""Shared fixtures for codex-wrap tests."""
from __future__ import annotations

import io
import json
import sys
import textwrap
from pathlib import Path

import pytest
from rich.console import Console

from codexwrap.formatters.human import HumanRenderer


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)


class Captured:
    """A renderer wired to in-memory consoles."""

    def __init__(self, renderer: HumanRenderer):
        self.renderer = renderer

    @property
    def out(self) -> str:
        return self.renderer.console.file.getvalue()

    @property
    def err(self) -> str:
        return self.renderer.err_console.file.getvalue()


@pytest.fixture
def capture():
    """Factory: build a renderer (HumanRenderer by default) with captured output."""
    def _make(cls=HumanRenderer, **kwargs) -> Captured:
        return Captured(cls(make_console(), make_console(), **kwargs))
    return _make


@pytest.fixture
def sample_events():
    """A short but complete ``codex exec --json`` stream."""
    return [
        {"type": "thread.started", "thread_id": "abc"},
        {"type": "turn.started"},
        {"type": "item.started", "item": {"id": "item_0", "type": "command_execution",
                                          "command": "ls", "exit_code": None}},
        {"type": "item.completed", "item": {"id": "item_0", "type": "command_execution",
                                            "command": "ls", "aggregated_output": "a.py\nb.py\n",
                                            "exit_code": 0}},
        {"type": "item.completed", "item": {"id": "item_1", "type": "agent_message",
                                            "text": "Done **now**."}},
        {"type": "turn.completed", "usage": {"input_tokens": 10, "cached_input_tokens": 2,
                                             "output_tokens": 5}},
    ]


@pytest.fixture
def fake_agent(tmp_path):
    """Factory: write a stand-in agent script, return its command prefix.

    The script records its argv to ``argv.json``, writes ``chunks`` to stdout
    (flushing after each) and exits with ``code``. ``kill_with`` makes it
    signal itself instead; ``sleep`` keeps it alive until interrupted.
    """
    def _make(chunks: list[str] = (), code: int = 0, kill_with: str | None = None,
              sleep: float = 0.0) -> tuple[str, ...]:
        argv_file = tmp_path / "argv.json"
        script = tmp_path / "fake_agent.py"
        script.write_text(textwrap.dedent(f"""\
            import json, os, signal, sys, time
            signal.signal(signal.SIGINT, lambda *_: sys.exit(3))
            with open({str(argv_file)!r}, "w") as f:
                json.dump(sys.argv[1:], f)
            for chunk in {list(chunks)!r}:
                sys.stdout.write(chunk)
                sys.stdout.flush()
            if {sleep!r}:
                time.sleep({sleep!r})
            if {kill_with!r}:
                os.kill(os.getpid(), getattr(signal, {kill_with!r}))
                time.sleep(5)
            sys.exit({code!r})
        """))
        return (sys.executable, str(script))
    return _make


@pytest.fixture
def recorded_argv(tmp_path):
    def _read() -> list[str]:
        return json.loads((tmp_path / "argv.json").read_text())
    return _read


@pytest.fixture
def to_jsonl():
    """Serialize records as newline-terminated JSON lines."""
    def _dump(records: list[dict]) -> str:
        return "".join(json.dumps(r) + "\n" for r in records)
    return _dump


@pytest.fixture
def log_dir(tmp_path) -> Path:
    return tmp_path / "logs"
