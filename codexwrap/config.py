"""Environment-driven settings."""
from __future__ import annotations

import os
import shlex
from pathlib import Path

REASONING_ENV_VARS = ("CODEX_WRAP_SHOW_REASONING", "CODEX_WRAP_SHOW_THINKING")


def _flag(name: str) -> bool:
    return os.environ.get(name) == "1"


def show_reasoning() -> bool:
    return any(_flag(name) for name in REASONING_ENV_VARS)


def debug_enabled() -> bool:
    return _flag("CODEX_WRAP_DEBUG")


def log_dir() -> Path:
    env = os.environ.get("CODEX_WRAP_LOG_DIR")
    if env:
        return Path(env)
    return Path("logs").resolve()


def agent_command() -> list[str]:
    """Command prefix used to launch the agent (default: ``codex``)."""
    env = os.environ.get("CODEX_WRAP_BIN", "").strip()
    if env:
        return shlex.split(env)
    return ["codex"]
