"""Event and item taxonomy of the ``codex exec --json`` stream."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

log = logging.getLogger(__name__)


class EventType(str, Enum):
    THREAD_STARTED = "thread.started"
    TURN_STARTED = "turn.started"
    TURN_COMPLETED = "turn.completed"
    ITEM_STARTED = "item.started"
    ITEM_COMPLETED = "item.completed"
    UNKNOWN = "unknown"


class ItemType(str, Enum):
    AGENT_MESSAGE = "agent_message"
    REASONING = "reasoning"
    FILE_CHANGE = "file_change"
    COMMAND_EXECUTION = "command_execution"
    TODO_LIST = "todo_list"
    UNKNOWN = "unknown"


# ── Items ─────────────────────────────────────────────────────────────

@dataclass
class AgentMessage:
    text: str = ""
    type = ItemType.AGENT_MESSAGE


@dataclass
class Reasoning:
    text: str = ""
    type = ItemType.REASONING


@dataclass
class FileChange:
    path: str = ""
    kind: str = "change"


@dataclass
class FileChangeItem:
    changes: list[FileChange] = field(default_factory=list)
    type = ItemType.FILE_CHANGE


@dataclass
class CommandExecution:
    command: str = ""
    aggregated_output: str | None = None
    # None while the command is still running or the code was not reported
    exit_code: int | None = None
    type = ItemType.COMMAND_EXECUTION


@dataclass
class TodoStep:
    text: str = ""
    completed: bool = False


@dataclass
class TodoList:
    items: list[TodoStep] = field(default_factory=list)
    type = ItemType.TODO_LIST


@dataclass
class UnknownItem:
    type_name: str = "unknown"
    type = ItemType.UNKNOWN


Item = Union[AgentMessage, Reasoning, FileChangeItem, CommandExecution, TodoList, UnknownItem]


# ── Events ────────────────────────────────────────────────────────────

@dataclass
class Usage:
    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class ThreadStarted:
    thread_id: str | None = None
    payload: dict = field(default_factory=dict, repr=False, compare=False)
    type = EventType.THREAD_STARTED


@dataclass
class TurnStarted:
    payload: dict = field(default_factory=dict, repr=False, compare=False)
    type = EventType.TURN_STARTED


@dataclass
class TurnCompleted:
    usage: Usage = field(default_factory=Usage)
    payload: dict = field(default_factory=dict, repr=False, compare=False)
    type = EventType.TURN_COMPLETED


@dataclass
class ItemStarted:
    item: Item | None = None
    payload: dict = field(default_factory=dict, repr=False, compare=False)
    type = EventType.ITEM_STARTED


@dataclass
class ItemCompleted:
    item: Item | None = None
    payload: dict = field(default_factory=dict, repr=False, compare=False)
    type = EventType.ITEM_COMPLETED


@dataclass
class UnknownEvent:
    type_name: str = "unknown"
    payload: Any = field(default=None, repr=False, compare=False)
    type = EventType.UNKNOWN


Event = Union[ThreadStarted, TurnStarted, TurnCompleted, ItemStarted, ItemCompleted, UnknownEvent]


@dataclass
class NonJsonLine:
    """A stream line that could not be decoded; logged and passed through."""
    text: str
    error: str = ""


# ── Field helpers ─────────────────────────────────────────────────────

def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _count(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0


def _exit_code(value: Any) -> int | None:
    # JSON encoders may emit 1.0 for an integral code
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value if isinstance(value, int) else None


def _type_name(obj: dict) -> str:
    value = obj.get("type")
    if value is None:
        return "unknown"
    return str(value)


# ── Parsing ───────────────────────────────────────────────────────────

def _file_changes(obj: dict) -> list[FileChange]:
    raw = obj.get("changes")
    if isinstance(raw, list):
        entries = raw
    elif isinstance(obj.get("file_change"), dict):
        # older agents report a single change object
        entries = [obj["file_change"]]
    else:
        entries = []
    changes = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        changes.append(FileChange(
            path=_str(entry.get("path")),
            kind=_str(entry.get("kind")) or "change",
        ))
    return changes


def _todo_steps(obj: dict) -> list[TodoStep]:
    raw = obj.get("items")
    if not isinstance(raw, list):
        return []
    return [
        TodoStep(text=_str(step.get("text")), completed=bool(step.get("completed")))
        for step in raw if isinstance(step, dict)
    ]


def parse_item(obj: Any) -> Item | None:
    """Build a typed item from a decoded ``item`` payload."""
    if not isinstance(obj, dict):
        return None
    itype = obj.get("type")
    if itype == ItemType.AGENT_MESSAGE.value:
        return AgentMessage(text=_str(obj.get("text")))
    if itype == ItemType.REASONING.value:
        return Reasoning(text=_str(obj.get("text")))
    if itype == ItemType.FILE_CHANGE.value:
        return FileChangeItem(changes=_file_changes(obj))
    if itype == ItemType.COMMAND_EXECUTION.value:
        output = obj.get("aggregated_output")
        return CommandExecution(
            command=_str(obj.get("command")),
            aggregated_output=output if isinstance(output, str) else None,
            exit_code=_exit_code(obj.get("exit_code")),
        )
    if itype == ItemType.TODO_LIST.value:
        return TodoList(items=_todo_steps(obj))
    return UnknownItem(type_name=_type_name(obj))


def parse_event(obj: Any) -> Event:
    """Build a typed event from a decoded JSON value. Never raises."""
    if not isinstance(obj, dict):
        return UnknownEvent(payload=obj)
    etype = obj.get("type")
    if etype == EventType.THREAD_STARTED.value:
        tid = obj.get("thread_id")
        return ThreadStarted(thread_id=tid if isinstance(tid, str) else None, payload=obj)
    if etype == EventType.TURN_STARTED.value:
        return TurnStarted(payload=obj)
    if etype == EventType.TURN_COMPLETED.value:
        usage = obj.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return TurnCompleted(usage=Usage(
            input_tokens=_count(usage.get("input_tokens")),
            cached_input_tokens=_count(usage.get("cached_input_tokens")),
            output_tokens=_count(usage.get("output_tokens")),
        ), payload=obj)
    if etype == EventType.ITEM_STARTED.value:
        return ItemStarted(item=parse_item(obj.get("item")), payload=obj)
    if etype == EventType.ITEM_COMPLETED.value:
        return ItemCompleted(item=parse_item(obj.get("item")), payload=obj)
    return UnknownEvent(type_name=_type_name(obj), payload=obj)


def classify(line: str) -> Event | NonJsonLine:
    """Decode one stream line into an event, or tag it as non-JSON."""
    try:
        obj = json.loads(line)
    except (ValueError, RecursionError) as exc:
        log.debug("non-json line: %r (%s)", line, exc)
        return NonJsonLine(text=line, error=str(exc))
    return parse_event(obj)


def thread_id_of(event: Event | NonJsonLine) -> str | None:
    """Return the thread id carried by a ``thread.started`` event, if any."""
    if isinstance(event, ThreadStarted):
        return event.thread_id
    return None
