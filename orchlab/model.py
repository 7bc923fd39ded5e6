from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from orchlab.validate import ScenarioError

STRATEGY_NAMES: tuple[str, ...] = ("sequential", "parallel", "staged")

MESSAGE_ROLES: tuple[str, ...] = (
    "user",
    "assistant",
    "system",
    "orchestrator",
    "worker",
    "tool_call",
    "tool_result",
    "context",
    "complete",
)

# Older content used a few alternative role names.
_ROLE_ALIASES = {"response": "assistant", "agent": "orchestrator"}


def normalize_role(raw: str) -> str:
    role = str(raw)
    if role in MESSAGE_ROLES:
        return role
    return _ROLE_ALIASES.get(role, "assistant")


def _expect_object(obj: Any, what: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ScenarioError(f"{what} must be a JSON object")
    return obj


def _require(obj: dict[str, Any], key: str, what: str) -> Any:
    if obj.get(key) is None:
        raise ScenarioError(f"{what} is missing '{key}'")
    return obj[key]


def _list_field(obj: dict[str, Any], key: str, what: str) -> list[Any]:
    # Absent and null both mean "no entries".
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ScenarioError(f"{what}: '{key}' must be a list")
    return value


def _number(value: Any, what: str, kind: type = float) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ScenarioError(f"{what}: expected a number, got {value!r}") from e


def _opt_int(value: Any, what: str) -> int | None:
    return _number(value, what, int) if value is not None else None


@dataclass(frozen=True)
class ContextItem:
    label: str
    value: str
    type: str = "input"
    tokens: int | None = None

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "ContextItem":
        obj = _expect_object(obj, "context item")
        return ContextItem(
            label=str(obj.get("label", "")),
            value=str(obj.get("value", "")),
            type=str(obj.get("type", "input")),
            tokens=_opt_int(obj.get("tokens"), "context item 'tokens'"),
        )


@dataclass(frozen=True)
class WorkerMessage:
    id: str
    type: str
    content: str
    tokens: int | None = None

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "WorkerMessage":
        obj = _expect_object(obj, "worker message")
        msg_id = str(_require(obj, "id", "worker message"))
        return WorkerMessage(
            id=msg_id,
            type=str(obj.get("type", "thought")),
            content=str(obj.get("content", "")),
            tokens=_opt_int(obj.get("tokens"), f"worker message '{msg_id}' 'tokens'"),
        )


@dataclass(frozen=True)
class Task:
    id: str
    duration: float
    dependencies: tuple[str, ...] = ()
    input_tokens: int | None = None
    output_tokens: int | None = None
    # Display-only fields; the scheduler never looks at these.
    name: str = ""
    short_label: str = ""
    description: str = ""
    column: int = 0
    row: float = 0.0
    context: tuple[ContextItem, ...] = ()
    internal_chat: tuple[WorkerMessage, ...] = ()

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Task":
        obj = _expect_object(obj, "task")
        task_id = str(_require(obj, "id", "task"))
        what = f"task '{task_id}'"
        duration = _require(obj, "duration", what)

        return Task(
            id=task_id,
            duration=_number(duration, f"{what} 'duration'"),
            dependencies=tuple(
                str(d) for d in _list_field(obj, "dependencies", what)
            ),
            input_tokens=_opt_int(obj.get("input_tokens"), f"{what} 'input_tokens'"),
            output_tokens=_opt_int(obj.get("output_tokens"), f"{what} 'output_tokens'"),
            name=str(obj.get("name", task_id)),
            short_label=str(obj.get("short_label", obj.get("name", task_id))),
            description=str(obj.get("description", "")),
            column=_number(obj.get("column", 0), f"{what} 'column'", int),
            row=_number(obj.get("row", 0), f"{what} 'row'"),
            context=tuple(
                ContextItem.from_json(c) for c in _list_field(obj, "context", what)
            ),
            internal_chat=tuple(
                WorkerMessage.from_json(m)
                for m in _list_field(obj, "internal_chat", what)
            ),
        )


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: str
    text: str
    offset_ms: float = 0.0
    tokens: int | None = None
    sender: str | None = None
    # Visible once this task completes.
    triggered_by: str | None = None
    # Visible once this task starts.
    triggered_at_start: str | None = None

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "ChatMessage":
        obj = _expect_object(obj, "chat message")
        msg_id = str(_require(obj, "id", "chat message"))
        what = f"chat message '{msg_id}'"
        meta = _expect_object(obj.get("metadata") or {}, f"{what} 'metadata'")

        def _pick(key: str) -> Any:
            return obj.get(key, meta.get(key))

        sender = _pick("sender")
        by = _pick("triggered_by")
        at_start = _pick("triggered_at_start")
        return ChatMessage(
            id=msg_id,
            role=normalize_role(obj.get("role", "assistant")),
            text=str(obj.get("text", obj.get("content", ""))),
            offset_ms=_number(obj.get("offset_ms", 0.0), f"{what} 'offset_ms'"),
            tokens=_opt_int(_pick("tokens"), f"{what} 'tokens'"),
            sender=str(sender) if sender is not None else None,
            triggered_by=str(by) if by is not None else None,
            triggered_at_start=str(at_start) if at_start is not None else None,
        )


@dataclass(frozen=True)
class CoordinationOverhead:
    per_wave_tokens: int = 0
    per_task_tokens: int = 0

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "CoordinationOverhead":
        obj = _expect_object(obj, "overhead entry")
        return CoordinationOverhead(
            per_wave_tokens=_number(
                obj.get("per_wave_tokens", 0), "overhead 'per_wave_tokens'", int
            ),
            per_task_tokens=_number(
                obj.get("per_task_tokens", 0), "overhead 'per_task_tokens'", int
            ),
        )


NO_OVERHEAD = CoordinationOverhead()


@dataclass(frozen=True)
class Scenario:
    id: str
    name: str
    tasks: tuple[Task, ...]
    chat: tuple[ChatMessage, ...] = ()
    description: str = ""
    pattern_type: str = "static"
    # strategy name -> overhead; compared by value but never hashed.
    overhead: dict[str, CoordinationOverhead] = field(
        default_factory=dict, hash=False
    )

    def task_ids(self) -> tuple[str, ...]:
        return tuple(t.id for t in self.tasks)

    def task_map(self) -> dict[str, Task]:
        return {t.id: t for t in self.tasks}

    def overhead_for(self, strategy: str) -> CoordinationOverhead:
        return self.overhead.get(strategy, NO_OVERHEAD)

    @staticmethod
    def from_json(obj: dict[str, Any]) -> "Scenario":
        obj = _expect_object(obj, "scenario")

        tasks = tuple(Task.from_json(t) for t in _list_field(obj, "tasks", "scenario"))
        chat = tuple(
            ChatMessage.from_json(m) for m in _list_field(obj, "chat", "scenario")
        )

        overhead: dict[str, CoordinationOverhead] = {}
        raw_overhead = _expect_object(obj.get("overhead") or {}, "'overhead'")
        for strategy, o in raw_overhead.items():
            name = str(strategy)
            if name not in STRATEGY_NAMES:
                raise ScenarioError(
                    f"overhead references unknown strategy '{name}' "
                    f"(expected one of {', '.join(STRATEGY_NAMES)})"
                )
            overhead[name] = CoordinationOverhead.from_json(o)

        scenario_id = str(obj.get("id", "scenario"))
        return Scenario(
            id=scenario_id,
            name=str(obj.get("name", scenario_id)),
            tasks=tasks,
            chat=chat,
            description=str(obj.get("description", "")),
            pattern_type=str(obj.get("pattern_type", "static")),
            overhead=overhead,
        )
