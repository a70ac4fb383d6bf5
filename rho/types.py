"""Core state types: statuses, risks, display messages, tasks and notifications."""

from __future__ import annotations

import enum
import json
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping


class ExecutionStatus(str, enum.Enum):
    """Execution status of a conversation on the agent server."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    WAITING_FOR_CONFIRMATION = "waiting_for_confirmation"
    FINISHED = "finished"
    ERROR = "error"


class SecurityRisk(str, enum.Enum):
    """Security risk level the agent assigns to an action."""

    UNKNOWN = "UNKNOWN"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def parse(cls, text: str) -> SecurityRisk:
        """Parse a risk name, ignoring case; raise ValueError if unrecognised."""
        if isinstance(text, cls):
            return text
        if not isinstance(text, str):
            raise ValueError(f"invalid security risk: {text!r}")
        try:
            return cls(text.strip().upper())
        except ValueError:
            raise ValueError(f"invalid security risk: {text!r}") from None

    def __str__(self) -> str:
        return self.value


class ConfirmationPolicy(enum.Enum):
    """When actions need the user's confirmation before they run."""

    ALWAYS_CONFIRM = "always-confirm"
    NEVER_CONFIRM = "never-confirm"
    CONFIRM_RISKY = "confirm-risky"

    @classmethod
    def _missing_(cls, value: object) -> ConfirmationPolicy | None:
        if isinstance(value, str):
            return _POLICY_ALIASES.get(value.strip().lower())
        return None

    def __str__(self) -> str:
        return _POLICY_LABELS[self]


_POLICY_ALIASES = {
    "always": ConfirmationPolicy.ALWAYS_CONFIRM,
    "never": ConfirmationPolicy.NEVER_CONFIRM,
    "risky": ConfirmationPolicy.CONFIRM_RISKY,
}

_POLICY_LABELS = {
    ConfirmationPolicy.ALWAYS_CONFIRM: "   Always Confirm",
    ConfirmationPolicy.NEVER_CONFIRM: "    Auto-Approve",
    ConfirmationPolicy.CONFIRM_RISKY: "    Confirm Risky",
}


class InputMode(enum.Enum):
    NORMAL = "normal"
    CONFIRMATION = "confirmation"


class MessageRole(enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    ACTION = "action"
    ERROR = "error"
    TERMINAL = "terminal"
    BTW = "btw"


_HIDDEN_ARG_KEYS = frozenset({"security_risk", "summary"})


def _parse_arguments(arguments: Any) -> dict[str, Any] | None:
    if not isinstance(arguments, str):
        return None
    try:
        parsed = json.loads(arguments)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _tool_call_arguments(action: Mapping[str, Any]) -> Any:
    tool_call = action.get("tool_call")
    if isinstance(tool_call, Mapping):
        return tool_call.get("arguments")
    return None


def format_tool_args(arguments: str | None) -> str:
    """Render a tool call's JSON arguments as ``key: value, ...``.

    Keys are sorted; ``security_risk`` and ``summary`` are left out. Strings
    appear as they are, other values as compact JSON. Arguments that are not
    a JSON object give an empty string.
    """
    parsed = _parse_arguments(arguments)
    if parsed is None:
        return ""
    parts = []
    for key in sorted(parsed):
        if key in _HIDDEN_ARG_KEYS:
            continue
        value = parsed[key]
        if isinstance(value, str):
            text = value
        else:
            text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
        parts.append(f"{key}: {text}")
    return ", ".join(parts)


def effective_risk(action: Mapping[str, Any]) -> SecurityRisk:
    """Risk of an action event.

    The top-level ``security_risk`` wins when it is set and not UNKNOWN;
    otherwise ``security_risk`` in the tool call arguments is used.
    """
    top = action.get("security_risk")
    if top is not None:
        try:
            risk = SecurityRisk.parse(top)
        except ValueError:
            risk = SecurityRisk.UNKNOWN
        if risk is not SecurityRisk.UNKNOWN:
            return risk

    parsed = _parse_arguments(_tool_call_arguments(action))
    if parsed is None:
        return SecurityRisk.UNKNOWN
    try:
        return SecurityRisk.parse(parsed.get("security_risk"))
    except ValueError:
        return SecurityRisk.UNKNOWN


@dataclass
class DisplayMessage:
    """A message shown in the conversation view."""

    role: MessageRole
    content: str
    id: str | None = None
    collapsed: bool = False
    tool_name: str | None = None
    security_risk: SecurityRisk | None = None
    accepted: bool = False
    thought: str | None = None
    activated_skills: list[str] = field(default_factory=list)

    @classmethod
    def user(cls, content: str) -> DisplayMessage:
        return cls(MessageRole.USER, str(content))

    @classmethod
    def assistant(cls, content: str) -> DisplayMessage:
        return cls(MessageRole.ASSISTANT, str(content))

    @classmethod
    def system(cls, content: str) -> DisplayMessage:
        return cls(MessageRole.SYSTEM, str(content), collapsed=True)

    @classmethod
    def action(cls, event: Mapping[str, Any]) -> DisplayMessage:
        """Build a collapsed tool-call message from an action event."""
        tool_name = event.get("tool_name", "")
        summary = event.get("summary")
        if summary is None:
            summary = tool_name
        args_display = format_tool_args(_tool_call_arguments(event))
        thought = event.get("thought")
        if thought is None:
            thought = event.get("reasoning_content")
        return cls(
            MessageRole.ACTION,
            f"{args_display}\n{summary}",
            id=event.get("tool_call_id", ""),
            collapsed=True,
            tool_name=tool_name,
            security_risk=effective_risk(event),
            thought=thought,
        )

    @classmethod
    def error(cls, content: str) -> DisplayMessage:
        return cls(MessageRole.ERROR, str(content))

    @classmethod
    def terminal(cls, command: str, output: str) -> DisplayMessage:
        return cls(MessageRole.TERMINAL, f"$ {command}\n{output}")

    @classmethod
    def btw(cls, question: str, answer: str) -> DisplayMessage:
        return cls(MessageRole.BTW, f"{question}\n{answer}")


@dataclass
class TaskItem:
    """A task from the task tracker tool."""

    title: str
    notes: str = ""
    status: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaskItem:
        """Build a task from its JSON object; raise ValueError if malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("task must be an object")
        title = data.get("title")
        if not isinstance(title, str):
            raise ValueError("task needs a string 'title'")
        values = {}
        for key in ("notes", "status"):
            if key in data:
                if not isinstance(data[key], str):
                    raise ValueError(f"task field {key!r} must be a string")
                values[key] = data[key]
        return cls(title=title, **values)


@dataclass
class PendingAction:
    """An action waiting for the user's confirmation."""

    tool_call_id: str
    tool_name: str
    args: str
    summary: str
    security_risk: SecurityRisk


class NotificationSeverity(enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """A notification shown for a limited time."""

    title: str
    message: str
    severity: NotificationSeverity
    created_at: float = field(default_factory=time.monotonic)

    @classmethod
    def info(cls, title: str, message: str) -> Notification:
        return cls(str(title), str(message), NotificationSeverity.INFO)

    @classmethod
    def warning(cls, title: str, message: str) -> Notification:
        return cls(str(title), str(message), NotificationSeverity.WARNING)

    @classmethod
    def error(cls, title: str, message: str) -> Notification:
        return cls(str(title), str(message), NotificationSeverity.ERROR)

    def is_expired(self, max_age: float | timedelta) -> bool:
        """Whether more than ``max_age`` (seconds or a timedelta) has passed."""
        if isinstance(max_age, timedelta):
            max_age = max_age.total_seconds()
        return time.monotonic() - self.created_at > max_age