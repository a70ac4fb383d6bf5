"""Turns agent-server events into changes of the application state."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from rho.types import (
    ConfirmationPolicy,
    DisplayMessage,
    ExecutionStatus,
    InputMode,
    MessageRole,
    PendingAction,
    SecurityRisk,
    TaskItem,
    effective_risk,
    format_tool_args,
)

if TYPE_CHECKING:
    from rho.state import AppState

logger = logging.getLogger(__name__)

# Event kinds the client understands; anything else is ignored.
KNOWN_EVENT_KINDS = frozenset(
    {
        "MessageEvent",
        "ActionEvent",
        "ObservationEvent",
        "AgentErrorEvent",
        "ConversationStateUpdateEvent",
        "PauseEvent",
        "UserRejectObservation",
        "SystemPromptEvent",
        "Condensation",
        "TokenEvent",
    }
)

_RECENT_ERROR_WINDOW = 3


def _event_source(event: Mapping[str, Any]) -> Any:
    if "source" in event:
        return event["source"]
    base = event.get("base")
    if isinstance(base, Mapping):
        return base.get("source")
    return None


def _message_text(event: Mapping[str, Any]) -> str | None:
    """First text block of the event's LLM message, if any."""
    llm_message = event.get("llm_message")
    if not isinstance(llm_message, Mapping):
        return None
    content = llm_message.get("content")
    if not isinstance(content, list):
        return None
    for block in content:
        if not isinstance(block, Mapping):
            continue
        text = block.get("text")
        if block.get("type", "text") == "text" and isinstance(text, str):
            return text
    return None


def _skills(event: Mapping[str, Any]) -> list[str]:
    skills = event.get("activated_skills")
    if not isinstance(skills, list):
        return []
    return [s for s in skills if isinstance(s, str)]


def _parse_tasks(raw: Any) -> list[TaskItem] | None:
    if not isinstance(raw, list):
        return None
    try:
        return [TaskItem.from_dict(item) for item in raw]
    except ValueError:
        return None


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _handle_message(state: AppState, event: Mapping[str, Any]) -> None:
    from_user = _event_source(event) == "user"
    skills = _skills(event)

    if from_user and skills:
        state.active_skills = list(skills)
        last_user = next(
            (m for m in reversed(state.messages) if m.role is MessageRole.USER), None
        )
        if last_user is not None:
            last_user.activated_skills = list(skills)

    # User messages are already shown locally; only replay adds them.
    if from_user and not state.replaying:
        return

    text = _message_text(event)
    llm_message = event.get("llm_message")
    if text is None or not isinstance(llm_message, Mapping):
        return
    role = llm_message.get("role")
    if role == "user":
        message = DisplayMessage.user(text)
        if skills:
            message.activated_skills = list(skills)
    elif role == "assistant":
        message = DisplayMessage.assistant(text)
    else:
        message = DisplayMessage.system(text)
    state.add_message(message)


def _handle_action(state: AppState, event: Mapping[str, Any]) -> None:
    tool_name = event.get("tool_name")
    payload = _as_mapping(event.get("action"))

    if tool_name == "finish":
        message = payload.get("message")
        if isinstance(message, str):
            state.add_message(DisplayMessage.assistant(message))
        return

    if tool_name == "task_tracker":
        tasks = _parse_tasks(payload.get("task_list"))
        if tasks is not None:
            state.tasks = tasks
            state.tasks_visible = True

    state.add_message(DisplayMessage.action(event))

    if not state.replaying and needs_confirmation(state.confirmation_policy, event):
        request_confirmation(state, event)


def _handle_observation(state: AppState, event: Mapping[str, Any]) -> None:
    tool_call_id = event.get("tool_call_id")
    for message in state.messages:
        if message.role is MessageRole.ACTION and message.id is not None and message.id == tool_call_id:
            message.accepted = True
            break

    if event.get("tool_name") == "task_tracker":
        tasks = _parse_tasks(_as_mapping(event.get("observation")).get("task_list"))
        if tasks is not None:
            state.tasks = tasks


def _handle_state_update(state: AppState, event: Mapping[str, Any]) -> None:
    key = event.get("key")
    value = event.get("value")

    if key == "execution_status":
        if not isinstance(value, str):
            return
        try:
            status = ExecutionStatus(value)
        except ValueError:
            return
        was_running = state.execution_status is ExecutionStatus.RUNNING
        state.execution_status = status
        if was_running and status is ExecutionStatus.FINISHED:
            state.needs_stats_refresh = True
        if status is ExecutionStatus.ERROR:
            recent = list(state.messages)[-_RECENT_ERROR_WINDOW:]
            if not any(m.role is MessageRole.ERROR for m in recent):
                state.add_message(
                    DisplayMessage.error("Agent encountered an error. Check logs for details.")
                )
    elif key == "title":
        if isinstance(value, str):
            state.conversation_title = value
    elif key in ("metrics", "stats"):
        state.metrics.parse(value)
    elif key == "full_state":
        stats = _as_mapping(value).get("stats")
        if stats is not None:
            state.metrics.parse(stats)


def process_event(state: AppState, event: Mapping[str, Any]) -> None:
    """Apply one server event (a JSON object with a ``kind``) to ``state``."""
    if not isinstance(event, Mapping):
        return
    kind = event.get("kind")
    logger.debug("Processing event %s", kind)

    if kind == "MessageEvent":
        _handle_message(state, event)
    elif kind == "ActionEvent":
        _handle_action(state, event)
    elif kind == "ObservationEvent":
        _handle_observation(state, event)
    elif kind == "AgentErrorEvent":
        error = event.get("error", "")
        detail = event.get("detail")
        text = f"{error}\n{detail}" if detail is not None else str(error)
        state.add_message(DisplayMessage.error(text))
    elif kind == "ConversationStateUpdateEvent":
        _handle_state_update(state, event)
    elif kind == "PauseEvent":
        state.add_message(DisplayMessage.system("Conversation paused"))
        state.execution_status = ExecutionStatus.PAUSED
    elif kind == "UserRejectObservation":
        reason = event.get("rejection_reason", "")
        state.add_message(DisplayMessage.system(f"Action rejected: {reason}"))
    elif kind == "SystemPromptEvent":
        tools = event.get("tools")
        if isinstance(tools, list):
            state.add_message(DisplayMessage.system(f"Loaded {len(tools)} tools"))
    elif kind == "Condensation":
        summary = event.get("summary")
        if summary is not None:
            state.add_message(DisplayMessage.system(f"History condensed: {summary}"))


def needs_confirmation(policy: ConfirmationPolicy, action: Mapping[str, Any]) -> bool:
    """Whether ``action`` must be confirmed by the user under ``policy``."""
    if policy is ConfirmationPolicy.NEVER_CONFIRM:
        return False
    if policy is ConfirmationPolicy.ALWAYS_CONFIRM:
        return True
    return effective_risk(action) in (SecurityRisk.MEDIUM, SecurityRisk.HIGH)


def request_confirmation(state: AppState, action: Mapping[str, Any]) -> None:
    """Queue ``action`` for confirmation and switch to confirmation mode."""
    tool_name = action.get("tool_name", "")
    risk = effective_risk(action)
    logger.info("Action requires confirmation: %s (risk: %s)", tool_name, risk)

    tool_call = _as_mapping(action.get("tool_call"))
    summary = action.get("summary")
    state.pending_actions.append(
        PendingAction(
            tool_call_id=action.get("tool_call_id", ""),
            tool_name=tool_name,
            args=format_tool_args(tool_call.get("arguments")),
            summary=summary if summary is not None else tool_name,
            security_risk=risk,
        )
    )
    state.input_mode = InputMode.CONFIRMATION
    state.execution_status = ExecutionStatus.WAITING_FOR_CONFIRMATION