"""Application state for the terminal client: input, scrolling, timer, spinner and modals."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from rho.llm import LlmState
from rho.metrics import MetricsState
from rho.types import (
    ConfirmationPolicy,
    DisplayMessage,
    ExecutionStatus,
    InputMode,
    MessageRole,
    Notification,
    PendingAction,
    TaskItem,
)

# Maximum number of messages kept in the display history.
MAX_DISPLAY_MESSAGES = 1000

_COUNTER_MODULUS = 2**64
_COUNTER_MAX = _COUNTER_MODULUS - 1

_FALLBACK_SPINNER_FRAME = "⠋"
_FALLBACK_FUN_FACT = "Thinking..."
_DEFAULT_CONTEXT_WINDOW = 200000


@dataclass
class SettingsState:
    """Settings modal state."""

    show: bool = False
    tab: int = 0  # 0 = Basic, 1 = Advanced
    field: int = 0  # 0 = Provider, 1 = Model, 2 = API Key, 3 = Base URL
    editing: bool = False
    edit_buffer: str = ""
    dropdown: bool = False
    dropdown_selected: int = 0


@dataclass
class SkillsModalState:
    """Skills modal: tabbed list with an inline detail view."""

    show: bool = False
    tab: int = 0
    selected: int = 0
    detail_open: bool = False
    skills: list[Any] = field(default_factory=list)
    loading: bool = False
    error: str | None = None


@dataclass
class ResumeModalState:
    """Resume-conversation modal."""

    show: bool = False
    conversations: list[Any] = field(default_factory=list)
    selected: int = 0
    confirm_delete: bool = False


@dataclass
class ThemeModalState:
    """Theme picker modal."""

    show: bool = False
    selected: int = 0
    # Theme name when the picker opened, restored on cancel.
    before_preview: str | None = None


@dataclass
class FileMenuState:
    """File path completion menu, opened by typing ``@``."""

    show: bool = False
    selected: int = 0


@dataclass
class CommandMenuState:
    """Slash command menu, opened by typing ``/``."""

    show: bool = False
    selected: int = 0


def _default_metrics() -> MetricsState:
    return MetricsState(context_window=_DEFAULT_CONTEXT_WINDOW)


@dataclass
class AppState:
    """Whole state of the terminal client."""

    # Connection
    connected: bool = False
    conversation_id: Any = None
    execution_status: ExecutionStatus = ExecutionStatus.IDLE

    # Input and view
    input_mode: InputMode = InputMode.NORMAL
    input_buffer: str = ""
    cursor_position: int = 0
    scroll_offset: int = 0

    # Conversation
    messages: deque[DisplayMessage] = field(default_factory=deque)
    conversation_title: str | None = None
    confirmation_policy: ConfirmationPolicy = ConfirmationPolicy.ALWAYS_CONFIRM
    pending_actions: list[PendingAction] = field(default_factory=list)
    message_queue: deque[str] = field(default_factory=deque)
    notifications: list[Notification] = field(default_factory=list)

    # Sub-states
    metrics: MetricsState = field(default_factory=_default_metrics)
    llm: LlmState = field(default_factory=LlmState)
    settings: SettingsState = field(default_factory=SettingsState)

    replaying: bool = False
    should_exit: bool = False
    exit_confirmation_pending: bool = False
    # 0 = stay, 1 = exit
    exit_confirmation_selected: int = 0

    # Modals
    show_token_modal: bool = False
    token_modal_tab: int = 0
    show_tools_modal: bool = False
    tools_list: list[str] = field(default_factory=list)

    # Task tracker and skills
    tasks: list[TaskItem] = field(default_factory=list)
    tasks_visible: bool = True
    active_skills: list[str] = field(default_factory=list)
    btw_sender: Any = None
    skills_modal: SkillsModalState = field(default_factory=SkillsModalState)
    show_help_modal: bool = False
    help_modal_tab: int = 0
    show_policy_modal: bool = False

    command_menu: CommandMenuState = field(default_factory=CommandMenuState)
    file_menu: FileMenuState = field(default_factory=FileMenuState)

    confirmation_selected: int = 0

    # Animation
    spinner_tick: int = 0
    spinner_style: str = ""
    spinner_frames: list[str] = field(default_factory=list)
    spinners: dict[str, list[str]] = field(default_factory=dict)
    spinner_names: list[str] = field(default_factory=list)
    fun_fact_index: int = 0
    fun_facts: list[str] = field(default_factory=list)

    # Configuration
    keybindings: Any = None
    scroll_lines: int = 3
    scroll_lines_large: int = 10
    selector_indicator: str = ">"

    workspace_path: str = "."

    needs_stats_refresh: bool = False

    server_starting: bool = False
    server_starting_tick: int = 0

    policy_selected: int = 0

    resume_modal: ResumeModalState = field(default_factory=ResumeModalState)

    # Theme
    theme: Any = None
    theme_name: str = "rho"
    available_themes: list[str] = field(default_factory=list)
    themes: dict[str, Any] = field(default_factory=dict)
    theme_modal: ThemeModalState = field(default_factory=ThemeModalState)

    # ── Messages ────────────────────────────────────────────────────────

    def add_message(self, message: DisplayMessage) -> None:
        """Append a message, drop the oldest past the limit, and scroll to the bottom."""
        self.messages.append(message)
        while len(self.messages) > MAX_DISPLAY_MESSAGES:
            self.messages.popleft()
        self.scroll_to_bottom()

    # ── Input ───────────────────────────────────────────────────────────

    def handle_char(self, c: str) -> None:
        pos = self.cursor_position
        self.input_buffer = self.input_buffer[:pos] + c + self.input_buffer[pos:]
        self.cursor_position += 1

    def handle_backspace(self) -> None:
        if self.cursor_position > 0:
            self.cursor_position -= 1
            pos = self.cursor_position
            self.input_buffer = self.input_buffer[:pos] + self.input_buffer[pos + 1 :]

    def handle_delete(self) -> None:
        pos = self.cursor_position
        if pos < len(self.input_buffer):
            self.input_buffer = self.input_buffer[:pos] + self.input_buffer[pos + 1 :]

    def cursor_left(self) -> None:
        if self.cursor_position > 0:
            self.cursor_position -= 1

    def cursor_right(self) -> None:
        if self.cursor_position < len(self.input_buffer):
            self.cursor_position += 1

    def cursor_home(self) -> None:
        self.cursor_position = 0

    def cursor_end(self) -> None:
        self.cursor_position = len(self.input_buffer)

    def take_input(self) -> str:
        """Return the input text and clear the input line."""
        text, self.input_buffer = self.input_buffer, ""
        self.cursor_position = 0
        return text

    # ── Scrolling ───────────────────────────────────────────────────────

    def scroll_up(self, amount: int) -> None:
        self.scroll_offset = min(self.scroll_offset + amount, _COUNTER_MAX)

    def scroll_down(self, amount: int) -> None:
        self.scroll_offset = max(self.scroll_offset - amount, 0)

    def scroll_to_bottom(self) -> None:
        self.scroll_offset = 0

    # ── Actions ─────────────────────────────────────────────────────────

    def toggle_all_actions(self) -> None:
        """Expand every action if any is collapsed, otherwise collapse them all."""
        actions = [m for m in self.messages if m.role is MessageRole.ACTION]
        collapse = not any(m.collapsed for m in actions)
        for message in actions:
            message.collapsed = collapse

    def clear_pending_actions(self) -> None:
        """Mark pending actions as accepted, drop them and leave confirmation mode."""
        for pending in self.pending_actions:
            match = next(
                (
                    m
                    for m in self.messages
                    if m.role is MessageRole.ACTION and m.id == pending.tool_call_id
                ),
                None,
            )
            if match is not None:
                match.accepted = True
        self.pending_actions.clear()
        if self.input_mode is InputMode.CONFIRMATION:
            self.input_mode = InputMode.NORMAL

    # ── Notifications ───────────────────────────────────────────────────

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def cleanup_notifications(self, max_age: float | timedelta) -> None:
        """Drop notifications older than ``max_age``."""
        self.notifications = [n for n in self.notifications if not n.is_expired(max_age)]

    # ── Timer ───────────────────────────────────────────────────────────

    def update_elapsed(self) -> None:
        start = self.metrics.start_time
        if start is not None and self.execution_status is ExecutionStatus.RUNNING:
            elapsed = max(0, int(time.monotonic() - start))
            self.metrics.elapsed_seconds = self.metrics.elapsed_base + elapsed

    def start_timer(self) -> None:
        self.metrics.elapsed_base = self.metrics.elapsed_seconds
        self.metrics.start_time = time.monotonic()

    def is_running(self) -> bool:
        return self.execution_status is ExecutionStatus.RUNNING

    # ── Spinner and fun facts ───────────────────────────────────────────

    def tick_spinner(self) -> None:
        self.spinner_tick = (self.spinner_tick + 1) % _COUNTER_MODULUS

    def next_fun_fact(self) -> None:
        if self.fun_facts:
            self.fun_fact_index = (self.fun_fact_index + 1) % len(self.fun_facts)

    def randomize_spinner(self) -> None:
        """Switch to the next spinner style and restart its animation."""
        if len(self.spinner_names) > 1:
            try:
                current = self.spinner_names.index(self.spinner_style)
            except ValueError:
                current = 0
            self.spinner_style = self.spinner_names[(current + 1) % len(self.spinner_names)]
            self.spinner_frames = list(self.spinners.get(self.spinner_style, []))
        self.spinner_tick = 0

    def spinner_frame(self) -> str:
        if not self.spinner_frames:
            return _FALLBACK_SPINNER_FRAME
        return self.spinner_frames[self.spinner_tick % len(self.spinner_frames)]

    def current_fun_fact(self) -> str:
        if not self.fun_facts:
            return _FALLBACK_FUN_FACT
        return self.fun_facts[self.fun_fact_index % len(self.fun_facts)]

    # ── Misc ────────────────────────────────────────────────────────────

    def set_workspace(self, path: str) -> None:
        self.workspace_path = path

    def parse_metrics(self, value: Any) -> None:
        self.metrics.parse(value)

    def reset_conversation(self) -> None:
        """Clear the current conversation, ready for a new or resumed one."""
        self.conversation_id = None
        self.conversation_title = None
        self.messages.clear()
        self.pending_actions.clear()
        self.execution_status = ExecutionStatus.IDLE
        self.input_mode = InputMode.NORMAL
        self.metrics.elapsed_seconds = 0
        self.metrics.elapsed_base = 0
        self.metrics.start_time = None
        self.active_skills.clear()