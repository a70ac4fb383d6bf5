import time
import uuid

from rho.state import AppState
from rho.types import (
    DisplayMessage,
    ExecutionStatus,
    InputMode,
    MessageRole,
    Notification,
    PendingAction,
    SecurityRisk,
)


def new_state() -> AppState:
    return AppState()


def action_message(msg_id: str, collapsed: bool = True) -> DisplayMessage:
    msg = DisplayMessage.user("u")
    msg.role = MessageRole.ACTION
    msg.id = msg_id
    msg.collapsed = collapsed
    return msg


# ── Input handling ──────────────────────────────────────────────────


def test_handle_char_inserts_at_cursor():
    s = new_state()
    s.handle_char("a")
    s.handle_char("b")
    assert s.input_buffer == "ab"
    assert s.cursor_position == 2


def test_handle_char_inserts_in_middle():
    s = new_state()
    s.input_buffer = "ac"
    s.cursor_position = 1
    s.handle_char("b")
    assert s.input_buffer == "abc"
    assert s.cursor_position == 2


def test_handle_backspace_removes_before_cursor():
    s = new_state()
    s.input_buffer = "abc"
    s.cursor_position = 3
    s.handle_backspace()
    assert s.input_buffer == "ab"
    assert s.cursor_position == 2


def test_handle_backspace_at_start_does_nothing():
    s = new_state()
    s.input_buffer = "abc"
    s.cursor_position = 0
    s.handle_backspace()
    assert s.input_buffer == "abc"
    assert s.cursor_position == 0


def test_handle_delete_removes_at_cursor():
    s = new_state()
    s.input_buffer = "abc"
    s.cursor_position = 1
    s.handle_delete()
    assert s.input_buffer == "ac"
    assert s.cursor_position == 1


def test_handle_delete_at_end_does_nothing():
    s = new_state()
    s.input_buffer = "abc"
    s.cursor_position = 3
    s.handle_delete()
    assert s.input_buffer == "abc"


# ── Cursor movement ─────────────────────────────────────────────────


def test_cursor_left_decrements():
    s = new_state()
    s.input_buffer = "ab"
    s.cursor_position = 2
    s.cursor_left()
    assert s.cursor_position == 1


def test_cursor_left_at_zero_stays():
    s = new_state()
    s.cursor_left()
    assert s.cursor_position == 0


def test_cursor_right_increments():
    s = new_state()
    s.input_buffer = "ab"
    s.cursor_position = 0
    s.cursor_right()
    assert s.cursor_position == 1


def test_cursor_right_at_end_stays():
    s = new_state()
    s.input_buffer = "ab"
    s.cursor_position = 2
    s.cursor_right()
    assert s.cursor_position == 2


def test_cursor_home_goes_to_zero():
    s = new_state()
    s.cursor_position = 5
    s.cursor_home()
    assert s.cursor_position == 0


def test_cursor_end_goes_to_len():
    s = new_state()
    s.input_buffer = "hello"
    s.cursor_position = 0
    s.cursor_end()
    assert s.cursor_position == 5


# ── take_input ──────────────────────────────────────────────────────


def test_take_input_returns_and_clears():
    s = new_state()
    s.input_buffer = "hello"
    s.cursor_position = 5
    assert s.take_input() == "hello"
    assert s.input_buffer == ""
    assert s.cursor_position == 0


def test_take_input_empty():
    s = new_state()
    assert s.take_input() == ""


# ── Scrolling ───────────────────────────────────────────────────────


def test_scroll_up_adds():
    s = new_state()
    s.scroll_up(5)
    assert s.scroll_offset == 5
    s.scroll_up(3)
    assert s.scroll_offset == 8


def test_scroll_down_subtracts():
    s = new_state()
    s.scroll_offset = 10
    s.scroll_down(3)
    assert s.scroll_offset == 7


def test_scroll_down_saturates_at_zero():
    s = new_state()
    s.scroll_offset = 2
    s.scroll_down(100)
    assert s.scroll_offset == 0


def test_scroll_to_bottom_resets():
    s = new_state()
    s.scroll_offset = 42
    s.scroll_to_bottom()
    assert s.scroll_offset == 0


# ── toggle_all_actions ──────────────────────────────────────────────


def test_toggle_all_actions_expands_when_any_collapsed():
    s = new_state()
    s.messages.append(action_message("a", collapsed=True))
    s.messages.append(action_message("b", collapsed=False))
    s.toggle_all_actions()
    assert [m.collapsed for m in s.messages] == [False, False]


def test_toggle_all_actions_collapses_when_none_collapsed():
    s = new_state()
    s.messages.append(action_message("a", collapsed=False))
    s.toggle_all_actions()
    assert all(m.collapsed for m in s.messages)


def test_toggle_all_actions_leaves_other_roles_alone():
    s = new_state()
    s.messages.append(DisplayMessage.system("info"))
    s.messages.append(action_message("a", collapsed=False))
    s.toggle_all_actions()
    assert s.messages[0].collapsed is True
    assert s.messages[1].collapsed is True


# ── clear_pending_actions ───────────────────────────────────────────


def test_clear_pending_actions_accepts_matching_and_resets_mode():
    s = new_state()
    s.messages.append(action_message("tc-1"))
    s.messages.append(action_message("tc-2"))
    s.pending_actions.append(
        PendingAction("tc-2", "terminal", "command: ls", "list", SecurityRisk.LOW)
    )
    s.input_mode = InputMode.CONFIRMATION
    s.clear_pending_actions()
    assert [m.accepted for m in s.messages] == [False, True]
    assert s.pending_actions == []
    assert s.input_mode is InputMode.NORMAL


# ── Spinner ─────────────────────────────────────────────────────────


def test_spinner_frame_fallback_when_empty():
    s = new_state()
    s.spinner_frames.clear()
    assert s.spinner_frame() == "⠋"


def test_spinner_frame_cycles():
    s = new_state()
    s.spinner_frames = ["a", "b", "c"]
    s.spinner_tick = 0
    assert s.spinner_frame() == "a"
    s.spinner_tick = 1
    assert s.spinner_frame() == "b"
    s.spinner_tick = 3
    assert s.spinner_frame() == "a"


def test_tick_spinner_wraps():
    s = new_state()
    s.spinner_tick = 2**64 - 1
    s.tick_spinner()
    assert s.spinner_tick == 0


def test_randomize_spinner_moves_to_next_style():
    s = new_state()
    s.spinners = {"dots": ["."], "bars": ["|", "/"]}
    s.spinner_names = ["dots", "bars"]
    s.spinner_style = "dots"
    s.spinner_tick = 7
    s.randomize_spinner()
    assert s.spinner_style == "bars"
    assert s.spinner_frames == ["|", "/"]
    assert s.spinner_tick == 0
    s.randomize_spinner()
    assert s.spinner_style == "dots"


def test_randomize_spinner_single_style_only_resets_tick():
    s = new_state()
    s.spinner_names = ["dots"]
    s.spinner_style = "dots"
    s.spinner_frames = ["."]
    s.spinner_tick = 4
    s.randomize_spinner()
    assert s.spinner_style == "dots"
    assert s.spinner_tick == 0


# ── Fun facts ───────────────────────────────────────────────────────


def test_current_fun_fact_fallback_when_empty():
    s = new_state()
    s.fun_facts.clear()
    assert s.current_fun_fact() == "Thinking..."


def test_next_fun_fact_cycles():
    s = new_state()
    s.fun_facts = ["a", "b"]
    s.fun_fact_index = 0
    s.next_fun_fact()
    assert s.fun_fact_index == 1
    s.next_fun_fact()
    assert s.fun_fact_index == 0
    assert s.current_fun_fact() == "a"


def test_next_fun_fact_empty_keeps_index():
    s = new_state()
    s.fun_facts.clear()
    s.next_fun_fact()
    assert s.fun_fact_index == 0


# ── add_message ─────────────────────────────────────────────────────


def test_add_message_caps_at_limit():
    s = new_state()
    for i in range(1005):
        s.add_message(DisplayMessage.system(f"msg {i}"))
    assert len(s.messages) == 1000
    assert s.messages[0].content == "msg 5"
    assert s.messages[-1].content == "msg 1004"


def test_add_message_scrolls_to_bottom():
    s = new_state()
    s.scroll_offset = 9
    s.add_message(DisplayMessage.user("hi"))
    assert s.scroll_offset == 0


# ── Notifications ───────────────────────────────────────────────────


def test_notify_and_cleanup_notifications():
    s = new_state()
    old = Notification.info("old", "m")
    old.created_at = time.monotonic() - 100
    fresh = Notification.warning("fresh", "m")
    s.notify(old)
    s.notify(fresh)
    s.cleanup_notifications(5)
    assert [n.title for n in s.notifications] == ["fresh"]


# ── Timer ───────────────────────────────────────────────────────────


def test_update_elapsed_while_running():
    s = new_state()
    s.execution_status = ExecutionStatus.RUNNING
    s.metrics.elapsed_base = 5
    s.metrics.start_time = time.monotonic() - 10.5
    s.update_elapsed()
    assert s.metrics.elapsed_seconds == 15


def test_update_elapsed_ignored_when_idle():
    s = new_state()
    s.metrics.elapsed_seconds = 3
    s.metrics.start_time = time.monotonic() - 100
    s.update_elapsed()
    assert s.metrics.elapsed_seconds == 3


def test_start_timer_keeps_elapsed_as_base():
    s = new_state()
    s.metrics.elapsed_seconds = 42
    s.start_timer()
    assert s.metrics.elapsed_base == 42
    assert s.metrics.start_time <= time.monotonic()


def test_is_running():
    s = new_state()
    assert s.is_running() is False
    s.execution_status = ExecutionStatus.RUNNING
    assert s.is_running() is True


# ── Misc ────────────────────────────────────────────────────────────


def test_defaults():
    s = new_state()
    assert s.metrics.context_window == 200000
    assert s.llm.model == "claude-sonnet-4-5-20250929"
    assert s.workspace_path == "."
    assert s.tasks_visible is True
    assert s.theme_name == "rho"


def test_set_workspace():
    s = new_state()
    s.set_workspace("/tmp/project")
    assert s.workspace_path == "/tmp/project"


def test_parse_metrics_delegates():
    s = new_state()
    s.parse_metrics(
        {"accumulated_cost": 0.5, "accumulated_token_usage": {"prompt_tokens": 7}}
    )
    assert s.metrics.total_cost == 0.5
    assert s.metrics.total_tokens == 7


# ── reset_conversation ──────────────────────────────────────────────


def test_reset_conversation_clears_state():
    s = new_state()
    s.conversation_id = uuid.uuid4()
    s.conversation_title = "title"
    s.messages.append(DisplayMessage.user("hi"))
    s.active_skills = ["uv"]
    s.input_mode = InputMode.CONFIRMATION
    s.execution_status = ExecutionStatus.RUNNING
    s.metrics.elapsed_seconds = 12
    s.metrics.start_time = time.monotonic()

    s.reset_conversation()

    assert s.conversation_id is None
    assert s.conversation_title is None
    assert len(s.messages) == 0
    assert s.active_skills == []
    assert s.input_mode is InputMode.NORMAL
    assert s.execution_status is ExecutionStatus.IDLE
    assert s.metrics.elapsed_seconds == 0
    assert s.metrics.start_time is None