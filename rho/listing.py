"""Text shown on the terminal for conversation listings and on exit."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable

from rho.conversations import ConversationEntry

MAX_LISTED_CONVERSATIONS = 15
PREVIEW_WIDTH = 72
_PREVIEW_KEEP = PREVIEW_WIDTH - 3

_RULE = "─" * 80

_BOLD = "\x1b[1m"
_BOLD_YELLOW = "\x1b[1;33m"
_BOLD_BLUE = "\x1b[1;34m"
_DIM = "\x1b[2m"
_RESET = "\x1b[0m"

_TIMESTAMP = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?P<sep>[Tt ])"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})?"
)


def _parse_timestamp(iso: str) -> datetime | None:
    """Parse an RFC 3339 timestamp, or a naive ISO one taken as UTC."""
    match = _TIMESTAMP.fullmatch(iso)
    if match is None:
        return None
    offset = match["offset"]
    if offset is None and match["sep"] != "T":
        return None
    frac = (match["frac"] or "")[:6].ljust(6, "0")
    try:
        naive = datetime.strptime(
            f"{match['date']}T{match['time']}.{frac}", "%Y-%m-%dT%H:%M:%S.%f"
        )
    except ValueError:
        return None
    if offset is None or offset in ("Z", "z"):
        return naive.replace(tzinfo=timezone.utc)
    sign = 1 if offset[0] == "+" else -1
    hours, minutes = int(offset[1:3]), int(offset[4:6])
    if hours > 23 or minutes > 59:
        return None
    tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    return naive.replace(tzinfo=tz)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def format_relative_time(iso: str, now: datetime | None = None) -> str:
    """Describe how long ago ``iso`` was, relative to ``now`` (default: the current time).

    Under an hour gives ``"Xm ago"``, under a day ``"Xh ago"``, then
    ``"yesterday"``, ``"X days ago"`` up to a week, and the local date beyond.
    An empty string gives ``"unknown"``; text that is not a timestamp is
    returned as it is.
    """
    if not iso:
        return "unknown"
    when = _parse_timestamp(iso)
    if when is None:
        return iso

    current = _aware(now) if now is not None else datetime.now(timezone.utc)
    delta = current - when
    seconds = delta.total_seconds()
    if seconds < 0:
        return "just now"
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"

    local_when = when.astimezone().date()
    local_today = current.astimezone().date()
    diff_days = (local_today - local_when).days
    if diff_days == 1:
        return "yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    return local_when.strftime("%Y-%m-%d")


def _preview(first_message: str) -> str:
    if not first_message.strip():
        return "(No user message)"
    line = first_message.split("\n", 1)[0]
    if line.endswith("\r"):
        line = line[:-1]
    if len(line) > PREVIEW_WIDTH:
        return line[:_PREVIEW_KEEP] + "..."
    return line


def format_recent_conversations(
    entries: Iterable[ConversationEntry], now: datetime | None = None
) -> str:
    """Render the list of recent conversations shown by ``--resume`` without an id."""
    entries = list(entries)
    if not entries:
        lines = [
            f"{_BOLD_YELLOW}No conversations found.{_RESET}",
            f"Start a new one with: {_BOLD}rho{_RESET}",
            "",
        ]
        return "\n".join(lines) + "\n"

    shown = entries[:MAX_LISTED_CONVERSATIONS]
    lines = [f"{_BOLD_YELLOW}Recent Conversations:{_RESET}", f"{_DIM}{_RULE}{_RESET}"]
    for number, conv in enumerate(shown, start=1):
        age = format_relative_time(conv.updated_at, now)
        lines.append(f"{number:>3}. {_BOLD_BLUE}{conv.id}{_RESET} {_DIM}({age}){_RESET}")
        lines.append(f"     {_DIM}{_preview(conv.first_message)}{_RESET}")
        if number < len(shown):
            lines.append("")

    lines.append(f"{_DIM}{_RULE}{_RESET}")
    lines.append(
        f"To resume a conversation, use: {_BOLD}rho --resume <conversation-id>{_RESET}"
    )
    if len(entries) > 1:
        lines.append(f"Or resume the most recent with:  {_BOLD}rho --resume --last{_RESET}")
    lines.append("")
    return "\n".join(lines) + "\n"


def format_goodbye(conversation_id: uuid.UUID | str | None = None) -> str:
    """Render the exit message, with resume instructions when a conversation exists.

    A string id must be a valid UUID; otherwise ValueError is raised.
    """
    lines = [f"{_BOLD_YELLOW}Goodbye! 👋{_RESET}"]
    if conversation_id is not None:
        conv = (
            conversation_id
            if isinstance(conversation_id, uuid.UUID)
            else uuid.UUID(str(conversation_id))
        )
        lines.append(f"Conversation ID: {_BOLD_BLUE}{conv.hex}{_RESET}")
        lines.append(
            f"{_DIM}Hint: run rho --resume {conv} to resume this conversation.{_RESET}"
        )
    lines.append("")
    return "\n".join(lines) + "\n"