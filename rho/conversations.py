"""Stored conversations in the shared conversations directory."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rho.events import KNOWN_EVENT_KINDS

_UNTITLED = "(untitled)"
_FIRST_MESSAGE_SCAN_LIMIT = 10


@dataclass
class ConversationEntry:
    """A conversation found on disk."""

    id: str
    title: str
    first_message: str
    created_at: str
    updated_at: str


def data_dir() -> Path:
    """The client's data directory, ``~/.rho``."""
    return Path.home() / ".rho"


def conversations_dir() -> Path:
    """Directory holding one sub-directory per conversation."""
    return data_dir() / "conversations"


def _base(base_dir: str | Path | None) -> Path:
    return Path(base_dir) if base_dir is not None else conversations_dir()


def scan_conversations(base_dir: str | Path | None = None) -> list[ConversationEntry]:
    """List stored conversations, newest first.

    Only directories with an ``events/`` sub-directory count. Metadata comes
    from ``meta.json`` when it can be read, otherwise from the file system.
    """
    base = _base(base_dir)
    if not base.is_dir():
        return []
    try:
        children = list(base.iterdir())
    except OSError:
        return []
    entries = [
        _read_entry(conv_dir)
        for conv_dir in children
        if conv_dir.is_dir() and (conv_dir / "events").is_dir()
    ]
    entries.sort(key=lambda entry: entry.updated_at, reverse=True)
    return entries


def _read_entry(conv_dir: Path) -> ConversationEntry:
    meta_path = conv_dir / "meta.json"
    if meta_path.exists():
        entry = _read_meta(meta_path, conv_dir.name)
        if entry is not None:
            return entry

    try:
        mtime = datetime.fromtimestamp(conv_dir.stat().st_mtime, tz=timezone.utc).isoformat()
    except OSError:
        mtime = ""
    return ConversationEntry(
        id=conv_dir.name,
        title=_UNTITLED,
        first_message=_first_user_message(conv_dir) or "",
        created_at=mtime,
        updated_at=mtime,
    )


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key!r} must be a string")
    return value


def _initial_text(initial: Any) -> str:
    if initial is None:
        return ""
    if not isinstance(initial, dict):
        raise ValueError("'initial_message' must be an object")
    content = initial.get("content")
    if content is None:
        return ""
    if not isinstance(content, list):
        raise ValueError("'content' must be a list")
    texts = []
    for block in content:
        if not isinstance(block, dict):
            raise ValueError("content blocks must be objects")
        text = _optional_str(block, "text")
        if text is not None:
            texts.append(text)
    return texts[0] if texts else ""


def _read_meta(path: Path, fallback_id: str) -> ConversationEntry | None:
    try:
        meta = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(meta, dict):
            return None
        conv_id = _optional_str(meta, "id")
        title = _optional_str(meta, "title")
        created_at = _optional_str(meta, "created_at")
        updated_at = _optional_str(meta, "updated_at")
        first_message = _initial_text(meta.get("initial_message"))
    except (OSError, ValueError):
        return None
    return ConversationEntry(
        id=conv_id if conv_id is not None else fallback_id,
        title=title if title is not None else _UNTITLED,
        first_message=first_message,
        created_at=created_at or "",
        updated_at=updated_at or "",
    )


def _json_files(directory: Path) -> list[Path]:
    return sorted(p for p in directory.iterdir() if p.suffix == ".json")


def _first_user_message(conv_dir: Path) -> str | None:
    """Text of the first user message among the first few event files."""
    try:
        files = _json_files(conv_dir / "events")
    except OSError:
        return None
    for file in files[:_FIRST_MESSAGE_SCAN_LIMIT]:
        try:
            event = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(event, dict) or event.get("kind") != "MessageEvent":
            continue
        if "source" in event:
            source = event["source"]
        else:
            base = event.get("base")
            source = base.get("source") if isinstance(base, dict) else None
        if source != "user":
            continue
        llm_message = event.get("llm_message")
        content = llm_message.get("content") if isinstance(llm_message, dict) else None
        if isinstance(content, list) and content and isinstance(content[0], dict):
            text = content[0].get("text")
            if isinstance(text, str):
                return text
    return None


def load_events(conversation_id: str, base_dir: str | Path | None = None) -> list[dict[str, Any]]:
    """Stored events of a conversation in file-name order, ready for replay.

    Unreadable files, invalid JSON and events of unknown kind are skipped.
    """
    events_dir = _base(base_dir) / conversation_id / "events"
    if not events_dir.is_dir():
        return []
    try:
        files = _json_files(events_dir)
    except OSError:
        return []
    events = []
    for file in files:
        try:
            event = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        if isinstance(event, dict) and event.get("kind") in KNOWN_EVENT_KINDS:
            events.append(event)
    return events


def update_title(
    conversation_id: str, new_title: str, base_dir: str | Path | None = None
) -> None:
    """Set the title in the conversation's ``meta.json``, creating it if needed.

    Raises OSError if the file cannot be read or written and ValueError if it
    does not hold a JSON object.
    """
    meta_path = _base(base_dir) / conversation_id / "meta.json"
    if meta_path.exists():
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            raise ValueError(f"{meta_path} does not hold a JSON object")
    else:
        meta = {"id": conversation_id}
    meta["title"] = new_title
    meta_path.write_text(json.dumps(meta, indent=2, ensure_ascii=False), encoding="utf-8")


def delete_conversation(conversation_id: str, base_dir: str | Path | None = None) -> None:
    """Remove a conversation directory; raise FileNotFoundError if there is none."""
    conv_dir = _base(base_dir) / conversation_id
    if not conv_dir.is_dir():
        raise FileNotFoundError("Conversation not found")
    shutil.rmtree(conv_dir)