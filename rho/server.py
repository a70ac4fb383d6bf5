"""Finding, starting and stopping the local agent server process."""

from __future__ import annotations

import logging
import os
import re
import signal
import subprocess
import sys
from pathlib import Path

from rho.conversations import data_dir as default_data_dir

logger = logging.getLogger(__name__)

# Title in the ``GET /`` response that identifies an agent server.
EXPECTED_SERVER_TITLE = "OpenHands Agent Server"

SERVER_DIR_NAME = "openhands-agent-server"
SERVER_BINARY_NAME = "openhands-agent-server"

SERVER_ENV = {
    "OH_CONVERSATIONS_PATH": "conversations",
    "OH_BASH_EVENTS_DIR": "bash_events",
    "OPENHANDS_SUPPRESS_BANNER": "1",
}

_U32_MAX = 2**32 - 1
_NUMBER = re.compile(r"\+?[0-9]+")


def ensure_data_dir(path: str | Path | None = None) -> Path:
    """Create the data directory (``~/.rho`` by default) if needed and return it."""
    directory = Path(path) if path is not None else default_data_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def _parse_component(text: str) -> int | None:
    if not _NUMBER.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U32_MAX else None


def _parse_version(version: str) -> tuple[int, int, int] | None:
    parts = version.split(".")
    if len(parts) < 2:
        return None
    major = _parse_component(parts[0])
    minor = _parse_component(parts[1])
    if major is None or minor is None:
        return None
    patch = _parse_component(parts[2]) if len(parts) > 2 else None
    return major, minor, patch if patch is not None else 0


def version_is_compatible(version: str, min_version: str) -> bool:
    """Whether ``version`` is at least ``min_version``.

    Versions are ``major.minor[.patch]``; a missing or unreadable patch counts
    as 0. A version that cannot be read is never compatible.
    """
    parsed = _parse_version(version)
    minimum = _parse_version(min_version)
    if parsed is None or minimum is None:
        return False
    return parsed >= minimum


def find_agent_server_binary(
    exe_dir: str | Path | None = None, fallback_dir: str | Path | None = None
) -> Path | None:
    """Locate the agent server executable.

    Looks next to the client first (``<exe_dir>/openhands-agent-server/...``),
    then in the development location ``<fallback_dir>/dist/openhands-agent-server/...``.
    Returns None when neither exists.
    """
    if exe_dir is None:
        exe_dir = Path(sys.argv[0]).resolve().parent
    if fallback_dir is None:
        fallback_dir = Path.cwd()

    beside = Path(exe_dir) / SERVER_DIR_NAME / SERVER_BINARY_NAME
    if beside.exists():
        return beside
    development = Path(fallback_dir) / "dist" / SERVER_DIR_NAME / SERVER_BINARY_NAME
    if development.exists():
        return development
    logger.warning("Agent server binary not found at %s.", development)
    return None


def start_agent_server(
    binary: str | Path,
    host: str,
    port: int,
    data_dir: str | Path | None = None,
) -> subprocess.Popen:
    """Launch the agent server in its own process group, working in ``data_dir``.

    Output is discarded. Raises OSError if the process cannot be started.
    """
    directory = Path(data_dir) if data_dir is not None else default_data_dir()
    logger.info("Starting agent server on %s:%s", host, port)
    logger.info("Agent server data dir: %s", directory)
    try:
        (directory / "conversations").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Could not create conversations directory: %s", exc)

    env = {**os.environ, **SERVER_ENV}
    process = subprocess.Popen(
        [str(binary), "--port", str(port), "--host", host],
        cwd=directory,
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=os.name == "posix",
    )
    logger.info("Agent server started (pid=%d)", process.pid)
    return process


def _signal_group(process: subprocess.Popen, sig: int) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        if process.poll() is None:
            process.send_signal(sig)
    except PermissionError:
        if process.poll() is None:
            process.send_signal(sig)


def stop_agent_server(process: subprocess.Popen | None, grace_seconds: float = 2.0) -> None:
    """Stop the server and everything in its process group.

    Sends SIGTERM to the group, waits up to ``grace_seconds``, then SIGKILL
    so that leftover sub-processes go too, and reaps the process.
    """
    if process is None:
        return
    logger.info("Stopping agent server (pid=%d)", process.pid)

    if os.name != "posix":
        if process.poll() is None:
            process.kill()
        process.wait()
        return

    if process.poll() is None:
        _signal_group(process, signal.SIGTERM)
        try:
            process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            pass
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass
    if process.poll() is None:
        process.kill()
    process.wait()