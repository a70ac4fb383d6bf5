import signal
import stat
import time
from pathlib import Path

import pytest

from rho.server import (
    SERVER_BINARY_NAME,
    SERVER_DIR_NAME,
    ensure_data_dir,
    find_agent_server_binary,
    start_agent_server,
    stop_agent_server,
    version_is_compatible,
)


def _script(path: Path, body: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.mark.parametrize(
    "version, minimum, expected",
    [
        ("1.2.3", "1.2.0", True),
        ("1.2.0", "1.2.0", True),
        ("1.2", "1.2.0", True),
        ("1.2.x", "1.2.0", True),
        ("2.0.0", "1.9.9", True),
        ("1.1.9", "1.2.0", False),
        ("1.2.0", "1.2.1", False),
        ("abc", "1.0", False),
        ("1", "1.0", False),
        ("1.2.3", "garbage", False),
        ("", "1.0", False),
    ],
)
def test_version_is_compatible(version, minimum, expected):
    assert version_is_compatible(version, minimum) is expected


def test_version_is_reflexive():
    for v in ("0.1", "3.4.5", "10.0.2"):
        assert version_is_compatible(v, v)


def test_ensure_data_dir_creates_and_is_idempotent(tmp_path):
    target = tmp_path / "a" / "b"
    assert ensure_data_dir(target) == target
    assert target.is_dir()
    assert ensure_data_dir(target) == target


def test_find_binary_prefers_exe_dir(tmp_path):
    exe_dir = tmp_path / "bin"
    dev = tmp_path / "dev"
    beside = _script(exe_dir / SERVER_DIR_NAME / SERVER_BINARY_NAME, "exit 0\n")
    _script(dev / "dist" / SERVER_DIR_NAME / SERVER_BINARY_NAME, "exit 0\n")
    assert find_agent_server_binary(exe_dir, dev) == beside


def test_find_binary_falls_back_to_dist(tmp_path):
    dev = tmp_path / "dev"
    fallback = _script(dev / "dist" / SERVER_DIR_NAME / SERVER_BINARY_NAME, "exit 0\n")
    assert find_agent_server_binary(tmp_path / "empty", dev) == fallback


def test_find_binary_missing_returns_none(tmp_path):
    assert find_agent_server_binary(tmp_path / "x", tmp_path / "y") is None


def test_start_passes_args_env_and_cwd(tmp_path):
    binary = _script(
        tmp_path / "server.sh",
        'echo "$@" > out.txt\n'
        'echo "$OH_CONVERSATIONS_PATH" >> out.txt\n'
        'echo "$OH_BASH_EVENTS_DIR" >> out.txt\n'
        'echo "$OPENHANDS_SUPPRESS_BANNER" >> out.txt\n',
    )
    data = tmp_path / "data"
    data.mkdir()
    process = start_agent_server(binary, "127.0.0.1", 8123, data)
    assert process.wait(timeout=10) == 0
    lines = (data / "out.txt").read_text().splitlines()
    assert lines == ["--port 8123 --host 127.0.0.1", "conversations", "bash_events", "1"]
    assert (data / "conversations").is_dir()


def test_start_missing_binary_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        start_agent_server(tmp_path / "nope", "127.0.0.1", 8123, tmp_path)


def test_stop_terminates_running_server(tmp_path):
    binary = _script(tmp_path / "server.sh", "exec sleep 30\n")
    process = start_agent_server(binary, "127.0.0.1", 8123, tmp_path)
    time.sleep(0.2)
    assert process.poll() is None
    stop_agent_server(process, grace_seconds=5)
    assert process.returncode in (-signal.SIGTERM, -signal.SIGKILL)


def test_stop_already_exited_process(tmp_path):
    binary = _script(tmp_path / "server.sh", "exit 3\n")
    process = start_agent_server(binary, "127.0.0.1", 8123, tmp_path)
    process.wait(timeout=10)
    stop_agent_server(process, grace_seconds=0.1)
    assert process.returncode == 3