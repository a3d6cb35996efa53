"""Integration tests for startup and fatal exit behavior."""

from __future__ import annotations

import json
import socket
import subprocess
import sys
from typing import TYPE_CHECKING

import pytest

from tests.utils.http import wait_for_log_record

if TYPE_CHECKING:
    from tests.conftest import ServerProcessInfo

pytestmark = pytest.mark.integration


def test_startup_logs_test_mode(server_process: "ServerProcessInfo") -> None:
    """Without a serve directory the listener announces test/log mode."""

    record = wait_for_log_record(
        server_process["log_file"], "starting server in test/log mode"
    )
    assert record["port"] == server_process["port"]


def test_startup_logs_file_serve_mode(file_server_process: "ServerProcessInfo") -> None:
    """With a serve directory the listener announces file-serve mode."""

    record = wait_for_log_record(
        file_server_process["log_file"], "starting server in file-serve mode"
    )
    assert record["dir"] == str(file_server_process["serve_dir"])


def test_bind_failure_exits_non_zero(project_root) -> None:
    """A port that is already taken is a fatal, logged error."""

    with socket.create_server(("0.0.0.0", 0)) as occupied:
        port = occupied.getsockname()[1]
        result = subprocess.run(
            [sys.executable, str(project_root / "main.py"), "--port", str(port)],
            cwd=project_root,
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )

    assert result.returncode == 1
    records = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
    failure = next(r for r in records if r["message"] == "failed to bind listener")
    assert failure["level"] == "CRITICAL"
    assert failure["port"] == port


def test_invalid_format_is_rejected(project_root) -> None:
    """Only json is accepted for --format."""

    result = subprocess.run(
        [sys.executable, str(project_root / "main.py"), "--format", "text"],
        cwd=project_root,
        capture_output=True,
        text=True,
        timeout=10,
        check=False,
    )

    assert result.returncode == 2
    assert "--format" in result.stderr
