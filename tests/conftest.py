"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


class ServerProcessInfo(TypedDict):
    """Metadata describing a running listener fixture instance."""

    base_url: str
    host: str
    port: int
    serve_dir: Path | None
    process: subprocess.Popen[str]
    log_file: Path


def _launch_server(
    port: int,
    log_file: Path,
    serve_dir: Path | None = None,
    extra_args: list[str] | None = None,
) -> Generator[ServerProcessInfo, None, None]:
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--port",
        str(port),
        "--log-destination",
        str(log_file),
    ]
    if serve_dir is not None:
        args.extend(["--serve-dir", str(serve_dir)])
    if extra_args:
        args.extend(extra_args)

    host = "127.0.0.1"
    with subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    ) as process:
        try:
            wait_for_port(host, port)
        except Exception:
            # If startup failed, print stdout/stderr to help debug
            process.terminate()
            stdout, stderr = process.communicate(timeout=5)
            print(f"\nServer stdout:\n{stdout}")
            print(f"\nServer stderr:\n{stderr}")
            raise

        yield {
            "base_url": f"http://{host}:{port}",
            "host": host,
            "port": port,
            "serve_dir": serve_dir,
            "process": process,
            "log_file": log_file,
        }

        process.terminate()
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            process.kill()


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""

    return PROJECT_ROOT


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the listener without a serve directory (OK mode)."""

    port = reserve_port()
    log_dir = tmp_path_factory.mktemp("listener-logs")
    yield from _launch_server(port, log_dir / "server.log")


@pytest.fixture(name="file_server_process")
def _file_server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the listener serving a temporary directory with sample files."""

    port = reserve_port()
    log_dir = tmp_path_factory.mktemp("listener-logs")
    serve_dir = tmp_path_factory.mktemp("serve-root")
    (serve_dir / "index.html").write_bytes(b"<h1>index</h1>\n")
    (serve_dir / "foo.txt").write_bytes(b"foo contents")
    (serve_dir / "nested").mkdir()
    (serve_dir / "nested" / "data.bin").write_bytes(bytes(range(256)))
    yield from _launch_server(port, log_dir / "server.log", serve_dir)


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the OK-mode listener base URL to integration tests."""

    return server_process["base_url"]


@pytest.fixture()
def file_base_url(file_server_process: ServerProcessInfo) -> str:
    """Expose the file-serving listener base URL to integration tests."""

    return file_server_process["base_url"]
