import logging
import os
import signal
import socket
import subprocess
import sys
import time

import httpx
import psutil
import pytest

import webdriver_client.process as process_module
from conftest import SRC_ROOT, posix_only
from webdriver_client.errors import ProcessError
from webdriver_client.models import Browser
from webdriver_client.process import (
    allocate_port,
    posix_monitor_command,
    start_driver,
    start_monitor,
    windows_monitor_command,
)
from webdriver_client.transport import HttpTransport

FAKE_SERVER = """
import http.server
import sys

port = int(sys.argv[sys.argv.index("--port") + 1])


class Handler(http.server.BaseHTTPRequestHandler):
    def do_GET(self):
        body = b'{"value": {"ready": true, "message": ""}}'
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


print("fake driver listening on", port, flush=True)
http.server.HTTPServer(("127.0.0.1", port), Handler).serve_forever()
"""

CLIENT = """
import sys
import time

from webdriver_client.models import Browser
from webdriver_client.process import start_driver

handle = start_driver(sys.argv[1], Browser.FIREFOX, ready_attempts=100, ready_interval=0.1)
print(handle.pid, flush=True)
time.sleep(60)
"""


@pytest.fixture
def server_driver(tmp_path, fake_driver):
    server = tmp_path / "fake_server.py"
    server.write_text(FAKE_SERVER)
    return fake_driver(f'exec "{sys.executable}" "{server}" "$@"')


def _gone(pid: int) -> bool:
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


def _wait_gone(pid: int, timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if _gone(pid):
            return True
        time.sleep(0.1)
    return _gone(pid)


def test_allocate_port_is_bindable() -> None:
    port = allocate_port()
    assert 0 < port < 65536

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", port))


def test_monitor_commands() -> None:
    posix = posix_monitor_command(100, 200, 1)
    assert posix[:2] == ["/bin/sh", "-c"]
    assert "kill -0 100" in posix[2]
    assert "kill -9 200" in posix[2]

    windows = windows_monitor_command(100, 200, 1)
    assert windows[0] == "powershell"
    assert "Get-Process -Id 100" in windows[-1]
    assert "Stop-Process -Id 200 -Force" in windows[-1]


def test_missing_binary_raises_process_error(tmp_path) -> None:
    with pytest.raises(ProcessError) as exc_info:
        start_driver(tmp_path / "geckodriver", Browser.FIREFOX)

    assert exc_info.value.exit_code is None


@posix_only
def test_startup_failure_reports_exit_code_and_stderr(fake_driver) -> None:
    path = fake_driver('echo "Address already in use" >&2\nexit 3')

    with pytest.raises(ProcessError) as exc_info:
        start_driver(path, Browser.CHROME, ready_attempts=50, ready_interval=0.05)

    assert exc_info.value.exit_code == 3
    assert "Address already in use" in exc_info.value.stderr


@posix_only
def test_chatty_stderr_keeps_tail(fake_driver) -> None:
    path = fake_driver(
        'i=0\nwhile [ $i -lt 2000 ]; do echo "line $i" >&2; i=$((i+1)); done\nexit 1'
    )

    with pytest.raises(ProcessError) as exc_info:
        start_driver(path, Browser.FIREFOX, ready_attempts=50, ready_interval=0.05)

    stderr = exc_info.value.stderr
    assert "line 1999" in stderr
    assert "line 0\n" not in stderr


@posix_only
def test_start_and_terminate(server_driver) -> None:
    handle = start_driver(server_driver, Browser.FIREFOX, ready_attempts=100, ready_interval=0.1)
    try:
        assert handle.is_running()
        assert handle.url == f"http://127.0.0.1:{handle.port}"
        assert httpx.get(f"{handle.url}/status", trust_env=False).json()["value"]["ready"] is True
        assert handle.monitor.poll() is None
    finally:
        handle.terminate()

    assert handle.terminated
    assert not handle.is_running()
    assert handle.monitor.poll() is not None

    handle.terminate()


@posix_only
def test_readiness_budget_exhausted_continues(fake_driver, caplog) -> None:
    path = fake_driver("exec sleep 30")

    with caplog.at_level(logging.WARNING, logger="webdriver_client.process"):
        handle = start_driver(path, Browser.FIREFOX, ready_attempts=2, ready_interval=0.05)
    try:
        assert handle.is_running()
        assert "did not answer" in caplog.text
    finally:
        handle.terminate()

    assert not handle.is_running()


@posix_only
def test_monitor_kills_driver_when_parent_dies() -> None:
    parent = subprocess.Popen(["sleep", "30"])
    driver = subprocess.Popen(["sleep", "30"])
    monitor = start_monitor(driver.pid, parent_pid=parent.pid, interval=1)
    try:
        parent.kill()
        parent.wait()

        assert driver.wait(timeout=10) == -signal.SIGKILL
        assert monitor.wait(timeout=10) is not None
    finally:
        for process in (parent, driver, monitor):
            if process.poll() is None:
                process.kill()
                process.wait()


@posix_only
def test_driver_dies_with_killed_client(tmp_path, server_driver) -> None:
    client_script = tmp_path / "client.py"
    client_script.write_text(CLIENT)
    env = {**os.environ, "PYTHONPATH": str(SRC_ROOT)}
    client = subprocess.Popen(
        [sys.executable, str(client_script), str(server_driver)],
        stdout=subprocess.PIPE,
        env=env,
    )
    driver_pid = None
    try:
        line = client.stdout.readline()
        assert line, "client did not start the driver"
        driver_pid = int(line)
        assert not _gone(driver_pid)

        client.send_signal(signal.SIGKILL)
        client.wait()

        assert _wait_gone(driver_pid, timeout=10)
    finally:
        if client.poll() is None:
            client.kill()
            client.wait()
        client.stdout.close()
        if driver_pid is not None and not _gone(driver_pid):
            psutil.Process(driver_pid).kill()


@posix_only
def test_local_driver_bypasses_proxy_settings(server_driver, monkeypatch, caplog) -> None:
    for name in ("HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.setenv(name, "http://127.0.0.1:9")
    for name in ("NO_PROXY", "no_proxy"):
        monkeypatch.delenv(name, raising=False)

    with caplog.at_level(logging.WARNING, logger="webdriver_client.process"):
        handle = start_driver(server_driver, Browser.FIREFOX, ready_attempts=100, ready_interval=0.1)
    try:
        assert "did not answer" not in caplog.text
        with HttpTransport(handle.url, trust_env=False) as transport:
            assert transport.request("GET", "/status") == {"ready": True, "message": ""}
    finally:
        handle.terminate()


@posix_only
def test_monitor_spawn_failure_releases_driver(fake_driver, monkeypatch) -> None:
    spawned: list[subprocess.Popen] = []

    class RecordingPopen(subprocess.Popen):
        def __init__(self, *args, **kwargs) -> None:
            super().__init__(*args, **kwargs)
            spawned.append(self)

    def failing_monitor(driver_pid, *args, **kwargs):
        raise OSError("no shell")

    monkeypatch.setattr(process_module.subprocess, "Popen", RecordingPopen)
    monkeypatch.setattr(process_module, "start_monitor", failing_monitor)
    path = fake_driver("exec sleep 30")

    with pytest.raises(ProcessError, match="monitor"):
        start_driver(path, Browser.FIREFOX)

    driver = spawned[0]
    assert driver.poll() is not None
    assert driver.stdout.closed
    assert driver.stderr.closed
