"""Local driver process supervision.

A driver binary (geckodriver, chromedriver, ...) is started on a free port
together with a small monitor process. The monitor polls whether this
program is still alive and force-kills the driver once it is not, so the
driver never outlives a client that crashed or was killed by a signal.
"""

import logging
import os
import socket
import subprocess
import threading
import time
import weakref
from collections import deque
from pathlib import Path
from typing import IO, Callable, Optional, Union

import httpx

from .browsers import get_profile
from .errors import ProcessError
from .models import Browser

logger = logging.getLogger(__name__)

MONITOR_POLL_INTERVAL = 1  # seconds
_READY_REQUEST_TIMEOUT = 1.0
_STDERR_WAIT = 0.5
_REAP_TIMEOUT = 5.0
_OUTPUT_TAIL = 50


def allocate_port() -> int:
    """Ask the OS for a free TCP port.

    The socket is closed before the driver binds the port, so another
    process may claim it in between.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# =============================================================================
# Monitor
# =============================================================================


def posix_monitor_command(parent_pid: int, driver_pid: int, interval: int) -> list[str]:
    script = (
        f"while kill -0 {parent_pid} 2>/dev/null; do sleep {interval}; done; "
        f"kill -9 {driver_pid} 2>/dev/null"
    )
    return ["/bin/sh", "-c", script]


def windows_monitor_command(parent_pid: int, driver_pid: int, interval: int) -> list[str]:
    script = (
        f"while (Get-Process -Id {parent_pid} -ErrorAction SilentlyContinue) "
        f"{{ Start-Sleep -Seconds {interval} }}; "
        f"Stop-Process -Id {driver_pid} -Force -ErrorAction SilentlyContinue"
    )
    return ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]


MonitorCommand = Callable[[int, int, int], list[str]]

MONITOR_COMMAND: MonitorCommand = (
    windows_monitor_command if os.name == "nt" else posix_monitor_command
)


def start_monitor(
    driver_pid: int,
    parent_pid: Optional[int] = None,
    interval: int = MONITOR_POLL_INTERVAL,
    command: Optional[MonitorCommand] = None,
) -> subprocess.Popen:
    """Spawn the watchdog that kills ``driver_pid`` once ``parent_pid`` is gone."""
    build = command or MONITOR_COMMAND
    argv = build(parent_pid or os.getpid(), driver_pid, interval)

    # Keep the monitor out of our process group so a terminal Ctrl-C
    # does not take it down together with us.
    if os.name == "nt":
        detach = {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    else:
        detach = {"start_new_session": True}

    monitor = subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        **detach,
    )
    logger.debug("Monitor pid %s watching driver pid %s", monitor.pid, driver_pid)
    return monitor


# =============================================================================
# Process handle
# =============================================================================


class _OutputPump(threading.Thread):
    """Drain one pipe of the driver into the log, keeping the last lines."""

    def __init__(self, stream: IO[bytes], name: str):
        super().__init__(name=name, daemon=True)
        self._stream = stream
        self.lines: deque[str] = deque(maxlen=_OUTPUT_TAIL)

    def run(self) -> None:
        with self._stream:
            for raw in iter(self._stream.readline, b""):
                line = raw.decode(errors="replace").rstrip()
                self.lines.append(line)
                logger.debug("[%s] %s", self.name, line)

    def text(self) -> str:
        return "\n".join(self.lines)


def _kill_and_reap(process: subprocess.Popen) -> None:
    try:
        if process.poll() is None:
            process.kill()
        process.wait(timeout=_REAP_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Could not reap pid %s: %s", process.pid, e)


def _teardown(monitor: Optional[subprocess.Popen], process: subprocess.Popen) -> None:
    # Monitor first, so it cannot kill the driver out from under us
    if monitor is not None:
        _kill_and_reap(monitor)
    _kill_and_reap(process)
    logger.debug("Driver pid %s terminated", process.pid)


class DriverProcessHandle:
    """Owns a running driver process, its monitor, and the port it serves on.

    Both processes are killed and reaped by ``terminate()``, or when the
    handle is garbage-collected, or at interpreter exit, whichever comes
    first. Termination happens exactly once.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        monitor: Optional[subprocess.Popen],
        port: int,
    ):
        self.process = process
        self.monitor = monitor
        self.port = port
        self._stdout = _OutputPump(process.stdout, f"driver-{process.pid}-stdout")
        self._stderr = _OutputPump(process.stderr, f"driver-{process.pid}-stderr")
        self._stdout.start()
        self._stderr.start()
        self._finalizer = weakref.finalize(self, _teardown, monitor, process)

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    @property
    def terminated(self) -> bool:
        return not self._finalizer.alive

    def is_running(self) -> bool:
        return self.process.poll() is None

    def stderr_output(self, wait: float = _STDERR_WAIT) -> str:
        """Captured stderr, waiting at most ``wait`` seconds for the pipe to drain."""
        self._stderr.join(timeout=wait)
        return self._stderr.text()

    def terminate(self) -> None:
        """Kill and reap monitor then driver. Safe to call repeatedly."""
        self._finalizer()


# =============================================================================
# Startup
# =============================================================================


def _wait_until_ready(handle: DriverProcessHandle, attempts: int, interval: float) -> None:
    """Poll the driver port until it answers HTTP at all.

    Fails fast if the driver exits. When the budget runs out while the
    driver is still alive we carry on; the first real request will tell.
    """
    status_url = f"{handle.url}/status"
    for attempt in range(1, attempts + 1):
        try:
            httpx.get(status_url, timeout=_READY_REQUEST_TIMEOUT, trust_env=False)
            logger.debug("Driver on port %s ready after %d attempt(s)", handle.port, attempt)
            return
        except httpx.HTTPError:
            pass

        exit_code = handle.process.poll()
        if exit_code is not None:
            raise ProcessError(
                "Driver exited during startup",
                exit_code=exit_code,
                stderr=handle.stderr_output(),
            )
        logger.debug("Driver on port %s not ready (%d/%d)", handle.port, attempt, attempts)
        time.sleep(interval)

    logger.warning(
        "Driver on port %s did not answer after %d attempts, continuing",
        handle.port,
        attempts,
    )


def start_driver(
    executable: Union[str, Path],
    browser: Browser,
    env: Optional[dict[str, str]] = None,
    ready_attempts: int = 10,
    ready_interval: float = 0.2,
) -> DriverProcessHandle:
    """Launch a driver binary and wait for it to accept connections.

    Args:
        executable: Path to geckodriver, chromedriver, ...
        browser: Selects the port flag syntax of the binary.
        env: Variables merged over the inherited environment.
        ready_attempts: Readiness polls before continuing optimistically.
        ready_interval: Seconds between readiness polls.

    Raises:
        ProcessError: The binary could not be spawned or exited during startup.
    """
    port = allocate_port()
    argv = [str(executable), *get_profile(browser).port_args(port)]
    merged_env = {**os.environ, **(env or {})}

    try:
        process = subprocess.Popen(
            argv,
            env=merged_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise ProcessError(f"Failed to spawn driver '{executable}': {e}") from e

    try:
        monitor = start_monitor(process.pid)
    except OSError as e:
        _kill_and_reap(process)
        process.stdout.close()
        process.stderr.close()
        raise ProcessError(f"Failed to spawn driver monitor: {e}") from e

    handle = DriverProcessHandle(process, monitor, port)
    try:
        _wait_until_ready(handle, ready_attempts, ready_interval)
    except ProcessError:
        handle.terminate()
        raise

    logger.info("Started driver '%s' (pid %s) on port %s", executable, handle.pid, port)
    return handle
