"""Shared pytest fixtures and helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
import stat
import sys
from typing import Any, Callable

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from webdriver_client.capabilities import Capability
from webdriver_client.config import DriverOptions
from webdriver_client.models import ElementReference
from webdriver_client.session import Session
from webdriver_client.transport import Transport

SESSION_ID = "sess-1"
W3C_ELEMENT_KEY = "element-6066-11e4-a52e-4f735466cecf"
W3C_SHADOW_KEY = "shadow-6066-11e4-a52e-4f735466cecf"

posix_only = pytest.mark.skipif(os.name != "posix", reason="fake driver scripts need a POSIX shell")


class FakeTransport(Transport):
    """Records requests and answers from a ``(method, path) -> value`` table.

    A value that is an exception instance is raised instead of returned.
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, str, Any]] = []
        self.responses: dict[tuple[str, str], Any] = {
            ("POST", "/session"): {"sessionId": SESSION_ID, "capabilities": {}},
        }
        self.closed = False

    def respond(self, method: str, path: str, value: Any) -> None:
        self.responses[(method, path)] = value

    def request(self, method: str, path: str, body: Any = None) -> Any:
        if isinstance(body, str):
            body = json.loads(body)
        self.requests.append((method, path, body))
        value = self.responses.get((method, path))
        if isinstance(value, Exception):
            raise value
        return value

    def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> tuple[str, str, Any]:
        return self.requests[-1]

    def calls(self, method: str, path: str) -> list[Any]:
        """Bodies of every request sent to ``method path``."""
        return [body for m, p, body in self.requests if (m, p) == (method, path)]


def element_ref(element_id: str) -> ElementReference:
    return ElementReference(key=W3C_ELEMENT_KEY, id=element_id)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def session(fake_transport: FakeTransport) -> Session:
    return Session(fake_transport, SESSION_ID)


@pytest.fixture
def remote_options() -> DriverOptions:
    return DriverOptions(url="http://127.0.0.1:4444")


@pytest.fixture
def driver(fake_transport: FakeTransport, remote_options: DriverOptions):
    from webdriver_client.driver import Driver

    driver = Driver(Capability.firefox(), remote_options, transport=fake_transport)
    yield driver
    driver.quit()


@pytest.fixture
def fake_driver(tmp_path: Path) -> Callable[[str], Path]:
    """Write an executable shell script standing in for a driver binary."""

    def write(body: str, name: str = "fakedriver") -> Path:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return write
