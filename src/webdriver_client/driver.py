"""Driver facade.

A ``Driver`` owns one WebDriver session and, in local mode, the driver
process serving it. It is the entry point for everything that happens in
the browser::

    options = DriverOptions(driver_path="/usr/local/bin/geckodriver")
    with Driver(Capability.firefox().headless(), options) as driver:
        driver.get("https://example.com")
        heading = driver.find_element(By.css("h1")).text
"""

import logging
import weakref
from typing import Any, Optional, Union

from pydantic import TypeAdapter, ValidationError

from .actions import ActionChain
from .capabilities import Capability
from .config import DriverOptions
from .elements import Element, ShadowRoot
from .errors import DecodeError, WebDriverError
from .models import DriverState, ElementReference, Locator, NewWindowType, Rect, Timeouts
from .process import DriverProcessHandle, start_driver
from .session import Session, decode_screenshot
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)


def _dispose(
    session: Optional[Session],
    transport: Optional[Transport],
    process: Optional[DriverProcessHandle],
) -> None:
    """Best-effort teardown: delete the session, close the pool, kill the driver."""
    try:
        if session is not None:
            try:
                session.delete()
            except WebDriverError as e:
                logger.warning("Failed to delete session %s: %s", session.session_id, e)
    finally:
        try:
            if transport is not None:
                transport.close()
        finally:
            if process is not None:
                process.terminate()


def _script_argument(value: Any) -> Any:
    if isinstance(value, (Element, ShadowRoot)):
        return value.reference.to_json()
    if isinstance(value, ElementReference):
        return value.to_json()
    if isinstance(value, (list, tuple)):
        return [_script_argument(item) for item in value]
    if isinstance(value, dict):
        return {key: _script_argument(item) for key, item in value.items()}
    return value


class Driver:
    """A browser session.

    Lifecycle: ``UNINITIALIZED -> CONNECTING -> READY -> CLOSED``. The
    constructor drives the first three transitions; ``quit()``, leaving a
    ``with`` block, or garbage collection drive the last one.
    """

    def __init__(
        self,
        capability: Capability,
        options: DriverOptions,
        transport: Optional[Transport] = None,
    ):
        """Start the driver (local mode) and open a session.

        Args:
            capability: Browser and options to request.
            options: Remote endpoint or local driver binary.
            transport: Custom transport, bypassing ``HttpTransport``.

        Raises:
            ProcessError: The local driver could not be started.
            TransportError: The session request failed.
            DecodeError: The session response was malformed.
        """
        self.capability = capability
        self.options = options
        self._state = DriverState.UNINITIALIZED
        self._process: Optional[DriverProcessHandle] = None
        self._transport: Optional[Transport] = None
        self._session: Optional[Session] = None
        self._finalizer: Optional[weakref.finalize] = None
        self._connect(transport)

    def _connect(self, transport: Optional[Transport]) -> None:
        self._state = DriverState.CONNECTING
        try:
            if self.options.driver_path is not None:
                self._process = start_driver(
                    self.options.driver_path,
                    self.capability.browser,
                    env=self.options.driver_env,
                    ready_attempts=self.options.ready_attempts,
                    ready_interval=self.options.ready_interval,
                )
                url = self._process.url
            else:
                url = self.options.url
            # A local driver listens on loopback, never behind a proxy
            self._transport = transport or HttpTransport(
                url,
                timeout=self.options.timeout,
                trust_env=self._process is None,
            )
            self._session = Session.create(self._transport, self.capability)
        except Exception:
            # No session exists, so only the process and pool need releasing
            _dispose(None, self._transport, self._process)
            self._state = DriverState.CLOSED
            raise

        self._finalizer = weakref.finalize(
            self, _dispose, self._session, self._transport, self._process
        )
        self._state = DriverState.READY

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def session_id(self) -> Optional[str]:
        return self._session.session_id if self._session is not None else None

    @property
    def process(self) -> Optional[DriverProcessHandle]:
        """The local driver process, or None in remote mode."""
        return self._process

    def quit(self) -> None:
        """Delete the session and stop the local driver. Safe to call twice."""
        if self._state == DriverState.CLOSED:
            return
        self._state = DriverState.CLOSED
        if self._finalizer is not None:
            self._finalizer()
        logger.info("Driver closed")

    close = quit

    def __enter__(self) -> "Driver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.quit()

    def _require_session(self) -> Session:
        if self._state != DriverState.READY or self._session is None:
            raise RuntimeError(f"Driver is {self._state.value}, not ready")
        return self._session

    def _request(self, method: str, endpoint: str = "", body: Any = None) -> Any:
        return self._require_session().request(method, endpoint, body)

    # =========================================================================
    # Navigation
    # =========================================================================

    def get(self, url: str) -> None:
        """Navigate to ``url`` and wait for the page to load."""
        self._request("POST", "/url", {"url": url})

    @property
    def current_url(self) -> str:
        return self._request("GET", "/url")

    @property
    def title(self) -> str:
        return self._request("GET", "/title")

    def back(self) -> None:
        self._request("POST", "/back")

    def forward(self) -> None:
        self._request("POST", "/forward")

    def refresh(self) -> None:
        self._request("POST", "/refresh")

    @property
    def page_source(self) -> str:
        return self._request("GET", "/source")

    # =========================================================================
    # Timeouts
    # =========================================================================

    def get_timeouts(self) -> Timeouts:
        return Timeouts.model_validate(self._request("GET", "/timeouts"))

    def set_timeouts(self, timeouts: Timeouts) -> None:
        self._request("POST", "/timeouts", timeouts.to_wire())

    def set_script_timeout(self, ms: int) -> None:
        self.set_timeouts(Timeouts(script=ms))

    def set_page_load_timeout(self, ms: int) -> None:
        self.set_timeouts(Timeouts(page_load=ms))

    def set_implicit_timeout(self, ms: int) -> None:
        self.set_timeouts(Timeouts(implicit=ms))

    # =========================================================================
    # Windows and frames
    # =========================================================================

    @property
    def window_handle(self) -> str:
        return self._request("GET", "/window")

    @property
    def window_handles(self) -> list[str]:
        return self._request("GET", "/window/handles")

    def close_window(self) -> list[str]:
        """Close the current window; returns the handles still open."""
        return self._request("DELETE", "/window")

    def switch_to_window(self, handle: str) -> None:
        self._request("POST", "/window", {"handle": handle})

    def new_window(self, kind: NewWindowType = NewWindowType.TAB) -> str:
        """Open a tab or window and return its handle (without switching to it)."""
        value = self._request("POST", "/window/new", {"type": kind.value})
        if not isinstance(value, dict) or not isinstance(value.get("handle"), str):
            raise DecodeError("new window response has no 'handle'")
        return value["handle"]

    def switch_to_frame(self, frame: Union[None, int, Element]) -> None:
        """Switch to a frame by index or element, or back to the top with None."""
        frame_id = frame.reference.to_json() if isinstance(frame, Element) else frame
        self._request("POST", "/frame", {"id": frame_id})

    def switch_to_parent_frame(self) -> None:
        self._request("POST", "/frame/parent")

    def get_window_rect(self) -> Rect:
        return Rect.model_validate(self._request("GET", "/window/rect"))

    def set_window_rect(self, rect: Rect) -> Rect:
        value = self._request("POST", "/window/rect", rect.model_dump(exclude_none=True))
        return Rect.model_validate(value)

    def maximize_window(self) -> Rect:
        return Rect.model_validate(self._request("POST", "/window/maximize"))

    def minimize_window(self) -> Rect:
        return Rect.model_validate(self._request("POST", "/window/minimize"))

    def fullscreen_window(self) -> Rect:
        return Rect.model_validate(self._request("POST", "/window/fullscreen"))

    # =========================================================================
    # Elements
    # =========================================================================

    def find_element(self, locator: Locator) -> Element:
        session = self._require_session()
        return Element(session, session.find_reference("", locator))

    def find_elements(self, locator: Locator) -> list[Element]:
        session = self._require_session()
        return [Element(session, ref) for ref in session.find_references("", locator)]

    def active_element(self) -> Element:
        session = self._require_session()
        reference = ElementReference.from_response(session.request("GET", "/element/active"))
        return Element(session, reference)

    # =========================================================================
    # Scripts
    # =========================================================================

    def execute_script(self, script: str, *args: Any, result_type: Any = None) -> Any:
        """Run ``script`` synchronously in the page.

        Element handles in ``args`` are passed as element references. With
        ``result_type`` the result is validated against that type, and a
        mismatch raises ``DecodeError``.
        """
        return self._execute("/execute/sync", script, args, result_type)

    def execute_async_script(self, script: str, *args: Any, result_type: Any = None) -> Any:
        """Run ``script`` asynchronously; it signals completion through its last argument."""
        return self._execute("/execute/async", script, args, result_type)

    def _execute(self, endpoint: str, script: str, args: tuple, result_type: Any) -> Any:
        body = {"script": script, "args": [_script_argument(arg) for arg in args]}
        value = self._request("POST", endpoint, body)
        if result_type is None:
            return value
        try:
            return TypeAdapter(result_type).validate_python(value)
        except ValidationError as e:
            raise DecodeError(f"script result does not match {result_type!r}: {e}") from e

    # =========================================================================
    # Alerts
    # =========================================================================

    def dismiss_alert(self) -> None:
        self._request("POST", "/alert/dismiss")

    def accept_alert(self) -> None:
        self._request("POST", "/alert/accept")

    @property
    def alert_text(self) -> Optional[str]:
        return self._request("GET", "/alert/text")

    def send_alert_text(self, text: str) -> None:
        self._request("POST", "/alert/text", {"text": text})

    # =========================================================================
    # Screenshots and input
    # =========================================================================

    def screenshot(self) -> bytes:
        """PNG of the current viewport."""
        return decode_screenshot(self._request("GET", "/screenshot"))

    def actions(self) -> ActionChain:
        """Start a new, empty action chain."""
        return ActionChain(self._require_session())

    def release_actions(self) -> None:
        """Release all keys and buttons held down by earlier actions."""
        self._request("DELETE", "/actions")

    def __repr__(self) -> str:
        return f"Driver({self.capability.browser.value}, session={self.session_id!r}, state={self._state.value})"
