"""Error taxonomy for the WebDriver client.

Callers rely on the split between the four kinds to decide retry policy:

- ``ProcessError``: the local driver binary could not be started.
- ``TransportError``: the request did not produce a 200 response.
- ``DecodeError``: a 200 response whose body was not the expected JSON.
- ``ProtocolError``: a well-formed response with no usable result.
"""

from typing import Optional


class WebDriverError(Exception):
    """Base class for every error raised by this package."""


class ProcessError(WebDriverError):
    """The local driver executable failed to spawn or exited during startup."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        self.exit_code = exit_code
        self.stderr = stderr
        details = message
        if exit_code is not None:
            details += f" (exit code {exit_code})"
        if stderr:
            details += f": {stderr.strip()}"
        super().__init__(details)


class TransportError(WebDriverError):
    """Network failure or non-200 HTTP status.

    ``status`` is the HTTP status code, or ``NETWORK_FAILURE`` when no
    response was received at all.
    """

    NETWORK_FAILURE = -1

    def __init__(self, status: int, body: str = "", error: Optional[str] = None):
        self.status = status
        self.body = body
        self.error = error  # W3C error code, e.g. "no such element"
        super().__init__(f"http status {status}: {error or body}")


class DecodeError(WebDriverError):
    """Response body was not JSON or did not match the expected shape."""


class ProtocolError(WebDriverError):
    """The request succeeded but carried no usable result."""
