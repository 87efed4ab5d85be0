"""HTTP transport for the WebDriver wire protocol."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from .errors import DecodeError, TransportError

logger = logging.getLogger(__name__)


def unwrap(text: str) -> Any:
    """Return the payload of a ``{"value": ...}`` response envelope."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"response is not JSON: {e}") from e
    if not isinstance(payload, dict) or "value" not in payload:
        raise DecodeError("response has no 'value' envelope")
    return payload["value"]


def _error_code(text: str) -> Optional[str]:
    """Pull the W3C error code out of an error body, if there is one."""
    try:
        value = json.loads(text).get("value")
    except (json.JSONDecodeError, AttributeError):
        return None
    if isinstance(value, dict) and isinstance(value.get("error"), str):
        return value["error"]
    return None


class Transport(ABC):
    """Abstract request/response channel to a WebDriver endpoint.

    Implementations know nothing about sessions or elements: callers pass
    fully templated paths such as ``/session/{id}/element/{id}/text``.
    """

    @abstractmethod
    def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send one request and return the unwrapped ``value``.

        ``body`` is serialized to JSON unless it is already a string, in
        which case it is sent verbatim.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the underlying connection pool."""
        pass


class HttpTransport(Transport):
    """httpx-based transport.

    A single timeout covers both the connect and the read phase of every
    request. Requests are sent one at a time; there is no pipelining.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
        trust_env: bool = True,
    ):
        """Initialize the transport.

        Args:
            base_url: Endpoint root, e.g. ``http://127.0.0.1:4444``.
            timeout: Seconds allowed for connect and read of each request.
            transport: Optional httpx transport, mainly for tests.
            trust_env: Honour proxy variables such as ``HTTP_PROXY``. Off for
                a locally spawned driver, which is always reached directly.
        """
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            trust_env=trust_env,
            headers={"Accept": "application/json"},
        )

    def request(self, method: str, path: str, body: Any = None) -> Any:
        content = None
        headers = {}
        if method == "POST":
            # POST endpoints without parameters still expect an empty object
            content = body if isinstance(body, str) else json.dumps({} if body is None else body)
            headers["Content-Type"] = "application/json; charset=utf-8"

        try:
            response = self._client.request(method, path, content=content, headers=headers)
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, path, e)
            raise TransportError(TransportError.NETWORK_FAILURE, str(e)) from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.status_code != 200:
            raise TransportError(
                response.status_code,
                response.text,
                _error_code(response.text),
            )
        return unwrap(response.text)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
