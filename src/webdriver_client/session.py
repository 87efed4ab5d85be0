"""Session-scoped request routing."""

import base64
import binascii
import logging
from typing import Any, Optional

from .capabilities import Capability
from .errors import DecodeError
from .models import ElementReference, Locator
from .transport import Transport

logger = logging.getLogger(__name__)


def decode_screenshot(value: Any) -> bytes:
    """Decode the base64 PNG returned by the screenshot endpoints."""
    if not isinstance(value, str):
        raise DecodeError(f"expected base64 screenshot, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise DecodeError(f"screenshot is not valid base64: {e}") from e


class Session:
    """A live session on a WebDriver endpoint.

    Every request made through a session, its elements, shadow roots and
    action chains is routed under ``/session/{session_id}``.
    """

    def __init__(
        self,
        transport: Transport,
        session_id: str,
        capabilities: Optional[dict] = None,
    ):
        self.transport = transport
        self.session_id = session_id
        self.capabilities = capabilities or {}

    @classmethod
    def create(cls, transport: Transport, capability: Capability) -> "Session":
        value = transport.request("POST", "/session", capability.new_session_body())
        if not isinstance(value, dict) or not isinstance(value.get("sessionId"), str):
            raise DecodeError("new session response has no 'sessionId'")
        session = cls(transport, value["sessionId"], value.get("capabilities"))
        logger.info("Created %s session %s", capability.browser.value, session.session_id)
        return session

    @property
    def path(self) -> str:
        return f"/session/{self.session_id}"

    def request(self, method: str, endpoint: str = "", body: Any = None) -> Any:
        """Send a request to ``/session/{id}{endpoint}``."""
        return self.transport.request(method, f"{self.path}{endpoint}", body)

    def delete(self) -> None:
        self.transport.request("DELETE", self.path)
        logger.info("Deleted session %s", self.session_id)

    # =========================================================================
    # Lookup
    # =========================================================================

    def find_reference(self, scope: str, locator: Locator) -> ElementReference:
        """Find one element below ``scope`` ("" for the document)."""
        value = self.request("POST", f"{scope}/element", locator.model_dump())
        return ElementReference.from_response(value)

    def find_references(self, scope: str, locator: Locator) -> list[ElementReference]:
        """Find all elements below ``scope``.

        Empty entries are dropped and each reference appears only once.
        """
        value = self.request("POST", f"{scope}/elements", locator.model_dump())
        if not isinstance(value, list):
            raise DecodeError(f"expected list of elements, got {type(value).__name__}")

        references: list[ElementReference] = []
        seen: set[str] = set()
        for entry in value:
            if isinstance(entry, dict) and not entry:
                continue
            reference = ElementReference.from_response(entry)
            if reference.id in seen:
                continue
            seen.add(reference.id)
            references.append(reference)
        return references

    def __repr__(self) -> str:
        return f"Session({self.session_id!r})"
