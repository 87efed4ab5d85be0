"""Element and shadow root handles."""

from typing import Any, Optional

from .errors import DecodeError
from .models import ElementReference, Locator, Rect
from .session import Session, decode_screenshot


def _expect(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise DecodeError(f"{what}: expected {kind.__name__}, got {type(value).__name__}")
    return value


class Element:
    """Handle to an element of the current page.

    Handles are only meaningful within the session that produced them.
    """

    def __init__(self, session: Session, reference: ElementReference):
        self.session = session
        self.reference = reference

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def _scope(self) -> str:
        return f"/element/{self.reference.id}"

    def _get(self, endpoint: str) -> Any:
        return self.session.request("GET", f"{self._scope}{endpoint}")

    def _post(self, endpoint: str, body: Any = None) -> Any:
        return self.session.request("POST", f"{self._scope}{endpoint}", body)

    # =========================================================================
    # Lookup
    # =========================================================================

    def find_element(self, locator: Locator) -> "Element":
        return Element(self.session, self.session.find_reference(self._scope, locator))

    def find_elements(self, locator: Locator) -> list["Element"]:
        references = self.session.find_references(self._scope, locator)
        return [Element(self.session, ref) for ref in references]

    def shadow_root(self) -> "ShadowRoot":
        reference = ElementReference.from_response(self._get("/shadow"), what="shadow root")
        return ShadowRoot(self.session, reference)

    # =========================================================================
    # State
    # =========================================================================

    def is_selected(self) -> bool:
        return _expect(self._get("/selected"), bool, "selected")

    def is_enabled(self) -> bool:
        return _expect(self._get("/enabled"), bool, "enabled")

    def get_attribute(self, name: str) -> Optional[str]:
        value = self._get(f"/attribute/{name}")
        return None if value is None else _expect(value, str, f"attribute {name}")

    def get_property(self, name: str) -> Any:
        return self._get(f"/property/{name}")

    def get_css_value(self, name: str) -> str:
        return _expect(self._get(f"/css/{name}"), str, f"css {name}")

    @property
    def text(self) -> str:
        return _expect(self._get("/text"), str, "text")

    @property
    def tag_name(self) -> str:
        return _expect(self._get("/name"), str, "tag name")

    @property
    def rect(self) -> Rect:
        return Rect.model_validate(_expect(self._get("/rect"), dict, "rect"))

    # =========================================================================
    # Interaction
    # =========================================================================

    def click(self) -> None:
        self._post("/click")

    def clear(self) -> None:
        self._post("/clear")

    def send_keys(self, text: str) -> None:
        """Type ``text`` into the element. Special keys may be embedded as ``Key`` values."""
        self._post("/value", {"text": text, "value": list(text)})

    def screenshot(self) -> bytes:
        """PNG of the element's bounding box."""
        return decode_screenshot(self._get("/screenshot"))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self.session is other.session and self.reference == other.reference

    def __hash__(self) -> int:
        return hash(self.reference)

    def __repr__(self) -> str:
        return f"Element({self.reference.id!r})"


class ShadowRoot:
    """Handle to an element's shadow root. Supports lookup only."""

    def __init__(self, session: Session, reference: ElementReference):
        self.session = session
        self.reference = reference

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def _scope(self) -> str:
        return f"/shadow/{self.reference.id}"

    def find_element(self, locator: Locator) -> Element:
        return Element(self.session, self.session.find_reference(self._scope, locator))

    def find_elements(self, locator: Locator) -> list[Element]:
        references = self.session.find_references(self._scope, locator)
        return [Element(self.session, ref) for ref in references]

    def __repr__(self) -> str:
        return f"ShadowRoot({self.reference.id!r})"
