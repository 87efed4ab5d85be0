"""Pydantic models for WebDriver protocol data."""

from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import DecodeError, ProtocolError


# =============================================================================
# Enums
# =============================================================================


class DriverState(str, Enum):
    """Lifecycle state of a Driver."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"  # Terminal, never left again


class Browser(str, Enum):
    """Browser families with a known capability shape."""

    FIREFOX = "firefox"
    CHROME = "chrome"
    EDGE = "MicrosoftEdge"
    SAFARI = "Safari"


class NewWindowType(str, Enum):
    """Kind of top-level browsing context to open."""

    TAB = "tab"
    WINDOW = "window"


class Button(IntEnum):
    """Pointer buttons as numbered by the Actions API."""

    LEFT = 0
    MIDDLE = 1
    RIGHT = 2
    BACK = 3
    FORWARD = 4


class ActionType(str, Enum):
    """Wire names of action tick types."""

    KEY_DOWN = "keyDown"
    KEY_UP = "keyUp"
    PAUSE = "pause"
    POINTER_DOWN = "pointerDown"
    POINTER_UP = "pointerUp"
    POINTER_MOVE = "pointerMove"
    POINTER_CANCEL = "pointerCancel"
    SCROLL = "scroll"


# =============================================================================
# Locators
# =============================================================================


class Locator(BaseModel):
    """Body of a find request."""

    model_config = ConfigDict(frozen=True)

    using: str
    value: str


class By:
    """Factory for locators.

    ``id`` and ``class_name`` are rewritten to css selectors, which every
    driver supports, instead of the legacy strategies.
    """

    @staticmethod
    def css(selector: str) -> Locator:
        return Locator(using="css selector", value=selector)

    @staticmethod
    def link_text(text: str) -> Locator:
        return Locator(using="link text", value=text)

    @staticmethod
    def partial_link_text(text: str) -> Locator:
        return Locator(using="partial link text", value=text)

    @staticmethod
    def tag_name(name: str) -> Locator:
        return Locator(using="tag name", value=name)

    @staticmethod
    def xpath(expression: str) -> Locator:
        return Locator(using="xpath", value=expression)

    @staticmethod
    def id(element_id: str) -> Locator:
        return Locator(using="css selector", value=f"#{element_id}")

    @staticmethod
    def class_name(name: str) -> Locator:
        return Locator(using="css selector", value=f".{name}")


# =============================================================================
# References
# =============================================================================


class ElementReference(BaseModel):
    """Server-issued reference to an element or shadow root.

    ``key`` is whatever property name the server used in its response; it
    identifies the reference type and is never assumed to be constant.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    id: str

    @classmethod
    def from_response(cls, value: Any, what: str = "element") -> "ElementReference":
        """Build a reference from a single-entry response map."""
        if not isinstance(value, dict):
            raise DecodeError(f"expected {what} reference map, got {type(value).__name__}")
        if not value:
            raise ProtocolError(f"{what} not found")
        key, ref = next(iter(value.items()))
        if not isinstance(ref, str):
            raise DecodeError(f"{what} reference {key!r} is not a string")
        return cls(key=key, id=ref)

    def to_json(self) -> dict[str, str]:
        """Serialize the way the server sent it, e.g. for script arguments."""
        return {self.key: self.id}


# =============================================================================
# Geometry and timeouts
# =============================================================================


class Rect(BaseModel):
    """Window or element rectangle. Unset fields are left out on the wire."""

    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class Timeouts(BaseModel):
    """Session timeouts in milliseconds."""

    model_config = ConfigDict(populate_by_name=True)

    script: Optional[int] = Field(default=None, ge=0)
    page_load: Optional[int] = Field(default=None, ge=0, alias="pageLoad")
    implicit: Optional[int] = Field(default=None, ge=0)

    def to_wire(self) -> dict:
        """Only the timeouts that were set, under their wire names."""
        return self.model_dump(by_alias=True, exclude_none=True)
