"""Input action chains.

An ``ActionChain`` collects ticks on up to three input sources (a mouse
pointer, a keyboard and a wheel) and sends them in one Perform Actions
request. Empty sources are left out of the request.
"""

import logging
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from .elements import Element
from .keys import Key
from .models import ActionType, Button, ElementReference
from .session import Session

logger = logging.getLogger(__name__)

Origin = Union[Literal["viewport", "pointer"], ElementReference]

DEFAULT_MOVE_DURATION = 100  # ms


def serialize_origin(origin: Optional[Origin]) -> Union[str, dict, None]:
    """Element origins carry the server's key plus the legacy ``ELEMENT`` key."""
    if isinstance(origin, ElementReference):
        return {origin.key: origin.id, "ELEMENT": origin.id}
    return origin


# =============================================================================
# Ticks
# =============================================================================


class Tick(BaseModel):
    """One action of an input source. Unset fields are not sent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: ActionType
    duration: Optional[int] = None

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class PointerTick(Tick):
    origin: Optional[Origin] = None
    button: Optional[Button] = None
    x: Optional[int] = None
    y: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    pressure: Optional[int] = None
    tangential_pressure: Optional[int] = None
    tilt_x: Optional[int] = None
    tilt_y: Optional[int] = None
    twist: Optional[int] = None
    altitude_angle: Optional[int] = None
    azimuth_angle: Optional[int] = None

    @field_serializer("origin")
    def _serialize_origin(self, origin: Optional[Origin]):
        return serialize_origin(origin)

    @classmethod
    def _zeroed(cls, **fields) -> "PointerTick":
        return cls(
            width=0,
            height=0,
            pressure=0,
            tangential_pressure=0,
            tilt_x=0,
            tilt_y=0,
            twist=0,
            altitude_angle=0,
            azimuth_angle=0,
            **fields,
        )

    @classmethod
    def press(cls, button: Button = Button.LEFT) -> "PointerTick":
        return cls._zeroed(type=ActionType.POINTER_DOWN, button=button)

    @classmethod
    def release(cls, button: Button = Button.LEFT) -> "PointerTick":
        return cls(type=ActionType.POINTER_UP, button=button)

    @classmethod
    def move(
        cls,
        origin: Origin,
        x: int = 0,
        y: int = 0,
        duration: int = DEFAULT_MOVE_DURATION,
    ) -> "PointerTick":
        return cls._zeroed(type=ActionType.POINTER_MOVE, origin=origin, x=x, y=y, duration=duration)

    @classmethod
    def pause(cls, duration: int) -> "PointerTick":
        return cls(type=ActionType.PAUSE, duration=duration)


class KeyTick(Tick):
    value: Optional[str] = None

    @classmethod
    def down(cls, key: Union[str, Key]) -> "KeyTick":
        return cls(type=ActionType.KEY_DOWN, value=_key_value(key))

    @classmethod
    def up(cls, key: Union[str, Key]) -> "KeyTick":
        return cls(type=ActionType.KEY_UP, value=_key_value(key))

    @classmethod
    def pause(cls, duration: int) -> "KeyTick":
        return cls(type=ActionType.PAUSE, duration=duration)


class WheelTick(Tick):
    x: Optional[int] = None
    y: Optional[int] = None
    delta_x: Optional[int] = None
    delta_y: Optional[int] = None
    origin: Optional[Origin] = None

    @field_serializer("origin")
    def _serialize_origin(self, origin: Optional[Origin]):
        return serialize_origin(origin)


def _key_value(key: Union[str, Key]) -> str:
    return key.value if isinstance(key, Key) else key


def _origin_of(target: Union[Element, str]) -> Origin:
    return target.reference if isinstance(target, Element) else target


# =============================================================================
# Chain
# =============================================================================


class ActionChain:
    """Builder for one Perform Actions request.

    Methods return the chain, so calls can be strung together::

        driver.actions().move_to(button).click().perform()

    A chain is single-use: once ``perform()`` has been called every further
    call raises ``RuntimeError``.
    """

    def __init__(self, session: Session):
        self._session = session
        self.pointer: list[PointerTick] = []
        self.keyboard: list[KeyTick] = []
        self.wheel: list[WheelTick] = []
        self._performed = False

    def _check_open(self) -> None:
        if self._performed:
            raise RuntimeError("Action chain already performed; start a new one")

    def _pointer(self, tick: PointerTick) -> "ActionChain":
        self._check_open()
        self.pointer.append(tick)
        return self

    def _key(self, tick: KeyTick) -> "ActionChain":
        self._check_open()
        self.keyboard.append(tick)
        return self

    # =========================================================================
    # Pointer
    # =========================================================================

    def press(self, button: Button = Button.LEFT) -> "ActionChain":
        return self._pointer(PointerTick.press(button))

    def release(self, button: Button = Button.LEFT) -> "ActionChain":
        return self._pointer(PointerTick.release(button))

    def move_to(self, element: Element, x: int = 0, y: int = 0) -> "ActionChain":
        """Move the pointer to ``element`` (offset from its center)."""
        return self._pointer(PointerTick.move(element.reference, x, y))

    move_pointer = move_to

    def move_by(self, x: int, y: int) -> "ActionChain":
        """Move the pointer relative to where it is."""
        return self._pointer(PointerTick.move("pointer", x, y))

    def move_to_location(self, x: int, y: int) -> "ActionChain":
        """Move the pointer to viewport coordinates."""
        return self._pointer(PointerTick.move("viewport", x, y))

    def click(self, element: Optional[Element] = None) -> "ActionChain":
        if element is not None:
            self.move_to(element)
        return self.press(Button.LEFT).release(Button.LEFT)

    def double_click(self, element: Optional[Element] = None) -> "ActionChain":
        return self.click(element).press(Button.LEFT).release(Button.LEFT)

    def context_click(self, element: Optional[Element] = None) -> "ActionChain":
        if element is not None:
            self.move_to(element)
        return self.press(Button.RIGHT).release(Button.RIGHT)

    def pointer_pause(self, duration: int) -> "ActionChain":
        return self._pointer(PointerTick.pause(duration))

    def add_pointer(self, tick: PointerTick) -> "ActionChain":
        """Append a hand-built pointer tick."""
        return self._pointer(tick)

    # =========================================================================
    # Keyboard
    # =========================================================================

    def key_down(self, key: Union[str, Key]) -> "ActionChain":
        return self._key(KeyTick.down(key))

    def key_up(self, key: Union[str, Key]) -> "ActionChain":
        return self._key(KeyTick.up(key))

    def key_pause(self, duration: int) -> "ActionChain":
        return self._key(KeyTick.pause(duration))

    def send_keys(self, text: str) -> "ActionChain":
        """Press and release each character of ``text`` in turn."""
        for char in text:
            self.key_down(char).key_up(char)
        return self

    # =========================================================================
    # Wheel
    # =========================================================================

    def scroll(
        self,
        x: int,
        y: int,
        delta_x: int,
        delta_y: int,
        duration: int = 0,
        origin: Union[Element, Literal["viewport", "pointer"]] = "viewport",
    ) -> "ActionChain":
        self._check_open()
        self.wheel.append(
            WheelTick(
                type=ActionType.SCROLL,
                x=x,
                y=y,
                delta_x=delta_x,
                delta_y=delta_y,
                duration=duration,
                origin=_origin_of(origin),
            )
        )
        return self

    # =========================================================================
    # Dispatch
    # =========================================================================

    def clear(self) -> "ActionChain":
        """Drop every queued tick."""
        self._check_open()
        self.pointer.clear()
        self.keyboard.clear()
        self.wheel.clear()
        return self

    def build_payload(self) -> dict:
        sources = []
        if self.pointer:
            sources.append(
                {
                    "type": "pointer",
                    "id": "default mouse",
                    "parameters": {"pointerType": "mouse"},
                    "actions": [tick.to_wire() for tick in self.pointer],
                }
            )
        if self.keyboard:
            sources.append(
                {
                    "type": "key",
                    "id": "default keyboard",
                    "actions": [tick.to_wire() for tick in self.keyboard],
                }
            )
        if self.wheel:
            sources.append(
                {
                    "type": "wheel",
                    "id": "default wheel",
                    "actions": [tick.to_wire() for tick in self.wheel],
                }
            )
        return {"actions": sources}

    def perform(self) -> None:
        """Send the queued ticks. The chain cannot be used afterwards."""
        self._check_open()
        payload = self.build_payload()
        self._performed = True
        logger.debug(
            "Performing actions: %d pointer, %d key, %d wheel",
            len(self.pointer),
            len(self.keyboard),
            len(self.wheel),
        )
        self._session.request("POST", "/actions", payload)
