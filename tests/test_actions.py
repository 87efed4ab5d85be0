import pytest

from conftest import SESSION_ID, W3C_ELEMENT_KEY, element_ref
from webdriver_client.actions import ActionChain, PointerTick, serialize_origin
from webdriver_client.elements import Element
from webdriver_client.keys import Key
from webdriver_client.models import Button, ElementReference

ZEROED = {
    "width": 0,
    "height": 0,
    "pressure": 0,
    "tangentialPressure": 0,
    "tiltX": 0,
    "tiltY": 0,
    "twist": 0,
    "altitudeAngle": 0,
    "azimuthAngle": 0,
}


def lanes(payload: dict) -> dict:
    return {source["id"]: source for source in payload["actions"]}


def test_element_origin_serialization() -> None:
    ref = ElementReference(key="element-6066-11e4-a52e-4f735466cecf", id="abc123")

    assert serialize_origin(ref) == {
        "element-6066-11e4-a52e-4f735466cecf": "abc123",
        "ELEMENT": "abc123",
    }
    assert serialize_origin("viewport") == "viewport"


def test_click_composite_on_element(session) -> None:
    element = Element(session, element_ref("e1"))

    payload = ActionChain(session).click(element).build_payload()

    assert len(payload["actions"]) == 1
    pointer = payload["actions"][0]
    assert pointer["type"] == "pointer"
    assert pointer["id"] == "default mouse"
    assert pointer["parameters"] == {"pointerType": "mouse"}
    assert pointer["actions"] == [
        {
            "type": "pointerMove",
            "origin": {W3C_ELEMENT_KEY: "e1", "ELEMENT": "e1"},
            "duration": 100,
            "x": 0,
            "y": 0,
            **ZEROED,
        },
        {"type": "pointerDown", "button": 0, **ZEROED},
        {"type": "pointerUp", "button": 0},
    ]


def test_click_without_element_has_no_move(session) -> None:
    payload = ActionChain(session).click().build_payload()

    types = [tick["type"] for tick in payload["actions"][0]["actions"]]
    assert types == ["pointerDown", "pointerUp"]


def test_double_and_context_click(session) -> None:
    element = Element(session, element_ref("e1"))

    double = ActionChain(session).double_click(element).build_payload()
    ticks = double["actions"][0]["actions"]
    assert [t["type"] for t in ticks] == [
        "pointerMove",
        "pointerDown",
        "pointerUp",
        "pointerDown",
        "pointerUp",
    ]

    context = ActionChain(session).context_click(element).build_payload()
    buttons = [t.get("button") for t in context["actions"][0]["actions"]]
    assert buttons == [None, Button.RIGHT, Button.RIGHT]


def test_lane_omission(session) -> None:
    keys_only = ActionChain(session).key_down(Key.SHIFT).key_up(Key.SHIFT).build_payload()
    assert list(lanes(keys_only)) == ["default keyboard"]
    keyboard = lanes(keys_only)["default keyboard"]
    assert keyboard["type"] == "key"
    assert "parameters" not in keyboard
    assert keyboard["actions"] == [
        {"type": "keyDown", "value": Key.SHIFT.value},
        {"type": "keyUp", "value": Key.SHIFT.value},
    ]

    mixed = ActionChain(session).press().scroll(0, 0, 0, 120).build_payload()
    assert list(lanes(mixed)) == ["default mouse", "default wheel"]

    assert ActionChain(session).build_payload() == {"actions": []}


def test_scroll_tick(session) -> None:
    element = Element(session, element_ref("e1"))

    payload = ActionChain(session).scroll(5, 10, 0, 200, duration=50, origin=element).build_payload()

    wheel = lanes(payload)["default wheel"]
    assert wheel["type"] == "wheel"
    assert wheel["actions"] == [
        {
            "type": "scroll",
            "duration": 50,
            "x": 5,
            "y": 10,
            "deltaX": 0,
            "deltaY": 200,
            "origin": {W3C_ELEMENT_KEY: "e1", "ELEMENT": "e1"},
        }
    ]


def test_pauses_and_relative_moves(session) -> None:
    payload = (
        ActionChain(session)
        .move_to_location(10, 20)
        .move_by(5, -5)
        .pointer_pause(250)
        .key_pause(100)
        .build_payload()
    )

    pointer = lanes(payload)["default mouse"]["actions"]
    assert pointer[0]["origin"] == "viewport"
    assert (pointer[0]["x"], pointer[0]["y"]) == (10, 20)
    assert pointer[1]["origin"] == "pointer"
    assert pointer[2] == {"type": "pause", "duration": 250}
    assert lanes(payload)["default keyboard"]["actions"] == [{"type": "pause", "duration": 100}]


def test_send_keys_and_raw_ticks(session) -> None:
    chain = ActionChain(session).send_keys("ab").add_pointer(PointerTick.release(Button.MIDDLE))

    keyboard = lanes(chain.build_payload())["default keyboard"]["actions"]
    assert [(t["type"], t["value"]) for t in keyboard] == [
        ("keyDown", "a"),
        ("keyUp", "a"),
        ("keyDown", "b"),
        ("keyUp", "b"),
    ]
    assert chain.pointer == [PointerTick.release(Button.MIDDLE)]


def test_perform_posts_once_and_chain_is_single_use(session, fake_transport) -> None:
    chain = ActionChain(session).click()

    chain.perform()

    assert fake_transport.last[:2] == ("POST", f"/session/{SESSION_ID}/actions")
    assert fake_transport.last[2] == chain.build_payload()

    with pytest.raises(RuntimeError):
        chain.perform()

    with pytest.raises(RuntimeError):
        chain.click()


def test_clear_drops_all_lanes(session) -> None:
    chain = ActionChain(session).click().key_down("a").scroll(0, 0, 1, 1).clear()

    assert chain.build_payload() == {"actions": []}
