"""Abstract base class for browser capability profiles."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

from ..models import Browser

if TYPE_CHECKING:
    from ..capabilities import Capability


class BrowserProfile(ABC):
    """Per-browser strategy used by the generic Capability.

    A profile knows the vendor options key, how the browser-specific fields
    of a capability are serialized, which flags mean headless/private, and
    the port flag syntax of the matching driver binary.
    """

    browser: Browser
    vendor_key: Optional[str] = None
    headless_argument: Optional[str] = None
    private_argument: Optional[str] = None
    supports_profile: bool = False

    @abstractmethod
    def port_args(self, port: int) -> list[str]:
        """Command-line arguments telling the driver which port to bind."""
        pass

    def vendor_options(self, capability: "Capability") -> dict:
        """Browser-specific options, empty fields left out."""
        options: dict = {}
        if capability.arguments:
            options["args"] = list(capability.arguments)
        if capability.binary:
            options["binary"] = capability.binary
        if capability.env:
            options["env"] = dict(capability.env)
        if capability.prefs:
            options["prefs"] = dict(capability.prefs)
        return options

    def serialize(self, capability: "Capability") -> dict:
        """Full capability object as placed in ``firstMatch``."""
        payload: dict = {"browserName": self.browser.value}
        if capability.platform_name:
            payload["platformName"] = capability.platform_name
        if self.vendor_key:
            payload[self.vendor_key] = self.vendor_options(capability)
        if capability.proxy is not None:
            payload["proxy"] = capability.proxy.to_wire()
        return payload
