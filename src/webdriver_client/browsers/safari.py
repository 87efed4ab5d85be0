"""Safari profile (safaridriver)."""

from ..models import Browser
from .base import BrowserProfile


class SafariProfile(BrowserProfile):
    """safaridriver has no vendor options; only browserName and proxy are sent."""

    browser = Browser.SAFARI

    def port_args(self, port: int) -> list[str]:
        return ["--port", str(port)]
