"""Chrome and Edge profiles (chromedriver / msedgedriver)."""

from ..models import Browser
from .base import BrowserProfile


class ChromiumProfile(BrowserProfile):
    """Chromium-family drivers take ``--port=N``."""

    def port_args(self, port: int) -> list[str]:
        return [f"--port={port}"]


class ChromeProfile(ChromiumProfile):
    browser = Browser.CHROME
    vendor_key = "goog:chromeOptions"
    headless_argument = "--headless=new"
    private_argument = "--incognito"


class EdgeProfile(ChromiumProfile):
    browser = Browser.EDGE
    vendor_key = "ms:edgeOptions"
    headless_argument = "headless"
    private_argument = "-inprivate"
