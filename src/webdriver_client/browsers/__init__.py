"""Browser capability profiles."""

from ..models import Browser
from .base import BrowserProfile
from .chromium import ChromeProfile, EdgeProfile
from .firefox import FirefoxProfile, encode_profile_dir
from .safari import SafariProfile

PROFILES: dict[Browser, BrowserProfile] = {
    Browser.FIREFOX: FirefoxProfile(),
    Browser.CHROME: ChromeProfile(),
    Browser.EDGE: EdgeProfile(),
    Browser.SAFARI: SafariProfile(),
}


def get_profile(browser: Browser) -> BrowserProfile:
    """Look up the profile for a browser tag."""
    return PROFILES[Browser(browser)]


__all__ = [
    "BrowserProfile",
    "ChromeProfile",
    "EdgeProfile",
    "FirefoxProfile",
    "SafariProfile",
    "PROFILES",
    "encode_profile_dir",
    "get_profile",
]
