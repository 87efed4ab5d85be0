"""Capabilities sent when creating a session."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .browsers import BrowserProfile, encode_profile_dir, get_profile
from .models import Browser


class ProxyType(str, Enum):
    """How the browser should reach the network."""

    PAC = "pac"  # Proxy auto-configuration from URL
    DIRECT = "direct"  # No proxy
    AUTODETECT = "autodetect"  # Presumably WPAD
    SYSTEM = "system"  # Use system settings
    MANUAL = "manual"  # Per-scheme hosts below


class Proxy(BaseModel):
    """Proxy configuration. Fields only apply to their own proxy type."""

    model_config = ConfigDict(frozen=True)

    proxy_type: ProxyType
    proxy_autoconfig_url: Optional[str] = None
    http_proxy: Optional[str] = None
    ssl_proxy: Optional[str] = None
    ftp_proxy: Optional[str] = None
    socks_proxy: Optional[str] = None
    socks_version: Optional[int] = Field(default=None, ge=0, le=255)
    no_proxy: tuple[str, ...] = ()

    @classmethod
    def pac(cls, url: str) -> "Proxy":
        return cls(proxy_type=ProxyType.PAC, proxy_autoconfig_url=url)

    @classmethod
    def direct(cls) -> "Proxy":
        return cls(proxy_type=ProxyType.DIRECT)

    @classmethod
    def auto_detect(cls) -> "Proxy":
        return cls(proxy_type=ProxyType.AUTODETECT)

    @classmethod
    def system(cls) -> "Proxy":
        return cls(proxy_type=ProxyType.SYSTEM)

    @classmethod
    def manual(cls, **hosts: Any) -> "Proxy":
        """Manual proxy, e.g. ``Proxy.manual(http_proxy="127.0.0.1:8080")``."""
        return cls(proxy_type=ProxyType.MANUAL, **hosts)

    def to_wire(self) -> dict:
        payload: dict = {"proxyType": self.proxy_type.value}
        if self.proxy_type == ProxyType.PAC and self.proxy_autoconfig_url:
            payload["proxyAutoconfigUrl"] = self.proxy_autoconfig_url
        elif self.proxy_type == ProxyType.MANUAL:
            for name, key in (
                ("ftp_proxy", "ftpProxy"),
                ("http_proxy", "httpProxy"),
                ("ssl_proxy", "sslProxy"),
                ("socks_proxy", "socksProxy"),
            ):
                value = getattr(self, name)
                if value:
                    payload[key] = value
            if self.no_proxy:
                payload["noProxy"] = list(self.no_proxy)
            if self.socks_version is not None:
                payload["socksVersion"] = self.socks_version
        return payload


class Capability(BaseModel):
    """Immutable browser capability.

    Every setter returns a new instance, so capabilities can be built with
    a fluent chain::

        Capability.firefox().headless().with_pref("dom.ipc.processCount", 4)
    """

    model_config = ConfigDict(frozen=True)

    browser: Browser
    platform_name: Optional[str] = None
    arguments: tuple[str, ...] = ()
    prefs: dict[str, Any] = Field(default_factory=dict)
    binary: Optional[str] = None
    env: dict[str, str] = Field(default_factory=dict)
    profile: Optional[str] = None  # base64 zip, Firefox only
    proxy: Optional[Proxy] = None

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def firefox(cls) -> "Capability":
        return cls(browser=Browser.FIREFOX)

    @classmethod
    def chrome(cls) -> "Capability":
        return cls(browser=Browser.CHROME)

    @classmethod
    def edge(cls) -> "Capability":
        return cls(browser=Browser.EDGE)

    @classmethod
    def safari(cls) -> "Capability":
        return cls(browser=Browser.SAFARI)

    @property
    def browser_profile(self) -> BrowserProfile:
        return get_profile(self.browser)

    # =========================================================================
    # Fluent setters
    # =========================================================================

    def with_argument(self, argument: str) -> "Capability":
        return self.model_copy(update={"arguments": self.arguments + (argument,)})

    def with_pref(self, key: str, value: Any) -> "Capability":
        return self.model_copy(update={"prefs": {**self.prefs, key: value}})

    def with_env(self, key: str, value: str) -> "Capability":
        return self.model_copy(update={"env": {**self.env, key: value}})

    def with_binary(self, path: str) -> "Capability":
        return self.model_copy(update={"binary": path})

    def with_platform(self, platform_name: str) -> "Capability":
        return self.model_copy(update={"platform_name": platform_name})

    def with_proxy(self, proxy: Proxy) -> "Capability":
        return self.model_copy(update={"proxy": proxy})

    def headless(self) -> "Capability":
        argument = self.browser_profile.headless_argument
        if argument is None:
            raise ValueError(f"{self.browser.value} has no headless mode")
        return self.with_argument(argument)

    def private(self) -> "Capability":
        argument = self.browser_profile.private_argument
        if argument is None:
            raise ValueError(f"{self.browser.value} has no private mode")
        return self.with_argument(argument)

    # Firefox preference shortcuts

    def disable_css(self) -> "Capability":
        return self._firefox_pref("permissions.default.stylesheet", 2)

    def disable_images(self) -> "Capability":
        return self._firefox_pref("permissions.default.image", 2)

    def disable_javascript(self) -> "Capability":
        return self._firefox_pref("javascript.enabled", False)

    def with_profile_dir(self, directory: Union[str, Path]) -> "Capability":
        """Ship a local Firefox profile directory with the session."""
        if not self.browser_profile.supports_profile:
            raise ValueError(f"{self.browser.value} does not accept a profile")
        return self.model_copy(update={"profile": encode_profile_dir(directory)})

    def _firefox_pref(self, key: str, value: Any) -> "Capability":
        if self.browser != Browser.FIREFOX:
            raise ValueError(f"'{key}' is a Firefox preference")
        return self.with_pref(key, value)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_payload(self) -> dict:
        """Capability object as placed in ``firstMatch``."""
        return self.browser_profile.serialize(self)

    def new_session_body(self) -> str:
        """Pre-serialized body of the new-session request."""
        body = {"capabilities": {"alwaysMatch": {}, "firstMatch": [self.to_payload()]}}
        return json.dumps(body, separators=(",", ":"))
