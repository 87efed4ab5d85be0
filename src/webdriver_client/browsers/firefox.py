"""Firefox profile (geckodriver)."""

import base64
import io
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, Union

from ..models import Browser
from .base import BrowserProfile

if TYPE_CHECKING:
    from ..capabilities import Capability

# Left behind by a running Firefox; geckodriver refuses a locked profile
_LOCK_FILES = (".parentlock", "parent.lock")


def encode_profile_dir(directory: Union[str, Path]) -> str:
    """Zip a Firefox profile directory and return it base64-encoded.

    The directory is copied first so lock files and the extensions cache can
    be dropped without touching the user's profile.
    """
    source = Path(directory)
    if not source.is_dir():
        raise ValueError(f"Profile directory '{source}' does not exist")

    with tempfile.TemporaryDirectory(prefix="webdriver-profile-") as tmp:
        copy = Path(tmp) / "profile"
        shutil.copytree(source, copy)
        for name in _LOCK_FILES:
            (copy / name).unlink(missing_ok=True)
        shutil.rmtree(copy / "extensions.cache", ignore_errors=True)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
            for path in sorted(copy.rglob("*")):
                if path.is_file():
                    archive.write(path, path.relative_to(copy).as_posix())

    return base64.b64encode(buffer.getvalue()).decode("ascii")


class FirefoxProfile(BrowserProfile):
    browser = Browser.FIREFOX
    vendor_key = "moz:firefoxOptions"
    headless_argument = "-headless"
    private_argument = "--private-window"
    supports_profile = True

    def port_args(self, port: int) -> list[str]:
        return ["--port", str(port)]

    def vendor_options(self, capability: "Capability") -> dict:
        options = super().vendor_options(capability)
        if capability.profile:
            options["profile"] = capability.profile
        return options
