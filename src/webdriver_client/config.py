"""Connection options for a Driver."""

import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator


class DriverOptions(BaseModel):
    """Where to find the WebDriver endpoint and how long to wait for it.

    Exactly one of ``url`` (remote endpoint) or ``driver_path`` (local driver
    binary to spawn) must be given.
    """

    model_config = ConfigDict(frozen=True)

    url: Optional[str] = Field(default=None, description="Remote WebDriver endpoint")
    driver_path: Optional[str] = Field(default=None, description="Local driver executable")
    driver_env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment merged over the inherited one for the driver process",
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    ready_attempts: int = Field(default=10, ge=1, description="Readiness polls before giving up")
    ready_interval: float = Field(default=0.2, gt=0, description="Seconds between readiness polls")

    @model_validator(mode="after")
    def _exactly_one_endpoint(self) -> "DriverOptions":
        if (self.url is None) == (self.driver_path is None):
            raise ValueError("Exactly one of 'url' or 'driver_path' must be set")
        return self

    @classmethod
    def from_env(cls, **overrides) -> "DriverOptions":
        """Build options from ``WEBDRIVER_*`` variables (and a ``.env`` file
        found from the working directory).

        Reads ``WEBDRIVER_URL``, ``WEBDRIVER_DRIVER_PATH`` and
        ``WEBDRIVER_TIMEOUT``. Keyword arguments win over the environment.
        """
        load_dotenv(find_dotenv(usecwd=True))
        values: dict = {}
        if os.getenv("WEBDRIVER_URL"):
            values["url"] = os.environ["WEBDRIVER_URL"]
        if os.getenv("WEBDRIVER_DRIVER_PATH"):
            values["driver_path"] = os.environ["WEBDRIVER_DRIVER_PATH"]
        if os.getenv("WEBDRIVER_TIMEOUT"):
            values["timeout"] = os.environ["WEBDRIVER_TIMEOUT"]
        values.update(overrides)
        return cls(**values)
