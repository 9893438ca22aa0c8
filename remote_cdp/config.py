"""
remote_cdp/config.py

Environment variable configuration.

Contains:
- Config: Centralized settings from environment variables
- LOG_LEVEL, PROXY_USERNAME, CHROME_PATH, etc.
"""

import logging
import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()

# aiohttp access logs are noisy for a proxy that sees every CDP poll
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class Config():
    """
    Centralized configuration for environment variables.
    """

    # logging configuration
    LOG_LEVEL: int = logging.getLevelNamesMapping().get(
        os.getenv("LOG_LEVEL", "INFO").upper(),
        logging.INFO
    )
    LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "[%(asctime)s] %(levelname)s:%(name)s:%(message)s")

    # proxy credentials (only used when not given on the command line)
    PROXY_USERNAME: str | None = os.getenv("PROXY_USERNAME")
    PROXY_PASSWORD: str | None = os.getenv("PROXY_PASSWORD")

    # static test page served at / and /index.html
    TEST_PAGE_PATH: str | None = os.getenv("TEST_PAGE_PATH")

    # browser process configuration
    CHROME_PATH: str | None = os.getenv("CHROME_PATH")
    CHROME_USER_DATA_DIR: str = os.getenv("CHROME_USER_DATA_DIR", "/tmp/chrome-cdp")
    CHROME_STARTUP_TIMEOUT: float = float(os.getenv("CHROME_STARTUP_TIMEOUT", "15"))
    CHROME_SHUTDOWN_TIMEOUT: float = float(os.getenv("CHROME_SHUTDOWN_TIMEOUT", "5"))
    DOCKER_CONTAINER: bool = os.getenv("DOCKER_CONTAINER", "").lower() == "true"

    @classmethod
    def as_dict(cls) -> dict[str, Any]:
        """
        Return a dictionary of all UPPERCASE class attributes and their values.
        Return:
            dict[str, Any]: A dictionary of all UPPERCASE class attributes and their values.
        """
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper()
        }
