"""
remote_cdp/data_models/app_config.py

Settings and status models for the top-level application.
"""

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """Settings for launching Chrome and the proxy together."""
    chrome_port: int = Field(default=9222, ge=1, le=65535, description="Chrome remote debugging port")
    proxy_port: int = Field(default=8080, ge=0, le=65535, description="Proxy listen port")
    headless: bool = Field(default=False, description="Run Chrome headless")
    launch_browser: bool = Field(default=True, description="Launch Chrome, or proxy one that is already running")
    proxy_username: str | None = Field(default=None, description="Proxy authentication username")
    proxy_password: str | None = Field(default=None, description="Proxy authentication password")


class AppStatus(BaseModel):
    """Health snapshot of the running application."""
    chrome: bool
    proxy: bool
    chrome_url: str
    proxy_url: str
