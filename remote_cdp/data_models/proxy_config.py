"""
remote_cdp/data_models/proxy_config.py

Immutable settings for the proxy server.

Contains:
- ProxyCredentials: username/password pair required in Proxy-Authorization
- ProxyConfig: listen port, upstream host/port, optional credentials
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from remote_cdp.config import Config


DEFAULT_TEST_PAGE_PATH = Path(__file__).resolve().parent.parent / "static" / "test-websocket.html"


class ProxyCredentials(BaseModel):
    """Basic proxy credentials. Compared byte-exact against Proxy-Authorization."""
    model_config = ConfigDict(frozen=True)

    username: str = Field(description="Proxy username")
    password: str = Field(description="Proxy password")


class ProxyConfig(BaseModel):
    """
    Proxy settings, created once at startup and shared read-only by all sessions.
    Presence of credentials toggles authentication.
    """
    model_config = ConfigDict(frozen=True)

    listen_host: str = Field(default="0.0.0.0", description="Interface the proxy binds to")
    listen_port: int = Field(default=8080, ge=0, le=65535, description="Proxy port (0 picks a free port)")
    upstream_host: str = Field(default="localhost", description="Debugging endpoint host")
    upstream_port: int = Field(default=9222, ge=1, le=65535, description="Debugging endpoint port")
    credentials: ProxyCredentials | None = Field(default=None, description="Required proxy credentials, if any")
    test_page_path: Path = Field(
        default_factory=lambda: Path(Config.TEST_PAGE_PATH) if Config.TEST_PAGE_PATH else DEFAULT_TEST_PAGE_PATH,
        description="HTML file served at / and /index.html",
    )

    @classmethod
    def from_options(
        cls,
        username: str | None = None,
        password: str | None = None,
        **kwargs,
    ) -> "ProxyConfig":
        """
        Build a config, enabling authentication only if both username and password are set.
        Args:
            username: Optional proxy username.
            password: Optional proxy password.
            **kwargs: Remaining ProxyConfig fields.
        Returns:
            ProxyConfig: The constructed config.
        """
        credentials = None
        if username and password:
            credentials = ProxyCredentials(username=username, password=password)
        return cls(credentials=credentials, **kwargs)

    @property
    def upstream_authority(self) -> str:
        """Upstream host:port."""
        return f"{self.upstream_host}:{self.upstream_port}"

    @property
    def auth_enabled(self) -> bool:
        """Whether requests must carry proxy credentials."""
        return self.credentials is not None
