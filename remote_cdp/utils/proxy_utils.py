"""
remote_cdp/utils/proxy_utils.py

Proxy address and request target parsing utilities.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from remote_cdp.utils.exceptions import MalformedConnectTargetError


DEFAULT_CONNECT_PORT = 443


@dataclass
class ConnectTarget:
    """Parsed CONNECT request target."""
    host: str
    port: int

    @property
    def host_port(self) -> str:
        """The target formatted as host:port."""
        return f"{self.host}:{self.port}"


def parse_connect_target(target: str) -> ConnectTarget:
    """
    Parse a CONNECT request target into its components.

    Supported formats:
    - "host:port"   -> ConnectTarget("host", port)
    - "host"        -> ConnectTarget("host", 443)
    - "[::1]:8443"  -> ConnectTarget("::1", 8443)

    Args:
        target: Raw request target from the CONNECT request line.

    Returns:
        ConnectTarget with parsed components.

    Raises:
        MalformedConnectTargetError: If the host is missing or the port is invalid.
    """
    addr = target.strip()
    if not addr or "/" in addr or "@" in addr:
        raise MalformedConnectTargetError(f"Invalid CONNECT target: {target!r}")

    # Normalize: add scheme for urlparse to work correctly
    parsed = urlparse(f"http://{addr}")

    try:
        port = parsed.port
    except ValueError as e:
        raise MalformedConnectTargetError(f"Invalid CONNECT target port: {target!r}") from e

    if not parsed.hostname:
        raise MalformedConnectTargetError(f"Invalid CONNECT target host: {target!r}")

    return ConnectTarget(
        host=parsed.hostname,
        port=port if port is not None else DEFAULT_CONNECT_PORT,
    )



def is_authority_form(target: str) -> bool:
    """
    Whether a raw request target has the host[:port] shape of a CONNECT target,
    as opposed to origin-form ("/path") or absolute-form ("http://host/path").
    """
    return (
        bool(target)
        and not target.startswith("/")
        and "://" not in target
        and not any(char.isspace() for char in target)
    )
