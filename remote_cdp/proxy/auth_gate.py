"""
remote_cdp/proxy/auth_gate.py

Proxy credential check for inbound requests.
"""

import base64
import binascii
import hmac

from aiohttp import web

from remote_cdp.data_models.proxy_config import ProxyCredentials
from remote_cdp.proxy.responses import plain_text_response


PROXY_AUTHORIZATION_HEADER = "Proxy-Authorization"
PROXY_AUTHENTICATE_CHALLENGE = 'Basic realm="Proxy"'


class AuthGate:
    """
    Decides whether a request carries valid Basic proxy credentials.
    With no credentials configured every request is allowed.
    """

    def __init__(self, credentials: ProxyCredentials | None) -> None:
        self._expected: bytes | None = None
        if credentials is not None:
            self._expected = f"{credentials.username}:{credentials.password}".encode()

    def check(self, request: web.BaseRequest) -> bool:
        """
        Check the Proxy-Authorization header of a request.
        Args:
            request: Inbound request.
        Returns:
            bool: True if the request may proceed.
        """
        if self._expected is None:
            return True

        auth_header = request.headers.get(PROXY_AUTHORIZATION_HEADER)
        if not auth_header:
            return False

        scheme, _, token = auth_header.partition(" ")
        if scheme != "Basic" or not token:
            return False

        try:
            decoded = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError):
            return False

        return hmac.compare_digest(decoded, self._expected)


def auth_required_response() -> web.Response:
    """407 with the Basic challenge."""
    return plain_text_response(
        407,
        "Proxy Authentication Required",
        headers={"Proxy-Authenticate": PROXY_AUTHENTICATE_CHALLENGE},
    )
