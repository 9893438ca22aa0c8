"""
remote_cdp/proxy/connect_responder.py

Answers CONNECT requests.

The reply acknowledges the tunnel but no bytes are relayed to the target
afterwards, so clients expecting a working TLS tunnel will not get one.
"""

from aiohttp import web

from remote_cdp.proxy.responses import bad_gateway
from remote_cdp.utils.exceptions import MalformedConnectTargetError
from remote_cdp.utils.logger import get_logger
from remote_cdp.utils.proxy_utils import parse_connect_target


logger = get_logger(name=__name__)


class ConnectResponder:
    """Acknowledges CONNECT without opening a tunnel."""

    async def respond(self, request: web.BaseRequest) -> web.Response:
        """
        Reply 200 Connection Established for a well-formed host[:port] target.
        Args:
            request: The CONNECT request. Its raw target is the authority.
        Returns:
            web.Response: 200, or 502 if the target cannot be parsed.
        """
        try:
            target = parse_connect_target(request.raw_path)
        except MalformedConnectTargetError as e:
            logger.error("Error handling CONNECT: %s", e)
            return bad_gateway()

        logger.info("CONNECT %s", target.host_port)
        return web.Response(status=200, reason="Connection Established")
