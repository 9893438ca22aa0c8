"""
remote_cdp/proxy/proxy_server.py

Single listening endpoint in front of the debugging endpoint.

Every request passes the AuthGate once and is then dispatched to exactly one of:
- the static test page (/ and /index.html)
- ConnectResponder (CONNECT)
- WebSocketRelay (Upgrade: websocket)
- HttpForwarder (everything else)
"""

import asyncio

from aiohttp import web
from aiohttp.http_exceptions import InvalidURLError

from remote_cdp.data_models.proxy_config import ProxyConfig
from remote_cdp.proxy.auth_gate import AuthGate, auth_required_response
from remote_cdp.proxy.connect_responder import ConnectResponder
from remote_cdp.proxy.http_forwarder import HttpForwarder
from remote_cdp.proxy.responses import ALLOW_ORIGIN_HEADER, bad_gateway, plain_text_response
from remote_cdp.proxy.websocket_relay import WebSocketRelay
from remote_cdp.utils.logger import get_logger
from remote_cdp.utils.proxy_utils import is_authority_form


logger = get_logger(name=__name__)


TEST_PAGE_PATHS = frozenset({"/", "/index.html"})


class ProxyRequestHandler(web.RequestHandler):
    """
    Connection handler that answers CONNECT targets rejected by the HTTP parser
    (bad port, missing host) with 502 like any other malformed CONNECT target.
    Other parse errors keep aiohttp's 400.
    """

    def handle_error(
        self,
        request: web.BaseRequest,
        status: int = 500,
        exc: BaseException | None = None,
        message: str | None = None,
    ) -> web.StreamResponse:
        if isinstance(exc, InvalidURLError) and is_authority_form(exc.message):
            logger.error("Error handling CONNECT: invalid target %r", exc.message)
            response = bad_gateway()
            response.force_close()
            return response
        return super().handle_error(request, status, exc, message)


class ProxyServer:
    """
    Owns the listening socket and routes each inbound request.

    start() and stop() are idempotent. stop() only closes the listening
    socket; relay sessions already running continue until they close.
    """

    def __init__(self, config: ProxyConfig) -> None:
        self.config = config
        self.auth_gate = AuthGate(config.credentials)
        self.http_forwarder = HttpForwarder(config)
        self.connect_responder = ConnectResponder()
        self.websocket_relay = WebSocketRelay(config)

        self._server: asyncio.Server | None = None
        self._start_lock = asyncio.Lock()
        self._bound_port: int | None = None

    async def start(self) -> None:
        """
        Bind the configured port and start accepting connections.
        Raises:
            OSError: If the port cannot be bound.
        """
        # overlapping calls wait here, then see the server the first one bound
        async with self._start_lock:
            if self._server is not None:
                logger.info("Proxy server is already running")
                return

            logger.info("Starting proxy server on port %d...", self.config.listen_port)
            logger.info("Forwarding requests to %s", self.config.upstream_authority)

            loop = asyncio.get_running_loop()
            web_server = web.Server(self._handle_request)
            self._server = await loop.create_server(
                lambda: ProxyRequestHandler(web_server, loop=loop),
                self.config.listen_host,
                self.config.listen_port,
            )
            self._bound_port = self._server.sockets[0].getsockname()[1]
            logger.info("Proxy server started at %s", self.url())

    async def stop(self) -> None:
        """Close the listening socket without waiting for open sessions."""
        if self._server is None:
            return

        logger.info("Stopping proxy server...")
        self._server.close()
        self._server = None
        logger.info("Proxy server stopped")

    def is_running(self) -> bool:
        """Whether the listening socket is open."""
        return self._server is not None

    @property
    def port(self) -> int:
        """Bound port while running (or last bound), else the configured port."""
        return self._bound_port if self._bound_port is not None else self.config.listen_port

    def url(self) -> str:
        """Base URL of the proxy."""
        return f"http://localhost:{self.port}"

    # Dispatch ____________________________________________________________________________________

    async def _handle_request(self, request: web.BaseRequest) -> web.StreamResponse:
        try:
            if not self.auth_gate.check(request):
                logger.info("Authentication failed for %s %s", request.method, request.raw_path)
                return auth_required_response()

            # origin-form targets only, absolute-form ones are forward-proxy requests
            if request.raw_path.startswith("/") and request.rel_url.path in TEST_PAGE_PATHS:
                return self._serve_test_page()

            if request.method == "CONNECT":
                return await self.connect_responder.respond(request)

            if request.headers.get("Upgrade", "").lower() == "websocket":
                return await self.websocket_relay.handle(request)

            return await self.http_forwarder.forward(request)

        except Exception:
            logger.exception("Error forwarding request %s %s", request.method, request.raw_path)
            return bad_gateway("Proxy Error: Unable to forward request")

    def _serve_test_page(self) -> web.Response:
        try:
            html = self.config.test_page_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Error serving test interface: %s", e)
            return plain_text_response(404, "Test interface not found")

        return web.Response(
            text=html,
            content_type="text/html",
            headers={ALLOW_ORIGIN_HEADER: "*"},
        )
