"""
remote_cdp/proxy/websocket_relay.py

WebSocket relay between a remote client and the local debugging endpoint.

Contains:
- RelaySession: one client socket paired with one upstream socket
- WebSocketRelay: upgrades inbound requests and runs a RelaySession per connection
- sendable_close_code(): maps close codes onto ones a close frame may carry

Frames are relayed opaquely: text stays text, binary stays binary, and
nothing is parsed. Each direction runs in its own task and awaits every
send before reading the next frame, so per-direction order is preserved.
"""

import asyncio

from aiohttp import WSMsgType, web
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from remote_cdp.data_models.proxy_config import ProxyConfig
from remote_cdp.data_models.relay_session import RelaySessionState
from remote_cdp.proxy.responses import plain_text_response
from remote_cdp.utils.logger import get_logger


logger = get_logger(name=__name__)


INTERNAL_ERROR_CODE = 1011
NORMAL_CLOSURE_CODE = 1000
UPSTREAM_ERROR_REASON = "Upstream WebSocket error"

# reserved codes that must never appear in a close frame
_UNSENDABLE_CLOSE_CODES = frozenset({1004, 1005, 1006, 1015})


def sendable_close_code(code: int | None) -> int:
    """
    Return code unchanged if a close frame may carry it, otherwise 1000.
    Args:
        code: Close code observed on one side of the relay.
    Returns:
        int: Code to send to the other side.
    """
    if code is None or code in _UNSENDABLE_CLOSE_CODES:
        return NORMAL_CLOSURE_CODE
    if 1000 <= code <= 1014 or 3000 <= code <= 4999:
        return code
    return NORMAL_CLOSURE_CODE


class RelaySession:
    """
    A client socket paired with an upstream socket.

    The session owns both sockets. Closing either side closes the other with
    the same code and reason; an upstream failure closes the client with 1011.
    Frames arriving while the other side is not open are dropped.
    """

    def __init__(self, client_ws: web.WebSocketResponse, upstream_url: str) -> None:
        self.client_ws = client_ws
        self.upstream_url = upstream_url
        self.upstream_ws: ClientConnection | None = None
        self.state = RelaySessionState.CONNECTING

    async def run(self) -> None:
        """Connect upstream and relay frames until either side closes."""
        client_task = asyncio.create_task(self._relay_client_to_upstream())

        try:
            self.upstream_ws = await connect(
                self.upstream_url,
                max_size=None,
                ping_interval=None,
                ping_timeout=None,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            logger.error("Upstream WebSocket %s unreachable: %s", self.upstream_url, e)
            if self.state is RelaySessionState.CONNECTING:
                self.state = RelaySessionState.CLOSING
                await self._close_client(INTERNAL_ERROR_CODE, UPSTREAM_ERROR_REASON)
            self.state = RelaySessionState.CLOSED
            await client_task
            return

        if self.state is not RelaySessionState.CONNECTING:
            # the client went away while the upstream handshake was in flight
            logger.info("Client left before %s opened, closing upstream", self.upstream_url)
            await self.upstream_ws.close()
            await client_task
            return

        self.state = RelaySessionState.OPEN
        logger.info("Connected to upstream WebSocket: %s", self.upstream_url)
        upstream_task = asyncio.create_task(self._relay_upstream_to_client())

        # whichever side closes first closes the other, which ends the remaining direction
        results = await asyncio.gather(client_task, upstream_task, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("WebSocket relay for %s failed: %s", self.upstream_url, result)
        self.state = RelaySessionState.CLOSED

    # Directions __________________________________________________________________________________

    async def _relay_client_to_upstream(self) -> None:
        while True:
            msg = await self.client_ws.receive()

            if msg.type == WSMsgType.TEXT or msg.type == WSMsgType.BINARY:
                await self._send_upstream(msg.data)
            elif msg.type == WSMsgType.CLOSE:
                await self._on_client_close(msg.data, msg.extra or "")
                return
            elif msg.type == WSMsgType.ERROR:
                logger.warning("Client WebSocket error: %s", self.client_ws.exception())
                await self._on_client_close(self.client_ws.close_code, "")
                return
            elif msg.type in (WSMsgType.CLOSING, WSMsgType.CLOSED):
                # closed by the upstream side or the transport went away
                if self.state in (RelaySessionState.CONNECTING, RelaySessionState.OPEN):
                    await self._on_client_close(self.client_ws.close_code, "")
                return

    async def _relay_upstream_to_client(self) -> None:
        assert self.upstream_ws is not None
        try:
            async for message in self.upstream_ws:
                await self._send_client(message)
        except ConnectionClosed:
            pass

        if self.state is not RelaySessionState.OPEN:
            return
        self.state = RelaySessionState.CLOSING

        close_rcvd = self.upstream_ws.protocol.close_rcvd
        if close_rcvd is None:
            logger.error("Upstream WebSocket %s failed without a close frame", self.upstream_url)
            await self._close_client(INTERNAL_ERROR_CODE, UPSTREAM_ERROR_REASON)
        else:
            logger.info("Upstream WebSocket closed: %s %s", close_rcvd.code, close_rcvd.reason)
            await self._close_client(sendable_close_code(close_rcvd.code), close_rcvd.reason)
        self.state = RelaySessionState.CLOSED

    # Sending _____________________________________________________________________________________

    async def _send_upstream(self, data: str | bytes) -> None:
        if (
            self.state is not RelaySessionState.OPEN
            or self.upstream_ws is None
            or self.upstream_ws.state is not State.OPEN
        ):
            logger.warning("Upstream WebSocket not ready, dropping message")
            return
        try:
            await self.upstream_ws.send(data)
        except ConnectionClosed:
            logger.warning("Upstream WebSocket closed mid-send, dropping message")

    async def _send_client(self, data: str | bytes) -> None:
        if self.state is not RelaySessionState.OPEN or self.client_ws.closed:
            logger.warning("Client WebSocket not open, dropping message")
            return
        try:
            if isinstance(data, str):
                await self.client_ws.send_str(data)
            else:
                await self.client_ws.send_bytes(data)
        except ConnectionResetError:
            logger.warning("Client WebSocket reset mid-send, dropping message")

    # Closing _____________________________________________________________________________________

    async def _on_client_close(self, code: int | None, reason: str) -> None:
        logger.info("Client WebSocket closed: %s %s", code, reason)
        previous_state = self.state
        self.state = RelaySessionState.CLOSING

        if previous_state is RelaySessionState.OPEN and self.upstream_ws is not None:
            try:
                await self.upstream_ws.close(code=sendable_close_code(code), reason=reason)
            except WebSocketException as e:
                logger.error("Error closing upstream WebSocket: %s", e)

        # finish the closing handshake with the client
        await self._close_client(sendable_close_code(code), reason)
        self.state = RelaySessionState.CLOSED

    async def _close_client(self, code: int, reason: str) -> None:
        if self.client_ws.closed:
            return
        await self.client_ws.close(code=code, message=reason.encode())


class WebSocketRelay:
    """Upgrades inbound connections and relays them to the debugging endpoint."""

    def __init__(self, config: ProxyConfig) -> None:
        self.config = config

    def upstream_url_for(self, request: web.BaseRequest) -> str:
        """ws:// URL on the upstream with the inbound path and query."""
        rel_url = request.rel_url
        path_qs = rel_url.raw_path
        if rel_url.raw_query_string:
            path_qs = f"{path_qs}?{rel_url.raw_query_string}"
        return f"ws://{self.config.upstream_authority}{path_qs}"

    async def handle(self, request: web.BaseRequest) -> web.StreamResponse:
        """
        Upgrade the request and run its relay session until closure.
        Args:
            request: Inbound request carrying Upgrade: websocket.
        Returns:
            web.StreamResponse: The finished WebSocket response, or 400 if the upgrade fails.
        """
        upstream_url = self.upstream_url_for(request)
        logger.info("WebSocket %s -> %s", request.rel_url.path, upstream_url)

        client_ws = web.WebSocketResponse(autoclose=False, max_msg_size=0)
        if not client_ws.can_prepare(request).ok:
            return plain_text_response(400, "WebSocket upgrade failed")
        try:
            await client_ws.prepare(request)
        except web.HTTPException as e:
            logger.warning("WebSocket upgrade rejected: %s", e)
            return plain_text_response(400, "WebSocket upgrade failed")

        await RelaySession(client_ws, upstream_url).run()
        return client_ws
