"""
tests/conftest.py

Configuration for pytest.
"""

import asyncio
import base64
import json
import socket
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer

from remote_cdp.data_models.proxy_config import ProxyConfig
from remote_cdp.proxy.proxy_server import ProxyServer


@dataclass
class UpstreamRecorder:
    """What the fake debugging endpoint saw."""
    http_requests: list[dict[str, Any]] = field(default_factory=list)
    ws_paths: list[str] = field(default_factory=list)
    ws_messages: list[str | bytes] = field(default_factory=list)
    ws_close: list[tuple[int | None, str]] = field(default_factory=list)
    ws_closed: asyncio.Event = field(default_factory=asyncio.Event)
    messages_seen: asyncio.Event = field(default_factory=asyncio.Event)
    expected_messages: int = 0

    def record_message(self, data: str | bytes) -> None:
        self.ws_messages.append(data)
        if self.expected_messages and len(self.ws_messages) >= self.expected_messages:
            self.messages_seen.set()


def _build_upstream_app(recorder: UpstreamRecorder) -> web.Application:
    """
    Fake Chrome debugging endpoint.

    HTTP:
        /json/version  CDP version document
        /echo          returns the method, headers and body it received
        /teapot        418 with a custom reason phrase
    WebSocket (/devtools/...):
        sends "ready" once open, answers CDP commands with {"id": n, "result": {}},
        "burst:N" sends N numbered frames, binary frames are echoed,
        "close:<code>:<reason>" closes, "drop" kills the TCP connection
    """

    async def json_version(request: web.Request) -> web.Response:
        return web.json_response(
            {"Browser": "HeadlessChrome/120.0.0.0", "Protocol-Version": "1.3"},
            headers={"X-Upstream": "chrome"},
        )

    async def echo(request: web.Request) -> web.Response:
        body = await request.read()
        entry = {
            "method": request.method,
            "path_qs": request.path_qs,
            "headers": list(request.headers.items()),
            "body": body.hex(),
        }
        recorder.http_requests.append(entry)
        return web.json_response(entry, headers={"X-Echo": "1"})

    async def teapot(request: web.Request) -> web.Response:
        return web.Response(
            status=418,
            reason="Short And Stout",
            text="tea",
            headers={"X-Teapot": "yes", "Access-Control-Allow-Origin": "https://upstream.example"},
        )

    async def devtools(request: web.Request) -> web.WebSocketResponse:
        recorder.ws_paths.append(request.path_qs)
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_str("ready")

        while True:
            msg = await ws.receive()
            if msg.type == WSMsgType.CLOSE:
                recorder.ws_close.append((msg.data, msg.extra or ""))
                break
            if msg.type in (WSMsgType.CLOSING, WSMsgType.CLOSED, WSMsgType.ERROR):
                break
            if msg.type == WSMsgType.BINARY:
                recorder.record_message(msg.data)
                await ws.send_bytes(msg.data)
                continue
            if msg.type != WSMsgType.TEXT:
                continue

            recorder.record_message(msg.data)
            if msg.data.startswith("burst:"):
                for i in range(int(msg.data.split(":")[1])):
                    await ws.send_str(f"frame-{i}")
            elif msg.data.startswith("close:"):
                _, code, reason = msg.data.split(":", 2)
                await ws.close(code=int(code), message=reason.encode())
            elif msg.data == "drop":
                assert request.transport is not None
                request.transport.close()
                break
            elif msg.data.startswith("{"):
                command = json.loads(msg.data)
                if "method" in command:
                    await ws.send_str(json.dumps({"id": command["id"], "result": {}}, separators=(",", ":")))

        recorder.ws_closed.set()
        return ws

    app = web.Application()
    app.router.add_get("/json/version", json_version)
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/teapot", teapot)
    app.router.add_get("/devtools/{tail:.*}", devtools)
    return app


@pytest.fixture
def fake_upstream() -> Callable[[], AbstractAsyncContextManager[tuple[TestServer, UpstreamRecorder]]]:
    """
    Factory for a running fake debugging endpoint on 127.0.0.1.

    Usage:
        async with fake_upstream() as (upstream, recorder):
            ...
    """

    @asynccontextmanager
    async def factory() -> AsyncIterator[tuple[TestServer, UpstreamRecorder]]:
        recorder = UpstreamRecorder()
        async with TestServer(_build_upstream_app(recorder), host="127.0.0.1") as server:
            yield server, recorder

    return factory


@pytest.fixture
def make_proxy_config() -> Callable[..., ProxyConfig]:
    """
    Factory fixture for a ProxyConfig bound to an ephemeral loopback port.

    Usage:
        config = make_proxy_config(upstream_port=upstream.port)
        config = make_proxy_config(upstream_port=..., username="user", password="pass")
    """

    def factory(upstream_port: int, username: str | None = None, password: str | None = None, **kwargs: Any) -> ProxyConfig:
        defaults = {
            "listen_host": "127.0.0.1",
            "listen_port": 0,
            "upstream_host": "127.0.0.1",
            "upstream_port": upstream_port,
        }
        return ProxyConfig.from_options(username=username, password=password, **{**defaults, **kwargs})

    return factory


@pytest.fixture
def running_proxy() -> Callable[[ProxyConfig], AbstractAsyncContextManager[ProxyServer]]:
    """
    Factory for a started ProxyServer that is stopped on exit.

    Usage:
        async with running_proxy(config) as proxy:
            url = f"http://127.0.0.1:{proxy.port}"
    """

    @asynccontextmanager
    async def factory(config: ProxyConfig) -> AsyncIterator[ProxyServer]:
        server = ProxyServer(config)
        await server.start()
        try:
            yield server
        finally:
            await server.stop()

    return factory


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def html_page(tmp_path: Path) -> Path:
    """A small HTML file to serve as the test interface."""
    page = tmp_path / "test-websocket.html"
    page.write_text("<html><body>cdp test page</body></html>", encoding="utf-8")
    return page


@pytest.fixture
def basic_auth_value() -> Callable[[str, str], str]:
    """
    Factory for a Basic credential value as sent in Proxy-Authorization.

    Usage:
        headers = {"Proxy-Authorization": basic_auth_value("user", "pass")}
    """

    def factory(username: str, password: str) -> str:
        token = base64.b64encode(f"{username}:{password}".encode()).decode()
        return f"Basic {token}"

    return factory
