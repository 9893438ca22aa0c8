"""
remote_cdp/proxy/http_forwarder.py

Forwards plain HTTP requests and streams the upstream response back.

Two modes:
- reverse proxy: origin-form targets ("/json/version") go to the configured debugging endpoint
- forward proxy: absolute-form targets ("http://example.com/") go to that URL unchanged
"""

from collections.abc import Mapping
from urllib.parse import urlparse

import aiohttp
from aiohttp import web

from remote_cdp.data_models.proxy_config import ProxyConfig
from remote_cdp.proxy.responses import ALLOW_ORIGIN_HEADER, bad_gateway
from remote_cdp.utils.logger import get_logger


logger = get_logger(name=__name__)


CORS_HEADERS: dict[str, str] = {
    ALLOW_ORIGIN_HEADER: "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "*",
}

# aiohttp must not invent these; the client's own headers are forwarded as-is
SKIP_AUTO_HEADERS = ("User-Agent", "Accept", "Accept-Encoding", "Content-Type")

# bodies are re-framed on each hop, chunk boundaries are not preserved
REFRAMED_HEADERS = ("Transfer-Encoding",)

STREAM_CHUNK_SIZE = 65536


def is_absolute_target(raw_target: str) -> bool:
    """Whether a request target is an absolute http(s) URL."""
    return urlparse(raw_target).scheme in ("http", "https")


def filter_request_headers(headers: Mapping[str, str]) -> list[tuple[str, str]]:
    """
    Drop proxy-to-proxy headers (any name starting with "proxy-") and
    framing headers, since aiohttp re-frames the forwarded body.
    Args:
        headers: Inbound request headers.
    Returns:
        list[tuple[str, str]]: Remaining headers in their original order.
    """
    reframed = {name.lower() for name in REFRAMED_HEADERS}
    return [
        (name, value)
        for name, value in headers.items()
        if not name.lower().startswith("proxy-") and name.lower() not in reframed
    ]


class HttpForwarder:
    """
    Forwards one request, at most once, and relays the response verbatim.
    Responses from the debugging endpoint get permissive CORS headers.
    """

    def __init__(self, config: ProxyConfig) -> None:
        self.config = config
        self.upstream_base_url = f"http://{config.upstream_authority}"

    def resolve_target_url(self, raw_target: str) -> str:
        """
        Resolve the URL a request should be forwarded to.
        Args:
            raw_target: Request target exactly as it appeared on the request line.
        Returns:
            str: Absolute targets unchanged, otherwise path+query on the upstream.
        """
        if is_absolute_target(raw_target):
            return raw_target
        if not raw_target.startswith("/"):
            raw_target = f"/{raw_target}"
        return f"{self.upstream_base_url}{raw_target}"

    def targets_upstream(self, target_url: str) -> bool:
        """Whether a resolved URL points at the configured debugging endpoint."""
        parsed = urlparse(target_url)
        try:
            port = parsed.port or (443 if parsed.scheme == "https" else 80)
        except ValueError:
            return False
        return (
            parsed.hostname == self.config.upstream_host.lower()
            and port == self.config.upstream_port
        )

    async def forward(self, request: web.BaseRequest) -> web.StreamResponse:
        """
        Forward a request and stream the upstream response back to the client.
        Args:
            request: Inbound non-upgrade request.
        Returns:
            web.StreamResponse: Upstream status, reason and headers (plus CORS), or 502.
        """
        target_url = self.resolve_target_url(request.raw_path)
        logger.info("%s %s -> %s", request.method, request.raw_path, target_url)

        forward_headers = filter_request_headers(request.headers)
        body = request.content if request.body_exists else None

        session = aiohttp.ClientSession(
            auto_decompress=False,
            skip_auto_headers=SKIP_AUTO_HEADERS,
            timeout=aiohttp.ClientTimeout(total=None),
        )
        try:
            try:
                upstream_response = await session.request(
                    request.method,
                    target_url,
                    headers=forward_headers,
                    data=body,
                    allow_redirects=False,
                )
            except (aiohttp.ClientError, OSError, ValueError) as e:
                logger.error("Error handling HTTP proxy for %s: %s", target_url, e)
                return bad_gateway()

            async with upstream_response:
                response = web.StreamResponse(
                    status=upstream_response.status,
                    reason=upstream_response.reason,
                    headers=upstream_response.headers,
                )
                for name in REFRAMED_HEADERS:
                    response.headers.popall(name, None)
                if self.targets_upstream(target_url):
                    response.headers.update(CORS_HEADERS)

                await response.prepare(request)
                try:
                    async for chunk in upstream_response.content.iter_chunked(STREAM_CHUNK_SIZE):
                        await response.write(chunk)
                except (aiohttp.ClientError, ConnectionResetError) as e:
                    # status line already sent, the client sees a truncated body
                    logger.warning("Upstream response for %s ended early: %s", target_url, e)
                    return response
                await response.write_eof()
                return response
        finally:
            await session.close()
