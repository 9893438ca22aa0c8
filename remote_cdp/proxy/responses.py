"""
remote_cdp/proxy/responses.py

Plain-text responses shared by the proxy handlers.
"""

from aiohttp import web


ALLOW_ORIGIN_HEADER = "Access-Control-Allow-Origin"


def plain_text_response(
    status: int,
    text: str,
    reason: str | None = None,
    headers: dict[str, str] | None = None,
) -> web.Response:
    """
    Build a text/plain response that browsers on other origins may read.
    Args:
        status: HTTP status code.
        text: Response body.
        reason: Optional status text (defaults to the standard phrase).
        headers: Extra headers.
    Returns:
        web.Response: The response.
    """
    return web.Response(
        status=status,
        reason=reason,
        text=text,
        content_type="text/plain",
        headers={ALLOW_ORIGIN_HEADER: "*", **(headers or {})},
    )


def bad_gateway(text: str = "Bad Gateway") -> web.Response:
    """502 with a plain-text body."""
    return plain_text_response(502, text)
