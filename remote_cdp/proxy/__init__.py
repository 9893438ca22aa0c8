"""
remote_cdp/proxy

HTTP/WebSocket proxy in front of a local Chrome DevTools Protocol endpoint.
"""

from remote_cdp.proxy.proxy_server import ProxyServer

__all__ = ["ProxyServer"]
