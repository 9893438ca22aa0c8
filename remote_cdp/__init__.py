"""
remote_cdp

Remote access to a local Chrome DevTools Protocol endpoint through an
authenticating HTTP/WebSocket proxy.
"""
