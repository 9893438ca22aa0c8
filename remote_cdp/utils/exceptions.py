"""
remote_cdp/utils/exceptions.py

Custom exceptions for the project.
"""

class MalformedConnectTargetError(Exception):
    """
    Exception raised when a CONNECT request target is not a valid host[:port].
    """
    pass


class ChromeNotFoundError(Exception):
    """
    Exception raised when no Chrome/Chromium executable can be located.
    """
    pass


class ChromeLaunchError(Exception):
    """
    Exception raised when Chrome exits during startup or its debugging
    endpoint does not become reachable in time.
    """
    pass
