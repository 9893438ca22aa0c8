"""
remote_cdp/browser

Browser process management for the debugging endpoint.
"""

from remote_cdp.browser.chrome_launcher import ChromeLauncher

__all__ = ["ChromeLauncher"]
