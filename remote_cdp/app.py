"""
remote_cdp/app.py

Start/stop orchestration of Chrome and the proxy in front of it.
"""

import asyncio

from remote_cdp.browser.chrome_launcher import ChromeLauncher
from remote_cdp.data_models.app_config import AppConfig, AppStatus
from remote_cdp.data_models.proxy_config import ProxyConfig
from remote_cdp.proxy.proxy_server import ProxyServer
from remote_cdp.utils.logger import get_logger


logger = get_logger(name=__name__)


class RemoteCdpBrowser:
    """
    Chrome with remote debugging on a local port, exposed through the proxy.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.chrome_launcher = ChromeLauncher(
            port=config.chrome_port,
            headless=config.headless,
        )
        self.proxy_server = ProxyServer(
            ProxyConfig.from_options(
                username=config.proxy_username,
                password=config.proxy_password,
                listen_port=config.proxy_port,
                upstream_host="localhost",
                upstream_port=config.chrome_port,
            )
        )

    async def start(self) -> None:
        """
        Launch Chrome (unless disabled) and then start the proxy.
        On failure everything already started is stopped and the error re-raised.
        """
        logger.info("Starting Remote CDP Browser...")
        logger.info("Chrome CDP Port: %d", self.config.chrome_port)
        logger.info("Proxy Server Port: %d", self.config.proxy_port)
        logger.info("Headless: %s", self.config.headless)
        if self.proxy_server.config.auth_enabled:
            logger.info("Proxy Authentication: %s:***", self.config.proxy_username)
        else:
            logger.info("Proxy Authentication: Disabled")

        try:
            if self.config.launch_browser:
                await asyncio.to_thread(self.chrome_launcher.launch)
            await self.proxy_server.start()
        except Exception:
            logger.exception("Failed to start")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the proxy first, then Chrome. Errors are logged, not raised."""
        logger.info("Shutting down Remote CDP Browser...")
        try:
            if self.proxy_server.is_running():
                await self.proxy_server.stop()
            if self.chrome_launcher.is_running():
                await asyncio.to_thread(self.chrome_launcher.kill)
            logger.info("Shutdown complete")
        except Exception as e:
            logger.error("Error during shutdown: %s", e)

    def get_status(self) -> AppStatus:
        """Current health of Chrome and the proxy."""
        return AppStatus(
            chrome=self.chrome_launcher.is_running(),
            proxy=self.proxy_server.is_running(),
            chrome_url=self.chrome_launcher.cdp_url(),
            proxy_url=self.proxy_server.url(),
        )
