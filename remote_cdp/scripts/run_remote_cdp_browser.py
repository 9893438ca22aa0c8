"""
Launch Chrome with remote debugging and expose it through the proxy.

Usage:
    remote-cdp
    remote-cdp --chrome-port 9223 --proxy-port 8081
    remote-cdp --headless true
    remote-cdp --proxy-username user --proxy-password pass
    remote-cdp --no-launch --chrome-port 9222     # proxy an already-running Chrome

PROXY_USERNAME / PROXY_PASSWORD are used when the flags are not given.
"""

import argparse
import asyncio
import signal
import sys

from rich.console import Console

from remote_cdp.app import RemoteCdpBrowser
from remote_cdp.config import Config
from remote_cdp.data_models.app_config import AppConfig
from remote_cdp.utils.logger import get_logger

logger = get_logger(name=__name__)
console = Console()


def _parse_bool(value: str) -> bool:
    return value.lower() != "false"


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the remote-cdp command."""
    parser = argparse.ArgumentParser(
        prog="remote-cdp",
        description="Remote CDP Browser: Chrome remote debugging behind an HTTP/WebSocket proxy.",
    )
    parser.add_argument("--chrome-port", type=int, default=9222, help="Chrome CDP port (default: 9222)")
    parser.add_argument("--proxy-port", type=int, default=8080, help="Proxy server port (default: 8080)")
    parser.add_argument(
        "--headless",
        type=_parse_bool,
        default=False,
        metavar="BOOL",
        help="Run Chrome in headless mode (default: false)",
    )
    parser.add_argument("--proxy-username", default=None, help="Proxy authentication username")
    parser.add_argument("--proxy-password", default=None, help="Proxy authentication password")
    parser.add_argument(
        "--no-launch",
        action="store_true",
        help="Do not launch Chrome; proxy one already listening on --chrome-port",
    )
    return parser


def build_app_config(args: argparse.Namespace) -> AppConfig:
    """
    Merge parsed arguments with environment overrides.
    Args:
        args: Parsed command-line arguments.
    Returns:
        AppConfig: The application settings.
    """
    return AppConfig(
        chrome_port=args.chrome_port,
        proxy_port=args.proxy_port,
        headless=args.headless,
        launch_browser=not args.no_launch,
        proxy_username=args.proxy_username or Config.PROXY_USERNAME,
        proxy_password=args.proxy_password or Config.PROXY_PASSWORD,
    )


async def run(app: RemoteCdpBrowser) -> None:
    """Start the app and keep it running until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await app.start()

    status = app.get_status()
    console.print()
    console.print("[bold green]Remote CDP Browser is ready![/bold green]")
    console.print(f"Proxy server: [cyan]{status.proxy_url}[/cyan]")
    console.print(f"Chrome CDP:   [cyan]{status.chrome_url}[/cyan]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    await stop_event.wait()
    logger.info("Received shutdown signal, shutting down gracefully...")
    await app.stop()


def main() -> None:
    """CLI entry point."""
    args = build_parser().parse_args()
    app = RemoteCdpBrowser(build_app_config(args))

    try:
        asyncio.run(run(app))
    except Exception as e:
        console.print(f"[bold red]Failed to start: {e}[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
