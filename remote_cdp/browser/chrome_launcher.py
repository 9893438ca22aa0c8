"""
remote_cdp/browser/chrome_launcher.py

Chrome process lifecycle for the debugging endpoint the proxy fronts.

Contains:
- ChromeLauncher: locate, launch, probe readiness, and kill Chrome
"""

import os
import shutil
import subprocess
import threading
import time
from collections.abc import Sequence
from pathlib import Path

import requests

from remote_cdp.config import Config
from remote_cdp.utils.exceptions import ChromeLaunchError, ChromeNotFoundError
from remote_cdp.utils.logger import get_logger


logger = get_logger(name=__name__)


CHROME_CANDIDATE_PATHS = (
    # Docker/Linux (prioritized for container environments)
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    # macOS
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    # Windows through WSL
    "/mnt/c/Program Files/Google/Chrome/Application/chrome.exe",
    "/mnt/c/Program Files (x86)/Google/Chrome/Application/chrome.exe",
)

CHROME_EXECUTABLE_NAMES = ("google-chrome", "google-chrome-stable", "chromium", "chromium-browser")

BASE_CHROME_ARGS = (
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
)

DOCKER_CHROME_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--remote-debugging-address=0.0.0.0",
)

READINESS_POLL_INTERVAL = 0.25


class ChromeLauncher:
    """
    Launches Chrome with remote debugging enabled and tears it down again.
    launch() returns once /json/version answers on the debugging port.
    """

    def __init__(
        self,
        port: int = 9222,
        headless: bool = False,
        user_data_dir: str | None = None,
        additional_args: Sequence[str] = (),
    ) -> None:
        self.port = port
        self.headless = headless
        self.user_data_dir = user_data_dir or Config.CHROME_USER_DATA_DIR
        self.additional_args = list(additional_args)
        self._process: subprocess.Popen | None = None

    def _get_chrome_path(self) -> str:
        """
        Find the Chrome executable.
        Returns:
            str: Path to the executable.
        Raises:
            ChromeNotFoundError: If no executable is found.
        """
        if Config.CHROME_PATH:
            if Path(Config.CHROME_PATH).exists():
                return Config.CHROME_PATH
            logger.warning("CHROME_PATH %s does not exist, searching defaults", Config.CHROME_PATH)

        for path in CHROME_CANDIDATE_PATHS:
            if os.path.exists(path):
                return path

        for name in CHROME_EXECUTABLE_NAMES:
            found = shutil.which(name)
            if found:
                return found

        raise ChromeNotFoundError("Chrome executable not found. Please install Chrome or Chromium.")

    @staticmethod
    def _is_docker_environment() -> bool:
        return Config.DOCKER_CONTAINER or os.path.exists("/.dockerenv")

    def build_args(self) -> list[str]:
        """Command-line flags for the Chrome process (without the executable)."""
        args = [
            f"--remote-debugging-port={self.port}",
            f"--user-data-dir={self.user_data_dir}",
            *BASE_CHROME_ARGS,
            *self.additional_args,
        ]
        if self._is_docker_environment():
            args.extend(DOCKER_CHROME_ARGS)
            logger.info("Docker environment detected, added container-specific Chrome arguments")
        if self.headless:
            args.append("--headless")
        return args

    def launch(self) -> None:
        """
        Start Chrome and block until its debugging endpoint is reachable.
        Raises:
            ChromeNotFoundError: If Chrome is not installed.
            ChromeLaunchError: If Chrome exits or never becomes reachable.
        """
        if self.is_running():
            logger.info("Chrome is already running")
            return

        chrome_path = self._get_chrome_path()
        args = self.build_args()

        logger.info("Launching Chrome with CDP on port %d...", self.port)
        logger.info("Chrome path: %s", chrome_path)
        logger.debug("Arguments: %s", " ".join(args))

        self._process = subprocess.Popen(
            [chrome_path, *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
        )
        threading.Thread(target=self._drain_stderr, args=(self._process,), daemon=True).start()

        try:
            self._wait_until_ready()
        except ChromeLaunchError:
            self.kill()
            raise

        logger.info("Chrome launched successfully")

    def _drain_stderr(self, process: subprocess.Popen) -> None:
        if process.stderr is None:
            return
        for line in iter(process.stderr.readline, b""):
            logger.debug("Chrome stderr: %s", line.decode(errors="replace").rstrip())

    def _wait_until_ready(self) -> None:
        deadline = time.monotonic() + Config.CHROME_STARTUP_TIMEOUT
        version_url = f"{self.cdp_url()}/json/version"

        while time.monotonic() < deadline:
            if self._process is None or self._process.poll() is not None:
                code = self._process.returncode if self._process is not None else None
                raise ChromeLaunchError(f"Chrome exited during startup with code {code}")
            try:
                response = requests.get(version_url, timeout=1)
                if response.status_code == 200:
                    logger.debug("Chrome endpoint ready: %s", response.json().get("Browser"))
                    return
            except requests.RequestException:
                pass
            time.sleep(READINESS_POLL_INTERVAL)

        raise ChromeLaunchError(
            f"Chrome debugging endpoint {version_url} not reachable after {Config.CHROME_STARTUP_TIMEOUT}s"
        )

    def is_running(self) -> bool:
        """Whether the Chrome process is alive."""
        return self._process is not None and self._process.poll() is None

    def kill(self) -> None:
        """Terminate Chrome, escalating to SIGKILL after CHROME_SHUTDOWN_TIMEOUT."""
        if self._process is None:
            return

        logger.info("Shutting down Chrome...")
        process = self._process
        process.terminate()
        try:
            process.wait(timeout=Config.CHROME_SHUTDOWN_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.info("Force killing Chrome process...")
            process.kill()
            process.wait()

        self._process = None
        logger.info("Chrome shut down with code %s", process.returncode)

    def cdp_url(self) -> str:
        """HTTP URL of the debugging endpoint."""
        return f"http://localhost:{self.port}"
