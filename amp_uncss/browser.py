"""
Shared headless Chromium for the dynamic presence oracle.

One BrowserHandle is owned by a run and shared by all documents of that run;
each tier 1 document gets its own page. The browser is launched lazily on the
first page request, so runs where no document needs rendering never start it.
"""

import asyncio
import subprocess
import sys
from typing import Any, Dict, List, Optional

from .diagnostics import get_logger
from .exceptions import BrowserFailure

logger = get_logger(__name__)

DEFAULT_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


def _install_chromium() -> bool:
    """Install Playwright's Chromium build; returns True on success."""
    logger.warning("Chromium for Playwright not found. Installing automatically...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", "chromium"],
            capture_output=True,
            text=True,
            timeout=300,
        )
    except subprocess.TimeoutExpired:
        logger.error("Playwright install timed out")
        return False
    except OSError as e:
        logger.error(f"Failed to run playwright install: {e}")
        return False
    if result.returncode != 0:
        logger.error(f"Playwright install failed: {result.stderr[:200]}")
        return False
    logger.info("Chromium installed")
    return True


class BrowserHandle:
    def __init__(self, headless: bool = True, args: Optional[List[str]] = None, auto_install: bool = True):
        self.headless = headless
        self.args = list(args) if args is not None else list(DEFAULT_LAUNCH_ARGS)
        self.auto_install = auto_install
        self.pages_opened = 0
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    @property
    def is_launched(self) -> bool:
        return self._browser is not None

    def _launch_args(self) -> Dict[str, Any]:
        return {"headless": bool(self.headless), "args": self.args}

    async def launch(self):
        """Start Playwright and Chromium once; concurrent callers share the same launch."""
        async with self._lock:
            if self._browser is not None:
                return self._browser

            from playwright.async_api import async_playwright

            # a driver left from a disconnected browser is reused
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            try:
                try:
                    self._browser = await self._playwright.chromium.launch(**self._launch_args())
                except Exception as e:
                    if "Executable doesn't exist" in str(e) and self.auto_install and _install_chromium():
                        self._browser = await self._playwright.chromium.launch(**self._launch_args())
                    else:
                        raise
            except Exception as e:
                await self._playwright.stop()
                self._playwright = None
                raise BrowserFailure(f"Could not launch Chromium: {e}") from e

            self._browser.on("disconnected", self._on_disconnected)
            logger.info(f"Browser launched (headless={self.headless})")
            return self._browser

    def _on_disconnected(self, _browser) -> None:
        logger.warning("Browser disconnected, the next page request relaunches it")
        self._browser = None

    async def new_page(self):
        browser = await self.launch()
        try:
            page = await browser.new_page()
        except Exception as e:
            raise BrowserFailure(f"Could not open a browser page: {e}") from e
        self.pages_opened += 1
        return page

    async def close(self) -> None:
        browser, self._browser = self._browser, None
        if browser is not None:
            await browser.close()
            logger.info(f"Browser closed ({self.pages_opened} pages opened)")
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def __aenter__(self) -> "BrowserHandle":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
