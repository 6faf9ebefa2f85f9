"""
Dynamic presence oracle - queries against a page rendered in Chromium

The page is loaded by navigating to the document's file:// URL (not by
setting content) so relative resources and AMP scripts load the way they do
for a visitor. After load, every collapsed accordion section is clicked open
and the page is given settle_ms to finish script-driven rendering.

Usage:
    page = await browser.new_page()
    oracle = await DynamicOracle(page, "file:///tmp/page.html").load()
    await oracle.count(".item")
    await oracle.shutdown()
"""

from typing import List

from playwright.async_api import Error as PlaywrightError

from ..diagnostics import get_logger
from ..exceptions import BrowserFailure, OracleFailure
from .base import ElementInfo, PresenceOracle

logger = get_logger(__name__)

EXPAND_ACCORDIONS_JS = """
(accordions) => {
    let clicked = 0;
    accordions.forEach((accordion) => {
        Array.from(accordion.children).forEach((section) => {
            const header = section.children[0];
            if (header && !section.hasAttribute('expanded')) {
                header.click();
                clicked += 1;
            }
        });
    });
    return clicked;
}
"""

QUERY_ALL_JS = """
(els) => els.map((el) => ({
    id: el.id || '',
    className: typeof el.className === 'string' ? el.className : (el.getAttribute('class') || ''),
}))
"""


class DynamicOracle(PresenceOracle):
    name = "dynamic"

    def __init__(self, page, url: str, settle_ms: int = 200, timeout_ms: int = 30000):
        self.page = page
        self.url = url
        self.settle_ms = settle_ms
        self.timeout_ms = timeout_ms
        self.ready = False

    async def load(self) -> "DynamicOracle":
        """Navigate, expand collapsed sections and wait for the page to settle."""
        try:
            await self.page.goto(self.url, wait_until="load", timeout=self.timeout_ms)
            clicked = await self.expand_collapsibles()
            await self.page.wait_for_timeout(self.settle_ms)
        except PlaywrightError as e:
            raise BrowserFailure(f"Could not render {self.url}: {e}") from e
        logger.debug(f"Rendered {self.url} ({clicked} accordion sections expanded)")
        self.ready = True
        return self

    async def expand_collapsibles(self) -> int:
        return await self.page.eval_on_selector_all("amp-accordion", EXPAND_ACCORDIONS_JS)

    def _require_ready(self) -> None:
        if not self.ready:
            raise OracleFailure("page has not finished loading")

    async def _count(self, selector: str) -> int:
        self._require_ready()
        return await self.page.locator(f"css={selector}").count()

    async def _query_all(self, selector: str) -> List[ElementInfo]:
        self._require_ready()
        rows = await self.page.eval_on_selector_all(f"css={selector}", QUERY_ALL_JS)
        return [ElementInfo(id=row.get("id", ""), class_name=row.get("className", "")) for row in rows]

    async def shutdown(self) -> None:
        if not self.page.is_closed():
            await self.page.close()
            logger.debug(f"Closed page for {self.url}")
