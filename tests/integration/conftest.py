"""
Pytest configuration for integration tests

These tests drive a real headless Chromium through Playwright. They are
skipped when the browser cannot be launched (e.g. `playwright install
chromium` was never run).
"""

import pytest

from amp_uncss.browser import BrowserHandle
from amp_uncss.exceptions import BrowserFailure


@pytest.fixture
async def browser():
    """Provide a launched BrowserHandle for tests"""
    handle = BrowserHandle(headless=True, auto_install=False)
    try:
        await handle.launch()
    except (BrowserFailure, ImportError) as e:
        pytest.skip(f"Chromium not available: {e}")
    yield handle
    await handle.close()
