"""
Shared fixtures: inline AMP documents and a fake browser
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

from amp_uncss.config import UncssOptions
from mocks.fake_page import FakePage

AMP_BOILERPLATE = (
    "<style amp-boilerplate>body{-webkit-animation:-amp-start 8s steps(1,end) 0s 1 normal both}</style>"
)


def amp_page(css: str, body: str, head: str = "") -> str:
    """Minimal AMP document with one custom style block."""
    return (
        "<!DOCTYPE html>\n"
        "<html amp>\n"
        "<head>\n"
        '<meta charset="utf-8">\n'
        f"{AMP_BOILERPLATE}\n"
        f"<style amp-custom>{css}</style>\n"
        f"{head}"
        "</head>\n"
        f"<body>{body}</body>\n"
        "</html>\n"
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep AMP_UNCSS_* settings from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("AMP_UNCSS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_page():
    return amp_page


@pytest.fixture
def options(tmp_path):
    return UncssOptions(
        target_directory=str(tmp_path / "dist"),
        report_directory=str(tmp_path / "reports"),
    )


@pytest.fixture
def fake_browser():
    """BrowserHandle double whose new_page() hands out FakePage objects"""
    browser = MagicMock()
    browser.pages = []
    browser.counts = {}
    browser.elements = []

    async def new_page():
        page = FakePage(counts=browser.counts, elements=browser.elements)
        browser.pages.append(page)
        return page

    browser.new_page = AsyncMock(side_effect=new_page)
    browser.close = AsyncMock()
    return browser
