"""
amp_uncss - remove unused custom CSS from AMP HTML documents

Rules in a page's author <style> blocks are deleted when no element can match
them. Static pages are analysed in-process against a parsed DOM with AMP
runtime markup stubbed in; pages whose DOM depends on scripts or remote data
can be rendered in headless Chromium instead (optimization level 1).

Usage:
    from amp_uncss import AmpUncss, UncssOptions, optimize_html

    result = await optimize_html(html)
    result["optimized_html"]

    async with AmpUncss(["site/index.html"], UncssOptions(optimization_level=1)) as uncss:
        await uncss.run()
"""

from .config import UncssOptions
from .diagnostics import enable_diagnostics, get_logger
from .document import AmpDocument, DocumentStats, DocumentStatus
from .exceptions import (
    AmpUncssError,
    BrowserFailure,
    ConfigurationError,
    OracleFailure,
    ParseFailure,
    ResourceFailure,
)
from .orchestrator import AmpUncss, RunResult, optimize_files, optimize_html

__all__ = [
    "AmpUncss",
    "AmpDocument",
    "DocumentStats",
    "DocumentStatus",
    "RunResult",
    "UncssOptions",
    "optimize_html",
    "optimize_files",
    "enable_diagnostics",
    "get_logger",
    "AmpUncssError",
    "ParseFailure",
    "OracleFailure",
    "BrowserFailure",
    "ResourceFailure",
    "ConfigurationError",
]

__version__ = "1.0.0"
