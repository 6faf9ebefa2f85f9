"""
Failure descriptions for the optimization report.

Converts technical errors raised while processing a document into a short
human-readable message with an actionable suggestion.
"""

from typing import Dict, Optional

from .diagnostics import get_logger
from .exceptions import (
    BrowserFailure,
    ConfigurationError,
    OracleFailure,
    ParseFailure,
    ResourceFailure,
)

logger = get_logger(__name__)


# Error mappings: pattern -> user-friendly info
ERROR_MAPPINGS = {
    # Browser installation
    "executable doesn't exist": {
        "message": "Chromium is not installed for Playwright",
        "suggestion": "Run: python -m playwright install chromium",
        "severity": "critical",
    },
    "browser has been closed": {
        "message": "The browser closed while the document was being analysed",
        "suggestion": "Run the optimization again; lower the batch size if it keeps happening",
        "severity": "error",
    },
    "target closed": {
        "message": "The browser page closed during the operation",
        "suggestion": "Run the optimization again; lower the batch size if it keeps happening",
        "severity": "error",
    },
    # Navigation
    "net::err_file_not_found": {
        "message": "The browser could not open the document file",
        "suggestion": "Check that the file still exists and is readable",
        "severity": "error",
    },
    "timeout": {
        "message": "The page took too long to load or settle",
        "suggestion": "Increase AMP_UNCSS_NAV_TIMEOUT_MS or check external resources the page loads",
        "severity": "warning",
    },
    # Filesystem
    "output not written": {
        "message": "The optimized document could not be written",
        "suggestion": "Check that the target directory is writable and the output path is not a directory",
        "severity": "error",
    },
    "permission denied": {
        "message": "Not allowed to read or write a required file",
        "suggestion": "Check file permissions of the input, output and temp directories",
        "severity": "error",
    },
    "no such file or directory": {
        "message": "Input file not found",
        "suggestion": "Check the path passed to amp-uncss",
        "severity": "error",
    },
    # Content
    "empty document": {
        "message": "The document is empty",
        "suggestion": "Nothing to optimize; the file is passed through unchanged",
        "severity": "warning",
    },
    "selector": {
        "message": "A CSS selector could not be evaluated",
        "suggestion": "The rule was kept; check the selector syntax",
        "severity": "warning",
    },
}


def get_error_category(error: Exception) -> str:
    """
    Categorize error type.

    Returns:
        Category name: "parse", "oracle", "browser", "resource", "config", "unknown"
    """
    if isinstance(error, ParseFailure):
        return "parse"
    if isinstance(error, OracleFailure):
        return "oracle"
    if isinstance(error, BrowserFailure):
        return "browser"
    if isinstance(error, ResourceFailure):
        return "resource"
    if isinstance(error, ConfigurationError):
        return "config"

    error_str = str(error).lower()
    if any(k in error_str for k in ["browser", "target", "navigation", "net::"]):
        return "browser"
    if isinstance(error, OSError) or "permission" in error_str:
        return "resource"
    return "unknown"


def format_user_friendly_error(
    error: Exception,
    technical_details: Optional[str] = None
) -> Dict:
    """
    Convert technical error to user-friendly message.

    Args:
        error: The exception that occurred
        technical_details: Additional technical information

    Returns:
        Dictionary with message, suggestion, technical, severity, category
    """
    error_str = str(error)
    category = get_error_category(error)

    for pattern, friendly_error in ERROR_MAPPINGS.items():
        if pattern in error_str.lower():
            result = dict(friendly_error)
            result["technical"] = technical_details or error_str
            result["category"] = category
            logger.debug(f"Mapped error to user-friendly: {result['message']}")
            return result

    return {
        "message": f"Unexpected {type(error).__name__} while optimizing the document",
        "suggestion": "Run with --verbose and check the log output",
        "technical": technical_details or error_str,
        "severity": "error",
        "category": category,
    }


def describe_failure(error: Exception) -> str:
    """One-line failure reason stored in a document's stats."""
    friendly = format_user_friendly_error(error)
    return f"{friendly['message']} ({friendly['technical']})"
