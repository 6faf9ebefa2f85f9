"""
Unit tests for failure descriptions.

Tests error mapping and categorization for the run report.
"""

from amp_uncss.error_handler import describe_failure, format_user_friendly_error, get_error_category
from amp_uncss.exceptions import BrowserFailure, ConfigurationError, OracleFailure, ParseFailure, ResourceFailure


def test_format_missing_chromium():
    """Missing browser binary maps to an install hint."""
    error = BrowserFailure("Could not launch Chromium: Executable doesn't exist at /ms-playwright/chrome")

    result = format_user_friendly_error(error)

    assert "not installed" in result["message"]
    assert "playwright install chromium" in result["suggestion"]
    assert result["severity"] == "critical"
    assert result["category"] == "browser"


def test_format_timeout_error():
    error = TimeoutError("Timeout 30000ms exceeded")

    result = format_user_friendly_error(error)

    assert "too long" in result["message"]
    assert result["severity"] == "warning"


def test_format_unwritable_output():
    error = ResourceFailure("output not written: [Errno 21] Is a directory: 'dist/b.html'")

    result = format_user_friendly_error(error)

    assert result["message"] == "The optimized document could not be written"
    assert result["category"] == "resource"


def test_format_unknown_error():
    """Unmapped errors fall back to a generic message."""
    error = RuntimeError("Some random error")

    result = format_user_friendly_error(error)

    assert "RuntimeError" in result["message"]
    assert "--verbose" in result["suggestion"]
    assert result["technical"] == "Some random error"
    assert result["category"] == "unknown"


def test_technical_details_override():
    result = format_user_friendly_error(ValueError("x"), technical_details="details")
    assert result["technical"] == "details"


def test_categories_from_exception_types():
    assert get_error_category(ParseFailure("x")) == "parse"
    assert get_error_category(OracleFailure("x")) == "oracle"
    assert get_error_category(BrowserFailure("x")) == "browser"
    assert get_error_category(ResourceFailure("x")) == "resource"
    assert get_error_category(ConfigurationError("x")) == "config"


def test_categories_from_message():
    assert get_error_category(RuntimeError("Target closed")) == "browser"
    assert get_error_category(RuntimeError("net::ERR_FILE_NOT_FOUND")) == "browser"
    assert get_error_category(PermissionError("denied")) == "resource"
    assert get_error_category(ValueError("bad value")) == "unknown"


def test_describe_failure():
    message = describe_failure(FileNotFoundError(2, "No such file or directory"))
    assert message.startswith("Input file not found")
    assert "No such file or directory" in message
