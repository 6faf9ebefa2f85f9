#!/usr/bin/env python3
import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ["true", "1", "yes"]


def _env_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer (got {raw!r})") from e


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


# Option names used by the JavaScript tool's JSON config files.
CAMEL_CASE_KEYS = {
    "optimizationLevel": "optimization_level",
    "batchSize": "batch_size",
    "selectorWhitelist": "selector_whitelist",
    "targetDirectory": "target_directory",
    "filenameDecorator": "filename_decorator",
    "reportDirectory": "report_directory",
    "reportName": "report_name",
    "settleMs": "settle_ms",
    "navigationTimeoutMs": "navigation_timeout_ms",
}


@dataclass
class UncssOptions:
    """Optimization run options"""
    # 0 = static analysis only, 1 = browser fallback for exception tags, 2 = reserved (acts as 1)
    optimization_level: int = field(default_factory=lambda: _env_int("AMP_UNCSS_OPTIMIZATION_LEVEL", "0"))
    batch_size: int = field(default_factory=lambda: _env_int("AMP_UNCSS_BATCH_SIZE", "5"))
    selector_whitelist: List[str] = field(default_factory=lambda: _env_list("AMP_UNCSS_SELECTOR_WHITELIST"))
    streamable: bool = False

    # Output
    target_directory: str = field(default_factory=lambda: os.getenv("AMP_UNCSS_TARGET_DIR", "dist"))
    filename_decorator: str = field(default_factory=lambda: os.getenv("AMP_UNCSS_FILENAME_DECORATOR", ""))

    # Reporting
    report: bool = field(default_factory=lambda: _env_bool("AMP_UNCSS_REPORT", "false"))
    report_directory: str = field(default_factory=lambda: os.getenv("AMP_UNCSS_REPORT_DIR", "reports"))
    report_name: str = field(default_factory=lambda: os.getenv("AMP_UNCSS_REPORT_NAME", "amp_uncss_report.json"))

    # Browser
    headless: bool = field(default_factory=lambda: _env_bool("AMP_UNCSS_HEADLESS", "true"))
    settle_ms: int = field(default_factory=lambda: _env_int("AMP_UNCSS_SETTLE_MS", "200"))
    navigation_timeout_ms: int = field(default_factory=lambda: _env_int("AMP_UNCSS_NAV_TIMEOUT_MS", "30000"))

    def __post_init__(self):
        if not 0 <= int(self.optimization_level) <= 2:
            raise ConfigurationError(
                f"optimization_level must be 0, 1, or 2 (got {self.optimization_level})"
            )
        if int(self.batch_size) < 1:
            raise ConfigurationError(f"batch_size must be at least 1 (got {self.batch_size})")
        self.optimization_level = int(self.optimization_level)
        self.batch_size = int(self.batch_size)
        if isinstance(self.selector_whitelist, str):
            self.selector_whitelist = [self.selector_whitelist]
        self.selector_whitelist = list(self.selector_whitelist)
        if not self.report_name.endswith(".json"):
            self.report_name += ".json"

    @property
    def wants_browser(self) -> bool:
        return self.optimization_level > 0

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "UncssOptions":
        """Build options from a dict; accepts snake_case and camelCase keys, ignores unknown ones."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "UncssOptions":
        """Load options from a JSON config file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                values = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in config file {path}: {e}") from e
        if not isinstance(values, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
