"""
AmpDocument - one HTML document moving through the optimization pipeline

    instantiated -> started -> optimized -> complete
          \\            \\          \\
           +------------+----------+---> failed

prep()     parses the document twice: a pristine soup that is serialized at
           the end and a stubbed soup used as the static oracle. Classifies the
           custom CSS, picks the tier and, for tier 1, renders the page.
optimize() runs the tier's optimizer over the rule tree.
teardown() writes the rule tree back into the pristine soup, serializes it and
           releases the browser page.

Any failure is contained: the document is marked failed, its original content
is passed through and the rest of the run continues.
"""

import os
import re
import tempfile
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from bs4 import BeautifulSoup
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from .browser import BrowserHandle
from .classifier import classify, custom_style_tags, find_exception_tags
from .config import UncssOptions
from .diagnostics import get_logger
from .error_handler import describe_failure
from .exceptions import BrowserFailure, ParseFailure, ResourceFailure
from .optimizers import TierOneOptimizer, TierZeroOptimizer
from .oracle import DynamicOracle, StaticOracle
from .rule_tree import RuleTree
from .selectors import ClassifiedSelectors, SelectorKind
from .stubs import StubContext, stub_page

logger = get_logger(__name__)

REMOVAL_CATEGORIES = ["empty"] + [k.value for k in SelectorKind if k is not SelectorKind.POLYFILL]

# Doctype strings are rendered with a trailing newline of their own
_DOCTYPE_NEWLINE_RE = re.compile(r"(<!DOCTYPE[^>]*>)\n")


class SourceOrderFormatter(HTMLFormatter):
    """Keeps attributes in source order and writes empty ones as booleans (hidden, not hidden="")."""

    def __init__(self):
        super().__init__(entity_substitution=EntitySubstitution.substitute_xml, void_element_close_prefix="")

    def attributes(self, tag):
        if tag.attrs is None:
            return []
        return [(k, None if v == "" else v) for k, v in tag.attrs.items()]


OUTPUT_FORMATTER = SourceOrderFormatter()


def normalize_html(html: str) -> str:
    """Undo the doctype newline bs4 adds and use LF line endings."""
    html = _DOCTYPE_NEWLINE_RE.sub(r"\1", html, count=1)
    return html.replace("\r\n", "\n")


def serialize_html(soup: BeautifulSoup) -> str:
    return normalize_html(soup.decode(formatter=OUTPUT_FORMATTER))


class DocumentStatus(str, Enum):
    INSTANTIATED = "instantiated"
    STARTED = "started"
    OPTIMIZED = "optimized"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class RemovedSelectors:
    count: int = 0
    selectors: List[str] = field(default_factory=list)


@dataclass
class DocumentStats:
    """Per-document statistics for the run report"""
    file_name: str
    status: Dict[str, float] = field(default_factory=dict)
    input_size: int = 0
    output_size: int = 0
    tier: Optional[int] = None
    has_exception_tags: bool = False
    exception_tags: List[str] = field(default_factory=list)
    selectors_found: Dict[str, int] = field(default_factory=dict)
    selectors_removed: Dict[str, RemovedSelectors] = field(
        default_factory=lambda: {c: RemovedSelectors() for c in REMOVAL_CATEGORIES}
    )
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def record(self, category: str, selector: str) -> None:
        entry = self.selectors_removed.setdefault(category, RemovedSelectors())
        entry.count += 1
        entry.selectors.append(selector)

    @property
    def total_removed(self) -> int:
        return sum(e.count for e in self.selectors_removed.values())

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["total_removed"] = self.total_removed
        return out


class AmpDocument:
    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        content: Optional[str] = None,
        options: Optional[UncssOptions] = None,
        browser: Optional[BrowserHandle] = None,
    ):
        self.path = Path(path) if path is not None else None
        self.options = options or UncssOptions()
        self.browser = browser
        self.from_file = content is None

        self.source_dom: Optional[BeautifulSoup] = None
        self.static_dom: Optional[BeautifulSoup] = None
        self.stub_context: Optional[StubContext] = None
        self.selectors: Optional[ClassifiedSelectors] = None
        self.rule_tree: Optional[RuleTree] = None
        self.static_oracle: Optional[StaticOracle] = None
        self.dynamic_oracle: Optional[DynamicOracle] = None
        self.tier: Optional[int] = None
        self.optimized_html: Optional[str] = None

        self.status = DocumentStatus.INSTANTIATED
        self.stats = DocumentStats(file_name=self.name)
        self._stamp(self.status)

        self.raw_html = ""
        try:
            self.raw_html = self._read() if content is None else content
            if not self.raw_html.strip():
                raise ParseFailure("empty document")
        except (OSError, UnicodeDecodeError, ParseFailure) as e:
            self.fail(e)
        self.stats.input_size = len(self.raw_html.encode("utf-8"))

    @classmethod
    def from_string(cls, content: str, name: Optional[str] = None, **kwargs) -> "AmpDocument":
        return cls(path=name, content=content, **kwargs)

    @property
    def name(self) -> str:
        return self.path.name if self.path is not None else "<string>"

    @property
    def is_failed(self) -> bool:
        return self.status is DocumentStatus.FAILED

    def _read(self) -> str:
        if self.path is None:
            raise ParseFailure("no path or content given")
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def _stamp(self, status: DocumentStatus) -> None:
        self.stats.status[status.value] = time.perf_counter()

    def set_status(self, status: DocumentStatus) -> None:
        self.status = status
        self._stamp(status)
        logger.debug(f"{self.name}: {status.value}")

    def record_removal(self, category: str, selector: str) -> None:
        self.stats.record(category, selector)

    def warn(self, message: str) -> None:
        logger.warning(f"{self.name}: {message}")
        self.stats.warnings.append(message)

    def fail(self, error: Exception) -> None:
        self.set_status(DocumentStatus.FAILED)
        self.stats.error = describe_failure(error)
        self.optimized_html = self.raw_html
        self.stats.output_size = len(self.raw_html.encode("utf-8"))
        logger.error(f"{self.name}: {error}")

    # Pipeline

    @staticmethod
    def _parse(html: str) -> BeautifulSoup:
        soup = BeautifulSoup(html, "html.parser")
        if soup.find(True) is None:
            raise ParseFailure("document contains no HTML elements")
        return soup

    async def prep(self) -> None:
        self.set_status(DocumentStatus.STARTED)
        self.source_dom = self._parse(self.raw_html)
        self.static_dom = self._parse(self.raw_html)
        self.stub_context = stub_page(self.static_dom)

        self.selectors = classify(self.static_dom)
        self.rule_tree = RuleTree.parse(self.selectors.raw_css)
        if self.rule_tree.unparsed:
            self.warn(f"Kept {len(self.rule_tree.unparsed)} CSS rules the parser could not read")
        self.stats.selectors_found = self.selectors.counts()

        exception_tags = sorted(find_exception_tags(self.static_dom))
        self.stats.exception_tags = exception_tags
        self.stats.has_exception_tags = bool(exception_tags)
        self.tier = 1 if self.options.optimization_level > 0 and exception_tags else 0
        self.stats.tier = self.tier

        self.static_oracle = StaticOracle(self.static_dom)
        if self.tier == 1:
            await self._render()

    async def _render(self) -> None:
        if self.browser is None:
            raise BrowserFailure("tier 1 optimization needs a browser")
        url, temp_path = self._navigation_target()
        try:
            page = await self.browser.new_page()
            self.dynamic_oracle = DynamicOracle(
                page,
                url,
                settle_ms=self.options.settle_ms,
                timeout_ms=self.options.navigation_timeout_ms,
            )
            await self.dynamic_oracle.load()
        finally:
            if temp_path is not None:
                self._remove_temp_file(temp_path)

    def _navigation_target(self) -> Tuple[str, Optional[Path]]:
        """file:// URL to render; the second item is a temp file to delete afterwards."""
        if self.from_file and self.path is not None and self.path.is_file():
            return self.path.resolve().as_uri(), None

        candidates = []
        if self.path is not None and self.path.parent.is_dir():
            candidates.append(self.path.parent)
        candidates += [Path.cwd(), Path(tempfile.gettempdir())]

        last_error: Optional[OSError] = None
        for directory in candidates:
            try:
                fd, name = tempfile.mkstemp(prefix=".amp-uncss-", suffix=".html", dir=directory)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(self.raw_html)
                temp_path = Path(name)
                return temp_path.resolve().as_uri(), temp_path
            except OSError as e:
                last_error = e
                logger.debug(f"Cannot write temp file in {directory}: {e}")
        raise ResourceFailure(f"Could not write a temporary copy of {self.name}: {last_error}")

    def _remove_temp_file(self, path: Path) -> None:
        try:
            path.unlink()
        except OSError as e:
            self.warn(f"Could not remove temporary file {path}: {e}")

    async def optimize(self) -> None:
        whitelist = self.options.selector_whitelist
        if self.tier == 1:
            optimizer = TierOneOptimizer(self.rule_tree, self.selectors, whitelist, self.record_removal)
            await optimizer.optimize(self.static_oracle, self.dynamic_oracle)
        else:
            optimizer = TierZeroOptimizer(self.rule_tree, self.selectors, whitelist, self.record_removal)
            await optimizer.optimize(self.static_oracle, has_exception_tags=self.stats.has_exception_tags)
        self.set_status(DocumentStatus.OPTIMIZED)

    def render(self) -> str:
        """Serialize the pristine DOM with its custom styles replaced by the rule tree."""
        styles = custom_style_tags(self.source_dom)
        if styles:
            styles[0].string = self.rule_tree.serialize()
            for extra in styles[1:]:
                extra.decompose()
        return serialize_html(self.source_dom)

    async def teardown(self) -> None:
        self.optimized_html = self.render()
        self.stats.output_size = len(self.optimized_html.encode("utf-8"))
        await self.release_page()
        self.set_status(DocumentStatus.COMPLETE)

    async def release_page(self) -> None:
        oracle, self.dynamic_oracle = self.dynamic_oracle, None
        if oracle is None:
            return
        try:
            await oracle.shutdown()
        except Exception as e:
            self.warn(f"Could not close browser page: {e}")

    async def run(self) -> "AmpDocument":
        """Run the whole pipeline; never raises for document-level failures."""
        if self.is_failed:
            return self
        try:
            await self.prep()
            await self.optimize()
            await self.teardown()
        except Exception as e:
            self.fail(e)
        finally:
            await self.release_page()
        return self

    # Output

    def output_path(self, target_directory: Union[str, Path], decorator: str = "") -> Path:
        stem = self.path.stem if self.path is not None else "document"
        suffix = self.path.suffix if self.path is not None and self.path.suffix else ".html"
        return Path(target_directory) / f"{stem}{decorator}{suffix}"

    def save(self, target_directory: Union[str, Path], decorator: str = "") -> Path:
        """Write the optimized (or, for failed documents, original) HTML."""
        target = self.output_path(target_directory, decorator)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(self.optimized_html if self.optimized_html is not None else self.raw_html)
        logger.info(f"Saved {target}")
        return target

    def get_completion_stats(self) -> Dict[str, Any]:
        return self.stats.to_dict()
