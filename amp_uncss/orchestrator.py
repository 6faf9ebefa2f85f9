"""
AmpUncss - batch orchestration of document optimization

Documents run in batches of options.batch_size: members of a batch run
concurrently, batches run one after another. A failing document never affects
its batch mates. When the optimization level allows tier 1, one browser is
shared by the whole run and launched only when a document first needs it.

Usage:
    async with AmpUncss(["page.html"], UncssOptions(optimization_level=1)) as uncss:
        result = await uncss.run()

    # streamable: single in-memory document, nothing written
    result = await AmpUncss([("page.html", html)], UncssOptions(streamable=True)).run()
    result.streamed()   # {"optimized_html": ..., "reporting": {...}}
"""

import asyncio
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .browser import BrowserHandle
from .config import UncssOptions
from .diagnostics import get_logger
from .document import AmpDocument
from .error_handler import describe_failure
from .exceptions import ConfigurationError, ResourceFailure
from .report import JSONReportWriter, build_report

logger = get_logger(__name__)

Source = Union[str, Path, Tuple[Optional[str], str]]


def batches(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


@dataclass
class RunResult:
    documents: List[AmpDocument]
    report: Dict[str, Any]
    written: List[Path] = field(default_factory=list)
    report_path: Optional[str] = None

    @property
    def optimized_html(self) -> Optional[str]:
        return self.documents[0].optimized_html if self.documents else None

    def streamed(self) -> Dict[str, Any]:
        doc = self.documents[0]
        return {"optimized_html": doc.optimized_html, "reporting": doc.get_completion_stats()}


class AmpUncss:
    def __init__(
        self,
        sources: Sequence[Source],
        options: Optional[UncssOptions] = None,
        browser: Optional[BrowserHandle] = None,
    ):
        if isinstance(sources, (str, Path)) or not isinstance(sources, (list, tuple)):
            raise ConfigurationError("sources must be a list of file paths or (name, html) pairs")
        self.options = options or UncssOptions()
        if self.options.streamable and len(sources) != 1:
            raise ConfigurationError("streamable mode takes exactly one document")
        self.sources = list(sources)
        self._owns_browser = browser is None
        self.browser = browser
        if self.browser is None and self.options.wants_browser:
            self.browser = BrowserHandle(headless=self.options.headless)

    def _document(self, source: Source) -> AmpDocument:
        if isinstance(source, tuple):
            name, content = source
            return AmpDocument.from_string(content, name=name, options=self.options, browser=self.browser)
        return AmpDocument(path=source, options=self.options, browser=self.browser)

    def _save(self, doc: AmpDocument) -> Optional[Path]:
        """Write one document; a write error is recorded on that document only."""
        try:
            return doc.save(self.options.target_directory, self.options.filename_decorator)
        except OSError as e:
            doc.warn(describe_failure(ResourceFailure(f"output not written: {e}")))
            return None

    async def run(self) -> RunResult:
        documents = [self._document(source) for source in self.sources]
        total = -(-len(documents) // self.options.batch_size)
        for number, batch in enumerate(batches(documents, self.options.batch_size), 1):
            logger.info(f"Batch {number}/{total}: {len(batch)} documents")
            await asyncio.gather(*(doc.run() for doc in batch))

        written = []
        if not self.options.streamable:
            for doc in documents:
                path = self._save(doc)
                if path is not None:
                    written.append(path)

        result = RunResult(documents=documents, report=build_report(documents, self.options), written=written)
        summary = result.report["summary"]
        logger.info(
            f"Optimized {summary['optimized']}/{summary['files']} documents "
            f"({summary['failed']} failed), saved {summary['saved_bytes']} bytes"
        )

        if self.options.report:
            writer = JSONReportWriter(self.options.report_directory, self.options.report_name)
            result.report_path = writer.write(result.report)
        return result

    async def close(self) -> None:
        if self.browser is not None and self._owns_browser:
            await self.browser.close()

    async def __aenter__(self) -> "AmpUncss":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def optimize_html(html: str, options: Optional[UncssOptions] = None, name: Optional[str] = None) -> Dict[str, Any]:
    """Optimize one in-memory document; returns {"optimized_html", "reporting"}."""
    options = replace(options, streamable=True) if options else UncssOptions(streamable=True)
    async with AmpUncss([(name, html)], options) as uncss:
        result = await uncss.run()
    return result.streamed()


async def optimize_files(paths: Sequence[Union[str, Path]], options: Optional[UncssOptions] = None) -> RunResult:
    async with AmpUncss(list(paths), options) as uncss:
        return await uncss.run()
