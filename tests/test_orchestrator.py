"""Tests for batch orchestration, output writing and reporting."""

import json

import pytest

from amp_uncss.config import UncssOptions
from amp_uncss.document import DocumentStatus
from amp_uncss.exceptions import ConfigurationError
from amp_uncss.orchestrator import AmpUncss, batches, optimize_files, optimize_html

CSS = ".used{color:red}.unused{color:blue}"
BODY = '<p class="used">x</p>'


def write_pages(directory, make_page, count):
    paths = []
    for i in range(count):
        path = directory / f"page{i}.html"
        path.write_text(make_page(CSS, BODY), encoding="utf-8")
        paths.append(path)
    return paths


def test_batches():
    assert [list(b) for b in batches([1, 2, 3, 4, 5], 2)] == [[1, 2], [3, 4], [5]]


def test_sources_must_be_a_list(options):
    with pytest.raises(ConfigurationError):
        AmpUncss("page.html", options)


def test_streamable_takes_one_document():
    with pytest.raises(ConfigurationError):
        AmpUncss([("a.html", "<p></p>"), ("b.html", "<p></p>")], UncssOptions(streamable=True))


def test_browser_only_created_for_level_one(options):
    assert AmpUncss([], options).browser is None
    level_one = UncssOptions(optimization_level=1)
    handle = AmpUncss([], level_one).browser
    assert handle is not None
    assert not handle.is_launched


async def test_writes_optimized_files(tmp_path, make_page, options):
    paths = write_pages(tmp_path, make_page, 3)
    options.filename_decorator = ".min"

    async with AmpUncss(paths, options) as uncss:
        result = await uncss.run()

    assert len(result.written) == 3
    for target in result.written:
        assert target.name.endswith(".min.html")
        html = target.read_text(encoding="utf-8")
        assert ".used{color:red}" in html
        assert ".unused" not in html
    assert result.report["summary"]["optimized"] == 3
    assert result.report["summary"]["saved_bytes"] > 0


async def test_failure_is_isolated_to_its_document(tmp_path, make_page, options):
    paths = write_pages(tmp_path, make_page, 2)
    broken = tmp_path / "broken.html"
    broken.write_text("", encoding="utf-8")
    options.batch_size = 3

    result = await optimize_files([paths[0], broken, paths[1]], options)

    statuses = [doc.status for doc in result.documents]
    assert statuses == [DocumentStatus.COMPLETE, DocumentStatus.FAILED, DocumentStatus.COMPLETE]
    assert result.report["summary"]["failed"] == 1
    assert (tmp_path / "dist" / "broken.html").read_text(encoding="utf-8") == ""


async def test_unwritable_output_is_isolated_to_its_document(tmp_path, make_page, options):
    paths = [tmp_path / name for name in ("a.html", "b.html", "c.html")]
    for path in paths:
        path.write_text(make_page(CSS, BODY), encoding="utf-8")
    (tmp_path / "dist" / "b.html").mkdir(parents=True)
    options.report = True

    result = await optimize_files(paths, options)

    assert [p.name for p in result.written] == ["a.html", "c.html"]
    assert ".unused" not in (tmp_path / "dist" / "c.html").read_text(encoding="utf-8")
    with open(result.report_path, encoding="utf-8") as f:
        entry = json.load(f)["tests"][0]
    warnings = [f["warnings"] for f in entry["files"]]
    assert warnings[0] == [] and warnings[2] == []
    assert len(warnings[1]) == 1
    assert warnings[1][0].startswith("The optimized document could not be written")


async def test_batches_run_in_order(tmp_path, make_page, options):
    paths = write_pages(tmp_path, make_page, 5)
    options.batch_size = 2

    result = await optimize_files(paths, options)

    completed = [doc.stats.status["complete"] for doc in result.documents]
    assert max(completed[:2]) <= min(completed[2:4])
    assert max(completed[2:4]) <= completed[4]


async def test_report_is_appended(tmp_path, make_page, options):
    paths = write_pages(tmp_path, make_page, 1)
    options.report = True
    options.report_name = "run.json"

    await optimize_files(paths, options)
    result = await optimize_files(paths, options)

    with open(result.report_path, encoding="utf-8") as f:
        report = json.load(f)
    assert len(report["tests"]) == 2
    entry = report["tests"][1]
    assert entry["options"]["report_name"] == "run.json"
    assert entry["files"][0]["file_name"] == "page0.html"
    assert entry["files"][0]["selectors_removed"]["general"]["selectors"] == [".unused"]


async def test_streamable_returns_html(make_page):
    result = await optimize_html(make_page(CSS, BODY))
    assert ".unused" not in result["optimized_html"]
    assert result["reporting"]["total_removed"] == 1


async def test_streamable_leaves_caller_options_alone(make_page):
    options = UncssOptions(target_directory="out")
    result = await optimize_html(make_page(CSS, BODY), options)
    assert ".unused" not in result["optimized_html"]
    assert options.streamable is False


async def test_streamable_writes_nothing(tmp_path, monkeypatch, make_page):
    monkeypatch.chdir(tmp_path)
    options = UncssOptions(streamable=True)
    async with AmpUncss([("page.html", make_page(CSS, BODY))], options) as uncss:
        result = await uncss.run()
    assert result.written == []
    assert not (tmp_path / "dist").exists()
    assert result.streamed()["optimized_html"] == result.optimized_html


async def test_optimization_is_idempotent(make_page):
    first = await optimize_html(make_page(CSS, BODY))
    second = await optimize_html(first["optimized_html"])
    assert second["optimized_html"] == first["optimized_html"]
    assert second["reporting"]["total_removed"] == 0


async def test_shared_browser_used_for_dynamic_documents(tmp_path, make_page, fake_browser):
    options = UncssOptions(optimization_level=1, settle_ms=0, target_directory=str(tmp_path / "dist"))
    dynamic = tmp_path / "dynamic.html"
    dynamic.write_text(make_page(CSS, BODY + "<amp-list src='/x.json'></amp-list>"), encoding="utf-8")
    static = tmp_path / "static.html"
    static.write_text(make_page(CSS, BODY), encoding="utf-8")
    fake_browser.counts.update({".used": 1, ".unused": 1})

    async with AmpUncss([dynamic, static], options, browser=fake_browser) as uncss:
        result = await uncss.run()

    assert [doc.tier for doc in result.documents] == [1, 0]
    assert fake_browser.new_page.await_count == 1
    # rendered page still shows .unused, static analysis does not
    assert ".unused" in result.documents[0].optimized_html
    assert ".unused" not in result.documents[1].optimized_html
    # caller-owned browser stays open
    fake_browser.close.assert_not_awaited()
