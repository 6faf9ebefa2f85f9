"""Tests for the per-document pipeline."""

from unittest.mock import AsyncMock

import pytest
from bs4 import BeautifulSoup

from amp_uncss.config import UncssOptions
from amp_uncss.document import AmpDocument, DocumentStatus, normalize_html, serialize_html

BODY = '<p class="used">Hello</p>'
CSS = ".used{color:red}.unused{color:blue}"


async def test_removes_unused_rule(make_page, options):
    doc = await AmpDocument.from_string(make_page(CSS, BODY), options=options).run()
    assert doc.status is DocumentStatus.COMPLETE
    assert "<style amp-custom>.used{color:red}</style>" in doc.optimized_html
    assert ".unused" not in doc.optimized_html
    assert doc.stats.selectors_removed["general"].selectors == [".unused"]
    assert doc.stats.total_removed == 1
    assert doc.tier == 0


async def test_boilerplate_and_markup_untouched(make_page, options):
    html = make_page(CSS, BODY)
    doc = await AmpDocument.from_string(html, options=options).run()
    assert "<style amp-boilerplate>" in doc.optimized_html
    assert BODY in doc.optimized_html
    assert doc.optimized_html.replace(".used{color:red}", CSS) == html


async def test_stub_markup_never_reaches_output(make_page, options):
    body = '<amp-img layout="responsive" width="4" height="3" src="a.jpg"></amp-img>'
    doc = await AmpDocument.from_string(make_page("amp-img img{display:block}", body), options=options).run()
    assert "amp-img img{display:block}" in doc.optimized_html
    assert "i-amphtml" not in doc.optimized_html
    assert body in doc.optimized_html


async def test_empty_attribute_values_are_dropped(make_page, options):
    doc = await AmpDocument.from_string(make_page(".a{color:red}", '<p class="a" hidden="">x</p>'), options=options).run()
    assert '<p class="a" hidden>' in doc.optimized_html
    assert "<html amp>" in doc.optimized_html


def test_serialize_html_keeps_source_attribute_order():
    soup = BeautifulSoup(
        '<!DOCTYPE html>\n<input value="" disabled=""><amp-img width="2" height="1" src="a"></amp-img><br>',
        "html.parser",
    )
    assert serialize_html(soup) == (
        '<!DOCTYPE html>\n<input value disabled><amp-img width="2" height="1" src="a"></amp-img><br>'
    )


def test_normalize_html_line_endings():
    assert normalize_html("<p>a</p>\r\n<p>b</p>") == "<p>a</p>\n<p>b</p>"


async def test_multiple_custom_styles_are_merged(options):
    html = (
        "<html><head><style amp-custom>.a{color:red}</style><style>.b{color:blue}</style></head>"
        '<body><p class="a b">x</p></body></html>'
    )
    doc = await AmpDocument.from_string(html, options=options).run()
    assert doc.optimized_html.count("<style") == 1
    assert ".a{color:red}.b{color:blue}" in doc.optimized_html


async def test_empty_document_fails_at_instantiation(options):
    doc = AmpDocument.from_string("   ", options=options)
    assert doc.status is DocumentStatus.FAILED
    await doc.run()
    assert doc.status is DocumentStatus.FAILED
    assert doc.optimized_html == "   "
    assert "empty" in doc.stats.error.lower()


async def test_text_without_markup_fails(options):
    doc = await AmpDocument.from_string("just text", options=options).run()
    assert doc.status is DocumentStatus.FAILED
    assert doc.optimized_html == "just text"


async def test_missing_file_fails(tmp_path, options):
    doc = AmpDocument(tmp_path / "missing.html", options=options)
    assert doc.is_failed
    assert "not found" in doc.stats.error


async def test_unreadable_rules_are_kept_with_a_warning(make_page, options):
    css = ".used{color:red;&:hover{color:blue}}@supports (display:grid){.grid{display:grid}}.unused{color:blue}"
    doc = await AmpDocument.from_string(make_page(css, BODY), options=options).run()
    assert doc.status is DocumentStatus.COMPLETE
    assert "<style amp-custom>.used{color:red;&:hover{color:blue}}@supports (display:grid){.grid{display:grid}}</style>" in doc.optimized_html
    assert doc.stats.warnings == ["Kept 1 CSS rules the parser could not read"]
    assert doc.stats.total_removed == 1


async def test_status_timeline(make_page, options):
    doc = await AmpDocument.from_string(make_page(CSS, BODY), options=options).run()
    timeline = doc.stats.status
    assert list(timeline) == ["instantiated", "started", "optimized", "complete"]
    assert timeline["instantiated"] <= timeline["complete"]


async def test_exception_tags_keep_rules_at_level_zero(make_page, options):
    html = make_page(CSS, BODY + '<amp-list src="/x.json" height="10" layout="fixed-height"></amp-list>')
    doc = await AmpDocument.from_string(html, options=options).run()
    assert doc.tier == 0
    assert doc.stats.has_exception_tags
    assert doc.stats.exception_tags == ["amp-list"]
    assert ".unused{color:blue}" in doc.optimized_html


class TestTierOne:

    @pytest.fixture
    def level_one(self, tmp_path):
        return UncssOptions(optimization_level=1, target_directory=str(tmp_path / "dist"), settle_ms=0)

    async def test_renders_file_in_browser(self, tmp_path, make_page, level_one, fake_browser):
        path = tmp_path / "page.html"
        path.write_text(make_page(CSS + ".late{color:green}", BODY + '<amp-geo layout="nodisplay"></amp-geo>'))
        fake_browser.counts.update({".used": 1, ".unused": 0, ".late": 3})

        doc = await AmpDocument(path, options=level_one, browser=fake_browser).run()

        assert doc.status is DocumentStatus.COMPLETE
        assert doc.tier == 1
        page = fake_browser.pages[0]
        page.goto.assert_awaited_once()
        assert page.goto.await_args.args[0] == path.resolve().as_uri()
        assert page.closed
        assert ".late{color:green}" in doc.optimized_html
        assert ".unused" not in doc.optimized_html

    async def test_in_memory_document_uses_temp_file(self, tmp_path, monkeypatch, make_page, level_one, fake_browser):
        monkeypatch.chdir(tmp_path)
        html = make_page(CSS, BODY + "<amp-script src='x.js'></amp-script>")
        fake_browser.counts.update({".used": 1, ".unused": 0})

        doc = await AmpDocument.from_string(html, options=level_one, browser=fake_browser).run()

        assert doc.status is DocumentStatus.COMPLETE
        url = fake_browser.pages[0].goto.await_args.args[0]
        assert url.startswith("file://")
        assert url.endswith(".html")
        assert not list(tmp_path.glob(".amp-uncss-*.html"))

    async def test_static_documents_skip_browser(self, make_page, level_one, fake_browser):
        doc = await AmpDocument.from_string(make_page(CSS, BODY), options=level_one, browser=fake_browser).run()
        assert doc.tier == 0
        fake_browser.new_page.assert_not_awaited()

    async def test_missing_browser_fails_document(self, make_page, level_one):
        html = make_page(CSS, BODY + "<amp-geo layout='nodisplay'></amp-geo>")
        doc = await AmpDocument.from_string(html, options=level_one).run()
        assert doc.is_failed
        assert doc.optimized_html == html

    async def test_page_released_when_optimization_fails(self, monkeypatch, make_page, level_one, fake_browser):
        html = make_page(CSS, BODY + "<amp-geo layout='nodisplay'></amp-geo>")
        doc = AmpDocument.from_string(html, options=level_one, browser=fake_browser)
        monkeypatch.setattr(doc, "optimize", AsyncMock(side_effect=RuntimeError("boom")))

        await doc.run()

        assert doc.is_failed
        assert "boom" in doc.stats.error
        assert fake_browser.pages[0].closed


def test_output_path(tmp_path, options):
    doc = AmpDocument.from_string("<p>x</p>", name=str(tmp_path / "index.html"), options=options)
    assert doc.output_path("dist", ".min").as_posix() == "dist/index.min.html"


async def test_save_writes_file(tmp_path, make_page, options):
    doc = await AmpDocument.from_string(make_page(CSS, BODY), name="page.html", options=options).run()
    target = doc.save(tmp_path / "out", "-clean")
    assert target == tmp_path / "out" / "page-clean.html"
    assert target.read_text(encoding="utf-8") == doc.optimized_html


async def test_failed_document_saves_original(tmp_path, options):
    doc = await AmpDocument.from_string("plain text", name="broken.html", options=options).run()
    target = doc.save(tmp_path)
    assert target.read_text(encoding="utf-8") == "plain text"
