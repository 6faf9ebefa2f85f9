"""Tests for the amp-uncss command line."""

import json

import pytest

from amp_uncss.cli import build_options, create_parser, discover, main

CSS = ".used{color:red}.unused{color:blue}"
BODY = '<p class="used">x</p>'


@pytest.fixture
def site(tmp_path, make_page):
    root = tmp_path / "site"
    (root / "blog").mkdir(parents=True)
    (root / "index.html").write_text(make_page(CSS, BODY), encoding="utf-8")
    (root / "about.html").write_text(make_page(CSS, BODY), encoding="utf-8")
    (root / "blog" / "post.html").write_text(make_page(CSS, BODY), encoding="utf-8")
    (root / "notes.txt").write_text("not html")
    return root


def test_discover(site):
    assert [p.name for p in discover(str(site))] == ["about.html", "index.html"]
    assert [p.name for p in discover(str(site), recursive=True)] == ["about.html", "post.html", "index.html"]
    assert discover(str(site / "index.html"), specific=True) == [site / "index.html"]


def test_parser_flags():
    args = create_parser().parse_args(["site", "-R", "-l", "1", "-f", ".min", "-w", ".a", ".b"])
    assert args.recursive
    assert args.optimization_level == 1
    assert args.file_name_decorator == ".min"
    assert args.whitelist == [".a", ".b"]


def test_flags_override_config_file(tmp_path):
    config = tmp_path / "amp-uncss.json"
    config.write_text(json.dumps({"batchSize": 7, "targetDirectory": "from-config"}))
    args = create_parser().parse_args(["site", "--config", str(config), "-t", "from-flag"])
    options = build_options(args)
    assert options.batch_size == 7
    assert options.target_directory == "from-flag"


def test_optimizes_directory(site, tmp_path, capsys):
    out = tmp_path / "out"
    code = main([str(site), "-t", str(out), "-f", ".min", "-q"])

    assert code == 0
    assert sorted(p.name for p in out.iterdir()) == ["about.min.html", "index.min.html"]
    assert ".unused" not in (out / "index.min.html").read_text(encoding="utf-8")
    assert "2/2 optimized" in capsys.readouterr().out


def test_recursive_with_report(site, tmp_path):
    out = tmp_path / "out"
    reports = tmp_path / "reports"
    code = main([str(site), "-R", "-t", str(out), "-r", "-d", str(reports), "-n", "run", "-q"])

    assert code == 0
    assert (out / "post.html").exists()
    with open(reports / "run.json", encoding="utf-8") as f:
        assert json.load(f)["tests"][0]["summary"]["files"] == 3


def test_single_file(site, tmp_path):
    out = tmp_path / "out"
    assert main([str(site / "index.html"), "-s", "-t", str(out), "-q"]) == 0
    assert [p.name for p in out.iterdir()] == ["index.html"]


def test_failed_document_sets_exit_code(tmp_path, capsys):
    (tmp_path / "empty.html").write_text("")
    code = main([str(tmp_path), "-t", str(tmp_path / "out"), "-q"])
    assert code == 1
    assert "✗ empty.html" in capsys.readouterr().out


def test_invalid_level(site):
    assert main([str(site), "-l", "5", "-q"]) == 2


def test_missing_path(tmp_path):
    assert main([str(tmp_path / "nope"), "-q"]) == 2


def test_empty_directory(tmp_path, capsys):
    assert main([str(tmp_path), "-q"]) == 0
    assert "No HTML files found" in capsys.readouterr().out


def test_non_numeric_environment_value(site, monkeypatch):
    monkeypatch.setenv("AMP_UNCSS_SETTLE_MS", "soon")
    assert main([str(site), "-q"]) == 2
