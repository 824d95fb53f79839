import json
import re
from pathlib import Path

from click.testing import CliRunner

from pagetags import cli
from pagetags.extract import START_MARK


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _payload(result):
    return json.loads(result.output.strip().splitlines()[-1])


def _sample_docs(root: Path) -> Path:
    docs = root / "docs"
    write_file(docs / "intro.md", "---\ntitle: Introduction\ntags: [Python, CLI]\n---\n# Intro\n\nHello\n")
    write_file(docs / "guide" / "setup.md", "# Setup Guide\n\n<!-- tags: Python -->\nSteps\n")
    write_file(docs / "plain.md", "# Plain\n\nNo tags here\n")
    write_file(docs / "node_modules" / "pkg.md", "<!-- tags: vendored -->\n")
    return docs


def test_build_generates_pages_and_tag_listing(tmp_path):
    docs = _sample_docs(tmp_path)
    site = tmp_path / "site"

    runner = CliRunner()
    result = runner.invoke(cli.cli, ["build", str(docs), "--output", str(site)])

    assert result.exit_code == 0, result.output
    payload = _payload(result)
    assert payload == {
        "ok": True,
        "pages": 3,
        "tagged_pages": 2,
        "tags": 2,
        "index": "tags/index.html",
    }

    setup = (site / "guide" / "setup.md").read_text(encoding="utf-8")
    assert setup.count(START_MARK) == 1
    assert 'href="../tags/python.html"' in setup
    intro = (site / "intro.md").read_text(encoding="utf-8")
    assert "title: Introduction" not in intro
    assert START_MARK not in (site / "plain.md").read_text(encoding="utf-8")

    python_page = (site / "tags" / "python.html").read_text(encoding="utf-8")
    assert python_page.index("Introduction") < python_page.index("Setup Guide")
    assert 'href="../guide/setup.md"' in python_page
    assert 'href="../intro.md"' in python_page
    assert (site / "tags" / "cli.html").is_file()
    assert not (site / "tags" / "vendored.html").exists()
    assert (site / "assets" / "tags.css").is_file()


def test_build_reads_plugin_config(tmp_path):
    docs = _sample_docs(tmp_path)
    site = tmp_path / "site"
    config = tmp_path / "book.yaml"
    write_file(config, "pluginsConfig:\n  tags:\n    tagsDir: /labels/\n    showCount: false\n")

    runner = CliRunner()
    result = runner.invoke(
        cli.cli,
        ["build", str(docs), "--output", str(site), "--config", str(config)],
    )

    assert result.exit_code == 0, result.output
    assert _payload(result)["index"] == "labels/index.html"
    assert "hk-count" not in (site / "labels" / "index.html").read_text(encoding="utf-8")
    assert 'href="../labels/python.html"' in (site / "guide" / "setup.md").read_text(encoding="utf-8")


def test_build_rejects_malformed_config(tmp_path):
    docs = _sample_docs(tmp_path)
    config = tmp_path / "book.yaml"
    write_file(config, "- not\n- a mapping\n")

    runner = CliRunner()
    result = runner.invoke(
        cli.cli,
        ["build", str(docs), "--output", str(tmp_path / "site"), "--config", str(config)],
    )

    assert result.exit_code == 2
    payload = _payload(result)
    assert payload["error"] == "config_invalid"
    assert "mapping" in payload["hint"]


def test_build_reports_write_failure(tmp_path, monkeypatch):
    docs = _sample_docs(tmp_path)

    async def fail_write(self, path, content):
        raise OSError("read-only file system")

    monkeypatch.setattr(cli.FileOutput, "write_file", fail_write)
    runner = CliRunner()
    result = runner.invoke(cli.cli, ["build", str(docs), "--output", str(tmp_path / "site")])

    assert result.exit_code == 2
    payload = _payload(result)
    assert payload["error"] == "write_failed"
    assert "read-only" in payload["hint"]


def test_show_prints_tags_and_slugs(tmp_path):
    page = tmp_path / "page.md"
    write_file(page, "---\ntags: [Café Déjà-vu, API]\n---\n<!-- tags: api -->\n")

    runner = CliRunner()
    result = runner.invoke(cli.cli, ["show", str(page)])

    assert result.exit_code == 0, result.output
    payload = _payload(result)
    assert payload["tags"] == ["Café Déjà-vu", "API", "api"]
    assert payload["slugs"] == ["cafe-deja-vu", "api", "api"]


def test_show_keep_case(tmp_path):
    page = tmp_path / "page.md"
    write_file(page, "<!-- tags: Hello World -->")

    result = CliRunner().invoke(cli.cli, ["show", str(page), "--keep-case"])

    assert _payload(result)["slugs"] == ["Hello-World"]


def test_build_links_resolve_to_written_files(tmp_path):
    docs = _sample_docs(tmp_path)
    site = tmp_path / "site"

    result = CliRunner().invoke(cli.cli, ["build", str(docs), "--output", str(site)])
    assert result.exit_code == 0, result.output

    tag_pages = sorted((site / "tags").glob("*.html"))
    assert tag_pages
    for tag_page in tag_pages:
        html = tag_page.read_text(encoding="utf-8")
        for href in re.findall(r'href="([^"#]+)"', html):
            target = (tag_page.parent / href).resolve()
            assert target.is_file(), f"{tag_page.name} links to missing {href}"

    setup = (site / "guide" / "setup.md").read_text(encoding="utf-8")
    for href in re.findall(r'class="hk-tags-badge[^"]*" href="([^"]+)"', setup):
        assert ((site / "guide") / href).resolve().is_file()
