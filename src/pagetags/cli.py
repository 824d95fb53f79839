"""Command line entry point: run the tag plugin over a directory of markdown pages."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

import click

from pagetags.config import DEFAULT_CONFIG
from pagetags.extract import extract_tags
from pagetags.host import FileOutput, HostConfig, LocalHost, collect_pages, page_title
from pagetags.plugin import ASSETS_DIR, BOOK, TagsPlugin
from pagetags.render import slugify

LOGGER = logging.getLogger(__name__)


class BuildError(Exception):
    """Raised when a build cannot complete; carries the JSON error payload."""

    def __init__(self, payload: Dict[str, Any]):
        super().__init__(payload.get("hint") or payload.get("error"))
        self.payload = payload


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _fail(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload))
    sys.exit(2)


async def _write_run(plugin: TagsPlugin, pages: List[Dict[str, Any]]) -> List[str]:
    output = plugin.output
    await asyncio.gather(*(output.write_file(page["path"], page["content"]) for page in pages))
    return await plugin.finalize()


def run_build(source: Path, output_dir: Path, config_path: str, patterns: List[str], excludes: List[str]) -> Dict[str, Any]:
    """Run init, both page phases and finish over `source`, writing into `output_dir`."""
    try:
        host_config = HostConfig.load(config_path)
    except (OSError, ValueError) as exc:
        raise BuildError({"error": "config_invalid", "hint": str(exc)}) from exc

    output = FileOutput(output_dir)
    plugin = TagsPlugin(LocalHost(host_config, output))
    plugin.init()

    pages: List[Dict[str, Any]] = []
    titles: Dict[str, str] = {}
    for rel in collect_pages(source, patterns, excludes):
        try:
            content = (source / rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildError({"error": "read_failed", "path": rel, "hint": str(exc)}) from exc
        titles[rel] = page_title(content, rel)
        pages.append(plugin.before_page_content({"path": rel, "content": content}))

    LOGGER.info(f"Processed {len(pages)} pages from {source}")

    for page in pages:
        plugin.on_page({"path": page["path"], "title": titles[page["path"]]})

    try:
        written = asyncio.run(_write_run(plugin, pages))
        output.copy_assets(ASSETS_DIR, BOOK["css"])
    except (OSError, ValueError) as exc:
        raise BuildError({"error": "write_failed", "hint": str(exc)}) from exc

    registry = plugin.run.registry
    return {
        "ok": True,
        "pages": len(pages),
        "tagged_pages": len(registry.tags),
        "tags": len(written) - 1,
        "index": written[0],
    }


@click.group()
def cli():
    pass


@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "output_dir", required=True, type=click.Path(file_okay=False), help="Directory receiving pages and tag pages")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Book configuration (YAML or JSON) with a pluginsConfig section")
@click.option("--pattern", multiple=True, default=("*.md",), show_default=True, help="Glob patterns of pages to process")
@click.option("--exclude", multiple=True, default=("node_modules/*",), show_default=True, help="Glob patterns to skip")
@click.option("--verbose", is_flag=True, help="Log progress to stderr")
def build(source, output_dir, config_path, pattern, exclude, verbose):
    """Inject tag badges into every page of SOURCE and generate the tag pages.

    Emits a JSON summary, or a JSON error and exit code 2 on failure.
    """
    _configure_logging(verbose)
    try:
        payload = run_build(Path(source), Path(output_dir), config_path, list(pattern), list(exclude))
    except BuildError as exc:
        _fail(exc.payload)
    else:
        click.echo(json.dumps(payload))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--key", default=DEFAULT_CONFIG["frontMatterKey"], show_default=True, help="Front matter field holding tags")
@click.option("--keep-case", is_flag=True, help="Do not lowercase slugs")
def show(path, key, keep_case):
    """Print the tags and slugs found in a single page."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _fail({"error": "read_failed", "hint": str(exc)})
    tags = extract_tags(content, key)["tags"]
    click.echo(json.dumps({
        "path": path,
        "tags": tags,
        "slugs": [slugify(tag, not keep_case) for tag in tags],
    }))


def main():
    cli()


if __name__ == "__main__":
    main()
