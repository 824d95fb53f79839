"""Host lifecycle hooks for tag badges and generated tag pages.

The host drives one run as::

    plugin = TagsPlugin(host)
    plugin.init()
    for page in pages:
        plugin.before_page_content(page)   # page: {"path", "content"}
    for page in pages:
        plugin.on_page(page)               # page: {"path", "title"?}
    await plugin.finalize()

`host` exposes `config.get("pluginsConfig")` (optional) and an `output`
collaborator with `write_file(path, content)` and, optionally, `to_url(path)`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from pagetags.config import resolve_config
from pagetags.extract import extract_tags, strip_injected_blocks
from pagetags.links import page_href
from pagetags.models import PageLink, TaggedPage
from pagetags.registry import PageRegistry
from pagetags.render import render_badges, render_index_page, render_tag_page, tag_slug

LOGGER = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parent / "assets"
BOOK = {"assets": "./assets", "css": ["tags.css"]}


@dataclass
class TagRun:
    """State owned by a single generation run."""
    registry: PageRegistry = field(default_factory=PageRegistry)


async def _settle(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class TagsPlugin:
    """Tag extraction, badge injection and tag page generation for one host."""

    def __init__(self, host: Any = None):
        self.host = host
        self.run = TagRun()

    @property
    def output(self) -> Any:
        return getattr(self.host, "output", None)

    def config(self) -> Dict[str, Any]:
        return resolve_config(self.host)

    def hooks(self) -> Dict[str, Callable[..., Any]]:
        return {
            "init": self.init,
            "page:before": self.before_page_content,
            "page": self.on_page,
            "finish": self.finalize,
        }

    def init(self) -> None:
        self.run = TagRun()

    def before_page_content(self, page: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        """Strip stale badges, extract tags, register them and inject a fresh badge block."""
        cfg = self.config()
        path = page.get("path") or ""
        original = strip_injected_blocks(page.get("content") or "")

        extracted = extract_tags(original, cfg["frontMatterKey"])
        tags = extracted["tags"]
        content = extracted["content"]
        self.run.registry.register(path, tags)
        if tags:
            LOGGER.debug(f"Tagged {path}: {', '.join(tags)}")

        badges = render_badges(tags, path, cfg)
        page["content"] = badges + content if cfg["injectPosition"] == "top" else content + badges
        return page

    def on_page(self, page: Optional[MutableMapping[str, Any]]) -> Optional[MutableMapping[str, Any]]:
        if page and page.get("path"):
            self.run.registry.record_title(page["path"], page.get("title"))
        return page

    def page_links(self, tag_file: str, pages: List[TaggedPage]) -> List[PageLink]:
        return [
            {"title": page["title"], "href": page_href(self.output, tag_file, page["path"])}
            for page in pages
        ]

    async def finalize(self) -> List[str]:
        """Write the tag index, then every per-tag page concurrently.

        Returns the written paths, index first. Any write failure propagates.
        """
        cfg = self.config()
        tag_index = self.run.registry.aggregate(cfg)
        tags_base = cfg["tagsDir"] or "."
        index_path = posixpath.normpath(posixpath.join(tags_base, cfg["tagIndexFilename"]))

        write_file = self.output.write_file
        await _settle(write_file(index_path, render_index_page(tag_index, cfg)))
        LOGGER.info(f"Wrote tag index {index_path} ({len(tag_index)} tags)")

        writes = []
        written = [index_path]
        for tag, pages in tag_index.items():
            tag_file = posixpath.normpath(posixpath.join(tags_base, f"{tag_slug(tag, cfg)}.html"))
            html = render_tag_page(tag, self.page_links(tag_file, pages), cfg)
            writes.append(_settle(write_file(tag_file, html)))
            written.append(tag_file)
        await asyncio.gather(*writes)
        LOGGER.info(f"Wrote {len(writes)} tag pages under {tags_base}")
        return written
