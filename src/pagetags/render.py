"""HTML rendering: slugs, badge blocks, the tag index page and per-tag pages."""

from __future__ import annotations

import hashlib
import re
import unicodedata
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup

from pagetags.extract import END_MARK, START_MARK
from pagetags.models import PageLink, TaggedPage

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
STYLESHEET_HREF = "../assets/tags.css"

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")

_jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)), autoescape=True)


def _strip_marks(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify(text: str, lowercase: bool = True) -> str:
    """URL-safe slug: ASCII letters, digits and single hyphens, no hyphen at either end."""
    value = str(text).lower() if lowercase else str(text)
    value = _strip_marks(value.strip())
    return _NON_ALNUM_RE.sub("-", value).strip("-")


def tag_slug(tag: str, cfg: Dict[str, Any]) -> str:
    """Slug used for a tag's file and links.

    Tags with no ASCII letters or digits get a digest-based slug, and a slug
    that would land on the index file gets a `-tag` suffix.
    """
    slug = slugify(tag, cfg["lowercaseSlugs"])
    if not slug:
        key = str(tag).strip()
        if cfg["lowercaseSlugs"]:
            key = key.lower()
        slug = "tag-" + hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
    if f"{slug}.html" == cfg["tagIndexFilename"]:
        slug = f"{slug}-tag"
    return slug


def locale_sort_key(text: str) -> Tuple[str, str, str]:
    # base letters, then accents, then case (lowercase first)
    return _strip_marks(text).casefold(), unicodedata.normalize("NFD", text).casefold(), text.swapcase()


def badge_prefix(page_path: str, cfg: Dict[str, Any]) -> str:
    """Link prefix that climbs from the page's directory back to the output root."""
    if cfg["linkAbsolute"]:
        return "/"
    depth = str(page_path or "").replace("\\", "/").count("/")
    return "../" * depth


def render_badges(tags: Sequence[str], page_path: str, cfg: Dict[str, Any]) -> str:
    if not tags:
        return ""
    href_base = f"{badge_prefix(page_path, cfg)}{cfg['tagsDir'].strip('/')}/"
    fragment = _jinja_env.get_template("badges.html").render(
        start_mark=Markup(START_MARK),
        end_mark=Markup(END_MARK),
        badge_style=cfg["badgeStyle"],
        badges=[{"label": tag, "href": f"{href_base}{tag_slug(tag, cfg)}.html"} for tag in tags],
    )
    return f"\n\n{fragment}\n\n"


def render_index_page(tag_index: Dict[str, List[TaggedPage]], cfg: Dict[str, Any]) -> str:
    tags = [
        {"label": tag, "slug": tag_slug(tag, cfg), "count": len(tag_index[tag])}
        for tag in sorted(tag_index, key=locale_sort_key)
    ]
    return _jinja_env.get_template("index.html").render(
        title=cfg["indexTitle"],
        stylesheet=STYLESHEET_HREF,
        tags=tags,
        show_count=cfg["showCount"],
    )


def render_tag_page(tag: str, pages: Sequence[PageLink], cfg: Dict[str, Any]) -> str:
    return _jinja_env.get_template("tag.html").render(
        title=f"Tag: {tag}",
        stylesheet=STYLESHEET_HREF,
        pages=pages,
        index_href=cfg["tagIndexFilename"],
    )
