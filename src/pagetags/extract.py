"""Tag extraction from page source: YAML front matter and inline tag comments."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from pagetags.models import ExtractionResult

LOGGER = logging.getLogger(__name__)

START_MARK = "<!-- TAGS-PLUGIN:START -->"
END_MARK = "<!-- TAGS-PLUGIN:END -->"

INJECTED_BLOCK_RE = re.compile(
    r"\n?" + re.escape(START_MARK) + r"[\s\S]*?" + re.escape(END_MARK) + r"\n?"
)
FRONT_MATTER_RE = re.compile(
    r"\A(?:[ \t]*\r?\n)*---[ \t]*\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)
TAG_COMMENT_RE = re.compile(r"<!--\s*tags\s*:\s*([^>]*)-->", re.IGNORECASE)
TAG_SEPARATOR_RE = re.compile(r"[,|;]")


def strip_injected_blocks(content: str) -> str:
    """Remove every previously injected badge block."""
    return INJECTED_BLOCK_RE.sub("", content)


def split_tag_list(raw: str) -> List[str]:
    return [part.strip() for part in TAG_SEPARATOR_RE.split(raw) if part.strip()]


def uniq(items: Iterable[str]) -> List[str]:
    seen = set()
    result: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def split_front_matter(content: str) -> Tuple[Optional[Dict[str, Any]], str]:
    """Separate a leading YAML front matter block from the body.

    Returns (data, body). When there is no block, or it does not parse to a
    mapping, data is None and the content is returned unchanged.
    """
    match = FRONT_MATTER_RE.match(content)
    if not match:
        return None, content
    try:
        data = yaml.safe_load(match.group(1) or "")
    except yaml.YAMLError as exc:
        LOGGER.debug(f"Ignoring malformed front matter: {exc}")
        return None, content
    if data is None:
        data = {}
    if not isinstance(data, dict):
        LOGGER.debug(f"Ignoring front matter that is not a mapping ({type(data).__name__})")
        return None, content
    return data, content[match.end():]


def extract_tags_from_front_matter(content: str, key: str) -> ExtractionResult:
    data, body = split_front_matter(content)
    raw = (data or {}).get(key)
    tags: List[str] = []
    if isinstance(raw, list):
        tags = [str(item) for item in raw if item is not None]
    elif isinstance(raw, str):
        tags = split_tag_list(raw)
    return {"tags": tags, "content": body}


def extract_tags_from_comment(content: str) -> List[str]:
    """Tags from the first `<!-- tags: a, b -->` marker; the marker is left in place."""
    match = TAG_COMMENT_RE.search(content)
    if not match:
        return []
    return split_tag_list(match.group(1))


def extract_tags(content: str, key: str = "tags") -> ExtractionResult:
    """Collect a page's tags and strip its front matter.

    Args:
        content: Raw page source, possibly empty.
        key: Front matter field holding the tags.

    Returns:
        Deduplicated tags (front matter first, then the inline comment) and the
        content without its front matter block.
    """
    if not content:
        return {"tags": [], "content": content or ""}
    front = extract_tags_from_front_matter(content, key)
    body = front["content"]
    tags = [t.strip() for t in front["tags"] + extract_tags_from_comment(body)]
    return {"tags": uniq(t for t in tags if t), "content": body}
