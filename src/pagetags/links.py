"""Resolve a page's published location and link to it from a generated tag page."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Any

LOGGER = logging.getLogger(__name__)

README_RE = re.compile(r"(^|/)README(\.[^./]+)?$", re.IGNORECASE)
EXTENSION_RE = re.compile(r"\.[^./]+$")


def normalize_output_path(path: Any) -> str:
    return str(path or "").replace("\\", "/").lstrip("/")


def fallback_output_path(page_path: str) -> str:
    """Guess the published file for a source page: README -> index.html, else swap the extension."""
    normalized = normalize_output_path(page_path)
    if not normalized:
        return ""
    if README_RE.search(normalized):
        return README_RE.sub(r"\1index.html", normalized)
    return EXTENSION_RE.sub(".html", normalized)


def resolve_output_path(output: Any, page_path: str) -> str:
    """Ask the host's `to_url` first; fall back to the local heuristic when it is absent, raises or returns nothing."""
    if not page_path:
        return ""
    to_url = getattr(output, "to_url", None)
    if callable(to_url):
        try:
            resolved = to_url(page_path)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug(f"to_url failed for {page_path}: {exc}")
        else:
            if resolved:
                return normalize_output_path(resolved)
    return fallback_output_path(page_path)


def relative_href(from_file: str, target_path: str) -> str:
    from_dir = posixpath.dirname(from_file) or "."
    relative = posixpath.relpath(target_path, from_dir)
    if relative in ("", "."):
        return posixpath.basename(target_path)
    return relative


def page_href(output: Any, from_file: str, page_path: str) -> str:
    target = resolve_output_path(output, page_path)
    return relative_href(from_file, target) if target else "#"
