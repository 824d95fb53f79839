"""Per-run page registry and the tag -> pages aggregation built from it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pagetags.models import TaggedPage
from pagetags.render import locale_sort_key, tag_slug

LOGGER = logging.getLogger(__name__)


@dataclass
class PageRegistry:
    """Tags and titles recorded for one generation run."""
    tags: Dict[str, List[str]] = field(default_factory=dict)
    titles: Dict[str, str] = field(default_factory=dict)

    def register(self, path: str, tags: Sequence[str]) -> None:
        """Record a page's tags; an empty list drops any earlier entry for the page."""
        if tags:
            self.tags[path] = list(tags)
        else:
            self.tags.pop(path, None)

    def record_title(self, path: str, title: Optional[str] = None) -> None:
        self.titles[path] = title or path

    def title_for(self, path: str) -> str:
        return self.titles.get(path) or path

    def aggregate(self, cfg: Dict[str, Any]) -> Dict[str, List[TaggedPage]]:
        """Invert the registry into label -> pages sorted by title.

        Labels that slugify identically share one output file, so they are
        merged under the label registered first and a warning is logged.
        """
        label_by_slug: Dict[str, str] = {}
        index: Dict[str, List[TaggedPage]] = {}
        seen: Dict[str, set] = {}
        for path, tags in self.tags.items():
            for tag in tags:
                label = str(tag)
                slug = tag_slug(label, cfg)
                owner = label_by_slug.setdefault(slug, label)
                if owner != label:
                    LOGGER.warning(f"Tag {label!r} collides with {owner!r} (slug {slug!r}); merging listings")
                if path in seen.setdefault(owner, set()):
                    continue
                seen[owner].add(path)
                index.setdefault(owner, []).append({"title": self.title_for(path), "path": path})

        for pages in index.values():
            pages.sort(key=lambda page: locale_sort_key(page["title"]))
        return {label: index[label] for label in sorted(index, key=locale_sort_key)}
