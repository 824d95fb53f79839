"""A minimal filesystem host so the plugin can run over a plain directory of markdown."""

from __future__ import annotations

import fnmatch
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pagetags.extract import split_front_matter

LOGGER = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)


class HostConfig:
    """Nested configuration store exposing `get(key)`."""

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self.values = dict(values or {})

    def get(self, key: str) -> Any:
        return self.values.get(key)

    @classmethod
    def load(cls, path: Optional[str]) -> "HostConfig":
        """Read a YAML or JSON book configuration file.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If it does not parse to a mapping.
        """
        if not path:
            return cls()
        with open(path, "r", encoding="utf-8") as fh:
            try:
                data = yaml.safe_load(fh)
            except yaml.YAMLError as exc:
                raise ValueError(f"{path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: configuration root must be a mapping")
        return cls(data)


class FileOutput:
    """Writes generated files under an output root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _target(self, path: str) -> Path:
        target = (self.root / path).resolve()
        base = self.root.resolve()
        if target != base and base not in target.parents:
            raise ValueError(f"Output path escapes {base}: {path}")
        return target

    async def write_file(self, path: str, content: str) -> None:
        target = self._target(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        LOGGER.debug(f"Wrote {target}")

    def to_url(self, path: str) -> Optional[str]:
        # pages are written under their source name, so link to that file
        return path.replace("\\", "/")

    def copy_assets(self, assets_dir: Path, css: List[str]) -> List[str]:
        copied = []
        for name in css:
            target = self._target(f"assets/{name}")
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(assets_dir / name, target)
            copied.append(f"assets/{name}")
        return copied


class LocalHost:
    def __init__(self, config: HostConfig, output: FileOutput):
        self.config = config
        self.output = output


def collect_pages(directory: Path, patterns: List[str], excludes: List[str]) -> List[str]:
    """Relative POSIX paths of the files under `directory` matching `patterns` and no `excludes`."""
    candidates = set()
    for pattern in patterns or ["*"]:
        for candidate in directory.rglob(pattern):
            if not candidate.is_file():
                continue
            rel = candidate.relative_to(directory).as_posix()
            if any(fnmatch.fnmatch(rel, ex) for ex in excludes or []):
                continue
            candidates.add(rel)
    return sorted(candidates)


def page_title(content: str, path: str) -> str:
    data, body = split_front_matter(content)
    title = (data or {}).get("title")
    if title:
        return str(title)
    match = HEADING_RE.search(body)
    if match:
        return match.group(1)
    return path
