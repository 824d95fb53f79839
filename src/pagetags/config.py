"""Plugin configuration: defaults, host lookup and validation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from jsonschema import Draft7Validator

LOGGER = logging.getLogger(__name__)

# Section names accepted under the host's pluginsConfig
PLUGIN_SECTION_KEYS = ("pagetags", "tags")

DEFAULT_CONFIG: Dict[str, Any] = {
    "frontMatterKey": "tags",
    "injectPosition": "bottom",   # "top" | "bottom"
    "linkAbsolute": False,        # if true, badges link to "/tags/<slug>.html"
    "indexTitle": "Tags",
    "tagsDir": "tags",
    "tagIndexFilename": "index.html",
    "showCount": True,
    "badgeStyle": "pill",         # CSS modifier only
    "lowercaseSlugs": True,
}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "frontMatterKey": {"type": "string", "minLength": 1},
        "injectPosition": {"type": "string", "enum": ["top", "bottom"]},
        "linkAbsolute": {"type": "boolean"},
        "indexTitle": {"type": "string"},
        "tagsDir": {"type": "string"},
        "tagIndexFilename": {"type": "string", "minLength": 1},
        "showCount": {"type": "boolean"},
        "badgeStyle": {"type": "string"},
        "lowercaseSlugs": {"type": "boolean"},
    },
    "additionalProperties": True,
}

_VALIDATOR = Draft7Validator(CONFIG_SCHEMA)


def strip_slashes(value: str) -> str:
    return str(value or "").strip("/")


def _plugins_config(host: Any) -> Optional[Dict[str, Any]]:
    config = getattr(host, "config", None)
    if config is None:
        return None
    getter = getattr(config, "get", None)
    if callable(getter):
        return getter("pluginsConfig")
    values = getattr(config, "values", None) or {}
    return values.get("pluginsConfig")


def load_overrides(host: Any) -> Dict[str, Any]:
    """Return this plugin's section of the host configuration, or {} on any lookup failure."""
    try:
        root = _plugins_config(host)
        if not root:
            return {}
        for key in PLUGIN_SECTION_KEYS:
            section = root.get(key)
            if section:
                return dict(section)
        return {}
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.debug(f"Plugin configuration lookup failed, using defaults: {exc}")
        return {}


def validate_overrides(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Drop override keys whose values do not match CONFIG_SCHEMA."""
    rejected = set()
    for error in _VALIDATOR.iter_errors(overrides):
        if error.path:
            key = error.path[0]
            rejected.add(key)
            LOGGER.warning(f"Ignoring invalid value for {key!r}: {error.message}")
    return {k: v for k, v in overrides.items() if k not in rejected}


def resolve_config(host: Any = None) -> Dict[str, Any]:
    """Merge the host's overrides over DEFAULT_CONFIG.

    Resolved on every call; the content and finish phases may see
    different configuration if the host changes it in between.
    """
    cfg = dict(DEFAULT_CONFIG)
    cfg.update(validate_overrides(load_overrides(host)))
    cfg["tagsDir"] = strip_slashes(cfg["tagsDir"])
    return cfg
