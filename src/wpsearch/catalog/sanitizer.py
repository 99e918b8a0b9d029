"""Sanitization of plugin directory payloads.

Everything that leaves this module is a typed ``CatalogResponse``; raw upstream
dictionaries never travel further than here. The functions are total: bad
values are dropped, never raised on.
"""
import html
import math
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from wpsearch.catalog.models import CatalogInfo, CatalogItem, CatalogResponse

TEXT_FIELDS = [
    "slug",
    "version",
    "author",
    "author_profile",
    "requires",
    "tested",
    "requires_php",
    "last_updated",
    "added",
    "homepage",
    "download_link",
]
DISPLAY_FIELDS = ["name", "short_description"]
NUMERIC_FIELDS = ["rating", "num_ratings", "active_installs", "downloaded"]

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_WHITESPACE_RE = re.compile(r"\s+")
_MAX_PASSES = 10


def strip_all_tags(value: str) -> str:
    value = _SCRIPT_STYLE_RE.sub("", value)
    return _TAG_RE.sub("", value)


def decode_entities(value: str) -> str:
    """HTML5 entity decoding repeated until stable, so double encoding unwinds."""
    for _ in range(_MAX_PASSES):
        decoded = html.unescape(value)
        if decoded == value:
            break
        value = decoded
    return value


def sanitize_text_field(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None

    value = strip_all_tags(value)
    value = value.replace("<", "").replace(">", "")
    value = _CONTROL_RE.sub(" ", value)
    value = _WHITESPACE_RE.sub(" ", value)
    return value.strip()


def sanitize_display_text(value: Any) -> Optional[str]:
    """Decode entities, then strip markup, then sanitize.

    Repeats until the output no longer changes so that running it on its own
    output is a no-op.
    """
    if not isinstance(value, str):
        return sanitize_text_field(value)

    for _ in range(_MAX_PASSES):
        cleaned = sanitize_text_field(strip_all_tags(decode_entities(value)))
        if cleaned == value:
            break
        value = cleaned
    return value


def coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def is_valid_url(value: Any) -> bool:
    if not isinstance(value, str) or not value:
        return False
    if any(char.isspace() for char in value) or _CONTROL_RE.search(value):
        return False
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    try:
        parsed.port
    except ValueError:
        return False
    return True


def sanitize_icons(icons: Any) -> Optional[Dict[str, str]]:
    if not isinstance(icons, dict):
        return None

    sanitized: Dict[str, str] = {}
    for size, url in icons.items():
        label = sanitize_text_field(size)
        if label and is_valid_url(url):
            sanitized[label] = url
    return sanitized


def sanitize_plugin(plugin: Dict[str, Any]) -> CatalogItem:
    sanitized: Dict[str, Any] = {}

    for field in TEXT_FIELDS:
        value = sanitize_text_field(plugin.get(field))
        if value is not None:
            sanitized[field] = value

    for field in DISPLAY_FIELDS:
        value = sanitize_display_text(plugin.get(field))
        if value is not None:
            sanitized[field] = value

    for field in NUMERIC_FIELDS:
        value = coerce_int(plugin.get(field))
        if value is not None:
            sanitized[field] = value
    if "rating" in sanitized:
        sanitized["rating"] = max(0, min(100, sanitized["rating"]))

    icons = sanitize_icons(plugin.get("icons"))
    if icons is not None:
        sanitized["icons"] = icons

    return CatalogItem.model_validate(sanitized)


def sanitize_info(info: Any, plugin_count: int) -> CatalogInfo:
    if not isinstance(info, dict):
        info = {}

    results = coerce_int(info.get("results"))
    if results is None or results < 0:
        results = plugin_count

    payload: Dict[str, Any] = {"results": results}
    for field in ("page", "pages"):
        value = coerce_int(info.get(field))
        if value is not None and value >= 0:
            payload[field] = value
    return CatalogInfo.model_validate(payload)


def sanitize_response(response: Any) -> CatalogResponse:
    if not isinstance(response, dict):
        response = {}

    raw_plugins = response.get("plugins")
    if isinstance(raw_plugins, dict):
        # Older directory API versions key plugins by slug
        raw_plugins = list(raw_plugins.values())
    if not isinstance(raw_plugins, list):
        raw_plugins = []

    plugins: List[CatalogItem] = [
        sanitize_plugin(plugin) for plugin in raw_plugins if isinstance(plugin, dict)
    ]
    return CatalogResponse(
        plugins=plugins, info=sanitize_info(response.get("info"), len(plugins))
    )
