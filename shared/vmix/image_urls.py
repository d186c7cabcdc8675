"""Rewrite locally stored logo references into URLs vMix can fetch."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

LOCAL_ASSET_PREFIX = "logos/"
# Left unescaped in file names, as encodeURIComponent does
URI_COMPONENT_SAFE = "-_.!~*'()"


def resolve_image_urls(image_fields: Any, base_url: Optional[str]) -> Dict[str, str]:
    """
    Map ``logos/<file>`` values to ``<base_url>/logos/<percent-encoded file>``.

    Other string values (absolute URLs included) pass through trimmed. Without a
    base URL the input is returned unchanged; a malformed mapping yields an
    empty dict.
    """
    if not isinstance(image_fields, Mapping):
        return {}
    if not base_url:
        return dict(image_fields)

    logos_base = base_url.rstrip("/") + "/logos/"
    resolved: Dict[str, str] = {}
    for name, value in image_fields.items():
        # Non-string values (None, numbers) become "": vMix gets an empty source
        text = value.strip() if isinstance(value, str) else ""
        if text.startswith(LOCAL_ASSET_PREFIX):
            filename = text[len(LOCAL_ASSET_PREFIX):]
            resolved[name] = logos_base + quote(filename, safe=URI_COMPONENT_SAFE)
        else:
            resolved[name] = text
    return resolved
