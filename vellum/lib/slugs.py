"""URL slug helpers."""

import re
import unicodedata
from collections.abc import Collection

_INVALID_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"[\s_]+")
_DASHES = re.compile(r"-+")


def slugify(title: str, max_length: int = 255) -> str:
    """Turn a title into a lowercase, accent-free, dash-separated slug."""
    value = unicodedata.normalize("NFKD", title)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _INVALID_CHARS.sub("", value.lower())
    value = _WHITESPACE.sub("-", value)
    value = _DASHES.sub("-", value).strip("-")
    return value[:max_length].rstrip("-")


def unique_slug(base: str, taken: Collection[str]) -> str:
    """Return ``base`` or the first ``base-N`` (N >= 2) not in ``taken``."""
    if base not in taken:
        return base
    counter = 2
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"
