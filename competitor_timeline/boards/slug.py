"""URL-safe slug generation for board names."""

import re
import unicodedata
from collections.abc import Iterator

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# Used when a name has no ASCII letters or digits at all (e.g. "日本")
FALLBACK_SLUG = "board"


def generate_slug(name: str) -> str:
    """
    Derive a slug from a display name.

    Lowercases, strips diacritics, collapses every run of characters
    outside ``[a-z0-9]`` into a single ``-`` and trims ``-`` from both ends.

    >>> generate_slug("  Café Nero & Co. ")
    'cafe-nero-co'
    """
    decomposed = unicodedata.normalize("NFD", name.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub("-", stripped).strip("-")


def slug_candidates(name: str) -> Iterator[str]:
    """Yield ``slug``, ``slug-2``, ``slug-3``, ... for collision resolution."""
    base = generate_slug(name) or FALLBACK_SLUG
    yield base
    suffix = 2
    while True:
        yield f"{base}-{suffix}"
        suffix += 1
