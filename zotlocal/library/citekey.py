"""Resolve an item's Better BibTeX citation key from every place it may live."""

import re

from zotlocal.core.errors import NotFound
from zotlocal.library.models import ItemDetail

# Fields some Zotero setups store the key in directly, in priority order.
_DIRECT_FIELDS = ("citationKey", "citekey", "bibtexKey")

_EXTRA_PATTERNS = (
    re.compile(r"^citation\s*key\s*:\s*(.+)$", re.IGNORECASE),
    re.compile(r"^citekey\s*:\s*(.+)$", re.IGNORECASE),
    re.compile(r"^bbt\s*citation\s*key\s*:\s*(.+)$", re.IGNORECASE),
)


def resolve_cite_key(item: ItemDetail, companion_key: str | None = None) -> str:
    """Pick the citation key for *item*.

    The Better BibTeX database wins, then a dedicated item field, then a
    ``Citation Key: ...`` line in Extra.
    """
    if companion_key and companion_key.strip():
        return companion_key.strip()

    for name in _DIRECT_FIELDS:
        value = item.field(name)
        if value:
            return value

    from_extra = extract_from_extra(item.field("extra"))
    if from_extra:
        return from_extra

    raise NotFound(
        "Better BibTeX cite key is missing for this item. In Zotero, install "
        "Better BibTeX and ensure a citation key exists "
        '(for example in Extra: "Citation Key: mykey").'
    )


def extract_from_extra(extra: str) -> str:
    """Citation key declared on its own line of the Extra field, or ''."""
    for line in extra.splitlines():
        trimmed = line.strip()
        for pattern in _EXTRA_PATTERNS:
            match = pattern.match(trimmed)
            if match:
                return match.group(1).strip()
    return ""
