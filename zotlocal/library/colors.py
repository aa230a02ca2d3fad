"""Zotero highlight palette: hex codes to color names, and group ordering."""

HEX_TO_COLOR: dict[str, str] = {
    "#ffd400": "Yellow",
    "#fff5ad": "Yellow",
    "#5fb236": "Green",
    "#2ea8e5": "Blue",
    "#a28ae5": "Purple",
    "#e56eee": "Pink",
    "#f19837": "Orange",
    "#aaaaaa": "Gray",
}

FIXED_ORDER = ("Yellow", "Green", "Blue", "Pink", "Orange", "Purple", "Gray", "Unknown")

_UNKNOWN = "Unknown"


def color_name_from_hex(value: str) -> str:
    """Map a highlight color to its palette name.

    Unmapped colors keep their hex so distinct unknown colors stay apart.
    """
    normalized = value.strip().lower()
    if not normalized:
        return _UNKNOWN
    return HEX_TO_COLOR.get(normalized, f"{_UNKNOWN} ({normalized})")


def color_sort_key(name: str) -> tuple[int, str]:
    """Sort key placing palette colors first, then unknowns, then anything else."""
    return (_color_rank(name), name)


def _color_rank(name: str) -> int:
    unknown_rank = FIXED_ORDER.index(_UNKNOWN)
    if name in FIXED_ORDER:
        return FIXED_ORDER.index(name)
    if name.startswith(_UNKNOWN):
        return unknown_rank
    return unknown_rank + 1
