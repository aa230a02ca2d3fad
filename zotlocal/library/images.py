"""Look up annotation images Zotero has already rendered into its cache."""

import logging
import sqlite3
from pathlib import Path
from typing import Callable

from zotlocal.core.connection import zotero_connection
from zotlocal.core.errors import DatabaseUnavailable, NotFound, ZotLocalError
from zotlocal.core.paths import profile_dir
from zotlocal.library.models import LibraryScope

logger = logging.getLogger(__name__)

_SCOPE_SQL = """
SELECT l.type AS libraryType, g.groupID AS groupID
FROM items i
JOIN libraries l ON l.libraryID = i.libraryID
LEFT JOIN groups g ON g.libraryID = l.libraryID
WHERE i.key = ?
LIMIT 1
"""


# ── Cache Layouts ────────────────────────────────────────────────────
#
# Zotero has written group images to two different places over time, so
# each layout is a separate builder tried in order.

PathBuilder = Callable[[Path, str, LibraryScope], Path | None]


def _personal_cache(profile: Path, key: str, scope: LibraryScope) -> Path | None:
    return profile / "cache" / "library" / f"{key}.png"


def _group_cache(profile: Path, key: str, scope: LibraryScope) -> Path | None:
    if not scope.is_group or scope.group_id is None:
        return None
    return profile / "cache" / "groups" / str(scope.group_id) / f"{key}.png"


def _group_library_cache(profile: Path, key: str, scope: LibraryScope) -> Path | None:
    if not scope.is_group or scope.group_id is None:
        return None
    return profile / "cache" / "groups" / str(scope.group_id) / "library" / f"{key}.png"


CACHE_LAYOUTS: tuple[PathBuilder, ...] = (
    _personal_cache,
    _group_cache,
    _group_library_cache,
)


# ── Public API ───────────────────────────────────────────────────────


def library_scope(conn: sqlite3.Connection, annotation_key: str) -> LibraryScope:
    """Library type and group id of the item with *annotation_key*."""
    row = conn.execute(_SCOPE_SQL, (annotation_key,)).fetchone()
    if row is None:
        raise NotFound(f"Zotero annotation {annotation_key} not found")
    return LibraryScope(library_type=row["libraryType"], group_id=row["groupID"])


def candidate_paths(profile: Path, annotation_key: str, scope: LibraryScope) -> list[Path]:
    """Cache files to probe for *annotation_key*, most likely first."""
    candidates = []
    for build in CACHE_LAYOUTS:
        path = build(profile, annotation_key, scope)
        if path is not None:
            candidates.append(path)
    return candidates


def get_cached_image(annotation_key: str, db_path: Path | None = None) -> bytes:
    """Return the PNG bytes Zotero cached for an image annotation.

    Raises NotFound when no cache file exists. That only means Zotero has
    not rendered the image yet; callers should fall back, not fail.
    """
    with zotero_connection(db_path) as (conn, path):
        try:
            scope = library_scope(conn, annotation_key)
        except sqlite3.Error as exc:
            raise DatabaseUnavailable(
                path, f"failed to resolve annotation library for cached image: {exc}"
            ) from exc

    profile = profile_dir(path)
    for candidate in candidate_paths(profile, annotation_key, scope):
        if candidate.exists():
            logger.debug("Cached image for %s at %s", annotation_key, candidate)
            try:
                return candidate.read_bytes()
            except OSError as exc:
                raise ZotLocalError(
                    f"failed to read cached annotation image {candidate}: {exc}"
                ) from exc

    raise NotFound(f"no cached annotation image found for {annotation_key} in Zotero cache.")
