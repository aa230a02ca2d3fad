"""Read-only, immutable SQLite connections to external databases."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from zotlocal.core.errors import CompanionUnavailable, DatabaseUnavailable
from zotlocal.core.paths import resolve_companion, resolve_primary

logger = logging.getLogger(__name__)

# Order matters: '%' first so the escapes added afterwards are not re-encoded.
_URI_ESCAPES = (
    ("%", "%25"),
    ("?", "%3F"),
    ("#", "%23"),
    (" ", "%20"),
)


def sqlite_file_uri(path: Path | str) -> str:
    """Build a ``file:`` URI for *path* with the immutable hint appended."""
    escaped = str(path)
    for char, replacement in _URI_ESCAPES:
        escaped = escaped.replace(char, replacement)
    return f"file:{escaped}?immutable=1"


def open_readonly(path: Path | str, label: str = "Zotero") -> sqlite3.Connection:
    """Open *path* strictly read-only.

    ``mode=ro`` is the read-only open flag. ``immutable=1`` tells SQLite the
    file will not change while the connection is open, so no locks are taken
    against Zotero's own writer. Connections must therefore not outlive a
    single request.
    """
    uri = sqlite_file_uri(path)
    try:
        conn = sqlite3.connect(f"{uri}&mode=ro", uri=True)
    except sqlite3.Error as exc:
        raise DatabaseUnavailable(path, f"failed to open {label} database: {exc}") from exc
    conn.row_factory = sqlite3.Row
    logger.debug("Opened %s database %s", label, uri)
    return conn


@contextmanager
def readonly_connection(path: Path | str, label: str = "Zotero") -> Iterator[sqlite3.Connection]:
    """Open *path* read-only for the duration of one request."""
    conn = open_readonly(path, label)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def zotero_connection(db_path: Path | None = None) -> Iterator[tuple[sqlite3.Connection, Path]]:
    """Resolve and open zotero.sqlite; yields the connection and its path."""
    path = db_path or resolve_primary()
    with readonly_connection(path, "Zotero") as conn:
        yield conn, path


@contextmanager
def companion_connection(db_path: Path | None = None) -> Iterator[tuple[sqlite3.Connection, Path]]:
    """Resolve and open better-bibtex.sqlite, or raise CompanionUnavailable."""
    path = db_path or resolve_companion()
    if path is None or not Path(path).exists():
        raise CompanionUnavailable("Could not locate better-bibtex.sqlite")
    try:
        conn = open_readonly(path, "Better BibTeX")
    except DatabaseUnavailable as exc:
        raise CompanionUnavailable(str(exc)) from exc
    try:
        yield conn, Path(path)
    finally:
        conn.close()
