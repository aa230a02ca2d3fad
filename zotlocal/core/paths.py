"""Locate zotero.sqlite and the optional Better BibTeX database on disk."""

import logging
import os
from pathlib import Path

from zotlocal.core.errors import ConfigurationMissing, ZotLocalError

logger = logging.getLogger(__name__)

PRIMARY_ENV = "ZOTERO_SQLITE_PATH"
COMPANION_ENV = "ZOTERO_BBT_SQLITE_PATH"

PRIMARY_FILENAME = "zotero.sqlite"
COMPANION_FILENAME = "better-bibtex.sqlite"

# Data directories Zotero creates under the user's home, in probe order.
APP_DIRS = ("Zotero", "Zotero Beta")


# ── Public API ───────────────────────────────────────────────────────


def home_dir() -> Path:
    """Return $HOME as a Path, or raise ConfigurationMissing."""
    home = os.environ.get("HOME", "").strip()
    if not home:
        raise ConfigurationMissing(
            f"HOME environment variable is not set. Set {PRIMARY_ENV} to the database file."
        )
    return Path(home)


def resolve_primary() -> Path:
    """Return the path of zotero.sqlite.

    The ``ZOTERO_SQLITE_PATH`` override wins when it names an existing file;
    otherwise the conventional data directories are probed in order.
    """
    override = _override(PRIMARY_ENV)
    if override is not None:
        return override

    for candidate in _conventional(home_dir(), PRIMARY_FILENAME):
        if candidate.exists():
            logger.debug("Using Zotero database %s", candidate)
            return candidate

    raise ConfigurationMissing(
        f"Could not locate {PRIMARY_FILENAME}. Set {PRIMARY_ENV} to the database file."
    )


def resolve_companion() -> Path | None:
    """Return the path of better-bibtex.sqlite, or None when it is not installed."""
    override = _override(COMPANION_ENV)
    if override is not None:
        return override

    try:
        home = home_dir()
    except ConfigurationMissing:
        return None

    for candidate in _conventional(home, COMPANION_FILENAME):
        if candidate.exists():
            logger.debug("Using Better BibTeX database %s", candidate)
            return candidate

    logger.debug("No Better BibTeX database found")
    return None


def profile_dir(db_path: Path | None = None) -> Path:
    """Directory holding zotero.sqlite; the annotation image cache lives under it."""
    sqlite_path = db_path or resolve_primary()
    parent = sqlite_path.parent
    if not sqlite_path.name or parent == sqlite_path:
        raise ZotLocalError(
            f"failed to resolve Zotero profile directory from {sqlite_path}"
        )
    return parent


# ── Helpers ──────────────────────────────────────────────────────────


def _override(env_var: str) -> Path | None:
    raw = os.environ.get(env_var, "").strip()
    if not raw:
        return None
    candidate = Path(raw)
    if candidate.exists():
        logger.debug("%s override -> %s", env_var, candidate)
        return candidate
    logger.warning("%s is set but %s does not exist; ignoring", env_var, candidate)
    return None


def _conventional(home: Path, filename: str) -> list[Path]:
    return [home / app_dir / filename for app_dir in APP_DIRS]
