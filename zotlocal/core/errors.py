"""Error kinds surfaced by the local Zotero library layer."""

from pathlib import Path


class ZotLocalError(Exception):
    """Base class for every error raised by zotlocal."""


class NotFound(ZotLocalError, LookupError):
    """An item, annotation, cached image or database file is absent."""


class ConfigurationMissing(NotFound):
    """No usable HOME or database path; the message names the override to set."""


class DatabaseUnavailable(ZotLocalError):
    """Opening or querying the primary database failed."""

    def __init__(self, path: Path | str, detail: str):
        self.path = Path(path)
        self.detail = detail
        super().__init__(f"{detail} ({self.path})")


class CompanionUnavailable(ZotLocalError):
    """The Better BibTeX database is missing or unreadable.

    Never propagated out of the query layer: callers see ``None`` instead.
    """
