"""User settings: Pydantic models persisted as JSON in the config directory."""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from zotlocal.core.errors import ZotLocalError

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "ZOTLOCAL_CONFIG_DIR"
SETTINGS_FILENAME = "settings.json"

DEFAULT_BASE_URL = "http://127.0.0.1:23119"
DEFAULT_PROPERTY_ORDER = ["title", "author", "year", "company"]


# ── Models ───────────────────────────────────────────────────────────


class TemplateSettings(BaseModel):
    """Markdown template knobs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    property_order: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROPERTY_ORDER),
        description="Front matter keys in output order",
    )
    color_heading_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Color name -> heading text used instead of the color name",
    )


class AppSettings(BaseModel):
    """Everything the user can configure.

    Missing keys fall back to defaults; unknown keys are kept and saved back.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    markdown_dir: str = ""
    attachment_base_dir: str = ""
    zotero_api_key: str = ""
    zotero_base_url: str = DEFAULT_BASE_URL
    template_settings: TemplateSettings = Field(default_factory=TemplateSettings)


# ── Persistence ──────────────────────────────────────────────────────


def settings_path() -> Path:
    """Path of settings.json, creating its directory if needed."""
    raw = os.environ.get(CONFIG_DIR_ENV, "").strip()
    config_dir = Path(raw).expanduser() if raw else Path.home() / ".config" / "zotlocal"
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ZotLocalError(
            f"failed to create app config directory {config_dir}: {exc}"
        ) from exc
    return config_dir / SETTINGS_FILENAME


def load_settings(path: str | Path | None = None) -> AppSettings:
    """Load settings from disk; a missing file yields the defaults."""
    path = Path(path) if path else settings_path()
    if not path.exists():
        logger.debug("No settings at %s, using defaults", path)
        return AppSettings()

    try:
        with open(path) as f:
            raw = json.load(f)
        return AppSettings.model_validate(raw)
    except OSError as exc:
        raise ZotLocalError(f"failed to read settings {path}: {exc}") from exc
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ZotLocalError(f"failed to parse settings {path}: {exc}") from exc


def save_settings(settings: AppSettings, path: str | Path | None = None) -> Path:
    """Write *settings* as pretty JSON with camelCase keys. Returns the path."""
    path = Path(path) if path else settings_path()
    blob = settings.model_dump_json(by_alias=True, indent=2)
    try:
        path.write_text(blob)
    except OSError as exc:
        raise ZotLocalError(f"failed to write settings {path}: {exc}") from exc
    logger.info("Settings saved to %s", path)
    return path
