"""Small filesystem writers used by the exporters."""

import logging
import tempfile
import time
from pathlib import Path

from zotlocal.core.errors import ZotLocalError

logger = logging.getLogger(__name__)


def ensure_dir(path: str | Path) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ZotLocalError(f"failed to create directory {path}: {exc}") from exc
    return path


def save_markdown_file(path: str | Path, content: str) -> Path:
    """Write *content* to *path*, creating parent directories."""
    path = Path(path)
    ensure_dir(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ZotLocalError(f"failed to write markdown file {path}: {exc}") from exc
    logger.info("Markdown written to %s", path)
    return path


def save_png_bytes(path: str | Path, data: bytes) -> Path:
    path = Path(path)
    ensure_dir(path.parent)
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise ZotLocalError(f"failed to write png bytes {path}: {exc}") from exc
    logger.debug("Wrote %d bytes to %s", len(data), path)
    return path


def write_temp_debug_dump(prefix: str, content: str) -> Path:
    """Write a timestamped JSON dump to the temp directory and return its path.

    Only ``[A-Za-z0-9_-]`` survive from *prefix*.
    """
    sanitized = "".join(
        ch for ch in prefix if (ch.isascii() and ch.isalnum()) or ch in "-_"
    )
    timestamp = int(time.time())
    name = f"{sanitized or 'zotero-debug'}-{timestamp}.json"
    path = Path(tempfile.gettempdir()) / name
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ZotLocalError(f"failed to write debug dump {path}: {exc}") from exc
    logger.info("Debug dump written to %s", path)
    return path
