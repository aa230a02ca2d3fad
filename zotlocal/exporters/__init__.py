"""Export convenience function."""

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from zotlocal.core.errors import ZotLocalError
from zotlocal.core.settings import AppSettings
from zotlocal.exporters.files import save_markdown_file, save_png_bytes
from zotlocal.exporters.markdown import generate_markdown, mark_missing_image, prepare_export
from zotlocal.library.citekey import resolve_cite_key
from zotlocal.library.images import get_cached_image
from zotlocal.library.queries import get_annotations, get_citation_key, get_item
from zotlocal.remote.proxy import proxy_get_bytes

logger = logging.getLogger(__name__)


class ExportResult(BaseModel):
    cite_key: str
    markdown_path: str
    image_paths: list[str] = Field(default_factory=list)
    missing_images: list[str] = Field(default_factory=list)
    annotation_count: int = 0


def export_item(
    item_key: str,
    settings: AppSettings,
    db_path: Path | None = None,
    bbt_path: Path | None = None,
    use_api: bool = True,
) -> ExportResult:
    """Write the Markdown note and annotation images for one item."""
    if not settings.markdown_dir.strip():
        raise ZotLocalError("Markdown directory is not configured (markdownDir).")
    attachment_base_dir = settings.attachment_base_dir.strip() or settings.markdown_dir

    item = get_item(item_key, db_path)
    cite_key = resolve_cite_key(item, get_citation_key(item_key, bbt_path))
    annotations = get_annotations(item_key, db_path)
    logger.info(
        "Exporting %s %s as @%s (%d annotations)",
        item.item_type, item_key, cite_key, len(annotations),
    )

    prepared = prepare_export(
        item, annotations, cite_key, settings.markdown_dir, attachment_base_dir
    )

    image_paths: list[str] = []
    missing: list[str] = []
    for plan in prepared.image_plans:
        data = _fetch_image(plan.annotation_key, settings, db_path, use_api)
        if data is None:
            missing.append(plan.annotation_key)
            prepared = mark_missing_image(
                prepared,
                plan.annotation_key,
                f"image for annotation {plan.annotation_key} is not cached yet; "
                "open the PDF in Zotero and export again.",
            )
            continue
        save_png_bytes(plan.absolute_path, data)
        image_paths.append(plan.absolute_path)

    if missing:
        logger.warning("%d annotation images missing: %s", len(missing), ", ".join(missing))

    content = generate_markdown(prepared, settings.template_settings)
    save_markdown_file(prepared.markdown_path, content)

    return ExportResult(
        cite_key=cite_key,
        markdown_path=prepared.markdown_path,
        image_paths=image_paths,
        missing_images=missing,
        annotation_count=len(annotations),
    )


# ── Helpers ──────────────────────────────────────────────────────────


def _fetch_image(
    annotation_key: str, settings: AppSettings, db_path: Path | None, use_api: bool
) -> bytes | None:
    """Cached PNG from the Zotero profile, else the local API; None if neither has it."""
    try:
        return get_cached_image(annotation_key, db_path)
    except ZotLocalError as exc:
        logger.debug("No cached image for %s: %s", annotation_key, exc)

    if not use_api or not settings.zotero_base_url.strip():
        return None

    url = f"{settings.zotero_base_url.strip().rstrip('/')}/api/users/0/items/{annotation_key}/file"
    try:
        data = proxy_get_bytes(url, settings.zotero_api_key)
    except ZotLocalError as exc:
        logger.debug("Zotero API has no image for %s: %s", annotation_key, exc)
        return None
    return data or None
