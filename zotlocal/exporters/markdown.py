"""Render an item and its annotations as an Obsidian-style Markdown note."""

import posixpath
import re
from urllib.parse import quote

from pydantic import BaseModel, Field

from zotlocal.core.settings import DEFAULT_PROPERTY_ORDER, TemplateSettings
from zotlocal.library.colors import color_sort_key
from zotlocal.library.models import Annotation, ItemDetail
from zotlocal.library.queries import extract_year

PROPERTY_LABELS = {
    "title": "Title",
    "author": "Author",
    "year": "Year",
    "company": "Company",
}

# Fields that name the publishing organization, depending on item type.
_COMPANY_FIELDS = ("publisher", "institution", "company", "university")

_NO_TEXT = "(No text extracted)"


# ── Models ───────────────────────────────────────────────────────────


class ImagePlan(BaseModel):
    """Where the PNG for one image annotation will be written."""

    annotation_key: str
    attachment_key: str
    file_name: str
    absolute_path: str
    relative_path: str = Field(description="Path as linked from the Markdown file")


class RenderAnnotation(BaseModel):
    key: str
    text: str = ""
    comment: str = ""
    page_label: str = ""
    image_path: str | None = None
    missing_image_message: str | None = None


class ColorGroup(BaseModel):
    color_name: str
    annotations: list[RenderAnnotation] = Field(default_factory=list)


class PreparedExport(BaseModel):
    """Everything needed to write a note, before any file is touched."""

    markdown_path: str
    title: str = ""
    author: str = ""
    year: str = ""
    company: str = ""
    abstract_text: str = ""
    groups: list[ColorGroup] = Field(default_factory=list)
    image_plans: list[ImagePlan] = Field(default_factory=list)


# ── Preparation ──────────────────────────────────────────────────────


def prepare_export(
    item: ItemDetail,
    annotations: list[Annotation],
    cite_key: str,
    markdown_dir: str,
    attachment_base_dir: str,
) -> PreparedExport:
    """Plan the note for *item*: metadata, color groups and image files."""
    image_dir = normalize_path(f"{attachment_base_dir}/attachment/{cite_key}")
    markdown_path = normalize_path(f"{markdown_dir}/@{cite_key}.md")

    image_plans: list[ImagePlan] = []
    grouped: dict[str, list[RenderAnnotation]] = {}

    for annotation in sorted(annotations, key=lambda a: a.sort_index):
        render = RenderAnnotation(
            key=annotation.key,
            text=annotation.text.strip(),
            comment=annotation.comment.strip(),
            page_label=annotation.page_label.strip(),
        )

        if annotation.is_image_selection:
            file_name = f"image_{len(image_plans) + 1}.png"
            absolute_path = normalize_path(f"{image_dir}/{file_name}")
            relative_path = to_relative_path(markdown_path, absolute_path)
            image_plans.append(
                ImagePlan(
                    annotation_key=annotation.key,
                    attachment_key=annotation.attachment_key,
                    file_name=file_name,
                    absolute_path=absolute_path,
                    relative_path=relative_path,
                )
            )
            render.image_path = relative_path

        grouped.setdefault(annotation.color_name, []).append(render)

    return PreparedExport(
        markdown_path=markdown_path,
        title=item.field("title"),
        author="; ".join(filter(None, (c.display() for c in item.creators))),
        year=extract_year(item.field("date")),
        company=next((item.field(f) for f in _COMPANY_FIELDS if item.field(f)), ""),
        abstract_text=item.field("abstractNote"),
        groups=[ColorGroup(color_name=name, annotations=anns) for name, anns in grouped.items()],
        image_plans=image_plans,
    )


def mark_missing_image(
    prepared: PreparedExport, annotation_key: str, message: str
) -> PreparedExport:
    """Copy of *prepared* with the image link for *annotation_key* replaced by a TODO."""
    updated = prepared.model_copy(deep=True)
    for group in updated.groups:
        for annotation in group.annotations:
            if annotation.key == annotation_key:
                annotation.image_path = None
                annotation.missing_image_message = message
    return updated


# ── Rendering ────────────────────────────────────────────────────────


def generate_markdown(
    prepared: PreparedExport, template: TemplateSettings | None = None
) -> str:
    """Render *prepared* as Markdown with YAML front matter."""
    template = template or TemplateSettings()
    values = {
        "title": prepared.title,
        "author": prepared.author,
        "year": prepared.year,
        "company": prepared.company,
    }

    lines = ["---", "tags:", "  - type/source/paper"]
    for key in normalize_property_order(template.property_order):
        lines.append(f"{PROPERTY_LABELS[key]}: '{escape_single_quote(values[key])}'")
    lines += ["---", "", "Project:", ""]

    lines += _abstract_callout(prepared.abstract_text)
    lines += ["## Annotations", ""]

    for group in sorted(prepared.groups, key=lambda g: color_sort_key(g.color_name)):
        override = template.color_heading_overrides.get(group.color_name, "").strip()
        lines.append(f"### {override or group.color_name}")
        for index, annotation in enumerate(group.annotations):
            lines += [f"> {line}" for line in _quote_lines(annotation)]
            if index < len(group.annotations) - 1:
                lines.append("")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def normalize_property_order(order: list[str] | None) -> list[str]:
    """Known keys from *order* without duplicates, then any missing defaults."""
    result: list[str] = []
    for key in order or []:
        if key in PROPERTY_LABELS and key not in result:
            result.append(key)
    for key in DEFAULT_PROPERTY_ORDER:
        if key not in result:
            result.append(key)
    return result


# ── Helpers ──────────────────────────────────────────────────────────


def escape_single_quote(value: str) -> str:
    return value.replace("'", "''")


def normalize_path(path: str) -> str:
    """Forward slashes only, no doubled separators."""
    return re.sub(r"/+", "/", path.replace("\\", "/"))


def to_relative_path(from_file: str, target: str) -> str:
    """Path of *target* relative to the directory containing *from_file*."""
    start = posixpath.dirname(normalize_path(from_file)) or "."
    return posixpath.relpath(normalize_path(target), start)


def _abstract_callout(abstract_text: str) -> list[str]:
    lines = [line.strip() for line in abstract_text.splitlines() if line.strip()]
    if not lines:
        return []
    return ["> [!INFO]", "> ", "> Abstract", "> "] + [f"> {line}" for line in lines] + ["> ", ""]


def _quote_lines(annotation: RenderAnnotation) -> list[str]:
    page_suffix = ""
    if annotation.page_label:
        link = f"zotero://select/library/items/{quote(annotation.key, safe='')}"
        page_suffix = f" ([p. {annotation.page_label}]({link}))"

    lines = []
    if annotation.text:
        lines.append(f"{annotation.text}{page_suffix}")
    elif annotation.comment:
        lines.append(f"{annotation.comment}{page_suffix}")
    else:
        lines.append(f"{_NO_TEXT}{page_suffix}")

    if annotation.text and annotation.comment:
        lines.append(f"Comment: {annotation.comment}")
    if annotation.image_path:
        lines.append(f"[[{annotation.image_path}]]")
    if annotation.missing_image_message:
        lines.append(f"TODO: {annotation.missing_image_message}")
    return lines
