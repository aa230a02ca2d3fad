"""Result shapes returned by the local library queries."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from zotlocal.library.colors import color_name_from_hex


class _CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ItemSummary(_CamelModel):
    """One search hit: a catalog item reduced to what a picker shows."""

    key: str
    title: str = ""
    creators: str = ""
    year: str = ""


class CreatorRef(_CamelModel):
    """A creator as stored on an item.

    Organizational creators (field mode 1) carry only ``name``; people carry
    ``first_name`` and ``last_name``.
    """

    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def display(self) -> str:
        """'Last, First' for people, the bare name otherwise."""
        if self.last_name or self.first_name:
            parts = [(self.last_name or "").strip(), (self.first_name or "").strip()]
            return ", ".join(p for p in parts if p)
        return (self.name or "").strip()


class ItemDetail(_CamelModel):
    """Full item record.

    ``data`` holds ``itemType``, every stored field as a string and the
    ``creators`` list. ``meta`` is always empty.
    """

    key: str
    data: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def item_type(self) -> str:
        return str(self.data.get("itemType", ""))

    @property
    def creators(self) -> list[CreatorRef]:
        return [CreatorRef.model_validate(c) for c in self.data.get("creators", [])]

    def field(self, name: str) -> str:
        """Trimmed string value of a stored field, or ''."""
        value = self.data.get(name, "")
        return value.strip() if isinstance(value, str) else ""


class Annotation(_CamelModel):
    """A highlight, note or image selection on one of an item's attachments."""

    key: str
    attachment_key: str = ""
    color_hex: str = ""
    text: str = ""
    comment: str = ""
    page_label: str = ""
    sort_index: int = 0
    is_image_selection: bool = False

    @computed_field
    @property
    def color_name(self) -> str:
        return color_name_from_hex(self.color_hex)


class LibraryScope(BaseModel):
    """Which library an item lives in: the personal one or a group."""

    library_type: str
    group_id: Optional[int] = None

    @property
    def is_group(self) -> bool:
        return self.library_type == "group"
