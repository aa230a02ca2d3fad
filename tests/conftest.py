"""Shared fixtures: a synthetic Zotero profile on disk."""

import sqlite3
from pathlib import Path

import pytest

_ZOTERO_SCHEMA = """
CREATE TABLE libraries (libraryID INTEGER PRIMARY KEY, type TEXT NOT NULL);
CREATE TABLE groups (groupID INTEGER PRIMARY KEY, libraryID INTEGER NOT NULL UNIQUE, name TEXT);
CREATE TABLE itemTypes (itemTypeID INTEGER PRIMARY KEY, typeName TEXT);
CREATE TABLE items (
    itemID INTEGER PRIMARY KEY,
    itemTypeID INT NOT NULL,
    libraryID INT NOT NULL,
    key TEXT NOT NULL
);
CREATE TABLE deletedItems (itemID INTEGER PRIMARY KEY);
CREATE TABLE fields (fieldID INTEGER PRIMARY KEY, fieldName TEXT);
CREATE TABLE itemDataValues (valueID INTEGER PRIMARY KEY, value UNIQUE);
CREATE TABLE itemData (itemID INT, fieldID INT, valueID INT, PRIMARY KEY (itemID, fieldID));
CREATE TABLE creators (
    creatorID INTEGER PRIMARY KEY,
    firstName TEXT,
    lastName TEXT,
    fieldMode INT
);
CREATE TABLE itemCreators (
    itemID INT NOT NULL,
    creatorID INT NOT NULL,
    creatorTypeID INT NOT NULL DEFAULT 1,
    orderIndex INT NOT NULL DEFAULT 0,
    PRIMARY KEY (itemID, creatorID, creatorTypeID, orderIndex)
);
CREATE TABLE itemAttachments (itemID INTEGER PRIMARY KEY, parentItemID INT);
CREATE TABLE itemAnnotations (
    itemID INTEGER PRIMARY KEY,
    parentItemID INT NOT NULL,
    type INTEGER NOT NULL,
    text TEXT,
    comment TEXT,
    color TEXT,
    pageLabel TEXT,
    sortIndex TEXT NOT NULL
);

INSERT INTO libraries VALUES (1, 'user'), (2, 'group');
INSERT INTO groups VALUES (4242, 2, 'Lab');
INSERT INTO itemTypes (typeName) VALUES
    ('journalArticle'), ('book'), ('report'), ('attachment'), ('note'), ('annotation');
"""

_BBT_SCHEMA = """
CREATE TABLE citationkey (itemID INTEGER, itemKey TEXT, citationKey TEXT NOT NULL);
"""


class ZoteroLibrary:
    """Writes a minimal zotero.sqlite with Zotero's table layout."""

    def __init__(self, profile: Path):
        self.profile = profile
        self.path = profile / "zotero.sqlite"
        self._conn = sqlite3.connect(str(self.path), isolation_level=None)
        self._conn.executescript(_ZOTERO_SCHEMA)

    def add_item(
        self,
        key: str,
        item_type: str = "journalArticle",
        fields: dict | None = None,
        creators: list[tuple] | None = None,
        deleted: bool = False,
        library_id: int = 1,
    ) -> int:
        """Insert an item. Creators are (first, last, field_mode) tuples."""
        type_id = self._conn.execute(
            "SELECT itemTypeID FROM itemTypes WHERE typeName = ?", (item_type,)
        ).fetchone()[0]
        item_id = self._conn.execute(
            "INSERT INTO items (itemTypeID, libraryID, key) VALUES (?, ?, ?)",
            (type_id, library_id, key),
        ).lastrowid

        for name, value in (fields or {}).items():
            self._set_field(item_id, name, value)

        for order, (first, last, mode) in enumerate(creators or []):
            creator_id = self._conn.execute(
                "INSERT INTO creators (firstName, lastName, fieldMode) VALUES (?, ?, ?)",
                (first, last, mode),
            ).lastrowid
            self._conn.execute(
                "INSERT INTO itemCreators (itemID, creatorID, orderIndex) VALUES (?, ?, ?)",
                (item_id, creator_id, order),
            )

        if deleted:
            self.delete(item_id)
        return item_id

    def add_attachment(self, parent_id: int, key: str, library_id: int = 1) -> int:
        item_id = self.add_item(key, "attachment", library_id=library_id)
        self._conn.execute(
            "INSERT INTO itemAttachments (itemID, parentItemID) VALUES (?, ?)",
            (item_id, parent_id),
        )
        return item_id

    def add_annotation(
        self,
        attachment_id: int,
        key: str,
        sort_index: str,
        type_code: int = 1,
        text: str | None = None,
        comment: str | None = None,
        color: str | None = "#ffd400",
        page_label: str | None = "1",
        deleted: bool = False,
        library_id: int = 1,
    ) -> int:
        item_id = self.add_item(key, "annotation", library_id=library_id, deleted=deleted)
        self._conn.execute(
            """INSERT INTO itemAnnotations
               (itemID, parentItemID, type, text, comment, color, pageLabel, sortIndex)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (item_id, attachment_id, type_code, text, comment, color, page_label, sort_index),
        )
        return item_id

    def delete(self, item_id: int) -> None:
        self._conn.execute("INSERT INTO deletedItems (itemID) VALUES (?)", (item_id,))

    def close(self) -> None:
        self._conn.close()

    def _set_field(self, item_id: int, name: str, value: str) -> None:
        row = self._conn.execute(
            "SELECT fieldID FROM fields WHERE fieldName = ?", (name,)
        ).fetchone()
        field_id = row[0] if row else self._conn.execute(
            "INSERT INTO fields (fieldName) VALUES (?)", (name,)
        ).lastrowid

        row = self._conn.execute(
            "SELECT valueID FROM itemDataValues WHERE value = ?", (value,)
        ).fetchone()
        value_id = row[0] if row else self._conn.execute(
            "INSERT INTO itemDataValues (value) VALUES (?)", (value,)
        ).lastrowid

        self._conn.execute(
            "INSERT INTO itemData (itemID, fieldID, valueID) VALUES (?, ?, ?)",
            (item_id, field_id, value_id),
        )


def make_bbt_db(path: Path, rows: list[tuple[str, str]]) -> Path:
    """Write a better-bibtex.sqlite with (itemKey, citationKey) rows."""
    conn = sqlite3.connect(str(path))
    conn.executescript(_BBT_SCHEMA)
    conn.executemany(
        "INSERT INTO citationkey (itemKey, citationKey) VALUES (?, ?)", rows
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture()
def zotero(tmp_path):
    """Empty Zotero profile at <tmp>/Zotero."""
    profile = tmp_path / "Zotero"
    profile.mkdir()
    library = ZoteroLibrary(profile)
    yield library
    library.close()


@pytest.fixture()
def library(zotero):
    """A small library covering every shape the queries must handle."""
    attn = zotero.add_item(
        "ATTN0001",
        fields={
            "title": "Attention Is All You Need",
            "date": "2017-06-12",
            "publisher": "Curran Associates",
            "abstractNote": "We propose the Transformer.\nIt uses attention.",
            "extra": "Citation Key: vaswani2017",
        },
        creators=[("Ashish", "Vaswani", 0), ("Noam", "Shazeer", 0)],
    )
    zotero.add_item(
        "DEEP0002",
        item_type="book",
        fields={"title": "deep learning", "date": "May 2015"},
        creators=[("Yann", "LeCun", 0), (None, "MIT Press Editors", 1)],
    )
    zotero.add_item(
        "WHO00003",
        item_type="report",
        fields={"title": "Zebra health report", "date": "n.d."},
        creators=[(None, "World Health Organization", 1)],
    )
    zotero.add_item("UNTITLED", fields={"date": "v2"})
    zotero.add_item(
        "GONE0004",
        fields={"title": "Attention deleted draft", "date": "2020"},
        deleted=True,
    )
    zotero.add_item("NOTE0005", item_type="note", fields={"title": "Attention note"})

    first = zotero.add_attachment(attn, "PDF00001")
    second = zotero.add_attachment(attn, "PDF00002")
    zotero.add_annotation(
        first, "ANN00002", "00002|000200|00100", text="  Second on page  ",
        color="#2EA8E5 ", page_label=" 4 ",
    )
    zotero.add_annotation(
        first, "ANN00001", "00001|000100|00100", text="First highlight",
        comment="Key idea", page_label="3",
    )
    zotero.add_annotation(
        first, "ANNGONE0", "00001|000050|00100", text="Deleted", deleted=True,
    )
    zotero.add_annotation(
        first, "ANNIMG01", "00003|000010|00010", type_code=3, text=None, color="#5fb236",
    )
    zotero.add_annotation(
        second, "ANN00003", "00000|000000|00000", text="Other attachment", color=None,
    )
    return zotero
