"""The four fixed read queries against zotero.sqlite and better-bibtex.sqlite."""

import logging
import sqlite3
from pathlib import Path

from zotlocal.core.connection import companion_connection, zotero_connection
from zotlocal.core.errors import CompanionUnavailable, DatabaseUnavailable, NotFound
from zotlocal.library.models import Annotation, CreatorRef, ItemDetail, ItemSummary

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 75
UNTITLED = "(untitled)"

# Zotero's itemAnnotations.type code for an image (rectangle) selection.
IMAGE_ANNOTATION_TYPE = 3

# ── SQL ──────────────────────────────────────────────────────────────

_SEARCH_SQL = """
WITH title_data AS (
    SELECT d.itemID AS itemID, CAST(v.value AS TEXT) AS value
    FROM itemData d
    JOIN fields f ON f.fieldID = d.fieldID
    JOIN itemDataValues v ON v.valueID = d.valueID
    WHERE f.fieldName = 'title'
),
date_data AS (
    SELECT d.itemID AS itemID, CAST(v.value AS TEXT) AS value
    FROM itemData d
    JOIN fields f ON f.fieldID = d.fieldID
    JOIN itemDataValues v ON v.valueID = d.valueID
    WHERE f.fieldName = 'date'
),
creator_data AS (
    SELECT itemID, GROUP_CONCAT(name, '; ') AS value
    FROM (
        SELECT
            ic.itemID AS itemID,
            CASE
                WHEN c.fieldMode = 1 THEN COALESCE(c.lastName, '')
                ELSE TRIM(
                    COALESCE(c.lastName, '') ||
                    CASE WHEN COALESCE(c.firstName, '') <> ''
                         THEN ', ' || c.firstName ELSE '' END
                )
            END AS name
        FROM itemCreators ic
        JOIN creators c ON c.creatorID = ic.creatorID
        ORDER BY ic.itemID, ic.orderIndex
    )
    GROUP BY itemID
)
SELECT
    i.key AS key,
    COALESCE(title_data.value, :untitled) AS title,
    COALESCE(creator_data.value, '') AS creators,
    COALESCE(date_data.value, '') AS dateValue
FROM items i
JOIN itemTypes it ON it.itemTypeID = i.itemTypeID
LEFT JOIN title_data ON title_data.itemID = i.itemID
LEFT JOIN date_data ON date_data.itemID = i.itemID
LEFT JOIN creator_data ON creator_data.itemID = i.itemID
WHERE
    it.typeName NOT IN ('attachment', 'note', 'annotation')
    AND i.itemID NOT IN (SELECT itemID FROM deletedItems)
    AND (
        :term = ''
        OR INSTR(LOWER(COALESCE(title_data.value, '')), LOWER(:term)) > 0
        OR INSTR(LOWER(COALESCE(creator_data.value, '')), LOWER(:term)) > 0
        OR INSTR(LOWER(COALESCE(date_data.value, '')), LOWER(:term)) > 0
    )
ORDER BY LOWER(COALESCE(title_data.value, :untitled)) ASC
LIMIT :limit
"""

_ITEM_SQL = """
SELECT i.itemID AS itemID, i.key AS key, it.typeName AS typeName
FROM items i
JOIN itemTypes it ON it.itemTypeID = i.itemTypeID
WHERE i.key = ?
  AND it.typeName NOT IN ('attachment', 'note', 'annotation')
  AND i.itemID NOT IN (SELECT itemID FROM deletedItems)
LIMIT 1
"""

_FIELDS_SQL = """
SELECT f.fieldName AS fieldName, CAST(v.value AS TEXT) AS fieldValue
FROM itemData d
JOIN fields f ON f.fieldID = d.fieldID
JOIN itemDataValues v ON v.valueID = d.valueID
WHERE d.itemID = ?
"""

_CREATORS_SQL = """
SELECT c.firstName AS firstName, c.lastName AS lastName, c.fieldMode AS fieldMode
FROM itemCreators ic
JOIN creators c ON c.creatorID = ic.creatorID
WHERE ic.itemID = ?
ORDER BY ic.orderIndex ASC
"""

_CITATION_KEY_SQL = """
SELECT citationKey
FROM citationkey
WHERE itemKey = ?
LIMIT 1
"""

_ANNOTATIONS_SQL = """
SELECT
    anno.key AS annotationKey,
    att.key AS attachmentKey,
    COALESCE(ia.color, '') AS colorHex,
    COALESCE(ia.text, '') AS annotationText,
    COALESCE(ia.comment, '') AS annotationComment,
    COALESCE(ia.pageLabel, '') AS pageLabel,
    ia.type AS annotationType
FROM items root
JOIN itemAttachments iatt ON iatt.parentItemID = root.itemID
JOIN items att ON att.itemID = iatt.itemID
JOIN itemAnnotations ia ON ia.parentItemID = att.itemID
JOIN items anno ON anno.itemID = ia.itemID
WHERE root.key = ?
  AND anno.itemID NOT IN (SELECT itemID FROM deletedItems)
ORDER BY att.itemID ASC, ia.sortIndex ASC, anno.itemID ASC
"""


# ── Public API ───────────────────────────────────────────────────────


def extract_year(raw: str) -> str:
    """Return the first run of four ASCII digits in *raw*, or ''.

    Zotero dates are free text ("2021-05-01", "May 2021", "Spring 2019"), so
    this is a heuristic rather than a date parser.
    """
    for idx in range(len(raw) - 3):
        chunk = raw[idx : idx + 4]
        if all(ch in "0123456789" for ch in chunk):
            return chunk
    return ""


def search_items(
    term: str = "", limit: int = SEARCH_LIMIT, db_path: Path | None = None
) -> list[ItemSummary]:
    """Search regular items by title, creators or date (case-insensitive).

    An empty term lists every eligible item. Results are sorted by title
    and truncated to *limit*.
    """
    term = term.strip()
    with zotero_connection(db_path) as (conn, path):
        rows = _fetchall(
            conn,
            path,
            _SEARCH_SQL,
            {"term": term, "limit": limit, "untitled": UNTITLED},
            "Zotero search query",
        )

    results = [
        ItemSummary(
            key=row["key"],
            title=row["title"],
            creators=row["creators"],
            year=extract_year(row["dateValue"]),
        )
        for row in rows
    ]
    logger.info("Search %r matched %d items", term, len(results))
    return results


def get_item(item_key: str, db_path: Path | None = None) -> ItemDetail:
    """Load one regular item with all of its fields and creators."""
    with zotero_connection(db_path) as (conn, path):
        rows = _fetchall(conn, path, _ITEM_SQL, (item_key,), "Zotero item query")
        if not rows:
            raise NotFound(f"Zotero item {item_key} not found")
        item = rows[0]

        field_rows = _fetchall(
            conn, path, _FIELDS_SQL, (item["itemID"],), "Zotero field query"
        )

        creator_rows = _fetchall(
            conn, path, _CREATORS_SQL, (item["itemID"],), "Zotero creator query"
        )

    data: dict = {"itemType": item["typeName"]}
    for row in field_rows:
        data[row["fieldName"]] = row["fieldValue"] or ""
    data["creators"] = [
        _creator_ref(row).model_dump(by_alias=True, exclude_none=True)
        for row in creator_rows
    ]
    logger.debug(
        "Loaded item %s (%s, %d fields, %d creators)",
        item["key"], item["typeName"], len(field_rows), len(creator_rows),
    )
    return ItemDetail(key=item["key"], data=data, meta={})


def get_citation_key(item_key: str, db_path: Path | None = None) -> str | None:
    """Better BibTeX citation key for *item_key*, or None.

    A missing, unopenable or unreadable Better BibTeX database also yields
    None: citation keys are optional metadata.
    """
    try:
        with companion_connection(db_path) as (conn, path):
            rows = _fetchall(
                conn, path, _CITATION_KEY_SQL, (item_key,), "Better BibTeX citation key query"
            )
    except CompanionUnavailable as exc:
        logger.debug("Better BibTeX unavailable: %s", exc)
        return None
    except DatabaseUnavailable as exc:
        logger.warning("Better BibTeX database unreadable: %s", exc)
        return None

    if not rows:
        return None
    value = (rows[0]["citationKey"] or "").strip()
    return value or None


def get_annotations(parent_key: str, db_path: Path | None = None) -> list[Annotation]:
    """Annotations on every attachment of *parent_key*, in reading order.

    Ordered by attachment, then Zotero's stored sort key, then annotation id;
    ``sort_index`` is the position in that order.
    """
    with zotero_connection(db_path) as (conn, path):
        rows = _fetchall(conn, path, _ANNOTATIONS_SQL, (parent_key,), "Zotero annotation query")

    annotations = [
        Annotation(
            key=row["annotationKey"],
            attachment_key=row["attachmentKey"],
            color_hex=row["colorHex"].strip().lower(),
            text=row["annotationText"].strip(),
            comment=row["annotationComment"].strip(),
            page_label=row["pageLabel"].strip(),
            sort_index=sort_index,
            is_image_selection=row["annotationType"] == IMAGE_ANNOTATION_TYPE,
        )
        for sort_index, row in enumerate(rows)
    ]
    logger.info("Item %s has %d annotations", parent_key, len(annotations))
    return annotations


# ── Helpers ──────────────────────────────────────────────────────────


def _fetchall(
    conn: sqlite3.Connection, path: Path, sql: str, params, context: str
) -> list[sqlite3.Row]:
    """Run *sql* and read every row; any SQLite failure fails the whole call."""
    try:
        return conn.execute(sql, params).fetchall()
    except sqlite3.Error as exc:
        raise DatabaseUnavailable(path, f"failed to execute {context}: {exc}") from exc


def _creator_ref(row: sqlite3.Row) -> CreatorRef:
    if row["fieldMode"] == 1:
        return CreatorRef(name=row["lastName"] or "")
    return CreatorRef(first_name=row["firstName"] or "", last_name=row["lastName"] or "")
