#!/usr/bin/env python3
"""Command-line access to the local Zotero library and the Markdown exporter."""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from zotlocal.core.errors import NotFound, ZotLocalError
from zotlocal.core.settings import load_settings, save_settings
from zotlocal.exporters import export_item
from zotlocal.exporters.files import save_png_bytes
from zotlocal.library.images import get_cached_image
from zotlocal.library.queries import (
    SEARCH_LIMIT,
    get_annotations,
    get_citation_key,
    get_item,
    search_items,
)

logger = logging.getLogger("zotlocal")


# ── Commands ─────────────────────────────────────────────────────────


def cmd_search(args) -> object:
    items = search_items(args.term, limit=args.limit, db_path=args.db)
    return [i.model_dump(by_alias=True) for i in items]


def cmd_item(args) -> object:
    return get_item(args.key, db_path=args.db).model_dump(by_alias=True)


def cmd_citekey(args) -> object:
    return get_citation_key(args.key, db_path=args.bbt_db)


def cmd_annotations(args) -> object:
    return [a.model_dump(by_alias=True) for a in get_annotations(args.key, db_path=args.db)]


def cmd_image(args) -> object:
    data = get_cached_image(args.key, db_path=args.db)
    path = save_png_bytes(args.out or f"{args.key}.png", data)
    return {"path": str(path), "bytes": len(data)}


def cmd_export(args) -> object:
    settings = load_settings(args.settings)
    if args.markdown_dir:
        settings.markdown_dir = args.markdown_dir
    if args.attachment_dir:
        settings.attachment_base_dir = args.attachment_dir
    result = export_item(
        args.key, settings, db_path=args.db, bbt_path=args.bbt_db, use_api=not args.no_api
    )
    return result.model_dump()


def cmd_settings(args) -> object:
    settings = load_settings(args.settings)
    updates = {}
    for pair in args.set or []:
        name, sep, value = pair.partition("=")
        if not sep:
            raise ZotLocalError(f"Expected NAME=VALUE, got {pair!r}")
        updates[name] = value
    if updates:
        merged = {**settings.model_dump(by_alias=True), **updates}
        try:
            settings = settings.model_validate(merged)
        except ValidationError as exc:
            raise ZotLocalError(f"Invalid setting: {exc}") from exc
        save_settings(settings, args.settings)
    return settings.model_dump(by_alias=True)


# ── CLI ──────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Read the local Zotero library")
    parser.add_argument("--db", type=Path, default=None, help="Path to zotero.sqlite")
    parser.add_argument(
        "--bbt-db", type=Path, default=None, help="Path to better-bibtex.sqlite"
    )
    parser.add_argument("--settings", type=Path, default=None, help="Settings JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search items by title, creator or date")
    p.set_defaults(func=cmd_search)
    p.add_argument("term", nargs="?", default="")
    p.add_argument("--limit", type=int, default=SEARCH_LIMIT)

    for name, func, help_text in (
        ("item", cmd_item, "Show one item"),
        ("citekey", cmd_citekey, "Show the Better BibTeX citation key"),
        ("annotations", cmd_annotations, "List an item's annotations"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("key")
        p.set_defaults(func=func)

    p = sub.add_parser("image", help="Copy an annotation's cached image")
    p.set_defaults(func=cmd_image)
    p.add_argument("key")
    p.add_argument("--out", default=None, help="Output PNG path")

    p = sub.add_parser("export", help="Write the Markdown note for an item")
    p.set_defaults(func=cmd_export)
    p.add_argument("key")
    p.add_argument("--markdown-dir", default=None)
    p.add_argument("--attachment-dir", default=None)
    p.add_argument("--no-api", action="store_true", help="Only use the image cache")

    p = sub.add_parser("settings", help="Show or update settings")
    p.set_defaults(func=cmd_settings)
    p.add_argument("--set", action="append", metavar="NAME=VALUE")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        result = args.func(args)
    except NotFound as exc:
        logger.error("%s", exc)
        return 2
    except ZotLocalError as exc:
        logger.error("%s", exc)
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
