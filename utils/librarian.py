#!/usr/bin/env python3
"""
Librarian: browse the local bibliography and add documents to it.

Subcommands:
    list  - List entries sorted by title, optionally filtered
    show  - Show the details of entries whose title matches a query
    add   - Copy a PDF into the library and append its BibTeX record

Usage:
    python utils/librarian.py list [--filter TEXT]
    python utils/librarian.py show "weak turbulence"
    python utils/librarian.py add paper.pdf record.bib
    python utils/librarian.py add paper.pdf - < record.bib

Output:
    - Automatically generates <bibfile>.librarian.log
"""

from __future__ import annotations

import argparse
import locale
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from library import LibraryEntry, LibraryError, ingest, load_library
from logging_utils import Logger
from preferences import (
    Preferences,
    add_preference_arguments,
    preferences_from_args,
    validate_local,
)

# Extra fields printed by ``show`` when present
DETAIL_FIELDS = {
    "volume": "Volume",
    "pages": "Pages",
    "doi": "DOI",
    "keywords": "Keywords",
}

TYPE_ICONS = {
    "paper": "📄",
    "book": "📕",
    "thesis": "🎓",
    "misc": "📎",
}


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def short_authors(authors: Sequence[str]) -> str:
    """Compact author list: collaborations kept, ``et al.`` beyond three."""
    if len(authors) > 3:
        if "Collaboration" in authors[0]:
            return authors[0]
        return f"{authors[0]}, et al."
    return ", ".join(authors)


def entry_matches(entry: LibraryEntry, query: str) -> bool:
    """Case-insensitive match against title, authors, year and journal."""
    query = query.strip().lower()
    if not query:
        return True
    keywords = [
        entry.title,
        *entry.authors,
        str(entry.year),
        entry.journal_abbrev or "",
    ]
    return any(query in keyword.lower() for keyword in keywords)


def format_entry_line(index: int, entry: LibraryEntry) -> List[str]:
    icon = TYPE_ICONS.get(entry.entry_type.value, "📎")
    details = [short_authors(entry.authors)]
    if entry.year > 0:
        details.append(str(entry.year))
    if entry.journal_abbrev:
        details.append(entry.journal_abbrev)
    attached = "" if entry.file_ref else "  (no file)"
    return [
        f"{index:3}. {icon} {entry.title}{attached}",
        f"       {' · '.join(d for d in details if d)}",
    ]


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def cmd_list(prefs: Preferences, query: str, logger: Logger) -> List[LibraryEntry]:
    """List library entries matching *query*."""
    log = logger.log
    entries = load_library(prefs.bibfile_path)
    matching = [entry for entry in entries if entry_matches(entry, query)]

    logger.log_header(
        f"📚 {len(matching)} of {len(entries)} entries in {prefs.bibfile_path.name}"
    )
    for i, entry in enumerate(matching, 1):
        for line in format_entry_line(i, entry):
            log(line)
    return matching


def cmd_show(prefs: Preferences, query: str, logger: Logger) -> List[LibraryEntry]:
    """Show details of entries whose title contains *query*."""
    log = logger.log
    needle = query.strip().lower()
    matching = [e for e in load_library(prefs.bibfile_path) if needle in e.title.lower()]

    if not matching:
        log(f"No entry with a title matching '{query}'", prefix="❌")
        return matching

    for entry in matching:
        log(f"\n# {entry.title}\n")
        log(f"  Key     : {entry.key or '(none)'}")
        log(f"  Authors : {', '.join(entry.authors) or '(none)'}")
        if entry.journal_abbrev:
            log(f"  Journal : {entry.journal_abbrev}")
        log(f"  Year    : {entry.year if entry.year else 'unknown'}")
        for name, label in DETAIL_FIELDS.items():
            value = entry.fields.get(name)
            if value:
                log(f"  {label:<8}: {value}")
        if entry.file_ref:
            path = prefs.library_path / entry.file_ref
            missing = "" if path.exists() else "  ⚠️  missing"
            log(f"  File    : {path}{missing}")
        if entry.url:
            log(f"  URL     : {entry.url}")
        if entry.abstract:
            log(f"\n{entry.abstract}")
        logger.log_separator()
    return matching


def read_record_source(source: str) -> str:
    """Read BibTeX from a file path, or from stdin for ``-``."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def cmd_add(
    prefs: Preferences, pdf: Path, record_source: str, logger: Logger
) -> str:
    """Add *pdf* with the BibTeX record read from *record_source*."""
    log = logger.log
    log("Adding to library…", prefix="⏳")
    final_name = ingest(
        pdf,
        read_record_source(record_source),
        prefs.library_path,
        prefs.bibfile_path,
        log=lambda message: log(f"   {message}"),
    )
    log(f"Added {final_name}", prefix="✅")
    return final_name


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Librarian: browse the bibliography and add documents.",
    )
    add_preference_arguments(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- list ---
    p_list = subparsers.add_parser("list", help="List entries sorted by title.")
    p_list.add_argument(
        "--filter",
        default="",
        help="Only show entries matching this text (title, author, year, journal)",
    )

    # --- show ---
    p_show = subparsers.add_parser("show", help="Show entry details.")
    p_show.add_argument("query", help="Part of the entry title")

    # --- add ---
    p_add = subparsers.add_parser(
        "add",
        help="Copy a PDF into the library and append its BibTeX record.",
    )
    p_add.add_argument("pdf", type=Path, help="PDF to attach")
    p_add.add_argument("bibtex", help="File with the BibTeX record, or - for stdin")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        print(f"⚠️  Unsupported locale, sorting by code point: {e}")

    try:
        prefs = validate_local(preferences_from_args(args))
    except LibraryError as e:
        parser.error(str(e))

    with Logger(
        "librarian",
        input_file=prefs.bibfile_path,
        log_dir=prefs.log_dir or None,
        enabled=not args.no_log,
    ) as logger:
        try:
            if args.command == "list":
                cmd_list(prefs, args.filter, logger)
            elif args.command == "show":
                cmd_show(prefs, args.query, logger)
            elif args.command == "add":
                cmd_add(prefs, args.pdf, args.bibtex, logger)
        except LibraryError as e:
            logger.log(f"Failed at {e.stage or args.command}: {e.message}", prefix="❌")
            sys.exit(1)
        except OSError as e:
            logger.log(f"{e}", prefix="❌")
            sys.exit(1)


if __name__ == "__main__":
    main()
