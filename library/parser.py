"""
Record parser: turn BibTeX text into ``LibraryEntry`` values.

The text is first split into record blocks by walking braces, so that each
entry keeps its verbatim source (``raw_text``).  Each block is then decoded
with ``bibtexparser`` and mapped onto the canonical entry model.

Usage:
    from library.parser import load_library, parse_library

    entries = load_library("refs.bib")
    entries = parse_library(text, journals={"Nature": "Nat."})
"""

from __future__ import annotations

import locale
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import bibtexparser
from bibtexparser.bparser import BibTexParser
from bibtexparser.customization import splitname
from bibtexparser.latexenc import latex_to_unicode

from library.errors import LibraryIOError, ParseError
from library.filenames import strip_diacritics
from library.journals import JOURNAL_ABBREVIATIONS

UNTITLED = "untitled"

# Blocks that never describe a bibliographic record
_SKIPPED_BLOCKS = {"comment", "preamble", "string"}

_BLOCK_START = re.compile(r"@\s*([A-Za-z][\w\-]*)\s*([{(])")
# Match @type{key,
_RECORD_HEADER = re.compile(r"@\s*[\w\-]+\s*[{(]\s*([^,\s{}()]+)\s*,")
_COMMENT_LINE = re.compile(r"^[ \t]*%.*\n?", re.MULTILINE)
_AUTHOR_TOKENS = re.compile(r"(\s+and\s+|[{}])")
_AUTHOR_SEPARATOR = re.compile(r"\s+and\s+")
_LEADING_DIGITS = re.compile(r"\s*(\d+)")


class EntryType(str, Enum):
    PAPER = "paper"
    BOOK = "book"
    THESIS = "thesis"
    MISC = "misc"


@dataclass(frozen=True)
class LibraryEntry:
    """Read-only view of one record of the bibliography."""

    title: str
    authors: List[str]
    year: int
    entry_type: EntryType
    raw_text: str
    key: str = ""
    journal_abbrev: Optional[str] = None
    file_ref: Optional[str] = None
    url: Optional[str] = None
    abstract: Optional[str] = None
    fields: Dict[str, str] = field(default_factory=dict, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Block tokenizer
# ---------------------------------------------------------------------------


def _find_block_end(text: str, open_at: int) -> Optional[int]:
    """Return the index just past the delimiter closing the block at *open_at*."""
    closer = "}" if text[open_at] == "{" else ")"
    depth = 0
    for i, char in enumerate(text[open_at + 1 :], open_at + 1):
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return i + 1 if closer == "}" else None
            depth -= 1
        elif char == ")" and closer == ")" and depth == 0:
            return i + 1
    return None


def _scan_blocks(text: str) -> List[Tuple[str, str, int]]:
    """Every ``@type{...}`` block as ``(entry_type, raw_block, line)``."""
    blocks: List[Tuple[str, str, int]] = []
    pos = 0
    while True:
        match = _BLOCK_START.search(text, pos)
        if match is None:
            break
        line = text.count("\n", 0, match.start()) + 1
        end = _find_block_end(text, match.end() - 1)
        if end is None:
            raise ParseError(f"Unbalanced braces in @{match.group(1)} block", line=line)
        blocks.append((match.group(1).lower(), text[match.start() : end], line))
        pos = end
    return blocks


def split_records(text: str) -> List[Tuple[str, str, int]]:
    """Split BibTeX text into ``(entry_type, raw_block, line)`` triples.

    Text between blocks is ignored, as BibTeX does.  ``@comment``,
    ``@preamble`` and ``@string`` blocks are dropped.

    Raises:
        ParseError: if a block is not closed before the end of the text.
    """
    return [block for block in _scan_blocks(text) if block[0] not in _SKIPPED_BLOCKS]


def _decode(text: str) -> List[Dict[str, Any]]:
    parser = BibTexParser(
        common_strings=True,
        ignore_nonstandard_types=False,
        homogenize_fields=False,
    )
    return bibtexparser.loads(text, parser=parser).entries


def _decode_block(block: str, strings: str = "") -> Optional[Dict[str, Any]]:
    """Decode one record block into a bibtexparser entry dict.

    *strings* holds the ``@string`` definitions of the whole file.  A block
    that only decodes without its ``%`` comment lines is decoded that way.
    Returns None when bibtexparser cannot read the block at all.
    """
    for candidate in (block, _COMMENT_LINE.sub("", block)):
        try:
            entries = _decode(f"{strings}\n{candidate}" if strings else candidate)
        except Exception:
            # Undefined macros and grammar errors; try the next candidate
            continue
        if entries:
            return {key.lower(): value for key, value in entries[0].items()}
    return None


def _header_record(entry_type: str, block: str) -> Dict[str, Any]:
    """Type and key of a block bibtexparser could not decode."""
    header = _RECORD_HEADER.match(block)
    return {"entrytype": entry_type, "id": header.group(1) if header else ""}


# ---------------------------------------------------------------------------
# Field mapping
# ---------------------------------------------------------------------------


def _strip_braces(text: str) -> str:
    text = text.replace("{", "").replace("}", "")
    return re.sub(r"\s+", " ", text).strip()


def extract_type(type_tag: Optional[str]) -> EntryType:
    """Map a BibTeX type tag onto one of the four entry kinds."""
    if not type_tag:
        return EntryType.MISC
    type_tag = type_tag.lower()
    if type_tag == "article":
        return EntryType.PAPER
    if "book" in type_tag:
        return EntryType.BOOK
    if "thesis" in type_tag:
        return EntryType.THESIS
    return EntryType.MISC


def split_authors(value: str) -> List[str]:
    """Split an ``author`` field on top-level ``and`` separators."""
    names: List[str] = []
    current: List[str] = []
    depth = 0
    for token in _AUTHOR_TOKENS.split(value):
        if token == "{":
            depth += 1
        elif token == "}":
            depth = max(depth - 1, 0)
        elif depth == 0 and _AUTHOR_SEPARATOR.fullmatch(token):
            names.append("".join(current).strip())
            current = []
            continue
        current.append(token)
    names.append("".join(current).strip())
    return [name for name in names if name]


def author_display_name(name: str) -> str:
    """Render one author as ``First von Last, Jr``.

    Falls back to the last name alone, then to an empty string.
    """
    parts = splitname(name, strict_mode=False)
    first = parts.get("first", [])
    von = parts.get("von", [])
    last = parts.get("last", [])
    jr = parts.get("jr", [])

    full = " ".join(first + von + last)
    if full and jr:
        full = f"{full}, {' '.join(jr)}"
    full = _strip_braces(full)
    if full:
        return full
    return _strip_braces(" ".join(last))


def extract_authors(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [author_display_name(name) for name in split_authors(latex_to_unicode(value))]


def extract_year(value: Optional[str]) -> int:
    """Leading digits of *value*, or 0 for an unknown year."""
    match = _LEADING_DIGITS.match(value or "")
    return int(match.group(1)) if match else 0


def extract_journal(
    value: Optional[str], journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS
) -> Optional[str]:
    if not value:
        return None
    return journals.get(value, value)


def extract_file_ref(value: Optional[str]) -> Optional[str]:
    """Filename part of a ``:name:PDF`` file field; None when malformed."""
    if not value or ":" not in value:
        return None
    return value.split(":")[1] or None


def extract_title(value: Optional[str]) -> str:
    title = _strip_braces(latex_to_unicode(value)) if value else ""
    return title or UNTITLED


def entry_from_record(
    record: Dict[str, Any],
    raw_text: str,
    journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS,
) -> LibraryEntry:
    """Build a ``LibraryEntry`` from a decoded bibtexparser record."""
    abstract = record.get("abstract")
    return LibraryEntry(
        title=extract_title(record.get("title")),
        authors=extract_authors(record.get("author")),
        year=extract_year(record.get("year")),
        entry_type=extract_type(record.get("entrytype")),
        raw_text=raw_text,
        key=record.get("id", ""),
        journal_abbrev=extract_journal(record.get("journal"), journals),
        file_ref=extract_file_ref(record.get("file")),
        url=record.get("url") or record.get("adsurl") or None,
        abstract=_strip_braces(abstract) if abstract else None,
        fields={
            name: value
            for name, value in record.items()
            if name not in ("entrytype", "id")
        },
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_bibtex(
    text: str, journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS
) -> List[LibraryEntry]:
    """Parse BibTeX text into entries, in source order.

    ``@string`` macros defined anywhere in *text* are available to every
    record.  A record bibtexparser cannot read still yields an entry: its
    type, key and ``raw_text`` are kept and every other field is missing.

    Raises:
        ParseError: if a block is not closed before the end of the text.  No
            entries are returned for a partially broken text.
    """
    blocks = _scan_blocks(text)
    strings = "\n".join(
        block for entry_type, block, _ in blocks if entry_type == "string"
    )

    entries: List[LibraryEntry] = []
    for entry_type, block, _ in blocks:
        if entry_type in _SKIPPED_BLOCKS:
            continue
        record = _decode_block(block, strings) or _header_record(entry_type, block)
        entries.append(entry_from_record(record, block, journals))
    return entries


def _title_sort_key(entry: LibraryEntry) -> Tuple[str, str]:
    # Accents only break ties, even under the C locale
    title = entry.title.casefold()
    return (locale.strxfrm(strip_diacritics(title)), title)


def parse_library(
    text: str, journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS
) -> List[LibraryEntry]:
    """Parse BibTeX text into entries sorted by title."""
    return sorted(parse_bibtex(text, journals), key=_title_sort_key)


def load_library(
    bibfile: str | Path, journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS
) -> List[LibraryEntry]:
    """Read and parse a bibliography file."""
    path = Path(bibfile)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise LibraryIOError(f"Cannot read bibliography {path}: {e}", "read") from e
    return parse_library(text, journals)
