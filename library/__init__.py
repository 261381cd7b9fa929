"""
Bibliography library core.

Re-exports the parser, filename deriver, field injector and store:
    from library import load_library, ingest, inject_file_field, ...
"""

from __future__ import annotations

from library.errors import (
    LibraryError,
    LibraryIOError,
    ParseError,
    RemoteError,
    ValidationError,
)
from library.filenames import (
    MAX_SUFFIX_ATTEMPTS,
    author_component,
    derive_filename,
    resolve_unique_path,
    slugify_title,
)
from library.injector import inject_file_field
from library.journals import JOURNAL_ABBREVIATIONS
from library.parser import (
    UNTITLED,
    EntryType,
    LibraryEntry,
    extract_type,
    load_library,
    parse_bibtex,
    parse_library,
)
from library.store import append_record, ingest

__all__ = [
    "JOURNAL_ABBREVIATIONS",
    "MAX_SUFFIX_ATTEMPTS",
    "UNTITLED",
    "EntryType",
    "LibraryEntry",
    "LibraryError",
    "LibraryIOError",
    "ParseError",
    "RemoteError",
    "ValidationError",
    "append_record",
    "author_component",
    "derive_filename",
    "extract_type",
    "ingest",
    "inject_file_field",
    "load_library",
    "parse_bibtex",
    "parse_library",
    "resolve_unique_path",
    "slugify_title",
]
