"""
Library store: add a document and its BibTeX record to the library.

``ingest`` runs the whole write path:

    1. parse the record and take its title, authors and year
    2. create the library directory
    3. derive a filename and make it unique inside the directory
    4. copy the document there
    5. point the record's ``file`` field at the copy
    6. append the record to the bibliography file

Steps run in order and the first failure stops the rest.  Nothing is rolled
back: a failure after step 4 leaves the copied document in the library.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Mapping, Optional

from library.errors import LibraryIOError, ParseError, ValidationError
from library.filenames import derive_filename, resolve_unique_path
from library.injector import inject_file_field
from library.journals import JOURNAL_ABBREVIATIONS
from library.parser import parse_bibtex

RECORD_SEPARATOR = "\n\n"


def _no_log(message: str) -> None:
    pass


def append_record(bibfile: str | Path, record_text: str) -> None:
    """Append *record_text* followed by exactly one blank line."""
    normalized = record_text.rstrip() + RECORD_SEPARATOR
    try:
        with open(bibfile, "a", encoding="utf-8") as f:
            f.write(normalized)
    except OSError as e:
        raise LibraryIOError(f"Cannot append to {bibfile}: {e}", "append") from e


def ingest(
    document_path: str | Path,
    record_text: str,
    library_dir: str | Path,
    bibfile: str | Path,
    log: Optional[Callable[[str], None]] = None,
    journals: Mapping[str, str] = JOURNAL_ABBREVIATIONS,
) -> str:
    """Copy a document into the library and append its record.

    Args:
        document_path: Document to attach; it is copied, never moved.
        record_text: BibTeX text; only its first record is used.
        library_dir: Directory holding the attached documents.
        bibfile: Bibliography file the record is appended to.
        log: Optional progress callback.

    Returns:
        The basename the document was stored under.

    Raises:
        ValidationError: *document_path* or *record_text* is empty.
        ParseError: *record_text* holds no record.
        LibraryIOError: creating the directory, copying or appending failed.
    """
    log = log or _no_log

    if not str(document_path or "").strip():
        raise ValidationError("Missing document to attach", "validate")
    if not (record_text or "").strip():
        raise ValidationError("Missing BibTeX record", "validate")

    entries = parse_bibtex(record_text, journals)
    if not entries:
        raise ParseError("No valid BibTeX entries found")
    entry = entries[0]

    library_dir = Path(library_dir)
    try:
        library_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LibraryIOError(
            f"Cannot create library directory {library_dir}: {e}", "mkdir"
        ) from e

    desired = derive_filename(entry.title, entry.authors, entry.year)
    destination = resolve_unique_path(library_dir, desired)
    final_name = destination.name
    if final_name != desired:
        log(f"'{desired}' already exists, using '{final_name}'")

    log(f"Copying {document_path} -> {destination}")
    try:
        shutil.copyfile(document_path, destination)
    except OSError as e:
        raise LibraryIOError(f"Cannot copy {document_path}: {e}", "copy") from e

    record_with_file = inject_file_field(record_text, final_name)

    log(f"Appending record to {bibfile}")
    try:
        append_record(bibfile, record_with_file)
    except LibraryIOError as e:
        raise LibraryIOError(
            f"{e.message}; {destination} was copied but is not referenced", "append"
        ) from e

    return final_name
