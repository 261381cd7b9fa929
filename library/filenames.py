"""
Document filenames for library attachments.

A filename is built from the first author(s), the year and a slug of the
title::

    {authors}_{year}_{title_slug}.pdf
    A. Smith.etal_2020_weak_turbulence_in_plasmas.pdf

``resolve_unique_path`` then picks a name that is free in the library
directory by appending ``_2``, ``_3``, ... before the extension.
"""

from __future__ import annotations

import os
import re
import time
import unicodedata
from pathlib import Path
from typing import Sequence

from library.errors import LibraryIOError

MAX_SLUG_LENGTH = 60
MAX_SUFFIX_ATTEMPTS = 10_000
UNKNOWN_AUTHOR = "unknown"
UNKNOWN_YEAR = "????"


def strip_diacritics(text: str) -> str:
    """Decompose *text* and drop combining marks (é -> e)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def slugify_title(title: str) -> str:
    """Lowercase, underscore-separated, at most 60 characters of ``[a-z0-9_]``."""
    slug = strip_diacritics(title).lower()
    slug = re.sub(r"[^a-z0-9]+", " ", slug).strip()
    slug = re.sub(r"\s+", "_", slug).strip("_")
    if len(slug) > MAX_SLUG_LENGTH:
        slug = slug[:MAX_SLUG_LENGTH].rstrip("_")
    return slug


def author_component(authors: Sequence[str]) -> str:
    if not authors:
        return UNKNOWN_AUTHOR
    if len(authors) == 1:
        return authors[0]
    if len(authors) == 2:
        return f"{authors[0]}.{authors[1]}"
    return f"{authors[0]}.etal"


def derive_filename(title: str, authors: Sequence[str], year: int) -> str:
    """Build the desired attachment filename for a record."""
    year_part = str(year) if year else UNKNOWN_YEAR
    return f"{author_component(authors)}_{year_part}_{slugify_title(title)}.pdf"


def _exists(path: Path) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise LibraryIOError(f"Cannot check {path}: {e}", "resolve") from e
    return True


def resolve_unique_path(directory: str | Path, filename: str) -> Path:
    """Return a path for *filename* inside *directory* that is not taken yet.

    The existence check and the later write are not atomic.
    """
    directory = Path(directory)
    candidate = directory / filename
    if not _exists(candidate):
        return candidate

    stem, ext = os.path.splitext(filename)
    for i in range(2, MAX_SUFFIX_ATTEMPTS):
        candidate = directory / f"{stem}_{i}{ext}"
        if not _exists(candidate):
            return candidate

    return directory / f"{stem}_{time.time_ns()}{ext}"
