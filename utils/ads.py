#!/usr/bin/env python3
"""
ADS - search the NASA Astrophysics Data System and add papers to the library.

Subcommands:
    search  - Search ADS and list bibcode, title, authors and year
    show    - Show the full record (journal, DOI, abstract) of one bibcode
    add     - Export the BibTeX, download the PDF and add both to the library

Usage:
    python utils/ads.py search "author:Smith year:2020"
    python utils/ads.py show 2020ApJ...900....1S
    python utils/ads.py add 2020ApJ...900....1S

Every request needs an ADS API token (``--token``, ``ADS_API_TOKEN`` or the
config file).  Failed requests raise ``RemoteError``; nothing is retried.
"""

from __future__ import annotations

import argparse
import http.client
import json
import re
import shutil
import sys
import tempfile
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from library import LibraryError, LibraryIOError, RemoteError, ingest
from logging_utils import Logger
from preferences import (
    Preferences,
    add_preference_arguments,
    preferences_from_args,
    validate_local,
    validate_remote,
)
from utils.librarian import short_authors

ADS_API_URL = "https://api.adsabs.harvard.edu/v1"
ADS_GATEWAY_URL = "https://ui.adsabs.harvard.edu/link_gateway"
ADS_ABSTRACT_URL = "https://ui.adsabs.harvard.edu/abs/{bibcode}/abstract"

# Tried in order; PUB_PDF often ends on a publisher paywall page
PDF_ENDPOINTS = ("EPRINT_PDF", "PUB_PDF")

SEARCH_FIELDS = "bibcode,title,author,year"
RECORD_FIELDS = "bibcode,title,author,year,pub,abstract,doi"
DEFAULT_ROWS = 50
DEFAULT_TIMEOUT = 30
USER_AGENT = "bibshelf/0.1"


@dataclass
class AdsSearchResult:
    """One search hit.  Only the bibcode is guaranteed."""

    bibcode: str
    title: Optional[str] = None
    authors: List[str] = field(default_factory=list)
    year: Optional[str] = None

    @property
    def abstract_url(self) -> str:
        return ADS_ABSTRACT_URL.format(bibcode=self.bibcode)


@dataclass
class AdsRecord(AdsSearchResult):
    """Full metadata of one bibcode."""

    journal: Optional[str] = None
    abstract: Optional[str] = None
    doi: Optional[str] = None


def _first(value: Any) -> Optional[str]:
    """ADS returns most text fields as lists."""
    if isinstance(value, list):
        return str(value[0]) if value else None
    return str(value) if value else None


def _result_from_doc(doc: Dict[str, Any]) -> Optional[AdsSearchResult]:
    bibcode = doc.get("bibcode")
    if not bibcode:
        return None
    return AdsSearchResult(
        bibcode=bibcode,
        title=_first(doc.get("title")),
        authors=list(doc.get("author") or []),
        year=_first(doc.get("year")),
    )


def _record_from_doc(doc: Dict[str, Any]) -> Optional[AdsRecord]:
    bibcode = doc.get("bibcode")
    if not bibcode:
        return None
    return AdsRecord(
        bibcode=bibcode,
        title=_first(doc.get("title")),
        authors=list(doc.get("author") or []),
        year=_first(doc.get("year")),
        journal=_first(doc.get("pub")),
        abstract=_first(doc.get("abstract")),
        doi=_first(doc.get("doi")),
    )


# =========================
# HTTP helpers
# =========================


def _build_request(
    url: str,
    token: str,
    payload: Optional[Dict[str, Any]] = None,
) -> urllib.request.Request:
    if payload is None:
        req = urllib.request.Request(url)
    else:
        data = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(url, data=data, method="POST")
        req.add_header("Content-Type", "application/json")
    req.add_header("Authorization", f"Bearer {token}")
    req.add_header("User-Agent", USER_AGENT)
    return req


def fetch_json(
    url: str,
    token: str,
    payload: Optional[Dict[str, Any]] = None,
    stage: str = "remote",
    timeout: int = DEFAULT_TIMEOUT,
) -> Dict[str, Any]:
    """GET (or POST *payload* to) an ADS endpoint and decode the JSON answer."""
    req = _build_request(url, token, payload)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as response:
            content = response.read().decode("utf-8")
    except urllib.error.HTTPError as e:
        raise RemoteError(f"ADS HTTP {e.code}: {e.reason}", stage, status=e.code) from e
    except urllib.error.URLError as e:
        raise RemoteError(f"Network error: {e.reason}", stage) from e
    except TimeoutError as e:
        raise RemoteError("Request timed out", stage) from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise RemoteError(f"JSON parse error: {e}", stage) from e
    if not isinstance(data, dict):
        raise RemoteError("Unexpected ADS response", stage)
    return data


def _query_url(query: str, fields: str, rows: int) -> str:
    params = urllib.parse.urlencode({"q": query, "fl": fields, "rows": rows})
    return f"{ADS_API_URL}/search/query?{params}"


# =========================
# ADS operations
# =========================


def search(query: str, token: str, rows: int = DEFAULT_ROWS) -> List[AdsSearchResult]:
    """Run a general ADS query."""
    data = fetch_json(_query_url(query, SEARCH_FIELDS, rows), token, stage="search")
    docs = (data.get("response") or {}).get("docs") or []
    results = [_result_from_doc(doc) for doc in docs]
    return [result for result in results if result is not None]


def fetch_record(bibcode: str, token: str) -> AdsRecord:
    """Fetch the full record of one bibcode."""
    url = _query_url(f'bibcode:"{bibcode}"', RECORD_FIELDS, 1)
    data = fetch_json(url, token, stage="record")
    docs = (data.get("response") or {}).get("docs") or []
    record = _record_from_doc(docs[0]) if docs else None
    if record is None:
        raise RemoteError(f"No ADS record found for {bibcode}", "record")
    return record


def export_bibtex(bibcode: str, token: str) -> str:
    """Export one bibcode as BibTeX text."""
    data = fetch_json(
        f"{ADS_API_URL}/export/bibtex",
        token,
        payload={"bibcode": [bibcode]},
        stage="export",
    )
    bibtex = str(data.get("export") or "").strip()
    if not bibtex:
        raise RemoteError(f"No BibTeX returned from ADS for {bibcode}", "export")
    return bibtex


def _temp_pdf_path(bibcode: str, dest_dir: Optional[str | Path]) -> Path:
    directory = Path(dest_dir) if dest_dir else Path(tempfile.gettempdir())
    safe = re.sub(r"[^\w.]+", "_", bibcode)
    return directory / f"bibshelf_{safe}_{time.time_ns()}.pdf"


def download_pdf(
    bibcode: str,
    token: str,
    dest_dir: Optional[str | Path] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Path:
    """Download the PDF of *bibcode* into a temporary file.

    Each endpoint of ``PDF_ENDPOINTS`` is tried in turn; error statuses and
    HTML answers move on to the next one.  The body is streamed to disk.
    The caller owns (and should delete) the returned file.
    """
    tmp_path = _temp_pdf_path(bibcode, dest_dir)
    failures: List[str] = []

    for endpoint in PDF_ENDPOINTS:
        url = f"{ADS_GATEWAY_URL}/{urllib.parse.quote(bibcode, safe='')}/{endpoint}"
        req = _build_request(url, token)
        try:
            with urllib.request.urlopen(req, timeout=timeout) as response:
                content_type = (response.headers.get("Content-Type") or "").lower()
                if "text/html" in content_type:
                    failures.append(f"{endpoint}: HTML page")
                    continue
                with open(tmp_path, "wb") as out:
                    shutil.copyfileobj(response, out)
        except urllib.error.HTTPError as e:
            failures.append(f"{endpoint}: HTTP {e.code}")
            continue
        except (
            urllib.error.URLError,
            http.client.HTTPException,
            TimeoutError,
        ) as e:
            failures.append(f"{endpoint}: {getattr(e, 'reason', e)}")
            tmp_path.unlink(missing_ok=True)
            continue
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise LibraryIOError(f"Cannot write {tmp_path}: {e}", "download") from e
        return tmp_path

    raise RemoteError(
        f"Could not download PDF from ADS ({'; '.join(failures)})", "download"
    )


def add_to_library(
    bibcode: str,
    token: str,
    library_dir: str | Path,
    bibfile: str | Path,
    log: Callable[[str], None] = print,
) -> str:
    """Export, download and ingest one bibcode.  Returns the stored filename."""
    log("Fetching BibTeX…")
    bibtex = export_bibtex(bibcode, token)

    log("Downloading PDF…")
    pdf_path = download_pdf(bibcode, token)
    try:
        return ingest(pdf_path, bibtex, library_dir, bibfile, log=log)
    finally:
        pdf_path.unlink(missing_ok=True)


# =========================
# Subcommands
# =========================


def last_names(authors: Sequence[str]) -> List[str]:
    """``Smith, John`` -> ``Smith``."""
    return [author.strip().split(",")[0] for author in authors]


def cmd_search(prefs: Preferences, query: str, rows: int, logger: Logger) -> None:
    log = logger.log
    log(f"🔎 Searching ADS for: {query}\n")
    results = search(query, prefs.api_token, rows=rows)
    for i, result in enumerate(results, 1):
        log(f"{i:3}. {result.title or result.bibcode}")
        details = [short_authors(last_names(result.authors)), result.year or ""]
        log(f"     {' · '.join(d for d in details if d)}")
        log(f"     {result.bibcode}")
    log(f"\n{len(results)} result(s)")


def cmd_show(prefs: Preferences, bibcode: str, logger: Logger) -> None:
    log = logger.log
    record = fetch_record(bibcode, prefs.api_token)
    log(f"# {record.title or record.bibcode}\n")
    log(f"  Authors : {', '.join(record.authors) or '(none)'}")
    if record.journal:
        log(f"  Journal : {record.journal}")
    log(f"  Year    : {record.year or 'unknown'}")
    if record.doi:
        log(f"  DOI     : {record.doi}")
    log(f"  URL     : {record.abstract_url}")
    if record.abstract:
        log(f"\n{record.abstract}")
    logger.log_separator()


def cmd_add(prefs: Preferences, bibcode: str, logger: Logger) -> str:
    log = logger.log
    final_name = add_to_library(
        bibcode,
        prefs.api_token,
        prefs.library_path,
        prefs.bibfile_path,
        log=lambda message: log(message, prefix="⏳"),
    )
    log(f"Added {final_name}", prefix="✅")
    return final_name


# =========================
# CLI
# =========================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ADS: search the Astrophysics Data System and add papers.",
    )
    add_preference_arguments(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_search = subparsers.add_parser("search", help="Search ADS.")
    p_search.add_argument("query", help="ADS query string")
    p_search.add_argument(
        "--rows", type=int, default=DEFAULT_ROWS, help="Maximum number of results"
    )

    p_show = subparsers.add_parser("show", help="Show the record of one bibcode.")
    p_show.add_argument("bibcode")

    p_add = subparsers.add_parser(
        "add", help="Download a paper and add it to the library."
    )
    p_add.add_argument("bibcode")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        prefs = validate_remote(preferences_from_args(args))
        if args.command == "add":
            validate_local(prefs)
    except LibraryError as e:
        parser.error(str(e))

    with Logger(
        "ads",
        input_file=prefs.bibfile_path if prefs.bibfile else None,
        log_dir=prefs.log_dir or None,
        enabled=not args.no_log,
    ) as logger:
        try:
            if args.command == "search":
                cmd_search(prefs, args.query, args.rows, logger)
            elif args.command == "show":
                cmd_show(prefs, args.bibcode, logger)
            elif args.command == "add":
                cmd_add(prefs, args.bibcode, logger)
        except LibraryError as e:
            logger.log(f"Failed at {e.stage or args.command}: {e.message}", prefix="❌")
            sys.exit(1)


if __name__ == "__main__":
    main()
