#!/usr/bin/env python3
"""
bibshelf — a personal BibTeX bibliography with attached PDFs.

Unified command-line interface.  Every tool is exposed as a subcommand so
that the whole workflow runs from one entry point.

Subcommands:
    library    Browse the local bibliography and add PDFs to it
    ads        Search ADS and add papers straight into the library

Usage:
    bibshelf library list --filter smith
    bibshelf library show "weak turbulence"
    bibshelf library add paper.pdf record.bib
    bibshelf ads search "author:Smith year:2020"
    bibshelf ads add 2020ApJ...900....1S
"""

from __future__ import annotations

import sys
from typing import List, Optional

TOOLS = {
    "library": "Browse the local bibliography: list / show / add",
    "ads": "Search ADS and add papers to the library: search / show / add",
}


def _print_usage() -> None:
    """Print top-level usage information."""
    print("usage: bibshelf <tool> [args ...]\n")
    print("bibshelf — personal BibTeX bibliography with attached PDFs.\n")
    print("Available tools:")
    for name, desc in TOOLS.items():
        print(f"  {name:<12} {desc}")
    print("\nRun 'bibshelf <tool> -h' for tool-specific help.")


def main(argv: Optional[List[str]] = None) -> None:
    """Parse the first positional arg as a tool name and delegate."""
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv or argv[0] in ("-h", "--help"):
        _print_usage()
        sys.exit(0)

    tool = argv[0]

    if tool not in TOOLS:
        print(f"bibshelf: unknown tool '{tool}'")
        _print_usage()
        sys.exit(1)

    if tool == "library":
        from utils.librarian import main as librarian_main

        librarian_main(argv[1:])

    elif tool == "ads":
        from utils.ads import main as ads_main

        ads_main(argv[1:])


if __name__ == "__main__":
    main()
