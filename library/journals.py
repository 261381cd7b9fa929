"""
Journal name abbreviations used when listing a bibliography.

Keys are matched exactly (case-sensitive) against the raw ``journal`` field of
a record.  Besides full names, the AAS journal macros exported by ADS
(``\\apj``, ``\\mnras``, ...) are mapped as well.

The table is read-only; pass a different mapping to the parser to override it.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

JOURNAL_ABBREVIATIONS: Mapping[str, str] = MappingProxyType(
    {
        # Astronomy & astrophysics
        "The Astrophysical Journal": "ApJ",
        "Astrophysical Journal": "ApJ",
        "Astrophysical Journal Letters": "ApJL",
        "Astrophysical Journal Supplement": "ApJS",
        "Astrophysical Journal: Supplement": "ApJS",
        "Monthly Notices of the Royal Astronomical Society": "MNRAS",
        "Astronomy & Astrophysics": "A&A",
        "The Astronomical Journal": "AJ",
        "Annual Review of Astronomy and Astrophysics": "ARAA",
        "Space Science Reviews": "SSR",
        # Physics
        "Physical Review Letters": "PRL",
        "Physical Review Research": "PRR",
        "Physical Review D": "PRD",
        "Physical Review C": "PRC",
        "Physical Review X": "PRX",
        "Journal of Plasma Physics": "JPP",
        "Reviews of Modern Physics": "Rev. Mod. Phys.",
        "Computer Physics Communications": "Comp. Phys. Comm.",
        # Preprints
        "arXiv e-prints": "arXiv",
        # AAS macros
        "\\apj": "ApJ",
        "\\apjl": "ApJL",
        "\\apjs": "ApJS",
        "\\aj": "AJ",
        "\\mnras": "MNRAS",
        "\\aap": "A&A",
        "\\araa": "ARAA",
        "\\ssr": "SSR",
        "\\prl": "PRL",
        "\\prd": "PRD",
        "\\jpp": "JPP",
        "\\nat": "Nature",
    }
)
