from __future__ import annotations

from pathlib import Path

import pytest

from conftest import SCENARIO_RECORD, write_text
from library import (
    EntryType,
    LibraryIOError,
    ParseError,
    extract_type,
    load_library,
    parse_bibtex,
    parse_library,
)
from library.parser import extract_file_ref, extract_year, split_authors, split_records


def test_parse_scenario_record() -> None:
    entries = parse_bibtex(SCENARIO_RECORD)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.title == "Weak Turbulence in Plasmas"
    assert entry.authors == ["A. Smith", "B. Jones", "C. Lee"]
    assert entry.year == 2020
    assert entry.entry_type is EntryType.PAPER
    assert entry.key == "x"
    assert entry.file_ref is None
    assert entry.raw_text == SCENARIO_RECORD


def test_parse_full_record_fields() -> None:
    text = """
    @article{smith2021,
        author = {Smith, John and {NASA Collaboration}},
        title = {{Magnetic} Reconnection},
        journal = {The Astrophysical Journal},
        year = {2021},
        adsurl = {https://ui.adsabs.harvard.edu/abs/2021ApJ},
        abstract = {We study {reconnection}.},
        file = {:Smith_2021_magnetic_reconnection.pdf:PDF},
    }
    """
    entry = parse_bibtex(text)[0]

    assert entry.title == "Magnetic Reconnection"
    assert entry.authors == ["John Smith", "NASA Collaboration"]
    assert entry.journal_abbrev == "ApJ"
    assert entry.url == "https://ui.adsabs.harvard.edu/abs/2021ApJ"
    assert entry.abstract == "We study reconnection."
    assert entry.file_ref == "Smith_2021_magnetic_reconnection.pdf"


def test_raw_text_is_verbatim() -> None:
    record = "@book{b1,\n  title  = {Plasma   Physics},\n\n  year = 1999\n}"
    text = f"% header comment\n\n{record}\n\ntrailing notes\n"

    entry = parse_bibtex(text)[0]

    assert entry.raw_text == record
    assert entry.entry_type is EntryType.BOOK


def test_missing_fields_use_sentinels() -> None:
    entry = parse_bibtex("@misc{empty, note = {nothing else}}")[0]

    assert entry.title == "untitled"
    assert entry.authors == []
    assert entry.year == 0
    assert entry.journal_abbrev is None
    assert entry.url is None
    assert entry.abstract is None


@pytest.mark.parametrize(
    "type_tag, expected",
    [
        (None, EntryType.MISC),
        ("", EntryType.MISC),
        ("article", EntryType.PAPER),
        ("book", EntryType.BOOK),
        ("inbook", EntryType.BOOK),
        ("booklet", EntryType.BOOK),
        ("mastersthesis", EntryType.THESIS),
        ("phdthesis", EntryType.THESIS),
        ("inproceedings", EntryType.MISC),
        ("something-unknown", EntryType.MISC),
    ],
)
def test_extract_type(type_tag, expected) -> None:
    assert extract_type(type_tag) is expected


def test_type_mapping_through_parser() -> None:
    text = """
    @phdthesis{t1, title = {A Thesis}}
    @InBook{b1, title = {A Chapter}}
    @dataset{d1, title = {Some Data}}
    """
    types = {e.key: e.entry_type for e in parse_bibtex(text)}

    assert types == {
        "t1": EntryType.THESIS,
        "b1": EntryType.BOOK,
        "d1": EntryType.MISC,
    }


def test_journal_lookup_is_exact() -> None:
    text = """
    @article{a, journal = {The Astrophysical Journal}}
    @article{b, journal = {the astrophysical journal}}
    @article{c, journal = {Journal of Obscure Results}}
    @article{d, journal = {\\nat}}
    """
    journals = [e.journal_abbrev for e in parse_bibtex(text)]

    assert journals == [
        "ApJ",
        "the astrophysical journal",
        "Journal of Obscure Results",
        "Nature",
    ]


def test_journal_table_can_be_replaced() -> None:
    text = "@article{a, journal = {Nature}}"

    entry = parse_bibtex(text, journals={"Nature": "Nat."})[0]

    assert entry.journal_abbrev == "Nat."


@pytest.mark.parametrize(
    "value, expected",
    [
        (":foo.pdf:PDF", "foo.pdf"),
        (":A. Smith.etal_2020_x.pdf:PDF", "A. Smith.etal_2020_x.pdf"),
        ("foo.pdf", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_file_ref(value, expected) -> None:
    assert extract_file_ref(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("2020", 2020), (" 1999a", 1999), ("in press", 0), ("", 0), (None, 0)],
)
def test_extract_year(value, expected) -> None:
    assert extract_year(value) == expected


def test_split_authors_respects_braces() -> None:
    value = "{Smith and Sons} and Jones, B. and\n C. Lee"

    assert split_authors(value) == ["{Smith and Sons}", "Jones, B.", "C. Lee"]


def test_parse_library_sorts_by_title() -> None:
    text = """
    @misc{kb, title = {beta}}
    @misc{ka1, title = {Alpha}}
    @misc{kg, title = {gamma}}
    @misc{ka2, title = {Alpha}, year = {2001}}
    """
    entries = parse_library(text)

    assert [e.key for e in entries] == ["ka1", "ka2", "kb", "kg"]


def test_parse_library_sorts_accented_titles_with_their_base_letter() -> None:
    text = """
    @misc{z, title = {Zeta}}
    @misc{e, title = {{\\'E}tude of plasmas}}
    @misc{a, title = {Apple}}
    """
    titles = [e.title for e in parse_library(text)]

    assert titles == ["Apple", "Étude of plasmas", "Zeta"]


def test_string_macros_are_shared_between_records() -> None:
    text = """
    @string{apjx = "Astrophysical Journal"}

    @article{a, title = {T}, journal = apjx, year = 2000}
    @article{b, title = {U}, journal = apjx # " Letters", year = 2001}
    """
    entries = parse_bibtex(text)

    assert [e.key for e in entries] == ["a", "b"]
    assert entries[0].journal_abbrev == "ApJ"
    assert entries[1].journal_abbrev == "ApJL"


def test_record_with_undefined_macro_keeps_its_header() -> None:
    record = "@article{a, title = {T}, journal = nosuchmacro, year = 2000}"

    entries = parse_bibtex(SCENARIO_RECORD + "\n\n" + record)

    assert len(entries) == 2
    assert entries[0].title == "Weak Turbulence in Plasmas"
    assert entries[1].key == "a"
    assert entries[1].raw_text == record


def test_comment_lines_inside_a_record_are_ignored() -> None:
    record = "@misc{k,\n% a comment\n title={C}, year=2000}"

    entry = parse_bibtex(record)[0]

    assert entry.key == "k"
    assert entry.title == "C"
    assert entry.year == 2000
    assert entry.raw_text == record


def test_undecodable_record_falls_back_to_sentinels() -> None:
    record = "@book{k, title = {T}, year = 20 20}"

    entries = parse_bibtex(record)

    assert len(entries) == 1
    entry = entries[0]
    assert entry.key == "k"
    assert entry.entry_type is EntryType.BOOK
    assert entry.title == "untitled"
    assert entry.year == 0
    assert entry.raw_text == record


def test_duplicates_are_kept() -> None:
    text = SCENARIO_RECORD + "\n\n" + SCENARIO_RECORD

    assert len(parse_bibtex(text)) == 2


def test_skipped_blocks_and_parenthesised_records() -> None:
    text = """
    @comment{jabref-meta: databaseType:bibtex;}
    @string{apj = "The Astrophysical Journal"}
    @preamble{"\\newcommand{\\noop}[1]{}"}
    @article(paren, title = {Round Brackets}, year = 2010)
    """
    blocks = split_records(text)
    entries = parse_bibtex(text)

    assert [block[0] for block in blocks] == ["article"]
    assert len(entries) == 1
    assert entries[0].title == "Round Brackets"
    assert entries[0].year == 2010


def test_unbalanced_braces_fail_whole_file() -> None:
    text = SCENARIO_RECORD + "\n\n@article{broken,\n  title = {Open {brace},\n"

    with pytest.raises(ParseError) as excinfo:
        parse_bibtex(text)

    assert excinfo.value.line == 3


def test_empty_text_has_no_entries() -> None:
    assert parse_bibtex("") == []
    assert parse_bibtex("just some notes, no records") == []


def test_load_library(tmp_path: Path) -> None:
    bibfile = write_text(
        tmp_path / "refs.bib",
        """
        @article{b, title = {Second}}

        @article{a, title = {First}}
        """,
    )

    entries = load_library(bibfile)

    assert [e.title for e in entries] == ["First", "Second"]


def test_load_library_missing_file(tmp_path: Path) -> None:
    with pytest.raises(LibraryIOError) as excinfo:
        load_library(tmp_path / "missing.bib")

    assert excinfo.value.stage == "read"
