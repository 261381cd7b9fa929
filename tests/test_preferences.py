from __future__ import annotations

import argparse
from pathlib import Path

import pytest

from conftest import write_text
from library import ValidationError
from preferences import (
    Preferences,
    add_preference_arguments,
    load_preferences,
    preferences_from_args,
    validate_local,
    validate_remote,
)


def _parse(argv):
    parser = argparse.ArgumentParser()
    add_preference_arguments(parser)
    return parser.parse_args(argv)


def test_load_from_explicit_file(tmp_path: Path) -> None:
    config = write_text(
        tmp_path / "config.yaml",
        """
        library: ~/papers
        bibfile: ~/papers/refs.bib
        api_token: secret
        unrelated: ignored
        """,
    )

    prefs = load_preferences(config)

    assert prefs == Preferences(
        library_dir="~/papers", bibfile="~/papers/refs.bib", api_token="secret"
    )
    assert prefs.library_path == Path.home() / "papers"
    assert prefs.bibfile_path == Path.home() / "papers" / "refs.bib"


def test_load_from_default_location(tmp_path: Path) -> None:
    write_text(
        Path.home() / ".config" / "bibshelf" / "config.yaml",
        "library_dir: /data/papers",
    )

    assert load_preferences().library_dir == "/data/papers"


def test_missing_default_file_is_fine() -> None:
    assert load_preferences() == Preferences()


def test_config_path_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = write_text(tmp_path / "other.yaml", "bibfile: /tmp/x.bib")
    monkeypatch.setenv("BIBSHELF_CONFIG", str(config))

    assert load_preferences().bibfile == "/tmp/x.bib"


def test_environment_overrides_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = write_text(
        tmp_path / "config.yaml",
        """
        library: /from/file
        bibfile: /from/file/refs.bib
        api_token: file-token
        """,
    )
    monkeypatch.setenv("BIBSHELF_LIBRARY", "/from/env")
    monkeypatch.setenv("ADS_API_TOKEN", "env-token")

    prefs = load_preferences(config)

    assert prefs.library_dir == "/from/env"
    assert prefs.bibfile == "/from/file/refs.bib"
    assert prefs.api_token == "env-token"


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ValidationError) as excinfo:
        load_preferences(tmp_path / "nope.yaml")

    assert excinfo.value.stage == "config"


@pytest.mark.parametrize("payload", ["- just\n- a list", "library: [unclosed"])
def test_malformed_config(tmp_path: Path, payload: str) -> None:
    config = write_text(tmp_path / "config.yaml", payload)

    with pytest.raises(ValidationError):
        load_preferences(config)


def test_command_line_overrides(tmp_path: Path) -> None:
    config = write_text(tmp_path / "config.yaml", "library: /a\nbibfile: /a/refs.bib")
    args = _parse(["--config", str(config), "--bibfile", "/b/other.bib", "--no-log"])

    prefs = preferences_from_args(args)

    assert prefs.library_dir == "/a"
    assert prefs.bibfile == "/b/other.bib"
    assert args.no_log is True


@pytest.mark.parametrize(
    "prefs, message",
    [
        (Preferences(bibfile="refs.bib"), "Path to the library directory missing"),
        (Preferences(library_dir="papers"), "Path to the .bib file missing"),
        (
            Preferences(library_dir="papers", bibfile="refs.txt"),
            "Invalid .bib file selected: refs.txt",
        ),
    ],
)
def test_validate_local(prefs: Preferences, message: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_local(prefs)

    assert excinfo.value.message == message


def test_validate_local_accepts_complete_settings() -> None:
    prefs = Preferences(library_dir="papers", bibfile="refs.bib")

    assert validate_local(prefs) is prefs


def test_validate_remote() -> None:
    with pytest.raises(ValidationError, match="ADS API token missing"):
        validate_remote(Preferences())

    assert validate_remote(Preferences(api_token="t")).api_token == "t"
