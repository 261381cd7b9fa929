from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

SCENARIO_RECORD = (
    "@Article{x, title={Weak Turbulence in Plasmas}, "
    "author={A. Smith and B. Jones and C. Lee}, year={2020}}"
)

SCENARIO_FILENAME = "A. Smith.etal_2020_weak_turbulence_in_plasmas.pdf"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user config, tokens and logs out of every test."""
    for name in (
        "BIBSHELF_CONFIG",
        "BIBSHELF_LIBRARY",
        "BIBSHELF_BIBFILE",
        "ADS_API_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("BIBSHELF_LOG_DIR", str(tmp_path / "logs"))


def write_text(path: Path, payload: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(payload).strip() + "\n", encoding="utf-8")
    return path
