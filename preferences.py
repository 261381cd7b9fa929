"""
Preferences for bibshelf tools.

Preferences are read from a YAML file::

    library: ~/papers          # directory holding the PDFs
    bibfile: ~/papers/refs.bib # bibliography file
    api_token: xxxxxxxx        # ADS API token
    log_dir: ~/.bibshelf/logs  # optional

The file is looked up at ``--config``, then ``$BIBSHELF_CONFIG``, then
``~/.config/bibshelf/config.yaml``.  ``BIBSHELF_LIBRARY``, ``BIBSHELF_BIBFILE``
and ``ADS_API_TOKEN`` override the file.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from library.errors import ValidationError

CONFIG_ENV = "BIBSHELF_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/bibshelf/config.yaml")

_ENV_OVERRIDES = {
    "library_dir": "BIBSHELF_LIBRARY",
    "bibfile": "BIBSHELF_BIBFILE",
    "api_token": "ADS_API_TOKEN",
}

# YAML key -> Preferences attribute
_YAML_KEYS = {
    "library": "library_dir",
    "library_dir": "library_dir",
    "bibfile": "bibfile",
    "api_token": "api_token",
    "log_dir": "log_dir",
}


@dataclass(frozen=True)
class Preferences:
    library_dir: str = ""
    bibfile: str = ""
    api_token: str = ""
    log_dir: str = ""

    @property
    def library_path(self) -> Path:
        return Path(self.library_dir).expanduser()

    @property
    def bibfile_path(self) -> Path:
        return Path(self.bibfile).expanduser()

    def with_overrides(self, **values: Optional[str]) -> "Preferences":
        """Return a copy with every non-empty value replaced."""
        return replace(self, **{k: v for k, v in values.items() if v})


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}", "config") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping", "config")
    return data


def load_preferences(path: Optional[str | Path] = None) -> Preferences:
    """Load preferences from YAML and the environment.

    An explicitly given *path* must exist; the default locations may be absent.
    """
    explicit = path or os.environ.get(CONFIG_ENV)
    config_path = Path(explicit or DEFAULT_CONFIG_PATH).expanduser()

    values: Dict[str, str] = {}
    if config_path.is_file():
        for key, value in _read_yaml(config_path).items():
            attr = _YAML_KEYS.get(str(key))
            if attr and value is not None:
                values[attr] = str(value)
    elif explicit:
        raise ValidationError(f"Config file not found: {config_path}", "config")

    for attr, env_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_name)
        if env_value:
            values[attr] = env_value

    return Preferences(**values)


def validate_local(prefs: Preferences) -> Preferences:
    """Check the settings needed to work with the local library."""
    if not prefs.library_dir:
        raise ValidationError("Path to the library directory missing", "config")
    if not prefs.bibfile:
        raise ValidationError("Path to the .bib file missing", "config")
    if not prefs.bibfile.endswith(".bib"):
        raise ValidationError(
            f"Invalid .bib file selected: {prefs.bibfile}", "config"
        )
    return prefs


def validate_remote(prefs: Preferences) -> Preferences:
    """Check the settings needed to talk to ADS."""
    if not prefs.api_token:
        raise ValidationError("ADS API token missing", "config")
    return prefs


def add_preference_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options every tool understands."""
    parser.add_argument("--config", type=Path, help="Path to the YAML config file")
    parser.add_argument("--library", help="Library directory (overrides config)")
    parser.add_argument("--bibfile", help="Bibliography file (overrides config)")
    parser.add_argument("--token", help="ADS API token (overrides config)")
    parser.add_argument(
        "--no-log", action="store_true", help="Do not write a log file"
    )


def preferences_from_args(args: argparse.Namespace) -> Preferences:
    """Load preferences and apply command-line overrides."""
    prefs = load_preferences(args.config)
    return prefs.with_overrides(
        library_dir=args.library,
        bibfile=args.bibfile,
        api_token=args.token,
    )
