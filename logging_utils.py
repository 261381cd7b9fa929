"""
Logging utilities for bibshelf tools.

Every tool logs through one ``Logger``:
- messages go to stdout and to a log file at the same time
- the log file is named after the bibliography and the tool
- log files live in ``~/.bibshelf/logs`` unless told otherwise

Usage:
    from logging_utils import Logger

    # -> ~/.bibshelf/logs/refs.bib.library.log
    with Logger("library", input_file="refs.bib") as logger:
        logger.log("Found 10 entries", prefix="✅")
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import IO, Optional

SEPARATOR_WIDTH = 70
SEPARATOR_HEAVY = "="
SEPARATOR_LIGHT = "-"

LOG_DIR_ENV = "BIBSHELF_LOG_DIR"


def get_logs_dir() -> Path:
    """Return the default log directory, creating it if needed."""
    env_dir = os.environ.get(LOG_DIR_ENV)
    logs_dir = Path(env_dir) if env_dir else Path.home() / ".bibshelf" / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


class Logger:
    """
    Logger that writes to both stdout and a log file.

    The log file is named after the input file and the tool:
        <log_dir>/<input_file>.<tool_name>.log

    Without an input file:
        <log_dir>/<tool_name>_<timestamp>.log
    """

    def __init__(
        self,
        tool_name: str,
        input_file: Optional[str | Path] = None,
        log_dir: Optional[str | Path] = None,
        enabled: bool = True,
    ):
        self.tool_name = tool_name
        self.enabled = enabled
        self._file: Optional[IO[str]] = None
        self._log_path: Optional[Path] = None

        if not enabled:
            return

        try:
            if log_dir:
                log_dir_path = Path(log_dir).expanduser()
                log_dir_path.mkdir(parents=True, exist_ok=True)
            else:
                log_dir_path = get_logs_dir()

            if input_file:
                base_name = Path(input_file).name
                self._log_path = log_dir_path / f"{base_name}.{tool_name}.log"
            else:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                self._log_path = log_dir_path / f"{tool_name}_{timestamp}.log"

            self._file = open(self._log_path, "w", encoding="utf-8")
            self._file.write(f"{SEPARATOR_HEAVY * SEPARATOR_WIDTH}\n")
            self._file.write(f"{tool_name.upper()} LOG\n")
            self._file.write(
                f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            )
            if input_file:
                self._file.write(f"Input: {input_file}\n")
            self._file.write(f"{SEPARATOR_HEAVY * SEPARATOR_WIDTH}\n\n")
        except OSError as e:
            print(f"⚠️  Could not create log file {self._log_path}: {e}")
            self._file = None
            self._log_path = None

    @property
    def log_path(self) -> Optional[Path]:
        return self._log_path

    def log(self, message: str = "", prefix: str = "", to_stdout: bool = True) -> None:
        """Log a message to stdout and the log file."""
        full_message = f"{prefix} {message}".strip() if prefix else message

        if to_stdout:
            print(full_message)

        if self._file:
            self._file.write(full_message + "\n")
            self._file.flush()

    def log_separator(self, char: str = SEPARATOR_LIGHT) -> None:
        self.log(char * SEPARATOR_WIDTH)

    def log_header(self, title: str, char: str = SEPARATOR_HEAVY) -> None:
        self.log(char * SEPARATOR_WIDTH)
        self.log(title)
        self.log(char * SEPARATOR_WIDTH)

    def close(self) -> None:
        """Close the log file and report where it was saved."""
        if self._file:
            self._file.write(f"\n{SEPARATOR_HEAVY * SEPARATOR_WIDTH}\n")
            self._file.write(
                f"Log completed: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n"
            )
            self._file.close()
            self._file = None
            print(f"\n📝 Log saved to: {self._log_path}")

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
