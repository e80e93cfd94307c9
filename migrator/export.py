"""
Export of migrated wallet files.

Sinks receive (filename, text) pairs exactly as the engine produced them.
Each write is independent: a failed write is reported and the remaining
files are still written. Nothing already written is rolled back.
"""

import os
import logging
from pathlib import Path, PurePath
from typing import Iterable, Protocol

from migrator.errors import ExportError

logger = logging.getLogger("export")

SECURE_FILE_MODE = 0o600


class Sink(Protocol):
    def write(self, filename: str, text: str) -> None:
        ...


class DirectorySink:
    """Writes files into one directory, owner read/write only."""

    def __init__(self, directory, overwrite: bool = False):
        self.directory = Path(directory)
        self.overwrite = overwrite

    def write(self, filename: str, text: str) -> None:
        name = PurePath(filename).name
        if not name or name != filename:
            raise ExportError(filename, "filename must not contain a directory")

        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.directory / name
        if target.exists() and not self.overwrite:
            raise ExportError(filename, "file already exists")

        try:
            target.write_text(text, encoding="utf-8")
            if os.name == "posix":
                os.chmod(target, SECURE_FILE_MODE)
        except OSError as e:
            raise ExportError(filename, str(e)) from e


class MemorySink:
    """Collects exported files in memory. A name is never written twice."""

    def __init__(self):
        self.files: dict[str, str] = {}

    def write(self, filename: str, text: str) -> None:
        if filename in self.files:
            raise ExportError(filename, "file already exists")
        self.files[filename] = text


def export(migrated_files: Iterable, sink: Sink) -> int:
    """Hand every migrated file to sink. Returns how many were written."""
    written = 0
    for migrated in migrated_files:
        try:
            sink.write(migrated.filename, migrated.text)
        except (ExportError, OSError) as e:
            logger.error(f"Export of {migrated.filename} failed: {e}")
            continue
        written += 1
        logger.info(f"Exported {migrated.filename}")
    return written
