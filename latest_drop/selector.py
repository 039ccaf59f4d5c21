"""Latest-file selection.

Scans the direct children of a folder, keeps regular files that pass the
extension and prefix filters, and picks the most recently modified one.
Symbolic links are not candidates.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from latest_drop.errors import DirectoryUnavailable

logger = logging.getLogger(__name__)


def normalize_extension(ext: str | None) -> str | None:
    """Return *ext* lowercased with exactly one leading dot, or None if blank."""
    if ext is None:
        return None
    ext = ext.strip().lower().lstrip(".")
    return f".{ext}" if ext else None


@dataclass(frozen=True)
class SelectionCriteria:
    """Where to look and which files qualify.

    The extension is compared case-insensitively against the end of the
    file name; the prefix is compared case-sensitively.
    """
    source_directory: Path
    file_extension: str | None = None
    file_name_starts_with: str | None = None

    def matches(self, name: str) -> bool:
        """Return True when a file called *name* passes both filters."""
        ext = normalize_extension(self.file_extension)
        if ext and not name.lower().endswith(ext):
            return False
        if self.file_name_starts_with and not name.startswith(self.file_name_starts_with):
            return False
        return True


@dataclass(frozen=True)
class CandidateFile:
    """Snapshot of a matching file taken at scan time."""
    full_path: Path
    base_name: str
    extension: str
    mtime_ns: int

    @property
    def name(self) -> str:
        return self.base_name + self.extension

    @property
    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self.mtime_ns / 1_000_000_000)

    @classmethod
    def from_path(cls, path: Path, mtime_ns: int) -> "CandidateFile":
        return cls(
            full_path=path,
            base_name=path.stem if path.suffix else path.name,
            extension=path.suffix,
            mtime_ns=mtime_ns,
        )


def scan(criteria: SelectionCriteria) -> list[CandidateFile]:
    """
    Return every matching regular file directly inside the source folder.

    Entries come back in lexicographic name order. Raises
    DirectoryUnavailable when the folder cannot be listed.
    """
    src = Path(criteria.source_directory)
    try:
        with os.scandir(src) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        logger.error("Cannot list source folder %s: %s", src, exc)
        raise DirectoryUnavailable(f"Cannot list source folder {src}: {exc}") from exc

    files: list[CandidateFile] = []
    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            if not criteria.matches(entry.name):
                logger.debug("Ignoring %s (does not match filters)", entry.name)
                continue
            mtime_ns = entry.stat().st_mtime_ns
        except OSError:
            # Vanished between listing and stat
            logger.debug("Skipping %s (stat failed)", entry.name, exc_info=True)
            continue
        files.append(CandidateFile.from_path(Path(entry.path), mtime_ns))
    return files


def select_latest(criteria: SelectionCriteria) -> CandidateFile | None:
    """
    Return the most recently modified matching file, or None.

    On equal timestamps the lexicographically first name wins.
    """
    latest: CandidateFile | None = None
    for candidate in scan(criteria):
        if latest is None or candidate.mtime_ns > latest.mtime_ns:
            latest = candidate

    if latest is None:
        logger.info(
            "No file in %s matches (extension=%r, prefix=%r)",
            criteria.source_directory,
            criteria.file_extension,
            criteria.file_name_starts_with,
        )
    else:
        logger.info("Latest file: %s (modified %s)", latest.full_path, latest.last_modified)
    return latest
