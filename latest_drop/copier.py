"""
File transfer engine for Latest Drop.

Copies (or moves) the selected file into the destination folder under
its own name or a configured base name. The source extension is always
kept. An existing destination file is either replaced or blocks the
transfer, depending on the overwrite flag. Every failure is raised
once; nothing is retried.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from latest_drop.errors import CopyFailed, DestinationConflict
from latest_drop.outcome import Action, NoMatch, Transferred, TransferOutcome
from latest_drop.selector import CandidateFile, SelectionCriteria

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferRequest:
    """A single transfer derived from the selected file and the config."""
    action: Action
    source_file: CandidateFile
    destination_directory: Path
    destination_base_name: str | None = None
    overwrite: bool = False


def destination_path(request: TransferRequest) -> Path:
    """
    Return the final destination path for *request*.

    The configured base name replaces only the part before the source
    extension, so ``"A"`` with ``report.final.csv`` gives ``A.csv`` and a
    dot in the configured name never changes the extension.
    """
    src = request.source_file
    base = request.destination_base_name or src.base_name
    return Path(request.destination_directory) / f"{base}{src.extension}"


def _remove_source(source: Path) -> str:
    """Delete *source* after a move. Returns a warning text, empty on success."""
    if not source.exists():
        return ""
    try:
        source.unlink()
    except OSError as exc:
        logger.warning("Copied but could not remove source %s: %s", source, exc)
        return f"The file was copied but the source could not be removed: {exc}"
    logger.info("Removed source %s", source)
    return ""


def check_destination(dest: Path, overwrite: bool) -> None:
    """
    Apply the overwrite policy to *dest*. Raises DestinationConflict.

    Anything at *dest* that is not a regular file blocks the transfer
    even when overwriting is on.
    """
    if not dest.exists():
        return
    if not dest.is_file():
        logger.error("Destination %s exists and is not a regular file", dest)
        raise DestinationConflict(f"Destination {dest} exists and is not a regular file")
    if not overwrite:
        logger.error("Destination %s exists and overwrite is off", dest)
        raise DestinationConflict(
            f"Destination file {dest} already exists and overwrite is disabled"
        )


def _check_unchanged(candidate: CandidateFile) -> None:
    """Raise CopyFailed if the source changed since it was selected."""
    src = candidate.full_path
    try:
        mtime_ns = src.stat().st_mtime_ns
    except OSError as exc:
        raise CopyFailed(f"Source {src} is no longer readable: {exc}") from exc
    if mtime_ns != candidate.mtime_ns:
        logger.error("Source %s was modified after it was selected", src)
        raise CopyFailed(f"Source {src} was modified after it was selected")


def transfer(request: TransferRequest | None, criteria: SelectionCriteria) -> TransferOutcome:
    """
    Carry out *request* and return the outcome.

    A None request means nothing matched; no I/O is done. Raises
    DestinationConflict or CopyFailed. The source must still carry its
    scan-time modification time both before and after the copy.
    """
    if request is None:
        return NoMatch(source_directory=Path(criteria.source_directory), criteria=criteria)

    src = request.source_file.full_path
    dest = destination_path(request)

    check_destination(dest, request.overwrite)
    _check_unchanged(request.source_file)

    # ---- copy ----
    try:
        logger.info(
            "Copying %s -> %s (overwrite=%s)", src, dest, request.overwrite,
        )
        shutil.copy2(str(src), str(dest))
    except OSError as exc:
        logger.error("Copy failed for %s: %s", src, exc)
        raise CopyFailed(f"Could not copy {src} to {dest}: {exc}") from exc

    # Written while we copied
    _check_unchanged(request.source_file)

    # ---- move: remove the source ----
    removed = False
    warning = ""
    if request.action == Action.MOVE:
        warning = _remove_source(src)
        removed = not warning

    return Transferred(
        source_path=src,
        destination_path=dest,
        last_modified=request.source_file.last_modified,
        source_removed=removed,
        warning=warning,
    )
