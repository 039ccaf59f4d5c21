"""
Run outcomes and the human-readable report built from them.

A run ends in exactly one of three outcomes: the file was transferred,
nothing matched, or the run failed. The notifier only ever sees the
``Report`` built here, so everything it needs is carried in the outcome
and the run settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from latest_drop.selector import SelectionCriteria


class Action(str, Enum):
    COPY = "Copy"
    MOVE = "Move"

    @classmethod
    def parse(cls, value: str) -> "Action":
        """Return the action named *value* (case-insensitive)."""
        for action in cls:
            if action.value.lower() == str(value).strip().lower():
                return action
        raise ValueError(f"Unknown action {value!r} (expected 'Copy' or 'Move')")


class Priority(str, Enum):
    NORMAL = "Normal"
    HIGH = "High"

    @classmethod
    def parse(cls, value: str) -> "Priority":
        for priority in cls:
            if priority.value.lower() == str(value).strip().lower():
                return priority
        raise ValueError(f"Unknown priority {value!r} (expected 'Normal' or 'High')")


FAILURE_SUBJECT = "FAILURE"


@dataclass(frozen=True)
class Transferred:
    source_path: Path
    destination_path: Path
    last_modified: datetime
    source_removed: bool = False
    warning: str = ""


@dataclass(frozen=True)
class NoMatch:
    source_directory: Path
    criteria: SelectionCriteria


@dataclass(frozen=True)
class Failed:
    reason: str
    error_kind: str = "Error"


TransferOutcome = Transferred | NoMatch | Failed


@dataclass(frozen=True)
class RunSettings:
    """The request parameters the report echoes back to the reader."""
    action: Action
    criteria: SelectionCriteria
    destination_directory: Path
    destination_base_name: str | None = None
    overwrite: bool = False
    no_match_priority: Priority = Priority.NORMAL


@dataclass(frozen=True)
class Report:
    subject: str
    body: str
    priority: Priority


def _past_tense(action: Action) -> str:
    return "copied" if action == Action.COPY else "moved"


def describe_request(settings: RunSettings) -> str:
    """
    Describe what the run was asked to do, in one sentence.

    E.g. "Move the most recently edited file with extension '.csv' and a
    name starting with 'export' from 'C:\\out' to 'D:\\drop' as 'latest',
    overwriting any existing file."
    """
    verb = "Copy" if settings.action == Action.COPY else "Move"
    crit = settings.criteria
    parts = [f"{verb} the most recently edited file"]
    filters = []
    if crit.file_extension:
        filters.append(f"with extension '{crit.file_extension}'")
    if crit.file_name_starts_with:
        filters.append(f"a name starting with '{crit.file_name_starts_with}'")
    if filters:
        parts.append(" " + " and ".join(filters))
    parts.append(f" from '{crit.source_directory}' to '{settings.destination_directory}'")
    if settings.destination_base_name:
        parts.append(f" as '{settings.destination_base_name}'")
    if settings.overwrite:
        parts.append(", overwriting any existing file.")
    else:
        parts.append(", without overwriting an existing file.")
    return "".join(parts)


def build_report(
    outcome: TransferOutcome,
    settings: RunSettings,
    elapsed: float = 0.0,
) -> Report:
    """Turn a run outcome into the subject, body and priority of the mail."""
    request = describe_request(settings)
    done = _past_tense(settings.action)

    if isinstance(outcome, Transferred):
        lines = [
            request,
            "",
            f"File {done}:",
            f"  Source:        {outcome.source_path}",
            f"  Destination:   {outcome.destination_path}",
            f"  Last modified: {outcome.last_modified:%Y-%m-%d %H:%M:%S}",
        ]
        priority = Priority.NORMAL
        if outcome.warning:
            lines += ["", f"WARNING: {outcome.warning}"]
            priority = Priority.HIGH
        subject = f"File {done}"
    elif isinstance(outcome, NoMatch):
        lines = [
            request,
            "",
            f"No file matching the criteria was found in '{outcome.source_directory}'.",
        ]
        subject = f"No file {done}"
        priority = settings.no_match_priority
    else:
        lines = [
            request,
            "",
            f"The run failed ({outcome.error_kind}):",
            f"  {outcome.reason}",
        ]
        subject = FAILURE_SUBJECT
        priority = Priority.HIGH

    lines += ["", f"Run time: {elapsed:.1f}s"]
    return Report(subject=subject, body="\n".join(lines), priority=priority)


def failure_report(reason: str, error_kind: str = "Error") -> Report:
    """Report a failure that happened before run settings were known."""
    body = f"The run failed ({error_kind}):\n  {reason}"
    return Report(subject=FAILURE_SUBJECT, body=body, priority=Priority.HIGH)
