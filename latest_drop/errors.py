"""Error types for Latest Drop.

Every error here is fatal to a run; none are retried.
"""


class LatestDropError(Exception):
    """Base error for the project."""

    exit_code = 1


class ConfigurationInvalid(LatestDropError):
    """The configuration file is missing, unreadable or fails validation."""

    exit_code = 2

    def __init__(self, problems: list[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class DirectoryUnavailable(LatestDropError):
    """The source folder cannot be listed."""


class DestinationConflict(LatestDropError):
    """The destination file exists and overwriting is disabled."""


class CopyFailed(LatestDropError):
    """The copy itself failed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
