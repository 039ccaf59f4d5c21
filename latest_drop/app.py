"""
Main application controller for Latest Drop.

Ties together configuration, logging, latest-file selection, the
transfer and the mail report. One call to ``run_once`` is one run:
scan, select, transfer, report, in that order. Fatal errors are
reported with High priority and turned into a non-zero exit code.
"""

import logging
import logging.handlers
import sys
import time
from pathlib import Path

from latest_drop import __app_name__, __version__
from latest_drop.config import Config
from latest_drop.copier import TransferRequest, check_destination, destination_path, transfer
from latest_drop.errors import ConfigurationInvalid, LatestDropError
from latest_drop.notify import MailNotifier
from latest_drop.outcome import (
    Failed,
    Report,
    RunSettings,
    Transferred,
    TransferOutcome,
    build_report,
    failure_report,
)
from latest_drop.selector import select_latest

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _notify(notifier, report: Report, recipients: list[str]) -> None:
    """Send *report*; delivery problems are logged, never raised."""
    try:
        notifier.send(report, recipients)
    except Exception:
        logger.exception("Could not send report '%s'", report.subject)


def execute(settings: RunSettings, dry_run: bool = False) -> TransferOutcome:
    """Select the latest file and transfer it. Raises LatestDropError."""
    candidate = select_latest(settings.criteria)
    request = None
    if candidate is not None:
        request = TransferRequest(
            action=settings.action,
            source_file=candidate,
            destination_directory=settings.destination_directory,
            destination_base_name=settings.destination_base_name,
            overwrite=settings.overwrite,
        )

    if dry_run and request is not None:
        dest = destination_path(request)
        check_destination(dest, request.overwrite)
        logger.info("Dry run: would %s %s -> %s", settings.action.value.lower(), candidate.full_path, dest)
        return Transferred(
            source_path=candidate.full_path,
            destination_path=dest,
            last_modified=candidate.last_modified,
        )
    return transfer(request, settings.criteria)


def run_once(cfg: Config, notifier, dry_run: bool = False) -> int:
    """
    Perform one complete run and return the process exit code.

    *notifier* is anything with a ``send(report, recipients)`` method.
    """
    started = time.time()
    try:
        cfg.validate()
    except ConfigurationInvalid as exc:
        logger.error("Configuration invalid: %s", exc)
        recipients = cfg.mail_to
        if recipients and not dry_run:
            _notify(notifier, failure_report(str(exc), "ConfigurationInvalid"), recipients)
        return exc.exit_code

    settings = cfg.run_settings()
    logger.info("%s run: %s", __app_name__, settings.action.value)

    exit_code = EXIT_OK
    outcome: TransferOutcome
    try:
        outcome = execute(settings, dry_run=dry_run)
    except LatestDropError as exc:
        logger.error("Run failed (%s): %s", type(exc).__name__, exc)
        outcome = Failed(reason=str(exc), error_kind=type(exc).__name__)
        exit_code = exc.exit_code
    except Exception as exc:
        logger.exception("Unexpected error during run")
        outcome = Failed(reason=str(exc) or type(exc).__name__, error_kind=type(exc).__name__)
        exit_code = EXIT_FAILURE

    report = build_report(outcome, settings, elapsed=time.time() - started)
    logger.info("Outcome: %s (%.1fs)", report.subject, time.time() - started)
    if dry_run:
        logger.info("Dry run: report not sent:\n%s", report.body)
    else:
        _notify(notifier, report, cfg.mail_to)
    return exit_code


class App:
    """Command-line orchestrator: logging setup, then one run or a watch loop."""

    def __init__(self, config_path: Path | None = None, verbose: bool = False) -> None:
        self._config_path = config_path
        self._verbose = verbose
        self.config: Config | None = None

    def run(self, dry_run: bool = False, watch: bool = False) -> int:
        """Load the config, then run once (or keep running with *watch*)."""
        try:
            self.config = Config(self._config_path)
        except ConfigurationInvalid as exc:
            logging.basicConfig(level=logging.INFO, stream=sys.stderr)
            logger.error("Configuration invalid: %s", exc)
            return exc.exit_code

        try:
            self.config.validate_logging()
        except ConfigurationInvalid:
            # run_once reports the problem and exits with the config error code
            logging.basicConfig(level=logging.INFO, stream=sys.stderr)
        else:
            self._setup_logging()
        logger.info("%s %s starting (config %s).", __app_name__, __version__, self.config.path)
        try:
            notifier = MailNotifier.from_config(self.config)
        except ValueError:
            # Unusable mail settings: run_once reports them, to the log only
            notifier = MailNotifier()

        if not watch:
            return run_once(self.config, notifier, dry_run=dry_run)

        from latest_drop.watcher import watch_and_run

        return watch_and_run(self.config, lambda: run_once(self.config, notifier, dry_run=dry_run))

    def _setup_logging(self) -> None:
        """Configure rotating file log and stderr handler."""
        cfg = self.config
        level_name = "DEBUG" if self._verbose else cfg.log_level.upper()
        level = getattr(logging, level_name, logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

        # Rotating file handler
        log_path = cfg.log_file
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.handlers.RotatingFileHandler(
                str(log_path),
                maxBytes=cfg.max_log_size_mb * 1024 * 1024,
                backupCount=cfg.log_backup_count,
                encoding="utf-8",
            )
        except OSError as exc:
            print(f"Cannot open log file {log_path}: {exc}", file=sys.stderr)
        else:
            fh.setLevel(level)
            fh.setFormatter(fmt)
            root_logger.addHandler(fh)

        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)
