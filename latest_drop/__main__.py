"""Entry point for Latest Drop.

Usage:
    python -m latest_drop                     Run once with the default config
    python -m latest_drop --config job.json   Run once with a specific config
    python -m latest_drop --dry-run           Show what would be transferred
    python -m latest_drop --watch             Run again whenever the source settles
"""

import argparse
import sys
from pathlib import Path

from latest_drop import __app_name__, __version__


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="latest-drop",
        description="Copy or move the most recently modified file in a folder "
        "to a drop folder and mail the outcome.",
    )
    p.add_argument("--config", type=Path, help="JSON config file (default: platform config dir).")
    p.add_argument("--dry-run", action="store_true", help="Select and report without transferring or mailing.")
    p.add_argument("--watch", action="store_true", help="Keep running; rerun when the source folder settles.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level.")
    p.add_argument("--version", action="version", version=f"{__app_name__} {__version__}")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Run Latest Drop and exit with its status code."""
    from latest_drop.app import App

    args = parse_args(argv)
    app = App(config_path=args.config, verbose=args.verbose)
    sys.exit(app.run(dry_run=args.dry_run, watch=args.watch))


if __name__ == "__main__":
    main()
