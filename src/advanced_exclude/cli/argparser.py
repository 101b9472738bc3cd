"""Command-line argument parsing for advanced-exclude.

This module defines the command-line interface for advanced-exclude,
handling argument parsing and validation.
"""

import argparse
from pathlib import Path

from humanfriendly import InvalidTimespan, parse_timespan

from advanced_exclude import __version__
from advanced_exclude.types import ExcludeMode


def timespan(value: str) -> float:
    """Parse a human-friendly duration such as ``2s`` or ``500ms`` into seconds.

    Example:
        >>> timespan("2s")
        2.0
        >>> timespan("1.5")
        1.5
    """
    try:
        return float(parse_timespan(value))
    except InvalidTimespan as e:
        raise argparse.ArgumentTypeError(str(e))


def exclude_mode(value: str) -> ExcludeMode:
    """Parse an exclude mode given as ``full`` or ``files-pane``."""
    try:
        return ExcludeMode.parse(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "vault",
        type=Path,
        help="Root directory of the file store. All paths are relative to this directory.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        metavar="FILE",
        help="JSON settings file using the host option names. Command-line options override it.",
    )
    parser.add_argument(
        "--exclude-mode",
        type=exclude_mode,
        metavar="MODE",
        help=(
            "How excluded paths are hidden: 'full' removes them from the tree, 'files-pane' keeps them "
            "in the tree and only hides them from the files pane (default: full)."
        ),
    )
    parser.add_argument(
        "--include-gitignore",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Append the patterns of .gitignore to those of .obsidianignore (default: enabled).",
    )
    parser.add_argument(
        "--ignore-excluded-files",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also exclude paths matching the exclude filters (default: disabled).",
    )
    parser.add_argument(
        "-x",
        "--exclude-filter",
        action="append",
        metavar="FILTER",
        help=(
            "Exclude filter: a path prefix, or a regular expression wrapped in slashes such as '/^temp/'. "
            "Matching is case-insensitive. Can be specified multiple times and replaces the filters "
            "from the settings file."
        ),
    )
    parser.add_argument(
        "--state-dir",
        type=Path,
        metavar="DIR",
        help="Directory persisting exclusion decisions between runs. Decisions are not persisted by default.",
    )
    parser.add_argument(
        "--min-duration",
        type=timespan,
        default=0.0,
        metavar="TIMESPAN",
        help="Minimum time the progress indicator stays visible, e.g. '2s' (default: 0).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Do not show the progress indicator.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity: -v for info, -vv for debug, -vvv for per-entry trace output.",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        help="Write logs to a rotating file instead of stderr.",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser.

    Returns:
        An ArgumentParser instance configured with the sync, check and watch commands.
    """
    description = """
    advanced-exclude: Gitignore-style exclusion for a file store.

    Reads exclusion rules from .obsidianignore (and, unless disabled, .gitignore) at the
    root of a directory and reconciles the directory's tree against them. Excluded paths
    are either dropped from the tree entirely or kept and only hidden from the files pane.

    Rules follow gitignore syntax and are matched case-insensitively:
    - '#' starts a comment, '!' re-includes a previously excluded path
    - a trailing '/' matches folders only, a leading '/' anchors to the root
    - '*', '**' and '?' are globs
    Entries whose name starts with '.' are never shown.
    """

    epilog = """
    Examples:
      # Reconcile a directory and print the resulting tree
      advanced-exclude sync ~/notes

      # Keep excluded entries in the tree, hide them only from the files pane
      advanced-exclude sync --exclude-mode files-pane ~/notes

      # Also exclude everything starting with "temp", case-insensitively
      advanced-exclude sync --ignore-excluded-files -x "/^temp/" ~/notes

      # Check individual paths; a trailing slash marks a folder
      advanced-exclude check ~/notes drafts/ archive/2020.md

      # Keep reconciling as files and rules change, persisting decisions
      advanced-exclude watch --state-dir ~/.cache/advanced-exclude ~/notes

      # Display version information and exit
      advanced-exclude -V
    """

    parser = argparse.ArgumentParser(
        prog="advanced-exclude",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"advanced-exclude {__version__}", help="Show the version and exit"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    sync_parser = subparsers.add_parser("sync", help="Reconcile the tree once and print it.")
    _add_common_arguments(sync_parser)
    sync_parser.add_argument(
        "-s",
        "--summary",
        metavar="DEST",
        choices=["stderr", "stdout"],
        help="Print summary report. Valid destinations: stderr, stdout",
    )
    sync_parser.add_argument(
        "-T",
        "--no-tree",
        action="store_true",
        help="Do not print the resulting tree.",
    )

    check_parser = subparsers.add_parser("check", help="Print whether paths are excluded.")
    _add_common_arguments(check_parser)
    check_parser.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="Paths relative to the vault root. A trailing '/' marks a folder.",
    )

    watch_parser = subparsers.add_parser("watch", help="Reconcile, then keep reconciling changes until interrupted.")
    _add_common_arguments(watch_parser)

    return parser


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments.

    Performs additional validation beyond what argparse can handle.

    Args:
        args: Parsed command-line arguments.

    Raises:
        ValueError: If any arguments fail validation.
    """
    if not args.vault.is_dir():
        raise ValueError(f"Vault is not a directory: {args.vault}")
    if args.config is not None and not args.config.is_file():
        raise ValueError(f"Settings file not found: {args.config}")
    if args.state_dir is not None and args.state_dir.exists() and not args.state_dir.is_dir():
        raise ValueError(f"--state-dir is not a directory: {args.state_dir}")
