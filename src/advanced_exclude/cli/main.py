"""Command-line interface for advanced-exclude.

This module provides the command-line interface for advanced-exclude, which applies
gitignore-style exclusion rules to a directory and reconciles the directory's tree
against them. It handles argument parsing, settings, output and signal management
for graceful interruption handling.

Commands:
    sync: Reconcile once and print the resulting tree
    check: Print whether individual paths are excluded
    watch: Reconcile, then follow file system changes until interrupted

Signal Handling Notes:
    - SIGPIPE: Handled when output pipe is closed (e.g., when piping to `head`) on Unix-like systems
    - SIGINT: Cancels the reconciliation in flight at its next checkpoint, then exits

Exit Codes:
    0: Successful completion
    1: Runtime error during execution
    2: Command-line syntax error
    130: Interrupted by SIGINT (Ctrl+C)
    141: Broken pipe (SIGPIPE) on Unix-like systems

Example:
    # Reconcile a directory and print the resulting tree
    $ advanced-exclude sync /path/to/vault

    # Display version information
    $ advanced-exclude --version
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional

from advanced_exclude.cli.argparser import create_parser, validate_args
from advanced_exclude.cli.progress import StderrProgressIndicator
from advanced_exclude.cli.safe_writer import SafeWriter
from advanced_exclude.cli.signal_handler import setup_signal_handling, signal_handler
from advanced_exclude.coordinator import ProgressIndicator, ReconciliationRun
from advanced_exclude.engine import AdvancedExclude
from advanced_exclude.log import configure_logging
from advanced_exclude.settings import Settings
from advanced_exclude.storage.local_backend import LocalStorageBackend
from advanced_exclude.types import ExcludeMode
from advanced_exclude.watcher import VaultWatcher

# File name of the persisted decision store inside --state-dir
STATE_FILE_NAME = "decisions.json"

VERBOSITY_LEVELS = {1: "INFO", 2: "DEBUG"}


def log_level_for(verbosity: int) -> Optional[str]:
    """Map the number of -v flags to a log level name; None defers to the environment."""
    if verbosity <= 0:
        return None
    return VERBOSITY_LEVELS.get(verbosity, "TRACE")


def build_settings(args: argparse.Namespace) -> Settings:
    """Load the settings file, if any, and apply command-line overrides.

    Raises:
        InvalidSettingsError: If the settings file cannot be interpreted.
    """
    settings = Settings.load(args.config) if args.config is not None else Settings()
    if args.exclude_mode is not None:
        settings.exclude_mode = args.exclude_mode
    if args.include_gitignore is not None:
        settings.should_include_git_ignore_patterns = args.include_gitignore
    if args.ignore_excluded_files is not None:
        settings.should_ignore_excluded_files = args.ignore_excluded_files
    if args.exclude_filter:
        settings.exclude_filters = list(args.exclude_filter)
    return settings


def create_engine(args: argparse.Namespace, settings: Settings) -> AdvancedExclude:
    """Create an engine over the vault directory named on the command line."""
    state_path: Optional[Path] = None
    if args.state_dir is not None:
        state_path = args.state_dir / STATE_FILE_NAME
    indicator: Optional[ProgressIndicator] = None if args.quiet else StderrProgressIndicator()
    return AdvancedExclude(
        LocalStorageBackend(args.vault),
        settings=settings,
        state_path=state_path,
        indicator=indicator,
        min_visible_duration=args.min_duration,
    )


def format_summary(engine: AdvancedExclude, run: ReconciliationRun) -> str:
    """Format a summary of a finished run into a human-readable string."""
    result = [
        f"Folders: {engine.snapshot.get_folder_count()}",
        f"Files: {engine.snapshot.get_file_count()}",
        f"Excluded: {engine.cache.excluded_count}",
        f"Entries processed: {run.progress.completed}",
    ]
    if engine.settings.exclude_mode == ExcludeMode.FILES_PANE:
        shown = sum(1 for path in engine.snapshot.paths() if engine.presentation.contains(path))
        result.insert(2, f"Shown in files pane: {shown}")
    return "\n".join(result)


def tree_lines(engine: AdvancedExclude) -> List[str]:
    """Render the tree the user would see: the files pane in FILES_PANE mode."""
    is_visible: Optional[Callable[[str], bool]] = None
    if engine.settings.exclude_mode == ExcludeMode.FILES_PANE:
        is_visible = engine.presentation.contains
    return list(engine.snapshot.stream_tree_representation(is_visible))


def _on_interrupt(loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> Callable[[], None]:
    def interrupt() -> None:
        loop.call_soon_threadsafe(callback)

    signal_handler.add_interrupt_callback(interrupt)
    return interrupt


async def run_sync(args: argparse.Namespace, settings: Settings, writer: SafeWriter) -> None:
    async with create_engine(args, settings) as engine:
        interrupt = _on_interrupt(asyncio.get_running_loop(), engine.coordinator.cancel)
        try:
            run = await engine.update_file_tree()
        finally:
            signal_handler.remove_interrupt_callback(interrupt)
        if not run.completed:
            return

        if not args.no_tree:
            writer.write_lines(tree_lines(engine))
        if args.summary == "stdout":
            writer.write("\n" + format_summary(engine, run) + "\n")
        elif args.summary == "stderr":
            print(format_summary(engine, run), file=sys.stderr)


async def run_check(args: argparse.Namespace, settings: Settings, writer: SafeWriter) -> None:
    async with create_engine(args, settings) as engine:
        for path in args.paths:
            is_ignored = await engine.is_ignored(path)
            writer.write(f"{'ignored' if is_ignored else 'included'}\t{path}\n")


async def run_watch(args: argparse.Namespace, settings: Settings, writer: SafeWriter) -> None:
    stop = asyncio.Event()
    async with create_engine(args, settings) as engine:

        def stop_watching() -> None:
            engine.coordinator.cancel()
            stop.set()

        interrupt = _on_interrupt(asyncio.get_running_loop(), stop_watching)
        watcher = VaultWatcher(engine, args.vault)
        try:
            watcher.start()
            await engine.update_file_tree()
            await stop.wait()
        finally:
            watcher.stop()
            signal_handler.remove_interrupt_callback(interrupt)


COMMANDS = {
    "sync": run_sync,
    "check": run_check,
    "watch": run_watch,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the advanced-exclude command-line interface.

    Exit codes:
        0: Successful completion
        1: Runtime error during execution
        2: Command-line syntax error
        130: Interrupted by SIGINT (Ctrl+C)
        141: Broken pipe (SIGPIPE) on Unix-like systems
    """
    setup_signal_handling()

    try:
        parser = create_parser()
        # argparse calls sys.exit(2) for argument errors or sys.exit(0) for --version
        args = parser.parse_args(argv)

        # Perform additional validation beyond what argparse supports directly
        validate_args(args)

        configure_logging(log_level_for(args.verbose), args.log_file)
        settings = build_settings(args)

        try:
            asyncio.run(COMMANDS[args.command](args, settings, SafeWriter()))
        except BrokenPipeError:
            pass

    except Exception as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        sys.exit(1)

    # Handle exit codes based on received signals
    if signal_handler.sigpipe_received.is_set():
        sys.exit(141)
    elif signal_handler.sigint_received.is_set():
        sys.exit(130)


if __name__ == "__main__":
    main()
