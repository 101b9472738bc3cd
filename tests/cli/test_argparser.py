"""Unit tests for the argument parser module in the advanced-exclude CLI."""

import argparse
from pathlib import Path

import pytest

from advanced_exclude.cli.argparser import create_parser, exclude_mode, timespan, validate_args
from advanced_exclude.types import ExcludeMode


@pytest.fixture
def parser():
    """Create the command-line parser."""
    return create_parser()


@pytest.fixture
def vault(tmp_path):
    """Create an empty vault directory."""
    path = tmp_path / "vault"
    path.mkdir()
    return path


def test_timespan():
    """Test parsing human-friendly durations."""
    assert timespan("2s") == 2.0
    assert timespan("500ms") == 0.5
    assert timespan("1.5") == 1.5

    with pytest.raises(argparse.ArgumentTypeError):
        timespan("soon")


def test_exclude_mode():
    """Test parsing exclude modes in their CLI spellings."""
    assert exclude_mode("full") == ExcludeMode.FULL
    assert exclude_mode("files-pane") == ExcludeMode.FILES_PANE
    assert exclude_mode("FilesPane") == ExcludeMode.FILES_PANE

    with pytest.raises(argparse.ArgumentTypeError):
        exclude_mode("partial")


def test_sync_defaults(parser):
    """Test that sync options default to deferring to the settings file."""
    args = parser.parse_args(["sync", "notes"])

    assert args.command == "sync"
    assert args.vault == Path("notes")
    assert args.config is None
    assert args.exclude_mode is None
    assert args.include_gitignore is None
    assert args.ignore_excluded_files is None
    assert args.exclude_filter is None
    assert args.state_dir is None
    assert args.min_duration == 0.0
    assert args.verbose == 0
    assert not args.quiet
    assert args.summary is None
    assert not args.no_tree


def test_sync_options(parser):
    """Test parsing every sync option."""
    args = parser.parse_args(
        [
            "sync",
            "--exclude-mode",
            "files-pane",
            "--no-include-gitignore",
            "--ignore-excluded-files",
            "-x",
            "Templates/",
            "-x",
            "/^temp/",
            "--min-duration",
            "2s",
            "-vv",
            "-s",
            "stdout",
            "-T",
            "notes",
        ]
    )

    assert args.exclude_mode == ExcludeMode.FILES_PANE
    assert args.include_gitignore is False
    assert args.ignore_excluded_files is True
    assert args.exclude_filter == ["Templates/", "/^temp/"]
    assert args.min_duration == 2.0
    assert args.verbose == 2
    assert args.summary == "stdout"
    assert args.no_tree


def test_check_requires_paths(parser, capsys):
    """Test that check needs at least one path."""
    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["check", "notes"])
    assert exc_info.value.code == 2

    args = parser.parse_args(["check", "notes", "drafts/", "a.md"])
    assert args.paths == ["drafts/", "a.md"]


def test_command_is_required(parser, capsys):
    """Test that running without a command is a syntax error."""
    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args([])
    assert exc_info.value.code == 2


def test_invalid_summary_destination(parser, capsys):
    """Test rejecting an unknown summary destination."""
    with pytest.raises(SystemExit):
        parser.parse_args(["sync", "-s", "file", "notes"])
    assert "invalid choice" in capsys.readouterr().err


def test_version(parser, capsys):
    """Test the version flag."""
    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["-V"])
    assert exc_info.value.code == 0
    assert "advanced-exclude" in capsys.readouterr().out


def test_validate_args_accepts_valid_arguments(parser, vault, tmp_path):
    """Test validation of a valid set of arguments."""
    config = tmp_path / "settings.json"
    config.write_text("{}")
    args = parser.parse_args(["sync", "-c", str(config), "--state-dir", str(tmp_path / "state"), str(vault)])

    validate_args(args)


def test_validate_args_missing_vault(parser, tmp_path):
    """Test validation with a vault that does not exist."""
    args = parser.parse_args(["sync", str(tmp_path / "missing")])

    with pytest.raises(ValueError, match="Vault is not a directory"):
        validate_args(args)


def test_validate_args_missing_config(parser, vault, tmp_path):
    """Test validation with a settings file that does not exist."""
    args = parser.parse_args(["sync", "-c", str(tmp_path / "missing.json"), str(vault)])

    with pytest.raises(ValueError, match="Settings file not found"):
        validate_args(args)


def test_validate_args_state_dir_is_file(parser, vault, tmp_path):
    """Test validation with a state directory that is a regular file."""
    state = tmp_path / "state"
    state.write_text("")
    args = parser.parse_args(["sync", "--state-dir", str(state), str(vault)])

    with pytest.raises(ValueError, match="--state-dir is not a directory"):
        validate_args(args)
