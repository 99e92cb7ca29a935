"""Console messages for progress, results and configuration."""

from __future__ import annotations

import os
import platform
import stat
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .paths import expand_path_safe

VERSION = "1.0.0"


@dataclass
class _DisplayFlags:
    verbose: bool = False
    silent: bool = False


_flags = _DisplayFlags()


def set_verbose_logging(verbose: bool) -> None:
    """Enable or disable verbose output; enabling it turns silent mode off."""
    _flags.verbose = verbose
    if verbose:
        _flags.silent = False


def set_silent_mode(silent: bool) -> None:
    """Enable or disable silent mode; enabling it turns verbose output off."""
    _flags.silent = silent
    if silent:
        _flags.verbose = False


def is_verbose_logging() -> bool:
    return _flags.verbose


def is_silent_mode() -> bool:
    return _flags.silent


def _emit(icon: str, operation: str, message: object) -> None:
    if not _flags.silent:
        print(f"{icon} {operation}: {message}")


def display_progress(operation: str, message: str) -> None:
    _emit("🔄", operation, message)


def display_success(operation: str, message: str) -> None:
    _emit("✅", operation, message)


def display_error(operation: str, err: object) -> None:
    """Print an error; shown even in silent mode."""
    print(f"❌ {operation}: {err}")


def display_info(operation: str, message: str) -> None:
    _emit("ℹ️", operation, message)


def display_warning(operation: str, message: str) -> None:
    _emit("⚠️", operation, message)


def display_startup_banner() -> None:
    if _flags.silent:
        return
    print("🚀 AI Teams System - Claude Code Agents")
    print("=====================================")
    print(f"Version: {VERSION}")
    print(f"Runtime: Python {platform.python_version()}")
    print(f"Platform: {platform.system().lower()}/{platform.machine()}")
    print(f"Start Time: {datetime.now():%Y-%m-%d %H:%M:%S}")
    print("=====================================")
    print()


def display_launcher_start() -> None:
    if _flags.silent:
        return
    print(f"[{datetime.now():%H:%M:%S}] 🚀 System launcher started")
    print("=====================================")


def display_launcher_progress() -> None:
    if _flags.silent:
        return
    print(f"[{datetime.now():%H:%M:%S}] 🔄 System initializing...")


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


def display_config(team_config: object, session_name: str) -> None:
    """Print the session name and, for a mapping, each of its entries."""
    if _flags.silent:
        return
    print("📋 Configuration Information")
    print("===========")
    print(f"Session Name: {session_name}")
    print()
    if isinstance(team_config, dict):
        for key, value in team_config.items():
            print(f"  {key}: {_format_value(value)}")
    print()


def display_validation_results(team_config: object) -> None:
    if _flags.silent:
        return
    print("🔍 Validation Results")
    print("===========")
    print("✅ Claude CLI: Available")
    print("✅ Instructions: Ready")
    print("✅ Working Directory: Accessible")
    print()


def format_path(path: str) -> str:
    """Shorten a path for display by replacing the home prefix with ``~``."""
    if not path:
        return "<empty>"
    try:
        home = str(Path.home())
    except RuntimeError:
        return path
    if path.startswith(home):
        return "~" + path[len(home):]
    return path


def validate_path(path: str) -> bool:
    """Whether the (tilde-expanded) path exists."""
    if not path:
        return False
    return os.path.exists(expand_path_safe(path))


def is_executable(path: str) -> bool:
    """Whether any execute bit is set on the file."""
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return bool(mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))


__all__ = [
    "display_config",
    "display_error",
    "display_info",
    "display_launcher_progress",
    "display_launcher_start",
    "display_progress",
    "display_startup_banner",
    "display_success",
    "display_validation_results",
    "display_warning",
    "format_path",
    "is_executable",
    "is_silent_mode",
    "is_verbose_logging",
    "set_silent_mode",
    "set_verbose_logging",
    "validate_path",
]

if sys.version_info < (3, 10):  # pragma: no cover
    raise RuntimeError("Python 3.10 or newer is required")