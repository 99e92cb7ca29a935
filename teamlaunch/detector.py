"""Detect whether the program is running inside tmux."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping

_SOLUTIONS = (
    "💡 Solutions:\n"
    "  1. Detach tmux with Ctrl+B, D\n"
    "  2. Exit tmux with 'exit'\n"
    "  3. Open a new terminal window\n"
)


class TmuxDetectionError(Exception):
    """Raised or reported when execution inside tmux is detected."""

    def __init__(self, session_info: str = "", pane_info: str = "") -> None:
        super().__init__("execution inside tmux environment was detected")
        self.is_inside_tmux = True
        self.session_info = session_info
        self.pane_info = pane_info


def detect_tmux(environ: Mapping[str, str]) -> TmuxDetectionError | None:
    """The detection details when ``TMUX`` or ``TMUX_PANE`` is set, else ``None``."""
    tmux = environ.get("TMUX", "")
    pane = environ.get("TMUX_PANE", "")
    if tmux or pane:
        return TmuxDetectionError(session_info=tmux, pane_info=pane)
    return None


def is_inside_tmux() -> bool:
    """Whether the current environment is inside tmux."""
    return detect_tmux(os.environ) is not None


def print_error_message(debug_mode: bool, err: TmuxDetectionError | None) -> None:
    """Explain on stderr why the command cannot run inside tmux."""
    out = sys.stderr
    if not debug_mode:
        out.write("❌ Error: This command cannot be executed from inside tmux.\n\n")
        out.write("Please exit tmux or run from a different terminal.\n\n")
        out.write(_SOLUTIONS)
        return

    session_info = err.session_info if err is not None else ""
    pane_info = err.pane_info if err is not None else ""
    out.write("❌ Error: Execution inside tmux environment detected\n\n")
    out.write("[Debug Information]\n")
    out.write(f"  TMUX: {session_info}\n")
    out.write(f"  TMUX_PANE: {pane_info}\n")
    session_name = os.environ.get("TMUX_SESSION", "")
    if session_name:
        out.write(f"  Session name: {session_name}\n")
    out.write("\nThis command manages tmux sessions,\n")
    out.write("so it must be run from outside tmux environment.\n\n")
    out.write(_SOLUTIONS)


__all__ = ["TmuxDetectionError", "detect_tmux", "is_inside_tmux", "print_error_message"]