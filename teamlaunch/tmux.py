"""Thin, testable wrapper around the tmux command line."""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Callable, Sequence
from typing import Any

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str], bool], "subprocess.CompletedProcess[str]"]

_SPLIT_DELAY = 0.05
_RESIZE_DELAY = 0.1
_POLL_INTERVAL = 0.1
_DEFAULT_WINDOW_WIDTH = 120
_DEFAULT_WINDOW_HEIGHT = 40
_LEFT_SIDE_PERCENTAGE = 50


class TmuxError(Exception):
    """A tmux command failed or tmux is in an unexpected state."""


def _default_runner(args: Sequence[str], capture: bool) -> subprocess.CompletedProcess[str]:
    """Run a command, capturing text output or inheriting the terminal."""
    try:
        if capture:
            return subprocess.run(list(args), capture_output=True, text=True, check=False)
        return subprocess.run(list(args), check=False)
    except OSError as exc:
        return subprocess.CompletedProcess(list(args), 127, "", str(exc))


def agent_names(dev_count: int) -> list[str]:
    """Agent names in pane order: po, manager, dev1..devN."""
    return ["po", "manager", *(f"dev{i}" for i in range(1, dev_count + 1))]


def pane_agent_map(dev_count: int) -> dict[str, str]:
    """Map of pane number (as text, starting at 1) to agent name."""
    return {str(index): agent for index, agent in enumerate(agent_names(dev_count), start=1)}


def _pane_titles(dev_count: int) -> dict[str, str]:
    titles = {"1": "PO", "2": "Manager"}
    titles.update({str(i + 2): f"Dev{i}" for i in range(1, dev_count + 1)})
    return titles


def _describe(result: subprocess.CompletedProcess[str]) -> str:
    detail = (result.stderr or "").strip() if isinstance(result.stderr, str) else ""
    return detail or f"exit status {result.returncode}"


class TmuxManager:
    """Session, window and pane operations carried out through tmux."""

    def __init__(
        self,
        session_name: str = "",
        runner: Runner | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session_name = session_name
        self.layout = "integrated"
        self._runner: Runner = runner or _default_runner
        self._sleep = sleep

    def _run(self, *args: str, capture: bool = True) -> subprocess.CompletedProcess[str]:
        return self._runner(["tmux", *args], capture)

    def _check(self, message: str, *args: str) -> subprocess.CompletedProcess[str]:
        result = self._run(*args)
        if result.returncode != 0:
            raise TmuxError(f"{message}: {_describe(result)}")
        return result

    @staticmethod
    def _target(session_name: str, pane: str) -> str:
        return f"{session_name}:1.{pane}"

    def session_exists(self, session_name: str) -> bool:
        return self._run("has-session", "-t", session_name).returncode == 0

    def list_sessions(self) -> list[str]:
        result = self._check("failed to list sessions", "list-sessions", "-F", "#{session_name}")
        return [line.strip() for line in result.stdout.strip().split("\n") if line.strip()]

    def create_session(self, session_name: str) -> None:
        if self.session_exists(session_name):
            raise TmuxError(f"session {session_name} already exists")
        self._check(f"failed to create session {session_name}", "new-session", "-d", "-s", session_name)

    def kill_session(self, session_name: str) -> None:
        """Kill the session; a missing session is not an error."""
        if not self.session_exists(session_name):
            return
        self._check(f"failed to kill session {session_name}", "kill-session", "-t", session_name)

    def attach_session(self, session_name: str) -> None:
        if not self.session_exists(session_name):
            raise TmuxError(f"session {session_name} does not exist")
        result = self._run("attach-session", "-t", session_name, capture=False)
        if result.returncode != 0:
            if self.session_exists(session_name):
                logger.warning("Session exists but attach failed: %s", session_name)
                raise TmuxError(
                    f"session {session_name} exists but attach failed: exit status {result.returncode}"
                )
            raise TmuxError(
                f"failed to attach to session {session_name}: exit status {result.returncode}"
            )

    def create_integrated_layout(self, session_name: str, dev_count: int) -> None:
        """Build one window: PO and Manager on the left, developers stacked on the right."""
        if not self.session_exists(session_name):
            try:
                self.create_session(session_name)
            except TmuxError as exc:
                raise TmuxError(f"failed to create session: {exc}") from exc

        try:
            self.rename_window(session_name, session_name)
        except TmuxError as exc:
            raise TmuxError(f"failed to rename window: {exc}") from exc

        total_panes = 2 + dev_count

        try:
            self.split_window(session_name, "-h")
        except TmuxError as exc:
            raise TmuxError(f"failed to split window horizontally: {exc}") from exc
        self._sleep(_SPLIT_DELAY)

        try:
            self.split_window(self._target(session_name, "1"), "-v")
        except TmuxError as exc:
            raise TmuxError(f"failed to split left pane vertically: {exc}") from exc
        self._sleep(_SPLIT_DELAY)

        for dev in range(2, dev_count + 1):
            try:
                self.split_window(self._target(session_name, "3"), "-v")
            except TmuxError as exc:
                raise TmuxError(f"failed to split dev pane {dev}: {exc}") from exc
            self._sleep(_SPLIT_DELAY)

        try:
            self.adjust_pane_sizes(session_name, dev_count)
        except TmuxError as exc:
            raise TmuxError(f"failed to adjust pane sizes: {exc}") from exc

        try:
            self.set_pane_titles(session_name, dev_count)
        except TmuxError as exc:
            raise TmuxError(f"failed to set pane titles: {exc}") from exc

        logger.info(
            "Dynamic integrated layout created successfully: session=%s dev_count=%d total_panes=%d",
            session_name, dev_count, total_panes,
        )

    def create_individual_layout(self, session_name: str, dev_count: int) -> None:
        """Create one session per agent, named ``<session>-<agent>``."""
        for agent in agent_names(dev_count):
            agent_session = f"{session_name}-{agent}"
            try:
                self.create_session(agent_session)
            except TmuxError as exc:
                raise TmuxError(f"failed to create session for {agent}: {exc}") from exc
            try:
                self.rename_window(agent_session, agent_session)
            except TmuxError as exc:
                raise TmuxError(f"failed to rename window for {agent}: {exc}") from exc
        logger.info("Individual layout created successfully: session=%s", session_name)

    def split_window(self, target: str, direction: str) -> None:
        result = self._run("split-window", direction, "-t", target)
        if result.returncode != 0:
            output = (result.stdout or "") + (result.stderr or "")
            raise TmuxError(
                f"tmux command failed: split-window {direction} -t {target} (output: {output})"
            )

    def rename_window(self, session_name: str, window_name: str) -> None:
        self._check("failed to rename window", "rename-window", "-t", session_name, window_name)

    def _resize(self, target: str, axis: str, size: int) -> bool:
        self._sleep(_RESIZE_DELAY)
        return self._run("resize-pane", "-t", target, axis, str(size)).returncode == 0

    def adjust_pane_sizes(self, session_name: str, dev_count: int) -> None:
        """Split the window in half and give every developer pane an equal height."""
        total_panes = 2 + dev_count
        if dev_count <= 0:
            logger.warning(
                "Skipping pane size adjustment as dev count is 0 or less: session=%s", session_name
            )
            raise TmuxError(f"dev_count must be greater than 0, got: {dev_count}")

        logger.info(
            "Starting equal spacing pane division: session=%s dev_count=%d total_panes=%d",
            session_name, dev_count, total_panes,
        )

        try:
            width, height = self.window_size(session_name)
        except TmuxError as exc:
            logger.warning("Failed to get window size, using default values: %s", exc)
            width, height = _DEFAULT_WINDOW_WIDTH, _DEFAULT_WINDOW_HEIGHT

        if height <= 0:
            logger.warning("Invalid window height %d, using default value", height)
            height = _DEFAULT_WINDOW_HEIGHT

        left_width = width * _LEFT_SIDE_PERCENTAGE // 100
        first_pane = self._target(session_name, "1")

        if not self._resize(first_pane, "-x", left_width):
            logger.warning("Failed to adjust left pane to width %d", left_width)

        po_height = height // 2
        if not self._resize(first_pane, "-y", po_height):
            logger.warning("Failed to adjust PO/Manager split to height %d", po_height)

        dev_pane_height = height // dev_count
        for dev in range(1, dev_count + 1):
            pane = str(dev + 2)
            if self._resize(self._target(session_name, pane), "-y", dev_pane_height):
                logger.debug("Resized pane %s to height %d", pane, dev_pane_height)
            else:
                logger.warning("Failed to resize pane %s to height %d", pane, dev_pane_height)

        if not self._resize(first_pane, "-x", left_width):
            logger.warning("Failed to perform final left-right width adjustment")

        logger.info(
            "Equal spacing pane division completed: session=%s dev_count=%d", session_name, dev_count
        )

    def set_pane_titles(self, session_name: str, dev_count: int) -> None:
        """Show pane titles on the borders and name each pane after its agent."""
        self._check("failed to set pane border status",
                    "set-option", "-t", session_name, "pane-border-status", "top")
        self._check("failed to set pane border format",
                    "set-option", "-t", session_name, "pane-border-format", "#T")
        self._check("failed to disable automatic rename",
                    "set-window-option", "-t", session_name, "automatic-rename", "off")
        self._check("failed to disable allow rename",
                    "set-window-option", "-t", session_name, "allow-rename", "off")

        for pane, title in _pane_titles(dev_count).items():
            target = self._target(session_name, pane)
            if self._run("select-pane", "-t", target, "-T", title).returncode != 0:
                logger.warning("Failed to set pane title %s on %s", title, target)

    def get_pane_count(self, session_name: str) -> int:
        result = self._run("list-panes", "-t", session_name)
        if result.returncode != 0:
            logger.debug("Failed to get pane count for %s", session_name)
            raise TmuxError(f"failed to list panes: {_describe(result)}")
        count = len(result.stdout.strip().split("\n"))
        logger.debug("GetPaneCount result: session=%s pane_count=%d", session_name, count)
        return count

    def get_pane_list(self, session_name: str) -> list[str]:
        result = self._check("failed to list panes",
                             "list-panes", "-t", session_name, "-F", "#{pane_index}:#{pane_title}")
        return [line.strip() for line in result.stdout.strip().split("\n") if line.strip()]

    def send_keys_to_pane(self, session_name: str, pane: str, keys: str) -> None:
        target = self._target(session_name, pane)
        self._check(f"failed to send keys to pane {target}", "send-keys", "-t", target, keys)

    def send_keys_with_enter(self, session_name: str, pane: str, keys: str) -> None:
        target = self._target(session_name, pane)
        self._check(f"failed to send keys with enter to pane {target}",
                    "send-keys", "-t", target, keys, "C-m")

    def wait_for_pane_ready(self, session_name: str, pane: str, timeout: float) -> None:
        """Poll until the pane shows up in the session's pane list (timeout in seconds)."""
        target = self._target(session_name, pane)
        start = time.monotonic()
        while time.monotonic() - start < timeout:
            result = self._run("list-panes", "-t", session_name)
            if result.returncode == 0 and pane in result.stdout:
                return
            self._sleep(_POLL_INTERVAL)
        raise TmuxError(f"timeout waiting for pane {target} to be ready")

    def get_session_info(self, session_name: str, expected_pane_count: int) -> dict[str, Any]:
        if not self.session_exists(session_name):
            raise TmuxError(f"session {session_name} does not exist")
        try:
            pane_count = self.get_pane_count(session_name)
        except TmuxError as exc:
            raise TmuxError(f"failed to get pane count: {exc}") from exc
        try:
            panes = self.get_pane_list(session_name)
        except TmuxError as exc:
            raise TmuxError(f"failed to get pane list: {exc}") from exc
        return {
            "name": session_name,
            "exists": True,
            "pane_count": pane_count,
            "panes": panes,
            "type": "integrated" if pane_count == expected_pane_count else "general",
        }

    def _window_dimension(self, session_name: str, name: str) -> int:
        result = self._run("display-message", "-t", session_name, "-p", f"#{{window_{name}}}")
        if result.returncode != 0:
            raise TmuxError(f"failed to get window {name}: {_describe(result)}")
        try:
            return int(result.stdout.strip())
        except ValueError as exc:
            raise TmuxError(f"failed to parse window {name}: {result.stdout.strip()!r}") from exc

    def window_size(self, session_name: str) -> tuple[int, int]:
        """The window's (width, height) in cells."""
        width = self._window_dimension(session_name, "width")
        height = self._window_dimension(session_name, "height")
        logger.debug("Window size retrieved: session=%s width=%d height=%d", session_name, width, height)
        return width, height


__all__ = ["TmuxError", "TmuxManager", "agent_names", "pane_agent_map"]