"""AI team sessions: discovery, deletion and starting Claude CLI in panes."""

from __future__ import annotations

import logging
import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass

from .paths import _join
from .tmux import Runner, TmuxError, TmuxManager, agent_names, pane_agent_map

logger = logging.getLogger(__name__)

_AGENT_SESSION = re.compile(r"-(po|manager|dev[0-9]+)$")

_DEV_AGENTS = frozenset({"dev1", "dev2", "dev3", "dev4"})

_DEFAULT_SESSION = "ai-teams"

_PANE_READY_TIMEOUT = 5.0
_CLAUDE_READY_TIMEOUT = 10.0
_CLAUDE_POLL_INTERVAL = 0.5
_SEND_ATTEMPTS = 3
_RETRY_DELAY = 1.0
_CAT_SETTLE_DELAY = 2.0
_ENTER_DELAY = 0.5
_PANE_START_INTERVAL = 5.0
_STARTUP_WAIT = 2.0
_INSTRUCTION_INTERVAL = 2.0


@dataclass
class InstructionConfig:
    """Role-specific instruction file names; empty means the default name."""

    po_instruction_file: str = ""
    manager_instruction_file: str = ""
    dev_instruction_file: str = ""


def _role_of(agent: str) -> tuple[str, str]:
    if agent == "po":
        return "po_instruction_file", "po.md"
    if agent == "manager":
        return "manager_instruction_file", "manager.md"
    if agent in _DEV_AGENTS:
        return "dev_instruction_file", "developer.md"
    logger.error("Unknown agent type: %s", agent)
    raise ValueError(f"unknown agent type: {agent}")


def instruction_file_for(agent: str, instructions_dir: str, config: object | None) -> str:
    """Path of the instruction file for an agent.

    ``config`` is any object with the ``InstructionConfig`` attributes, or
    ``None`` to use the default file names. Raises ``ValueError`` for an
    unknown agent.
    """
    attribute, default = _role_of(agent)
    configured = getattr(config, attribute, "") if config is not None else ""
    return _join(instructions_dir, configured or default)


def _looks_like_ai_session(name: str, *keywords: str) -> bool:
    return len(name) <= 3 or any(keyword in name for keyword in keywords)


class AITeamManager(TmuxManager):
    """tmux operations for a team of PO, Manager and developer agents."""

    def __init__(
        self,
        session_name: str = "",
        runner: Runner | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(session_name, runner=runner, sleep=sleep)
        self._clock = clock

    def _pane_count_or_none(self, session: str) -> int | None:
        try:
            return self.get_pane_count(session)
        except TmuxError:
            return None

    def get_ai_team_sessions(self, expected_pane_count: int) -> dict[str, list[str]]:
        """Sort the running sessions into integrated, individual and other."""
        try:
            sessions = self.list_sessions()
        except TmuxError as exc:
            raise TmuxError(f"failed to list sessions: {exc}") from exc

        result: dict[str, list[str]] = {"integrated": [], "individual": [], "other": []}
        for session in sessions:
            pane_count = self._pane_count_or_none(session)
            logger.debug(
                "Session analysis: session=%s pane_count=%s expected_pane_count=%d",
                session, pane_count, expected_pane_count,
            )
            if pane_count is not None and pane_count == expected_pane_count:
                result["integrated"].append(session)
            elif _AGENT_SESSION.search(session):
                base_name = _AGENT_SESSION.sub("", session)
                if base_name not in result["individual"]:
                    result["individual"].append(base_name)
            elif (
                pane_count is not None
                and pane_count >= 1
                and _looks_like_ai_session(session, "ai", "claude")
            ):
                result["integrated"].append(session)
            else:
                result["other"].append(session)
        return result

    def find_default_ai_session(self, expected_pane_count: int) -> str:
        """The most likely AI team session, or ``"ai-teams"`` when none is found."""
        try:
            ai_sessions = self.get_ai_team_sessions(expected_pane_count)
        except TmuxError as exc:
            raise TmuxError(f"failed to get AI team sessions: {exc}") from exc

        for kind in ("integrated", "individual"):
            if ai_sessions[kind]:
                return ai_sessions[kind][0]

        for session in self.list_sessions():
            pane_count = self._pane_count_or_none(session)
            if pane_count is None:
                continue
            if pane_count >= 1 and _looks_like_ai_session(session, "ai", "claude", "agent"):
                return session

        return _DEFAULT_SESSION

    def detect_active_ai_session(self, expected_pane_count: int) -> tuple[str, str]:
        """The active AI session and its kind (``integrated`` or ``individual``)."""
        try:
            ai_sessions = self.get_ai_team_sessions(expected_pane_count)
        except TmuxError as exc:
            raise TmuxError(f"failed to get AI team sessions: {exc}") from exc

        for kind in ("integrated", "individual"):
            if ai_sessions[kind]:
                return ai_sessions[kind][0], kind
        raise TmuxError("no active AI sessions found")

    def delete_ai_team_sessions(self, session_name: str, dev_count: int) -> int:
        """Kill the team's integrated and individual sessions; return how many went."""
        logger.info("Deleting AI team sessions: %s", session_name)
        deleted = 0

        expected_pane_count = 2 + dev_count
        if self.session_exists(session_name):
            pane_count = self._pane_count_or_none(session_name)
            kind = "integrated" if pane_count == expected_pane_count else "general"
            logger.info("Deleting %s session: %s (pane_count=%s)", kind, session_name, pane_count)
            try:
                self.kill_session(session_name)
            except TmuxError as exc:
                raise TmuxError(f"failed to delete {kind} session: {exc}") from exc
            deleted += 1

        for agent in agent_names(dev_count):
            agent_session = f"{session_name}-{agent}"
            if self.session_exists(agent_session):
                logger.info("Deleting individual session: %s", agent_session)
                try:
                    self.kill_session(agent_session)
                except TmuxError as exc:
                    raise TmuxError(
                        f"failed to delete individual session {agent_session}: {exc}"
                    ) from exc
                deleted += 1

        if deleted == 0:
            raise TmuxError(f"no sessions found for {session_name}")

        logger.info("AI team sessions deleted: session=%s deleted_count=%d", session_name, deleted)
        return deleted

    def wait_for_claude_ready(self, session_name: str, pane: str, timeout: float) -> None:
        """Poll the pane's contents until Claude CLI looks ready (timeout in seconds)."""
        target = self._target(session_name, pane)
        start = self._clock()
        logger.info("Starting Claude CLI readiness wait: target=%s timeout=%s", target, timeout)

        while self._clock() - start < timeout:
            result = self._run("capture-pane", "-t", target, "-p")
            if result.returncode == 0:
                content = result.stdout or ""
                if (
                    "claude" in content
                    or ">" in content
                    or "$" in content
                    or len(content.strip()) > 10
                ):
                    logger.info("Claude CLI readiness detected: %s", target)
                    return
            self._sleep(_CLAUDE_POLL_INTERVAL)

        logger.warning("Claude CLI readiness wait timeout: %s", target)
        raise TmuxError(f"timeout waiting for Claude CLI to be ready in pane {target}")

    def send_instruction_to_pane(
        self,
        session_name: str,
        pane: str,
        agent: str,
        instructions_dir: str,
        config: object | None,
    ) -> bool:
        """Show the agent's instruction file in its pane.

        Returns ``False`` when the file is missing or empty and nothing was
        sent. Raises ``ValueError`` for an unknown agent and ``TmuxError``
        when the file cannot be examined or sending keeps failing.
        """
        logger.info("Starting instruction sending: session=%s pane=%s agent=%s",
                    session_name, pane, agent)
        instruction_file = instruction_file_for(agent, instructions_dir, config)
        logger.info("Instruction file path determined: %s", instruction_file)

        try:
            size = os.stat(instruction_file).st_size
        except FileNotFoundError:
            logger.warning("Instruction file does not exist (skipping): %s", instruction_file)
            return False
        except OSError as exc:
            raise TmuxError(f"failed to stat instruction file: {exc}") from exc
        if size == 0:
            logger.warning("Instruction file is empty (skipping): %s", instruction_file)
            return False

        try:
            self.wait_for_claude_ready(session_name, pane, _CLAUDE_READY_TIMEOUT)
        except TmuxError as exc:
            logger.warning("Claude CLI readiness wait timeout (continuing): %s", exc)

        cat_command = f'cat "{instruction_file}"'
        for attempt in range(1, _SEND_ATTEMPTS + 1):
            logger.info("Sending cat command (attempt %d): %s", attempt, cat_command)
            try:
                self.send_keys_with_enter(session_name, pane, cat_command)
            except TmuxError as exc:
                logger.warning("Failed to send cat command (attempt %d): %s", attempt, exc)
                if attempt == _SEND_ATTEMPTS:
                    raise TmuxError(
                        f"failed to send instruction file after {_SEND_ATTEMPTS} attempts: {exc}"
                    ) from exc
                self._sleep(_RETRY_DELAY)
                continue
            self._sleep(_CAT_SETTLE_DELAY)
            break

        self._sleep(_RETRY_DELAY)
        for attempt in range(1, 4):
            try:
                self.send_keys_to_pane(session_name, pane, "C-m")
            except TmuxError as exc:
                logger.warning("Error sending Enter (attempt %d): %s", attempt, exc)
            self._sleep(_ENTER_DELAY)

        logger.info("Instruction sending completed: session=%s pane=%s agent=%s",
                    session_name, pane, agent)
        return True

    def _start_claude_in_pane(self, session_name: str, pane: str, claude_cli_path: str) -> None:
        try:
            self.wait_for_pane_ready(session_name, pane, _PANE_READY_TIMEOUT)
        except TmuxError as exc:
            raise TmuxError(f"pane {pane} not ready: {exc}") from exc
        try:
            self.send_keys_with_enter(
                session_name, pane, f"{claude_cli_path} --dangerously-skip-permissions"
            )
        except TmuxError as exc:
            raise TmuxError(f"failed to send Claude CLI command to pane: {exc}") from exc

    def _setup(
        self,
        session_name: str,
        claude_cli_path: str,
        instructions_dir: str,
        config: object | None,
        dev_count: int,
    ) -> None:
        panes = pane_agent_map(dev_count)

        for pane, agent in panes.items():
            try:
                self._start_claude_in_pane(session_name, pane, claude_cli_path)
            except TmuxError as exc:
                logger.error("Failed to start Claude CLI in pane %s (%s): %s", pane, agent, exc)
                raise TmuxError(
                    f"failed to start Claude CLI in pane {pane} ({agent}): {exc}"
                ) from exc
            self._sleep(_PANE_START_INTERVAL)

        self._sleep(_STARTUP_WAIT)

        for pane, agent in panes.items():
            try:
                self.send_instruction_to_pane(session_name, pane, agent, instructions_dir, config)
            except (TmuxError, ValueError) as exc:
                logger.warning("Failed to send instruction to pane %s (%s, non-critical): %s",
                               pane, agent, exc)
            self._sleep(_INSTRUCTION_INTERVAL)

    def setup_claude_in_panes(
        self, session_name: str, claude_cli_path: str, instructions_dir: str, dev_count: int
    ) -> None:
        """Start Claude CLI in every pane, then send each the default instruction file."""
        self._setup(session_name, claude_cli_path, instructions_dir, None, dev_count)

    def setup_claude_in_panes_with_config(
        self,
        session_name: str,
        claude_cli_path: str,
        instructions_dir: str,
        config: object | None,
        dev_count: int,
    ) -> None:
        """Start Claude CLI in every pane, then send the configured instruction files."""
        self._setup(session_name, claude_cli_path, instructions_dir, config, dev_count)


__all__ = ["AITeamManager", "InstructionConfig", "instruction_file_for"]