import os
import subprocess

import pytest

from teamlaunch.sessions import AITeamManager, InstructionConfig, instruction_file_for
from teamlaunch.tmux import TmuxError


class FakeTmux:
    def __init__(self, sessions=(), pane_counts=None, capture="claude> ", fail=()):
        self.sessions = list(sessions)
        self.pane_counts = dict(pane_counts or {})
        self.capture = capture
        self.fail = set(fail)
        self.calls = []

    def __call__(self, args, capture):
        args = list(args)
        self.calls.append(args)
        command = args[1]

        def done(code=0, out=""):
            return subprocess.CompletedProcess(args, code, out, "" if code == 0 else "boom")

        if command in self.fail:
            return done(1)
        if command == "has-session":
            return done(0 if args[3] in self.sessions else 1)
        if command == "list-sessions":
            return done(0, "\n".join(self.sessions) + "\n")
        if command == "list-panes":
            count = self.pane_counts.get(args[3])
            if count is None:
                return done(1)
            return done(0, "\n".join(f"{i}: pane" for i in range(1, count + 1)) + "\n")
        if command == "kill-session":
            self.sessions.remove(args[3])
            return done()
        if command == "capture-pane":
            return done(0, self.capture)
        return done()

    def send_keys(self):
        return [call for call in self.calls if call[1] == "send-keys"]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def make_manager(fake):
    clock = FakeClock()
    return AITeamManager("s", runner=fake, sleep=clock.sleep, clock=clock.time)


def test_instruction_file_defaults():
    assert instruction_file_for("po", "/inst", None) == os.path.join("/inst", "po.md")
    assert instruction_file_for("manager", "/inst", None) == os.path.join("/inst", "manager.md")
    assert instruction_file_for("dev3", "/inst", None) == os.path.join("/inst", "developer.md")


def test_instruction_file_from_config_falls_back_when_empty():
    config = InstructionConfig(po_instruction_file="lead.md")
    assert instruction_file_for("po", "/inst", config) == os.path.join("/inst", "lead.md")
    assert instruction_file_for("manager", "/inst", config) == os.path.join("/inst", "manager.md")


def test_instruction_file_unknown_agent():
    with pytest.raises(ValueError, match="unknown agent type: dev5"):
        instruction_file_for("dev5", "/inst", None)


def test_get_ai_team_sessions_classifies():
    fake = FakeTmux(
        sessions=["team", "proj-po", "proj-dev1", "x", "workspace", "claude-box", "nopanes-long"],
        pane_counts={"team": 4, "x": 1, "workspace": 1, "claude-box": 1},
    )
    result = make_manager(fake).get_ai_team_sessions(4)
    assert result == {
        "integrated": ["team", "x", "claude-box"],
        "individual": ["proj"],
        "other": ["workspace", "nopanes-long"],
    }


def test_find_default_prefers_integrated_then_individual():
    fake = FakeTmux(sessions=["proj-po", "team"], pane_counts={"team": 6})
    assert make_manager(fake).find_default_ai_session(6) == "team"
    fake = FakeTmux(sessions=["proj-po", "workspace"], pane_counts={"workspace": 2})
    assert make_manager(fake).find_default_ai_session(6) == "proj"


def test_find_default_agent_keyword_and_fallback():
    fake = FakeTmux(sessions=["my-agent-box"], pane_counts={"my-agent-box": 2})
    assert make_manager(fake).find_default_ai_session(6) == "my-agent-box"
    fake = FakeTmux(sessions=["workspace"], pane_counts={"workspace": 2})
    assert make_manager(fake).find_default_ai_session(6) == "ai-teams"


def test_detect_active_ai_session():
    fake = FakeTmux(sessions=["team"], pane_counts={"team": 6})
    assert make_manager(fake).detect_active_ai_session(6) == ("team", "integrated")
    fake = FakeTmux(sessions=["proj-manager"])
    assert make_manager(fake).detect_active_ai_session(6) == ("proj", "individual")
    fake = FakeTmux(sessions=["workspace"], pane_counts={"workspace": 2})
    with pytest.raises(TmuxError, match="no active AI sessions found"):
        make_manager(fake).detect_active_ai_session(6)


def test_list_failure_is_wrapped():
    fake = FakeTmux(fail={"list-sessions"})
    with pytest.raises(TmuxError, match="failed to get AI team sessions"):
        make_manager(fake).detect_active_ai_session(6)


def test_delete_ai_team_sessions():
    fake = FakeTmux(sessions=["proj", "proj-po", "proj-dev2", "other"], pane_counts={"proj": 4})
    assert make_manager(fake).delete_ai_team_sessions("proj", 2) == 3
    assert fake.sessions == ["other"]


def test_delete_ai_team_sessions_none_found():
    fake = FakeTmux(sessions=["other"])
    with pytest.raises(TmuxError, match="no sessions found for ghost"):
        make_manager(fake).delete_ai_team_sessions("ghost", 2)


def test_wait_for_claude_ready_detects_prompt():
    fake = FakeTmux(capture="claude> ")
    make_manager(fake).wait_for_claude_ready("s", "1", 10)
    assert fake.calls[-1] == ["tmux", "capture-pane", "-t", "s:1.1", "-p"]


def test_wait_for_claude_ready_timeout():
    fake = FakeTmux(capture="   ")
    with pytest.raises(TmuxError, match="timeout waiting for Claude CLI"):
        make_manager(fake).wait_for_claude_ready("s", "2", 3)
    assert len([c for c in fake.calls if c[1] == "capture-pane"]) > 1


def test_send_instruction_to_pane(tmp_path):
    path = tmp_path / "po.md"
    path.write_text("# PO Instructions\n")
    fake = FakeTmux()
    sent = make_manager(fake).send_instruction_to_pane("s", "1", "po", str(tmp_path), None)
    assert sent is True
    keys = fake.send_keys()
    assert keys[0] == ["tmux", "send-keys", "-t", "s:1.1", f'cat "{path}"', "C-m"]
    assert keys[1:] == [["tmux", "send-keys", "-t", "s:1.1", "C-m"]] * 3


def test_send_instruction_skips_missing_and_empty(tmp_path):
    fake = FakeTmux()
    manager = make_manager(fake)
    assert manager.send_instruction_to_pane("s", "1", "po", str(tmp_path), None) is False
    (tmp_path / "manager.md").write_text("")
    assert manager.send_instruction_to_pane("s", "2", "manager", str(tmp_path), None) is False
    assert fake.send_keys() == []


def test_send_instruction_uses_config(tmp_path):
    path = tmp_path / "dev.md"
    path.write_text("# Dev\n")
    fake = FakeTmux()
    config = InstructionConfig(dev_instruction_file="dev.md")
    assert make_manager(fake).send_instruction_to_pane("s", "3", "dev1", str(tmp_path), config)
    assert fake.send_keys()[0][4] == f'cat "{path}"'


def test_send_instruction_retries_then_fails(tmp_path):
    (tmp_path / "po.md").write_text("# PO\n")
    fake = FakeTmux(fail={"send-keys"})
    with pytest.raises(TmuxError, match="after 3 attempts"):
        make_manager(fake).send_instruction_to_pane("s", "1", "po", str(tmp_path), None)
    assert len(fake.send_keys()) == 3


def test_setup_claude_in_panes(tmp_path):
    for name in ("po.md", "manager.md", "developer.md"):
        (tmp_path / name).write_text(f"# {name}\n")
    fake = FakeTmux(sessions=["s"], pane_counts={"s": 3})
    make_manager(fake).setup_claude_in_panes("s", "/bin/claude", str(tmp_path), 1)
    keys = fake.send_keys()
    starts = [k for k in keys if k[4] == "/bin/claude --dangerously-skip-permissions"]
    assert [k[3] for k in starts] == ["s:1.1", "s:1.2", "s:1.3"]
    cats = [k[4] for k in keys if k[4].startswith("cat ")]
    assert cats == [
        f'cat "{tmp_path / "po.md"}"',
        f'cat "{tmp_path / "manager.md"}"',
        f'cat "{tmp_path / "developer.md"}"',
    ]


def test_setup_claude_in_panes_with_config(tmp_path):
    (tmp_path / "lead.md").write_text("# Lead\n")
    fake = FakeTmux(sessions=["s"], pane_counts={"s": 3})
    config = InstructionConfig(po_instruction_file="lead.md")
    make_manager(fake).setup_claude_in_panes_with_config(
        "s", "/bin/claude", str(tmp_path), config, 1
    )
    cats = [k[4] for k in fake.send_keys() if k[4].startswith("cat ")]
    assert cats == [f'cat "{tmp_path / "lead.md"}"']


def test_setup_claude_start_failure(tmp_path):
    fake = FakeTmux(sessions=["s"], pane_counts={"s": 3}, fail={"send-keys"})
    with pytest.raises(TmuxError, match=r"failed to start Claude CLI in pane 1 \(po\)"):
        make_manager(fake).setup_claude_in_panes("s", "/bin/claude", str(tmp_path), 1)