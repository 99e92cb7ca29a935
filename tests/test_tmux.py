import subprocess

import pytest

from teamlaunch.tmux import TmuxError, TmuxManager, agent_names, pane_agent_map


class FakeTmux:
    """Stands in for the tmux binary, recording every call."""

    def __init__(self, sessions=(), outputs=None, failing=()):
        self.sessions = set(sessions)
        self.outputs = outputs or {}
        self.failing = set(failing)
        self.calls = []

    def __call__(self, args, capture):
        args = list(args)
        self.calls.append(args)
        sub = args[1]
        if sub == "has-session":
            code = 0 if args[3] in self.sessions else 1
            return subprocess.CompletedProcess(args, code, "", "")
        if sub in self.failing:
            return subprocess.CompletedProcess(args, 1, "out", "boom")
        if sub == "new-session":
            self.sessions.add(args[4])
        output = self.outputs.get(sub, "")
        if callable(output):
            output = output(args)
        return subprocess.CompletedProcess(args, 0, output, "")

    def by(self, sub):
        return [call for call in self.calls if call[1] == sub]


def make(fake):
    return TmuxManager("s", runner=fake, sleep=lambda _: None)


def test_agent_names_and_pane_map():
    assert agent_names(2) == ["po", "manager", "dev1", "dev2"]
    assert pane_agent_map(2) == {"1": "po", "2": "manager", "3": "dev1", "4": "dev2"}
    assert len(pane_agent_map(4)) == 6


def test_session_exists_uses_has_session():
    fake = FakeTmux(sessions={"alpha"})
    manager = make(fake)
    assert manager.session_exists("alpha") is True
    assert manager.session_exists("beta") is False
    assert fake.calls[0] == ["tmux", "has-session", "-t", "alpha"]


def test_list_sessions_strips_and_skips_blank_lines():
    fake = FakeTmux(outputs={"list-sessions": "a\n\n  b  \n"})
    assert make(fake).list_sessions() == ["a", "b"]


def test_list_sessions_failure_raises():
    with pytest.raises(TmuxError, match="failed to list sessions"):
        make(FakeTmux(failing={"list-sessions"})).list_sessions()


def test_create_session_existing_raises():
    fake = FakeTmux(sessions={"dup"})
    with pytest.raises(TmuxError, match="already exists"):
        make(fake).create_session("dup")
    assert fake.by("new-session") == []


def test_create_session_runs_new_session():
    fake = FakeTmux()
    make(fake).create_session("fresh")
    assert fake.by("new-session") == [["tmux", "new-session", "-d", "-s", "fresh"]]


def test_kill_session_missing_is_noop():
    fake = FakeTmux()
    make(fake).kill_session("gone")
    assert fake.by("kill-session") == []


def test_kill_session_failure_raises():
    fake = FakeTmux(sessions={"x"}, failing={"kill-session"})
    with pytest.raises(TmuxError, match="failed to kill session x"):
        make(fake).kill_session("x")


def test_attach_session_missing_raises():
    with pytest.raises(TmuxError, match="does not exist"):
        make(FakeTmux()).attach_session("nope")


def test_attach_session_failure_when_session_exists():
    fake = FakeTmux(sessions={"x"}, failing={"attach-session"})
    with pytest.raises(TmuxError, match="exists but attach failed"):
        make(fake).attach_session("x")


def test_send_keys_with_enter_targets_window_one():
    fake = FakeTmux()
    make(fake).send_keys_with_enter("s", "2", "ls")
    assert fake.calls == [["tmux", "send-keys", "-t", "s:1.2", "ls", "C-m"]]


def test_send_keys_failure_raises():
    with pytest.raises(TmuxError, match="s:1.3"):
        make(FakeTmux(failing={"send-keys"})).send_keys_to_pane("s", "3", "C-m")


def test_split_window_failure_message_includes_command():
    with pytest.raises(TmuxError, match="split-window -h -t s"):
        make(FakeTmux(failing={"split-window"})).split_window("s", "-h")


def test_rename_window_failure_raises():
    with pytest.raises(TmuxError, match="failed to rename window"):
        make(FakeTmux(failing={"rename-window"})).rename_window("s", "s")


def test_get_pane_count_counts_lines():
    fake = FakeTmux(outputs={"list-panes": "0: a\n1: b\n2: c\n"})
    assert make(fake).get_pane_count("s") == 3


def test_get_pane_list():
    fake = FakeTmux(outputs={"list-panes": "1:PO\n2:Manager\n"})
    assert make(fake).get_pane_list("s") == ["1:PO", "2:Manager"]


def size_output(args):
    return "100\n" if "width" in args[-1] else "40\n"


def test_window_size_parses_output():
    fake = FakeTmux(outputs={"display-message": size_output})
    assert make(fake).window_size("s") == (100, 40)


def test_window_size_rejects_garbage():
    fake = FakeTmux(outputs={"display-message": "wide"})
    with pytest.raises(TmuxError, match="parse window width"):
        make(fake).window_size("s")


def test_adjust_pane_sizes_rejects_zero_devs():
    fake = FakeTmux()
    with pytest.raises(TmuxError, match="greater than 0"):
        make(fake).adjust_pane_sizes("s", 0)
    assert fake.by("resize-pane") == []


def test_adjust_pane_sizes_equal_dev_heights():
    fake = FakeTmux(outputs={"display-message": size_output})
    make(fake).adjust_pane_sizes("s", 2)
    resizes = fake.by("resize-pane")
    assert len(resizes) == 3 + 2
    dev_calls = [call for call in resizes if call[3] in ("s:1.3", "s:1.4")]
    assert [call[3] for call in dev_calls] == ["s:1.3", "s:1.4"]
    assert {call[5] for call in dev_calls} == {"20"}
    assert resizes[0] == resizes[-1]


def test_set_pane_titles_names_every_pane():
    fake = FakeTmux()
    make(fake).set_pane_titles("s", 2)
    titles = {call[3]: call[5] for call in fake.by("select-pane")}
    assert titles == {"s:1.1": "PO", "s:1.2": "Manager", "s:1.3": "Dev1", "s:1.4": "Dev2"}


def test_set_pane_titles_option_failure_raises():
    with pytest.raises(TmuxError, match="pane border status"):
        make(FakeTmux(failing={"set-option"})).set_pane_titles("s", 1)


def test_create_integrated_layout_splits():
    fake = FakeTmux(outputs={"display-message": size_output})
    make(fake).create_integrated_layout("team", 3)
    assert "team" in fake.sessions
    splits = fake.by("split-window")
    assert splits[0] == ["tmux", "split-window", "-h", "-t", "team"]
    assert splits[1] == ["tmux", "split-window", "-v", "-t", "team:1.1"]
    assert splits[2:] == [["tmux", "split-window", "-v", "-t", "team:1.3"]] * 2


def test_create_integrated_layout_wraps_split_failure():
    fake = FakeTmux(sessions={"team"}, failing={"split-window"})
    with pytest.raises(TmuxError, match="failed to split window horizontally"):
        make(fake).create_integrated_layout("team", 1)


def test_create_individual_layout_one_session_per_agent():
    fake = FakeTmux()
    make(fake).create_individual_layout("t", 1)
    created = [call[4] for call in fake.by("new-session")]
    assert created == ["t-po", "t-manager", "t-dev1"]


def test_wait_for_pane_ready_returns_when_pane_listed():
    fake = FakeTmux(outputs={"list-panes": "1: [80x24]\n2: [80x24]\n"})
    make(fake).wait_for_pane_ready("s", "2", 1.0)
    assert len(fake.by("list-panes")) == 1


def test_wait_for_pane_ready_times_out():
    with pytest.raises(TmuxError, match="timeout waiting for pane s:1.5"):
        make(FakeTmux()).wait_for_pane_ready("s", "5", 0)


def test_get_session_info_type():
    fake = FakeTmux(sessions={"s"}, outputs={"list-panes": "1:PO\n2:Manager\n"})
    manager = make(fake)
    info = manager.get_session_info("s", 2)
    assert info["type"] == "integrated"
    assert info["pane_count"] == 2
    assert info["panes"] == ["1:PO", "2:Manager"]
    assert manager.get_session_info("s", 6)["type"] == "general"


def test_get_session_info_missing_session():
    with pytest.raises(TmuxError, match="does not exist"):
        make(FakeTmux()).get_session_info("none", 6)