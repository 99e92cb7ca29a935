# teamlaunch

A library for running a team of AI coding agents side by side in tmux:
one pane each for a product owner (PO), a manager and a number of
developers. It builds the session layout, starts the agent CLI in every
pane, shows each role its instruction file, and finds, inspects or removes
existing team sessions.

Alongside the tmux tooling it provides:

- `teamlaunch.paths` – tilde expansion, normalisation and joining of paths
- `teamlaunch.display` – console status messages with verbose and silent modes
- `teamlaunch.directories` – project-root detection and guarded relative-path resolution
- `teamlaunch.detector` – detection of being run from inside tmux
- `teamlaunch.security` – AES-GCM encryption, secure file deletion, an audit
  log and checksum-based integrity checks
- `teamlaunch.loadinfo` – system load sampling and a plain-text load report

The tmux and load features call the `tmux`, `uptime`, `sysctl` and `ps`
programs, so they are meant for Linux and macOS.

Install with `pip install .` (add `.[test]` for pytest).

## Refusing to run inside tmux

```python
import os
from teamlaunch.detector import detect_tmux, print_error_message

err = detect_tmux(os.environ)
if err is not None:
    print_error_message(False, err)
    raise SystemExit(1)
```

`detect_tmux` returns a `TmuxDetectionError` when `TMUX` or `TMUX_PANE` is
set and `None` otherwise; `is_inside_tmux()` is the same check on
`os.environ` as a plain `bool`. With `debug_mode=True`,
`print_error_message` also prints the tmux variables.

## Building a team session

```python
from teamlaunch.paths import expand_path
from teamlaunch.sessions import AITeamManager

manager = AITeamManager("ai-team")
manager.create_integrated_layout("ai-team", 4)
manager.setup_claude_in_panes(
    "ai-team",
    expand_path("~/.claude/local/claude"),
    expand_path("~/.claude/claude-code-agents/instructions"),
    4,
)
manager.attach_session("ai-team")
```

The integrated layout puts the PO and manager on the left and the
developers stacked on the right. Panes are numbered 1 (PO), 2 (Manager) and
3 onwards (Dev1, Dev2, ...); `pane_agent_map` and `agent_names` in
`teamlaunch.tmux` give that numbering for a developer count. The developer
count must be at least 1. `create_individual_layout` instead creates one
session per agent, named `<session>-<agent>`.

`setup_claude_in_panes` types `<cli path> --dangerously-skip-permissions`
into every pane, waits, then sends `cat "<instruction file>"` to each pane.
Instruction files default to `po.md`, `manager.md` and `developer.md` in
the instructions directory; pass an `InstructionConfig` (or any object with
the same attributes) to `setup_claude_in_panes_with_config` to use other
file names. `instruction_file_for` returns the path that will be used. A
missing or empty instruction file is skipped. Only `dev1` to `dev4` have an
instruction file; for further developers the instruction step is logged
and skipped.

The operations pause between steps with `time.sleep`. Both `TmuxManager`
and `AITeamManager` accept a `runner` (called with the argument list and
whether to capture output) and a `sleep` function, so they can be driven
without a real tmux.

## Finding and removing sessions

```python
from teamlaunch.sessions import AITeamManager

manager = AITeamManager()
groups = manager.get_ai_team_sessions(6)   # keys: "integrated", "individual", "other"
name, kind = manager.detect_active_ai_session(6)
removed = manager.delete_ai_team_sessions(name, 4)
```

`find_default_ai_session` falls back to `"ai-teams"` when nothing looks
like a team session. `TmuxManager.get_session_info` reports the pane count,
pane list and whether the session has the expected number of panes. Failed
tmux operations raise `TmuxError`.

## Paths and directories

```python
from teamlaunch.paths import expand_path, normalize_path
from teamlaunch.directories import get_global_directory_resolver

print(expand_path("~/projects"))
print(normalize_path("relative/dir"))

resolver = get_global_directory_resolver()
print(resolver.resolve_relative_path("docs/notes.md"))
resolver.display_directory_info()
```

The project root is found by looking upward from the working directory for
one of `start-agents`, `send-agent`, `docs`, `.git`, `go.mod` or `LICENSE`.
Relative paths are resolved against it; paths that would leave it, and
absolute paths under system directories such as `/etc` or `/home`, are
redirected to a file of the same base name inside the project root.
`fix_directory_dependent_paths` applies this to a configuration object's
`claude_cli_path`, `instructions_dir`, `config_dir`, `log_file` and
`auth_backup_dir` and sets its `working_dir`.

## Console output

`teamlaunch.display` prints prefixed messages (`display_progress`,
`display_success`, `display_info`, `display_warning`, `display_error`) and
banners. `set_silent_mode(True)` suppresses everything except errors;
`set_verbose_logging(True)` turns silent mode off.

## Security helpers

```python
from teamlaunch.security import SecurityEnhancement

enhancement = SecurityEnhancement()
sealed = enhancement.encrypt_data(b"hello")
assert enhancement.decrypt_data(sealed) == b"hello"
```

Unless a key is passed in, the key is derived fresh for each
`SecurityEnhancement`, so only that instance can decrypt what it encrypted.
`secure_delete` overwrites a file with random bytes three times before
removing it. `AuditTrail` appends to `~/.claude/security_audit.log` and
`IntegrityChecker` records base64 SHA-256 checksums in
`~/.claude/integrity.sha256`; both accept another file path. Failures raise
`SecurityError`.

## System load

```python
from teamlaunch.loadinfo import SystemOptimizer

optimizer = SystemOptimizer()
optimizer.get_system_load_info()
print(optimizer.generate_system_report())
```

Load is high when the one-minute load average exceeds 80% of the CPU
cores. Memory is read with `sysctl -n hw.memsize` and stays 0 where that is
unavailable. `monitor_system_load(interval)` samples until
`optimizer.stop_event` is set. `limit_process_resources` applies a CPU-time
and an address-space limit to the calling process.

## What it does not do

There is no command-line program: argument parsing, configuration files,
authentication handling and an end-to-end launch sequence are left to the
caller, who combines the pieces above.