"""System load inspection and a plain-text load report."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]
LimitSetter = Callable[[str, int], None]

HIGH_LOAD_RATIO = 0.8
CPU_TIME_LIMIT_SECONDS = 300
ADDRESS_SPACE_LIMIT_BYTES = 1024 * 1024 * 1024
_GIB = 1024 * 1024 * 1024
_LOAD_MARKER = "load average:"


@dataclass
class SystemLoadInfo:
    """A snapshot of load averages, CPU, memory and process counts."""

    load_avg_1min: float = 0.0
    load_avg_5min: float = 0.0
    load_avg_15min: float = 0.0
    cpu_cores: int = 0
    memory_gb: float = 0.0
    processes: int = 0
    threads: int = 0


def _default_runner(args: Sequence[str]) -> subprocess.CompletedProcess[str]:
    try:
        return subprocess.run(list(args), capture_output=True, text=True, check=False)
    except OSError as exc:
        return subprocess.CompletedProcess(list(args), 127, "", str(exc))


def _default_limit_setter(kind: str, limit: int) -> None:
    import resource

    which = {"cpu": resource.RLIMIT_CPU, "address_space": resource.RLIMIT_AS}[kind]
    resource.setrlimit(which, (limit, limit))


def _to_float(text: str) -> float | None:
    try:
        return float(text.strip())
    except ValueError:
        return None


def parse_load_average(output: str) -> tuple[float, float, float]:
    """The 1, 5 and 15 minute load averages from ``uptime`` output.

    Values that are missing or cannot be parsed come back as ``0.0``.
    """
    text = output.strip()
    if _LOAD_MARKER not in text:
        return 0.0, 0.0, 0.0
    fields = text.split(_LOAD_MARKER)[1].strip().split(",")
    if len(fields) < 3:
        return 0.0, 0.0, 0.0
    values = [_to_float(field) for field in fields[:3]]
    load1, load5, load15 = (value if value is not None else 0.0 for value in values)
    return load1, load5, load15


class SystemOptimizer:
    """Reads the system load and reports on it."""

    def __init__(
        self,
        config: Any = None,
        runner: CommandRunner | None = None,
        limit_setter: LimitSetter | None = None,
    ) -> None:
        self.config = config
        self.load_info: SystemLoadInfo | None = None
        self.stop_event = threading.Event()
        self._runner: CommandRunner = runner or _default_runner
        self._set_limit: LimitSetter = limit_setter or _default_limit_setter

    def _output(self, *args: str) -> str | None:
        result = self._runner(list(args))
        if result.returncode != 0:
            return None
        return result.stdout or ""

    def _memory_size(self) -> int | None:
        output = self._output("sysctl", "-n", "hw.memsize")
        if output is None:
            return None
        try:
            return int(output.strip())
        except ValueError:
            return None

    def _process_count(self) -> int | None:
        output = self._output("ps", "ax")
        if output is None:
            return None
        return len(output.split("\n")) - 1

    def get_system_load_info(self) -> SystemLoadInfo:
        """Collect a fresh snapshot, remember it and return it."""
        result = self._runner(["uptime"])
        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit status {result.returncode}"
            raise RuntimeError(f"failed to get system load: {detail}")

        info = SystemLoadInfo(cpu_cores=os.cpu_count() or 1)

        memory = self._memory_size()
        if memory is not None:
            info.memory_gb = memory / _GIB

        info.load_avg_1min, info.load_avg_5min, info.load_avg_15min = parse_load_average(
            result.stdout or ""
        )

        processes = self._process_count()
        if processes is not None:
            info.processes = processes

        self.load_info = info
        return info

    def _threshold(self) -> float:
        assert self.load_info is not None
        return self.load_info.cpu_cores * HIGH_LOAD_RATIO

    def is_high_load_condition(self) -> bool:
        """Whether the 1 minute load exceeds 80% of the CPU cores."""
        if self.load_info is None:
            return False
        return self.load_info.load_avg_1min > self._threshold()

    def optimize_system_load(self) -> None:
        """React to a high load; nothing to do when the load is normal."""
        if not self.is_high_load_condition():
            logger.info("System load is within normal range")
            return
        assert self.load_info is not None
        logger.warning(
            "High system load detected: load_avg=%.2f cpu_cores=%d",
            self.load_info.load_avg_1min, self.load_info.cpu_cores,
        )
        logger.info("Claude process optimization - feature disabled")

    def limit_process_resources(self, pid: int) -> None:
        """Apply the CPU time and address space limits; failures are only logged."""
        limits = (
            ("cpu", CPU_TIME_LIMIT_SECONDS, "Failed to set CPU time limit"),
            ("address_space", ADDRESS_SPACE_LIMIT_BYTES, "Failed to set memory limit"),
        )
        for kind, limit, message in limits:
            try:
                self._set_limit(kind, limit)
            except (OSError, ValueError) as exc:
                logger.warning("%s (pid=%d): %s", message, pid, exc)

    def monitor_system_load(self, interval: float) -> None:
        """Check the load every ``interval`` seconds until ``stop_event`` is set."""
        while not self.stop_event.wait(interval):
            try:
                info = self.get_system_load_info()
            except RuntimeError:
                continue
            if self.is_high_load_condition():
                logger.warning(
                    "High system load detected: load_avg_1min=%.2f load_avg_5min=%.2f "
                    "load_avg_15min=%.2f cpu_cores=%d",
                    info.load_avg_1min, info.load_avg_5min, info.load_avg_15min, info.cpu_cores,
                )
                self.optimize_system_load()
            else:
                logger.debug("System load is normal: load_avg=%.2f", info.load_avg_1min)

    def generate_system_report(self) -> str:
        """A human-readable summary of the last snapshot with recommendations."""
        lines = ["📊 System Load Analysis Report", "===============================", ""]

        info = self.load_info
        if info is not None:
            lines += [
                "🖥️ System Information:",
                f"   CPU Cores: {info.cpu_cores}",
                f"   Memory: {info.memory_gb:.1f} GB",
                f"   Load Average (1min): {info.load_avg_1min:.2f}",
                f"   Load Average (5min): {info.load_avg_5min:.2f}",
                f"   Load Average (15min): {info.load_avg_15min:.2f}",
                f"   Total Processes: {info.processes}",
                "",
            ]
            threshold = self._threshold()
            if info.load_avg_1min > threshold:
                above = (info.load_avg_1min / threshold - 1) * 100
                lines += [
                    "⚠️ Status: HIGH LOAD DETECTED",
                    f"   Load threshold: {threshold:.2f} (80% of CPU cores)",
                    f"   Current load: {info.load_avg_1min:.2f} ({above:.1f}% above threshold)",
                    "",
                ]
            else:
                lines += ["✅ Status: NORMAL LOAD", ""]

        lines += [
            "🔍 Claude Process Analysis:",
            "   Process monitoring functionality has been disabled.",
            "",
            "💡 Recommendations:",
        ]
        if self.is_high_load_condition():
            lines += [
                "   • Consider reducing the number of concurrent Claude processes",
                "   • Lower priority of high CPU usage processes",
                "   • Monitor system for potential killed processes",
                "   • Check for resource limits and adjust if necessary",
            ]
        else:
            lines += [
                "   • System load is within normal range",
                "   • Continue monitoring for any changes",
            ]
        return "\n".join(lines) + "\n"


__all__ = ["SystemLoadInfo", "SystemOptimizer", "parse_load_average"]