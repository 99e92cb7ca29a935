"""Locate the project root and resolve paths relative to it."""

from __future__ import annotations

import functools
import logging
import os
import sys

from .paths import _clean, _join, expand_path_safe

logger = logging.getLogger(__name__)

_ROOT_INDICATORS = ("start-agents", "send-agent", "docs", ".git", "go.mod", "LICENSE")

_DANGEROUS_PREFIXES = (
    "/etc", "/root", "/home", "/usr/bin", "/usr/sbin",
    "/var", "/boot", "/dev", "/proc", "/sys", "/bin", "/sbin",
)

_PATH_FIELDS = ("claude_cli_path", "instructions_dir", "config_dir", "log_file", "auth_backup_dir")


def _base(path: str) -> str:
    """Last element of a path, ignoring trailing separators."""
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


class DirectoryResolver:
    """Works out where the project lives and where to run from."""

    def __init__(self, binary_path: str | None = None) -> None:
        self._binary_override = binary_path
        self.original_working_dir = ""
        self.project_root = ""
        self.binary_path = ""
        self.is_in_subdirectory = False
        try:
            self.initialize()
        except OSError as exc:
            print(f"Warning: directory resolver initialization failed: {exc}", file=sys.stderr)

    def initialize(self) -> None:
        """Record the working directory and executable and find the project root."""
        try:
            self.original_working_dir = os.getcwd()
        except OSError as exc:
            raise OSError(f"failed to get current working directory: {exc}") from exc

        executable = self._binary_override or (sys.argv[0] if sys.argv and sys.argv[0] else sys.executable)
        self.binary_path = os.path.abspath(executable)

        self.project_root = self._determine_project_root()
        self.is_in_subdirectory = self.original_working_dir != self.project_root

        logger.info(
            "Directory resolver initialized: original_working_dir=%s project_root=%s "
            "binary_path=%s is_in_subdirectory=%s",
            self.original_working_dir, self.project_root, self.binary_path, self.is_in_subdirectory,
        )

    def _determine_project_root(self) -> str:
        binary_dir = os.path.dirname(self.binary_path)
        if binary_dir.endswith("build"):
            parent = os.path.dirname(binary_dir)
            if self._is_project_root(parent):
                return parent

        search_dir = self.original_working_dir
        while True:
            if self._is_project_root(search_dir):
                return search_dir
            parent = os.path.dirname(search_dir)
            if parent == search_dir:
                break
            search_dir = parent

        return self.original_working_dir

    @staticmethod
    def _is_project_root(directory: str) -> bool:
        return any(os.path.exists(os.path.join(directory, name)) for name in _ROOT_INDICATORS)

    def optimal_working_directory(self) -> str:
        """The project root when started from a subdirectory, else the original directory."""
        if self.is_in_subdirectory:
            logger.info(
                "Using project root as working directory due to subdirectory execution: %s -> %s",
                self.original_working_dir, self.project_root,
            )
            return self.project_root
        return self.original_working_dir

    def resolve_relative_path(self, relative_path: str) -> str:
        """Resolve a path against the project root, blocking unsafe targets."""
        expanded = expand_path_safe(relative_path)

        if os.path.isabs(expanded):
            if self._is_dangerous_path(expanded):
                logger.warning("Dangerous path access blocked: %s", expanded)
                return _join(self.project_root, _base(expanded))
            return expanded

        resolved = _clean(_join(self.project_root, expanded))
        if self._is_path_traversal(resolved):
            logger.warning("Path traversal attack blocked: %s -> %s", relative_path, resolved)
            return _join(self.project_root, _base(relative_path))

        logger.debug("Resolved relative path %s -> %s", relative_path, resolved)
        return resolved

    @staticmethod
    def _is_dangerous_path(path: str) -> bool:
        cleaned = _clean(path)
        return any(cleaned.startswith(prefix) for prefix in _DANGEROUS_PREFIXES)

    def _is_path_traversal(self, resolved_path: str) -> bool:
        if os.path.isabs(self.project_root) != os.path.isabs(resolved_path):
            return True
        try:
            relative = os.path.relpath(resolved_path, self.project_root)
        except ValueError:
            return True
        return relative.startswith("..")

    def ensure_directory_exists(self, path: str) -> None:
        """Resolve the path and create the directory if it is missing."""
        resolved = self.resolve_relative_path(path)
        try:
            os.stat(resolved)
        except FileNotFoundError:
            try:
                os.makedirs(resolved, mode=0o750, exist_ok=True)
            except OSError as exc:
                raise OSError(f"failed to create directory {resolved}: {exc}") from exc
            logger.info("Created directory: %s", resolved)
        except OSError as exc:
            raise OSError(f"failed to check directory {resolved}: {exc}") from exc

    def relative_path_from_root(self, absolute_path: str) -> str:
        """The path relative to the project root, or the input when that is impossible."""
        if os.path.isabs(self.project_root) != os.path.isabs(absolute_path):
            return absolute_path
        try:
            return os.path.relpath(absolute_path, self.project_root)
        except ValueError:
            return absolute_path

    def validate_working_directory(self, working_dir: str) -> None:
        """Check that the directory exists and can be entered."""
        if not os.path.exists(working_dir):
            raise FileNotFoundError(f"working directory does not exist: {working_dir}")
        try:
            os.chdir(working_dir)
        except OSError as exc:
            raise OSError(f"cannot access working directory: {working_dir}") from exc
        try:
            os.chdir(self.original_working_dir)
        except OSError as exc:
            logger.warning("Failed to return to original working directory: %s", exc)

    def directory_info(self) -> dict[str, str]:
        return {
            "original_working_dir": self.original_working_dir,
            "project_root": self.project_root,
            "binary_path": self.binary_path,
            "optimal_working_dir": self.optimal_working_directory(),
            "is_in_subdirectory": "true" if self.is_in_subdirectory else "false",
        }

    def fix_directory_dependent_paths(self, config: object) -> None:
        """Set the working directory and make the config's relative paths absolute."""
        config.working_dir = self.optimal_working_directory()
        for field in _PATH_FIELDS:
            value = getattr(config, field)
            if not os.path.isabs(value):
                setattr(config, field, self.resolve_relative_path(value))

    def display_directory_info(self) -> None:
        print("\n📁 Directory Resolution Information")
        print("==================================")
        info = self.directory_info()
        print(f"   Original Working Dir: {info['original_working_dir']}")
        print(f"   Project Root: {info['project_root']}")
        print(f"   Binary Path: {info['binary_path']}")
        print(f"   Optimal Working Dir: {info['optimal_working_dir']}")
        print(f"   Is In Subdirectory: {info['is_in_subdirectory']}")
        if self.is_in_subdirectory:
            print("   ⚠️  Subdirectory execution detected - using project root")
        else:
            print("   ✅ Normal execution from project root")
        print()


@functools.lru_cache(maxsize=None)
def get_global_directory_resolver() -> DirectoryResolver:
    """The shared resolver, created on first use."""
    return DirectoryResolver()


def initialize_directory_resolver() -> None:
    """Re-initialise the shared resolver."""
    get_global_directory_resolver().initialize()