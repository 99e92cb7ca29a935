"""Build and manage tmux sessions for a team of AI coding agents."""

__version__ = "1.0.0"

__all__ = [
    "detector",
    "directories",
    "display",
    "loadinfo",
    "paths",
    "security",
    "sessions",
    "tmux",
]