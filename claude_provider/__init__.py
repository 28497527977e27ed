"""Claude provider: multi-scheme credential authentication for the Claude API."""

from claude_provider._version import __version__


__all__ = ["__version__"]
