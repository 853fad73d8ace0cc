"""Release automation for changelog-driven git repositories."""

__version__ = "0.1.0"
