"""PR and issue timeline rendered as a git-log-style graph."""

__version__ = "0.1.0"
