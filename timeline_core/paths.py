"""Centralized path management and logging setup for timeline.

Everything lives under ~/.timeline/ (or $TIMELINE_HOME):
- ~/.timeline/debug/timeline.log  - rotating log shared by CLI and TUI
- ~/.timeline/debug/enabled       - if present, log at DEBUG level
"""

import logging
import os
import shlex
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


def timeline_home() -> Path:
    """Return the timeline home directory ($TIMELINE_HOME or ~/.timeline/)."""
    override = os.environ.get("TIMELINE_HOME")
    d = Path(override) if override else Path.home() / ".timeline"
    d.mkdir(parents=True, exist_ok=True)
    return d


def debug_dir() -> Path:
    """Return the debug/logs directory (~/.timeline/debug/)."""
    d = timeline_home() / "debug"
    d.mkdir(parents=True, exist_ok=True)
    return d


def log_file() -> Path:
    return debug_dir() / "timeline.log"


def debug_enabled() -> bool:
    """Debug logging is on when $TIMELINE_DEBUG is truthy or the marker file exists."""
    if os.environ.get("TIMELINE_DEBUG", "").strip().lower() in _TRUTHY:
        return True
    return (debug_dir() / "enabled").exists()


def set_debug(enabled: bool = True) -> None:
    """Persistently enable or disable debug logging."""
    marker = debug_dir() / "enabled"
    if enabled:
        marker.touch()
    elif marker.exists():
        marker.unlink()


def configure_logger(name: str, max_bytes: int = 10_000_000, debug: bool | None = None) -> logging.Logger:
    """Configure a logger that always writes to the log file with rotation.

    Args:
        name: Logger name (e.g., "timeline").  Child loggers such as
              "timeline.service" propagate into it.
        max_bytes: Maximum log file size before rotation (default 10MB)
        debug: Force DEBUG (True) or INFO (False); None consults
               :func:`debug_enabled`.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if debug is None:
        debug = debug_enabled()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Avoid adding a second file handler; other handlers don't count
    if any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        return logger

    handler = RotatingFileHandler(
        log_file(),
        maxBytes=max_bytes,
        backupCount=1,  # Keep one backup file
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def log_shell_command(cmd: list[str] | str, prefix: str = "shell", returncode: int | None = None) -> None:
    """Append a shell command (gh, git) to the log file.

    Args:
        cmd: Command list or string to log
        prefix: Prefix for the log entry (e.g., "gh")
        returncode: If provided, logs as completion with return code
    """
    cmd_str = shlex.join(cmd) if isinstance(cmd, list) else cmd
    timestamp = datetime.now().strftime("%H:%M:%S")

    if returncode is not None:
        if returncode == 0:
            entry = f"{timestamp} INFO  {prefix} done: {cmd_str}\n"
        else:
            entry = f"{timestamp} WARN  {prefix} failed (rc={returncode}): {cmd_str}\n"
    else:
        entry = f"{timestamp} INFO  {prefix}: {cmd_str}\n"

    try:
        with open(log_file(), "a") as f:
            f.write(entry)
    except OSError:
        pass  # Silently skip if the log is not writable
