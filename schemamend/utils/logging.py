"""
schemamend logging utilities - session-based debug and audit logging.

Overview:
---------
Centralised logging configuration for recovery runs.  Provides session-based
file logging with unique identifiers, configurable verbosity, and truncated
structured lines for candidate attempts and raw model output.

Library modules only ever call ``logging.getLogger(__name__)``; nothing is
written anywhere until an entry point (the CLI) calls :func:`setup_logging`.

Log Location:
-------------
- Default: ~/.schemamend/logs/
- Each CLI run creates a timestamped log file with session ID
- A symlink 'schemamend.log' always points to the latest session
- Can be overridden via SCHEMAMEND_HOME_DIR or the ``log_dir`` argument

Log Levels:
-----------
- DEBUG: Raw text, every candidate attempt and why it was abandoned
- INFO: Recovery outcome summaries
- WARNING: Hardening ceilings hit (oversized input, candidate overflow)

Usage:
------
    from schemamend.utils.logging import get_logger, setup_logging

    log_file = setup_logging(level="DEBUG")
    logger = get_logger(__name__)
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

# ============================================================================
# Constants
# ============================================================================

ROOT_LOGGER = "schemamend"
SYMLINK_NAME = "schemamend.log"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Detailed format for file logging (includes line numbers)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(session_id)s | %(name)s:%(lineno)d | %(message)s"

_logging_initialised = False
_log_file_path: Optional[Path] = None
_session_id: Optional[str] = None


# ============================================================================
# Session handling
# ============================================================================

class SessionIdFilter(logging.Filter):
    """Add session_id to all log records."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = self.session_id  # type: ignore[attr-defined]
        return True


class SessionFormatter(logging.Formatter):
    """Formatter that adds session_id, defaulting to 'N/A' if not present."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id or "N/A"  # type: ignore[attr-defined]
        return super().format(record)


def generate_session_id() -> str:
    """Generate a short unique session ID (6 characters)."""
    return uuid.uuid4().hex[:6]


def generate_log_filename(session_id: str) -> str:
    """Generate a timestamped log filename with session ID."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"schemamend_{timestamp}_{session_id}.log"


# ============================================================================
# Setup
# ============================================================================

def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
    console_output: bool = False,
    quiet: bool = False,
) -> Path:
    """
    Initialise schemamend logging with a session file and optional console output.

    Parameters
    ----------
    level : str, optional
        Log level: DEBUG, INFO, WARNING, ERROR.  Defaults to the configured
        ``log_level`` (SCHEMAMEND_LOG_LEVEL).
    log_dir : Path, optional
        Directory for log files.  Defaults to the configured ``log_dir``.
    console_output : bool
        If True, also log to stderr.
    quiet : bool
        If True, suppress console output entirely.

    Returns
    -------
    Path
        Path to the log file being written to.
    """
    global _logging_initialised, _log_file_path, _session_id

    from schemamend.config import get_config

    cfg = get_config()
    _session_id = generate_session_id()

    if level is None:
        level = cfg.log_level
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_dir is None:
        log_dir = cfg.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / generate_log_filename(_session_id)
    _log_file_path = log_file

    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for f in root.filters[:]:
        root.removeFilter(f)

    root.setLevel(log_level)
    root.addFilter(SessionIdFilter(_session_id))

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(SessionFormatter(FILE_LOG_FORMAT, LOG_DATE_FORMAT))
    root.addHandler(file_handler)

    if console_output and not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(SessionFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
        root.addHandler(console_handler)

    root.propagate = False

    symlink_path = log_dir / SYMLINK_NAME
    try:
        if symlink_path.is_symlink() or symlink_path.exists():
            symlink_path.unlink()
        symlink_path.symlink_to(log_file.name)
    except OSError:
        # Symlinks are unavailable on some filesystems; the session file still exists.
        pass

    _logging_initialised = True

    root.info("=" * 80)
    root.info("schemamend logging session started")
    root.info(f"  Session ID: {_session_id}")
    root.info(f"  Log file: {log_file}")
    root.info(f"  Log level: {level.upper()}")
    root.info("=" * 80)

    return log_file


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``schemamend`` namespace.

    Sets up logging with defaults the first time it is called.
    """
    if not _logging_initialised:
        setup_logging()

    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def get_current_log_file() -> Optional[Path]:
    """Return the path to the current log file, if logging is initialised."""
    return _log_file_path


def get_session_id() -> Optional[str]:
    """Return the current session ID, if logging is initialised."""
    return _session_id


# ============================================================================
# Structured helpers
# ============================================================================

def _truncate(text: str, truncate_at: int) -> str:
    if len(text) > truncate_at:
        return text[:truncate_at] + f"... [TRUNCATED, {len(text)} chars total]"
    return text


def log_candidate_attempt(
    logger: logging.Logger,
    index: int,
    stage: str,
    error: Optional[str] = None,
    truncate_at: int = 300,
) -> None:
    """Log one candidate going through parse/coerce/decode."""
    if error is None:
        logger.debug(f"[candidate {index}] accepted at stage '{stage}'")
    else:
        logger.debug(f"[candidate {index}] abandoned at stage '{stage}': {_truncate(error, truncate_at)}")


def log_recovery_complete(
    logger: logging.Logger,
    target: str,
    success: bool,
    source: Optional[str] = None,
    attempts: Optional[int] = None,
) -> None:
    """Log a one-line recovery summary."""
    status = "SUCCEEDED" if success else "FAILED"
    msg = f"Recovery {status} for {target}"
    if source:
        msg += f" | source={source}"
    if attempts is not None:
        msg += f" | failed attempts={attempts}"
    if success:
        logger.info(msg)
    else:
        logger.warning(msg)


def log_text_content(
    logger: logging.Logger,
    source: str,
    text_content: str,
    truncate_at: int = 1000,
) -> None:
    """Log raw text under inspection (for debugging recovery issues)."""
    logger.debug(
        f"TEXT CONTENT (from {source}, {len(text_content)} chars):\n{_truncate(text_content, truncate_at)}"
    )
