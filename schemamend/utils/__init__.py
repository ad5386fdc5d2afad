"""Cross-cutting helpers for schemamend (logging)."""

from .logging import (
    get_current_log_file,
    get_logger,
    get_session_id,
    log_candidate_attempt,
    log_recovery_complete,
    log_text_content,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_current_log_file",
    "get_session_id",
    "log_candidate_attempt",
    "log_recovery_complete",
    "log_text_content",
]
