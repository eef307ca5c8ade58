"""
Agent Error Handler - Captures and logs non-fatal handler errors.

Instead of silently catching exceptions, agents call log_pipeline_error()
to record what went wrong. Errors are kept in a bounded in-process buffer
and surfaced through the health endpoint and bulk-analysis responses.

Usage:
    from smartcrm.agents.error_handler import log_pipeline_error, safe_execute

    # Option 1: Manual logging
    try:
        result = risky_operation()
    except Exception as e:
        log_pipeline_error(phase="scoring", error=e, contact_id=cid)
        result = fallback_value

    # Option 2: Safe execution wrapper
    result = safe_execute(
        risky_operation, args=(arg1, arg2),
        phase="scoring", contact_id=cid,
        fallback=default_value
    )
"""

import logging
import threading
import traceback
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger("smartcrm.error_handler")

MAX_RECENT_ERRORS = 200

_recent_errors = deque(maxlen=MAX_RECENT_ERRORS)
_lock = threading.Lock()
_next_id = 1


def log_pipeline_error(
    phase: str,
    error: Exception = None,
    error_message: str = None,
    contact_id: str = None,
    agent_name: str = None,
    context: dict = None,
    severity: str = "warning",
) -> dict:
    """Log a non-fatal error to the logger and the recent-errors buffer.

    Args:
        phase: Where the error occurred (scoring, compose, sdr, duplicates, etc.)
        error: The exception object (optional if error_message provided)
        error_message: Human-readable error description
        contact_id: Associated contact ID
        agent_name: Which agent encountered the error
        context: Additional context dict
        severity: "warning", "error", or "critical"

    Returns:
        The stored error record.
    """
    global _next_id
    msg = error_message or (str(error) if error else "Unknown error")
    error_type = type(error).__name__ if error else "UnknownError"

    log_extra = {
        "phase": phase,
        "agent_name": agent_name or "",
        "contact_id": contact_id or "",
    }

    if severity == "critical":
        logger.critical("Handler error in %s: %s", phase, msg, extra=log_extra)
    elif severity == "error":
        logger.error("Handler error in %s: %s", phase, msg, extra=log_extra)
    else:
        logger.warning("Handler error in %s: %s", phase, msg, extra=log_extra)

    with _lock:
        record = {
            "id": _next_id,
            "phase": phase,
            "contact_id": contact_id,
            "agent_name": agent_name,
            "error_type": error_type,
            "error_message": msg,
            "context": context or {},
            "severity": severity,
            "resolved": False,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        _next_id += 1
        _recent_errors.append(record)
    return record


def safe_execute(
    fn: Callable,
    args: tuple = (),
    kwargs: dict = None,
    phase: str = "unknown",
    agent_name: str = None,
    contact_id: str = None,
    fallback: Any = None,
    severity: str = "warning",
) -> Any:
    """Execute a function with automatic error capture.

    If the function raises, the error is logged and the fallback value is returned.

    Returns:
        The function's return value, or fallback if it raised.
    """
    kwargs = kwargs or {}
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        log_pipeline_error(
            phase=phase,
            error=e,
            contact_id=contact_id,
            agent_name=agent_name,
            context={"function": fn.__name__, "traceback": traceback.format_exc()[-500:]},
            severity=severity,
        )
        return fallback


def get_errors(phase: str = None, severity: str = None,
               unresolved_only: bool = True) -> list:
    """Get recent errors, newest first, optionally filtered."""
    with _lock:
        errors = list(_recent_errors)

    if phase:
        errors = [e for e in errors if e["phase"] == phase]
    if severity:
        errors = [e for e in errors if e["severity"] == severity]
    if unresolved_only:
        errors = [e for e in errors if not e["resolved"]]

    return [dict(e) for e in reversed(errors)]


def resolve_error(error_id: int) -> bool:
    """Mark an error as resolved. Returns False if the id is unknown."""
    with _lock:
        for record in _recent_errors:
            if record["id"] == error_id:
                record["resolved"] = True
                return True
    logger.error("Failed to resolve error %s: not found", error_id)
    return False


def clear_errors():
    """Drop every stored error."""
    with _lock:
        _recent_errors.clear()
