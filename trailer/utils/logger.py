"""Secure logging utilities for trailer.

Provides sanitized logging that removes sensitive information like tokens,
emails, and credentials embedded in URLs before outputting to logs.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger('trailer')


def set_log_level(level: str) -> None:
    """Apply a level name such as ``DEBUG`` to the trailer logger."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def sanitize_text(text: str) -> str:
    """Remove sensitive information from text.

    Args:
        text: Input text that may contain sensitive data

    Returns:
        Sanitized text with sensitive patterns replaced
    """
    if not text:
        return text

    # Credentials embedded in URLs, before the email pattern eats "pass@host"
    text = re.sub(r'(https?://)[^/\s:@]+:[^/\s@]+@', r'\1<credentials>@', text)

    # Email addresses (TestRail usernames)
    text = re.sub(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}', '<email>', text)

    # API keys and tokens
    text = re.sub(r'[a-zA-Z0-9]{32,}', '<token>', text)

    # Long hex strings (likely hashes or tokens)
    text = re.sub(r'\b[0-9a-f]{24,}\b', '<hash>', text, flags=re.IGNORECASE)

    return text


def safe_json(obj: Any, max_length: int = 1000) -> str:
    """Safely serialize object to JSON with sensitive data sanitized.

    Args:
        obj: Object to serialize
        max_length: Maximum length of output string

    Returns:
        Sanitized JSON string
    """
    try:
        json_str = json.dumps(obj, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return "<unable to serialize>"

    sanitized = sanitize_text(json_str)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [truncated]"
    return sanitized


def log_info(message: str, **kwargs) -> None:
    """Log info message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.info(f"{message} | Context: {context}")
    else:
        logger.info(message)


def log_warning(message: str, **kwargs) -> None:
    """Log warning message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.warning(f"{message} | Context: {context}")
    else:
        logger.warning(message)


def log_error(message: str, **kwargs) -> None:
    """Log error message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.error(f"{message} | Context: {context}")
    else:
        logger.error(message)


def log_debug(message: str, **kwargs) -> None:
    """Log debug message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.debug(f"{message} | Context: {context}")
    else:
        logger.debug(message)


def log_api_response(operation: str, status_code: int, response_data: Optional[Any] = None) -> None:
    """Log API response with sanitized data.

    Args:
        operation: Description of the API operation
        status_code: HTTP status code
        response_data: Optional response data to log (will be sanitized)
    """
    if response_data:
        sanitized_data = safe_json(response_data, max_length=500)
        log_debug(f"API {operation} completed",
                  status_code=status_code,
                  response_preview=sanitized_data)
    else:
        log_debug(f"API {operation} completed", status_code=status_code)


def log_run_operation(operation: str, run_id: Optional[int] = None, **kwargs) -> None:
    """Log run-related operations with sanitized context.

    Args:
        operation: Description of the run operation
        run_id: Optional TestRail run ID
        **kwargs: Additional context to log
    """
    context: Dict[str, Any] = {"operation": operation}
    if run_id:
        context["run_id"] = run_id
    context.update(kwargs)

    log_info(f"Run operation: {operation}", **context)


def log_reconcile_progress(stage: str, **kwargs) -> None:
    """Log reconciliation progress through its passes."""
    log_info(f"Reconcile progress: {stage}", **kwargs)
