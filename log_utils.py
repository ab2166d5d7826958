"""
Shared logging utilities for the Visitor Watchlist System

Every module that writes visitor- or watchlist-supplied text to a log goes
through this sanitiser so that a crafted name or email address cannot
forge log lines.
"""

import re
from typing import Any, Dict, Optional

MAX_LOG_VALUE_LENGTH = 500

_CONTROL_CHARS = re.compile(r'[\r\n\x00-\x1f\x7f-\x9f]')
_WHITESPACE_RUN = re.compile(r'\s+')


def sanitize_for_logging(text: Any) -> str:
    """Sanitize user input for safe logging, preventing log injection

    Removes newlines, carriage returns, and other control characters
    that could be used to inject fake log entries.

    Args:
        text: User input text

    Returns:
        Sanitized text safe for logging
    """
    if text is None or text == '':
        return ''
    sanitized = _CONTROL_CHARS.sub(' ', str(text))
    sanitized = _WHITESPACE_RUN.sub(' ', sanitized).strip()
    return sanitized[:MAX_LOG_VALUE_LENGTH]


def truncate(text: str, max_length: int) -> str:
    """Sanitize and cut to max_length, marking the cut"""
    sanitized = sanitize_for_logging(text)
    if len(sanitized) > max_length:
        return sanitized[:max_length] + "...(truncated)"
    return sanitized


def sanitize_mapping(context: Optional[Dict[str, Any]], max_length: int = 200) -> Dict[str, Any]:
    """Sanitize every value of a context dictionary for JSON logging

    Numbers, booleans and None pass through; strings are sanitized; nested
    dicts are handled recursively and lists item by item.
    """
    if not context:
        return {}

    sanitized: Dict[str, Any] = {}
    for key, value in context.items():
        safe_key = truncate(str(key), 100) if key else "unknown"
        if value is None or isinstance(value, (bool, int, float)):
            sanitized[safe_key] = value
        elif isinstance(value, dict):
            sanitized[safe_key] = sanitize_mapping(value, max_length)
        elif isinstance(value, (list, tuple)):
            sanitized[safe_key] = [
                item if item is None or isinstance(item, (bool, int, float))
                else truncate(str(item), max_length)
                for item in value
            ]
        else:
            sanitized[safe_key] = truncate(str(value), max_length)
    return sanitized
