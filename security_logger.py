"""
Security Event Logging Module

Provides structured logging for security-related events including:
- Watchlist matches at levels with system logging enabled
- Manual approve/deny decisions on flagged visitors
- Form validation failures

SECURITY: Ensures visitor-supplied data is sanitized before logging.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field as dataclass_field

from log_utils import sanitize_mapping, truncate


@dataclass
class SecurityEvent:
    """Structured security event for logging"""
    event_type: str  # WATCHLIST_MATCH, VISITOR_APPROVED, VISITOR_DENIED, VALIDATION_FAILED
    severity: str  # INFO, WARNING, ERROR, CRITICAL
    field_name: str = ""
    error_code: str = ""
    sanitized_input: str = ""  # First 50 chars, sanitized
    source: str = ""  # Module/function that raised the event
    request_id: str = ""
    user_id: str = ""
    additional_context: Dict[str, Any] = dataclass_field(default_factory=dict)
    timestamp: str = dataclass_field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'timestamp': self.timestamp,
            'event_type': self.event_type,
            'severity': self.severity,
            'field': self.field_name,
            'error_code': self.error_code,
            'sanitized_input': self.sanitized_input,
            'source': self.source,
            'request_id': self.request_id,
            'user_id': self.user_id,
            'context': self.additional_context
        }

    def to_json(self) -> str:
        """Convert to JSON string"""
        return json.dumps(self.to_dict(), ensure_ascii=False)


class SecurityLogger:
    """Handles security event logging with structured output

    Features:
    - Separate security.log file
    - JSON-formatted events for easy parsing
    - Automatic sanitization of visitor-supplied data
    - Request ID correlation
    """

    _LEVELS = {
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: int = logging.INFO,
        enable_console: bool = False,
        enable_file: bool = True
    ):
        """Initialize security logger

        Args:
            log_dir: Directory for log files
            log_level: Minimum log level to record
            enable_console: Also output to console
            enable_file: Write to security.log file
        """
        self.log_dir = Path(log_dir)

        self.logger = logging.getLogger('security')
        self.logger.setLevel(log_level)
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - SECURITY - %(levelname)s - %(message)s'
        )

        if enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.log_dir / "security.log", encoding='utf-8')
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(log_level)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        self._request_id: str = ""
        self._user_id: str = ""

    def set_request_context(self, request_id: Optional[str] = None, user_id: str = "") -> str:
        """Set context for the current action

        Args:
            request_id: Unique request identifier (auto-generated if None)
            user_id: Staff member performing the action, if known

        Returns:
            The request ID being used
        """
        self._request_id = request_id or f"REQ-{uuid.uuid4().hex[:8]}"
        self._user_id = user_id
        return self._request_id

    def clear_request_context(self) -> None:
        self._request_id = ""
        self._user_id = ""

    def log_event(
        self,
        event_type: str,
        severity: str = "WARNING",
        field: str = "",
        error_code: str = "",
        input_value: str = "",
        source: str = "",
        additional_context: Optional[Dict[str, Any]] = None
    ) -> SecurityEvent:
        """Write one event and return it"""
        event = SecurityEvent(
            event_type=event_type,
            severity=severity,
            field_name=field,
            error_code=error_code,
            sanitized_input=truncate(input_value, 50) if input_value else "",
            source=source,
            request_id=self._request_id,
            user_id=self._user_id,
            additional_context=sanitize_mapping(additional_context)
        )
        self.logger.log(self._LEVELS.get(severity, logging.WARNING), event.to_json())
        return event

    def log_watchlist_match(
        self,
        visitor_name: str,
        visitor_id: str,
        matched_entry_ids: List[str],
        level_id: Optional[str],
        level_name: str,
        requires_manual_approval: bool
    ) -> SecurityEvent:
        """Log a visitor matching the watchlist"""
        return self.log_event(
            event_type="WATCHLIST_MATCH",
            severity="ERROR" if requires_manual_approval else "WARNING",
            input_value=visitor_name,
            source="intake_service.register_visit",
            additional_context={
                'visitor_id': visitor_id,
                'matched_entry_ids': matched_entry_ids,
                'level_id': level_id,
                'level_name': level_name,
                'requires_manual_approval': requires_manual_approval,
            }
        )

    def log_approval_decision(
        self,
        visitor_name: str,
        visitor_id: str,
        approved: bool,
        decided_by: str
    ) -> SecurityEvent:
        """Log a manual approve/deny decision"""
        return self.log_event(
            event_type="VISITOR_APPROVED" if approved else "VISITOR_DENIED",
            severity="WARNING",
            input_value=visitor_name,
            source="intake_service.approval",
            additional_context={'visitor_id': visitor_id, 'decided_by': decided_by}
        )

    def log_validation_failure(
        self,
        field: str,
        error_code: str,
        input_value: str,
        source: str = "",
        additional_context: Optional[Dict[str, Any]] = None
    ) -> SecurityEvent:
        """Log a form validation failure"""
        return self.log_event(
            event_type="VALIDATION_FAILED",
            severity="WARNING",
            field=field,
            error_code=error_code,
            input_value=input_value,
            source=source,
            additional_context=additional_context
        )


# Global security logger instance
_security_logger: Optional[SecurityLogger] = None


def get_security_logger(
    log_dir: str = "logs",
    enable_console: bool = False
) -> SecurityLogger:
    """Get or create the global security logger instance

    Args:
        log_dir: Directory for log files
        enable_console: Also output to console

    Returns:
        SecurityLogger instance
    """
    global _security_logger
    if _security_logger is None:
        _security_logger = SecurityLogger(
            log_dir=log_dir,
            enable_console=enable_console
        )
    return _security_logger


def reset_security_logger() -> None:
    """Reset the global security logger (for testing)"""
    global _security_logger
    _security_logger = None
