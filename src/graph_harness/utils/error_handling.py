"""
Error taxonomy and structured error logging for the harness.

Remote failures are classified by message and operation kind only. The harness
never keeps a private table of server error codes.
"""

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class HarnessError(Exception):
    """Base class for every error raised by the harness"""


class RemoteError(HarnessError):
    """Remote API failure that could not be classified more precisely"""

    def __init__(self, message: str, messages: Optional[List[str]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.messages = messages or [message]
        self.status_code = status_code


class ValidationError(RemoteError):
    """Remote API rejected the input shape or a business rule"""


class NotFoundError(RemoteError):
    """Identifier does not resolve to an entity"""


class RemoteQueryError(RemoteError):
    """Selector or filter rejected by the remote schema"""


class MissingIdentifierError(HarnessError):
    """Local precondition failure: an operation needs a non-empty identifier"""


class PollingTimeoutError(HarnessError, TimeoutError):
    """Polling assertion exceeded its bound; carries the last observed failure"""

    def __init__(self, message: str, last_error: Optional[BaseException] = None, attempts: int = 0):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class ClassificationError(HarnessError):
    """Test carries zero or several lifecycle tag tokens"""


class CleanupError(HarnessError):
    """Non-fatal failure while releasing a test's entities"""

    def __init__(self, message: str, entity: str = "", identifier: Optional[str] = None):
        super().__init__(message)
        self.entity = entity
        self.identifier = identifier


# Read-side variables; complaints about them mean the query shape was wrong
_QUERY_VARIABLE_PATTERN = re.compile(r"\$(filter|limit)\b")
_SCHEMA_PATTERNS = [
    re.compile(r"cannot query field", re.IGNORECASE),
    re.compile(r"unknown argument", re.IGNORECASE),
    re.compile(r"unknown type", re.IGNORECASE),
    re.compile(r"is not defined by type", re.IGNORECASE),
    re.compile(r"syntax error", re.IGNORECASE),
]
_NOT_FOUND_PATTERNS = [
    re.compile(r"\bnot found\b", re.IGNORECASE),
    re.compile(r"\bno such\b", re.IGNORECASE),
]


def classify_remote_error(messages: List[str], operation: str, status_code: Optional[int] = None) -> RemoteError:
    """
    Map remote error messages onto the harness taxonomy.

    Args:
        messages: Error messages reported by the remote API
        operation: "query" for reads, "mutation" for writes

    Returns:
        The classified exception instance (not raised)
    """
    text = "; ".join(messages) if messages else "Remote API returned an error without a message"

    if any(_QUERY_VARIABLE_PATTERN.search(m) for m in messages):
        return RemoteQueryError(text, messages, status_code)
    if any(p.search(m) for p in _SCHEMA_PATTERNS for m in messages):
        return RemoteQueryError(text, messages, status_code)
    if any(p.search(m) for p in _NOT_FOUND_PATTERNS for m in messages):
        return NotFoundError(text, messages, status_code)
    if operation == "mutation":
        return ValidationError(text, messages, status_code)
    return RemoteQueryError(text, messages, status_code)


class ErrorHandlingConfig:
    """Centralized configuration for error logging behavior"""

    SANITIZE_SENSITIVE_FIELDS = True
    SENSITIVE_FIELD_PATTERNS = [
        'password', 'token', 'key', 'secret', 'authorization',
        'auth', 'bearer', 'credential', 'assertion'
    ]
    MAX_BODY_LOG_SIZE = 5000

    @classmethod
    def is_sensitive_field(cls, field_name: str) -> bool:
        """Check if a field contains sensitive data"""
        field_lower = field_name.lower()
        return any(pattern in field_lower for pattern in cls.SENSITIVE_FIELD_PATTERNS)

    @classmethod
    def sanitize_data(cls, data: Union[Dict, str, Any]) -> Any:
        """Recursively sanitize sensitive data from logs"""
        if not cls.SANITIZE_SENSITIVE_FIELDS:
            return data

        if isinstance(data, dict):
            return {
                key: "***REDACTED***" if cls.is_sensitive_field(str(key)) else cls.sanitize_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, list):
            return [cls.sanitize_data(item) for item in data]
        elif isinstance(data, str) and len(data) > cls.MAX_BODY_LOG_SIZE:
            return data[:cls.MAX_BODY_LOG_SIZE] + "...[TRUNCATED]"
        else:
            return data


class StructuredLogger:
    """Structured logging with consistent format and context"""

    @staticmethod
    def log_error(
        error_type: str,
        message: str,
        exception: Optional[BaseException] = None,
        extra_context: Optional[Dict] = None,
        level: int = logging.ERROR
    ) -> str:
        """Log a structured error entry and return its trace id"""
        trace_id = str(uuid.uuid4())[:8]

        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "trace_id": trace_id,
            "error_type": error_type,
            "message": message,
            "level": logging.getLevelName(level)
        }

        if exception is not None:
            log_entry["exception"] = {
                "type": type(exception).__name__,
                "details": str(exception),
            }

        if extra_context:
            log_entry["context"] = ErrorHandlingConfig.sanitize_data(extra_context)

        logger.log(level, json.dumps(log_entry, indent=2, default=str))
        return trace_id
