"""Guards for the SQL rowmodel generates and the logs it writes.

- Table and column names are interpolated into statements, so they must be
  plain identifiers.
- Configuration values are type and range checked before use.
- Connection URLs and credentials are scrubbed from log records.
"""

import re
from typing import List, Any, Optional
import logging

IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')

_URL_CREDENTIALS = re.compile(r'(://[^:/\s]+):[^@\s]+@')
_SECRET_ASSIGNMENT = re.compile(
    r'(api_key|password|token|secret)\s*[=:]\s*[^\s,}]+', re.IGNORECASE
)


class SecurityError(Exception):
    """Raised when input would make generated SQL or logs unsafe."""
    pass


class QueryInjectionError(SecurityError, ValueError):
    """Raised when an identifier could smuggle SQL into a statement."""
    pass


class IdentifierValidator:
    """Checks names that end up verbatim in generated SQL.

    Table and column names cannot be bound as parameters, so they are checked
    once when an entity type is declared or described.
    """

    @staticmethod
    def _check(kind: str, name: Any) -> str:
        if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
            raise QueryInjectionError(f"{kind} name {name!r} is not a plain SQL identifier")
        return name

    @classmethod
    def validate_table_name(cls, table_name: str) -> str:
        """Return ``table_name`` if it is a plain identifier.

        Raises:
            QueryInjectionError: Otherwise
        """
        return cls._check('Table', table_name)

    @classmethod
    def validate_column_name(cls, column_name: str) -> str:
        # Dashes, spaces, quotes and dots are all rejected
        return cls._check('Column', column_name)


class InputValidator:
    """Validation of configuration values and scrubbing of log text."""

    @staticmethod
    def validate_config_value(key: str, value: Any,
                              expected_type: type = None,
                              allowed_values: List[Any] = None) -> Any:
        """
        Return ``value`` after checking its type and, optionally, its range.

        Args:
            key: Dotted setting name, used in the error message
            value: Value read from configuration
            expected_type: Required type
            allowed_values: Closed set of accepted values

        Raises:
            ValueError: If the value does not pass
        """
        if expected_type and not isinstance(value, expected_type):
            raise ValueError(
                f"Setting '{key}' must be {expected_type.__name__}, "
                f"not {type(value).__name__}"
            )

        if allowed_values and value not in allowed_values:
            raise ValueError(f"Setting '{key}' is {value!r}; expected one of {allowed_values}")

        return value

    @staticmethod
    def sanitize_log_message(message: str) -> str:
        """Mask URL credentials and ``password=...`` style secrets."""
        message = _URL_CREDENTIALS.sub(r'\1:***@', message)
        return _SECRET_ASSIGNMENT.sub(r'\1=***REDACTED***', message)


class SensitiveDataFilter(logging.Filter):
    """Scrubs the message and arguments of every record it sees; never drops one."""

    def filter(self, record: logging.LogRecord) -> bool:
        def scrub(value):
            # Non-string args keep their type so %d and friends still format
            return InputValidator.sanitize_log_message(value) if isinstance(value, str) else value

        record.msg = scrub(str(record.msg))
        if isinstance(record.args, dict):
            record.args = {k: scrub(v) for k, v in record.args.items()}
        elif record.args:
            record.args = tuple(scrub(arg) for arg in record.args)
        return True


def setup_secure_logging(logger_name: Optional[str] = None) -> logging.Logger:
    """
    Return the named logger with a ``SensitiveDataFilter`` attached.

    The filter goes on the logger itself and on any handlers it already has.
    """
    secure_logger = logging.getLogger(logger_name)
    sensitive_filter = SensitiveDataFilter()

    secure_logger.addFilter(sensitive_filter)
    for handler in secure_logger.handlers:
        handler.addFilter(sensitive_filter)

    return secure_logger
