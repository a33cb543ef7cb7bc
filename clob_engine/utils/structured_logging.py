"""
Structured JSON logging with credential redaction.

Signing code handles private keys, API secrets and passphrases; the filter
here keeps them out of every log line, exception text and structured field.
"""

import logging
import re
import uuid
from typing import Any, Optional
from datetime import datetime, timezone
from contextvars import ContextVar

import orjson

# Correlation ID for the current task/thread
_correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

REDACTED = "[REDACTED]"


class CredentialRedactionFilter(logging.Filter):
    """
    Filter that redacts credentials from log records.

    - Private keys (exactly 64 hex chars, with or without 0x)
    - API secrets, passphrases and L2 signatures in key=value form
    - Long base64 blobs (likely secrets)

    Records are never dropped, only sanitized.

    Usage:
        >>> handler = logging.StreamHandler()
        >>> handler.addFilter(CredentialRedactionFilter())
    """

    PRIVATE_KEY_PATTERN = re.compile(r'(?<![0-9a-fA-Fx])(?:0x)?[0-9a-fA-F]{64}(?![0-9a-fA-F])')
    # Keep the prefix (secret=) and replace only the value
    API_SECRET_PATTERN = re.compile(
        r'((?:secret|passphrase|password|private_key|poly_signature|poly_passphrase)'
        r'["\']?\s*[:=]\s*["\']?)[A-Za-z0-9+/_\-=]{8,}["\']?',
        re.IGNORECASE
    )
    BASE64_SECRET_PATTERN = re.compile(r'[A-Za-z0-9+/_\-]{40,}={0,2}')

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self.redact(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._redact_value(arg) for arg in record.args)

        if record.exc_info and not record.exc_text:
            # Formatters reuse exc_text
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = self.redact(record.exc_text)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            record.extra_fields = {k: self._redact_value(v) for k, v in extra_fields.items()}

        return True

    def _redact_value(self, value: Any) -> Any:
        # Numbers stay numbers so %d/%f formatting keeps working
        if isinstance(value, (int, float)) or value is None:
            return value
        return self.redact(str(value))

    def redact(self, text: str) -> str:
        """
        Redact all credential patterns from text.

        Args:
            text: Text to redact

        Returns:
            Text with credentials redacted
        """
        if not text:
            return text

        text = self.PRIVATE_KEY_PATTERN.sub(REDACTED, text)
        text = self.API_SECRET_PATTERN.sub(r'\1' + REDACTED, text)

        def redact_base64(match: re.Match) -> str:
            # Hex is left alone: order hashes and signatures are public
            blob = match.group(0)
            if re.fullmatch(r'(0x)?[0-9a-fA-F]+', blob):
                return blob
            return blob[:8] + '...' + REDACTED

        return self.BASE64_SECRET_PATTERN.sub(redact_base64, text)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line for log aggregators.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._redactor = CredentialRedactionFilter()

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = _correlation_id.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": self._redactor.redact(str(record.exc_info[1])),
                "traceback": record.exc_text or self.formatException(record.exc_info)
            }

        return orjson.dumps(log_data, default=str).decode()


class StructuredLogger:
    """
    Logger wrapper that attaches event name and fields to each record.

    Example:
        >>> logger = get_logger("clob_engine.client")
        >>> logger.info("order_signed", order_hash="0xabc...", side="BUY")
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        event: str,
        message: Optional[str] = None,
        exc_info: bool = False,
        **fields
    ) -> None:
        log_message = f"{event}: {message}" if message else event

        extra_fields = {"event": event}
        extra_fields.update(fields)

        self.logger.log(level, log_message, exc_info=exc_info,
                        extra={'extra_fields': extra_fields})

    def debug(self, event: str, message: Optional[str] = None, **fields) -> None:
        self._log(logging.DEBUG, event, message, **fields)

    def info(self, event: str, message: Optional[str] = None, **fields) -> None:
        self._log(logging.INFO, event, message, **fields)

    def warning(self, event: str, message: Optional[str] = None, **fields) -> None:
        self._log(logging.WARNING, event, message, **fields)

    def error(self, event: str, message: Optional[str] = None, **fields) -> None:
        """
        Log error event.

        Example:
            >>> logger.error(
            ...     "order_rejected",
            ...     "Order rejected by exchange",
            ...     order_id="abc123",
            ...     reason="not enough balance / allowance"
            ... )
        """
        self._log(logging.ERROR, event, message, **fields)

    def exception(self, event: str, message: Optional[str] = None, **fields) -> None:
        """Log error event with traceback."""
        self._log(logging.ERROR, event, message, exc_info=True, **fields)


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for current context.

    Args:
        correlation_id: Correlation ID (generates one if None)

    Returns:
        The correlation ID set
    """
    if correlation_id is None:
        correlation_id = f"req_{uuid.uuid4().hex[:12]}"

    _correlation_id.set(correlation_id)
    return correlation_id


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return _correlation_id.get()


def clear_correlation_id() -> None:
    """Clear correlation ID from current context."""
    _correlation_id.set(None)


def get_logger(name: str) -> StructuredLogger:
    """Get structured logger instance."""
    return StructuredLogger(name)
