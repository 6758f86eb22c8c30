"""Log filter that keeps workout locations out of logs.

Routes reveal where users live and train. This filter redacts, before a
record is written:
- latitude/longitude fields (lat=..., "longitude": ...)
- bare coordinate pairs like 47.3769, 8.5417
- email addresses

Usage:
    from activity_tracker.utils.log_privacy import install_location_filter

    # Apply to all loggers at application startup
    install_location_filter()
"""

import logging
import re
from typing import Any, Optional


class LocationPrivacyFilter(logging.Filter):
    """Logging filter that redacts coordinates from log messages."""

    # Order matters: named fields first, then bare pairs
    PATTERNS: list[tuple[re.Pattern, str]] = [
        (
            re.compile(r'(\b(?:lat|latitude)["\']?\s*[:=]\s*["\']?)-?\d{1,2}(?:\.\d+)?', re.IGNORECASE),
            r'\1[REDACTED]',
        ),
        (
            re.compile(r'(\b(?:lon|lng|longitude)["\']?\s*[:=]\s*["\']?)-?\d{1,3}(?:\.\d+)?', re.IGNORECASE),
            r'\1[REDACTED]',
        ),
        # Pairs need at least 3 decimals so ordinary numbers survive
        (
            re.compile(r'(?<![\w.])-?\d{1,2}\.\d{3,}\s*,\s*-?\d{1,3}\.\d{3,}(?![\w.])'),
            '[REDACTED_COORDS]',
        ),
        (
            re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'),
            '[REDACTED_EMAIL]',
        ),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact the record in place. Always lets it through."""
        if record.msg:
            record.msg = self._redact(str(record.msg))

        if record.args:
            record.args = self._redact_args(record.args)

        return True

    def _redact(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _redact_args(self, args: Any) -> Any:
        if isinstance(args, str):
            return self._redact(args)
        elif isinstance(args, tuple):
            return tuple(self._redact_args(arg) for arg in args)
        elif isinstance(args, list):
            return [self._redact_args(arg) for arg in args]
        elif isinstance(args, dict):
            return {k: self._redact_args(v) for k, v in args.items()}
        else:
            # Keep non-strings as they are unless their text needs redaction
            str_val = str(args)
            redacted = self._redact(str_val)
            return redacted if redacted != str_val else args


def install_location_filter(logger_name: Optional[str] = None) -> LocationPrivacyFilter:
    """Install the location filter on loggers.

    Args:
        logger_name: If provided, install only on the named logger.
                    If None, install on the root logger and its handlers.

    Returns:
        The installed filter instance.
    """
    privacy_filter = LocationPrivacyFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(privacy_filter)
    else:
        root_logger = logging.getLogger()
        root_logger.addFilter(privacy_filter)

        # Records from child loggers skip root filters, so handlers get it too
        for handler in root_logger.handlers:
            handler.addFilter(privacy_filter)

    return privacy_filter


def redact_locations(text: str) -> str:
    """Redact a string without going through the logging system."""
    return LocationPrivacyFilter()._redact(text)
