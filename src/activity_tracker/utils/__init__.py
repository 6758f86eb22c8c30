"""Utility helpers."""

from .log_privacy import LocationPrivacyFilter, install_location_filter, redact_locations
from .logging_setup import setup_logging

__all__ = [
    "LocationPrivacyFilter",
    "install_location_filter",
    "redact_locations",
    "setup_logging",
]
