"""Root logging configuration shared by the API app and the CLI."""

import logging

from .log_privacy import install_location_filter


def setup_logging(level: str = "INFO", redact_locations: bool = True) -> None:
    """Configure root logging, optionally redacting coordinates."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if redact_locations:
        install_location_filter()
