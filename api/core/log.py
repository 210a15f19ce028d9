"""
Logging setup.

Modules log through `logging.getLogger(__name__)` with event-style messages
(`ingest_stored collection=n8n stored=3`). This only wires the root handler.
"""

from __future__ import annotations

import logging

from .config import env_str

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str | None = None) -> None:
    name = (level or env_str("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
