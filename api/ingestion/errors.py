"""
Ingestion failures.

Each error carries the HTTP status it maps to; `main.py` renders them as
`{"error": message}`.
"""

from __future__ import annotations


class IngestError(RuntimeError):
    status_code = 500


class InvalidBatchError(IngestError):
    """The request body is not JSON or has no usable batch."""

    status_code = 400


class StoreWriteError(IngestError):
    """The data directory or a snapshot file could not be written."""


class StoreParseError(IngestError):
    """A persisted JSON snapshot is corrupt."""
