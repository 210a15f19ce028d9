"""
Ingestion API schemas (response models).

Request bodies are read raw: malformed batches must answer 400 `{"error"}`
rather than FastAPI's 422 validation payload.
"""

from __future__ import annotations

from pydantic import BaseModel


class IngestResponse(BaseModel):
    stored: int
    added: int
    created: int
