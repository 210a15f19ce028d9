"""
Ingestion dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from .collections import Collection, get_collection
from .service import IngestService


def get_ingest_service(request: Request) -> IngestService:
    return request.app.state.ingest_service


def resolve_collection(collection: str) -> Collection:
    found = get_collection(collection)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown collection '{collection}'.",
        )
    return found
