"""
FastAPI router for ingestion endpoints.

These are called by Apps Script / n8n pushers and are not session-protected.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from .collections import Collection
from .dependencies import get_ingest_service, resolve_collection
from .errors import InvalidBatchError
from .schemas import IngestResponse
from .service import IngestService

router = APIRouter()


@router.post("/ingest/{collection}", response_model=IngestResponse)
async def ingest_collection(
    request: Request,
    target: Collection = Depends(resolve_collection),
    service: IngestService = Depends(get_ingest_service),
) -> IngestResponse:
    """
    Merge a posted batch into the collection by id and rewrite its snapshots.
    """
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidBatchError("Body must be valid JSON.") from exc

    # File I/O is blocking; keep it off the event loop.
    result = await run_in_threadpool(service.ingest, target, payload)
    return IngestResponse(stored=result.stored, added=result.added, created=result.created)


@router.get("/ingest/{collection}")
async def read_collection(
    target: Collection = Depends(resolve_collection),
    service: IngestService = Depends(get_ingest_service),
) -> dict:
    records = await run_in_threadpool(service.read, target)
    return {target.field: records}
