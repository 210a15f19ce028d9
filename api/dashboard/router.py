"""
Dashboard read endpoints (session-protected).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from auth import dependencies as auth_dependencies
from ingestion.dependencies import get_ingest_service
from ingestion.service import IngestService

from . import schemas, views

router = APIRouter()


async def _load_automations(service: IngestService) -> list[schemas.AutomationView]:
    snapshots = await run_in_threadpool(service.read_all)
    return views.build_automations(snapshots["apps-script"], snapshots["n8n"])


@router.get("/automations")
async def list_automations(
    lifecycle: str = Query(default="all", pattern="^(all|active|inactive|dead)$"),
    q: str = Query(default="", max_length=200),
    service: IngestService = Depends(get_ingest_service),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    automations = views.filter_automations(
        await _load_automations(service),
        lifecycle=lifecycle,
        search=q,
    )
    return {"automations": automations, "count": len(automations)}


@router.get("/workflows")
async def list_workflows(
    service: IngestService = Depends(get_ingest_service),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    snapshots = await run_in_threadpool(service.read_all)
    workflows = views.build_workflows(snapshots["n8n"])
    return {"workflows": workflows, "count": len(workflows)}


@router.get("/departments/{dept}", response_model=schemas.DepartmentResponse)
async def department(
    dept: str,
    service: IngestService = Depends(get_ingest_service),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.DepartmentResponse:
    slug = (dept or "").strip().lower() or "general"
    matched = [a for a in await _load_automations(service) if views.in_department(a, slug)]
    return schemas.DepartmentResponse(
        slug=slug,
        label=views.department_label(slug),
        automations=matched,
        count=len(matched),
    )


@router.get("/dashboard/summary", response_model=schemas.DashboardSummary)
async def summary(
    service: IngestService = Depends(get_ingest_service),
    _: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.DashboardSummary:
    return views.summarize(await _load_automations(service))
