"""
Read-time projections of stored records for the dashboard.

Nothing here is persisted: lifecycle and status are derived again on every
request from the raw snapshot and the current time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from ingestion.records import Record, classify_lifecycle, last_seen

from . import schemas

# Placeholder run metrics until the pushers report real ones.
DEFAULT_LATENCY_MS = 420
DEFAULT_SUCCESS_RATE = 0.99

DEPARTMENT_LABELS = {
    "operations": "Operations",
    "customer-service": "Customer Service",
    "marketing": "Marketing",
}

LIFECYCLES = ("active", "inactive", "dead")


def normalize_status(raw: Any) -> str:
    if raw == "failed":
        return "failed"
    if raw in ("paused", "inactive"):
        return "paused"
    return "healthy"


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _now_iso(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def to_automation(record: Record, *, provider: str, now: datetime) -> schemas.AutomationView:
    if record.get("provider") == "n8n":
        provider = "n8n"
    is_n8n = provider == "n8n"
    tags = _string_list(record.get("tags"))

    deployments = record.get("deployments")
    first_deployment = deployments[0] if isinstance(deployments, list) and deployments else {}
    description = (
        (first_deployment.get("description") if isinstance(first_deployment, dict) else None)
        or record.get("notes")
        or ("n8n workflow" if is_n8n else "Google Apps Script project")
    )

    owner = str(record.get("owner") or "Unknown")
    last_run = last_seen(record) or _now_iso(now)
    return schemas.AutomationView(
        id=f"{'n8n' if is_n8n else 'gs'}-{record.get('id')}",
        name=str(record.get("name") or ("Untitled workflow" if is_n8n else "Untitled script")),
        provider=provider,
        status=normalize_status(record.get("status")),
        owner=owner,
        description=str(description),
        tags=(tags or ["n8n"]) if is_n8n else ["Apps Script"],
        last_run=str(last_run),
        latency_ms=DEFAULT_LATENCY_MS,
        success_rate=DEFAULT_SUCCESS_RATE,
        lifecycle=classify_lifecycle(last_run, now),
        sheet_url=record.get("sheetUrl") if isinstance(record.get("sheetUrl"), str) else None,
        files=_string_list(record.get("files")),
        department=str(record.get("department") or (tags[0] if tags else None) or "general"),
        access=[schemas.AccessGrant(user=str(record.get("owner") or "Owner"), role="owner")],
    )


def to_workflow(record: Record, *, now: datetime) -> schemas.WorkflowView:
    last_run = last_seen(record) or _now_iso(now)
    return schemas.WorkflowView(
        id=f"n8n-{record.get('id')}",
        name=str(record.get("name") or "Untitled workflow"),
        owner=str(record.get("owner") or "Unknown"),
        status=normalize_status(record.get("status")),
        last_run=str(last_run),
        latency_ms=DEFAULT_LATENCY_MS,
        success_rate=DEFAULT_SUCCESS_RATE,
        lifecycle=classify_lifecycle(last_run, now),
        tags=_string_list(record.get("tags")),
        notes=str(record.get("notes") or ""),
    )


def build_automations(
    apps_script: Iterable[Record],
    n8n: Iterable[Record],
    *,
    now: datetime | None = None,
) -> list[schemas.AutomationView]:
    now = now or datetime.now(timezone.utc)
    views = [to_automation(r, provider="apps-script", now=now) for r in apps_script]
    views.extend(to_automation(r, provider="n8n", now=now) for r in n8n)
    return views


def build_workflows(n8n: Iterable[Record], *, now: datetime | None = None) -> list[schemas.WorkflowView]:
    now = now or datetime.now(timezone.utc)
    return [to_workflow(r, now=now) for r in n8n]


def filter_automations(
    automations: Iterable[schemas.AutomationView],
    *,
    lifecycle: str = "all",
    search: str = "",
) -> list[schemas.AutomationView]:
    selected = [a for a in automations if lifecycle == "all" or a.lifecycle == lifecycle]
    term = (search or "").strip().lower()
    if not term:
        return selected
    return [
        a
        for a in selected
        if term in a.name.lower()
        or term in a.owner.lower()
        or any(term in t.lower() for t in a.tags)
    ]


def department_label(slug: str) -> str:
    if slug in DEPARTMENT_LABELS:
        return DEPARTMENT_LABELS[slug]
    return " ".join(w[:1].upper() + w[1:] for w in slug.split("-"))


def in_department(automation: schemas.AutomationView, slug: str) -> bool:
    # Only the first dash becomes a space: "customer-service" -> "customer service".
    needle = slug.replace("-", " ", 1).lower()
    return (
        needle in (automation.department or "").lower()
        or needle in automation.name.lower()
        or any(needle in t.lower() for t in automation.tags)
    )


def summarize(automations: list[schemas.AutomationView]) -> schemas.DashboardSummary:
    users = {grant.user for a in automations for grant in a.access}
    counts = {name: 0 for name in LIFECYCLES}
    for a in automations:
        counts[a.lifecycle] = counts.get(a.lifecycle, 0) + 1

    mean_rate = sum(a.success_rate for a in automations) / max(len(automations), 1)
    return schemas.DashboardSummary(
        total=len(automations),
        unique_users=len(users),
        failing=sum(1 for a in automations if a.status == "failed"),
        success_rate_pct=round(mean_rate * 100),
        lifecycle=schemas.LifecycleCounts(**counts),
    )
