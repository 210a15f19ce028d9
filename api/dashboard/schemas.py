"""
Pydantic schemas for dashboard views.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

Lifecycle = Literal["active", "inactive", "dead"]
Status = Literal["healthy", "degraded", "failed", "paused"]


class AccessGrant(BaseModel):
    user: str
    role: Literal["owner", "editor", "viewer"]


class AutomationView(BaseModel):
    id: str
    name: str
    provider: Literal["apps-script", "n8n"]
    status: Status
    owner: str
    description: str
    tags: list[str] = Field(default_factory=list)
    last_run: str
    latency_ms: int
    success_rate: float
    lifecycle: Lifecycle
    sheet_url: str | None = None
    files: list[str] = Field(default_factory=list)
    department: str = "general"
    access: list[AccessGrant] = Field(default_factory=list)


class WorkflowView(BaseModel):
    id: str
    name: str
    owner: str
    status: Status
    last_run: str
    latency_ms: int
    success_rate: float
    lifecycle: Lifecycle
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


class LifecycleCounts(BaseModel):
    active: int = 0
    inactive: int = 0
    dead: int = 0


class DashboardSummary(BaseModel):
    total: int
    unique_users: int
    failing: int
    success_rate_pct: int
    lifecycle: LifecycleCounts


class DepartmentResponse(BaseModel):
    slug: str
    label: str
    automations: list[AutomationView]
    count: int
