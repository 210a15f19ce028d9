"""
The persisted collections and how each one shapes its records.
"""

from __future__ import annotations

from dataclasses import dataclass

from .records import Normalizer, Record


def normalize_apps_script(item: Record) -> Record:
    """
    Keep only the known Apps Script fields; drop values of the wrong type.
    """
    out: Record = {"id": item["id"]}
    for key in ("name", "owner"):
        if isinstance(item.get(key), str):
            out[key] = item[key]
    for key in ("createdAt", "updatedAt"):
        if item.get(key) is not None:
            out[key] = item[key]
    if isinstance(item.get("sheetUrl"), str):
        out["sheetUrl"] = item["sheetUrl"]
    if isinstance(item.get("files"), list):
        out["files"] = [f for f in item["files"] if isinstance(f, str)]
    return out


@dataclass(frozen=True)
class Collection:
    name: str
    field: str
    columns: tuple[str, ...]
    normalize: Normalizer | None = None
    # n8n exports post either {"workflows": [...]} or the bare array.
    accepts_bare_list: bool = False
    allows_empty: bool = True
    # Other collections appended to this one on read.
    read_with: tuple[str, ...] = ()

    @property
    def json_filename(self) -> str:
        return f"{self.name}.json"

    @property
    def csv_filename(self) -> str:
        return f"{self.name}.csv"


APPS_SCRIPT = Collection(
    name="apps-script",
    field="automations",
    columns=("id", "name", "owner", "createdAt", "updatedAt", "sheetUrl"),
    normalize=normalize_apps_script,
    read_with=("n8n",),
)

N8N = Collection(
    name="n8n",
    field="workflows",
    columns=("id", "name", "owner", "status", "createdAt", "updatedAt"),
    accepts_bare_list=True,
    allows_empty=False,
)

COLLECTIONS: dict[str, Collection] = {c.name: c for c in (APPS_SCRIPT, N8N)}


def get_collection(name: str) -> Collection | None:
    return COLLECTIONS.get((name or "").strip().lower())
