"""
Pure record helpers: merge-by-id, CSV projection, timestamps, lifecycle.

Nothing here touches the filesystem; `store.py` owns I/O.
"""

from __future__ import annotations

import csv
import io
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Sequence

ACTIVE_WINDOW = timedelta(minutes=40)
INACTIVE_WINDOW = timedelta(hours=48)

Record = dict[str, Any]
Normalizer = Callable[[Record], Record]

# Python 3.10 fromisoformat only takes 3 or 6 fraction digits.
_FRACTION = re.compile(r"([Tt ]\d{2}:\d{2}:\d{2})\.(\d+)")


def has_valid_id(item: Any) -> bool:
    return isinstance(item, dict) and isinstance(item.get("id"), str) and bool(item["id"])


def merge_records(
    existing: Iterable[Any],
    incoming: Iterable[Any],
    normalize: Normalizer | None = None,
) -> list[Record]:
    """
    Upsert `incoming` into `existing` by id, last write wins.

    Updated ids keep their original position; new ids are appended. Items
    without a non-empty string id are skipped.
    """
    merged: dict[str, Record] = {}
    for source in (existing, incoming):
        for item in source:
            if not has_valid_id(item):
                continue
            merged[item["id"]] = normalize(item) if normalize else item
    return list(merged.values())


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 string (or epoch milliseconds) into an aware datetime.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    raw = value.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    raw = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", raw, count=1)
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def iso_timestamp(value: Any) -> str:
    """
    Render as `YYYY-MM-DDTHH:MM:SS.mmmZ`, or "" when absent/unparseable.
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    utc = parsed.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _csv_cell(record: Record, column: str, timestamp_columns: frozenset[str]) -> str:
    value = record.get(column)
    if column in timestamp_columns:
        return iso_timestamp(value)
    if value is None:
        return ""
    return str(value)


def render_csv(
    records: Sequence[Record],
    columns: Sequence[str],
    timestamp_columns: Iterable[str] = ("createdAt", "updatedAt"),
) -> str:
    """
    Header row unquoted, then one fully-quoted row per record.
    """
    ts = frozenset(timestamp_columns)
    buf = io.StringIO()
    buf.write(",".join(columns) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        writer.writerow([_csv_cell(record, c, ts) for c in columns])
    return buf.getvalue()


def last_seen(record: Record) -> Any:
    return record.get("updatedAt") or record.get("createdAt")


def classify_lifecycle(timestamp: Any, now: datetime | None = None) -> str:
    """
    active (<= 40 min old), inactive (<= 48 h), else dead.

    A missing timestamp counts as "now"; an unparseable one as dead.
    """
    now = now or datetime.now(timezone.utc)
    if timestamp is None or timestamp == "":
        return "active"

    seen = parse_timestamp(timestamp)
    if seen is None:
        return "dead"

    age = now - seen
    if age <= ACTIVE_WINDOW:
        return "active"
    if age <= INACTIVE_WINDOW:
        return "inactive"
    return "dead"
