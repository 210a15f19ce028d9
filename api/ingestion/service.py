"""
Ingestion "service layer".

This file contains logic that is independent of FastAPI's routing layer:
- Validate the posted batch for a collection
- Load the existing snapshot, merge by id, persist JSON + CSV
- Read snapshots back (optionally combined with sibling collections)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .collections import COLLECTIONS, Collection
from .errors import InvalidBatchError
from .records import Record, merge_records
from .store import CollectionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    collection: str
    stored: int
    added: int
    created: int


def extract_batch(collection: Collection, payload: Any) -> list[Any]:
    """
    Pull the record list out of a request body, or raise InvalidBatchError.
    """
    batch = payload.get(collection.field) if isinstance(payload, dict) else None
    if batch is None and collection.accepts_bare_list and isinstance(payload, list):
        batch = payload

    if not isinstance(batch, list):
        raise InvalidBatchError(f"Body must have {{ {collection.field}: [...] }}")
    if not batch and not collection.allows_empty:
        raise InvalidBatchError(f"Body must include {collection.field} array")
    return batch


class IngestService:
    def __init__(self, store: CollectionStore) -> None:
        self.store = store

    def ingest(self, collection: Collection, payload: Any) -> IngestResult:
        batch = extract_batch(collection, payload)

        existing = self.store.load(collection)
        merged = merge_records(existing, batch, normalize=collection.normalize)
        self.store.save(collection, merged)

        result = IngestResult(
            collection=collection.name,
            stored=len(merged),
            added=len(batch),
            created=len(merged) - len(existing),
        )
        logger.info(
            "ingest_stored collection=%s stored=%s added=%s created=%s",
            result.collection,
            result.stored,
            result.added,
            result.created,
        )
        return result

    def read(self, collection: Collection) -> list[Record]:
        records = list(self.store.load(collection))
        for name in collection.read_with:
            records.extend(self.store.load(COLLECTIONS[name]))
        return records

    def read_all(self) -> dict[str, list[Record]]:
        """
        Every collection's own snapshot, keyed by collection name.
        """
        return {name: self.store.load(c) for name, c in COLLECTIONS.items()}
