"""
Flat-file persistence for collections.

Layout under the data directory:
- <collection>.json  pretty-printed array, the source of truth
- <collection>.csv   projection rewritten on every save, never read back

Writes are plain overwrites (no temp file + rename) and there is no locking
around load/save: two concurrent ingests of the same collection can lose one
side's update.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from .collections import Collection
from .errors import StoreParseError, StoreWriteError
from .records import Record, render_csv

logger = logging.getLogger(__name__)


class CollectionStore:
    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)

    def json_path(self, collection: Collection) -> Path:
        return self.data_dir / collection.json_filename

    def csv_path(self, collection: Collection) -> Path:
        return self.data_dir / collection.csv_filename

    def ensure_dir(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreWriteError(f"Could not create data directory {self.data_dir}: {exc}") from exc

    def load(self, collection: Collection) -> list[Record]:
        """
        Read the JSON snapshot. A missing file is an empty collection.
        """
        path = self.json_path(collection)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StoreParseError(f"Could not read {path.name}: {exc}") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise StoreParseError(f"Corrupt snapshot {path.name}: {exc}") from exc
        if not isinstance(data, list):
            raise StoreParseError(f"Corrupt snapshot {path.name}: expected a JSON array.")
        return data

    def save(self, collection: Collection, records: Sequence[Record]) -> None:
        """
        Overwrite the JSON snapshot, then regenerate the CSV from it.
        """
        self.ensure_dir()
        json_path = self.json_path(collection)
        csv_path = self.csv_path(collection)

        try:
            json_path.write_text(json.dumps(list(records), indent=2, ensure_ascii=False), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            raise StoreWriteError(f"Could not write {json_path.name}: {exc}") from exc

        # A failure here leaves the CSV stale until the next successful save.
        try:
            csv_path.write_text(render_csv(records, collection.columns), encoding="utf-8")
        except OSError as exc:
            logger.error("csv_write_failed collection=%s path=%s", collection.name, csv_path)
            raise StoreWriteError(f"Could not write {csv_path.name}: {exc}") from exc
