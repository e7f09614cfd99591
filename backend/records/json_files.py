"""
JSON-file record backend: one document per record at <root>/<kind>/<id>.json.
Meant for single-process use (tests, local runs); ids come from an in-process lock.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

from errors import DuplicateLoanNumber, NotFound, StorageFailure

from .base import ArchiveFilter, Collection, EntityKind, content_values, utcnow

logger = logging.getLogger(__name__)


class JsonCollection(Collection):
    def __init__(self, kind: EntityKind, root: Path):
        self.kind = kind
        self.dir = Path(root) / kind.name
        self._lock = threading.Lock()

    def _ensure_dir(self) -> Path:
        try:
            self.dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Could not create {self.dir}") from e
        return self.dir

    def _path(self, record_id: int) -> Path:
        return self.dir / f"{int(record_id)}.json"

    def _read(self, path: Path) -> dict:
        try:
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageFailure(f"Could not read {path.name}") from e

    def _write(self, record_id: int, doc: dict) -> None:
        path = self._path(record_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            with open(tmp, "w") as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            raise StorageFailure(f"Could not write {path.name}") from e

    def _all_docs(self) -> list[dict]:
        self._ensure_dir()
        return [self._read(path) for path in sorted(self.dir.glob("*.json"))]

    def _load_doc(self, record_id: int) -> dict:
        path = self._path(record_id)
        if not path.is_file():
            raise NotFound(f"{self.kind.label} {record_id} not found")
        return self._read(path)

    def _to_record(self, doc: dict):
        return self.kind.record_cls.model_validate(doc)

    def _check_unique(self, values: dict, exclude_id: int | None = None) -> None:
        field = self.kind.unique_field
        if not field:
            return
        for doc in self._all_docs():
            if doc.get("id") != exclude_id and doc.get(field) == values[field]:
                raise DuplicateLoanNumber(values[field])

    def _next_id(self) -> int:
        ids = [int(p.stem) for p in self._ensure_dir().glob("*.json") if p.stem.isdigit()]
        return max(ids, default=0) + 1

    @staticmethod
    def _stamp(doc: dict) -> dict:
        return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in doc.items()}

    def create(self, content):
        values = content_values(self.kind, content)
        with self._lock:
            self._check_unique(values)
            record_id = self._next_id()
            now = utcnow()
            doc = {"id": record_id, **values, "archived": False, "created_at": now, "updated_at": now}
            doc = self._stamp(doc)
            self._write(record_id, doc)
        logger.info("record created kind=%s id=%s", self.kind.name, record_id)
        return self._to_record(doc)

    def get(self, record_id: int):
        return self._to_record(self._load_doc(record_id))

    def update(self, record_id: int, content):
        values = content_values(self.kind, content)
        with self._lock:
            doc = self._load_doc(record_id)
            self._check_unique(values, exclude_id=int(record_id))
            doc.update(values)
            doc["updated_at"] = utcnow()
            doc = self._stamp(doc)
            self._write(record_id, doc)
        logger.info("record updated kind=%s id=%s", self.kind.name, record_id)
        return self._to_record(doc)

    def delete(self, record_id: int) -> None:
        with self._lock:
            path = self._path(record_id)
            if not path.is_file():
                raise NotFound(f"{self.kind.label} {record_id} not found")
            try:
                path.unlink()
            except OSError as e:
                raise StorageFailure(f"Could not delete {path.name}") from e
        logger.info("record deleted kind=%s id=%s", self.kind.name, record_id)

    def search(self, text: str = "", archived: ArchiveFilter = "false"):
        needle = (text or "").strip().lower()
        docs = []
        for doc in self._all_docs():
            if archived != "all" and bool(doc.get("archived")) != (archived == "true"):
                continue
            if needle and not any(needle in str(doc.get(f) or "").lower() for f in self.kind.search_fields):
                continue
            docs.append(doc)
        # ISO timestamps sort chronologically as strings
        docs.sort(key=lambda d: (d.get("updated_at") or "", d.get("id") or 0), reverse=True)
        return [self._to_record(doc) for doc in docs]

    def set_archived(self, record_id: int, archived: bool):
        with self._lock:
            doc = self._load_doc(record_id)
            doc["archived"] = archived
            doc["updated_at"] = utcnow().isoformat()
            self._write(record_id, doc)
        logger.info("record archived kind=%s id=%s archived=%s", self.kind.name, record_id, archived)
        return self._to_record(doc)

    def value_exists(self, field: str, value: str) -> bool:
        return any(doc.get(field) == value for doc in self._all_docs())
