"""SQL record backend. SQLite or PostgreSQL, chosen only by DATABASE_URL."""
from __future__ import annotations

import json
import logging

from sqlalchemy import inspect as sa_inspect
from sqlalchemy import or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from db import Base
from db.models import DealRow, PortfolioRow
from errors import AppError, DuplicateLoanNumber, NotFound, StorageFailure

from .base import ArchiveFilter, Collection, EntityKind, content_values, utcnow

logger = logging.getLogger(__name__)

_ROW_CLASSES = {"deals": DealRow, "portfolios": PortfolioRow}


def create_schema(engine: Engine) -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise StorageFailure("Could not create database schema") from e


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlCollection(Collection):
    def __init__(self, kind: EntityKind, session_factory: sessionmaker):
        self.kind = kind
        self.row_cls = _ROW_CLASSES[kind.name]
        self._session_factory = session_factory

    # --- row <-> record ---

    def _to_record(self, row):
        mapper = sa_inspect(self.row_cls)
        values = {attr.key: getattr(row, attr.key) for attr in mapper.column_attrs}
        # JSON text columns are decoded by the model validators (legacy shapes included)
        return self.kind.record_cls.model_validate(values)

    def _columns(self, content) -> dict:
        values = content_values(self.kind, content)
        for field in self.kind.json_fields:
            values[field] = json.dumps(values[field])
        return values

    def _load(self, db, record_id: int):
        row = db.get(self.row_cls, record_id)
        if row is None:
            raise NotFound(f"{self.kind.label} {record_id} not found")
        return row

    def _check_unique(self, db, values: dict, exclude_id: int | None = None) -> None:
        field = self.kind.unique_field
        if not field:
            return
        q = db.query(self.row_cls.id).filter(getattr(self.row_cls, field) == values[field])
        if exclude_id is not None:
            q = q.filter(self.row_cls.id != exclude_id)
        if q.first() is not None:
            raise DuplicateLoanNumber(values[field])

    def _write_error(
        self, e: SQLAlchemyError, values: dict | None, action: str, exclude_id: int | None = None
    ) -> AppError:
        # A concurrent insert can pass _check_unique and still trip the unique index
        field = self.kind.unique_field
        if isinstance(e, IntegrityError) and values and field and self._value_taken(values, exclude_id):
            return DuplicateLoanNumber(values[field])
        return StorageFailure(f"Could not {action} {self.kind.label.lower()}")

    def _value_taken(self, values: dict, exclude_id: int | None) -> bool:
        db = self._session_factory()
        try:
            self._check_unique(db, values, exclude_id=exclude_id)
        except DuplicateLoanNumber:
            return True
        except SQLAlchemyError:
            logger.exception("uniqueness re-check failed kind=%s", self.kind.name)
        finally:
            db.close()
        return False

    # --- operations ---

    def create(self, content):
        values = self._columns(content)
        db = self._session_factory()
        try:
            self._check_unique(db, values)
            now = utcnow()
            row = self.row_cls(**values, archived=False, created_at=now, updated_at=now)
            db.add(row)
            db.commit()
            db.refresh(row)
            record = self._to_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise self._write_error(e, values, "create") from e
        finally:
            db.close()
        logger.info("record created kind=%s id=%s", self.kind.name, record.id)
        return record

    def get(self, record_id: int):
        db = self._session_factory()
        try:
            return self._to_record(self._load(db, record_id))
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not read {self.kind.label.lower()}") from e
        finally:
            db.close()

    def update(self, record_id: int, content):
        values = self._columns(content)
        db = self._session_factory()
        try:
            row = self._load(db, record_id)
            self._check_unique(db, values, exclude_id=record_id)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            record = self._to_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise self._write_error(e, values, "update", exclude_id=record_id) from e
        finally:
            db.close()
        logger.info("record updated kind=%s id=%s", self.kind.name, record_id)
        return record

    def delete(self, record_id: int) -> None:
        db = self._session_factory()
        try:
            db.delete(self._load(db, record_id))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise self._write_error(e, None, "delete") from e
        finally:
            db.close()
        logger.info("record deleted kind=%s id=%s", self.kind.name, record_id)

    def search(self, text: str = "", archived: ArchiveFilter = "false"):
        db = self._session_factory()
        try:
            q = db.query(self.row_cls)
            if archived != "all":
                q = q.filter(self.row_cls.archived == (archived == "true"))
            text = (text or "").strip()
            if text:
                pattern = f"%{_escape_like(text)}%"
                q = q.filter(or_(*[
                    getattr(self.row_cls, field).ilike(pattern, escape="\\")
                    for field in self.kind.search_fields
                ]))
            rows = q.order_by(self.row_cls.updated_at.desc(), self.row_cls.id.desc()).all()
            return [self._to_record(row) for row in rows]
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not search {self.kind.name}") from e
        finally:
            db.close()

    def set_archived(self, record_id: int, archived: bool):
        db = self._session_factory()
        try:
            row = self._load(db, record_id)
            row.archived = archived
            row.updated_at = utcnow()
            db.commit()
            db.refresh(row)
            record = self._to_record(row)
        except SQLAlchemyError as e:
            db.rollback()
            raise self._write_error(e, None, "archive") from e
        finally:
            db.close()
        logger.info("record archived kind=%s id=%s archived=%s", self.kind.name, record_id, archived)
        return record

    def value_exists(self, field: str, value: str) -> bool:
        db = self._session_factory()
        try:
            column = getattr(self.row_cls, field)
            return db.query(self.row_cls.id).filter(column == value).first() is not None
        except SQLAlchemyError as e:
            raise StorageFailure(f"Could not query {self.kind.name}") from e
        finally:
            db.close()
