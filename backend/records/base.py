"""
Record store interface. Route handlers only see RecordStore and its two
collections; the backend (SQL or JSON files) is picked by build_store().
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, Literal, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy.engine import Engine

from models import Deal, PortfolioReview

ArchiveFilter = Literal["false", "true", "all"]

RecordT = TypeVar("RecordT", bound=BaseModel)

# Fields a write never takes from the caller
SERVER_FIELDS = {"id", "archived", "created_at", "updated_at"}


@dataclass(frozen=True)
class EntityKind:
    name: str
    label: str
    record_cls: type
    search_fields: tuple[str, ...]
    json_fields: tuple[str, ...]
    unique_field: Optional[str] = None


DEAL = EntityKind(
    name="deals",
    label="Deal",
    record_cls=Deal,
    search_fields=("address", "loan_number"),
    json_fields=("attached_pdfs",),
    unique_field="loan_number",
)
PORTFOLIO = EntityKind(
    name="portfolios",
    label="Portfolio review",
    record_cls=PortfolioReview,
    search_fields=("investor_name",),
    json_fields=("loans",),
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def content_values(kind: EntityKind, content: BaseModel) -> dict:
    """Python values for every persisted field; list fields as plain JSON-able dicts."""
    values = content.model_dump(mode="python", exclude=SERVER_FIELDS)
    for field in kind.json_fields:
        values[field] = [item.model_dump(mode="json", by_alias=True) for item in getattr(content, field)]
    return values


class Collection(ABC, Generic[RecordT]):
    kind: EntityKind

    @abstractmethod
    def create(self, content: BaseModel) -> RecordT:
        ...

    @abstractmethod
    def get(self, record_id: int) -> RecordT:
        """Raises NotFound."""

    @abstractmethod
    def update(self, record_id: int, content: BaseModel) -> RecordT:
        """Full overwrite of the content fields; id, archived and created_at are kept."""

    @abstractmethod
    def delete(self, record_id: int) -> None:
        ...

    @abstractmethod
    def search(self, text: str = "", archived: ArchiveFilter = "false") -> list[RecordT]:
        """Case-insensitive substring match on the kind's search fields, newest update first."""

    @abstractmethod
    def set_archived(self, record_id: int, archived: bool) -> RecordT:
        ...

    @abstractmethod
    def value_exists(self, field: str, value: str) -> bool:
        ...


class RecordStore:
    def __init__(
        self,
        deals: Collection[Deal],
        portfolios: Collection[PortfolioReview],
        backend: str,
        engine: Optional[Engine] = None,
    ):
        self.deals = deals
        self.portfolios = portfolios
        self.backend = backend
        self.engine = engine

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
