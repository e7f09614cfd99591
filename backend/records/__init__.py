from __future__ import annotations

import logging

from settings import Settings

from .base import DEAL, PORTFOLIO, ArchiveFilter, Collection, RecordStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RecordStore:
    if settings.record_store == "json":
        from .json_files import JsonCollection

        root = settings.records_dir
        store = RecordStore(JsonCollection(DEAL, root), JsonCollection(PORTFOLIO, root), backend="json")
        logger.info("record store backend=json dir=%s", root)
        return store

    from db import make_engine, make_session_factory
    from .sql import SqlCollection, create_schema

    engine = make_engine(settings.database_url)
    create_schema(engine)
    factory = make_session_factory(engine)
    store = RecordStore(
        SqlCollection(DEAL, factory),
        SqlCollection(PORTFOLIO, factory),
        backend="sql",
        engine=engine,
    )
    logger.info("record store backend=sql dialect=%s", engine.dialect.name)
    return store


__all__ = ["ArchiveFilter", "Collection", "RecordStore", "build_store", "DEAL", "PORTFOLIO"]
