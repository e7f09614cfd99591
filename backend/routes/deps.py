"""Request-scoped access to the objects create_app puts on app.state."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from auth import SettingsDep
from records import RecordStore
from reporting.renderer import PdfRenderer


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_renderer(request: Request) -> PdfRenderer:
    return request.app.state.renderer


StoreDep = Annotated[RecordStore, Depends(get_store)]
RendererDep = Annotated[PdfRenderer, Depends(get_renderer)]

__all__ = ["RendererDep", "SettingsDep", "StoreDep"]
