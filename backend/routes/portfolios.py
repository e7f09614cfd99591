"""
Portfolio review CRUD, search, archive toggle, spreadsheet import and HTML preview.
Totals are recomputed from the roster on every write.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import HTMLResponse

from auth import require_session
from models import ArchiveRequest, PortfolioContent, PortfolioReview, PortfolioReviewIn, PortfolioSummary, RosterImport
from reporting.portfolio_review import build_portfolio_html
from roster_import import import_roster

from .deps import SettingsDep, StoreDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolios", tags=["portfolios"], dependencies=[Depends(require_session)])


def _content(body: PortfolioReviewIn) -> PortfolioContent:
    body.check_required()
    return PortfolioContent.from_input(body)


@router.post("", response_model=PortfolioReview, status_code=201)
def create_portfolio(body: PortfolioReviewIn, store: StoreDep) -> PortfolioReview:
    review = store.portfolios.create(_content(body))
    logger.info("portfolio created portfolio_id=%s loans=%s", review.id, len(review.loans))
    return review


@router.get("", response_model=list[PortfolioSummary])
def list_portfolios(
    store: StoreDep,
    search: str = "",
    archived: Literal["false", "true", "all"] = "false",
) -> list[PortfolioSummary]:
    return [PortfolioSummary.from_review(r) for r in store.portfolios.search(search, archived)]


@router.post("/import", response_model=RosterImport)
async def import_portfolio_spreadsheet(file: UploadFile = File(...)) -> RosterImport:
    data = await file.read()
    return import_roster(file.filename or "", data)


@router.get("/{portfolio_id}", response_model=PortfolioReview)
def get_portfolio(portfolio_id: int, store: StoreDep) -> PortfolioReview:
    return store.portfolios.get(portfolio_id)


@router.put("/{portfolio_id}", response_model=PortfolioReview)
def update_portfolio(portfolio_id: int, body: PortfolioReviewIn, store: StoreDep) -> PortfolioReview:
    review = store.portfolios.update(portfolio_id, _content(body))
    logger.info("portfolio saved portfolio_id=%s loans=%s", review.id, len(review.loans))
    return review


@router.delete("/{portfolio_id}")
def delete_portfolio(portfolio_id: int, store: StoreDep):
    store.portfolios.delete(portfolio_id)
    return {"ok": True, "id": portfolio_id}


@router.patch("/{portfolio_id}/archive", response_model=PortfolioReview)
def archive_portfolio(
    portfolio_id: int,
    store: StoreDep,
    body: Optional[ArchiveRequest] = None,
) -> PortfolioReview:
    archived = body.archived if body is not None else None
    if archived is None:
        archived = not store.portfolios.get(portfolio_id).archived
    return store.portfolios.set_archived(portfolio_id, archived)


@router.get("/{portfolio_id}/preview", response_class=HTMLResponse)
def preview_portfolio(portfolio_id: int, store: StoreDep, settings: SettingsDep) -> HTMLResponse:
    review = store.portfolios.get(portfolio_id)
    return HTMLResponse(content=build_portfolio_html(review, company_name=settings.company_name))
