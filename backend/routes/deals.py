"""
Deal CRUD, search, archive toggle, HTML preview and engagement agreement.
"""
from __future__ import annotations

import logging
import secrets
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, Response
from pydantic.alias_generators import to_camel

from attachments import IMAGE_SLOTS, apply_replacement_policy, ingest_image, ingest_pdfs
from auth import require_session
from errors import StorageFailure
from models import ArchiveRequest, Deal, DealIn, DealSummary, LoanNumber
from reporting.deal_sheet import build_deal_sheet_html
from reporting.engagement import check_prerequisites, engagement_pdf_filename
from settings import Settings

from .deps import RendererDep, SettingsDep, StoreDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deals", tags=["deals"], dependencies=[Depends(require_session)])

_LOAN_NUMBER_ATTEMPTS = 50


def ingest_deal(data: DealIn, settings: Settings) -> DealIn:
    """Validate and normalize every attachment payload in the body (size limits, downscale)."""
    data.check_required()
    updates = {slot: ingest_image(getattr(data, slot), to_camel(slot), settings) for slot in IMAGE_SLOTS}
    updates["attached_pdfs"] = ingest_pdfs(data.attached_pdfs, settings)
    return data.model_copy(update=updates)


def pdf_response(body: bytes, filename: str, extra_headers: Optional[dict] = None) -> Response:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    headers.update(extra_headers or {})
    return Response(content=body, media_type="application/pdf", headers=headers)


@router.post("", response_model=Deal, status_code=201)
def create_deal(body: DealIn, store: StoreDep, settings: SettingsDep) -> Deal:
    deal = store.deals.create(ingest_deal(body, settings))
    logger.info("deal created deal_id=%s loan_number=%s", deal.id, deal.loan_number)
    return deal


@router.get("", response_model=list[DealSummary])
def list_deals(
    store: StoreDep,
    search: str = "",
    archived: Literal["false", "true", "all"] = "false",
) -> list[DealSummary]:
    return [DealSummary.from_deal(d) for d in store.deals.search(search, archived)]


@router.get("/new-loan-number", response_model=LoanNumber)
def new_loan_number(store: StoreDep) -> LoanNumber:
    for _ in range(_LOAN_NUMBER_ATTEMPTS):
        candidate = str(100000 + secrets.randbelow(900000))
        if not store.deals.value_exists("loan_number", candidate):
            return LoanNumber(loan_number=candidate)
    raise StorageFailure("Could not allocate an unused loan number")


@router.get("/{deal_id}", response_model=Deal)
def get_deal(deal_id: int, store: StoreDep) -> Deal:
    return store.deals.get(deal_id)


@router.put("/{deal_id}", response_model=Deal)
def update_deal(deal_id: int, body: DealIn, store: StoreDep, settings: SettingsDep) -> Deal:
    existing = store.deals.get(deal_id)
    incoming = ingest_deal(body, settings)
    deal = store.deals.update(deal_id, apply_replacement_policy(existing, incoming))
    logger.info(
        "deal saved deal_id=%s images=%s pdfs=%s",
        deal.id, sum(1 for v in deal.image_slots().values() if v), len(deal.attached_pdfs),
    )
    return deal


@router.delete("/{deal_id}")
def delete_deal(deal_id: int, store: StoreDep):
    store.deals.delete(deal_id)
    return {"ok": True, "id": deal_id}


@router.patch("/{deal_id}/archive", response_model=Deal)
def archive_deal(deal_id: int, store: StoreDep, body: Optional[ArchiveRequest] = None) -> Deal:
    archived = body.archived if body is not None else None
    if archived is None:
        archived = not store.deals.get(deal_id).archived
    return store.deals.set_archived(deal_id, archived)


@router.get("/{deal_id}/preview", response_class=HTMLResponse)
def preview_deal(deal_id: int, store: StoreDep, settings: SettingsDep) -> HTMLResponse:
    deal = store.deals.get(deal_id)
    return HTMLResponse(content=build_deal_sheet_html(deal, company_name=settings.company_name))


@router.get("/{deal_id}/engagement-agreement")
def engagement_agreement(deal_id: int, store: StoreDep, renderer: RendererDep) -> Response:
    deal = store.deals.get(deal_id)
    check_prerequisites(deal)
    return pdf_response(renderer.render_engagement(deal), engagement_pdf_filename(deal))
