"""
PDF generation, stored-PDF upload/listing, and single-file attachment encoding.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from attachments import PDF_MIME, encode
from auth import require_session
from errors import MalformedPayload
from models import EncodedAttachment, StoredPdf
from pdf_storage import list_recent_pdfs, save_pdf
from reporting.deal_sheet import deal_pdf_filename
from reporting.portfolio_review import portfolio_pdf_filename

from .deals import pdf_response
from .deps import RendererDep, SettingsDep, StoreDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"], dependencies=[Depends(require_session)])

_MIME_BY_SUFFIX = {
    ".pdf": PDF_MIME,
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def _upload_mime(file: UploadFile) -> str:
    content_type = (file.content_type or "").lower().strip()
    if content_type == PDF_MIME or content_type.startswith("image/"):
        return content_type
    filename_lower = (file.filename or "").lower().strip()
    for suffix, mime in _MIME_BY_SUFFIX.items():
        if filename_lower.endswith(suffix):
            return mime
    return content_type


@router.post("/generate-pdf/{deal_id}")
def generate_deal_pdf(
    deal_id: int,
    store: StoreDep,
    renderer: RendererDep,
    settings: SettingsDep,
    save: bool = False,
) -> Response:
    deal = store.deals.get(deal_id)
    pdf_bytes = renderer.render_deal(deal)
    filename = deal_pdf_filename(deal)
    extra = {}
    if save:
        extra["X-Stored-Path"] = save_pdf(settings.storage_dir, filename, deal.loan_number, pdf_bytes)
    return pdf_response(pdf_bytes, filename, extra)


@router.post("/generate-portfolio-pdf/{portfolio_id}")
def generate_portfolio_pdf(portfolio_id: int, store: StoreDep, renderer: RendererDep) -> Response:
    review = store.portfolios.get(portfolio_id)
    return pdf_response(renderer.render_portfolio(review), portfolio_pdf_filename(review))


@router.post("/pdfs")
async def upload_pdf(
    settings: SettingsDep,
    file: UploadFile = File(...),
    meta: Optional[str] = Form(None),
):
    data = await file.read()
    loan_number = None
    try:
        parsed = json.loads(meta or "{}")
    except json.JSONDecodeError:
        # Matches the upload form: unreadable meta files the PDF under "unknown"
        parsed = {}
    if isinstance(parsed, dict) and parsed.get("loanNumber") is not None:
        loan_number = str(parsed["loanNumber"])
    path = save_pdf(settings.storage_dir, file.filename or "", loan_number, data)
    return {"ok": True, "path": path}


@router.get("/pdfs", response_model=list[StoredPdf])
def list_pdfs(settings: SettingsDep) -> list[StoredPdf]:
    return [StoredPdf(**entry) for entry in list_recent_pdfs(settings.storage_dir, limit=50)]


@router.post("/attachments", response_model=EncodedAttachment)
async def encode_attachment(
    settings: SettingsDep,
    file: UploadFile = File(...),
    slot: str = Form(...),
) -> EncodedAttachment:
    data = await file.read()
    mime = _upload_mime(file)
    if not mime:
        raise MalformedPayload("Could not determine the file type", slot=slot)
    data_url = encode(
        mime,
        data,
        slot=slot,
        max_image_width=settings.image_max_width or None,
        jpeg_quality=settings.image_jpeg_quality,
        max_image_bytes=settings.max_image_bytes,
        max_pdf_bytes=settings.max_pdf_bytes,
    )
    logger.info("attachment encoded slot=%s type=%s bytes=%s", slot, mime, len(data))
    return EncodedAttachment(slot=slot, name=file.filename or "", size=len(data), data_url=data_url)
