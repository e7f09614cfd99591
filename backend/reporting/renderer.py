"""
PDF assembly. A deal sheet is printed from HTML, then every page of each attached
PDF is appended in stored order. Failures abort the whole document.
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from attachments import PdfAttachment, decode
from errors import MalformedPayload, RenderingFailure
from models import Deal, PortfolioReview
from settings import Settings

from .deal_sheet import build_deal_sheet_html
from .engagement import build_engagement_html
from .portfolio_review import build_portfolio_html
from .report_builder import html_to_pdf

logger = logging.getLogger(__name__)


def page_count(pdf_bytes: bytes) -> int:
    return len(PdfReader(BytesIO(pdf_bytes)).pages)


class PdfRenderer:
    def __init__(self, settings: Settings):
        self.settings = settings

    def html_to_pdf(self, html_content: str) -> bytes:
        return html_to_pdf(
            html_content,
            page_format=self.settings.pdf_page_format,
            chromium_args=self.settings.chromium_args,
        )

    def append_attachment_pages(self, base_pdf: bytes, attachments: Sequence[PdfAttachment]) -> bytes:
        """base_pdf followed by every page of each attachment, in list order."""
        if not attachments:
            return base_pdf
        writer = PdfWriter()
        try:
            for page in PdfReader(BytesIO(base_pdf)).pages:
                writer.add_page(page)
        except (PdfReadError, ValueError, OSError) as e:
            raise RenderingFailure("Rendered document could not be read for merging") from e

        for index, attachment in enumerate(attachments):
            label = attachment.name or f"attachment {index + 1}"
            try:
                reader = PdfReader(BytesIO(decode(attachment.data_url)))
                for page in reader.pages:
                    writer.add_page(page)
            except MalformedPayload as e:
                raise RenderingFailure(f"Attached PDF {label} could not be decoded") from e
            except Exception as e:
                # pypdf raises a wide range of errors on damaged or encrypted files
                raise RenderingFailure(f"Attached PDF {label} could not be merged: {e}") from e

        out = BytesIO()
        writer.write(out)
        return out.getvalue()

    def render_deal(self, deal: Deal) -> bytes:
        html_str = build_deal_sheet_html(deal, company_name=self.settings.company_name)
        pdf_bytes = self.append_attachment_pages(self.html_to_pdf(html_str), deal.attached_pdfs)
        logger.info(
            "deal pdf rendered deal_id=%s attachments=%s pages=%s bytes=%s",
            deal.id, len(deal.attached_pdfs), page_count(pdf_bytes), len(pdf_bytes),
        )
        return pdf_bytes

    def render_portfolio(self, review: PortfolioReview) -> bytes:
        html_str = build_portfolio_html(review, company_name=self.settings.company_name)
        pdf_bytes = self.html_to_pdf(html_str)
        logger.info(
            "portfolio pdf rendered portfolio_id=%s loans=%s bytes=%s",
            review.id, len(review.loans), len(pdf_bytes),
        )
        return pdf_bytes

    def render_engagement(self, deal: Deal) -> bytes:
        pdf_bytes = self.html_to_pdf(build_engagement_html(deal))
        logger.info("engagement pdf rendered deal_id=%s bytes=%s", deal.id, len(pdf_bytes))
        return pdf_bytes

    def check_runtime(self) -> None:
        """Launch Chromium once; raises RenderingFailure when it cannot start."""
        self.html_to_pdf("<html><body>ok</body></html>")
