"""Single-page deal sheet HTML for a Deal."""
from __future__ import annotations

from datetime import date

from models import Deal
from pdf_storage import sanitize_name

from .format_utils import display_text, format_file_date, format_long_date
from .report_builder import _css_url, _escape, _paragraphs, fill_template, load_template


def deal_pdf_filename(deal: Deal, on: date | None = None) -> str:
    on = on or date.today()
    return f"Safeguard_Deal_Sheet_{sanitize_name(deal.loan_number) or 'deal'}_{format_file_date(on)}.pdf"


def build_deal_sheet_html(deal: Deal, company_name: str = "Safeguard", generated_on: date | None = None) -> str:
    generated_on = generated_on or date.today()
    text_fields = {
        "LOAN_NUMBER": deal.loan_number,
        "AMOUNT": deal.amount,
        "RATE_TYPE": deal.rate_type,
        "TERM": deal.term,
        "MONTHLY_RETURN": deal.monthly_return,
        "LTV": deal.ltv,
        "ADDRESS": deal.address,
        "APPRAISAL": deal.appraisal,
        "RENT": deal.rent,
        "SQFT": deal.sqft,
        "BEDS_BATHS": deal.beds_baths,
        "MARKET_LOCATION": deal.market_location,
    }
    values = {key: _escape(display_text(value)) for key, value in text_fields.items()}
    values["COMPANY_NAME"] = _escape(company_name)
    values["MARKET_OVERVIEW"] = _paragraphs(deal.market_overview)
    values["DEAL_INFORMATION"] = _paragraphs(deal.deal_information)
    values["GENERATED_ON"] = _escape(format_long_date(generated_on))
    for slot, data_url in deal.image_slots().items():
        values[f"{slot.upper()}_STYLE"] = _css_url(data_url)
    return fill_template(load_template("deal_sheet.html"), values)
