"""Engagement agreement for a Deal: fixed legal template filled from the deal's party fields."""
from __future__ import annotations

from datetime import date

from errors import ValidationFailed
from models import Deal
from pdf_storage import sanitize_name

from .format_utils import display_text, format_long_date
from .report_builder import _escape, fill_template, load_template

REQUIRED_FIELDS = (
    ("client_name", "client name"),
    ("lending_entity", "lending entity"),
    ("client_address", "client address"),
)


def check_prerequisites(deal: Deal) -> None:
    missing = [label for field, label in REQUIRED_FIELDS if not display_text(getattr(deal, field))]
    if missing:
        raise ValidationFailed(
            "Engagement agreement requires " + ", ".join(missing) + "; add them to the deal and save first"
        )


def engagement_pdf_filename(deal: Deal) -> str:
    return f"Engagement_Agreement_{sanitize_name(deal.loan_number) or 'deal'}.pdf"


def build_engagement_html(deal: Deal, generated_on: date | None = None) -> str:
    check_prerequisites(deal)
    fields = (
        "loan_number", "amount", "rate_type", "term", "monthly_return", "ltv", "address", "appraisal",
        "lending_entity", "client_name", "client_address", "borrower_name", "borrower_address",
    )
    values = {name.upper(): _escape(display_text(getattr(deal, name))) for name in fields}
    values["GENERATED_ON"] = _escape(format_long_date(generated_on or date.today()))
    return fill_template(load_template("engagement_agreement.html"), values)
