"""
Portfolio review HTML: overall summary from the stored totals, then a current-loans
table and a paid-off table, each with a subtotal recomputed from the rows shown.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from models import PortfolioReview, RosterRow
from pdf_storage import sanitize_name

from .format_utils import format_currency, format_long_date
from .report_builder import _escape, fill_template, load_template


@dataclass
class SectionTotals:
    balance: float = 0.0
    interest_paid: float = 0.0


def partition_loans(loans: list[RosterRow]) -> tuple[list[RosterRow], list[RosterRow]]:
    """(current, paid off); row order is kept within each."""
    current = [row for row in loans if not row.is_paid_off]
    paid_off = [row for row in loans if row.is_paid_off]
    return current, paid_off


def section_totals(rows: list[RosterRow]) -> SectionTotals:
    return SectionTotals(
        balance=round(sum(r.balance for r in rows), 2),
        interest_paid=round(sum(r.interest_paid for r in rows), 2),
    )


def portfolio_pdf_filename(review: PortfolioReview) -> str:
    investor = sanitize_name("-".join(review.investor_name.split())) or "investor"
    return f"Portfolio-Review-{investor}.pdf"


def _status_badge(row: RosterRow) -> str:
    css = "status-" + row.status.value.lower().replace(" ", "-")
    return f'<span class="status {css}">{_escape(row.status.value)}</span>'


def _section_rows(rows: list[RosterRow], empty_text: str) -> str:
    if not rows:
        return f'<tr><td colspan="4" class="empty">{_escape(empty_text)}</td></tr>'
    body = "".join(
        "<tr>"
        f"<td>{_escape(row.address)}</td>"
        f'<td class="num">{format_currency(row.balance)}</td>'
        f'<td class="num">{format_currency(row.interest_paid)}</td>'
        f"<td>{_status_badge(row)}</td>"
        "</tr>"
        for row in rows
    )
    totals = section_totals(rows)
    subtotal = (
        '<tr class="subtotal"><td>Subtotal</td>'
        f'<td class="num">{format_currency(totals.balance)}</td>'
        f'<td class="num">{format_currency(totals.interest_paid)}</td>'
        "<td></td></tr>"
    )
    return body + subtotal


def build_portfolio_html(
    review: PortfolioReview,
    company_name: str = "Safeguard",
    generated_on: date | None = None,
) -> str:
    current, paid_off = partition_loans(review.loans)
    values = {
        "COMPANY_NAME": _escape(company_name),
        "INVESTOR_NAME": _escape(review.investor_name),
        "CURRENT_INVESTMENT_TOTAL": format_currency(review.current_investment_total),
        "LIFETIME_INVESTMENT_TOTAL": format_currency(review.lifetime_investment_total),
        "LIFETIME_INTEREST_PAID": format_currency(review.lifetime_interest_paid),
        "CURRENT_ROWS": _section_rows(current, "No current loans"),
        "PAID_OFF_ROWS": _section_rows(paid_off, "No paid off loans"),
        "GENERATED_ON": _escape(format_long_date(generated_on or date.today())),
    }
    return fill_template(load_template("portfolio_review.html"), values)
