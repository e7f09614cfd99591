"""
Loan roster spreadsheet import.

Layout expected from the investor statements:

    Investor Name
    Address | Balance | Interest Paid | Status      <- current section starts
    ...rows...
    Paid Off                                         <- paid-off section starts
    ...rows...
    Investment Total | ...                           <- summary rows, skipped

Only the first cell drives section changes. Rows before the first header are ignored.
"""
from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from openpyxl import load_workbook

from errors import ValidationFailed
from models import LoanStatus, RosterImport, RosterRow, coerce_status, compute_totals, parse_currency

logger = logging.getLogger(__name__)

SUMMARY_MARKERS = ("Investment Total", "Interest Paid")

__all__ = ["parse_currency", "coerce_status", "parse_roster_rows", "read_spreadsheet", "import_roster"]


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_roster_rows(rows: Iterable[Sequence[Any]]) -> RosterImport:
    investor_name = ""
    section: LoanStatus | None = None
    loans: list[RosterRow] = []

    for index, row in enumerate(rows):
        row = list(row or [])
        first = _text(_cell(row, 0))
        if index == 0 and first:
            investor_name = first

        if "Address" in first:
            section = LoanStatus.CURRENT
            continue
        if "Paid Off" in first:
            section = LoanStatus.PAID_OFF
            continue
        if any(marker in first for marker in SUMMARY_MARKERS):
            continue
        if section is None or not first:
            continue

        loans.append(RosterRow(
            address=first,
            balance=parse_currency(_cell(row, 1)),
            interest_paid=parse_currency(_cell(row, 2)),
            status=coerce_status(_cell(row, 3), section),
        ))

    totals = compute_totals(loans)
    return RosterImport(investor_name=investor_name, loans=loans, **totals.model_dump())


def _xlsx_rows(data: bytes) -> list[tuple]:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        # openpyxl raises zipfile/KeyError/InvalidFileException depending on the damage
        raise ValidationFailed(f"Could not read spreadsheet: {e}") from e
    try:
        ws = wb.worksheets[0]
        return [tuple(r) for r in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _csv_rows(data: bytes) -> list[list[str]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = data.decode("latin-1")
    return list(csv.reader(io.StringIO(text)))


def read_spreadsheet(filename: str, data: bytes) -> list[Sequence[Any]]:
    suffix = Path(filename or "").suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        return _xlsx_rows(data)
    if suffix == ".csv":
        return _csv_rows(data)
    raise ValidationFailed(f"Unsupported spreadsheet type: {suffix or 'none'} (use .xlsx or .csv)")


def import_roster(filename: str, data: bytes) -> RosterImport:
    if not data:
        raise ValidationFailed("Spreadsheet file is empty")
    roster = parse_roster_rows(read_spreadsheet(filename, data))
    logger.info("roster imported file=%s loans=%s", filename, len(roster.loans))
    return roster
