"""Formatting for rendered documents. Roster money is numeric; deal money is display text."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any


def format_currency(value: float, precision: int = 2) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{precision}f}"


def format_long_date(d: date | datetime) -> str:
    """October 18, 2026"""
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def format_file_date(d: date | datetime) -> str:
    return d.strftime("%Y-%m-%d")


def display_text(value: Any) -> str:
    """Missing fields render as empty, never as a placeholder."""
    if value is None:
        return ""
    return str(value).strip()
