"""
HTML template filling and HTML -> PDF printing with Playwright (headless Chromium).
Templates live in reporting/templates and use __PLACEHOLDER__ markers.
"""
from __future__ import annotations

import html
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Sequence

from errors import RenderingFailure

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_PLACEHOLDER = re.compile(r"__([A-Z0-9_]+)__")


def _escape(s: object) -> str:
    return html.escape("" if s is None else str(s), quote=True)


def _paragraphs(text: str) -> str:
    """Escaped free text; blank lines start a new paragraph, single newlines become <br>."""
    blocks = [b.strip() for b in re.split(r"\n\s*\n", text or "") if b.strip()]
    return "".join(f"<p>{_escape(b).replace(chr(10), '<br>')}</p>" for b in blocks)


def _css_url(data_url: str | None) -> str:
    """Inline style for a photo slot; empty when the slot has no image."""
    if not data_url:
        return ""
    # data: URLs carry only [A-Za-z0-9+/=;:,.-]; quotes or parens would break out of url()
    safe = data_url.replace('"', "%22").replace("(", "%28").replace(")", "%29")
    return f'style="background-image: url(&quot;{_escape(safe)}&quot;)"'


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    return (_TEMPLATE_DIR / name).read_text(encoding="utf-8")


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """
    Single-pass substitution, so a value that happens to contain __X__ is never
    substituted again. Unknown markers are left untouched.
    """
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def html_to_pdf(
    html_content: str,
    *,
    page_format: str = "Letter",
    chromium_args: Sequence[str] = ("--no-sandbox",),
) -> bytes:
    """
    Render HTML to PDF using Playwright: background graphics on, zero margins.
    The browser is closed on every path; any Playwright error becomes RenderingFailure.
    """
    try:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright
    except ImportError as e:
        raise RenderingFailure("PDF rendering is unavailable: Playwright is not installed") from e

    margin = {"top": "0", "bottom": "0", "left": "0", "right": "0"}
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=list(chromium_args))
            try:
                page = browser.new_page()
                page.set_content(html_content, wait_until="networkidle")
                page.emulate_media(media="print")
                pdf_bytes = page.pdf(
                    format=page_format,
                    print_background=True,
                    margin=margin,
                )
            finally:
                browser.close()
    except PlaywrightError as e:
        msg = str(e)
        if len(msg) > 500:
            msg = msg[:500]
        raise RenderingFailure(f"Chromium could not render the document: {msg}") from e
    return pdf_bytes
