"""Add backend to path so tests use direct imports (main, models, ...) when run from project root."""
import base64
import os
import sys
from io import BytesIO

import pytest

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from pypdf import PdfWriter  # noqa: E402

from main import create_app  # noqa: E402
from reporting.renderer import PdfRenderer  # noqa: E402
from settings import Settings  # noqa: E402

ADMIN_PASSWORD = "s3cret-test"
LETTER = (612, 792)


def blank_pdf(widths=(LETTER[0],), height=LETTER[1]) -> bytes:
    """PDF with one blank page per width; page widths identify pages after a merge."""
    writer = PdfWriter()
    for width in widths:
        writer.add_blank_page(width=width, height=height)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()


def png_bytes(width=40, height=30, color=(200, 30, 30)) -> bytes:
    out = BytesIO()
    Image.new("RGB", (width, height), color).save(out, format="PNG")
    return out.getvalue()


def data_url(mime: str, data: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


class FakeRenderer(PdfRenderer):
    """Skips Chromium: every HTML document prints as one blank Letter page."""

    def __init__(self, settings):
        super().__init__(settings)
        self.rendered_html = []

    def html_to_pdf(self, html_content: str) -> bytes:
        self.rendered_html.append(html_content)
        return blank_pdf()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        records_dir=tmp_path / "records",
        storage_dir=tmp_path / "storage",
        session_secret="test-session-secret",
        admin_username="admin",
        admin_password=ADMIN_PASSWORD,
        allowed_origins=["http://testserver"],
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    application.state.renderer = FakeRenderer(settings)
    yield application
    application.state.store.close()


@pytest.fixture
def anon_client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        response = c.post("/login", json={"username": "admin", "password": ADMIN_PASSWORD})
        assert response.status_code == 200
        yield c


@pytest.fixture
def deal_payload():
    def _make(loan_number="123456", **overrides):
        body = {
            "loanNumber": loan_number,
            "amount": "$250,000",
            "rateType": "10% / Interest Only",
            "term": "12 months",
            "monthlyReturn": "$2,083",
            "ltv": "65%",
            "address": "123 Main St, Springfield",
            "appraisal": "$385,000",
            "rent": "$2,400",
            "sqft": "1,850",
            "bedsBaths": "3 / 2",
            "marketLocation": "Springfield, IL",
            "marketOverview": "Stable rental market.",
            "dealInformation": "First position lien.",
        }
        body.update(overrides)
        return body

    return _make
