"""Tests for the attachment codec: data URLs, size limits, downscaling, legacy PDF lists, replacement."""
from io import BytesIO

import pytest
from PIL import Image

from attachments import (
    PdfAttachment,
    apply_replacement_policy,
    decode,
    encode,
    estimate_decoded_size,
    ingest_image,
    normalize_pdf_list,
    parse_data_url,
)
from conftest import blank_pdf, data_url, png_bytes
from errors import MalformedPayload, OversizedFile
from models import Deal, DealIn
from settings import MB


# --- encode / decode ---
def test_image_round_trip_is_byte_exact():
    raw = png_bytes()
    payload = encode("image/png", raw)
    assert payload.startswith("data:image/png;base64,")
    assert decode(payload) == raw


def test_pdf_round_trip_is_byte_exact():
    raw = blank_pdf(widths=(200, 300))
    assert decode(encode("application/pdf", raw)) == raw


def test_image_at_exact_limit_is_accepted():
    raw = b"\x89PNG" + b"\x00" * (5 * MB - 4)
    assert decode(encode("image/png", raw)) == raw


def test_oversized_image_rejected_with_slot():
    with pytest.raises(OversizedFile) as exc:
        encode("image/jpeg", b"x" * (5 * MB + 1), slot="heroImage")
    assert exc.value.slot == "heroImage"
    assert exc.value.status_code == 413


def test_oversized_pdf_rejected():
    with pytest.raises(OversizedFile):
        encode("application/pdf", b"%PDF" + b"x" * (10 * MB))


def test_unsupported_type_rejected():
    with pytest.raises(MalformedPayload):
        encode("text/plain", b"hello")


def test_decode_without_separator_fails():
    with pytest.raises(MalformedPayload):
        decode("data:image/png;base64")


def test_decode_empty_payload_fails():
    with pytest.raises(MalformedPayload):
        decode("data:application/pdf;base64,")


def test_decode_invalid_base64_fails():
    with pytest.raises(MalformedPayload):
        decode("data:image/png;base64,@@not-base64@@")


def test_parse_data_url_returns_mime():
    mime, data = parse_data_url(data_url("image/jpg", b"abc"))
    assert mime == "image/jpeg"
    assert data == b"abc"


# --- downscaling ---
def test_wide_image_is_downscaled_to_jpeg():
    payload = encode("image/png", png_bytes(width=2400, height=1200), max_image_width=1200)
    assert payload.startswith("data:image/jpeg;base64,")
    with Image.open(BytesIO(decode(payload))) as im:
        assert im.size == (1200, 600)


def test_narrow_image_is_not_reencoded():
    raw = png_bytes(width=800, height=600)
    assert decode(encode("image/png", raw, max_image_width=1200)) == raw


def test_ingest_image_uses_settings(settings):
    settings.image_max_width = 100
    payload = ingest_image(data_url("image/png", png_bytes(width=400, height=200)), "int1Image", settings)
    with Image.open(BytesIO(decode(payload))) as im:
        assert im.size == (100, 50)


def test_ingest_image_rejects_pdf_in_image_slot(settings):
    with pytest.raises(MalformedPayload) as exc:
        ingest_image(data_url("application/pdf", blank_pdf()), "heroImage", settings)
    assert exc.value.slot == "heroImage"


# --- PDF list normalization ---
def test_legacy_string_list_gets_names_and_sizes():
    first = data_url("application/pdf", b"%PDF-1.4 one")
    second = data_url("application/pdf", b"%PDF-1.4 second")
    items = [PdfAttachment.model_validate(i) for i in normalize_pdf_list([first, second])]
    assert [i.name for i in items] == ["attachment-1.pdf", "attachment-2.pdf"]
    assert items[0].size == len(b"%PDF-1.4 one")
    assert items[1].data_url == second


def test_json_string_of_objects_is_accepted():
    raw = '[{"name": "appraisal.pdf", "size": 1234, "dataUrl": "data:application/pdf;base64,JVBERg=="}]'
    items = [PdfAttachment.model_validate(i) for i in normalize_pdf_list(raw)]
    assert items[0].name == "appraisal.pdf"
    assert items[0].size == 1234


def test_empty_inputs_normalize_to_empty_list():
    assert normalize_pdf_list(None) == []
    assert normalize_pdf_list("") == []
    assert normalize_pdf_list("[]") == []


def test_estimated_size_accounts_for_padding():
    assert estimate_decoded_size(data_url("application/pdf", b"ab")) == 2


def test_deal_accepts_legacy_attached_pdf_field():
    legacy = '["' + data_url("application/pdf", b"%PDF") + '"]'
    deal = DealIn.model_validate({"loanNumber": "1", "address": "A", "attachedPdf": legacy})
    assert len(deal.attached_pdfs) == 1
    assert deal.attached_pdfs[0].name == "attachment-1.pdf"


# --- replacement policy ---
def _existing() -> Deal:
    return Deal(
        id=1,
        loan_number="1",
        address="A",
        hero_image="data:image/png;base64,SEVSTw==",
        int2_image="data:image/png;base64,SU5UMg==",
        attached_pdfs=[
            PdfAttachment(name="a.pdf", size=1, data_url="data:application/pdf;base64,QQ=="),
            PdfAttachment(name="b.pdf", size=1, data_url="data:application/pdf;base64,Qg=="),
        ],
    )


def test_save_without_uploads_preserves_every_slot():
    existing = _existing()
    merged = apply_replacement_policy(existing, DealIn(loan_number="1", address="A"))
    assert merged.hero_image == existing.hero_image
    assert merged.int2_image == existing.int2_image
    assert merged.int1_image is None
    assert merged.attached_pdfs == existing.attached_pdfs


def test_new_image_replaces_only_its_slot():
    existing = _existing()
    merged = apply_replacement_policy(
        existing, DealIn(loan_number="1", address="A", hero_image="data:image/png;base64,TkVX")
    )
    assert merged.hero_image == "data:image/png;base64,TkVX"
    assert merged.int2_image == existing.int2_image


def test_new_pdf_list_replaces_old_list_whole():
    new = PdfAttachment(name="c.pdf", size=1, data_url="data:application/pdf;base64,Qw==")
    merged = apply_replacement_policy(_existing(), DealIn(loan_number="1", address="A", attached_pdfs=[new]))
    assert [p.name for p in merged.attached_pdfs] == ["c.pdf"]
