"""
Attachment codec.

Uploaded images and PDFs live inside record fields as self-describing strings,
`data:<mime>;base64,<payload>`. This module encodes and decodes that form, enforces
the raw-size limits (5 MB images, 10 MB PDFs), optionally downscales wide images,
and applies the replace-if-present rule when a record is re-saved.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from io import BytesIO
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from errors import MalformedPayload, OversizedFile
from settings import MB, Settings

logger = logging.getLogger(__name__)

IMAGE_SLOTS = ("hero_image", "int1_image", "int2_image", "int3_image", "int4_image")
PDF_MIME = "application/pdf"
MAX_IMAGE_BYTES = 5 * MB
MAX_PDF_BYTES = 10 * MB
DEFAULT_JPEG_QUALITY = 85

# Pillow cannot rasterize these; embedded unchanged
_PASSTHROUGH_IMAGE_TYPES = {"image/svg+xml"}
_WHITESPACE = re.compile(r"\s+")


class PdfAttachment(BaseModel):
    """One attached PDF. name/size are what the uploader declared; display only."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = "attachment.pdf"
    size: int = 0
    data_url: str


def _normalize_mime(mime_type: str | None) -> str:
    mime = (mime_type or "").strip().lower()
    return "image/jpeg" if mime == "image/jpg" else mime


def _size_limit(mime_type: str, max_image_bytes: int, max_pdf_bytes: int, slot: str | None) -> int:
    if mime_type == PDF_MIME:
        return max_pdf_bytes
    if mime_type.startswith("image/"):
        return max_image_bytes
    raise MalformedPayload(f"Unsupported attachment type: {mime_type or 'unknown'}", slot=slot)


def _downscale(data: bytes, max_width: int, quality: int, slot: str | None) -> bytes | None:
    """JPEG bytes resized to max_width, or None when the image is already narrow enough."""
    try:
        with Image.open(BytesIO(data)) as im:
            width, height = im.size
            if width <= max_width:
                return None
            new_height = max(1, round(height * max_width / width))
            resized = im.convert("RGB").resize((max_width, new_height), Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, OSError) as e:
        raise MalformedPayload("Image could not be read", slot=slot) from e
    out = BytesIO()
    resized.save(out, format="JPEG", quality=quality)
    logger.info("image downscaled slot=%s from_width=%s to_width=%s", slot, width, max_width)
    return out.getvalue()


def encode(
    mime_type: str,
    data: bytes,
    *,
    slot: str | None = None,
    max_image_width: int | None = None,
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
    max_image_bytes: int = MAX_IMAGE_BYTES,
    max_pdf_bytes: int = MAX_PDF_BYTES,
) -> str:
    """
    Embed raw file bytes as a data URL.

    Size limits are checked on the raw bytes. Without max_image_width the bytes are
    embedded unchanged, so decode(encode(...)) returns them exactly.
    """
    mime = _normalize_mime(mime_type)
    limit = _size_limit(mime, max_image_bytes, max_pdf_bytes, slot)
    if not data:
        raise MalformedPayload("Attachment is empty", slot=slot)
    if len(data) > limit:
        kind = "PDF" if mime == PDF_MIME else "Image"
        raise OversizedFile(
            f"{kind} is {len(data) / MB:.2f} MB; the limit is {limit / MB:.0f} MB",
            slot=slot,
        )
    if max_image_width and mime.startswith("image/") and mime not in _PASSTHROUGH_IMAGE_TYPES:
        resized = _downscale(data, max_image_width, jpeg_quality, slot)
        if resized is not None:
            mime, data = "image/jpeg", resized
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_url(payload: Any, slot: str | None = None) -> tuple[str, bytes]:
    """Split a data URL into (mime type, decoded bytes)."""
    if not isinstance(payload, str) or "," not in payload:
        raise MalformedPayload("Attachment payload has no data separator", slot=slot)
    header, _, body = payload.partition(",")
    mime = ""
    if header.startswith("data:"):
        mime = _normalize_mime(header[5:].split(";", 1)[0])
    try:
        data = base64.b64decode(_WHITESPACE.sub("", body), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedPayload("Attachment payload is not valid base64", slot=slot) from e
    if not data:
        raise MalformedPayload("Attachment payload is empty", slot=slot)
    return mime, data


def decode(payload: Any, slot: str | None = None) -> bytes:
    return parse_data_url(payload, slot=slot)[1]


def estimate_decoded_size(payload: str) -> int:
    body = payload.partition(",")[2].strip()
    return max(0, len(body) * 3 // 4 - body[-2:].count("="))


def normalize_pdf_list(raw: Any) -> list[Any]:
    """
    Accept every stored shape of the PDF list: a JSON string, legacy bare data-URL
    strings, or {name, size, dataUrl} objects. Returns items PdfAttachment validates.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError("attached PDF list is not valid JSON") from e
    if not isinstance(raw, list):
        raise ValueError("attached PDF list must be an array")
    items: list[Any] = []
    for index, item in enumerate(raw, start=1):
        if isinstance(item, str):
            items.append({
                "name": f"attachment-{index}.pdf",
                "size": estimate_decoded_size(item),
                "dataUrl": item,
            })
        elif isinstance(item, (dict, PdfAttachment)):
            items.append(item)
        else:
            raise ValueError(f"attached PDF #{index} has an unsupported shape")
    return items


def ingest_image(payload: Optional[str], slot: str, settings: Settings) -> Optional[str]:
    """Validate a client-submitted image payload and apply the configured downscale."""
    if not payload:
        return None
    mime, data = parse_data_url(payload, slot=slot)
    if not mime.startswith("image/"):
        raise MalformedPayload(f"{slot} must be an image", slot=slot)
    return encode(
        mime,
        data,
        slot=slot,
        max_image_width=settings.image_max_width or None,
        jpeg_quality=settings.image_jpeg_quality,
        max_image_bytes=settings.max_image_bytes,
        max_pdf_bytes=settings.max_pdf_bytes,
    )


def ingest_pdfs(items: list[PdfAttachment], settings: Settings) -> list[PdfAttachment]:
    out: list[PdfAttachment] = []
    for index, item in enumerate(items):
        slot = f"attachedPdfs[{index}]"
        mime, data = parse_data_url(item.data_url, slot=slot)
        if mime and mime != PDF_MIME:
            raise MalformedPayload(f"{item.name} is not a PDF", slot=slot)
        data_url = encode(
            PDF_MIME,
            data,
            slot=slot,
            max_image_bytes=settings.max_image_bytes,
            max_pdf_bytes=settings.max_pdf_bytes,
        )
        out.append(PdfAttachment(name=item.name, size=item.size or len(data), data_url=data_url))
    return out


def apply_replacement_policy(existing: BaseModel, incoming: BaseModel) -> BaseModel:
    """
    Replace-if-present, else preserve: each image slot independently, and the PDF
    list as a whole (a new list replaces the old one; lists are never merged).
    """
    keep: dict[str, Any] = {}
    for slot in IMAGE_SLOTS:
        if not getattr(incoming, slot):
            keep[slot] = getattr(existing, slot)
    if not incoming.attached_pdfs:
        keep["attached_pdfs"] = list(existing.attached_pdfs)
    return incoming.model_copy(update=keep)
