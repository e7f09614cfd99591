"""
Store generated PDFs on disk under <root>/<year>/<loan-number>/ and list recent ones.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path

from errors import StorageFailure, ValidationFailed

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_name(name: str) -> str:
    return _UNSAFE.sub("_", name or "")


def save_pdf(root: Path, filename: str, loan_number: str | None, body: bytes, today: date | None = None) -> str:
    """Write body and return its path relative to root, with forward slashes."""
    if not body:
        raise ValidationFailed("No file uploaded")
    safe_name = sanitize_name(Path(filename or "").name).lstrip(".") or "document.pdf"
    if not safe_name.lower().endswith(".pdf"):
        safe_name += ".pdf"
    folder = sanitize_name((loan_number or "").strip()).strip(".") or "unknown"
    year = str((today or date.today()).year)

    target_dir = Path(root) / year / folder
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / safe_name).write_bytes(body)
    except OSError as e:
        raise StorageFailure(f"Could not write {safe_name}") from e
    rel = f"{year}/{folder}/{safe_name}"
    logger.info("pdf stored path=%s bytes=%s", rel, len(body))
    return rel


def list_recent_pdfs(root: Path, limit: int = 50) -> list[dict]:
    root = Path(root)
    if not root.is_dir():
        return []
    entries = []
    try:
        for path in root.rglob("*.pdf"):
            if not path.is_file():
                continue
            stat = path.stat()
            entries.append({
                "path": path.relative_to(root).as_posix(),
                "size": stat.st_size,
                "modified_at": datetime.fromtimestamp(stat.st_mtime),
            })
    except OSError as e:
        raise StorageFailure("Could not list stored PDFs") from e
    entries.sort(key=lambda e: e["modified_at"], reverse=True)
    return entries[:limit]
