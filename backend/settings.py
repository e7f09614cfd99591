"""
Process configuration. Built once at startup from the environment (and backend/.env)
and handed to create_app; nothing else reads os.environ.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

MB = 1024 * 1024

REQUIRED_ENV = ("SESSION_SECRET", "ADMIN_USERNAME", "ADMIN_PASSWORD")

_BACKEND_DIR = Path(__file__).resolve().parent


class Settings(BaseModel):
    database_url: str = "sqlite:///./dealsheets.db"
    record_store: Literal["sql", "json"] = "sql"
    records_dir: Path = Path("./records")
    storage_dir: Path = Path("./storage")

    # Required, no defaults
    session_secret: str
    admin_username: str
    admin_password: str
    session_https_only: bool = False

    host: str = "127.0.0.1"
    port: int = 5050
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5050"])

    # Attachment limits apply to raw bytes, before base64
    image_max_width: int = 1200
    image_jpeg_quality: int = 85
    max_image_bytes: int = 5 * MB
    max_pdf_bytes: int = 10 * MB

    pdf_page_format: str = "Letter"
    chromium_args: list[str] = Field(default_factory=lambda: ["--no-sandbox"])
    company_name: str = "Safeguard"

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "Settings":
        load_dotenv(env_file or _BACKEND_DIR / ".env")
        values: dict = {}
        scalar = {
            "DATABASE_URL": "database_url",
            "RECORD_STORE": "record_store",
            "RECORDS_DIR": "records_dir",
            "STORAGE_DIR": "storage_dir",
            "SESSION_SECRET": "session_secret",
            "ADMIN_USERNAME": "admin_username",
            "ADMIN_PASSWORD": "admin_password",
            "SESSION_HTTPS_ONLY": "session_https_only",
            "HOST": "host",
            "PORT": "port",
            "IMAGE_MAX_WIDTH": "image_max_width",
            "IMAGE_JPEG_QUALITY": "image_jpeg_quality",
            "MAX_IMAGE_BYTES": "max_image_bytes",
            "MAX_PDF_BYTES": "max_pdf_bytes",
            "PDF_PAGE_FORMAT": "pdf_page_format",
            "COMPANY_NAME": "company_name",
        }
        for env_name, field_name in scalar.items():
            raw = os.environ.get(env_name, "").strip()
            if raw:
                values[field_name] = raw

        origins = os.environ.get("ALLOWED_ORIGINS", "").strip()
        if origins:
            values["allowed_origins"] = [o.strip() for o in origins.split(",") if o.strip()]
        chromium_args = os.environ.get("CHROMIUM_ARGS", "").strip()
        if chromium_args:
            values["chromium_args"] = chromium_args.split()
        missing = [name for name in REQUIRED_ENV if not os.environ.get(name, "").strip()]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")
        return cls.model_validate(values)
