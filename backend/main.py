from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from errors import AppError, RenderingFailure, StorageFailure
from records import build_store
from reporting.renderer import PdfRenderer
from routes.deals import router as deals_router
from routes.documents import router as documents_router
from routes.portfolios import router as portfolios_router
from routes.session import router as session_router
from settings import Settings

_LOG = logging.getLogger("uvicorn.error")

VERSION = "0.1.0"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "-")
    body = exc.to_dict()
    if isinstance(exc, (StorageFailure, RenderingFailure)):
        _LOG.error(
            "request_id=%s path=%s error_code=%s detail=%s",
            request_id, request.url.path, exc.error_code, exc.message,
            exc_info=exc,
        )
    if isinstance(exc, StorageFailure):
        body["detail"] = exc.public_message
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="Deal Sheet Backend", version=VERSION)
    app.state.settings = settings
    app.state.store = build_store(settings)
    app.state.renderer = PdfRenderer(settings)

    # Starlette runs the last-added middleware first: request logging wraps everything
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.session_https_only,
        same_site="lax",
    )
    app.add_middleware(RequestLogMiddleware)
    app.add_exception_handler(AppError, app_error_handler)

    app.include_router(session_router)
    app.include_router(deals_router)
    app.include_router(portfolios_router)
    app.include_router(documents_router)

    @app.on_event("startup")
    def startup_log() -> None:
        _LOG.info(
            "Backend starting on http://%s:%s store=%s storage_dir=%s version=%s",
            settings.host, settings.port, app.state.store.backend, settings.storage_dir, VERSION,
        )

    @app.on_event("shutdown")
    def shutdown() -> None:
        app.state.store.close()

    @app.get("/health")
    def health():
        return {"status": "ok", "store": app.state.store.backend, "version": VERSION}

    @app.get("/health/pdf")
    def health_pdf():
        """
        Runtime check for Playwright PDF dependencies.
        Returns 200 only when Chromium can launch successfully.
        """
        try:
            app.state.renderer.check_runtime()
        except RenderingFailure as e:
            raise HTTPException(
                status_code=503,
                detail=f"Playwright runtime unavailable: {e.message}",
            ) from e
        return {"status": "ok", "pdf_runtime": "ready"}

    return app


if __name__ == "__main__":
    import uvicorn

    _settings = Settings.from_env()
    uvicorn.run("main:create_app", factory=True, host=_settings.host, port=_settings.port)
