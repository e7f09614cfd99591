"""Login / logout / check-auth. Not behind the session gate."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from auth import SESSION_FLAG, SettingsDep, check_credentials, is_authenticated
from errors import Unauthorized
from models import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["session"])


@router.post("/login")
def login(body: LoginRequest, request: Request, settings: SettingsDep):
    if not check_credentials(settings, body.username, body.password):
        logger.warning("login rejected request_id=%s", getattr(request.state, "request_id", "-"))
        raise Unauthorized("Invalid username or password")
    request.session[SESSION_FLAG] = True
    logger.info("login ok request_id=%s", getattr(request.state, "request_id", "-"))
    return {"ok": True}


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return {"ok": True}


@router.get("/check-auth")
def check_auth(request: Request):
    return {"authenticated": is_authenticated(request)}
