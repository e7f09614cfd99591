"""
Session gate. One shared credential from Settings; a successful login sets
request.session["authenticated"] (signed cookie via Starlette SessionMiddleware).
Every /api router depends on require_session.
"""
from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Request

from errors import Unauthorized
from settings import Settings

logger = logging.getLogger(__name__)

SESSION_FLAG = "authenticated"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def check_credentials(settings: Settings, username: str, password: str) -> bool:
    user_ok = secrets.compare_digest(username.encode(), settings.admin_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), settings.admin_password.encode())
    return user_ok and pass_ok


def is_authenticated(request: Request) -> bool:
    return bool(request.session.get(SESSION_FLAG))


def require_session(request: Request) -> None:
    """Dependency: 401 before the handler runs, so nothing is mutated."""
    if not is_authenticated(request):
        raise Unauthorized()


SettingsDep = Annotated[Settings, Depends(get_settings)]
