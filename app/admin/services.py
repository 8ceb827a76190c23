# app/admin/services.py
from datetime import timedelta

import structlog

from app.admin.schemas import AdminPrincipal
from app.core.config import Settings
from app.core.errors import AuthError, AuthzError
from app.core.security import ADMIN_ROLE, constant_time_equals, create_access_token, decode_access_token

log = structlog.get_logger(__name__)


def login(admin_id: str, password: str, settings: Settings) -> str:
    # evaluate both so a wrong id costs the same as a wrong password
    id_ok = constant_time_equals(admin_id, settings.ADMIN_ID)
    password_ok = constant_time_equals(password, settings.ADMIN_PASSWORD)
    if not (id_ok and password_ok):
        log.info("admin.login_failed")
        raise AuthError("Invalid id or password")
    log.info("admin.login", admin_id=admin_id)
    return create_access_token(
        settings.ADMIN_ID,
        secret=settings.JWT_SECRET,
        role=ADMIN_ROLE,
        algorithm=settings.JWT_ALGORITHM,
        expires_delta=timedelta(hours=settings.JWT_EXPIRES_HOURS),
    )


def verify(token: str, settings: Settings) -> AdminPrincipal:
    claims = decode_access_token(token, secret=settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    if claims.get("role") != ADMIN_ROLE:
        raise AuthzError("Administrator role required")
    return AdminPrincipal(id=str(claims.get("sub", "")), role=ADMIN_ROLE)
